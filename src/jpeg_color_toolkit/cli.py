"""
CLI module - Command line interface for JPEG Color Toolkit

Entry point for the `jct` command using Typer.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .color.pipeline import input_pixel_format
from .color.profiles import IccProfile
from .color.transform import Intent, PrecalcMode
from .config import AppConfig, load_config, validate_config
from .converter import ConversionContext, ConversionResult, convert_image
from .errors import ColorToolkitError
from .jpeg.codec import PillowSource
from .jpeg.markers import extract_resolution
from .log import configure_logging

console = Console()
app = typer.Typer(
    name="jct",
    help="JPEG Color Toolkit - ICC color transforms for JPEG images, including ITU fax CIELab.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    if value:
        console.print(f"jct version {__version__}")
        raise typer.Exit()


ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to config file", exists=True, dir_okay=False),
]


@app.callback()
def main(
    version: Annotated[
        bool, typer.Option("--version", callback=version_callback, is_eager=True, help="Show version")
    ] = False,
):
    """JPEG Color Toolkit - ICC color transforms for JPEG images."""
    pass


def format_size_change(input_size: int, output_size: int) -> str:
    """Format size change as human-readable string."""
    if input_size == 0:
        return "n/a"
    ratio = 1.0 - output_size / input_size
    pct = abs(ratio * 100)
    if ratio > 0:
        return f"[green]{pct:.0f}% smaller[/green]"
    elif ratio < 0:
        return f"[yellow]{pct:.0f}% larger[/yellow]"
    else:
        return "same size"


def apply_overrides(config: AppConfig, **overrides) -> AppConfig:
    """Apply CLI values on top of the loaded config; None means not given."""
    sections = {
        "input_profile": ("profiles", "input"),
        "output_profile": ("profiles", "output"),
        "proof_profile": ("profiles", "proofing"),
        "device_link": ("profiles", "device_link"),
        "intent": ("rendering", "intent"),
        "proof_intent": ("rendering", "proofing_intent"),
        "bpc": ("rendering", "black_point_compensation"),
        "gamut_check": ("rendering", "gamut_check"),
        "precalc": ("rendering", "precalc"),
        "quality": ("output", "quality"),
        "embed_profile": ("output", "embed_profile"),
        "ignore_embedded": ("output", "ignore_embedded"),
        "save_embedded": ("output", "save_embedded"),
    }
    for name, value in overrides.items():
        if value is None or value is False:
            continue
        section, key = sections[name]
        setattr(getattr(config, section), key, value)

    # A device link given on the command line replaces configured profiles
    if overrides.get("device_link"):
        if not overrides.get("input_profile"):
            config.profiles.input = None
        if not overrides.get("output_profile"):
            config.profiles.output = None
    return config


def print_conversion(result: ConversionResult, verbose: bool) -> None:
    table = Table(title=f"Converted: {result.input_path.name}")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Output", str(result.output_path))
    table.add_row("Dimensions", f"{result.width}x{result.height}")
    table.add_row("Input Format", result.input_format)
    table.add_row("Output Format", result.output_format)
    if verbose:
        embedded = " [dim](embedded)[/dim]" if result.used_embedded_profile else ""
        table.add_row("Input Profile", f"{result.input_profile}{embedded}")
        table.add_row("Output Profile", result.output_profile)
        table.add_row("Rows", str(result.rows_processed))
        table.add_row("Time", f"{result.elapsed_seconds:.2f}s")
    size_change = format_size_change(result.input_size, result.output_size)
    table.add_row("Size", f"{result.output_size / 1024:.1f} KB ({size_change})")

    console.print(table)


@app.command()
def convert(
    input_file: Annotated[Path, typer.Argument(help="Input JPEG file", exists=True, dir_okay=False)],
    output_file: Annotated[Path, typer.Argument(help="Output JPEG file", dir_okay=False)],
    input_profile: Annotated[
        str | None, typer.Option("--input-profile", "-i", help="Input profile (file, *sRGB or *Lab)")
    ] = None,
    output_profile: Annotated[
        str | None,
        typer.Option("--output-profile", "-o", help="Output profile (file, *sRGB or *Lab) [default: *sRGB]"),
    ] = None,
    device_link: Annotated[
        str | None, typer.Option("--device-link", "-l", help="Transform by device-link profile")
    ] = None,
    proof_profile: Annotated[
        str | None, typer.Option("--proof-profile", "-p", help="Soft proof profile (device to simulate)")
    ] = None,
    intent: Annotated[
        int | None, typer.Option("--intent", "-t", min=0, max=3, help="Rendering intent (see intents)")
    ] = None,
    proof_intent: Annotated[
        int | None, typer.Option("--proof-intent", "-m", min=0, max=3, help="Soft proof intent")
    ] = None,
    bpc: Annotated[bool, typer.Option("--bpc", "-b", help="Black point compensation")] = False,
    gamut_check: Annotated[
        bool, typer.Option("--gamut-check", "-g", help="Mark out-of-gamut colors on soft proof")
    ] = False,
    precalc: Annotated[
        int | None,
        typer.Option("--precalc", "-c", min=0, max=3, help="Precalculation (0=off, 1=normal, 2=hi-res, 3=lo-res)"),
    ] = None,
    ignore_embedded: Annotated[
        bool, typer.Option("--ignore-embedded", "-n", help="Ignore embedded profile")
    ] = False,
    embed_profile: Annotated[bool, typer.Option("--embed-profile", "-e", help="Embed output profile")] = False,
    save_embedded: Annotated[
        Path | None, typer.Option("--save-embedded", "-s", help="Save embedded profile to file", dir_okay=False)
    ] = None,
    quality: Annotated[
        int | None, typer.Option("--quality", "-q", min=0, max=100, clamp=True, help="JPEG quality")
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show profile information and debug logging")
    ] = False,
    config: ConfigOption = None,
):
    """
    Convert a JPEG through an ICC color transform.

    Profiles may be files or the built-in names [cyan]*sRGB[/cyan] and
    [cyan]*Lab[/cyan] (ITU T.42 fax CIELab). Fax-encoded input is detected
    from its G3FAX marker.

    [bold]Examples:[/bold]

        jct convert photo.jpg out.jpg -o printer.icc

        jct convert photo.jpg fax.jpg -o *Lab

        jct convert print.jpg link.jpg -l cmyk-to-cmyk.icc
    """
    if device_link and (input_profile or output_profile):
        console.print("[red]Error:[/red] --device-link cannot be combined with --input-profile or --output-profile")
        raise typer.Exit(1)

    app_config = apply_overrides(
        load_config(config),
        input_profile=input_profile,
        output_profile=output_profile,
        proof_profile=proof_profile,
        device_link=device_link,
        intent=intent,
        proof_intent=proof_intent,
        bpc=bpc,
        gamut_check=gamut_check,
        precalc=precalc,
        quality=quality,
        embed_profile=embed_profile,
        ignore_embedded=ignore_embedded,
        save_embedded=save_embedded,
    )

    errors = validate_config(app_config)
    if errors:
        for error in errors:
            console.print(f"[red]Error:[/red] {error}")
        raise typer.Exit(1)

    configure_logging(app_config.logging, verbose=verbose)

    result = convert_image(ConversionContext(input_file, output_file, app_config))
    if not result.success:
        console.print(f"[red]Error:[/red] {result.error}")
        raise typer.Exit(1)

    print_conversion(result, verbose)


@app.command()
def info(
    file: Annotated[Path, typer.Argument(help="JPEG file to analyze", exists=True, dir_okay=False)],
):
    """
    Show JPEG color information.

    Reports color space, markers, resolution, fax detection and the
    embedded ICC profile.
    """
    try:
        source = PillowSource(file)
    except ColorToolkitError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    try:
        color = source.color_info
        table = Table(title=f"JPEG Info: {file.name}")
        table.add_column("Property", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Dimensions", f"{source.width}x{source.height}")
        table.add_row("JPEG Color Space", color.jpeg_color_space.value.upper())
        try:
            fmt = input_pixel_format(color)
            table.add_row("Pixel Format", f"{fmt.describe()} (0x{fmt.encode():08X})")
        except ColorToolkitError as e:
            table.add_row("Pixel Format", f"[red]{e}[/red]")
        table.add_row("Adobe Marker", "Yes" if color.has_adobe_marker else "No")
        table.add_row("ITU Fax (G3FAX)", "[green]Yes[/green]" if color.fax_encoded else "No")

        resolution = extract_resolution(source.metadata.markers) or source.metadata.resolution
        table.add_row(
            "Resolution",
            f"{resolution.x_density}x{resolution.y_density} {resolution.unit.name.lower().replace('_', ' ')}",
        )

        if color.embedded_profile:
            try:
                profile = IccProfile.from_bytes(color.embedded_profile, name="embedded")
                space = profile.color_space.name if profile.color_space else "?"
                size = len(color.embedded_profile)
                table.add_row("Embedded Profile", f"{profile.description} ({space}, {size} bytes)")
            except ColorToolkitError as e:
                table.add_row("Embedded Profile", f"[yellow]unreadable: {e}[/yellow]")
        else:
            table.add_row("Embedded Profile", "[dim]-[/dim]")

        markers = ", ".join(f"{m.name} ({len(m.payload)} bytes)" for m in source.metadata.markers)
        table.add_row("Markers", markers or "[dim]-[/dim]")

        console.print(table)
    finally:
        source.close()


@app.command()
def intents():
    """List rendering intents and precalculation modes."""
    table = Table(title="Rendering Intents")
    table.add_column("Value", style="cyan", justify="right")
    table.add_column("Intent")
    for intent in Intent:
        table.add_row(str(intent.value), intent.label)
    console.print(table)

    table = Table(title="Precalculation Modes")
    table.add_column("Value", style="cyan", justify="right")
    table.add_column("Mode")
    for mode in PrecalcMode:
        table.add_row(str(mode.value), mode.name.replace("HIRES", "HI-RES").replace("LORES", "LO-RES").title())
    console.print(table)


def main_cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main_cli()
