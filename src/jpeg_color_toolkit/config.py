"""
Configuration management with YAML loading and environment variable support.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .constants import DEFAULT_QUALITY

SECTIONS = ["profiles", "rendering", "output", "logging"]


def _env_str(env_var: str) -> str | None:
    """Get a value from the environment, None if unset or empty."""
    return os.environ.get(env_var) or None


def _env_dirs(env_var: str) -> list[Path]:
    """Get an os.pathsep-separated directory list from the environment."""
    if value := os.environ.get(env_var):
        return [Path(p) for p in value.split(os.pathsep) if p]
    return []


@dataclass
class ProfilesConfig:
    """Profile references - file paths or stock names (*sRGB, *Lab)."""

    input: str | None = field(default_factory=lambda: _env_str("JCT_INPUT_PROFILE"))
    output: str | None = field(default_factory=lambda: _env_str("JCT_OUTPUT_PROFILE"))
    proofing: str | None = None
    device_link: str | None = None
    # Extra directories searched for default Gray/CMYK profiles
    search_dirs: list[Path] = field(default_factory=lambda: _env_dirs("JCT_PROFILE_DIRS"))


@dataclass
class RenderingConfig:
    intent: int = 0
    proofing_intent: int = 0
    black_point_compensation: bool = False
    gamut_check: bool = False
    precalc: int = 1  # 0=off, 1=normal, 2=hi-res, 3=lo-res


@dataclass
class OutputConfig:
    quality: int = DEFAULT_QUALITY
    embed_profile: bool = False
    ignore_embedded: bool = False
    save_embedded: Path | None = None


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    file: Path | None = None
    console: bool = True


@dataclass
class AppConfig:
    profiles: ProfilesConfig = field(default_factory=ProfilesConfig)
    rendering: RenderingConfig = field(default_factory=RenderingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        """Load configuration from YAML file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "AppConfig":
        """Create config from dictionary, ignoring unknown keys."""
        config = cls()

        for section_name in SECTIONS:
            if section_name not in data or not isinstance(data[section_name], dict):
                continue
            section = getattr(config, section_name)
            for key, value in data[section_name].items():
                if hasattr(section, key):
                    setattr(section, key, value)

        # Path-valued keys
        if isinstance(config.output.save_embedded, str):
            config.output.save_embedded = Path(config.output.save_embedded)
        if isinstance(config.logging.file, str):
            config.logging.file = Path(config.logging.file)
        config.profiles.search_dirs = [Path(d) for d in config.profiles.search_dirs or []]

        return config

    def _to_dict(self) -> dict:
        """Convert config to dictionary."""
        result = {}
        for attr in SECTIONS:
            section = getattr(self, attr)
            result[attr] = {
                key: str(value) if isinstance(value, Path) else value for key, value in vars(section).items()
            }
        result["profiles"]["search_dirs"] = [str(d) for d in self.profiles.search_dirs]
        return result


def _get_default_config_dir() -> Path:
    """Get default config directory."""
    # Check environment variable first
    if config_dir := os.environ.get("JCT_CONFIG_DIR"):
        return Path(config_dir)

    # Check XDG config home
    if xdg_config := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_config) / "jpeg-color-toolkit"

    # Fall back to ~/.config
    return Path.home() / ".config" / "jpeg-color-toolkit"


def load_config(config_path: Path | None = None, config_dir: Path | None = None) -> AppConfig:
    """
    Load configuration.

    Args:
        config_path: Path to config file (default: searches standard locations)
        config_dir: Config directory to search (default: JCT_CONFIG_DIR / XDG)

    Returns:
        AppConfig (defaults if no config file is found)
    """
    if config_path is None:
        if config_dir is None:
            config_dir = _get_default_config_dir()
        search_paths = [
            config_dir / "config.yaml",
            Path.cwd() / "jct.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    return AppConfig.from_yaml(config_path) if config_path else AppConfig()


def validate_config(config: AppConfig) -> list[str]:
    """
    Validate option combinations and ranges.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []
    profiles = config.profiles
    if profiles.device_link and (profiles.input or profiles.output):
        errors.append("device_link cannot be combined with input or output profiles")
    if profiles.device_link and profiles.proofing:
        errors.append("device_link cannot be combined with a proofing profile")

    rendering = config.rendering
    if rendering.intent not in (0, 1, 2, 3):
        errors.append(f"Unknown intent '{rendering.intent}' (0..3)")
    if rendering.proofing_intent not in (0, 1, 2, 3):
        errors.append(f"Unknown proofing intent '{rendering.proofing_intent}' (0..3)")
    if rendering.precalc not in (0, 1, 2, 3):
        errors.append(f"Unknown precalc mode '{rendering.precalc}' (0..3)")

    if not isinstance(config.output.quality, int):
        errors.append(f"quality must be an integer, got {config.output.quality!r}")

    return errors
