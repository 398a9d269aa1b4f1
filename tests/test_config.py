"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest

from jpeg_color_toolkit.config import (
    AppConfig,
    _get_default_config_dir,
    load_config,
    validate_config,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("JCT_INPUT_PROFILE", "JCT_OUTPUT_PROFILE", "JCT_PROFILE_DIRS", "JCT_CONFIG_DIR", "XDG_CONFIG_HOME"):
        monkeypatch.delenv(name, raising=False)


class TestAppConfig:
    """Tests for AppConfig dataclass."""

    def test_default_config(self):
        """Test default configuration values."""
        config = AppConfig()

        assert config.profiles.input is None
        assert config.profiles.output is None
        assert config.profiles.search_dirs == []
        assert config.rendering.intent == 0
        assert config.rendering.precalc == 1
        assert config.output.quality == 75
        assert config.output.embed_profile is False
        assert config.logging.level == "WARNING"

    def test_from_yaml_missing_file(self, tmp_path):
        """Test loading from non-existent file returns defaults."""
        config = AppConfig.from_yaml(tmp_path / "nonexistent.yaml")

        assert config.output.quality == 75

    def test_from_yaml_valid_file(self, sample_config, tmp_path):
        """Test loading from valid YAML file."""
        config = AppConfig.from_yaml(sample_config)

        assert config.profiles.output == "*Lab"
        assert config.profiles.search_dirs == [tmp_path / "icc"]
        assert config.rendering.intent == 1
        assert config.rendering.black_point_compensation is True
        assert config.rendering.precalc == 2
        assert config.output.quality == 90
        assert config.output.save_embedded == tmp_path / "embedded.icc"
        assert config.logging.level == "DEBUG"
        assert config.logging.console is False

    def test_from_yaml_partial_config(self, tmp_path):
        """Test loading partial config preserves defaults."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("""
rendering:
  intent: 3
""")
        config = AppConfig.from_yaml(config_file)

        assert config.rendering.intent == 3
        assert config.rendering.precalc == 1
        assert config.output.quality == 75

    def test_unknown_keys_ignored(self, tmp_path):
        """Test unknown sections and keys are ignored."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("""
output:
  quality: 50
  colour: blue
unknown_section:
  foo: bar
""")
        config = AppConfig.from_yaml(config_file)

        assert config.output.quality == 50
        assert not hasattr(config.output, "colour")

    def test_empty_file(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")
        assert AppConfig.from_yaml(config_file).output.quality == 75

    def test_to_dict(self, sample_config, tmp_path):
        data = AppConfig.from_yaml(sample_config)._to_dict()
        assert data["profiles"]["search_dirs"] == [str(tmp_path / "icc")]
        assert data["output"]["save_embedded"] == str(tmp_path / "embedded.icc")
        assert data["rendering"]["intent"] == 1


class TestEnvironment:
    """Tests for environment variable defaults."""

    def test_profile_env_vars(self, monkeypatch):
        monkeypatch.setenv("JCT_INPUT_PROFILE", "/profiles/scanner.icc")
        monkeypatch.setenv("JCT_OUTPUT_PROFILE", "*Lab")
        config = AppConfig()
        assert config.profiles.input == "/profiles/scanner.icc"
        assert config.profiles.output == "*Lab"

    def test_profile_dirs_env_var(self, monkeypatch):
        monkeypatch.setenv("JCT_PROFILE_DIRS", "/a:/b")
        assert AppConfig().profiles.search_dirs == [Path("/a"), Path("/b")]

    def test_config_dir_env_var(self, monkeypatch, tmp_path):
        monkeypatch.setenv("JCT_CONFIG_DIR", str(tmp_path))
        assert _get_default_config_dir() == tmp_path

    def test_xdg_config_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert _get_default_config_dir() == tmp_path / "jpeg-color-toolkit"


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_config_with_path(self, sample_config):
        """Test loading config from explicit path."""
        config = load_config(sample_config)

        assert config.output.quality == 90

    def test_load_config_from_dir(self, sample_config):
        """Test loading config.yaml from a config directory."""
        config = load_config(config_dir=sample_config.parent)

        assert config.profiles.output == "*Lab"

    def test_load_config_cwd_fallback(self, tmp_path, monkeypatch):
        """Test ./jct.yaml is used when the config dir has none."""
        (tmp_path / "jct.yaml").write_text("output:\n  quality: 42\n")
        monkeypatch.chdir(tmp_path)

        config = load_config(config_dir=tmp_path / "empty")

        assert config.output.quality == 42

    def test_load_config_defaults(self, tmp_path, monkeypatch):
        """Test loading config with no file found returns defaults."""
        monkeypatch.chdir(tmp_path)
        config = load_config(config_dir=tmp_path / "empty")

        assert config.output.quality == 75


class TestValidateConfig:
    """Tests for validate_config."""

    def test_valid(self):
        assert validate_config(AppConfig()) == []

    def test_device_link_with_profiles(self):
        config = AppConfig()
        config.profiles.device_link = "link.icc"
        config.profiles.output = "*sRGB"
        errors = validate_config(config)
        assert any("device_link" in e for e in errors)

    def test_device_link_with_proofing(self):
        config = AppConfig()
        config.profiles.device_link = "link.icc"
        config.profiles.proofing = "press.icc"
        assert len(validate_config(config)) == 1

    @pytest.mark.parametrize("field", ["intent", "proofing_intent", "precalc"])
    def test_out_of_range(self, field):
        config = AppConfig()
        setattr(config.rendering, field, 4)
        assert len(validate_config(config)) == 1

    def test_quality_type(self):
        config = AppConfig()
        config.output.quality = "high"
        assert "quality" in validate_config(config)[0]
