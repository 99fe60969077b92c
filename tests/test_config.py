"""Tests for engine configuration."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from medvocab.config import (
    CONFIG_FILENAME,
    INDEX_FILENAME,
    OVERLAY_FILENAME,
    EngineConfig,
    MatchingSettings,
    get_config_dir,
    load_engine_config,
    save_engine_config,
)
from medvocab.errors import ConfigurationError


class TestMatchingSettings:
    """Tests for MatchingSettings."""

    def test_defaults(self):
        """Test the default weights and thresholds."""
        settings = MatchingSettings()
        assert settings.max_distance == 2
        assert settings.edit_weight == 0.3
        assert settings.phonetic_weight == 0.7
        assert settings.accept_threshold == 0.7
        assert settings.min_token_length == 3

    def test_bounds(self):
        """Test out-of-range values are rejected."""
        with pytest.raises(PydanticValidationError):
            MatchingSettings(max_distance=-1)
        with pytest.raises(PydanticValidationError):
            MatchingSettings(accept_threshold=1.5)
        with pytest.raises(PydanticValidationError):
            MatchingSettings(min_token_length=0)


class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_defaults(self):
        """Test default paths resolve into the config directory."""
        config = EngineConfig()
        assert config.phonetic_scheme == "metaphone"
        assert config.resolved_index_path() == get_config_dir() / INDEX_FILENAME
        assert config.resolved_overlay_path() == get_config_dir() / OVERLAY_FILENAME

    def test_explicit_paths(self, tmp_path):
        """Test explicit paths win."""
        config = EngineConfig(index_path=tmp_path / "a.mvix", overlay_path=tmp_path / "b.txt")
        assert config.resolved_index_path() == tmp_path / "a.mvix"
        assert config.resolved_overlay_path() == tmp_path / "b.txt"

    def test_unknown_scheme(self):
        """Test an unregistered phonetic scheme is rejected."""
        with pytest.raises(PydanticValidationError, match="unknown phonetic scheme"):
            EngineConfig(phonetic_scheme="nysiis")

    def test_soundex_scheme(self):
        """Test the alternate scheme is accepted."""
        assert EngineConfig(phonetic_scheme="soundex").phonetic_scheme == "soundex"


class TestConfigDir:
    """Tests for the per-user config directory."""

    def test_env_override(self, monkeypatch, tmp_path):
        """Test MEDVOCAB_HOME wins."""
        monkeypatch.setenv("MEDVOCAB_HOME", str(tmp_path))
        assert get_config_dir() == tmp_path

    def test_linux_default(self, monkeypatch):
        """Test the XDG-style default location."""
        monkeypatch.delenv("MEDVOCAB_HOME", raising=False)
        monkeypatch.setattr("medvocab.config.sys.platform", "linux")
        assert get_config_dir() == Path.home() / ".config" / "medvocab"

    def test_macos_default(self, monkeypatch):
        """Test the macOS application support location."""
        monkeypatch.delenv("MEDVOCAB_HOME", raising=False)
        monkeypatch.setattr("medvocab.config.sys.platform", "darwin")
        assert get_config_dir() == Path.home() / "Library" / "Application Support" / "medvocab"

    def test_windows_default(self, monkeypatch, tmp_path):
        """Test the APPDATA location."""
        monkeypatch.delenv("MEDVOCAB_HOME", raising=False)
        monkeypatch.setenv("APPDATA", str(tmp_path))
        monkeypatch.setattr("medvocab.config.sys.platform", "win32")
        assert get_config_dir() == tmp_path / "medvocab"


class TestLoadSave:
    """Tests for loading and saving config files."""

    def test_missing_file_gives_defaults(self, tmp_path):
        """Test a missing config is not an error."""
        assert load_engine_config(tmp_path / "missing.json") == EngineConfig()

    def test_round_trip(self, tmp_path):
        """Test saved config loads back equal."""
        config = EngineConfig(
            index_path=tmp_path / "v.mvix",
            phonetic_scheme="soundex",
            matching=MatchingSettings(accept_threshold=0.8),
        )
        path = save_engine_config(config, tmp_path / "config.json")

        assert load_engine_config(path) == config
        assert not path.with_suffix(".json.tmp").exists()

    def test_default_location(self, monkeypatch, tmp_path):
        """Test save and load use MEDVOCAB_HOME when no path is given."""
        monkeypatch.setenv("MEDVOCAB_HOME", str(tmp_path))
        save_engine_config(EngineConfig(phonetic_scheme="soundex"))

        assert (tmp_path / CONFIG_FILENAME).exists()
        assert load_engine_config().phonetic_scheme == "soundex"

    def test_invalid_json(self, tmp_path):
        """Test unparseable JSON raises ConfigurationError."""
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigurationError) as exc_info:
            load_engine_config(path)
        assert exc_info.value.context["path"] == str(path)

    def test_invalid_values(self, tmp_path):
        """Test schema violations raise ConfigurationError."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"matching": {"max_distance": 99}}), encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_engine_config(path)
