"""Configuration loading and management for medvocab.

Engine settings live in a JSON file in the per-user config directory
(``MEDVOCAB_HOME`` overrides the location). Every field has a default, so a
missing config file simply means "use defaults".
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from medvocab.errors import ConfigurationError

CONFIG_FILENAME = "config.json"
INDEX_FILENAME = "vocabulary.mvix"
OVERLAY_FILENAME = "custom_medical_vocab.txt"
APP_DIRNAME = "medvocab"


class MatchingSettings(BaseModel):
    """Tunable weights and thresholds for fuzzy matching."""

    # Candidates further than this (Levenshtein) are never considered
    max_distance: int = Field(default=2, ge=0, le=5)
    edit_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    phonetic_weight: float = Field(default=0.7, ge=0.0, le=1.0)
    # Combined score must be strictly greater than this to be accepted
    accept_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    # Tokens shorter than this are passed through untouched
    min_token_length: int = Field(default=3, ge=1)


class EngineConfig(BaseModel):
    """Configuration for a correction engine instance."""

    # Compiled index; None means "<config dir>/vocabulary.mvix"
    index_path: Path | None = None
    # User overlay file; None means "<config dir>/custom_medical_vocab.txt"
    overlay_path: Path | None = None
    phonetic_scheme: str = "metaphone"
    matching: MatchingSettings = Field(default_factory=MatchingSettings)

    @field_validator("phonetic_scheme")
    @classmethod
    def _known_scheme(cls, value: str) -> str:
        from medvocab.vocabulary.phonetic import available_schemes

        if value not in available_schemes():
            raise ValueError(f"unknown phonetic scheme '{value}'")
        return value

    def resolved_index_path(self) -> Path:
        return self.index_path or get_config_dir() / INDEX_FILENAME

    def resolved_overlay_path(self) -> Path:
        return self.overlay_path or get_config_dir() / OVERLAY_FILENAME


def get_config_dir() -> Path:
    """Get the per-user configuration directory.

    ``MEDVOCAB_HOME`` wins; otherwise the platform's usual application
    data location is used.
    """
    override = os.environ.get("MEDVOCAB_HOME")
    if override:
        return Path(override).expanduser()

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIRNAME
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        base = Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
        return base / APP_DIRNAME
    return Path.home() / ".config" / APP_DIRNAME


def load_engine_config(path: Path | str | None = None) -> EngineConfig:
    """Load engine configuration from JSON.

    Args:
        path: Config file; defaults to ``<config dir>/config.json``

    Returns:
        EngineConfig (defaults if the file does not exist)

    Raises:
        ConfigurationError: If the file exists but is not valid
    """
    config_path = Path(path) if path else get_config_dir() / CONFIG_FILENAME
    if not config_path.exists():
        return EngineConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
        return EngineConfig(**data)
    except (OSError, json.JSONDecodeError, PydanticValidationError, TypeError) as e:
        raise ConfigurationError(
            f"Invalid engine config: {e}",
            context={"path": str(config_path)},
        ) from e


def save_engine_config(config: EngineConfig, path: Path | str | None = None) -> Path:
    """Save engine configuration to JSON with atomic write.

    Args:
        config: Configuration to save
        path: Target file; defaults to ``<config dir>/config.json``

    Returns:
        Path to the saved config file
    """
    config_path = Path(path) if path else get_config_dir() / CONFIG_FILENAME
    config_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = config_path.with_suffix(config_path.suffix + ".tmp")

    with open(temp_path, "w", encoding="utf-8") as f:
        json.dump(config.model_dump(mode="json"), f, indent=2)

    temp_path.replace(config_path)
    return config_path
