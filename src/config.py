"""Unified configuration loaded from .showcase.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".showcase.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG = Path.home() / ".config" / "showcase" / "config.toml"

_TRUTHY = ("true", "1", "yes")


class StoreSectionConfig(BaseModel):
    """[store] section."""

    directory: str = "./content"

    @property
    def path(self) -> Path:
        return Path(self.directory)


class OrderingSectionConfig(BaseModel):
    """[ordering] section."""

    refresh_after_write: bool = True


class LoggingSectionConfig(BaseModel):
    """[logging] section."""

    level: str = "WARNING"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {value}")
        return level


class ShowcaseConfig(BaseModel):
    """Top-level configuration model."""

    store: StoreSectionConfig = Field(default_factory=StoreSectionConfig)
    ordering: OrderingSectionConfig = Field(default_factory=OrderingSectionConfig)
    logging: LoggingSectionConfig = Field(default_factory=LoggingSectionConfig)


def load_config(path: str | Path | None = None) -> ShowcaseConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .showcase.toml in CWD
    3. ~/.config/showcase/config.toml

    Then overlay environment variables.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG.exists():
            data = _load_toml(GLOBAL_CONFIG)
            logger.info("Loaded config from %s", GLOBAL_CONFIG)

    config = ShowcaseConfig.model_validate(data) if data else ShowcaseConfig()
    return _apply_env_vars(config)


def merge_cli_overrides(config: ShowcaseConfig, **cli_kwargs: object) -> ShowcaseConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only values that are not None override the config.
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "store_directory": ("store", "directory"),
        "log_level": ("logging", "level"),
        "refresh_after_write": ("ordering", "refresh_after_write"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value

    return ShowcaseConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: ShowcaseConfig) -> ShowcaseConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    store_dir = os.environ.get("SHOWCASE_STORE_DIR")
    if store_dir is not None:
        data["store"]["directory"] = store_dir
    log_level = os.environ.get("SHOWCASE_LOG_LEVEL")
    if log_level is not None:
        data["logging"]["level"] = log_level
    refresh_raw = os.environ.get("SHOWCASE_REFRESH_AFTER_WRITE")
    if refresh_raw is not None:
        data["ordering"]["refresh_after_write"] = refresh_raw.lower() in _TRUTHY

    return ShowcaseConfig.model_validate(data)
