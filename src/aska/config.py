"""Unified configuration loaded from .aska.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".aska.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG_PATH = Path.home() / ".config" / "aska" / "config.toml"


class StoreSectionConfig(BaseModel):
    """[store] section."""

    directory: str = "./aska-data"


class LLMSectionConfig(BaseModel):
    """[llm] section."""

    model: str | None = None
    timeout: int = 120
    use_cli: bool = False


class IngestSectionConfig(BaseModel):
    """[ingest] section."""

    max_input_chars: int = 50_000
    run_suitability: bool = True


class FanoutSectionConfig(BaseModel):
    """[fanout] section."""

    min_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    delay_seconds: float = 2.0


class BatchSectionConfig(BaseModel):
    """[batch] section."""

    delay_seconds: float = 2.0
    page_size: int = Field(default=100, ge=1)


class AskaConfig(BaseModel):
    """Top-level configuration model for the whole pipeline."""

    store: StoreSectionConfig = Field(default_factory=StoreSectionConfig)
    llm: LLMSectionConfig = Field(default_factory=LLMSectionConfig)
    ingest: IngestSectionConfig = Field(default_factory=IngestSectionConfig)
    fanout: FanoutSectionConfig = Field(default_factory=FanoutSectionConfig)
    batch: BatchSectionConfig = Field(default_factory=BatchSectionConfig)

    @property
    def store_path(self) -> Path:
        return Path(self.store.directory)


def load_config(path: str | Path | None = None) -> AskaConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .aska.toml in CWD
    3. ~/.config/aska/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged AskaConfig.
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
        if not data and GLOBAL_CONFIG_PATH.exists():
            data = _load_toml(GLOBAL_CONFIG_PATH)
            logger.info("Loaded config from %s", GLOBAL_CONFIG_PATH)

    config = AskaConfig.model_validate(data) if data else AskaConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: AskaConfig, **cli_kwargs: object) -> AskaConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "store_directory": ("store", "directory"),
        "model": ("llm", "model"),
        "timeout": ("llm", "timeout"),
        "use_cli": ("llm", "use_cli"),
        "min_confidence": ("fanout", "min_confidence"),
        "fanout_delay": ("fanout", "delay_seconds"),
        "batch_delay": ("batch", "delay_seconds"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value

    return AskaConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: AskaConfig) -> AskaConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "ASKA_STORE_DIR": ("store", "directory"),
        "ASKA_MODEL": ("llm", "model"),
        "ASKA_LLM_TIMEOUT": ("llm", "timeout"),
        "ASKA_MIN_CONFIDENCE": ("fanout", "min_confidence"),
        "ASKA_FANOUT_DELAY": ("fanout", "delay_seconds"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    use_cli_raw = os.environ.get("ASKA_USE_CLI")
    if use_cli_raw is not None:
        data["llm"]["use_cli"] = use_cli_raw.lower() in ("true", "1", "yes")

    return AskaConfig.model_validate(data)
