"""
Loading, saving and deriving AnkiPix settings.

Settings live in a YAML file; API keys and the AnkiConnect endpoint may also
come from the environment, which wins over the file.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from ankipix.config_models import AnkiPixSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"

# environment variable -> (settings group, field)
ENV_OVERRIDES: Dict[str, tuple[str, str]] = {
    "PIXABAY_API_KEY": ("search", "pixabay_api_key"),
    "BING_API_KEY": ("search", "bing_api_key"),
    "ANKI_CONNECT_URL": ("anki", "connect_url"),
    "ANKI_DECK_NAME": ("anki", "deck_name"),
}


def _apply_env_overrides(raw: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    merged = {group: dict(values or {}) for group, values in raw.items()}
    for env_name, (group, field) in ENV_OVERRIDES.items():
        value = environ.get(env_name, "").strip()
        if value:
            merged.setdefault(group, {})[field] = value
    return merged


def load_settings(
    config_path: str | Path = DEFAULT_CONFIG_PATH,
    environ: Mapping[str, str] | None = None,
) -> AnkiPixSettings:
    """Load and validate settings from a YAML file.

    A missing file yields the defaults (plus environment overrides).

    Raises:
        ValueError: If the YAML top level is not a mapping
        ValidationError: If a value is invalid
    """
    environ = os.environ if environ is None else environ
    config_file = Path(config_path)

    raw: Dict[str, Any] = {}
    if config_file.exists():
        raw = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Top level of {config_file} must be a mapping")
    else:
        logger.info("Config file not found, using defaults", extra={"config": str(config_file)})

    return AnkiPixSettings.model_validate(_apply_env_overrides(raw, environ))


def save_settings(settings: AnkiPixSettings, config_path: str | Path = DEFAULT_CONFIG_PATH) -> Path:
    """Write settings to YAML and return the path written."""
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = settings.model_dump(mode="json")
    path.write_text(yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8")
    logger.info("Settings saved", extra={"config": str(path)})
    return path


def update_settings(settings: AnkiPixSettings, **groups: Mapping[str, Any]) -> AnkiPixSettings:
    """Return a new validated settings instance with the given groups changed.

    Example:
        >>> update_settings(settings, anki={"deck_name": "Biology"})
    """
    data = settings.model_dump()
    for group, changes in groups.items():
        if group not in data:
            raise KeyError(f"Unknown settings group: {group}")
        data[group] = {**data[group], **dict(changes)}
    try:
        return AnkiPixSettings.model_validate(data)
    except ValidationError:
        logger.error("Rejected settings update", extra={"groups": ",".join(groups)})
        raise
