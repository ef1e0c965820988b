"""
Configuration loader for vc_change_grouper.

Settings come from two places, applied in order:

1. An optional JSON file named ``config.json`` in the
   ``~/.vc_change_grouper/`` directory of the user's home directory.
2. Environment variables, which override any value from the file.

A missing file is not an error; the defaults below are used. A file
that exists but is malformed or carries values of the wrong type raises
a :class:`ConfigError`. Whether an API key is actually required is
decided later, when the embedding provider is constructed.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from vc_change_grouper.errors import ConfigError


logger = logging.getLogger(__name__)
# Attach a null handler so that library use without logging configuration
# stays silent. The CLI configures the root logger explicitly.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONFIG_FILE_NAME = "config.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "embedding_provider": "openai",
    "openai_api_key": None,
    "embedding_model": "text-embedding-3-small",
    "embedding_base_url": "https://api.openai.com",
    "request_timeout": 60.0,
    "similarity_threshold": 0.80,
}

# Environment variable -> configuration key
ENV_OVERRIDES: Dict[str, str] = {
    "SEGMINT_EMBEDDING_PROVIDER": "embedding_provider",
    "OPENAI_API_KEY": "openai_api_key",
    "SEGMINT_EMBEDDING_MODEL": "embedding_model",
    "SEGMINT_EMBEDDING_BASE_URL": "embedding_base_url",
    "SEGMINT_SIMILARITY_THRESHOLD": "similarity_threshold",
}


def _get_config_directory() -> Path:
    """Return the directory holding the user-level configuration file."""
    return Path.home() / ".vc_change_grouper"


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        logger.debug("No configuration file at %s; using defaults", config_path)
        return {}
    try:
        content = config_path.read_text(encoding="utf-8")
        data = json.loads(content)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid JSON in {config_path.name}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path.name} must contain a JSON object")
    unknown = sorted(set(data) - set(DEFAULT_CONFIG))
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
    return data


def _validate(data: Mapping[str, Any]) -> None:
    for key in ("embedding_provider", "embedding_model", "embedding_base_url"):
        if not isinstance(data.get(key), str):
            raise ConfigError(f"'{key}' must be a string")
    api_key = data.get("openai_api_key")
    if api_key is not None and not isinstance(api_key, str):
        raise ConfigError("'openai_api_key' must be a string")
    timeout = data.get("request_timeout")
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError("'request_timeout' must be a positive number")
    threshold = data.get("similarity_threshold")
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise ConfigError("'similarity_threshold' must be a number")
    if not -1.0 <= threshold <= 1.0:
        raise ConfigError("'similarity_threshold' must be between -1 and 1")


def load_config(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Load configuration from the user config file and the environment.

    Parameters
    ----------
    environ : Mapping[str, str], optional
        Environment to read overrides from. Defaults to ``os.environ``.

    Returns
    -------
    Dict[str, Any]
        The validated configuration with every key of
        :data:`DEFAULT_CONFIG` present.

    Raises
    ------
    ConfigError
        If the configuration file is malformed or a value is invalid.
    """
    env = os.environ if environ is None else environ
    config_path = _get_config_directory() / CONFIG_FILE_NAME

    data: Dict[str, Any] = dict(DEFAULT_CONFIG)
    data.update(_read_config_file(config_path))

    for var, key in ENV_OVERRIDES.items():
        value = env.get(var)
        if value is None or value == "":
            continue
        if key == "similarity_threshold":
            try:
                data[key] = float(value)
            except ValueError as exc:
                raise ConfigError(f"{var} must be a number, got {value!r}") from exc
        else:
            data[key] = value

    _validate(data)
    data["request_timeout"] = float(data["request_timeout"])
    data["similarity_threshold"] = float(data["similarity_threshold"])
    logger.debug(
        "Loaded configuration (provider=%s, model=%s, threshold=%s)",
        data["embedding_provider"],
        data["embedding_model"],
        data["similarity_threshold"],
    )
    return data
