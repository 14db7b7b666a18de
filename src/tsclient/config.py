"""tsserver launch configuration loading."""

import logging
from pathlib import Path
from typing import Any

import orjson

from tsclient.transport.types import TransportConfig

logger = logging.getLogger(__name__)

# Config file locations
SERVER_CONFIG_FILENAME = "tsserver.json"
GLOBAL_SERVER_CONFIG = Path.home() / ".tsclient" / SERVER_CONFIG_FILENAME
LOCAL_SERVER_CONFIG_DIR = ".tsclient"

# JSON key -> TransportConfig field
_CONFIG_KEYS = {
    "command": "command",
    "args": "args",
    "env": "env",
    "readLimit": "read_limit",
    "stopTimeout": "stop_timeout",
}


def _read_config_file(path: Path) -> dict[str, Any]:
    """Read one config file, returning the recognized settings."""
    if not path.exists():
        return {}
    try:
        data = orjson.loads(path.read_bytes())
    except (OSError, orjson.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable tsserver config {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring tsserver config {path}: expected a JSON object")
        return {}

    settings = {}
    for key, field_name in _CONFIG_KEYS.items():
        if key in data:
            settings[field_name] = data[key]
    return settings


def load_server_config(working_dir: Path | None = None) -> TransportConfig:
    """Load tsserver launch settings from global and local config files.

    Global config (~/.tsclient/tsserver.json) is loaded first.
    Local config ({working_dir}/.tsclient/tsserver.json) overrides global.
    The child runs in ``working_dir`` when one is given.

    Returns:
        The merged transport configuration.

    Raises:
        ValueError: If the merged settings are invalid.
    """
    settings = _read_config_file(GLOBAL_SERVER_CONFIG)

    if working_dir:
        local_config = working_dir / LOCAL_SERVER_CONFIG_DIR / SERVER_CONFIG_FILENAME
        settings.update(_read_config_file(local_config))

    if working_dir:
        settings["cwd"] = str(working_dir)

    return TransportConfig(**settings)
