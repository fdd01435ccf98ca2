"""Runtime configuration for rustgeiger - centralized configuration management."""

import copy
import json
import os
from pathlib import Path
from typing import Any

from rustgeiger.utils.logging import logger

DEFAULTS = {
    "paths": {
        "error_log": "./.geiger/error.log",
    },
    "limits": {
        "jobs": min(32, (os.cpu_count() or 1) + 4),
        "max_file_size": 8 * 1024 * 1024,
    },
    "timeouts": {
        "cargo_metadata": 300,
    },
    "scan": {
        "include_tests": False,
        "include_native_ffi": False,
        "skip_dirs": ["target", ".git"],
    },
}


def _coerce(default_value: Any, value: str) -> Any:
    """Convert an environment string to the type of its default."""
    if isinstance(default_value, bool):
        return value.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default_value, int):
        return int(value)
    if isinstance(default_value, float):
        return float(value)
    if isinstance(default_value, list):
        return [v.strip() for v in value.split(",") if v.strip()]
    return value


CONFIG_RELPATH = Path(".geiger") / "config.json"
ENV_PREFIX = "RUSTGEIGER"


def _merge_file(cfg: dict[str, Any], path: Path) -> None:
    """Overlay known keys from a JSON config file; values of the wrong type are ignored."""
    try:
        with open(path, encoding="utf-8") as f:
            user = json.load(f)
    except FileNotFoundError:
        return
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not load config file from {path}: {e}; using defaults")
        return

    if not isinstance(user, dict):
        logger.warning(f"Ignoring {path}: top level must be an object")
        return
    for section, values in user.items():
        if section not in cfg or not isinstance(values, dict):
            continue
        for key, value in values.items():
            if key not in cfg[section]:
                logger.debug(f"Unknown config key {section}.{key} in {path}")
            elif isinstance(value, type(cfg[section][key])):
                cfg[section][key] = value
            else:
                logger.warning(f"Config key {section}.{key} has the wrong type in {path}; keeping default")


def _apply_env(cfg: dict[str, Any]) -> None:
    for section, values in cfg.items():
        for key, default in values.items():
            env_var = f"{ENV_PREFIX}_{section.upper()}_{key.upper()}"
            raw = os.environ.get(env_var)
            if raw is None:
                continue
            try:
                values[key] = _coerce(default, raw)
            except ValueError as e:
                logger.warning(f"Invalid value for {env_var}: '{raw}' ({e}); using {default!r}")


def load_runtime_config(root: str = ".") -> dict[str, Any]:
    """Load runtime configuration.

    Priority, highest first: RUSTGEIGER_<SECTION>_<KEY> environment
    variables, then <root>/.geiger/config.json, then DEFAULTS.
    """
    cfg = copy.deepcopy(DEFAULTS)
    _merge_file(cfg, Path(root) / CONFIG_RELPATH)
    _apply_env(cfg)
    return cfg
