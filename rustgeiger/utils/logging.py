"""Centralized logging configuration using Loguru.

Usage:
    from rustgeiger.utils.logging import logger
    logger.info("Scanning crate")
    logger.bind(path=str(path)).debug("Parsed")  # extra fields appear in JSON output

Environment Variables:
    RUSTGEIGER_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: WARNING)
    RUSTGEIGER_LOG_JSON: 0|1 (default: 0, human-readable)
    RUSTGEIGER_LOG_FILE: append NDJSON records to this file (optional)

Logs always go to stderr so that `--format json` output on stdout stays
machine-readable.
"""

import json
import os
import sys

from loguru import logger

logger.remove()

# pino-compatible numeric levels for NDJSON consumers
LEVEL_NUMBERS = {
    "TRACE": 10,
    "DEBUG": 20,
    "INFO": 30,
    "SUCCESS": 30,
    "WARNING": 40,
    "ERROR": 50,
    "CRITICAL": 60,
}

LEVEL_COLORS = {
    "DEBUG": "<blue>",
    "INFO": "<white>",
    "WARNING": "<yellow>",
    "ERROR": "<red>",
    "CRITICAL": "<red><bold>",
}

_log_level = os.environ.get("RUSTGEIGER_LOG_LEVEL", "WARNING").upper()
_json_mode = os.environ.get("RUSTGEIGER_LOG_JSON", "0") == "1"
_log_file = os.environ.get("RUSTGEIGER_LOG_FILE")


def _json_record(message) -> str:
    """One NDJSON line for a loguru message."""
    record = message.record
    entry = {
        "level": LEVEL_NUMBERS.get(record["level"].name, 30),
        "time": int(record["time"].timestamp() * 1000),
        "msg": record["message"],
        "pid": record["process"].id,
        "thread": record["thread"].name,
        "logger": f"{record['name']}:{record['line']}",
    }
    for key, value in record["extra"].items():
        entry[key] = value if isinstance(value, (str, int, float, bool)) else str(value)
    exc = record["exception"]
    if exc:
        entry["err"] = {
            "type": exc.type.__name__ if exc.type else "Error",
            "message": str(exc.value) if exc.value else "",
        }
    return json.dumps(entry)


def json_sink(message):
    """Write NDJSON records to stderr. Never call logger.* inside a sink."""
    sys.stderr.write(_json_record(message) + "\n")
    sys.stderr.flush()


# ASCII only: Windows consoles may not be UTF-8
_human_format = (
    "<green>{time:HH:mm:ss.SSS}</green> "
    "<level>{level: <7}</level> "
    "<dim>[{thread.name}]</dim> "
    "<cyan>{name}:{line}</cyan> "
    "<level>{message}</level>"
)

for _name, _color in LEVEL_COLORS.items():
    logger.level(_name, color=_color)

if _json_mode:
    logger.add(json_sink, level=_log_level, colorize=False)
else:
    logger.add(sys.stderr, level=_log_level, format=_human_format, colorize=None)

if _log_file:

    def _file_sink(message):
        with open(_log_file, "a", encoding="utf-8") as f:
            f.write(_json_record(message) + "\n")

    logger.add(_file_sink, level="DEBUG")


__all__ = ["logger"]
