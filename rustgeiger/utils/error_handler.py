"""Centralized error handler for rustgeiger commands."""

import traceback
from collections.abc import Callable
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any

import click

from rustgeiger.config_runtime import load_runtime_config
from rustgeiger.utils.logging import logger


def handle_exceptions(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator that logs unexpected failures and turns them into ClickException."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except click.ClickException:
            raise
        except Exception as e:
            error_log_path = Path(load_runtime_config()["paths"]["error_log"])
            error_type = type(e).__name__
            error_msg = str(e)

            logger.opt(exception=True).error(
                "Command '{cmd}' failed: {err}",
                cmd=func.__name__,
                err=error_msg,
            )

            try:
                error_log_path.parent.mkdir(parents=True, exist_ok=True)
                with open(error_log_path, "a", encoding="utf-8") as f:
                    f.write("\n" + "=" * 80 + "\n")
                    f.write(f"[{datetime.now().isoformat()}] Error in command: {func.__name__}\n")
                    f.write("=" * 80 + "\n")
                    f.write(f"{error_type}: {error_msg}\n\n")
                    f.write(traceback.format_exc())
                    f.write("=" * 80 + "\n\n")
                location = f"Full traceback logged to: {error_log_path}"
            except OSError as log_err:
                location = f"Could not write error log {error_log_path}: {log_err}"

            raise click.ClickException(f"{error_type}: {error_msg}\n\n{location}") from e

    return wrapper
