"""Centralized error handler for qg commands."""

import traceback
from collections.abc import Callable
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any

import click

from qualitygate.utils.logging import logger


def _error_log_path(root: str | Path) -> Path:
    # Imported here: config_runtime itself imports qualitygate.utils
    from qualitygate.config_runtime import DEFAULTS, load_runtime_config, resolve_path
    from qualitygate.errors import QualityGateError

    try:
        config = load_runtime_config(root)
    except QualityGateError:
        config = DEFAULTS
    return resolve_path(config, root, "error_log")


def handle_exceptions(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator that logs unexpected errors and converts them to ClickException.

    click's own exceptions (including SystemExit raised by ctx.exit) pass
    through untouched so exit codes survive. The traceback goes to the
    error log of the project named by the command's --root option.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (click.ClickException, click.exceptions.Exit, click.Abort):
            raise
        except Exception as e:
            error_log = _error_log_path(kwargs.get("root") or ".")
            error_log.parent.mkdir(parents=True, exist_ok=True)

            error_type = type(e).__name__
            error_msg = str(e)
            tb = traceback.format_exc()

            logger.opt(exception=True).error(
                "Command '{cmd}' failed: {err}",
                cmd=func.__name__,
                err=error_msg,
            )

            with open(error_log, "a", encoding="utf-8") as f:
                f.write("\n" + "=" * 80 + "\n")
                f.write(f"[{datetime.now().isoformat()}] Error in command: {func.__name__}\n")
                f.write("=" * 80 + "\n")
                f.write(f"{error_type}: {error_msg}\n\n")
                f.write(tb)
                f.write("=" * 80 + "\n\n")

            user_message = (
                f"{error_type}: {error_msg}\n\n"
                f"Full traceback logged to: {error_log}"
            )

            raise click.ClickException(user_message) from e

    return wrapper
