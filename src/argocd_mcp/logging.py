"""Logging utilities."""

import logging
from collections.abc import Mapping
from typing import Any, Literal

from rich.console import Console
from rich.logging import RichHandler

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def configure_logging(level: LogLevel = "INFO") -> None:
    """Configure logging for the server.

    Records go to stderr: stdout carries the protocol when serving over stdio.

    Args:
        level: the log level to use
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def redact_sensitive_data(
    data: Mapping[str, Any] | None,
    sensitive_keys: set[str] | None = None,
) -> Mapping[str, Any] | None:
    """Return a shallow copy with sensitive values replaced by "***".

    Parameters
    ----------
    data:
        Original mapping (typically a request payload or headers). If *None*
        the function simply returns *None*.
    sensitive_keys:
        Optional set of keys that should be hidden; defaults to the Argo CD
        credential fields.
    """

    if data is None:
        return None

    sensitive_keys = sensitive_keys or {"password", "token", "authorization"}

    return {key: "***" if key.lower() in sensitive_keys else value for key, value in data.items()}
