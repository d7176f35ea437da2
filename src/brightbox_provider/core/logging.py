"""Logging configuration for the provider using stdlib logging with rich."""

import logging
from collections.abc import MutableMapping
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

# Context keys whose values never reach the log output
SENSITIVE_KEYS = frozenset({"password", "apisecret", "token", "access_token", "user_data"})

REDACTED = "***"


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that formats kwargs as structured context data.

    Context data is passed as keyword arguments to the logging methods and
    rendered as a suffix. Values of sensitive keys are redacted.

    Example:
        logger = get_logger(__name__)
        logger.info("Waiting for server", server_id="srv-12345", timeout=300)
        # Output: Waiting for server [server_id=srv-12345 timeout=300]
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        """Process log message and kwargs to extract context data.

        Args:
            msg: Log message
            kwargs: Keyword arguments including context data

        Returns:
            Tuple of (formatted_message, cleaned_kwargs)
        """
        # Standard library logging kwargs that should not be treated as context
        stdlib_kwargs = {"exc_info", "stack_info", "stacklevel", "extra"}

        # Extract context data (anything not a stdlib logging kwarg)
        context = {k: v for k, v in kwargs.items() if k not in stdlib_kwargs}
        clean_kwargs = {k: v for k, v in kwargs.items() if k in stdlib_kwargs}

        # Format context data as a visually distinct suffix, hiding secrets
        if context:
            context_items = [
                f"{k}={REDACTED if k in SENSITIVE_KEYS else v}"
                for k, v in sorted(context.items())
            ]
            context_str = " ".join(context_items)
            msg = f"{msg} [dim][[/dim]{context_str}[dim]][/dim]"

        return msg, clean_kwargs


def setup_logging(verbose: bool = False, trace: bool = False) -> None:
    """Configure structured logging with rich integration.

    Args:
        verbose: Enable debug logging
        trace: Enable debug logging plus source locations and HTTP client logs
    """
    # Determine log level based on flags
    log_level = logging.DEBUG if verbose or trace else logging.INFO

    # stdout is reserved for resource state output
    console = Console(stderr=True)

    # Create rich handler with desired formatting
    handler = RichHandler(
        console=console,
        show_time=True,  # Show timestamps
        show_path=trace,  # Show module and line number in trace mode
        markup=True,  # Enable rich markup in messages
        rich_tracebacks=True,  # Enhanced exception rendering
        tracebacks_show_locals=trace,  # Show local vars in trace mode
        log_time_format="[%Y-%m-%d %H:%M:%S]",
    )

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )

    # aiohttp request logs are only wanted when tracing
    if not trace:
        logging.getLogger("aiohttp").setLevel(logging.WARNING)


def get_logger(name: str = "") -> StructuredLoggerAdapter:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Logger adapter with structured logging support
    """
    # Use the provided name, or fall back to this module's name if not specified
    logger = logging.getLogger(name) if name else logging.getLogger(__name__)

    return StructuredLoggerAdapter(logger, {})
