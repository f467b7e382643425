"""Loguru configuration for the CLI and the Gemini client.

Log records always go to stderr so command output on stdout stays clean.
Every record carries a `component` extra; records emitted through the bare
`logger` get component "app".
"""

import sys
from typing import Optional

from loguru import logger

from verification_system.config.settings import Settings, settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> | <level>{message}</level>"
)


def _default_component(record) -> None:
    record["extra"].setdefault("component", "app")


def configure_logging(config: Optional[Settings] = None) -> None:
    """
    Install the loguru sink for the given settings.

    Console format (colourised) when stderr is a TTY and log_format is
    "console"; JSON lines otherwise.

    Args:
        config: Settings to read log_level/log_format from (module settings if None)
    """
    config = config or settings
    logger.remove()
    logger.configure(patcher=_default_component)

    if sys.stderr.isatty() and config.log_format.lower() == "console":
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=config.log_level,
            colorize=True,
        )
    else:
        logger.add(
            sys.stderr,
            format="{message}",
            level=config.log_level,
            serialize=True,
            diagnose=False,
        )


def get_logger(component: str):
    """
    Logger bound to a component name.

    Example:
        >>> log = get_logger("cli")
        >>> log.info("Verification requested for school school-1")
    """
    return logger.bind(component=component)


configure_logging()

__all__ = ["logger", "get_logger", "configure_logging"]
