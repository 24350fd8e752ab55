"""Logging setup for the ``keygate`` logger tree.

Modules log through ``logging.getLogger(__name__)``; this module only
decides where records go and how they look. With ``structured = true``
records are rendered as JSON lines by structlog, carrying any
``extra=`` fields as top-level keys.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from keygate.config.schema import LoggingConfig

ROOT_LOGGER = "keygate"

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def json_formatter() -> logging.Formatter:
    """Stdlib formatter that renders records through structlog as JSON."""
    pre_chain: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )


def setup_logging(config: LoggingConfig) -> logging.Logger:
    """Configure the ``keygate`` logger from *config*.

    Replaces any handlers installed by a previous call.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(config.level.upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = (
        json_formatter() if config.structured else logging.Formatter(_TEXT_FORMAT)
    )

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    if config.file:
        path = Path(config.file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
