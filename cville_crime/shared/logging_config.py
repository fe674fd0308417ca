"""
Charlottesville Crime - Logging Setup

Configures the root logger from the `logging` section of Settings.
Text format mirrors the pipeline scripts; JSON format renders each record
through structlog as one object per line, including any structured
`extra={...}` fields attached to the record.
"""

from __future__ import annotations

import logging

import structlog

from cville_crime.shared.config import Settings, get_config

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def json_formatter() -> structlog.stdlib.ProcessorFormatter:
    """Formatter that renders standard-library records as single-line JSON."""
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.ExtraAdder(),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.EventRenamer("message"),
            structlog.processors.JSONRenderer(),
        ],
    )


def configure_logging(config: Settings | None = None) -> None:
    """Install a single stream handler on the root logger."""
    config = config or get_config()
    level = getattr(logging, config.logging.level.upper(), logging.INFO)

    handler = logging.StreamHandler()
    if config.logging.format == "json":
        handler.setFormatter(json_formatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
