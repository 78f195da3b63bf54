# atlanta_map/logging.py - structlog setup for the dashboard process
"""Logging for the Atlanta property map.

Library modules call :func:`get_logger` at import time; nothing is emitted
through a handler until the first page run calls :func:`configure_logging`.
"""

import logging
import sys

import structlog
from structlog.stdlib import ProcessorFormatter

HANDLER_NAME = "atlanta_map"

# Libraries that flood the console when the dashboard runs at DEBUG
QUIET_LOGGERS = ("watchdog", "urllib3", "fiona", "pyogrio")

_SHARED_PROCESSORS = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def configure_logging(level: str = "INFO", json_output: bool = False) -> logging.Handler:
    """Route structlog and stdlib records through one stderr handler.

    Streamlit re-executes the page script on every interaction, so the
    handler is found by name and replaced rather than stacked; handlers that
    Streamlit or the host installed are left alone.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render one JSON object per line instead of console text

    Returns:
        The installed handler
    """
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=_SHARED_PROCESSORS + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(ProcessorFormatter(processor=renderer, foreign_pre_chain=_SHARED_PROCESSORS))

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(root.level, logging.INFO))
    return handler


def get_logger(name: str):
    return structlog.get_logger(name)
