"""Structured logging setup for processes that host the publish step.

The step only emits records: stdlib loggers under ``mqtt_publish_step`` and
one structlog record per invocation on ``mqtt_publish_step.outcome``.
setup_logging() renders both through a single handler on the root logger.
"""

import logging
import sys
from typing import IO, Literal

import structlog

HANDLER_NAME = "mqtt_publish_step"

# Loggers that are too chatty at the step's own level
NOISY_LOGGERS = ("paho.mqtt",)


def setup_logging(
    level: str = "INFO",
    format_type: Literal["json", "console"] = "console",
    stream: IO[str] | None = None,
) -> None:
    """Configure structured logging for the hosting process.

    Calling it again replaces the handler installed by the previous call.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format_type: Output format ('json' for pipelines, 'console' for local runs).
        stream: Destination stream, stdout by default.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    renderer: structlog.typing.Processor
    if format_type == "json":
        renderer = structlog.processors.JSONRenderer()
        final_processors = [structlog.processors.format_exc_info, renderer]
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)
        final_processors = [renderer]

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta]
            + final_processors,
        )
    )

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
