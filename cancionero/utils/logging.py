"""Structured logging setup using structlog.

One processor chain (context vars, level, stack info, ISO timestamps) ends
in either a coloured ``ConsoleRenderer`` or a ``JSONRenderer``.  The caller
decides which: both entry points (the ASGI app and the import CLI) pass
``json_output=(settings.app_env == "production")`` so ``APP_ENV`` set in
``.env`` counts the same as one set in the process environment.

Standard-library ``logging`` is routed through the same renderer, so
uvicorn access lines, motor/pymongo warnings and python-socketio messages
come out in the format of the application's own events.
"""

import logging
import sys

import structlog

# Libraries that log every packet or heartbeat at INFO.
_CHATTY_LOGGERS = ("socketio", "engineio")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def _route_stdlib_logging(
    shared: list[structlog.types.Processor],
    renderer: structlog.types.Processor,
    level: str,
) -> None:
    """Replace the root handler with one that renders through structlog."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *shared,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    quiet_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog and the stdlib bridge.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (case-insensitive).
        json_output: Render one JSON object per line instead of the
            developer console format.

    Returns:
        The root structlog logger.
    """
    level = log_level.upper()
    shared = _shared_processors()
    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _route_stdlib_logging(shared, renderer, level)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger bound to *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)
