"""Structured logging configuration using structlog."""

import logging
import sys

import structlog


def configure_logging(log_level: str = "info", json_output: bool = False) -> None:
    """Configure structlog for structured logging.

    Args:
        log_level: Logging level string (debug/info/warning/error).
        json_output: If True, output JSON (production). If False, colored console (dev).
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Quiet noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def bind_request_context(trace_id: str) -> None:
    """Bind the request trace id to the current async context."""
    structlog.contextvars.bind_contextvars(trace_id=trace_id)


def bind_job_context(job_id: int, job_type: str, attempt: int | None = None) -> None:
    """Bind the job being executed so every log line names it."""
    ctx: dict = {"job_id": job_id, "job_type": job_type}
    if attempt is not None:
        ctx["attempt"] = attempt
    structlog.contextvars.bind_contextvars(**ctx)


def clear_request_context() -> None:
    """Clear bound context variables after a request or job."""
    structlog.contextvars.clear_contextvars()
