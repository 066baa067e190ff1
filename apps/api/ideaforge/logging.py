"""structlog setup.

Call `configure_logging()` once at startup; modules use `get_logger(__name__)`
and log event-style names with keyword context. Request-scoped values
(request_id, method, path, user_id) are bound through structlog.contextvars
by the request middleware and the auth gate.
"""

from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(*, level: str = "INFO", json_format: bool = True) -> None:
  shared_processors = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
  ]
  renderer = structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()

  structlog.configure(
    processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
  )

  formatter = structlog.stdlib.ProcessorFormatter(
    foreign_pre_chain=shared_processors,
    processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
  )
  handler = logging.StreamHandler(sys.stdout)
  handler.setFormatter(formatter)

  root = logging.getLogger()
  root.handlers.clear()
  root.addHandler(handler)
  root.setLevel(getattr(logging, (level or "INFO").upper(), logging.INFO))

  logging.getLogger("httpx").setLevel(logging.WARNING)
  logging.getLogger("httpcore").setLevel(logging.WARNING)
  logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
  return structlog.get_logger(name)


def bind_request_context(**values: object) -> None:
  structlog.contextvars.bind_contextvars(**{k: v for k, v in values.items() if v is not None})


def clear_request_context() -> None:
  structlog.contextvars.clear_contextvars()
