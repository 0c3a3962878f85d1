"""
Структурные логи (structlog поверх stdlib logging).

    from qubilab.logging import setup_logging, get_logger

    setup_logging()                 # один раз при старте процесса
    log = get_logger(__name__)
    log.info("ledger.deploy", tx_id="...")

Environment:
  LOG_LEVEL   DEBUG | INFO | WARNING | ERROR (default INFO)
  LOG_FORMAT  json (default) | console
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import structlog
from structlog.contextvars import merge_contextvars


SERVICE_NAME = "qubilab"



def _ensure_service(_: Any, __: str, ev: Dict[str, Any]) -> Dict[str, Any]:
    ev.setdefault("service", SERVICE_NAME)
    return ev


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Настроить structlog и корневой logger. Повторный вызов перенастраивает."""
    level = (level or os.getenv("LOG_LEVEL", "") or "INFO").upper()
    log_format = (log_format or os.getenv("LOG_FORMAT", "") or "json").lower()

    shared = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        merge_contextvars,
        structlog.processors.StackInfoRenderer(),
        _ensure_service,
    ]
    if log_format == "console":
        # ConsoleRenderer сам форматирует исключения
        renderer: Any = structlog.dev.ConsoleRenderer(colors=False)
    else:
        shared.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer(sort_keys=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # stdlib-записи (uvicorn, fastapi) проходят через тот же renderer
    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[structlog.stdlib.add_logger_name, *shared],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(level)

    # uvicorn пишет через тот же handler
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers = [handler]
        lg.propagate = False
        lg.setLevel(level)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
