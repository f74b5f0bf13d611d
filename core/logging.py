"""Logging setup for the chat service.

Every record carries the id of the request that produced it.
"""

import logging
import os
import sys
from contextvars import ContextVar
from logging.handlers import WatchedFileHandler
from typing import Optional


request_id_var: ContextVar[str] = ContextVar("request_id", default="")

LOG_FORMAT = "[%(asctime)s.%(msecs)03d] [%(levelname)-5s] [%(name)-20s] [%(request_id)s] %(message)s"
DEV_LOG_FORMAT = "[%(asctime)s.%(msecs)03d] [%(levelname)-5s] [%(name)-20s] [%(request_id)s] %(message)s (%(filename)s:%(lineno)d)"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that only matter when something is wrong
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "pg8000", "multipart", "uvicorn.access")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True


def _find_handler(logger: logging.Logger, handler_type: type, *, filename: Optional[str] = None):
    for handler in logger.handlers:
        if type(handler) is not handler_type:
            continue
        if filename is None or getattr(handler, "baseFilename", None) == filename:
            return handler
    return None


def _attach(logger: logging.Logger, handler: logging.Handler, level: int, fmt: str):
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=LOG_DATE_FORMAT))
    handler.addFilter(RequestIdFilter())
    logger.addHandler(handler)
    return handler


def configure_logging(*, environment: str, log_level: str, app_log_path: str = "") -> int:
    """
    Configure the root logger once per process.

    Records go to stdout and, when `app_log_path` is set, to a file that
    survives log rotation. Outside production each record also names its source
    line. Calling this again does not add duplicate handlers.
    """
    level = getattr(logging, (log_level or "INFO").upper(), logging.INFO)
    fmt = LOG_FORMAT if environment == "production" else DEV_LOG_FORMAT

    root = logging.getLogger()
    root.setLevel(level)

    if _find_handler(root, logging.StreamHandler) is None:
        _attach(root, logging.StreamHandler(sys.stdout), level, fmt)

    app_log_path = (app_log_path or "").strip()
    if app_log_path:
        app_log_path = os.path.abspath(app_log_path)
        try:
            log_dir = os.path.dirname(app_log_path)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            if _find_handler(root, WatchedFileHandler, filename=app_log_path) is None:
                _attach(root, WatchedFileHandler(app_log_path), level, fmt)
        except OSError as exc:
            root.warning(f"Failed to open chat log file {app_log_path}: {exc}")

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # Route uvicorn through the root handlers so requests share one format
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True
    logging.getLogger("uvicorn").setLevel(level)
    logging.getLogger("uvicorn.error").setLevel(level)

    return level
