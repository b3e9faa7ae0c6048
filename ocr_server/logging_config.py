"""Logging setup for the OCR server and its uvicorn process."""

from __future__ import annotations

import logging.config
import os
from pathlib import Path
from typing import Any, Dict

_logging_configured = False

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 5


def _rotating_handler(formatter: str, path: Path) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": formatter,
        "filename": str(path),
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": LOG_BACKUPS,
        "encoding": "utf-8",
        "delay": True,
    }


def build_logging_config(log_dir: Path, log_level: str = "INFO") -> Dict[str, Any]:
    """Return a dictConfig mapping that logs to stderr and to rotating files in ``log_dir``."""
    app_log = log_dir / os.getenv("OCR_LOG_FILE", "ocr-server.log")
    access_log = log_dir / os.getenv("OCR_ACCESS_LOG_FILE", "ocr-access.log")
    app_handlers = ["console", "app_file"]
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "()": "uvicorn.logging.DefaultFormatter",
                "fmt": "%(levelprefix)s %(asctime)s %(name)s: %(message)s",
                "use_colors": None,
            },
            "access": {
                "()": "uvicorn.logging.AccessFormatter",
                "fmt": "%(levelprefix)s %(client_addr)s - \"%(request_line)s\" %(status_code)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stderr",
            },
            "app_file": _rotating_handler("default", app_log),
            "access_file": _rotating_handler("access", access_log),
        },
        "loggers": {
            "ocr_server": {"handlers": app_handlers, "level": log_level, "propagate": False},
            "uvicorn": {"handlers": app_handlers, "level": log_level, "propagate": False},
            "uvicorn.error": {"handlers": app_handlers, "level": log_level, "propagate": False},
            "uvicorn.access": {"handlers": ["access_file"], "level": log_level, "propagate": False},
        },
        "root": {"handlers": app_handlers, "level": log_level},
    }


def configure_logging() -> None:
    """Apply the logging config once per process, driven by ``OCR_LOG_DIR``/``OCR_LOG_LEVEL``."""
    global _logging_configured
    if _logging_configured:
        return

    log_dir = Path(os.getenv("OCR_LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    log_level = os.getenv("OCR_LOG_LEVEL", "INFO").upper()

    logging.config.dictConfig(build_logging_config(log_dir, log_level))
    _logging_configured = True


__all__ = ["build_logging_config", "configure_logging"]
