from __future__ import annotations

import logging
import sys

from pythonjsonlogger import jsonlogger

from vidtube.config import get_settings


def setup_logging() -> None:
    settings = get_settings()
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.log_level))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, settings.log_level))

    if settings.log_format == "json":
        handler.setFormatter(
            jsonlogger.JsonFormatter(
                "%(asctime)s %(levelname)s %(name)s %(message)s %(funcName)s %(lineno)d",
                rename_fields={"levelname": "level", "asctime": "timestamp"},
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        )
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    root.addHandler(handler)

    for noisy in ("urllib3", "httpx", "httpcore", "cloudinary"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    root.info(
        "Logging configured: level=%s format=%s",
        settings.log_level,
        settings.log_format,
    )
