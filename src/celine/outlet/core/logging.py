from __future__ import annotations

import logging
import sys

from pythonjsonlogger import jsonlogger

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        formatter: logging.Formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        )
    else:
        formatter = logging.Formatter(TEXT_FORMAT)
    handler.setFormatter(formatter)

    # Avoid duplicate handlers in reload
    root.handlers = [handler]
