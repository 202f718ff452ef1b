from __future__ import annotations
import logging
from typing import Optional

import colorlog

ROOT_LOGGER = "faucet_match"

CONSOLE_FORMAT = "%(log_color)s%(levelname)-8s%(reset)s %(blue)s%(name)s%(reset)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Install one coloured console handler on the app's root logger (idempotent)."""
    global _configured
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not _configured:
        handler = colorlog.StreamHandler()
        handler.setFormatter(colorlog.ColoredFormatter(
            CONSOLE_FORMAT,
            datefmt=DATE_FORMAT,
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        ))
        root.addHandler(handler)
        root.propagate = False
        _configured = True
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if not _configured:
        setup_logging()
    if not name:
        return logging.getLogger(ROOT_LOGGER)
    short = name.rsplit(".", 1)[-1]
    return logging.getLogger(f"{ROOT_LOGGER}.{short}")
