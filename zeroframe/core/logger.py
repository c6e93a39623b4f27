# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Logging setup for Zeroframe.

Every module logs through ``logging.getLogger("zeroframe.<area>")``; this
module only decides where those records go (console, optional rotating file).
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "zeroframe"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def parse_level(level: str) -> int:
    """Convert string level to logging constant"""
    return _LEVELS.get(level.upper(), logging.INFO)


class ZeroframeLogger:
    """
    Handler configuration for the ``zeroframe`` logger tree.

    Features:
    - Console output on stderr (stdout belongs to the CLI)
    - Optional file output with rotation
    - Dynamic level changes
    """

    def __init__(
        self,
        name: str = ROOT_LOGGER,
        level: str = "INFO",
        log_file: Optional[Path] = None,
        console_output: bool = True,
    ):
        self.name = name
        self.logger = logging.getLogger(name)

        # Re-configuring replaces our handlers instead of stacking them
        self.logger.handlers.clear()
        self.logger.setLevel(parse_level(level))
        self.logger.propagate = False

        console_formatter = logging.Formatter(
            fmt="[%(asctime)s] [%(name)s:%(levelname)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        file_formatter = logging.Formatter(
            fmt="%(asctime)s | %(name)s | %(levelname)s | %(filename)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        if console_output:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(console_formatter)
            console_handler.setLevel(parse_level(level))
            self.logger.addHandler(console_handler)

        if log_file is not None:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            # Rotate after 10MB, keep 5 backup files
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setFormatter(file_formatter)
            file_handler.setLevel(logging.DEBUG)
            self.logger.addHandler(file_handler)

    def set_level(self, level: str):
        """Change log level dynamically"""
        self.logger.setLevel(parse_level(level))
        for handler in self.logger.handlers:
            if not isinstance(handler, RotatingFileHandler):
                handler.setLevel(parse_level(level))


_configured: Optional[ZeroframeLogger] = None


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    console_output: bool = True,
) -> ZeroframeLogger:
    """
    Configure the ``zeroframe`` logger tree.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file receiving everything at DEBUG
        console_output: Whether to attach a stderr handler

    Returns:
        ZeroframeLogger instance
    """
    global _configured
    _configured = ZeroframeLogger(
        level=level,
        log_file=log_file,
        console_output=console_output,
    )
    return _configured


def get_logger(component: str) -> logging.Logger:
    """Get the logger for a component, e.g. ``get_logger("kernel")``"""
    return logging.getLogger(f"{ROOT_LOGGER}.{component}")
