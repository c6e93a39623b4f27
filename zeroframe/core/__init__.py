# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Zeroframe Core - configuration, logging and the exception hierarchy.
"""

from .config import (
    ConfigLoader,
    KernelConfig,
    ObservabilityConfig,
    ZeroframeConfig,
    get_config,
    load_config,
    reload_config,
)
from .exceptions import ConfigError, ConfigValidationError, SessionError, ZeroframeError
from .logger import ZeroframeLogger, get_logger, setup_logging

__all__ = [
    # Config
    "ConfigLoader",
    "KernelConfig",
    "ObservabilityConfig",
    "ZeroframeConfig",
    "get_config",
    "load_config",
    "reload_config",
    # Errors
    "ZeroframeError",
    "ConfigError",
    "ConfigValidationError",
    "SessionError",
    # Logging
    "ZeroframeLogger",
    "get_logger",
    "setup_logging",
]
