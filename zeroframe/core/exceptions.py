# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Zeroframe Exception Hierarchy

Exception Hierarchy:
    ZeroframeError (base)
    ├── ConfigError
    │   └── ConfigValidationError
    ├── SessionError
    └── KernelFault          (zeroframe.kernel.errors)
"""

from typing import Any, Dict, Optional

# ============================================================================
# Base Exceptions
# ============================================================================


class ZeroframeError(Exception):
    """Base exception for all Zeroframe errors"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        result = {
            "type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }

        if self.cause:
            result["cause"] = {
                "type": self.cause.__class__.__name__,
                "message": str(self.cause),
            }

        return result

    def __str__(self):
        base = self.message
        if self.details:
            base += f" | Details: {self.details}"
        if self.cause:
            base += f" | Caused by: {self.cause}"
        return base


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigError(ZeroframeError):
    """Configuration-related errors (including inconsistent syscall tables)"""


class ConfigValidationError(ConfigError):
    """Configuration validation failed"""


# ============================================================================
# Session Errors
# ============================================================================


class SessionError(ZeroframeError):
    """Invalid session change (unknown user, org or workspace)"""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result.update({"field": self.field, "value": self.value})
        return result
