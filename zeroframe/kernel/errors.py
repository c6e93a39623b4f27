# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Kernel error taxonomy and dispatch results.

``KernelError`` is the immutable value returned inside ``Err``; it never
propagates as an exception past the dispatcher. Handlers that want a
specific error kind raise ``KernelFault``; the dispatcher turns it into
``Err`` with the same kind. Anything else a handler raises becomes
``INTERNAL_ERROR``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar, Union

from zeroframe.core.exceptions import ZeroframeError

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Kernel error codes"""
    FORBIDDEN_CALLER = "FORBIDDEN_CALLER"  # caller lacks the capability
    FORBIDDEN_ROLE = "FORBIDDEN_ROLE"  # active user's role lacks permission
    INVALID_ARGUMENT = "INVALID_ARGUMENT"  # no handler, or args rejected
    NOT_FOUND = "NOT_FOUND"  # entity missing or outside the tenant
    INTERNAL_ERROR = "INTERNAL_ERROR"  # unexpected handler failure


@dataclass(frozen=True)
class KernelError:
    """Structured kernel error"""
    kind: ErrorKind
    message: str
    syscall: Optional[str] = None
    caller_id: Optional[str] = None
    details: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "syscall": self.syscall,
            "caller_id": self.caller_id,
            "details": self.details if _is_plain(self.details) else repr(self.details),
        }


def _is_plain(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool, list, dict))


class KernelFault(ZeroframeError):
    """Raised by handlers (and by AppClient) to report a typed kernel error"""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        error: Optional[KernelError] = None,
    ):
        super().__init__(message, details=details, cause=cause)
        self.kind = kind
        self.error = error

    @classmethod
    def not_found(cls, what: str, ident: str) -> "KernelFault":
        return cls(ErrorKind.NOT_FOUND, f"{what} {ident} not found", details={"id": ident})

    @classmethod
    def invalid_argument(cls, message: str, **details: Any) -> "KernelFault":
        return cls(ErrorKind.INVALID_ARGUMENT, message, details=details or None)

    @classmethod
    def from_error(cls, error: KernelError) -> "KernelFault":
        return cls(error.kind, error.message, error=error)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["kind"] = self.kind.value
        return result


# =============================================================================
# Dispatch results
# =============================================================================


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: KernelError

    @property
    def ok(self) -> bool:
        return False


DispatchResult = Union[Ok[Any], Err]


def make_error(
    kind: ErrorKind,
    message: str,
    syscall: Any = None,
    caller_id: Optional[str] = None,
    details: Any = None,
) -> Err:
    """Build an ``Err`` result"""
    name = syscall.value if isinstance(syscall, Enum) else syscall
    return Err(KernelError(kind=kind, message=message, syscall=name, caller_id=caller_id, details=details))
