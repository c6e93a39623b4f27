# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Zeroframe Kernel - capability-gated syscall dispatch over tenant state.

Apps never touch kernel state directly: they call ``Kernel.invoke`` (or an
``AppClient``), the dispatcher checks the app's capabilities and the active
user's role, and a handler does the work.
"""

from .capabilities import APP_CAPABILITIES, CapabilityDescriptor, CapabilityRegistry
from .client import AppClient
from .console import CommandConsole, run_demo
from .dispatcher import Dispatcher
from .errors import DispatchResult, Err, ErrorKind, KernelError, KernelFault, Ok
from .handlers import SYSCALL_HANDLERS, SyscallContext, syscall_handler
from .jobs import JobEngine
from .kernel import Kernel
from .metrics import MetricsRecorder
from .roles import ROLE_PERMISSIONS, ROLE_RULES, PermissionAction, has_permission, role_allows
from .scheduler import DeferredScheduler, ManualClock, SystemClock
from .seed import SeedData, default_seed
from .store import KernelStore
from .syscalls import Syscall

__all__ = [
    # Kernel
    "Kernel",
    "KernelStore",
    "Dispatcher",
    "SyscallContext",
    "SYSCALL_HANDLERS",
    "syscall_handler",
    "Syscall",
    # Results
    "Ok",
    "Err",
    "DispatchResult",
    "ErrorKind",
    "KernelError",
    "KernelFault",
    # Access control
    "APP_CAPABILITIES",
    "CapabilityDescriptor",
    "CapabilityRegistry",
    "PermissionAction",
    "ROLE_PERMISSIONS",
    "ROLE_RULES",
    "has_permission",
    "role_allows",
    # Engine
    "JobEngine",
    "MetricsRecorder",
    "DeferredScheduler",
    "ManualClock",
    "SystemClock",
    "SeedData",
    "default_seed",
    # Apps
    "AppClient",
    "CommandConsole",
    "run_demo",
]
