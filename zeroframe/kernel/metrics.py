# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""Syscall counters. Written by the dispatcher only; reset only by reboot."""

from __future__ import annotations

import copy
from typing import Any

from zeroframe.kernel.scheduler import SystemClock
from zeroframe.kernel.types import KernelMetrics


class MetricsRecorder:
    def __init__(self, clock: SystemClock):
        self._clock = clock
        self._metrics = KernelMetrics(boot_time=clock.now_iso())

    def record(self, syscall: Any):
        name = getattr(syscall, "value", syscall)
        m = self._metrics
        m.last_syscall_time = self._clock.now_iso()
        m.total_syscalls += 1
        m.syscalls_by_name[name] = m.syscalls_by_name.get(name, 0) + 1

    def reset(self):
        """Reboot: new boot time, all counters zeroed"""
        self._metrics = KernelMetrics(boot_time=self._clock.now_iso())

    def snapshot(self) -> KernelMetrics:
        """Detached copy; callers cannot mutate the live counters"""
        return copy.deepcopy(self._metrics)

    @property
    def boot_time(self) -> str:
        return self._metrics.boot_time

    @property
    def last_syscall_time(self):
        return self._metrics.last_syscall_time

    @property
    def total(self) -> int:
        return self._metrics.total_syscalls

    def count(self, syscall: Any) -> int:
        return self._metrics.syscalls_by_name.get(getattr(syscall, "value", syscall), 0)
