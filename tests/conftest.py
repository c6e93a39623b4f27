# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""Shared fixtures: a kernel on a manual clock with deterministic job outcomes"""

import logging
import os
import sys
from pathlib import Path

import pytest

# Project root holds cli.py
sys.path.insert(0, str(Path(__file__).parent.parent))

from zeroframe.core.config import KernelConfig, set_config
from zeroframe.core.logger import ROOT_LOGGER
from zeroframe.kernel import Kernel, ManualClock


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def kernel_config():
    """No random failures; completions fire 2s after a tick"""
    return KernelConfig(job_completion_delay_s=2.0, job_failure_rate=0.0, random_seed=7)


@pytest.fixture
def kernel(clock, kernel_config):
    return Kernel(config=kernel_config, clock=clock)


@pytest.fixture
def jobs_app(kernel):
    return kernel.app("jobs")


@pytest.fixture
def console_app(kernel):
    return kernel.app("console")


@pytest.fixture(autouse=True)
def reset_global_config():
    yield
    set_config(None)


@pytest.fixture(autouse=True)
def reset_logging():
    """setup_logging() binds handlers to the current stderr; drop them after each test"""
    yield
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.propagate = True
    root.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep ZEROFRAME_* variables from the host out of config loading"""
    for name in list(os.environ):
        if name.startswith("ZEROFRAME_"):
            monkeypatch.delenv(name)
