# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Tests for the process table and the virtual filesystem

These tests verify:
- Services are always listed, jobs map to processes by status
- VFS directories, dataset files and devices resolve per tenant
- Unknown paths resolve to nothing
"""

import pytest

from zeroframe.kernel.processes import SERVICES, job_process_status
from zeroframe.kernel.types import JobStatus, ProcessStatus, ProcessType, VfsNodeType
from zeroframe.kernel.vfs import LOGGER_DEVICE_TEXT


class TestProcesses:
    def test_services_listed(self, console_app):
        processes = console_app.list_processes()
        assert [p.pid for p in processes] == [s[0] for s in SERVICES]
        assert all(p.type == ProcessType.SERVICE for p in processes)
        assert all(p.status == ProcessStatus.RUNNING for p in processes)

    def test_job_processes(self, kernel, jobs_app, console_app):
        running = jobs_app.submit_job(name="running", type="BATCH", priority="HIGH")
        pending = jobs_app.submit_job(name="pending", type="BATCH")
        jobs_app.run_worker_tick()

        by_pid = {p.pid: p for p in console_app.list_processes()}
        assert by_pid[f"job-{running.id}"].status == ProcessStatus.RUNNING
        assert by_pid[f"job-{running.id}"].cpu_usage == 10
        assert by_pid[f"job-{pending.id}"].status == ProcessStatus.SLEEPING
        assert by_pid[f"job-{pending.id}"].cpu_usage == 0
        assert by_pid[f"job-{pending.id}"].related_job_id == pending.id

    @pytest.mark.parametrize("status,expected", [
        (JobStatus.RUNNING, ProcessStatus.RUNNING),
        (JobStatus.PENDING, ProcessStatus.SLEEPING),
        (JobStatus.RETRYING, ProcessStatus.SLEEPING),
        (JobStatus.COMPLETED, ProcessStatus.STOPPED),
        (JobStatus.FAILED, ProcessStatus.STOPPED),
        (JobStatus.CANCELLED, ProcessStatus.STOPPED),
    ])
    def test_status_mapping(self, status, expected):
        assert job_process_status(status) == expected

    def test_other_tenant_jobs_hidden(self, kernel, jobs_app, console_app):
        jobs_app.submit_job(name="acme", type="BATCH")
        kernel.set_active_org("org-globex")
        processes = console_app.list_processes()
        assert all(p.type == ProcessType.SERVICE for p in processes)

    def test_dev_can_list(self, kernel, console_app):
        kernel.set_active_user("u-dev")
        assert console_app.list_processes()


class TestVfs:
    def test_root(self, console_app):
        node = console_app.list_vfs_path("/")
        assert node.type == VfsNodeType.DIR
        assert node.children == ["/DEV", "/UAT", "/PROD", "/dev"]

    def test_workspace_dir(self, console_app):
        assert console_app.list_vfs_path("/PROD").children == ["/PROD/datasets"]

    def test_datasets_dir(self, console_app):
        node = console_app.list_vfs_path("/DEV/datasets")
        assert node.children == ["/DEV/datasets/customers"]

    def test_dataset_file(self, console_app):
        content = console_app.read_vfs_file("/DEV/datasets/customers")
        assert content == "Dataset customers (TABLE) in workspace DEV. Records: 1200"

    def test_dataset_of_other_tenant(self, kernel, console_app):
        assert console_app.list_vfs_path("/DEV/datasets/inventory") is None
        kernel.set_active_org("org-globex")
        assert console_app.list_vfs_path("/DEV/datasets/inventory").type == VfsNodeType.FILE

    def test_dir_reads_as_listing(self, console_app):
        assert console_app.read_vfs_file("/dev").split("\n") == [
            "/dev/time", "/dev/random", "/dev/null", "/dev/logger"
        ]

    def test_devices(self, kernel, console_app):
        assert console_app.read_vfs_file("/dev/time") == kernel.clock.now_iso()
        assert console_app.read_vfs_file("/dev/null") == ""
        assert console_app.read_vfs_file("/dev/logger") == LOGGER_DEVICE_TEXT
        assert console_app.read_vfs_file("/dev/random").isdigit()
        assert console_app.list_vfs_path("/dev/null").type == VfsNodeType.DEVICE

    @pytest.mark.parametrize("path", [
        "/nope", "/DEV/other", "/MARS/datasets", "/DEV/datasets/missing", "/DEV/datasets/customers/x",
    ])
    def test_unknown_paths(self, console_app, path):
        assert console_app.list_vfs_path(path) is None
        assert console_app.read_vfs_file(path) is None

    def test_open_to_every_role(self, kernel, console_app):
        kernel.set_active_user("u-aud")
        assert console_app.list_vfs_path("/") is not None
