# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Command Console - a line-oriented shell over the kernel.

The console is an ordinary app (``console``): everything it does goes
through the dispatcher with that app id. ``execute`` takes one command
line and returns the output lines, which keeps the REPL in the CLI thin.
"""

from __future__ import annotations

import logging
import shlex
import time
from datetime import datetime
from typing import Callable, Dict, List

from zeroframe.kernel.client import AppClient
from zeroframe.kernel.errors import KernelFault
from zeroframe.kernel.kernel import Kernel
from zeroframe.kernel.scheduler import ManualClock
from zeroframe.kernel.types import JobPriority, JobType, ProcessType, ResourceType, VfsNodeType

logger = logging.getLogger("zeroframe.console")

CONSOLE_APP_ID = "console"

HELP_LINES = [
    "Available commands:",
    "  help                   - Show this help message",
    "  uptime                 - Show kernel uptime and last syscall",
    "  syscalls               - Show syscall statistics",
    "  ps [jobs|services]     - List processes",
    "  jobs                   - List all jobs",
    "  ls [path]              - List VFS directory contents",
    "  cat <path>             - Read VFS file or device",
    "  submit <name> [type]   - Submit a job (type: BATCH, REPORT, ETL, SIMULATION)",
    "  tick                   - Run one worker tick",
    "  wait [seconds]         - Let simulated jobs finish",
    "  snapshot [label]       - Capture a snapshot",
    "  restore <id>           - Restore a snapshot",
    "  whoami                 - Show the active user, org and workspace",
    "  panic                  - Trigger kernel panic",
    "  reboot                 - Reboot the kernel (clears a panic)",
    "  run demo               - Execute end-to-end demo scenario",
    "  exit                   - Leave the console",
]


def format_uptime(seconds: int) -> str:
    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    if days > 0:
        return f"{days}d {hours % 24}h {minutes % 60}m {seconds % 60}s"
    if hours > 0:
        return f"{hours}h {minutes % 60}m {seconds % 60}s"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def wait_for_jobs(kernel: Kernel, seconds: float) -> int:
    """Let simulated time pass and fire due completions"""
    if isinstance(kernel.clock, ManualClock):
        return kernel.advance(seconds)
    time.sleep(seconds)
    return kernel.run_pending()


def run_demo(kernel: Kernel, api: AppClient) -> List[str]:
    """Scripted scenario: submit, tick, submit a simulation, message Ghost ABEND"""
    output = ["Starting Zeroframe demo...", "", "Step 1: Submitting demo batch job..."]
    api.submit_job(
        name="demo-batch-job",
        type=JobType.BATCH,
        description="Demo job submitted via console run demo",
        priority=JobPriority.HIGH,
        tags=["demo"],
        script_summary="Demo batch job",
    )
    output += ["[+] Job submitted", "", "Step 2: Running worker tick..."]
    picked = api.run_worker_tick()
    output.append(f"[+] Worker picked {picked.name if picked else 'nothing'}")

    output += ["", "Step 3: Submitting ShadowASM simulation..."]
    api.submit_job(
        name="shadowasm-demo-sim",
        type=JobType.SIMULATION,
        description="ShadowASM demo simulation",
        tags=["shadowasm", "demo"],
        script_summary="LOAD R1, 42\nSTORE R1, result",
    )
    output += ["[+] Simulation submitted", "", "Step 4: Sending IPC message..."]
    api.send_message(
        "ghost-abend",
        "DEMO_EVENT",
        {"info": "Demo orchestration from console", "timestamp": kernel.store.now_iso()},
    )
    output += ["[+] Message sent to Ghost ABEND", "", "Demo complete!"]

    api.log_app_audit(
        "CONSOLE_RUN_DEMO", ResourceType.SYSTEM_APP,
        details="Demo scenario executed from console",
    )
    return output


class CommandConsole:
    """Interprets console command lines"""

    def __init__(self, kernel: Kernel, wait_seconds: float = None):
        self.kernel = kernel
        self.api = kernel.app(CONSOLE_APP_ID)
        self.wait_seconds = (
            wait_seconds if wait_seconds is not None else kernel.config.job_completion_delay_s
        )
        self.finished = False
        self._commands: Dict[str, Callable[[List[str]], List[str]]] = {
            "help": lambda args: list(HELP_LINES),
            "uptime": self._uptime,
            "syscalls": self._syscalls,
            "ps": self._ps,
            "jobs": self._jobs,
            "ls": self._ls,
            "cat": self._cat,
            "submit": self._submit,
            "tick": self._tick,
            "wait": self._wait,
            "snapshot": self._snapshot,
            "restore": self._restore,
            "whoami": self._whoami,
            "panic": self._panic,
            "reboot": self._reboot,
            "run": self._run,
            "exit": self._exit,
            "quit": self._exit,
        }

    @property
    def prompt(self) -> str:
        store = self.kernel.store
        return f"{store.active_user.name}@zeroframe:{store.active_workspace.value}$ "

    def execute(self, line: str) -> List[str]:
        """Run one command line and return its output"""
        trimmed = line.strip()
        if not trimmed:
            return []
        try:
            parts = shlex.split(trimmed)
        except ValueError as e:
            return [f"Error: {e}"]
        command, args = parts[0].lower(), parts[1:]

        handler = self._commands.get(command)
        if handler is None:
            return [f"Unknown command: {command}", 'Type "help" for available commands']

        try:
            output = handler(args)
            if not self.kernel.panicked:
                self.api.log_app_audit(
                    "COMMAND_EXECUTED", ResourceType.SYSTEM_APP,
                    details=f"Executed command: {trimmed}",
                )
        except KernelFault as e:
            output = [f"Error: {e.message}"]
        return output

    # =========================================================================
    # Commands
    # =========================================================================

    def _uptime(self, args: List[str]) -> List[str]:
        metrics = self.api.get_metrics()
        boot = datetime.fromisoformat(metrics.boot_time).timestamp()
        seconds = max(0, int(self.kernel.clock.now() - boot))
        return [
            f"Zeroframe uptime: {format_uptime(seconds)}",
            f"Boot time: {metrics.boot_time}",
            f"Last syscall: {metrics.last_syscall_time or 'N/A'}",
        ]

    def _syscalls(self, args: List[str]) -> List[str]:
        metrics = self.api.get_metrics()
        output = [f"Total syscalls: {metrics.total_syscalls}", "", "Syscall breakdown:"]
        entries = sorted(metrics.syscalls_by_name.items(), key=lambda kv: -kv[1])
        if not entries:
            output.append("  (no syscalls recorded yet)")
        for name, count in entries:
            output.append(f"  {name:<25} {count}")
        return output

    def _ps(self, args: List[str]) -> List[str]:
        what = args[0].lower() if args else None
        processes = self.api.list_processes()
        if what == "jobs":
            processes = [p for p in processes if p.type == ProcessType.JOB]
        elif what == "services":
            processes = [p for p in processes if p.type == ProcessType.SERVICE]

        output = ["PID                TYPE     STATUS    CPU%  MEM   NAME", "-" * 70]
        for p in processes:
            output.append(
                f"{p.pid:<18} {p.type.value:<8} {p.status.value:<9} "
                f"{str(p.cpu_usage) + '%':<5} {p.mem_usage:<5} {p.name}"
            )
        if not processes:
            output.append("(no processes found)")
        return output

    def _jobs(self, args: List[str]) -> List[str]:
        jobs = self.api.list_jobs()
        output = ["JOB ID              NAME                     STATUS      WORKSPACE", "-" * 70]
        for j in jobs:
            output.append(f"{j.id[:18]:<20} {j.name[:24]:<25} {j.status.value:<11} {j.workspace.value}")
        if not jobs:
            output.append("(no jobs)")
        return output

    def _ls(self, args: List[str]) -> List[str]:
        path = args[0] if args else "/"
        node = self.api.list_vfs_path(path)
        if node is None:
            return [f"ls: {path}: No such file or directory"]
        if node.type != VfsNodeType.DIR:
            return [f"{path} ({node.type.value})"]
        output = [f"Contents of {path}:", ""]
        output += [f"  {child}" for child in node.children or []] or ["  (empty directory)"]
        return output

    def _cat(self, args: List[str]) -> List[str]:
        if not args:
            return ["cat: missing file operand", "Usage: cat <path>"]
        content = self.api.read_vfs_file(args[0])
        if content is None:
            return [f"cat: {args[0]}: No such file or directory"]
        if content == "":
            return ["(empty)"]
        return content.split("\n")

    def _submit(self, args: List[str]) -> List[str]:
        if not args:
            return ["submit: missing job name", "Usage: submit <name> [type]"]
        job_type = args[1].upper() if len(args) > 1 else JobType.BATCH.value
        job = self.api.submit_job(name=args[0], type=job_type)
        return [f"Submitted {job.id} ({job.name}, {job.type.value})"]

    def _tick(self, args: List[str]) -> List[str]:
        job = self.api.run_worker_tick()
        if job is None:
            return ["Worker tick: no jobs to process"]
        return [f"Worker tick: {job.id} ({job.name}) is RUNNING"]

    def _wait(self, args: List[str]) -> List[str]:
        try:
            seconds = float(args[0]) if args else self.wait_seconds
        except ValueError:
            return [f"wait: invalid number '{args[0]}'"]
        fired = wait_for_jobs(self.kernel, seconds)
        return [f"{fired} completion(s) processed"]

    def _snapshot(self, args: List[str]) -> List[str]:
        snapshot = self.api.create_snapshot(" ".join(args) or None)
        return [f"Snapshot {snapshot.id} ({snapshot.label}) created"]

    def _restore(self, args: List[str]) -> List[str]:
        if not args:
            return ["restore: missing snapshot id", "Usage: restore <id>"]
        snapshot = self.api.restore_snapshot(args[0])
        return [f"Snapshot {snapshot.id} ({snapshot.label}) restored"]

    def _whoami(self, args: List[str]) -> List[str]:
        user = self.api.whoami()
        workspace = self.api.workspace()
        return [
            f"{user.name} ({user.id}) role={user.role.value}",
            f"org={self.kernel.store.active_org_id} workspace={workspace.value}",
        ]

    def _panic(self, args: List[str]) -> List[str]:
        self.api.log_app_audit(
            "CONSOLE_PANIC_TRIGGERED", ResourceType.SYSTEM_APP,
            details="Kernel panic triggered from console",
        )
        self.kernel.panic("Panic command from console")
        return ["Triggering kernel panic...", "WARNING: This will halt the system!"]

    def _reboot(self, args: List[str]) -> List[str]:
        self.kernel.reboot()
        return ["Kernel rebooted"]

    def _run(self, args: List[str]) -> List[str]:
        if args and args[0] == "demo":
            return run_demo(self.kernel, self.api)
        return [f"run: unknown scenario '{args[0] if args else ''}'", "Available: run demo"]

    def _exit(self, args: List[str]) -> List[str]:
        self.finished = True
        return ["Bye"]
