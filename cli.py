# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""Zeroframe CLI - Command Line Interface for the Zeroframe kernel"""

import json
import logging
import sys
from pathlib import Path

import click

# Force UTF-8 encoding for Windows
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")

from zeroframe.core.config import load_config, set_config
from zeroframe.core.exceptions import ZeroframeError
from zeroframe.core.logger import setup_logging
from zeroframe.kernel import CommandConsole, Kernel, run_demo
from zeroframe.kernel.console import wait_for_jobs
from zeroframe.kernel.types import to_dict

logger = logging.getLogger("zeroframe.cli")


def _boot(ctx: click.Context, user: str = None, org: str = None, workspace: str = None) -> Kernel:
    """Build a kernel from the loaded config and apply session overrides"""
    try:
        kernel = Kernel.from_config(ctx.obj["config"])
        if org:
            kernel.set_active_org(org)
        if workspace:
            kernel.set_active_workspace(workspace)
        if user:
            kernel.set_active_user(user)
    except ZeroframeError as e:
        click.echo(f"[-] {e}", err=True)
        sys.exit(1)
    return kernel


@click.group()
@click.version_option(version="1.0.0")
@click.option("--config", "-c", "config_file", type=click.Path(exists=True, path_type=Path),
              help="Explicit config file (overrides ~/.zeroframe/config.yaml and .zeroframe.yaml)")
@click.option("--log-level", "-l", default=None, help="Override log level")
@click.pass_context
def cli(ctx: click.Context, config_file: Path, log_level: str):
    """Zeroframe - capability-gated microkernel for job workspaces.

    Core commands:
        zeroframe console   - Interactive command console
        zeroframe invoke    - One-shot syscall as any app
        zeroframe caps      - Show the app capability table
        zeroframe demo      - Run the end-to-end demo scenario
    """
    try:
        config = load_config(config_file)
    except ZeroframeError as e:
        click.echo(f"[-] {e}", err=True)
        sys.exit(1)
    set_config(config)

    setup_logging(
        level=log_level or config.observability.log_level,
        log_file=config.observability.log_file,
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# =============================================================================
# Console
# =============================================================================

@cli.command()
@click.option("--user", "-u", help="Active user id")
@click.option("--org", help="Active org id")
@click.option("--workspace", "-w", help="Active workspace (DEV, UAT, PROD)")
@click.pass_context
def console(ctx: click.Context, user: str, org: str, workspace: str):
    """Interactive command console.

    Every command runs through the kernel as the 'console' app.
    Type 'help' inside the console for the command list.
    """
    kernel = _boot(ctx, user, org, workspace)
    shell = CommandConsole(kernel)

    click.echo("Zeroframe Command Console")
    click.echo('Type "help" for available commands')
    click.echo("")

    while not shell.finished:
        try:
            line = click.prompt(shell.prompt.rstrip(), prompt_suffix=" ", default="",
                                show_default=False)
        except (EOFError, click.Abort):
            click.echo("")
            break
        kernel.run_pending()
        for out in shell.execute(line):
            click.echo(out)


# =============================================================================
# One-shot commands
# =============================================================================

@cli.command()
@click.argument("app_id")
@click.argument("syscall")
@click.option("--args", "-a", "args_json", default=None, help="Syscall args as JSON object")
@click.option("--user", "-u", help="Active user id")
@click.option("--org", help="Active org id")
@click.option("--workspace", "-w", help="Active workspace (DEV, UAT, PROD)")
@click.pass_context
def invoke(ctx: click.Context, app_id: str, syscall: str, args_json: str,
           user: str, org: str, workspace: str):
    """Dispatch one syscall as APP_ID and print the result as JSON.

    Examples:
        zeroframe invoke jobs jobs.list
        zeroframe invoke jobs jobs.submit -a '{"name": "nightly", "type": "BATCH"}'
        zeroframe invoke dashboard jobs.submit      # FORBIDDEN_CALLER
    """
    args = None
    if args_json:
        try:
            args = json.loads(args_json)
        except json.JSONDecodeError as e:
            click.echo(f"[-] Invalid --args JSON: {e}", err=True)
            sys.exit(2)

    kernel = _boot(ctx, user, org, workspace)
    result = kernel.invoke(app_id, syscall, args)

    if result.ok:
        click.echo(json.dumps({"ok": True, "value": to_dict(result.value)}, indent=2, default=str))
    else:
        click.echo(json.dumps({"ok": False, "error": result.error.to_dict()}, indent=2, default=str))
        sys.exit(1)


@cli.command()
@click.argument("app_id", required=False)
@click.pass_context
def caps(ctx: click.Context, app_id: str):
    """Show the app capability table (or one app's grants)."""
    kernel = _boot(ctx)
    descriptors = kernel.registry.descriptors()
    if app_id:
        descriptors = [d for d in descriptors if d.app_id == app_id]
        if not descriptors:
            click.echo(f"[-] Unknown app: {app_id}", err=True)
            sys.exit(1)

    for descriptor in descriptors:
        click.echo(click.style(descriptor.app_id, bold=True))
        for syscall in sorted(s.value for s in descriptor.allowed_syscalls):
            click.echo(f"    {syscall}")
        if descriptor.allowed_workspaces is not None:
            workspaces = ", ".join(sorted(w.value for w in descriptor.allowed_workspaces))
            click.echo(f"    workspaces: {workspaces}")


@cli.command()
@click.option("--wait/--no-wait", default=True, help="Wait for simulated jobs to finish")
@click.pass_context
def demo(ctx: click.Context, wait: bool):
    """Run the end-to-end demo scenario and print the audit trail."""
    kernel = _boot(ctx)
    api = kernel.app("console")

    try:
        for line in run_demo(kernel, api):
            click.echo(line)
        if wait:
            delay = kernel.config.job_completion_delay_s
            wait_for_jobs(kernel, delay)
            api.run_worker_tick()
            wait_for_jobs(kernel, delay)
        entries = kernel.app("audit").list_audit()
    except ZeroframeError as e:
        click.echo(f"[-] Demo failed: {e}", err=True)
        sys.exit(1)

    click.echo("")
    click.echo("=" * 60)
    click.echo("Audit Trail")
    click.echo("=" * 60)
    for entry in entries:
        click.echo(f"{entry.timestamp}  {entry.action:<22} {entry.resource_type.value:<10} "
                   f"{entry.resource_id or '-'}")


@cli.command("version")
def show_version():
    """Show Zeroframe version."""
    click.echo("Zeroframe kernel v1.0.0")
    click.echo("License: BSL 1.1 (converts to Apache 2.0 on 2028-11-05)")


if __name__ == "__main__":
    cli()
