"""CLI entry point for aumai-blackhole."""

from __future__ import annotations

import json
import logging
import signal
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click
import yaml

from aumai_blackhole import __version__
from aumai_blackhole.compiler import RuleCompiler
from aumai_blackhole.config import (
    ENV_DIG,
    ENV_DRY_RUN,
    ENV_IPTABLES,
    BlackholeSettings,
    build_runner,
)
from aumai_blackhole.errors import BlackholeError
from aumai_blackhole.models import FaultSpec, Target, TaskRun
from aumai_blackhole.resolver import HostResolver
from aumai_blackhole.task import BlackholeTask

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_spec(path: str) -> FaultSpec:
    """Load a :class:`FaultSpec` from a YAML or JSON file."""
    file_path = Path(path)
    raw = file_path.read_text(encoding="utf-8")
    if file_path.suffix in (".yaml", ".yml"):
        data: dict[str, Any] = yaml.safe_load(raw) or {}
    else:
        data = json.loads(raw)
    return FaultSpec.model_validate(data)


def _load_spec_or_exit(path: str) -> FaultSpec:
    try:
        return _load_spec(path)
    except Exception as exc:
        click.echo(f"Error loading fault spec: {exc}", err=True)
        sys.exit(1)


@contextmanager
def _cancel_on_signals(stop_event: threading.Event) -> Iterator[None]:
    """Set *stop_event* on SIGINT/SIGTERM while the block runs."""

    def _handler(signum: int, frame: object) -> None:
        click.echo(f"Received {signal.Signals(signum).name}, cancelling...", err=True)
        stop_event.set()

    previous = {
        sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def _execute(settings: BlackholeSettings, spec: FaultSpec, json_output: bool) -> None:
    task = BlackholeTask(
        build_runner(settings),
        spec,
        dig_binary=settings.dig_binary,
        iptables_binary=settings.iptables_binary,
    )
    timeout = spec.timeout or "until cancelled"
    click.echo(f"Blackholing {len(spec.targets)} target(s) ({timeout})...")

    stop_event = threading.Event()
    try:
        with _cancel_on_signals(stop_event):
            result = task.execute(stop_event)
    except BlackholeError as exc:
        click.echo(f"Blackhole failed: {exc}", err=True)
        _echo_run(task.run, json_output, err=True)
        sys.exit(1)

    _echo_run(result, json_output)


def _echo_run(run: TaskRun, json_output: bool, err: bool = False) -> None:
    if json_output:
        click.echo(run.model_dump_json(indent=2), err=err)
        return

    click.echo(f"\nPhase     : {run.phase.value}", err=err)
    click.echo(f"Start     : {run.start_time.isoformat() if run.start_time else 'n/a'}", err=err)
    click.echo(f"End       : {run.end_time.isoformat() if run.end_time else 'n/a'}", err=err)
    if run.wait_outcome is not None:
        click.echo(f"Ended by  : {run.wait_outcome.value}", err=err)
    click.echo(f"Applied   : {len(run.applied_rules)}/{len(run.rules)}", err=err)
    click.echo(f"Reverted  : {len(run.reverted_rules)}/{len(run.applied_rules)}", err=err)
    for rule in run.applied_rules:
        if rule not in run.reverted_rules:
            click.echo(f"  still installed: {rule}", err=err)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Log every command that is run.")
@click.option(
    "--dry-run",
    is_flag=True,
    envvar=ENV_DRY_RUN,
    help="Log iptables commands instead of running them.",
)
@click.option(
    "--iptables-bin",
    default="iptables",
    show_default=True,
    envvar=ENV_IPTABLES,
    help="iptables executable.",
)
@click.option(
    "--dig-bin",
    default="dig",
    show_default=True,
    envvar=ENV_DIG,
    help="dig executable used to resolve host names.",
)
@click.pass_context
def main(
    ctx: click.Context,
    verbose: bool,
    dry_run: bool,
    iptables_bin: str,
    dig_bin: str,
) -> None:
    """AumAI Blackhole: drop network traffic to simulate outages."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.obj = BlackholeSettings(
        iptables_binary=iptables_bin,
        dig_binary=dig_bin,
        dry_run=dry_run,
    )


@main.command("run")
@click.option(
    "--spec",
    "spec_path",
    required=True,
    metavar="PATH",
    help="Path to a fault spec (YAML or JSON).",
)
@click.option("--json-output", is_flag=True, help="Emit the task run as JSON.")
@click.pass_obj
def run_command(settings: BlackholeSettings, spec_path: str, json_output: bool) -> None:
    """Apply a fault spec, hold it until timeout or Ctrl-C, then revert it."""
    spec = _load_spec_or_exit(spec_path)
    _execute(settings, spec, json_output)


@main.command("block")
@click.option("--host", default=None, help="Address, CIDR block or host name.")
@click.option(
    "--direction",
    default="BOTH",
    show_default=True,
    type=click.Choice(["INPUT", "OUTPUT", "BOTH"], case_sensitive=False),
)
@click.option(
    "--protocol",
    default="all",
    show_default=True,
    type=click.Choice(["tcp", "udp", "icmp", "all"], case_sensitive=False),
)
@click.option("--dst-ports", default=None, help="Port or LOW:HIGH range.")
@click.option("--src-ports", default=None, help="Port or LOW:HIGH range.")
@click.option("--timeout", default=None, help="Duration such as 30s, 5m or 1h.")
@click.option("--json-output", is_flag=True, help="Emit the task run as JSON.")
@click.pass_obj
def block_command(
    settings: BlackholeSettings,
    host: str | None,
    direction: str,
    protocol: str,
    dst_ports: str | None,
    src_ports: str | None,
    timeout: str | None,
    json_output: bool,
) -> None:
    """Blackhole a single target given on the command line."""
    target = Target(
        host=host,
        direction=direction,
        protocol=protocol,
        dst_ports=dst_ports,
        src_ports=src_ports,
    )
    _execute(settings, FaultSpec(timeout=timeout, targets=(target,)), json_output)


@main.command("compile")
@click.option(
    "--spec",
    "spec_path",
    required=True,
    metavar="PATH",
    help="Path to a fault spec (YAML or JSON).",
)
@click.option("--json-output", is_flag=True, help="Emit the rules as JSON.")
@click.pass_obj
def compile_command(settings: BlackholeSettings, spec_path: str, json_output: bool) -> None:
    """Print the iptables rules a fault spec compiles to, without applying them."""
    spec = _load_spec_or_exit(spec_path)
    compiler = RuleCompiler(HostResolver(build_runner(settings), settings.dig_binary))
    try:
        rules = compiler.compile(spec)
    except BlackholeError as exc:
        click.echo(f"Compilation failed: {exc}", err=True)
        sys.exit(1)

    if json_output:
        click.echo(json.dumps([r.model_dump(mode="json") for r in rules], indent=2))
        return
    for rule in rules:
        click.echo(f"{settings.iptables_binary} -A {rule}")


if __name__ == "__main__":
    main()
