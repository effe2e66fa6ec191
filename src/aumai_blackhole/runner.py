"""External command execution for aumai-blackhole.

Both host resolution (``dig``) and firewall mutation (``iptables``) shell
out through a :class:`CommandRunner`.  Tests substitute a recording fake;
the CLI uses :class:`SubprocessRunner`, optionally wrapped in
:class:`DryRunRunner`.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from aumai_blackhole.errors import CommandExecutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Captured output of one external command."""

    name: str
    args: tuple[str, ...]
    stdout: str = ""
    stderr: str = ""
    exit_status: int = 0

    def raise_for_status(self) -> None:
        """Raise :class:`CommandExecutionError` if the command exited non-zero."""
        if self.exit_status != 0:
            raise CommandExecutionError(
                self.name, self.args, self.exit_status, self.stderr
            )


class CommandRunner(Protocol):
    """Anything that can run an external command and capture its output."""

    def run(self, name: str, *args: str) -> CommandResult:
        """Run *name* with *args*.

        Raises:
            CommandExecutionError: if the command cannot be run or exits
                non-zero.
        """
        ...


class SubprocessRunner:
    """Run commands on the local host via :func:`subprocess.run`."""

    def __init__(self, timeout_seconds: float | None = None) -> None:
        self._timeout_seconds = timeout_seconds

    def run(self, name: str, *args: str) -> CommandResult:
        logger.debug("Running %s %s", name, " ".join(args))
        try:
            completed = subprocess.run(  # noqa: S603
                [name, *args],
                capture_output=True,
                text=True,
                check=False,
                timeout=self._timeout_seconds,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise CommandExecutionError(name, args, stderr=str(exc)) from exc

        result = CommandResult(
            name=name,
            args=tuple(args),
            stdout=completed.stdout,
            stderr=completed.stderr,
            exit_status=completed.returncode,
        )
        result.raise_for_status()
        return result


class DryRunRunner:
    """Log commands instead of running them.

    Commands named in *passthrough* (``dig`` by default) are read-only and
    are still delegated so that host names resolve as they would for real.
    """

    def __init__(
        self,
        delegate: CommandRunner,
        passthrough: Iterable[str] = ("dig",),
    ) -> None:
        self._delegate = delegate
        self._passthrough = frozenset(passthrough)
        self._skipped: list[CommandResult] = []

    @property
    def skipped(self) -> list[CommandResult]:
        """Commands that were logged but not run, in call order."""
        return list(self._skipped)

    def run(self, name: str, *args: str) -> CommandResult:
        if name in self._passthrough:
            return self._delegate.run(name, *args)
        logger.info("[dry-run] %s %s", name, " ".join(args))
        result = CommandResult(name=name, args=tuple(args))
        self._skipped.append(result)
        return result


__all__ = ["CommandResult", "CommandRunner", "DryRunRunner", "SubprocessRunner"]
