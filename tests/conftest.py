"""Shared pytest fixtures for aumai-blackhole test suite."""

from __future__ import annotations

import pytest

from aumai_blackhole.compiler import RuleCompiler
from aumai_blackhole.errors import CommandExecutionError
from aumai_blackhole.executor import RuleExecutor
from aumai_blackhole.models import FaultSpec, Target
from aumai_blackhole.resolver import HostResolver
from aumai_blackhole.runner import CommandResult

# ---------------------------------------------------------------------------
# Fake command runner
# ---------------------------------------------------------------------------


class FakeRunner:
    """Record every command and script ``dig`` output and failures.

    Args:
        dig_output:   Host name -> stdout returned by ``dig +short``.
        fail_apply:   1-indexed ``iptables -A`` call that fails.
        fail_revert:  1-indexed ``iptables -D`` call that fails.
        fail_dig:     Make every ``dig`` call fail.
    """

    def __init__(
        self,
        dig_output: dict[str, str] | None = None,
        fail_apply: int | None = None,
        fail_revert: int | None = None,
        fail_dig: bool = False,
    ) -> None:
        self.dig_output = dig_output or {}
        self.fail_apply = fail_apply
        self.fail_revert = fail_revert
        self.fail_dig = fail_dig
        self.calls: list[tuple[str, tuple[str, ...]]] = []
        self._counts: dict[str, int] = {"-A": 0, "-D": 0}

    def run(self, name: str, *args: str) -> CommandResult:
        self.calls.append((name, args))
        if args[:1] == ("+short",):
            if self.fail_dig:
                raise CommandExecutionError(name, args, 9, "connection timed out")
            return CommandResult(name, args, stdout=self.dig_output.get(args[-1], ""))

        action = args[0]
        self._counts[action] = self._counts.get(action, 0) + 1
        failing = {"-A": self.fail_apply, "-D": self.fail_revert}.get(action)
        if failing is not None and self._counts[action] == failing:
            raise CommandExecutionError(name, args, 1, "iptables: Bad rule")
        return CommandResult(name, args)

    def iptables(self, action: str) -> list[str]:
        """Rule strings passed to ``iptables <action>``, in call order."""
        return [
            " ".join(args[1:])
            for _, args in self.calls
            if args[:1] == (action,)
        ]

    @property
    def applied(self) -> list[str]:
        return self.iptables("-A")

    @property
    def reverted(self) -> list[str]:
        return self.iptables("-D")

    @property
    def dig_calls(self) -> list[tuple[str, ...]]:
        return [args for _, args in self.calls if args[:1] == ("+short",)]


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_runner() -> FakeRunner:
    """A FakeRunner that resolves ``db.internal`` to two addresses."""
    return FakeRunner(dig_output={"db.internal": "10.1.0.7\n10.1.0.8\n"})


@pytest.fixture()
def resolver(fake_runner: FakeRunner) -> HostResolver:
    return HostResolver(fake_runner)


@pytest.fixture()
def compiler(resolver: HostResolver) -> RuleCompiler:
    return RuleCompiler(resolver)


@pytest.fixture()
def executor(fake_runner: FakeRunner) -> RuleExecutor:
    return RuleExecutor(fake_runner)


# ---------------------------------------------------------------------------
# FaultSpec fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def two_target_spec() -> FaultSpec:
    """Four rules: both chains for a host, both chains for a port."""
    return FaultSpec(
        timeout="10s",
        targets=(
            Target(host="10.0.0.5"),
            Target(dst_ports="8080", protocol="tcp"),
        ),
    )


@pytest.fixture()
def short_timeout_spec() -> FaultSpec:
    """Two rules held for 10 ms."""
    return FaultSpec(timeout="10ms", targets=(Target(host="10.0.0.5"),))


@pytest.fixture()
def runner_factory() -> type[FakeRunner]:
    """The FakeRunner class, for tests that script their own failures."""
    return FakeRunner
