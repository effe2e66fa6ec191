"""Blackhole task lifecycle: apply, wait, revert."""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime

from aumai_blackhole.compiler import RuleCompiler
from aumai_blackhole.errors import BlackholeError
from aumai_blackhole.executor import RuleExecutor
from aumai_blackhole.models import (
    CompiledRule,
    FaultSpec,
    TaskPhase,
    TaskRun,
    WaitOutcome,
    parse_duration,
)
from aumai_blackhole.observer import TaskObserver
from aumai_blackhole.resolver import HostResolver
from aumai_blackhole.runner import CommandRunner

logger = logging.getLogger(__name__)


class BlackholeTask:
    """Install DROP rules for a :class:`FaultSpec`, hold them, then remove them.

    ``execute`` runs the whole lifecycle.  The phases are also exposed on
    their own (``apply``, ``wait``, ``revert``) for callers that control
    the waiting themselves, such as :func:`aumai_blackhole.decorators.blackhole`.

    Failure policy is not transactional: if applying rule *k* fails, rules
    before it stay installed; if reverting rule *k* fails, rules after it
    stay installed.  Cleaning up is left to the caller.

    The firewall table is shared by the whole host.  Running two tasks
    with overlapping targets at the same time is not supported.
    """

    def __init__(
        self,
        runner: CommandRunner,
        spec: FaultSpec,
        *,
        dig_binary: str = "dig",
        iptables_binary: str = "iptables",
    ) -> None:
        self._spec = spec
        self._compiler = RuleCompiler(HostResolver(runner, dig_binary))
        self._executor = RuleExecutor(runner, iptables_binary)
        self._observer = TaskObserver()
        self._run = TaskRun(spec=spec)

    @property
    def run(self) -> TaskRun:
        """The record of the current (or most recent) invocation."""
        return self._run

    # ------------------------------------------------------------------
    # Full lifecycle
    # ------------------------------------------------------------------

    def execute(self, stop_event: threading.Event | None = None) -> TaskRun:
        """Apply every rule, wait for the timeout or *stop_event*, revert every rule.

        Args:
            stop_event: Cancellation signal.  Without a timeout in the spec
                the task waits for this event alone, possibly forever.

        Returns:
            The finished :class:`TaskRun` with phase ``done``.

        Raises:
            ValidationError: if the timeout or a target is malformed.
            ResolutionError: if a host cannot be resolved.
            CommandError: if applying or reverting a rule fails.
        """
        self._observer = TaskObserver()
        self._run = TaskRun(spec=self._spec, start_time=datetime.now(tz=UTC))
        try:
            parse_duration(self._spec.timeout)
        except BlackholeError as exc:
            self._fail(exc)
            raise

        self.apply()
        self.wait(stop_event)
        return self.revert()

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def apply(self) -> list[CompiledRule]:
        """Compile the spec, then append every rule in order.

        Nothing is applied if compilation fails.  Starts a fresh
        :class:`TaskRun`.
        """
        self._observer = TaskObserver()
        self._run = TaskRun(
            spec=self._spec,
            phase=TaskPhase.applying,
            start_time=datetime.now(tz=UTC),
        )
        logger.info("Applying blackhole with %d target(s)", len(self._spec.targets))

        self._observer.phase_entered(TaskPhase.applying, targets=len(self._spec.targets))

        try:
            rules = self._compiler.compile(self._spec)
            self._run.rules = list(rules)
            self._observer.rules_compiled(rules)

            for rule in rules:
                self._executor.apply(rule)
                self._run.applied_rules.append(rule)
                self._observer.rule_applied(rule)
                logger.info("Applied rule %s", rule)
        except BlackholeError as exc:
            self._fail(exc)
            raise

        return list(rules)

    def wait(self, stop_event: threading.Event | None = None) -> WaitOutcome:
        """Block until the spec's timeout elapses or *stop_event* is set.

        Whichever happens first ends the wait.
        """
        self._require_phase(TaskPhase.applying)
        timeout_seconds = parse_duration(self._spec.timeout)
        event = stop_event if stop_event is not None else threading.Event()

        self._run.phase = TaskPhase.waiting
        if timeout_seconds is None:
            logger.info("Waiting for cancellation")
        else:
            logger.info("Waiting up to %.3fs or until cancelled", timeout_seconds)
        self._observer.phase_entered(TaskPhase.waiting, timeout_seconds=timeout_seconds)

        if event.wait(timeout_seconds):
            outcome = WaitOutcome.cancelled
        else:
            outcome = WaitOutcome.timeout

        self._run.wait_outcome = outcome
        self._observer.wait_ended(outcome)
        logger.info("Wait ended: %s", outcome.value)
        return outcome

    def revert(self) -> TaskRun:
        """Delete every applied rule, in the order they were applied."""
        self._require_phase(TaskPhase.applying, TaskPhase.waiting)
        self._run.phase = TaskPhase.reverting
        logger.info("Reverting %d rule(s)", len(self._run.applied_rules))

        self._observer.phase_entered(TaskPhase.reverting, rules=len(self._run.applied_rules))

        try:
            for rule in list(self._run.applied_rules):
                self._executor.revert(rule)
                self._run.reverted_rules.append(rule)
                self._observer.rule_reverted(rule)
                logger.info("Reverted rule %s", rule)
        except BlackholeError as exc:
            self._fail(exc)
            raise

        self._finish(TaskPhase.done)
        return self._run

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_phase(self, *phases: TaskPhase) -> None:
        if self._run.phase not in phases:
            allowed = ", ".join(p.value for p in phases)
            raise RuntimeError(
                f"Task is in phase '{self._run.phase.value}', expected one of: {allowed}"
            )

    def _fail(self, exc: BlackholeError) -> None:
        logger.error("Blackhole failed while %s: %s", self._run.phase.value, exc)
        self._run.error = str(exc)
        self._finish(
            TaskPhase.failed,
            failed_during=self._run.phase.value,
            exception_type=type(exc).__name__,
            message=str(exc),
        )

    def _finish(self, phase: TaskPhase, **details: object) -> None:
        self._observer.phase_entered(phase, **details)
        self._run.phase = phase
        self._run.end_time = datetime.now(tz=UTC)
        self._run.observations = self._observer.snapshot()


__all__ = ["BlackholeTask"]
