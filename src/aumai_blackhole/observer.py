"""Event trail for blackhole task runs."""

from __future__ import annotations

import threading
from collections.abc import Sequence
from datetime import UTC, datetime

from aumai_blackhole.models import (
    CompiledRule,
    ObservationPoint,
    TaskPhase,
    WaitOutcome,
)


class TaskObserver:
    """Record, in order, what one blackhole run did to the firewall.

    Events are phase transitions (``event`` is the phase name), the
    compiled rule list, every applied or reverted rule and the outcome of
    the wait.  Reads and writes share a lock so a run can be inspected
    from the thread that will cancel it.
    """

    def __init__(self) -> None:
        self._observations: list[ObservationPoint] = []
        self._lock = threading.Lock()

    def phase_entered(self, phase: TaskPhase, **details: object) -> None:
        self._record("lifecycle", phase.value, details)

    def rules_compiled(self, rules: Sequence[CompiledRule]) -> None:
        self._record("compiler", "compiled", {"rules": [str(r) for r in rules]})

    def rule_applied(self, rule: CompiledRule) -> None:
        self._record("executor", "rule_applied", _rule_details(rule))

    def rule_reverted(self, rule: CompiledRule) -> None:
        self._record("executor", "rule_reverted", _rule_details(rule))

    def wait_ended(self, outcome: WaitOutcome) -> None:
        self._record("lifecycle", "wait_ended", {"outcome": outcome.value})

    def snapshot(self) -> list[ObservationPoint]:
        """Return a copy of the events recorded so far."""
        with self._lock:
            return list(self._observations)

    def _record(self, component: str, event: str, details: dict[str, object]) -> None:
        point = ObservationPoint(
            timestamp=datetime.now(tz=UTC),
            component=component,
            event=event,
            details=details,
        )
        with self._lock:
            self._observations.append(point)


def _rule_details(rule: CompiledRule) -> dict[str, object]:
    return {"chain": rule.chain.value, "rule": str(rule)}


__all__ = ["TaskObserver"]
