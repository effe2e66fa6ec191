"""Pydantic models for aumai-blackhole."""

from __future__ import annotations

import re
import threading
from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from aumai_blackhole.errors import InvalidTimeoutError

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Direction(str, Enum):
    """Which traffic a target blocks."""

    INPUT = "INPUT"
    OUTPUT = "OUTPUT"
    BOTH = "BOTH"


class Protocol(str, Enum):
    """Protocols accepted by ``iptables -p``."""

    tcp = "tcp"
    udp = "udp"
    icmp = "icmp"
    all = "all"


class Chain(str, Enum):
    """Built-in filter chain a compiled rule is appended to."""

    INPUT = "INPUT"
    OUTPUT = "OUTPUT"


class RuleAction(str, Enum):
    """Leading ``iptables`` action token."""

    append = "-A"
    delete = "-D"


class TaskPhase(str, Enum):
    """Lifecycle state of one blackhole invocation."""

    idle = "idle"
    applying = "applying"
    waiting = "waiting"
    reverting = "reverting"
    done = "done"
    failed = "failed"


class WaitOutcome(str, Enum):
    """Which signal ended the waiting phase."""

    timeout = "timeout"
    cancelled = "cancelled"


# ---------------------------------------------------------------------------
# Fault specification
# ---------------------------------------------------------------------------


class Target(BaseModel):
    """One thing to blackhole.

    At least one of ``host``, ``dst_ports`` or ``src_ports`` must be set.
    Ports without a host block those ports for all hosts; a host without
    ports blocks all traffic to/from that host.

    ``host`` may be an address (``10.34.4.60``), an address block
    (``192.168.0.0/24``) or a domain name, which is resolved with ``dig``.
    Port-specs are a single port (``8080``) or a range (``4530:6740``).
    """

    model_config = ConfigDict(frozen=True)

    host: str | None = Field(
        default=None, validation_alias=AliasChoices("host", "Host")
    )
    direction: str | None = Field(
        default=Direction.BOTH.value,
        validation_alias=AliasChoices("direction", "Direction"),
    )
    protocol: str | None = Field(
        default=Protocol.all.value,
        validation_alias=AliasChoices("protocol", "Protocol"),
    )
    dst_ports: str | None = Field(
        default=None,
        validation_alias=AliasChoices("dst_ports", "dstPorts", "DstPorts"),
    )
    src_ports: str | None = Field(
        default=None,
        validation_alias=AliasChoices("src_ports", "srcPorts", "SrcPorts"),
    )

    @field_validator("dst_ports", "src_ports", mode="before")
    @classmethod
    def _ports_as_text(cls, value: object) -> object:
        # YAML and JSON hand single ports over as integers.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class FaultSpec(BaseModel):
    """A blackhole fault: the targets to block and how long to block them."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(default="Blackhole", validation_alias=AliasChoices("type", "Type"))
    timeout: str | None = Field(
        default=None, validation_alias=AliasChoices("timeout", "Timeout")
    )
    targets: tuple[Target, ...] = Field(
        default=(), validation_alias=AliasChoices("targets", "Targets")
    )


# ---------------------------------------------------------------------------
# Compiled rules
# ---------------------------------------------------------------------------


class CompiledRule(BaseModel):
    """A single concrete DROP rule for one chain."""

    model_config = ConfigDict(frozen=True)

    chain: Chain
    hosts: tuple[str, ...] = ()
    protocol: Protocol = Protocol.all
    dst_ports: str | None = None
    src_ports: str | None = None

    def match_args(self) -> list[str]:
        """Return the chain and match criteria as ``iptables`` arguments."""
        args = [self.chain.value]
        if self.hosts:
            flag = "-s" if self.chain == Chain.INPUT else "-d"
            args += [flag, ",".join(self.hosts)]
        args += ["-p", self.protocol.value]
        if self.dst_ports:
            args += ["-dport", self.dst_ports]
        if self.src_ports:
            args += ["-sport", self.src_ports]
        args += ["-j", "DROP"]
        return args

    def to_args(self, action: RuleAction) -> list[str]:
        """Return the full argument list for *action* on this rule."""
        return [action.value, *self.match_args()]

    def __str__(self) -> str:
        return " ".join(self.match_args())


# ---------------------------------------------------------------------------
# Run records
# ---------------------------------------------------------------------------


class ObservationPoint(BaseModel):
    """A single timestamped observation captured during a task run."""

    timestamp: datetime
    component: str
    event: str
    details: dict[str, object] = Field(default_factory=dict)


class TaskRun(BaseModel):
    """Record of one blackhole invocation."""

    spec: FaultSpec
    phase: TaskPhase = TaskPhase.idle
    rules: list[CompiledRule] = Field(default_factory=list)
    applied_rules: list[CompiledRule] = Field(default_factory=list)
    reverted_rules: list[CompiledRule] = Field(default_factory=list)
    wait_outcome: WaitOutcome | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    observations: list[ObservationPoint] = Field(default_factory=list)
    error: str | None = None


# ---------------------------------------------------------------------------
# Durations
# ---------------------------------------------------------------------------

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ms|h|m|s)", re.ASCII)
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: str | None) -> float | None:
    """Convert a duration string such as ``"1m30s"`` to seconds.

    Returns ``None`` for an empty or missing value, meaning "no timer".

    Raises:
        InvalidTimeoutError: if *value* is not a valid duration or is longer
            than a timer can wait (:data:`threading.TIMEOUT_MAX`).
    """
    if value is None or not value.strip():
        return None

    text = value.strip()
    if text == "0":
        return 0.0

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise InvalidTimeoutError(value)
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if total > threading.TIMEOUT_MAX:
        raise InvalidTimeoutError(value)
    return total


__all__ = [
    "Chain",
    "CompiledRule",
    "Direction",
    "FaultSpec",
    "ObservationPoint",
    "Protocol",
    "RuleAction",
    "Target",
    "TaskPhase",
    "TaskRun",
    "WaitOutcome",
    "parse_duration",
]
