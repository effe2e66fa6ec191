"""Compile blackhole targets into concrete ``iptables`` rules."""

from __future__ import annotations

import re

from aumai_blackhole.errors import (
    InvalidDirectionError,
    InvalidPortError,
    InvalidProtocolError,
    MissingTargetFieldsError,
)
from aumai_blackhole.models import (
    Chain,
    CompiledRule,
    Direction,
    FaultSpec,
    Protocol,
    Target,
)
from aumai_blackhole.resolver import HostResolver

PORT_PATTERN = re.compile(r"\d+(:\d+)?", re.ASCII)

_CHAINS_FOR_DIRECTION: dict[Direction, tuple[Chain, ...]] = {
    Direction.INPUT: (Chain.INPUT,),
    Direction.OUTPUT: (Chain.OUTPUT,),
    Direction.BOTH: (Chain.INPUT, Chain.OUTPUT),
}


def normalize_direction(value: str | None) -> Direction:
    """Map a case-insensitive direction (blank meaning BOTH) to :class:`Direction`."""
    text = (value or "").upper()
    if not text:
        return Direction.BOTH
    try:
        return Direction(text)
    except ValueError:
        raise InvalidDirectionError(value or "") from None


def normalize_protocol(value: str | None) -> Protocol:
    """Map a case-insensitive protocol (blank meaning all) to :class:`Protocol`."""
    text = (value or "").lower()
    if not text:
        return Protocol.all
    try:
        return Protocol(text)
    except ValueError:
        raise InvalidProtocolError(value or "") from None


def validate_ports(value: str | None, kind: str) -> str | None:
    """Return *value* if it is a valid port-spec, ``None`` if blank.

    Raises:
        InvalidPortError: for anything but ``N`` or ``LOW:HIGH``.
    """
    if not value:
        return None
    if PORT_PATTERN.fullmatch(value) is None:
        raise InvalidPortError(kind, value)
    return value


class RuleCompiler:
    """Validate targets and expand them into ordered :class:`CompiledRule` lists.

    INPUT rules match the source address, OUTPUT rules the destination.
    When a target covers both directions the INPUT rule comes first.
    """

    def __init__(self, resolver: HostResolver) -> None:
        self._resolver = resolver

    def compile(self, spec: FaultSpec) -> list[CompiledRule]:
        """Compile every target of *spec*, in order.

        Either the whole rule list is returned or an error is raised; no
        partial list escapes.
        """
        rules: list[CompiledRule] = []
        for target in spec.targets:
            rules.extend(self.compile_target(target))
        return rules

    def compile_target(self, target: Target) -> list[CompiledRule]:
        """Compile a single target into one rule per applicable chain."""
        if not (target.host or target.dst_ports or target.src_ports):
            raise MissingTargetFieldsError()

        direction = normalize_direction(target.direction)
        protocol = normalize_protocol(target.protocol)
        dst_ports = validate_ports(target.dst_ports, "destination")
        src_ports = validate_ports(target.src_ports, "source")

        hosts: tuple[str, ...] = ()
        if target.host:
            hosts = self._resolver.resolve(target.host)

        return [
            CompiledRule(
                chain=chain,
                hosts=hosts,
                protocol=protocol,
                dst_ports=dst_ports,
                src_ports=src_ports,
            )
            for chain in _CHAINS_FOR_DIRECTION[direction]
        ]


__all__ = [
    "PORT_PATTERN",
    "RuleCompiler",
    "normalize_direction",
    "normalize_protocol",
    "validate_ports",
]
