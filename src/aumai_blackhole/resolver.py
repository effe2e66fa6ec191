"""Turn a target's host field into concrete IPv4 addresses."""

from __future__ import annotations

import logging
import re

from aumai_blackhole.errors import (
    CommandExecutionError,
    NoAddressesError,
    ResolutionError,
)
from aumai_blackhole.runner import CommandRunner

logger = logging.getLogger(__name__)

IPV4_PATTERN = re.compile(r"(\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})(/\d{0,2})?", re.ASCII)


def find_addresses(text: str) -> tuple[str, ...]:
    """Return every IPv4 address or CIDR block in *text*, in order, without repeats."""
    return tuple(dict.fromkeys(m.group(0) for m in IPV4_PATTERN.finditer(text)))


class HostResolver:
    """Resolve host strings by literal matching or ``dig +short``."""

    def __init__(self, runner: CommandRunner, dig_binary: str = "dig") -> None:
        self._runner = runner
        self._dig_binary = dig_binary

    def resolve(self, host: str) -> tuple[str, ...]:
        """Return the addresses *host* stands for.

        A host containing IPv4 literals is scanned directly, so
        ``"10.0.0.1, 10.0.0.2"`` yields both addresses without a lookup.
        Anything else is looked up with ``dig``.

        Raises:
            ResolutionError: if the lookup command fails.
            NoAddressesError: if the lookup output holds no addresses.
        """
        if IPV4_PATTERN.search(host):
            return find_addresses(host)
        return self._dig(host)

    def _dig(self, host: str) -> tuple[str, ...]:
        try:
            result = self._runner.run(self._dig_binary, "+short", host)
            result.raise_for_status()
        except CommandExecutionError as exc:
            raise ResolutionError(host, f"Resolving host name '{host}' failed: {exc}") from exc

        addresses = find_addresses(result.stdout)
        if not addresses:
            raise NoAddressesError(host)

        logger.debug("Resolved %s to %s", host, ", ".join(addresses))
        return addresses


__all__ = ["IPV4_PATTERN", "HostResolver", "find_addresses"]
