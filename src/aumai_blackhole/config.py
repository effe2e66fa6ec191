"""Runtime settings for aumai-blackhole.

The CLI fills :class:`BlackholeSettings` from its options, which also read
the ``AUMAI_BLACKHOLE_*`` environment variables named here.
"""

from __future__ import annotations

from pydantic import BaseModel

from aumai_blackhole.runner import CommandRunner, DryRunRunner, SubprocessRunner

ENV_IPTABLES = "AUMAI_BLACKHOLE_IPTABLES"
ENV_DIG = "AUMAI_BLACKHOLE_DIG"
ENV_DRY_RUN = "AUMAI_BLACKHOLE_DRY_RUN"


class BlackholeSettings(BaseModel):
    """Which binaries to call and whether to touch the firewall at all."""

    iptables_binary: str = "iptables"
    dig_binary: str = "dig"
    dry_run: bool = False


def build_runner(settings: BlackholeSettings) -> CommandRunner:
    """Return the command runner *settings* call for."""
    runner: CommandRunner = SubprocessRunner()
    if settings.dry_run:
        runner = DryRunRunner(runner, passthrough=(settings.dig_binary,))
    return runner


__all__ = ["BlackholeSettings", "build_runner"]
