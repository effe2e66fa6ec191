"""Exception hierarchy for aumai-blackhole."""

from __future__ import annotations

from collections.abc import Sequence

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


class BlackholeError(Exception):
    """Base class for every error raised by a blackhole task."""


# ---------------------------------------------------------------------------
# Validation errors (raised before any rule is applied)
# ---------------------------------------------------------------------------


class ValidationError(BlackholeError, ValueError):
    """A fault specification or one of its targets is malformed."""


class MissingTargetFieldsError(ValidationError):
    """A target names none of host, destination ports or source ports."""

    def __init__(self) -> None:
        super().__init__(
            "Must specify at least one of host, dst_ports and/or src_ports."
        )


class InvalidDirectionError(ValidationError):
    """Direction is not one of INPUT, OUTPUT or BOTH."""

    def __init__(self, direction: str) -> None:
        super().__init__(
            f"Invalid direction '{direction}', must be one of "
            "{INPUT, OUTPUT, BOTH} or blank."
        )
        self.direction = direction


class InvalidProtocolError(ValidationError):
    """Protocol is not one of tcp, udp, icmp or all."""

    def __init__(self, protocol: str) -> None:
        super().__init__(
            f"Invalid protocol '{protocol}', must be one of "
            "{tcp, udp, icmp, all} or blank."
        )
        self.protocol = protocol


class InvalidPortError(ValidationError):
    """A port-spec is neither a single port nor a ``low:high`` range."""

    def __init__(self, kind: str, value: str) -> None:
        super().__init__(f"Invalid {kind} port specified '{value}'")
        self.kind = kind
        self.value = value


class InvalidTimeoutError(ValidationError):
    """The timeout string is not a valid duration."""

    def __init__(self, value: str) -> None:
        super().__init__(
            f"Invalid timeout '{value}', expected a duration such as "
            "'500ms', '30s', '5m' or '1h'."
        )
        self.value = value


# ---------------------------------------------------------------------------
# Resolution errors (raised during compilation, before apply)
# ---------------------------------------------------------------------------


class ResolutionError(BlackholeError):
    """Looking up a host name failed."""

    def __init__(self, host: str, message: str | None = None) -> None:
        super().__init__(message or f"Resolving host name '{host}' failed")
        self.host = host


class NoAddressesError(ResolutionError):
    """The lookup succeeded but produced no IPv4 addresses."""

    def __init__(self, host: str) -> None:
        super().__init__(host, f"No addresses found for host '{host}'")


# ---------------------------------------------------------------------------
# Command errors
# ---------------------------------------------------------------------------


class CommandExecutionError(BlackholeError):
    """An external command could not be started or exited non-zero."""

    def __init__(
        self,
        name: str,
        args: Sequence[str],
        exit_status: int | None = None,
        stderr: str = "",
    ) -> None:
        command = " ".join([name, *args])
        if exit_status is None:
            message = f"Running '{command}' failed"
        else:
            message = f"Running '{command}' exited with status {exit_status}"
        if stderr.strip():
            message = f"{message}: {stderr.strip()}"
        super().__init__(message)
        self.name = name
        self.command_args = tuple(args)
        self.exit_status = exit_status
        self.stderr = stderr


class CommandError(BlackholeError):
    """Applying or reverting a firewall rule failed.

    The underlying :class:`CommandExecutionError` is available as
    ``__cause__``.
    """

    def __init__(self, context: str, rule: object) -> None:
        super().__init__(f"{context} '{rule}'")
        self.context = context
        self.rule = rule


__all__ = [
    "BlackholeError",
    "CommandError",
    "CommandExecutionError",
    "InvalidDirectionError",
    "InvalidPortError",
    "InvalidProtocolError",
    "InvalidTimeoutError",
    "MissingTargetFieldsError",
    "NoAddressesError",
    "ResolutionError",
    "ValidationError",
]
