"""Scope a blackhole to a block of code or a function call."""

from __future__ import annotations

import functools
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, Callable, TypeVar

from aumai_blackhole.models import FaultSpec, TaskRun
from aumai_blackhole.runner import CommandRunner, SubprocessRunner
from aumai_blackhole.task import BlackholeTask

F = TypeVar("F", bound=Callable[..., Any])


@contextmanager
def blackhole(
    spec: FaultSpec,
    runner: CommandRunner | None = None,
    *,
    dig_binary: str = "dig",
    iptables_binary: str = "iptables",
) -> Generator[TaskRun, None, None]:
    """Keep *spec*'s rules installed for the duration of a ``with`` block.

    The rules are applied on entry and reverted on exit, including when
    the body raises.  The spec's ``timeout`` is ignored; the block decides
    how long traffic stays blocked.  If applying fails, the error
    propagates and nothing is reverted.

    Example::

        spec = FaultSpec(targets=[Target(host="10.0.0.5", dst_ports="5432")])
        with blackhole(spec):
            assert not db_is_reachable()
    """
    task = BlackholeTask(
        runner or SubprocessRunner(),
        spec,
        dig_binary=dig_binary,
        iptables_binary=iptables_binary,
    )
    task.apply()
    try:
        yield task.run
    finally:
        task.revert()


def with_blackhole(
    spec: FaultSpec,
    runner: CommandRunner | None = None,
    *,
    dig_binary: str = "dig",
    iptables_binary: str = "iptables",
) -> Callable[[F], F]:
    """Decorator that runs every call of the wrapped function inside :func:`blackhole`.

    Example::

        @with_blackhole(FaultSpec(targets=[Target(host="cache.internal")]))
        def test_falls_back_when_cache_is_down() -> None:
            ...
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with blackhole(
                spec,
                runner,
                dig_binary=dig_binary,
                iptables_binary=iptables_binary,
            ):
                return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


__all__ = ["blackhole", "with_blackhole"]
