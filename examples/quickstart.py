"""aumai-blackhole quickstart: dry-run demonstrations of the main features.

Run this file directly to verify your installation:

    python examples/quickstart.py

No firewall state is changed: every demo uses a dry-run runner, and the
targets are address literals so no DNS lookups are made either.
"""

from __future__ import annotations

import threading

from aumai_blackhole import (
    BlackholeTask,
    DryRunRunner,
    FaultSpec,
    HostResolver,
    InvalidPortError,
    RuleCompiler,
    SubprocessRunner,
    Target,
    blackhole,
)


def _runner() -> DryRunRunner:
    return DryRunRunner(SubprocessRunner())


# ---------------------------------------------------------------------------
# Demo 1: Compile a spec into iptables rules
# ---------------------------------------------------------------------------

def demo_compile() -> None:
    print("\n=== Demo 1: Compiling targets ===")

    spec = FaultSpec(
        targets=(
            Target(host="10.0.0.5"),
            Target(host="192.168.0.0/24", direction="INPUT", protocol="tcp", dst_ports="5432"),
            Target(dst_ports="8080:8090", protocol="udp"),
        )
    )
    compiler = RuleCompiler(HostResolver(_runner()))
    for rule in compiler.compile(spec):
        print(f"  iptables -A {rule}")

    try:
        compiler.compile_target(Target(dst_ports="http"))
    except InvalidPortError as exc:
        print(f"  rejected: {exc}")


# ---------------------------------------------------------------------------
# Demo 2: Timed blackhole
# ---------------------------------------------------------------------------

def demo_timed() -> None:
    print("\n=== Demo 2: Blackhole for 200ms ===")

    spec = FaultSpec(timeout="200ms", targets=(Target(host="10.0.0.5"),))
    run = BlackholeTask(_runner(), spec).execute()
    print(f"  phase={run.phase.value} ended_by={run.wait_outcome.value if run.wait_outcome else 'n/a'}")
    print(f"  applied={len(run.applied_rules)} reverted={len(run.reverted_rules)}")


# ---------------------------------------------------------------------------
# Demo 3: Cancelled blackhole
# ---------------------------------------------------------------------------

def demo_cancelled() -> None:
    print("\n=== Demo 3: Blackhole until cancelled ===")

    spec = FaultSpec(targets=(Target(dst_ports="6379", protocol="tcp"),))
    stop = threading.Event()
    threading.Timer(0.2, stop.set).start()
    run = BlackholeTask(_runner(), spec).execute(stop)
    print(f"  phase={run.phase.value} ended_by={run.wait_outcome.value if run.wait_outcome else 'n/a'}")


# ---------------------------------------------------------------------------
# Demo 4: Scoped blackhole
# ---------------------------------------------------------------------------

def demo_scoped() -> None:
    print("\n=== Demo 4: Scoped blackhole ===")

    runner = _runner()
    spec = FaultSpec(targets=(Target(host="10.0.0.7", dst_ports="443", protocol="tcp"),))
    with blackhole(spec, runner) as run:
        print(f"  inside block: {len(run.applied_rules)} rule(s) installed")
    print(f"  after block: phase={run.phase.value}")
    for skipped in runner.skipped:
        print(f"  would run: {skipped.name} {' '.join(skipped.args)}")


if __name__ == "__main__":
    demo_compile()
    demo_timed()
    demo_cancelled()
    demo_scoped()
    print("\nAll demos completed.")
