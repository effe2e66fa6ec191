"""aumai-blackhole: Network blackhole fault injection with iptables."""

__version__ = "0.1.0"

from aumai_blackhole.compiler import RuleCompiler  # noqa: E402
from aumai_blackhole.config import BlackholeSettings, build_runner  # noqa: E402
from aumai_blackhole.decorators import blackhole, with_blackhole  # noqa: E402
from aumai_blackhole.errors import (  # noqa: E402
    BlackholeError,
    CommandError,
    CommandExecutionError,
    InvalidDirectionError,
    InvalidPortError,
    InvalidProtocolError,
    InvalidTimeoutError,
    MissingTargetFieldsError,
    NoAddressesError,
    ResolutionError,
    ValidationError,
)
from aumai_blackhole.executor import RuleExecutor  # noqa: E402
from aumai_blackhole.models import (  # noqa: E402
    Chain,
    CompiledRule,
    Direction,
    FaultSpec,
    ObservationPoint,
    Protocol,
    RuleAction,
    Target,
    TaskPhase,
    TaskRun,
    WaitOutcome,
    parse_duration,
)
from aumai_blackhole.observer import TaskObserver  # noqa: E402
from aumai_blackhole.resolver import HostResolver  # noqa: E402
from aumai_blackhole.runner import (  # noqa: E402
    CommandResult,
    CommandRunner,
    DryRunRunner,
    SubprocessRunner,
)
from aumai_blackhole.task import BlackholeTask  # noqa: E402

__all__ = [
    "BlackholeError",
    "BlackholeSettings",
    "BlackholeTask",
    "Chain",
    "CommandError",
    "CommandExecutionError",
    "CommandResult",
    "CommandRunner",
    "CompiledRule",
    "Direction",
    "DryRunRunner",
    "FaultSpec",
    "HostResolver",
    "InvalidDirectionError",
    "InvalidPortError",
    "InvalidProtocolError",
    "InvalidTimeoutError",
    "MissingTargetFieldsError",
    "NoAddressesError",
    "ObservationPoint",
    "Protocol",
    "ResolutionError",
    "RuleAction",
    "RuleCompiler",
    "RuleExecutor",
    "SubprocessRunner",
    "Target",
    "TaskObserver",
    "TaskPhase",
    "TaskRun",
    "ValidationError",
    "WaitOutcome",
    "blackhole",
    "build_runner",
    "parse_duration",
    "with_blackhole",
]
