"""Apply and revert compiled rules with ``iptables``."""

from __future__ import annotations

import logging

from aumai_blackhole.errors import CommandError, CommandExecutionError
from aumai_blackhole.models import CompiledRule, RuleAction
from aumai_blackhole.runner import CommandRunner

logger = logging.getLogger(__name__)


class RuleExecutor:
    """Issue ``iptables -A`` / ``iptables -D`` for one rule at a time.

    Apply and revert use identical match arguments; only the leading
    action token differs, so ``revert`` removes exactly what ``apply``
    added.
    """

    def __init__(self, runner: CommandRunner, iptables_binary: str = "iptables") -> None:
        self._runner = runner
        self._iptables_binary = iptables_binary

    def apply(self, rule: CompiledRule) -> None:
        """Append *rule* to its chain.

        Raises:
            CommandError: if ``iptables`` fails.
        """
        self._iptables(RuleAction.append, rule, "applying rule")

    def revert(self, rule: CompiledRule) -> None:
        """Delete *rule* from its chain.

        Raises:
            CommandError: if ``iptables`` fails.
        """
        self._iptables(RuleAction.delete, rule, "reverting rule")

    def _iptables(self, action: RuleAction, rule: CompiledRule, context: str) -> None:
        args = rule.to_args(action)
        logger.debug("%s %s", self._iptables_binary, " ".join(args))
        try:
            result = self._runner.run(self._iptables_binary, *args)
            result.raise_for_status()
        except CommandExecutionError as exc:
            raise CommandError(context, rule) from exc


__all__ = ["RuleExecutor"]
