"""Per-request risk evaluation combining shield, bot and rate-limit rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from limits import RateLimitItem, parse
from limits.storage import storage_from_string
from limits.strategies import MovingWindowRateLimiter

from .roles import Role
from .rules import (
    BotDetectionRule,
    Conclusion,
    DecisionReason,
    RequestDetails,
    RuleMode,
    RuleResult,
    ShieldRule,
    SlidingWindowRule,
)

DEFAULT_POLICIES = {
    "admin": "20 per minute",
    "user": "10 per minute",
    "guest": "5 per minute",
}


ROLE_ORDER = (Role.GUEST, Role.USER, Role.ADMIN)


def check_policy_order(items: Mapping[Role, RateLimitItem]) -> None:
    """Raise ValueError unless admin >= user >= guest in requests per second."""

    rates = [items[role].amount / items[role].get_expiry() for role in ROLE_ORDER]
    for lower, higher, low_rate, high_rate in zip(ROLE_ORDER, ROLE_ORDER[1:], rates, rates[1:]):
        if high_rate < low_rate:
            raise ValueError(
                f"Rate limit for {higher.value} ({items[higher]}) is stricter than for {lower.value} ({items[lower]})."
            )


@dataclass
class Decision:
    """Outcome of evaluating one request."""

    conclusion: Conclusion
    reason: DecisionReason = DecisionReason.NONE
    role: Role = Role.GUEST
    rule: Optional[RuleResult] = None
    results: List[RuleResult] = field(default_factory=list)

    @property
    def is_denied(self) -> bool:
        return self.conclusion is Conclusion.DENY

    @property
    def dry_run_hits(self) -> List[RuleResult]:
        return [r for r in self.results if r.is_denied and r.mode is RuleMode.DRY_RUN]


class RiskEvaluator:
    """Evaluates requests against a fixed rule set plus a per-role window.

    Rules run in order: shield, bot detection, the optional base window, then
    the caller's role window. The first live denial decides; dry-run denials
    are recorded on the decision and evaluation continues.
    """

    def __init__(
        self,
        policies: Optional[Mapping] = None,
        *,
        base_limit: Optional[str] = None,
        bot_allow=(),
        shield_mode="LIVE",
        bot_mode="LIVE",
        rate_limit_mode="LIVE",
        storage_uri: str = "memory://",
    ):
        self.storage = storage_from_string(storage_uri)
        self.limiter = MovingWindowRateLimiter(self.storage)
        self.rate_limit_mode = RuleMode.parse(rate_limit_mode)
        merged = {**DEFAULT_POLICIES, **dict(policies or {})}
        self.policies = {Role(role): limit for role, limit in merged.items()}
        # Malformed or inverted policies fail here, at startup.
        check_policy_order({role: parse(limit) for role, limit in self.policies.items()})
        self.rules = [
            ShieldRule(shield_mode),
            BotDetectionRule(bot_mode, allow=bot_allow),
        ]
        if base_limit:
            self.rules.append(
                SlidingWindowRule("base-rate-limit", base_limit, self.limiter, self.rate_limit_mode)
            )

    @classmethod
    def from_config(cls, config: Mapping) -> "RiskEvaluator":
        return cls(
            config.get("RATE_LIMIT_POLICIES"),
            base_limit=config.get("SECURITY_BASE_RATE_LIMIT"),
            bot_allow=config.get("SECURITY_BOT_ALLOW", ()),
            shield_mode=config.get("SECURITY_SHIELD_MODE", "LIVE"),
            bot_mode=config.get("SECURITY_BOT_MODE", "LIVE"),
            rate_limit_mode=config.get("SECURITY_RATE_LIMIT_MODE", "LIVE"),
            storage_uri=config.get("SECURITY_STORAGE_URI", "memory://"),
        )

    def role_limit(self, role: Role) -> str:
        return self.policies[role]

    def rate_limit_rule(self, role: Role) -> SlidingWindowRule:
        """Build the sliding window for ``role``; its counters are keyed by role name."""

        return SlidingWindowRule(
            f"{role.value}-rate-limit",
            self.policies[role],
            self.limiter,
            self.rate_limit_mode,
        )

    def protect(self, details: RequestDetails, role: Role = Role.GUEST) -> Decision:
        """Evaluate ``details`` for a caller with ``role``.

        Raises RiskEvaluationError when a rule cannot decide.
        """

        results = []
        for rule in [*self.rules, self.rate_limit_rule(role)]:
            result = rule.evaluate(details)
            results.append(result)
            if result.is_denied and result.mode is RuleMode.LIVE:
                return Decision(Conclusion.DENY, result.reason, role, result, results)
        return Decision(Conclusion.ALLOW, DecisionReason.NONE, role, None, results)
