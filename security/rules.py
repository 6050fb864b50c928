"""Request evaluation rules: shield, bot detection and sliding windows."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from fnmatch import fnmatchcase
from typing import Iterable, Optional
from urllib.parse import unquote_plus

from limits import RateLimitItem, parse
from limits.strategies import RateLimiter


class RuleMode(str, Enum):
    LIVE = "LIVE"
    DRY_RUN = "DRY_RUN"

    @classmethod
    def parse(cls, value: "str | RuleMode") -> "RuleMode":
        if isinstance(value, RuleMode):
            return value
        normalized = (value or "").strip().upper().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown rule mode: {value!r}") from None


class Conclusion(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


class DecisionReason(str, Enum):
    NONE = "NONE"
    SHIELD = "SHIELD"
    BOT = "BOT"
    RATE_LIMIT = "RATE_LIMIT"


class RiskEvaluationError(RuntimeError):
    """Raised when a rule cannot reach a decision, e.g. counter storage is down."""


@dataclass(frozen=True)
class RequestDetails:
    """The parts of an inbound request the rules look at."""

    ip: str
    method: str
    path: str
    query: str = ""
    user_agent: str = ""
    body: str = ""


@dataclass
class RuleResult:
    rule: str
    conclusion: Conclusion
    reason: DecisionReason
    mode: RuleMode = RuleMode.LIVE
    details: dict = field(default_factory=dict)

    @property
    def is_denied(self) -> bool:
        return self.conclusion is Conclusion.DENY


class Rule:
    name = "rule"
    reason = DecisionReason.NONE

    def __init__(self, mode: "str | RuleMode" = RuleMode.LIVE):
        self.mode = RuleMode.parse(mode)

    def evaluate(self, details: RequestDetails) -> RuleResult:
        raise NotImplementedError

    def _result(self, denied: bool, **details) -> RuleResult:
        return RuleResult(
            rule=self.name,
            conclusion=Conclusion.DENY if denied else Conclusion.ALLOW,
            reason=self.reason if denied else DecisionReason.NONE,
            mode=self.mode,
            details=details,
        )


SHIELD_SIGNATURES = {
    "sql_injection": (
        r"\bunion\b[\s\S]{0,40}\bselect\b",
        r"'\s*or\s+'?\w+'?\s*=\s*'?\w+",
        r";\s*(drop|truncate|alter)\s+table\b",
        r"\b(sleep|benchmark|pg_sleep)\s*\(\s*\d+",
    ),
    "script_injection": (
        r"<\s*script\b",
        r"javascript\s*:",
        r"\bon(error|load|mouseover)\s*=",
    ),
    "path_traversal": (
        r"\.\.[/\\]",
        r"/etc/(passwd|shadow)\b",
    ),
    "command_injection": (
        r"[;|`]\s*(cat|ls|wget|curl|bash|sh|nc|rm)\b",
        r"\$\([^)]*\)",
    ),
}


class ShieldRule(Rule):
    """Coarse content firewall over the path, query string and body."""

    name = "shield"
    reason = DecisionReason.SHIELD
    max_body_chars = 64 * 1024

    def __init__(self, mode: "str | RuleMode" = RuleMode.LIVE, signatures: Optional[dict] = None):
        super().__init__(mode)
        self._signatures = [
            (category, re.compile(pattern, re.IGNORECASE))
            for category, patterns in (signatures or SHIELD_SIGNATURES).items()
            for pattern in patterns
        ]

    def _targets(self, details: RequestDetails) -> Iterable[str]:
        yield unquote_plus(details.path)
        if details.query:
            yield unquote_plus(details.query)
        if details.body:
            yield details.body[: self.max_body_chars]

    def evaluate(self, details: RequestDetails) -> RuleResult:
        for target in self._targets(details):
            for category, pattern in self._signatures:
                if pattern.search(target):
                    return self._result(True, category=category)
        return self._result(False)


# Checked in order; the generic AUTOMATED markers come last.
BOT_CATEGORIES = (
    ("SEARCH_ENGINE", ("googlebot", "bingbot", "duckduckbot", "baiduspider", "yandexbot", "applebot", "slurp")),
    ("PREVIEW", (
        "facebookexternalhit", "twitterbot", "slackbot", "discordbot",
        "linkedinbot", "whatsapp", "telegrambot", "skypeuripreview",
    )),
    ("MONITOR", ("uptimerobot", "pingdom", "statuscake", "site24x7", "newrelicpinger")),
    ("TOOL", (
        "curl/", "wget/", "postmanruntime/", "insomnia/", "thunder client",
        "python-requests", "python-httpx", "httpie", "go-http-client",
        "okhttp", "libwww-perl", "axios/", "node-fetch", "aiohttp",
    )),
    ("AUTOMATED", (
        "headlesschrome", "phantomjs", "selenium", "puppeteer", "playwright",
        "scrapy", "crawler", "spider", "bot",
    )),
)


def classify_user_agent(user_agent: str) -> Optional[str]:
    """Return the bot category for ``user_agent`` or ``None`` for a browser."""

    agent = (user_agent or "").strip().lower()
    if not agent:
        return "UNKNOWN"
    for category, markers in BOT_CATEGORIES:
        if any(marker in agent for marker in markers):
            return category
    return None


class BotDetectionRule(Rule):
    """Deny automated clients unless their category or agent is allowed.

    ``allow`` takes ``CATEGORY:<name>`` entries and user-agent glob patterns
    such as ``curl/*``.
    """

    name = "detect-bot"
    reason = DecisionReason.BOT

    def __init__(self, mode: "str | RuleMode" = RuleMode.LIVE, allow: Iterable[str] = ()):
        super().__init__(mode)
        self.allowed_categories = set()
        self.allowed_agents = []
        for entry in allow:
            if entry.upper().startswith("CATEGORY:"):
                self.allowed_categories.add(entry.split(":", 1)[1].strip().upper())
            else:
                self.allowed_agents.append(entry.strip().lower())

    def _is_allowed(self, category: str, user_agent: str) -> bool:
        if category in self.allowed_categories:
            return True
        agent = (user_agent or "").strip().lower()
        return any(fnmatchcase(agent, pattern) for pattern in self.allowed_agents)

    def evaluate(self, details: RequestDetails) -> RuleResult:
        category = classify_user_agent(details.user_agent)
        if category is None:
            return self._result(False)
        if self._is_allowed(category, details.user_agent):
            return self._result(False, category=category, allowed=True)
        return self._result(True, category=category)


class SlidingWindowRule(Rule):
    """Count requests per client address in a trailing window.

    Counters are namespaced by the rule name, so two rules never share state.
    """

    reason = DecisionReason.RATE_LIMIT

    def __init__(
        self,
        name: str,
        limit: "str | RateLimitItem",
        limiter: RateLimiter,
        mode: "str | RuleMode" = RuleMode.LIVE,
    ):
        super().__init__(mode)
        self.name = name
        self.limit_text = limit if isinstance(limit, str) else str(limit)
        self.item = parse(limit) if isinstance(limit, str) else limit
        self._limiter = limiter

    def evaluate(self, details: RequestDetails) -> RuleResult:
        try:
            allowed = self._limiter.hit(self.item, self.name, details.ip)
            stats = self._limiter.get_window_stats(self.item, self.name, details.ip)
        except Exception as exc:
            raise RiskEvaluationError(f"Rate limit storage failed for {self.name}: {exc}") from exc
        return self._result(
            not allowed,
            limit=self.limit_text,
            max=self.item.amount,
            remaining=stats.remaining,
            reset=int(stats.reset_time),
        )
