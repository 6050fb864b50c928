"""Unit tests for roles, rules and the risk evaluator."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from security import DecisionReason, RequestDetails, RiskEvaluationError, RiskEvaluator, Role, RuleMode, infer_role
from security.rules import BotDetectionRule, ShieldRule, SlidingWindowRule, classify_user_agent
from utils.session import Identity


def _details(**overrides) -> RequestDetails:
    values = {"ip": "10.0.0.1", "method": "GET", "path": "/api", "user_agent": "Mozilla/5.0"}
    values.update(overrides)
    return RequestDetails(**values)


@pytest.mark.parametrize(
    "identity, expected",
    [
        (None, Role.GUEST),
        (Identity(id=1, email="a@example.com", role="user"), Role.USER),
        (Identity(id=2, email="b@example.com", role="admin"), Role.ADMIN),
        (SimpleNamespace(role="something-else"), Role.USER),
    ],
)
def test_infer_role_is_total(identity, expected):
    assert infer_role(identity) is expected


@pytest.mark.parametrize(
    "agent, category",
    [
        ("", "UNKNOWN"),
        ("Mozilla/5.0 (X11; Linux x86_64) Firefox/120.0", None),
        ("Mozilla/5.0 (compatible; bingbot/2.0)", "SEARCH_ENGINE"),
        ("Slackbot-LinkExpanding 1.0", "PREVIEW"),
        ("PostmanRuntime/7.36.0", "TOOL"),
        ("Mozilla/5.0 HeadlessChrome/120.0", "AUTOMATED"),
        ("SomeCrawler/1.0", "AUTOMATED"),
    ],
)
def test_classify_user_agent(agent, category):
    assert classify_user_agent(agent) == category


def test_bot_rule_honours_category_and_agent_allow_list():
    rule = BotDetectionRule(allow=["CATEGORY:PREVIEW", "PostmanRuntime/*"])

    assert not rule.evaluate(_details(user_agent="Twitterbot/1.0")).is_denied
    assert not rule.evaluate(_details(user_agent="PostmanRuntime/7.36.0")).is_denied
    denied = rule.evaluate(_details(user_agent="Wget/1.21"))
    assert denied.is_denied
    assert denied.reason is DecisionReason.BOT
    assert denied.details["category"] == "TOOL"


@pytest.mark.parametrize(
    "overrides, category",
    [
        ({"path": "/static/../../etc/passwd"}, "path_traversal"),
        ({"query": "q=1%20UNION%20SELECT%20password%20FROM%20users"}, "sql_injection"),
        ({"body": '{"bio": "<script>alert(1)</script>"}'}, "script_injection"),
        ({"body": '{"name": "x; cat /etc/hosts"}'}, "command_injection"),
    ],
)
def test_shield_detects_attack_signatures(overrides, category):
    result = ShieldRule().evaluate(_details(**overrides))

    assert result.is_denied
    assert result.reason is DecisionReason.SHIELD
    assert result.details["category"] == category


def test_shield_allows_ordinary_requests():
    result = ShieldRule().evaluate(
        _details(method="POST", body='{"name": "Jane Doe", "email": "jane@example.com"}')
    )

    assert not result.is_denied


def test_rule_mode_parsing():
    assert RuleMode.parse("dry-run") is RuleMode.DRY_RUN
    assert RuleMode.parse("live") is RuleMode.LIVE
    with pytest.raises(ValueError):
        RuleMode.parse("sometimes")


def test_evaluator_counts_each_role_separately():
    evaluator = RiskEvaluator({"guest": "1 per minute", "user": "2 per minute"})
    details = _details()

    assert not evaluator.protect(details, Role.GUEST).is_denied
    guest_decision = evaluator.protect(details, Role.GUEST)
    assert guest_decision.is_denied
    assert guest_decision.reason is DecisionReason.RATE_LIMIT
    assert guest_decision.rule.rule == "guest-rate-limit"

    assert not evaluator.protect(details, Role.USER).is_denied
    assert not evaluator.protect(details, Role.USER).is_denied
    assert evaluator.protect(details, Role.USER).is_denied


def test_evaluator_counts_each_client_separately():
    evaluator = RiskEvaluator({"guest": "1 per minute"})

    assert not evaluator.protect(_details(ip="10.0.0.1")).is_denied
    assert not evaluator.protect(_details(ip="10.0.0.2")).is_denied
    assert evaluator.protect(_details(ip="10.0.0.1")).is_denied


def test_evaluator_stops_at_first_live_denial():
    evaluator = RiskEvaluator({"guest": "1 per minute"})

    decision = evaluator.protect(_details(user_agent="python-requests/2.31"))

    assert decision.reason is DecisionReason.BOT
    # The rate window was never consulted, so it still has room.
    assert not evaluator.protect(_details()).is_denied


def test_dry_run_denials_are_recorded_but_allowed():
    evaluator = RiskEvaluator(bot_mode="DRY_RUN")

    decision = evaluator.protect(_details(user_agent="python-requests/2.31"))

    assert not decision.is_denied
    assert [hit.rule for hit in decision.dry_run_hits] == ["detect-bot"]


def test_storage_failures_raise_risk_evaluation_error():
    class BrokenLimiter:
        def hit(self, *args):
            raise ConnectionError("redis is down")

    rule = SlidingWindowRule("guest-rate-limit", "5 per minute", BrokenLimiter())

    with pytest.raises(RiskEvaluationError):
        rule.evaluate(_details())


def test_malformed_policy_fails_at_construction():
    with pytest.raises(ValueError):
        RiskEvaluator({"guest": "lots"})


@pytest.mark.parametrize(
    "policies",
    [
        {"admin": "1 per minute", "user": "10 per minute", "guest": "5 per minute"},
        {"admin": "100 per minute", "user": "10 per minute", "guest": "100 per minute"},
        {"admin": "20 per minute", "user": "10 per minute", "guest": "1 per second"},
    ],
)
def test_inverted_policies_fail_at_construction(policies):
    with pytest.raises(ValueError):
        RiskEvaluator(policies)


def test_policies_compare_rates_across_window_sizes():
    evaluator = RiskEvaluator({"admin": "2 per second", "user": "60 per minute", "guest": "600 per hour"})

    assert evaluator.role_limit(Role.ADMIN) == "2 per second"
