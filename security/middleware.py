"""Flask hook that runs every request through the risk evaluator."""

from __future__ import annotations

import logging
from typing import Optional

from flask import Flask, current_app, g, jsonify, request
from flask_limiter.util import get_remote_address

from utils.session import resolve_optional_identity

from .evaluator import Decision, RiskEvaluator
from .roles import infer_role
from .rules import DecisionReason, RequestDetails, RiskEvaluationError

logger = logging.getLogger(__name__)

EXTENSION_KEY = "risk_evaluator"

REJECTION_MESSAGES = {
    DecisionReason.BOT: "Automated requests are not allowed",
    DecisionReason.SHIELD: "Request blocked by security policy",
}


def get_risk_evaluator(app: Optional[Flask] = None) -> RiskEvaluator:
    return (app or current_app).extensions[EXTENSION_KEY]


def request_details() -> RequestDetails:
    """Collect the request attributes the rules inspect."""

    body = ""
    # Multipart bodies are left unread so form parsing still sees the stream.
    if request.content_length and request.mimetype != "multipart/form-data":
        body = request.get_data(cache=True, as_text=True)
    return RequestDetails(
        ip=get_remote_address() or "unknown",
        method=request.method,
        path=request.path,
        query=request.query_string.decode("latin-1"),
        user_agent=request.headers.get("User-Agent", ""),
        body=body,
    )


def rejection_message(decision: Decision, evaluator: RiskEvaluator) -> str:
    if decision.reason is DecisionReason.RATE_LIMIT:
        if decision.rule is not None and decision.rule.rule == "base-rate-limit":
            return "Too many requests"
        role = decision.role
        return f"{role.label} request limit exceeded ({evaluator.role_limit(role)}). Slow down."
    return REJECTION_MESSAGES.get(decision.reason, "Forbidden")


def _log_decision(decision: Decision, details: RequestDetails) -> None:
    for hit in decision.dry_run_hits:
        logger.info(
            "Security rule would deny (dry run): rule=%s reason=%s role=%s ip=%s method=%s path=%s details=%s",
            hit.rule,
            hit.reason.value,
            decision.role.value,
            details.ip,
            details.method,
            details.path,
            hit.details,
        )
    if not decision.is_denied:
        return
    logger.warning(
        "Request blocked: reason=%s rule=%s role=%s ip=%s method=%s path=%s user_agent=%r details=%s request_id=%s",
        decision.reason.value,
        decision.rule.rule if decision.rule else None,
        decision.role.value,
        details.ip,
        details.method,
        details.path,
        details.user_agent,
        decision.rule.details if decision.rule else {},
        g.get("request_id"),
    )


def _forbidden(decision: Decision, evaluator: RiskEvaluator):
    response = jsonify(
        {
            "error": "Forbidden",
            "message": rejection_message(decision, evaluator),
            "reason": decision.reason.value,
            "request_id": g.get("request_id"),
        }
    )
    response.status_code = 403
    return response


def evaluate_request():
    """``before_request`` hook; returns a response to halt, or None to continue."""

    config = current_app.config
    if not config.get("SECURITY_ENABLED", True) or request.method == "OPTIONS":
        return None
    if request.path in config.get("SECURITY_EXEMPT_PATHS", ()):
        return None

    evaluator = get_risk_evaluator()
    identity = resolve_optional_identity()
    role = infer_role(identity)
    g.security_role = role
    details = request_details()

    try:
        decision = evaluator.protect(details, role)
    except RiskEvaluationError:
        if config.get("SECURITY_FAIL_OPEN", True):
            logger.exception(
                "Risk evaluation failed; allowing request: role=%s ip=%s method=%s path=%s",
                role.value,
                details.ip,
                details.method,
                details.path,
            )
            return None
        logger.exception(
            "Risk evaluation failed; rejecting request: role=%s ip=%s method=%s path=%s",
            role.value,
            details.ip,
            details.method,
            details.path,
        )
        response = jsonify(
            {
                "error": "Service Unavailable",
                "detail": "Security evaluation unavailable.",
                "request_id": g.get("request_id"),
            }
        )
        response.status_code = 503
        return response

    _log_decision(decision, details)
    if decision.is_denied:
        return _forbidden(decision, evaluator)
    return None


def init_security(app: Flask, evaluator: Optional[RiskEvaluator] = None) -> RiskEvaluator:
    """Attach ``evaluator`` (or one built from config) and register the hook."""

    if evaluator is None:
        evaluator = RiskEvaluator.from_config(app.config)
    app.extensions[EXTENSION_KEY] = evaluator
    app.before_request(evaluate_request)
    return evaluator

