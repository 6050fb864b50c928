"""Request risk evaluation: shield, bot detection and role-aware rate limits."""

from .evaluator import Decision, RiskEvaluator
from .middleware import get_risk_evaluator, init_security
from .roles import Role, infer_role
from .rules import DecisionReason, RequestDetails, RiskEvaluationError, RuleMode

__all__ = [
    "Decision",
    "DecisionReason",
    "RequestDetails",
    "RiskEvaluationError",
    "RiskEvaluator",
    "Role",
    "RuleMode",
    "get_risk_evaluator",
    "infer_role",
    "init_security",
]
