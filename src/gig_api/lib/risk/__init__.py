"""Risk library: action classification, signal collection, rules and decisions.

Public API:
    - ActionClass / AssessmentCategory: Tagged request classes and rule sets
    - resolve_action_class / is_low_risk / category_for: Classification helpers
    - RequestContext: Explicit per-request input
    - SignalSource / SignalBundle: Query capability and gathered signals
    - collect_signals: Best-effort signal collection
    - RuleConfig / evaluate: Declarative threshold rules
    - RiskAssessment / RiskAccumulator: Rule outcome and its fold
    - Severity / severity_for_score: Fixed severity bands
    - Decision / decide: Allow, flag, challenge or block
"""

from gig_api.lib.risk.action_class import (
    LOW_RISK_CLASSES,
    ActionClass,
    AssessmentCategory,
    category_for,
    is_low_risk,
    resolve_action_class,
)
from gig_api.lib.risk.assessment import (
    Decision,
    RiskAccumulator,
    RiskAssessment,
    Severity,
    decide,
    severity_for_score,
)
from gig_api.lib.risk.collector import collect_signals
from gig_api.lib.risk.context import TELEMETRY_FIELDS, RequestContext
from gig_api.lib.risk.rules import RuleConfig, evaluate
from gig_api.lib.risk.signals import PROFILE_TABLE, WINDOWS, SignalBundle, SignalSource

__all__ = [
    "LOW_RISK_CLASSES",
    "PROFILE_TABLE",
    "TELEMETRY_FIELDS",
    "WINDOWS",
    "ActionClass",
    "AssessmentCategory",
    "Decision",
    "RequestContext",
    "RiskAccumulator",
    "RiskAssessment",
    "RuleConfig",
    "Severity",
    "SignalBundle",
    "SignalSource",
    "category_for",
    "collect_signals",
    "decide",
    "evaluate",
    "is_low_risk",
    "resolve_action_class",
    "severity_for_score",
]
