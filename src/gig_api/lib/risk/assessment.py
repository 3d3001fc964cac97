"""Risk assessments, severity banding, and the decision policy.

Evaluators never mutate a shared result.  Each fired rule is folded into a
:class:`RiskAccumulator` (score = max, alerts and recommendations append,
``requires_action`` = or) and frozen into a :class:`RiskAssessment`.
"""

from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from gig_api.lib.risk.action_class import AssessmentCategory

MAX_SCORE = 100
CRITICAL_THRESHOLD = 90
HIGH_THRESHOLD = 70
MEDIUM_THRESHOLD = 50


class Severity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Decision(StrEnum):
    """Action the interceptor takes for an assessment."""

    ALLOW = "allow"
    FLAG = "flag"
    CHALLENGE = "challenge"
    BLOCK = "block"


def clamp_score(score: float) -> int:
    """Round and clamp a score into 0..100."""
    return max(0, min(MAX_SCORE, round(score)))


def severity_for_score(score: float) -> Severity:
    """Band a score. Boundary values 50, 70 and 90 belong to the higher band."""
    if score >= CRITICAL_THRESHOLD:
        return Severity.CRITICAL
    if score >= HIGH_THRESHOLD:
        return Severity.HIGH
    if score >= MEDIUM_THRESHOLD:
        return Severity.MEDIUM
    return Severity.LOW


@dataclass(frozen=True)
class RiskAssessment:
    """Outcome of evaluating one request against its category's rules."""

    category: AssessmentCategory
    risk_score: int = 0
    requires_action: bool = False
    alerts: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()

    @property
    def severity(self) -> Severity:
        return severity_for_score(self.risk_score)

    def with_score(self, score: float, alert: str | None = None) -> "RiskAssessment":
        """Copy with an adjusted score (used by rule-specified aggregates)."""
        alerts = (*self.alerts, alert) if alert else self.alerts
        return replace(self, risk_score=clamp_score(score), alerts=alerts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "action_type": f"{self.category.value}_analysis",
            "category": self.category.value,
            "risk_score": self.risk_score,
            "requires_action": self.requires_action,
            "alerts": list(self.alerts),
            "recommendations": list(self.recommendations),
        }


@dataclass
class RiskAccumulator:
    """Folds fired rules into an assessment."""

    category: AssessmentCategory
    score: int = 0
    fired: bool = False
    alerts: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def fire(self, score: int, alert: str, recommendation: str) -> "RiskAccumulator":
        self.fired = True
        self.score = max(self.score, clamp_score(score))
        self.alerts.append(alert)
        self.recommendations.append(recommendation)
        return self

    def build(self) -> RiskAssessment:
        return RiskAssessment(
            category=self.category,
            risk_score=self.score,
            requires_action=self.fired,
            alerts=tuple(self.alerts),
            recommendations=tuple(self.recommendations),
        )


def decide(assessment: RiskAssessment) -> Decision:
    """Map an assessment onto the interceptor's response band."""
    if not assessment.requires_action:
        return Decision.ALLOW
    if assessment.risk_score >= CRITICAL_THRESHOLD:
        return Decision.BLOCK
    if assessment.risk_score >= HIGH_THRESHOLD:
        return Decision.CHALLENGE
    return Decision.FLAG
