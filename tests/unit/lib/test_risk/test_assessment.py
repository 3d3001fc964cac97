"""Tests for severity banding, the accumulator fold and the decision policy."""

import pytest

from gig_api.lib.risk import (
    AssessmentCategory,
    Decision,
    RiskAccumulator,
    RiskAssessment,
    Severity,
    decide,
    severity_for_score,
)


class TestSeverityForScore:
    @pytest.mark.parametrize(
        "score,severity",
        [
            (0, Severity.LOW),
            (49, Severity.LOW),
            (50, Severity.MEDIUM),
            (69, Severity.MEDIUM),
            (70, Severity.HIGH),
            (89, Severity.HIGH),
            (90, Severity.CRITICAL),
            (100, Severity.CRITICAL),
        ],
    )
    def test_bands(self, score: int, severity: Severity) -> None:
        assert severity_for_score(score) is severity


class TestRiskAccumulator:
    def test_empty_accumulator_builds_clean_assessment(self) -> None:
        assessment = RiskAccumulator(AssessmentCategory.BID).build()
        assert assessment.risk_score == 0
        assert assessment.requires_action is False
        assert assessment.alerts == ()

    def test_score_is_max_and_messages_append(self) -> None:
        acc = RiskAccumulator(AssessmentCategory.PAYMENT)
        acc.fire(60, "first", "do a")
        acc.fire(80, "second", "do b")
        acc.fire(70, "third", "do c")
        assessment = acc.build()
        assert assessment.risk_score == 80
        assert assessment.requires_action is True
        assert assessment.alerts == ("first", "second", "third")
        assert assessment.recommendations == ("do a", "do b", "do c")

    def test_scores_are_clamped(self) -> None:
        assert RiskAccumulator(AssessmentCategory.GENERAL).fire(250, "a", "b").build().risk_score == 100


class TestRiskAssessment:
    def test_with_score_returns_copy(self) -> None:
        original = RiskAssessment(AssessmentCategory.PAYMENT, risk_score=75, requires_action=True, alerts=("x",))
        raised = original.with_score(90, "escalated")
        assert original.risk_score == 75
        assert raised.risk_score == 90
        assert raised.alerts == ("x", "escalated")
        assert raised.requires_action is True

    def test_to_dict(self) -> None:
        data = RiskAssessment(AssessmentCategory.MESSAGING, risk_score=50, requires_action=True).to_dict()
        assert data["action_type"] == "messaging_analysis"
        assert data["risk_score"] == 50
        assert data["alerts"] == []

    def test_severity_property(self) -> None:
        assert RiskAssessment(AssessmentCategory.BID, risk_score=65).severity is Severity.MEDIUM


class TestDecide:
    @pytest.mark.parametrize(
        "score,decision",
        [
            (40, Decision.FLAG),
            (69, Decision.FLAG),
            (70, Decision.CHALLENGE),
            (89, Decision.CHALLENGE),
            (90, Decision.BLOCK),
            (100, Decision.BLOCK),
        ],
    )
    def test_bands_when_action_required(self, score: int, decision: Decision) -> None:
        assessment = RiskAssessment(AssessmentCategory.PAYMENT, risk_score=score, requires_action=True)
        assert decide(assessment) is decision

    def test_no_action_required_always_allows(self) -> None:
        assessment = RiskAssessment(AssessmentCategory.PAYMENT, risk_score=95, requires_action=False)
        assert decide(assessment) is Decision.ALLOW
