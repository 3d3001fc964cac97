"""Declarative threshold rules, one evaluator per assessment category.

Evaluators are pure functions of a :class:`SignalBundle`; all I/O happens
in the collector beforehand.
"""

from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal

from gig_api.lib.risk.action_class import AssessmentCategory
from gig_api.lib.risk.assessment import CRITICAL_THRESHOLD, HIGH_THRESHOLD, RiskAccumulator, RiskAssessment
from gig_api.lib.risk.signals import SignalBundle

PAYMENT_VELOCITY_LIMIT = 3
PAYMENT_AMOUNT_MULTIPLIER = 3
ROUND_PAYMENT_PERCENT = 80
PROFILE_CHANGE_LIMIT = 2
BID_VELOCITY_LIMIT = 5
BID_AMOUNT_MULTIPLIER = 2
PROJECT_VELOCITY_LIMIT = 3
MESSAGE_VELOCITY_LIMIT = 10
REQUESTS_PER_MINUTE_LIMIT = 50
ESCALATION_BOOST = 15


@dataclass(frozen=True)
class RuleConfig:
    """Tunable parts of the rule set."""

    high_value_amount: Decimal = Decimal("50000")
    escalation_enabled: bool = True
    verified_dampening_enabled: bool = False


def _exceeds_average(amount: Decimal | None, average: Decimal | None, multiplier: int) -> bool:
    return amount is not None and average is not None and average > 0 and amount > average * multiplier


def evaluate_payment(bundle: SignalBundle, config: RuleConfig) -> RiskAssessment:
    acc = RiskAccumulator(AssessmentCategory.PAYMENT)

    if bundle.count("5m") >= PAYMENT_VELOCITY_LIMIT:
        acc.fire(75, "Multiple payment attempts in short time frame", "Require additional payment verification")

    if _exceeds_average(bundle.amount, bundle.average_amount, PAYMENT_AMOUNT_MULTIPLIER):
        acc.fire(60, "Unusual payment amount detected", "Verify payment amount with user")

    if bundle.amount is not None and bundle.amount > config.high_value_amount:
        acc.fire(60, "High-value transaction detected", "Verify payment amount with user")

    if bundle.completed_payments > 0 and bundle.round_payments * 100 > ROUND_PAYMENT_PERCENT * bundle.completed_payments:
        acc.fire(80, "Suspicious payment pattern detected", "Temporarily suspend payment processing")

    assessment = acc.build()

    # A second high-risk hit within the hour may push the score into the block band.
    if (
        config.escalation_enabled
        and bundle.recent_high_risk_alert
        and assessment.requires_action
        and HIGH_THRESHOLD <= assessment.risk_score < CRITICAL_THRESHOLD
    ):
        assessment = assessment.with_score(
            assessment.risk_score + ESCALATION_BOOST, "Recent high-risk activity escalation"
        )
    return assessment


def evaluate_profile(bundle: SignalBundle, config: RuleConfig) -> RiskAssessment:
    acc = RiskAccumulator(AssessmentCategory.PROFILE_UPDATE)

    if bundle.profile_changes >= PROFILE_CHANGE_LIMIT:
        acc.fire(70, "Multiple profile changes in short time frame", "Require email verification for changes")

    if bundle.email_changed:
        acc.fire(85, "Email address change detected", "Require current password and email verification")

    assessment = acc.build()

    # Verified users cannot redo verification, so keep them out of the challenge band.
    if config.verified_dampening_enabled and bundle.id_verified:
        if assessment.risk_score >= 85:
            assessment = assessment.with_score(60)
        elif assessment.risk_score >= HIGH_THRESHOLD:
            assessment = assessment.with_score(50)
    return assessment


def evaluate_bid(bundle: SignalBundle, config: RuleConfig) -> RiskAssessment:
    acc = RiskAccumulator(AssessmentCategory.BID)

    if bundle.count("10m") >= BID_VELOCITY_LIMIT:
        acc.fire(65, "Rapid bid submissions detected", "Implement bid rate limiting")

    if _exceeds_average(bundle.amount, bundle.average_amount, BID_AMOUNT_MULTIPLIER):
        acc.fire(55, "Unusual bid amount detected", "Verify bid amount legitimacy")

    return acc.build()


def evaluate_project(bundle: SignalBundle, config: RuleConfig) -> RiskAssessment:
    acc = RiskAccumulator(AssessmentCategory.PROJECT_CREATION)
    if bundle.count("2h") >= PROJECT_VELOCITY_LIMIT:
        acc.fire(60, "Multiple project creations in short time", "Review project legitimacy")
    return acc.build()


def evaluate_message(bundle: SignalBundle, config: RuleConfig) -> RiskAssessment:
    acc = RiskAccumulator(AssessmentCategory.MESSAGING)
    if bundle.count("5m") >= MESSAGE_VELOCITY_LIMIT:
        acc.fire(50, "High message volume detected", "Implement message rate limiting")
    return acc.build()


def evaluate_general(bundle: SignalBundle, config: RuleConfig) -> RiskAssessment:
    acc = RiskAccumulator(AssessmentCategory.GENERAL)
    if bundle.count("1m") > REQUESTS_PER_MINUTE_LIMIT:
        acc.fire(40, "High request volume detected", "Monitor for automated behavior")
    return acc.build()


EVALUATORS: dict[AssessmentCategory, Callable[[SignalBundle, RuleConfig], RiskAssessment]] = {
    AssessmentCategory.PAYMENT: evaluate_payment,
    AssessmentCategory.PROFILE_UPDATE: evaluate_profile,
    AssessmentCategory.BID: evaluate_bid,
    AssessmentCategory.PROJECT_CREATION: evaluate_project,
    AssessmentCategory.MESSAGING: evaluate_message,
    AssessmentCategory.GENERAL: evaluate_general,
}


def evaluate(bundle: SignalBundle, config: RuleConfig | None = None) -> RiskAssessment:
    """Run the evaluator for the bundle's category."""
    return EVALUATORS[bundle.category](bundle, config or RuleConfig())
