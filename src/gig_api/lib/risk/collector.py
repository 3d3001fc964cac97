"""Per-request signal collection.

Every query goes through :func:`_best_effort`: a failing signal is logged
and treated as zero/absent, so one broken query can never produce a block
on its own.
"""

from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import TypeVar

from loguru import logger

from gig_api.lib.risk.action_class import ActionClass, AssessmentCategory, category_for
from gig_api.lib.risk.assessment import HIGH_THRESHOLD
from gig_api.lib.risk.context import RequestContext
from gig_api.lib.risk.signals import PROFILE_CHANGE_ACTIONS, PROFILE_TABLE, WINDOWS, SignalBundle, SignalSource

T = TypeVar("T")

# Trailing windows each category's velocity rule looks at.
CATEGORY_WINDOWS: dict[AssessmentCategory, tuple[str, ...]] = {
    AssessmentCategory.PAYMENT: ("5m",),
    AssessmentCategory.BID: ("10m",),
    AssessmentCategory.PROJECT_CREATION: ("2h",),
    AssessmentCategory.MESSAGING: ("5m",),
}


async def _best_effort(name: str, fetch: Callable[[], Awaitable[T]], default: T, failed: list[str]) -> T:
    try:
        return await fetch()
    except Exception as exc:
        logger.warning(f"Fraud signal '{name}' unavailable, treating as absent: {exc!r}")
        failed.append(name)
        return default


async def collect_signals(
    source: SignalSource,
    ctx: RequestContext,
    action_class: ActionClass,
    *,
    include_escalation: bool = True,
) -> SignalBundle:
    """Gather the signals the rules for ``action_class`` need.

    Args:
        source: Query capability over recent activity.
        ctx: The request being assessed.
        action_class: Resolved class of the request.
        include_escalation: Also look up recent high-risk alerts (payments only).

    Returns:
        A populated :class:`SignalBundle`.
    """
    category = category_for(action_class)
    failed: list[str] = []
    counts: dict[str, int] = {}
    amount: Decimal | None = None
    average: Decimal | None = None
    round_payments = completed_payments = profile_changes = 0
    email_changed = False
    recent_alert = False

    if category is AssessmentCategory.GENERAL:
        if ctx.ip_address:
            counts["1m"] = await _best_effort(
                "requests_from_ip",
                lambda: source.count_requests_from_ip(ctx.user_id, ctx.ip_address, ctx.now - WINDOWS["1m"]),
                0,
                failed,
            )
    elif category is AssessmentCategory.PROFILE_UPDATE:
        profile_changes = await _best_effort(
            "profile_changes",
            lambda: source.count_audit_entries(
                PROFILE_TABLE, str(ctx.user_id), PROFILE_CHANGE_ACTIONS, ctx.now - WINDOWS["1h"]
            ),
            0,
            failed,
        )
        counts["1h"] = profile_changes
        submitted_email = ctx.fields.get("email")
        email_changed = submitted_email is not None and submitted_email != ctx.email
    else:
        for window in CATEGORY_WINDOWS.get(category, ()):
            counts[window] = await _best_effort(
                f"count_{window}",
                lambda w=window: source.count_recent_actions(ctx.user_id, action_class, ctx.now - WINDOWS[w]),
                0,
                failed,
            )

    if category is AssessmentCategory.PAYMENT:
        amount = ctx.amount("amount")
        average = await _best_effort(
            "average_amount", lambda: source.average_amount(ctx.user_id, action_class), None, failed
        )
        round_payments, completed_payments = await _best_effort(
            "round_amount_stats",
            lambda: source.round_amount_stats(ctx.user_id, ctx.now - WINDOWS["24h"]),
            (0, 0),
            failed,
        )
        if include_escalation:
            recent_alert = await _best_effort(
                "recent_high_risk_alert",
                lambda: source.has_recent_alert(ctx.user_id, ctx.now - WINDOWS["1h"], HIGH_THRESHOLD),
                False,
                failed,
            )
    elif category is AssessmentCategory.BID:
        amount = ctx.amount("bid_amount", "amount")
        if amount is not None and amount > 0:
            average = await _best_effort(
                "average_amount", lambda: source.average_amount(ctx.user_id, action_class), None, failed
            )

    return SignalBundle(
        action_class=action_class,
        category=category,
        amount=amount,
        counts=counts,
        average_amount=average,
        round_payments=round_payments,
        completed_payments=completed_payments,
        profile_changes=profile_changes,
        email_changed=email_changed,
        id_verified=ctx.id_verified,
        recent_high_risk_alert=recent_alert,
        telemetry=ctx.telemetry,
        failed_signals=tuple(failed),
    )
