"""Action classes and their resolution from route identity."""

from enum import StrEnum


class ActionClass(StrEnum):
    """What kind of action an inbound request performs."""

    LOGIN = "login"
    MESSAGE = "message"
    BID = "bid"
    PAYMENT = "payment"
    PROFILE_UPDATE = "profile_update"
    PROJECT = "project_action"
    FORM_SUBMISSION = "form_submission"
    GENERAL_ACTIVITY = "general_activity"
    PAGE_VIEW = "page_view"
    STATIC_CONTENT = "static_content"
    HEALTH_CHECK = "health_check"


class AssessmentCategory(StrEnum):
    """Rule set an action class is evaluated against."""

    PAYMENT = "payment"
    PROFILE_UPDATE = "profile_update"
    BID = "bid"
    PROJECT_CREATION = "project_creation"
    MESSAGING = "messaging"
    GENERAL = "general"


LOW_RISK_CLASSES: frozenset[ActionClass] = frozenset(
    {
        ActionClass.GENERAL_ACTIVITY,
        ActionClass.PAGE_VIEW,
        ActionClass.STATIC_CONTENT,
        ActionClass.HEALTH_CHECK,
    }
)

# Checked in order; the first keyword contained in the route name wins.
ROUTE_KEYWORDS: tuple[tuple[str, ActionClass], ...] = (
    ("login", ActionClass.LOGIN),
    ("message", ActionClass.MESSAGE),
    ("bid", ActionClass.BID),
    ("payment", ActionClass.PAYMENT),
    ("profile", ActionClass.PROFILE_UPDATE),
    ("project", ActionClass.PROJECT),
    ("job", ActionClass.PROJECT),
)

_CATEGORIES: dict[ActionClass, AssessmentCategory] = {
    ActionClass.PAYMENT: AssessmentCategory.PAYMENT,
    ActionClass.PROFILE_UPDATE: AssessmentCategory.PROFILE_UPDATE,
    ActionClass.BID: AssessmentCategory.BID,
    ActionClass.PROJECT: AssessmentCategory.PROJECT_CREATION,
    ActionClass.MESSAGE: AssessmentCategory.MESSAGING,
}


def resolve_action_class(
    route_name: str | None,
    method: str,
    override: ActionClass | str | None = None,
) -> ActionClass:
    """Resolve the action class of a request.

    Args:
        route_name: Name of the matched route, if any.
        method: HTTP method.
        override: Explicit class supplied by the route declaration.

    Returns:
        The override when given, else the first keyword match, else
        ``form_submission`` for unmatched POSTs and ``general_activity``
        for everything else.
    """
    if override is not None:
        return ActionClass(override)
    if not route_name:
        return ActionClass.GENERAL_ACTIVITY
    name = route_name.lower()
    for keyword, action_class in ROUTE_KEYWORDS:
        if keyword in name:
            return action_class
    if method.upper() == "POST":
        return ActionClass.FORM_SUBMISSION
    return ActionClass.GENERAL_ACTIVITY


def is_low_risk(action_class: ActionClass) -> bool:
    return action_class in LOW_RISK_CLASSES


def category_for(action_class: ActionClass) -> AssessmentCategory:
    """Map an action class onto the rule set that evaluates it."""
    return _CATEGORIES.get(action_class, AssessmentCategory.GENERAL)
