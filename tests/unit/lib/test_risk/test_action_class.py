"""Tests for action class resolution and category mapping."""

import pytest

from gig_api.lib.risk import ActionClass, AssessmentCategory, category_for, is_low_risk, resolve_action_class


class TestResolveActionClass:
    @pytest.mark.parametrize(
        "route_name,expected",
        [
            ("auth.login", ActionClass.LOGIN),
            ("messages.store", ActionClass.MESSAGE),
            ("bids.store", ActionClass.BID),
            ("payments.store", ActionClass.PAYMENT),
            ("profile.update", ActionClass.PROFILE_UPDATE),
            ("projects.store", ActionClass.PROJECT),
            ("jobs.store", ActionClass.PROJECT),
        ],
    )
    def test_keyword_match(self, route_name: str, expected: ActionClass) -> None:
        assert resolve_action_class(route_name, "POST") is expected

    def test_first_keyword_wins(self) -> None:
        # "message" precedes "payment" in the keyword order
        assert resolve_action_class("payment.messages", "POST") is ActionClass.MESSAGE

    def test_match_is_case_insensitive(self) -> None:
        assert resolve_action_class("Payments.Store", "POST") is ActionClass.PAYMENT

    def test_unmatched_post_is_form_submission(self) -> None:
        assert resolve_action_class("users.store", "POST") is ActionClass.FORM_SUBMISSION

    @pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE"])
    def test_unmatched_other_methods_are_general_activity(self, method: str) -> None:
        assert resolve_action_class("users.index", method) is ActionClass.GENERAL_ACTIVITY

    def test_no_route_name_is_general_activity(self) -> None:
        assert resolve_action_class(None, "POST") is ActionClass.GENERAL_ACTIVITY

    def test_override_wins_over_keywords(self) -> None:
        assert resolve_action_class("payments.store", "POST", ActionClass.HEALTH_CHECK) is ActionClass.HEALTH_CHECK

    def test_override_accepts_string_value(self) -> None:
        assert resolve_action_class("anything", "GET", "bid") is ActionClass.BID

    def test_unknown_override_raises(self) -> None:
        with pytest.raises(ValueError):
            resolve_action_class("anything", "GET", "teleport")


class TestLowRisk:
    @pytest.mark.parametrize(
        "action_class",
        [ActionClass.GENERAL_ACTIVITY, ActionClass.PAGE_VIEW, ActionClass.STATIC_CONTENT, ActionClass.HEALTH_CHECK],
    )
    def test_low_risk_classes(self, action_class: ActionClass) -> None:
        assert is_low_risk(action_class)

    @pytest.mark.parametrize(
        "action_class",
        [ActionClass.PAYMENT, ActionClass.LOGIN, ActionClass.FORM_SUBMISSION, ActionClass.PROFILE_UPDATE],
    )
    def test_assessed_classes(self, action_class: ActionClass) -> None:
        assert not is_low_risk(action_class)


class TestCategoryFor:
    @pytest.mark.parametrize(
        "action_class,category",
        [
            (ActionClass.PAYMENT, AssessmentCategory.PAYMENT),
            (ActionClass.PROFILE_UPDATE, AssessmentCategory.PROFILE_UPDATE),
            (ActionClass.BID, AssessmentCategory.BID),
            (ActionClass.PROJECT, AssessmentCategory.PROJECT_CREATION),
            (ActionClass.MESSAGE, AssessmentCategory.MESSAGING),
            (ActionClass.LOGIN, AssessmentCategory.GENERAL),
            (ActionClass.FORM_SUBMISSION, AssessmentCategory.GENERAL),
        ],
    )
    def test_mapping(self, action_class: ActionClass, category: AssessmentCategory) -> None:
        assert category_for(action_class) is category
