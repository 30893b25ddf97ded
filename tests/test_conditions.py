"""
Tests for condition evaluation.
"""

import pytest

from benefit_integrity.core.conditions import (
    evaluate_conditions,
    evaluate_operator,
    resolve_field,
)
from benefit_integrity.core.models import ConditionOperator, RiskLevel, RuleCondition


def _condition(field_name: str, operator: ConditionOperator, value) -> RuleCondition:
    return RuleCondition(condition_id="C", field_name=field_name, operator=operator, value=value)


class TestResolveField:
    """Tests for dotted field resolution."""

    def test_mapping_and_model_paths(self, claimant) -> None:
        """Test paths walk through dicts and model attributes."""
        context = {"claimant": claimant, "device": {"score": 0.4}}

        assert resolve_field("claimant.mailing_address.zip_code", context) == "62701"
        assert resolve_field("device.score", context) == 0.4

    def test_missing_segment_is_none(self, claimant) -> None:
        """Test unknown segments resolve to None."""
        context = {"claimant": claimant}

        assert resolve_field("claimant.nickname", context) is None
        assert resolve_field("employer.risk_level", {"employer": None}) is None


class TestEvaluateOperator:
    """Tests for individual operators."""

    @pytest.mark.parametrize(
        "operator, actual, expected, outcome",
        [
            (ConditionOperator.EQUALS, "CRITICAL", "CRITICAL", True),
            (ConditionOperator.EQUALS, RiskLevel.CRITICAL, "CRITICAL", True),
            (ConditionOperator.NOT_EQUALS, "LOW", "CRITICAL", True),
            (ConditionOperator.GREATER_THAN, 2, 1, True),
            (ConditionOperator.GREATER_THAN, "3.5", 2.5, True),
            (ConditionOperator.LESS_THAN, 1, 1, False),
            (ConditionOperator.CONTAINS, "lost my job", "job", True),
            (ConditionOperator.REGEX, "203.0.113.5", r"^203\.0\.", True),
            (ConditionOperator.IN_LIST, "PUA", ["PUA", "PEUC"], True),
            (ConditionOperator.NOT_IN_LIST, "UI", ["PUA", "PEUC"], True),
        ],
    )
    def test_operators(self, operator, actual, expected, outcome) -> None:
        """Test each operator on compatible operands."""
        assert evaluate_operator(operator, actual, expected) is outcome

    def test_incompatible_operands_fail(self) -> None:
        """Test non-numeric comparisons and bad regexes are false, not errors."""
        assert evaluate_operator(ConditionOperator.GREATER_THAN, "abc", 1) is False
        assert evaluate_operator(ConditionOperator.GREATER_THAN, None, 1) is False
        assert evaluate_operator(ConditionOperator.GREATER_THAN, 10**400, 1) is False
        assert evaluate_operator(ConditionOperator.LESS_THAN, 1, 10**400) is False
        assert evaluate_operator(ConditionOperator.REGEX, "text", "(unclosed") is False
        assert evaluate_operator(ConditionOperator.IN_LIST, "a", "abc") is False

    def test_unknown_operator(self) -> None:
        assert evaluate_operator("BETWEEN", 1, 2) is False


class TestEvaluateConditions:
    """Tests for condition conjunction."""

    def test_empty_is_true(self) -> None:
        """Test a rule without conditions always holds."""
        assert evaluate_conditions([], {}) is True

    def test_all_must_hold(self) -> None:
        """Test conditions combine with AND."""
        conditions = [
            _condition("claims_last_30_days", ConditionOperator.GREATER_THAN, 3),
            _condition("employer_risk_level", ConditionOperator.EQUALS, "CRITICAL"),
        ]

        assert evaluate_conditions(
            conditions, {"claims_last_30_days": 5, "employer_risk_level": "CRITICAL"}
        )
        assert not evaluate_conditions(
            conditions, {"claims_last_30_days": 5, "employer_risk_level": "LOW"}
        )
