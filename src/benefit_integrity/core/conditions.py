"""
Condition evaluation shared by business rules and real-time risk patterns.

A condition is a ``(field, operator, value)`` triple resolved against an
evaluation context. Evaluation never raises: a value that cannot be
compared fails the condition.
"""

import logging
import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel

from .models import ConditionOperator

logger = logging.getLogger(__name__)

_MISSING = object()
_regex_cache: dict[str, re.Pattern[str]] = {}


def resolve_field(field_name: str, context: Mapping[str, Any]) -> Any:
    """
    Resolve a dotted field path against a context.

    Path segments walk through mappings and model attributes alike, so
    ``claimant.mailing_address.zip_code`` works on a context holding a
    ``ClaimantProfile``. Missing segments resolve to ``None``.
    """
    value: Any = context
    for part in field_name.split("."):
        if value is None:
            return None
        if isinstance(value, Mapping):
            value = value.get(part)
        elif isinstance(value, BaseModel) or hasattr(value, part):
            value = getattr(value, part, None)
        else:
            return None
    return value


def _to_number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return math.nan


def _plain(value: Any) -> Any:
    """Unwrap str-valued enums so ``RiskLevel.CRITICAL == "CRITICAL"``."""
    enum_value = getattr(value, "value", _MISSING)
    return value if enum_value is _MISSING else enum_value


def _compile(pattern: str) -> re.Pattern[str] | None:
    if pattern not in _regex_cache:
        try:
            _regex_cache[pattern] = re.compile(pattern)
        except re.error as e:
            logger.warning("Invalid regex in condition %r: %s", pattern, e)
            return None
    return _regex_cache[pattern]


def evaluate_operator(
    operator: ConditionOperator | str, field_value: Any, expected: Any
) -> bool:
    """Apply one operator. Incompatible operands yield ``False``."""
    try:
        op = ConditionOperator(operator)
    except ValueError:
        logger.warning("Unknown condition operator: %s", operator)
        return False

    actual = _plain(field_value)

    if op is ConditionOperator.EQUALS:
        return actual == _plain(expected)
    if op is ConditionOperator.NOT_EQUALS:
        return actual != _plain(expected)
    if op in (ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN):
        left, right = _to_number(actual), _to_number(expected)
        if math.isnan(left) or math.isnan(right):
            return False
        return left > right if op is ConditionOperator.GREATER_THAN else left < right
    if op is ConditionOperator.CONTAINS:
        return str(_plain(expected)) in str(actual)
    if op is ConditionOperator.REGEX:
        compiled = _compile(str(expected))
        return bool(compiled and compiled.search(str(actual)))
    if op in (ConditionOperator.IN_LIST, ConditionOperator.NOT_IN_LIST):
        if isinstance(expected, (str, bytes)) or not isinstance(expected, Iterable):
            return False
        members = [_plain(item) for item in expected]
        if op is ConditionOperator.IN_LIST:
            return actual in members
        return actual not in members
    return False


def evaluate_conditions(
    conditions: Iterable[Any], context: Mapping[str, Any]
) -> bool:
    """
    Conjunction of conditions; an empty list is vacuously true.

    Each condition needs ``field_name``, ``operator`` and ``value``
    attributes (``RuleCondition`` and ``PatternCondition`` both qualify).
    """
    return all(
        evaluate_operator(
            condition.operator,
            resolve_field(condition.field_name, context),
            condition.value,
        )
        for condition in conditions
    )
