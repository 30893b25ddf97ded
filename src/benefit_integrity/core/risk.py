"""
Shared risk tables.

Severity weights, risk-level thresholds and per-category factor settings
live here so the rule engine, real-time scorer and orchestrator agree on
one mapping.
"""

from .models import RiskLevel, RuleSeverity

# Impact recorded on a rule-sourced risk factor. This is independent of
# any ADD_SCORE amount the rule contributes to the overall score.
SEVERITY_WEIGHTS: dict[RuleSeverity, int] = {
    RuleSeverity.CRITICAL: 100,
    RuleSeverity.ERROR: 75,
    RuleSeverity.WARNING: 50,
    RuleSeverity.INFO: 25,
}

# Lower score bound for each level, checked highest first.
RISK_LEVEL_THRESHOLDS: list[tuple[float, RiskLevel]] = [
    (200, RiskLevel.CRITICAL),
    (100, RiskLevel.HIGH),
    (50, RiskLevel.MEDIUM),
]

RISK_LEVEL_RANK: dict[RiskLevel, int] = {
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 4,
}

RULE_FACTOR_CONFIDENCE = 0.95

# Real-time scorer: (minimum sub-score to emit a factor, factor confidence)
BEHAVIORAL_FACTOR = (20, 0.85)
PATTERN_FACTOR = (30, 0.90)
ANOMALY_FACTOR = (25, 0.75)
LEARNING_FACTOR = (5, 0.70)


def severity_weight(severity: RuleSeverity | str) -> int:
    """Impact weight for a rule severity; unknown severities weigh 0."""
    try:
        return SEVERITY_WEIGHTS[RuleSeverity(severity)]
    except ValueError:
        return 0


def determine_risk_level(score: float, blocked: bool = False) -> RiskLevel:
    """Map a cumulative score to a risk level. Blocking forces CRITICAL."""
    if blocked:
        return RiskLevel.CRITICAL
    for threshold, level in RISK_LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return RiskLevel.LOW


def max_risk_level(*levels: RiskLevel) -> RiskLevel:
    """Highest of the given levels."""
    return max(levels, key=lambda level: RISK_LEVEL_RANK[level])


def average_confidence(confidences: list[float], default: float) -> float:
    """Mean confidence rounded to two places, or ``default`` when empty."""
    if not confidences:
        return default
    return round(sum(confidences) / len(confidences), 2)
