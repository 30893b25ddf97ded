"""
Default business-rule catalog.
Identity, wage, employer, behavioral and cross-reference checks.
"""

from ..core.models import (
    ActionType,
    BusinessRule,
    ConditionOperator,
    RuleAction,
    RuleCategory,
    RuleCondition,
    RuleSeverity,
    RuleType,
)
from ..core.rule_engine import RuleEngine
from ..integrations.lookups import FactProvider


def default_rules() -> list[BusinessRule]:
    """Build a fresh copy of the default rule set."""
    return [
        # Identity verification
        BusinessRule(
            rule_id="ID_001",
            rule_name="Duplicate SSN Check",
            rule_type=RuleType.FLAGGING,
            category=RuleCategory.IDENTITY,
            description="Flag claims with SSN already associated with active claim",
            conditions=[
                RuleCondition(
                    condition_id="C001",
                    field_name="ssn_usage_count",
                    operator=ConditionOperator.GREATER_THAN,
                    value=1,
                )
            ],
            actions=[
                RuleAction(
                    action_id="A001",
                    action_type=ActionType.SET_FLAG,
                    parameters={"flag": "DUPLICATE_SSN", "severity": "HIGH"},
                ),
                RuleAction(
                    action_id="A002",
                    action_type=ActionType.ADD_SCORE,
                    parameters={"score": 75},
                ),
            ],
            severity=RuleSeverity.ERROR,
        ),
        # Wage validation
        BusinessRule(
            rule_id="WAGE_001",
            rule_name="Excessive Wage Claims",
            rule_type=RuleType.SCORING,
            category=RuleCategory.WAGE,
            description="High risk score for claims with wages significantly above industry average",
            conditions=[
                RuleCondition(
                    condition_id="C002",
                    field_name="wage_to_industry_ratio",
                    operator=ConditionOperator.GREATER_THAN,
                    value=2.5,
                )
            ],
            actions=[
                RuleAction(
                    action_id="A003",
                    action_type=ActionType.ADD_SCORE,
                    parameters={"score": 50},
                ),
                RuleAction(
                    action_id="A004",
                    action_type=ActionType.SET_FLAG,
                    parameters={"flag": "EXCESSIVE_WAGES", "severity": "MEDIUM"},
                ),
            ],
            severity=RuleSeverity.WARNING,
        ),
        # Employer verification
        BusinessRule(
            rule_id="EMP_001",
            rule_name="High-Risk Employer",
            rule_type=RuleType.BLOCKING,
            category=RuleCategory.EMPLOYER,
            description="Block claims from employers flagged as high-risk",
            conditions=[
                RuleCondition(
                    condition_id="C003",
                    field_name="employer_risk_level",
                    operator=ConditionOperator.EQUALS,
                    value="CRITICAL",
                )
            ],
            actions=[
                RuleAction(
                    action_id="A005",
                    action_type=ActionType.BLOCK_CLAIM,
                    parameters={"reason": "HIGH_RISK_EMPLOYER"},
                ),
                RuleAction(
                    action_id="A006",
                    action_type=ActionType.CREATE_CASE,
                    parameters={"case_type": "EMPLOYER_FRAUD", "priority": "HIGH"},
                ),
            ],
            severity=RuleSeverity.CRITICAL,
        ),
        # Behavioral analysis
        BusinessRule(
            rule_id="BEH_001",
            rule_name="Rapid Multiple Claims",
            rule_type=RuleType.FLAGGING,
            category=RuleCategory.BEHAVIORAL,
            description="Flag claimants filing multiple claims in short timeframe",
            conditions=[
                RuleCondition(
                    condition_id="C004",
                    field_name="claims_last_30_days",
                    operator=ConditionOperator.GREATER_THAN,
                    value=3,
                )
            ],
            actions=[
                RuleAction(
                    action_id="A007",
                    action_type=ActionType.SET_FLAG,
                    parameters={"flag": "RAPID_FILING", "severity": "MEDIUM"},
                ),
                RuleAction(
                    action_id="A008",
                    action_type=ActionType.REQUIRE_VERIFICATION,
                    parameters={"verification_type": "IDENTITY_ENHANCED"},
                ),
            ],
            severity=RuleSeverity.WARNING,
        ),
        # Cross-reference
        BusinessRule(
            rule_id="XREF_001",
            rule_name="Deceased Person Check",
            rule_type=RuleType.BLOCKING,
            category=RuleCategory.CROSS_REFERENCE,
            description="Block claims from individuals in death registry",
            conditions=[
                RuleCondition(
                    condition_id="C005",
                    field_name="death_registry_match",
                    operator=ConditionOperator.EQUALS,
                    value=True,
                )
            ],
            actions=[
                RuleAction(
                    action_id="A009",
                    action_type=ActionType.BLOCK_CLAIM,
                    parameters={"reason": "DECEASED_PERSON"},
                ),
                RuleAction(
                    action_id="A010",
                    action_type=ActionType.CREATE_CASE,
                    parameters={"case_type": "IDENTITY_THEFT", "priority": "CRITICAL"},
                ),
            ],
            severity=RuleSeverity.CRITICAL,
        ),
    ]


def build_default_engine(fact_provider: FactProvider | None = None) -> RuleEngine:
    """Create a rule engine loaded with the default catalog."""
    return RuleEngine(rules=default_rules(), fact_provider=fact_provider)
