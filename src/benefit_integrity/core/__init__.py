"""
Core components for the Benefit Integrity Engine.
"""

from .models import (
    Address,
    BenefitsClaim,
    BusinessRule,
    BusinessRuleTrigger,
    ClaimantProfile,
    EmployerRecord,
    FraudCase,
    RiskAssessmentResult,
    RiskFactor,
    RiskLevel,
    RuleAction,
    RuleCondition,
)
from .config import Settings, settings
from .exceptions import (
    BenefitIntegrityError,
    CaseNotFoundError,
    CollaboratorError,
    InvalidStatusTransitionError,
    RuleNotFoundError,
)
from .logging_config import configure_logging
from .risk import determine_risk_level, severity_weight
from .rule_engine import RuleEngine
from .scheduler import PeriodicTask

__all__ = [
    # Models
    "Address",
    "BenefitsClaim",
    "BusinessRule",
    "BusinessRuleTrigger",
    "ClaimantProfile",
    "EmployerRecord",
    "FraudCase",
    "RiskAssessmentResult",
    "RiskFactor",
    "RiskLevel",
    "RuleAction",
    "RuleCondition",
    # Configuration
    "Settings",
    "configure_logging",
    "settings",
    # Errors
    "BenefitIntegrityError",
    "CaseNotFoundError",
    "CollaboratorError",
    "InvalidStatusTransitionError",
    "RuleNotFoundError",
    # Rule Engine
    "RuleEngine",
    "determine_risk_level",
    "severity_weight",
    # Scheduling
    "PeriodicTask",
]
