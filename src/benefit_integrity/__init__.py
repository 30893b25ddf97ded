"""
Benefit Integrity Engine.

Fraud risk assessment and investigation case management for
unemployment-insurance benefit claims.
"""

from .core.models import (
    Address,
    BenefitsClaim,
    ClaimantProfile,
    EmployerRecord,
    FraudCase,
    RiskAssessmentResult,
    RiskFactor,
    RiskLevel,
)
from .core.config import Settings, settings
from .core.logging_config import configure_logging
from .core.rule_engine import RuleEngine
from .engine import EnterpriseFraudAnalyzer, analyze_claim
from .modules.case_management import CaseManagementService
from .modules.pattern_detection import PatternDetectionEngine
from .modules.realtime_scoring import RealTimeRiskScorer
from .reporting.fraud_report import FraudReportBuilder, FraudReportFormatter

__version__ = "0.1.0"

__all__ = [
    # Main Engine
    "EnterpriseFraudAnalyzer",
    "analyze_claim",
    # Models
    "Address",
    "BenefitsClaim",
    "ClaimantProfile",
    "EmployerRecord",
    "FraudCase",
    "RiskAssessmentResult",
    "RiskFactor",
    "RiskLevel",
    # Components
    "CaseManagementService",
    "PatternDetectionEngine",
    "RealTimeRiskScorer",
    "RuleEngine",
    # Reporting
    "FraudReportBuilder",
    "FraudReportFormatter",
    # Configuration
    "Settings",
    "configure_logging",
    "settings",
]
