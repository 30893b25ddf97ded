"""
Fraud detection modules for the Benefit Integrity Engine.
"""

from .case_management import CaseManagementService
from .legacy import (
    LegacyClaimRecord,
    LegacyFraudAnalysis,
    LegacyFraudScorer,
    convert_legacy_record,
)
from .pattern_detection import (
    Detector,
    FraudScheme,
    PatternAlert,
    PatternDetectionEngine,
)
from .realtime_scoring import PatternCondition, RealTimeRiskScorer, RiskPattern
from .rules_catalog import build_default_engine, default_rules

__all__ = [
    "CaseManagementService",
    "Detector",
    "FraudScheme",
    "LegacyClaimRecord",
    "LegacyFraudAnalysis",
    "LegacyFraudScorer",
    "PatternAlert",
    "PatternCondition",
    "PatternDetectionEngine",
    "RealTimeRiskScorer",
    "RiskPattern",
    "build_default_engine",
    "convert_legacy_record",
    "default_rules",
]
