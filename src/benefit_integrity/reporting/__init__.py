"""
Reporting components for the Benefit Integrity Engine.
"""

from .fraud_report import FraudReport, FraudReportBuilder, FraudReportFormatter

__all__ = [
    "FraudReport",
    "FraudReportBuilder",
    "FraudReportFormatter",
]
