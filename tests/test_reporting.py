"""
Tests for fraud report building and formatting.
"""

import json
from datetime import timedelta

import pytest

from benefit_integrity.core.models import CaseStatus, RiskLevel
from benefit_integrity.engine import EnterpriseFraudAnalyzer
from benefit_integrity.integrations.text_oracle import KeywordTextOracle
from benefit_integrity.reporting.fraud_report import (
    CASE_COLUMNS,
    FraudReport,
    FraudReportBuilder,
    FraudReportFormatter,
)
from benefit_integrity.utils.timeutils import utcnow


@pytest.fixture
def analyzer(settings, make_claim, make_claimant) -> EnterpriseFraudAnalyzer:
    """Analyzer holding two identity theft cases and one organized fraud case."""
    analyzer = EnterpriseFraudAnalyzer(settings=settings, text_oracle=KeywordTextOracle())
    for i in range(2):
        analyzer.analyze(
            make_claim(f"CLM-D{i}", f"CLMT-D{i}"),
            make_claimant(f"CLMT-D{i}"),
            context={"death_registry_match": True},
        )
    analyzer.analyze(
        make_claim("CLM-R", "CLMT-R"),
        make_claimant("CLMT-R"),
        context={"ssn_usage_count": 2, "claims_last_30_days": 4, "justification_text": "cash asap"},
    )
    return analyzer


@pytest.fixture
def report(analyzer: EnterpriseFraudAnalyzer) -> FraudReport:
    return analyzer.generate_fraud_report()


class TestFraudReportBuilder:
    """Tests for FraudReportBuilder."""

    def test_summary(self, report: FraudReport) -> None:
        """Test case totals and losses."""
        summary = report.summary

        assert summary.total_cases == 3
        assert summary.open_cases == 3
        assert summary.high_priority_cases == 3
        assert summary.total_potential_loss == 3 * 450 * 26
        assert summary.recovery_rate == 0.0

    def test_breakdowns(self, report: FraudReport) -> None:
        assert report.cases_by_type == {"IDENTITY_THEFT": 2, "ORGANIZED_FRAUD": 1}
        assert report.cases_by_priority == {"CRITICAL": 2, "HIGH": 1}
        assert report.cases_by_status == {"OPEN": 3}

    def test_top_risk_factors(self, report: FraudReport) -> None:
        """Test factors are counted from recorded rule triggers."""
        assert report.top_risk_factors[0] == {"factor": "Deceased Person Check", "frequency": 2}
        assert {"factor": "Duplicate SSN Check", "frequency": 1} in report.top_risk_factors

    def test_rules_performance(self, report: FraudReport) -> None:
        performance = report.rules_performance

        assert performance.total_rules == 5
        assert performance.active_rules == 5
        assert performance.total_triggers == 4
        assert performance.top_performing_rules[0]["rule_id"] == "XREF_001"

    def test_recommendations(self, report: FraudReport) -> None:
        """Test the identity theft share recommendation and the standing one."""
        assert report.recommendations == [
            "Enhance identity verification processes",
            "Regular review of business rules effectiveness recommended",
        ]

    def test_recovery_rate(self, analyzer: EnterpriseFraudAnalyzer) -> None:
        case_id = analyzer.case_service.get_all_cases()[0].case_id
        analyzer.case_service.record_financials(case_id, actual_loss=4000, recovered_amount=1000)

        report = analyzer.generate_fraud_report()

        assert report.summary.actual_loss == 4000
        assert report.summary.recovery_rate == 0.25

    def test_status_counts_follow_workflow(self, analyzer: EnterpriseFraudAnalyzer) -> None:
        case_id = analyzer.case_service.get_all_cases()[0].case_id
        analyzer.case_service.update_status(case_id, CaseStatus.UNDER_INVESTIGATION, "INV_009")

        report = analyzer.generate_fraud_report()

        assert report.cases_by_status == {"OPEN": 2, "UNDER_INVESTIGATION": 1}
        assert report.summary.open_cases == 2

    def test_date_range(self, analyzer: EnterpriseFraudAnalyzer) -> None:
        """Test cases outside the range are excluded."""
        report = analyzer.generate_fraud_report(start=utcnow() + timedelta(days=1))

        assert report.summary.total_cases == 0
        assert report.cases == []
        assert report.recommendations == [
            "Regular review of business rules effectiveness recommended"
        ]

    def test_empty_store(self, settings) -> None:
        analyzer = EnterpriseFraudAnalyzer(settings=settings, text_oracle=KeywordTextOracle())

        report = FraudReportBuilder(analyzer.case_service, analyzer.rule_engine).build()

        assert report.summary.total_cases == 0
        assert report.cases_by_type == {}
        assert report.top_risk_factors == []


class TestFraudReportFormatter:
    """Tests for FraudReportFormatter."""

    def test_text(self, report: FraudReport) -> None:
        text = FraudReportFormatter(report).to_text()

        assert "BENEFIT INTEGRITY FRAUD REPORT" in text
        assert "Total Cases: 3" in text
        assert "IDENTITY_THEFT: 2" in text
        assert "END OF REPORT" in text

    def test_text_without_cases(self, report: FraudReport) -> None:
        text = FraudReportFormatter(report).to_text(include_cases=False)

        assert "CASES\n" not in text

    def test_json(self, report: FraudReport) -> None:
        """Test the JSON output parses back with the same totals."""
        data = json.loads(FraudReportFormatter(report).to_json())

        assert data["summary"]["total_cases"] == 3
        assert len(data["cases"]) == 3
        assert data["cases"][0]["priority"] == RiskLevel.CRITICAL.value

    def test_cases_frame(self, report: FraudReport) -> None:
        frame = FraudReportFormatter(report).cases_frame()

        assert list(frame.columns) == CASE_COLUMNS
        assert len(frame) == 3
        assert frame["fraud_score"].max() == 155
