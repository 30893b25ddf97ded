"""
Fraud Report Module.
Aggregates fraud cases and rule activity into management reports.
"""

import json
from collections import Counter
from datetime import datetime
from typing import Any

import pandas as pd
from pydantic import BaseModel, Field

from ..core.models import CaseType, FraudCase, RiskLevel
from ..core.rule_engine import RuleEngine
from ..modules.case_management import CaseManagementService
from ..utils.timeutils import as_utc, utcnow

CASE_COLUMNS = [
    "case_id",
    "case_number",
    "case_type",
    "priority",
    "status",
    "claimant_id",
    "fraud_score",
    "potential_loss",
    "actual_loss",
    "recovered_amount",
    "assigned_investigator",
    "created_date",
    "days_open",
]


class ReportSummary(BaseModel):
    total_cases: int = 0
    open_cases: int = 0
    high_priority_cases: int = 0
    total_potential_loss: float = 0.0
    actual_loss: float = 0.0
    recovered_amount: float = 0.0
    recovery_rate: float = 0.0


class RulesPerformance(BaseModel):
    total_rules: int = 0
    active_rules: int = 0
    total_triggers: int = 0
    top_performing_rules: list[dict[str, Any]] = Field(default_factory=list)


class FraudReport(BaseModel):
    """Point-in-time summary of the case store."""

    report_id: str
    generated_at: datetime = Field(default_factory=utcnow)
    date_range_start: datetime | None = None
    date_range_end: datetime | None = None
    summary: ReportSummary = Field(default_factory=ReportSummary)
    cases_by_status: dict[str, int] = Field(default_factory=dict)
    cases_by_type: dict[str, int] = Field(default_factory=dict)
    cases_by_priority: dict[str, int] = Field(default_factory=dict)
    top_risk_factors: list[dict[str, Any]] = Field(default_factory=list)
    rules_performance: RulesPerformance = Field(default_factory=RulesPerformance)
    recommendations: list[str] = Field(default_factory=list)
    cases: list[dict[str, Any]] = Field(default_factory=list)


def case_rows(cases: list[FraudCase]) -> list[dict[str, Any]]:
    """One plain-dict row per case."""
    return [
        {
            "case_id": c.case_id,
            "case_number": c.case_number,
            "case_type": c.case_type.value,
            "priority": c.priority.value,
            "status": c.status.value,
            "claimant_id": c.claimant_id,
            "fraud_score": c.fraud_score,
            "potential_loss": c.potential_loss,
            "actual_loss": c.actual_loss,
            "recovered_amount": c.recovered_amount,
            "assigned_investigator": c.assigned_investigator,
            "created_date": as_utc(c.created_date).isoformat(),
            "days_open": c.days_open,
        }
        for c in cases
    ]


def cases_frame(cases: list[FraudCase]) -> pd.DataFrame:
    return pd.DataFrame(case_rows(cases), columns=CASE_COLUMNS)


class FraudReportBuilder:
    """
    Builder for fraud reports over a case service and rule engine.
    """

    TOP_RULES = 5
    TOP_FACTORS = 5
    CRITICAL_CAPACITY = 10
    IDENTITY_THEFT_SHARE = 0.3

    def __init__(self, case_service: CaseManagementService, rule_engine: RuleEngine) -> None:
        self.case_service = case_service
        self.rule_engine = rule_engine

    def build(self, start: datetime | None = None, end: datetime | None = None) -> FraudReport:
        """
        Build a report for cases created within the date range.

        Args:
            start: Earliest case creation date, inclusive
            end: Latest case creation date, inclusive

        Returns:
            The assembled report
        """
        cases = self._cases_in_range(start, end)
        rows = case_rows(cases)
        frame = pd.DataFrame(rows, columns=CASE_COLUMNS)

        return FraudReport(
            report_id=f"FRAUD_REPORT_{utcnow().strftime('%Y%m%d%H%M%S%f')}",
            date_range_start=start,
            date_range_end=end,
            summary=self._summary(frame),
            cases_by_status=_counts(frame, "status"),
            cases_by_type=_counts(frame, "case_type"),
            cases_by_priority=_counts(frame, "priority"),
            top_risk_factors=self._top_risk_factors(cases),
            rules_performance=self._rules_performance(),
            recommendations=self._recommendations(frame),
            cases=rows,
        )

    def _cases_in_range(self, start: datetime | None, end: datetime | None) -> list[FraudCase]:
        cases = self.case_service.get_all_cases()
        if start is not None:
            cases = [c for c in cases if as_utc(c.created_date) >= as_utc(start)]
        if end is not None:
            cases = [c for c in cases if as_utc(c.created_date) <= as_utc(end)]
        return cases

    @staticmethod
    def _summary(frame: pd.DataFrame) -> ReportSummary:
        if frame.empty:
            return ReportSummary()
        potential = float(frame["potential_loss"].sum())
        actual = float(frame["actual_loss"].sum())
        recovered = float(frame["recovered_amount"].sum())
        high_priority = frame["priority"].isin([RiskLevel.HIGH.value, RiskLevel.CRITICAL.value])
        return ReportSummary(
            total_cases=len(frame),
            open_cases=int((frame["status"] == "OPEN").sum()),
            high_priority_cases=int(high_priority.sum()),
            total_potential_loss=potential,
            actual_loss=actual,
            recovered_amount=recovered,
            recovery_rate=round(recovered / actual, 4) if actual else 0.0,
        )

    def _top_risk_factors(self, cases: list[FraudCase]) -> list[dict[str, Any]]:
        counts = Counter(
            trigger.rule_name
            for c in cases
            for trigger in c.business_rules_triggered
        )
        return [
            {"factor": name, "frequency": count}
            for name, count in counts.most_common(self.TOP_FACTORS)
        ]

    def _rules_performance(self) -> RulesPerformance:
        performance = self.rule_engine.rule_performance()
        ranked = sorted(performance, key=lambda r: r["trigger_count"], reverse=True)
        return RulesPerformance(
            total_rules=len(performance),
            active_rules=sum(1 for r in performance if r["is_active"]),
            total_triggers=sum(r["trigger_count"] for r in performance),
            top_performing_rules=[
                {
                    "rule_id": r["rule_id"],
                    "rule_name": r["rule_name"],
                    "trigger_count": r["trigger_count"],
                }
                for r in ranked[: self.TOP_RULES]
            ],
        )

    def _recommendations(self, frame: pd.DataFrame) -> list[str]:
        recommendations = []
        if not frame.empty:
            critical = int((frame["priority"] == RiskLevel.CRITICAL.value).sum())
            identity_theft = int((frame["case_type"] == CaseType.IDENTITY_THEFT.value).sum())
            if critical > self.CRITICAL_CAPACITY:
                recommendations.append(
                    "Consider increasing investigator capacity for critical cases"
                )
            if identity_theft > len(frame) * self.IDENTITY_THEFT_SHARE:
                recommendations.append("Enhance identity verification processes")
        recommendations.append("Regular review of business rules effectiveness recommended")
        return recommendations


def _counts(frame: pd.DataFrame, column: str) -> dict[str, int]:
    return {str(key): int(value) for key, value in frame[column].value_counts().items()}


class FraudReportFormatter:
    """
    Formats fraud reports for text, dict/JSON and tabular output.
    """

    def __init__(self, report: FraudReport) -> None:
        self.report = report

    def to_text(self, include_cases: bool = True) -> str:
        """
        Format the report as plain text.

        Args:
            include_cases: Whether to list individual cases

        Returns:
            Formatted text report
        """
        report = self.report
        summary = report.summary
        lines: list[str] = []

        lines.append("=" * 70)
        lines.append("BENEFIT INTEGRITY FRAUD REPORT")
        lines.append("=" * 70)
        lines.append("")
        lines.append(f"Report ID: {report.report_id}")
        lines.append(f"Generated: {report.generated_at.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        if report.date_range_start or report.date_range_end:
            start = report.date_range_start.date() if report.date_range_start else "-"
            end = report.date_range_end.date() if report.date_range_end else "-"
            lines.append(f"Period: {start} to {end}")
        lines.append("")

        lines.append("-" * 70)
        lines.append("SUMMARY")
        lines.append("-" * 70)
        lines.append(f"Total Cases: {summary.total_cases}")
        lines.append(f"  - Open: {summary.open_cases}")
        lines.append(f"  - High Priority: {summary.high_priority_cases}")
        lines.append("")
        lines.append(f"Potential Loss: ${summary.total_potential_loss:,.2f}")
        lines.append(f"Actual Loss: ${summary.actual_loss:,.2f}")
        lines.append(f"Recovered: ${summary.recovered_amount:,.2f}")
        lines.append("")

        for title, counts in (
            ("CASES BY STATUS", report.cases_by_status),
            ("CASES BY TYPE", report.cases_by_type),
            ("CASES BY PRIORITY", report.cases_by_priority),
        ):
            if counts:
                lines.append("-" * 70)
                lines.append(title)
                lines.append("-" * 70)
                for key, count in counts.items():
                    lines.append(f"  {key}: {count}")
                lines.append("")

        performance = report.rules_performance
        lines.append("-" * 70)
        lines.append("BUSINESS RULES")
        lines.append("-" * 70)
        lines.append(
            f"Active Rules: {performance.active_rules}/{performance.total_rules}, "
            f"Triggers: {performance.total_triggers}"
        )
        for rule in performance.top_performing_rules:
            lines.append(f"  {rule['rule_id']} {rule['rule_name']}: {rule['trigger_count']}")
        lines.append("")

        if include_cases and report.cases:
            lines.append("-" * 70)
            lines.append("CASES")
            lines.append("-" * 70)
            for row in report.cases[:20]:
                lines.append(
                    f"  {row['case_number']} [{row['priority']}] {row['case_type']} "
                    f"{row['status']} score={row['fraud_score']:.0f}"
                )
            if len(report.cases) > 20:
                lines.append(f"  ... and {len(report.cases) - 20} more")
            lines.append("")

        lines.append("-" * 70)
        lines.append("RECOMMENDATIONS")
        lines.append("-" * 70)
        for recommendation in report.recommendations:
            lines.append(f"  - {recommendation}")
        lines.append("")
        lines.append("=" * 70)
        lines.append("END OF REPORT")
        lines.append("=" * 70)

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return self.report.model_dump(mode="json")

    def to_json(self, indent: int = 2) -> str:
        """
        Convert the report to JSON.

        Args:
            indent: JSON indentation level

        Returns:
            JSON string representation
        """
        return json.dumps(self.to_dict(), indent=indent)

    def cases_frame(self) -> pd.DataFrame:
        """Cases in the report as a DataFrame."""
        return pd.DataFrame(self.report.cases, columns=CASE_COLUMNS)
