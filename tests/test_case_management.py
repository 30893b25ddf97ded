"""
Tests for fraud case management.
"""

import pytest

from benefit_integrity.core.exceptions import (
    CaseNotFoundError,
    CollaboratorError,
    InvalidStatusTransitionError,
)
from benefit_integrity.core.models import (
    AlertStatus,
    AlertType,
    AuditAction,
    CaseStatus,
    CaseType,
    EvidenceType,
    MatchSourceType,
    MatchType,
    NoteType,
    RiskLevel,
)
from benefit_integrity.integrations.identity import IdentityMatch, InMemoryIdentityIndex
from benefit_integrity.modules.case_management import CaseManagementService


class _FlakyIdentityIndex(InMemoryIdentityIndex):
    def find_matches(self, claimant_id, source_type, match_type):
        if source_type == MatchSourceType.NAME:
            raise CollaboratorError("name index unavailable")
        return super().find_matches(claimant_id, source_type, match_type)


@pytest.fixture
def service(settings) -> CaseManagementService:
    return CaseManagementService(settings=settings)


@pytest.fixture
def open_case(service, make_assessment, claim, claimant):
    return service.create_case(make_assessment(), claim, claimant, "FRAUD_DETECTION_SYSTEM")


class TestCreateCase:
    """Tests for case creation."""

    def test_create_case(self, service: CaseManagementService, open_case) -> None:
        """Test a new case carries the assessment's data."""
        assert open_case.status == CaseStatus.OPEN
        assert open_case.priority == RiskLevel.HIGH
        assert open_case.fraud_score == 150
        assert open_case.potential_loss == 450 * 26
        assert open_case.related_claim_ids == ["CLM-001"]
        assert open_case.case_number.startswith("FC")
        assert open_case.case_number.endswith("000001")
        assert open_case.case_type == CaseType.ELIGIBILITY_FRAUD

    def test_initial_note_and_audit(self, service: CaseManagementService, open_case) -> None:
        """Test creation writes a general note and a CREATE audit entry."""
        note = open_case.investigation_notes[0]
        assert note.note_type == NoteType.GENERAL
        assert "Risk Level: HIGH, Score: 150" in note.content

        trail = service.get_audit_trail(open_case.case_id)
        assert [e.action for e in trail] == [AuditAction.CREATE]
        assert trail[0].system_generated is True

    def test_high_priority_alert(self, service: CaseManagementService, open_case) -> None:
        alerts = service.get_alerts()

        assert len(alerts) == 1
        assert alerts[0].alert_type == AlertType.FRAUD_THRESHOLD
        assert alerts[0].entity_id == open_case.case_id

    def test_medium_case_has_no_alert(self, service, make_assessment, claim, claimant) -> None:
        service.create_case(make_assessment(RiskLevel.MEDIUM, 60), claim, claimant, "USER")

        assert service.get_alerts() == []

    def test_case_numbers_sequential(self, service, make_assessment, claim, claimant) -> None:
        """Test repeated creation yields distinct, increasing case numbers."""
        first = service.create_case(make_assessment(), claim, claimant, "SYSTEM")
        second = service.create_case(make_assessment(), claim, claimant, "SYSTEM")

        assert first.case_id != second.case_id
        assert second.case_number[-6:] == "000002"

    @pytest.mark.parametrize(
        "factor_names, case_type",
        [
            (("Deceased Person Check", "Excessive Wage Claims"), CaseType.IDENTITY_THEFT),
            (("Excessive Wage Claims",), CaseType.WAGE_FALSIFICATION),
            (("High-Risk Employer",), CaseType.EMPLOYER_FRAUD),
            (("Rapid Multiple Claims",), CaseType.ORGANIZED_FRAUD),
            (("Cross-System Matches Found",), CaseType.ELIGIBILITY_FRAUD),
        ],
    )
    def test_case_type(self, make_assessment, factor_names, case_type) -> None:
        """Test case type follows the first matching keyword category."""
        assessment = make_assessment(factor_names=factor_names)
        assert CaseManagementService.determine_case_type(assessment) == case_type

    def test_investigator_pool(self, service, make_assessment, claim, claimant) -> None:
        """Test investigators come from the priority's pool, least loaded first."""
        cases = [
            service.create_case(make_assessment(RiskLevel.CRITICAL, 250), claim, claimant, "SYSTEM")
            for _ in range(3)
        ]

        assert [c.assigned_investigator for c in cases] == ["INV_009", "INV_010", "INV_009"]

    def test_returns_copy(self, service: CaseManagementService, open_case) -> None:
        open_case.investigation_notes.clear()

        assert len(service.get_case(open_case.case_id).investigation_notes) == 1


class TestStatusWorkflow:
    """Tests for case status changes."""

    def test_update_status(self, service: CaseManagementService, open_case) -> None:
        """Test a permitted move adds a decision note and audit entry."""
        assert service.update_status(
            open_case.case_id, CaseStatus.UNDER_INVESTIGATION, "INV_007", "Assigned"
        ) is True

        stored = service.get_case(open_case.case_id)
        assert stored.status == CaseStatus.UNDER_INVESTIGATION
        note = stored.investigation_notes[-1]
        assert note.note_type == NoteType.DECISION
        assert note.content == (
            "Case status changed from OPEN to UNDER_INVESTIGATION. Reason: Assigned"
        )
        entry = service.get_audit_trail(open_case.case_id)[-1]
        assert entry.old_values == {"status": "OPEN"}
        assert entry.new_values == {"status": "UNDER_INVESTIGATION"}

    def test_close_stamps_closure(self, service: CaseManagementService, open_case) -> None:
        service.update_status(open_case.case_id, CaseStatus.CLOSED, "INV_007", "Unfounded")

        stored = service.get_case(open_case.case_id)
        assert stored.closure_date is not None
        assert stored.closure_reason == "Unfounded"

    def test_illegal_transition(self, service: CaseManagementService, open_case) -> None:
        """Test the workflow rejects skipping investigation."""
        with pytest.raises(InvalidStatusTransitionError):
            service.update_status(open_case.case_id, CaseStatus.PENDING_REVIEW, "INV_007")

    def test_closed_is_terminal(self, service: CaseManagementService, open_case) -> None:
        service.update_status(open_case.case_id, CaseStatus.CLOSED, "INV_007")

        with pytest.raises(InvalidStatusTransitionError):
            service.update_status(open_case.case_id, CaseStatus.OPEN, "INV_007")

    def test_unenforced_transitions(self, settings, make_assessment, claim, claimant) -> None:
        service = CaseManagementService(
            settings=settings.model_copy(update={"enforce_case_transitions": False})
        )
        fraud_case = service.create_case(make_assessment(), claim, claimant, "SYSTEM")

        assert service.update_status(fraud_case.case_id, CaseStatus.REFERRED, "INV_007") is True

    def test_unknown_case(self, service: CaseManagementService) -> None:
        assert service.update_status("CASE_NOPE", CaseStatus.CLOSED, "INV_007") is False


class TestNotesAndEvidence:
    """Tests for notes, evidence and custody."""

    def test_add_note_unknown_case(self, service: CaseManagementService) -> None:
        with pytest.raises(CaseNotFoundError):
            service.add_note("CASE_NOPE", "INV_007", NoteType.CONTACT, "Called claimant")

    def test_evidence_chain_of_custody(self, service: CaseManagementService, open_case) -> None:
        """Test evidence starts its custody chain and transfers append to it."""
        evidence_id = service.add_evidence(
            open_case.case_id, EvidenceType.SYSTEM_LOG, "Login history", "INV_007"
        )
        service.transfer_evidence(open_case.case_id, evidence_id, "EVIDENCE_ROOM", "Storage")

        stored = service.get_case(open_case.case_id)
        chain = stored.evidence_items[0].chain_of_custody
        assert [r.custodian for r in chain] == ["INV_007", "EVIDENCE_ROOM"]
        assert chain[0].transfer_reason == "Initial collection"
        assert stored.investigation_notes[-1].content == (
            "Evidence collected: SYSTEM_LOG - Login history"
        )

    def test_transfer_unknown_evidence(self, service: CaseManagementService, open_case) -> None:
        with pytest.raises(KeyError):
            service.transfer_evidence(open_case.case_id, "EVID_NOPE", "X", "Y")

    def test_record_financials(self, service: CaseManagementService, open_case) -> None:
        updated = service.record_financials(open_case.case_id, actual_loss=2000, recovered_amount=500)

        assert updated.actual_loss == 2000
        assert updated.recovered_amount == 500
        with pytest.raises(ValueError):
            service.record_financials(open_case.case_id, actual_loss=-1)

    def test_assign_investigator(self, service: CaseManagementService, open_case) -> None:
        service.assign_investigator(open_case.case_id, "INV_001", "SUPERVISOR_1")

        assert service.get_cases_by_investigator("INV_001")[0].case_id == open_case.case_id


class TestCrossMatch:
    """Tests for identity cross-matching."""

    def test_matches_masked(self, settings) -> None:
        """Test match values are masked and implications attached."""
        index = InMemoryIdentityIndex()
        index.add_match("CLMT-001", IdentityMatch(MatchSourceType.SSN, MatchType.EXACT, "123456789"))
        index.add_match(
            "CLMT-001",
            IdentityMatch(MatchSourceType.ADDRESS, MatchType.EXACT, "100 Main St", confidence=0.7),
        )
        service = CaseManagementService(settings=settings, identity_service=index)

        matches = service.cross_match("CLMT-001")

        assert [m.source_type for m in matches] == [MatchSourceType.SSN, MatchSourceType.ADDRESS]
        assert matches[0].source_value == "*****6789"
        assert matches[0].match_confidence == 0.99
        assert matches[1].match_confidence == 0.7
        assert matches[0].risk_implications == ["Identity theft risk", "Multiple claim fraud"]

    def test_failing_source_skipped(self, settings) -> None:
        """Test one failing query does not lose the others."""
        index = _FlakyIdentityIndex()
        index.add_match("CLMT-001", IdentityMatch(MatchSourceType.SSN, MatchType.EXACT, "123456789"))
        service = CaseManagementService(settings=settings, identity_service=index)

        assert len(service.cross_match("CLMT-001")) == 1

    def test_unknown_implications(self) -> None:
        assert CaseManagementService.risk_implications(MatchSourceType.DEVICE_ID) == [
            "Unknown risk pattern"
        ]


class TestAlerts:
    """Tests for alert lifecycle."""

    def test_acknowledge_then_resolve(self, service: CaseManagementService, open_case) -> None:
        alert_id = service.get_alerts()[0].alert_id

        acknowledged = service.acknowledge_alert(alert_id, "INV_007")
        resolved = service.resolve_alert(alert_id, "INV_007")

        assert acknowledged.status == AlertStatus.ACKNOWLEDGED
        assert resolved.status == AlertStatus.RESOLVED
        assert service.get_alerts(AlertStatus.OPEN) == []

    def test_invalid_alert_move(self, service: CaseManagementService, open_case) -> None:
        """Test a dismissed alert cannot be acknowledged."""
        alert_id = service.get_alerts()[0].alert_id
        service.dismiss_alert(alert_id, "INV_007")

        with pytest.raises(ValueError):
            service.acknowledge_alert(alert_id, "INV_007")

    def test_unknown_alert(self, service: CaseManagementService) -> None:
        with pytest.raises(KeyError):
            service.resolve_alert("ALERT_NOPE", "INV_007")


class TestQueriesAndReports:
    """Tests for case queries and case reports."""

    def test_high_priority_ordering(self, service, make_assessment, claim, claimant) -> None:
        service.create_case(make_assessment(RiskLevel.HIGH), claim, claimant, "SYSTEM")
        service.create_case(make_assessment(RiskLevel.LOW, 10), claim, claimant, "SYSTEM")
        service.create_case(make_assessment(RiskLevel.CRITICAL, 300), claim, claimant, "SYSTEM")

        priorities = [c.priority for c in service.get_high_priority_cases()]

        assert priorities == [RiskLevel.CRITICAL, RiskLevel.HIGH]
        assert len(service.get_cases_by_status(CaseStatus.OPEN)) == 3
        assert len(service.get_cases_by_priority(RiskLevel.LOW)) == 1

    def test_case_report(self, service, make_assessment, claim, claimant) -> None:
        """Test the report summary and recommendations for a critical case."""
        fraud_case = service.create_case(
            make_assessment(RiskLevel.CRITICAL, 250), claim, claimant, "SYSTEM"
        )
        service.add_evidence(fraud_case.case_id, EvidenceType.DOCUMENT, "Pay stub", "INV_009")

        report = service.generate_case_report(fraud_case.case_id)

        summary = report["investigation_summary"]
        assert summary["total_notes"] == 2
        assert summary["evidence_count"] == 1
        assert summary["timeline_events"] == 1
        assert summary["days_open"] == 0
        assert report["recommendations"] == [
            "Immediate investigation required within 24 hours",
            "Contact law enforcement if criminal activity suspected",
            "Deny all related claims pending investigation",
            "Flag claimant account for enhanced monitoring",
        ]

    def test_case_report_unknown(self, service: CaseManagementService) -> None:
        assert service.generate_case_report("CASE_NOPE") is None
