"""
Fraud case management.

Turns high-risk assessments into tracked investigation cases and keeps
their notes, evidence custody chains, audit trail and alerts.
"""

import logging
import threading
import uuid
from collections import Counter
from typing import Any

from ..core.config import Settings, settings as default_settings
from ..core.exceptions import CaseNotFoundError, InvalidStatusTransitionError
from ..core.models import (
    AlertStatus,
    AlertType,
    AuditAction,
    AuditEntityType,
    AuditTrailEntry,
    BenefitsClaim,
    BusinessRuleTrigger,
    CaseStatus,
    CaseType,
    ClaimantProfile,
    CrossMatchResult,
    CustodyRecord,
    EvidenceItem,
    EvidenceType,
    FraudCase,
    InvestigationNote,
    MatchSourceType,
    MatchType,
    NoteType,
    RiskAssessmentResult,
    RiskLevel,
    SystemAlert,
)
from ..core.risk import RISK_LEVEL_RANK
from ..integrations.identity import IdentityMatchService, InMemoryIdentityIndex
from ..utils.redaction import mask_value
from ..utils.timeutils import utcnow

logger = logging.getLogger(__name__)

INVESTIGATOR_POOLS: dict[RiskLevel, list[str]] = {
    RiskLevel.LOW: ["INV_001", "INV_002", "INV_003"],
    RiskLevel.MEDIUM: ["INV_004", "INV_005", "INV_006"],
    RiskLevel.HIGH: ["INV_007", "INV_008"],
    RiskLevel.CRITICAL: ["INV_009", "INV_010"],
}

# Checked in order; the first category with a matching factor name wins.
CASE_TYPE_KEYWORDS: list[tuple[CaseType, tuple[str, ...]]] = [
    (CaseType.IDENTITY_THEFT, ("deceased", "identity")),
    (CaseType.WAGE_FALSIFICATION, ("wage", "employment")),
    (CaseType.EMPLOYER_FRAUD, ("employer",)),
    (CaseType.ORGANIZED_FRAUD, ("multiple", "pattern")),
]

CASE_TRANSITIONS: dict[CaseStatus, set[CaseStatus]] = {
    CaseStatus.OPEN: {CaseStatus.UNDER_INVESTIGATION, CaseStatus.CLOSED},
    CaseStatus.UNDER_INVESTIGATION: {
        CaseStatus.PENDING_REVIEW,
        CaseStatus.CLOSED,
        CaseStatus.REFERRED,
    },
    CaseStatus.PENDING_REVIEW: {
        CaseStatus.UNDER_INVESTIGATION,
        CaseStatus.CLOSED,
        CaseStatus.REFERRED,
    },
    CaseStatus.REFERRED: {CaseStatus.CLOSED},
    CaseStatus.CLOSED: set(),
}

# (source type, match type, default confidence) queried per cross-match
CROSS_MATCH_QUERIES: list[tuple[MatchSourceType, MatchType, float]] = [
    (MatchSourceType.SSN, MatchType.EXACT, 0.99),
    (MatchSourceType.NAME, MatchType.FUZZY, 0.85),
    (MatchSourceType.ADDRESS, MatchType.EXACT, 0.95),
]

RISK_IMPLICATIONS: dict[MatchSourceType, list[str]] = {
    MatchSourceType.SSN: ["Identity theft risk", "Multiple claim fraud"],
    MatchSourceType.NAME: ["Related party fraud", "Organized fraud ring"],
    MatchSourceType.ADDRESS: ["Address farming", "Mail fraud scheme"],
    MatchSourceType.PHONE: ["Contact fraud", "Phone number sharing"],
    MatchSourceType.EMAIL: ["Account takeover", "Email fraud pattern"],
}


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12].upper()}"


class CaseManagementService:
    """
    In-memory case store with audit trail and alerting.

    All mutating operations take the service lock; queries return copies
    so callers cannot alter stored cases.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        identity_service: IdentityMatchService | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.identity_service = identity_service or InMemoryIdentityIndex()
        self._lock = threading.RLock()
        self._cases: dict[str, FraudCase] = {}
        self._audit_trail: list[AuditTrailEntry] = []
        self._alerts: list[SystemAlert] = []
        self._case_sequence = 0

    # ------------------------------------------------------------------
    # Case lifecycle
    # ------------------------------------------------------------------

    def create_case(
        self,
        assessment: RiskAssessmentResult,
        claim: BenefitsClaim,
        claimant: ClaimantProfile,
        initiated_by: str,
        rules_triggered: list[BusinessRuleTrigger] | None = None,
    ) -> FraudCase:
        """
        Open a new fraud case from a risk assessment.

        Every call creates a distinct case, even for a claim that already
        has one.

        Args:
            assessment: Assessment that warranted the case
            claim: Claim under investigation
            claimant: Claimant who filed the claim
            initiated_by: User or system id opening the case
            rules_triggered: Rule triggers to attach as case evidence

        Returns:
            The stored case
        """
        with self._lock:
            self._case_sequence += 1
            fraud_case = FraudCase(
                case_id=_new_id("CASE"),
                case_number=f"FC{utcnow().year}{self._case_sequence:06d}",
                case_type=self.determine_case_type(assessment),
                priority=assessment.risk_level,
                claimant_id=claimant.claimant_id,
                related_claim_ids=[claim.claim_id],
                fraud_score=assessment.overall_risk_score,
                potential_loss=claim.weekly_benefit_amount * self.settings.potential_loss_weeks,
                assigned_investigator=self._pick_investigator(assessment.risk_level),
                business_rules_triggered=list(rules_triggered or []),
            )
            self._cases[fraud_case.case_id] = fraud_case

            self.add_note(
                fraud_case.case_id,
                "SYSTEM",
                NoteType.GENERAL,
                "Case created automatically based on risk assessment. "
                f"Risk Level: {assessment.risk_level.value}, "
                f"Score: {assessment.overall_risk_score:g}",
            )
            self._audit(
                entity_id=fraud_case.case_id,
                action=AuditAction.CREATE,
                user_id=initiated_by,
                user_name="SYSTEM",
                user_role="FRAUD_DETECTION_SYSTEM",
                new_values=fraud_case.model_dump(mode="json"),
                system_generated=True,
            )

            if fraud_case.priority in (RiskLevel.HIGH, RiskLevel.CRITICAL):
                self.create_alert(
                    alert_type=AlertType.FRAUD_THRESHOLD,
                    severity=fraud_case.priority,
                    title="High-Risk Fraud Case Created",
                    description=(
                        f"New fraud case {fraud_case.case_number} created "
                        f"with {fraud_case.priority.value} priority"
                    ),
                    triggered_by=initiated_by,
                    entity_type=AuditEntityType.CASE.value,
                    entity_id=fraud_case.case_id,
                    metadata={
                        "fraud_score": fraud_case.fraud_score,
                        "risk_level": assessment.risk_level.value,
                        "potential_loss": fraud_case.potential_loss,
                    },
                )

            logger.info(
                "Created case %s (%s, %s priority) for claim %s",
                fraud_case.case_number,
                fraud_case.case_type.value,
                fraud_case.priority.value,
                claim.claim_id,
            )
            return fraud_case.model_copy(deep=True)

    @staticmethod
    def determine_case_type(assessment: RiskAssessmentResult) -> CaseType:
        names = [factor.factor_name.lower() for factor in assessment.risk_factors]
        for case_type, keywords in CASE_TYPE_KEYWORDS:
            if any(keyword in name for name in names for keyword in keywords):
                return case_type
        return CaseType.ELIGIBILITY_FRAUD

    def update_status(
        self,
        case_id: str,
        new_status: CaseStatus,
        updated_by: str,
        reason: str | None = None,
    ) -> bool:
        """
        Move a case to a new status.

        Returns ``False`` for an unknown case. When case transitions are
        enforced, a move the workflow does not allow raises
        ``InvalidStatusTransitionError``.
        """
        new_status = CaseStatus(new_status)
        with self._lock:
            fraud_case = self._cases.get(case_id)
            if fraud_case is None:
                return False

            old_status = fraud_case.status
            if (
                self.settings.enforce_case_transitions
                and new_status not in CASE_TRANSITIONS[old_status]
            ):
                raise InvalidStatusTransitionError(case_id, old_status.value, new_status.value)

            now = utcnow()
            fraud_case.status = new_status
            fraud_case.last_updated_date = now
            if new_status == CaseStatus.CLOSED:
                fraud_case.closure_date = now
                fraud_case.closure_reason = reason

            message = f"Case status changed from {old_status.value} to {new_status.value}"
            if reason:
                message += f". Reason: {reason}"
            self.add_note(case_id, updated_by, NoteType.DECISION, message)
            self._audit(
                entity_id=case_id,
                action=AuditAction.UPDATE,
                user_id=updated_by,
                user_name=updated_by,
                user_role="INVESTIGATOR",
                old_values={"status": old_status.value},
                new_values={"status": new_status.value},
                reason=reason,
            )
        logger.info("Case %s moved %s -> %s", case_id, old_status.value, new_status.value)
        return True

    def add_note(
        self,
        case_id: str,
        investigator_id: str,
        note_type: NoteType,
        content: str,
        is_confidential: bool = False,
    ) -> str:
        with self._lock:
            fraud_case = self._require_case(case_id)
            note = InvestigationNote(
                note_id=_new_id("NOTE"),
                case_id=case_id,
                investigator_id=investigator_id,
                note_type=note_type,
                content=content,
                is_confidential=is_confidential,
            )
            fraud_case.investigation_notes.append(note)
            fraud_case.last_updated_date = note.created_date
            return note.note_id

    def add_evidence(
        self,
        case_id: str,
        evidence_type: EvidenceType,
        description: str,
        collected_by: str,
        file_path: str | None = None,
        source_system: str | None = None,
    ) -> str:
        """Attach evidence with a one-entry custody chain and log an EVIDENCE note."""
        with self._lock:
            fraud_case = self._require_case(case_id)
            evidence_id = _new_id("EVID")
            item = EvidenceItem(
                evidence_id=evidence_id,
                case_id=case_id,
                evidence_type=evidence_type,
                description=description,
                file_path=file_path,
                source_system=source_system,
                collected_by=collected_by,
                chain_of_custody=[
                    CustodyRecord(
                        record_id=_new_id("CUST"),
                        evidence_id=evidence_id,
                        custodian=collected_by,
                        transfer_reason="Initial collection",
                    )
                ],
            )
            fraud_case.evidence_items.append(item)
            fraud_case.last_updated_date = item.collected_date
            self.add_note(
                case_id,
                collected_by,
                NoteType.EVIDENCE,
                f"Evidence collected: {EvidenceType(evidence_type).value} - {description}",
            )
            return evidence_id

    def transfer_evidence(
        self,
        case_id: str,
        evidence_id: str,
        custodian: str,
        reason: str,
    ) -> CustodyRecord:
        """Append a custody transfer to an evidence item's chain."""
        with self._lock:
            fraud_case = self._require_case(case_id)
            item = next(
                (e for e in fraud_case.evidence_items if e.evidence_id == evidence_id),
                None,
            )
            if item is None:
                raise KeyError(f"Unknown evidence {evidence_id} on case {case_id}")
            record = CustodyRecord(
                record_id=_new_id("CUST"),
                evidence_id=evidence_id,
                custodian=custodian,
                transfer_reason=reason,
            )
            item.chain_of_custody.append(record)
            fraud_case.last_updated_date = record.transfer_date
            return record.model_copy()

    def record_financials(
        self,
        case_id: str,
        actual_loss: float | None = None,
        recovered_amount: float | None = None,
        updated_by: str = "SYSTEM",
    ) -> FraudCase:
        changes = {
            key: value
            for key, value in (("actual_loss", actual_loss), ("recovered_amount", recovered_amount))
            if value is not None
        }
        for key, value in changes.items():
            if value < 0:
                raise ValueError(f"{key} cannot be negative")

        with self._lock:
            fraud_case = self._require_case(case_id)
            old_values = {key: getattr(fraud_case, key) for key in changes}
            for key, value in changes.items():
                setattr(fraud_case, key, float(value))
            fraud_case.last_updated_date = utcnow()
            self._audit(
                entity_id=case_id,
                action=AuditAction.UPDATE,
                user_id=updated_by,
                user_name=updated_by,
                user_role="INVESTIGATOR",
                old_values=old_values,
                new_values=changes,
                reason="Financial outcome recorded",
            )
            return fraud_case.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Investigators
    # ------------------------------------------------------------------

    def _pick_investigator(self, level: RiskLevel) -> str:
        """Least-loaded investigator in the level's pool."""
        pool = INVESTIGATOR_POOLS.get(level, INVESTIGATOR_POOLS[RiskLevel.MEDIUM])
        workload = Counter(
            c.assigned_investigator
            for c in self._cases.values()
            if c.status != CaseStatus.CLOSED
        )
        return min(pool, key=lambda investigator: workload[investigator])

    def assign_investigator(
        self, case_id: str, investigator_id: str, assigned_by: str
    ) -> FraudCase:
        with self._lock:
            fraud_case = self._require_case(case_id)
            previous = fraud_case.assigned_investigator
            fraud_case.assigned_investigator = investigator_id
            fraud_case.last_updated_date = utcnow()
            self._audit(
                entity_id=case_id,
                action=AuditAction.UPDATE,
                user_id=assigned_by,
                user_name=assigned_by,
                user_role="SUPERVISOR",
                old_values={"assigned_investigator": previous},
                new_values={"assigned_investigator": investigator_id},
                reason="Investigator reassigned",
            )
            return fraud_case.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Cross-matching
    # ------------------------------------------------------------------

    def cross_match(self, claimant_id: str) -> list[CrossMatchResult]:
        """
        Query the identity service for SSN, name and address matches.

        A failing identity source yields no matches for that query.
        """
        results = []
        for source_type, match_type, default_confidence in CROSS_MATCH_QUERIES:
            try:
                matches = self.identity_service.find_matches(
                    claimant_id, source_type, match_type
                )
            except Exception as e:
                logger.warning(
                    "Identity cross-match %s/%s failed for %s: %s",
                    source_type.value,
                    match_type.value,
                    claimant_id,
                    e,
                )
                continue

            for match in matches:
                confidence = match.confidence if match.confidence is not None else default_confidence
                results.append(
                    CrossMatchResult(
                        match_id=_new_id("MATCH"),
                        source_type=match.source_type,
                        source_value=mask_value(match.source_value),
                        match_type=match.match_type,
                        match_confidence=confidence,
                        related_entities=list(match.related_entities),
                        risk_implications=self.risk_implications(match.source_type),
                    )
                )
        return results

    @staticmethod
    def risk_implications(source_type: MatchSourceType) -> list[str]:
        return list(RISK_IMPLICATIONS.get(source_type, ["Unknown risk pattern"]))

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    def create_alert(
        self,
        alert_type: AlertType,
        severity: RiskLevel,
        title: str,
        description: str,
        triggered_by: str,
        entity_type: str | None = None,
        entity_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> SystemAlert:
        alert = SystemAlert(
            alert_id=_new_id("ALERT"),
            alert_type=alert_type,
            severity=severity,
            title=title,
            description=description,
            entity_type=entity_type,
            entity_id=entity_id,
            triggered_by=triggered_by,
            metadata=metadata or {},
        )
        with self._lock:
            self._alerts.append(alert)
        logger.info("Alert raised: %s (%s)", title, severity.value)
        return alert.model_copy(deep=True)

    def acknowledge_alert(self, alert_id: str, user_id: str) -> SystemAlert:
        with self._lock:
            alert = self._transition_alert(alert_id, AlertStatus.ACKNOWLEDGED, {AlertStatus.OPEN})
            alert.acknowledged_by = user_id
            alert.acknowledged_date = utcnow()
            return alert.model_copy(deep=True)

    def resolve_alert(self, alert_id: str, user_id: str) -> SystemAlert:
        with self._lock:
            alert = self._transition_alert(
                alert_id,
                AlertStatus.RESOLVED,
                {AlertStatus.OPEN, AlertStatus.ACKNOWLEDGED},
            )
            alert.resolved_by = user_id
            alert.resolved_date = utcnow()
            return alert.model_copy(deep=True)

    def dismiss_alert(self, alert_id: str, user_id: str) -> SystemAlert:
        with self._lock:
            alert = self._transition_alert(
                alert_id,
                AlertStatus.DISMISSED,
                {AlertStatus.OPEN, AlertStatus.ACKNOWLEDGED},
            )
            alert.resolved_by = user_id
            alert.resolved_date = utcnow()
            return alert.model_copy(deep=True)

    def _transition_alert(
        self, alert_id: str, new_status: AlertStatus, allowed_from: set[AlertStatus]
    ) -> SystemAlert:
        alert = next((a for a in self._alerts if a.alert_id == alert_id), None)
        if alert is None:
            raise KeyError(f"Unknown alert: {alert_id}")
        if alert.status not in allowed_from:
            raise ValueError(
                f"Alert {alert_id} cannot move from {alert.status.value} to {new_status.value}"
            )
        alert.status = new_status
        return alert

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_case(self, case_id: str) -> FraudCase | None:
        with self._lock:
            fraud_case = self._cases.get(case_id)
            return fraud_case.model_copy(deep=True) if fraud_case else None

    def get_all_cases(self) -> list[FraudCase]:
        with self._lock:
            return [c.model_copy(deep=True) for c in self._cases.values()]

    def get_cases_by_status(self, status: CaseStatus) -> list[FraudCase]:
        return [c for c in self.get_all_cases() if c.status == status]

    def get_cases_by_investigator(self, investigator_id: str) -> list[FraudCase]:
        return [c for c in self.get_all_cases() if c.assigned_investigator == investigator_id]

    def get_cases_by_priority(self, priority: RiskLevel) -> list[FraudCase]:
        return [c for c in self.get_all_cases() if c.priority == priority]

    def get_high_priority_cases(self) -> list[FraudCase]:
        """HIGH and CRITICAL cases, CRITICAL first."""
        cases = [
            c for c in self.get_all_cases()
            if c.priority in (RiskLevel.HIGH, RiskLevel.CRITICAL)
        ]
        return sorted(cases, key=lambda c: RISK_LEVEL_RANK[c.priority], reverse=True)

    def get_audit_trail(self, entity_id: str | None = None) -> list[AuditTrailEntry]:
        with self._lock:
            return [
                entry.model_copy(deep=True)
                for entry in self._audit_trail
                if entity_id is None or entry.entity_id == entity_id
            ]

    def get_alerts(self, status: AlertStatus | None = None) -> list[SystemAlert]:
        with self._lock:
            return [
                alert.model_copy(deep=True)
                for alert in self._alerts
                if status is None or alert.status == status
            ]

    def generate_case_report(self, case_id: str) -> dict[str, Any] | None:
        """Summary of a case's investigation, or ``None`` for an unknown case."""
        with self._lock:
            fraud_case = self._cases.get(case_id)
            if fraud_case is None:
                return None
            fraud_case = fraud_case.model_copy(deep=True)
            audit_entries = self.get_audit_trail(case_id)

        return {
            "case": fraud_case,
            "investigation_summary": {
                "total_notes": len(fraud_case.investigation_notes),
                "evidence_count": len(fraud_case.evidence_items),
                "timeline_events": len(audit_entries),
                "days_open": fraud_case.days_open,
            },
            "investigation_notes": fraud_case.investigation_notes,
            "evidence": fraud_case.evidence_items,
            "audit_trail": audit_entries,
            "recommendations": self.case_recommendations(fraud_case),
        }

    @staticmethod
    def case_recommendations(fraud_case: FraudCase) -> list[str]:
        recommendations = []
        if fraud_case.status == CaseStatus.OPEN and fraud_case.priority == RiskLevel.CRITICAL:
            recommendations += [
                "Immediate investigation required within 24 hours",
                "Contact law enforcement if criminal activity suspected",
            ]
        if fraud_case.fraud_score > 150:
            recommendations += [
                "Deny all related claims pending investigation",
                "Flag claimant account for enhanced monitoring",
            ]
        if fraud_case.potential_loss > 50000:
            recommendations += [
                "Escalate to senior investigator",
                "Consider civil recovery proceedings",
            ]
        return recommendations

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_case(self, case_id: str) -> FraudCase:
        fraud_case = self._cases.get(case_id)
        if fraud_case is None:
            raise CaseNotFoundError(case_id)
        return fraud_case

    def _audit(
        self,
        entity_id: str,
        action: AuditAction,
        user_id: str,
        user_name: str,
        user_role: str,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        reason: str | None = None,
        system_generated: bool = False,
    ) -> None:
        self._audit_trail.append(
            AuditTrailEntry(
                audit_id=_new_id("AUDIT"),
                entity_type=AuditEntityType.CASE,
                entity_id=entity_id,
                action=action,
                user_id=user_id,
                user_name=user_name,
                user_role=user_role,
                old_values=old_values,
                new_values=new_values,
                reason=reason,
                system_generated=system_generated,
            )
        )
