"""
Core data models for the Benefit Integrity Engine.
Uses Pydantic for validation and serialization.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, computed_field, field_validator

from ..utils.timeutils import as_utc, utcnow


class RiskLevel(str, Enum):
    """Risk level shared by assessments, employers and case priority."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class RuleSeverity(str, Enum):
    """Severity levels for business rules."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ProgramType(str, Enum):
    """Unemployment benefit programs."""

    UI = "UI"
    PUA = "PUA"
    PEUC = "PEUC"
    DUA = "DUA"


class ClaimStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"
    DENIED = "DENIED"
    EXHAUSTED = "EXHAUSTED"


class VerificationStatus(str, Enum):
    VERIFIED = "VERIFIED"
    PENDING = "PENDING"
    FAILED = "FAILED"
    NOT_REQUIRED = "NOT_REQUIRED"


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    LOCKED = "LOCKED"
    SUSPENDED = "SUSPENDED"
    CLOSED = "CLOSED"


class EmployerStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class WageReportStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    UNDER_REVIEW = "UNDER_REVIEW"


class Address(BaseModel):
    """Postal address."""

    street_address1: str
    street_address2: str | None = None
    city: str
    state: str
    zip_code: str
    county: str | None = None
    country: str = "US"

    def normalized_key(self) -> str:
        """Street, city and zip lower-cased with whitespace collapsed."""
        parts = (self.street_address1, self.city, self.zip_code)
        return "|".join(" ".join(part.lower().split()) for part in parts)


class BenefitsClaim(BaseModel):
    """A benefit claim under evaluation."""

    claim_id: str
    claimant_id: str
    case_number: str
    program_type: ProgramType = ProgramType.UI
    benefit_year: str = ""
    weekly_benefit_amount: float = Field(default=0.0, ge=0)
    maximum_benefit_amount: float = Field(default=0.0, ge=0)
    total_amount_paid: float = Field(default=0.0, ge=0)
    remaining_balance: float = Field(default=0.0, ge=0)
    status: ClaimStatus = ClaimStatus.PENDING
    effective_date: datetime = Field(default_factory=utcnow)
    expiration_date: datetime | None = None
    last_certification_date: datetime | None = None
    created_date: datetime = Field(default_factory=utcnow)
    last_modified_date: datetime = Field(default_factory=utcnow)
    created_by: str = "SYSTEM"
    last_modified_by: str = "SYSTEM"

    # Channel data used by batch pattern detection
    ip_address: str | None = None
    device_id: str | None = None
    employer_id: str | None = None

    def has_balance_mismatch(self, tolerance: float = 0.01) -> bool:
        """Whether remaining balance differs from maximum minus paid."""
        expected = self.maximum_benefit_amount - self.total_amount_paid
        return abs(self.remaining_balance - expected) > tolerance


class ClaimantProfile(BaseModel):
    """The individual filing a claim."""

    claimant_id: str
    ssn: str
    first_name: str
    last_name: str
    middle_name: str | None = None
    date_of_birth: str
    gender: str = "X"
    email_address: str = ""
    phone_number: str = ""
    alternate_phone: str | None = None
    mailing_address: Address
    residence_address: Address
    preferred_language: str = "EN"
    risk_score: float = Field(default=0.0, ge=0, le=100)
    risk_flags: list[str] = Field(default_factory=list)
    identity_verification_status: VerificationStatus = VerificationStatus.PENDING
    last_login_date: datetime | None = None
    account_creation_date: datetime = Field(default_factory=utcnow)
    account_status: AccountStatus = AccountStatus.ACTIVE

    @field_validator("risk_flags")
    @classmethod
    def _unique_flags(cls, flags: list[str]) -> list[str]:
        return list(dict.fromkeys(flags))

    @property
    def full_name(self) -> str:
        names = [self.first_name, self.middle_name, self.last_name]
        return " ".join(name for name in names if name)


class WageRecord(BaseModel):
    record_id: str
    claimant_id: str
    employer_id: str
    quarter: str
    year: int
    gross_wages: float = Field(ge=0)
    hours_worked: float = Field(default=0.0, ge=0)
    separation_reason: str | None = None
    separation_date: datetime | None = None
    is_active: bool = True


class QuarterlyWageReport(BaseModel):
    report_id: str
    employer_id: str
    quarter: str
    year: int
    total_wages: float = Field(ge=0)
    total_employees: int = Field(default=0, ge=0)
    submitted_date: datetime = Field(default_factory=utcnow)
    submitted_by: str = "SYSTEM"
    status: WageReportStatus = WageReportStatus.SUBMITTED
    wage_records: list[WageRecord] = Field(default_factory=list)


class EmployerRecord(BaseModel):
    """Employer of record for a claim."""

    employer_id: str
    federal_ein: str
    legal_name: str
    trade_name: str | None = None
    naics_code: str = "999999"
    industry_description: str = "Unknown Industry"
    address: Address
    status: EmployerStatus = EmployerStatus.ACTIVE
    risk_level: RiskLevel = RiskLevel.LOW
    total_employees: int = Field(default=0, ge=0)
    quarterly_wage_reports: list[QuarterlyWageReport] = Field(default_factory=list)
    suspicious_activity_flags: list[str] = Field(default_factory=list)
    last_audit_date: datetime | None = None


class RiskFactor(BaseModel):
    """One named contributor to a risk score."""

    factor_id: str
    factor_name: str
    category: str
    impact: float
    confidence: float = Field(ge=0, le=1)
    description: str
    evidence: list[str] = Field(default_factory=list)


class RiskAssessmentResult(BaseModel):
    """Outcome of one risk evaluation."""

    assessment_id: str
    claim_id: str
    claimant_id: str
    assessment_date: datetime = Field(default_factory=utcnow)
    overall_risk_score: float = Field(ge=0)
    risk_level: RiskLevel
    risk_factors: list[RiskFactor] = Field(default_factory=list)
    recommended_actions: list[str] = Field(default_factory=list)
    requires_investigation: bool = False
    auto_approval_eligible: bool = False
    model_version: str
    confidence_score: float = Field(ge=0, le=1)
    processing_time_ms: float | None = None
    emerging_threats: list[str] = Field(default_factory=list)
    case_id: str | None = None


# ----------------------------------------------------------------------
# Business rules
# ----------------------------------------------------------------------


class RuleType(str, Enum):
    VALIDATION = "VALIDATION"
    SCORING = "SCORING"
    FLAGGING = "FLAGGING"
    BLOCKING = "BLOCKING"


class RuleCategory(str, Enum):
    IDENTITY = "IDENTITY"
    ELIGIBILITY = "ELIGIBILITY"
    WAGE = "WAGE"
    EMPLOYER = "EMPLOYER"
    BEHAVIORAL = "BEHAVIORAL"
    CROSS_REFERENCE = "CROSS_REFERENCE"


class ConditionOperator(str, Enum):
    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"
    CONTAINS = "CONTAINS"
    REGEX = "REGEX"
    IN_LIST = "IN_LIST"
    NOT_IN_LIST = "NOT_IN_LIST"


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class ActionType(str, Enum):
    SET_FLAG = "SET_FLAG"
    ADD_SCORE = "ADD_SCORE"
    BLOCK_CLAIM = "BLOCK_CLAIM"
    REQUIRE_VERIFICATION = "REQUIRE_VERIFICATION"
    CREATE_CASE = "CREATE_CASE"
    SEND_ALERT = "SEND_ALERT"


class RuleCondition(BaseModel):
    """A single ``(field, operator, value)`` test."""

    condition_id: str
    field_name: str
    operator: ConditionOperator
    value: Any = None
    # Recorded but not consulted: conditions are always combined with AND.
    logical_operator: LogicalOperator | None = None


class RuleAction(BaseModel):
    action_id: str
    action_type: ActionType
    parameters: dict[str, Any] = Field(default_factory=dict)


class BusinessRule(BaseModel):
    """A configurable business rule."""

    rule_id: str
    rule_name: str
    rule_type: RuleType
    category: RuleCategory
    description: str = ""
    conditions: list[RuleCondition] = Field(default_factory=list)
    actions: list[RuleAction] = Field(default_factory=list)
    severity: RuleSeverity = RuleSeverity.WARNING
    is_active: bool = True
    effective_date: datetime = Field(default_factory=utcnow)
    expiration_date: datetime | None = None
    created_by: str = "SYSTEM"
    last_modified_by: str = "SYSTEM"
    last_modified_date: datetime = Field(default_factory=utcnow)


class BusinessRuleTrigger(BaseModel):
    """Audit record of one rule firing."""

    trigger_id: str
    rule_id: str
    rule_name: str
    case_id: str | None = None
    claim_id: str | None = None
    trigger_date: datetime = Field(default_factory=utcnow)
    severity: RuleSeverity
    message: str
    actions_taken: list[str] = Field(default_factory=list)
    data_snapshot: dict[str, Any] = Field(default_factory=dict)


# ----------------------------------------------------------------------
# Case management
# ----------------------------------------------------------------------


class CaseType(str, Enum):
    IDENTITY_THEFT = "IDENTITY_THEFT"
    WAGE_FALSIFICATION = "WAGE_FALSIFICATION"
    ELIGIBILITY_FRAUD = "ELIGIBILITY_FRAUD"
    EMPLOYER_FRAUD = "EMPLOYER_FRAUD"
    ORGANIZED_FRAUD = "ORGANIZED_FRAUD"


class CaseStatus(str, Enum):
    OPEN = "OPEN"
    UNDER_INVESTIGATION = "UNDER_INVESTIGATION"
    PENDING_REVIEW = "PENDING_REVIEW"
    CLOSED = "CLOSED"
    REFERRED = "REFERRED"


class NoteType(str, Enum):
    GENERAL = "GENERAL"
    EVIDENCE = "EVIDENCE"
    CONTACT = "CONTACT"
    DECISION = "DECISION"
    REFERRAL = "REFERRAL"


class EvidenceType(str, Enum):
    DOCUMENT = "DOCUMENT"
    SYSTEM_LOG = "SYSTEM_LOG"
    WITNESS_STATEMENT = "WITNESS_STATEMENT"
    FINANCIAL_RECORD = "FINANCIAL_RECORD"
    DIGITAL_EVIDENCE = "DIGITAL_EVIDENCE"


class InvestigationNote(BaseModel):
    note_id: str
    case_id: str
    investigator_id: str
    note_type: NoteType
    content: str
    is_confidential: bool = False
    created_date: datetime = Field(default_factory=utcnow)
    last_modified_date: datetime = Field(default_factory=utcnow)


class CustodyRecord(BaseModel):
    """One hand-off in an evidence item's chain of custody."""

    record_id: str
    evidence_id: str
    custodian: str
    transfer_date: datetime = Field(default_factory=utcnow)
    transfer_reason: str
    digitally_signed: bool = True


class EvidenceItem(BaseModel):
    evidence_id: str
    case_id: str
    evidence_type: EvidenceType
    description: str
    file_path: str | None = None
    source_system: str | None = None
    collected_by: str
    collected_date: datetime = Field(default_factory=utcnow)
    chain_of_custody: list[CustodyRecord] = Field(default_factory=list)


class FraudCase(BaseModel):
    """A tracked fraud investigation."""

    case_id: str
    case_number: str
    case_type: CaseType
    priority: RiskLevel
    status: CaseStatus = CaseStatus.OPEN
    claimant_id: str
    related_claim_ids: list[str] = Field(default_factory=list)
    fraud_score: float = Field(default=0.0, ge=0)
    potential_loss: float = Field(default=0.0, ge=0)
    actual_loss: float = Field(default=0.0, ge=0)
    recovered_amount: float = Field(default=0.0, ge=0)
    assigned_investigator: str | None = None
    created_date: datetime = Field(default_factory=utcnow)
    last_updated_date: datetime = Field(default_factory=utcnow)
    closure_date: datetime | None = None
    closure_reason: str | None = None
    investigation_notes: list[InvestigationNote] = Field(default_factory=list)
    evidence_items: list[EvidenceItem] = Field(default_factory=list)
    business_rules_triggered: list[BusinessRuleTrigger] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def days_open(self) -> int:
        """Whole days elapsed since the case was created."""
        return (utcnow() - as_utc(self.created_date)).days


class AuditEntityType(str, Enum):
    CLAIM = "CLAIM"
    CLAIMANT = "CLAIMANT"
    CASE = "CASE"
    INVESTIGATION = "INVESTIGATION"
    BUSINESS_RULE = "BUSINESS_RULE"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    VIEW = "VIEW"
    APPROVE = "APPROVE"
    DENY = "DENY"


class AuditTrailEntry(BaseModel):
    audit_id: str
    entity_type: AuditEntityType
    entity_id: str
    action: AuditAction
    user_id: str
    user_name: str
    user_role: str
    timestamp: datetime = Field(default_factory=utcnow)
    ip_address: str | None = None
    user_agent: str | None = None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    reason: str | None = None
    system_generated: bool = False


class AlertType(str, Enum):
    FRAUD_THRESHOLD = "FRAUD_THRESHOLD"
    SYSTEM_ANOMALY = "SYSTEM_ANOMALY"
    DATA_QUALITY = "DATA_QUALITY"
    PERFORMANCE = "PERFORMANCE"
    SECURITY = "SECURITY"


class AlertStatus(str, Enum):
    OPEN = "OPEN"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"


class SystemAlert(BaseModel):
    alert_id: str
    alert_type: AlertType
    severity: RiskLevel
    title: str
    description: str
    entity_type: str | None = None
    entity_id: str | None = None
    triggered_by: str
    triggered_date: datetime = Field(default_factory=utcnow)
    acknowledged_by: str | None = None
    acknowledged_date: datetime | None = None
    resolved_by: str | None = None
    resolved_date: datetime | None = None
    status: AlertStatus = AlertStatus.OPEN
    metadata: dict[str, Any] = Field(default_factory=dict)


# ----------------------------------------------------------------------
# Cross-matching
# ----------------------------------------------------------------------


class MatchSourceType(str, Enum):
    SSN = "SSN"
    NAME = "NAME"
    ADDRESS = "ADDRESS"
    PHONE = "PHONE"
    EMAIL = "EMAIL"
    DEVICE_ID = "DEVICE_ID"
    IP_ADDRESS = "IP_ADDRESS"


class MatchType(str, Enum):
    EXACT = "EXACT"
    FUZZY = "FUZZY"
    PHONETIC = "PHONETIC"


class RelatedEntity(BaseModel):
    entity_type: str
    entity_id: str
    relationship_type: str
    strength: float = Field(ge=0, le=1)
    last_activity: datetime = Field(default_factory=utcnow)


class CrossMatchResult(BaseModel):
    match_id: str
    source_type: MatchSourceType
    source_value: str
    match_type: MatchType
    match_confidence: float = Field(ge=0, le=1)
    related_entities: list[RelatedEntity] = Field(default_factory=list)
    risk_implications: list[str] = Field(default_factory=list)
    identified_date: datetime = Field(default_factory=utcnow)
