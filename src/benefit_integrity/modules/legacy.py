"""
Legacy claim support.

Converts flat legacy claim records into the enterprise models, and keeps
the original quick-screen scorer that rates a legacy record on a 0-1 scale.
"""

import logging
import math
import random
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..core.config import Settings, settings as default_settings
from ..core.models import (
    Address,
    BenefitsClaim,
    ClaimantProfile,
    ClaimStatus,
    EmployerRecord,
    ProgramType,
)
from ..utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

LEGACY_USER = "LEGACY_SYSTEM"


class LegacyClaimRecord(BaseModel):
    """One row of the legacy claims export. All values arrive as text."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    claim_id: str | None = Field(default=None, alias="Claim_ID")
    claimant_id: str | None = Field(default=None, alias="Claimant_ID")
    name: str | None = Field(default=None, alias="Name")
    dob: str | None = Field(default=None, alias="DOB")
    ssn_hash: str | None = Field(default=None, alias="SSN_Hash")
    email: str | None = Field(default=None, alias="Email")
    phone: str | None = Field(default=None, alias="Phone")
    ip_address: str | None = Field(default=None, alias="IP_Address")
    device_id: str | None = Field(default=None, alias="Device_ID")
    employer_name: str | None = Field(default=None, alias="Employer_Name")
    employment_status: str | None = Field(default=None, alias="Employment_Status")
    wage_reported: str | None = Field(default=None, alias="Wage_Reported")
    claim_amount: str | None = Field(default=None, alias="Claim_Amount")
    claim_date: str | None = Field(default=None, alias="Claim_Date")
    justification_text: str | None = Field(default=None, alias="Justification_Text")

    @property
    def claim_amount_value(self) -> float:
        return parse_amount(self.claim_amount)

    @property
    def wage_reported_value(self) -> float:
        return parse_amount(self.wage_reported)


def parse_amount(value: Any) -> float:
    """Parse a legacy numeric field; blanks and garbage become 0."""
    try:
        number = float(str(value).replace(",", "").replace("$", "").strip())
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) or math.isinf(number) else number


def _parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return as_utc(datetime.fromisoformat(value.strip()))
    except ValueError:
        logger.debug("Unparseable legacy date %r", value)
        return None


def _as_record(record: "LegacyClaimRecord | Mapping[str, Any]") -> LegacyClaimRecord:
    if isinstance(record, LegacyClaimRecord):
        return record
    return LegacyClaimRecord.model_validate(
        {key: None if value is None else str(value) for key, value in record.items()}
    )


def _placeholder_address(street: str = "Legacy Address") -> Address:
    return Address(
        street_address1=street,
        city="Unknown",
        state="Unknown",
        zip_code="00000",
        country="US",
    )


@dataclass
class LegacyConversion:
    """Enterprise view of a legacy record."""

    claim: BenefitsClaim
    claimant: ClaimantProfile
    employer: EmployerRecord | None
    context: dict[str, Any] = field(default_factory=dict)


def convert_legacy_record(record: LegacyClaimRecord | Mapping[str, Any]) -> LegacyConversion:
    """
    Convert a flat legacy record to claim, claimant, employer and context.

    Args:
        record: ``LegacyClaimRecord`` or a mapping keyed by legacy column names

    Returns:
        LegacyConversion; ``employer`` is ``None`` without an employer name
    """
    record = _as_record(record)
    now = utcnow()
    suffix = uuid.uuid4().hex[:8].upper()

    claim_id = record.claim_id or f"LEGACY_{suffix}"
    claimant_id = record.claimant_id or f"CLAIMANT_{suffix}"
    amount = record.claim_amount_value
    filed = _parse_date(record.claim_date) or now
    employer_id = f"EMP_{suffix}" if record.employer_name else None

    claim = BenefitsClaim(
        claim_id=claim_id,
        claimant_id=claimant_id,
        case_number=f"CASE_{claim_id}",
        program_type=ProgramType.UI,
        benefit_year=str(now.year),
        weekly_benefit_amount=max(0.0, amount / 26),
        maximum_benefit_amount=max(0.0, amount),
        remaining_balance=max(0.0, amount),
        status=ClaimStatus.PENDING,
        effective_date=filed,
        expiration_date=now + timedelta(days=365),
        created_date=filed,
        created_by=LEGACY_USER,
        last_modified_by=LEGACY_USER,
        ip_address=record.ip_address,
        device_id=record.device_id,
        employer_id=employer_id,
    )

    name_parts = (record.name or "").split()
    claimant = ClaimantProfile(
        claimant_id=claimant_id,
        ssn=record.ssn_hash or "LEGACY_SSN",
        first_name=name_parts[0] if name_parts else "Unknown",
        last_name=name_parts[-1] if len(name_parts) > 1 else "Unknown",
        date_of_birth=record.dob or "1970-01-01",
        email_address=record.email or "unknown@legacy.com",
        phone_number=record.phone or "000-000-0000",
        mailing_address=_placeholder_address(),
        residence_address=_placeholder_address(),
    )

    employer = None
    if record.employer_name:
        employer = EmployerRecord(
            employer_id=employer_id,
            federal_ein="LEGACY_EIN",
            legal_name=record.employer_name,
            address=_placeholder_address("Legacy Employer Address"),
        )

    context = {
        "justification_text": record.justification_text,
        "ip_address": record.ip_address,
        "device_id": record.device_id,
        "employment_status": record.employment_status,
        "wage_reported": record.wage_reported,
        "legacy_claim_data": record.model_dump(by_alias=True),
    }
    return LegacyConversion(claim=claim, claimant=claimant, employer=employer, context=context)


class LegacyFraudAnalysis(BaseModel):
    claim_id: str
    fraud_score: float = Field(ge=0, le=1)
    fraud_label: str
    explanation: str
    flags: list[str] = Field(default_factory=list)
    recommendation: str
    confidence: float = Field(ge=0, le=1)
    analyzed_at: datetime = Field(default_factory=utcnow)


class LegacyFraudScorer:
    """
    Quick-screen scorer for legacy records.

    Scores start at 0.1 and accumulate fixed increments per red flag.
    ``jitter`` adds up to that much random noise; it defaults to the
    ``legacy_score_jitter`` setting.
    """

    SUSPICIOUS_EMAIL_MARKERS = ("tempmail", "10minute")

    def __init__(
        self,
        settings: Settings | None = None,
        jitter: float | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.jitter = self.settings.legacy_score_jitter if jitter is None else jitter
        self._rng = rng or random.Random(self.settings.simulation_seed)

    def analyze(self, record: LegacyClaimRecord | Mapping[str, Any]) -> LegacyFraudAnalysis:
        record = _as_record(record)
        score = self.calculate_score(record)
        flags = self.flags_for(record, score)
        claim_id = record.claim_id or "UNKNOWN"
        return LegacyFraudAnalysis(
            claim_id=claim_id,
            fraud_score=score,
            fraud_label=self.label_for(score),
            explanation=self.explain(claim_id, score, flags),
            flags=flags,
            recommendation=self.recommend(score),
            confidence=min(0.95, 0.6 + score * 0.4),
        )

    def analyze_many(
        self, records: list[LegacyClaimRecord | Mapping[str, Any]]
    ) -> list[LegacyFraudAnalysis]:
        return [self.analyze(record) for record in records]

    def _exceeds_wage(self, record: LegacyClaimRecord) -> bool:
        return record.claim_amount_value > record.wage_reported_value * 4

    def _suspicious_email(self, record: LegacyClaimRecord) -> bool:
        email = record.email or ""
        return any(marker in email for marker in self.SUSPICIOUS_EMAIL_MARKERS)

    @staticmethod
    def _local_ip(record: LegacyClaimRecord) -> bool:
        ip = record.ip_address or ""
        return ip.startswith("10.") or "127." in ip

    def calculate_score(self, record: LegacyClaimRecord) -> float:
        score = 0.1
        if self._exceeds_wage(record):
            score += 0.3
        if self._suspicious_email(record):
            score += 0.4
        phone = record.phone or ""
        if "555" in phone or len(phone) < 10:
            score += 0.2
        if self._local_ip(record):
            score += 0.25
        justification = record.justification_text
        if (
            "terminated" in (record.employment_status or "").lower()
            and justification
            and len(justification) < 20
        ):
            score += 0.3
        if self.jitter:
            score += self._rng.random() * self.jitter
        return min(1.0, max(0.0, score))

    def flags_for(self, record: LegacyClaimRecord, score: float) -> list[str]:
        flags = []
        if score > 0.7:
            flags.append("High Risk Score")
        if self._exceeds_wage(record):
            flags.append("Claim Amount Exceeds Expected Wage")
        if self._suspicious_email(record):
            flags.append("Suspicious Email Domain")
        if "555" in (record.phone or ""):
            flags.append("Invalid Phone Number Pattern")
        if self._local_ip(record):
            flags.append("Internal/Local IP Address")
        if not record.justification_text or len(record.justification_text) < 10:
            flags.append("Missing or Insufficient Justification")
        return flags

    @staticmethod
    def label_for(score: float) -> str:
        if score < 0.3:
            return "Low"
        if score < 0.6:
            return "Medium"
        if score < 0.8:
            return "High"
        return "Severe"

    @staticmethod
    def recommend(score: float) -> str:
        if score > 0.8:
            return "DENY - Immediate escalation to fraud investigation team"
        if score > 0.6:
            return "HOLD - Request additional documentation and identity verification"
        if score > 0.4:
            return "REVIEW - Secondary analyst review recommended"
        if score > 0.2:
            return "MONITOR - Approve with enhanced monitoring"
        return "APPROVE - Standard processing"

    @staticmethod
    def explain(claim_id: str, score: float, flags: list[str]) -> str:
        parts = [f"Claim {claim_id} has been flagged with a fraud score of {score * 100:.1f}%."]
        if flags:
            parts.append(f"Key concerns include: {', '.join(flags[:2])}.")
        if score > 0.7:
            parts.append("This claim requires immediate investigation.")
        elif score > 0.5:
            parts.append("This claim should be reviewed for potential fraud indicators.")
        else:
            parts.append("This claim appears to have minimal fraud risk.")
        return " ".join(parts)
