"""
Shared fixtures for the Benefit Integrity Engine tests.
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import pytest

from benefit_integrity.core.config import Settings
from benefit_integrity.core.models import (
    Address,
    BenefitsClaim,
    ClaimantProfile,
    RiskAssessmentResult,
    RiskFactor,
    RiskLevel,
)
from benefit_integrity.utils.timeutils import utcnow


def make_address(
    street: str = "100 Main St", city: str = "Springfield", zip_code: str = "62701"
) -> Address:
    return Address(street_address1=street, city=city, state="IL", zip_code=zip_code)


@pytest.fixture
def settings() -> Settings:
    """Settings that ignore any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def business_hours() -> datetime:
    """Yesterday at noon UTC, inside normal filing hours."""
    return (utcnow() - timedelta(days=1)).replace(hour=12, minute=0, second=0, microsecond=0)


@pytest.fixture
def make_claim(business_hours: datetime) -> Callable[..., BenefitsClaim]:
    def _make(
        claim_id: str = "CLM-001", claimant_id: str = "CLMT-001", **overrides: Any
    ) -> BenefitsClaim:
        data: dict[str, Any] = {
            "claim_id": claim_id,
            "claimant_id": claimant_id,
            "case_number": f"CASE-{claim_id}",
            "benefit_year": "2024",
            "weekly_benefit_amount": 450.0,
            "maximum_benefit_amount": 11700.0,
            "remaining_balance": 11700.0,
            "created_date": business_hours,
        }
        data.update(overrides)
        return BenefitsClaim(**data)

    return _make


@pytest.fixture
def make_claimant() -> Callable[..., ClaimantProfile]:
    def _make(
        claimant_id: str = "CLMT-001",
        ssn: str = "123-45-6789",
        account_age_days: int = 365,
        **overrides: Any,
    ) -> ClaimantProfile:
        data: dict[str, Any] = {
            "claimant_id": claimant_id,
            "ssn": ssn,
            "first_name": "Jordan",
            "last_name": "Rivera",
            "date_of_birth": "1985-04-12",
            "email_address": "jordan.rivera@example.com",
            "phone_number": "217-555-0142",
            "mailing_address": make_address(),
            "residence_address": make_address(),
            "risk_score": 10.0,
            "account_creation_date": utcnow() - timedelta(days=account_age_days),
        }
        data.update(overrides)
        return ClaimantProfile(**data)

    return _make


@pytest.fixture
def claim(make_claim: Callable[..., BenefitsClaim]) -> BenefitsClaim:
    return make_claim()


@pytest.fixture
def claimant(make_claimant: Callable[..., ClaimantProfile]) -> ClaimantProfile:
    return make_claimant()


@pytest.fixture
def make_assessment() -> Callable[..., RiskAssessmentResult]:
    def _make(
        risk_level: RiskLevel = RiskLevel.HIGH,
        score: float = 150.0,
        factor_names: tuple[str, ...] = (),
        claim_id: str = "CLM-001",
        claimant_id: str = "CLMT-001",
    ) -> RiskAssessmentResult:
        return RiskAssessmentResult(
            assessment_id=f"RISK_{claim_id}",
            claim_id=claim_id,
            claimant_id=claimant_id,
            overall_risk_score=score,
            risk_level=risk_level,
            risk_factors=[
                RiskFactor(
                    factor_id=f"F{i}",
                    factor_name=name,
                    category="TEST",
                    impact=50,
                    confidence=0.9,
                    description=name,
                )
                for i, name in enumerate(factor_names)
            ],
            requires_investigation=True,
            model_version="TEST",
            confidence_score=0.9,
        )

    return _make
