"""
Fact lookups consumed by the rule engine.

The rule engine is pure given its facts; the facts themselves (SSN reuse,
recent filing volume, death-registry status, wage ratios) come from a
``FactProvider``. ``InMemoryFactProvider`` answers from registered claims
and is the default for single-process use and tests.
"""

import logging
import threading
from datetime import timedelta
from typing import Protocol

from ..core.models import BenefitsClaim, ClaimStatus, EmployerRecord
from ..utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)


class FactProvider(Protocol):
    """Lookup collaborator for derived rule facts."""

    def ssn_usage_count(self, ssn: str) -> int: ...

    def wage_to_industry_ratio(
        self, claim: BenefitsClaim, employer: EmployerRecord | None
    ) -> float: ...

    def claims_last_30_days(self, claimant_id: str) -> int: ...

    def death_registry_match(self, ssn: str) -> bool: ...


class InMemoryFactProvider:
    """
    Answers fact lookups from an in-memory claim registry.

    Args:
        industry_average_wage: Annual wage used as the industry baseline
        deceased_ssns: SSN references present in the death registry
    """

    def __init__(
        self,
        industry_average_wage: float = 50000.0,
        deceased_ssns: set[str] | None = None,
    ) -> None:
        self.industry_average_wage = industry_average_wage
        self._deceased: set[str] = set(deceased_ssns or set())
        self._claims: dict[str, tuple[BenefitsClaim, str]] = {}
        self._lock = threading.RLock()

    def register_claim(self, claim: BenefitsClaim, ssn: str) -> None:
        """Record a claim and the SSN reference of its claimant."""
        with self._lock:
            self._claims[claim.claim_id] = (claim, ssn)

    def register_death(self, ssn: str) -> None:
        with self._lock:
            self._deceased.add(ssn)

    def ssn_usage_count(self, ssn: str) -> int:
        """Active claims carrying this SSN; never less than one."""
        with self._lock:
            count = sum(
                1
                for claim, claim_ssn in self._claims.values()
                if claim_ssn == ssn and claim.status == ClaimStatus.ACTIVE
            )
        return max(1, count)

    def wage_to_industry_ratio(
        self, claim: BenefitsClaim, employer: EmployerRecord | None
    ) -> float:
        """Annualised weekly benefit relative to the industry average."""
        if self.industry_average_wage <= 0:
            return 0.0
        return (claim.weekly_benefit_amount * 52) / self.industry_average_wage

    def claims_last_30_days(self, claimant_id: str) -> int:
        """Claims filed by the claimant in the trailing 30 days; at least one."""
        cutoff = utcnow() - timedelta(days=30)
        with self._lock:
            count = sum(
                1
                for claim, _ in self._claims.values()
                if claim.claimant_id == claimant_id
                and as_utc(claim.created_date) >= cutoff
            )
        return max(1, count)

    def death_registry_match(self, ssn: str) -> bool:
        with self._lock:
            return ssn in self._deceased
