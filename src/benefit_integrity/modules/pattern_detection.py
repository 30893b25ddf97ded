"""
Pattern Detection Engine.

Runs a catalog of known fraud-scheme detectors over a batch of claims and
claimants, and clusters the batch to surface emerging patterns that are
not yet in the catalog.
"""

import logging
import random
import statistics
import threading
import uuid
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Protocol, TypeVar

from pydantic import BaseModel, Field

from ..core.config import Settings, settings as default_settings
from ..core.models import BenefitsClaim, ClaimantProfile, RiskLevel
from ..core.scheduler import PeriodicTask
from ..utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

BASE_ACTIONS = [
    "Flag all affected claims for manual review",
    "Notify fraud investigation team",
    "Document scheme characteristics for future detection",
]

EMERGING_ACTIONS = [
    "Investigate pattern for potential new fraud scheme",
    "Analyze common characteristics among flagged claims",
    "Consider creating new detection rules",
]


@dataclass
class DetectionBatch:
    """Claims and claimants examined together in one detection pass."""

    claims: list[BenefitsClaim]
    claimants: list[ClaimantProfile]
    now: datetime = field(default_factory=utcnow)

    def claims_for(self, claimant_ids: set[str]) -> list[str]:
        return [c.claim_id for c in self.claims if c.claimant_id in claimant_ids]


def group_by(items: Iterable[T], key: Callable[[T], Hashable | None]) -> dict[Hashable, list[T]]:
    """Group items by key, skipping items whose key is ``None`` or empty."""
    groups: dict[Hashable, list[T]] = {}
    for item in items:
        group_key = key(item)
        if group_key in (None, ""):
            continue
        groups.setdefault(group_key, []).append(item)
    return groups


# ----------------------------------------------------------------------
# Detectors
# ----------------------------------------------------------------------


class Detector(Protocol):
    """Named batch predicate referenced by scheme definitions."""

    name: str

    def evaluate(self, batch: DetectionBatch) -> bool: ...

    def affected(self, batch: DetectionBatch) -> list[str]: ...


@dataclass
class SharedIPDetector:
    """More than ``max_claims`` claims filed from one IP address."""

    name: str = "shared_ip_address"
    max_claims: int = 5

    def _suspicious_ips(self, batch: DetectionBatch) -> set[Hashable]:
        groups = group_by(batch.claims, lambda c: c.ip_address)
        return {ip for ip, group in groups.items() if len(group) > self.max_claims}

    def evaluate(self, batch: DetectionBatch) -> bool:
        return bool(self._suspicious_ips(batch))

    def affected(self, batch: DetectionBatch) -> list[str]:
        ips = self._suspicious_ips(batch)
        return [c.claim_id for c in batch.claims if c.ip_address in ips]


@dataclass
class SharedSSNDetector:
    """More than ``max_claimants`` claimant profiles sharing one SSN."""

    name: str = "shared_ssn"
    max_claimants: int = 1

    def _claimant_ids(self, batch: DetectionBatch) -> set[str]:
        groups = group_by(batch.claimants, lambda c: c.ssn)
        return {
            claimant.claimant_id
            for group in groups.values()
            if len(group) > self.max_claimants
            for claimant in group
        }

    def evaluate(self, batch: DetectionBatch) -> bool:
        return bool(self._claimant_ids(batch))

    def affected(self, batch: DetectionBatch) -> list[str]:
        return batch.claims_for(self._claimant_ids(batch))


@dataclass
class EmployerBurstDetector:
    """More than ``max_claims`` claims for one employer inside ``window_days``."""

    name: str = "employer_claim_burst"
    max_claims: int = 10
    window_days: int = 30

    def _employers(self, batch: DetectionBatch) -> set[Hashable]:
        suspicious = set()
        for employer_id, group in group_by(batch.claims, lambda c: c.employer_id).items():
            if len(group) <= self.max_claims:
                continue
            dates = [as_utc(c.created_date) for c in group]
            if max(dates) - min(dates) <= timedelta(days=self.window_days):
                suspicious.add(employer_id)
        return suspicious

    def evaluate(self, batch: DetectionBatch) -> bool:
        return bool(self._employers(batch))

    def affected(self, batch: DetectionBatch) -> list[str]:
        employers = self._employers(batch)
        return [c.claim_id for c in batch.claims if c.employer_id in employers]


@dataclass
class NewHighRiskAccountDetector:
    """Claimant with a high risk score on a recently created account."""

    name: str = "new_high_risk_account"
    min_risk_score: float = 80
    max_account_age_days: int = 30

    def _claimant_ids(self, batch: DetectionBatch) -> set[str]:
        cutoff = as_utc(batch.now) - timedelta(days=self.max_account_age_days)
        return {
            c.claimant_id
            for c in batch.claimants
            if c.risk_score > self.min_risk_score
            and as_utc(c.account_creation_date) > cutoff
        }

    def evaluate(self, batch: DetectionBatch) -> bool:
        return bool(self._claimant_ids(batch))

    def affected(self, batch: DetectionBatch) -> list[str]:
        return batch.claims_for(self._claimant_ids(batch))


@dataclass
class NonDomesticIPDetector:
    """More than ``max_claims`` claims from IP ranges treated as non-domestic."""

    prefixes: list[str]
    name: str = "non_domestic_ip"
    max_claims: int = 3

    def _matches(self, batch: DetectionBatch) -> list[str]:
        return [
            c.claim_id
            for c in batch.claims
            if c.ip_address and c.ip_address.startswith(tuple(self.prefixes))
        ]

    def evaluate(self, batch: DetectionBatch) -> bool:
        return len(self._matches(batch)) > self.max_claims

    def affected(self, batch: DetectionBatch) -> list[str]:
        return self._matches(batch)


@dataclass
class RegularCadenceDetector:
    """
    Bot-like filing cadence.

    Fires when at least ``min_intervals`` gaps between consecutive claims
    have a variance (seconds squared) below ``max_variation`` times the mean
    gap in seconds. Only near-constant spacing passes.
    """

    name: str = "regular_filing_cadence"
    min_intervals: int = 10
    max_variation: float = 0.1

    def _ordered(self, batch: DetectionBatch) -> list[BenefitsClaim]:
        return sorted(batch.claims, key=lambda c: as_utc(c.created_date))

    def evaluate(self, batch: DetectionBatch) -> bool:
        ordered = self._ordered(batch)
        intervals = [
            (as_utc(later.created_date) - as_utc(earlier.created_date)).total_seconds()
            for earlier, later in zip(ordered, ordered[1:])
        ]
        if len(intervals) < self.min_intervals:
            return False
        mean = statistics.fmean(intervals)
        if mean <= 0:
            return False
        return statistics.pvariance(intervals) < mean * self.max_variation

    def affected(self, batch: DetectionBatch) -> list[str]:
        return [c.claim_id for c in self._ordered(batch)]


@dataclass
class PromotedPatternDetector:
    """
    Placeholder detector for a promoted emerging pattern.

    Always reports a match; affected claims are the original cluster
    members present in the batch.
    """

    name: str
    member_claim_ids: list[str] = field(default_factory=list)

    def evaluate(self, batch: DetectionBatch) -> bool:
        return True

    def affected(self, batch: DetectionBatch) -> list[str]:
        members = set(self.member_claim_ids)
        return [c.claim_id for c in batch.claims if c.claim_id in members]


# ----------------------------------------------------------------------
# Catalog models
# ----------------------------------------------------------------------


class FraudScheme(BaseModel):
    """A known fraud scheme and its rolling statistics."""

    id: str
    name: str
    description: str
    indicators: list[str] = Field(default_factory=list)
    severity: RiskLevel
    detector_ids: list[str]
    first_detected: datetime = Field(default_factory=utcnow)
    last_detected: datetime = Field(default_factory=utcnow)
    occurrence_count: int = 0
    success_rate: float = Field(default=0.5, ge=0, le=1)


class PatternAlert(BaseModel):
    id: str
    scheme_id: str
    severity: RiskLevel
    message: str
    affected_claims: list[str] = Field(default_factory=list)
    detected_at: datetime = Field(default_factory=utcnow)
    confidence: float = Field(ge=0, le=1)
    action_required: list[str] = Field(default_factory=list)


@dataclass
class Cluster:
    """Claims sharing an attribute, scored by how suspicious the group is."""

    signature: str
    kind: str
    members: list[str]
    suspicious_score: float
    description: str


class EmergingPattern(BaseModel):
    pattern_id: str
    signature: str
    kind: str
    description: str
    member_claim_ids: list[str]
    suspicious_score: float
    first_detected: datetime = Field(default_factory=utcnow)
    observations: int = 1


def _default_schemes(prefixes: list[str]) -> tuple[list[Detector], list[FraudScheme]]:
    detectors: list[Detector] = [
        SharedIPDetector(),
        SharedSSNDetector(),
        EmployerBurstDetector(),
        NewHighRiskAccountDetector(),
        NonDomesticIPDetector(prefixes=list(prefixes)),
        RegularCadenceDetector(),
    ]
    schemes = [
        FraudScheme(
            id="IDENTITY_RING_SCHEME",
            name="Identity Theft Ring",
            description="Organized group using stolen identities to file fraudulent claims",
            indicators=[
                "Multiple claims from same IP address",
                "Similar personal information patterns",
                "Shared banking information",
                "Rapid claim filing sequences",
            ],
            severity=RiskLevel.CRITICAL,
            detector_ids=["shared_ip_address", "shared_ssn"],
            first_detected=datetime(2024, 1, 15, tzinfo=timezone.utc),
            occurrence_count=23,
            success_rate=0.87,
        ),
        FraudScheme(
            id="EMPLOYER_COLLUSION_SCHEME",
            name="Employer-Employee Collusion",
            description="Fraudulent separation agreements between employers and employees",
            indicators=[
                "High concentration of claims from specific employers",
                "Suspicious termination patterns",
                "Backdated employment records",
                "Wage inflation patterns",
            ],
            severity=RiskLevel.HIGH,
            detector_ids=["employer_claim_burst"],
            first_detected=datetime(2024, 2, 8, tzinfo=timezone.utc),
            occurrence_count=15,
            success_rate=0.73,
        ),
        FraudScheme(
            id="SYNTHETIC_IDENTITY_SCHEME",
            name="Synthetic Identity Creation",
            description="Creating fake identities using real and fabricated information",
            indicators=[
                "Inconsistent identity verification scores",
                "New credit profiles with immediate benefit claims",
                "Manufactured personal histories",
                "Unusual demographic patterns",
            ],
            severity=RiskLevel.CRITICAL,
            detector_ids=["new_high_risk_account"],
            first_detected=datetime(2024, 3, 12, tzinfo=timezone.utc),
            occurrence_count=8,
            success_rate=0.95,
        ),
        FraudScheme(
            id="CROSS_BORDER_SCHEME",
            name="Cross-Border Fraud Network",
            description="International fraud network targeting multiple jurisdictions",
            indicators=[
                "Foreign IP addresses with local claims",
                "International banking connections",
                "Coordinated multi-state filing",
                "VPN usage patterns",
            ],
            severity=RiskLevel.HIGH,
            detector_ids=["non_domestic_ip"],
            first_detected=datetime(2024, 1, 22, tzinfo=timezone.utc),
            occurrence_count=12,
            success_rate=0.68,
        ),
        FraudScheme(
            id="AUTOMATED_FILING_SCHEME",
            name="Automated Claim Filing Bots",
            description="Automated systems filing large volumes of fraudulent claims",
            indicators=[
                "Rapid sequential claim filing",
                "Identical form filling patterns",
                "Bot-like interaction signatures",
                "Systematic data entry patterns",
            ],
            severity=RiskLevel.MEDIUM,
            detector_ids=["regular_filing_cadence"],
            first_detected=datetime(2024, 2, 28, tzinfo=timezone.utc),
            occurrence_count=6,
            success_rate=0.42,
        ),
    ]
    return detectors, schemes


class PatternDetectionEngine:
    """
    Detects known fraud schemes and emerging patterns in claim batches.

    Scheme statistics and emerging-pattern promotion are maintained by
    ``run_maintenance``, which ``start_monitoring`` schedules on a timer.
    """

    SUCCESS_RATE_BOUNDS = (0.1, 0.99)
    OUTCOME_STEP = 0.01
    PROMOTED_SUCCESS_RATE = 0.5

    # (minimum members, score denominator) per cluster kind
    IP_CLUSTER = (3, 10)
    TIME_CLUSTER = (5, 20)
    ADDRESS_CLUSTER = (4, 8)
    TIME_WINDOW = timedelta(hours=1)

    EMERGING_MIN_SCORE = 0.7
    EMERGING_MIN_MEMBERS = 5

    def __init__(
        self,
        settings: Settings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self._rng = rng or random.Random(self.settings.simulation_seed)
        self._lock = threading.RLock()
        self._detectors: dict[str, Detector] = {}
        self._schemes: dict[str, FraudScheme] = {}
        self._emerging: dict[str, EmergingPattern] = {}
        self._alert_history: list[PatternAlert] = []
        self._pending_outcomes: dict[str, list[bool]] = {}
        self._monitor: PeriodicTask | None = None

        detectors, schemes = _default_schemes(self.settings.non_domestic_ip_prefixes)
        for detector in detectors:
            self.register_detector(detector)
        for scheme in schemes:
            self._schemes[scheme.id] = scheme

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def register_detector(self, detector: Detector) -> None:
        with self._lock:
            self._detectors[detector.name] = detector

    def add_custom_scheme(
        self,
        name: str,
        description: str,
        severity: RiskLevel,
        detector_ids: list[str],
        indicators: list[str] | None = None,
        success_rate: float = 0.5,
    ) -> FraudScheme:
        """Add a scheme built from registered detectors."""
        with self._lock:
            missing = [d for d in detector_ids if d not in self._detectors]
            if missing:
                raise ValueError(f"Unknown detectors: {', '.join(missing)}")
            scheme = FraudScheme(
                id=f"CUSTOM_{uuid.uuid4().hex[:10].upper()}",
                name=name,
                description=description,
                indicators=indicators or [],
                severity=severity,
                detector_ids=list(detector_ids),
                success_rate=success_rate,
            )
            self._schemes[scheme.id] = scheme
        return scheme

    def get_known_schemes(self) -> list[FraudScheme]:
        with self._lock:
            return [s.model_copy(deep=True) for s in self._schemes.values()]

    def get_emerging_patterns(self) -> list[EmergingPattern]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._emerging.values()]

    def get_alert_history(self) -> list[PatternAlert]:
        with self._lock:
            return list(self._alert_history)

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect(
        self, claims: list[BenefitsClaim], claimants: list[ClaimantProfile]
    ) -> list[PatternAlert]:
        """
        Run all known schemes and the clustering pass over a batch.

        Args:
            claims: Claims in the batch
            claimants: Claimant profiles in the batch

        Returns:
            Alerts for detected schemes followed by emerging-pattern alerts
        """
        batch = DetectionBatch(claims=list(claims), claimants=list(claimants))
        with self._lock:
            schemes = list(self._schemes.values())
            detectors = dict(self._detectors)

        alerts: list[PatternAlert] = []
        for scheme in schemes:
            alert = self._detect_scheme(scheme, detectors, batch)
            if alert is not None:
                alerts.append(alert)

        alerts.extend(self._detect_new_patterns(batch))

        with self._lock:
            self._alert_history.extend(alerts)

        if alerts:
            logger.info(
                "Pattern detection raised %d alert(s) over %d claims",
                len(alerts),
                len(batch.claims),
            )
        return alerts

    def _detect_scheme(
        self,
        scheme: FraudScheme,
        detectors: dict[str, Detector],
        batch: DetectionBatch,
    ) -> PatternAlert | None:
        scheme_detectors = [detectors.get(d) for d in scheme.detector_ids]
        if not scheme_detectors or any(d is None for d in scheme_detectors):
            logger.warning("Scheme %s references unknown detectors", scheme.id)
            return None

        results = [d.evaluate(batch) for d in scheme_detectors]
        if not all(results):
            return None

        affected = scheme_detectors[0].affected(batch)
        if not affected:
            affected = [c.claim_id for c in batch.claims[:10]]

        confidence = self._detection_confidence(
            scheme.success_rate, sum(results), len(results)
        )

        with self._lock:
            stored = self._schemes.get(scheme.id)
            if stored is not None:
                stored.last_detected = utcnow()
                stored.occurrence_count += 1

        return PatternAlert(
            id=f"ALERT_{scheme.id}_{uuid.uuid4().hex[:8]}",
            scheme_id=scheme.id,
            severity=scheme.severity,
            message=(
                f"{scheme.name} detected: Detected {len(affected)} potentially "
                f"fraudulent claims matching {scheme.name} pattern"
            ),
            affected_claims=affected,
            confidence=confidence,
            action_required=self.generate_action_items(scheme.severity),
        )

    @staticmethod
    def _detection_confidence(success_rate: float, matched: int, total: int) -> float:
        ratio = matched / total if total else 0.0
        return round(success_rate * 0.7 + ratio * 0.3, 2)

    def _detect_new_patterns(self, batch: DetectionBatch) -> list[PatternAlert]:
        alerts: list[PatternAlert] = []
        for cluster in self.cluster_analysis(batch):
            if (
                cluster.suspicious_score <= self.EMERGING_MIN_SCORE
                or len(cluster.members) < self.EMERGING_MIN_MEMBERS
            ):
                continue

            pattern_id = self._observe_emerging(cluster)
            alerts.append(
                PatternAlert(
                    id=f"ALERT_{pattern_id}",
                    scheme_id=pattern_id,
                    severity=RiskLevel.HIGH if cluster.suspicious_score > 0.9 else RiskLevel.MEDIUM,
                    message=f"New emerging fraud pattern detected: {cluster.description}",
                    affected_claims=list(cluster.members),
                    confidence=round(cluster.suspicious_score, 2),
                    action_required=list(EMERGING_ACTIONS),
                )
            )
        return alerts

    def _observe_emerging(self, cluster: Cluster) -> str:
        with self._lock:
            for pattern in self._emerging.values():
                if pattern.signature == cluster.signature:
                    pattern.observations += 1
                    pattern.suspicious_score = max(
                        pattern.suspicious_score, cluster.suspicious_score
                    )
                    pattern.member_claim_ids = list(
                        dict.fromkeys(pattern.member_claim_ids + cluster.members)
                    )
                    return pattern.pattern_id

            pattern_id = f"EMERGING_{uuid.uuid4().hex[:10].upper()}"
            self._emerging[pattern_id] = EmergingPattern(
                pattern_id=pattern_id,
                signature=cluster.signature,
                kind=cluster.kind,
                description=cluster.description,
                member_claim_ids=list(cluster.members),
                suspicious_score=cluster.suspicious_score,
            )
            logger.info("New emerging pattern %s: %s", pattern_id, cluster.description)
            return pattern_id

    def cluster_analysis(self, batch: DetectionBatch) -> list[Cluster]:
        """Group the batch by IP address, filing time window and address."""
        clusters: list[Cluster] = []

        min_members, denominator = self.IP_CLUSTER
        for ip, group in group_by(batch.claims, lambda c: c.ip_address).items():
            if len(group) >= min_members:
                clusters.append(
                    Cluster(
                        signature=f"ip:{ip}",
                        kind="IP_ADDRESS",
                        members=[c.claim_id for c in group],
                        suspicious_score=min(1.0, len(group) / denominator),
                        description=f"Multiple claims from IP address {ip}",
                    )
                )

        min_members, denominator = self.TIME_CLUSTER
        for window in self._time_windows(batch.claims):
            if len(window) >= min_members:
                start = as_utc(window[0].created_date)
                clusters.append(
                    Cluster(
                        signature=f"window:{start.isoformat()}",
                        kind="TIME_WINDOW",
                        members=[c.claim_id for c in window],
                        suspicious_score=min(1.0, len(window) / denominator),
                        description=f"{len(window)} claims filed within a short time window",
                    )
                )

        min_members, denominator = self.ADDRESS_CLUSTER
        address_groups = group_by(
            batch.claimants, lambda c: c.mailing_address.normalized_key()
        )
        for address, group in address_groups.items():
            if len(group) >= min_members:
                claimant_ids = {c.claimant_id for c in group}
                first = group[0].mailing_address
                clusters.append(
                    Cluster(
                        signature=f"address:{address}",
                        kind="ADDRESS",
                        members=batch.claims_for(claimant_ids),
                        suspicious_score=min(1.0, len(group) / denominator),
                        description=(
                            "Multiple claimants at same address: "
                            f"{first.street_address1}, {first.city}, {first.zip_code}"
                        ),
                    )
                )

        return clusters

    def _time_windows(self, claims: list[BenefitsClaim]) -> list[list[BenefitsClaim]]:
        """
        Split claims into windows anchored at the first claim of each window.

        A claim joins the open window while it falls within ``TIME_WINDOW``
        of the window's first claim; otherwise it opens the next window.
        Single-claim windows are dropped.
        """
        ordered = sorted(claims, key=lambda c: as_utc(c.created_date))
        windows: list[list[BenefitsClaim]] = []
        current: list[BenefitsClaim] = []
        start: datetime | None = None

        for claim in ordered:
            created = as_utc(claim.created_date)
            if start is not None and created - start <= self.TIME_WINDOW:
                current.append(claim)
                continue
            if len(current) > 1:
                windows.append(current)
            current, start = [claim], created

        if len(current) > 1:
            windows.append(current)
        return windows

    @staticmethod
    def generate_action_items(severity: RiskLevel) -> list[str]:
        """Recommended actions for a detected scheme of the given severity."""
        if severity == RiskLevel.CRITICAL:
            return [
                "IMMEDIATE ACTION REQUIRED",
                "Escalate to senior management",
                "Consider law enforcement notification",
                *BASE_ACTIONS,
                "Implement emergency countermeasures",
            ]
        if severity == RiskLevel.HIGH:
            return [
                "Urgent investigation required",
                "Review and strengthen related detection rules",
                *BASE_ACTIONS,
                "Monitor for scheme expansion",
            ]
        if severity == RiskLevel.MEDIUM:
            return [
                "Schedule comprehensive review",
                *BASE_ACTIONS,
                "Analyze scheme evolution patterns",
            ]
        return list(BASE_ACTIONS)

    # ------------------------------------------------------------------
    # Feedback and maintenance
    # ------------------------------------------------------------------

    def record_outcome(self, scheme_id: str, was_fraud: bool) -> None:
        """
        Queue a resolved-case outcome for a scheme.

        Outcomes are applied to the scheme's success rate on the next
        maintenance run.
        """
        with self._lock:
            if scheme_id not in self._schemes:
                raise KeyError(f"Unknown scheme: {scheme_id}")
            self._pending_outcomes.setdefault(scheme_id, []).append(was_fraud)

    def run_maintenance(self) -> None:
        """Apply scheme feedback and promote mature emerging patterns."""
        self.update_scheme_statistics()
        self.promote_emerging_patterns()

    def update_scheme_statistics(self) -> None:
        low, high = self.SUCCESS_RATE_BOUNDS
        with self._lock:
            pending, self._pending_outcomes = self._pending_outcomes, {}
            for scheme in self._schemes.values():
                rate = scheme.success_rate
                for was_fraud in pending.get(scheme.id, []):
                    rate += self.OUTCOME_STEP if was_fraud else -self.OUTCOME_STEP
                if self.settings.simulate_feedback:
                    rate += (self._rng.random() - 0.5) * 2 * self.OUTCOME_STEP
                scheme.success_rate = round(max(low, min(high, rate)), 4)

    def promote_emerging_patterns(self) -> list[FraudScheme]:
        """Move emerging patterns that have matured into the scheme catalog."""
        promoted: list[FraudScheme] = []
        with self._lock:
            for pattern_id, pattern in list(self._emerging.items()):
                pattern.observations += 1
                if (
                    pattern.observations < self.settings.emerging_promotion_observations
                    or pattern.suspicious_score <= self.settings.emerging_promotion_score
                ):
                    continue

                detector = PromotedPatternDetector(
                    name=f"promoted:{pattern_id}",
                    member_claim_ids=list(pattern.member_claim_ids),
                )
                self._detectors[detector.name] = detector
                scheme = FraudScheme(
                    id=pattern_id,
                    name=f"Emerging Scheme {pattern_id.split('_', 1)[1]}",
                    description=pattern.description,
                    indicators=["Pattern detected through cluster analysis"],
                    severity=RiskLevel.HIGH if pattern.suspicious_score > 0.9 else RiskLevel.MEDIUM,
                    detector_ids=[detector.name],
                    first_detected=pattern.first_detected,
                    occurrence_count=pattern.observations,
                    success_rate=self.PROMOTED_SUCCESS_RATE,
                )
                self._schemes[scheme.id] = scheme
                del self._emerging[pattern_id]
                promoted.append(scheme)
                logger.info("Promoted emerging pattern %s to known scheme", pattern_id)
        return promoted

    def start_monitoring(self, interval: float | None = None) -> None:
        """Run maintenance on a background timer."""
        with self._lock:
            if self._monitor is None:
                self._monitor = PeriodicTask(
                    "pattern-monitor",
                    interval or self.settings.pattern_monitor_interval_seconds,
                    self.run_maintenance,
                )
            self._monitor.start()

    def stop_monitoring(self) -> None:
        with self._lock:
            monitor = self._monitor
        if monitor is not None:
            monitor.stop()

    @property
    def is_monitoring(self) -> bool:
        return self._monitor is not None and self._monitor.running
