"""
Real-Time Risk Scorer.

Blends behavioral, pattern, statistical-anomaly and learning signals into
a single assessment for one claim. Pattern weights and emerging-threat
status are tuned by a recurring maintenance task fed through
``record_pattern_observation`` and ``record_pattern_effectiveness``.
"""

import logging
import math
import random
import threading
import time
import uuid
from collections import deque
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel, Field

from ..core.conditions import evaluate_conditions
from ..core.config import Settings, settings as default_settings
from ..core.models import (
    BenefitsClaim,
    ClaimantProfile,
    ConditionOperator,
    RiskAssessmentResult,
    RiskFactor,
)
from ..core.risk import (
    ANOMALY_FACTOR,
    BEHAVIORAL_FACTOR,
    LEARNING_FACTOR,
    PATTERN_FACTOR,
    average_confidence,
    determine_risk_level,
)
from ..core.scheduler import PeriodicTask
from ..utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

MODEL_VERSION = "REALTIME_v2.1"
MILES_PER_DEGREE = 69


class PatternCondition(BaseModel):
    """``(field, operator, value)`` test against the scorer's derived facts."""

    field_name: str
    operator: ConditionOperator
    value: Any = None


class RiskPattern(BaseModel):
    id: str
    name: str
    weight: float = Field(ge=0)
    conditions: list[PatternCondition] = Field(default_factory=list)
    emerging_threat: bool = False
    last_seen: datetime = Field(default_factory=utcnow)
    frequency: int = 0


class BehavioralMetrics(BaseModel):
    """One session's interaction telemetry."""

    claimant_id: str | None = None
    session_duration: float = 0.0
    click_patterns: list[float] = Field(default_factory=list)
    typing_speed: float = 0.0
    device_fingerprint: str = ""
    ip_address: str | None = None
    location_consistency: float = 1.0
    time_of_day_pattern: list[float] = Field(default_factory=list)


class GeoPoint(BaseModel):
    lat: float
    lng: float


def approximate_distance(a: GeoPoint, b: GeoPoint) -> float:
    """Flat-earth distance in miles; good enough for coarse anomaly checks."""
    return math.hypot(a.lat - b.lat, a.lng - b.lng) * MILES_PER_DEGREE


def default_patterns() -> list[RiskPattern]:
    return [
        RiskPattern(
            id="RAPID_MULTIPLE_CLAIMS",
            name="Rapid Multiple Claims Pattern",
            weight=85,
            conditions=[
                PatternCondition(
                    field_name="recent_claims_24h",
                    operator=ConditionOperator.GREATER_THAN,
                    value=2,
                )
            ],
            frequency=45,
        ),
        RiskPattern(
            id="SUSPICIOUS_DEVICE_PATTERN",
            name="Suspicious Device Behavior",
            weight=70,
            conditions=[
                PatternCondition(
                    field_name="device_metrics.unusual_behavior",
                    operator=ConditionOperator.GREATER_THAN,
                    value=0.7,
                )
            ],
            emerging_threat=True,
            frequency=23,
        ),
        RiskPattern(
            id="SYNTHETIC_IDENTITY_MARKERS",
            name="Synthetic Identity Indicators",
            weight=95,
            conditions=[
                PatternCondition(
                    field_name="identity_verification.synthetic_score",
                    operator=ConditionOperator.GREATER_THAN,
                    value=0.8,
                )
            ],
            emerging_threat=True,
            frequency=12,
        ),
        RiskPattern(
            id="GEOGRAPHIC_ANOMALY",
            name="Geographic Inconsistency",
            weight=60,
            conditions=[
                PatternCondition(
                    field_name="mean_location_distance",
                    operator=ConditionOperator.GREATER_THAN,
                    value=500,
                )
            ],
            frequency=34,
        ),
    ]


class RealTimeRiskScorer:
    """
    Scores a single claim from live session context.

    Context keys read by the scorer:

    - ``behavioral_metrics``: current session (``BehavioralMetrics`` or dict)
    - ``recent_claims``: claims or dicts with ``created_date``
    - ``device_metrics``, ``identity_verification``: nested score dicts
    - ``current_location``, ``historical_locations``: ``{lat, lng}`` points
    - ``cross_reference_flags``: ``shared_address_count``, ``shared_phone_count``
    - ``recent_fraud_confirmations``, ``recent_false_positives``: dicts
      with ``weekly_benefit_amount`` and ``risk_score``
    """

    EMERGING_FREQUENCY = 20
    EMERGING_BONUS = 20
    PROMOTION_FREQUENCY = 30
    WEIGHT_BOUNDS = (10, 100)

    def __init__(
        self,
        settings: Settings | None = None,
        patterns: list[RiskPattern] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.continuous_learning = self.settings.continuous_learning
        self._rng = rng or random.Random(self.settings.simulation_seed)
        self._lock = threading.RLock()
        self._patterns: dict[str, RiskPattern] = {}
        for pattern in patterns if patterns is not None else default_patterns():
            self._patterns[pattern.id] = pattern
        self._profiles: dict[str, deque[BehavioralMetrics]] = {}
        self._emerging_threats: set[str] = set()
        self._pending_observations: dict[str, int] = {}
        self._pending_effectiveness: dict[str, list[float]] = {}
        self._learning_task: PeriodicTask | None = None

    def score(
        self,
        claim: BenefitsClaim,
        claimant: ClaimantProfile,
        context: Mapping[str, Any] | None = None,
    ) -> RiskAssessmentResult:
        """
        Produce a real-time assessment.

        Args:
            claim: Claim being scored
            claimant: Claimant who filed it
            context: Session and cross-reference data (see class docstring)

        Returns:
            Assessment with ``processing_time_ms`` set
        """
        started = time.perf_counter()
        context = dict(context or {})

        behavioral = self.analyze_behavior(claimant.claimant_id, context)
        pattern = self.match_patterns(claim, claimant, context)
        anomaly = self.detect_anomalies(claim, claimant, context)
        learning = self.learning_adjustment(claim, claimant, context)

        total = min(
            self.settings.max_risk_score,
            max(0.0, behavioral + pattern + anomaly + learning),
        )
        with self._lock:
            threats = sorted(self._emerging_threats)

        factors = self._risk_factors(behavioral, pattern, anomaly, learning, threats)
        elapsed_ms = (time.perf_counter() - started) * 1000

        return RiskAssessmentResult(
            assessment_id=f"REALTIME_{claim.claim_id}_{int(time.time() * 1000)}",
            claim_id=claim.claim_id,
            claimant_id=claimant.claimant_id,
            overall_risk_score=total,
            risk_level=determine_risk_level(total),
            risk_factors=factors,
            recommended_actions=self._recommendations(total, factors, threats),
            requires_investigation=total >= 100,
            auto_approval_eligible=total < 50,
            model_version=MODEL_VERSION,
            confidence_score=average_confidence([f.confidence for f in factors], 0.5),
            processing_time_ms=round(elapsed_ms, 3),
            emerging_threats=threats,
        )

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def analyze_behavior(self, claimant_id: str, context: Mapping[str, Any]) -> float:
        """Compare the current session against the claimant's recent sessions."""
        raw = context.get("behavioral_metrics")
        if not raw:
            return 0.0
        current = (
            raw if isinstance(raw, BehavioralMetrics)
            else BehavioralMetrics.model_validate(raw)
        )

        with self._lock:
            history = self._profiles.setdefault(
                claimant_id, deque(maxlen=self.settings.behavioral_history_size)
            )
            history.append(current)
            sessions = list(history)

        if len(sessions) < 2:
            return 0.0

        score = 0.0
        if _relative_deviation(current.typing_speed, [s.typing_speed for s in sessions]) > 0.5:
            score += 25
        if _relative_deviation(
            current.session_duration, [s.session_duration for s in sessions]
        ) > 0.7:
            score += 20
        if len({s.device_fingerprint for s in sessions}) > 3:
            score += 30
        if current.location_consistency < 0.3:
            score += 35
        return score

    def match_patterns(
        self,
        claim: BenefitsClaim,
        claimant: ClaimantProfile,
        context: Mapping[str, Any],
    ) -> float:
        facts = self._pattern_facts(claim, claimant, context)
        score = 0.0
        with self._lock:
            for pattern in self._patterns.values():
                if not evaluate_conditions(pattern.conditions, facts):
                    continue
                score += pattern.weight
                pattern.last_seen = utcnow()
                if pattern.emerging_threat and pattern.frequency > self.EMERGING_FREQUENCY:
                    self._emerging_threats.add(pattern.id)
                    score += self.EMERGING_BONUS
        return score

    def _pattern_facts(
        self,
        claim: BenefitsClaim,
        claimant: ClaimantProfile,
        context: Mapping[str, Any],
    ) -> dict[str, Any]:
        facts = dict(context)
        facts.update(claim=claim, claimant=claimant)
        facts.setdefault("recent_claims_24h", self._recent_claim_count(context))
        facts.setdefault("mean_location_distance", self._mean_location_distance(context))
        return facts

    @staticmethod
    def _recent_claim_count(context: Mapping[str, Any]) -> int:
        cutoff = utcnow() - timedelta(hours=24)
        count = 0
        for item in context.get("recent_claims") or []:
            created = (
                item.get("created_date") if isinstance(item, Mapping)
                else getattr(item, "created_date", None)
            )
            if isinstance(created, str):
                try:
                    created = datetime.fromisoformat(created)
                except ValueError:
                    logger.debug("Ignoring unparseable claim date %r", created)
                    continue
            if isinstance(created, datetime) and as_utc(created) > cutoff:
                count += 1
        return count

    @staticmethod
    def _mean_location_distance(context: Mapping[str, Any]) -> float | None:
        current = context.get("current_location")
        history = context.get("historical_locations") or []
        if not current or not history:
            return None
        here = GeoPoint.model_validate(current)
        points = [GeoPoint.model_validate(p) for p in history]
        return sum(approximate_distance(here, p) for p in points) / len(points)

    def detect_anomalies(
        self,
        claim: BenefitsClaim,
        claimant: ClaimantProfile,
        context: Mapping[str, Any],
    ) -> float:
        score = 0.0

        hour = as_utc(claim.created_date).hour
        if hour < 6 or hour > 22:
            score += 15

        reference = self.settings.reference_weekly_benefit
        if abs(claim.weekly_benefit_amount - reference) / reference > 1.5:
            score += 25

        if claimant.risk_score > 70:
            score += 30

        flags = context.get("cross_reference_flags") or {}
        if _flag_count(flags, "shared_address_count") > 5:
            score += 20
        if _flag_count(flags, "shared_phone_count") > 3:
            score += 15
        return score

    def learning_adjustment(
        self,
        claim: BenefitsClaim,
        claimant: ClaimantProfile,
        context: Mapping[str, Any],
    ) -> float:
        if not self.continuous_learning:
            return 0.0
        adjustment = 0.0
        for reference in context.get("recent_fraud_confirmations") or []:
            if _similar(claim, claimant, reference):
                adjustment += 10
        for reference in context.get("recent_false_positives") or []:
            if _similar(claim, claimant, reference):
                adjustment -= 5
        return adjustment

    # ------------------------------------------------------------------
    # Result assembly
    # ------------------------------------------------------------------

    @staticmethod
    def _risk_factors(
        behavioral: float,
        pattern: float,
        anomaly: float,
        learning: float,
        threats: list[str],
    ) -> list[RiskFactor]:
        factors = []
        threshold, confidence = BEHAVIORAL_FACTOR
        if behavioral > threshold:
            factors.append(
                RiskFactor(
                    factor_id="BEHAVIORAL_ANOMALY",
                    factor_name="Behavioral Pattern Anomaly",
                    category="BEHAVIORAL",
                    impact=behavioral,
                    confidence=confidence,
                    description="Detected unusual user behavior patterns",
                    evidence=[
                        "Abnormal typing patterns",
                        "Session duration anomalies",
                        "Device inconsistencies",
                    ],
                )
            )
        threshold, confidence = PATTERN_FACTOR
        if pattern > threshold:
            factors.append(
                RiskFactor(
                    factor_id="PATTERN_MATCH",
                    factor_name="Known Fraud Pattern Detected",
                    category="PATTERN_RECOGNITION",
                    impact=pattern,
                    confidence=confidence,
                    description="Matches known fraudulent behavior patterns",
                    evidence=[f"Pattern: {threat}" for threat in threats],
                )
            )
        threshold, confidence = ANOMALY_FACTOR
        if anomaly > threshold:
            factors.append(
                RiskFactor(
                    factor_id="STATISTICAL_ANOMALY",
                    factor_name="Statistical Anomaly Detected",
                    category="ANOMALY_DETECTION",
                    impact=anomaly,
                    confidence=confidence,
                    description="Deviates significantly from normal patterns",
                    evidence=[
                        "Unusual claim timing",
                        "Abnormal benefit amounts",
                        "Geographic inconsistencies",
                    ],
                )
            )
        threshold, confidence = LEARNING_FACTOR
        if abs(learning) > threshold:
            factors.append(
                RiskFactor(
                    factor_id="CONTINUOUS_LEARNING",
                    factor_name="Machine Learning Adjustment",
                    category="AI_LEARNING",
                    impact=learning,
                    confidence=confidence,
                    description="Risk score adjusted based on continuous learning",
                    evidence=[
                        "Similar to confirmed fraud cases" if learning > 0
                        else "Similar to confirmed legitimate cases"
                    ],
                )
            )
        return factors

    @staticmethod
    def _recommendations(
        score: float, factors: list[RiskFactor], threats: list[str]
    ) -> list[str]:
        recommendations = []
        if score >= 200:
            recommendations += [
                "Immediate manual review required",
                "Escalate to senior fraud investigator",
            ]
        elif score >= 100:
            recommendations += [
                "Schedule comprehensive investigation",
                "Request additional documentation",
            ]
        elif score >= 50:
            recommendations += [
                "Perform enhanced verification checks",
                "Monitor for additional risk factors",
            ]
        if threats:
            recommendations.append("Alert: Emerging threat patterns detected")
        if any(f.category == "BEHAVIORAL" for f in factors):
            recommendations.append("Consider behavioral biometric verification")
        return recommendations

    # ------------------------------------------------------------------
    # Feedback and maintenance
    # ------------------------------------------------------------------

    def record_pattern_observation(self, pattern_id: str, count: int = 1) -> None:
        """Queue new sightings of a pattern from threat intelligence."""
        with self._lock:
            self._require_pattern(pattern_id)
            self._pending_observations[pattern_id] = (
                self._pending_observations.get(pattern_id, 0) + count
            )

    def record_pattern_effectiveness(self, pattern_id: str, effectiveness: float) -> None:
        """Queue an effectiveness measurement in [0, 1] for weight tuning."""
        if not 0 <= effectiveness <= 1:
            raise ValueError("effectiveness must be between 0 and 1")
        with self._lock:
            self._require_pattern(pattern_id)
            self._pending_effectiveness.setdefault(pattern_id, []).append(effectiveness)

    def run_maintenance(self) -> None:
        self.update_emerging_threats()
        self.adjust_pattern_weights()

    def update_emerging_threats(self) -> None:
        with self._lock:
            observations, self._pending_observations = self._pending_observations, {}
            for pattern in self._patterns.values():
                pattern.frequency += observations.get(pattern.id, 0)
                if self.settings.simulate_feedback:
                    pattern.frequency += self._rng.randint(0, 2)
                if pattern.frequency > self.PROMOTION_FREQUENCY and not pattern.emerging_threat:
                    pattern.emerging_threat = True
                    self._emerging_threats.add(pattern.id)
                    logger.info("Pattern %s is now an emerging threat", pattern.id)

    def adjust_pattern_weights(self) -> None:
        low, high = self.WEIGHT_BOUNDS
        with self._lock:
            measured, self._pending_effectiveness = self._pending_effectiveness, {}
            for pattern in self._patterns.values():
                values = measured.get(pattern.id)
                if values:
                    effectiveness = sum(values) / len(values)
                elif self.settings.simulate_feedback:
                    effectiveness = self._rng.random()
                else:
                    continue
                if effectiveness > 0.8:
                    pattern.weight = min(high, pattern.weight + 2)
                elif effectiveness < 0.3:
                    pattern.weight = max(low, pattern.weight - 1)

    def start_learning(self, interval: float | None = None) -> None:
        with self._lock:
            if self._learning_task is None:
                self._learning_task = PeriodicTask(
                    "realtime-learning",
                    interval or self.settings.learning_interval_seconds,
                    self.run_maintenance,
                )
            self._learning_task.start()

    def stop_learning(self) -> None:
        with self._lock:
            task = self._learning_task
        if task is not None:
            task.stop()

    # ------------------------------------------------------------------
    # Configuration and queries
    # ------------------------------------------------------------------

    def add_custom_pattern(
        self,
        name: str,
        weight: float,
        conditions: list[PatternCondition],
        emerging_threat: bool = False,
    ) -> RiskPattern:
        pattern = RiskPattern(
            id=f"CUSTOM_{uuid.uuid4().hex[:10].upper()}",
            name=name,
            weight=weight,
            conditions=list(conditions),
            emerging_threat=emerging_threat,
        )
        with self._lock:
            self._patterns[pattern.id] = pattern
        return pattern

    def toggle_continuous_learning(self, enabled: bool) -> None:
        self.continuous_learning = enabled

    def get_risk_patterns(self) -> list[RiskPattern]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._patterns.values()]

    def get_emerging_threats(self) -> list[str]:
        with self._lock:
            return sorted(self._emerging_threats)

    def get_behavior_history(self, claimant_id: str) -> list[BehavioralMetrics]:
        with self._lock:
            return list(self._profiles.get(claimant_id, ()))

    def _require_pattern(self, pattern_id: str) -> None:
        if pattern_id not in self._patterns:
            raise KeyError(f"Unknown risk pattern: {pattern_id}")


def _flag_count(flags: Mapping[str, Any], key: str) -> float:
    try:
        return float(flags.get(key) or 0)
    except (TypeError, ValueError, OverflowError):
        return 0.0


def _relative_deviation(current: float, values: list[float]) -> float:
    mean = sum(values) / len(values)
    if mean == 0:
        return 0.0
    return abs(current - mean) / mean


def _similar(claim: BenefitsClaim, claimant: ClaimantProfile, reference: Any) -> bool:
    if isinstance(reference, Mapping):
        amount = reference.get("weekly_benefit_amount")
        risk = reference.get("risk_score")
    else:
        amount = getattr(reference, "weekly_benefit_amount", None)
        risk = getattr(reference, "risk_score", None)
    if amount is None or risk is None:
        return False
    return (
        abs(claim.weekly_benefit_amount - amount) < 50
        and abs(claimant.risk_score - risk) < 20
    )
