"""
Tests for the pattern detection engine.
"""

from datetime import timedelta

import pytest

from benefit_integrity.core.models import RiskLevel
from benefit_integrity.modules.pattern_detection import (
    DetectionBatch,
    PatternDetectionEngine,
    RegularCadenceDetector,
    SharedIPDetector,
)
from conftest import make_address


@pytest.fixture
def engine(settings) -> PatternDetectionEngine:
    return PatternDetectionEngine(settings=settings)


@pytest.fixture
def ring_batch(make_claim, make_claimant):
    """Six claims from one IP, two claimants sharing an SSN."""
    claims = [
        make_claim(f"CLM-{i}", f"CLMT-{i}", ip_address="203.0.113.5") for i in range(6)
    ]
    claimants = [
        make_claimant(
            f"CLMT-{i}",
            ssn="111-22-3333" if i < 2 else f"900-00-000{i}",
            mailing_address=make_address(street=f"{i} Elm St"),
        )
        for i in range(6)
    ]
    return claims, claimants


def _alerts_by_scheme(alerts):
    return {alert.scheme_id: alert for alert in alerts}


class TestKnownSchemes:
    """Tests for catalog scheme detection."""

    def test_catalog_dates_are_utc(self, engine: PatternDetectionEngine) -> None:
        for scheme in engine.get_known_schemes():
            assert scheme.first_detected.utcoffset() == timedelta(0)

    def test_identity_ring(self, engine: PatternDetectionEngine, ring_batch) -> None:
        """Test shared IP plus shared SSN raises the identity ring alert."""
        claims, claimants = ring_batch

        alerts = _alerts_by_scheme(engine.detect(claims, claimants))

        alert = alerts["IDENTITY_RING_SCHEME"]
        assert alert.severity == RiskLevel.CRITICAL
        assert alert.affected_claims == [f"CLM-{i}" for i in range(6)]
        assert alert.confidence == 0.91
        assert alert.message.startswith("Identity Theft Ring detected: Detected 6")
        assert alert.action_required[0] == "IMMEDIATE ACTION REQUIRED"

    def test_detection_updates_statistics(self, engine: PatternDetectionEngine, ring_batch) -> None:
        """Test a detection bumps the scheme's occurrence count."""
        claims, claimants = ring_batch

        engine.detect(claims, claimants)

        scheme = next(s for s in engine.get_known_schemes() if s.id == "IDENTITY_RING_SCHEME")
        assert scheme.occurrence_count == 24

    def test_shared_ip_only_is_not_a_ring(self, engine: PatternDetectionEngine, make_claim, make_claimant) -> None:
        """Test every detector of a scheme must fire."""
        claims = [make_claim(f"CLM-{i}", f"CLMT-{i}", ip_address="203.0.113.5") for i in range(6)]
        claimants = [
            make_claimant(f"CLMT-{i}", ssn=f"900-00-000{i}", mailing_address=make_address(street=f"{i} Elm St"))
            for i in range(6)
        ]

        alerts = _alerts_by_scheme(engine.detect(claims, claimants))

        assert "IDENTITY_RING_SCHEME" not in alerts

    def test_synthetic_identity(self, engine: PatternDetectionEngine, make_claim, make_claimant) -> None:
        """Test a new, high-risk account raises the synthetic identity alert."""
        claims = [make_claim("CLM-S", "CLMT-S"), make_claim("CLM-OK", "CLMT-OK")]
        claimants = [
            make_claimant("CLMT-S", risk_score=85, account_age_days=10),
            make_claimant("CLMT-OK", ssn="222-33-4444"),
        ]

        alerts = _alerts_by_scheme(engine.detect(claims, claimants))

        assert alerts["SYNTHETIC_IDENTITY_SCHEME"].affected_claims == ["CLM-S"]

    def test_automated_filing(self, engine: PatternDetectionEngine, make_claim, business_hours) -> None:
        """Test evenly spaced filings raise the automated filing alert."""
        claims = [
            make_claim(f"CLM-{i:02d}", f"CLMT-{i}", created_date=business_hours + timedelta(minutes=10 * i))
            for i in range(12)
        ]

        alerts = _alerts_by_scheme(engine.detect(claims, []))

        alert = alerts["AUTOMATED_FILING_SCHEME"]
        assert alert.confidence == 0.59
        assert alert.affected_claims == [f"CLM-{i:02d}" for i in range(12)]

    def test_cross_border(self, engine: PatternDetectionEngine, make_claim) -> None:
        """Test more than three claims from configured prefixes."""
        claims = [make_claim(f"CLM-{i}", f"CLMT-{i}", ip_address=f"10.0.0.{i}") for i in range(4)]

        alerts = _alerts_by_scheme(engine.detect(claims, []))

        assert alerts["CROSS_BORDER_SCHEME"].affected_claims == [f"CLM-{i}" for i in range(4)]

    def test_employer_burst(self, engine: PatternDetectionEngine, make_claim) -> None:
        claims = [make_claim(f"CLM-{i}", f"CLMT-{i}", employer_id="EMP_9") for i in range(11)]

        alerts = _alerts_by_scheme(engine.detect(claims, []))

        assert len(alerts["EMPLOYER_COLLUSION_SCHEME"].affected_claims) == 11

    def test_empty_batch(self, engine: PatternDetectionEngine) -> None:
        assert engine.detect([], []) == []


class TestDetectors:
    """Tests for individual detectors."""

    def test_shared_ip_affected(self, ring_batch) -> None:
        claims, claimants = ring_batch
        batch = DetectionBatch(claims=claims, claimants=claimants)

        assert SharedIPDetector().affected(batch) == [f"CLM-{i}" for i in range(6)]

    def test_irregular_cadence(self, make_claim, business_hours) -> None:
        """Test irregular gaps do not look automated."""
        offsets = [0, 1, 5, 6, 20, 21, 40, 90, 91, 150, 200]
        claims = [
            make_claim(f"CLM-{i}", created_date=business_hours + timedelta(minutes=m))
            for i, m in enumerate(offsets)
        ]

        assert RegularCadenceDetector().evaluate(DetectionBatch(claims=claims, claimants=[])) is False

    def test_hourly_jitter_is_not_automated(self, make_claim, business_hours) -> None:
        """Test hourly filings a minute either side of the hour stay quiet."""
        claims = [
            make_claim(
                f"CLM-{i:02d}",
                created_date=business_hours + timedelta(hours=i, seconds=60 if i % 2 else -60),
            )
            for i in range(12)
        ]

        assert RegularCadenceDetector().evaluate(DetectionBatch(claims=claims, claimants=[])) is False

    def test_small_jitter_is_automated(self, make_claim, business_hours) -> None:
        claims = [
            make_claim(
                f"CLM-{i:02d}",
                created_date=business_hours + timedelta(minutes=10 * i, seconds=3 if i % 2 else 0),
            )
            for i in range(12)
        ]

        assert RegularCadenceDetector().evaluate(DetectionBatch(claims=claims, claimants=[])) is True


class TestClusterAnalysis:
    """Tests for clustering."""

    def test_anchored_time_windows(self, engine: PatternDetectionEngine, make_claim, business_hours) -> None:
        """Test windows are anchored at their first claim."""
        claims = [
            make_claim(f"CLM-{i:02d}", created_date=business_hours + timedelta(minutes=10 * i))
            for i in range(12)
        ]

        clusters = engine.cluster_analysis(DetectionBatch(claims=claims, claimants=[]))

        windows = [c for c in clusters if c.kind == "TIME_WINDOW"]
        assert [len(c.members) for c in windows] == [7, 5]
        assert windows[0].suspicious_score == pytest.approx(0.35)

    def test_address_cluster(self, engine: PatternDetectionEngine, make_claim, make_claimant) -> None:
        """Test four claimants at one address cluster their claims."""
        claimants = [make_claimant(f"CLMT-{i}", ssn=f"900-00-000{i}") for i in range(4)]
        claims = [make_claim(f"CLM-{i}", f"CLMT-{i}") for i in range(4)]

        clusters = engine.cluster_analysis(DetectionBatch(claims=claims, claimants=claimants))

        address = [c for c in clusters if c.kind == "ADDRESS"]
        assert len(address) == 1
        assert address[0].members == [f"CLM-{i}" for i in range(4)]
        assert address[0].suspicious_score == 0.5


class TestEmergingPatterns:
    """Tests for emerging pattern discovery and promotion."""

    @pytest.fixture
    def ip_claims(self, make_claim):
        return [make_claim(f"CLM-{i}", f"CLMT-{i}", ip_address="198.51.100.7") for i in range(9)]

    def test_emerging_alert(self, engine: PatternDetectionEngine, ip_claims) -> None:
        """Test a dense IP cluster raises an emerging pattern alert."""
        alerts = engine.detect(ip_claims, [])

        emerging = [a for a in alerts if a.scheme_id.startswith("EMERGING_")]
        assert len(emerging) == 1
        assert emerging[0].severity == RiskLevel.MEDIUM
        assert emerging[0].confidence == 0.9
        assert emerging[0].id == f"ALERT_{emerging[0].scheme_id}"
        assert len(engine.get_emerging_patterns()) == 1

    def test_resighting_increments_observations(self, engine: PatternDetectionEngine, ip_claims) -> None:
        engine.detect(ip_claims, [])
        engine.detect(ip_claims, [])

        patterns = engine.get_emerging_patterns()
        assert len(patterns) == 1
        assert patterns[0].observations == 2

    def test_promotion(self, engine: PatternDetectionEngine, ip_claims) -> None:
        """Test a mature pattern is promoted into the scheme catalog."""
        engine.detect(ip_claims, [])
        pattern_id = engine.get_emerging_patterns()[0].pattern_id

        for _ in range(3):
            engine.run_maintenance()
        assert pattern_id not in {s.id for s in engine.get_known_schemes()}

        engine.run_maintenance()

        scheme = next(s for s in engine.get_known_schemes() if s.id == pattern_id)
        assert scheme.success_rate == 0.5
        assert scheme.detector_ids == [f"promoted:{pattern_id}"]
        assert engine.get_emerging_patterns() == []

        alerts = _alerts_by_scheme(engine.detect(ip_claims, []))
        assert alerts[pattern_id].affected_claims == [f"CLM-{i}" for i in range(9)]


class TestFeedback:
    """Tests for outcome feedback and custom schemes."""

    def test_record_outcome(self, engine: PatternDetectionEngine) -> None:
        """Test outcomes move the success rate by one step each."""
        engine.record_outcome("IDENTITY_RING_SCHEME", True)
        engine.record_outcome("IDENTITY_RING_SCHEME", True)
        engine.record_outcome("AUTOMATED_FILING_SCHEME", False)

        engine.run_maintenance()

        rates = {s.id: s.success_rate for s in engine.get_known_schemes()}
        assert rates["IDENTITY_RING_SCHEME"] == 0.89
        assert rates["AUTOMATED_FILING_SCHEME"] == 0.41
        assert rates["CROSS_BORDER_SCHEME"] == 0.68

    def test_record_outcome_unknown(self, engine: PatternDetectionEngine) -> None:
        with pytest.raises(KeyError):
            engine.record_outcome("NOPE", True)

    def test_success_rate_clamped(self, engine: PatternDetectionEngine) -> None:
        for _ in range(10):
            engine.record_outcome("SYNTHETIC_IDENTITY_SCHEME", True)
        engine.run_maintenance()

        scheme = next(s for s in engine.get_known_schemes() if s.id == "SYNTHETIC_IDENTITY_SCHEME")
        assert scheme.success_rate == 0.99

    def test_custom_scheme(self, engine: PatternDetectionEngine, ring_batch) -> None:
        """Test a custom scheme built from registered detectors."""
        scheme = engine.add_custom_scheme(
            "IP Farm", "Many claims from one address", RiskLevel.HIGH, ["shared_ip_address"]
        )
        claims, claimants = ring_batch

        alerts = _alerts_by_scheme(engine.detect(claims, claimants))

        assert scheme.id.startswith("CUSTOM_")
        assert alerts[scheme.id].confidence == 0.65

    def test_custom_scheme_unknown_detector(self, engine: PatternDetectionEngine) -> None:
        with pytest.raises(ValueError):
            engine.add_custom_scheme("Bad", "", RiskLevel.LOW, ["no_such_detector"])

    def test_monitoring(self, engine: PatternDetectionEngine) -> None:
        """Test the maintenance timer starts and stops."""
        engine.start_monitoring(interval=3600)
        assert engine.is_monitoring is True

        engine.stop_monitoring()
        assert engine.is_monitoring is False
