"""
Benefit Integrity Engine - Main Orchestrator.
Coordinates rule evaluation, text analysis, cross-matching and case creation.
"""

import logging
import math
import time
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from .core.config import Settings, settings as default_settings
from .core.models import (
    BenefitsClaim,
    ClaimantProfile,
    EmployerRecord,
    RiskAssessmentResult,
    RiskFactor,
    RiskLevel,
)
from .core.risk import (
    RISK_LEVEL_RANK,
    average_confidence,
    determine_risk_level,
    max_risk_level,
)
from .core.rule_engine import RuleEngine
from .integrations.identity import IdentityMatchService
from .integrations.lookups import FactProvider, InMemoryFactProvider
from .integrations.text_oracle import HuggingFaceTextOracle, KeywordTextOracle, TextRiskOracle
from .modules.case_management import CaseManagementService
from .modules.legacy import LegacyClaimRecord, LegacyFraudScorer, convert_legacy_record
from .modules.pattern_detection import PatternAlert, PatternDetectionEngine
from .modules.realtime_scoring import RealTimeRiskScorer
from .modules.rules_catalog import default_rules
from .reporting.fraud_report import FraudReport, FraudReportBuilder

logger = logging.getLogger(__name__)

FALLBACK_MODEL_VERSION = "FALLBACK_v1.0"
SYSTEM_USER = "FRAUD_DETECTION_SYSTEM"


class EnterpriseFraudAnalyzer:
    """
    Main orchestrator for the Benefit Integrity Engine.

    ``analyze`` runs the business rules, adds text-analysis and
    cross-match evidence, opens a fraud case when warranted and settles
    the final risk level. Any unexpected failure yields a conservative
    fallback assessment that routes the claim to manual review.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        rule_engine: RuleEngine | None = None,
        case_service: CaseManagementService | None = None,
        text_oracle: TextRiskOracle | None = None,
        fact_provider: FactProvider | None = None,
        identity_service: IdentityMatchService | None = None,
    ) -> None:
        """
        Initialize the analyzer.

        Args:
            settings: Runtime settings (defaults to the global settings)
            rule_engine: Rule engine; defaults to the default rule catalog
            case_service: Case store; defaults to an in-memory service
            text_oracle: Justification-text scorer; defaults to the
                Hugging Face oracle with keyword fallback
            fact_provider: Fact lookups for a default rule engine
            identity_service: Identity source for a default case service
        """
        self.settings = settings or default_settings
        self.rule_engine = rule_engine or RuleEngine(
            rules=default_rules(),
            fact_provider=fact_provider
            or InMemoryFactProvider(industry_average_wage=self.settings.industry_average_wage),
        )
        self.case_service = case_service or CaseManagementService(
            settings=self.settings, identity_service=identity_service
        )
        self.text_oracle = text_oracle or HuggingFaceTextOracle(
            api_key=self.settings.hf_api_key,
            model=self.settings.hf_model,
            base_url=self.settings.hf_base_url,
            timeout=self.settings.oracle_timeout_seconds,
            fallback=KeywordTextOracle(),
        )

        # Initialized lazily
        self._pattern_engine: PatternDetectionEngine | None = None
        self._realtime_scorer: RealTimeRiskScorer | None = None
        self._legacy_scorer: LegacyFraudScorer | None = None

    @property
    def pattern_engine(self) -> PatternDetectionEngine:
        """Get or create the pattern detection engine."""
        if self._pattern_engine is None:
            self._pattern_engine = PatternDetectionEngine(settings=self.settings)
        return self._pattern_engine

    @property
    def realtime_scorer(self) -> RealTimeRiskScorer:
        """Get or create the real-time scorer."""
        if self._realtime_scorer is None:
            self._realtime_scorer = RealTimeRiskScorer(settings=self.settings)
        return self._realtime_scorer

    @property
    def legacy_scorer(self) -> LegacyFraudScorer:
        """Get or create the legacy quick-screen scorer."""
        if self._legacy_scorer is None:
            self._legacy_scorer = LegacyFraudScorer(settings=self.settings)
        return self._legacy_scorer

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze(
        self,
        claim: BenefitsClaim,
        claimant: ClaimantProfile,
        employer: EmployerRecord | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> RiskAssessmentResult:
        """
        Perform a full risk analysis on a claim.

        Args:
            claim: The claim to analyze
            claimant: Claimant who filed it
            employer: Employer of record, if known
            context: Extra facts; ``justification_text`` enables text analysis

        Returns:
            Final risk assessment; ``case_id`` is set when a case was opened
        """
        try:
            return self._analyze(claim, claimant, employer, dict(context or {}))
        except Exception:
            logger.exception("Fraud analysis failed for claim %s", claim.claim_id)
            return self.fallback_assessment(claim.claim_id, claimant.claimant_id)

    def _analyze(
        self,
        claim: BenefitsClaim,
        claimant: ClaimantProfile,
        employer: EmployerRecord | None,
        context: dict[str, Any],
    ) -> RiskAssessmentResult:
        started = time.perf_counter()

        # Phase 1: Business rules
        result, triggers = self.rule_engine.evaluate_with_triggers(
            claim, claimant, employer, context
        )
        rule_level = result.risk_level
        score = result.overall_risk_score
        factors = list(result.risk_factors)

        # Phase 2: Justification text
        justification = context.get("justification_text")
        if justification:
            factor = self._text_analysis_factor(str(justification))
            if factor is not None:
                score = min(self.settings.max_risk_score, score + factor.impact)
                factors.append(factor)

        # Phase 3: Cross-system matches
        matches = self.case_service.cross_match(claimant.claimant_id)
        if matches:
            impact = len(matches) * self.settings.cross_match_score_per_match
            factors.append(
                RiskFactor(
                    factor_id="CROSS_MATCH",
                    factor_name="Cross-System Matches Found",
                    category="CROSS_REFERENCE",
                    impact=impact,
                    confidence=0.9,
                    description=f"Found {len(matches)} potential matches across systems",
                    evidence=[
                        f"{m.source_type.value}: {m.match_type.value} match" for m in matches
                    ],
                )
            )
            score += impact

        # A blocked claim keeps its rule-engine level.
        final_level = max_risk_level(determine_risk_level(score), rule_level)
        result = result.model_copy(
            update={
                "overall_risk_score": score,
                "risk_level": final_level,
                "risk_factors": factors,
                "auto_approval_eligible": (
                    result.auto_approval_eligible and final_level == RiskLevel.LOW
                ),
                "confidence_score": average_confidence(
                    [f.confidence for f in factors], default=1.0
                ),
            }
        )

        # Phase 4: Case creation
        if result.requires_investigation and self._warrants_case(final_level):
            fraud_case = self.case_service.create_case(
                result, claim, claimant, SYSTEM_USER, rules_triggered=triggers
            )
            result.case_id = fraud_case.case_id

        result.processing_time_ms = round((time.perf_counter() - started) * 1000, 3)
        logger.info(
            "Claim %s scored %.1f (%s)%s",
            claim.claim_id,
            result.overall_risk_score,
            result.risk_level.value,
            f", case {result.case_id}" if result.case_id else "",
        )
        return result

    def _text_analysis_factor(self, text: str) -> RiskFactor | None:
        try:
            probability = self.text_oracle.fraud_probability(text)
        except Exception as e:
            logger.warning("Text analysis unavailable: %s", e)
            return None

        if probability <= self.settings.oracle_fraud_threshold:
            return None
        return RiskFactor(
            factor_id="AI_TEXT_ANALYSIS",
            factor_name="AI Text Analysis - Fraud Indicators",
            category="AI_ANALYSIS",
            impact=math.floor(probability * 100),
            confidence=probability,
            description="AI model detected potential fraud indicators in claim justification",
            evidence=[f"AI fraud confidence: {probability * 100:.1f}%"],
        )

    def _warrants_case(self, level: RiskLevel) -> bool:
        minimum = RiskLevel(self.settings.case_creation_min_risk_level)
        return RISK_LEVEL_RANK[level] >= RISK_LEVEL_RANK[minimum]

    @staticmethod
    def fallback_assessment(claim_id: str, claimant_id: str) -> RiskAssessmentResult:
        """Conservative assessment used when analysis fails."""
        return RiskAssessmentResult(
            assessment_id=f"FALLBACK_{claim_id}_{int(time.time() * 1000)}",
            claim_id=claim_id,
            claimant_id=claimant_id,
            overall_risk_score=0,
            risk_level=RiskLevel.LOW,
            risk_factors=[
                RiskFactor(
                    factor_id="SYSTEM_ERROR",
                    factor_name="Analysis System Error",
                    category="TECHNICAL",
                    impact=0,
                    confidence=0,
                    description="Fraud analysis system encountered an error",
                    evidence=["System fallback triggered"],
                )
            ],
            recommended_actions=["Manual review required due to system error"],
            requires_investigation=True,
            auto_approval_eligible=False,
            model_version=FALLBACK_MODEL_VERSION,
            confidence_score=0,
        )

    def analyze_legacy(
        self, record: LegacyClaimRecord | Mapping[str, Any]
    ) -> RiskAssessmentResult:
        """Convert a legacy record and analyze it."""
        try:
            converted = convert_legacy_record(record)
        except Exception:
            claim_id = _legacy_field(record, "Claim_ID", "claim_id") or "UNKNOWN"
            logger.exception("Could not convert legacy record %s", claim_id)
            return self.fallback_assessment(
                claim_id, _legacy_field(record, "Claimant_ID", "claimant_id") or "UNKNOWN"
            )
        return self.analyze(
            converted.claim, converted.claimant, converted.employer, converted.context
        )

    def analyze_batch(
        self, records: list[LegacyClaimRecord | Mapping[str, Any]]
    ) -> list[RiskAssessmentResult]:
        """Analyze legacy records one by one; a bad record never stops the batch."""
        return [self.analyze_legacy(record) for record in records]

    def detect_patterns(
        self, claims: list[BenefitsClaim], claimants: list[ClaimantProfile]
    ) -> list[PatternAlert]:
        return self.pattern_engine.detect(claims, claimants)

    def score_realtime(
        self,
        claim: BenefitsClaim,
        claimant: ClaimantProfile,
        context: Mapping[str, Any] | None = None,
    ) -> RiskAssessmentResult:
        return self.realtime_scorer.score(claim, claimant, context)

    # ------------------------------------------------------------------
    # Reporting and maintenance
    # ------------------------------------------------------------------

    def generate_fraud_report(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> FraudReport:
        """Summarize cases created between ``start`` and ``end`` (inclusive)."""
        builder = FraudReportBuilder(self.case_service, self.rule_engine)
        return builder.build(start=start, end=end)

    def start_background_maintenance(self) -> None:
        self.pattern_engine.start_monitoring()
        self.realtime_scorer.start_learning()

    def stop_background_maintenance(self) -> None:
        if self._pattern_engine is not None:
            self._pattern_engine.stop_monitoring()
        if self._realtime_scorer is not None:
            self._realtime_scorer.stop_learning()


def _legacy_field(record: Any, alias: str, name: str) -> str | None:
    if isinstance(record, Mapping):
        value = record.get(alias, record.get(name))
    else:
        value = getattr(record, name, None)
    return str(value) if value else None


# Convenience function for one-off analyses
def analyze_claim(
    claim: BenefitsClaim,
    claimant: ClaimantProfile,
    employer: EmployerRecord | None = None,
    context: Mapping[str, Any] | None = None,
) -> RiskAssessmentResult:
    """
    Analyze a single claim with a freshly configured analyzer.

    Args:
        claim: The claim to analyze
        claimant: Claimant who filed it
        employer: Employer of record, if known
        context: Extra facts for the rule engine

    Returns:
        Final risk assessment
    """
    return EnterpriseFraudAnalyzer().analyze(claim, claimant, employer, context)
