"""
Business Rule Engine for the Benefit Integrity Engine.
Evaluates configurable rules against a claim's derived facts.
"""

import logging
import threading
from collections import Counter
from typing import Any

from ..integrations.lookups import FactProvider, InMemoryFactProvider
from ..utils.redaction import redact_snapshot
from ..utils.timeutils import utcnow
from .conditions import evaluate_conditions
from .exceptions import RuleNotFoundError
from .models import (
    ActionType,
    BenefitsClaim,
    BusinessRule,
    BusinessRuleTrigger,
    ClaimantProfile,
    EmployerRecord,
    LogicalOperator,
    RiskAssessmentResult,
    RiskFactor,
    RiskLevel,
    RuleAction,
)
from .risk import (
    RULE_FACTOR_CONFIDENCE,
    average_confidence,
    determine_risk_level,
    severity_weight,
)

logger = logging.getLogger(__name__)

MODEL_VERSION = "BRE_v2.1"

# Safe defaults used when a fact lookup fails.
FACT_DEFAULTS: dict[str, Any] = {
    "ssn_usage_count": 1,
    "wage_to_industry_ratio": 0.0,
    "employer_risk_level": RiskLevel.LOW.value,
    "claims_last_30_days": 1,
    "death_registry_match": False,
}


class RuleEngine:
    """
    Rule engine that scores a claim from an ordered business-rule catalog.

    Rules are evaluated in definition order. All conditions of a rule must
    hold for it to trigger; each trigger executes the rule's actions,
    emits one risk factor and is appended to the audit log. Rules are only
    ever deactivated, never removed.
    """

    def __init__(
        self,
        rules: list[BusinessRule] | None = None,
        fact_provider: FactProvider | None = None,
    ) -> None:
        self._rules: dict[str, BusinessRule] = {}
        self._audit_log: list[BusinessRuleTrigger] = []
        self._trigger_counter: int = 0
        self._lock = threading.RLock()
        self.fact_provider: FactProvider = fact_provider or InMemoryFactProvider()

        for rule in rules or []:
            self.add_rule(rule)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def add_rule(self, rule: BusinessRule) -> None:
        """Add a rule to the end of the catalog."""
        if any(c.logical_operator == LogicalOperator.OR for c in rule.conditions):
            logger.warning(
                "Rule %s declares OR conditions; conditions are always combined with AND",
                rule.rule_id,
            )
        with self._lock:
            if rule.rule_id in self._rules:
                logger.warning("Replacing existing rule %s", rule.rule_id)
            self._rules[rule.rule_id] = rule

    def update_rule(self, rule_id: str, **changes: Any) -> BusinessRule:
        """
        Apply a partial update to a rule.

        Args:
            rule_id: Rule to update
            **changes: Field values to replace

        Returns:
            The updated rule, stamped with a new modification date

        Raises:
            RuleNotFoundError: If no rule has this id
        """
        changes.pop("rule_id", None)
        with self._lock:
            current = self._rules.get(rule_id)
            if current is None:
                raise RuleNotFoundError(rule_id)
            data = current.model_dump()
            data.update(changes)
            data["last_modified_date"] = utcnow()
            updated = BusinessRule.model_validate(data)
            self._rules[rule_id] = updated
        return updated

    def deactivate_rule(self, rule_id: str, modified_by: str = "SYSTEM") -> bool:
        """Soft-delete a rule. Returns False if the rule does not exist."""
        try:
            self.update_rule(rule_id, is_active=False, last_modified_by=modified_by)
        except RuleNotFoundError:
            return False
        return True

    def get_rule(self, rule_id: str) -> BusinessRule | None:
        with self._lock:
            return self._rules.get(rule_id)

    def get_rules(self) -> list[BusinessRule]:
        """All rules, active or not, in definition order."""
        with self._lock:
            return list(self._rules.values())

    def get_active_rules(self) -> list[BusinessRule]:
        with self._lock:
            return [rule for rule in self._rules.values() if rule.is_active]

    def list_rules(self) -> list[dict[str, Any]]:
        """List all rules with their status."""
        return [
            {
                "rule_id": rule.rule_id,
                "rule_name": rule.rule_name,
                "rule_type": rule.rule_type.value,
                "category": rule.category.value,
                "severity": rule.severity.value,
                "is_active": rule.is_active,
                "description": rule.description,
            }
            for rule in self.get_rules()
        ]

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(
        self,
        claim: BenefitsClaim,
        claimant: ClaimantProfile,
        employer: EmployerRecord | None = None,
        context: dict[str, Any] | None = None,
    ) -> RiskAssessmentResult:
        """Evaluate all active rules and return the risk assessment."""
        result, _ = self.evaluate_with_triggers(claim, claimant, employer, context)
        return result

    def evaluate_with_triggers(
        self,
        claim: BenefitsClaim,
        claimant: ClaimantProfile,
        employer: EmployerRecord | None = None,
        context: dict[str, Any] | None = None,
    ) -> tuple[RiskAssessmentResult, list[BusinessRuleTrigger]]:
        """
        Evaluate all active rules against a claim.

        Args:
            claim: The claim under evaluation
            claimant: Profile of the claimant
            employer: Employer of record, if known
            context: Additional facts; values here take precedence over lookups

        Returns:
            The risk assessment and the triggers recorded for it
        """
        evaluation_context = self.build_context(claim, claimant, employer, context)

        triggers: list[BusinessRuleTrigger] = []
        risk_factors: list[RiskFactor] = []
        total_score = 0.0
        blocked = False
        requires_investigation = False

        for rule in self.get_active_rules():
            if not evaluate_conditions(rule.conditions, evaluation_context):
                continue

            actions_taken: list[str] = []
            for action in rule.actions:
                actions_taken.append(self._describe_action(action))
                if action.action_type == ActionType.ADD_SCORE:
                    total_score += self._score_parameter(action)
                elif action.action_type == ActionType.BLOCK_CLAIM:
                    blocked = True
                elif action.action_type in (
                    ActionType.CREATE_CASE,
                    ActionType.REQUIRE_VERIFICATION,
                ):
                    requires_investigation = True
                elif action.action_type == ActionType.SEND_ALERT:
                    logger.info(
                        "Rule %s alert for claim %s: %s",
                        rule.rule_id,
                        claim.claim_id,
                        action.parameters.get("alert_type"),
                    )

            trigger = BusinessRuleTrigger(
                trigger_id=self._next_trigger_id(rule.rule_id),
                rule_id=rule.rule_id,
                rule_name=rule.rule_name,
                claim_id=claim.claim_id,
                severity=rule.severity,
                message=f'Rule "{rule.rule_name}" triggered: {rule.description}',
                actions_taken=actions_taken,
                data_snapshot=redact_snapshot(evaluation_context),
            )
            triggers.append(trigger)

            risk_factors.append(
                RiskFactor(
                    factor_id=rule.rule_id,
                    factor_name=rule.rule_name,
                    category=rule.category.value,
                    impact=severity_weight(rule.severity),
                    confidence=RULE_FACTOR_CONFIDENCE,
                    description=rule.description,
                    evidence=list(actions_taken),
                )
            )

        with self._lock:
            self._audit_log.extend(triggers)

        risk_level = determine_risk_level(total_score, blocked)
        result = RiskAssessmentResult(
            assessment_id=f"RISK_{claim.claim_id}_{utcnow().strftime('%Y%m%d%H%M%S%f')}",
            claim_id=claim.claim_id,
            claimant_id=claimant.claimant_id,
            overall_risk_score=max(0.0, total_score),
            risk_level=risk_level,
            risk_factors=risk_factors,
            recommended_actions=self._recommendations(
                risk_level, blocked, requires_investigation
            ),
            requires_investigation=requires_investigation,
            auto_approval_eligible=not blocked and risk_level == RiskLevel.LOW,
            model_version=MODEL_VERSION,
            confidence_score=average_confidence(
                [f.confidence for f in risk_factors], default=1.0
            ),
        )

        if triggers:
            logger.debug(
                "Claim %s triggered %d rule(s), score %.1f (%s)",
                claim.claim_id,
                len(triggers),
                result.overall_risk_score,
                risk_level.value,
            )
        return result, triggers

    def build_context(
        self,
        claim: BenefitsClaim,
        claimant: ClaimantProfile,
        employer: EmployerRecord | None = None,
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Merge caller context with entities and derived facts."""
        evaluation_context: dict[str, Any] = dict(context or {})
        evaluation_context.update(claim=claim, claimant=claimant, employer=employer)

        lookups = {
            "ssn_usage_count": lambda: self.fact_provider.ssn_usage_count(claimant.ssn),
            "wage_to_industry_ratio": lambda: self.fact_provider.wage_to_industry_ratio(
                claim, employer
            ),
            "employer_risk_level": lambda: (
                employer.risk_level.value if employer else RiskLevel.LOW.value
            ),
            "claims_last_30_days": lambda: self.fact_provider.claims_last_30_days(
                claimant.claimant_id
            ),
            "death_registry_match": lambda: self.fact_provider.death_registry_match(
                claimant.ssn
            ),
        }
        for fact, lookup in lookups.items():
            if fact in evaluation_context:
                continue
            try:
                evaluation_context[fact] = lookup()
            except Exception as e:
                logger.warning("Fact lookup %s failed, using default: %s", fact, e)
                evaluation_context[fact] = FACT_DEFAULTS[fact]
        return evaluation_context

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------

    def get_audit_log(self) -> list[BusinessRuleTrigger]:
        with self._lock:
            return list(self._audit_log)

    def get_triggers_for_rule(self, rule_id: str) -> list[BusinessRuleTrigger]:
        with self._lock:
            return [t for t in self._audit_log if t.rule_id == rule_id]

    def rule_performance(self) -> list[dict[str, Any]]:
        """Trigger counts per rule, in catalog order."""
        with self._lock:
            counts = Counter(t.rule_id for t in self._audit_log)
            last_triggered = {t.rule_id: t.trigger_date for t in self._audit_log}
            rules = list(self._rules.values())
        return [
            {
                "rule_id": rule.rule_id,
                "rule_name": rule.rule_name,
                "is_active": rule.is_active,
                "severity": rule.severity.value,
                "trigger_count": counts.get(rule.rule_id, 0),
                "last_triggered": last_triggered.get(rule.rule_id),
            }
            for rule in rules
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _next_trigger_id(self, rule_id: str) -> str:
        with self._lock:
            self._trigger_counter += 1
            return f"{rule_id}_{self._trigger_counter:06d}"

    @staticmethod
    def _score_parameter(action: RuleAction) -> float:
        try:
            return float(action.parameters.get("score", 0) or 0)
        except (TypeError, ValueError):
            logger.warning("Non-numeric score on action %s", action.action_id)
            return 0.0

    @staticmethod
    def _describe_action(action: RuleAction) -> str:
        params = action.parameters
        action_type = action.action_type
        if action_type == ActionType.SET_FLAG:
            return f"Set flag: {params.get('flag')} ({params.get('severity')})"
        if action_type == ActionType.ADD_SCORE:
            return f"Added risk score: {params.get('score')}"
        if action_type == ActionType.BLOCK_CLAIM:
            return f"Blocked claim: {params.get('reason')}"
        if action_type == ActionType.REQUIRE_VERIFICATION:
            return f"Required verification: {params.get('verification_type')}"
        if action_type == ActionType.CREATE_CASE:
            return f"Created case: {params.get('case_type')} ({params.get('priority')})"
        if action_type == ActionType.SEND_ALERT:
            return f"Sent alert: {params.get('alert_type')}"
        return f"Unknown action: {action_type}"

    @staticmethod
    def _recommendations(
        risk_level: RiskLevel, blocked: bool, requires_investigation: bool
    ) -> list[str]:
        if blocked:
            recommendations = ["DENY claim immediately due to critical risk factors"]
        elif risk_level == RiskLevel.CRITICAL:
            recommendations = [
                "HOLD claim for immediate investigation",
                "Require enhanced identity verification",
            ]
        elif risk_level == RiskLevel.HIGH:
            recommendations = [
                "HOLD claim for standard investigation",
                "Verify employment and wage records",
            ]
        elif risk_level == RiskLevel.MEDIUM:
            recommendations = [
                "Process with additional verification",
                "Monitor for unusual patterns",
            ]
        else:
            recommendations = ["APPROVE with standard processing"]

        if requires_investigation:
            recommendations.extend(
                ["Create investigation case", "Assign to fraud investigation unit"]
            )
        return recommendations
