"""
Exception hierarchy for the Benefit Integrity Engine.
"""


class BenefitIntegrityError(Exception):
    """Base class for all engine errors."""


class RuleNotFoundError(BenefitIntegrityError, KeyError):
    """Raised when a business rule id is not registered."""

    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Unknown business rule: {rule_id}")
        self.rule_id = rule_id


class CaseNotFoundError(BenefitIntegrityError, KeyError):
    """Raised when a fraud case id is not in the case store."""

    def __init__(self, case_id: str) -> None:
        super().__init__(f"Unknown fraud case: {case_id}")
        self.case_id = case_id


class InvalidStatusTransitionError(BenefitIntegrityError, ValueError):
    """Raised when a case status change is not allowed by the case workflow."""

    def __init__(self, case_id: str, old_status: str, new_status: str) -> None:
        super().__init__(
            f"Case {case_id} cannot move from {old_status} to {new_status}"
        )
        self.case_id = case_id
        self.old_status = old_status
        self.new_status = new_status


class CollaboratorError(BenefitIntegrityError):
    """Raised by an external collaborator (lookup, cross-match, oracle)."""
