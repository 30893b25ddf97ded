#!/usr/bin/env python3
"""
Sample Analysis Script.
Demonstrates usage of the Benefit Integrity Engine.
"""

from datetime import timedelta

from benefit_integrity import (
    Address,
    BenefitsClaim,
    ClaimantProfile,
    EnterpriseFraudAnalyzer,
    FraudReportFormatter,
    configure_logging,
)
from benefit_integrity.core.models import MatchSourceType, MatchType
from benefit_integrity.integrations import (
    IdentityMatch,
    InMemoryFactProvider,
    InMemoryIdentityIndex,
)
from benefit_integrity.utils.timeutils import utcnow


def create_sample_claimant(claimant_id: str, ssn: str) -> ClaimantProfile:
    """Create a sample claimant for demonstration."""
    address = Address(
        street_address1="742 Evergreen Terrace",
        city="Springfield",
        state="IL",
        zip_code="62704",
    )
    return ClaimantProfile(
        claimant_id=claimant_id,
        ssn=ssn,
        first_name="Pat",
        last_name="Morgan",
        date_of_birth="1979-08-21",
        email_address="pat.morgan@example.com",
        phone_number="217-555-0199",
        mailing_address=address,
        residence_address=address,
        risk_score=35,
        account_creation_date=utcnow() - timedelta(days=400),
    )


def create_sample_claim(claim_id: str, claimant_id: str) -> BenefitsClaim:
    return BenefitsClaim(
        claim_id=claim_id,
        claimant_id=claimant_id,
        case_number=f"UI-{claim_id}",
        benefit_year="2024",
        weekly_benefit_amount=612.0,
        maximum_benefit_amount=15912.0,
        remaining_balance=15912.0,
        ip_address="198.51.100.24",
    )


def main() -> None:
    """Run sample analysis demonstration."""
    configure_logging("WARNING")

    print("=" * 70)
    print("BENEFIT INTEGRITY ENGINE - SAMPLE ANALYSIS")
    print("=" * 70)
    print()

    # Collaborators: one deceased SSN and one SSN already matched elsewhere
    facts = InMemoryFactProvider(deceased_ssns={"078-05-1120"})
    identities = InMemoryIdentityIndex()
    identities.add_match(
        "CLMT-2002",
        IdentityMatch(MatchSourceType.SSN, MatchType.EXACT, "219-09-9999"),
    )
    analyzer = EnterpriseFraudAnalyzer(fact_provider=facts, identity_service=identities)

    samples = [
        (create_sample_claim("CLM-1001", "CLMT-1001"), create_sample_claimant("CLMT-1001", "078-05-1120"), {}),
        (
            create_sample_claim("CLM-2002", "CLMT-2002"),
            create_sample_claimant("CLMT-2002", "219-09-9999"),
            {"ssn_usage_count": 2, "claims_last_30_days": 5, "justification_text": "need cash asap"},
        ),
        (create_sample_claim("CLM-3003", "CLMT-3003"), create_sample_claimant("CLMT-3003", "457-55-5462"), {}),
    ]

    for claim, claimant, context in samples:
        result = analyzer.analyze(claim, claimant, context=context)
        print(f"Claim {claim.claim_id}: {result.risk_level.value} (score {result.overall_risk_score:.0f})")
        for factor in result.risk_factors:
            print(f"  - {factor.factor_name} [+{factor.impact:.0f}]")
        if result.case_id:
            print(f"  Case opened: {result.case_id}")
        print()

    # Legacy quick screen
    print("-" * 70)
    print("LEGACY QUICK SCREEN")
    print("-" * 70)
    analysis = analyzer.legacy_scorer.analyze(
        {
            "Claim_ID": "LEG-77",
            "Email": "anon@tempmail.com",
            "Phone": "555-0101",
            "Claim_Amount": "9000",
            "Wage_Reported": "1200",
            "Justification_Text": "Let go",
        }
    )
    print(f"{analysis.claim_id}: {analysis.fraud_label} ({analysis.fraud_score:.2f})")
    print(analysis.recommendation)
    print()

    # Management report
    report = analyzer.generate_fraud_report()
    print(FraudReportFormatter(report).to_text())


if __name__ == "__main__":
    main()
