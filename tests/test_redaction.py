"""
Tests for snapshot redaction and identifier masking.
"""

import pytest

from benefit_integrity.utils.redaction import SnapshotRedactor, mask_value, redact_snapshot


class TestSnapshotRedactor:
    """Tests for SnapshotRedactor class."""

    @pytest.fixture
    def redactor(self) -> SnapshotRedactor:
        """Create a redactor instance."""
        return SnapshotRedactor()

    def test_redact_ssn(self, redactor: SnapshotRedactor) -> None:
        """Test SSN redaction."""
        result = redactor.redact_string("SSN: 123-45-6789")

        assert "123-45-6789" not in result
        assert "[REDACTED]" in result

    def test_redact_phone(self, redactor: SnapshotRedactor) -> None:
        """Test phone number redaction."""
        result = redactor.redact_string("Call me at 555-123-4567")

        assert "555-123-4567" not in result

    def test_redact_email(self, redactor: SnapshotRedactor) -> None:
        """Test email redaction."""
        result = redactor.redact_string("Email: john.doe@example.com")

        assert "john.doe@example.com" not in result

    def test_redact_dict_by_key(self, redactor: SnapshotRedactor) -> None:
        """Test known PII keys are masked and other keys preserved."""
        data = {"ssn": "987654321", "first_name": "Ana", "claims_last_30_days": 4}

        result = redactor.redact(data)

        assert result["ssn"] == "[REDACTED]"
        assert result["first_name"] == "[REDACTED]"
        assert result["claims_last_30_days"] == 4

    def test_redact_model(self, redactor: SnapshotRedactor, claimant) -> None:
        """Test pydantic models are dumped and masked recursively."""
        result = redactor.redact({"claimant": claimant})

        assert result["claimant"]["ssn"] == "[REDACTED]"
        assert result["claimant"]["mailing_address"]["street_address1"] == "[REDACTED]"
        assert result["claimant"]["mailing_address"]["city"] == "Springfield"
        assert result["claimant"]["claimant_id"] == "CLMT-001"

    def test_input_not_modified(self) -> None:
        """Test redaction returns a copy."""
        data = {"ssn": "123-45-6789", "nested": {"email": "a@b.org"}}
        redact_snapshot(data)

        assert data == {"ssn": "123-45-6789", "nested": {"email": "a@b.org"}}

    def test_extra_fields(self) -> None:
        redactor = SnapshotRedactor(extra_fields={"Bank_Account"})
        assert redactor.redact({"bank_account": "00123"})["bank_account"] == "[REDACTED]"


class TestMaskValue:
    """Tests for mask_value."""

    def test_keeps_last_four(self) -> None:
        assert mask_value("123456789") == "*****6789"

    def test_short_value_fully_masked(self) -> None:
        assert mask_value("123") == "***"

    def test_empty(self) -> None:
        assert mask_value("") == ""
