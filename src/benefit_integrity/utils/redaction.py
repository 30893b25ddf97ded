"""
PII redaction for audit snapshots and cross-match output.

Rule-trigger snapshots and case audit entries are kept indefinitely, so
claimant identifiers are masked before they are stored.
"""

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel


class SnapshotRedactor:
    """
    Masks personally identifiable information inside nested data.

    Known PII keys (SSN, names, contact details, addresses) are masked by
    key; free-text values are scanned for SSN, email and phone patterns.
    """

    REDACTED = "[REDACTED]"

    PATTERNS: dict[str, re.Pattern[str]] = {
        "ssn": re.compile(r"\b\d{3}[-\s]?\d{2}[-\s]?\d{4}\b"),
        "email": re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
        "phone": re.compile(
            r"\b(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b"
        ),
    }

    PII_FIELDS: set[str] = {
        "ssn",
        "ssn_hash",
        "first_name",
        "last_name",
        "middle_name",
        "name",
        "date_of_birth",
        "dob",
        "email_address",
        "email",
        "phone_number",
        "alternate_phone",
        "phone",
        "street_address1",
        "street_address2",
        "federal_ein",
    }

    def __init__(self, extra_fields: set[str] | None = None) -> None:
        self.pii_fields = self.PII_FIELDS | {f.lower() for f in extra_fields or set()}

    def redact_string(self, text: str) -> str:
        """Mask PII patterns inside free text."""
        for pattern in self.PATTERNS.values():
            text = pattern.sub(self.REDACTED, text)
        return text

    def redact(self, data: Any) -> Any:
        """
        Return a redacted, JSON-friendly copy of ``data``.

        Pydantic models are dumped to dicts first; the input is never
        modified.
        """
        if isinstance(data, BaseModel):
            data = data.model_dump(mode="json")
        if isinstance(data, Mapping):
            return {
                key: self.REDACTED
                if str(key).lower() in self.pii_fields and value not in (None, "")
                else self.redact(value)
                for key, value in data.items()
            }
        if isinstance(data, (list, tuple)):
            return [self.redact(item) for item in data]
        if isinstance(data, str):
            return self.redact_string(data)
        return data


def mask_value(value: str, visible: int = 4) -> str:
    """Mask all but the last ``visible`` characters of an identifier."""
    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]


_default_redactor = SnapshotRedactor()


def redact_snapshot(data: Any) -> Any:
    """Convenience wrapper around a shared ``SnapshotRedactor``."""
    return _default_redactor.redact(data)
