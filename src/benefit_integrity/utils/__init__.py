"""
Utility components for the Benefit Integrity Engine.
"""

from .redaction import SnapshotRedactor, mask_value, redact_snapshot
from .timeutils import as_utc, utcnow

__all__ = [
    "SnapshotRedactor",
    "as_utc",
    "mask_value",
    "redact_snapshot",
    "utcnow",
]
