"""
Identity cross-match collaborator.

Real deployments query external identity sources; ``InMemoryIdentityIndex``
serves matches registered ahead of time.
"""

import threading
from dataclasses import dataclass, field
from typing import Protocol

from ..core.models import MatchSourceType, MatchType, RelatedEntity


@dataclass
class IdentityMatch:
    """A raw match returned by an identity source."""

    source_type: MatchSourceType
    match_type: MatchType
    source_value: str
    confidence: float | None = None
    related_entities: list[RelatedEntity] = field(default_factory=list)


class IdentityMatchService(Protocol):
    def find_matches(
        self,
        claimant_id: str,
        source_type: MatchSourceType,
        match_type: MatchType,
    ) -> list[IdentityMatch]: ...


class InMemoryIdentityIndex:
    """Identity matches keyed by claimant id."""

    def __init__(self) -> None:
        self._matches: dict[str, list[IdentityMatch]] = {}
        self._lock = threading.RLock()

    def add_match(self, claimant_id: str, match: IdentityMatch) -> None:
        with self._lock:
            self._matches.setdefault(claimant_id, []).append(match)

    def find_matches(
        self,
        claimant_id: str,
        source_type: MatchSourceType,
        match_type: MatchType,
    ) -> list[IdentityMatch]:
        with self._lock:
            return [
                match
                for match in self._matches.get(claimant_id, [])
                if match.source_type == source_type and match.match_type == match_type
            ]
