"""
External collaborators: fact lookups, identity cross-match, text oracle.
"""

from .identity import IdentityMatch, IdentityMatchService, InMemoryIdentityIndex
from .lookups import FactProvider, InMemoryFactProvider
from .text_oracle import HuggingFaceTextOracle, KeywordTextOracle, TextRiskOracle

__all__ = [
    "FactProvider",
    "HuggingFaceTextOracle",
    "IdentityMatch",
    "IdentityMatchService",
    "InMemoryFactProvider",
    "InMemoryIdentityIndex",
    "KeywordTextOracle",
    "TextRiskOracle",
]
