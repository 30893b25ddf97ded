"""
Text scoring oracle for claim justification text.

``HuggingFaceTextOracle`` calls a hosted text-classification model and
falls back to the offline ``KeywordTextOracle`` whenever the API key is
missing or the call fails. Callers get a probability in [0, 1] either way.
"""

import logging
from typing import Any, Protocol

import requests

from ..core.exceptions import CollaboratorError

logger = logging.getLogger(__name__)


class TextRiskOracle(Protocol):
    def fraud_probability(self, text: str) -> float: ...


class KeywordTextOracle:
    """
    Offline heuristic scorer used when no model endpoint is available.

    Very short justifications and pressure or payment-redirection language
    raise the probability.
    """

    SUSPICIOUS_TERMS = (
        "urgent",
        "asap",
        "cash",
        "wire",
        "gift card",
        "prepaid",
        "crypto",
        "different account",
        "new bank",
    )

    def __init__(self, base_score: float = 0.1, short_text_length: int = 20) -> None:
        self.base_score = base_score
        self.short_text_length = short_text_length

    def fraud_probability(self, text: str) -> float:
        stripped = (text or "").strip()
        score = self.base_score
        if len(stripped) < self.short_text_length:
            score += 0.3
        lowered = stripped.lower()
        score += 0.2 * sum(1 for term in self.SUSPICIOUS_TERMS if term in lowered)
        return round(min(1.0, max(0.0, score)), 4)


class HuggingFaceTextOracle:
    """
    Fraud probability from the Hugging Face Inference API.

    Args:
        api_key: Inference API token; ``None`` means always use the fallback
        model: Text-classification model name
        base_url: Inference API base URL
        timeout: Request timeout in seconds
        fallback: Oracle used when the API is unavailable
        session: Optional ``requests.Session`` for connection reuse
    """

    FRAUD_LABEL = "FRAUD"

    def __init__(
        self,
        api_key: str | None,
        model: str,
        base_url: str = "https://api-inference.huggingface.co/models/",
        timeout: float = 10.0,
        fallback: TextRiskOracle | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.fallback = fallback or KeywordTextOracle()
        self.session = session or requests.Session()

    def fraud_probability(self, text: str) -> float:
        if not self.api_key:
            return self.fallback.fraud_probability(text)
        try:
            return self._query(text)
        except (requests.RequestException, CollaboratorError) as e:
            logger.warning("Text oracle unavailable, using fallback: %s", e)
            return self.fallback.fraud_probability(text)

    def _query(self, text: str) -> float:
        response = self.session.post(
            f"{self.base_url}{self.model}",
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={"inputs": text},
            timeout=self.timeout,
        )
        if not response.ok:
            raise CollaboratorError(f"Inference API returned {response.status_code}")
        try:
            payload = response.json()
        except ValueError as e:
            raise CollaboratorError("Inference API returned invalid JSON") from e
        return self._extract_fraud_score(payload)

    def _extract_fraud_score(self, payload: Any) -> float:
        # The API wraps single-input results in an extra list.
        if isinstance(payload, list) and payload and isinstance(payload[0], list):
            payload = payload[0]
        if not isinstance(payload, list):
            raise CollaboratorError("Unexpected inference payload")
        for item in payload:
            if isinstance(item, dict) and str(item.get("label", "")).upper() == self.FRAUD_LABEL:
                try:
                    score = float(item.get("score", 0.0))
                except (TypeError, ValueError) as e:
                    raise CollaboratorError("Non-numeric fraud score") from e
                return min(1.0, max(0.0, score))
        return 0.0
