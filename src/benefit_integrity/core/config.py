"""
Configuration management using Pydantic Settings.
Values load from environment variables prefixed with BENEFIT_INTEGRITY_
or from a local .env file.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import RiskLevel


class Settings(BaseSettings):
    """Runtime settings shared by every engine component."""

    model_config = SettingsConfigDict(
        env_prefix="BENEFIT_INTEGRITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------
    max_risk_score: float = 1000.0
    cross_match_score_per_match: float = 25.0
    industry_average_wage: float = 50000.0
    reference_weekly_benefit: float = 450.0
    potential_loss_weeks: int = 26
    behavioral_history_size: int = Field(default=10, ge=1)
    continuous_learning: bool = True
    legacy_score_jitter: float = Field(default=0.0, ge=0, le=1)

    # ------------------------------------------------------------------
    # Case management
    # ------------------------------------------------------------------
    enforce_case_transitions: bool = True
    case_creation_min_risk_level: RiskLevel = RiskLevel.HIGH

    # ------------------------------------------------------------------
    # Pattern detection
    # ------------------------------------------------------------------
    non_domestic_ip_prefixes: list[str] = Field(
        default_factory=lambda: ["192.168.", "10.", "172."]
    )
    emerging_promotion_observations: int = 5
    emerging_promotion_score: float = 0.8

    # ------------------------------------------------------------------
    # Background maintenance
    # ------------------------------------------------------------------
    pattern_monitor_interval_seconds: float = 300.0
    learning_interval_seconds: float = 60.0
    simulate_feedback: bool = False
    simulation_seed: int | None = None

    # ------------------------------------------------------------------
    # Text scoring oracle (Hugging Face Inference API)
    # ------------------------------------------------------------------
    hf_api_key: str | None = None
    hf_base_url: str = "https://api-inference.huggingface.co/models/"
    hf_model: str = (
        "laiyer/deberta-v3-base-turbo-finetuned-text-classification-fraud-detection"
    )
    oracle_timeout_seconds: float = 10.0
    oracle_fraud_threshold: float = 0.5


# Global settings instance
settings = Settings()
