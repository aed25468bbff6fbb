"""Application configuration with comprehensive validation."""
from typing import Optional, Literal
from functools import lru_cache
from pydantic import Field, model_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with production-grade validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Cocoa Contest Evaluation Engine"
    APP_VERSION: str = "1.0.0"
    APP_ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "json"
    SECRET_KEY: SecretStr = SecretStr("dev-secret-key")

    # API
    API_V1_PREFIX: str = "/api/v1"

    # Capacity
    MAX_ASSIGNMENTS_PER_JUDGE: int = Field(default=10, ge=1, le=100)
    MAX_ASSIGNMENTS_PER_EVALUATOR: int = Field(default=10, ge=1, le=100)

    # Final stage
    FINAL_STAGE_TOP_N: int = Field(default=10, ge=1, le=100)

    # Results
    EXCELLENCE_THRESHOLD: float = Field(default=9.0, ge=0.0, le=10.0)

    # Outlier filtering of judge scores
    OUTLIER_FILTERING_ENABLED: bool = True
    OUTLIER_SIGMA_THRESHOLD: float = Field(default=2.0, gt=0.0, le=5.0)
    OUTLIER_MIN_EVALUATIONS: int = Field(default=3, ge=2, le=50)
    OUTLIER_STRATEGY: Literal["exclude", "reduce_weight"] = "reduce_weight"
    OUTLIER_WEIGHT_REDUCTION: float = Field(default=0.5, ge=0.0, le=1.0)

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_ENABLED: bool = False
    CACHE_TTL_RANKINGS: int = 300   # 5 minutes

    @model_validator(mode="after")
    def validate_outlier_settings(self):
        """A zero weight only makes sense with the exclude strategy."""
        if self.OUTLIER_STRATEGY == "reduce_weight" and self.OUTLIER_WEIGHT_REDUCTION == 0:
            raise ValueError("OUTLIER_WEIGHT_REDUCTION must be > 0 for reduce_weight strategy")
        return self

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure production has required security settings."""
        if self.APP_ENV == "production":
            if self.DEBUG:
                raise ValueError("DEBUG must be False in production")
            if len(self.SECRET_KEY.get_secret_value()) < 32:
                raise ValueError("SECRET_KEY must be ≥32 characters in production")
        return self

    @property
    def outlier_config(self) -> Optional[dict]:
        """Outlier filter keyword arguments, or None when filtering is off."""
        if not self.OUTLIER_FILTERING_ENABLED:
            return None
        return {
            "sigma_threshold": self.OUTLIER_SIGMA_THRESHOLD,
            "min_evaluations": self.OUTLIER_MIN_EVALUATIONS,
            "strategy": self.OUTLIER_STRATEGY,
            "weight_reduction_factor": self.OUTLIER_WEIGHT_REDUCTION,
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
