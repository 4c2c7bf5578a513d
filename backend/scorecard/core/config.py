"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings

VALID_ENVIRONMENTS = ("development", "test", "staging", "production")
VALID_ACTOR_SCOPES = ("all", "assigned")
VALID_TREND_PERIODS = ("7d", "30d", "90d", "1y", "all")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Purple Team Scorecard"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:3001"

    # MITRE ATT&CK
    mitre_attack_version: str = "14.1"

    # Scorecard defaults
    default_actor_scope: str = "all"
    crown_jewel_trend_period: str = "1y"

    # Largest technique list accepted in a single request body
    max_snapshot_techniques: int = 50000

    # Rolling window for in-process aggregation metrics (last N calls)
    metrics_window_size: int = 1000

    def model_post_init(self, __context) -> None:
        """Validate enumerated settings after initialization."""
        if self.environment not in VALID_ENVIRONMENTS:
            raise ValueError(
                f"ENVIRONMENT must be one of {', '.join(VALID_ENVIRONMENTS)}, "
                f"got '{self.environment}'"
            )

        if self.default_actor_scope not in VALID_ACTOR_SCOPES:
            raise ValueError(
                f"DEFAULT_ACTOR_SCOPE must be one of {', '.join(VALID_ACTOR_SCOPES)}, "
                f"got '{self.default_actor_scope}'"
            )

        if self.crown_jewel_trend_period not in VALID_TREND_PERIODS:
            raise ValueError(
                "CROWN_JEWEL_TREND_PERIOD must be one of "
                f"{', '.join(VALID_TREND_PERIODS)}, "
                f"got '{self.crown_jewel_trend_period}'"
            )

        if self.max_snapshot_techniques <= 0:
            raise ValueError("MAX_SNAPSHOT_TECHNIQUES must be positive")

        if self.metrics_window_size <= 0:
            raise ValueError("METRICS_WINDOW_SIZE must be positive")

    @property
    def cors_origin_list(self) -> list[str]:
        return [
            origin.strip() for origin in self.cors_origins.split(",") if origin.strip()
        ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
