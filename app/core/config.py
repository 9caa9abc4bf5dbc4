from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Any, Dict, List


class Settings(BaseSettings):
    PROJECT_NAME: str = "Versus API"
    API_V1_STR: str = "/v1"

    # Database
    SQLALCHEMY_DATABASE_URI: str = "sqlite:///./versus.db"

    BACKEND_CORS_ORIGINS: List[str] = []

    # Shared key for ingestion and engine tuning endpoints (X-Admin-Key header)
    ADMIN_API_KEY: str = "CHANGE_ME_ADMIN_KEY"

    # Logging
    LOG_LEVEL: str = "INFO"
    # JSON lines in production, coloured console output otherwise
    LOG_JSON: bool = False

    # Engine tuning
    # Flat {setting_key: value} overrides applied on top of the engine defaults,
    # e.g. ENGINE_OVERRIDES='{"upset_threshold": 150, "candidate_pool_size": 200}'.
    # Runtime overrides stored through PUT /model-config take precedence.
    ENGINE_OVERRIDES: Dict[str, Any] = {}

    # How long an engine config snapshot is reused before the stored
    # overrides are read again.
    SETTINGS_CACHE_TTL_SECONDS: float = 60.0

    model_config = SettingsConfigDict(case_sensitive=True)


settings = Settings()
