# app/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    database_url: str = Field("sqlite:///./triage_intake.db", validation_alias="DATABASE_URL")

    openai_api_key: str | None = Field(None, validation_alias="OPENAI_API_KEY")
    openai_base_url: str | None = Field(None, validation_alias="OPENAI_BASE_URL")
    llm_model: str = Field("llama-3.3-70b-versatile", validation_alias="LLM_MODEL")
    ai_note_enrichment: bool = Field(False, validation_alias="AI_NOTE_ENRICHMENT")
    llm_timeout_seconds: float = Field(20.0, validation_alias="LLM_TIMEOUT_SECONDS")

    # Multi-tab intake lock
    lock_timeout_seconds: float = Field(300.0, validation_alias="LOCK_TIMEOUT_SECONDS")
    lock_heartbeat_seconds: float = Field(30.0, validation_alias="LOCK_HEARTBEAT_SECONDS")

    # Resumable state
    recovery_max_age_seconds: float = Field(3600.0, validation_alias="RECOVERY_MAX_AGE_SECONDS")
    session_ttl_hours: float = Field(24.0, validation_alias="SESSION_TTL_HOURS")

    emergency_service_number: str = Field("1122", validation_alias="EMERGENCY_SERVICE_NUMBER")
    mental_health_helpline: str = Field("042-35761999", validation_alias="MENTAL_HEALTH_HELPLINE")
    default_language: str = Field("en", validation_alias="DEFAULT_LANGUAGE")

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    log_structured: bool = Field(False, validation_alias="LOG_STRUCTURED")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
