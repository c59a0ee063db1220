from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "SchemaForge"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    # Generation endpoint. LLM_API_KEY wins over GEMINI_API_KEY when both are set.
    LLM_API_KEY: str | None = None
    GEMINI_API_KEY: str | None = None
    LLM_BASE_URL: str = GEMINI_OPENAI_BASE_URL
    MODEL_DEFAULT: str = "gemini-2.5-flash"
    GENERATION_TEMPERATURE: float = 0.1
    GENERATION_MIN_INTERVAL_SECONDS: float = 1.0

    AUTOSAVE_DEBOUNCE_SECONDS: float = 1.0

    # Empty string means no persistence medium is available.
    STORAGE_DATABASE_URI: str = "sqlite:///./schemaforge.db"
    STORAGE_KEY: str = "schemaforge_schemas"
    SEED_DEMO_SCHEMA: bool = True

    @property
    def generation_api_key(self) -> str | None:
        return self.LLM_API_KEY or self.GEMINI_API_KEY


settings = Settings()  # type: ignore
