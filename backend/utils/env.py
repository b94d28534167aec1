from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    GEMINI_API_KEY: str | None = None
    VEO_MODEL: str = "veo-3.1-fast-generate-preview"
    VEO_RESOLUTION: str = "720p"
    VEO_NUMBER_OF_VIDEOS: int = 1
    POLL_INTERVAL_SECONDS: float = Field(default=5.0, gt=0)
    MAX_POLL_ATTEMPTS: int = Field(default=60, ge=1)
    MAX_IMAGE_BYTES: int = 5 * 1024 * 1024
    ARTIFACT_DIR: str | None = None
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("GEMINI_API_KEY", "ARTIFACT_DIR")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


settings = Settings()
