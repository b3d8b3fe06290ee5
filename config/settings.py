from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Core
    ENVIRONMENT: str = Field(default="production")
    PORT: int = Field(default=3000)
    LOG_LEVEL: str = Field(default="INFO")

    # Firebase (service account JSON blob; required at boot)
    FIREBASE_SERVICE_ACCOUNT_JSON: str = Field(default="")
    FIRESTORE_PROJECT_ID: str = Field(default="")  # empty -> project_id from service account

    # Watcher supervision
    WATCHER_RETRY_DELAY_S: float = Field(default=5.0)
    WATCHER_LIVENESS_INTERVAL_S: float = Field(default=30.0)

    # Push
    PUSH_DEFAULT_TITLE: str = Field(default="ListAppi")
    ANDROID_CHANNEL_ID: str = Field(default="default")


settings = Settings()
