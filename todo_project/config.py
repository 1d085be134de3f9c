from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent
env_file = BASE_DIR / ".env"


class BackendSettings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "todoDB"
    MONGO_COLLECTION: str = "todos"
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        extra="ignore", env_file=env_file, env_file_encoding="utf-8"
    )


class FrontendSettings(BaseSettings):
    # Same variable the browser build used for the backend base URL
    API_URL: str | None = Field(default=None, alias="VITE_API_URL")
    API_TIMEOUT: float = 10.0
    API_RETRIES: int = 3
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        extra="ignore",
        env_file=env_file,
        env_file_encoding="utf-8",
        populate_by_name=True,
    )
