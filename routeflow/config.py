from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    SERVICE_PORT: int = 8080
    LOG_JSON: bool = True
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    # Largest accepted request body, in bytes
    MAX_REQUEST_SIZE: int = 262144
    # Evaluation previews reject inputs with more keys than this
    MAX_INPUT_KEYS: int = 10

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
