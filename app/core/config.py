from functools import lru_cache
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./splito.db"
    LOG_LEVEL: str = "INFO"

    BALANCE_CACHE_TTL_SECONDS: int = 5 * 60
    BALANCE_REFRESH_DEBOUNCE_MS: int = 1000
    BALANCE_CHANGE_DEBOUNCE_MS: int = 500
    # one pending debounce timer for the whole process unless enabled
    BALANCE_DEBOUNCE_PER_USER: bool = False

    DEFAULT_CURRENCY: str = "USD"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
