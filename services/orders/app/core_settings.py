from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    # "rest" talks to a hosted Supabase/PostgREST table, "sql" to DATABASE_URL
    STORE_BACKEND: str = "sql"
    SUPABASE_URL: Optional[str] = None
    SUPABASE_KEY: Optional[str] = None
    ORDERS_TABLE: str = "orders"
    DATABASE_URL: str = "sqlite:///./orders.db"
    STORE_TIMEOUT_SECONDS: float = 10.0

    DEFAULT_PAGE_SIZE: int = 10
    PAGE_SIZE_OPTIONS: list[int] = [5, 10, 20, 50]

    CACHE_TTL_SECONDS: int = 60
    CACHE_MAXSIZE: int = 256

    SERVICE_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

@lru_cache
def get_settings() -> Settings:
    return Settings()
