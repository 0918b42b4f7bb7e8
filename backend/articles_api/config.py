from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./test.db"

    # JWT settings, shared with whatever service issues the tokens
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    default_page_size: int = 20
    max_page_size: int = 100
    slug_retries: int = 3
    list_workers: int = 4
    log_level: str = "INFO"

    class Config:
        env_prefix = "ARTICLES_"
        case_sensitive = False


settings = Settings()
