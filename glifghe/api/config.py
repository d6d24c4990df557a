"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Relational database (MySQL protocol) ───────────────────────────────
    db_host: str = "db"
    db_port: int = 3306
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "glifghe"
    # Full SQLAlchemy URL; takes precedence over the db_* parts when set
    database_url: Optional[str] = None

    @property
    def db_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"mysql+aiomysql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # ── Redis ──────────────────────────────────────────────────────────────
    redis_host: str = "redis"
    redis_port: int = 6379
    feed_cache_ttl: int = 30             # seconds the main feed stays cached
    token_cache_ttl: int = 300           # bearer token → subject lookups

    # ── Identity provider ──────────────────────────────────────────────────
    auth_domain: str = "glifghe.au.auth0.com"

    @property
    def userinfo_url(self) -> str:
        return f"https://{self.auth_domain}/userinfo"

    # ── Observability ──────────────────────────────────────────────────────
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "glifghe-api"
    environment: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
