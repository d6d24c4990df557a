"""
Configuration for the web front end.
All values can be overridden via environment variables or a .env file.
"""
from pydantic_settings import BaseSettings


class WebSettings(BaseSettings):
    # ── GlIFGHE API ────────────────────────────────────────────────────────
    api_base_url: str = "http://api:8000"
    api_timeout: float = 5.0

    # ── Identity provider (OAuth2 / OIDC) ──────────────────────────────────
    auth_domain: str = "glifghe.au.auth0.com"
    auth_client_id: str = ""
    auth_client_secret: str = ""
    auth_audience: str = "https://glifghe/api"
    auth_redirect_uri: str = "http://localhost:8080/callback"
    # Seconds shaved off token lifetimes so a token is never used at expiry
    auth_token_leeway: int = 30

    # ── Image CDN ──────────────────────────────────────────────────────────
    cloudinary_cloud_name: str = "dfjgv0mp6"

    # ── Sessions ───────────────────────────────────────────────────────────
    session_secret: str = "change-me"

    # ── Request cache ──────────────────────────────────────────────────────
    render_wait_seconds: float = 2.0     # how long a page waits on fetches
    query_retry: int = 3                 # extra attempts after a failure
    query_retry_delay: float = 1.0
    query_stale_time: float = 0.0        # 0 → refetch on every access
    query_gc_time: float = 300.0         # unread entries are dropped after this

    # ── Observability ──────────────────────────────────────────────────────
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "glifghe-web"
    environment: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = WebSettings()
