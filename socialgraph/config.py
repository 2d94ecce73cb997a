"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Relational store (MySQL-protocol compatible) ───────────────────────
    db_driver: str = "mysql+aiomysql"
    db_host: str = "mysql"
    db_port: int = 3306
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "social_graph"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    # Full SQLAlchemy URL; wins over the discrete db_* fields when set
    database_url: Optional[str] = None

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"{self.db_driver}://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # ── Pagination ─────────────────────────────────────────────────────────
    default_page_size: int = 20
    reply_page_size: int = 10
    max_page_size: int = 100

    # ── Observability ──────────────────────────────────────────────────────
    otel_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "social-graph-api"
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
