"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    service_name: str = "autoquote-gateway"
    log_level: str = "INFO"

    # Session store: "memory" or "database"
    session_store: str = "memory"
    database_url: str = "sqlite:///./autoquote.db"
    session_ttl_hours: int = 24

    # Simulated lender endpoints
    quote_latency_min_seconds: float = 2.0
    quote_latency_max_seconds: float = 8.0
    negotiation_latency_min_seconds: float = 1.0
    negotiation_latency_max_seconds: float = 3.0
    quote_failure_rate: float = 0.0
    quote_expiration_days: int = 7

    # Timeouts
    quote_request_timeout_seconds: float = 15.0
    session_timeout_seconds: float = 120.0

    # Matching
    default_vehicle_value: int = 25_000


settings = Settings()
