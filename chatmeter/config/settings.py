"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "Chatmeter"
    app_version: str = "1.0.0"
    debug: bool = True

    # Security (tokens are issued by the identity provider, we only verify them)
    secret_key: str = "your-secret-key-change-this-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Durable store
    storage_type: str = "local"  # "local" or "supabase"
    local_storage_path: str = "./data"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    # Remote model relay (client side)
    relay_url: str = "http://127.0.0.1:8000/functions/v1/chat"
    relay_timeout: float = 60.0
    exchange_mode: str = "streaming"  # "streaming" or "blocking"
    default_model: str = "gemini"  # "gemini" or "openai"

    # LLM providers (relay side)
    gemini_api_key: Optional[str] = None
    gemini_model: Optional[str] = None  # uses provider default if not set
    gemini_base_url: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_model: Optional[str] = None
    openai_base_url: Optional[str] = None
    llm_timeout: float = 120.0

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/chatmeter.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all API requests/responses

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
