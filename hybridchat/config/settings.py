"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional

from ..models.session import ConnectionMode


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "HybridChat"
    app_version: str = "1.0.0"
    debug: bool = True

    # Storage
    local_storage_path: str = "./data"
    sessions_key: str = "gemini_offline_chat_sessions.json"

    # Cloud backend (read once at startup, never reloaded)
    api_key: Optional[str] = None
    remote_model: str = "gemini-2.5-flash"
    remote_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    remote_timeout: float = 120.0

    # Backend selection
    default_mode: ConnectionMode = ConnectionMode.AUTO
    assume_online: bool = True  # initial connectivity until the host reports otherwise

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/hybridchat.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all API requests/responses
    log_llm_calls: bool = True  # Log backend stream start/completion with timings

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
