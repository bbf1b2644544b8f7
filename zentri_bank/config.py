"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class ZentriConfig(BaseSettings):
    """ZentriBank backend configuration"""

    # Storage configuration
    database_path: str = "zentri.db"  # SQLite file, ":memory:" for ephemeral
    use_sqlite: bool = True

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Security configuration
    jwt_secret: str = "change-me-in-production"
    jwt_expiry_hours: int = 24
    jwt_algorithm: str = "HS256"
    session_cookie_name: str = "zentri_session"
    admin_emails: str = ""  # Comma separated allowlist

    # Mail configuration
    mail_enabled: bool = False  # Log notifications instead of sending when False
    smtp_host: str = "localhost"
    smtp_port: int = 465
    smtp_use_ssl: bool = True
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_timeout: float = 20.0
    mail_from_name: str = "ZentriBank Capital"
    mail_from_address: str = "no-reply@zentribank.online"
    mail_max_attempts: int = 3

    # Business rules configuration
    conversion_fee_rate: str = "0.01"
    min_conversion_usd: str = "10.00"
    wire_fee_domestic: str = "30.00"
    wire_fee_international: str = "45.00"
    wire_fee_urgent: str = "25.00"

    # Price feed configuration
    price_variation: str = "0.02"  # Total band, +/- half of it
    price_feed_url: str = ""  # Empty = simulated prices only
    price_feed_timeout: float = 2.0

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    class Config:
        env_prefix = "ZENTRI_"
        env_file = ".env"
        case_sensitive = False

    @property
    def admin_email_list(self) -> List[str]:
        """Admin allowlist, lowercased"""
        return [e.strip().lower() for e in self.admin_emails.split(",") if e.strip()]


# Global configuration instance
config = ZentriConfig()


def get_config() -> ZentriConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> ZentriConfig:
    """Reload configuration from environment"""
    global config
    config = ZentriConfig()
    return config
