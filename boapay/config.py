"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal, InvalidOperation
from pydantic_settings import BaseSettings
from typing import List, Optional


class BoapayConfig(BaseSettings):
    """Boapay online banking configuration"""
    
    # Database configuration
    database_url: str = "memory://"  # memory:// or sqlite:///boapay.db
    
    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 5000
    cors_origins: List[str] = ["*"]
    
    # Security configuration
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiry_hours: int = 24
    session_cookie_name: str = "boapay_session"
    session_cookie_secure: bool = False
    password_min_length: int = 8
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    
    # International transfers
    international_delivery_days: int = 2
    international_settlement_delay_seconds: int = 30
    settlement_poll_interval_seconds: float = 5.0
    
    # Business rules configuration
    transfer_approval_threshold: str = ""  # Empty disables; e.g. "10000.00"
    
    # Categorization service (chat-completions compatible endpoint)
    categorization_url: str = ""  # Empty = disabled, always falls back
    categorization_api_key: str = ""
    categorization_model: str = "gpt-4o"
    categorization_timeout: float = 5.0
    
    # Demo data
    seed_demo_data: bool = True
    
    class Config:
        env_prefix = "BOAPAY_"
        env_file = ".env"
        case_sensitive = False
    
    def approval_threshold(self) -> Optional[Decimal]:
        """Transfer amount above which a transfer request is required"""
        if not self.transfer_approval_threshold:
            return None
        try:
            return Decimal(self.transfer_approval_threshold)
        except InvalidOperation:
            raise ValueError(
                f"Invalid transfer_approval_threshold: {self.transfer_approval_threshold!r}"
            )


# Global configuration instance
config = BoapayConfig()


def get_config() -> BoapayConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> BoapayConfig:
    """Reload configuration from environment"""
    global config
    config = BoapayConfig()
    return config
