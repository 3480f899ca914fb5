"""
Configuration package for application settings.
"""

from .settings import (
    ApplicationConfig,
    APIConfig,
    DatabaseConfig,
    OracleConfig,
    ComparatorPolicy,
    ProfileStoreConfig,
    PaymentConfig,
    MarketConfig,
    LoggingConfig,
    FALLBACK_MARKET_OFFERS,
    app_config,
    configure_logging
)
from .database import DatabaseManager

__all__ = [
    "ApplicationConfig",
    "APIConfig",
    "DatabaseConfig",
    "OracleConfig",
    "ComparatorPolicy",
    "ProfileStoreConfig",
    "PaymentConfig",
    "MarketConfig",
    "LoggingConfig",
    "FALLBACK_MARKET_OFFERS",
    "app_config",
    "configure_logging",
    "DatabaseManager"
]
