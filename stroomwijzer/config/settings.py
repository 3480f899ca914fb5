"""
Application configuration settings.
Spring Boot-like configuration management.

Secrets and deployment paths come from the environment (a local ``.env``
file is loaded first); everything else has a sensible default here.
"""

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file next to the project root
env_path = Path(__file__).parent.parent.parent / '.env'
load_dotenv(env_path)
load_dotenv()


class DatabaseConfig(BaseModel):
    """Database configuration settings."""

    database_path: str = "db/stroomwijzer.db"  # Relative to package directory
    connection_timeout: int = 30


class APIConfig(BaseModel):
    """API configuration settings."""

    title: str = "Stroomwijzer API"
    description: str = "Estimates household electricity usage, verifies it against a bill and compares the effective rate with current Dutch market offers"
    version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    reload: bool = False

    # CORS settings
    allow_origins: list = ["*"]
    allow_credentials: bool = True
    allow_methods: list = ["*"]
    allow_headers: list = ["*"]

    # Bills larger than this are rejected before reaching the oracle
    max_upload_bytes: int = 10 * 1024 * 1024


class OracleConfig(BaseModel):
    """Reasoning / multimodal / grounded search oracle settings."""

    api_key: Optional[str] = None
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    reasoning_model: str = "gemini-3-flash-preview"
    search_model: str = "gemini-2.0-flash"
    http_timeout_seconds: float = 45.0
    # Upper bound enforced by controllers around a whole service call
    request_timeout_seconds: float = 90.0


class ComparatorPolicy(BaseModel):
    """Business rules for the market comparison."""

    switching_cost_eur: float = 75.0
    amortization_months: int = Field(default=12, gt=0)
    switch_threshold_eur: float = 10.0
    bonus_min_retention_months: int = 12
    max_candidates: int = 5


class ProfileStoreConfig(BaseModel):
    """Retry behaviour for reads racing a just-created profile."""

    max_read_attempts: int = Field(default=5, ge=1)
    backoff_seconds: float = 0.7


class PaymentConfig(BaseModel):
    """Stripe checkout settings."""

    secret_key: Optional[str] = None
    price_id: Optional[str] = None
    webhook_secret: Optional[str] = None
    webhook_tolerance_seconds: int = 300


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = "INFO"
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


# Reference data from the Dutch market, used when the live lookup fails.
FALLBACK_MARKET_OFFERS: List[Dict] = [
    {"provider_name": "Frank Energie", "rate_per_kwh": 0.27, "contract_type": "variable"},
    {"provider_name": "Tibber", "rate_per_kwh": 0.26, "contract_type": "variable"},
    {"provider_name": "Greenchoice", "rate_per_kwh": 0.32, "contract_type": "fixed"},
    {"provider_name": "Budget Energie", "rate_per_kwh": 0.31, "contract_type": "fixed"},
    {"provider_name": "Vattenfall", "rate_per_kwh": 0.34, "contract_type": "fixed"},
    {"provider_name": "Essent", "rate_per_kwh": 0.35, "contract_type": "fixed"},
    {"provider_name": "Eneco", "rate_per_kwh": 0.36, "contract_type": "fixed"},
    {"provider_name": "Engie", "rate_per_kwh": 0.33, "contract_type": "fixed"},
]


class MarketConfig(BaseModel):
    """Market snapshot settings."""

    fallback_offers: List[Dict] = FALLBACK_MARKET_OFFERS
    timezone: str = "Europe/Amsterdam"


class ApplicationConfig:
    """Main application configuration."""

    def __init__(self):
        self.database = DatabaseConfig(
            database_path=os.getenv("DATABASE_PATH", DatabaseConfig().database_path))
        self.api = APIConfig(debug=os.getenv("DEBUG", "false").lower() == "true")
        self.oracle = OracleConfig(api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"))
        self.comparator = ComparatorPolicy()
        self.profile_store = ProfileStoreConfig()
        self.payment = PaymentConfig(
            secret_key=os.getenv("STRIPE_SECRET_KEY"),
            price_id=os.getenv("STRIPE_PRICE_ID"),
            webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET"),
        )
        self.market = MarketConfig()
        self.logging = LoggingConfig(level=os.getenv("LOG_LEVEL", "INFO"))

    @property
    def database_path(self) -> str:
        """Get database path."""
        # Relative paths resolve against the stroomwijzer package directory
        if os.path.isabs(self.database.database_path):
            return self.database.database_path
        config_dir = os.path.dirname(os.path.abspath(__file__))
        package_dir = os.path.dirname(config_dir)
        return os.path.join(package_dir, self.database.database_path)

    @property
    def is_debug(self) -> bool:
        """Check if debug mode is enabled."""
        return self.api.debug


def configure_logging(config: LoggingConfig) -> None:
    """Configure root logging once for the API and the CLI."""
    logging.basicConfig(
        level=getattr(logging, config.level.upper(), logging.INFO),
        format=config.format
    )


# Global configuration instance
app_config = ApplicationConfig()
