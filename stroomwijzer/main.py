"""
This module creates and configures the main FastAPI application for the
Stroomwijzer API: household electricity usage estimation, bill verification
and comparison of the effective rate with current Dutch market offers.

Tags:
    - fastapi
    - electricity-usage
    - market-comparison
    - rest-api
    - mvc-architecture

API Categories:
    - System Information: Health and API metadata
    - Profiles: Signup with a first usage estimate
    - Bill Verification: Bill extraction and user confirmation
    - Price Check: SWITCH / STAY recommendation against market offers
    - Payments: Premium upgrade
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import ApplicationConfig, DatabaseManager, app_config, configure_logging
from .controllers import StroomwijzerController
from .oracle import GeminiOracle, Oracle
from .payments import StripeCheckoutClient
from .repositories import BaseProfileRepository, SqliteProfileRepository
from .services import (
    BillExtractionService,
    EstimationService,
    MarketComparisonService,
    MarketDataService,
    PriceCheckService,
    ProfileService,
    SubscriptionService
)


def build_services(config: ApplicationConfig, oracle: Optional[Oracle] = None,
                   repository: Optional[BaseProfileRepository] = None,
                   checkout_client: Optional[StripeCheckoutClient] = None) -> Dict[str, Any]:
    """
    Wire the service graph from explicit collaborators.

    Missing collaborators are built from the configuration: a Gemini oracle,
    a sqlite profile repository (schema created on first use) and a Stripe
    checkout client.

    Returns:
        Dict[str, Any]: Services keyed by their ``app.state`` attribute name.
    """
    timezone = config.market.timezone
    if oracle is None:
        oracle = GeminiOracle(config.oracle)
    if repository is None:
        db_manager = DatabaseManager(config.database_path, config.database.connection_timeout)
        db_manager.initialize_schema()
        repository = SqliteProfileRepository(db_manager, timezone)
    if checkout_client is None:
        checkout_client = StripeCheckoutClient(config.payment)

    estimation_service = EstimationService(oracle)
    profile_service = ProfileService(repository, estimation_service, config.profile_store, timezone)
    market_data_service = MarketDataService(oracle, config.market.fallback_offers, timezone)
    comparison_service = MarketComparisonService(
        oracle, market_data_service, config.comparator, timezone)

    return {
        "profile_service": profile_service,
        "bill_extraction_service": BillExtractionService(oracle, config.api.max_upload_bytes),
        "price_check_service": PriceCheckService(profile_service, comparison_service),
        "subscription_service": SubscriptionService(profile_service, checkout_client, config.payment),
    }


def create_app(config: ApplicationConfig = app_config, oracle: Optional[Oracle] = None,
               repository: Optional[BaseProfileRepository] = None,
               checkout_client: Optional[StripeCheckoutClient] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This function initializes the FastAPI application with:
    - API metadata and OpenAPI documentation at /docs and /redoc
    - CORS middleware for the web frontend
    - Services wired from the given (or configured) collaborators
    - All endpoint controllers under /api

    Args:
        config (ApplicationConfig): Settings; defaults to the environment-backed app_config
        oracle (Optional[Oracle]): Reasoning/multimodal/search oracle
        repository (Optional[BaseProfileRepository]): Profile store
        checkout_client (Optional[StripeCheckoutClient]): Payment provider client

    Returns:
        FastAPI: Configured FastAPI application instance ready for deployment.
    """
    configure_logging(config.logging)

    app = FastAPI(
        title=config.api.title,
        description=config.api.description,
        version=config.api.version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {
                "name": "System Information",
                "description": "API health and version info"
            },
            {
                "name": "Profiles",
                "description": "Signup with household details and the first usage estimate"
            },
            {
                "name": "Bill Verification",
                "description": "Bill extraction (premium) and confirmation of the extracted figures"
            },
            {
                "name": "Price Check",
                "description": "Comparison of the effective rate with current market offers"
            },
            {
                "name": "Payments",
                "description": "Premium checkout and payment webhooks"
            }
        ]
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.allow_origins,
        allow_credentials=config.api.allow_credentials,
        allow_methods=config.api.allow_methods,
        allow_headers=config.api.allow_headers,
    )

    for name, service in build_services(config, oracle, repository, checkout_client).items():
        setattr(app.state, name, service)

    controller = StroomwijzerController(config.oracle.request_timeout_seconds)
    app.include_router(
        controller.router,
        prefix="/api",
    )

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "stroomwijzer.main:create_app",
        factory=True,
        host=app_config.api.host,
        port=app_config.api.port,
        reload=app_config.api.reload
    )
