"""
Base controller interface for API endpoints.

This module provides the abstract base class for all API controllers in the
usage estimation and price comparison system. It enforces consistent
patterns and provides common functionality across all endpoint handlers.

Tags:
    - base-controller
    - abstract-interface
    - error-handling

Features:
    - Standardized router initialization
    - Typed engine errors mapped to HTTP status codes
    - Upper time bound around oracle-backed service calls

Architecture:
    All controllers inherit from BaseController and must implement:
    - _setup_routes(): Define endpoint routes and handlers

Usage:
    ```python
    class MyController(BaseController):
        def _setup_routes(self):
            @self.router.get("/my-endpoint")
            async def my_endpoint():
                return {"message": "Hello World"}
    ```
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Optional, Type, TypeVar

from fastapi import APIRouter, HTTPException

from ..exceptions import (
    EstimationFailed,
    ExtractionFailed,
    MarketDataUnavailable,
    NoUsageData,
    OracleError,
    PaymentError,
    PersistenceFailed,
    PremiumRequired,
    ProfileNotFound,
    ProfileStateError,
    StroomwijzerError
)

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS_CODES = [
    (ProfileNotFound, 404),
    (ProfileStateError, 409),
    (NoUsageData, 409),
    (PremiumRequired, 402),
    (PaymentError, 400),
    (PersistenceFailed, 500),
    (EstimationFailed, 503),
    (ExtractionFailed, 503),
    (MarketDataUnavailable, 503),
    (OracleError, 503),
]


class BaseController(ABC):
    """
    Abstract base controller for consistent API endpoint patterns.

    Attributes:
        router (APIRouter): FastAPI router instance for endpoint registration

    Methods:
        _setup_routes(): Abstract method for route definition (must implement)
        run_with_timeout(): Bound a service call, mapping a timeout to a typed error
        handle_exception(): Standardized exception handling with context
    """

    def __init__(self, request_timeout_seconds: float = 90.0):
        """
        Initialize controller with FastAPI router.

        Args:
            request_timeout_seconds (float): Upper bound for oracle-backed calls
        """
        self.request_timeout_seconds = request_timeout_seconds
        self.router = APIRouter()
        self._setup_routes()

    @abstractmethod
    def _setup_routes(self):
        """Setup routes for this controller."""
        pass

    async def run_with_timeout(self, call: Awaitable[T], error_type: Type[StroomwijzerError],
                               user_id: Optional[str] = None) -> T:
        """
        Await a service call with the configured upper bound.

        Only the oracle-bound step belongs here. A timeout cannot stop work
        already handed to the executor, so store steps run after this
        returns.

        Raises:
            error_type: The call did not finish in time.
        """
        try:
            return await asyncio.wait_for(call, timeout=self.request_timeout_seconds)
        except asyncio.TimeoutError as e:
            raise error_type(
                f"Operation timed out after {self.request_timeout_seconds:.0f} seconds", user_id) from e

    def handle_exception(self, e: Exception, context: Optional[str] = None) -> None:
        """
        Handle exceptions consistently across all controllers.

        Typed engine errors get their own status code and a body telling the
        client whether retrying may help; anything else is a 500.

        Args:
            e (Exception): The exception that occurred
            context (Optional[str]): Additional context about where the error occurred

        Raises:
            HTTPException: Always
        """
        if isinstance(e, StroomwijzerError):
            status_code = next(
                (code for error_type, code in ERROR_STATUS_CODES if isinstance(e, error_type)), 500)
            if status_code >= 500:
                logger.error(f"{context or 'Request failed'}: {e.message}")
            raise HTTPException(
                status_code=status_code,
                detail={
                    "error": type(e).__name__,
                    "message": e.message,
                    "retriable": e.retriable,
                }
            )

        if isinstance(e, ValueError):
            raise HTTPException(status_code=400, detail=str(e))

        logger.exception(f"{context or 'Unexpected error'}")
        error_message = f"{context}: {str(e)}" if context else str(e)
        raise HTTPException(status_code=500, detail=error_message)
