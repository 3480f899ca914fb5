"""
Base service interface for business logic.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from functools import partial


class BaseService(ABC):
    """Abstract base service interface."""

    def __init__(self, repository=None):
        """Initialize service with repository dependency."""
        self.repository = repository
        self.logger = logging.getLogger(self.__class__.__module__)

    @abstractmethod
    def validate_input(self, **kwargs) -> bool:
        """Validate input parameters."""
        pass

    async def run_blocking(self, func, *args, **kwargs):
        """Run a blocking call (sqlite, HTTP) in the default executor."""
        return await asyncio.get_event_loop().run_in_executor(
            None, partial(func, *args, **kwargs))
