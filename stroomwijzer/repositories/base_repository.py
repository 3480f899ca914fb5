"""
Base repository interface for profile persistence.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..models import Profile


class BaseProfileRepository(ABC):
    """
    Abstract profile store.

    ``update_fields`` takes Profile field names as keys (``estimate``,
    ``verified_usage``, ``pending_extraction``, ``latest_price_check``,
    ``subscription_tier``, ...)
    so the engine never depends on a storage schema.
    """

    @abstractmethod
    def find_by_id(self, user_id: str) -> Optional[Profile]:
        """Find a profile by user id, or None."""
        pass

    @abstractmethod
    def insert(self, profile: Profile) -> None:
        """Store a new profile."""
        pass

    @abstractmethod
    def update_fields(self, user_id: str, fields: Dict[str, Any]) -> None:
        """Update the given Profile fields; raises ProfileNotFound if absent."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Count stored profiles."""
        pass
