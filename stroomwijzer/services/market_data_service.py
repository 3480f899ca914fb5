"""
Service for obtaining a market snapshot of current Dutch electricity offers.

A live grounded lookup is tried first; when it fails the configured
reference table is used instead. The snapshot records which path was taken.
"""

from datetime import datetime
from typing import Dict, List, Optional

import pytz

from .base_service import BaseService
from ..exceptions import MarketDataUnavailable, OracleError
from ..models import MarketOffer, MarketSnapshot
from ..oracle import Oracle

SEARCH_QUERY = (
    "Zoek de actuele kWh-tarieven voor elektriciteit van Nederlandse energieleveranciers ({date}). "
    "Geef tarieven per kWh voor zowel variabele als vaste contracten van leveranciers zoals "
    "Vattenfall, Essent, Eneco, Engie, Budget Energie, Greenchoice, Frank Energie, Tibber, "
    "Vandebron, Hollandsnieuwe, United Consumers, Pure Energie. Vermeld voor elke leverancier "
    "de naam, het tarief per kWh, het contracttype en een eventuele welkomstbonus."
)

CONTRACT_LABELS = {"fixed": "vast", "variable": "variabel"}


class MarketDataService(BaseService):
    """Service producing live or fallback market snapshots."""

    def __init__(self, oracle: Oracle, fallback_offers: Optional[List[Dict]] = None,
                 timezone: str = "Europe/Amsterdam"):
        super().__init__()
        self.oracle = oracle
        self.fallback_offers = [MarketOffer(**offer) for offer in (fallback_offers or [])]
        self.timezone = pytz.timezone(timezone)

    def validate_input(self, **kwargs) -> bool:
        return True

    def now(self) -> datetime:
        return datetime.now(self.timezone)

    async def get_snapshot(self) -> MarketSnapshot:
        """
        Get the current market snapshot.

        Raises:
            MarketDataUnavailable: live lookup failed and no reference table is configured.
        """
        now = self.now()
        query = SEARCH_QUERY.format(date=now.strftime("%d-%m-%Y"))

        try:
            context = await self.oracle.grounded_search(query)
            self.logger.info("Live market snapshot retrieved")
            return MarketSnapshot(source="live", context=context, fetched_at=now)
        except OracleError as e:
            self.logger.warning(f"Live market lookup failed, using reference table: {e.message}")

        return self.fallback_snapshot(now)

    def fallback_snapshot(self, now: Optional[datetime] = None) -> MarketSnapshot:
        if not self.fallback_offers:
            raise MarketDataUnavailable("Live market lookup failed and no reference table is available")

        return MarketSnapshot(
            source="fallback",
            context=self.render_offers(self.fallback_offers),
            offers=list(self.fallback_offers),
            fetched_at=now or self.now(),
        )

    @staticmethod
    def render_offers(offers: List[MarketOffer]) -> str:
        lines = ["Huidige Nederlandse elektriciteitsprijzen (marktschatting):"]
        for offer in offers:
            line = (f"- {offer.provider_name}: €{offer.rate_per_kwh:.2f}/kWh "
                    f"{CONTRACT_LABELS[offer.contract_type.value]}")
            if offer.welcome_bonus_eur:
                line += f", welkomstbonus €{offer.welcome_bonus_eur:.0f}"
            lines.append(line)
        return "\n".join(lines)
