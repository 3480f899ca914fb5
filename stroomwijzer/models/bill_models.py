"""
Models for figures extracted from an electricity bill.
"""

from typing import List, Optional

from pydantic import BaseModel

from .profile_models import ConfidenceLevel, ContractType


class BillExtraction(BaseModel):
    """
    Structured result of one bill extraction.

    Every numeric field is nullable: a bill may only state annual figures,
    omit the rate, or come from a provider we do not recognise. Missing
    values stay None and are explained in ``warnings``.
    """
    annual_kwh: Optional[float] = None
    monthly_kwh: Optional[float] = None
    annual_cost_eur: Optional[float] = None
    monthly_cost_eur: Optional[float] = None
    per_kwh_rate: Optional[float] = None
    contract_type: ContractType = ContractType.UNKNOWN
    provider_name: Optional[str] = None
    confidence: ConfidenceLevel = ConfidenceLevel.LOW
    warnings: List[str] = []

    def derived_monthly_kwh(self) -> Optional[float]:
        """Monthly kWh as stated, else annual kWh / 12."""
        if self.monthly_kwh:
            return self.monthly_kwh
        if self.annual_kwh:
            return self.annual_kwh / 12
        return None

    def derived_monthly_cost(self) -> Optional[float]:
        if self.monthly_cost_eur:
            return self.monthly_cost_eur
        if self.annual_cost_eur:
            return self.annual_cost_eur / 12
        return None

    def derived_rate(self) -> Optional[float]:
        """Stated rate, else monthly cost / monthly kWh when both are known."""
        if self.per_kwh_rate:
            return self.per_kwh_rate
        kwh = self.derived_monthly_kwh()
        cost = self.derived_monthly_cost()
        if kwh and cost:
            return cost / kwh
        return None

    @property
    def is_usable(self) -> bool:
        """True when both a usage figure and a rate can be derived."""
        return self.derived_monthly_kwh() is not None and self.derived_rate() is not None
