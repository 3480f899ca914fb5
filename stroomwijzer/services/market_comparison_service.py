"""
Market comparator: authoritative usage + market snapshot -> SWITCH/STAY.

Effective monthly cost of an offer for a user:

    rate x kWh - welcome_bonus / amortization_months
               + switching_cost / amortization_months   (fixed contracts only)

Offers are ranked on that figure; the cheapest is compared with what the
user pays now (own rate x kWh, no bonus, no switching cost). SWITCH is
recommended only when the saving exceeds the threshold. That rule is
enforced here regardless of what the reasoning oracle suggests.
"""

from datetime import datetime
from typing import List, Optional, Union

import pandas as pd
import pytz

from .base_service import BaseService
from .market_data_service import MarketDataService
from ..config import ComparatorPolicy
from ..exceptions import NoUsageData
from ..models import (
    ContractType,
    EstimatedSource,
    MarketOffer,
    MarketSnapshot,
    PriceCheckResult,
    Profile,
    RankedOffer,
    Recommendation,
    VerifiedSource
)
from ..models.reference_data import CONTRACT_TYPE_LABELS
from ..oracle import COMPARISON_SCHEMA, ComparisonPayload, Oracle, OracleRequest, validate_payload

COMPARISON_PROMPT = """
Je bent een Nederlandse energieprijzen expert. Gebruik de onderstaande marktdata om de goedkoopste energieleveranciers te identificeren en te vergelijken met de gebruiker.

MARKTDATA ({market_label}):
{market_context}

GEBRUIKERSPROFIEL:
- Huidige leverancier: {provider}
- Huidig tarief: €{user_rate:.4f}/kWh
- Contracttype: {contract_label}
- Maandverbruik: {user_kwh:.0f} kWh
- Bron verbruik: {usage_label}

TAAK:
1. Selecteer maximaal {max_candidates} van de goedkoopste leveranciers uit de marktdata, goedkoopste eerst (zowel variabele als vaste contracten mogen voorkomen). Geef per leverancier name, per_kwh_rate, contract_type en welkomsbonus (null als er geen is).
2. Bereken maandelijkse besparing: (€{user_rate:.4f} - tarief) × {user_kwh:.0f} kWh + welkomsbonus / {months}{switching_clause}
3. Geef SWITCH als de netto besparing > €{threshold:.2f}/maand; anders STAY
4. Reasoning in het NEDERLANDS, max 2 zinnen. Vermeld dat een welkomstbonus alleen meetelt als de klant minimaal {retention} maanden blijft.

Retourneer ALLEEN geldige JSON.
"""

USAGE_LABELS = {"estimated": "AI-schatting (niet geverifieerd)", "verified": "geverifieerd via energierekening"}
MARKET_LABELS = {"live": "LIVE", "fallback": "REFERENTIETABEL"}


class MarketComparisonService(BaseService):
    """Service running one market comparison for a profile."""

    def __init__(self, oracle: Oracle, market_data_service: MarketDataService,
                 policy: Optional[ComparatorPolicy] = None, timezone: str = "Europe/Amsterdam"):
        super().__init__()
        self.oracle = oracle
        self.market_data_service = market_data_service
        self.policy = policy or ComparatorPolicy()
        self.timezone = pytz.timezone(timezone)

    def validate_input(self, **kwargs) -> bool:
        """Usage figures must be positive."""
        rate = kwargs.get('rate_per_kwh')
        kwh = kwargs.get('kwh_per_month')
        if rate is None or kwh is None or rate <= 0 or kwh <= 0:
            raise NoUsageData("Usage figures must be positive to compare prices")
        return True

    def switching_cost_per_month(self, contract_type: ContractType) -> float:
        """
        Amortized switching cost. Only fixed contracts pay one; flexible and
        dynamic contracts have at most 30 days notice and no termination fee.
        """
        if contract_type == ContractType.FIXED:
            return self.policy.switching_cost_eur / self.policy.amortization_months
        return 0.0

    def decide(self, monthly_savings: float) -> Recommendation:
        """SWITCH only when savings strictly exceed the threshold (compared in cents)."""
        if round(monthly_savings, 2) > round(self.policy.switch_threshold_eur, 2):
            return Recommendation.SWITCH
        return Recommendation.STAY

    def rank_offers(self, offers: List[MarketOffer], kwh_per_month: float,
                    switching_cost_per_month: float) -> List[RankedOffer]:
        """Rank offers by effective monthly cost; ties keep market order."""
        if not offers:
            return []

        df = pd.DataFrame({
            'rate_per_kwh': [offer.rate_per_kwh for offer in offers],
            'welcome_bonus_eur': [offer.welcome_bonus_eur or 0.0 for offer in offers],
        })
        df['effective_monthly_cost_eur'] = (
            df['rate_per_kwh'] * kwh_per_month
            - df['welcome_bonus_eur'] / self.policy.amortization_months
            + switching_cost_per_month
        )
        df = df.sort_values('effective_monthly_cost_eur', kind='mergesort')

        ranked = []
        for index, row in df.iterrows():
            ranked.append(RankedOffer(
                **offers[index].model_dump(),
                effective_monthly_cost_eur=round(float(row['effective_monthly_cost_eur']), 2)
            ))
        return ranked

    def build_request(self, profile: Profile, usage: Union[EstimatedSource, VerifiedSource],
                      contract_type: ContractType, snapshot: MarketSnapshot) -> OracleRequest:
        switching_cost = self.switching_cost_per_month(contract_type)
        if switching_cost > 0:
            switching_clause = (
                f" - overstapkosten van €{self.policy.switching_cost_eur:.0f} gespreid over "
                f"{self.policy.amortization_months} maanden (€{switching_cost:.2f}/maand, vast contract)")
        else:
            switching_clause = (
                " (geen overstapkosten: flexibel/dynamisch contract met maximaal 30 dagen "
                "opzegtermijn en geen opzegboete)")

        fields = {
            "provider": profile.current_provider(),
            "user_rate": usage.rate_per_kwh,
            "user_kwh": usage.kwh_per_month,
            "usage_source": usage.kind,
            "contract_type": contract_type.value,
            "switching_cost_per_month": switching_cost,
            "market_source": snapshot.source,
            "market_context": snapshot.context,
        }

        prompt = COMPARISON_PROMPT.format(
            market_label=MARKET_LABELS[snapshot.source],
            market_context=snapshot.context,
            provider=fields["provider"],
            user_rate=usage.rate_per_kwh,
            user_kwh=usage.kwh_per_month,
            contract_label=CONTRACT_TYPE_LABELS[contract_type.value],
            usage_label=USAGE_LABELS[usage.kind],
            max_candidates=self.policy.max_candidates,
            months=self.policy.amortization_months,
            switching_clause=switching_clause,
            threshold=self.policy.switch_threshold_eur,
            retention=self.policy.bonus_min_retention_months,
        )

        return OracleRequest(
            operation="compare_market",
            prompt=prompt,
            response_schema=COMPARISON_SCHEMA,
            fields=fields,
        )

    async def compare(self, profile: Profile) -> PriceCheckResult:
        """
        Compare the profile's current rate against the market.

        The usage figures are resolved once, up front; the result is always
        attributed to that source even if the profile changes meanwhile.

        Raises:
            NoUsageData: profile has neither verified nor estimated usage.
            MarketDataUnavailable: no live or fallback market data.
            OracleUnavailable / OraclePayloadInvalid: the analysis call failed.
        """
        usage = profile.authoritative_usage()
        if usage is None:
            raise NoUsageData("Profile has no verified or estimated usage", profile.user_id)
        self.validate_input(rate_per_kwh=usage.rate_per_kwh, kwh_per_month=usage.kwh_per_month)

        contract_type = profile.effective_contract_type()
        switching_cost = self.switching_cost_per_month(contract_type)

        snapshot = await self.market_data_service.get_snapshot()
        request = self.build_request(profile, usage, contract_type, snapshot)
        data = await self.oracle.infer(request)
        payload = validate_payload(ComparisonPayload, data)

        if snapshot.offers is not None:
            candidates = snapshot.offers
        else:
            candidates = [
                MarketOffer(
                    provider_name=provider.name,
                    rate_per_kwh=provider.per_kwh_rate,
                    contract_type=provider.contract_type,
                    welcome_bonus_eur=provider.welkomsbonus,
                )
                for provider in payload.top2_providers[:self.policy.max_candidates]
            ]

        ranked = self.rank_offers(candidates, usage.kwh_per_month, switching_cost)
        top2 = ranked[:2]
        current_cost = usage.rate_per_kwh * usage.kwh_per_month

        cheapest = top2[0] if top2 else None
        if cheapest is None:
            monthly_savings = None
            recommendation = Recommendation.STAY
        else:
            monthly_savings = round(current_cost - cheapest.effective_monthly_cost_eur, 2)
            recommendation = self.decide(monthly_savings)

        oracle_recommendation = (payload.recommendation or "").strip().upper() or None
        reasoning = self._compose_reasoning(
            payload.reasoning, oracle_recommendation, recommendation, monthly_savings, cheapest)

        self.logger.info(
            f"Price check for {profile.user_id}: {recommendation.value} "
            f"(savings {monthly_savings}, {usage.kind} usage, {snapshot.source} market data)")

        return PriceCheckResult(
            checked_at=datetime.now(self.timezone),
            usage_source=usage.kind,
            user_rate_per_kwh=usage.rate_per_kwh,
            user_kwh_per_month=usage.kwh_per_month,
            user_contract_type=contract_type.value,
            current_monthly_cost_eur=round(current_cost, 2),
            switching_cost_applied=switching_cost > 0,
            market_source=snapshot.source,
            top2=top2,
            cheapest_overall=cheapest,
            recommendation=recommendation,
            monthly_savings_eur=monthly_savings,
            oracle_recommendation=oracle_recommendation,
            reasoning=reasoning,
        )

    def _compose_reasoning(self, oracle_reasoning: str, oracle_recommendation: Optional[str],
                           recommendation: Recommendation, monthly_savings: Optional[float],
                           cheapest: Optional[RankedOffer]) -> str:
        notes = [oracle_reasoning.strip()] if oracle_reasoning and oracle_reasoning.strip() else []

        if cheapest is None:
            notes.append("Geen aanbiedingen gevonden in de marktdata.")
            return " ".join(notes)

        if oracle_recommendation in (Recommendation.SWITCH.value, Recommendation.STAY.value) \
                and oracle_recommendation != recommendation.value:
            self.logger.warning(
                f"Oracle recommended {oracle_recommendation}, local rule decided {recommendation.value}")
            notes.append(
                f"Advies vastgesteld op {recommendation.value}: netto besparing €{monthly_savings:.2f}/maand "
                f"tegen een drempel van €{self.policy.switch_threshold_eur:.2f}/maand.")

        if cheapest.welcome_bonus_eur:
            notes.append(
                f"Let op: de welkomstbonus van €{cheapest.welcome_bonus_eur:.0f} bij "
                f"{cheapest.provider_name} telt alleen mee als je minimaal "
                f"{self.policy.bonus_min_retention_months} maanden klant blijft.")

        return " ".join(notes)
