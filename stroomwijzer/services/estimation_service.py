"""
Baseline estimator: household profile + monthly bill -> kWh/month and rate.

The service derives a reference kWh range from Dutch consumption baselines
and hands it, together with the raw attributes, to the reasoning oracle,
which makes the final judgment on kWh and confidence. Answers outside the
reference range are clamped into it at low confidence. The implied rate is
always recomputed locally as monthly cost / kWh.
"""

from typing import Tuple

from .base_service import BaseService
from ..exceptions import EstimationFailed, OracleError
from ..models import ConfidenceLevel, ContractSnapshot, HouseholdProfile, UsageEstimate
from ..models.reference_data import (
    AVERAGE_RATE_EUR_PER_KWH,
    DISTRICT_HEATING_ADJUSTMENT,
    DWELLING_BASELINES,
    HEAT_PUMP_ADJUSTMENT,
    HOUSE_TYPE_LABELS,
    HOUSEHOLD_SIZE_LABELS,
    HOUSEHOLD_SIZE_MULTIPLIERS,
    SOLAR_PANELS_ADJUSTMENT,
    WORK_FROM_HOME_ADJUSTMENT
)
from ..oracle import ESTIMATE_SCHEMA, EstimatePayload, Oracle, OracleRequest, validate_payload

ESTIMATE_PROMPT = """
Je bent een Nederlandse expert op het gebied van elektriciteitsverbruik. Schat op basis van het onderstaande huishoudprofiel het maandelijks kWh-verbruik en het tarief per kWh.

INVOERGEGEVENS:
- Maandelijkse kosten: €{monthly_cost_eur:.2f}
- Grootte huishouden: {household_size_label}
- Type woning: {dwelling_label}
- Werkt thuis: {works_from_home}
- Heeft warmtepomp: {has_heat_pump}
- Heeft stadsverwarming: {has_district_heating}
- Heeft zonnepanelen: {has_solar_panels}

NEDERLANDSE STATISTIEKEN & LOGICA:
- Appartement basis: 180-220 kWh/maand
- Eengezinswoning basis: 250-300 kWh/maand
- Thuiswerken: +40-60 kWh/maand
- Warmtepomp: Voegt aanzienlijk toe (+150-300 kWh/maand)
- Stadsverwarming: Verlaagt het elektriciteitsverbruik t.o.v. all-electric woningen (geen eigen pomp nodig voor hoofdverwarming)
- Zonnepanelen: Verlaagt het netto verbruik op de rekening (-100 tot -400 kWh/maand afhankelijk van installatie)

REFERENTIE VOOR DIT PROFIEL:
- Referentiebereik: {reference_kwh_low}-{reference_kwh_high} kWh/maand
- Aantal gestapelde correctiefactoren: {stacked_factors}
- Verwachte maandkosten bij €{average_rate:.2f}/kWh: €{expected_monthly_cost_eur:.2f} (afwijking gemeld bedrag: {cost_deviation_pct:+.0f}%)

TAAK:
Schat het netto maandelijks kWh-verbruik voor deze gebruiker op basis van het maandbedrag van €{monthly_cost_eur:.2f} en deze factoren.
Bereken vervolgens het tarief per kWh: Maandelijkse kosten ÷ Geschatte kWh.
Kies confidence_level "high", "medium" of "low": lager naarmate er meer factoren gestapeld zijn en het gemelde bedrag verder afwijkt van de verwachting.
Geef je redenering in het NEDERLANDS.

Retourneer ALLEEN geldige JSON.
"""


def _yes_no(value: bool) -> str:
    return "Ja" if value else "Nee"


class EstimationService(BaseService):
    """Service producing the unverified usage estimate."""

    # Oracle rates further than this from cost / kWh are logged
    RATE_TOLERANCE = 0.005

    def __init__(self, oracle: Oracle):
        super().__init__()
        self.oracle = oracle

    def validate_input(self, **kwargs) -> bool:
        """Monthly cost must be positive."""
        monthly_cost = kwargs.get('monthly_cost_eur')
        if monthly_cost is None or monthly_cost <= 0:
            raise ValueError("Monthly cost must be greater than 0")
        return True

    @staticmethod
    def reference_range(household: HouseholdProfile) -> Tuple[int, int]:
        """
        Reference kWh/month range for a household.

        Dwelling base range scaled by household size, then additive
        adjustments: work from home and heat pump raise it, district heating
        and solar panels lower it. The range never goes below zero.
        """
        base_low, base_high = DWELLING_BASELINES[household.dwelling_type.value]
        multiplier = HOUSEHOLD_SIZE_MULTIPLIERS[household.household_size.value]
        low, high = base_low * multiplier, base_high * multiplier

        adjustments = [
            (household.works_from_home, WORK_FROM_HOME_ADJUSTMENT),
            (household.has_heat_pump, HEAT_PUMP_ADJUSTMENT),
            (household.has_district_heating, DISTRICT_HEATING_ADJUSTMENT),
            (household.has_solar_panels, SOLAR_PANELS_ADJUSTMENT),
        ]
        for applies, (add_low, add_high) in adjustments:
            if applies:
                low += add_low
                high += add_high

        return max(0, round(low)), max(0, round(high))

    @staticmethod
    def stacked_factors(household: HouseholdProfile) -> int:
        return sum([
            household.works_from_home,
            household.has_heat_pump,
            household.has_district_heating,
            household.has_solar_panels,
        ])

    def build_request(self, household: HouseholdProfile, contract: ContractSnapshot) -> OracleRequest:
        """Render the estimator prompt and its structured fields."""
        low, high = self.reference_range(household)
        midpoint = (low + high) / 2
        expected_cost = midpoint * AVERAGE_RATE_EUR_PER_KWH
        deviation = ((contract.monthly_cost_eur - expected_cost) / expected_cost * 100) if expected_cost else 0.0

        fields = {
            "monthly_cost_eur": contract.monthly_cost_eur,
            "household_size": household.household_size.value,
            "dwelling_type": household.dwelling_type.value,
            "works_from_home": household.works_from_home,
            "has_heat_pump": household.has_heat_pump,
            "has_district_heating": household.has_district_heating,
            "has_solar_panels": household.has_solar_panels,
            "reference_kwh_low": low,
            "reference_kwh_high": high,
            "stacked_factors": self.stacked_factors(household),
            "expected_monthly_cost_eur": round(expected_cost, 2),
            "cost_deviation_pct": round(deviation, 1),
        }

        prompt = ESTIMATE_PROMPT.format(
            household_size_label=HOUSEHOLD_SIZE_LABELS[household.household_size.value],
            dwelling_label=HOUSE_TYPE_LABELS[household.dwelling_type.value],
            average_rate=AVERAGE_RATE_EUR_PER_KWH,
            **{
                **fields,
                "works_from_home": _yes_no(household.works_from_home),
                "has_heat_pump": _yes_no(household.has_heat_pump),
                "has_district_heating": _yes_no(household.has_district_heating),
                "has_solar_panels": _yes_no(household.has_solar_panels),
            }
        )

        return OracleRequest(
            operation="estimate_usage",
            prompt=prompt,
            response_schema=ESTIMATE_SCHEMA,
            fields=fields,
        )

    async def estimate(self, household: HouseholdProfile, contract: ContractSnapshot) -> UsageEstimate:
        """
        Estimate monthly kWh and the implied rate.

        Raises:
            ValueError: monthly cost is not positive.
            EstimationFailed: the oracle failed or answered malformed JSON.
        """
        self.validate_input(monthly_cost_eur=contract.monthly_cost_eur)
        request = self.build_request(household, contract)

        try:
            data = await self.oracle.infer(request)
            payload = validate_payload(EstimatePayload, data)
        except OracleError as e:
            self.logger.error(f"Estimation failed: {e.message}")
            raise EstimationFailed(f"Usage estimation failed: {e.message}") from e

        kwh = payload.estimated_kwh_per_month
        confidence = payload.confidence_level
        assumptions = list(payload.assumptions)

        low, high = request.fields["reference_kwh_low"], request.fields["reference_kwh_high"]
        if not low <= kwh <= high:
            clamped = max(1, min(max(kwh, low), high))
            self.logger.warning(
                f"Oracle estimate {kwh} kWh/month is outside the reference range {low}-{high}; "
                f"using {clamped} kWh/month")
            assumptions.append(
                f"Geschat verbruik van {kwh} kWh/maand lag buiten het referentiebereik "
                f"{low}-{high} kWh/maand en is bijgesteld naar {clamped} kWh/maand.")
            kwh = clamped
            confidence = ConfidenceLevel.LOW

        rate = contract.monthly_cost_eur / kwh
        if abs(payload.estimated_per_kwh_rate - rate) > self.RATE_TOLERANCE:
            self.logger.warning(
                f"Oracle rate €{payload.estimated_per_kwh_rate:.4f}/kWh does not match "
                f"€{contract.monthly_cost_eur:.2f} / {kwh} kWh; using €{rate:.4f}/kWh")

        self.logger.info(
            f"Estimated {kwh} kWh/month at €{rate:.4f}/kWh ({confidence.value} confidence)")

        return UsageEstimate(
            kwh_per_month=kwh,
            rate_per_kwh=rate,
            confidence=confidence,
            assumptions=assumptions,
            reasoning=payload.reasoning,
        )
