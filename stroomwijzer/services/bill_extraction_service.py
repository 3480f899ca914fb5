"""
Bill extractor: bill image/document bytes -> nullable usage/cost/provider fields.

Fields the document does not state stay None. Every gap or inconsistency
ends up as a human-readable (Dutch) warning, whether the oracle noticed it
or the local consistency checks below did.
"""

from datetime import datetime
from typing import List, Optional

from .base_service import BaseService
from ..exceptions import ExtractionFailed, OracleError
from ..models import BillConfirmation, BillExtraction, ContractType, PendingExtraction
from ..models.reference_data import canonical_provider_name
from ..oracle import BILL_SCHEMA, BillPayload, Oracle, OracleRequest, validate_payload

EXTRACTION_PROMPT = (
    "Extraheer gegevens van de Nederlandse elektriciteitsrekening. Retourneer JSON inclusief "
    "annual_kwh, monthly_kwh, annual_cost_eur, monthly_cost_eur, per_kwh_rate, contract_type, "
    "provider_name, extraction_confidence, warnings. Gebruik null voor elk getal dat niet op de "
    "rekening staat en gok niet. Noteer elke ontbrekende of tegenstrijdige waarde in warnings. "
    "De waarschuwingen moeten in het NEDERLANDS zijn."
)

# Relative difference that counts as inconsistent
KWH_MISMATCH_RATIO = 0.10
COST_MISMATCH_RATIO = 0.10
# Monthly cost includes fixed charges, so the rate check is looser
RATE_MISMATCH_RATIO = 0.25


def detect_mime_type(document: bytes) -> Optional[str]:
    """Identify supported bill formats by their magic bytes."""
    if document.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if document.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if document.startswith(b"%PDF-"):
        return "application/pdf"
    if document.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    if document[:4] == b"RIFF" and document[8:12] == b"WEBP":
        return "image/webp"
    return None


def _differs(a: float, b: float, ratio: float) -> bool:
    reference = max(abs(a), abs(b))
    return reference > 0 and abs(a - b) / reference > ratio


def consistency_warnings(extraction: BillExtraction) -> List[str]:
    """Warnings about gaps and internal mismatches in the extracted figures."""
    warnings = []

    if extraction.annual_kwh and extraction.monthly_kwh:
        if _differs(extraction.annual_kwh / 12, extraction.monthly_kwh, KWH_MISMATCH_RATIO):
            warnings.append(
                f"Jaarverbruik ({extraction.annual_kwh:.0f} kWh) en maandverbruik "
                f"({extraction.monthly_kwh:.0f} kWh) komen niet overeen.")
    elif extraction.annual_kwh and not extraction.monthly_kwh:
        warnings.append("Maandverbruik is berekend als jaarverbruik / 12.")
    elif not extraction.annual_kwh and not extraction.monthly_kwh:
        warnings.append("Geen verbruik (kWh) gevonden op de rekening.")

    if extraction.annual_cost_eur and extraction.monthly_cost_eur:
        if _differs(extraction.annual_cost_eur / 12, extraction.monthly_cost_eur, COST_MISMATCH_RATIO):
            warnings.append(
                f"Jaarkosten (€{extraction.annual_cost_eur:.2f}) en maandkosten "
                f"(€{extraction.monthly_cost_eur:.2f}) komen niet overeen.")

    kwh = extraction.derived_monthly_kwh()
    cost = extraction.derived_monthly_cost()
    if extraction.per_kwh_rate and kwh and cost:
        if _differs(extraction.per_kwh_rate, cost / kwh, RATE_MISMATCH_RATIO):
            warnings.append(
                f"Tarief op de rekening (€{extraction.per_kwh_rate:.4f}/kWh) wijkt sterk af van "
                f"kosten gedeeld door verbruik (€{cost / kwh:.4f}/kWh).")
    elif not extraction.per_kwh_rate:
        if kwh and cost:
            warnings.append("Tarief per kWh ontbreekt; berekend uit kosten en verbruik.")
        else:
            warnings.append("Geen tarief per kWh gevonden; vul dit handmatig aan.")

    if not extraction.provider_name:
        warnings.append("Leverancier niet gevonden op de rekening.")
    elif canonical_provider_name(extraction.provider_name) is None:
        warnings.append(f"Leverancier '{extraction.provider_name}' niet herkend.")

    return warnings


def pending_extraction(extraction: BillExtraction, extraction_id: str, extracted_at: datetime) -> PendingExtraction:
    """Extracted figures as kept on the profile until the user confirms them."""
    kwh = extraction.derived_monthly_kwh()
    rate = extraction.derived_rate()
    return PendingExtraction(
        extraction_id=extraction_id,
        extracted_at=extracted_at,
        kwh_per_month=round(kwh, 1) if kwh is not None else None,
        rate_per_kwh=round(rate, 4) if rate is not None else None,
        provider_name=extraction.provider_name,
        contract_type=extraction.contract_type,
        confidence=extraction.confidence,
        warnings=extraction.warnings,
    )


def suggested_confirmation(extraction: BillExtraction, extraction_id: str) -> Optional[BillConfirmation]:
    """The figures the user is asked to confirm, or None when they are incomplete."""
    if not extraction.is_usable:
        return None
    return BillConfirmation(
        extraction_id=extraction_id,
        kwh_per_month=round(extraction.derived_monthly_kwh(), 1),
        rate_per_kwh=round(extraction.derived_rate(), 4),
        provider_name=extraction.provider_name,
        contract_type=extraction.contract_type,
    )


class BillExtractionService(BaseService):
    """Service turning one bill document into a BillExtraction."""

    def __init__(self, oracle: Oracle, max_upload_bytes: int = 10 * 1024 * 1024):
        super().__init__()
        self.oracle = oracle
        self.max_upload_bytes = max_upload_bytes

    def validate_input(self, **kwargs) -> bool:
        """Reject empty, oversized and unrecognised documents."""
        document: Optional[bytes] = kwargs.get('document')
        if not document:
            raise ExtractionFailed("Bill document is empty")
        if len(document) > self.max_upload_bytes:
            raise ExtractionFailed(
                f"Bill document is larger than {self.max_upload_bytes // (1024 * 1024)} MB")
        if detect_mime_type(document) is None:
            raise ExtractionFailed("Bill document is not a readable PNG, JPEG, WEBP, GIF or PDF file")
        return True

    async def extract(self, document: bytes) -> BillExtraction:
        """
        Extract bill figures.

        Raises:
            ExtractionFailed: unreadable document, oracle failure or malformed answer.
        """
        self.validate_input(document=document)
        mime_type = detect_mime_type(document)

        request = OracleRequest(
            operation="extract_bill",
            prompt=EXTRACTION_PROMPT,
            response_schema=BILL_SCHEMA,
            fields={"size_bytes": len(document)},
            media=document,
            mime_type=mime_type,
        )

        try:
            data = await self.oracle.infer(request)
            payload = validate_payload(BillPayload, data)
        except OracleError as e:
            self.logger.error(f"Bill extraction failed: {e.message}")
            raise ExtractionFailed(f"Bill extraction failed: {e.message}") from e

        provider = payload.provider_name.strip() if payload.provider_name else None
        extraction = BillExtraction(
            annual_kwh=payload.annual_kwh,
            monthly_kwh=payload.monthly_kwh,
            annual_cost_eur=payload.annual_cost_eur,
            monthly_cost_eur=payload.monthly_cost_eur,
            per_kwh_rate=payload.per_kwh_rate,
            contract_type=ContractType.normalize(payload.contract_type),
            provider_name=canonical_provider_name(provider) or provider,
            confidence=payload.extraction_confidence,
            warnings=payload.warnings,
        )

        warnings = list(dict.fromkeys(extraction.warnings + consistency_warnings(extraction)))
        extraction = extraction.model_copy(update={"warnings": warnings})

        self.logger.info(
            f"Extracted bill ({mime_type}, {extraction.confidence.value} confidence, "
            f"{len(warnings)} warning(s))")
        return extraction
