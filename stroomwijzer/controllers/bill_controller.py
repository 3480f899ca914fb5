"""
Controller for bill verification endpoints.

Endpoints:
    - POST /profiles/{user_id}/bill: Extract figures from an uploaded bill (premium)
    - POST /profiles/{user_id}/verification: Confirm the figures, verifying the profile
"""

from fastapi import Depends, File, HTTPException, Path, UploadFile

from .base_controller import BaseController
from .dependencies import get_bill_extraction_service, get_profile_service
from ..exceptions import ExtractionFailed
from ..models import BillConfirmation, BillUploadResponse, ProfileView
from ..services import BillExtractionService, ProfileService, suggested_confirmation


class BillController(BaseController):
    """Controller for bill upload and confirmation."""

    def _setup_routes(self):
        """Setup routes for bill verification."""

        @self.router.post(
            "/profiles/{user_id}/bill",
            response_model=BillUploadResponse,
            tags=["Bill Verification"],
            summary="Extract usage and cost from an energy bill",
            description="""
            Upload a PNG, JPEG, WEBP, GIF or PDF of an energy bill. Figures the
            bill does not state stay empty and every gap or inconsistency is
            reported as a warning.

            The figures are kept as the pending extraction. The profile is
            verified only after the user confirms them through
            **/verification** with the returned **extraction_id**.
            """
        )
        async def upload_bill(
            user_id: str = Path(..., min_length=1),
            file: UploadFile = File(..., description="Bill image or PDF"),
            profile_service: ProfileService = Depends(get_profile_service),
            extraction_service: BillExtractionService = Depends(get_bill_extraction_service)
        ):
            try:
                await profile_service.require_premium(user_id)
                document = await file.read()
                extraction = await self.run_with_timeout(
                    extraction_service.extract(document), ExtractionFailed, user_id)
                pending = await profile_service.record_extraction(user_id, extraction)
                return BillUploadResponse(
                    extraction=extraction,
                    extraction_id=pending.extraction_id,
                    suggested_confirmation=suggested_confirmation(extraction, pending.extraction_id)
                )
            except HTTPException:
                raise
            except Exception as e:
                self.handle_exception(e, "Error extracting bill")

        @self.router.post(
            "/profiles/{user_id}/verification",
            response_model=ProfileView,
            tags=["Bill Verification"],
            summary="Confirm bill figures",
            description="""
            Confirm the pending extraction, optionally correcting its figures.
            Premium only. From now on every price check uses them instead of
            the estimate.
            """
        )
        async def confirm_verification(
            confirmation: BillConfirmation,
            user_id: str = Path(..., min_length=1),
            service: ProfileService = Depends(get_profile_service)
        ):
            try:
                profile = await service.confirm_verification(user_id, confirmation)
                return ProfileView.from_profile(profile)
            except HTTPException:
                raise
            except Exception as e:
                self.handle_exception(e, "Error confirming verification")
