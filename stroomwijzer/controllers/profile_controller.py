"""
Controller for profile endpoints.

Endpoints:
    - POST /profiles/{user_id}: Sign up with household and contract details
    - GET /profiles/{user_id}: Profile with its resolved usage source
"""

from fastapi import Depends, HTTPException, Path, Query

from .base_controller import BaseController
from .dependencies import get_profile_service
from ..exceptions import EstimationFailed
from ..models import ProfileRegistration, ProfileView
from ..services import ProfileService


class ProfileController(BaseController):
    """Controller for profile signup and retrieval."""

    def _setup_routes(self):
        """Setup routes for profile operations."""

        @self.router.post(
            "/profiles/{user_id}",
            response_model=ProfileView,
            status_code=201,
            tags=["Profiles"],
            summary="Sign up and get a first usage estimate",
            description="""
            Create a profile from self-reported household and contract details.

            The monthly kWh usage and effective rate are estimated before the
            profile is stored; when the estimate fails, nothing is stored and
            the client may retry.
            """
        )
        async def register_profile(
            registration: ProfileRegistration,
            user_id: str = Path(..., min_length=1, description="Identity-provider user id"),
            service: ProfileService = Depends(get_profile_service)
        ):
            try:
                estimate = await self.run_with_timeout(
                    service.estimate_registration(user_id, registration), EstimationFailed, user_id)
                profile = await service.create_profile(user_id, registration, estimate)
                return ProfileView.from_profile(profile)
            except HTTPException:
                raise
            except Exception as e:
                self.handle_exception(e, "Error registering profile")

        @self.router.get(
            "/profiles/{user_id}",
            response_model=ProfileView,
            tags=["Profiles"],
            summary="Get a profile",
            description="""
            Get the stored profile together with the usage figures every
            computation uses (verified when present, otherwise estimated).

            With **wait=true** a profile that was created a moment ago is
            waited for with a bounded number of retries.
            """
        )
        async def get_profile(
            user_id: str = Path(..., min_length=1),
            wait: bool = Query(False, description="Retry briefly while the profile is not visible yet"),
            service: ProfileService = Depends(get_profile_service)
        ):
            try:
                if wait:
                    profile = await service.wait_for_profile(user_id)
                else:
                    profile = await service.get_profile(user_id)
                return ProfileView.from_profile(profile)
            except HTTPException:
                raise
            except Exception as e:
                self.handle_exception(e, "Error retrieving profile")
