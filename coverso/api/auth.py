"""
Auth API routes.

- GET  /v1/auth/session: sign the caller in (profile loaded or created)
- POST /v1/auth/sign-out: emit SignedOut for the caller's session
"""
from fastapi import APIRouter, Depends

from coverso.api.deps import get_profile_store
from coverso.core.auth import get_current_principal
from coverso.features.identity.service import AuthStateController, ProfileBootstrapper
from coverso.features.profiles.service import ProfileStore
from coverso.models.principal import Principal


router = APIRouter(prefix="/v1/auth", tags=["auth"])


def get_auth_session(
    principal: Principal = Depends(get_current_principal),
    profiles: ProfileStore = Depends(get_profile_store),
):
    """Per-request auth controller with the profile bootstrapper subscribed."""
    controller = AuthStateController()
    bootstrapper = ProfileBootstrapper(profiles)
    controller.on_auth_change(bootstrapper)
    controller.sign_in(principal)
    return controller, bootstrapper


@router.get("/session")
def session(auth=Depends(get_auth_session)):
    controller, bootstrapper = auth
    profile = bootstrapper.profile
    return {
        "signed_in": controller.state.signed_in,
        "user_id": controller.state.principal.id,
        "profile_created": bootstrapper.created,
        "onboarding_required": not profile.onboarding_complete,
        "profile": profile.public_dict(),
    }


@router.post("/sign-out")
def sign_out(principal: Principal = Depends(get_current_principal)):
    """No profile is loaded or created on the way out."""
    controller = AuthStateController()
    controller.sign_in(principal)
    controller.sign_out()
    return {"signed_in": controller.state.signed_in, "profile_loaded": False}
