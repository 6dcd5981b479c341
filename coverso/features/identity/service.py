"""
coverso/features/identity/service.py

Auth state as an explicit event stream.

SignedOut -> SignedIn(principal) -> SignedOut

Listeners registered with on_auth_change are called immediately with the
current state and then on every transition. ProfileBootstrapper is the one
coordinating listener: it loads or creates the profile on sign-in.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from coverso.features.profiles.service import ProfileStore, ensure_profile
from coverso.models.principal import Principal
from coverso.models.profile import Profile


logger = logging.getLogger("coverso")


class AuthStatus(str, Enum):
    SIGNED_OUT = "SIGNED_OUT"
    SIGNED_IN = "SIGNED_IN"


@dataclass(frozen=True)
class AuthState:
    status: AuthStatus
    principal: Optional[Principal] = None

    @property
    def signed_in(self) -> bool:
        return self.status == AuthStatus.SIGNED_IN


SIGNED_OUT = AuthState(status=AuthStatus.SIGNED_OUT)

AuthListener = Callable[[AuthState], None]


class AuthStateController:

    def __init__(self):
        self._state = SIGNED_OUT
        self._listeners: List[AuthListener] = []

    @property
    def state(self) -> AuthState:
        return self._state

    def on_auth_change(self, callback: AuthListener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(callback)
        callback(self._state)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def sign_in(self, principal: Principal) -> None:
        if self._state.signed_in and self._state.principal == principal:
            return
        self._emit(AuthState(status=AuthStatus.SIGNED_IN, principal=principal))

    def sign_out(self) -> None:
        if not self._state.signed_in:
            return
        self._emit(SIGNED_OUT)

    def _emit(self, state: AuthState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)


class ProfileBootstrapper:
    """Keeps the signed-in principal's profile loaded, creating it on first sign-in."""

    def __init__(self, profiles: ProfileStore):
        self.profiles = profiles
        self.profile: Optional[Profile] = None
        self.created = False

    def __call__(self, state: AuthState) -> None:
        if not state.signed_in:
            self.profile = None
            self.created = False
            return
        self.profile, self.created = ensure_profile(self.profiles, state.principal)
        if self.created:
            logger.info("[identity] first sign-in, onboarding pending", extra={"user_id": state.principal.id})
