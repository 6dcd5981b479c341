"""
coverso/features/profiles/service.py

Profile store.

Handles:
- Profile read and upsert with merge (partial) or replace semantics
- First sign-in bootstrap (Basic plan, onboarding pending)
- Personal-detail edits that cannot touch plan or billing fields

Every flow that mutates a profile (onboarding, edits, reconciliation) writes
through set(..., merge=True) so unrelated fields are not clobbered.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple

from sqlalchemy import select, insert, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from coverso.core.database import get_session_factory, session_scope, profiles
from coverso.core.errors import ProfileUnavailableError, ValidationError
from coverso.features.plans.service import PlanName
from coverso.models.principal import Principal
from coverso.models.profile import Profile, PERSONAL_FIELDS, WRITABLE_FIELDS


logger = logging.getLogger("coverso")

# Column values used when a record is created or replaced
PROFILE_DEFAULTS: Dict[str, Any] = {field: None for field in WRITABLE_FIELDS}
PROFILE_DEFAULTS["onboarding_complete"] = False


def _row_to_profile(row) -> Profile:
    data = dict(row._mapping)
    data["industries"] = data.get("industries") or []
    data["onboarding_complete"] = bool(data.get("onboarding_complete"))
    return Profile(**data)


def _check_fields(partial: Dict[str, Any], allowed=WRITABLE_FIELDS) -> None:
    unknown = sorted(set(partial) - set(allowed))
    if unknown:
        raise ValidationError(f"Unknown or read-only profile fields: {', '.join(unknown)}")


class ProfileStore:
    """SQL-backed profile store. Failures surface as ProfileUnavailableError."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory

    def _session(self):
        return session_scope(self._session_factory or get_session_factory())

    def get(self, principal_id: str) -> Optional[Profile]:
        try:
            with self._session() as session:
                row = session.execute(
                    select(profiles).where(profiles.c.principal_id == principal_id)
                ).first()
        except SQLAlchemyError as e:
            logger.error(
                "[profiles] read failed",
                extra={"user_id": principal_id, "error": str(e)},
            )
            raise ProfileUnavailableError("Could not load your profile. Please try again.")
        return _row_to_profile(row) if row else None

    def set(self, principal_id: str, partial: Dict[str, Any], merge: bool = True) -> Profile:
        """
        Write profile fields.

        Args:
            principal_id: Owning principal
            partial: Field values to write
            merge: True writes only the supplied fields (creating the record
                if absent); False replaces the record, resetting unspecified
                fields to defaults

        Returns:
            The stored Profile

        Raises:
            ValidationError: Unknown field names
            ProfileUnavailableError: Store failure
        """
        _check_fields(partial)
        now = datetime.now(timezone.utc)

        try:
            with self._session() as session:
                existing = session.execute(
                    select(profiles.c.principal_id).where(profiles.c.principal_id == principal_id)
                ).first()

                if existing is None:
                    values = {**PROFILE_DEFAULTS, **partial}
                    session.execute(
                        insert(profiles).values(
                            principal_id=principal_id,
                            created_at=now,
                            updated_at=now,
                            **values,
                        )
                    )
                else:
                    values = dict(partial) if merge else {**PROFILE_DEFAULTS, **partial}
                    session.execute(
                        update(profiles)
                        .where(profiles.c.principal_id == principal_id)
                        .values(updated_at=now, **values)
                    )

                row = session.execute(
                    select(profiles).where(profiles.c.principal_id == principal_id)
                ).first()
        except SQLAlchemyError as e:
            logger.error(
                "[profiles] write failed",
                extra={"user_id": principal_id, "fields": sorted(partial), "error": str(e)},
            )
            raise ProfileUnavailableError("Could not save your profile. Please try again.")

        logger.info(
            "[profiles] saved",
            extra={"user_id": principal_id, "fields": sorted(partial), "merge": merge},
        )
        return _row_to_profile(row)


def ensure_profile(store: ProfileStore, principal: Principal) -> Tuple[Profile, bool]:
    """
    Load the principal's profile, creating it on first sign-in.

    Returns:
        (profile, created)
    """
    existing = store.get(principal.id)
    if existing is not None:
        return existing, False

    profile = store.set(
        principal.id,
        {
            "email": principal.email,
            "full_name": principal.display_name,
            "plan": PlanName.BASIC.value,
            "onboarding_complete": False,
        },
    )
    logger.info("[profiles] created on first sign-in", extra={"user_id": principal.id})
    return profile, True


def update_details(store: ProfileStore, principal_id: str, fields: Dict[str, Any]) -> Profile:
    """Profile page edit: personal fields only."""
    _check_fields(fields, allowed=PERSONAL_FIELDS)
    if "full_name" in fields and not (fields["full_name"] or "").strip():
        raise ValidationError("Full name cannot be empty")
    return store.set(principal_id, fields, merge=True)
