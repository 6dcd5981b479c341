"""
Upgrade attempt persistence.

Only what reconciliation needs is stored: who started the attempt, which
plan/price it was for, the Stripe ids, and the state machine position.
Client secrets are never persisted.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, insert, update
from sqlalchemy.orm import sessionmaker

from coverso.core.database import get_session_factory, session_scope, billing_subscriptions
from coverso.models.billing import AttemptState, UpgradeAttempt


def _row_to_attempt(row) -> UpgradeAttempt:
    return UpgradeAttempt(**dict(row._mapping))


class UpgradeAttemptStore:

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory

    def _session(self):
        return session_scope(self._session_factory or get_session_factory())

    def create(self, principal_id: str, plan_name: str, price_id: str) -> int:
        now = datetime.now(timezone.utc)
        with self._session() as session:
            result = session.execute(
                insert(billing_subscriptions).values(
                    principal_id=principal_id,
                    plan_name=plan_name,
                    price_id=price_id,
                    state=AttemptState.INITIATED.value,
                    created_at=now,
                    updated_at=now,
                )
            )
            return result.inserted_primary_key[0]

    def mark(self, attempt_id: int, state: AttemptState, **fields) -> None:
        """Move an attempt to `state`, optionally recording Stripe ids or an error."""
        with self._session() as session:
            session.execute(
                update(billing_subscriptions)
                .where(billing_subscriptions.c.id == attempt_id)
                .values(state=state.value, updated_at=datetime.now(timezone.utc), **fields)
            )

    def get(self, attempt_id: int) -> Optional[UpgradeAttempt]:
        with self._session() as session:
            row = session.execute(
                select(billing_subscriptions).where(billing_subscriptions.c.id == attempt_id)
            ).first()
        return _row_to_attempt(row) if row else None

    def get_by_subscription(self, subscription_id: str) -> Optional[UpgradeAttempt]:
        with self._session() as session:
            row = session.execute(
                select(billing_subscriptions).where(
                    billing_subscriptions.c.stripe_subscription_id == subscription_id
                )
            ).first()
        return _row_to_attempt(row) if row else None
