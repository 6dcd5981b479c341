"""
coverso/features/usage/service.py

Usage counting.

Usage is the number of generated documents a principal owns. Without a
window that is a lifetime count; with window_days only documents created
inside the rolling window count. Deleting a document frees its slot.
"""

from datetime import datetime, timezone, timedelta
from typing import Optional, Protocol


class DocumentCounter(Protocol):
    def count(self, principal_id: str, since: Optional[datetime] = None) -> int:
        ...


def _normalize_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def window_start(now: Optional[datetime] = None, window_days: Optional[int] = None) -> Optional[datetime]:
    """Start of the metering window, or None for a lifetime count."""
    if not window_days:
        return None
    return _normalize_now(now) - timedelta(days=window_days)


def count_generations(
    documents: DocumentCounter,
    principal_id: str,
    now: Optional[datetime] = None,
    window_days: Optional[int] = None,
) -> int:
    """
    Count generations for a principal.

    Deterministic for a fixed `now`.

    Args:
        documents: Document store (anything with count(principal_id, since))
        principal_id: Owner to count for
        now: Reference time for the window (defaults to current UTC)
        window_days: Rolling window length; None or 0 counts everything
    """
    return documents.count(principal_id, since=window_start(now, window_days))
