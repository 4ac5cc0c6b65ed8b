"""
Due-Query Engine.

Read-only views over a collection of review items: due checks, ordering,
status filters and study-session assembly. Every function takes `now`
explicitly and returns a fresh sequence without touching its input.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import datetime
from enum import Enum
from itertools import islice

from .models import CardStatus, ContentSourceType, ReviewItem, ensure_utc


class StatusFilter(str, Enum):
    """Listing filters offered to presentation layers."""

    ALL = "all"
    NEW = "new"
    DUE = "due"
    MASTERED = "mastered"


def is_due(item: ReviewItem, now: datetime) -> bool:
    """
    Check whether an item may be shown now.

    New items are always available for first study. Scheduled items are due
    once their due time has arrived.
    """
    if item.status is CardStatus.NEW:
        return True
    if item.due_at is None:
        return False
    return item.due_at <= ensure_utc(now)


def due_items(items: Iterable[ReviewItem], now: datetime) -> Iterator[ReviewItem]:
    """
    Yield the items that are due, in presentation order.

    New items come first in their input order, then scheduled items by
    ascending due time (earliest first, stable on ties).
    """
    now = ensure_utc(now)
    fresh: list[ReviewItem] = []
    scheduled: list[ReviewItem] = []
    for item in items:
        if item.status is CardStatus.NEW:
            fresh.append(item)
        elif is_due(item, now):
            scheduled.append(item)

    yield from fresh
    yield from sorted(scheduled, key=lambda i: i.due_at)


def filter_by_status(
    items: Iterable[ReviewItem],
    status_filter: StatusFilter | str,
    now: datetime,
) -> list[ReviewItem]:
    """
    Filter items for a listing tab.

    Args:
        items: Items to filter
        status_filter: all, new, due (scheduled and due) or mastered (graduated)
        now: Reference time for the due filter

    Returns:
        Matching items in input order
    """
    status_filter = StatusFilter(status_filter)

    if status_filter is StatusFilter.NEW:
        return [i for i in items if i.status is CardStatus.NEW]
    if status_filter is StatusFilter.DUE:
        return [i for i in items if i.status is not CardStatus.NEW and is_due(i, now)]
    if status_filter is StatusFilter.MASTERED:
        return [i for i in items if i.status is CardStatus.GRADUATED]
    return list(items)


# =============================================================================
# Session Assembly
# =============================================================================


def new_items(items: Iterable[ReviewItem], limit: int | None = None) -> list[ReviewItem]:
    """New items, oldest first (by created_at, input order when unknown)."""
    fresh = [i for i in items if i.status is CardStatus.NEW]
    # created_at-less items keep their relative position at the front
    fresh.sort(key=lambda i: (i.created_at is not None, i.created_at or 0))
    return fresh[:limit] if limit is not None else fresh


def scheduled_due_items(
    items: Iterable[ReviewItem],
    now: datetime,
    limit: int | None = None,
) -> list[ReviewItem]:
    """Due non-new items, most overdue first."""
    due = filter_by_status(items, StatusFilter.DUE, now)
    due.sort(key=lambda i: i.due_at)
    return due[:limit] if limit is not None else due


def study_session(
    items: Iterable[ReviewItem],
    now: datetime,
    max_new: int = 10,
    max_reviews: int = 50,
) -> list[ReviewItem]:
    """
    Build a study session mixing reviews with new material.

    Strategy:
    - Due reviews take priority, most overdue first
    - One new card is inserted after every three reviews
    - Leftovers of either kind are appended once the other runs out
    """
    pool = list(items)
    reviews = iter(scheduled_due_items(pool, now, max_reviews))
    fresh = iter(new_items(pool, max_new))

    session: list[ReviewItem] = []
    while True:
        batch = list(islice(reviews, 3)) + list(islice(fresh, 1))
        if not batch:
            break
        session.extend(batch)
    return session


# =============================================================================
# Lookups
# =============================================================================


def items_by_source(
    items: Iterable[ReviewItem],
    source_type: ContentSourceType | str,
    source_id: str | None = None,
) -> list[ReviewItem]:
    """Items captured from a source type, optionally narrowed to one source."""
    source_type = ContentSourceType(source_type)
    return [
        i
        for i in items
        if i.source.type is source_type and (source_id is None or i.source.id == source_id)
    ]


def items_by_tag(items: Iterable[ReviewItem], tag: str) -> list[ReviewItem]:
    return [i for i in items if tag in i.tags]


def _normalize_phrase(phrase: str) -> str:
    return phrase.strip().casefold()


def find_by_phrase(items: Iterable[ReviewItem], phrase: str) -> ReviewItem | None:
    """First item whose phrase matches, ignoring case and surrounding space."""
    wanted = _normalize_phrase(phrase)
    return next((i for i in items if _normalize_phrase(i.phrase) == wanted), None)
