"""
Grouping & Statistics.

Stateless aggregates computed on demand from a snapshot of review items
(and, for the detailed view, the review log). Nothing here is cached;
callers decide how often to recompute.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from .models import (
    DEFAULT_EASE_FACTOR,
    CardStatus,
    ContentSource,
    ReviewItem,
    ReviewLogEntry,
    ensure_utc,
)
from .queries import is_due

SECONDS_PER_CARD = 10


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class SourceGroup:
    """Items captured from one content source."""

    source: ContentSource
    items: list[ReviewItem] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class ReviewSummary:
    """Headline counts for listing screens."""

    total: int
    new_count: int
    due_count: int
    mastered_count: int

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "new": self.new_count,
            "due": self.due_count,
            "mastered": self.mastered_count,
        }


@dataclass(frozen=True)
class DetailedStats:
    """Full learning statistics for dashboards."""

    total_cards: int
    new_cards: int
    learning_cards: int
    review_cards: int
    graduated_cards: int
    reviewed_today: int
    correct_today: int
    incorrect_today: int
    total_reviews: int
    retention_rate: float  # Percent of reviews not graded `again`
    average_ease_factor: float
    streak_days: int
    last_review_date: date | None


# =============================================================================
# Grouping
# =============================================================================


def group_by_source(items: Iterable[ReviewItem]) -> dict[tuple[str, str], SourceGroup]:
    """
    Partition items by content source.

    The key is (source type, source id); groups keep first-seen order and
    every item lands in exactly one group.
    """
    groups: dict[tuple[str, str], SourceGroup] = {}
    for item in items:
        key = item.source.key
        group = groups.get(key)
        if group is None:
            group = groups[key] = SourceGroup(source=item.source)
        group.items.append(item)
    return groups


def summary(items: Iterable[ReviewItem], now: datetime) -> ReviewSummary:
    """
    Count total, new, due (scheduled items only) and mastered items.

    Each count is computed independently, so a graduated item that is due
    is counted as both due and mastered.
    """
    total = new_count = due_count = mastered_count = 0
    for item in items:
        total += 1
        if item.status is CardStatus.NEW:
            new_count += 1
        elif is_due(item, now):
            due_count += 1
        if item.status is CardStatus.GRADUATED:
            mastered_count += 1

    return ReviewSummary(
        total=total,
        new_count=new_count,
        due_count=due_count,
        mastered_count=mastered_count,
    )


def search(items: Iterable[ReviewItem], query: str) -> list[ReviewItem]:
    """Case-insensitive substring search over phrase and translation."""
    needle = query.strip().casefold()
    if not needle:
        return list(items)
    return [
        i for i in items if needle in i.phrase.casefold() or needle in i.translation.casefold()
    ]


# =============================================================================
# Detailed Statistics
# =============================================================================


def retention_rate(reviews: Iterable[ReviewLogEntry]) -> float:
    """Percentage of reviews that were not lapses (0 when there are none)."""
    total = correct = 0
    for review in reviews:
        total += 1
        if review.is_correct:
            correct += 1
    return (correct / total) * 100 if total else 0.0


def average_ease(items: Iterable[ReviewItem]) -> float:
    eases = [i.ease_factor for i in items]
    if not eases:
        return DEFAULT_EASE_FACTOR
    return sum(eases) / len(eases)


def _streak_days(review_dates: set[date], today: date) -> int:
    """Consecutive review days ending today, or yesterday if today is empty."""
    day = today if today in review_dates else today - timedelta(days=1)
    streak = 0
    while day in review_dates:
        streak += 1
        day -= timedelta(days=1)
    return streak


def detailed_stats(
    items: Iterable[ReviewItem],
    reviews: Iterable[ReviewLogEntry],
    now: datetime,
) -> DetailedStats:
    """
    Compute dashboard statistics.

    Args:
        items: Current item snapshot
        reviews: Review log entries (any order)
        now: Reference time; "today" is the UTC calendar day of `now`

    Returns:
        DetailedStats
    """
    items = list(items)
    reviews = list(reviews)
    today = ensure_utc(now).date()

    by_status = {status: 0 for status in CardStatus}
    for item in items:
        by_status[item.status] += 1

    todays = [r for r in reviews if r.reviewed_at.date() == today]
    # One entry per item reviewed today, judged by its latest answer
    latest_today: dict[str, ReviewLogEntry] = {}
    for review in sorted(todays, key=lambda r: r.reviewed_at):
        latest_today[review.item_id] = review
    correct_today = sum(1 for r in latest_today.values() if r.is_correct)

    review_dates = {r.reviewed_at.date() for r in reviews}

    return DetailedStats(
        total_cards=len(items),
        new_cards=by_status[CardStatus.NEW],
        learning_cards=by_status[CardStatus.LEARNING],
        review_cards=by_status[CardStatus.REVIEW],
        graduated_cards=by_status[CardStatus.GRADUATED],
        reviewed_today=len(latest_today),
        correct_today=correct_today,
        incorrect_today=len(latest_today) - correct_today,
        total_reviews=len(reviews),
        retention_rate=retention_rate(reviews),
        average_ease_factor=average_ease(items),
        streak_days=_streak_days(review_dates, today),
        last_review_date=max(review_dates) if review_dates else None,
    )


# =============================================================================
# Presentation Helpers
# =============================================================================


def estimate_session_minutes(card_count: int) -> int:
    """Estimate a review session's length (about 10 seconds per card)."""
    return math.ceil(card_count * SECONDS_PER_CARD / 60)


def next_review_label(item: ReviewItem, now: datetime) -> str:
    """Human-readable time until the item is next due."""
    if item.due_at is None:
        return "Today"
    diff = item.due_at - ensure_utc(now)
    days = math.ceil(diff.total_seconds() / 86400)

    if days <= 0:
        return "Today"
    if days == 1:
        return "Tomorrow"
    if days < 7:
        return f"In {days} days"
    if days < 30:
        return _in_units(math.ceil(days / 7), "week")
    return _in_units(math.ceil(days / 30), "month")


def _in_units(count: int, unit: str) -> str:
    return f"In {count} {unit}" if count == 1 else f"In {count} {unit}s"
