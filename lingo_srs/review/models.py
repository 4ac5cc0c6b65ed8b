"""
Review Item Data Model.

Defines the value types the scheduler, queries and repository share:
- ContentSource: where a phrase was captured (text, audio or video)
- ReviewItem: one scheduled phrase card and its SM-2 state
- CardStatus / Grade: closed vocabularies for status and review outcome

Every ReviewItem is frozen. Scheduling returns a new item rather than
updating one in place.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from .errors import InvalidItemState

# =============================================================================
# Constants
# =============================================================================

DEFAULT_EASE_FACTOR = 2.5
MINIMUM_EASE_FACTOR = 1.3
GRADUATION_INTERVAL_DAYS = 21


# =============================================================================
# Enums
# =============================================================================


class ContentSourceType(str, Enum):
    """Kind of content a phrase was captured from."""

    TEXT = "text"
    AUDIO = "audio"
    VIDEO = "video"


class CardStatus(str, Enum):
    """
    Scheduling status of a review item.

    new -> learning -> review -> graduated, with lapses returning to learning.
    """

    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    GRADUATED = "graduated"

    @property
    def is_scheduled(self) -> bool:
        """True once the item has a meaningful due date."""
        return self is not CardStatus.NEW


class Grade(str, Enum):
    """
    Learner's answer quality, ordered from worst to best.

    Maps onto the classic SM-2 0-5 quality scale via `quality`.
    """

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @property
    def quality(self) -> int:
        """SM-2 quality (0-5) for this grade."""
        return _GRADE_QUALITY[self]

    @property
    def is_lapse(self) -> bool:
        return self is Grade.AGAIN


_GRADE_QUALITY = {
    Grade.AGAIN: 0,
    Grade.HARD: 3,
    Grade.GOOD: 4,
    Grade.EASY: 5,
}


# =============================================================================
# Time helpers
# =============================================================================


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Normalize a datetime to aware UTC. Naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class ContentSource:
    """A document (text, audio or video) that review items were taken from."""

    type: ContentSourceType
    id: str
    title: str
    url: str | None = None
    timestamp: float | None = None  # Second in the media where the phrase occurs
    context: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", ContentSourceType(self.type))

    @property
    def key(self) -> tuple[str, str]:
        """Grouping key: (type tag, source id)."""
        return (self.type.value, self.id)


@dataclass(frozen=True)
class ReviewItem:
    """
    A phrase card and its spaced-repetition state.

    Scheduling fields follow SM-2:
    - ease_factor: interval growth multiplier (never below 1.3)
    - interval_days: days until next review after the last success
    - repetition_count: consecutive successes since the last lapse
    - lapse_count: total number of failed reviews
    """

    id: str
    phrase: str
    translation: str
    source: ContentSource
    status: CardStatus = CardStatus.NEW
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval_days: int = 0
    repetition_count: int = 0
    lapse_count: int = 0
    due_at: datetime | None = None
    last_reviewed_at: datetime | None = None
    tags: frozenset[str] = field(default_factory=frozenset)
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", CardStatus(self.status))
        object.__setattr__(self, "tags", frozenset(self.tags))
        object.__setattr__(self, "due_at", ensure_utc(self.due_at))
        object.__setattr__(self, "last_reviewed_at", ensure_utc(self.last_reviewed_at))
        object.__setattr__(self, "created_at", ensure_utc(self.created_at))

    @property
    def is_new(self) -> bool:
        return self.status is CardStatus.NEW

    @property
    def is_mastered(self) -> bool:
        return self.status is CardStatus.GRADUATED


@dataclass(frozen=True)
class ReviewLogEntry:
    """A single review event."""

    item_id: str
    reviewed_at: datetime
    grade: Grade
    time_spent_ms: int = 0  # Time to answer

    def __post_init__(self) -> None:
        object.__setattr__(self, "grade", Grade(self.grade))
        object.__setattr__(self, "reviewed_at", ensure_utc(self.reviewed_at))

    @property
    def is_correct(self) -> bool:
        return not self.grade.is_lapse


# =============================================================================
# Factory & Validation
# =============================================================================


def create_item(
    phrase: str,
    translation: str,
    source: ContentSource,
    *,
    tags: Iterable[str] = (),
    item_id: str | None = None,
    ease_factor: float = DEFAULT_EASE_FACTOR,
    now: datetime | None = None,
) -> ReviewItem:
    """
    Create a fresh `new` review item with default scheduling state.

    Args:
        phrase: Text being learned
        translation: Text shown as the answer
        source: Where the phrase came from
        tags: Optional labels (grammatical category, etc.)
        item_id: Explicit id (a uuid4 is generated if None)
        ease_factor: Starting ease factor
        now: Creation time (defaults to the current UTC time)

    Returns:
        ReviewItem in status `new`
    """
    return ReviewItem(
        id=item_id or str(uuid.uuid4()),
        phrase=phrase,
        translation=translation,
        source=source,
        tags=frozenset(tags),
        ease_factor=ease_factor,
        created_at=ensure_utc(now) or utcnow(),
    )


def validate_item(
    item: ReviewItem,
    *,
    minimum_ease: float = MINIMUM_EASE_FACTOR,
    graduation_interval: int = GRADUATION_INTERVAL_DAYS,
) -> None:
    """
    Check the scheduling invariants of an item.

    Raises:
        InvalidItemState: If any invariant is violated
    """
    if item.ease_factor < minimum_ease:
        raise InvalidItemState(item.id, f"ease_factor {item.ease_factor} is below {minimum_ease}")
    if item.interval_days < 0:
        raise InvalidItemState(item.id, f"interval_days {item.interval_days} is negative")
    if item.repetition_count < 0:
        raise InvalidItemState(item.id, f"repetition_count {item.repetition_count} is negative")
    if item.lapse_count < 0:
        raise InvalidItemState(item.id, f"lapse_count {item.lapse_count} is negative")

    if item.status.is_scheduled:
        if item.interval_days < 1:
            raise InvalidItemState(
                item.id, f"interval_days must be >= 1 for status {item.status.value}"
            )
        if item.due_at is None:
            raise InvalidItemState(item.id, f"due_at is required for status {item.status.value}")

    if item.status is CardStatus.GRADUATED and item.interval_days < graduation_interval:
        raise InvalidItemState(
            item.id,
            f"graduated with interval_days {item.interval_days} < {graduation_interval}",
        )
