"""
SM-2 Spaced Repetition Scheduler.

Computes the next scheduling state of a ReviewItem from a review outcome.
The scheduler is a pure function of (item, grade, now): it reads no clock,
touches no storage and never mutates its input.

Grade -> SM-2 quality:
again - 0 (lapse, progress reset)
hard  - 3 (correct, with significant difficulty)
good  - 4 (correct, with some hesitation)
easy  - 5 (correct, with perfect recall)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from loguru import logger

from .errors import InvalidGrade
from .models import (
    DEFAULT_EASE_FACTOR,
    GRADUATION_INTERVAL_DAYS,
    MINIMUM_EASE_FACTOR,
    CardStatus,
    Grade,
    ReviewItem,
    ensure_utc,
    validate_item,
)

if TYPE_CHECKING:
    from config import Settings

# =============================================================================
# SM-2 Algorithm
# =============================================================================


@dataclass(frozen=True)
class SM2Config:
    """Configuration for SM-2 algorithm."""

    initial_easiness: float = DEFAULT_EASE_FACTOR
    minimum_easiness: float = MINIMUM_EASE_FACTOR
    lapse_penalty: float = 0.20
    first_interval: int = 1  # Days after the first success
    second_interval: int = 6  # Days after the second consecutive success
    graduation_interval: int = GRADUATION_INTERVAL_DAYS  # Inclusive

    def __post_init__(self) -> None:
        if self.initial_easiness < self.minimum_easiness:
            raise ValueError("initial_easiness must be at least minimum_easiness")
        if self.first_interval < 1 or self.second_interval < 1:
            raise ValueError("Learning step intervals must be at least one day")
        if self.second_interval >= self.graduation_interval:
            raise ValueError("second_interval must be below graduation_interval")

    @classmethod
    def from_settings(cls, settings: Settings) -> SM2Config:
        """Build a config from application settings."""
        return cls(
            initial_easiness=settings.srs_initial_ease,
            minimum_easiness=settings.srs_minimum_ease,
            lapse_penalty=settings.srs_lapse_ease_penalty,
            first_interval=settings.srs_first_interval_days,
            second_interval=settings.srs_second_interval_days,
            graduation_interval=settings.srs_graduation_interval_days,
        )


def coerce_grade(outcome: object) -> Grade:
    """
    Accept a Grade or its literal tag ("again", "hard", "good", "easy").

    Raises:
        InvalidGrade: For any other value
    """
    if isinstance(outcome, Grade):
        return outcome
    if isinstance(outcome, str):
        try:
            return Grade(outcome.strip().lower())
        except ValueError:
            pass
    raise InvalidGrade(outcome)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class SM2Scheduler:
    """
    Implements the SM-2 spaced repetition algorithm.

    Each item carries:
    - Easiness Factor (EF): How easy the item is (2.5 default, min 1.3)
    - Interval: Days until next review
    - Repetitions: Consecutive correct recalls since the last lapse
    - Lapses: Total failed recalls
    """

    def __init__(self, config: SM2Config | None = None):
        """
        Initialize SM-2 scheduler.

        Args:
            config: Custom configuration (uses defaults if None)
        """
        self.config = config or SM2Config()

    def schedule(self, item: ReviewItem, outcome: Grade | str, now: datetime) -> ReviewItem:
        """
        Calculate an item's next state after a review.

        Args:
            item: Current item state
            outcome: Review grade
            now: Time of the review

        Returns:
            New ReviewItem with updated scheduling fields

        Raises:
            InvalidGrade: If outcome is not one of the four grades
            InvalidItemState: If the input item already violates an invariant
        """
        grade = coerce_grade(outcome)
        validate_item(
            item,
            minimum_ease=self.config.minimum_easiness,
            graduation_interval=self.config.graduation_interval,
        )
        now = ensure_utc(now)

        if grade.is_lapse:
            updated = self._lapse(item, now)
        elif item.repetition_count < 2:
            updated = self._learning_step(item, grade, now)
        else:
            updated = self._review(item, grade, now)

        logger.debug(
            f"Scheduled {item.id}: grade={grade.value}, status={updated.status.value}, "
            f"interval={updated.interval_days}d, ease={updated.ease_factor:.2f}"
        )
        return updated

    def update_ease(self, ease_factor: float, grade: Grade) -> float:
        """
        Apply the SM-2 easiness update for a successful review.

        EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored at the minimum.
        """
        q = grade.quality
        ef_delta = 0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)
        return max(self.config.minimum_easiness, ease_factor + ef_delta)

    def _lapse(self, item: ReviewItem, now: datetime) -> ReviewItem:
        # Failed - reset to the start of the learning steps
        return replace(
            item,
            lapse_count=item.lapse_count + 1,
            repetition_count=0,
            interval_days=1,
            ease_factor=max(
                self.config.minimum_easiness, item.ease_factor - self.config.lapse_penalty
            ),
            status=CardStatus.LEARNING,
            due_at=now + timedelta(days=1),
            last_reviewed_at=now,
        )

    def _learning_step(self, item: ReviewItem, grade: Grade, now: datetime) -> ReviewItem:
        if item.repetition_count == 0:
            interval = self.config.first_interval
        else:
            interval = self.config.second_interval
        repetitions = item.repetition_count + 1

        return replace(
            item,
            interval_days=interval,
            repetition_count=repetitions,
            ease_factor=self.update_ease(item.ease_factor, grade),
            # Leaves learning on the first interval-multiplied review
            status=CardStatus.LEARNING,
            due_at=now + timedelta(days=interval),
            last_reviewed_at=now,
        )

    def _review(self, item: ReviewItem, grade: Grade, now: datetime) -> ReviewItem:
        # Interval grows by the ease factor held before this review
        interval = max(1, _round_half_up(item.interval_days * item.ease_factor))
        graduated = interval >= self.config.graduation_interval

        return replace(
            item,
            interval_days=interval,
            repetition_count=item.repetition_count + 1,
            ease_factor=self.update_ease(item.ease_factor, grade),
            status=CardStatus.GRADUATED if graduated else CardStatus.REVIEW,
            due_at=now + timedelta(days=interval),
            last_reviewed_at=now,
        )


_default_scheduler = SM2Scheduler()


def schedule(item: ReviewItem, outcome: Grade | str, now: datetime) -> ReviewItem:
    """Schedule an item with the default SM-2 configuration."""
    return _default_scheduler.schedule(item, outcome, now)
