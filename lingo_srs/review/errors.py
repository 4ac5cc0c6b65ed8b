"""
Error taxonomy for the review core.

Scheduling errors are programming or repository bugs and are always raised
to the caller. Read paths never raise NotFound; absence is an empty result.
"""

from __future__ import annotations


class SRSError(Exception):
    """Base class for all review-core errors."""


class InvalidGrade(SRSError):
    """Raised when a review outcome is not one of again/hard/good/easy."""

    def __init__(self, outcome: object):
        self.outcome = outcome
        super().__init__(f"Invalid grade: {outcome!r} (expected again, hard, good or easy)")


class InvalidItemState(SRSError):
    """Raised when a ReviewItem violates a scheduling invariant."""

    def __init__(self, item_id: str | None, reason: str):
        self.item_id = item_id
        self.reason = reason
        super().__init__(f"Invalid state for item {item_id}: {reason}")


class NotFound(SRSError):
    """Raised by explicit lookups (require) when an item id does not exist."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Review item not found: {item_id}")


class DuplicateItem(SRSError):
    """Raised when adding an item whose id is already stored."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Review item already exists: {item_id}")
