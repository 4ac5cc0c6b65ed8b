"""
Review: the spaced-repetition core.

Components:
- ReviewItem / ContentSource: Scheduled phrase cards and their origin
- SM2Scheduler: Pure SM-2 next-state computation
- Queries: Due checks, ordering, filters and study sessions
- Stats: Grouping by source and summary counts
- ReviewItemRepository: Atomic, last-writer-wins persistence
- Serialization: JSON snapshots for export and sync
"""

from .errors import DuplicateItem, InvalidGrade, InvalidItemState, NotFound, SRSError
from .models import (
    CardStatus,
    ContentSource,
    ContentSourceType,
    Grade,
    ReviewItem,
    ReviewLogEntry,
    create_item,
    validate_item,
)
from .queries import StatusFilter, due_items, filter_by_status, is_due, study_session
from .repository import InMemoryBackend, ReviewItemRepository, SQLiteBackend
from .scheduler import SM2Config, SM2Scheduler, schedule
from .serialization import dump_snapshot, load_snapshot
from .stats import ReviewSummary, SourceGroup, detailed_stats, group_by_source, search, summary

__all__ = [
    # Data model
    "ContentSource",
    "ContentSourceType",
    "CardStatus",
    "Grade",
    "ReviewItem",
    "ReviewLogEntry",
    "create_item",
    "validate_item",
    # Errors
    "SRSError",
    "InvalidGrade",
    "InvalidItemState",
    "NotFound",
    "DuplicateItem",
    # Scheduling
    "SM2Config",
    "SM2Scheduler",
    "schedule",
    # Queries
    "StatusFilter",
    "is_due",
    "due_items",
    "filter_by_status",
    "study_session",
    # Statistics
    "SourceGroup",
    "ReviewSummary",
    "group_by_source",
    "summary",
    "search",
    "detailed_stats",
    # Persistence
    "ReviewItemRepository",
    "InMemoryBackend",
    "SQLiteBackend",
    "dump_snapshot",
    "load_snapshot",
]
