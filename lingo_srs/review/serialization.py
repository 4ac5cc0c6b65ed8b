"""
Snapshot wire format.

JSON representation of review items for export, import and remote
reconciliation. Every ReviewItem field is carried: floats and integers as
JSON numbers, timestamps as ISO-8601 instants, enums as their literal tag.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import InvalidItemState
from .models import (
    CardStatus,
    ContentSource,
    ContentSourceType,
    ReviewItem,
    validate_item,
)

SNAPSHOT_VERSION = 1


class ContentSourceRecord(BaseModel):
    """Wire form of a ContentSource."""

    model_config = ConfigDict(extra="ignore")

    type: ContentSourceType
    id: str
    title: str
    url: str | None = None
    timestamp: float | None = None
    context: str | None = None

    def to_source(self) -> ContentSource:
        return ContentSource(
            type=self.type,
            id=self.id,
            title=self.title,
            url=self.url,
            timestamp=self.timestamp,
            context=self.context,
        )


class ReviewItemRecord(BaseModel):
    """Wire form of a ReviewItem."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    phrase: str
    translation: str
    source: ContentSourceRecord
    status: CardStatus = CardStatus.NEW
    ease_factor: float = Field(default=2.5, ge=1.3)
    interval_days: int = Field(default=0, ge=0)
    repetition_count: int = Field(default=0, ge=0)
    lapse_count: int = Field(default=0, ge=0)
    due_at: datetime | None = None
    last_reviewed_at: datetime | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None

    @classmethod
    def from_item(cls, item: ReviewItem) -> ReviewItemRecord:
        return cls(
            id=item.id,
            phrase=item.phrase,
            translation=item.translation,
            source=ContentSourceRecord(
                type=item.source.type,
                id=item.source.id,
                title=item.source.title,
                url=item.source.url,
                timestamp=item.source.timestamp,
                context=item.source.context,
            ),
            status=item.status,
            ease_factor=item.ease_factor,
            interval_days=item.interval_days,
            repetition_count=item.repetition_count,
            lapse_count=item.lapse_count,
            due_at=item.due_at,
            last_reviewed_at=item.last_reviewed_at,
            tags=sorted(item.tags),
            created_at=item.created_at,
        )

    def to_item(self) -> ReviewItem:
        return ReviewItem(
            id=self.id,
            phrase=self.phrase,
            translation=self.translation,
            source=self.source.to_source(),
            status=self.status,
            ease_factor=self.ease_factor,
            interval_days=self.interval_days,
            repetition_count=self.repetition_count,
            lapse_count=self.lapse_count,
            due_at=self.due_at,
            last_reviewed_at=self.last_reviewed_at,
            tags=frozenset(self.tags),
            created_at=self.created_at,
        )


class Snapshot(BaseModel):
    """A full repository snapshot."""

    version: int = SNAPSHOT_VERSION
    items: list[ReviewItemRecord] = Field(default_factory=list)


def dump_snapshot(items: Iterable[ReviewItem], indent: int | None = 2) -> str:
    """Serialize items to snapshot JSON."""
    snapshot = Snapshot(items=[ReviewItemRecord.from_item(i) for i in items])
    return snapshot.model_dump_json(indent=indent)


def load_snapshot(data: str | bytes) -> list[ReviewItem]:
    """
    Parse snapshot JSON into review items.

    Raises:
        InvalidItemState: If a record is malformed or breaks an invariant
    """
    try:
        snapshot = Snapshot.model_validate_json(data)
    except ValidationError as e:
        raise InvalidItemState(None, f"malformed snapshot: {e}") from e

    items = [record.to_item() for record in snapshot.items]
    for item in items:
        validate_item(item)
    return items
