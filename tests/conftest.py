"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from lingo_srs.review.models import (  # noqa: E402
    CardStatus,
    ContentSource,
    ContentSourceType,
    ReviewItem,
    create_item,
)
from lingo_srs.review.repository import InMemoryBackend, ReviewItemRepository  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite on disk)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """A fixed review time."""
    return datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def text_source():
    return ContentSource(
        type=ContentSourceType.TEXT,
        id="article-42",
        title="Le Petit Prince, chapitre 1",
        url="https://example.org/petit-prince",
    )


@pytest.fixture
def video_source():
    return ContentSource(
        type=ContentSourceType.VIDEO,
        id="yt-abc123",
        title="Café conversation",
        timestamp=83.5,
        context="Ordering at the counter",
    )


@pytest.fixture
def new_item(text_source, now):
    """A freshly imported phrase card."""
    return create_item(
        "bonjour",
        "hello",
        text_source,
        tags={"greeting"},
        item_id="item-new",
        now=now - timedelta(days=1),
    )


@pytest.fixture
def make_item(text_source, now):
    """Factory for scheduled items with explicit state."""

    def _make(
        item_id: str = "item-1",
        status: CardStatus = CardStatus.REVIEW,
        ease_factor: float = 2.5,
        interval_days: int = 6,
        repetition_count: int = 2,
        lapse_count: int = 0,
        due_at: datetime | None = None,
        phrase: str = "merci",
        translation: str = "thank you",
        source: ContentSource | None = None,
        **overrides,
    ) -> ReviewItem:
        item = ReviewItem(
            id=item_id,
            phrase=phrase,
            translation=translation,
            source=source or text_source,
            status=status,
            ease_factor=ease_factor,
            interval_days=interval_days,
            repetition_count=repetition_count,
            lapse_count=lapse_count,
            due_at=due_at if due_at is not None else now,
            last_reviewed_at=now - timedelta(days=interval_days),
            created_at=now - timedelta(days=30),
        )
        return replace(item, **overrides) if overrides else item

    return _make


@pytest.fixture
def memory_repo():
    """Repository on an empty in-memory backend."""
    return ReviewItemRepository(backend=InMemoryBackend())
