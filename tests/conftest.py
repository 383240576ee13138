"""
Test Configuration

Pytest fixtures and configuration for PromptShelf tests.
"""

import itertools
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from promptshelf.integrations.base import GenerativeClient
from promptshelf.models.prompt import Modality, Prompt, PromptVersion
from promptshelf.services.persistence import CollectionStore
from promptshelf.services.prompt_store import PromptStoreService

START = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock advancing one minute per reading."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(minutes=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current += self.step
        return now


@pytest.fixture
def clock():
    """Deterministic clock."""
    return FakeClock()


@pytest.fixture
def id_factory():
    """Sequential ids: id-1, id-2, ..."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def collection_path(tmp_path):
    """Collection file inside a temporary data directory."""
    return tmp_path / "prompts.json"


@pytest.fixture
def collection(collection_path):
    return CollectionStore(collection_path)


@pytest.fixture
def store(collection, id_factory, clock):
    """Prompt store over an empty temporary collection."""
    return PromptStoreService(collection, id_factory=id_factory, clock=clock)


@pytest.fixture
def mock_client():
    """Generative client with every operation mocked."""
    return AsyncMock(spec=GenerativeClient)


@pytest.fixture
def sample_prompt_data():
    """Sample prompt data for testing."""
    return {
        "title": "Product Description",
        "prompt_text": "Write a [tone] product description for [product].",
        "theme": "Marketing Copy",
        "tags": ["ecommerce", "copywriting"],
        "notes": "Works best with a short product name.",
        "modality": Modality.TEXT,
    }


@pytest.fixture
def make_prompt():
    """Factory for prompts built directly from version texts."""

    def _make(*texts: str, prompt_id: str = "p-1", current: int = None, **fields) -> Prompt:
        texts = texts or ("Hello world",)
        versions = [
            PromptVersion(
                version=i,
                prompt_text=text,
                created_at=START + timedelta(hours=i),
            )
            for i, text in enumerate(texts, start=1)
        ]
        fields.setdefault("title", "Sample")
        return Prompt(
            id=prompt_id,
            versions=versions,
            current_version=current or len(versions),
            created_at=START,
            **fields,
        )

    return _make
