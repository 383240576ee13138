"""
Unit Tests for Prompt Assistant

Tests for AI categorization and enhancement helpers.
"""

import pytest

from promptshelf.exceptions import CategorizationError, EnhancementError
from promptshelf.models.prompt import active_text
from promptshelf.schemas.generation import CategorySuggestion, EnhanceMode
from promptshelf.schemas.prompt import PromptCreate
from promptshelf.services.assistant import PromptAssistant


@pytest.fixture
def assistant(store, mock_client):
    return PromptAssistant(store, mock_client)


@pytest.fixture
def prompt(store):
    return store.create(
        PromptCreate(title="Ship", prompt_text="A spaceship in a nebula", theme="Old", tags=["space"])
    )


class TestCategorize:
    """Tests for categorize."""

    @pytest.mark.asyncio
    async def test_suggestion_only(self, assistant, store, mock_client, prompt):
        """Without apply the prompt is untouched."""
        mock_client.suggest_categorization.return_value = CategorySuggestion(
            theme="Concept Art", tags=["sci-fi", "nebula"]
        )

        suggestion = await assistant.categorize(prompt.id)

        mock_client.suggest_categorization.assert_awaited_once_with("A spaceship in a nebula")
        assert suggestion.theme == "Concept Art"
        assert store.get(prompt.id).theme == "Old"

    @pytest.mark.asyncio
    async def test_apply_merges_tags(self, assistant, store, mock_client, prompt):
        """Applying sets the theme and merges tags without a new version."""
        mock_client.suggest_categorization.return_value = CategorySuggestion(
            theme="Concept Art", tags=["space", "sci-fi"]
        )

        await assistant.categorize(prompt.id, apply=True)

        updated = store.get(prompt.id)
        assert updated.theme == "Concept Art"
        assert updated.tags == ["space", "sci-fi"]
        assert updated.current_version == 1

    @pytest.mark.asyncio
    async def test_failure_propagates(self, assistant, store, mock_client, prompt):
        """Categorization failures leave the prompt unchanged."""
        mock_client.suggest_categorization.side_effect = CategorizationError("Failed")

        with pytest.raises(CategorizationError):
            await assistant.categorize(prompt.id, apply=True)

        assert store.get(prompt.id) == prompt


def test_suggestion_tags_limited_to_three():
    """At most three trimmed tags are kept."""
    suggestion = CategorySuggestion(theme="T", tags=[" a ", "", "b", "c", "d"])

    assert suggestion.tags == ["a", "b", "c"]


class TestEnhance:
    """Tests for enhance."""

    @pytest.mark.asyncio
    async def test_enhance_returns_suggestions(self, assistant, mock_client, prompt):
        """Suggestions are passed through."""
        mock_client.enhance_prompt.return_value = ["Better one", "Better two"]

        suggestions = await assistant.enhance(prompt.id, EnhanceMode.VARIATIONS)

        mock_client.enhance_prompt.assert_awaited_once_with(
            "A spaceship in a nebula", EnhanceMode.VARIATIONS
        )
        assert suggestions == ["Better one", "Better two"]

    @pytest.mark.asyncio
    async def test_enhance_failure(self, assistant, mock_client, prompt):
        mock_client.enhance_prompt.side_effect = EnhancementError("Failed to get suggestions.")

        with pytest.raises(EnhancementError):
            await assistant.enhance(prompt.id)

    def test_apply_creates_version(self, assistant, store, prompt):
        """An applied suggestion becomes the active version."""
        updated = assistant.apply(prompt.id, "A sleek spaceship drifting through a violet nebula")

        assert updated.current_version == 2
        assert active_text(updated) == "A sleek spaceship drifting through a violet nebula"
