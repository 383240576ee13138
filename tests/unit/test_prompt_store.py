"""
Tests for Prompt Store Service

Unit tests for prompt CRUD, queries and persistence.
"""

import json
from unittest.mock import MagicMock

import pytest

from promptshelf.exceptions import (
    InvalidVersionError,
    PromptNotFoundError,
    SearchError,
    StorageError,
    ValidationError,
)
from promptshelf.models.prompt import Evaluation, Modality, active_text
from promptshelf.schemas.prompt import PromptCreate, PromptQuery, PromptUpdate
from promptshelf.services.prompt_store import PromptStoreService


def create(store, title="Prompt", text="Some text", **fields):
    return store.create(PromptCreate(title=title, prompt_text=text, **fields))


def test_create_prompt(store, sample_prompt_data):
    """Test creating a new prompt."""
    prompt = store.create(PromptCreate(**sample_prompt_data))

    assert prompt.id == "id-1"
    assert prompt.title == sample_prompt_data["title"]
    assert prompt.current_version == 1
    assert len(prompt.versions) == 1
    assert prompt.versions[0].prompt_text == sample_prompt_data["prompt_text"]
    assert prompt.versions[0].created_at == prompt.created_at
    assert prompt.tags == ["ecommerce", "copywriting"]


def test_create_prepends(store):
    """New prompts go to the front of the collection."""
    create(store, title="First")
    create(store, title="Second")

    assert [p.title for p in store.prompts] == ["Second", "First"]


@pytest.mark.parametrize("title, text", [("", "text"), ("Title", "   "), ("  ", "")])
def test_create_requires_title_and_text(store, title, text):
    """Blank title or text is rejected."""
    with pytest.raises(ValidationError) as exc_info:
        create(store, title=title, text=text)

    assert exc_info.value.message == "Title and prompt text are required."
    assert store.prompts == ()


def test_create_persists(store, collection_path):
    """Every change is written to the collection file."""
    create(store, title="Saved")

    data = json.loads(collection_path.read_text())
    assert data[0]["title"] == "Saved"
    assert data[0]["versions"][0]["promptText"] == "Some text"


def test_get_prompt(store):
    """Test getting a prompt by ID."""
    created = create(store)

    assert store.get(created.id) == created


def test_get_nonexistent_prompt(store):
    """Test getting a nonexistent prompt."""
    with pytest.raises(PromptNotFoundError):
        store.get("missing")


class TestUpdate:
    """Tests for update."""

    def test_update_metadata_only(self, store):
        """Test updating a prompt without changing text."""
        created = create(store)

        updated = store.update(created.id, PromptUpdate(title="Updated Name"))

        assert updated.title == "Updated Name"
        assert updated.current_version == 1
        assert len(updated.versions) == 1

    def test_update_text_creates_version(self, store):
        """Test that updating text creates a new version."""
        created = create(store, text="A")

        updated = store.update(created.id, PromptUpdate(prompt_text="B"))

        assert updated.current_version == 2
        assert updated.get_version(1).prompt_text == "A"
        assert active_text(updated) == "B"

    def test_update_keeps_unset_fields(self, store):
        """Fields left as None keep their values."""
        created = create(store, theme="Marketing", tags=["a"], notes="n", modality=Modality.CODE)

        updated = store.update(created.id, PromptUpdate(title="New"))

        assert updated.theme == "Marketing"
        assert updated.tags == ["a"]
        assert updated.notes == "n"
        assert updated.modality == Modality.CODE

    def test_update_replaces_tags(self, store):
        """Given tags replace the existing ones."""
        created = create(store, tags=["a", "b"])

        updated = store.update(created.id, PromptUpdate(tags=["c", "c"]))

        assert updated.tags == ["c"]

    def test_update_rejects_blank_text(self, store):
        """Clearing the text is rejected."""
        created = create(store)

        with pytest.raises(ValidationError):
            store.update(created.id, PromptUpdate(prompt_text="  "))

        assert store.get(created.id) == created

    def test_update_missing_prompt(self, store):
        """Updating an unknown id raises."""
        with pytest.raises(PromptNotFoundError):
            store.update("missing", PromptUpdate(title="x"))

    def test_update_keeps_position(self, store):
        """Edited prompts keep their place in the collection."""
        first = create(store, title="First")
        create(store, title="Second")

        store.update(first.id, PromptUpdate(prompt_text="changed"))

        assert [p.title for p in store.prompts] == ["Second", "First"]


def test_delete_prompt(store):
    """Test deleting a prompt."""
    created = create(store)

    assert store.delete(created.id) is True
    with pytest.raises(PromptNotFoundError):
        store.get(created.id)


def test_delete_nonexistent_prompt(store):
    """Test deleting a nonexistent prompt."""
    assert store.delete("missing") is False


class TestFailedSave:
    """A save that fails leaves the in-memory collection untouched."""

    @pytest.fixture
    def failing(self, store):
        kept = create(store, title="Kept", text="A")
        store.collection.save = MagicMock(side_effect=StorageError("disk full"))
        return store, kept

    def test_create(self, failing):
        store, kept = failing

        with pytest.raises(StorageError):
            create(store, title="Lost")

        assert store.prompts == (kept,)

    def test_update(self, failing):
        store, kept = failing

        with pytest.raises(StorageError):
            store.update(kept.id, PromptUpdate(prompt_text="B"))

        assert store.get(kept.id) == kept

    def test_delete(self, failing):
        store, kept = failing

        with pytest.raises(StorageError):
            store.delete(kept.id)

        assert store.prompts == (kept,)


def test_set_active_version(store):
    """Switching versions persists the pointer only."""
    created = create(store, text="A")
    store.update(created.id, PromptUpdate(prompt_text="B"))

    rolled_back = store.set_active_version(created.id, 1)

    assert rolled_back.current_version == 1
    assert len(rolled_back.versions) == 2
    with pytest.raises(InvalidVersionError):
        store.set_active_version(created.id, 5)


def test_record_test_run_and_evaluation(store):
    """Runs and evaluations go through the store and persist."""
    created = create(store)

    result = store.record_test_run(created.id, "model output")
    updated = store.attach_evaluation(created.id, result.id, Evaluation(score=12, feedback="Great"))

    assert result.output == "model output"
    assert updated.active_version.test_results[0].evaluation.score == 10


def test_apply_enhancement(store):
    """An accepted suggestion becomes a new version."""
    created = create(store, text="Draw a cat")

    updated = store.apply_enhancement(created.id, "Draw a fluffy orange cat in watercolor")

    assert updated.current_version == 2
    assert active_text(updated) == "Draw a fluffy orange cat in watercolor"


class TestList:
    """Tests for filtering and ordering."""

    @pytest.fixture
    def populated(self, store):
        create(store, title="Banana bread", text="Bake [item]", theme="Cooking", tags=["baking"])
        create(store, title="apple logo", text="Minimal logo", theme="Design", modality=Modality.IMAGE)
        create(store, title="Cleanup script", text="Write python", theme="Code", tags=["Python"], modality=Modality.CODE)
        return store

    def test_default_newest_first(self, populated):
        """Default order is newest first."""
        titles = [p.title for p in populated.list()]

        assert titles == ["Cleanup script", "apple logo", "Banana bread"]

    def test_oldest_first(self, populated):
        titles = [p.title for p in populated.list(PromptQuery(sort="createdAt-asc"))]

        assert titles == ["Banana bread", "apple logo", "Cleanup script"]

    def test_title_sort_is_case_insensitive(self, populated):
        """Title ordering ignores case."""
        titles = [p.title for p in populated.list(PromptQuery(sort="title-asc"))]

        assert titles == ["apple logo", "Banana bread", "Cleanup script"]

    def test_title_desc(self, populated):
        titles = [p.title for p in populated.list(PromptQuery(sort="title-desc"))]

        assert titles == ["Cleanup script", "Banana bread", "apple logo"]

    def test_filter_by_modality(self, populated):
        """Test listing prompts with a modality filter."""
        prompts = populated.list(PromptQuery(modality=Modality.IMAGE))

        assert [p.title for p in prompts] == ["apple logo"]

    def test_filter_by_theme(self, populated):
        prompts = populated.list(PromptQuery(theme="Cooking"))

        assert [p.title for p in prompts] == ["Banana bread"]

    @pytest.mark.parametrize(
        "keyword, expected",
        [
            ("BANANA", ["Banana bread"]),  # title
            ("minimal", ["apple logo"]),  # active text
            ("design", ["apple logo"]),  # theme
            ("python", ["Cleanup script"]),  # tag and text
            ("bak", ["Banana bread"]),  # tag substring and text
            ("nothing-matches", []),
        ],
    )
    def test_keyword_search(self, populated, keyword, expected):
        """Keyword search covers title, active text, theme and tags."""
        prompts = populated.list(PromptQuery(search=keyword))

        assert [p.title for p in prompts] == expected

    def test_keyword_search_uses_active_text(self, store):
        """Only the active version's text is searched."""
        created = create(store, text="old wording")
        store.update(created.id, PromptUpdate(prompt_text="new wording"))

        assert store.list(PromptQuery(search="old")) == []
        assert len(store.list(PromptQuery(search="new"))) == 1


def test_top_themes(store):
    """Most frequent themes first, blanks ignored, at most five."""
    for theme in ["A", "B", "B", "C", "C", "C", "", "D", "E", "F"]:
        create(store, theme=theme)

    themes = store.top_themes()

    assert themes[:2] == ["C", "B"]
    assert set(themes[2:]) <= {"A", "D", "E", "F"}
    assert len(themes) == 5
    assert "" not in themes


class TestSemanticSearch:
    """Tests for semantic_search."""

    @pytest.mark.asyncio
    async def test_returns_prompts_in_ranked_order(self, store, mock_client):
        """Results follow the client's order and skip unknown ids."""
        a = create(store, title="A", text="x" * 300)
        b = create(store, title="B")
        mock_client.rank_by_relevance.return_value = [b.id, "ghost", a.id]

        results = await store.semantic_search("find things", mock_client)

        assert [p.id for p in results] == [b.id, a.id]
        candidates, query = mock_client.rank_by_relevance.call_args.args
        assert query == "find things"
        snippet = next(c for c in candidates if c.id == a.id).text_snippet
        assert snippet == "x" * 200

    @pytest.mark.asyncio
    async def test_candidates_are_filtered(self, store, mock_client):
        """Only prompts passing the filters are sent for ranking."""
        create(store, title="Text one")
        image = create(store, title="Image one", modality=Modality.IMAGE)
        mock_client.rank_by_relevance.return_value = [image.id]

        await store.semantic_search("pictures", mock_client, PromptQuery(modality=Modality.IMAGE))

        candidates = mock_client.rank_by_relevance.call_args.args[0]
        assert [c.id for c in candidates] == [image.id]

    @pytest.mark.asyncio
    async def test_blank_query_skips_client(self, store, mock_client):
        """A blank query returns the filtered list without a call."""
        create(store, title="One")
        create(store, title="Two")

        results = await store.semantic_search("   ", mock_client)

        assert [p.title for p in results] == ["Two", "One"]
        mock_client.rank_by_relevance.assert_not_called()

    @pytest.mark.asyncio
    async def test_search_error_propagates(self, store, mock_client):
        """Ranking failures reach the caller."""
        create(store)
        mock_client.rank_by_relevance.side_effect = SearchError("AI search failed.")

        with pytest.raises(SearchError):
            await store.semantic_search("query", mock_client)


class TestSeedAndImport:
    """Tests for bulk operations."""

    def test_seed_demo(self, store):
        """Demo prompts load into an empty collection."""
        assert store.seed_demo() == 5

        modalities = {p.modality for p in store.prompts}
        assert modalities == set(Modality)
        assert all(p.current_version == 1 for p in store.prompts)

    def test_seed_skipped_when_not_empty(self, store):
        """Existing prompts are never replaced by the demo set."""
        create(store)

        assert store.seed_demo() == 0
        assert len(store.prompts) == 1

    def test_add_imported_appends(self, store, make_prompt):
        """Imported prompts go to the end of the collection."""
        create(store, title="Existing")

        added = store.add_imported([make_prompt("Imported", prompt_id="imp-1")])

        assert added == 1
        assert [p.id for p in store.prompts] == ["id-1", "imp-1"]


def test_legacy_collection_migrated_and_saved(collection, collection_path, id_factory, clock):
    """Loading legacy records upgrades them and writes the new shape back."""
    collection_path.write_text(json.dumps([
        {
            "id": "old",
            "title": "Legacy",
            "promptText": "Old text",
            "modality": "Text",
            "theme": "",
            "tags": [],
            "notes": "",
            "createdAt": "2024-01-01T00:00:00Z",
        }
    ]))

    store = PromptStoreService(collection, id_factory=id_factory, clock=clock)

    assert active_text(store.get("old")) == "Old text"
    saved = json.loads(collection_path.read_text())
    assert "promptText" not in saved[0]
    assert saved[0]["versions"][0]["promptText"] == "Old text"
    assert saved[0]["currentVersion"] == 1


def test_reload_sees_saved_state(collection, id_factory, clock):
    """A fresh store reads what the previous one wrote."""
    first = PromptStoreService(collection, id_factory=id_factory, clock=clock)
    created = create(first, text="A")
    first.update(created.id, PromptUpdate(prompt_text="B"))

    second = PromptStoreService(collection, id_factory=id_factory, clock=clock)

    assert second.get(created.id).current_version == 2
