"""
Prompt Store Service

Owns the in-memory collection and keeps the collection file in step with it.
"""

import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Sequence

import structlog

from promptshelf.exceptions import PromptNotFoundError, ValidationError
from promptshelf.integrations.base import GenerativeClient
from promptshelf.models.prompt import Evaluation, Prompt, PromptVersion, TestResult, active_text
from promptshelf.schemas.generation import SNIPPET_LENGTH, SearchCandidate
from promptshelf.schemas.prompt import PromptCreate, PromptMetadata, PromptQuery, PromptUpdate
from promptshelf.services import test_history
from promptshelf.services.persistence import CollectionStore, decode_record
from promptshelf.services.seed import DEMO_PROMPTS
from promptshelf.services.version_ledger import VersionLedger

logger = structlog.get_logger()


def default_id_factory() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _require_content(title: str, prompt_text: str) -> None:
    if not title.strip() or not prompt_text.strip():
        raise ValidationError("Title and prompt text are required.")


def _matches_keyword(prompt: Prompt, keyword: str) -> bool:
    needle = keyword.lower()
    return (
        needle in prompt.title.lower()
        or needle in active_text(prompt).lower()
        or needle in prompt.theme.lower()
        or any(needle in tag.lower() for tag in prompt.tags)
    )


def _created_key(prompt: Prompt) -> datetime:
    # Imported rows may carry naive timestamps; treat them as UTC.
    created = prompt.created_at
    return created if created.tzinfo else created.replace(tzinfo=timezone.utc)


def _sort_prompts(prompts: Iterable[Prompt], sort: str) -> List[Prompt]:
    field, order = sort.split("-")
    reverse = order == "desc"
    if field == "title":
        return sorted(prompts, key=lambda p: p.title.casefold(), reverse=reverse)
    return sorted(prompts, key=_created_key, reverse=reverse)


class PromptStoreService:
    """
    Service for prompt CRUD, history and query operations.

    Every operation replaces whole Prompt records by id and saves the
    collection before returning. Callers that await a collaborator must
    re-read the prompt from the store afterwards instead of reusing a copy.
    """

    def __init__(
        self,
        collection: CollectionStore,
        id_factory: Callable[[], str] = default_id_factory,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.collection = collection
        self.id_factory = id_factory
        self.clock = clock

        self._prompts, migrated = collection.load(clock)
        if migrated:
            self._commit(self._prompts)

    @property
    def prompts(self) -> tuple[Prompt, ...]:
        """Snapshot of the collection in stored order."""
        return tuple(self._prompts)

    def existing_ids(self) -> set[str]:
        return {p.id for p in self._prompts}

    def _commit(self, prompts: List[Prompt]) -> None:
        """Save a new collection, then adopt it. A failed save changes nothing."""
        self.collection.save(prompts)
        self._prompts = prompts

    def _index(self, prompt_id: str) -> int:
        for i, prompt in enumerate(self._prompts):
            if prompt.id == prompt_id:
                return i
        raise PromptNotFoundError(prompt_id)

    def _replace(self, prompt: Prompt) -> Prompt:
        prompts = list(self._prompts)
        prompts[self._index(prompt.id)] = prompt
        self._commit(prompts)
        return prompt

    # =========================================================================
    # CRUD
    # =========================================================================

    def create(self, data: PromptCreate) -> Prompt:
        """Create a prompt with a single active version 1."""
        _require_content(data.title, data.prompt_text)

        now = self.clock()
        prompt = Prompt(
            id=self.id_factory(),
            title=data.title,
            theme=data.theme,
            tags=data.tags,
            notes=data.notes,
            modality=data.modality,
            versions=[PromptVersion(version=1, prompt_text=data.prompt_text, created_at=now)],
            current_version=1,
            created_at=now,
        )

        self._commit([prompt, *self._prompts])

        logger.info("Prompt created", prompt_id=prompt.id, modality=prompt.modality.value)
        return prompt

    def get(self, prompt_id: str) -> Prompt:
        """Get a prompt by ID."""
        return self._prompts[self._index(prompt_id)]

    def update(self, prompt_id: str, data: PromptUpdate) -> Prompt:
        """Save an edit.

        Fields left unset keep their current value. Changed text becomes a
        new active version; otherwise only metadata is replaced.
        """
        prompt = self.get(prompt_id)
        changes = data.model_dump(exclude_none=True)

        new_text = changes.pop("prompt_text", active_text(prompt))
        metadata = PromptMetadata(
            title=changes.get("title", prompt.title),
            theme=changes.get("theme", prompt.theme),
            tags=changes.get("tags", prompt.tags),
            notes=changes.get("notes", prompt.notes),
            modality=changes.get("modality", prompt.modality),
        )
        _require_content(metadata.title, new_text)

        updated = VersionLedger.apply_edit(prompt, new_text, metadata, self.clock())
        logger.debug(
            "Prompt updated",
            prompt_id=prompt_id,
            current_version=updated.current_version,
        )
        return self._replace(updated)

    def delete(self, prompt_id: str) -> bool:
        """Delete a prompt and its whole history."""
        try:
            index = self._index(prompt_id)
        except PromptNotFoundError:
            return False

        self._commit(self._prompts[:index] + self._prompts[index + 1:])

        logger.info("Prompt deleted", prompt_id=prompt_id)
        return True

    def set_active_version(self, prompt_id: str, version: int) -> Prompt:
        """Roll back (or forward) to an existing version."""
        updated = VersionLedger.set_active_version(self.get(prompt_id), version)
        logger.info("Active version changed", prompt_id=prompt_id, version=version)
        return self._replace(updated)

    def apply_enhancement(self, prompt_id: str, text: str) -> Prompt:
        """Save an enhancement suggestion as the prompt's new text."""
        return self.update(prompt_id, PromptUpdate(prompt_text=text))

    # =========================================================================
    # Test history
    # =========================================================================

    def record_test_run(
        self,
        prompt_id: str,
        output: str,
        version: Optional[int] = None,
    ) -> TestResult:
        """Record a successful run on a version (the active one by default)."""
        prompt = self.get(prompt_id)
        number = prompt.current_version if version is None else version
        result_id = self.id_factory()

        updated = test_history.record_test_run(
            prompt,
            output,
            result_id=result_id,
            now=self.clock(),
            version=number,
        )
        self._replace(updated)
        return updated.get_version(number).get_test_result(result_id)

    def attach_evaluation(
        self,
        prompt_id: str,
        test_result_id: str,
        evaluation: Evaluation,
        version: Optional[int] = None,
    ) -> Prompt:
        updated = test_history.attach_evaluation(
            self.get(prompt_id),
            test_result_id,
            evaluation,
            version=version,
        )
        logger.info(
            "Evaluation attached",
            prompt_id=prompt_id,
            test_result_id=test_result_id,
            score=evaluation.score,
        )
        return self._replace(updated)

    # =========================================================================
    # Queries
    # =========================================================================

    def _filtered(self, query: PromptQuery) -> List[Prompt]:
        return [
            p for p in self._prompts
            if (query.modality is None or p.modality == query.modality)
            and (not query.theme or p.theme == query.theme)
        ]

    def list(self, query: Optional[PromptQuery] = None) -> List[Prompt]:
        """List prompts with filtering, keyword search and ordering."""
        query = query or PromptQuery()
        prompts = self._filtered(query)

        if query.search and query.search.strip():
            prompts = [p for p in prompts if _matches_keyword(p, query.search.strip())]

        return _sort_prompts(prompts, query.sort)

    def top_themes(self, limit: int = 5) -> List[str]:
        """Most frequent non-empty themes."""
        counts = Counter(p.theme for p in self._prompts if p.theme)
        return [theme for theme, _ in counts.most_common(limit)]

    async def semantic_search(
        self,
        search: str,
        client: GenerativeClient,
        query: Optional[PromptQuery] = None,
    ) -> List[Prompt]:
        """Rank the filtered prompts by relevance to a free-text query.

        Returns prompts in the order the client ranked them, ignoring ids
        it invents. A blank query returns the filtered list unchanged.

        Raises:
            SearchError: If the ranking call fails
        """
        query = query or PromptQuery()
        prompts = self._filtered(query)
        if not search.strip():
            return _sort_prompts(prompts, query.sort)

        candidates = [
            SearchCandidate(
                id=p.id,
                title=p.title,
                theme=p.theme,
                tags=p.tags,
                text_snippet=active_text(p)[:SNIPPET_LENGTH],
            )
            for p in prompts
        ]
        ranked_ids = await client.rank_by_relevance(candidates, search)

        by_id = {p.id: p for p in prompts}
        seen = set()
        results = []
        for prompt_id in ranked_ids:
            if prompt_id in by_id and prompt_id not in seen:
                seen.add(prompt_id)
                results.append(by_id[prompt_id])

        logger.info("Semantic search completed", query=search, candidates=len(candidates), results=len(results))
        return results

    # =========================================================================
    # Bulk
    # =========================================================================

    def add_imported(self, prompts: Sequence[Prompt]) -> int:
        """Append imported prompts. Ids already in the collection are skipped."""
        existing = self.existing_ids()
        added = [p for p in prompts if p.id not in existing]
        if added:
            self._commit([*self._prompts, *added])
        logger.info("Prompts imported", count=len(added), skipped=len(prompts) - len(added))
        return len(added)

    def seed_demo(self) -> int:
        """Load the demo prompts into an empty collection."""
        if self._prompts:
            logger.debug("Collection not empty, skipping demo seed", count=len(self._prompts))
            return 0

        now = self.clock()
        self._commit([decode_record(record, now)[0] for record in DEMO_PROMPTS])

        logger.info("Demo prompts loaded", count=len(self._prompts))
        return len(self._prompts)
