"""
Prompt Assistant

AI helpers for authoring prompts: theme/tag suggestions and rewrites.
"""

from typing import List

import structlog

from promptshelf.integrations.base import GenerativeClient
from promptshelf.models.prompt import Prompt, active_text, unique_tags
from promptshelf.schemas.generation import CategorySuggestion, EnhanceMode
from promptshelf.schemas.prompt import PromptUpdate
from promptshelf.services.prompt_store import PromptStoreService

logger = structlog.get_logger()


class PromptAssistant:
    """Service wrapping the categorization and enhancement collaborators."""

    def __init__(self, store: PromptStoreService, client: GenerativeClient):
        self.store = store
        self.client = client

    async def categorize(self, prompt_id: str, apply: bool = False) -> CategorySuggestion:
        """Suggest a theme and tags for the active text.

        With apply=True the theme replaces the current one and the tags are
        merged after the existing tags. Text is untouched, so no version is
        created.

        Raises:
            CategorizationError: If the client call fails
        """
        text = active_text(self.store.get(prompt_id))
        suggestion = await self.client.suggest_categorization(text)

        if apply:
            prompt = self.store.get(prompt_id)
            self.store.update(
                prompt_id,
                PromptUpdate(
                    theme=suggestion.theme or prompt.theme,
                    tags=unique_tags([*prompt.tags, *suggestion.tags]),
                ),
            )
            logger.info("Categorization applied", prompt_id=prompt_id, theme=suggestion.theme)

        return suggestion

    async def enhance(self, prompt_id: str, mode: EnhanceMode = EnhanceMode.IMPROVE) -> List[str]:
        """Ask for rewrites of the active text.

        Raises:
            EnhancementError: If the client call fails
        """
        text = active_text(self.store.get(prompt_id))
        suggestions = await self.client.enhance_prompt(text, mode)
        logger.debug("Enhancement suggestions", prompt_id=prompt_id, mode=mode.value, count=len(suggestions))
        return suggestions

    def apply(self, prompt_id: str, suggestion: str) -> Prompt:
        """Save a chosen suggestion as a new version."""
        return self.store.apply_enhancement(prompt_id, suggestion)
