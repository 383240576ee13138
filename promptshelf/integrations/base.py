"""
Generative Client Interface

Operations the core consumes from a generative-model service.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from promptshelf.models.prompt import Evaluation
from promptshelf.schemas.generation import (
    CategorySuggestion,
    EnhanceMode,
    MediaKind,
    SearchCandidate,
)


class GenerativeClient(ABC):
    """Asynchronous generative-model collaborator."""

    @abstractmethod
    async def run_completion(self, prompt_text: str) -> str:
        """Run a text prompt. Raises ExecutionError."""

    @abstractmethod
    async def generate_media(self, prompt_text: str, kind: MediaKind) -> str:
        """Generate an image or video and return its locator.

        Raises ExecutionError, or InvalidCredentialError when the API key
        is rejected.
        """

    @abstractmethod
    async def evaluate_output(self, prompt_text: str, output: str) -> Evaluation:
        """Score an output against its prompt. Raises EvaluationError."""

    @abstractmethod
    async def suggest_categorization(self, prompt_text: str) -> CategorySuggestion:
        """Suggest a theme and tags. Raises CategorizationError."""

    @abstractmethod
    async def rank_by_relevance(
        self,
        candidates: Sequence[SearchCandidate],
        query: str,
    ) -> List[str]:
        """Return candidate ids ordered by relevance. Raises SearchError."""

    @abstractmethod
    async def enhance_prompt(self, prompt_text: str, mode: EnhanceMode) -> List[str]:
        """Suggest rewrites of a prompt. Raises EnhancementError."""

    async def aclose(self) -> None:
        """Release transport resources."""
