"""
PromptShelf Schemas

Pydantic models for store operations and collaborator payloads.
"""

from promptshelf.schemas.generation import (
    CategorySuggestion,
    EnhanceMode,
    MediaKind,
    SearchCandidate,
)
from promptshelf.schemas.prompt import (
    PromptCreate,
    PromptMetadata,
    PromptQuery,
    PromptUpdate,
)

__all__ = [
    "CategorySuggestion",
    "EnhanceMode",
    "MediaKind",
    "SearchCandidate",
    "PromptCreate",
    "PromptMetadata",
    "PromptQuery",
    "PromptUpdate",
]
