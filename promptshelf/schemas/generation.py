"""
Generation Schemas

Payloads exchanged with the generative-model collaborators.
"""

import enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MAX_SUGGESTED_TAGS = 3
SNIPPET_LENGTH = 200


class MediaKind(str, enum.Enum):
    """Media types produced by generate_media."""

    IMAGE = "Image"
    VIDEO = "Video"


class EnhanceMode(str, enum.Enum):
    """Kinds of enhancement suggestions."""

    IMPROVE = "improve"
    VARIATIONS = "variations"


class CategorySuggestion(BaseModel):
    """Theme and tags suggested for a prompt."""

    theme: str = ""
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def limit_tags(cls, v: list[str]) -> list[str]:
        return [t.strip() for t in v if t and t.strip()][:MAX_SUGGESTED_TAGS]


class SearchCandidate(BaseModel):
    """Prompt summary handed to the relevance ranker."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    theme: str = ""
    tags: list[str] = Field(default_factory=list)
    text_snippet: str = ""
