"""
Prompt Schemas

Pydantic models for prompt create/edit/query operations.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from promptshelf.models.prompt import Modality, unique_tags

SortOrder = Literal["createdAt-desc", "createdAt-asc", "title-asc", "title-desc"]


class PromptMetadata(BaseModel):
    """Non-versioned prompt fields replaced on every save."""

    title: str
    theme: str = ""
    tags: list[str] = Field(default_factory=list)
    notes: str = ""
    modality: Modality = Modality.TEXT

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: list[str]) -> list[str]:
        return unique_tags([t.strip() for t in v])


class PromptCreate(PromptMetadata):
    """Schema for creating a prompt."""

    prompt_text: str


class PromptUpdate(BaseModel):
    """Schema for editing a prompt. Fields left as None keep their current value."""

    title: Optional[str] = None
    prompt_text: Optional[str] = None
    theme: Optional[str] = None
    tags: Optional[list[str]] = None
    notes: Optional[str] = None
    modality: Optional[Modality] = None


class PromptQuery(BaseModel):
    """Schema for prompt list filtering and ordering."""

    modality: Optional[Modality] = None
    theme: Optional[str] = None
    search: Optional[str] = None
    sort: SortOrder = "createdAt-desc"
