"""
Prompt Model

Versioned prompt records as they are held in memory and persisted.
"""

import enum
import math
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

MIN_SCORE = 1
MAX_SCORE = 10


class Modality(str, enum.Enum):
    """Output medium a prompt targets."""

    TEXT = "Text"
    IMAGE = "Image"
    VIDEO = "Video"
    AUDIO = "Audio"
    CODE = "Code"

    @property
    def is_media(self) -> bool:
        """Image and Video outputs are binary media, not text."""
        return self in (Modality.IMAGE, Modality.VIDEO)


def unique_tags(tags: Optional[list[str]]) -> list[str]:
    """Drop duplicate and blank tags, keeping first-occurrence order."""
    seen = set()
    result = []
    for tag in tags or []:
        if tag and tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


class ShelfModel(BaseModel):
    """Immutable record serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Evaluation(ShelfModel):
    """
    Scored quality judgment attached to a test result.

    Attributes:
        score: Integer score, clamped into 1..10
        feedback: Short explanation of the score
    """

    score: int
    feedback: str = ""

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, v: Any) -> int:
        if isinstance(v, bool):
            raise ValueError("score must be a number")
        try:
            number = float(v)
        except (TypeError, ValueError):
            raise ValueError(f"score must be a number, got {v!r}")
        if math.isnan(number):
            raise ValueError("score must be a number, got nan")
        if math.isinf(number):
            return MAX_SCORE if number > 0 else MIN_SCORE
        value = math.floor(number + 0.5)
        return max(MIN_SCORE, min(MAX_SCORE, int(value)))


class TestResult(ShelfModel):
    """
    One execution of a prompt version.

    Attributes:
        id: Identifier, unique within the owning version
        output: Text output, data URI or media file locator
        created_at: Execution timestamp
        evaluation: Present only once an evaluation succeeded
    """

    __test__ = False  # not a pytest test class

    id: str = Field(..., min_length=1)
    output: str
    created_at: datetime
    evaluation: Optional[Evaluation] = None


class PromptVersion(ShelfModel):
    """
    Immutable snapshot of prompt text with its own test history.

    Attributes:
        version: Positive version number, unique within the prompt
        prompt_text: Text as submitted, never rewritten
        created_at: Creation timestamp
        test_results: Test runs, most recent first
    """

    version: int = Field(..., ge=1)
    prompt_text: str
    created_at: datetime
    test_results: list[TestResult] = Field(default_factory=list)

    @field_validator("test_results", mode="before")
    @classmethod
    def default_results(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("test_results")
    @classmethod
    def unique_result_ids(cls, v: list[TestResult]) -> list[TestResult]:
        ids = [r.id for r in v]
        if len(ids) != len(set(ids)):
            raise ValueError("test result ids must be unique within a version")
        return v

    def get_test_result(self, test_result_id: str) -> Optional[TestResult]:
        return next((r for r in self.test_results if r.id == test_result_id), None)


class Prompt(ShelfModel):
    """
    A user-managed prompt with its revision history.

    Attributes:
        id: Opaque identifier, immutable
        title: Display title
        theme: Freeform category
        tags: Ordered, de-duplicated labels
        notes: Freeform notes
        modality: Output medium
        versions: Revisions in creation order, never empty
        current_version: Number of the active revision
        created_at: Creation timestamp, immutable
    """

    id: str = Field(..., min_length=1)
    title: str
    theme: str = ""
    tags: list[str] = Field(default_factory=list)
    notes: str = ""
    modality: Modality = Modality.TEXT
    versions: list[PromptVersion] = Field(..., min_length=1)
    current_version: int
    created_at: datetime

    @field_validator("theme", "notes", mode="before")
    @classmethod
    def default_text(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("tags", mode="before")
    @classmethod
    def dedupe_tags(cls, v: Any) -> Any:
        return unique_tags(v) if isinstance(v, list) or v is None else v

    @model_validator(mode="after")
    def check_versions(self) -> "Prompt":
        numbers = [v.version for v in self.versions]
        if len(numbers) != len(set(numbers)):
            raise ValueError("version numbers must be unique within a prompt")
        if self.current_version not in numbers:
            raise ValueError(
                f"currentVersion {self.current_version} does not match any version"
            )
        return self

    def get_version(self, version: int) -> Optional[PromptVersion]:
        return next((v for v in self.versions if v.version == version), None)

    @property
    def active_version(self) -> Optional[PromptVersion]:
        return self.get_version(self.current_version)

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def __repr__(self) -> str:
        return f"<Prompt(id={self.id!r}, title={self.title!r}, version={self.current_version})>"


def active_text(prompt: Optional[Prompt]) -> str:
    """Text of the active version, or "" when it cannot be resolved."""
    if prompt is None or not prompt.versions:
        return ""
    version = prompt.active_version
    return version.prompt_text if version else ""
