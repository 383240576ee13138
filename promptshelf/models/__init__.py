"""
PromptShelf Data Models

Immutable pydantic records for prompts, versions and test history.
"""

from promptshelf.models.prompt import (
    MAX_SCORE,
    MIN_SCORE,
    Evaluation,
    Modality,
    Prompt,
    PromptVersion,
    TestResult,
    active_text,
    unique_tags,
)

__all__ = [
    "MAX_SCORE",
    "MIN_SCORE",
    "Evaluation",
    "Modality",
    "Prompt",
    "PromptVersion",
    "TestResult",
    "active_text",
    "unique_tags",
]
