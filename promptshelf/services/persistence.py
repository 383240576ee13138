"""
Collection Persistence

JSON file storage for the prompt collection, including the decode step
that upgrades legacy single-text records to the versioned shape.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Tuple

import pydantic
import structlog
from pydantic import ConfigDict, Field

from promptshelf.exceptions import StorageError, ValidationError
from promptshelf.models.prompt import Modality, Prompt, PromptVersion, ShelfModel

logger = structlog.get_logger()


class LegacyPromptRecord(ShelfModel):
    """Pre-versioning record holding its text in a single promptText field."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    title: str = ""
    prompt_text: str
    modality: Modality = Modality.TEXT
    theme: Optional[str] = ""
    tags: Optional[List[str]] = None
    notes: Optional[str] = ""
    created_at: Optional[datetime] = None

    def to_prompt(self, now: datetime) -> Prompt:
        created_at = self.created_at or now
        return Prompt(
            id=self.id,
            title=self.title,
            theme=self.theme,
            tags=self.tags,
            notes=self.notes,
            modality=self.modality,
            versions=[
                PromptVersion(
                    version=1,
                    prompt_text=self.prompt_text,
                    created_at=created_at,
                )
            ],
            current_version=1,
            created_at=created_at,
        )


def decode_record(record: Any, now: datetime) -> Tuple[Prompt, bool]:
    """Decode one stored record.

    The versioned shape is tried first; on failure the legacy shape is
    tried and converted. Returns the prompt and whether it was migrated.
    """
    try:
        return Prompt.model_validate(record), False
    except pydantic.ValidationError as modern_error:
        if not isinstance(record, dict) or "versions" in record:
            raise modern_error
        try:
            legacy = LegacyPromptRecord.model_validate(record)
        except pydantic.ValidationError:
            raise modern_error
    return legacy.to_prompt(now), True


def decode_collection(data: Any, now: datetime) -> Tuple[List[Prompt], int]:
    """Decode a stored collection. Returns prompts and the migrated count."""
    if not isinstance(data, list):
        raise ValidationError("Stored collection must be a JSON array of prompts.")

    prompts = []
    migrated = 0
    for index, record in enumerate(data):
        try:
            prompt, was_legacy = decode_record(record, now)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid prompt record at index {index}: {e}") from e
        prompts.append(prompt)
        migrated += int(was_legacy)
    return prompts, migrated


def encode_collection(prompts: Sequence[Prompt]) -> str:
    """Serialize the collection as pretty-printed JSON."""
    return json.dumps([p.to_record() for p in prompts], indent=2, ensure_ascii=False)


class CollectionStore:
    """Reads and writes the collection file.

    Writes go to a temporary sibling file which then replaces the target,
    so a crash never leaves a half-written collection behind.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self, clock: Callable[[], datetime]) -> Tuple[List[Prompt], int]:
        """Load and decode the collection. A missing file is an empty one."""
        if not self.path.exists():
            return [], 0

        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Could not read {self.path}: {e}") from e
        except UnicodeDecodeError as e:
            raise StorageError(f"Collection file {self.path} is not UTF-8 encoded: {e}") from e

        if not raw.strip():
            return [], 0

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(f"Collection file {self.path} is not valid JSON: {e}") from e

        prompts, migrated = decode_collection(data, clock())
        if migrated:
            logger.info("Migrated legacy prompt records", count=migrated, path=str(self.path))
        logger.debug("Collection loaded", count=len(prompts), path=str(self.path))
        return prompts, migrated

    def save(self, prompts: Sequence[Prompt]) -> None:
        """Write the whole collection, replacing the previous file."""
        payload = encode_collection(prompts)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Could not write {self.path}: {e}") from e
        logger.debug("Collection saved", count=len(prompts), path=str(self.path))
