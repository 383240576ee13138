"""
Import/Export Service

CSV import, JSON export and shareable Markdown cards for prompts.
"""

import csv
import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pydantic
import structlog
import yaml

from promptshelf.exceptions import StorageError, ValidationError
from promptshelf.models.prompt import Modality, Prompt, PromptVersion, active_text
from promptshelf.services.persistence import encode_collection
from promptshelf.services.prompt_store import PromptStoreService
from promptshelf.services.test_history import best_test_result

logger = structlog.get_logger()

CSV_HEADER = ["id", "title", "promptText", "modality", "theme", "tags", "notes", "createdAt"]
MODALITY_VALUES = {m.value for m in Modality}


@dataclass
class ImportResult:
    """Outcome of a CSV import."""
    imported: int = 0
    duplicates: int = 0
    malformed: int = 0
    invalid: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return self.duplicates + self.malformed + self.invalid


def _clean(value: str) -> str:
    value = value.strip()
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value


def _is_blank(row: List[str]) -> bool:
    return not any(cell.strip() for cell in row)


class ImportExportService:
    """
    Service for bulk import and export of prompts.

    Supports formats:
    - CSV import (one single-version prompt per row)
    - JSON export (the persisted collection shape)
    - Markdown share card (with YAML frontmatter)
    """

    def __init__(self, store: PromptStoreService):
        self.store = store

    # =========================================================================
    # Export
    # =========================================================================

    def export_json(self) -> str:
        """Export the whole collection as pretty-printed JSON."""
        return encode_collection(self.store.prompts)

    def default_export_name(self) -> str:
        return f"prompts-export-{self.store.clock().date().isoformat()}.json"

    def export_to_file(self, path: Optional[Union[str, Path]] = None) -> Path:
        """
        Write the JSON export to disk.

        Args:
            path: Target file, or a directory to place the default file
                name in. Defaults to the current directory.

        Returns:
            Path written
        """
        target = Path(path) if path else Path.cwd()
        if target.is_dir():
            target = target / self.default_export_name()

        try:
            target.write_text(self.export_json(), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Could not write export to {target}: {e}") from e

        logger.info("Collection exported", path=str(target), count=len(self.store.prompts))
        return target

    def render_share_card(self, prompt: Prompt) -> str:
        """Render a prompt as Markdown with YAML frontmatter.

        The card carries the active text, the notes and the best evaluated
        test result across all versions.
        """
        frontmatter: Dict[str, Any] = {
            "title": prompt.title,
            "modality": prompt.modality.value,
            "theme": prompt.theme,
            "tags": list(prompt.tags),
            "version": prompt.current_version,
            "created_at": prompt.created_at.isoformat(),
        }
        yaml_content = yaml.safe_dump(frontmatter, default_flow_style=False, allow_unicode=True, sort_keys=False)

        sections = [f"---\n{yaml_content}---", f"# {prompt.title}", "## Prompt", active_text(prompt)]
        if prompt.notes:
            sections.extend(["## Notes", prompt.notes])

        best = best_test_result(prompt)
        if best is not None:
            sections.append("## Best Test Result")
            if prompt.modality == Modality.IMAGE:
                sections.append(f"![Generated image]({best.output})")
            elif prompt.modality == Modality.VIDEO:
                sections.append(f"[Generated video]({best.output})")
            else:
                sections.append(best.output)
            sections.append(f"**AI Evaluation: {best.evaluation.score}/10**\n\n> {best.evaluation.feedback}")

        return "\n\n".join(sections) + "\n"

    # =========================================================================
    # Import
    # =========================================================================

    def _parse_rows(self, data: Union[str, bytes]) -> List[List[str]]:
        if isinstance(data, bytes):
            try:
                data = data.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise ValidationError(
                    "Could not read CSV: file is not UTF-8 encoded. Save it as UTF-8 and try again."
                ) from e

        try:
            rows = [row for row in csv.reader(io.StringIO(data)) if not _is_blank(row)]
        except csv.Error as e:
            raise ValidationError(f"Could not parse CSV: {e}") from e

        if len(rows) < 2:
            raise ValidationError("CSV file is empty or has only a header.")

        header = [_clean(h) for h in rows[0]]
        if header != CSV_HEADER:
            raise ValidationError(f"Invalid CSV header. Expected: {','.join(CSV_HEADER)}")
        return rows[1:]

    def parse_csv(self, data: Union[str, bytes]) -> tuple[List[Prompt], ImportResult]:
        """
        Parse CSV rows into new prompts without touching the collection.

        Rows with the wrong field count, an empty id, an id already known
        or an unknown modality are skipped and counted.

        Raises:
            ValidationError: If the file is empty or the header is wrong
        """
        rows = self._parse_rows(data)
        result = ImportResult()
        seen = self.store.existing_ids()
        prompts: List[Prompt] = []
        now = self.store.clock()

        for line_no, raw in enumerate(rows, start=2):
            if len(raw) != len(CSV_HEADER):
                result.malformed += 1
                result.errors.append(f"Row {line_no}: expected {len(CSV_HEADER)} fields, got {len(raw)}")
                continue

            row = dict(zip(CSV_HEADER, (_clean(v) for v in raw)))

            if not row["id"]:
                result.invalid += 1
                result.errors.append(f"Row {line_no}: missing id")
                continue
            if row["id"] in seen:
                result.duplicates += 1
                continue
            if row["modality"] not in MODALITY_VALUES:
                result.invalid += 1
                result.errors.append(f"Row {line_no}: invalid modality {row['modality']!r}")
                continue

            created_at = row["createdAt"] or now
            try:
                prompt = Prompt(
                    id=row["id"],
                    title=row["title"],
                    theme=row["theme"],
                    tags=[t.strip() for t in row["tags"].split(",")] if row["tags"] else [],
                    notes=row["notes"],
                    modality=Modality(row["modality"]),
                    versions=[
                        PromptVersion(version=1, prompt_text=row["promptText"], created_at=created_at)
                    ],
                    current_version=1,
                    created_at=created_at,
                )
            except pydantic.ValidationError as e:
                result.invalid += 1
                result.errors.append(f"Row {line_no}: {e.errors()[0]['msg']}")
                continue

            seen.add(prompt.id)
            prompts.append(prompt)

        return prompts, result

    def import_csv(self, data: Union[str, bytes]) -> ImportResult:
        """Import CSV rows as new prompts appended to the collection."""
        prompts, result = self.parse_csv(data)
        result.imported = self.store.add_imported(prompts)

        for error in result.errors:
            logger.warning("Import row skipped", error=error)
        logger.info(
            "CSV import finished",
            imported=result.imported,
            duplicates=result.duplicates,
            malformed=result.malformed,
            invalid=result.invalid,
        )
        return result
