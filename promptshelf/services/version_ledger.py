"""
Version Ledger

Append-only revision history for prompts.

Every operation is a pure transformation: it returns a new Prompt and
never mutates the one passed in. Persisting the result is the caller's job.
"""

import difflib
from datetime import datetime
from typing import Any, Optional

import structlog

from promptshelf.exceptions import InvalidVersionError
from promptshelf.models.prompt import Prompt, PromptVersion, active_text
from promptshelf.schemas.prompt import PromptMetadata

logger = structlog.get_logger()


class VersionLedger:
    """Revision operations on a single prompt."""

    @staticmethod
    def next_version_number(prompt: Prompt) -> int:
        """Next free version number. Numbers are never reused."""
        return max((v.version for v in prompt.versions), default=0) + 1

    @staticmethod
    def get_version(prompt: Prompt, version: int) -> PromptVersion:
        """Get a specific version of a prompt."""
        found = prompt.get_version(version)
        if found is None:
            raise InvalidVersionError(prompt.id, version)
        return found

    @staticmethod
    def replace_version(prompt: Prompt, updated: PromptVersion) -> Prompt:
        """Swap in a new copy of an existing version, keeping order."""
        versions = [
            updated if v.version == updated.version else v
            for v in prompt.versions
        ]
        return prompt.model_copy(update={"versions": versions})

    @classmethod
    def apply_edit(
        cls,
        prompt: Prompt,
        new_text: str,
        metadata: PromptMetadata,
        now: datetime,
    ) -> Prompt:
        """Apply a save to a prompt.

        Metadata is always replaced. A new version is appended and made
        active only when new_text differs from the active text.
        """
        updates: dict[str, Any] = metadata.model_dump()

        if new_text == active_text(prompt):
            return prompt.model_copy(update=updates)

        number = cls.next_version_number(prompt)
        version = PromptVersion(
            version=number,
            prompt_text=new_text,
            created_at=now,
            test_results=[],
        )
        updates["versions"] = [*prompt.versions, version]
        updates["current_version"] = number

        logger.info(
            "Prompt version created",
            prompt_id=prompt.id,
            version=number,
            previous=prompt.current_version,
        )
        return prompt.model_copy(update=updates)

    @classmethod
    def set_active_version(cls, prompt: Prompt, version: int) -> Prompt:
        """Point the prompt at an existing version. History is untouched."""
        cls.get_version(prompt, version)
        return prompt.model_copy(update={"current_version": version})

    @staticmethod
    def compute_diff(old_content: str, new_content: str) -> str:
        """Compute unified diff between two content versions."""
        old_lines = old_content.splitlines(keepends=True)
        new_lines = new_content.splitlines(keepends=True)

        diff = difflib.unified_diff(
            old_lines,
            new_lines,
            fromfile="previous",
            tofile="current",
            lineterm="",
        )
        return "\n".join(line.rstrip("\n") for line in diff)

    @staticmethod
    def summarize_history(version: PromptVersion) -> dict:
        """Run and score summary for one version's test history."""
        scores = [r.evaluation.score for r in version.test_results if r.evaluation]
        return {
            "version": version.version,
            "runs": len(version.test_results),
            "evaluated": len(scores),
            "best_score": max(scores) if scores else None,
            "average_score": round(sum(scores) / len(scores), 2) if scores else None,
        }

    @classmethod
    def compare_versions(
        cls,
        prompt: Prompt,
        version_a: int,
        version_b: Optional[int] = None,
    ) -> dict:
        """Compare two versions of a prompt.

        When version_b is omitted the newest other version is used, or
        version_a itself for a single-version prompt.
        """
        v_a = cls.get_version(prompt, version_a)
        if version_b is None:
            others = sorted(
                (v for v in prompt.versions if v.version != version_a),
                key=lambda v: v.version,
                reverse=True,
            )
            v_b = others[0] if others else v_a
        else:
            v_b = cls.get_version(prompt, version_b)

        return {
            "version_a": v_a.version,
            "version_b": v_b.version,
            "diff": cls.compute_diff(v_a.prompt_text, v_b.prompt_text),
            "history_a": cls.summarize_history(v_a),
            "history_b": cls.summarize_history(v_b),
            "version_a_created": v_a.created_at.isoformat(),
            "version_b_created": v_b.created_at.isoformat(),
        }
