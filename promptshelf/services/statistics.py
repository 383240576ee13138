"""
Collection Statistics

Summary figures for the prompt collection.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from promptshelf.models.prompt import Prompt

TOP_THEMES = 10


@dataclass
class CollectionStatistics:
    """Aggregated counts over a prompt collection."""
    total_prompts: int
    modality_counts: Dict[str, int]
    most_used_modality: str
    theme_counts: List[Tuple[str, int]]  # top themes, most frequent first
    total_themes: int
    total_versions: int = 0
    total_test_runs: int = 0
    evaluated_runs: int = 0
    average_score: Optional[float] = None


def collect_statistics(prompts: Sequence[Prompt]) -> CollectionStatistics:
    """Compute modality, theme and testing statistics."""
    modalities = Counter(p.modality.value for p in prompts)
    themes = Counter(p.theme for p in prompts if p.theme)

    versions = [v for p in prompts for v in p.versions]
    results = [r for v in versions for r in v.test_results]
    scores = [r.evaluation.score for r in results if r.evaluation is not None]

    return CollectionStatistics(
        total_prompts=len(prompts),
        modality_counts=dict(modalities),
        most_used_modality=modalities.most_common(1)[0][0] if modalities else "N/A",
        theme_counts=themes.most_common(TOP_THEMES),
        total_themes=len(themes),
        total_versions=len(versions),
        total_test_runs=len(results),
        evaluated_runs=len(scores),
        average_score=round(sum(scores) / len(scores), 2) if scores else None,
    )
