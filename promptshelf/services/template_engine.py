"""
Template Engine

Bracket placeholder extraction and compilation for prompt text.

A placeholder is any ``[name]`` token whose name contains no brackets.
Every function here is pure so previews can be re-derived on each edit.
"""

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Iterable, List, Mapping

PLACEHOLDER_PATTERN = re.compile(r"\[([^\[\]]+)\]")


@dataclass(frozen=True)
class TemplatePreview:
    """Live compile state of a template against a set of values."""

    variables: List[str]
    compiled: str
    missing: List[str] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return not self.missing

    @property
    def is_template(self) -> bool:
        return bool(self.variables)


@lru_cache(maxsize=256)
def _extract(text: str) -> tuple:
    names = {}
    for match in PLACEHOLDER_PATTERN.finditer(text):
        names.setdefault(match.group(1), None)
    return tuple(names)


def extract_variables(text: str) -> List[str]:
    """Distinct placeholder names in first-occurrence order.

    An empty list means the text is not a template.
    """
    return list(_extract(text))


def compile_template(text: str, values: Mapping[str, str]) -> str:
    """Substitute placeholder values into text.

    Placeholders without a value are left as ``[name]`` so an incomplete
    compile stays visibly incomplete.
    """

    def substitute(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name in values and values[name] is not None:
            return str(values[name])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(substitute, text)


def is_filled(value) -> bool:
    return value is not None and bool(str(value).strip())


def all_filled(names: Iterable[str], values: Mapping[str, str]) -> bool:
    """True when every name maps to a non-blank value."""
    return all(is_filled(values.get(name)) for name in names)


def missing_variables(names: Iterable[str], values: Mapping[str, str]) -> List[str]:
    return [name for name in names if not is_filled(values.get(name))]


def preview(text: str, values: Mapping[str, str]) -> TemplatePreview:
    """Compile text and report which placeholders still need a value."""
    names = extract_variables(text)
    return TemplatePreview(
        variables=names,
        compiled=compile_template(text, values),
        missing=missing_variables(names, values),
    )
