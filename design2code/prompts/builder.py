"""Structured prompt documents.

Prompts are composed from named sections and rendered once. Shrinking a
prompt removes whole optional sections from the document before rendering;
rendered text is never edited after the fact.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Tuple

from design2code.models import PromptStrategy


@dataclass(frozen=True)
class PromptSection:
    name: str
    lines: Tuple[str, ...]
    heading: Optional[str] = None
    optional: bool = True

    def render(self) -> str:
        body = "\n".join(self.lines)
        if self.heading:
            return f"{self.heading}\n{body}" if body else self.heading
        return body


@dataclass(frozen=True)
class PromptDocument:
    strategy: PromptStrategy
    sections: Tuple[PromptSection, ...] = field(default_factory=tuple)

    def section_names(self) -> List[str]:
        return [s.name for s in self.sections]

    def has_section(self, name: str) -> bool:
        return any(s.name == name for s in self.sections)

    def without(self, name: str) -> "PromptDocument":
        """Copy without the optional section ``name``; mandatory ones stay."""
        kept = tuple(s for s in self.sections if s.name != name or not s.optional)
        return replace(self, sections=kept)

    def render(self) -> str:
        return "\n\n".join(r for r in (s.render() for s in self.sections) if r.strip())


class PromptBuilder:
    """Accumulates sections; empty sections are skipped.

    Usage:
        doc = (PromptBuilder(PromptStrategy.MINIMAL)
               .section("summary", ["Create a button"], optional=False)
               .build())
    """

    def __init__(self, strategy: PromptStrategy):
        self._strategy = strategy
        self._sections: List[PromptSection] = []

    def section(
        self,
        name: str,
        lines: Iterable[str],
        *,
        heading: Optional[str] = None,
        optional: bool = True,
    ) -> "PromptBuilder":
        lines = tuple(line for line in lines if line is not None)
        if lines:
            self._sections.append(
                PromptSection(name=name, lines=lines, heading=heading, optional=optional)
            )
        return self

    def build(self) -> PromptDocument:
        return PromptDocument(strategy=self._strategy, sections=tuple(self._sections))
