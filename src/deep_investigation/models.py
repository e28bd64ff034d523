"""
Data classes shared by the investigation pipeline.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field, asdict, fields
from typing import Iterable, List, Optional


def unique(values: Iterable[str]) -> List[str]:
    """Deduplicate by exact equality, keeping first-seen order."""
    return list(dict.fromkeys(values))


# -----------------------------
# Progress & outcome
# -----------------------------

@dataclass
class InvestigationProgress:
    """Mutable snapshot of one top-level investigation call."""
    current_level: int
    total_levels: int
    current_scope: int
    total_scope: int
    total_inquiries: int = 0
    completed_inquiries: int = 0
    current_inquiry: Optional[str] = None

    def update(self, **changes) -> "InvestigationProgress":
        """Merge ``changes`` into this record in place."""
        known = {f.name for f in fields(self)}
        for name, value in changes.items():
            if name not in known:
                raise AttributeError(f"InvestigationProgress has no field {name!r}")
            setattr(self, name, value)
        return self


@dataclass
class InvestigationOutcome:
    """Insights and sources accumulated by an investigation branch."""
    insights: List[str] = field(default_factory=list)
    explored_sources: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.insights = unique(self.insights)
        self.explored_sources = unique(self.explored_sources)

    @classmethod
    def merge(cls, outcomes: Iterable["InvestigationOutcome"]) -> "InvestigationOutcome":
        """Union several outcomes into one."""
        outcomes = list(outcomes)
        return cls(
            insights=[i for o in outcomes for i in o.insights],
            explored_sources=[s for o in outcomes for s in o.explored_sources],
        )

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False, indent=2)


# -----------------------------
# Planning & digestion
# -----------------------------

@dataclass
class SearchQueryMetadata:
    inquiry: str
    investigation_intent: str


@dataclass
class ProcessedInsight:
    insights: List[str]
    follow_up_inquiries: List[str]


# -----------------------------
# Search results
# -----------------------------

@dataclass
class SearchItem:
    """One search hit, optionally carrying scraped page content."""
    url: Optional[str] = None
    markdown: Optional[str] = None
    title: Optional[str] = None


@dataclass
class SearchResult:
    data: List[SearchItem] = field(default_factory=list)

    def urls(self) -> List[str]:
        """Return the URLs of all hits that have one."""
        return [item.url for item in self.data if isinstance(item.url, str) and item.url]
