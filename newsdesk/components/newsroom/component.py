"""
Newsroom component - ingestion entry point.

Invariants:
- Each ingested item is triaged exactly once (new -> decision status)
- Auto-publish and schedule decisions produce a publish job for the
  triaged version; other decisions wait for an editor
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from newsdesk.domain.entities import ContentDraft, ContentItem

from ._impl import NewsroomEngine
from .models import IngestResult


@dataclass(frozen=True)
class IngestInput:
    title: str
    summary: str = ""
    body_text: str = ""
    source_id: UUID | None = None
    canonical_url: str | None = None
    draft: ContentDraft = field(default_factory=ContentDraft)


def run_ingest(inp: IngestInput, *, engine: NewsroomEngine) -> IngestResult:
    """Build a new ContentItem from feed data and ingest it."""
    item = ContentItem(
        title=inp.title,
        summary=inp.summary,
        body_text=inp.body_text,
        source_id=inp.source_id,
        canonical_url=inp.canonical_url,
        draft=inp.draft,
    )
    return engine.ingest(item)
