from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class DocumentRecord:
    """One parsed source document.

    ``id`` is derived from the date at day granularity, so a site holds at
    most one document per calendar day.
    """

    id: str
    date: dt.date
    modified_at: int
    tags: tuple[str, ...] = ()
    body: str = ""
    source: Path | None = None
    properties: dict = field(default_factory=dict, compare=False, hash=False)

    @property
    def title(self) -> str:
        return str(self.properties.get("title") or "")

    @property
    def sort_key(self) -> tuple[dt.date, str]:
        return (self.date, self.id)


@dataclass(frozen=True)
class PageLink:
    number: int
    link: str
    is_current: bool


@dataclass
class BuildReport:
    """Outcome of one run, path lists relative to the output root."""

    written: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    delete_failed: list[str] = field(default_factory=list)
    manifest_saved: bool = True

    @property
    def had_failures(self) -> bool:
        return bool(self.failed or self.delete_failed or not self.manifest_saved)
