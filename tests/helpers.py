"""Shared builders for the test suite."""

from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Sequence

from daybook.config import Settings
from daybook.models import DocumentRecord, PageLink


def make_doc(doc_id: str, modified_at: int = 100, tags: Sequence[str] = (), body: str = "") -> DocumentRecord:
    date = dt.date(int(doc_id[:4]), int(doc_id[4:6]), int(doc_id[6:]))
    return DocumentRecord(
        id=doc_id,
        date=date,
        modified_at=modified_at,
        tags=tuple(tags),
        body=body or f"<p>{doc_id}</p>",
    )


class RecordingWriter:
    """Artifact writer that writes a stub file and remembers every call."""

    def __init__(self, settings: Settings, fail: Sequence[str] = ()) -> None:
        self.settings = settings
        self.fail = set(fail)
        self.calls: list[tuple[str, str, str, list[str], list[PageLink]]] = []

    @property
    def paths(self) -> list[str]:
        return [call[0] for call in self.calls]

    def write(self, path, section, title, documents, pages) -> bool:
        self.calls.append((path, section, title, [doc.id for doc in documents], list(pages)))
        if path in self.fail:
            return False
        output = self.settings.resolve(path)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(",".join(doc.id for doc in documents), encoding="utf-8")
        return True


def make_site(root: Path, **overrides) -> Settings:
    (root / "store").mkdir(parents=True, exist_ok=True)
    return Settings(doc_root=root, **overrides)
