from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional


@dataclass(frozen=True)
class ManifestEntry:
    path: str
    written_at: int


class BuildManifest:
    """Artifact paths of a finished run and when each was last written."""

    def __init__(self, entries: Iterable[ManifestEntry] = ()) -> None:
        self._entries: dict[str, ManifestEntry] = {}
        for entry in entries:
            self._entries[entry.path] = entry

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def find(self, path: str) -> Optional[ManifestEntry]:
        return self._entries.get(path)

    def paths(self) -> list[str]:
        return list(self._entries)

    def entries(self) -> list[ManifestEntry]:
        return sorted(self._entries.values(), key=lambda entry: (entry.written_at, entry.path))

    @classmethod
    def load(cls, path: Path) -> BuildManifest:
        lines = _read_lines(path)
        if lines is None:
            return cls()
        entries = []
        for line in lines:
            written_at, sep, artifact = line.partition("\t")
            if not sep or not artifact:
                return cls()
            try:
                entries.append(ManifestEntry(artifact, int(written_at)))
            except ValueError:
                return cls()
        return cls(entries)

    def save(self, path: Path) -> bool:
        text = "".join(f"{entry.written_at}\t{entry.path}\n" for entry in self.entries())
        if _replace_text(path, text):
            return True
        print(f"Could not write log file: {path}", file=sys.stderr)
        return False


class BuildManifestBuilder:
    """Accumulates the current run's manifest; finalized exactly once."""

    def __init__(self) -> None:
        self._entries: dict[str, ManifestEntry] = {}
        self._finalized = False

    def record(self, path: str, written_at: int) -> None:
        if self._finalized:
            raise RuntimeError("manifest builder already finalized")
        self._entries[path] = ManifestEntry(path, written_at)

    def finalize(self) -> BuildManifest:
        if self._finalized:
            raise RuntimeError("manifest builder already finalized")
        self._finalized = True
        return BuildManifest(self._entries.values())


class TagManifest:
    """Document ids each tag held at the end of a run, newest first."""

    def __init__(self, tags: Optional[dict[str, Iterable[str]]] = None) -> None:
        self._tags: dict[str, tuple[str, ...]] = {
            name: tuple(ids) for name, ids in (tags or {}).items()
        }

    def __len__(self) -> int:
        return len(self._tags)

    def __contains__(self, name: object) -> bool:
        return name in self._tags

    def ids_for(self, name: str) -> Optional[tuple[str, ...]]:
        return self._tags.get(name)

    def names(self) -> list[str]:
        return sorted(self._tags)

    @classmethod
    def load(cls, path: Path) -> TagManifest:
        lines = _read_lines(path)
        if lines is None:
            return cls()
        tags: dict[str, list[str]] = {}
        for line in lines:
            name, sep, ids = line.partition("\t")
            if not sep or not name:
                return cls()
            tags[name] = [doc_id for doc_id in ids.split(",") if doc_id]
        return cls(tags)

    def save(self, path: Path) -> bool:
        text = "".join(f"{name}\t{','.join(self._tags[name])}\n" for name in self.names())
        if _replace_text(path, text):
            return True
        print(f"Could not write tag log file: {path}", file=sys.stderr)
        return False


class TagManifestBuilder:
    def __init__(self) -> None:
        self._tags: dict[str, tuple[str, ...]] = {}
        self._finalized = False

    def record(self, name: str, ids: Iterable[str]) -> None:
        if self._finalized:
            raise RuntimeError("tag manifest builder already finalized")
        self._tags[name] = tuple(ids)

    def finalize(self) -> TagManifest:
        if self._finalized:
            raise RuntimeError("tag manifest builder already finalized")
        self._finalized = True
        return TagManifest(self._tags)


def _read_lines(path: Path) -> Optional[list[str]]:
    # Missing or unreadable manifests count as an empty previous run.
    if not path.is_file():
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None
    return [line for line in text.splitlines() if line.strip()]


def _replace_text(path: Path, text: str) -> bool:
    tmp_path = path.with_name(f"{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(text, encoding="utf-8")
    except OSError:
        return False
    try:
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        return False
    return True
