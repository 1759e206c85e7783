from __future__ import annotations

import datetime as dt
import re
import sys
from pathlib import Path
from typing import Optional

import markdown
import smartypants
import yaml

from .config import Settings
from .models import DocumentRecord

FORMAT_HTML = "html"
FORMAT_MARKDOWN = "markdown"
ID_FORMAT = "%Y%m%d"

LIST_MARKER_RE = re.compile(r"^(?P<indent>[ \t]*)(?:[-+*]|\d+[.)])\s+")
FENCE_RE = re.compile(r"^(?P<indent>[ \t]*)(`{3,}|~{3,})")
INVALID_TAG_RE = re.compile(r"[/\\,:*|\t]")


def parse_list(value: str) -> list[str]:
    value = value.strip()
    if value.startswith("[") and value.endswith("]"):
        value = value[1:-1]
    items = [item.strip().strip("'\"") for item in value.split(",")]
    return [item for item in items if item]


def parse_front_matter(text: str) -> tuple[dict, str]:
    """Split a ``---`` delimited YAML header from the body.

    A header that is not valid YAML, or not a mapping, gives empty metadata.
    """
    clean_text = text.lstrip("\ufeff")
    lines = clean_text.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, clean_text

    end = None
    for i in range(1, len(lines)):
        if lines[i].strip() == "---":
            end = i
            break
    if end is None:
        return {}, clean_text

    body = "\n".join(lines[end + 1 :])
    try:
        data = yaml.safe_load("\n".join(lines[1:end])) or {}
    except yaml.YAMLError:
        return {}, body
    if not isinstance(data, dict):
        return {}, body
    meta = {str(key).strip().lower(): value for key, value in data.items()}
    meta["tags"] = parse_tags(meta.get("tags"))
    return meta, body


def parse_tags(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    return parse_list(str(value))


def parse_date(meta: dict) -> Optional[dt.date]:
    value = meta.get("date")
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    value = str(value or "").strip()
    if not value:
        return None
    try:
        return dt.date.fromisoformat(value[:10])
    except ValueError:
        return None


def clean_tags(names: list[str]) -> list[str]:
    """Drop names that cannot be used in a tag page path, keeping first occurrences."""
    kept: list[str] = []
    for name in names:
        if name in {"", ".", ".."} or INVALID_TAG_RE.search(name) or name in kept:
            continue
        kept.append(name)
    return kept


def normalize_list_spacing(text: str) -> str:
    lines = text.splitlines()
    out: list[str] = []
    in_fence = False
    fence_marker = ""
    for line in lines:
        fence_match = FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(2)
            if not in_fence:
                in_fence = True
                fence_marker = marker
            elif marker == fence_marker:
                in_fence = False
                fence_marker = ""
            out.append(line)
            continue
        if in_fence:
            out.append(line)
            continue
        list_match = LIST_MARKER_RE.match(line)
        if list_match and not list_match.group("indent"):
            if out and out[-1].strip() and not LIST_MARKER_RE.match(out[-1]):
                out.append("")
        out.append(line)
    return "\n".join(out)


def make_markdown(settings: Settings) -> markdown.Markdown:
    return markdown.Markdown(
        extensions=settings.extensions,
        extension_configs=settings.extension_configs,
    )


def read_document(path: Path, md: markdown.Markdown) -> Optional[DocumentRecord]:
    """Parse one source file, or report why it was skipped and return None."""
    try:
        raw_text = path.read_text(encoding="utf-8")
        modified_at = int(path.stat().st_mtime)
    except (OSError, UnicodeDecodeError):
        print(f"Could not read file: {path}", file=sys.stderr)
        return None

    meta, body = parse_front_matter(raw_text)
    date_value = parse_date(meta)
    if date_value is None:
        print(f"Missing or invalid date format: {path}", file=sys.stderr)
        return None

    text_format = str(meta.get("format") or FORMAT_HTML).lower()
    body = body.rstrip("\n")
    if text_format == FORMAT_MARKDOWN:
        body = md.convert(normalize_list_spacing(body))
        md.reset()
    else:
        if text_format != FORMAT_HTML:
            print(f"Unknown format {text_format!r}, treating as HTML: {path}", file=sys.stderr)
        body = smartypants.smartypants(body)

    return DocumentRecord(
        id=date_value.strftime(ID_FORMAT),
        date=date_value,
        modified_at=modified_at,
        tags=tuple(clean_tags(meta.get("tags") or [])),
        body=body,
        source=path,
        properties=meta,
    )


def discover_documents(settings: Settings) -> list[DocumentRecord]:
    """Load every valid document under the document root.

    Files are visited in path order and the first document for a given day
    wins; later documents with the same date are reported and skipped.
    """
    max_bytes = settings.max_file_size * 1024
    md = make_markdown(settings)
    paths = sorted(settings.doc_root.rglob(f"*{settings.file_extension}"), key=lambda p: p.as_posix())
    documents: list[DocumentRecord] = []
    seen: dict[str, Path] = {}
    for path in paths:
        if not path.is_file():
            continue
        if max_bytes and path.stat().st_size > max_bytes:
            print(f"File exceeds {settings.max_file_size} KB, skipped: {path}", file=sys.stderr)
            continue
        record = read_document(path, md)
        if record is None:
            continue
        if record.id in seen:
            print(
                f"Duplicate date {record.date.isoformat()} in {path}, already used by {seen[record.id]}",
                file=sys.stderr,
            )
            continue
        seen[record.id] = path
        documents.append(record)
    return documents
