from __future__ import annotations

import datetime as dt
import html
import sys
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Protocol, Sequence

from .config import Settings
from .models import DocumentRecord, PageLink
from .pages import build_document_list, build_feed_items, build_pagination
from .utils import rfc822_date


class ArtifactWriter(Protocol):
    def write(
        self,
        path: str,
        section: str,
        title: str,
        documents: Sequence[DocumentRecord],
        pages: Sequence[PageLink],
    ) -> bool: ...


def render_template(template: str, **context: str) -> str:
    output = template
    late_keys = ("pagination", "content")
    for key, value in context.items():
        if key in late_keys:
            continue
        output = output.replace(f"{{{{{key}}}}}", value)
    for key in late_keys:
        if key in context:
            output = output.replace(f"{{{{{key}}}}}", context[key])
    return output


def relative_root(path: str) -> str:
    depth = len(PurePosixPath(path).parts) - 1
    if depth <= 0:
        return "."
    return "/".join([".."] * depth)


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


class Template(ABC):
    """Placeholder template that renders page data and writes one artifact.

    Placeholders use the ``{{name}}`` form. A template that could not be read
    renders nothing and every write through it fails.
    """

    def __init__(self, template_path: Path, settings: Settings) -> None:
        self.template_path = template_path
        self.settings = settings
        self.text = ""
        try:
            self.text = template_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            print(f"Could not read template: {template_path}", file=sys.stderr)

    @abstractmethod
    def render(
        self,
        path: str,
        section: str,
        title: str,
        documents: Sequence[DocumentRecord],
        pages: Sequence[PageLink],
    ) -> str: ...

    def write(
        self,
        path: str,
        section: str,
        title: str,
        documents: Sequence[DocumentRecord],
        pages: Sequence[PageLink],
    ) -> bool:
        """Write one artifact. On failure only the cause is printed; the caller reports the path."""
        if not self.text:
            print(f"Template is empty: {self.template_path}", file=sys.stderr)
            return False
        contents = self.render(path, section, title, documents, pages)
        output_path = self.settings.resolve(path)
        try:
            write_text(output_path, contents)
        except OSError as exc:
            print(f"{output_path}: {exc}", file=sys.stderr)
            return False
        print(f"Wrote file: {output_path}")
        return True


class HtmlTemplate(Template):
    def render(self, path, section, title, documents, pages) -> str:
        root = relative_root(path)
        settings = self.settings
        page_title = " | ".join(part for part in (title, section, settings.site_name) if part)
        return render_template(
            self.text,
            page_title=html.escape(page_title),
            section=html.escape(section),
            title=html.escape(title),
            site_name=html.escape(settings.site_name),
            site_description=html.escape(settings.site_description),
            root=root,
            home=f"{root}/{settings.index_file}",
            feed=f"{root}/{settings.rss_file}",
            content=build_document_list(documents, settings, root),
            pagination=build_pagination(pages, root),
        )


class FeedTemplate(Template):
    def render(self, path, section, title, documents, pages) -> str:
        settings = self.settings
        if documents:
            last_build = dt.datetime.combine(max(doc.date for doc in documents), dt.time())
        else:
            last_build = dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)
        return render_template(
            self.text,
            site_name=html.escape(settings.site_name),
            site_url=html.escape(settings.site_url.rstrip("/") + "/"),
            site_description=html.escape(settings.site_description),
            last_build=rfc822_date(last_build),
            content=build_feed_items(documents, settings),
        )
