from __future__ import annotations

import datetime as dt
import html
from typing import Sequence

from .config import Settings
from .models import DocumentRecord, PageLink
from .utils import join_url, long_date, rfc822_date


def build_tag_links(doc: DocumentRecord, settings: Settings, root: str) -> str:
    return " ".join(
        f'<a class="chip" href="{root}/{settings.tag_link(name)}">{html.escape(name)}</a>'
        for name in doc.tags
    )


def build_document_list(documents: Sequence[DocumentRecord], settings: Settings, root: str) -> str:
    articles = []
    for doc in documents:
        url = f"{root}/{settings.document_link(doc.id)}"
        heading = ""
        if doc.title:
            heading = f'<h2 class="post-title"><a href="{url}">{html.escape(doc.title)}</a></h2>'
        articles.append(
            f'<article class="post" id="post-{doc.id}">'
            '<div class="post-meta">'
            f'<a class="post-date" href="{url}">'
            f'<time datetime="{doc.date.isoformat()}">{long_date(doc.date)}</time></a>'
            f'<div class="post-tags">{build_tag_links(doc, settings, root)}</div></div>'
            f"{heading}"
            f'<div class="post-body">{doc.body}</div>'
            "</article>"
        )
    return "\n".join(articles)


def build_pagination(pages: Sequence[PageLink], root: str) -> str:
    if len(pages) <= 1:
        return ""
    current = next((page.number for page in pages if page.is_current), 0)
    by_number = {page.number: page for page in pages}
    items = []
    prev_page = by_number.get(current - 1)
    next_page = by_number.get(current + 1)
    if prev_page:
        items.append(f'<a class="page-link" href="{root}/{prev_page.link}">Previous</a>')
    else:
        items.append('<span class="page-link is-disabled">Previous</span>')
    numbers = []
    for page in pages:
        if page.is_current:
            numbers.append(f'<span class="page-number is-active">{page.number}</span>')
        else:
            numbers.append(f'<a class="page-number" href="{root}/{page.link}">{page.number}</a>')
    items.append(f'<div class="page-numbers">{"".join(numbers)}</div>')
    if next_page:
        items.append(f'<a class="page-link" href="{root}/{next_page.link}">Next</a>')
    else:
        items.append('<span class="page-link is-disabled">Next</span>')
    return f'<nav class="pagination">{"".join(items)}</nav>'


def build_feed_items(documents: Sequence[DocumentRecord], settings: Settings) -> str:
    items = []
    for doc in documents:
        link = join_url(settings.site_url, settings.document_link(doc.id))
        title = doc.title or long_date(doc.date)
        published = dt.datetime.combine(doc.date, dt.time())
        items.append(
            "\n".join(
                [
                    "<item>",
                    f"<title>{html.escape(title)}</title>",
                    f"<link>{html.escape(link)}</link>",
                    f"<guid>{html.escape(link)}</guid>",
                    f"<pubDate>{rfc822_date(published)}</pubDate>",
                    f"<description>{html.escape(doc.body)}</description>",
                    "</item>",
                ]
            )
        )
    return "\n".join(items)
