"""Template rendering and artifact writing."""

from __future__ import annotations

from pathlib import Path

import pytest
from helpers import make_doc

from daybook.config import Settings
from daybook.models import PageLink
from daybook.pages import build_pagination
from daybook.render import FeedTemplate, HtmlTemplate, Template, relative_root, render_template


def _template(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_relative_root() -> None:
    assert relative_root("index.html") == "."
    assert relative_root("post/20220301") == ".."
    assert relative_root("blog/tag/ruby") == "../.."


def test_render_template_fills_content_last() -> None:
    output = render_template("{{title}}|{{content}}", title="T", content="{{title}}")

    assert output == "T|{{title}}"


def test_render_template_fills_pagination_before_content() -> None:
    output = render_template("{{content}}|{{pagination}}", content="{{pagination}}", pagination="nav")

    assert output == "{{pagination}}|nav"


def test_template_base_class_is_abstract(tmp_path: Path) -> None:
    with pytest.raises(TypeError):
        Template(tmp_path / "template.html", Settings(doc_root=tmp_path))


def test_pagination_links() -> None:
    pages = [PageLink(1, "page/1", False), PageLink(2, "page/2", True), PageLink(3, "page/3", False)]

    nav = build_pagination(pages, "..")

    assert 'href="../page/1">Previous' in nav
    assert 'href="../page/3">Next' in nav
    assert '<span class="page-number is-active">2</span>' in nav
    assert build_pagination(pages[:1], "..") == ""


def test_html_template_writes_page(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    settings = Settings(doc_root=tmp_path, site_name="Rambles")
    template = _template(
        tmp_path / "store" / "template.html",
        "<title>{{page_title}}</title><main>{{content}}</main>{{pagination}}",
    )
    doc = make_doc("20220301", tags=["c++"], body="<p>Hello & bye</p>")
    pages = [PageLink(1, "tag/c%2B%2B", True), PageLink(2, "tag/c%2B%2B,2", False)]

    written = HtmlTemplate(template, settings).write("tag/c++", "Tag", "c++", [doc], pages)

    assert written is True
    html = (tmp_path / "tag" / "c++").read_text(encoding="utf-8")
    assert "<title>c++ | Tag | Rambles</title>" in html
    assert "<p>Hello & bye</p>" in html
    assert 'href="../post/20220301"' in html
    assert 'href="../tag/c%2B%2B"' in html
    assert "March 1, 2022" in html
    assert 'href="../tag/c%2B%2B,2">Next' in html
    assert "Wrote file" in capsys.readouterr().out


def test_missing_template_fails_writes(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    settings = Settings(doc_root=tmp_path)

    writer = HtmlTemplate(tmp_path / "store" / "missing.html", settings)

    assert writer.write("index.html", "Home", "", [], []) is False
    assert not (tmp_path / "index.html").exists()
    err = capsys.readouterr().err
    assert "Could not read template" in err
    assert "Template is empty" in err


def test_write_failure_is_reported(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    settings = Settings(doc_root=tmp_path)
    template = _template(tmp_path / "store" / "template.html", "{{content}}")
    (tmp_path / "post").write_text("not a directory", encoding="utf-8")

    written = HtmlTemplate(template, settings).write("post/20220301", "Post", "", [make_doc("20220301")], [])

    assert written is False
    assert str(tmp_path / "post" / "20220301") in capsys.readouterr().err


def test_feed_template_lists_items(tmp_path: Path) -> None:
    settings = Settings(doc_root=tmp_path, site_name="Rambles", site_url="https://example.com/")
    template = _template(
        tmp_path / "store" / "template.xml",
        "<channel><title>{{site_name}}</title><link>{{site_url}}</link>"
        "<lastBuildDate>{{last_build}}</lastBuildDate>{{content}}</channel>",
    )
    documents = [make_doc("20220305"), make_doc("20220301")]

    assert FeedTemplate(template, settings).write("feed.xml", "", "", documents, [])

    xml = (tmp_path / "feed.xml").read_text(encoding="utf-8")
    assert "<link>https://example.com/</link>" in xml
    assert "<link>https://example.com/post/20220305</link>" in xml
    assert "<lastBuildDate>Sat, 05 Mar 2022 00:00:00 +0000</lastBuildDate>" in xml
    assert xml.count("<item>") == 2
    assert "&lt;p&gt;20220301&lt;/p&gt;" in xml
