"""End-to-end builds through the command line entry point."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from daybook.cli import main

HTML_TEMPLATE = "<html><title>{{page_title}}</title><body>{{content}}{{pagination}}</body></html>\n"
FEED_TEMPLATE = "<rss><channel><title>{{site_name}}</title>{{content}}</channel></rss>\n"


def _site(root: Path) -> Path:
    store = root / "store"
    store.mkdir(parents=True)
    (store / "template.html").write_text(HTML_TEMPLATE, encoding="utf-8")
    (store / "template.xml").write_text(FEED_TEMPLATE, encoding="utf-8")
    (root / "daybook.toml").write_text('site_name = "Rambles"\nposts_per_page = 2\n', encoding="utf-8")
    posts = root / "posts"
    posts.mkdir()
    for day, tags in (("01", "ruby"), ("02", "ruby, go"), ("03", "")):
        (posts / f"202203{day}.text").write_text(
            f"---\ndate: 2022-03-{day}\ntags: {tags}\nformat: markdown\n---\nPost number {day}.\n",
            encoding="utf-8",
        )
    old = 1_600_000_000
    for path in [*store.iterdir(), root / "daybook.toml", *posts.iterdir()]:
        os.utime(path, (old, old))
    return root


def test_build_creates_site(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    root = _site(tmp_path)

    assert main([str(root)]) == 0

    for name in ["index.html", "page/1", "page/2", "post/20220301", "tag/ruby", "tag/go", "feed.xml"]:
        assert (root / name).is_file(), name
    index = (root / "index.html").read_text(encoding="utf-8")
    assert "Post number 03." in index
    assert "Post number 01." not in index
    assert "Home | Rambles" in index
    assert (root / "store" / "daybook.log").is_file()
    assert (root / "store" / "tags.log").read_text(encoding="utf-8") == "go\t20220302\nruby\t20220302,20220301\n"
    assert "Build completed" in capsys.readouterr().out


def test_second_build_writes_nothing(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    root = _site(tmp_path)
    main([str(root)])
    capsys.readouterr()

    assert main([str(root)]) == 0

    out = capsys.readouterr().out
    assert "Wrote file" not in out
    assert "0 written" in out


def test_template_change_rewrites_everything(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    root = _site(tmp_path)
    main([str(root)])
    future = (root / "store" / "daybook.log").stat().st_mtime + 60
    os.utime(root / "store" / "template.html", (future, future))
    capsys.readouterr()

    main([str(root)])

    assert "9 written" in capsys.readouterr().out


def test_force_flag_rewrites_everything(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    root = _site(tmp_path)
    main([str(root)])
    capsys.readouterr()

    main([str(root), "--force"])

    assert "9 written" in capsys.readouterr().out


def test_removed_post_is_deleted(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    root = _site(tmp_path)
    main([str(root)])
    (root / "posts" / "20220302.text").unlink()

    main([str(root)])

    assert not (root / "post" / "20220302").exists()
    assert not (root / "tag" / "go").exists()
    assert not (root / "page" / "2").exists()
    assert "Deleted file" in capsys.readouterr().out


def test_missing_root_fails(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    assert main([str(tmp_path / "missing")]) == 1
    assert "Directory does not exist" in capsys.readouterr().err


def test_missing_templates_fail(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    (tmp_path / "store").mkdir()

    assert main([str(tmp_path)]) == 1
    err = capsys.readouterr().err
    assert "Template file does not exist" in err
    assert "RSS template does not exist" in err


def test_unknown_markdown_extension_fails(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    root = _site(tmp_path)
    (root / "daybook.toml").write_text('[parser_settings]\nextensions = ["no_such_extension"]\n', encoding="utf-8")

    assert main([str(root)]) == 1
    assert "Invalid markdown extensions" in capsys.readouterr().err
