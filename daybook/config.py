from __future__ import annotations

import json
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from urllib.parse import quote

try:
    import tomllib as toml
except ImportError:
    try:
        import tomli as toml
    except ImportError:  # pragma: no cover - optional dependency
        toml = None

try:
    import yaml
except ImportError:  # pragma: no cover - optional dependency
    yaml = None

import markdown

from .utils import parse_int

CONFIG_FILE = "daybook.toml"

DEFAULT_EXTENSIONS = ["fenced_code", "tables", "smarty", "codehilite"]
DEFAULT_EXTENSION_CONFIGS = {"codehilite": {"guess_lang": False}}


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        if toml is None:
            print("TOML config requires tomllib (Python 3.11+) or tomli.", file=sys.stderr)
            sys.exit(1)
        try:
            data = toml.loads(text)
        except Exception as exc:  # pragma: no cover - depends on parser
            print(f"Invalid TOML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
        if not isinstance(data, dict):
            print(f"TOML config must be a mapping: {path}", file=sys.stderr)
            sys.exit(1)
        return data
    if suffix in {".yml", ".yaml"}:
        if yaml is None:
            print("YAML config requires PyYAML.", file=sys.stderr)
            sys.exit(1)
        try:
            data = yaml.safe_load(text)
        except Exception as exc:  # pragma: no cover - depends on parser
            print(f"Invalid YAML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
        if data is None:
            return {}
        if not isinstance(data, dict):
            print(f"YAML config must be a mapping: {path}", file=sys.stderr)
            sys.exit(1)
        return data
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        print(f"Invalid JSON in config file {path}: {exc}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(data, dict):
        print(f"JSON config must be a mapping: {path}", file=sys.stderr)
        sys.exit(1)
    return data


@dataclass(frozen=True)
class Settings:
    """Site configuration, built once per run and passed to every component.

    Output locations are posix paths relative to ``doc_root``; the same
    relative paths are the keys of the build manifest.
    """

    doc_root: Path
    config_path: Optional[Path] = None
    page_dir: str = "page"
    post_dir: str = "post"
    tag_dir: str = "tag"
    store_dir: str = "store"
    index_file: str = "index.html"
    rss_file: str = "feed.xml"
    template_file: str = "store/template.html"
    rss_template: str = "store/template.xml"
    log_file: str = "store/daybook.log"
    tag_file: str = "store/tags.log"
    home_title: str = "Home"
    archive_title: str = "Archive"
    post_title: str = "Post"
    tag_title: str = "Tag"
    file_extension: str = ".text"
    page_suffix: str = ""
    posts_per_page: int = 4
    rss_posts: int = 10
    max_file_size: int = 128
    site_name: str = "daybook"
    site_url: str = ""
    site_description: str = ""
    extensions: list = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    extension_configs: dict = field(default_factory=lambda: dict(DEFAULT_EXTENSION_CONFIGS))

    def resolve(self, relative: str) -> Path:
        return self.doc_root / relative

    @property
    def log_path(self) -> Path:
        return self.resolve(self.log_file)

    @property
    def tag_log_path(self) -> Path:
        return self.resolve(self.tag_file)

    @property
    def template_path(self) -> Path:
        return self.resolve(self.template_file)

    @property
    def rss_template_path(self) -> Path:
        return self.resolve(self.rss_template)

    def archive_output(self, number: int) -> str:
        return f"{self.page_dir}/{number}{self.page_suffix}"

    def document_output(self, doc_id: str) -> str:
        return f"{self.post_dir}/{doc_id}{self.page_suffix}"

    def tag_output(self, name: str, number: int = 1) -> str:
        return self._tag_path(name, number)

    def archive_link(self, number: int) -> str:
        return self.archive_output(number)

    def document_link(self, doc_id: str) -> str:
        return self.document_output(doc_id)

    def tag_link(self, name: str, number: int = 1) -> str:
        return self._tag_path(quote(name, safe=""), number)

    def _tag_path(self, name: str, number: int) -> str:
        path = f"{self.tag_dir}/{name}"
        if number > 1:
            path = f"{path},{number}"
        return f"{path}{self.page_suffix}"

    def document_id_for(self, path: str) -> Optional[str]:
        """Return the document id of a permalink path, or None for other paths."""
        prefix = f"{self.post_dir}/"
        if not path.startswith(prefix):
            return None
        name = path[len(prefix) :]
        if self.page_suffix:
            if not name.endswith(self.page_suffix):
                return None
            name = name[: -len(self.page_suffix)]
        if not name or "/" in name:
            return None
        return name

    def archive_number_for(self, path: str) -> Optional[int]:
        pattern = rf"{re.escape(self.page_dir)}/(\d+){re.escape(self.page_suffix)}"
        match = re.fullmatch(pattern, path)
        return int(match.group(1)) if match else None


def load_settings(root: Path, config_file: Optional[str] = None) -> Settings:
    root = root.resolve()
    config_path = Path(config_file or CONFIG_FILE)
    if not config_path.is_absolute():
        config_path = root / config_path
    config = load_config(config_path)

    def cfg_str(key: str, default: str) -> str:
        value = config.get(key)
        return default if value is None else str(value)

    def cfg_int(key: str, default: int) -> int:
        return parse_int(config.get(key), default)

    doc_root = Path(cfg_str("doc_root", "."))
    if not doc_root.is_absolute():
        doc_root = root / doc_root

    parser_settings = config.get("parser_settings") or {}
    if not isinstance(parser_settings, dict):
        print(f"parser_settings must be a mapping: {config_path}", file=sys.stderr)
        parser_settings = {}
    extensions = parser_settings.get("extensions", DEFAULT_EXTENSIONS)
    if isinstance(extensions, str):
        extensions = [extensions]
    elif not isinstance(extensions, (list, tuple)):
        print(f"parser_settings.extensions must be a list: {config_path}", file=sys.stderr)
        extensions = DEFAULT_EXTENSIONS
    extension_configs = parser_settings.get("extension_configs", DEFAULT_EXTENSION_CONFIGS)
    if not isinstance(extension_configs, dict):
        print(f"parser_settings.extension_configs must be a mapping: {config_path}", file=sys.stderr)
        extension_configs = DEFAULT_EXTENSION_CONFIGS

    defaults = Settings(doc_root=doc_root)
    return Settings(
        doc_root=doc_root,
        config_path=config_path if config_path.exists() else None,
        page_dir=cfg_str("page_dir", defaults.page_dir).strip("/"),
        post_dir=cfg_str("post_dir", defaults.post_dir).strip("/"),
        tag_dir=cfg_str("tag_dir", defaults.tag_dir).strip("/"),
        store_dir=cfg_str("store_dir", defaults.store_dir).strip("/"),
        index_file=cfg_str("index_file", defaults.index_file),
        rss_file=cfg_str("rss_file", defaults.rss_file),
        template_file=cfg_str("template_file", defaults.template_file),
        rss_template=cfg_str("rss_template", defaults.rss_template),
        log_file=cfg_str("log_file", defaults.log_file),
        tag_file=cfg_str("tag_file", defaults.tag_file),
        home_title=cfg_str("home_title", defaults.home_title),
        archive_title=cfg_str("archive_title", defaults.archive_title),
        post_title=cfg_str("post_title", defaults.post_title),
        tag_title=cfg_str("tag_title", defaults.tag_title),
        file_extension=cfg_str("file_extension", defaults.file_extension),
        page_suffix=cfg_str("page_suffix", defaults.page_suffix),
        posts_per_page=max(1, cfg_int("posts_per_page", defaults.posts_per_page)),
        rss_posts=max(0, cfg_int("rss_posts", defaults.rss_posts)),
        max_file_size=max(0, cfg_int("max_file_size", defaults.max_file_size)),
        site_name=cfg_str("site_name", defaults.site_name),
        site_url=cfg_str("site_url", defaults.site_url),
        site_description=cfg_str("site_description", defaults.site_description),
        extensions=list(extensions),
        extension_configs=dict(extension_configs),
    )


def check_settings(settings: Settings) -> list[str]:
    """Return the problems that make a build impossible."""
    errors = []
    if not settings.doc_root.is_dir():
        errors.append(f"Document root does not exist: {settings.doc_root}")
        return errors
    store_path = settings.resolve(settings.store_dir)
    if not store_path.is_dir():
        errors.append(f"Store directory does not exist: {store_path}")
    if not settings.template_path.is_file():
        errors.append(f"Template file does not exist: {settings.template_path}")
    if not settings.rss_template_path.is_file():
        errors.append(f"RSS template does not exist: {settings.rss_template_path}")
    try:
        markdown.Markdown(extensions=settings.extensions, extension_configs=settings.extension_configs)
    except (ImportError, AttributeError, TypeError, KeyError, ValueError) as exc:
        errors.append(f"Invalid markdown extensions {settings.extensions}: {exc}")
    return errors


def prepare_directories(settings: Settings) -> None:
    for name in (settings.page_dir, settings.post_dir, settings.tag_dir):
        dir_path = settings.resolve(name)
        if dir_path.is_dir():
            continue
        try:
            dir_path.mkdir(parents=True)
            print(f"Created directory: {dir_path}")
        except OSError:
            print(f"Could not create directory: {dir_path}", file=sys.stderr)


def detect_modified(settings: Settings) -> bool:
    """True when the config or a template changed after the last build."""
    log_path = settings.log_path
    if not log_path.is_file():
        return False
    log_mtime = log_path.stat().st_mtime
    watched = [settings.template_path, settings.rss_template_path]
    if settings.config_path is not None:
        watched.append(settings.config_path)
    return any(path.is_file() and path.stat().st_mtime > log_mtime for path in watched)
