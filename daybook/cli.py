from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from .config import CONFIG_FILE, Settings, check_settings, detect_modified, load_settings, prepare_directories
from .content import discover_documents
from .models import BuildReport
from .planner import RebuildPlanner
from .render import FeedTemplate, HtmlTemplate


def build_site(settings: Settings, force: bool = False) -> BuildReport:
    prepare_directories(settings)
    config_modified = force or detect_modified(settings)
    documents = discover_documents(settings)
    planner = RebuildPlanner(
        settings,
        documents,
        HtmlTemplate(settings.template_path, settings),
        FeedTemplate(settings.rss_template_path, settings),
        config_modified=config_modified,
    )
    return planner.run()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Incremental static site compiler for dated posts.")
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Site directory holding the config file (default: current directory).",
    )
    parser.add_argument(
        "--config",
        default=CONFIG_FILE,
        help="Config file, relative to the site directory (TOML/YAML/JSON).",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Rewrite every page regardless of modification times.",
    )
    args = parser.parse_args(argv)

    root = Path(args.root)
    if not root.is_dir():
        print(f"Directory does not exist: {root}", file=sys.stderr)
        return 1
    settings = load_settings(root, args.config)
    errors = check_settings(settings)
    if errors:
        for error in errors:
            print(error, file=sys.stderr)
        return 1

    start = time.perf_counter()
    report = build_site(settings, force=args.force)
    elapsed = time.perf_counter() - start
    print(
        f"Build completed in {elapsed:.2f}s: {len(report.written)} written, "
        f"{len(report.skipped)} unchanged, {len(report.deleted)} deleted."
    )
    if report.failed or report.delete_failed:
        print(
            f"{len(report.failed)} writes and {len(report.delete_failed)} deletions failed.",
            file=sys.stderr,
        )
    if not report.manifest_saved:
        print("Manifests were not saved; the next build will rewrite more pages.", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
