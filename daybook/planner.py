from __future__ import annotations

import sys
import time
from functools import partial
from typing import Iterable, Optional, Sequence

from .collection import Collection
from .config import Settings
from .manifest import BuildManifest, BuildManifestBuilder, TagManifest, TagManifestBuilder
from .models import BuildReport, DocumentRecord, PageLink
from .render import ArtifactWriter
from .utils import long_date

NEVER_WRITTEN = 0


class RebuildPlanner:
    """Runs one incremental build of a site.

    Loads the previous run's manifests, decides for every artifact whether it
    has to be rewritten, persists the new manifests and deletes artifacts the
    current run no longer produces.
    """

    def __init__(
        self,
        settings: Settings,
        documents: Iterable[DocumentRecord],
        html_writer: ArtifactWriter,
        feed_writer: ArtifactWriter,
        *,
        config_modified: bool = False,
        now: Optional[int] = None,
    ) -> None:
        self.settings = settings
        self.collection = Collection(documents, settings.posts_per_page)
        self.html_writer = html_writer
        self.feed_writer = feed_writer
        self.config_modified = config_modified
        self.now = int(time.time()) if now is None else now
        self.old_manifest = BuildManifest()
        self.old_tags = TagManifest()
        self._manifest = BuildManifestBuilder()
        self._tags = TagManifestBuilder()
        self.report = BuildReport()

    def run(self) -> BuildReport:
        self.old_manifest = BuildManifest.load(self.settings.log_path)
        self.old_tags = TagManifest.load(self.settings.tag_log_path)

        self.write_home_and_archive()
        self.write_documents()
        self.write_tags()
        self.write_feed()

        new_manifest = self._manifest.finalize()
        new_tags = self._tags.finalize()
        manifest_saved = new_manifest.save(self.settings.log_path)
        tags_saved = new_tags.save(self.settings.tag_log_path)
        self.report.manifest_saved = manifest_saved and tags_saved

        self.delete_orphans(new_manifest)
        return self.report

    def previous_ids(self) -> list[str]:
        ids = {self.settings.document_id_for(path) for path in self.old_manifest.paths()}
        ids.discard(None)
        return sorted(ids, reverse=True)

    def previous_page_count(self) -> int:
        return sum(
            1 for path in self.old_manifest.paths() if self.settings.archive_number_for(path) is not None
        )

    def write_home_and_archive(self) -> None:
        # An insertion or removal shifts every later page, and a different page
        # count changes the pagination links on every page.
        settings = self.settings
        collection = self.collection
        first_changed = collection.first_changed_page(self.previous_ids())
        count_changed = collection.page_count != self.previous_page_count()
        link_for = settings.archive_link

        self.emit(
            settings.index_file,
            settings.home_title,
            "",
            collection.pages_for(1),
            collection.page_range(1, link_for),
            forced=count_changed or first_changed <= 1,
        )
        for number in range(1, collection.page_count + 1):
            self.emit(
                settings.archive_output(number),
                settings.archive_title,
                f"Page {number}",
                collection.pages_for(number),
                collection.page_range(number, link_for),
                forced=count_changed or number >= first_changed,
            )

    def write_documents(self) -> None:
        for doc in self.collection:
            single = self.collection.filter_by_id(doc.id)
            self.emit(
                self.settings.document_output(doc.id),
                self.settings.post_title,
                long_date(doc.date),
                single.pages_for(1),
                [],
            )

    def write_tags(self) -> None:
        settings = self.settings
        for name in self.collection.tags:
            tagged = self.collection.filter_by_tag(name)
            ids = tagged.ids
            previous = self.old_tags.ids_for(name)
            forced = previous is None or list(previous) != ids
            self._tags.record(name, ids)
            link_for = partial(settings.tag_link, name)
            for number in range(1, tagged.page_count + 1):
                self.emit(
                    settings.tag_output(name, number),
                    settings.tag_title,
                    name,
                    tagged.pages_for(number),
                    tagged.page_range(number, link_for),
                    forced=forced,
                )

    def write_feed(self) -> None:
        self.emit(
            self.settings.rss_file,
            "",
            "",
            self.collection.feed_documents(self.settings.rss_posts),
            [],
            writer=self.feed_writer,
        )

    def must_rewrite(self, path: str, documents: Sequence[DocumentRecord], forced: bool = False) -> bool:
        if forced or self.config_modified:
            return True
        if not self.settings.resolve(path).is_file():
            return True
        entry = self.old_manifest.find(path)
        if entry is None or entry.written_at <= NEVER_WRITTEN:
            return True
        return any(doc.modified_at > entry.written_at for doc in documents)

    def emit(
        self,
        path: str,
        section: str,
        title: str,
        documents: Sequence[DocumentRecord],
        pages: Sequence[PageLink],
        *,
        forced: bool = False,
        writer: Optional[ArtifactWriter] = None,
    ) -> None:
        """Write one artifact if needed and record it in the new manifest.

        A failed write is recorded as never written, so the path survives the
        orphan sweep and the next run retries it.
        """
        if not self.must_rewrite(path, documents, forced):
            self.report.skipped.append(path)
            self._manifest.record(path, self.now)
            return
        writer = writer or self.html_writer
        if writer.write(path, section, title, documents, pages):
            self.report.written.append(path)
            self._manifest.record(path, self.now)
        else:
            self.report.failed.append(path)
            print(f"Could not write file: {self.settings.resolve(path)}", file=sys.stderr)
            self._manifest.record(path, NEVER_WRITTEN)

    def delete_orphans(self, new_manifest: BuildManifest) -> None:
        for path in sorted(set(self.old_manifest.paths()) - set(new_manifest.paths())):
            file_path = self.settings.resolve(path)
            if not file_path.is_file():
                continue
            try:
                file_path.unlink()
            except OSError:
                print(f"Could not delete file: {file_path}", file=sys.stderr)
                self.report.delete_failed.append(path)
                continue
            print(f"Deleted file: {file_path}")
            self.report.deleted.append(path)
