from __future__ import annotations

import math
from typing import Callable, Iterable, Sequence

from .models import DocumentRecord, PageLink


class Collection:
    """Date-ordered, paginated view over a set of documents.

    Documents are held newest first (date, then id, descending). Sub-collections
    returned by the filter methods are new collections paginated on their own.
    """

    def __init__(self, documents: Iterable[DocumentRecord], page_size: int) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.page_size = page_size
        self.documents: tuple[DocumentRecord, ...] = tuple(
            sorted(documents, key=lambda doc: doc.sort_key, reverse=True)
        )
        self.page_count = math.ceil(len(self.documents) / page_size)
        self.tags: list[str] = sorted({tag for doc in self.documents for tag in doc.tags})

    def __len__(self) -> int:
        return len(self.documents)

    def __iter__(self):
        return iter(self.documents)

    @property
    def ids(self) -> list[str]:
        return [doc.id for doc in self.documents]

    def pages_for(self, number: int) -> list[DocumentRecord]:
        if number < 1:
            return []
        start = (number - 1) * self.page_size
        return list(self.documents[start : start + self.page_size])

    def page_range(self, current: int, link_for: Callable[[int], str]) -> list[PageLink]:
        return [
            PageLink(number=number, link=link_for(number), is_current=number == current)
            for number in range(1, self.page_count + 1)
        ]

    def feed_documents(self, count: int) -> list[DocumentRecord]:
        return list(self.documents[: max(0, count)])

    def filter_by_id(self, doc_id: str) -> Collection:
        return Collection((doc for doc in self.documents if doc.id == doc_id), self.page_size)

    def filter_by_tag(self, name: str) -> Collection:
        return Collection((doc for doc in self.documents if name in doc.tags), self.page_size)

    def first_changed_page(self, previous_ids: Sequence[str]) -> int:
        """Return the first page whose membership differs from the previous run.

        ``previous_ids`` are the previous run's ids, newest first. An added or
        removed id at rank r moves every later document to a new slot, so the
        page holding rank r and every page after it must be rewritten. Returns
        ``page_count + 1`` when membership is unchanged.
        """
        new_ids = sorted(self.ids, reverse=True)
        old_ids = list(dict.fromkeys(previous_ids))
        old_set = set(old_ids)
        new_set = set(new_ids)

        candidates = []
        added = next((rank for rank, doc_id in enumerate(new_ids) if doc_id not in old_set), None)
        if added is not None:
            candidates.append(added)
        removed = next((rank for rank, doc_id in enumerate(old_ids) if doc_id not in new_set), None)
        if removed is not None:
            candidates.append(removed)

        if not candidates:
            return self.page_count + 1
        return min(candidates) // self.page_size + 1
