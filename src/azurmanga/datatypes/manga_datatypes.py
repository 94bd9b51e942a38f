"""
Value types shared by the scraper, the stores and the command layer.

A refresh produces one :data:`ExtractionResult` per listing block: either a
:class:`MangaItem` ready to be stored, or a :class:`MangaFailure` describing
why that block could not be resolved.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Union


@dataclass(frozen=True)
class MangaItem:
    """
    One comic-strip entry.

    Attributes:
        title (str): Caption taken from the detail image ``alt`` attribute.
        link (str): Full-resolution image URL taken from the detail image ``src``.
        identifier (int | None): First number in ``title``; None when not derived.
        base64 (str | None): ``data:image/png;base64,...`` payload when the image
            bytes were embedded during the refresh.
    """
    title: str
    link: str
    identifier: int | None = None
    base64: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        """Identity used for deduplication: ``(title, link)``."""
        return (self.title, self.link)

    @property
    def has_payload(self) -> bool:
        return bool(self.base64)

    def with_payload(self, payload: str) -> "MangaItem":
        return replace(self, base64=payload)


@dataclass(frozen=True)
class MangaFailure:
    """
    A listing block that could not be turned into a :class:`MangaItem`.

    Attributes:
        source_url (str): Detail page (or listing page) the failure relates to.
        reason (str): Short human-readable description.
        error (Exception): The underlying exception.
    """
    source_url: str
    reason: str
    error: Exception


ExtractionResult = Union[MangaItem, MangaFailure]


def split_results(results: list[ExtractionResult]) -> tuple[list[MangaItem], list[MangaFailure]]:
    """Partition extraction results into successes and failures, preserving order."""
    items: list[MangaItem] = []
    failures: list[MangaFailure] = []
    for result in results:
        if isinstance(result, MangaItem):
            items.append(result)
        else:
            failures.append(result)
    return items, failures
