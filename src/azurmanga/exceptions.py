"""
Exception hierarchy for the manga refresh and query paths.

Everything raised on purpose by azurmanga derives from :class:`MangaError`,
so the refresh cycle and the command handler can catch one base class at
their boundaries while tests assert on the precise subclass.
"""

from __future__ import annotations


class MangaError(Exception):
    """Base class for all azurmanga errors."""


class FetchError(MangaError):
    """A network or HTTP failure while retrieving a page or an image.

    Attributes:
        url (str): The URL that was being fetched.
        status (int | None): HTTP status when the server answered, otherwise None.
    """

    def __init__(self, url: str, message: str, *, status: int | None = None) -> None:
        super().__init__(f"{message} ({url})")
        self.url = url
        self.status = status


class StructuralParseError(MangaError):
    """An expected element or attribute is missing from a fetched page."""


class IdentifierDerivationError(MangaError):
    """A manga title does not contain the number used as its identifier."""

    def __init__(self, title: str) -> None:
        super().__init__(f"No numeric identifier in title {title!r}")
        self.title = title


class NoItemsAvailableError(MangaError):
    """A random pick was requested before any manga has been stored."""


class RefreshAborted(MangaError):
    """Listing entries failed while whole-batch abort is configured.

    Attributes:
        failures (list): The :class:`MangaFailure` records that caused the abort.
    """

    def __init__(self, failures: list) -> None:
        super().__init__(f"{len(failures)} listing entries failed; refresh aborted")
        self.failures = failures
