"""Fake wiki pages and a fake HTTP session shared by the tests."""

import asyncio
from datetime import datetime, timedelta


BASE_URL = "https://wiki.biligame.com"
LISTING_URL = "https://wiki.biligame.com/blhx/manga"


def listing_html(hrefs: list[str | None]) -> str:
    """Listing page with one block per href (None -> block without anchor)."""
    blocks = []
    for href in hrefs:
        if href is None:
            blocks.append("<div><span>broken</span></div>")
        else:
            blocks.append(f'<div><a href="{href}"><img src="thumb.png"></a></div>')
    return (
        "<html><body>"
        '<div class="row"><p>navigation</p></div>'
        f'<div class="row">{"".join(blocks)}</div>'
        "</body></html>"
    )


def detail_html(src: str, alt: str) -> str:
    return (
        "<html><body>"
        f'<div id="file"><a href="{src}"><img src="{src}" alt="{alt}"></a></div>'
        "</body></html>"
    )


def image_url(number: int) -> str:
    return f"https://patchwiki.biligame.com/images/blhx/{number}.png"


def detail_url(number: int) -> str:
    return f"{BASE_URL}/blhx/File:{number}.png"


def wiki_pages(numbers: list[int], *, with_images: bool = True) -> dict:
    """Listing plus detail pages (and image bytes) for manga ``第{n}话``."""
    pages: dict = {LISTING_URL: listing_html([f"/blhx/File:{n}.png" for n in numbers])}
    for n in numbers:
        pages[detail_url(n)] = detail_html(image_url(n), f"第{n}话")
        if with_images:
            pages[image_url(n)] = b"\x89PNG" + str(n).encode()
    return pages


class FakeResponse:
    def __init__(self, status: int, body: bytes, charset: str = "utf-8") -> None:
        self.status = status
        self.charset = charset
        self._body = body

    async def read(self) -> bytes:
        return self._body

    async def text(self) -> str:
        return self._body.decode(self.charset)

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc_info) -> bool:
        return False


class FakeSession:
    """
    Minimal stand-in for ``aiohttp.ClientSession``.

    ``pages`` maps URL to a body (str/bytes), a ``(status, body)`` or
    ``(status, body, charset)`` tuple, or an exception instance raised from
    ``get``. Unknown URLs answer 404.
    """

    def __init__(self, pages: dict) -> None:
        self.pages = pages
        self.requested: list[str] = []
        self.closed = False

    def get(self, url: str) -> FakeResponse:
        self.requested.append(url)
        entry = self.pages.get(url)
        if entry is None:
            return FakeResponse(404, b"not found")
        if isinstance(entry, Exception):
            raise entry
        status, body, *charset = entry if isinstance(entry, tuple) else (200, entry)
        charset = charset[0] if charset else "utf-8"
        if isinstance(body, str):
            body = body.encode(charset)
        return FakeResponse(status, body, charset)

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, *exc_info) -> bool:
        self.closed = True
        return False


async def settle(rounds: int = 20) -> None:
    """Let pending tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeTimer:
    """Fake clock + sleep: sleeps block until the test fires them."""

    def __init__(self, now: datetime) -> None:
        self.now = now
        self.sleeps: list[tuple[float, asyncio.Future]] = []

    def clock(self) -> datetime:
        return self.now

    async def sleep(self, delay: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self.sleeps.append((delay, future))
        await future

    def pending(self) -> list[tuple[float, asyncio.Future]]:
        return [(delay, future) for delay, future in self.sleeps if not future.done()]

    async def fire_next(self) -> float:
        """Advance the clock to the earliest pending sleep and release it."""
        await settle()
        delay, future = self.pending()[0]
        self.now += timedelta(seconds=delay)
        future.set_result(None)
        await settle()
        return delay
