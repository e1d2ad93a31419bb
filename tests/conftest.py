"""Shared fixtures: an in-memory Royal Road served through httpx.MockTransport."""

from __future__ import annotations

import asyncio
import html
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import httpx
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

BASE_URL = "https://www.royalroad.com"
STORY_PATH = "/fiction/1234/the-long-road"
COVER_URL = "https://www.royalroadcdn.com/public/covers-large/1234-the-long-road.jpg"

# smallest valid PNG / JPEG headers are enough for ebooklib
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32


def story_page(
    chapters: Sequence[Tuple[str, str]],
    *,
    title: Optional[str] = "The Long Road",
    author: Optional[str] = "Jane Writer",
    description: Optional[str] = "A story about a very long road.",
    cover: Optional[str] = COVER_URL,
    with_table: bool = True,
) -> str:
    """Render a landing page. ``None`` drops the corresponding meta tag."""

    metas = []
    for name, value in (
        ("twitter:image", cover),
        ("twitter:creator", author),
        ("twitter:title", title),
        ("twitter:description", description),
    ):
        if value is not None:
            metas.append(f'<meta name="{name}" content="{html.escape(value)}">')
    rows = "\n".join(
        f'<tr><td><a href="{link}">\n    {html.escape(name)}\n  </a></td><td>2 days ago</td></tr>'
        for name, link in chapters
    )
    table = (
        f'<table id="chapters"><thead><tr><th>Name</th></tr></thead><tbody>{rows}</tbody></table>'
        if with_table
        else ""
    )
    return f"""<!DOCTYPE html>
<html><head>{''.join(metas)}<title>ignored</title></head>
<body><div class="fic-header"><h1>page heading</h1></div>{table}</body></html>"""


def chapter_page(text: str) -> str:
    return f"""<!DOCTYPE html>
<html><head><title>chapter</title></head>
<body><div class="chapter-inner chapter-content"><p>{html.escape(text)}</p></div>
<div class="author-note">not included</div></body></html>"""


def chapter_links(count: int) -> List[Tuple[str, str]]:
    return [(f"Chapter {i + 1}", f"{STORY_PATH}/chapter/{100 + i}/part-{i + 1}") for i in range(count)]


class FakeSite:
    """Route table for a MockTransport with per-path latency and call tracking."""

    def __init__(self) -> None:
        self.routes: Dict[str, Tuple[int, str, bytes]] = {}
        self.delays: Dict[str, float] = {}
        self.requests: List[str] = []
        self.completed: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def add(self, url: str, body, *, status: int = 200, content_type: str = "text/html; charset=utf-8") -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[self._key(url)] = (status, content_type, body)

    def delay(self, url: str, seconds: float) -> None:
        self.delays[self._key(url)] = seconds

    def add_story(self, count: int, **page_kwargs) -> List[Tuple[str, str]]:
        chapters = chapter_links(count)
        self.add(BASE_URL + STORY_PATH, story_page(chapters, **page_kwargs))
        self.add(COVER_URL, JPEG_BYTES, content_type="image/jpeg")
        for i, (_, link) in enumerate(chapters):
            self.add(BASE_URL + link, chapter_page(f"text of chapter {i}"))
        return chapters

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    @staticmethod
    def _key(url: str) -> str:
        parsed = httpx.URL(url)
        return f"{parsed.host}{parsed.path}"

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        key = self._key(str(request.url))
        self.requests.append(key)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(key, 0))
        finally:
            self.in_flight -= 1
        self.completed.append(key)
        if key not in self.routes:
            return httpx.Response(404, text="not found")
        status, content_type, body = self.routes[key]
        return httpx.Response(status, headers={"content-type": content_type}, content=body)


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()
