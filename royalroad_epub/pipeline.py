"""Bounded-concurrency chapter fetching with in-order delivery.

Chapters are fetched in a sliding window: at most ``concurrency`` requests are
in flight, and a new chapter is admitted (in table order) as soon as any of
them finishes. Finished chapters wait in a reorder buffer until every chapter
before them has been delivered, so the consumer always sees results in
ascending index order no matter which request returned first.

A failing chapter is reported only when delivery reaches its index, which
makes the reported error the first failure in table order rather than the
first one to happen. Once a failure is known nothing past it is admitted,
and whatever is still in flight is cancelled when the run ends.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Dict, List, Optional, Sequence

from .errors import ChapterError, ConfigError, NovelError
from .fetch import ResourceFetcher
from .scrape import Chapter, ChapterResult
from .scrape.extract import MarkupExtractor

LOGGER = logging.getLogger(__name__)

CHAPTER_CONTENT = "div.chapter-content"
DEFAULT_CONCURRENCY = 5


class ChapterPipeline:
    """Fetch chapter pages concurrently and yield their content in order."""

    def __init__(
        self,
        fetcher: ResourceFetcher,
        extractor: Optional[MarkupExtractor] = None,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        content_selector: str = CHAPTER_CONTENT,
    ) -> None:
        if concurrency < 1:
            raise ConfigError(f"concurrency must be a positive integer, got {concurrency}")
        self.fetcher = fetcher
        self.extractor = extractor or MarkupExtractor()
        self.concurrency = concurrency
        self.content_selector = content_selector

    async def run(self, chapters: Sequence[Chapter]) -> AsyncIterator[ChapterResult]:
        """Yield a :class:`ChapterResult` per chapter in ascending index order.

        Raises :class:`ChapterError` for the lowest failing index once all
        chapters before it have been yielded.
        """

        total = len(chapters)
        in_flight: Dict[asyncio.Task, int] = {}
        finished: Dict[int, asyncio.Task] = {}
        next_admit = 0
        next_emit = 0
        # lowest index known to have failed; nothing above it is admitted
        failed_at = total

        try:
            while next_emit < total:
                while next_admit <= failed_at and next_admit < total and len(in_flight) < self.concurrency:
                    task = asyncio.ensure_future(self._fetch_chapter(next_admit, chapters[next_admit]))
                    in_flight[task] = next_admit
                    next_admit += 1

                done, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    index = in_flight.pop(task)
                    finished[index] = task
                    if task.exception() is not None and index < failed_at:
                        LOGGER.debug("Chapter %d failed; no longer admitting later chapters", index)
                        failed_at = index

                while next_emit in finished:
                    # result() re-raises the chapter's ChapterError
                    result = finished.pop(next_emit).result()
                    next_emit += 1
                    yield result
        finally:
            await self._discard(in_flight, finished)

    async def collect(self, chapters: Sequence[Chapter]) -> List[ChapterResult]:
        return [result async for result in self.run(chapters)]

    async def _fetch_chapter(self, index: int, chapter: Chapter) -> ChapterResult:
        LOGGER.info("fetching chapter %d...", index)
        try:
            markup = await self.fetcher.fetch_text(chapter.link)
            doc = self.extractor.parse(markup)
            content = self.extractor.extract_fragment(
                doc,
                self.content_selector,
                name="chapter content",
                url=self.fetcher.resolve(chapter.link),
            )
        except NovelError as exc:
            raise ChapterError(index, chapter, exc) from exc
        return ChapterResult(index=index, chapter=chapter, content=content)

    async def _discard(self, in_flight: Dict[asyncio.Task, int], finished: Dict[int, asyncio.Task]) -> None:
        if in_flight:
            LOGGER.debug("Cancelling %d in-flight chapter fetches", len(in_flight))
            for task in in_flight:
                task.cancel()
            await asyncio.gather(*in_flight, return_exceptions=True)
        for task in finished.values():
            # mark undelivered failures as retrieved
            if not task.cancelled():
                task.exception()


__all__ = ["CHAPTER_CONTENT", "DEFAULT_CONCURRENCY", "ChapterPipeline"]
