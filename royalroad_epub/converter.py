"""Conversion of a Royal Road story into an EPUB file.

This module keeps the whole run in one place so the CLI stays a thin
wrapper: resolve the story page, build the document and add the cover, stream
the chapters through the bounded pipeline in order, then write the result
atomically. Every stage raises a :class:`~royalroad_epub.errors.NovelError`
subclass and nothing is retried; the first error ends the run.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import logging
import time

import httpx

from .assembler import EpubAssembler, EpubDocument, mime_type_for
from .errors import ConfigError
from .fetch import DEFAULT_BASE_URL, DEFAULT_USER_AGENT, ResourceFetcher
from .pipeline import DEFAULT_CONCURRENCY, ChapterPipeline
from .scrape import Story
from .scrape.extract import MarkupExtractor
from .scrape.story import StoryResolver

__all__ = [
    "ConversionOptions",
    "ConversionResult",
    "EpubConverter",
]

logger = logging.getLogger(__name__)


@dataclass
class ConversionOptions:
    """Options that control a single story download."""

    url: str
    output_path: Path
    concurrency: int = DEFAULT_CONCURRENCY
    base_url: str = DEFAULT_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    timeout: Optional[float] = None
    language: str = "en"

    def __post_init__(self) -> None:
        if not self.url:
            raise ConfigError("A story URL is required")
        if not str(self.output_path):
            raise ConfigError("An output path is required")
        self.output_path = Path(self.output_path)
        if isinstance(self.concurrency, bool) or not isinstance(self.concurrency, int):
            raise ConfigError(f"Concurrency must be an integer, got {self.concurrency!r}")
        if self.concurrency < 1:
            raise ConfigError(f"Concurrency must be at least 1, got {self.concurrency}")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError("Timeout must be positive")


@dataclass
class ConversionResult:
    """Outcome returned after a conversion run."""

    output_path: Path
    story: Story
    chapter_count: int
    fetch_count: int
    elapsed_seconds: float


class EpubConverter:
    """Download a story and write it as an EPUB."""

    def __init__(
        self,
        *,
        assembler: Optional[EpubAssembler] = None,
        extractor: Optional[MarkupExtractor] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.assembler = assembler or EpubAssembler()
        self.extractor = extractor or MarkupExtractor()
        self.transport = transport

    # Public API -----------------------------------------------------------------
    async def convert(self, options: ConversionOptions) -> ConversionResult:
        start_time = time.perf_counter()
        logger.debug("Starting conversion with options: %s", options)

        fetcher = ResourceFetcher(
            base_url=options.base_url,
            user_agent=options.user_agent,
            timeout=options.timeout,
            transport=self.transport,
        )
        async with fetcher:
            logger.info("fetching story...")
            story = await StoryResolver(fetcher, self.extractor).resolve(options.url)
            logger.info("Found %r by %s with %d chapters", story.title, story.author, len(story.chapters))

            doc = self.assembler.new_document(
                story.title,
                story.author,
                story.description,
                language=options.language,
            )

            logger.info("fetching cover...")
            await self._add_cover(fetcher, doc, story.cover)

            pipeline = ChapterPipeline(fetcher, self.extractor, concurrency=options.concurrency)
            results = pipeline.run(story.chapters)
            try:
                async for result in results:
                    self.assembler.append_chapter(doc, result.index, result.chapter.name, result.content)
            finally:
                # cancels outstanding fetches before the client is closed
                await results.aclose()
            fetch_count = fetcher.request_count

        logger.info("generating epub...")
        output_path = self.assembler.write(doc, options.output_path)

        elapsed = time.perf_counter() - start_time
        logger.info("Wrote %d chapters to %s in %.2fs", len(doc.chapters), output_path, elapsed)

        return ConversionResult(
            output_path=output_path,
            story=story,
            chapter_count=len(doc.chapters),
            fetch_count=fetch_count,
            elapsed_seconds=elapsed,
        )

    def convert_sync(self, options: ConversionOptions) -> ConversionResult:
        return asyncio.run(self.convert(options))

    # Cover -----------------------------------------------------------------------
    async def _add_cover(self, fetcher: ResourceFetcher, doc: EpubDocument, url: str) -> None:
        resource = await fetcher.fetch(url)
        mime_type = mime_type_for(resource.url, resource.content_type)
        self.assembler.set_cover(doc, resource.content, mime_type)
