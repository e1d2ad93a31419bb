"""Exception hierarchy shared by every stage of a conversion run."""

from __future__ import annotations

from typing import Optional

__all__ = [
    "NovelError",
    "ConfigError",
    "NetworkError",
    "DecodeError",
    "ExtractionError",
    "UnsupportedFormatError",
    "AssemblyError",
    "ChapterError",
]


class NovelError(Exception):
    """Base class for all errors raised while building an EPUB."""


class ConfigError(NovelError):
    """Invalid user supplied options."""


class NetworkError(NovelError):
    """A request failed at the transport level or returned a non-2xx status."""

    def __init__(self, url: str, status_code: Optional[int] = None, reason: str = "") -> None:
        self.url = url
        self.status_code = status_code
        self.reason = reason
        if status_code is not None:
            message = f"GET {url} returned HTTP {status_code}"
        else:
            message = f"GET {url} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class DecodeError(NovelError):
    """A response body could not be decoded as text."""

    def __init__(self, url: str, encoding: str) -> None:
        self.url = url
        self.encoding = encoding
        super().__init__(f"could not decode {url} as {encoding}")


class ExtractionError(NovelError):
    """A required element or attribute is missing from the page markup."""

    def __init__(self, field: str, url: Optional[str] = None) -> None:
        self.field = field
        self.url = url
        message = f"could not find {field}"
        if url:
            message = f"{message} in {url}"
        super().__init__(message)


class UnsupportedFormatError(NovelError):
    """The cover image is not a JPEG or PNG."""

    def __init__(self, mime_type: str) -> None:
        self.mime_type = mime_type
        super().__init__(f"unsupported cover format: {mime_type or 'unknown'}")


class AssemblyError(NovelError):
    """The EPUB container could not be built or written."""


class ChapterError(NovelError):
    """A single chapter failed to fetch or parse.

    ``error`` is the underlying :class:`NovelError`; it is also chained as
    ``__cause__`` when raised by the pipeline.
    """

    def __init__(self, index: int, chapter, error: NovelError) -> None:
        self.index = index
        self.chapter = chapter
        self.error = error
        super().__init__(f"chapter {index} ({chapter.name!r}): {error}")
