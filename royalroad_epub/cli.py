"""Command line interface for royalroad-epub."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import List, Optional

from .converter import ConversionOptions, EpubConverter
from .errors import ConfigError, NovelError
from .fetch import DEFAULT_USER_AGENT
from .pipeline import DEFAULT_CONCURRENCY
from . import __version__

LOG_LEVEL_ENV = "ROYALROAD_EPUB_LOG_LEVEL"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="royalroad-epub",
        description="Download a Royal Road story and save it as an EPUB.",
    )
    parser.add_argument("-u", "--url", required=True, help="Story page URL (a chapter URL also works)")
    parser.add_argument("-o", "--out", dest="output_path", type=Path, required=True, help="Destination EPUB file")
    parser.add_argument(
        "-c",
        "--concurrent",
        dest="concurrency",
        type=int,
        default=DEFAULT_CONCURRENCY,
        help=f"Number of chapters fetched at the same time (default {DEFAULT_CONCURRENCY})",
    )
    parser.add_argument("--timeout", type=float, help="Per-request timeout in seconds (default: none)")
    parser.add_argument("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header sent with requests")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only print warnings and errors")
    parser.add_argument("--version", action="version", version=f"royalroad-epub {__version__}")
    return parser


def configure_logging(verbose: bool, quiet: bool) -> None:
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO
    override = os.getenv(LOG_LEVEL_ENV)
    if override:
        level = logging.getLevelName(override.upper())
        if not isinstance(level, int):
            raise ConfigError(f"Invalid {LOG_LEVEL_ENV}: {override}")
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")
    logging.getLogger("royalroad_epub").setLevel(level)


def create_options(namespace: argparse.Namespace) -> ConversionOptions:
    return ConversionOptions(
        url=namespace.url,
        output_path=namespace.output_path,
        concurrency=namespace.concurrency,
        timeout=namespace.timeout,
        user_agent=namespace.user_agent,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    log = logging.getLogger(__name__)
    try:
        configure_logging(args.verbose, args.quiet)
        options = create_options(args)
    except ConfigError as exc:
        log.error(str(exc))
        return 2

    try:
        result = EpubConverter().convert_sync(options)
    except NovelError as exc:
        log.error("%s: %s", type(exc).__name__, exc)
        return 1

    print(f"Wrote {result.chapter_count} chapters of {result.story.title!r} to {result.output_path}")
    print(f"Elapsed: {result.elapsed_seconds:.2f}s")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
