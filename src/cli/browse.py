# =============================================================================
# src/cli/browse.py - CLI Browse Command (one page of a resource kind)
# =============================================================================
#
# Runs the same aggregation the /api/v1/resources/{kind} route runs, straight
# against the configured WPGraphQL endpoint, and prints the page:
#
#   python -m src.cli.browse video
#   python -m src.cli.browse video --filter bucket=accolades
#   python -m src.cli.browse project --q metal --filter sa=sarasota --json
#   python -m src.cli.browse blog --first 10 --after b2Zmc2V0OjEw
#   python -m src.cli.browse blog --all --json
#
# --filter accepts taxonomy keys or their aliases (bk, cat, mt, rc, sa) and
# may be repeated.  --json prints the camelCase page body and implies --quiet.
# =============================================================================

"""Standalone CLI for browsing one page of a resource collection.

Usage::

    python -m src.cli.browse video --filter bucket=accolades
    python -m src.cli.browse project --q "metal roof" --json

Exits 0 on success, 1 on a usage or configuration error, 2 when the content
API fails.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from src.models.query import PageResult
from src.services.resource_collections import COLLECTIONS
from src.utils.errors import ConfigurationError, ContentFetchError, UnknownCollectionError

# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


def parse_filter_args(text: str | None, raw_filters: list[str] | None) -> dict[str, Any]:
    """Turn ``--q`` and repeated ``--filter tax=a,b`` into a filters mapping.

    Repeated filters for the same key are merged.

    Raises:
        ValueError: a ``--filter`` value has no ``=``.
    """
    filters: dict[str, Any] = {}
    if text:
        filters["q"] = text
    for raw in raw_filters or []:
        key, sep, value = raw.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid --filter '{raw}', expected taxonomy=slug[,slug]")
        slugs = [s.strip() for s in value.split(",") if s.strip()]
        filters.setdefault(key.strip(), []).extend(slugs)
    return filters


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_text_output(kind: str, result: PageResult) -> str:
    """Format a page as a human-readable report."""
    lines: list[str] = []
    sep = "=" * 60

    lines.append(sep)
    lines.append(f"  {kind}: {len(result.items)} of {result.total} matching")
    lines.append(sep)

    for item in result.items:
        date = item.published_at.strftime("%Y-%m-%d") if item.published_at else "----------"
        lines.append(f"  {date}  {item.title}  [{item.id}]")

    if result.facets:
        lines.append("")
        lines.append("FACETS")
        lines.append("-" * 40)
        for group in result.facets:
            values = ", ".join(f"{b.name} ({b.count})" for b in group.buckets)
            lines.append(f"  {group.taxonomy}: {values or '-'}")

    lines.append("")
    if result.page_info.has_next_page:
        lines.append(f"Next page: --after {result.page_info.end_cursor}")
    if result.meta.truncated:
        lines.append("Note: a content pool hit the fetch ceiling; deeper results may be missing.")
    return "\n".join(lines)


def format_json_output(result: PageResult) -> str:
    return json.dumps(result.model_dump(mode="json", by_alias=True), indent=2)


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


def _suppress_logs() -> None:
    """Send structlog and stdlib logging to stderr at WARNING+.

    Must run before ``src.main`` is imported so cached loggers pick up this
    configuration.
    """
    import logging
    import os

    import structlog

    os.environ["LOG_LEVEL"] = "WARNING"

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.WARNING)
    root.addHandler(handler)
    root.setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def _run(args: argparse.Namespace) -> int:
    """Build the aggregator, fetch one page (or all pages) and print it."""
    # Deferred: src.main loads settings and builds the app on import.
    import httpx

    from src.main import build_aggregator, settings

    try:
        filters = parse_filter_args(args.q, args.filter)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    async with httpx.AsyncClient(timeout=settings.wp_request_timeout) as http_client:
        try:
            aggregator, _ = build_aggregator(settings, http_client)
        except ConfigurationError as exc:
            print(f"Error: {exc.message}", file=sys.stderr)
            return 1

        try:
            if args.all:
                items = await aggregator.collect(args.kind, filters)
                result = PageResult(items=items, total=len(items))
            else:
                result = await aggregator.aggregate(
                    args.kind, filters, first=args.first, after=args.after
                )
        except UnknownCollectionError as exc:
            print(f"Error: {exc.message}", file=sys.stderr)
            return 1
        except ContentFetchError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 2

    print(format_json_output(result) if args.json_output else format_text_output(args.kind, result))
    return 0


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.browse",
        description="Browse one filtered, faceted page of a resource collection.",
    )
    parser.add_argument("kind", choices=sorted(COLLECTIONS), help="Resource kind.")
    parser.add_argument("--q", type=str, default=None, help="Free-text query.")
    parser.add_argument(
        "--filter",
        action="append",
        default=[],
        metavar="TAXONOMY=SLUG[,SLUG]",
        help="Taxonomy selection; may be repeated.",
    )
    parser.add_argument("--first", type=int, default=None, help="Page size.")
    parser.add_argument("--after", type=str, default=None, help="Cursor from a previous page.")
    parser.add_argument(
        "--all",
        action="store_true",
        help="Follow cursors and print every matching item (no facets).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print the page as JSON.",
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress log output.")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the browse tool."""
    args = build_parser().parse_args(argv)
    if args.quiet or args.json_output:
        _suppress_logs()
    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
