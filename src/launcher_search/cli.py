"""Command line entry point: run one search against a catalog snapshot file.

Usage:
    launcher-search --catalog snapshot.json [--kind extension] [--limit 10] QUERY
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
import logging
from pathlib import Path
import sys

import orjson

from launcher_search.adapters.catalog_source import CatalogFormatError, FileCatalogSource
from launcher_search.config import SearchSettings
from launcher_search.domain.catalog import ItemKind
from launcher_search.domain.search import SearchFilters
from launcher_search.observability.logging import configure_logging_from_settings
from launcher_search.service_layer.search_service import SearchService


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BAD_SNAPSHOT = 2


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="launcher-search",
        description="Search a launcher catalog snapshot and print ranked results as JSON",
    )
    parser.add_argument("query", metavar="QUERY", help="Query text; an empty string lists every eligible item")
    parser.add_argument(
        "--catalog",
        type=Path,
        required=True,
        help="Path to a catalog snapshot file (schema version 1)",
    )
    parser.add_argument(
        "--kind",
        dest="kinds",
        action="append",
        choices=[kind.value for kind in ItemKind],
        help="Restrict results to an item kind (repeatable)",
    )
    parser.add_argument(
        "--category",
        dest="categories",
        action="append",
        metavar="CATEGORY",
        help="Restrict results to a category (repeatable)",
    )
    parser.add_argument("--favorites", action="store_true", help="Only favorite items")
    parser.add_argument("--enabled-only", action="store_true", help="Skip disabled items")
    parser.add_argument("--limit", type=int, help="Maximum number of results to print")
    parser.add_argument("--log-level", help="Override LAUNCHER_SEARCH_LOG_LEVEL")
    parser.add_argument("--plain-logs", action="store_true", help="Human-readable logs instead of JSON")
    return parser


def _validate_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if args.limit is not None and args.limit < 1:
        parser.error("--limit must be >= 1")


def _build_filters(args: argparse.Namespace) -> SearchFilters:
    return SearchFilters(
        kinds=frozenset(ItemKind(kind) for kind in args.kinds) if args.kinds else None,
        categories=frozenset(args.categories) if args.categories else None,
        favorite=True if args.favorites else None,
        enabled=True if args.enabled_only else None,
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)
    _validate_args(parser, args)

    settings = SearchSettings()
    configure_logging_from_settings(
        settings,
        level=args.log_level,
        json_output=False if args.plain_logs else None,
        stream=sys.stderr,
    )

    try:
        snapshot = FileCatalogSource(args.catalog).snapshot()
    except CatalogFormatError as exc:
        logger.error("Cannot load catalog snapshot: %s", exc)
        return EXIT_BAD_SNAPSHOT

    with SearchService(settings, snapshot=snapshot) as service:
        results = service.search(args.query, _build_filters(args), limit=args.limit)

    sys.stdout.write(orjson.dumps(results.to_dict(), option=orjson.OPT_INDENT_2).decode("utf-8"))
    sys.stdout.write("\n")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
