"""CLI entry point for Distant: serve the API or query an engine directly."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from pydantic import ValidationError

from distant import __version__
from distant.api.app import CONFIG_ENV_VAR
from distant.config.settings import ObservabilitySettings, Settings
from distant.engine.exceptions import ConfigurationError, DistantError
from distant.observability.logging import setup_logging


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="distant",
        description="Distant — search, scroll, and bulk ingestion for Elasticsearch-compatible engines",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (overrides config)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Distant {__version__}",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API server")
    serve.add_argument("--host", type=str, default=None, help="Server bind address (overrides config)")
    serve.add_argument("--port", "-p", type=int, default=None, help="Server port (overrides config)")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    search = commands.add_parser("search", help="Search an index and print the results as JSON")
    search.add_argument("targets", nargs="+", metavar="INDEX... QUERY", help="Index name(s) followed by the query text; the index may be omitted when engine.default_index is set")
    search.add_argument("--field", "-f", action="append", default=None, help="Field to match (repeatable)")
    search.add_argument("--length", "-n", type=int, default=10, help="Page length")
    search.add_argument("--offset", type=int, default=0, help="Starting rank")
    search.add_argument("--sort", type=str, default=None, help="Sort as FIELD or FIELD:asc|desc")
    search.add_argument(
        "--strategy",
        choices=["multi_match", "query_string"],
        default="multi_match",
        help="Text query clause",
    )
    search.add_argument("--all", action="store_true", help="Scroll through every page")

    commands.add_parser("indices", help="List indices with health and document counts")

    args = parser.parse_args(argv)
    settings = _load_settings(args.config)

    # Command output goes to stdout, so diagnostics go to stderr
    setup_logging(
        ObservabilitySettings(log_level=args.log_level or "warning", log_format="console"),
        stream=sys.stderr,
    )
    if args.log_level:
        settings.observability.log_level = args.log_level

    if args.command == "serve":
        _serve(settings, args)
        return

    try:
        if args.command == "search":
            _search(settings, args)
        elif args.command == "indices":
            _indices(settings)
    except DistantError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


def _load_settings(path: str | None) -> Settings:
    if path is None:
        return Settings()
    try:
        return Settings.from_yaml(path)
    except (FileNotFoundError, ConfigurationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _serve(settings: Settings, args: argparse.Namespace) -> None:
    if args.host:
        settings.server.host = args.host
    if args.port:
        settings.server.port = args.port

    if args.config:
        # The served app is built by uvicorn in its own process
        os.environ[CONFIG_ENV_VAR] = str(Path(args.config).resolve())

    import uvicorn

    uvicorn.run(
        "distant.api.app:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        workers=settings.server.workers if not args.reload else 1,
        reload=args.reload,
        log_level=settings.observability.log_level.lower(),
    )


def _search(settings: Settings, args: argparse.Namespace) -> None:
    from distant.client.client import DistantClient
    from distant.engine.normalizer import ResultNormalizer
    from distant.models.query import SearchFilter, SearchRequest, SortSpec

    if len(args.targets) >= 2:
        *indices, text = args.targets
    elif settings.engine.default_index:
        indices, text = [settings.engine.default_index], args.targets[0]
    else:
        print("Error: expected at least one index and a query (or set engine.default_index)", file=sys.stderr)
        sys.exit(1)

    try:
        sort = None
        if args.sort:
            field, _, order = args.sort.partition(":")
            sort = SortSpec(field=field, order=order or "asc")

        request = SearchRequest(
            indices=indices,
            filter=SearchFilter(global_filter=text, global_filter_fields=args.field or ["*"]),
            sort=sort,
            offset=args.offset,
            length=args.length,
            strategy=args.strategy,
            scroll=settings.engine.scroll_keep_alive if args.all else None,
        )
    except ValidationError as e:
        print(f"Error: invalid search: {e}", file=sys.stderr)
        sys.exit(1)

    client = DistantClient(settings)
    pages = client.scroll_all(request) if args.all else [client.search(request)]

    offset = args.offset
    for page in pages:
        response = ResultNormalizer.to_response(page, rank_offset=offset)
        offset += len(page.hits)
        print(json.dumps(response.model_dump(mode="json"), ensure_ascii=False, indent=2))


def _indices(settings: Settings) -> None:
    from distant.client.client import DistantClient

    indices = DistantClient(settings).list_indices()
    print(f"{'HEALTH':<8} {'INDEX':<40} {'DOCS':>10} {'DELETED':>10} {'SIZE':>10}")
    for descriptor in sorted(indices, key=lambda d: d.index):
        health = descriptor.health.value if descriptor.health else "-"
        print(
            f"{health:<8} {descriptor.index:<40} {descriptor.docs_count or 0:>10} "
            f"{descriptor.docs_deleted or 0:>10} {descriptor.store_size or '-':>10}"
        )


if __name__ == "__main__":
    main()
