"""Terminal client that reuses the in-process search logic."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Iterable

from catalog_search.config import settings
from catalog_search.database import create_db_engine
from catalog_search.dispatcher import SearchDispatcher
from catalog_search.es_client import create_client
from catalog_search.health import EngineHealthGate
from catalog_search.relational import RelationalSearchPath
from catalog_search.search import EngineSearchPath

GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
RESET = "\033[0m"

SOURCE_COLORS = {"engine": GREEN, "relational": YELLOW, "relational_fallback": YELLOW}


def build_dispatcher() -> SearchDispatcher:
    es = create_client(settings)
    gate = EngineHealthGate(es)
    return SearchDispatcher(gate, EngineSearchPath(es, settings.es_index), RelationalSearchPath(create_db_engine(settings)))


def pretty_print_response(query: str, payload: dict) -> None:
    data = payload.get("data", {})
    if not payload.get("success"):
        print(f"Query: {query} | {RED}{payload.get('error_code')}{RESET}: {payload.get('error')}")
        for error in data.get("diagnostics", {}).get("errors", []):
            print(f"  {error['stage']}: {error['kind']}: {error['message']}")
        return

    products = data.get("products", [])
    source = data.get("source", "")
    color = SOURCE_COLORS.get(source, RESET)
    duration = data.get("diagnostics", {}).get("duration_ms", 0)
    print(
        f"Query: {query} | source: {color}{source}{RESET} | total: {data.get('total')} "
        f"| page {data.get('page')} ({len(products)} shown) | {duration} ms"
    )
    if data.get("search_variants"):
        print(f"  variants: {', '.join(data['search_variants'])}")
    for idx, item in enumerate(products, start=1):
        score = item.get("relevance_score")
        score_repr = f"{score:.2f}" if isinstance(score, (int, float)) else "-"
        print(
            f"  {idx:02d}. score={score_repr} | {item.get('external_id')} | "
            f"{item.get('brand_name')} | {item.get('name')}"
        )


def interactive_shell(dispatcher: SearchDispatcher, params: dict) -> None:
    print("Interactive catalog search. Type 'exit' to quit.")
    while True:
        try:
            query = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return
        if query.lower() in {"exit", "quit"}:
            return
        pretty_print_response(query, dispatcher.search({**params, "q": query}))


def batch_mode(dispatcher: SearchDispatcher, file_path: Path, params: dict) -> None:
    with file_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            query = line.strip()
            if not query:
                continue
            pretty_print_response(query, dispatcher.search({**params, "q": query}))


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CLI client for the catalog search service")
    parser.add_argument("query", nargs="?", help="Query string. If omitted, starts REPL mode.")
    parser.add_argument("--batch", type=Path, help="File with queries to execute line by line")
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--limit", type=int, default=settings.default_limit)
    parser.add_argument("--sort", default="relevance", choices=["relevance", "name", "external_id", "popularity"])
    parser.add_argument("--list", action="store_true", help="List the catalog without a query")
    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(level=logging.getLevelName(settings.log_level.upper()))
    dispatcher = build_dispatcher()
    params = {"page": args.page, "limit": args.limit, "sort": args.sort}

    if args.batch:
        batch_mode(dispatcher, args.batch, params)
        return 0
    if args.query or args.list:
        payload = dispatcher.search({**params, "q": args.query or ""})
        pretty_print_response(args.query or "", payload)
        return 0 if payload.get("success") else 1
    interactive_shell(dispatcher, params)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
