"""Freeze the catalog into a static site.

Usage:
  python -m pokedex.build --output out [--limit 151]

Produces:
  out/
    index.html               - list view, default filters, page 1
    page/{n}/index.html      - further pages of the default list view
    pokemon/{id}/index.html  - one detail page per listed id
    404.html
    catalog.json             - every fetched entry
    static/                  - stylesheet and placeholder image

Images are not copied or transformed; pages link the upstream URLs.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import shutil
import sys
from pathlib import Path
from typing import List, Optional

import httpx
from pydantic import BaseModel

from .schemas.catalog import CatalogEntry, EntryDetail
from .services.list_processor import ViewState, available_categories, process, use_system_collation
from .services.pokeapi import (
    ListingFetchError,
    client_scope,
    fetch_all_entries,
    fetch_entry_details,
    fetch_entry_ids,
)
from .store import write_snapshot
from .views import STATIC_DIR, list_context, neighbour_ids, render

logger = logging.getLogger(__name__)


class BuildReport(BaseModel):
    entries: int
    list_pages: int
    detail_pages: int
    skipped: int


def static_page_url(page: int) -> str:
    return "/" if page == 1 else f"/page/{page}/"


def static_detail_url(entry_id: int) -> str:
    return f"/pokemon/{entry_id}/"


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def write_list_pages(entries: List[CatalogEntry], output: Path) -> int:
    categories = available_categories(entries)
    state = ViewState()
    listing = process(entries, state)
    written = 0
    # An empty catalog still gets an index page showing the empty state
    for page in range(1, max(listing.total_pages, 1) + 1):
        state = state.go_to_page(page, listing.total_pages)
        listing = process(entries, state)
        html = render(
            "list.html",
            list_context(
                listing,
                state,
                categories=categories,
                catalog_size=len(entries),
                page_url=static_page_url,
                detail_url=static_detail_url,
                interactive=False,
            ),
        )
        target = output / "index.html" if page == 1 else output / "page" / str(page) / "index.html"
        _write(target, html)
        written += 1
    return written


def write_detail_page(detail: EntryDetail, output: Path) -> None:
    entry = detail.entry
    html = render(
        "detail.html",
        {
            "pokemon": entry,
            "description": detail.description,
            "home_url": "/",
            "detail_url": static_detail_url,
            **neighbour_ids(entry.id),
        },
    )
    _write(output / "pokemon" / str(entry.id) / "index.html", html)


async def build_site(
    output: Path,
    limit: Optional[int] = None,
    batch_size: Optional[int] = None,
    delay: Optional[float] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> BuildReport:
    output = Path(output)
    async with client_scope(client) as c:
        entries = await fetch_all_entries(limit=limit, batch_size=batch_size, delay=delay, client=c)
        list_pages = write_list_pages(entries, output)
        write_snapshot(entries, output / "catalog.json")

        logger.info("Generating static params for all Pokemon...")
        ids = await fetch_entry_ids(limit=limit, client=c)
        details = await fetch_entry_details(ids, batch_size=batch_size, delay=delay, client=c)

    for detail in details:
        write_detail_page(detail, output)
    _write(output / "404.html", render("not_found.html", {"message": None}))
    shutil.copytree(STATIC_DIR, output / "static", dirs_exist_ok=True)

    report = BuildReport(
        entries=len(entries),
        list_pages=list_pages,
        detail_pages=len(details),
        skipped=len(ids) - len(details),
    )
    logger.info(
        "Static site written to %s: %d list pages, %d detail pages (%d skipped)",
        output, report.list_pages, report.detail_pages, report.skipped,
    )
    return report


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Build the static Pokédex site")
    parser.add_argument("--output", "-o", default="out", help="Output directory (default: out)")
    parser.add_argument("--limit", type=int, default=None, help="Maximum catalog size (default: CATALOG_LIMIT)")
    parser.add_argument("--batch-size", type=int, default=None, help="Concurrent requests per batch")
    parser.add_argument("--delay", type=float, default=None, help="Pause between batches in seconds")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    use_system_collation()
    try:
        asyncio.run(build_site(Path(args.output), limit=args.limit, batch_size=args.batch_size, delay=args.delay))
    except ListingFetchError as e:
        logger.error("Build aborted: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
