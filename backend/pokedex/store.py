"""In-memory catalog for the lifetime of the process.

The catalog is loaded once: from a ``catalog.json`` snapshot when
``CATALOG_SNAPSHOT`` points at one, otherwise by a full bulk fetch.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import httpx

from .config import get_setting
from .schemas.catalog import CatalogEntry
from .services.pokeapi import fetch_all_entries

logger = logging.getLogger(__name__)

_CATALOG: Optional[List[CatalogEntry]] = None
# Shared in-flight load; concurrent callers await the same task
_LOADING: Optional["asyncio.Task[List[CatalogEntry]]"] = None


def load_snapshot(path: Union[str, Path]) -> List[CatalogEntry]:
    with Path(path).open("r", encoding="utf-8") as f:
        raw = json.load(f)
    return [CatalogEntry(**item) for item in raw]


def write_snapshot(entries: Sequence[CatalogEntry], path: Union[str, Path]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        json.dump([e.model_dump() for e in entries], f, ensure_ascii=False)


def set_catalog(entries: Optional[Sequence[CatalogEntry]]) -> None:
    global _CATALOG, _LOADING
    _LOADING = None
    _CATALOG = list(entries) if entries is not None else None


def catalog_size() -> Optional[int]:
    return len(_CATALOG) if _CATALOG is not None else None


async def _load_catalog(client: Optional[httpx.AsyncClient]) -> List[CatalogEntry]:
    global _CATALOG, _LOADING
    try:
        snapshot = get_setting("CATALOG_SNAPSHOT")
        if snapshot:
            _CATALOG = load_snapshot(snapshot)
            logger.info("Loaded %d Pokemon from snapshot %s", len(_CATALOG), snapshot)
        else:
            _CATALOG = await fetch_all_entries(client=client)
        return _CATALOG
    finally:
        # A failed load is retried by the next caller
        _LOADING = None


async def get_catalog(client: Optional[httpx.AsyncClient] = None) -> List[CatalogEntry]:
    global _LOADING
    # Return from memory if already loaded
    if _CATALOG is not None:
        return _CATALOG
    if _LOADING is None:
        _LOADING = asyncio.ensure_future(_load_catalog(client))
    # One cancelled request must not abort the load for the others
    return await asyncio.shield(_LOADING)
