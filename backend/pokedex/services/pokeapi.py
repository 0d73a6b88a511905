"""PokeAPI REST client.

Two build-time routines live here:

* ``fetch_all_entries()`` pages through the listing endpoint and expands
  every reference into a ``CatalogEntry``. Detail requests go out in
  fixed-size batches issued concurrently, with a fixed pause between
  batches. A reference whose detail request fails is logged and dropped.

* ``fetch_entry_detail()`` joins the ``pokemon`` and ``pokemon-species``
  records for one id. Only the first one is required.

Docs: https://pokeapi.co/docs/v2
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar

import httpx

from ..config import MOVE_PREFIX, api_base, get_setting
from ..schemas.catalog import Ability, CatalogEntry, EntryDetail, EntryReference, Sprites, Stat

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class PokeAPIError(Exception):
    pass


class ListingFetchError(PokeAPIError):
    """The reference listing could not be retrieved; nothing can be generated."""


class EntryNotFound(PokeAPIError):
    def __init__(self, entry_id: Any):
        super().__init__(f"Pokemon {entry_id} not found")
        self.entry_id = entry_id


def _headers() -> Dict[str, str]:
    return {
        "Accept": "application/json",
        "User-Agent": "Pokedex/1.0 (static catalog builder)",
    }


def _new_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(float(get_setting("POKEAPI_TIMEOUT"))),
        headers=_headers(),
    )


async def get_client() -> AsyncIterator[httpx.AsyncClient]:
    """FastAPI dependency: one upstream client per request."""
    async with _new_client() as client:
        yield client


@asynccontextmanager
async def client_scope(client: Optional[httpx.AsyncClient]) -> AsyncIterator[httpx.AsyncClient]:
    # Borrow the caller's client, or own one for the duration of the call
    if client is not None:
        yield client
        return
    async with _new_client() as owned:
        yield owned


async def _get_json(client: httpx.AsyncClient, url: str) -> Optional[Any]:
    """GET ``url`` and return the decoded body, or ``None`` on any failure."""
    try:
        r = await client.get(url)
    except httpx.HTTPError as e:
        logger.warning("Request to %s failed: %s: %s", url, e.__class__.__name__, e)
        return None
    if r.status_code != 200:
        logger.warning("Request to %s returned status %s", url, r.status_code)
        return None
    try:
        return r.json()
    except ValueError as e:
        logger.warning("Request to %s returned invalid JSON: %s", url, e)
        return None


def entry_from_payload(details: Dict[str, Any], url: Optional[str] = None, move_limit: Optional[int] = None) -> CatalogEntry:
    """Map a raw ``/pokemon/{id}`` body onto ``CatalogEntry``.

    Raises ``KeyError``/``TypeError``/``ValueError`` when required fields are missing.
    """
    sprites = details.get("sprites") or {}
    other = sprites.get("other") or {}
    artwork = other.get("official-artwork") or {}

    moves = [m["move"]["name"] for m in details.get("moves") or []]
    if move_limit is not None:
        moves = moves[:move_limit]

    return CatalogEntry(
        id=details["id"],
        name=details["name"],
        url=url,
        sprites=Sprites(
            front_default=sprites.get("front_default"),
            official_artwork=artwork.get("front_default"),
        ),
        types=[t["type"]["name"] for t in details.get("types") or []],
        height=details.get("height") or 0,
        weight=details.get("weight") or 0,
        abilities=[
            Ability(name=a["ability"]["name"], is_hidden=bool(a.get("is_hidden")))
            for a in details.get("abilities") or []
        ],
        stats=[
            Stat(name=s["stat"]["name"], base_stat=s["base_stat"])
            for s in details.get("stats") or []
        ],
        moves=moves,
    )


def extract_description(species: Optional[Dict[str, Any]], language: Optional[str] = None) -> Optional[str]:
    """First flavor text in ``language`` with form feeds replaced by spaces."""
    if not species:
        return None
    lang = language or get_setting("DESCRIPTION_LANGUAGE")
    for entry in species.get("flavor_text_entries") or []:
        if not isinstance(entry, dict):
            continue
        if (entry.get("language") or {}).get("name") != lang:
            continue
        text = entry.get("flavor_text")
        if not isinstance(text, str):
            return None
        return text.replace("\f", " ")
    return None


async def _in_batches(
    items: List[T],
    worker: Callable[[T], Awaitable[Optional[R]]],
    batch_size: int,
    delay: float,
) -> List[R]:
    """Run ``worker`` over ``items`` batch by batch, keeping input order and dropping ``None`` results."""
    results: List[R] = []
    total_batches = (len(items) + batch_size - 1) // batch_size
    for n, start in enumerate(range(0, len(items), batch_size), start=1):
        batch = items[start:start + batch_size]
        logger.info("Processing batch %d/%d", n, total_batches)
        done = await asyncio.gather(*(worker(item) for item in batch))
        results.extend(r for r in done if r is not None)
        if n < total_batches and delay > 0:
            await asyncio.sleep(delay)
    return results


async def fetch_listing(client: httpx.AsyncClient, limit: Optional[int] = None) -> List[EntryReference]:
    limit = int(limit if limit is not None else get_setting("CATALOG_LIMIT"))
    url = f"{api_base()}/pokemon?limit={limit}"
    data = await _get_json(client, url)
    if not isinstance(data, dict) or not isinstance(data.get("results"), list):
        raise ListingFetchError(f"Could not fetch listing from {url}")
    try:
        return [EntryReference(**ref) for ref in data["results"]]
    except (TypeError, ValueError) as e:
        raise ListingFetchError(f"Malformed listing from {url}: {e}") from e


async def fetch_all_entries(
    limit: Optional[int] = None,
    batch_size: Optional[int] = None,
    delay: Optional[float] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> List[CatalogEntry]:
    batch_size = int(batch_size or get_setting("FETCH_BATCH_SIZE"))
    delay = float(delay if delay is not None else get_setting("FETCH_BATCH_DELAY"))

    async with client_scope(client) as c:
        logger.info("Fetching all Pokemon data for static generation...")
        refs = await fetch_listing(c, limit)
        logger.info("Found %d Pokemon. Fetching details...", len(refs))

        async def fetch_one(ref: EntryReference) -> Optional[CatalogEntry]:
            details = await _get_json(c, ref.url)
            if details is None:
                logger.error("Failed to fetch %s", ref.name)
                return None
            try:
                return entry_from_payload(details, url=ref.url, move_limit=MOVE_PREFIX)
            except (KeyError, TypeError, ValueError) as e:
                logger.error("Failed to map %s: %s", ref.name, e)
                return None

        entries = await _in_batches(refs, fetch_one, batch_size, delay)

    logger.info("Successfully fetched details for %d Pokemon", len(entries))
    return entries


async def fetch_entry_ids(limit: Optional[int] = None, client: Optional[httpx.AsyncClient] = None) -> List[int]:
    """Ids of every listed entry, in listing order."""
    async with client_scope(client) as c:
        refs = await fetch_listing(c, limit)
    ids: List[int] = []
    for ref in refs:
        try:
            ids.append(int(ref.entry_id))
        except (IndexError, ValueError):
            logger.warning("Skipping listing reference with unusable url: %s", ref.url)
    logger.info("Generated %d static params", len(ids))
    return ids


async def fetch_entry_detail(entry_id: Any, client: Optional[httpx.AsyncClient] = None) -> EntryDetail:
    base = api_base()
    async with client_scope(client) as c:
        pokemon, species = await asyncio.gather(
            _get_json(c, f"{base}/pokemon/{entry_id}"),
            _get_json(c, f"{base}/pokemon-species/{entry_id}"),
        )
    if not isinstance(pokemon, dict):
        raise EntryNotFound(entry_id)
    try:
        entry = entry_from_payload(pokemon)
    except (KeyError, TypeError, ValueError) as e:
        logger.error("Failed to map Pokemon %s: %s", entry_id, e)
        raise EntryNotFound(entry_id) from e
    return EntryDetail(
        entry=entry,
        description=extract_description(species if isinstance(species, dict) else None),
    )


async def fetch_entry_details(
    ids: Iterable[int],
    batch_size: Optional[int] = None,
    delay: Optional[float] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> List[EntryDetail]:
    """Detail records for many ids with the bulk batching policy; not-found ids are dropped."""
    batch_size = int(batch_size or get_setting("FETCH_BATCH_SIZE"))
    delay = float(delay if delay is not None else get_setting("FETCH_BATCH_DELAY"))

    async with client_scope(client) as c:

        async def fetch_one(entry_id: int) -> Optional[EntryDetail]:
            try:
                return await fetch_entry_detail(entry_id, client=c)
            except EntryNotFound:
                logger.warning("Pokemon %s not found, skipping", entry_id)
                return None

        return await _in_batches(list(ids), fetch_one, batch_size, delay)
