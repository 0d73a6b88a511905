from typing import List

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query

from ..config import DEFAULT_PAGE_SIZE
from ..schemas.catalog import EntryDetail, PaginatedEntries
from ..services.list_processor import ALL_CATEGORIES, DEFAULT_SORT, available_categories, process, resolve_state
from ..services.pokeapi import EntryNotFound, fetch_entry_detail, get_client
from .pages import load_catalog

router = APIRouter()


@router.get("/entries", response_model=PaginatedEntries)
async def list_entries(
    q: str = Query("", description="Case-insensitive name match, or a substring of the id"),
    category: str = Query(ALL_CATEGORIES, alias="type"),
    sort: str = Query(DEFAULT_SORT, description="id, name, height or weight"),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    page: int = Query(1),
    client: httpx.AsyncClient = Depends(get_client),
):
    entries = await load_catalog(client)
    state = resolve_state(entries, query=q, category=category, sort=sort, page_size=page_size, page=page)
    listing = process(entries, state)
    return PaginatedEntries(
        page=listing.page,
        page_size=listing.page_size,
        total=listing.total_count,
        total_pages=listing.total_pages,
        items=listing.items,
    )


@router.get("/entries/{entry_id}", response_model=EntryDetail)
async def get_entry(entry_id: str, client: httpx.AsyncClient = Depends(get_client)):
    try:
        return await fetch_entry_detail(entry_id, client=client)
    except EntryNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.get("/types", response_model=List[str])
async def list_types(client: httpx.AsyncClient = Depends(get_client)):
    return available_categories(await load_catalog(client))
