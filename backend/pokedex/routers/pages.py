from typing import Callable, List
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse

from ..config import DEFAULT_PAGE_SIZE
from ..schemas.catalog import CatalogEntry
from ..services.list_processor import (
    ALL_CATEGORIES,
    DEFAULT_SORT,
    ViewState,
    available_categories,
    process,
    resolve_state,
)
from ..services.pokeapi import EntryNotFound, ListingFetchError, fetch_entry_detail, get_client
from ..store import get_catalog
from ..views import list_context, neighbour_ids, templates

router = APIRouter()


def detail_url(entry_id: int) -> str:
    return f"/pokemon/{entry_id}"


def page_url_for(state: ViewState) -> Callable[[int], str]:
    """Build list URLs that keep the current filters and only change the page."""
    params = {}
    if state.query:
        params["q"] = state.query
    if state.category != ALL_CATEGORIES:
        params["type"] = state.category
    if state.sort != DEFAULT_SORT:
        params["sort"] = state.sort
    if state.page_size != DEFAULT_PAGE_SIZE:
        params["page_size"] = state.page_size

    def page_url(page: int) -> str:
        return "/?" + urlencode({**params, "page": page})

    return page_url


async def load_catalog(client: httpx.AsyncClient) -> List[CatalogEntry]:
    try:
        return await get_catalog(client)
    except ListingFetchError as e:
        raise HTTPException(status_code=502, detail=f"PokeAPI listing unavailable: {e!s}") from e


@router.get("/", response_class=HTMLResponse)
async def list_view(
    request: Request,
    q: str = Query("", description="Search by name or ID"),
    category: str = Query(ALL_CATEGORIES, alias="type"),
    sort: str = Query(DEFAULT_SORT),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    page: int = Query(1),
    client: httpx.AsyncClient = Depends(get_client),
):
    entries = await load_catalog(client)
    state = resolve_state(entries, query=q, category=category, sort=sort, page_size=page_size, page=page)
    listing = process(entries, state)
    context = list_context(
        listing,
        state,
        categories=available_categories(entries),
        catalog_size=len(entries),
        page_url=page_url_for(state),
        detail_url=detail_url,
    )
    return templates.TemplateResponse(request, "list.html", context)


@router.get("/pokemon/{entry_id}", response_class=HTMLResponse)
async def detail_view(request: Request, entry_id: str, client: httpx.AsyncClient = Depends(get_client)):
    try:
        detail = await fetch_entry_detail(entry_id, client=client)
    except EntryNotFound as e:
        return templates.TemplateResponse(request, "not_found.html", {"message": str(e)}, status_code=404)

    context = {
        "pokemon": detail.entry,
        "description": detail.description,
        "home_url": "/",
        "detail_url": detail_url,
        **neighbour_ids(detail.entry.id),
    }
    return templates.TemplateResponse(request, "detail.html", context)
