"""Search, filter, sort and paginate the in-memory catalog.

Everything here is pure: the functions never mutate the entry list they
are given, and ``ViewState`` transitions return a new record instead of
changing the current one.
"""

from __future__ import annotations

import locale
import logging
import math
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ..config import DEFAULT_PAGE_SIZE
from ..schemas.catalog import CatalogEntry

ALL_CATEGORIES = "all"
DEFAULT_SORT = "id"
PAGE_SIZE_OPTIONS = (12, 20, 50, 100)
SORT_OPTIONS: Dict[str, str] = {
    "id": "Sort by ID",
    "name": "Sort by Name",
    "height": "Sort by Height",
    "weight": "Sort by Weight",
}
MAX_VISIBLE_PAGES = 5

logger = logging.getLogger(__name__)


class ViewState(BaseModel):
    """Transient UI state for one list view session."""

    model_config = ConfigDict(frozen=True)

    query: str = ""
    category: str = ALL_CATEGORIES
    sort: str = DEFAULT_SORT
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    page: int = Field(default=1, ge=1)

    @property
    def filtered(self) -> bool:
        return bool(self.query) or self.category != ALL_CATEGORIES

    @property
    def is_default(self) -> bool:
        return not self.filtered and self.sort == DEFAULT_SORT

    def with_query(self, query: str) -> "ViewState":
        return self.model_copy(update={"query": query, "page": 1})

    def with_category(self, category: str) -> "ViewState":
        return self.model_copy(update={"category": category, "page": 1})

    def with_sort(self, sort: str) -> "ViewState":
        return self.model_copy(update={"sort": sort, "page": 1})

    def with_page_size(self, page_size: int) -> "ViewState":
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        return self.model_copy(update={"page_size": page_size, "page": 1})

    def go_to_page(self, page: int, total_pages: int) -> "ViewState":
        if page < 1 or page > total_pages:
            return self
        return self.model_copy(update={"page": page})

    def next_page(self, total_pages: int) -> "ViewState":
        return self.go_to_page(self.page + 1, total_pages)

    def previous_page(self, total_pages: int) -> "ViewState":
        return self.go_to_page(self.page - 1, total_pages)

    def clear_filters(self) -> "ViewState":
        return ViewState(page_size=self.page_size)


class ListPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: List[CatalogEntry]
    page: int
    page_size: int
    total_count: int
    total_pages: int
    start_index: int
    end_index: int
    filtered: bool = False
    page_numbers: List[Optional[int]] = Field(default_factory=list)


def _matches_query(entry: CatalogEntry, query: str) -> bool:
    return query.lower() in entry.name.lower() or query in str(entry.id)


def filter_entries(entries: Sequence[CatalogEntry], query: str = "", category: str = ALL_CATEGORIES) -> List[CatalogEntry]:
    result = list(entries)
    if query:
        result = [e for e in result if _matches_query(e, query)]
    if category != ALL_CATEGORIES:
        result = [e for e in result if category in e.types]
    return result


def _name_key(entry: CatalogEntry):
    # Case-insensitive first, collated with LC_COLLATE (see use_system_collation)
    return (locale.strxfrm(entry.name.casefold()), entry.name)


def use_system_collation() -> None:
    """Collate names with the environment's locale instead of the default "C" locale."""
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logger.warning("Could not set collation locale, names sort by code point: %s", e)


_SORTS: Dict[str, Callable[[List[CatalogEntry]], List[CatalogEntry]]] = {
    "id": lambda es: sorted(es, key=lambda e: e.id),
    "name": lambda es: sorted(es, key=_name_key),
    "height": lambda es: sorted(es, key=lambda e: e.height, reverse=True),
    "weight": lambda es: sorted(es, key=lambda e: e.weight, reverse=True),
}


def sort_entries(entries: Sequence[CatalogEntry], sort: str = DEFAULT_SORT) -> List[CatalogEntry]:
    # Unknown keys fall back to id ascending
    return _SORTS.get(sort, _SORTS[DEFAULT_SORT])(list(entries))


def total_pages_for(count: int, page_size: int) -> int:
    return math.ceil(count / page_size)


def paginate(entries: Sequence[CatalogEntry], page: int, page_size: int) -> List[CatalogEntry]:
    start = (page - 1) * page_size
    return list(entries[start:start + page_size])


def page_numbers(current: int, total: int, max_visible: int = MAX_VISIBLE_PAGES) -> List[Optional[int]]:
    """Page buttons to show; ``None`` marks an ellipsis."""
    start = max(1, current - max_visible // 2)
    end = min(total, start + max_visible - 1)
    if end - start + 1 < max_visible:
        start = max(1, end - max_visible + 1)

    pages: List[Optional[int]] = []
    if start > 1:
        pages.append(1)
        if start > 2:
            pages.append(None)
    pages.extend(range(start, end + 1))
    if end < total:
        if end < total - 1:
            pages.append(None)
        pages.append(total)
    return pages


def available_categories(entries: Sequence[CatalogEntry]) -> List[str]:
    return sorted({t for e in entries for t in e.types})


def process(entries: Sequence[CatalogEntry], state: ViewState) -> ListPage:
    processed = sort_entries(filter_entries(entries, state.query, state.category), state.sort)
    total_count = len(processed)
    total_pages = total_pages_for(total_count, state.page_size)
    start = (state.page - 1) * state.page_size
    return ListPage(
        items=paginate(processed, state.page, state.page_size),
        page=state.page,
        page_size=state.page_size,
        total_count=total_count,
        total_pages=total_pages,
        start_index=start,
        end_index=start + state.page_size,
        filtered=state.filtered,
        page_numbers=page_numbers(state.page, total_pages),
    )


def resolve_state(
    entries: Sequence[CatalogEntry],
    query: str = "",
    category: str = ALL_CATEGORIES,
    sort: str = DEFAULT_SORT,
    page_size: int = DEFAULT_PAGE_SIZE,
    page: int = 1,
) -> ViewState:
    """Replay request parameters as transitions from the default state.

    A requested page outside ``[1, total_pages]`` leaves the state on page 1.
    """
    state = ViewState().with_query(query).with_category(category).with_sort(sort).with_page_size(page_size)
    count = len(filter_entries(entries, state.query, state.category))
    return state.go_to_page(page, total_pages_for(count, state.page_size))
