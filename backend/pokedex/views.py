"""Template environment and display helpers shared by the server and the static build."""

from pathlib import Path
from typing import Callable, Dict, Optional

from fastapi.templating import Jinja2Templates

from .config import DETAIL_MOVE_COUNT, PLACEHOLDER_IMAGE, STAT_MAX, get_setting
from .schemas.catalog import CatalogEntry
from .services.list_processor import PAGE_SIZE_OPTIONS, SORT_OPTIONS, ListPage, ViewState

PACKAGE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = PACKAGE_DIR / "templates"
STATIC_DIR = PACKAGE_DIR / "static"

TYPE_COLORS: Dict[str, str] = {
    "normal": "bg-gray-400",
    "fire": "bg-red-500",
    "water": "bg-blue-500",
    "electric": "bg-yellow-400",
    "grass": "bg-green-500",
    "ice": "bg-blue-200",
    "fighting": "bg-red-700",
    "poison": "bg-purple-500",
    "ground": "bg-yellow-600",
    "flying": "bg-indigo-400",
    "psychic": "bg-pink-500",
    "bug": "bg-green-400",
    "rock": "bg-yellow-800",
    "ghost": "bg-purple-700",
    "dragon": "bg-indigo-700",
    "dark": "bg-gray-800",
    "steel": "bg-gray-500",
    "fairy": "bg-pink-300",
}


def type_color(type_name: str) -> str:
    return TYPE_COLORS.get(type_name, "bg-gray-400")


def dex_number(entry_id: int) -> str:
    return f"#{entry_id:03d}"


def metric(value: int) -> str:
    # Upstream units are tenths: 69 -> "6.9", 10 -> "1"
    return f"{value / 10:g}"


def humanize(name: str) -> str:
    return name.replace("-", " ")


def stat_percent(base_stat: int) -> float:
    return base_stat / STAT_MAX * 100


def image_url(entry: CatalogEntry) -> str:
    return entry.sprites.image_url or PLACEHOLDER_IMAGE


def neighbour_ids(entry_id: int) -> Dict[str, Optional[int]]:
    # MAX_KNOWN_ID approximates the catalog size; it is not derived from the fetched total
    max_known = int(get_setting("MAX_KNOWN_ID"))
    return {
        "prev_id": entry_id - 1 if entry_id > 1 else None,
        "next_id": entry_id + 1 if entry_id < max_known else None,
    }


templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters.update(
    type_color=type_color,
    dex_number=dex_number,
    metric=metric,
    humanize=humanize,
    stat_percent=stat_percent,
    image_url=image_url,
)
templates.env.globals.update(
    PAGE_SIZE_OPTIONS=PAGE_SIZE_OPTIONS,
    SORT_OPTIONS=SORT_OPTIONS,
    DETAIL_MOVE_COUNT=DETAIL_MOVE_COUNT,
)


def list_context(
    listing: ListPage,
    state: ViewState,
    categories,
    catalog_size: int,
    page_url: Callable[[int], str],
    detail_url: Callable[[int], str],
    interactive: bool = True,
) -> dict:
    return {
        "listing": listing,
        "state": state,
        "categories": categories,
        "catalog_size": catalog_size,
        "page_url": page_url,
        "detail_url": detail_url,
        "interactive": interactive,
    }


def render(name: str, context: dict) -> str:
    """Render a template outside of a request (static build)."""
    return templates.get_template(name).render(context)
