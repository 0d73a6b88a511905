import asyncio
from typing import Any, Dict, List, Optional, Set

import httpx
import pytest

from pokedex import store
from pokedex.main import app
from pokedex.schemas.catalog import CatalogEntry
from pokedex.services.pokeapi import get_client


def make_pokemon(pid: int, name: str, types: List[str], height: int = 10, weight: int = 100, moves: int = 30) -> Dict[str, Any]:
    """Raw /pokemon/{id} body shaped like PokeAPI's."""
    return {
        "id": pid,
        "name": name,
        "height": height,
        "weight": weight,
        "sprites": {
            "front_default": f"https://img.example/sprites/{pid}.png",
            "other": {"official-artwork": {"front_default": f"https://img.example/artwork/{pid}.png"}},
        },
        "types": [{"slot": i + 1, "type": {"name": t, "url": ""}} for i, t in enumerate(types)],
        "abilities": [
            {"ability": {"name": "over-grow"}, "is_hidden": False, "slot": 1},
            {"ability": {"name": "chlorophyll"}, "is_hidden": True, "slot": 3},
        ],
        "stats": [
            {"base_stat": 45, "effort": 0, "stat": {"name": "hp"}},
            {"base_stat": 65, "effort": 1, "stat": {"name": "special-attack"}},
        ],
        "moves": [{"move": {"name": f"move-{n}"}} for n in range(moves)],
    }


def make_species(flavor: str = "A strange seed was\fplanted on its back.") -> Dict[str, Any]:
    return {
        "flavor_text_entries": [
            {"flavor_text": "Une graine étrange.", "language": {"name": "fr"}},
            {"flavor_text": flavor, "language": {"name": "en"}},
            {"flavor_text": "Second english entry", "language": {"name": "en"}},
        ]
    }


class FakePokeAPI:
    """In-memory stand-in for PokeAPI, served through ``httpx.MockTransport``."""

    def __init__(self):
        self.pokemon: Dict[int, Dict[str, Any]] = {}
        self.species: Dict[int, Dict[str, Any]] = {}
        # ids listed by /pokemon but whose detail request fails
        self.listed_only: Set[int] = set()
        self.broken: Set[str] = set()
        self.listing_status = 200
        self.requests: List[str] = []

    def add(self, pid: int, name: str, types: List[str], height: int = 10, weight: int = 100, species: Optional[Dict[str, Any]] = None):
        self.pokemon[pid] = make_pokemon(pid, name, types, height, weight)
        self.species[pid] = species if species is not None else make_species()
        return self

    def _listing(self, request: httpx.Request) -> httpx.Response:
        if self.listing_status != 200:
            return httpx.Response(self.listing_status, json={"detail": "down"})
        limit = int(request.url.params.get("limit", "2000"))
        ids = sorted(set(self.pokemon) | self.listed_only)[:limit]
        results = []
        for pid in ids:
            name = self.pokemon[pid]["name"] if pid in self.pokemon else f"missing-{pid}"
            results.append({"name": name, "url": f"https://pokeapi.co/api/v2/pokemon/{pid}/"})
        return httpx.Response(200, json={"count": len(results), "next": None, "previous": None, "results": results})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        parts = [p for p in request.url.path.split("/") if p]
        # ["api", "v2", resource, id?]
        resource = parts[2] if len(parts) > 2 else ""
        if resource == "pokemon" and len(parts) == 3:
            return self._listing(request)
        if not parts[3].isdigit():
            return httpx.Response(404, text="Not Found")
        pid = int(parts[3])
        if f"{resource}/{pid}" in self.broken:
            raise httpx.ConnectError("connection refused", request=request)
        table = self.pokemon if resource == "pokemon" else self.species
        if pid not in table:
            return httpx.Response(404, text="Not Found")
        return httpx.Response(200, json=table[pid])

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def run(self, fn):
        """Run ``fn(client)`` on a fresh event loop with a client bound to this fake."""
        async def _run():
            async with self.client() as c:
                return await fn(c)
        return asyncio.run(_run())


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    monkeypatch.setenv("FETCH_BATCH_DELAY", "0")
    monkeypatch.delenv("CATALOG_SNAPSHOT", raising=False)
    monkeypatch.delenv("POKEAPI_BASE_URL", raising=False)
    monkeypatch.delenv("MAX_KNOWN_ID", raising=False)
    store.set_catalog(None)
    yield
    store.set_catalog(None)


@pytest.fixture
def fake_api():
    return (
        FakePokeAPI()
        .add(1, "bulbasaur", ["grass", "poison"], height=7, weight=69)
        .add(4, "charmander", ["fire"], height=6, weight=85)
        .add(7, "squirtle", ["water"], height=5, weight=90)
    )


@pytest.fixture
def use_fake_api(fake_api):
    async def _override():
        async with fake_api.client() as c:
            yield c

    app.dependency_overrides[get_client] = _override
    yield fake_api
    app.dependency_overrides.pop(get_client, None)


@pytest.fixture
def entries():
    return [
        CatalogEntry(id=1, name="bulba", types=["grass"], height=7, weight=69),
        CatalogEntry(id=4, name="char", types=["fire"], height=6, weight=85),
        CatalogEntry(id=7, name="squirt", types=["water"], height=5, weight=90),
    ]
