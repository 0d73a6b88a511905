import asyncio

import pytest

from pokedex.config import MOVE_PREFIX
from pokedex.services import pokeapi
from pokedex.services.pokeapi import (
    EntryNotFound,
    ListingFetchError,
    entry_from_payload,
    extract_description,
    fetch_all_entries,
    fetch_entry_detail,
    fetch_entry_details,
    fetch_entry_ids,
)
from conftest import FakePokeAPI, make_pokemon, make_species


def _many(n):
    fake = FakePokeAPI()
    for pid in range(1, n + 1):
        fake.add(pid, f"mon-{pid}", ["normal"])
    return fake


def test_bulk_fetch_keeps_listing_order_and_truncates_moves(fake_api):
    entries = fake_api.run(lambda c: fetch_all_entries(batch_size=2, client=c))
    assert [e.id for e in entries] == [1, 4, 7]
    assert entries[0].name == "bulbasaur"
    assert entries[0].types == ["grass", "poison"]
    assert len(entries[0].moves) == MOVE_PREFIX
    assert entries[0].url == "https://pokeapi.co/api/v2/pokemon/1/"


def test_bulk_fetch_drops_failed_items_without_retry(fake_api):
    fake_api.listed_only.add(5)
    fake_api.broken.add("pokemon/4")
    entries = fake_api.run(lambda c: fetch_all_entries(batch_size=2, client=c))
    assert [e.id for e in entries] == [1, 7]
    # one attempt per listed reference
    detail_calls = [u for u in fake_api.requests if "/pokemon/" in u]
    assert len(detail_calls) == 4


def test_bulk_fetch_drops_malformed_items():
    fake = _many(3)
    del fake.pokemon[2]["name"]
    entries = fake.run(lambda c: fetch_all_entries(client=c))
    assert [e.id for e in entries] == [1, 3]


def test_bulk_fetch_respects_limit():
    fake = _many(10)
    entries = fake.run(lambda c: fetch_all_entries(limit=4, client=c))
    assert [e.id for e in entries] == [1, 2, 3, 4]
    assert fake.requests[0].endswith("/pokemon?limit=4")


def test_bulk_fetch_pauses_between_batches(monkeypatch):
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr(pokeapi.asyncio, "sleep", fake_sleep)
    fake = _many(5)
    entries = fake.run(lambda c: fetch_all_entries(batch_size=2, delay=0.1, client=c))
    assert len(entries) == 5
    # 3 batches, a pause between each pair
    assert sleeps == [0.1, 0.1]


def test_listing_failure_is_fatal(fake_api):
    fake_api.listing_status = 503
    with pytest.raises(ListingFetchError):
        fake_api.run(lambda c: fetch_all_entries(client=c))
    assert len(fake_api.requests) == 1


def test_entry_ids_come_from_listing_urls(fake_api):
    fake_api.listed_only.add(10)
    assert fake_api.run(lambda c: fetch_entry_ids(client=c)) == [1, 4, 7, 10]


def test_detail_joins_both_records(fake_api):
    detail = fake_api.run(lambda c: fetch_entry_detail(1, client=c))
    assert detail.entry.id == 1
    assert detail.entry.sprites.image_url == "https://img.example/artwork/1.png"
    # detail keeps every move
    assert len(detail.entry.moves) == 30
    assert detail.description == "A strange seed was planted on its back."


def test_detail_primary_failure_is_not_found(fake_api):
    with pytest.raises(EntryNotFound) as exc:
        fake_api.run(lambda c: fetch_entry_detail(999, client=c))
    assert exc.value.entry_id == 999


def test_detail_primary_transport_error_is_not_found(fake_api):
    fake_api.broken.add("pokemon/4")
    with pytest.raises(EntryNotFound):
        fake_api.run(lambda c: fetch_entry_detail(4, client=c))


def test_detail_secondary_failure_leaves_description_absent(fake_api):
    del fake_api.species[4]
    detail = fake_api.run(lambda c: fetch_entry_detail(4, client=c))
    assert detail.entry.name == "charmander"
    assert detail.entry.types == ["fire"]
    assert detail.description is None

    fake_api.broken.add("pokemon-species/7")
    detail = fake_api.run(lambda c: fetch_entry_detail(7, client=c))
    assert detail.entry.name == "squirtle"
    assert detail.description is None


def test_fetch_entry_details_skips_not_found(fake_api):
    details = fake_api.run(lambda c: fetch_entry_details([1, 2, 4], batch_size=2, client=c))
    assert [d.entry.id for d in details] == [1, 4]


def test_extract_description():
    assert extract_description(None) is None
    assert extract_description({}) is None
    assert extract_description(make_species("Line one\fline two")) == "Line one line two"
    assert extract_description(make_species(), language="fr") == "Une graine étrange."
    assert extract_description(make_species(), language="de") is None


def test_extract_description_uses_configured_language(monkeypatch):
    monkeypatch.setenv("DESCRIPTION_LANGUAGE", "fr")
    assert extract_description(make_species()) == "Une graine étrange."


def test_entry_from_payload_falls_back_to_front_sprite():
    raw = make_pokemon(25, "pikachu", ["electric"], height=4, weight=60, moves=3)
    raw["sprites"]["other"]["official-artwork"]["front_default"] = None
    entry = entry_from_payload(raw)
    assert entry.sprites.image_url == "https://img.example/sprites/25.png"
    assert [a.is_hidden for a in entry.abilities] == [False, True]
    assert [(s.name, s.base_stat) for s in entry.stats] == [("hp", 45), ("special-attack", 65)]
    assert entry.moves == ["move-0", "move-1", "move-2"]

    raw["sprites"] = {"front_default": None, "other": None}
    assert entry_from_payload(raw).sprites.image_url is None


def test_base_url_is_configurable(monkeypatch, fake_api):
    monkeypatch.setenv("POKEAPI_BASE_URL", "https://mirror.example/api/v2/")
    fake_api.run(lambda c: fetch_entry_detail(1, client=c))
    assert all(u.startswith("https://mirror.example/api/v2/") for u in fake_api.requests)
    assert "https://mirror.example/api/v2/pokemon/1" in fake_api.requests
