import asyncio
from types import SimpleNamespace
from typing import Callable, Optional, Union

import pytest

from homematch.analysis import BaseLLMProvider, LLMResponse
from homematch.config import Settings


def make_settings(**overrides) -> Settings:
    values = {
        "supabase_url": "https://example.supabase.co",
        "supabase_key": "test-key",
        "_env_file": None,
    }
    values.update(overrides)
    return Settings(**values)


def property_row(property_id: str = "p1", **overrides) -> dict:
    row = {
        "id": property_id,
        "title": f"Listing {property_id}",
        "listing_status": "active",
        "price": 380000,
        "currency": "GBP",
        "beds": 3,
        "baths": 1,
        "city": "Manchester",
        "region": "Didsbury",
        "county": "Greater Manchester",
        "country": "UK",
        "walkability": None,
        "schools_quality": None,
        "pet_friendly": False,
        "features": [],
        "commute_city_center": None,
    }
    row.update(overrides)
    return row


class FakeProvider(BaseLLMProvider):
    """Proveedor en memoria; `reply` puede ser texto, excepción o callable(prompt)."""

    provider_name = "fake"

    def __init__(self, reply: Union[str, Exception, Callable[[str], str]] = "", delay: float = 0.0):
        self.model = "fake-model"
        self.reply = reply
        self.delay = delay
        self.prompts: list[str] = []

    async def generate(self, system_prompt, user_prompt, temperature=0.2, max_tokens=500):
        self.prompts.append(user_prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self.reply
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(user_prompt)
        return LLMResponse(text=reply, model=self.model, provider=self.provider_name)


class FakePropertyRepo:
    def __init__(self, rows=None, fail_search: bool = False, fail_scan: bool = False):
        self.rows = rows or []
        self.fail_search = fail_search
        self.fail_scan = fail_scan
        self.search_calls: list[dict] = []
        self.scan_calls = 0

    def search_candidates(self, **kwargs):
        self.search_calls.append(kwargs)
        if self.fail_search:
            raise RuntimeError("query rejected")
        return list(self.rows)

    def get_active(self, limit: int = 50):
        self.scan_calls += 1
        if self.fail_scan:
            raise RuntimeError("store down")
        return list(self.rows)[:limit]


class FakeEnrichmentRepo:
    def __init__(self, rows: Optional[dict] = None, fail: bool = False):
        self.rows = rows or {}
        self.fail = fail
        self.requested: list[list[str]] = []
        self.upserted: list[dict] = []

    def get_batch(self, property_ids):
        self.requested.append(list(property_ids))
        if self.fail:
            raise RuntimeError("enrichment table missing")
        return {pid: row for pid, row in self.rows.items() if pid in property_ids}

    def upsert(self, enrichment: dict) -> dict:
        self.upserted.append(enrichment)
        return enrichment


class FakeSearchRepo:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.records = []

    def create(self, record):
        if self.fail:
            raise RuntimeError("insert denied")
        self.records.append(record)
        return "search-1"


class FakeQuery:
    """Query builder de PostgREST que registra cada llamada encadenada."""

    def __init__(self, data=None):
        self.data = data if data is not None else []
        self.calls: list[tuple] = []

    def __getattr__(self, name):
        def record(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return record

    def execute(self):
        return SimpleNamespace(data=self.data)


class FakeSupabase:
    def __init__(self, data=None):
        self.query = FakeQuery(data)
        self.tables: list[str] = []

    def table(self, name):
        self.tables.append(name)
        return self.query


@pytest.fixture
def settings() -> Settings:
    return make_settings()
