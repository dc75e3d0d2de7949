import asyncio
import threading
from datetime import date

import httpx

from homematch.enrichment import GovDataEnricher, pick_epc_row, summarize_transactions
from homematch.enrichment.gov_data import clean_postcode, normalize_address
from homematch.scripts.run_enrichment import run_enrichment
from conftest import FakeEnrichmentRepo, make_settings


EPC_ROWS = [
    {
        "address": "10 Palatine Road",
        "current-energy-rating": "D",
        "current-energy-efficiency": "61",
        "certificate-hash": "aaa",
    },
    {
        "address": "12 Palatine Road, Didsbury",
        "current-energy-rating": "C",
        "current-energy-efficiency": "72",
        "certificate-hash": "bbb",
    },
]


def _binding(day: str, price: int, kind: str = "semi-detached") -> dict:
    return {
        "date": {"value": day},
        "price": {"value": str(price)},
        "propertyType": {"value": f"http://landregistry.data.gov.uk/def/common/{kind}"},
    }


BINDINGS = [
    _binding("2025-03-01", 330000),
    _binding("2024-12-01", 330000, "terraced"),
    _binding("2023-05-01", 300000),
]


def _handler(requests: list):
    def handle(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.host == "epc.opendatacommunities.org":
            return httpx.Response(200, json={"rows": EPC_ROWS})
        if request.url.host == "landregistry.data.gov.uk":
            return httpx.Response(200, json={"results": {"bindings": BINDINGS}})
        return httpx.Response(404)
    return handle


def _enricher(handler, **settings) -> GovDataEnricher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GovDataEnricher(settings=make_settings(**settings), http_client=client)


def test_address_and_postcode_normalization():
    assert normalize_address("12 Palatine Rd.") == "12palatinerd"
    assert clean_postcode(" m20 2ab; ") == "M20 2AB"


def test_epc_row_matches_address_or_first():
    assert pick_epc_row(EPC_ROWS, "12 Palatine Road")["certificate-hash"] == "bbb"
    assert pick_epc_row(EPC_ROWS, "99 Nowhere Lane")["certificate-hash"] == "aaa"
    assert pick_epc_row(EPC_ROWS, None)["certificate-hash"] == "aaa"


def test_fetch_epc_summarizes_matching_certificate():
    requests = []
    enricher = _enricher(_handler(requests), epc_auth_token="dG9rZW4=")

    result = asyncio.run(enricher.fetch_epc("m20 2ab", "12 Palatine Road"))

    assert result == {
        "epc_rating_verified": "C",
        "epc_score_verified": 72,
        "epc_url": "https://find-energy-certificate.service.gov.uk/energy-certificate/bbb",
    }
    [request] = requests
    assert request.url.params["postcode"] == "M20 2AB"
    assert request.url.params["size"] == "100"
    assert request.headers["Authorization"] == "Basic dG9rZW4="
    assert request.headers["Accept"] == "application/json"


def test_transactions_summary_and_trend():
    summary = summarize_transactions(BINDINGS, today=date(2025, 6, 1))

    assert summary["last_sold_price"] == 330000
    assert summary["last_sold_date"] == "2025-03-01"
    assert summary["avg_price_area"] == 320000
    assert summary["price_trend_1yr_pct"] == 10.0
    assert summary["price_history"][1] == {"date": "2024-12-01", "price": 330000, "type": "terraced"}


def test_trend_needs_both_periods():
    summary = summarize_transactions(BINDINGS[:2], today=date(2025, 6, 1))

    assert summary["price_trend_1yr_pct"] is None
    assert summary["avg_price_area"] == 330000


def test_fetch_land_registry_sends_sparql_query():
    requests = []
    enricher = _enricher(_handler(requests))

    result = asyncio.run(enricher.fetch_land_registry("M20 2AB", today=date(2025, 6, 1)))

    assert result["price_trend_1yr_pct"] == 10.0
    [request] = requests
    assert request.url.params["output"] == "json"
    assert 'lrcommon:postcode "M20 2AB"' in request.url.params["query"]


def test_error_status_yields_none():
    enricher = _enricher(lambda request: httpx.Response(500))

    assert asyncio.run(enricher.fetch_epc("M20 2AB")) is None
    assert asyncio.run(enricher.fetch_land_registry("M20 2AB")) is None


def test_missing_postcode_makes_no_request():
    requests = []
    enricher = _enricher(_handler(requests))

    assert asyncio.run(enricher.fetch_epc(None)) is None
    assert asyncio.run(enricher.fetch_land_registry("")) is None
    assert requests == []


def test_enrich_property_merges_both_sources():
    enricher = _enricher(_handler([]))
    prop = {"id": "p1", "postcode": "M20 2AB", "address_line1": "12 Palatine Road"}

    row = asyncio.run(enricher.enrich_property(prop))

    assert row["property_id"] == "p1"
    assert row["epc_rating_verified"] == "C"
    assert row["last_sold_price"] == 330000
    assert row["enriched_at"]


class ListingRepo:
    def __init__(self, rows):
        self.rows = rows

    def list_for_enrichment(self, limit: int = 100):
        return self.rows[:limit]


def test_run_enrichment_collects_stats():
    listings = [
        {"id": "p1", "postcode": "M20 2AB", "address_line1": "12 Palatine Road"},
        {"id": "p2", "postcode": None},
        {"id": "p3", "postcode": "M20 2AB"},
    ]
    enrichment_repo = FakeEnrichmentRepo()

    stats = asyncio.run(run_enrichment(
        limit=10,
        property_repo=ListingRepo(listings),
        enrichment_repo=enrichment_repo,
        enricher=_enricher(_handler([])),
        pause=0,
    ))

    assert stats == {"processed": 3, "enriched": 2, "skipped": 1, "errors": 0}
    assert [row["property_id"] for row in enrichment_repo.upserted] == ["p1", "p3"]


class ThreadRecordingRepo(FakeEnrichmentRepo):
    def __init__(self):
        super().__init__()
        self.threads = []

    def list_for_enrichment(self, limit: int = 100):
        self.threads.append(threading.current_thread())
        return [{"id": "p1", "postcode": "M20 2AB"}]

    def upsert(self, enrichment: dict) -> dict:
        self.threads.append(threading.current_thread())
        return super().upsert(enrichment)


def test_store_calls_run_off_the_event_loop():
    repo = ThreadRecordingRepo()

    asyncio.run(run_enrichment(
        property_repo=repo,
        enrichment_repo=repo,
        enricher=_enricher(_handler([])),
        pause=0,
    ))

    assert len(repo.threads) == 2
    assert threading.main_thread() not in repo.threads
