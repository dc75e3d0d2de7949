import math

import pytest

from homematch.matching import CandidateFilter, budget_band, build_profile, min_beds
from conftest import FakePropertyRepo, make_settings, property_row


@pytest.mark.parametrize(
    "label,expected",
    [
        ("Under £200K", (0, 260000)),
        ("£200K-£400K", (140000, 520000)),
        ("£400K-£600K", (280000, 780000)),
        ("£600K-£800K", (420000, 1040000)),
        ("€200K-€400K", (140000, 520000)),
        ("£200K – £400K", (140000, 520000)),
    ],
)
def test_budget_band_applies_buffer(label, expected):
    assert budget_band(label) == expected


def test_open_ended_budget_has_no_ceiling():
    assert budget_band("£800K+") == (560000, math.inf)


@pytest.mark.parametrize("label", [None, "", "whatever works"])
def test_unknown_budget_is_unbounded(label):
    assert budget_band(label) == (0.0, math.inf)


@pytest.mark.parametrize(
    "family,expected",
    [
        ("Just me", 1),
        ("Small family (1-2 kids)", 2),
        ("Large family (3+ kids)", 3),
        ("Housemates", 2),
        ("A big dog and a cat", 1),
        (None, 1),
    ],
)
def test_min_beds(family, expected):
    assert min_beds(family) == expected


def test_candidate_query_uses_profile_predicates():
    repo = FakePropertyRepo(rows=[property_row("p1")])
    profile = build_profile({
        "location": "Didsbury",
        "budget": "£200K-£400K",
        "family": "Small family (1-2 kids)",
    })

    candidates = CandidateFilter(repo, make_settings()).get_candidates(profile)

    assert [c.id for c in candidates] == ["p1"]
    assert repo.search_calls == [{
        "location": "Didsbury",
        "min_price": 140000,
        "max_price": 520000,
        "min_beds": 2,
        "country": None,
        "limit": 50,
    }]


@pytest.mark.parametrize("market,expected", [("ie", "IE"), ("uk", "UK"), (None, None), ("", None)])
def test_country_filter_only_when_market_chosen(market, expected):
    repo = FakePropertyRepo(rows=[])

    CandidateFilter(repo, make_settings()).get_candidates(build_profile({"market": market}))

    assert repo.search_calls[0]["country"] == expected


def test_unbounded_band_sends_no_price_filters():
    repo = FakePropertyRepo(rows=[])
    CandidateFilter(repo, make_settings()).get_candidates(build_profile({"budget": "£800K+"}))

    call = repo.search_calls[0]
    assert call["min_price"] == 560000
    assert call["max_price"] is None


def test_query_failure_falls_back_to_active_scan():
    repo = FakePropertyRepo(rows=[property_row("p1"), property_row("p2")], fail_search=True)

    candidates = CandidateFilter(repo, make_settings()).get_candidates(build_profile({}))

    assert [c.id for c in candidates] == ["p1", "p2"]
    assert repo.scan_calls == 1


def test_fallback_failure_yields_empty_candidates():
    repo = FakePropertyRepo(fail_search=True, fail_scan=True)

    assert CandidateFilter(repo, make_settings()).get_candidates(build_profile({})) == []


def test_candidates_are_capped():
    rows = [property_row(f"p{i}") for i in range(80)]
    repo = FakePropertyRepo(rows=rows)

    candidates = CandidateFilter(repo, make_settings(max_candidates=50)).get_candidates(build_profile({}))

    assert len(candidates) == 50


def test_malformed_rows_are_skipped():
    repo = FakePropertyRepo(rows=[{"title": "no id"}, property_row("p2")])

    candidates = CandidateFilter(repo, make_settings()).get_candidates(build_profile({}))

    assert [c.id for c in candidates] == ["p2"]
