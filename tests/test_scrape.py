# tests/test_scrape.py
import asyncio
from pathlib import Path

import httpx
import pytest

from carscout import scrape
from carscout.scrape import (
    AggregationFailure,
    aggregate_regions,
    build_image_url,
    build_search_url,
    parse_price,
    parse_search_results,
)

FIXTURES = Path(__file__).parent / "fixtures"


def _read_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


def _transport(pages):
    """Serve fixture pages keyed by region subdomain.

    ``None`` means connection error, an int is a bare status code and a callable
    is invoked with the request and must raise.
    """
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        region = request.url.host.split(".")[0]
        body = pages.get(region)
        if body is None:
            raise httpx.ConnectError("connection refused", request=request)
        if callable(body):
            body(request)
        if isinstance(body, int):
            return httpx.Response(body, request=request)
        return httpx.Response(200, text=body, request=request)

    return httpx.MockTransport(handler), seen


def test_build_search_url():
    assert build_search_url("newyork", "cars+trucks") == \
        "https://newyork.craigslist.org/search/cta?query=cars+trucks"


@pytest.mark.parametrize("text, price", [
    ("$15,000", 15000),
    ("$1,250,000", 1250000),
    ("$0", 0),
    ("  $800 ", 800),
    ("", None),
    ("Call", None),
])
def test_parse_price(text, price):
    assert parse_price(text) == price


def test_build_image_url_uses_first_pair():
    assert build_image_url("3:00a0a_civicA,3:00b0b_civicB") == \
        "https://images.craigslist.org/00a0a_civicA_300x300.jpg"
    assert build_image_url(None) is None
    assert build_image_url("garbage") is None


def test_parse_search_results_extracts_raw_rows():
    rows = parse_search_results(_read_fixture("craigslist_search.html"),
                                base_url="https://newyork.craigslist.org/search/cta?query=cars+trucks")
    assert len(rows) == 4
    assert rows[0] == {
        "title": "2019 Honda Civic Sedan",
        "price": 15000,
        "location": "Manhattan",
        "url": "https://newyork.craigslist.org/mnh/cto/d/2019-honda-civic/7001.html",
        "image": "https://images.craigslist.org/00a0a_civicA_300x300.jpg",
    }
    # relative hrefs resolve against the region host
    assert rows[1]["url"] == "https://newyork.craigslist.org/brk/cto/d/toyota-prius/7002.html"
    assert rows[1]["location"] is None
    assert rows[1]["image"] is None
    assert rows[3]["price"] is None


def test_parse_search_results_caps_rows():
    html = "<ul>" + "".join(
        f'<li class="result-row"><a class="result-title" href="/x/{i}.html">2010 Ford Focus {i}</a>'
        f'<span class="result-price">$1,000</span></li>'
        for i in range(30)
    ) + "</ul>"
    assert len(parse_search_results(html, limit=20)) == 20


def test_scrape_region_drops_rows_without_year_or_price():
    transport, seen = _transport({"newyork": _read_fixture("craigslist_search.html")})

    async def run():
        async with scrape.new_client(transport) as client:
            return await scrape.scrape_region(client, "newyork", "cars+trucks")

    result = asyncio.run(run())
    assert result.ok
    assert [l.title for l in result.listings] == [
        "2019 Honda Civic Sedan",
        "2015 Toyota Prius Hybrid Hatchback",
    ]
    civic, prius = result.listings
    assert (civic.year, civic.make, civic.model, civic.body_type, civic.price, civic.fuel_type) == \
        (2019, "Honda", "Civic", "Sedan", 15000, "Gasoline")
    assert prius.fuel_type == "Hybrid"
    assert prius.body_type == "Hatchback"
    assert prius.location == "newyork"
    assert seen[0].headers["User-Agent"] == scrape.USER_AGENT


def test_fetch_failure_returns_empty_region_result():
    transport, _ = _transport({"newyork": 503})

    async def run():
        async with scrape.new_client(transport) as client:
            return await scrape.scrape_region(client, "newyork")

    result = asyncio.run(run())
    assert result.ok is False
    assert result.listings == []


def test_aggregate_keeps_partial_results():
    transport, _ = _transport({"newyork": _read_fixture("craigslist_search.html"), "newlondon": None})
    listings = asyncio.run(aggregate_regions(["newlondon", "newyork"], transport=transport))
    assert len(listings) == 2
    assert {l.region for l in listings} == {"newyork"}


def test_aggregate_concatenates_in_region_order():
    page = _read_fixture("craigslist_search.html")
    transport, _ = _transport({"newyork": page, "newlondon": page})
    listings = asyncio.run(aggregate_regions(["newlondon", "newyork"], transport=transport))
    assert [l.region for l in listings] == ["newlondon", "newlondon", "newyork", "newyork"]
    # same detail url in different regions still yields distinct ids
    assert len({l.id for l in listings}) == 4


def test_aggregate_raises_when_every_region_fails():
    transport, _ = _transport({"newyork": 500, "newlondon": None})
    with pytest.raises(AggregationFailure):
        asyncio.run(aggregate_regions(["newyork", "newlondon"], transport=transport))


def _raise_timeout(request):
    raise httpx.ReadTimeout("timed out", request=request)


def _raise_stream_error(request):
    raise httpx.StreamError("stream broke")


def test_timeout_returns_empty_region_result():
    transport, _ = _transport({"newyork": _raise_timeout})

    async def run():
        async with scrape.new_client(transport) as client:
            return await scrape.scrape_region(client, "newyork")

    result = asyncio.run(run())
    assert result.ok is False
    assert result.listings == []


def test_non_http_error_in_one_region_keeps_the_other():
    transport, _ = _transport({"newyork": _read_fixture("craigslist_search.html"),
                               "newlondon": _raise_stream_error})
    listings = asyncio.run(aggregate_regions(["newyork", "newlondon"], transport=transport))
    assert [l.region for l in listings] == ["newyork", "newyork"]


def test_extraction_error_counts_as_failed_region(monkeypatch):
    def broken(*args, **kwargs):
        raise ValueError("bad markup")

    monkeypatch.setattr(scrape, "parse_search_results", broken)
    transport, _ = _transport({"newyork": _read_fixture("craigslist_search.html")})
    with pytest.raises(AggregationFailure):
        asyncio.run(aggregate_regions(["newyork"], transport=transport))
