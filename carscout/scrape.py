# carscout/scrape.py
import asyncio
import os
import re
from datetime import datetime, timezone
from typing import Dict, List, NamedTuple, Optional, Sequence
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup
from dotenv import load_dotenv

from .schemas import Listing
from .services import build_listing
from .utils import env_int, env_list, logger

load_dotenv()
SEARCH_URL = "https://{region}.craigslist.org/search/cta?query={query}"
IMAGE_URL = "https://images.craigslist.org/{image_id}_300x300.jpg"
REGIONS = env_list("SCRAPE_REGIONS", ["newyork", "newlondon"])
SEARCH_QUERY = os.getenv("SCRAPE_QUERY", "cars+trucks")
TIMEOUT_SECONDS = env_int("SCRAPE_TIMEOUT_SECONDS", 10)
# rows scanned per results page
SCRAPE_MAX_ROWS = env_int("SCRAPE_MAX_ROWS", 20)
USER_AGENT = os.getenv(
    "SCRAPE_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
)

_PRICE_RE = re.compile(r"\d+")


class FetchError(Exception):
    def __init__(self, message: str, *, region: str, url: str) -> None:
        super().__init__(message)
        self.region = region
        self.url = url


class AggregationFailure(Exception):
    """Raised when every configured region failed to fetch."""


class RegionResult(NamedTuple):
    region: str
    listings: List[Listing]
    ok: bool


def build_search_url(region: str, query: str = SEARCH_QUERY) -> str:
    return SEARCH_URL.format(region=region, query=query)


def parse_price(text: Optional[str]) -> Optional[int]:
    if not text:
        return None
    m = _PRICE_RE.match(text.strip().replace("$", "").replace(",", ""))
    return int(m.group(0)) if m else None


def build_image_url(data_ids: Optional[str]) -> Optional[str]:
    # data-ids looks like "3:00a0a_abc,3:00b0b_def"; only the first pair is used
    if not data_ids:
        return None
    first = data_ids.split(",")[0]
    _, sep, image_id = first.partition(":")
    if not sep or not image_id.strip():
        return None
    return IMAGE_URL.format(image_id=image_id.strip())


def _text(node) -> str:
    return node.get_text(" ", strip=True) if node else ""


def _absolute(base_url: str, href: Optional[str]) -> Optional[str]:
    if not href:
        return None
    return urljoin(base_url, href) if base_url else href


def parse_search_results(html: str, limit: int = SCRAPE_MAX_ROWS, base_url: str = "") -> List[Dict]:
    """Pull raw fields out of the first ``limit`` result rows of a search page."""
    soup = BeautifulSoup(html, "lxml")
    rows = []
    for row in soup.select(".result-row")[:limit]:
        title_el = row.select_one(".result-title")
        image_el = row.select_one(".result-image")
        hood = _text(row.select_one(".result-hood"))
        rows.append({
            "title": _text(title_el),
            "price": parse_price(_text(row.select_one(".result-price"))),
            "location": hood.replace("(", "").replace(")", "").strip() or None,
            "url": _absolute(base_url, title_el.get("href") if title_el else None),
            "image": build_image_url(image_el.get("data-ids") if image_el else None),
        })
    return rows


def new_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        headers={"User-Agent": USER_AGENT},
        timeout=TIMEOUT_SECONDS,
        follow_redirects=True,
        transport=transport,
    )


async def fetch_search_page(client: httpx.AsyncClient, region: str, query: str = SEARCH_QUERY) -> str:
    url = build_search_url(region, query)
    try:
        resp = await client.get(url)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        raise FetchError(str(e) or e.__class__.__name__, region=region, url=url) from e
    return resp.text


def _extract_listings(html: str, region: str, query: str, limit: int) -> List[Listing]:
    scraped_at = datetime.now(timezone.utc)
    listings = []
    for raw in parse_search_results(html, limit=limit, base_url=build_search_url(region, query)):
        listing = build_listing(raw, region, scraped_at=scraped_at)
        if listing is not None:
            listings.append(listing)
    return listings


async def scrape_region(client: httpx.AsyncClient, region: str, query: str = SEARCH_QUERY,
                        limit: int = SCRAPE_MAX_ROWS) -> RegionResult:
    """Fetch and extract one region. Never raises; failures come back as ``ok=False``."""
    try:
        html = await fetch_search_page(client, region, query)
        listings = _extract_listings(html, region, query, limit)
    except FetchError as e:
        logger.warning("Fetch failed for %s (%s): %s", e.region, e.url, e)
        return RegionResult(region, [], False)
    except Exception as e:
        logger.exception("Scrape failed for %s: %s", region, e)
        return RegionResult(region, [], False)
    logger.info("Scraped %d listings from %s", len(listings), region)
    return RegionResult(region, listings, True)


async def aggregate_regions(regions: Sequence[str] = REGIONS, query: str = SEARCH_QUERY,
                            limit: int = SCRAPE_MAX_ROWS,
                            transport: Optional[httpx.AsyncBaseTransport] = None) -> List[Listing]:
    """Scrape all regions concurrently and concatenate in declaration order.

    Raises AggregationFailure only when every region failed; a partial result
    is returned as-is.
    """
    logger.info("Fetching fresh listings for %s", ", ".join(regions))
    async with new_client(transport) as client:
        results = await asyncio.gather(*(scrape_region(client, r, query, limit) for r in regions))
    if regions and not any(r.ok for r in results):
        raise AggregationFailure("all regions failed: " + ", ".join(regions))
    return [listing for r in results for listing in r.listings]
