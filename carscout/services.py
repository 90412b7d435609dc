# carscout/services.py
import hashlib
from datetime import datetime, timezone
from typing import Dict, Optional
from .infer import infer_fields, infer_year, synthetic_distance
from .schemas import Listing
from .utils import logger

SOURCE = "Craigslist"

def listing_id(source: str, region: str, url: Optional[str], title: str = "") -> str:
    # rows without a detail url fall back to the title so the id stays stable per page
    key = "|".join((source, region, url or title))
    return "cl_" + hashlib.sha1(key.encode("utf-8")).hexdigest()[:16]

def build_listing(raw: Dict, region: str, scraped_at: Optional[datetime] = None) -> Optional[Listing]:
    """Turn one extracted row into a Listing, or None when year or price is missing."""
    title = (raw.get("title") or "").strip()
    year = infer_year(title)
    price = raw.get("price")
    if not title or year is None or price is None:
        logger.debug("Skipping row without year/price in %s: %r", region, title)
        return None
    scraped_at = scraped_at or datetime.now(timezone.utc)
    return Listing(
        id=listing_id(SOURCE, region, raw.get("url"), title),
        title=title,
        year=year,
        price=price,
        location=raw.get("location") or region,
        url=raw.get("url"),
        image=raw.get("image"),
        source=SOURCE,
        region=region,
        distance=synthetic_distance(),
        scraped_at=scraped_at.isoformat(),
        **infer_fields(title),
    )
