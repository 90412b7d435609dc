# carscout/api/routes.py
from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from ..cache import ListingCache, get_cache
from ..schemas import HealthOut, ListingsOut, RefreshOut
from ..scrape import AggregationFailure
from ..utils import logger

router = APIRouter()

def _now_iso():
    return datetime.now(timezone.utc).isoformat()

def _dump(listings):
    return [l.model_dump(mode="json", by_alias=True) for l in listings]

@router.get("/health", response_model=HealthOut)
@router.get("/api/health", response_model=HealthOut)
def health(cache: ListingCache = Depends(get_cache)):
    snap = cache.snapshot()
    return HealthOut(
        message="Car finder backend is running",
        listings_count=len(snap.listings),
        last_updated=snap.last_updated,
        timestamp=_now_iso(),
    )

@router.get("/api/listings", response_model=ListingsOut)
async def listings(cache: ListingCache = Depends(get_cache)):
    try:
        result = await cache.get_listings()
    except Exception as e:
        logger.exception("Listing request failed: %s", e)
        return JSONResponse(
            status_code=500,
            content={"error": str(e) or "Failed to load listings", "listings": _dump(cache.listings)},
        )
    return ListingsOut(
        listings=list(result.listings),
        cached=result.cached,
        last_updated=result.last_updated,
        count=len(result.listings),
    )

@router.post("/api/refresh", response_model=RefreshOut)
async def refresh(cache: ListingCache = Depends(get_cache)):
    try:
        result = await cache.force_refresh()
    except AggregationFailure as e:
        logger.warning("Refresh failed, cache left untouched: %s", e)
        return JSONResponse(
            status_code=502,
            content={"error": str(e), "count": len(cache.listings), "lastUpdated": cache.last_updated},
        )
    except Exception as e:
        logger.exception("Refresh failed: %s", e)
        return JSONResponse(status_code=500, content={"error": str(e) or "Refresh failed"})
    return RefreshOut(
        message="Listings refreshed successfully",
        count=len(result.listings),
        last_updated=result.last_updated,
        timestamp=_now_iso(),
    )

@router.api_route("/api/refresh", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"], include_in_schema=False)
def refresh_wrong_method():
    return JSONResponse(status_code=405, content={"error": "Method not allowed"})
