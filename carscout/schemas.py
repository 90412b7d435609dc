# carscout/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class Listing(CamelModel):
    """One scraped vehicle listing. Immutable once built."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    year: int
    price: int
    make: str = "Unknown"
    model: str = "Unknown"
    body_type: str = "Sedan"
    fuel_type: str = "Gasoline"
    transmission: str = "Automatic"
    mileage: int = 0
    location: Optional[str] = None
    url: Optional[str] = None
    image: Optional[str] = None
    source: str = "Craigslist"
    region: Optional[str] = None
    dealer: str = "Private Seller"
    warranty: str = "As-Is"
    features: List[str] = Field(default_factory=list)
    distance: int = 0
    scraped_at: str

class ListingsOut(CamelModel):
    listings: List[Listing]
    cached: bool
    last_updated: Optional[int]
    count: int

class RefreshOut(CamelModel):
    message: str
    count: int
    last_updated: Optional[int]
    timestamp: str

class HealthOut(CamelModel):
    status: str = "ok"
    message: str
    listings_count: int
    last_updated: Optional[int]
    timestamp: str
