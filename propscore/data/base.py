from typing import Protocol, List, Optional, Any
from dataclasses import dataclass, field, asdict
from datetime import datetime

# ----- Errors -----

class StoreError(Exception):
    """Property store call failed; the underlying exception is chained as __cause__."""

# ----- Data shapes (thin & explicit) -----

SIGNAL_TYPES = ("view", "click", "save", "inquiry", "dwell_time")

@dataclass(frozen=True)
class BehaviorSignal:
    property_id: Optional[str]
    signal_type: str               # view | click | save | inquiry | dwell_time
    signal_value: Optional[float] = None
    timestamp: Optional[datetime] = None

def _num(v: Any) -> float:
    try:
        return float(v) if v is not None else 0.0
    except (TypeError, ValueError):
        return 0.0

@dataclass
class PropertyAttributes:
    """Read-only snapshot of a property row; the engine never writes it back."""
    id: str
    title: str = ""
    description: str = ""
    property_type: str = ""
    status: str = "active"
    price: float = 0.0
    area_sqm: float = 0.0
    building_area_sqm: float = 0.0
    land_area_sqm: float = 0.0
    bedrooms: int = 0
    bathrooms: int = 0
    roi_percentage: float = 0.0
    rental_yield_percentage: float = 0.0
    legal_status: Optional[str] = None        # e.g. SHM (freehold), HGB (building rights)
    wna_eligible: bool = False                # foreign-ownership eligible
    has_pool: bool = False
    has_garden: bool = False
    parking_spaces: int = 0
    furnishing: Optional[str] = None          # furnished | semi-furnished | unfurnished
    view_type: Optional[str] = None
    three_d_model_url: Optional[str] = None
    has_vr: bool = False
    images: List[str] = field(default_factory=list)
    location: str = ""
    city: str = ""
    state: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    view_count: int = 0
    created_at: Optional[str] = None          # ISO-8601, compared lexically

    @classmethod
    def from_row(cls, row: dict) -> "PropertyAttributes":
        """Build from a store row; missing numerics become 0, missing flags False."""
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            description=row.get("description") or "",
            property_type=row.get("property_type") or "",
            status=row.get("status") or "active",
            price=_num(row.get("price")),
            area_sqm=_num(row.get("area_sqm")),
            building_area_sqm=_num(row.get("building_area_sqm")),
            land_area_sqm=_num(row.get("land_area_sqm")),
            bedrooms=int(_num(row.get("bedrooms"))),
            bathrooms=int(_num(row.get("bathrooms"))),
            roi_percentage=_num(row.get("roi_percentage")),
            rental_yield_percentage=_num(row.get("rental_yield_percentage")),
            legal_status=row.get("legal_status"),
            wna_eligible=bool(row.get("wna_eligible")),
            has_pool=bool(row.get("has_pool")),
            has_garden=bool(row.get("has_garden")),
            parking_spaces=int(_num(row.get("parking_spaces"))),
            furnishing=row.get("furnishing"),
            view_type=row.get("view_type"),
            three_d_model_url=row.get("three_d_model_url"),
            has_vr=bool(row.get("has_vr")),
            images=list(row.get("images") or []),
            location=row.get("location") or "",
            city=row.get("city") or "",
            state=row.get("state") or "",
            latitude=row.get("latitude"),
            longitude=row.get("longitude"),
            view_count=int(_num(row.get("view_count"))),
            created_at=row.get("created_at"),
        )

    def to_dict(self) -> dict:
        return asdict(self)

@dataclass(frozen=True)
class StoreSearchFilters:
    """
    Coarse candidate filters pushed down to the store. Location, rooms and
    the lower price bound are scored by the ranker, not filtered here.
    """
    property_type: Optional[str] = None
    max_price: Optional[float] = None

# ----- Protocols (interfaces) -----

class PropertyStore(Protocol):
    async def list_active_properties(self, limit: int) -> List[PropertyAttributes]: ...
    async def get_property(self, property_id: str) -> Optional[PropertyAttributes]: ...
    async def get_active_properties(self, ids: List[str]) -> List[PropertyAttributes]: ...
    async def list_signals(self) -> List[BehaviorSignal]: ...
    async def list_favorite_property_ids(self) -> List[Optional[str]]: ...
    async def upsert_scores(self, rows: List[dict]) -> None: ...
    async def top_scores(self, column: str, limit: int) -> List[dict]: ...
    async def find_comparables(
        self, property_type: str, min_price: float, max_price: float, limit: int,
        exclude_id: Optional[str] = None,
    ) -> List[PropertyAttributes]: ...
    async def save_valuation(self, row: dict) -> None: ...
    async def search_properties(self, filters: StoreSearchFilters, limit: int) -> List[PropertyAttributes]: ...

class Recommender(Protocol):
    async def recommend(self, user_id: str, context: dict) -> List[str]: ...
