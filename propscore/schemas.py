from typing import Literal
from pydantic import BaseModel, Field, field_validator

from .core.utils import sanitize_amount

# ----- Valuation -----

class Location(BaseModel):
    city: str | None = None
    district: str | None = None
    province: str | None = None
    latitude: float | None = None
    longitude: float | None = None

class Specifications(BaseModel):
    land_area: float = Field(default=0, ge=0)
    building_area: float = Field(default=0, ge=0)
    bedrooms: int = Field(default=0, ge=0)
    bathrooms: int = Field(default=0, ge=0)
    floors: int | None = Field(default=None, ge=0)
    year_built: int | None = None
    condition: str | None = None

class ValuationRequest(BaseModel):
    # Required fields are checked by the service so the error can name them
    property_id: str | None = None
    property_type: str | None = None
    location: Location | None = None
    specifications: Specifications | None = None
    features: list[str] = Field(default_factory=list)
    current_price: float | None = Field(default=None, ge=0)

class ComparableProperty(BaseModel):
    id: str
    title: str = ""
    price: float
    similarity: float = Field(ge=0.70, le=0.95)
    distance: float = Field(ge=0)
    # True when distance is a placeholder rather than a measured distance
    approximate: bool = False

class ValuationFactor(BaseModel):
    name: str
    impact: Literal["positive", "neutral", "negative"]
    weight: float
    description: str

class ValuationResponse(BaseModel):
    property_id: str | None = None
    currency: str = "IDR"
    estimated_value: int
    confidence_score: int = Field(ge=0, le=95)
    price_range_low: int
    price_range_high: int
    market_trend: Literal["rising", "stable", "declining"]
    comparable_properties: list[ComparableProperty]
    valuation_factors: list[ValuationFactor]
    methodology: str
    valid_until: str

# ----- Scores -----

class RecalculateResponse(BaseModel):
    success: bool
    processed: int
    failed_chunks: int = 0

class ScoreRecord(BaseModel):
    property_id: str
    views_total: float = 0
    saves_total: float = 0
    inquiries_total: float = 0
    clicks_total: float = 0
    avg_dwell_seconds: float = 0
    engagement_score: float | None = Field(default=None, ge=0, le=100)
    investment_score: float | None = Field(default=None, ge=0, le=100)
    livability_score: float | None = Field(default=None, ge=0, le=100)
    luxury_score: float | None = Field(default=None, ge=0, le=100)
    predicted_roi: float | None = None
    roi_confidence: float | None = None
    last_calculated_at: str | None = None

class CollectionResponse(BaseModel):
    collection_type: str
    properties: list[dict]

class RoiPredictionResponse(BaseModel):
    property_id: str
    status: Literal["ok", "rate_limited", "quota_exceeded", "not_configured", "unavailable"]
    predicted_roi: float | None = None
    confidence: float | None = None
    trend: str | None = None
    explanation: str | None = None

# ----- Search -----

SortBy = Literal["relevance", "price_asc", "newest", "popular"]

class SearchRequest(BaseModel):
    query_text: str | None = None
    location: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    bedrooms: int | None = None
    bathrooms: int | None = None
    property_type: str | None = None
    feature_flags: list[str] = Field(default_factory=list)
    sort_by: SortBy = "relevance"
    user_id: str | None = None
    limit: int = Field(default=50, ge=1, le=200)

    @field_validator("min_price", "max_price", "bedrooms", "bathrooms", mode="before")
    @classmethod
    def _drop_bad_numbers(cls, v):
        # NaN/inf/negative filters behave as if they were not sent
        return sanitize_amount(v)

    @field_validator("query_text", "location", "property_type", mode="before")
    @classmethod
    def _blank_is_absent(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

class SearchResult(BaseModel):
    property: dict
    relevance_score: float = Field(ge=0, le=100)
    match_reasons: list[str]
    personalized: bool = False

class SearchResponse(BaseModel):
    results: list[SearchResult]
    total_count: int
    took_ms: float
    cache_hit: bool = False
    personalized: bool = False
    # Served from the reduced-parameter fallback query
    degraded: bool = False
