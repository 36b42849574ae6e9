"""
Automated valuation model (AVM).

Pipeline: base value from type/area/city -> multiplicative adjustments ->
city market trend -> confidence from input completeness -> price band.
Lookup tables are immutable and injected, so the estimator holds no
mutable global state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Callable, Mapping

from ..core.utils import fnv1a_32, haversine_km, normalize_text, seeded_rand, utcnow
from ..data.base import PropertyAttributes
from ..schemas import ValuationRequest

METHODOLOGY = (
    "Automated Valuation Model (AVM) using comparable sales, location indices, "
    "and property characteristics"
)
VALIDITY_DAYS = 30

BASE_CONFIDENCE = 60
MAX_CONFIDENCE = 95
EXTRA_LAND_RATIO = 1.5      # land counts separately beyond 1.5x the building footprint
EXTRA_LAND_RATE = 0.3
TREND_MULTIPLIERS = {"rising": 1.03, "stable": 1.0, "declining": 0.97}

# Comparable annotation bounds
SIMILARITY_MIN, SIMILARITY_MAX = 0.70, 0.95
PLACEHOLDER_DISTANCE_MAX = 5.0


@dataclass(frozen=True)
class ValuationTables:
    base_price_per_sqm: Mapping[str, float]
    city_price_index: Mapping[str, float]
    feature_multipliers: Mapping[str, float]
    rising_markets: tuple = ()
    declining_markets: tuple = ()
    default_base_price: float = 12_000_000
    default_city_index: float = 0.5

    def base_price(self, property_type: str) -> float:
        return self.base_price_per_sqm.get(normalize_text(property_type), self.default_base_price)

    def city_index(self, city: str) -> float:
        return self.city_price_index.get(normalize_text(city), self.default_city_index)

    def feature_multiplier(self, feature: str) -> float | None:
        return self.feature_multipliers.get(feature_key(feature))


def feature_key(feature: str) -> str:
    return "_".join(normalize_text(feature).split())


# IDR; indices relative to Jakarta = 1.0
DEFAULT_TABLES = ValuationTables(
    base_price_per_sqm=MappingProxyType({
        "villa": 15_000_000,
        "house": 12_000_000,
        "apartment": 18_000_000,
        "land": 8_000_000,
        "commercial": 20_000_000,
        "warehouse": 6_000_000,
    }),
    city_price_index=MappingProxyType({
        "jakarta": 1.0,
        "jakarta pusat": 1.15,
        "jakarta selatan": 1.1,
        "jakarta barat": 0.95,
        "jakarta timur": 0.85,
        "jakarta utara": 0.9,
        "surabaya": 0.7,
        "bandung": 0.65,
        "medan": 0.55,
        "semarang": 0.5,
        "makassar": 0.45,
        "tangerang": 0.75,
        "bekasi": 0.7,
        "depok": 0.65,
        "bogor": 0.6,
        "bali": 0.85,
        "denpasar": 0.8,
        "yogyakarta": 0.55,
        "malang": 0.45,
        "solo": 0.45,
    }),
    feature_multipliers=MappingProxyType({
        "pool": 1.15,
        "garden": 1.08,
        "garage": 1.05,
        "security": 1.06,
        "furnished": 1.1,
        "air_conditioning": 1.03,
        "gym": 1.07,
        "rooftop": 1.08,
        "smart_home": 1.1,
        "sea_view": 1.2,
        "mountain_view": 1.12,
        "golf_view": 1.15,
    }),
    rising_markets=("jakarta", "bali", "surabaya", "bandung", "tangerang"),
    declining_markets=("medan",),
)


@dataclass
class Factor:
    name: str
    impact: str
    weight: float
    description: str


@dataclass
class Estimate:
    base_value: float
    adjusted_value: float
    final_value: float
    market_trend: str
    confidence: int
    estimated_value: int
    price_range_low: int
    price_range_high: int
    factors: list = field(default_factory=list)


class ValuationEstimator:
    def __init__(self, tables: ValuationTables = DEFAULT_TABLES, clock: Callable[[], datetime] = utcnow):
        self.tables = tables
        self.clock = clock

    def base_value(self, req: ValuationRequest) -> float:
        spec = req.specifications
        base_price = self.tables.base_price(req.property_type)
        city_index = self.tables.city_index(req.location.city)

        effective_area = spec.building_area if spec.building_area > 0 else spec.land_area
        value = effective_area * base_price * city_index

        if spec.land_area > spec.building_area * EXTRA_LAND_RATIO:
            value += (spec.land_area - spec.building_area) * EXTRA_LAND_RATE * base_price * city_index
        return value

    def adjust(self, base_value: float, req: ValuationRequest) -> tuple[float, list[Factor]]:
        spec = req.specifications
        factors: list[Factor] = []
        multiplier = 1.0

        def apply(m: float, name: str, description: str):
            nonlocal multiplier
            multiplier *= m
            delta = round(m - 1, 4)
            impact = "positive" if delta > 0 else "negative" if delta < 0 else "neutral"
            factors.append(Factor(name=name, impact=impact, weight=delta, description=description))

        if spec.year_built:
            age = self.clock().year - spec.year_built
            if age <= 2:
                apply(1.10, "New Construction", "Property is newly built (less than 2 years old)")
            elif age <= 5:
                apply(1.05, "Recent Construction", "Property is relatively new (2-5 years old)")
            elif age > 20:
                apply(0.85, "Older Property", "Property is over 20 years old, may require renovations")

        if spec.bedrooms >= 4:
            apply(1.08, "Multiple Bedrooms", f"{spec.bedrooms} bedrooms adds premium value")
        elif spec.bedrooms == 1:
            apply(0.95, "Single Bedroom", "Single bedroom limits buyer pool")

        if spec.floors and spec.floors >= 2:
            apply(1.05, "Multi-Story", f"{spec.floors} floors increases living space efficiency")

        condition = normalize_text(spec.condition)
        if condition in ("excellent", "new"):
            apply(1.10, "Excellent Condition", "Property is in excellent/new condition")
        elif condition == "good":
            apply(1.02, "Good Condition", "Property is well-maintained")
        elif condition == "fair":
            apply(0.95, "Fair Condition", "Property may need some repairs")
        elif condition == "poor":
            apply(0.80, "Poor Condition", "Property requires significant renovation")

        for feature in req.features:
            m = self.tables.feature_multiplier(feature)
            if m:
                apply(m, feature, f"{feature} adds value to the property")

        return base_value * multiplier, factors

    def market_trend(self, city: str) -> str:
        city = normalize_text(city)
        if any(m in city for m in self.tables.rising_markets):
            return "rising"
        if any(m in city for m in self.tables.declining_markets):
            return "declining"
        return "stable"

    @staticmethod
    def confidence(req: ValuationRequest) -> int:
        """More optional data never lowers confidence; capped at 95."""
        score = BASE_CONFIDENCE
        spec, loc = req.specifications, req.location
        if spec and spec.year_built:
            score += 5
        if spec and spec.condition:
            score += 5
        if req.features:
            score += 5
        if loc and loc.district:
            score += 5
        if loc and loc.latitude is not None and loc.longitude is not None:
            score += 10
        if req.current_price:
            score += 5
        return min(score, MAX_CONFIDENCE)

    @staticmethod
    def price_range(value: float, confidence: int) -> tuple[int, int, int]:
        """Band widens as confidence drops: 10% at full confidence, +15% at zero."""
        range_pct = (100 - confidence) / 100 * 0.15 + 0.10
        estimated = round(value)
        low = min(round(value * (1 - range_pct)), estimated)
        high = max(round(value * (1 + range_pct)), estimated)
        return estimated, low, high

    def estimate(self, req: ValuationRequest) -> Estimate:
        base = self.base_value(req)
        adjusted, factors = self.adjust(base, req)
        trend = self.market_trend(req.location.city)
        final = adjusted * TREND_MULTIPLIERS[trend]
        confidence = self.confidence(req)
        estimated, low, high = self.price_range(final, confidence)
        return Estimate(
            base_value=base,
            adjusted_value=adjusted,
            final_value=final,
            market_trend=trend,
            confidence=confidence,
            estimated_value=estimated,
            price_range_low=low,
            price_range_high=high,
            factors=factors,
        )


def _closeness(a: float, b: float, span: float) -> float:
    if span <= 0:
        return 0.0
    return max(0.0, 1 - abs(a - b) / span)


def annotate_comparable(req: ValuationRequest, reference_price: float, cand: PropertyAttributes) -> dict:
    """
    Similarity blends price closeness (within the +/-50% search band) and
    area closeness, mapped into [0.70, 0.95]. Distance is haversine km when
    both sides have coordinates; otherwise it is a stable seeded placeholder
    in [0, 5] and the comparable is marked approximate.
    """
    spec, loc = req.specifications, req.location
    price_part = _closeness(cand.price, reference_price, 0.5 * reference_price)
    subject_area = spec.building_area or spec.land_area
    cand_area = cand.building_area_sqm or cand.area_sqm or cand.land_area_sqm
    if subject_area > 0 and cand_area > 0:
        area_part = _closeness(cand_area, subject_area, max(cand_area, subject_area))
        closeness = (price_part + area_part) / 2
    else:
        closeness = price_part
    similarity = round(SIMILARITY_MIN + (SIMILARITY_MAX - SIMILARITY_MIN) * closeness, 2)

    if (loc.latitude is not None and loc.longitude is not None
            and cand.latitude is not None and cand.longitude is not None):
        distance = round(haversine_km(loc.latitude, loc.longitude, cand.latitude, cand.longitude), 1)
        approximate = False
    else:
        subject = req.property_id or f"{normalize_text(loc.city)}|{req.property_type}|{subject_area}"
        distance = round(seeded_rand(fnv1a_32(f"{subject}:{cand.id}"))[0] * PLACEHOLDER_DISTANCE_MAX, 1)
        approximate = True

    return {
        "id": cand.id,
        "title": cand.title,
        "price": cand.price,
        "similarity": similarity,
        "distance": distance,
        "approximate": approximate,
    }
