"""
Category scorers. Each one is a fixed weighted sum of [0, 1] components
scaled to 0-100 and rounded to two decimals. Weights per scorer sum to 1.
"""

from ..data.base import PropertyAttributes
from .signals import BatchMaxima, SignalAggregate, normalize

# Engagement
ENGAGEMENT_WEIGHTS = {"views": 0.30, "saves": 0.25, "inquiries": 0.25, "clicks": 0.10, "dwell": 0.10}

# Investment
INVESTMENT_WEIGHTS = {"roi": 0.30, "yield": 0.25, "legal": 0.15, "price_per_sqm": 0.15, "foreign": 0.15}
ROI_CAP = 20.0
YIELD_CAP = 15.0
PRICE_PER_SQM_CAP = 100_000_000.0
PRICE_PER_SQM_FLOOR = 1_000_000.0
SECURE_LEGAL_STATUSES = frozenset({"SHM", "HGB"})   # freehold, building rights
LEGAL_SECURE, LEGAL_OTHER = 1.0, 0.5
FOREIGN_ELIGIBLE, FOREIGN_INELIGIBLE = 1.0, 0.7
UNKNOWN_PRICE_PER_SQM = 0.5

# Livability
LIVABILITY_WEIGHTS = {"amenities": 0.25, "area": 0.20, "bedrooms": 0.20, "furnishing": 0.20, "view": 0.15}
LIVING_AREA_CAP, LIVING_AREA_FLOOR = 500.0, 50.0
OPTIMAL_BEDROOMS = (3, 5)
FURNISHING_LEVELS = {"furnished": 1.0, "semi-furnished": 0.75, "semi_furnished": 0.75, "semi": 0.75}
UNFURNISHED = 0.5
LIVABILITY_VIEWS = frozenset({"ocean", "sea", "beach", "mountain", "rice field", "valley"})
LIVABILITY_VIEW_PREMIUM, LIVABILITY_VIEW_OTHER = 1.0, 0.6

# Luxury
LUXURY_WEIGHTS = {"price": 0.25, "tech": 0.20, "land": 0.20, "view": 0.15, "images": 0.20}
LUXURY_PRICE_CAP = 5_000_000_000.0
LUXURY_LAND_CAP, LUXURY_LAND_FLOOR = 2000.0, 500.0
LUXURY_VIEWS = frozenset({"ocean", "sea", "beach", "mountain"})
LUXURY_VIEW_PREMIUM, LUXURY_VIEW_OTHER = 1.0, 0.5
IMAGE_CAP, IMAGE_FLOOR = 20.0, 3.0


def _finish(weighted: float) -> float:
    return round(max(0.0, min(100.0, weighted * 100)), 2)


def _combine(weights: dict, parts: dict) -> float:
    return _finish(sum(weights[k] * parts[k] for k in weights))


def engagement_score(agg: SignalAggregate, maxima: BatchMaxima) -> float:
    return _combine(ENGAGEMENT_WEIGHTS, {
        "views": normalize(agg.views, maxima.views),
        "saves": normalize(agg.saves, maxima.saves),
        "inquiries": normalize(agg.inquiries, maxima.inquiries),
        "clicks": normalize(agg.clicks, maxima.clicks),
        "dwell": normalize(agg.avg_dwell, maxima.dwell),
    })


def investment_score(p: PropertyAttributes) -> float:
    if p.price > 0 and p.area_sqm > 0:
        price_sqm = normalize(p.price / p.area_sqm, PRICE_PER_SQM_CAP, PRICE_PER_SQM_FLOOR)
    else:
        # Ratio undefined without both numbers: neutral
        price_sqm = UNKNOWN_PRICE_PER_SQM
    return _combine(INVESTMENT_WEIGHTS, {
        "roi": normalize(p.roi_percentage, ROI_CAP),
        "yield": normalize(p.rental_yield_percentage, YIELD_CAP),
        "legal": LEGAL_SECURE if (p.legal_status or "").upper() in SECURE_LEGAL_STATUSES else LEGAL_OTHER,
        "price_per_sqm": 1 - price_sqm,
        "foreign": FOREIGN_ELIGIBLE if p.wna_eligible else FOREIGN_INELIGIBLE,
    })


def bedroom_fit(bedrooms: int) -> float:
    low, high = OPTIMAL_BEDROOMS
    if low <= bedrooms <= high:
        return 1.0
    return normalize(bedrooms, high, 1)


def livability_score(p: PropertyAttributes) -> float:
    amenities = (int(p.has_pool) + int(p.has_garden) + int(p.parking_spaces > 0)) / 3
    view = (p.view_type or "").strip().lower()
    return _combine(LIVABILITY_WEIGHTS, {
        "amenities": amenities,
        "area": normalize(p.building_area_sqm or p.area_sqm, LIVING_AREA_CAP, LIVING_AREA_FLOOR),
        "bedrooms": bedroom_fit(p.bedrooms),
        "furnishing": FURNISHING_LEVELS.get((p.furnishing or "").strip().lower(), UNFURNISHED),
        "view": LIVABILITY_VIEW_PREMIUM if view in LIVABILITY_VIEWS else LIVABILITY_VIEW_OTHER,
    })


def luxury_score(p: PropertyAttributes) -> float:
    tech = (int(p.has_pool) + int(bool(p.three_d_model_url)) + int(p.has_vr)) / 3
    view = (p.view_type or "").strip().lower()
    return _combine(LUXURY_WEIGHTS, {
        "price": min(1.0, max(0.0, p.price) / LUXURY_PRICE_CAP),
        "tech": tech,
        "land": normalize(p.land_area_sqm or p.area_sqm, LUXURY_LAND_CAP, LUXURY_LAND_FLOOR),
        "view": LUXURY_VIEW_PREMIUM if view in LUXURY_VIEWS else LUXURY_VIEW_OTHER,
        "images": normalize(len(p.images), IMAGE_CAP, IMAGE_FLOOR),
    })
