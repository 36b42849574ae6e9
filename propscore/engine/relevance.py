"""
Search relevance ranking.

Each candidate gets up to four sub-scores (text, location, price, features).
A dimension only counts when its filter is present in the query, and the
weighted mean is taken over the active weights only. No active filter means a
neutral score of 50 for everybody.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable

from ..core.utils import normalize_text
from ..data.base import PropertyAttributes

WEIGHTS = {"text": 0.40, "location": 0.25, "price": 0.20, "features": 0.15}
NEUTRAL_SCORE = 50.0
PERSONALIZATION_BOOST = 1.2

TEXT_REASON_THRESHOLD = 0.7
LOCATION_REASON_THRESHOLD = 0.8

# flag -> predicate over the property
FEATURE_FLAGS: dict[str, Callable[[PropertyAttributes], bool]] = {
    "3d_model": lambda p: bool(p.three_d_model_url),
    "vr": lambda p: p.has_vr,
    "pool": lambda p: p.has_pool,
    "garden": lambda p: p.has_garden,
    "parking": lambda p: p.parking_spaces > 0,
    "furnished": lambda p: (p.furnishing or "").lower() == "furnished",
}


@dataclass(frozen=True)
class RankingQuery:
    query_text: str | None = None
    location: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    bedrooms: int | None = None
    bathrooms: int | None = None
    feature_flags: tuple = ()

    @property
    def known_flags(self) -> list[str]:
        return [f for f in (normalize_text(x) for x in self.feature_flags) if f in FEATURE_FLAGS]

    @property
    def has_price(self) -> bool:
        return self.min_price is not None or self.max_price is not None

    @property
    def has_features(self) -> bool:
        return self.bedrooms is not None or self.bathrooms is not None or bool(self.known_flags)


@dataclass
class ScoredProperty:
    property: PropertyAttributes
    relevance_score: float
    match_reasons: list = field(default_factory=list)
    personalized: bool = False


def _tokens(text: str | None) -> list[str]:
    return normalize_text(text).split()


def text_score(query_text: str, p: PropertyAttributes) -> float:
    tokens = _tokens(query_text)
    if not tokens:
        return 0.0
    haystack = normalize_text(" ".join([p.title, p.description, p.location, p.city, p.state]))
    return sum(1 for t in tokens if t in haystack) / len(tokens)


def location_score(location: str, p: PropertyAttributes) -> float:
    wanted = normalize_text(location)
    if not wanted:
        return 0.0
    where = normalize_text(" ".join([p.location, p.city, p.state]))
    if wanted in where:
        return 1.0
    tokens = [t.strip(",") for t in wanted.split()]
    tokens = [t for t in tokens if t]
    if not tokens:
        return 0.0
    return sum(1 for t in tokens if t in where) / len(tokens)


def price_score(min_price: float | None, max_price: float | None, price: float) -> float:
    """1.0 inside the band; outside it decays linearly with relative distance to the violated bound."""
    if min_price is not None and price < min_price:
        return max(0.0, 1 - (min_price - price) / min_price) if min_price > 0 else 0.0
    if max_price is not None and price > max_price:
        return max(0.0, 1 - (price - max_price) / max_price) if max_price > 0 else 0.0
    return 1.0


def feature_score(q: RankingQuery, p: PropertyAttributes) -> float:
    checks = []
    if q.bedrooms is not None:
        checks.append(p.bedrooms >= q.bedrooms)
    if q.bathrooms is not None:
        checks.append(p.bathrooms >= q.bathrooms)
    for flag in q.known_flags:
        checks.append(FEATURE_FLAGS[flag](p))
    if not checks:
        return 0.0
    return sum(checks) / len(checks)


def score_property(q: RankingQuery, p: PropertyAttributes) -> ScoredProperty:
    parts: dict[str, float] = {}
    reasons: list[str] = []

    if q.query_text:
        parts["text"] = text_score(q.query_text, p)
        if parts["text"] > TEXT_REASON_THRESHOLD:
            reasons.append("Matches your search terms")
    if q.location:
        parts["location"] = location_score(q.location, p)
        if parts["location"] > LOCATION_REASON_THRESHOLD:
            reasons.append(f"Located in {q.location}")
    if q.has_price:
        parts["price"] = price_score(q.min_price, q.max_price, p.price)
        if parts["price"] == 1.0:
            reasons.append("Within your budget")
    if q.has_features:
        parts["features"] = feature_score(q, p)
    if p.three_d_model_url:
        reasons.append("3D virtual tour available")

    if not parts:
        return ScoredProperty(property=p, relevance_score=NEUTRAL_SCORE, match_reasons=reasons)

    total_weight = sum(WEIGHTS[k] for k in parts)
    score = sum(parts[k] * WEIGHTS[k] for k in parts) / total_weight * 100
    return ScoredProperty(property=p, relevance_score=round(min(100.0, max(0.0, score)), 2), match_reasons=reasons)


def rank(q: RankingQuery, candidates: Iterable[PropertyAttributes]) -> list[ScoredProperty]:
    """Base scores only; personalization and sorting are separate steps."""
    return [score_property(q, p) for p in candidates]


def personalize(results: list[ScoredProperty], recommended_ids: Iterable[str]) -> list[ScoredProperty]:
    """Boost recommended properties by 20%, clamped at 100. Must run before sort_results."""
    boosted = set(recommended_ids)
    out = []
    for r in results:
        if r.property.id in boosted:
            r = ScoredProperty(
                property=r.property,
                relevance_score=round(min(100.0, r.relevance_score * PERSONALIZATION_BOOST), 2),
                match_reasons=r.match_reasons + ["Recommended for you"],
                personalized=True,
            )
        out.append(r)
    return out


SORT_KEYS = {
    "relevance": (lambda r: r.relevance_score, True),
    "price_asc": (lambda r: r.property.price, False),
    "newest": (lambda r: r.property.created_at or "", True),
    "popular": (lambda r: r.property.view_count, True),
}


def sort_results(results: list[ScoredProperty], sort_by: str = "relevance") -> list[ScoredProperty]:
    key, reverse = SORT_KEYS.get(sort_by, SORT_KEYS["relevance"])
    return sorted(results, key=key, reverse=reverse)
