import asyncio
import logging
from functools import lru_cache
from typing import List, Optional

from .base import (
    BehaviorSignal, PropertyAttributes, PropertyStore, StoreError, StoreSearchFilters,
)
from ..core.config import settings
from ..core.utils import normalize_text

logger = logging.getLogger(__name__)

PROPERTIES = "properties"
SIGNALS = "user_behavior_signals"
FAVORITES = "favorites"
SCORES = "property_engagement_scores"
VALUATIONS = "property_valuations"

PROPERTY_COLUMNS = (
    "id, title, description, property_type, status, price, area_sqm, building_area_sqm, "
    "land_area_sqm, bedrooms, bathrooms, roi_percentage, rental_yield_percentage, "
    "legal_status, wna_eligible, has_pool, has_garden, parking_spaces, furnishing, "
    "view_type, three_d_model_url, has_vr, images, location, city, state, latitude, "
    "longitude, view_count, created_at"
)

SCORE_COLUMNS = (
    "property_id, views_total, saves_total, inquiries_total, clicks_total, "
    "avg_dwell_seconds, engagement_score, investment_score, livability_score, "
    "luxury_score, predicted_roi, roi_confidence, last_calculated_at"
)

class MockStore(PropertyStore):
    """
    In-memory stand-in for the hosted store. Mirrors the upsert-by-property_id
    semantics of the score table so batch runs can be exercised locally.
    """
    def __init__(self, properties: Optional[List[dict]] = None,
                 signals: Optional[List[BehaviorSignal]] = None,
                 favorites: Optional[List[Optional[str]]] = None):
        self.properties: dict[str, dict] = {}
        self.signals: List[BehaviorSignal] = list(signals or [])
        self.favorites: List[Optional[str]] = list(favorites or [])
        self.scores: dict[str, dict] = {}
        self.valuations: List[dict] = []
        for row in properties or []:
            self.add_property(row)

    def add_property(self, row: dict) -> None:
        self.properties[str(row["id"])] = dict(row)

    def _active(self) -> List[PropertyAttributes]:
        return [
            PropertyAttributes.from_row(r) for r in self.properties.values()
            if (r.get("status") or "active") == "active"
        ]

    async def list_active_properties(self, limit: int) -> List[PropertyAttributes]:
        return self._active()[:limit]

    async def get_property(self, property_id: str) -> Optional[PropertyAttributes]:
        row = self.properties.get(str(property_id))
        return PropertyAttributes.from_row(row) if row else None

    async def get_active_properties(self, ids: List[str]) -> List[PropertyAttributes]:
        wanted = set(ids)
        return [p for p in self._active() if p.id in wanted]

    async def list_signals(self) -> List[BehaviorSignal]:
        return list(self.signals)

    async def list_favorite_property_ids(self) -> List[Optional[str]]:
        return list(self.favorites)

    async def upsert_scores(self, rows: List[dict]) -> None:
        for row in rows:
            current = self.scores.setdefault(row["property_id"], {})
            current.update(row)

    async def top_scores(self, column: str, limit: int) -> List[dict]:
        rows = sorted(self.scores.values(), key=lambda r: r.get(column) or 0, reverse=True)
        return [dict(r) for r in rows[:limit]]

    async def find_comparables(self, property_type, min_price, max_price, limit, exclude_id=None):
        out = [
            p for p in self._active()
            if p.property_type == property_type and min_price <= p.price <= max_price
            and p.id != exclude_id
        ]
        return out[:limit]

    async def save_valuation(self, row: dict) -> None:
        self.valuations.append(dict(row))

    async def search_properties(self, filters: StoreSearchFilters, limit: int) -> List[PropertyAttributes]:
        wanted_type = normalize_text(filters.property_type)
        out = [
            p for p in self._active()
            if (not wanted_type or normalize_text(p.property_type) == wanted_type)
            and (filters.max_price is None or p.price <= filters.max_price)
        ]
        return out[:limit]

class SupabaseStore(PropertyStore):
    """
    Hosted Postgres via the supabase client. The client is synchronous, so
    every query runs in a worker thread; failures surface as StoreError.
    """
    def __init__(self, url: str, key: str):
        from supabase import create_client
        self.client = create_client(url, key)
        logger.info("Supabase store initialised", extra={"ctx": {"url": url}})

    async def _run(self, what: str, query) -> list:
        try:
            response = await asyncio.to_thread(query.execute)
        except Exception as exc:
            logger.error("Store query failed", extra={"ctx": {"query": what, "error": str(exc)}})
            raise StoreError(f"{what} failed") from exc
        return response.data or []

    async def list_active_properties(self, limit: int) -> List[PropertyAttributes]:
        q = self.client.table(PROPERTIES).select(PROPERTY_COLUMNS).eq("status", "active").limit(limit)
        return [PropertyAttributes.from_row(r) for r in await self._run("list_active_properties", q)]

    async def get_property(self, property_id: str) -> Optional[PropertyAttributes]:
        q = self.client.table(PROPERTIES).select(PROPERTY_COLUMNS).eq("id", property_id).limit(1)
        rows = await self._run("get_property", q)
        return PropertyAttributes.from_row(rows[0]) if rows else None

    async def get_active_properties(self, ids: List[str]) -> List[PropertyAttributes]:
        if not ids:
            return []
        q = self.client.table(PROPERTIES).select(PROPERTY_COLUMNS).in_("id", ids).eq("status", "active")
        return [PropertyAttributes.from_row(r) for r in await self._run("get_active_properties", q)]

    async def list_signals(self) -> List[BehaviorSignal]:
        q = self.client.table(SIGNALS).select("property_id, signal_type, signal_value, created_at")
        return [
            BehaviorSignal(
                property_id=r.get("property_id"),
                signal_type=r.get("signal_type") or "",
                signal_value=r.get("signal_value"),
            )
            for r in await self._run("list_signals", q)
        ]

    async def list_favorite_property_ids(self) -> List[Optional[str]]:
        q = self.client.table(FAVORITES).select("property_id")
        return [r.get("property_id") for r in await self._run("list_favorites", q)]

    async def upsert_scores(self, rows: List[dict]) -> None:
        q = self.client.table(SCORES).upsert(rows, on_conflict="property_id")
        await self._run("upsert_scores", q)

    async def top_scores(self, column: str, limit: int) -> List[dict]:
        q = self.client.table(SCORES).select(SCORE_COLUMNS).order(column, desc=True).limit(limit)
        return await self._run("top_scores", q)

    async def find_comparables(self, property_type, min_price, max_price, limit, exclude_id=None):
        q = (
            self.client.table(PROPERTIES).select(PROPERTY_COLUMNS)
            .eq("property_type", property_type).eq("status", "active")
            .gte("price", min_price).lte("price", max_price)
        )
        if exclude_id:
            q = q.neq("id", exclude_id)
        rows = await self._run("find_comparables", q.limit(limit))
        return [PropertyAttributes.from_row(r) for r in rows]

    async def save_valuation(self, row: dict) -> None:
        await self._run("save_valuation", self.client.table(VALUATIONS).insert(row))

    async def search_properties(self, filters: StoreSearchFilters, limit: int) -> List[PropertyAttributes]:
        q = self.client.table(PROPERTIES).select(PROPERTY_COLUMNS).eq("status", "active")
        if filters.property_type:
            q = q.eq("property_type", filters.property_type)
        if filters.max_price is not None:
            q = q.lte("price", filters.max_price)
        rows = await self._run("search_properties", q.limit(limit))
        return [PropertyAttributes.from_row(r) for r in rows]

@lru_cache
def property_store() -> PropertyStore:
    """
    Factory picks the in-memory or supabase store based on env flags.
    Cached so every request shares one store (and the memory store keeps state).
    """
    if settings.STORE_PROVIDER == "supabase":
        if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY are required for the supabase store")
        return SupabaseStore(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    return MockStore()
