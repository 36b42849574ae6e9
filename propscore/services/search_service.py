import asyncio
import logging
import time

from fastapi import HTTPException

from ..core.cache import ResultCache, search_cache
from ..core.config import settings
from ..core.metrics import SEARCH_CACHE, SEARCH_FALLBACKS
from ..core.utils import canonical_key, normalize_text
from ..data.base import PropertyStore, Recommender, StoreError, StoreSearchFilters
from ..data.recommender_client import recommender_client
from ..data.store_client import property_store
from ..engine.relevance import RankingQuery, personalize, rank, sort_results
from ..schemas import SearchRequest

logger = logging.getLogger(__name__)

SEARCH_FAILED = "Search failed, try narrowing filters"
PRICE_DECAY_SPAN = 2


class SearchService:
    """
    Orchestrates:
      cache lookup → store candidates (reduced query on failure) → base relevance
      → personalization boost → sort → first `limit` results
    The cache holds base-scored results, so personalization and sorting are
    re-applied on every request, hit or miss.
    """
    def __init__(self, store: PropertyStore | None = None, recommender: Recommender | None = None,
                 cache: ResultCache | None = None):
        self.store = store or property_store()
        self.recommender = recommender or recommender_client()
        self.cache = cache if cache is not None else search_cache
        self.timeout = settings.STORE_TIMEOUT_SECONDS
        self.candidate_limit = settings.SEARCH_CANDIDATE_LIMIT

    @staticmethod
    def cache_key(req: SearchRequest) -> str:
        # limit is left out: the cached list is the full ranked candidate set
        return canonical_key("search", {
            "query_text": normalize_text(req.query_text) or None,
            "location": normalize_text(req.location) or None,
            "min_price": req.min_price,
            "max_price": req.max_price,
            "bedrooms": req.bedrooms,
            "bathrooms": req.bathrooms,
            "property_type": normalize_text(req.property_type) or None,
            "feature_flags": sorted(normalize_text(f) for f in req.feature_flags),
        })

    async def _candidates(self, req: SearchRequest):
        """Returns (candidates, degraded)."""
        property_type = normalize_text(req.property_type) or None
        # Above 2x max_price the price sub-score is already 0
        filters = StoreSearchFilters(
            property_type=property_type,
            max_price=req.max_price * PRICE_DECAY_SPAN if req.max_price is not None else None,
        )
        try:
            candidates = await asyncio.wait_for(
                self.store.search_properties(filters, self.candidate_limit), self.timeout,
            )
            return candidates, False
        except (StoreError, asyncio.TimeoutError) as exc:
            logger.warning("Search store query failed, trying reduced query", extra={"ctx": {"error": repr(exc)}})
            first_error = exc

        # Reduced path: type only and a request-sized page, shared across queries via the cache
        reduced = StoreSearchFilters(property_type=property_type)
        reduced_key = canonical_key("search:reduced", {"property_type": property_type, "limit": req.limit})
        SEARCH_FALLBACKS.inc()
        cached = self.cache.get(reduced_key)
        if cached is not None:
            return cached, True
        try:
            candidates = await asyncio.wait_for(self.store.search_properties(reduced, req.limit), self.timeout)
        except (StoreError, asyncio.TimeoutError) as exc:
            logger.error("Search failed", extra={"ctx": {"error": repr(exc), "first_error": repr(first_error)}})
            raise HTTPException(status_code=502, detail=SEARCH_FAILED) from exc
        self.cache.set(reduced_key, candidates)
        return candidates, True

    async def _recommended_ids(self, req: SearchRequest) -> list[str]:
        if not req.user_id:
            return []
        context = req.model_dump(exclude={"user_id", "sort_by", "limit"}, exclude_none=True)
        try:
            return await asyncio.wait_for(
                self.recommender.recommend(req.user_id, context), settings.RECOMMENDER_TIMEOUT_SECONDS,
            )
        except Exception as exc:
            # Personalization is optional; fall back to unpersonalized results
            logger.warning("Recommender unavailable", extra={"ctx": {"error": repr(exc)}})
            return []

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Search cache cleared")

    async def search(self, req: SearchRequest) -> dict:
        start = time.perf_counter()
        key = self.cache_key(req)

        scored = self.cache.get(key)
        cache_hit = scored is not None
        degraded = False
        SEARCH_CACHE.labels(result="hit" if cache_hit else "miss").inc()

        if not cache_hit:
            candidates, degraded = await self._candidates(req)
            query = RankingQuery(
                query_text=req.query_text,
                location=req.location,
                min_price=req.min_price,
                max_price=req.max_price,
                bedrooms=req.bedrooms,
                bathrooms=req.bathrooms,
                feature_flags=tuple(req.feature_flags),
            )
            scored = rank(query, candidates)
            if not degraded:
                self.cache.set(key, scored)

        recommended = await self._recommended_ids(req)
        ranked = sort_results(personalize(scored, recommended) if recommended else list(scored), req.sort_by)
        results = ranked[:req.limit]

        took_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info("Search served", extra={"ctx": {
            "results": len(results), "total": len(ranked), "cache_hit": cache_hit,
            "degraded": degraded, "took_ms": took_ms,
        }})
        return {
            "results": [
                {
                    "property": r.property.to_dict(),
                    "relevance_score": r.relevance_score,
                    "match_reasons": r.match_reasons,
                    "personalized": r.personalized,
                }
                for r in results
            ],
            "total_count": len(ranked),
            "took_ms": took_ms,
            "cache_hit": cache_hit,
            "personalized": bool(recommended),
            "degraded": degraded,
        }
