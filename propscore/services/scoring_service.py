import asyncio
import logging

from fastapi import HTTPException

from ..core.config import settings
from ..core.metrics import ROI_OUTCOMES, SCORE_CHUNK_FAILURES, SCORES_WRITTEN
from ..core.utils import utcnow
from ..data.base import PropertyAttributes, PropertyStore, StoreError
from ..data.store_client import property_store
from ..engine.scorers import engagement_score, investment_score, livability_score, luxury_score
from ..engine.signals import BatchMaxima, SignalAggregate, aggregate_signals, batch_maxima
from ..models.base import RoiPredictor, RoiPrediction, ROI_OK
from ..models.offline_model import UnconfiguredRoiPredictor
from ..models.openai_model import OpenAIRoiPredictor

logger = logging.getLogger(__name__)

COLLECTION_COLUMNS = {
    "best_investment": "investment_score",
    "best_for_living": "livability_score",
    "luxury_collection": "luxury_score",
    "trending": "engagement_score",
}
DEFAULT_COLLECTION_COLUMN = "engagement_score"

ROI_PROMPT_FIELDS = (
    "id", "title", "price", "location", "city", "property_type", "area_sqm", "bedrooms",
    "roi_percentage", "rental_yield_percentage", "legal_status", "wna_eligible", "view_type",
)


def build_score_record(p: PropertyAttributes, agg: SignalAggregate, maxima: BatchMaxima, now: str) -> dict:
    return {
        "property_id": p.id,
        "views_total": agg.views,
        "saves_total": agg.saves,
        "inquiries_total": agg.inquiries,
        "clicks_total": agg.clicks,
        "avg_dwell_seconds": agg.avg_dwell,
        "engagement_score": engagement_score(agg, maxima),
        "investment_score": investment_score(p),
        "livability_score": livability_score(p),
        "luxury_score": luxury_score(p),
        "last_calculated_at": now,
        "updated_at": now,
    }


class ScoringService:
    """
    Orchestrates:
      active properties + signals + favorites → aggregates → batch maxima
      → four category scores per property → chunked upsert by property_id
    plus smart collections and on-demand ROI prediction.
    """
    def __init__(self, store: PropertyStore | None = None, predictor: RoiPredictor | None = None,
                 batch_size: int | None = None, property_limit: int | None = None):
        self.store = store or property_store()
        if predictor is not None:
            self.predictor = predictor
        elif settings.AI_API_KEY:
            self.predictor = OpenAIRoiPredictor()
        else:
            self.predictor = UnconfiguredRoiPredictor()
        self.batch_size = max(1, batch_size or settings.SCORE_BATCH_SIZE)
        self.property_limit = property_limit or settings.SCORE_PROPERTY_LIMIT
        self.timeout = settings.STORE_TIMEOUT_SECONDS

    async def _read(self, what: str, awaitable):
        try:
            return await asyncio.wait_for(awaitable, self.timeout)
        except StoreError as exc:
            logger.error("Store read failed", extra={"ctx": {"step": what}})
            raise HTTPException(status_code=502, detail=f"Property store unavailable ({what})") from exc
        except asyncio.TimeoutError as exc:
            logger.error("Store read timed out", extra={"ctx": {"step": what, "timeout": self.timeout}})
            raise HTTPException(status_code=504, detail=f"Property store timed out ({what})") from exc

    async def recalculate_all(self) -> dict:
        properties = await self._read("properties", self.store.list_active_properties(self.property_limit))
        signals = await self._read("signals", self.store.list_signals())
        favorites = await self._read("favorites", self.store.list_favorite_property_ids())
        logger.info("Score batch inputs loaded", extra={"ctx": {
            "properties": len(properties), "signals": len(signals), "favorites": len(favorites),
        }})

        active_ids = {p.id for p in properties}
        aggregates = aggregate_signals(signals, favorites, active_ids=active_ids)
        maxima = batch_maxima(aggregates.values())

        now = utcnow().isoformat()
        rows = [build_score_record(p, aggregates.get(p.id, SignalAggregate()), maxima, now) for p in properties]

        processed, failed_chunks = 0, 0
        for start in range(0, len(rows), self.batch_size):
            chunk = rows[start:start + self.batch_size]
            try:
                await asyncio.wait_for(self.store.upsert_scores(chunk), self.timeout)
            except (StoreError, asyncio.TimeoutError) as exc:
                # Skip this chunk; the next run will upsert it again
                failed_chunks += 1
                SCORE_CHUNK_FAILURES.inc()
                logger.error("Score chunk upsert failed", extra={"ctx": {
                    "offset": start, "size": len(chunk), "error": repr(exc),
                }})
                continue
            processed += len(chunk)

        SCORES_WRITTEN.inc(processed)
        logger.info("Score batch finished", extra={"ctx": {
            "processed": processed, "failed_chunks": failed_chunks, "total": len(rows),
        }})
        return {"success": failed_chunks == 0, "processed": processed, "failed_chunks": failed_chunks}

    async def get_collection(self, collection_type: str, limit: int = 12) -> dict:
        column = COLLECTION_COLUMNS.get(collection_type, DEFAULT_COLLECTION_COLUMN)
        scores = await self._read("top_scores", self.store.top_scores(column, limit))
        if not scores:
            return {"collection_type": collection_type, "properties": []}

        by_id = {s["property_id"]: s for s in scores}
        properties = await self._read("collection_properties", self.store.get_active_properties(list(by_id)))
        merged = [{**p.to_dict(), "scores": by_id.get(p.id)} for p in properties]
        merged.sort(key=lambda m: (m["scores"] or {}).get(column) or 0, reverse=True)
        return {"collection_type": collection_type, "properties": merged}

    async def predict_roi(self, property_id: str) -> dict:
        prop = await self._read("property", self.store.get_property(property_id))
        if prop is None:
            raise HTTPException(status_code=404, detail="Property not found")

        payload = {k: v for k, v in prop.to_dict().items() if k in ROI_PROMPT_FIELDS}
        try:
            # Slightly above the client timeout so the SDK gets to report first
            prediction = await asyncio.wait_for(self.predictor.predict(payload), settings.AI_TIMEOUT_SECONDS + 5)
        except asyncio.TimeoutError:
            logger.warning("ROI prediction timed out", extra={"ctx": {"property_id": property_id}})
            prediction = RoiPrediction.neutral("Prediction timed out")

        ROI_OUTCOMES.labels(status=prediction.status).inc()
        if prediction.status == ROI_OK:
            row = {
                "property_id": property_id,
                "predicted_roi": prediction.predicted_roi,
                "roi_confidence": prediction.confidence,
                "updated_at": utcnow().isoformat(),
            }
            try:
                await asyncio.wait_for(self.store.upsert_scores([row]), self.timeout)
            except (StoreError, asyncio.TimeoutError) as exc:
                logger.error("Failed to persist ROI prediction", extra={"ctx": {
                    "property_id": property_id, "error": repr(exc),
                }})

        logger.info("ROI prediction", extra={"ctx": {"property_id": property_id, "status": prediction.status}})
        return {"property_id": property_id, **prediction.to_dict()}
