import asyncio
import logging
from dataclasses import asdict
from datetime import timedelta

from fastapi import HTTPException

from ..core.config import settings
from ..core.utils import utcnow
from ..data.base import PropertyStore, StoreError
from ..data.store_client import property_store
from ..engine.valuation import (
    DEFAULT_TABLES, METHODOLOGY, VALIDITY_DAYS, ValuationEstimator, ValuationTables,
    annotate_comparable,
)
from ..schemas import ValuationRequest

logger = logging.getLogger(__name__)

COMPARABLE_LIMIT = 5
COMPARABLE_BAND = 0.5      # +/-50% around the reference price


class ValuationService:
    """
    Orchestrates:
      input validation → base value → adjustments → market trend → confidence
      → price band → comparables from the store → optional persistence
    """
    def __init__(self, store: PropertyStore | None = None, tables: ValuationTables = DEFAULT_TABLES,
                 estimator: ValuationEstimator | None = None):
        self.store = store or property_store()
        self.estimator = estimator or ValuationEstimator(tables)
        self.timeout = settings.STORE_TIMEOUT_SECONDS

    @staticmethod
    def validate(req: ValuationRequest) -> None:
        missing = []
        if not (req.property_type or "").strip():
            missing.append("property_type")
        if req.location is None or not (req.location.city or "").strip():
            missing.append("location.city")
        if req.specifications is None:
            missing.append("specifications")
        if missing:
            raise HTTPException(status_code=400, detail=f"Missing required fields: {', '.join(missing)}")

    async def comparables(self, req: ValuationRequest, reference_price: float) -> list[dict]:
        """
        Same-type properties within +/-50% of the reference price. Similarity
        and distance are approximations (see annotate_comparable), not
        measured ground truth. Store trouble yields an empty list.
        """
        try:
            candidates = await asyncio.wait_for(
                self.store.find_comparables(
                    property_type=req.property_type,
                    min_price=reference_price * (1 - COMPARABLE_BAND),
                    max_price=reference_price * (1 + COMPARABLE_BAND),
                    limit=COMPARABLE_LIMIT,
                    exclude_id=req.property_id,
                ),
                self.timeout,
            )
        except (StoreError, asyncio.TimeoutError) as exc:
            logger.warning("Comparables unavailable", extra={"ctx": {"error": repr(exc)}})
            return []
        return [annotate_comparable(req, reference_price, c) for c in candidates]

    async def value_property(self, req: ValuationRequest) -> dict:
        self.validate(req)
        logger.info("Processing valuation", extra={"ctx": {
            "type": req.property_type, "city": req.location.city,
            "area": req.specifications.building_area,
        }})

        try:
            est = self.estimator.estimate(req)
        except (ArithmeticError, ValueError) as exc:
            logger.exception("Valuation failed")
            raise HTTPException(status_code=400, detail="Valuation failed") from exc
        logger.info("Valuation computed", extra={"ctx": {
            "base": est.base_value, "adjusted": est.adjusted_value, "factors": len(est.factors),
            "trend": est.market_trend, "confidence": est.confidence,
        }})

        reference_price = req.current_price or est.estimated_value
        comparables = await self.comparables(req, reference_price) if reference_price > 0 else []

        payload = {
            "property_id": req.property_id,
            "currency": settings.DEFAULT_CURRENCY,
            "estimated_value": est.estimated_value,
            "confidence_score": est.confidence,
            "price_range_low": est.price_range_low,
            "price_range_high": est.price_range_high,
            "market_trend": est.market_trend,
            "comparable_properties": comparables,
            "valuation_factors": [asdict(f) for f in est.factors],
            "methodology": METHODOLOGY,
            "valid_until": (utcnow() + timedelta(days=VALIDITY_DAYS)).isoformat(),
        }

        if req.property_id:
            await self.persist(req.property_id, payload)
        return payload

    async def persist(self, property_id: str, payload: dict) -> None:
        row = {
            "property_id": property_id,
            "estimated_value": payload["estimated_value"],
            "confidence_score": payload["confidence_score"],
            "valuation_method": "automated",
            "market_trend": payload["market_trend"],
            "comparable_properties": payload["comparable_properties"],
            "valuation_factors": payload["valuation_factors"],
            "price_range_low": payload["price_range_low"],
            "price_range_high": payload["price_range_high"],
            "valid_until": payload["valid_until"],
        }
        try:
            await asyncio.wait_for(self.store.save_valuation(row), self.timeout)
            logger.info("Valuation stored", extra={"ctx": {"property_id": property_id}})
        except (StoreError, asyncio.TimeoutError) as exc:
            # The estimate itself is still valid; only the audit row is lost
            logger.error("Failed to store valuation", extra={"ctx": {
                "property_id": property_id, "error": repr(exc),
            }})
