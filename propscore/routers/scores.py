from fastapi import APIRouter, Depends, Query
from ..schemas import CollectionResponse, RecalculateResponse, RoiPredictionResponse
from ..services.scoring_service import ScoringService
from ..core.security import require_api_key, rate_limit

router = APIRouter()

def service_dep() -> ScoringService:
    return ScoringService()

@router.post("/scores/recalculate", response_model=RecalculateResponse)
async def recalculate_scores(
    _auth = Depends(require_api_key),
    _lim  = Depends(rate_limit),
    svc: ScoringService = Depends(service_dep),
):
    # Idempotent: rows are upserted by property_id
    return await svc.recalculate_all()

@router.get("/collections/{collection_type}", response_model=CollectionResponse)
async def get_collection(
    collection_type: str,
    limit: int = Query(12, ge=1, le=100),
    _auth = Depends(require_api_key),
    _lim  = Depends(rate_limit),
    svc: ScoringService = Depends(service_dep),
):
    return await svc.get_collection(collection_type, limit)

@router.post("/scores/{property_id}/roi", response_model=RoiPredictionResponse)
async def predict_roi(
    property_id: str,
    _auth = Depends(require_api_key),
    _lim  = Depends(rate_limit),
    svc: ScoringService = Depends(service_dep),
):
    return await svc.predict_roi(property_id)
