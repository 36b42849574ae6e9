from fastapi import APIRouter, Depends
from ..schemas import ValuationRequest, ValuationResponse
from ..services.valuation_service import ValuationService
from ..core.security import require_api_key, rate_limit

router = APIRouter()

def service_dep() -> ValuationService:
    # Cheap factory; the store behind it is a shared singleton.
    return ValuationService()

@router.post("/valuation", response_model=ValuationResponse)
async def post_valuation(
    body: ValuationRequest,
    _auth = Depends(require_api_key),     # API key guard
    _lim  = Depends(rate_limit),          # Rate limiting
    svc: ValuationService = Depends(service_dep),
):
    return await svc.value_property(body)
