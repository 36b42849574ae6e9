from fastapi import APIRouter, Depends
from ..schemas import SearchRequest, SearchResponse
from ..services.search_service import SearchService
from ..core.security import require_api_key, rate_limit

router = APIRouter()

def service_dep() -> SearchService:
    return SearchService()

@router.post("/search", response_model=SearchResponse)
async def post_search(
    body: SearchRequest,
    _auth = Depends(require_api_key),
    _lim  = Depends(rate_limit),
    svc: SearchService = Depends(service_dep),
):
    return await svc.search(body)

@router.delete("/search/cache", status_code=204)
def clear_search_cache(
    _auth = Depends(require_api_key),
    svc: SearchService = Depends(service_dep),
):
    svc.clear_cache()
