from typing import List
from .base import Recommender
from ..core.config import settings
import httpx

class NoRecommender(Recommender):
    """
    Personalization disabled: nobody is boosted.
    """
    async def recommend(self, user_id: str, context: dict) -> List[str]:
        return []

class StaticRecommender(Recommender):
    """
    Fixed per-user id lists; used for local runs and tests.
    """
    def __init__(self, by_user: dict[str, List[str]]):
        self.by_user = by_user

    async def recommend(self, user_id: str, context: dict) -> List[str]:
        return list(self.by_user.get(user_id, []))

class HttpRecommender(Recommender):
    """
    Client for the recommendation microservice.
    Expects POST /recommendations → {"property_ids": [...]} ranked best-first.
    """
    def __init__(self, base_url: str, timeout: float):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def recommend(self, user_id: str, context: dict) -> List[str]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(
                f"{self.base_url}/recommendations",
                json={"user_id": user_id, "search_context": context},
            )
            r.raise_for_status()
            return [str(i) for i in r.json().get("property_ids", [])]

def recommender_client() -> Recommender:
    if settings.RECOMMENDER_PROVIDER == "http" and settings.RECOMMENDER_BASE_URL:
        return HttpRecommender(settings.RECOMMENDER_BASE_URL, settings.RECOMMENDER_TIMEOUT_SECONDS)
    return NoRecommender()
