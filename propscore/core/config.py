import os
from pydantic import BaseModel

class Settings(BaseModel):
    # Basic
    ENV: str = os.getenv("ENV", "dev")
    DEFAULT_CURRENCY: str = os.getenv("CURRENCY", "IDR")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Property store
    STORE_PROVIDER: str = os.getenv("STORE_PROVIDER", "memory")    # memory | supabase
    SUPABASE_URL: str | None = os.getenv("SUPABASE_URL")
    SUPABASE_KEY: str | None = os.getenv("SUPABASE_KEY")
    STORE_TIMEOUT_SECONDS: float = float(os.getenv("STORE_TIMEOUT_SECONDS", "10"))

    # Score batch
    SCORE_BATCH_SIZE: int = int(os.getenv("SCORE_BATCH_SIZE", "500"))
    SCORE_PROPERTY_LIMIT: int = int(os.getenv("SCORE_PROPERTY_LIMIT", "5000"))

    # Personalization
    RECOMMENDER_PROVIDER: str = os.getenv("RECOMMENDER_PROVIDER", "none")  # none | http
    RECOMMENDER_BASE_URL: str | None = os.getenv("RECOMMENDER_BASE_URL")
    RECOMMENDER_TIMEOUT_SECONDS: float = float(os.getenv("RECOMMENDER_TIMEOUT_SECONDS", "3"))

    # AI (OpenAI-compatible chat completions)
    AI_API_KEY: str | None = os.getenv("AI_API_KEY")
    AI_BASE_URL: str | None = os.getenv("AI_BASE_URL")
    AI_MODEL: str = os.getenv("AI_MODEL", "gpt-4o-mini")
    AI_TIMEOUT_SECONDS: float = float(os.getenv("AI_TIMEOUT_SECONDS", "20"))

    # Search cache
    SEARCH_CACHE_TTL_SECONDS: int = int(os.getenv("SEARCH_CACHE_TTL_SECONDS", "300"))
    SEARCH_CACHE_MAXSIZE: int = int(os.getenv("SEARCH_CACHE_MAXSIZE", "1000"))
    SEARCH_CANDIDATE_LIMIT: int = int(os.getenv("SEARCH_CANDIDATE_LIMIT", "500"))

    # Security
    API_KEY: str | None = os.getenv("API_KEY")
    RATE_LIMIT_RPM: int = int(os.getenv("RATE_LIMIT_RPM", "120"))

    # CORS
    ALLOW_ORIGINS: str = os.getenv("ALLOW_ORIGINS", "*")

    # Metrics
    PROMETHEUS_ENABLED: bool = os.getenv("PROMETHEUS_ENABLED", "true").lower() == "true"

settings = Settings()
