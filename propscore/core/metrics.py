import time
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Define metrics (names follow Prometheus conventions)
REQ_COUNT = Counter("http_requests_total", "Total HTTP requests", ["path","method","code"])
REQ_LATENCY = Histogram("http_request_duration_seconds", "Request latency", ["path","method"])

# Domain metrics
SEARCH_CACHE = Counter("search_cache_lookups_total", "Search result cache lookups", ["result"])
SEARCH_FALLBACKS = Counter("search_store_fallbacks_total", "Searches served by the reduced-parameter path")
SCORE_CHUNK_FAILURES = Counter("score_batch_chunk_failures_total", "Score upsert chunks that failed")
SCORES_WRITTEN = Counter("score_records_written_total", "Score records upserted by batch runs")
ROI_OUTCOMES = Counter("roi_predictions_total", "ROI prediction outcomes", ["status"])

class PromMiddleware(BaseHTTPMiddleware):
    """
    Measures latency and counts requests.
    """
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed = time.perf_counter() - start

        # Prefer the route template so path params don't explode label cardinality
        route = request.scope.get("route")
        path = getattr(route, "path", request.url.path)
        method = request.method
        code = str(response.status_code)

        REQ_COUNT.labels(path=path, method=method, code=code).inc()
        REQ_LATENCY.labels(path=path, method=method).observe(elapsed)
        return response

async def metrics_endpoint(request: Request):
    """
    GET /v1/metrics, scraped by Prometheus.
    """
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
