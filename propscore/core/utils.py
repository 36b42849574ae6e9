import json
import math
from datetime import datetime, timezone

def normalize_text(text: str | None) -> str:
    """Case- and whitespace-insensitive form used for lookups, matching and cache keys."""
    return " ".join((text or "").strip().lower().split())

def fnv1a_32(s: str) -> int:
    """Deterministic, fast hash for seed generation."""
    h = 0x811c9dc5
    for c in s.encode("utf-8"):
        h ^= c
        h = (h * 0x01000193) & 0xFFFFFFFF
    return h

def seeded_rand(seed: int, n: int = 1) -> list[float]:
    """
    Stateless pseudo-random generator (Mulberry32-like) so
    same seed → same outputs without storing PRNG state.
    """
    out = []
    t = (seed + 0x6D2B79F5) & 0xFFFFFFFF
    for _ in range(n):
        t = (t ^ (t >> 15)) * (t | 1) & 0xFFFFFFFF
        t ^= t + ((t ^ (t >> 7)) * (t | 61) & 0xFFFFFFFF)
        r = ((t ^ (t >> 14)) & 0xFFFFFFFF) / 4294967296.0
        out.append(r)
    return out

def canonical_key(prefix: str, params: dict) -> str:
    """Order-independent cache key; None values and empty lists are dropped."""
    cleaned = {k: v for k, v in params.items() if v is not None and v != []}
    return f"{prefix}:" + json.dumps(cleaned, sort_keys=True, separators=(",", ":"))

def sanitize_amount(value):
    """Non-finite or negative numbers become None (treated as an absent filter)."""
    if value is None:
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(v) or v < 0:
        return None
    return value

def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    r = 6371.0
    p1, p2 = math.radians(lat1), math.radians(lat2)
    dp = p2 - p1
    dl = math.radians(lon2 - lon1)
    a = math.sin(dp / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2) ** 2
    return 2 * r * math.asin(math.sqrt(a))

def utcnow() -> datetime:
    return datetime.now(timezone.utc)
