import pytest
from fastapi.testclient import TestClient

from propscore.core.cache import ResultCache
from propscore.data.base import BehaviorSignal
from propscore.data.recommender_client import StaticRecommender
from propscore.data.store_client import MockStore
from propscore.main import app
from propscore.routers import scores, search, valuation
from propscore.services.scoring_service import ScoringService
from propscore.services.search_service import SearchService
from propscore.services.valuation_service import ValuationService


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def property_rows():
    return [
        {
            "id": "villa-1", "title": "Ocean View Villa in Canggu",
            "description": "Modern villa with private pool near the beach",
            "property_type": "villa", "status": "active", "price": 4_500_000_000,
            "area_sqm": 300, "building_area_sqm": 250, "land_area_sqm": 800,
            "bedrooms": 4, "bathrooms": 3, "roi_percentage": 12, "rental_yield_percentage": 9,
            "legal_status": "SHM", "wna_eligible": True, "has_pool": True, "has_garden": True,
            "parking_spaces": 2, "furnishing": "furnished", "view_type": "Ocean",
            "three_d_model_url": "https://cdn.example/villa-1.glb", "has_vr": False,
            "images": [f"img{i}.jpg" for i in range(12)],
            "location": "Canggu", "city": "Bali", "state": "Bali",
            "latitude": -8.65, "longitude": 115.13, "view_count": 340,
            "created_at": "2026-05-01T00:00:00+00:00",
        },
        {
            "id": "apt-1", "title": "Studio Apartment Jakarta Selatan",
            "description": "Compact unit close to MRT",
            "property_type": "apartment", "status": "active", "price": 1_500_000_000,
            "area_sqm": 45, "building_area_sqm": 45, "land_area_sqm": 0,
            "bedrooms": 1, "bathrooms": 1, "roi_percentage": 6, "rental_yield_percentage": 5,
            "legal_status": "Strata", "wna_eligible": False, "parking_spaces": 0,
            "furnishing": "semi-furnished", "view_type": "city",
            "images": ["a.jpg", "b.jpg"], "location": "Kebayoran Baru",
            "city": "Jakarta Selatan", "state": "DKI Jakarta", "view_count": 90,
            "created_at": "2026-08-10T00:00:00+00:00",
        },
        {
            "id": "house-1", "title": "Family House Bandung",
            "description": "Quiet neighbourhood, garden and garage",
            "property_type": "house", "status": "active", "price": 2_000_000_000,
            "area_sqm": 180, "building_area_sqm": 150, "land_area_sqm": 200,
            "bedrooms": 3, "bathrooms": 2, "legal_status": "HGB", "has_garden": True,
            "parking_spaces": 1, "view_type": "mountain", "images": ["1.jpg"] * 5,
            "location": "Dago", "city": "Bandung", "state": "Jawa Barat", "view_count": 150,
            "created_at": "2026-07-01T00:00:00+00:00",
        },
        {
            "id": "house-sold", "title": "Sold House", "property_type": "house",
            "status": "sold", "price": 1_800_000_000, "city": "Bandung",
        },
    ]


def signal_rows():
    return [
        BehaviorSignal("villa-1", "view", 40),
        BehaviorSignal("villa-1", "view", None),
        BehaviorSignal("villa-1", "click", 5),
        BehaviorSignal("villa-1", "inquiry", 2),
        BehaviorSignal("villa-1", "dwell_time", 30),
        BehaviorSignal("villa-1", "dwell_time", 90),
        BehaviorSignal("apt-1", "view", 10),
        BehaviorSignal("apt-1", "save", 1),
        BehaviorSignal(None, "view", 500),
        BehaviorSignal("house-sold", "view", 999),
    ]


@pytest.fixture
def store():
    return MockStore(properties=property_rows(), signals=signal_rows(),
                     favorites=["villa-1", "house-1", None])


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ResultCache(maxsize=16, ttl=60, timer=clock)


@pytest.fixture
def client(store, cache):
    recommender = StaticRecommender({"user-1": ["house-1"]})
    app.dependency_overrides[valuation.service_dep] = lambda: ValuationService(store=store)
    app.dependency_overrides[scores.service_dep] = lambda: ScoringService(store=store)
    app.dependency_overrides[search.service_dep] = lambda: SearchService(
        store=store, recommender=recommender, cache=cache,
    )
    yield TestClient(app)
    app.dependency_overrides.clear()
