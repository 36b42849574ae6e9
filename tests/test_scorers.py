import pytest

from propscore.data.base import PropertyAttributes
from propscore.engine.scorers import (
    bedroom_fit, engagement_score, investment_score, livability_score, luxury_score,
)
from propscore.engine.signals import BatchMaxima, SignalAggregate

from conftest import property_rows


def test_engagement_worked_example():
    agg = SignalAggregate(views=50, saves=10, inquiries=2, clicks=5, dwell_sum=30, dwell_count=1)
    maxima = BatchMaxima(views=100, saves=20, inquiries=4, clicks=10, dwell=60)
    assert engagement_score(agg, maxima) == 50.0


def test_engagement_zero_activity_is_zero():
    assert engagement_score(SignalAggregate(), BatchMaxima()) == 0.0


def test_engagement_top_property_is_100():
    agg = SignalAggregate(views=8, saves=3, inquiries=2, clicks=4, dwell_sum=40, dwell_count=2)
    maxima = BatchMaxima(views=8, saves=3, inquiries=2, clicks=4, dwell=20)
    assert engagement_score(agg, maxima) == 100.0


def test_empty_property_uses_documented_defaults():
    p = PropertyAttributes(id="x")
    # roi 0, yield 0, legal 0.5, unknown price/area 0.5 -> 1-0.5, not foreign-eligible 0.7
    assert investment_score(p) == pytest.approx(round((0.15 * 0.5 + 0.15 * 0.5 + 0.15 * 0.7) * 100, 2))
    # no amenities, no area, 0 bedrooms, unfurnished 0.5, ordinary view 0.6
    assert livability_score(p) == pytest.approx(round((0.2 * 0.5 + 0.15 * 0.6) * 100, 2))
    # ordinary view 0.5, nothing else
    assert luxury_score(p) == pytest.approx(7.5)


def test_investment_components():
    p = PropertyAttributes(
        id="x", roi_percentage=25, rental_yield_percentage=7.5, legal_status="shm",
        price=50_500_000, area_sqm=1, wna_eligible=True,
    )
    # roi capped at 1, yield 0.5, secure legal, price/sqm normalizes to 0.5
    expected = (0.30 * 1 + 0.25 * 0.5 + 0.15 * 1 + 0.15 * 0.5 + 0.15 * 1) * 100
    assert investment_score(p) == pytest.approx(round(expected, 2))


@pytest.mark.parametrize("bedrooms,expected", [(3, 1.0), (5, 1.0), (4, 1.0), (1, 0.0), (2, 0.25), (0, 0.0), (8, 1.0)])
def test_bedroom_fit(bedrooms, expected):
    assert bedroom_fit(bedrooms) == pytest.approx(expected)


def test_livability_prefers_building_area_and_premium_view():
    p = PropertyAttributes(
        id="x", has_pool=True, has_garden=True, parking_spaces=1, building_area_sqm=500,
        area_sqm=10, bedrooms=3, furnishing="Furnished", view_type="Rice Field",
    )
    assert livability_score(p) == 100.0


def test_luxury_caps_price_and_counts_tech():
    p = PropertyAttributes(
        id="x", price=9_000_000_000, has_pool=True, three_d_model_url="u", has_vr=True,
        land_area_sqm=2500, view_type="sea", images=["i"] * 25,
    )
    assert luxury_score(p) == 100.0


def test_all_scores_in_range_and_deterministic():
    for row in property_rows():
        p = PropertyAttributes.from_row(row)
        for scorer in (investment_score, livability_score, luxury_score):
            first = scorer(p)
            assert 0 <= first <= 100
            assert scorer(PropertyAttributes.from_row(row)) == first


def test_negative_price_does_not_escape_range():
    p = PropertyAttributes(id="x", price=-5, area_sqm=10)
    assert 0 <= luxury_score(p) <= 100
    assert 0 <= investment_score(p) <= 100
