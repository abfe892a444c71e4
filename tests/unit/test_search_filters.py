"""フィルタ式の生成と検証のテスト"""
import pytest

from src.features.search.domain.models import BoundingBox, SearchFilters
from src.features.search.index.filters import (
    build_filter_clauses,
    build_filter_expression,
    geo_bounding_box_clause,
    geo_radius_clause,
    validate_search_filters,
)
from src.shared.exceptions.errors import ValidationError


def test_empty_filters_produce_no_expression() -> None:
    assert build_filter_expression(None) is None
    assert build_filter_expression(SearchFilters()) is None


def test_string_and_price_filters() -> None:
    """文字列は引用符付き、価格は数値で比較"""
    expression = build_filter_expression(
        SearchFilters(
            status="listed",
            type="apartment",
            country="France",
            owner_id="owner-1",
            min_price=1000,
            max_price=250000.5,
        )
    )

    assert expression == (
        'status = "listed" AND type = "apartment" AND country = "France" '
        'AND ownerId = "owner-1" AND price >= 1000 AND price <= 250000.5'
    )


def test_string_values_are_escaped() -> None:
    """引用符を含む値でフィルタ式が壊れない"""
    clauses = build_filter_clauses(SearchFilters(city='Saint "Tropez"'))
    assert clauses == ['city = "Saint \\"Tropez\\""']


def test_radius_is_converted_to_meters() -> None:
    assert geo_radius_clause(48.8566, 2.3522, 5) == "_geoRadius(48.8566, 2.3522, 5000)"
    assert geo_radius_clause(48.8566, 2.3522, 0.5) == "_geoRadius(48.8566, 2.3522, 500)"


def test_bounding_box_is_top_right_then_bottom_left() -> None:
    """Meilisearchの_geoBoundingBoxは北東、南西の順"""
    bbox = BoundingBox(min_lat=48.8, min_lon=2.2, max_lat=48.9, max_lon=2.4)
    assert geo_bounding_box_clause(bbox) == "_geoBoundingBox([48.9, 2.4], [48.8, 2.2])"


def test_radius_clause_requires_all_three_values() -> None:
    """緯度・経度だけでは半径検索の句は作らない"""
    clauses = build_filter_clauses(SearchFilters(latitude=48.85, longitude=2.35))
    assert not any(clause.startswith("_geoRadius") for clause in clauses)


def test_force_status_overrides_filter() -> None:
    clauses = build_filter_clauses(SearchFilters(status="draft"), force_status="listed")
    assert clauses == ['status = "listed"']


@pytest.mark.parametrize(
    "filters",
    [
        SearchFilters(latitude=48.85, longitude=2.35),
        SearchFilters(latitude=100, longitude=2.35, radius_km=5),
        SearchFilters(latitude=48.85, longitude=2.35, radius_km=0),
        SearchFilters(bbox=BoundingBox(min_lat=49, min_lon=2, max_lat=48, max_lon=3)),
        SearchFilters(bbox=BoundingBox(min_lat=48, min_lon=2, max_lat=91, max_lon=3)),
        SearchFilters(min_price=-1),
        SearchFilters(min_price=500, max_price=100),
    ],
)
def test_invalid_filters_are_rejected(filters: SearchFilters) -> None:
    with pytest.raises(ValidationError):
        validate_search_filters(filters)


def test_valid_filters_pass() -> None:
    validate_search_filters(None)
    validate_search_filters(
        SearchFilters(
            latitude=48.85,
            longitude=2.35,
            radius_km=5,
            min_price=0,
            max_price=100,
            bbox=BoundingBox(min_lat=48, min_lon=2, max_lat=49, max_lon=3),
        )
    )
