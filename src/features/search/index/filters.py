"""構造化フィルタをMeilisearchのフィルタ式に変換"""
from typing import Optional

from ..domain.models import BoundingBox, SearchFilters
from ....shared.exceptions.errors import ValidationError
from ....shared.utils.geo import validate_coordinates
from ....shared.utils.text import escape_filter_value

# 文字列で比較するフィルタ: (SearchFiltersの属性名, インデックスのフィールド名)
_STRING_FILTERS: tuple[tuple[str, str], ...] = (
    ("status", "status"),
    ("type", "type"),
    ("country", "country"),
    ("city", "city"),
    ("region", "region"),
    ("currency", "currency"),
    ("owner_id", "ownerId"),
)


def _format_number(value: float) -> str:
    """整数値は小数点なしで出力（1000.0 -> 1000）"""
    number = float(value)
    return str(int(number)) if number.is_integer() else repr(number)


def geo_radius_clause(latitude: float, longitude: float, radius_km: float) -> str:
    """半径検索（km指定をメートルに変換）"""
    radius_meters = radius_km * 1000
    return (
        f"_geoRadius({_format_number(latitude)}, {_format_number(longitude)}, "
        f"{_format_number(radius_meters)})"
    )


def geo_bounding_box_clause(bbox: BoundingBox) -> str:
    """矩形検索（Meilisearchは北東の角、南西の角の順で指定する）"""
    return (
        f"_geoBoundingBox([{_format_number(bbox.max_lat)}, {_format_number(bbox.max_lon)}], "
        f"[{_format_number(bbox.min_lat)}, {_format_number(bbox.min_lon)}])"
    )


def validate_search_filters(filters: Optional[SearchFilters]) -> None:
    """
    検索フィルタを検証（インデックス呼び出し前に不正な入力を拒否する）

    Raises:
        ValidationError: 座標が範囲外、半径検索の条件が揃っていない場合など
    """
    if filters is None:
        return

    geo_values = (filters.latitude, filters.longitude, filters.radius_km)
    provided = [value is not None for value in geo_values]
    if any(provided) and not all(provided):
        raise ValidationError("latitude, longitude and radiusKm must be provided together")

    if all(provided):
        validate_coordinates(filters.latitude, filters.longitude)  # type: ignore[arg-type]
        if filters.radius_km <= 0:  # type: ignore[operator]
            raise ValidationError(f"radiusKm must be positive: {filters.radius_km}")

    if filters.bbox is not None:
        bbox = filters.bbox
        validate_coordinates(bbox.min_lat, bbox.min_lon)
        validate_coordinates(bbox.max_lat, bbox.max_lon)
        if bbox.min_lat > bbox.max_lat or bbox.min_lon > bbox.max_lon:
            raise ValidationError("Bounding box minimum must not exceed maximum")

    for name, value in (("minPrice", filters.min_price), ("maxPrice", filters.max_price)):
        if value is not None and value < 0:
            raise ValidationError(f"{name} must not be negative: {value}")

    if (
        filters.min_price is not None
        and filters.max_price is not None
        and filters.min_price > filters.max_price
    ):
        raise ValidationError("minPrice must not exceed maxPrice")


def build_filter_clauses(
    filters: Optional[SearchFilters], force_status: Optional[str] = None
) -> list[str]:
    """
    フィルタ句のリストを生成

    Args:
        filters: 検索フィルタ
        force_status: 指定時はfilters.statusより優先するステータス

    Returns:
        list[str]: 値が指定されたフィールドごとに1句
    """
    filters = filters or SearchFilters()
    clauses: list[str] = []

    for attr_name, field_name in _STRING_FILTERS:
        value = getattr(filters, attr_name)
        if attr_name == "status" and force_status:
            value = force_status
        if value:
            clauses.append(f'{field_name} = "{escape_filter_value(str(value))}"')

    if filters.min_price is not None:
        clauses.append(f"price >= {_format_number(filters.min_price)}")

    if filters.max_price is not None:
        clauses.append(f"price <= {_format_number(filters.max_price)}")

    # 半径検索は緯度・経度・半径がすべて揃った場合のみ
    if (
        filters.latitude is not None
        and filters.longitude is not None
        and filters.radius_km is not None
    ):
        clauses.append(geo_radius_clause(filters.latitude, filters.longitude, filters.radius_km))

    if filters.bbox is not None:
        clauses.append(geo_bounding_box_clause(filters.bbox))

    return clauses


def build_filter_expression(
    filters: Optional[SearchFilters], force_status: Optional[str] = None
) -> Optional[str]:
    """
    フィルタ式を生成（句をANDで連結）

    Example:
        >>> build_filter_expression(SearchFilters(status="listed", min_price=1000))
        'status = "listed" AND price >= 1000'

    Returns:
        Optional[str]: フィルタ式（条件が無い場合はNone）
    """
    clauses = build_filter_clauses(filters, force_status=force_status)
    return " AND ".join(clauses) if clauses else None
