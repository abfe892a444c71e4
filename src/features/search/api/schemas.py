"""検索APIのリクエスト/レスポンススキーマ（JSONはcamelCase）"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..domain.models import (
    BoundingBox,
    Facets,
    PropertyStatus,
    PropertyType,
    SearchFilters,
    SearchOptions,
    SearchResult,
    Suggestion,
)
from ....shared.exceptions.errors import ValidationError


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def build_bounding_box(
    min_lat: Optional[float],
    min_lon: Optional[float],
    max_lat: Optional[float],
    max_lon: Optional[float],
) -> Optional[BoundingBox]:
    """
    4つの値から範囲を生成（すべて未指定ならNone）

    Raises:
        ValidationError: 一部だけ指定された場合
    """
    values = (min_lat, min_lon, max_lat, max_lon)
    if all(value is None for value in values):
        return None
    if any(value is None for value in values):
        raise ValidationError("minLat, minLon, maxLat and maxLon must be given together")
    return BoundingBox(min_lat=min_lat, min_lon=min_lon, max_lat=max_lat, max_lon=max_lon)  # type: ignore[arg-type]


class SearchFiltersBody(CamelModel):
    status: Optional[PropertyStatus] = None
    type: Optional[PropertyType] = None
    country: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    currency: Optional[str] = None
    owner_id: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius_km: Optional[float] = None
    min_lat: Optional[float] = None
    min_lon: Optional[float] = None
    max_lat: Optional[float] = None
    max_lon: Optional[float] = None

    def to_filters(self, default_status: Optional[str] = None) -> SearchFilters:
        """
        ドメインのSearchFiltersに変換

        Args:
            default_status: ステータス未指定時に使う値（公開検索では listed）
        """
        return SearchFilters(
            status=self.status.value if self.status else default_status,
            type=self.type.value if self.type else None,
            country=self.country,
            city=self.city,
            region=self.region,
            currency=self.currency,
            owner_id=self.owner_id,
            min_price=self.min_price,
            max_price=self.max_price,
            latitude=self.latitude,
            longitude=self.longitude,
            radius_km=self.radius_km,
            bbox=build_bounding_box(self.min_lat, self.min_lon, self.max_lat, self.max_lon),
        )


class SearchOptionsBody(CamelModel):
    limit: int = 20
    offset: int = 0
    sort: Optional[list[str]] = None
    language: Optional[str] = None

    def to_options(self) -> SearchOptions:
        return SearchOptions(
            limit=self.limit,
            offset=self.offset,
            sort=self.sort,
            language=self.language,
        )


class SearchRequest(CamelModel):
    q: str = ""
    filters: SearchFiltersBody = Field(default_factory=SearchFiltersBody)
    options: SearchOptionsBody = Field(default_factory=SearchOptionsBody)


class SearchResponse(CamelModel):
    properties: list[dict[str, Any]]
    total: int
    limit: int
    offset: int
    processing_time_ms: int
    query: str

    @classmethod
    def from_result(cls, result: SearchResult) -> "SearchResponse":
        return cls(
            properties=result.properties,
            total=result.total,
            limit=result.limit,
            offset=result.offset,
            processing_time_ms=result.processing_time_ms,
            query=result.query,
        )


class IndexPropertyRequest(CamelModel):
    # インデックスのフィールド名（camelCase）のまま受け取る
    document: Optional[dict[str, Any]] = Field(default=None, alias="property")


class IndexPropertyResponse(CamelModel):
    success: bool
    property_id: str


class SuggestionResponse(CamelModel):
    id: str
    title: str
    city: Optional[str] = None

    @classmethod
    def from_suggestion(cls, suggestion: Suggestion) -> "SuggestionResponse":
        return cls(id=suggestion.id, title=suggestion.title, city=suggestion.city)


class FacetValueResponse(CamelModel):
    value: str
    count: int


class PriceRangeResponse(CamelModel):
    min: float
    max: float


class FacetsResponse(CamelModel):
    types: list[FacetValueResponse]
    countries: list[FacetValueResponse]
    cities: list[FacetValueResponse]
    price_range: PriceRangeResponse

    @classmethod
    def from_facets(cls, facets: Facets) -> "FacetsResponse":
        def values(items: list) -> list[FacetValueResponse]:
            return [FacetValueResponse(value=item.value, count=item.count) for item in items]

        return cls(
            types=values(facets.types),
            countries=values(facets.countries),
            cities=values(facets.cities),
            price_range=PriceRangeResponse(
                min=facets.price_range.min, max=facets.price_range.max
            ),
        )


class ClusterResponse(CamelModel):
    lat: float
    lng: float
    count: int
    properties: Optional[list[dict[str, Any]]] = None
