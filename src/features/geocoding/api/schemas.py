"""位置情報APIのリクエスト/レスポンススキーマ（JSONはcamelCase）"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..domain.models import (
    BatchGeocodeItemResult,
    GeocodeResult,
    NearbyProperty,
    ReverseGeocodeResult,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GeocodeRequest(CamelModel):
    address: str = Field(..., min_length=1)
    country: Optional[str] = Field(default=None, description="国コード（ISO 3166-1 alpha-2）")


class ReverseGeocodeRequest(CamelModel):
    latitude: float
    longitude: float


class BatchAddress(CamelModel):
    id: str
    address: str
    country: Optional[str] = None


class BatchGeocodeRequest(CamelModel):
    addresses: list[BatchAddress]


class NearbySearchRequest(CamelModel):
    latitude: float
    longitude: float
    radius_km: float
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class GeocodeResponse(CamelModel):
    latitude: float
    longitude: float
    formatted_address: str
    street: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    confidence: float

    @classmethod
    def from_result(cls, result: GeocodeResult) -> "GeocodeResponse":
        return cls(**result.to_dict())


class ReverseGeocodeResponse(CamelModel):
    formatted_address: str
    street: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None

    @classmethod
    def from_result(cls, result: ReverseGeocodeResult) -> "ReverseGeocodeResponse":
        return cls(**result.to_dict())


class Point(CamelModel):
    latitude: float
    longitude: float


class DistanceResponse(CamelModel):
    distance_km: float
    point1: Point
    point2: Point


class BatchItemResponse(CamelModel):
    id: str
    result: Optional[GeocodeResponse] = None
    error: Optional[str] = None

    @classmethod
    def from_item(cls, item: BatchGeocodeItemResult) -> "BatchItemResponse":
        return cls(
            id=item.id,
            result=GeocodeResponse.from_result(item.result) if item.result else None,
            error=item.error,
        )


class BatchGeocodeResponse(CamelModel):
    total: int
    success: int
    failures: int
    results: list[BatchItemResponse]


class NearbyPropertyResponse(CamelModel):
    id: str
    latitude: float
    longitude: float
    type: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    street: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    translations: list[dict[str, Any]] = Field(default_factory=list)
    distance_km: Optional[float] = None

    @classmethod
    def from_property(cls, prop: NearbyProperty) -> "NearbyPropertyResponse":
        return cls(
            id=prop.id,
            latitude=prop.latitude,
            longitude=prop.longitude,
            type=prop.type,
            price=prop.price,
            currency=prop.currency,
            street=prop.street,
            postal_code=prop.postal_code,
            city=prop.city,
            region=prop.region,
            country=prop.country,
            translations=prop.translations,
            distance_km=prop.distance_km,
        )


class NearbySearchResponseBody(CamelModel):
    center: Point
    radius_km: float
    limit: int
    offset: int
    results: list[NearbyPropertyResponse]
    total: int


class CacheStatsResponse(CamelModel):
    hit_count: int
    miss_count: int
    total_requests: int
    hit_rate_percent: float
