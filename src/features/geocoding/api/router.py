"""位置情報エンドポイント（/geolocation）"""
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from ..domain.models import BatchGeocodeItem
from ..services.geocoding_service import GeocodingService
from ..services.nearby_search_service import NearbySearchService
from ....infrastructure.dependencies import (
    get_geocoding_service,
    get_nearby_search_service,
)
from ....shared.logging.config import get_logger
from .schemas import (
    BatchGeocodeRequest,
    BatchGeocodeResponse,
    BatchItemResponse,
    CacheStatsResponse,
    DistanceResponse,
    GeocodeRequest,
    GeocodeResponse,
    NearbyPropertyResponse,
    NearbySearchRequest,
    NearbySearchResponseBody,
    Point,
    ReverseGeocodeRequest,
    ReverseGeocodeResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/geolocation", tags=["geolocation"])


@router.get("/health")
def health(
    service: GeocodingService = Depends(get_geocoding_service),
) -> dict[str, Any]:
    """ヘルスチェック（選択中のプロバイダー名を返す）"""
    return {
        "status": "ok",
        "service": "geolocation-service",
        "provider": service.provider_name,
    }


@router.post("/geocode", response_model=GeocodeResponse)
def geocode(
    body: GeocodeRequest,
    service: GeocodingService = Depends(get_geocoding_service),
) -> GeocodeResponse:
    """住所→座標（見つからない場合は404）"""
    result = service.geocode(body.address, body.country)
    if result is None:
        raise HTTPException(status_code=404, detail="Address not found")
    return GeocodeResponse.from_result(result)


@router.post("/reverse", response_model=ReverseGeocodeResponse)
def reverse_geocode(
    body: ReverseGeocodeRequest,
    service: GeocodingService = Depends(get_geocoding_service),
) -> ReverseGeocodeResponse:
    """座標→住所（見つからない場合は404）"""
    result = service.reverse_geocode(body.latitude, body.longitude)
    if result is None:
        raise HTTPException(status_code=404, detail="Location not found")
    return ReverseGeocodeResponse.from_result(result)


@router.get("/distance", response_model=DistanceResponse)
def distance(
    lat1: float = Query(...),
    lon1: float = Query(...),
    lat2: float = Query(...),
    lon2: float = Query(...),
    service: GeocodingService = Depends(get_geocoding_service),
) -> DistanceResponse:
    """2点間の距離（km、小数点以下2桁）"""
    distance_km = service.calculate_distance(lat1, lon1, lat2, lon2)
    return DistanceResponse(
        distance_km=round(distance_km, 2),
        point1=Point(latitude=lat1, longitude=lon1),
        point2=Point(latitude=lat2, longitude=lon2),
    )


@router.post("/batch", response_model=BatchGeocodeResponse)
def batch_geocode(
    body: BatchGeocodeRequest,
    service: GeocodingService = Depends(get_geocoding_service),
) -> BatchGeocodeResponse:
    """
    複数住所のジオコーディング

    1件の失敗はその要素のerrorに記録され、リクエスト全体は成功する
    """
    items = [
        BatchGeocodeItem(id=entry.id, address=entry.address, country_hint=entry.country)
        for entry in body.addresses
    ]
    results = service.batch_geocode(items)
    success = sum(1 for item in results if item.result is not None)

    return BatchGeocodeResponse(
        total=len(results),
        success=success,
        failures=len(results) - success,
        results=[BatchItemResponse.from_item(item) for item in results],
    )


@router.post("/search/nearby", response_model=NearbySearchResponseBody)
def search_nearby(
    body: NearbySearchRequest,
    service: NearbySearchService = Depends(get_nearby_search_service),
) -> NearbySearchResponseBody:
    """半径内の掲載中物件を距離順で返す"""
    response = service.search_nearby(
        body.latitude,
        body.longitude,
        body.radius_km,
        limit=body.limit,
        offset=body.offset,
    )

    return NearbySearchResponseBody(
        center=Point(latitude=response.latitude, longitude=response.longitude),
        radius_km=response.radius_km,
        limit=response.limit,
        offset=response.offset,
        results=[NearbyPropertyResponse.from_property(prop) for prop in response.results],
        total=response.total,
    )


@router.get("/cache/stats", response_model=CacheStatsResponse)
def cache_stats(
    service: GeocodingService = Depends(get_geocoding_service),
) -> CacheStatsResponse:
    """キャッシュのヒット率（プロセス単位）"""
    return CacheStatsResponse(**service.get_cache_stats())
