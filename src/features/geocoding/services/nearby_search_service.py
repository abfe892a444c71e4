"""周辺物件検索サービス"""
from dataclasses import dataclass, field

from ..domain.models import NearbyProperty
from ...catalog.clients.property_catalog_client import PropertyCatalogClient
from ....shared.exceptions.errors import ValidationError
from ....shared.logging.config import get_logger
from ....shared.utils.geo import haversine_distance, validate_coordinates

logger = get_logger(__name__)

# 公開検索では掲載中の物件のみ
NEARBY_STATUS_FILTER = "listed"


@dataclass
class NearbySearchResponse:
    """距離付き・距離順の周辺検索結果"""

    latitude: float
    longitude: float
    radius_km: float
    limit: int
    offset: int
    results: list[NearbyProperty] = field(default_factory=list)
    total: int = 0


class NearbySearchService:
    """物件カタログから候補を取得し、中心からの距離を付与して並べ替える"""

    def __init__(self, catalog_client: PropertyCatalogClient) -> None:
        self.catalog_client = catalog_client

    def search_nearby(
        self,
        latitude: float,
        longitude: float,
        radius_km: float,
        limit: int = 20,
        offset: int = 0,
    ) -> NearbySearchResponse:
        """
        半径内の物件を距離の近い順に返す

        Raises:
            ValidationError: 座標または半径が不正な場合
        """
        validate_coordinates(latitude, longitude)
        if radius_km is None or radius_km <= 0:
            raise ValidationError(f"radiusKm must be positive: {radius_km}")

        candidates = self.catalog_client.find_nearby(
            latitude,
            longitude,
            radius_km,
            limit=limit,
            offset=offset,
            status=NEARBY_STATUS_FILTER,
        )

        # 丸める前の距離で並べる（表示上同じ距離でも順序を保つ）
        ranked = sorted(
            (
                (haversine_distance(latitude, longitude, prop.latitude, prop.longitude), prop)
                for prop in candidates.properties
            ),
            key=lambda pair: pair[0],
        )
        results = []
        for distance, prop in ranked:
            prop.distance_km = round(distance, 2)
            results.append(prop)

        logger.debug(
            f"Nearby search ({latitude}, {longitude}, {radius_km}km): "
            f"{len(results)} results, total={candidates.total}"
        )

        return NearbySearchResponse(
            latitude=latitude,
            longitude=longitude,
            radius_km=radius_km,
            limit=limit,
            offset=offset,
            results=results,
            total=candidates.total,
        )
