"""物件カタログサービスのクライアント（周辺検索用）"""
from typing import Any, Optional

from ...geocoding.domain.models import NearbyProperty, NearbySearchResult
from ....shared.exceptions.errors import HTTPError
from ....shared.http.client import HTTPClient
from ....shared.logging.config import get_logger
from ....shared.utils.geo import is_valid_coordinate

logger = get_logger(__name__)


def _parse_property(raw: dict[str, Any]) -> Optional[NearbyProperty]:
    """カタログのレスポンス1件を変換（座標が無い物件はNone）"""
    latitude = raw.get("latitude")
    longitude = raw.get("longitude")
    if raw.get("id") is None or not is_valid_coordinate(latitude) or not is_valid_coordinate(longitude):
        return None

    price = raw.get("price")
    return NearbyProperty(
        id=str(raw["id"]),
        latitude=float(latitude),
        longitude=float(longitude),
        type=raw.get("type"),
        price=float(price) if price is not None else None,
        currency=raw.get("currency"),
        street=raw.get("street"),
        postal_code=raw.get("postalCode"),
        city=raw.get("city"),
        region=raw.get("region"),
        country=raw.get("country"),
        translations=list(raw.get("translations") or []),
    )


class PropertyCatalogClient:
    """
    物件カタログの周辺検索APIクライアント

    カタログが利用できない場合も例外は送出せず空の結果を返す
    （位置情報機能の障害をカタログ閲覧に波及させない）
    """

    NEARBY_PATH = "/properties/search/nearby"

    def __init__(self, http_client: HTTPClient) -> None:
        """
        Args:
            http_client: カタログのベースURL・タイムアウト（5秒程度）を設定済みのHTTPクライアント
        """
        self.http_client = http_client
        logger.info(f"PropertyCatalogClient initialized: base_url={http_client.base_url}")

    def find_nearby(
        self,
        latitude: float,
        longitude: float,
        radius_km: float,
        limit: int = 20,
        offset: int = 0,
        status: Optional[str] = None,
    ) -> NearbySearchResult:
        """
        半径内の物件を取得

        Args:
            latitude: 中心の緯度
            longitude: 中心の経度
            radius_km: 半径（km）
            limit: 取得件数
            offset: オフセット
            status: 物件ステータスでの絞り込み

        Returns:
            NearbySearchResult: 物件リストと総件数（失敗時は空）
        """
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "radiusKm": radius_km,
            "limit": limit,
            "offset": offset,
            "status": status,
        }

        try:
            data = self.http_client.get_json(self.NEARBY_PATH, params=params)
        except HTTPError as e:
            logger.error(f"Failed to query property catalog (nearby {params}): {e}")
            return NearbySearchResult()

        if not isinstance(data, dict):
            logger.error(f"Unexpected property catalog response: {type(data).__name__}")
            return NearbySearchResult()

        properties = []
        for raw in data.get("properties") or []:
            parsed = _parse_property(raw) if isinstance(raw, dict) else None
            if parsed is None:
                logger.debug(f"Skipping catalog entry without coordinates: {raw}")
                continue
            properties.append(parsed)

        try:
            total = int(data.get("total", len(properties)))
        except (TypeError, ValueError):
            total = len(properties)

        return NearbySearchResult(properties=properties, total=total)

    def close(self) -> None:
        self.http_client.close()
