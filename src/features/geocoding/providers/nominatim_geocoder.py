"""OpenStreetMap Nominatim実装（APIキー不要）

利用規約上、1リクエスト/秒の制限がある。キャッシュと併用すること。
"""
from typing import Any, Optional

from ..domain.models import GeocodeResult, ReverseGeocodeResult
from ....shared.exceptions.errors import GeocodingError, HTTPError
from ....shared.http.client import HTTPClient
from ....shared.http.rate_limiter import RateLimiter
from ....shared.logging.config import get_logger
from .base import GeocodingProvider

logger = get_logger(__name__)

# Nominatimは信頼度を返さないため固定値
NOMINATIM_CONFIDENCE = 0.8


def _parse_address_details(details: dict[str, Any]) -> dict[str, Optional[str]]:
    country_code = details.get("country_code")
    return {
        "street": details.get("road") or details.get("pedestrian"),
        "postal_code": details.get("postcode"),
        "city": details.get("city") or details.get("town") or details.get("village"),
        "region": details.get("state") or details.get("region"),
        "country": details.get("country"),
        "country_code": country_code.upper() if country_code else None,
    }


class NominatimGeocoder(GeocodingProvider):
    """Nominatim (OpenStreetMap) 実装"""

    name = "nominatim"

    def __init__(
        self, http_client: HTTPClient, rate_limiter: Optional[RateLimiter] = None
    ) -> None:
        """
        Args:
            http_client: NominatimのベースURL・User-Agentを設定済みのHTTPクライアント
            rate_limiter: リクエスト間隔の制御（公開サーバーは1リクエスト/秒まで）
        """
        self.http_client = http_client
        self.rate_limiter = rate_limiter
        logger.info(f"NominatimGeocoder initialized: base_url={http_client.base_url}")

    def geocode(
        self, address: str, country_hint: Optional[str] = None
    ) -> Optional[GeocodeResult]:
        """
        住所をジオコーディング

        Raises:
            GeocodingError: APIリクエストに失敗した場合
        """
        params: dict[str, Any] = {"q": address}
        if country_hint:
            params["countrycodes"] = country_hint.lower()

        self._throttle()
        try:
            data = self.http_client.get_json("/search", params=params)
        except HTTPError as e:
            raise GeocodingError(f"Nominatim geocoding failed: {e}") from e

        if not data:
            logger.info(f"No geocoding results for address: {address}")
            return None

        if not isinstance(data, list):
            raise GeocodingError(f"Unexpected Nominatim response for {address}: {data}")

        result = data[0]
        try:
            latitude = float(result["lat"])
            longitude = float(result["lon"])
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodingError(f"Malformed Nominatim response for {address}: {e}") from e

        return GeocodeResult(
            latitude=latitude,
            longitude=longitude,
            formatted_address=result.get("display_name") or address,
            confidence=NOMINATIM_CONFIDENCE,
            **_parse_address_details(result.get("address") or {}),
        )

    def reverse_geocode(
        self, latitude: float, longitude: float
    ) -> Optional[ReverseGeocodeResult]:
        """
        座標から住所を取得

        Raises:
            GeocodingError: APIリクエストに失敗した場合
        """
        self._throttle()
        try:
            data = self.http_client.get_json(
                "/reverse", params={"lat": latitude, "lon": longitude}
            )
        except HTTPError as e:
            raise GeocodingError(f"Nominatim reverse geocoding failed: {e}") from e

        # 該当なしの場合は {"error": "Unable to geocode"} が返る
        if not isinstance(data, dict) or not data.get("address"):
            logger.info(f"No reverse geocoding results for: ({latitude}, {longitude})")
            return None

        return ReverseGeocodeResult(
            formatted_address=data.get("display_name") or "",
            **_parse_address_details(data["address"]),
        )

    def _throttle(self) -> None:
        if self.rate_limiter is not None:
            self.rate_limiter.wait()

    def close(self) -> None:
        self.http_client.close()
