"""Google Maps Geocoding API実装"""
from typing import Any, NoReturn, Optional

import googlemaps

from ..domain.models import GeocodeResult, ReverseGeocodeResult
from ....shared.exceptions.errors import ConfigurationError, GeocodingError
from ....shared.logging.config import get_logger
from .base import GeocodingProvider

logger = get_logger(__name__)

# location_type -> 信頼度 (ROOFTOP > RANGE_INTERPOLATED > GEOMETRIC_CENTER > APPROXIMATE)
LOCATION_TYPE_CONFIDENCE: dict[str, float] = {
    "ROOFTOP": 0.95,
    "RANGE_INTERPOLATED": 0.85,
    "GEOMETRIC_CENTER": 0.75,
    "APPROXIMATE": 0.6,
}
DEFAULT_CONFIDENCE = 0.5

# APIキーの問題を示すステータス
_AUTH_ERROR_STATUSES = {"REQUEST_DENIED"}


def calculate_confidence(location_type: Optional[str]) -> float:
    """location_typeを信頼度に変換"""
    if not location_type:
        return DEFAULT_CONFIDENCE
    return LOCATION_TYPE_CONFIDENCE.get(location_type, DEFAULT_CONFIDENCE)


def parse_address_components(components: list[dict[str, Any]]) -> dict[str, Optional[str]]:
    """
    address_componentsを正規化された住所フィールドに変換

    Args:
        components: Google Maps APIのaddress_components

    Returns:
        dict: street, postal_code, city, region, country, country_code
    """
    parsed: dict[str, Optional[str]] = {
        "street": None,
        "postal_code": None,
        "city": None,
        "region": None,
        "country": None,
        "country_code": None,
    }

    for component in components or []:
        types = component.get("types", [])
        long_name = component.get("long_name")

        if "street_number" in types or "route" in types:
            # street_numberはrouteより先に来るので、後続のrouteを後ろに連結する
            parsed["street"] = (
                f"{parsed['street']} {long_name}" if parsed["street"] else long_name
            )
        elif "postal_code" in types:
            parsed["postal_code"] = long_name
        elif "locality" in types or "administrative_area_level_2" in types:
            parsed["city"] = long_name
        elif "administrative_area_level_1" in types:
            parsed["region"] = long_name
        elif "country" in types:
            parsed["country"] = long_name
            parsed["country_code"] = component.get("short_name")

    return parsed


class GoogleMapsGeocoder(GeocodingProvider):
    """Google Maps Geocoding API実装"""

    name = "google"

    def __init__(self, api_key: Optional[str], timeout: float = 10.0) -> None:
        """
        Args:
            api_key: Google Maps API キー（未設定の場合は初回呼び出し時にConfigurationError）
            timeout: リクエストタイムアウト（秒）
        """
        self.client: Optional[googlemaps.Client] = None

        if not api_key:
            logger.warning("GoogleMapsGeocoder created without an API key")
            return

        try:
            # 再試行を含めた1回の呼び出し全体をtimeout秒以内に収める
            self.client = googlemaps.Client(
                key=api_key,
                timeout=timeout,
                retry_timeout=timeout,
                retry_over_query_limit=False,
            )
            logger.info("GoogleMapsGeocoder initialized")
        except ValueError as e:
            # キーの形式が不正
            raise ConfigurationError(f"Invalid Google Maps API key: {e}") from e

    def _require_client(self) -> googlemaps.Client:
        if self.client is None:
            raise ConfigurationError("Google Maps API key not configured")
        return self.client

    def geocode(
        self, address: str, country_hint: Optional[str] = None
    ) -> Optional[GeocodeResult]:
        """
        住所をジオコーディング

        Args:
            address: 住所文字列
            country_hint: 国コード（地域バイアスとして使用）

        Returns:
            Optional[GeocodeResult]: 変換結果（見つからない場合はNone）

        Raises:
            ConfigurationError: APIキー未設定・無効の場合
            GeocodingError: APIリクエストに失敗した場合
        """
        client = self._require_client()

        if not address:
            logger.warning("Empty address provided for geocoding")
            return None

        kwargs: dict[str, Any] = {}
        if country_hint:
            kwargs["region"] = country_hint.lower()

        try:
            logger.debug(f"Geocoding address: {address}")
            results = client.geocode(address, **kwargs)
        except googlemaps.exceptions.ApiError as e:
            self._raise_api_error(e)
        except googlemaps.exceptions.HTTPError as e:
            if e.status_code == 403:
                raise ConfigurationError("Invalid Google Maps API key") from e
            raise GeocodingError(f"Google Maps HTTP error: {e}") from e
        except googlemaps.exceptions.TransportError as e:
            raise GeocodingError(f"Google Maps transport error: {e}") from e
        except googlemaps.exceptions.Timeout as e:
            raise GeocodingError("Google Maps request timed out") from e

        if not results:
            logger.info(f"No geocoding results for address: {address}")
            return None

        result = results[0]
        geometry = result.get("geometry", {})
        location = geometry.get("location", {})

        latitude = location.get("lat")
        longitude = location.get("lng")

        if latitude is None or longitude is None:
            logger.warning(f"Invalid geocoding result (missing lat/lng): {address}")
            return None

        components = parse_address_components(result.get("address_components", []))

        geocode_result = GeocodeResult(
            latitude=latitude,
            longitude=longitude,
            formatted_address=result.get("formatted_address") or address,
            confidence=calculate_confidence(geometry.get("location_type")),
            **components,
        )

        logger.debug(f"Geocoded: {address} -> ({latitude}, {longitude})")

        return geocode_result

    def reverse_geocode(
        self, latitude: float, longitude: float
    ) -> Optional[ReverseGeocodeResult]:
        """
        座標から住所を取得（逆ジオコーディング）

        Args:
            latitude: 緯度
            longitude: 経度

        Returns:
            Optional[ReverseGeocodeResult]: 住所（見つからない場合はNone）

        Raises:
            ConfigurationError: APIキー未設定・無効の場合
            GeocodingError: APIリクエストに失敗した場合
        """
        client = self._require_client()

        try:
            logger.debug(f"Reverse geocoding: ({latitude}, {longitude})")
            results = client.reverse_geocode((latitude, longitude))
        except googlemaps.exceptions.ApiError as e:
            self._raise_api_error(e)
        except googlemaps.exceptions.HTTPError as e:
            if e.status_code == 403:
                raise ConfigurationError("Invalid Google Maps API key") from e
            raise GeocodingError(f"Google Maps HTTP error: {e}") from e
        except googlemaps.exceptions.TransportError as e:
            raise GeocodingError(f"Google Maps transport error: {e}") from e
        except googlemaps.exceptions.Timeout as e:
            raise GeocodingError("Google Maps request timed out") from e

        if not results:
            logger.info(f"No reverse geocoding results for: ({latitude}, {longitude})")
            return None

        result = results[0]
        components = parse_address_components(result.get("address_components", []))

        return ReverseGeocodeResult(
            formatted_address=result.get("formatted_address") or "",
            **components,
        )

    @staticmethod
    def _raise_api_error(error: googlemaps.exceptions.ApiError) -> NoReturn:
        """ApiErrorを設定エラーまたはジオコーディングエラーに変換して送出"""
        if error.status in _AUTH_ERROR_STATUSES:
            raise ConfigurationError(f"Google Maps request denied: {error}") from error
        raise GeocodingError(f"Google geocoding failed: {error.status}") from error
