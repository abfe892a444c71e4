"""設定からジオコーディングプロバイダーを生成"""
from typing import Optional

from ..domain.models import GeocodingProviderName
from ....infrastructure.config.settings import Settings
from ....infrastructure.gcp.secret_manager import SecretManagerClient
from ....shared.http.client import HTTPClient
from ....shared.http.rate_limiter import RateLimiter
from ....shared.logging.config import get_logger
from .base import GeocodingProvider
from .google_maps_geocoder import GoogleMapsGeocoder
from .nominatim_geocoder import NominatimGeocoder
from .stub_geocoder import StubGeocoder

logger = get_logger(__name__)


def resolve_google_maps_api_key(
    settings: Settings, secret_manager: Optional[SecretManagerClient] = None
) -> Optional[str]:
    """
    Google Maps API Keyを取得

    環境変数を優先し、未設定かつSecret Managerが使える場合はそこから取得する

    Returns:
        Optional[str]: APIキー（取得できない場合はNone）
    """
    if settings.google_maps_api_key:
        return settings.google_maps_api_key

    if secret_manager is None:
        return None

    return secret_manager.get_secret_or_none(settings.google_maps_api_key_secret_name)


def create_geocoding_provider(
    settings: Settings, secret_manager: Optional[SecretManagerClient] = None
) -> GeocodingProvider:
    """
    設定に基づいてプロバイダーを選択（起動時に一度だけ呼ぶ）

    googleでAPIキーが無い場合、未知のプロバイダー名の場合はスタブにフォールバックする

    Args:
        settings: アプリケーション設定
        secret_manager: Secret Managerクライアント（任意）

    Returns:
        GeocodingProvider: 選択されたプロバイダー
    """
    name = settings.geocoding_provider.strip().lower()

    if name == GeocodingProviderName.GOOGLE.value:
        api_key = resolve_google_maps_api_key(settings, secret_manager)
        if not api_key:
            logger.warning("Google Maps API key not set, falling back to stub provider")
            return StubGeocoder()
        return GoogleMapsGeocoder(api_key=api_key, timeout=settings.geocoding_timeout)

    if name == GeocodingProviderName.NOMINATIM.value:
        http_client = HTTPClient(
            base_url=settings.nominatim_base_url,
            timeout=settings.geocoding_timeout,
            user_agent=settings.nominatim_user_agent,
            default_params={"format": "json", "addressdetails": 1, "limit": 1},
        )
        return NominatimGeocoder(
            http_client,
            rate_limiter=RateLimiter(requests_per_second=settings.nominatim_requests_per_second),
        )

    if name != GeocodingProviderName.STUB.value:
        logger.warning(f"Unknown geocoding provider '{name}', falling back to stub provider")

    return StubGeocoder()
