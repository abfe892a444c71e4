"""ジオコーディングプロバイダーのインターフェース"""
from abc import ABC, abstractmethod
from typing import Optional

from ..domain.models import GeocodeResult, ReverseGeocodeResult


class GeocodingProvider(ABC):
    """
    ジオコーディングプロバイダー基底クラス

    「見つからない」はNoneを返す。認証・設定の不備はConfigurationError、
    通信やAPIの障害はGeocodingErrorを送出する。
    """

    name: str = "base"

    @abstractmethod
    def geocode(
        self, address: str, country_hint: Optional[str] = None
    ) -> Optional[GeocodeResult]:
        """住所を座標に変換"""

    @abstractmethod
    def reverse_geocode(
        self, latitude: float, longitude: float
    ) -> Optional[ReverseGeocodeResult]:
        """座標を住所に変換"""

    def close(self) -> None:
        """保持しているリソースを解放"""
