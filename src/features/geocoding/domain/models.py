"""ジオコーディング機能のドメインモデル"""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


class GeocodingProviderName(str, Enum):
    """ジオコーディングプロバイダー名"""

    GOOGLE = "google"
    NOMINATIM = "nominatim"
    STUB = "stub"


@dataclass(frozen=True)
class GeocodeResult:
    """住所→座標の変換結果"""

    latitude: float  # 緯度
    longitude: float  # 経度
    formatted_address: str  # 正規化された住所
    street: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    confidence: float = 0.5  # 0〜1

    def __repr__(self) -> str:
        return f"GeocodeResult(lat={self.latitude}, lng={self.longitude})"

    def to_tuple(self) -> tuple[float, float]:
        """(緯度, 経度)のタプルとして返す"""
        return (self.latitude, self.longitude)

    def to_dict(self) -> dict[str, Any]:
        """キャッシュ保存用の辞書に変換"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GeocodeResult":
        """
        キャッシュの辞書から復元

        Raises:
            KeyError, TypeError, ValueError: 辞書が不正な場合
        """
        return cls(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            formatted_address=str(data["formatted_address"]),
            street=data.get("street"),
            postal_code=data.get("postal_code"),
            city=data.get("city"),
            region=data.get("region"),
            country=data.get("country"),
            country_code=data.get("country_code"),
            confidence=float(data.get("confidence", 0.5)),
        )


@dataclass(frozen=True)
class ReverseGeocodeResult:
    """座標→住所の変換結果"""

    formatted_address: str
    street: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """キャッシュ保存用の辞書に変換"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReverseGeocodeResult":
        """
        キャッシュの辞書から復元

        Raises:
            KeyError, TypeError: 辞書が不正な場合
        """
        return cls(
            formatted_address=str(data["formatted_address"]),
            street=data.get("street"),
            postal_code=data.get("postal_code"),
            city=data.get("city"),
            region=data.get("region"),
            country=data.get("country"),
            country_code=data.get("country_code"),
        )


@dataclass(frozen=True)
class BatchGeocodeItem:
    """バッチジオコーディングの入力1件"""

    id: str
    address: str
    country_hint: Optional[str] = None


@dataclass
class BatchGeocodeItemResult:
    """バッチジオコーディングの結果1件"""

    id: str
    result: Optional[GeocodeResult]
    error: Optional[str] = None


@dataclass
class NearbyProperty:
    """周辺検索で物件カタログから返される物件"""

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
    translations: list[dict[str, Any]] = field(default_factory=list)
    distance_km: Optional[float] = None


@dataclass
class NearbySearchResult:
    """物件カタログの周辺検索結果"""

    properties: list[NearbyProperty] = field(default_factory=list)
    total: int = 0
