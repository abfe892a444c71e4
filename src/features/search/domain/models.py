"""物件検索機能のドメインモデル"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class PropertyStatus(str, Enum):
    """物件ステータス"""

    DRAFT = "draft"
    REVIEW = "review"
    LISTED = "listed"
    FLAGGED = "flagged"
    ARCHIVED = "archived"


class PropertyType(str, Enum):
    """物件種別"""

    HOUSE = "house"
    APARTMENT = "apartment"
    VILLA = "villa"
    LAND = "land"
    COMMERCIAL = "commercial"
    OTHER = "other"


# Python属性名 -> インデックスのフィールド名
_INDEX_FIELD_NAMES: dict[str, str] = {
    "id": "id",
    "owner_id": "ownerId",
    "status": "status",
    "type": "type",
    "price": "price",
    "currency": "currency",
    "latitude": "latitude",
    "longitude": "longitude",
    "street": "street",
    "postal_code": "postalCode",
    "city": "city",
    "region": "region",
    "country": "country",
    "media_urls": "mediaUrls",
    "title": "title",
    "description": "description",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "published_at": "publishedAt",
}

INDEX_FIELDS: list[str] = list(_INDEX_FIELD_NAMES.values())


@dataclass
class PropertyDocument:
    """
    検索インデックスに登録する物件ドキュメント

    カタログサービスが所有するデータの射影。idはインデックスの主キー。
    title / description は言語コードをキーとする辞書（例: {"fr": "...", "en": "..."}）
    """

    id: str
    owner_id: Optional[str] = None
    status: str = PropertyStatus.DRAFT.value
    type: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    street: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    media_urls: list[str] = field(default_factory=list)
    title: dict[str, str] = field(default_factory=dict)
    description: dict[str, str] = field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    published_at: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """インデックスのフィールド名（camelCase）の辞書に変換"""
        return {
            index_name: getattr(self, attr_name)
            for attr_name, index_name in _INDEX_FIELD_NAMES.items()
        }

    def to_index_document(self) -> dict[str, Any]:
        """
        Meilisearchに登録する形式に変換

        座標がある場合はジオ検索用の_geoフィールドを追加する
        """
        document = self.to_dict()
        if self.latitude is not None and self.longitude is not None:
            document["_geo"] = {"lat": self.latitude, "lng": self.longitude}
        return document

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PropertyDocument":
        """インデックスのヒット（camelCase）から生成。未知のフィールドは無視する"""
        kwargs: dict[str, Any] = {}
        for attr_name, index_name in _INDEX_FIELD_NAMES.items():
            if index_name in data and data[index_name] is not None:
                kwargs[attr_name] = data[index_name]
        kwargs["id"] = str(data["id"])
        return cls(**kwargs)


@dataclass(frozen=True)
class BoundingBox:
    """矩形の地理的範囲"""

    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    def contains(self, latitude: float, longitude: float) -> bool:
        return (
            self.min_lat <= latitude <= self.max_lat
            and self.min_lon <= longitude <= self.max_lon
        )


@dataclass
class SearchFilters:
    """検索フィルタ（リクエスト単位の値オブジェクト）"""

    status: Optional[str] = None
    type: Optional[str] = None
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
    bbox: Optional[BoundingBox] = None


@dataclass
class SearchOptions:
    """ページング・並び順・言語"""

    limit: int = 20
    offset: int = 0
    sort: Optional[list[str]] = None
    language: Optional[str] = None


@dataclass
class SearchResult:
    """検索結果（title / description は単一言語に解決済み）"""

    properties: list[dict[str, Any]]
    total: int
    limit: int
    offset: int
    processing_time_ms: int
    query: str


@dataclass
class Suggestion:
    """オートコンプリート候補"""

    id: str
    title: str
    city: Optional[str] = None


@dataclass
class FacetValue:
    value: str
    count: int


@dataclass
class PriceRange:
    min: float = 0
    max: float = 0


@dataclass
class Facets:
    """フィルタUI用のファセット"""

    types: list[FacetValue] = field(default_factory=list)
    countries: list[FacetValue] = field(default_factory=list)
    cities: list[FacetValue] = field(default_factory=list)
    price_range: PriceRange = field(default_factory=PriceRange)


@dataclass
class ClusterPoint:
    """地図表示用のクラスタ（リクエストごとに計算、保存しない）"""

    lat: float
    lng: float
    count: int
    properties: Optional[list[PropertyDocument]] = None
