"""ジオコーディングキャッシュのインターフェース"""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional


class CacheBackend(str, Enum):
    """キャッシュバックエンド"""

    MEMORY = "memory"
    FIRESTORE = "firestore"


class GeocodeCache(ABC):
    """
    キー付きキャッシュ（get / TTL付きset）

    値はJSON互換の辞書。TTL切れ以外でエントリが消えることはない。
    """

    @abstractmethod
    def get(self, key: str) -> Optional[dict[str, Any]]:
        """キーに対応する値を取得（存在しない・期限切れの場合はNone）"""

    @abstractmethod
    def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        """TTL付きで値を保存"""
