"""Firestoreを使った分散キャッシュ

複数インスタンス間でジオコーディング結果を共有する。
expires_atフィールドにFirestoreのTTLポリシーを設定すると期限切れドキュメントが自動削除される。
"""
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from ....shared.logging.config import get_logger
from ...storage.clients.firestore_client import FirestoreClient
from .base import GeocodeCache

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FirestoreGeocodeCache(GeocodeCache):
    """Firestoreバックエンドのキャッシュ（1キー = 1ドキュメント）"""

    def __init__(
        self,
        firestore_client: FirestoreClient,
        collection: str = "geocode_cache",
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """
        Args:
            firestore_client: Firestoreクライアント
            collection: キャッシュ用コレクション名
            clock: 現在時刻（UTC）を返す関数
        """
        self.client = firestore_client
        self.collection = collection
        self._clock = clock

        logger.info(f"FirestoreGeocodeCache initialized: collection={collection}")

    @staticmethod
    def _document_id(key: str) -> str:
        # キーには"/"などドキュメントIDに使えない文字が含まれうる
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    def get(self, key: str) -> Optional[dict[str, Any]]:
        """
        Raises:
            StorageError: 読み出しに失敗した場合
        """
        doc = self.client.get_document(self.collection, self._document_id(key))
        if doc is None:
            return None

        expires_at = doc.get("expires_at")
        if expires_at is None or expires_at <= self._clock():
            return None

        value = doc.get("value")
        if not isinstance(value, dict):
            logger.warning(f"Discarding malformed cache document for key: {key}")
            return None
        return value

    def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        """
        Raises:
            StorageError: 書き込みに失敗した場合
        """
        now = self._clock()
        self.client.set_document(
            self.collection,
            self._document_id(key),
            {
                "key": key,
                "value": value,
                "created_at": now,
                "expires_at": now + timedelta(seconds=ttl_seconds),
            },
        )
