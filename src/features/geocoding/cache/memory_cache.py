"""メモリ内キャッシュ（プロセス単位）"""
import copy
import threading
import time
from typing import Any, Callable, Optional

from cachetools import TLRUCache

from ....shared.logging.config import get_logger
from .base import GeocodeCache

logger = get_logger(__name__)

DEFAULT_MAX_ENTRIES = 1000


def _expires_at(key: str, entry: tuple[int, dict[str, Any]], now: float) -> float:
    ttl_seconds, _ = entry
    return now + ttl_seconds


class MemoryGeocodeCache(GeocodeCache):
    """
    TTL・件数上限付きメモリ内キャッシュ

    エントリごとにTTLを持つ。書き込み時に期限切れを削除し、
    上限を超えた場合は最も使われていないエントリを追い出す。
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            max_entries: 保持するエントリの最大数
            clock: 現在時刻（秒）を返す関数（テスト用に差し替え可能）
        """
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive: {max_entries}")

        self.max_entries = max_entries
        self._entries: TLRUCache = TLRUCache(maxsize=max_entries, ttu=_expires_at, timer=clock)
        self._lock = threading.Lock()

        logger.info(f"MemoryGeocodeCache initialized: max_entries={max_entries}")

    def get(self, key: str) -> Optional[dict[str, Any]]:
        with self._lock:
            self._entries.expire()
            entry = self._entries.get(key)
            if entry is None:
                return None

            _, value = entry
            return copy.deepcopy(value)

    def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = (ttl_seconds, copy.deepcopy(value))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
