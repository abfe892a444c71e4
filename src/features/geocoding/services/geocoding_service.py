"""ジオコーディングサービス

プロバイダー呼び出しをTTL付きキャッシュでラップし、距離計算とバッチ処理を提供する
"""

import threading
from typing import Any, Callable, Iterable, Optional, TypeVar

from tqdm import tqdm

from ..cache.base import GeocodeCache
from ..domain.models import (
    BatchGeocodeItem,
    BatchGeocodeItemResult,
    GeocodeResult,
    ReverseGeocodeResult,
)
from ..providers.base import GeocodingProvider
from ....shared.exceptions.errors import DiscoveryError, StorageError, ValidationError
from ....shared.logging.config import get_logger
from ....shared.utils.geo import haversine_distance, validate_coordinates
from ....shared.utils.text import normalize_lookup_key

logger = get_logger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 86400

ResultT = TypeVar("ResultT", GeocodeResult, ReverseGeocodeResult)


def geocode_cache_key(address: str, country_hint: Optional[str] = None) -> str:
    """
    住所のキャッシュキーを生成

    Example:
        >>> geocode_cache_key("  10 Rue  Exemple ", "FR")
        'geocode:10 rue exemple:fr'
    """
    normalized = normalize_lookup_key(address)
    if country_hint:
        return f"geocode:{normalized}:{country_hint.strip().lower()}"
    return f"geocode:{normalized}"


def reverse_geocode_cache_key(latitude: float, longitude: float) -> str:
    """
    座標のキャッシュキーを生成（小数点以下4桁 ≒ 11m で丸める）

    Example:
        >>> reverse_geocode_cache_key(48.85661, 2.35222)
        'reverse:48.8566:2.3522'
    """
    return f"reverse:{latitude:.4f}:{longitude:.4f}"


class GeocodingService:
    """ジオコーディングサービス"""

    def __init__(
        self,
        provider: GeocodingProvider,
        cache: GeocodeCache,
        cache_ttl: int = DEFAULT_CACHE_TTL_SECONDS,
    ) -> None:
        """
        Args:
            provider: ジオコーディングプロバイダー（起動時に選択済み）
            cache: キャッシュバックエンド
            cache_ttl: キャッシュのTTL（秒）
        """
        self.provider = provider
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.hit_count = 0
        self.miss_count = 0
        self._stats_lock = threading.Lock()

        logger.info(
            f"GeocodingService initialized: provider={provider.name}, cache_ttl={cache_ttl}s"
        )

    @property
    def provider_name(self) -> str:
        return self.provider.name

    def geocode(
        self, address: str, country_hint: Optional[str] = None
    ) -> Optional[GeocodeResult]:
        """
        住所をジオコーディング（キャッシュあり）

        Args:
            address: 住所文字列
            country_hint: 国コード（任意）

        Returns:
            Optional[GeocodeResult]: 変換結果（見つからない場合はNone）

        Raises:
            ValidationError: 住所が空の場合
            ConfigurationError: プロバイダーの設定不備
            GeocodingError: プロバイダー呼び出しに失敗した場合
        """
        if not address or not address.strip():
            raise ValidationError("Address is required")

        cache_key = geocode_cache_key(address, country_hint)
        return self._read_through(
            cache_key,
            GeocodeResult.from_dict,
            lambda: self.provider.geocode(address, country_hint),
        )

    def reverse_geocode(
        self, latitude: float, longitude: float
    ) -> Optional[ReverseGeocodeResult]:
        """
        座標から住所を取得（キャッシュあり）

        Raises:
            ValidationError: 座標が範囲外の場合
            ConfigurationError: プロバイダーの設定不備
            GeocodingError: プロバイダー呼び出しに失敗した場合
        """
        validate_coordinates(latitude, longitude)

        cache_key = reverse_geocode_cache_key(latitude, longitude)
        return self._read_through(
            cache_key,
            ReverseGeocodeResult.from_dict,
            lambda: self.provider.reverse_geocode(latitude, longitude),
        )

    def _read_through(
        self,
        cache_key: str,
        decode: Callable[[dict[str, Any]], ResultT],
        fetch: Callable[[], Optional[ResultT]],
    ) -> Optional[ResultT]:
        cached = self._cache_get(cache_key, decode)
        if cached is not None:
            with self._stats_lock:
                self.hit_count += 1
            logger.debug(f"Cache hit: {cache_key}")
            return cached

        with self._stats_lock:
            self.miss_count += 1
        logger.debug(f"Cache miss: {cache_key}")

        result = fetch()

        # 見つからなかった結果はキャッシュしない（上流のデータ改善後に再取得できるように）
        if result is not None:
            self._cache_set(cache_key, result.to_dict())

        return result

    def _cache_get(
        self, cache_key: str, decode: Callable[[dict[str, Any]], ResultT]
    ) -> Optional[ResultT]:
        try:
            payload = self.cache.get(cache_key)
        except StorageError as e:
            logger.warning(f"Cache read failed for {cache_key}, calling provider: {e}")
            return None

        if payload is None:
            return None

        try:
            return decode(payload)
        except (KeyError, TypeError, ValueError) as e:
            # 壊れたエントリはヒット扱いにしない
            logger.warning(f"Discarding corrupt cache entry {cache_key}: {e}")
            return None

    def _cache_set(self, cache_key: str, payload: dict[str, Any]) -> None:
        try:
            self.cache.set(cache_key, payload, self.cache_ttl)
        except StorageError as e:
            logger.warning(f"Cache write failed for {cache_key}: {e}")

    def calculate_distance(
        self, lat1: float, lon1: float, lat2: float, lon2: float
    ) -> float:
        """
        2点間の距離（km）をHaversine公式で計算

        Raises:
            ValidationError: 座標が範囲外の場合
        """
        validate_coordinates(lat1, lon1)
        validate_coordinates(lat2, lon2)
        return haversine_distance(lat1, lon1, lat2, lon2)

    def batch_geocode(
        self, items: Iterable[BatchGeocodeItem], show_progress: bool = False
    ) -> list[BatchGeocodeItemResult]:
        """
        複数の住所を順番にジオコーディング

        1件の失敗は他の結果に影響しない（エラーメッセージとして記録する）

        Args:
            items: 入力のリスト
            show_progress: プログレスバーを表示するか

        Returns:
            list[BatchGeocodeItemResult]: 入力と同じ順序の結果
        """
        items = list(items)
        results: list[BatchGeocodeItemResult] = []

        logger.info(f"Starting batch geocoding: {len(items)} addresses")

        iterator = tqdm(items, desc="Geocoding") if show_progress else items

        for item in iterator:
            try:
                result = self.geocode(item.address, item.country_hint)
                results.append(BatchGeocodeItemResult(id=item.id, result=result))
            except DiscoveryError as e:
                logger.error(f"Geocoding error for item {item.id}: {e}")
                results.append(
                    BatchGeocodeItemResult(id=item.id, result=None, error=str(e) or "Geocoding failed")
                )
            except Exception as e:
                logger.error(f"Unexpected error during geocoding for item {item.id}: {e}")
                results.append(
                    BatchGeocodeItemResult(id=item.id, result=None, error=str(e) or "Geocoding failed")
                )

        success_count = sum(1 for r in results if r.result is not None)
        logger.info(
            f"Batch geocoding completed: {success_count} success, "
            f"{len(results) - success_count} failure"
        )

        return results

    def get_cache_stats(self) -> dict[str, Any]:
        """
        キャッシュ統計を取得

        Returns:
            dict: ヒット数、ミス数、総リクエスト数、ヒット率
        """
        with self._stats_lock:
            hit_count, miss_count = self.hit_count, self.miss_count
        total_requests = hit_count + miss_count
        hit_rate = (hit_count / total_requests * 100) if total_requests > 0 else 0.0

        return {
            "hit_count": hit_count,
            "miss_count": miss_count,
            "total_requests": total_requests,
            "hit_rate_percent": round(hit_rate, 2),
        }
