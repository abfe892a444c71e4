"""サービスコンテナ

設定から各Featureのサービスを組み立て、依存性注入を行う
"""
from typing import Optional

import meilisearch

from ..features.catalog.clients.property_catalog_client import PropertyCatalogClient
from ..features.geocoding.cache.base import CacheBackend, GeocodeCache
from ..features.geocoding.cache.firestore_cache import FirestoreGeocodeCache
from ..features.geocoding.cache.memory_cache import MemoryGeocodeCache
from ..features.geocoding.providers.base import GeocodingProvider
from ..features.geocoding.providers.factory import create_geocoding_provider
from ..features.geocoding.services.geocoding_service import GeocodingService
from ..features.geocoding.services.nearby_search_service import NearbySearchService
from ..features.search.index.meilisearch_index import MeilisearchIndex
from ..features.search.services.clustering_service import ClusteringService
from ..features.search.services.search_service import SearchService
from ..features.storage.clients.firestore_client import FirestoreClient
from ..shared.exceptions.errors import ConfigurationError
from ..shared.http.client import HTTPClient
from ..shared.logging.config import get_logger
from .config.settings import Settings
from .gcp.secret_manager import SecretManagerClient

logger = get_logger(__name__)


class ServiceContainer:
    """
    サービスコンテナ

    プロバイダー・キャッシュ・外部クライアントは引数で差し替え可能（テスト用）
    """

    def __init__(
        self,
        settings: Settings,
        geocoding_provider: Optional[GeocodingProvider] = None,
        geocode_cache: Optional[GeocodeCache] = None,
        meilisearch_client: Optional[meilisearch.Client] = None,
        catalog_client: Optional[PropertyCatalogClient] = None,
    ) -> None:
        """
        Args:
            settings: アプリケーション設定
            geocoding_provider: ジオコーディングプロバイダー（省略時は設定から選択）
            geocode_cache: キャッシュ（省略時は設定から生成）
            meilisearch_client: Meilisearchクライアント
            catalog_client: 物件カタログクライアント
        """
        self.settings = settings

        # Secret Managerは本番系の環境でのみ使用
        self.secret_manager: Optional[SecretManagerClient] = None
        if geocoding_provider is None and self._needs_secret_manager():
            self.secret_manager = SecretManagerClient(settings.gcp_project_id)  # type: ignore[arg-type]

        self.geocoding_provider = geocoding_provider or create_geocoding_provider(
            settings, self.secret_manager
        )
        self.geocode_cache = geocode_cache or self._create_geocode_cache()

        self.geocoding_service = GeocodingService(
            provider=self.geocoding_provider,
            cache=self.geocode_cache,
            cache_ttl=settings.geocoding_cache_ttl,
        )

        self.catalog_client = catalog_client or PropertyCatalogClient(
            HTTPClient(
                base_url=settings.property_service_url,
                timeout=settings.property_service_timeout,
                max_retries=0,
            )
        )
        self.nearby_search_service = NearbySearchService(self.catalog_client)

        self.meilisearch_client = meilisearch_client or meilisearch.Client(
            settings.meilisearch_url,
            settings.meilisearch_api_key or None,
            timeout=int(settings.meilisearch_timeout),
        )
        self.search_index = MeilisearchIndex(
            self.meilisearch_client, index_name=settings.meilisearch_index_name
        )
        self.clustering_service = ClusteringService()
        self.search_service = SearchService(
            index=self.search_index,
            clustering_service=self.clustering_service,
            default_language=settings.default_language,
        )

        logger.info("ServiceContainer initialized")

    def _needs_secret_manager(self) -> bool:
        return (
            self.settings.geocoding_provider.strip().lower() == "google"
            and not self.settings.google_maps_api_key
            and not self.settings.is_development
            and bool(self.settings.gcp_project_id)
        )

    def _create_geocode_cache(self) -> GeocodeCache:
        """
        設定に基づいてキャッシュを生成

        Raises:
            ConfigurationError: 未知のバックエンド、またはFirestoreにプロジェクトIDが無い場合
        """
        backend = self.settings.geocoding_cache_backend.strip().lower()

        if backend == CacheBackend.MEMORY.value:
            return MemoryGeocodeCache(max_entries=self.settings.geocoding_cache_max_entries)

        if backend == CacheBackend.FIRESTORE.value:
            if not self.settings.gcp_project_id:
                raise ConfigurationError("GCP_PROJECT_ID is required for the firestore geocode cache")
            firestore_client = FirestoreClient(
                project_id=self.settings.gcp_project_id,
                database_id=self.settings.firestore_database_id,
            )
            return FirestoreGeocodeCache(
                firestore_client,
                collection=self.settings.firestore_geocode_cache_collection,
            )

        raise ConfigurationError(f"Unknown geocoding cache backend: {backend}")

    def close(self) -> None:
        """外部クライアントのリソースを解放"""
        self.geocoding_provider.close()
        self.catalog_client.close()
