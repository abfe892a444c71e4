"""アプリケーション設定（Pydantic Settings）"""
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """アプリケーション設定"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Project
    project_name: str = Field(
        default="property-discovery-service",
        description="プロジェクト名",
    )
    environment: str = Field(
        default="development",
        description="環境 (development, staging, production)",
    )

    # GCP
    gcp_project_id: Optional[str] = Field(
        default=None,
        description="GCPプロジェクトID（Firestoreキャッシュ・Secret Manager・Cloud Logging使用時に必要）",
    )

    # Geocoding
    geocoding_provider: str = Field(
        default="stub",
        description="ジオコーディングプロバイダー (google, nominatim, stub)",
    )
    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="Google Maps API Key（ローカル開発用）",
    )
    google_maps_api_key_secret_name: str = Field(
        default="google-maps-api-key",
        description="Google Maps API KeyのSecret Manager名",
    )
    nominatim_base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="NominatimのベースURL",
    )
    nominatim_user_agent: str = Field(
        default="PropertyDiscovery-Geolocation-Service/1.0",
        description="Nominatimに送るUser-Agent（利用規約で必須）",
    )
    nominatim_requests_per_second: float = Field(
        default=1.0,
        description="Nominatimへの最大リクエスト数/秒（公開サーバーの利用規約は1）",
    )
    geocoding_timeout: float = Field(
        default=10.0,
        description="ジオコーディングプロバイダー呼び出しのタイムアウト（秒）",
    )

    # Geocode cache
    geocoding_cache_backend: str = Field(
        default="memory",
        description="ジオコーディングキャッシュのバックエンド (memory, firestore)",
    )
    geocoding_cache_ttl: int = Field(
        default=86400,
        description="ジオコーディングキャッシュのTTL（秒）",
    )
    geocoding_cache_max_entries: int = Field(
        default=1000,
        description="メモリキャッシュの最大エントリ数",
    )
    firestore_database_id: str = Field(
        default="(default)",
        description="FirestoreデータベースID",
    )
    firestore_geocode_cache_collection: str = Field(
        default="geocode_cache",
        description="ジオコーディングキャッシュのコレクション名",
    )

    # Property catalog (nearby search)
    property_service_url: str = Field(
        default="http://property-service:3001",
        description="物件カタログサービスのベースURL",
    )
    property_service_timeout: float = Field(
        default=5.0,
        description="物件カタログ呼び出しのタイムアウト（秒）",
    )

    # Meilisearch
    meilisearch_url: str = Field(
        default="http://localhost:7700",
        description="MeilisearchのURL",
    )
    meilisearch_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("meilisearch_api_key", "meili_master_key"),
        description="MeilisearchのAPIキー（MEILI_MASTER_KEYも可）",
    )
    meilisearch_index_name: str = Field(
        default="properties",
        description="物件インデックス名",
    )
    meilisearch_timeout: float = Field(
        default=10.0,
        description="Meilisearch呼び出しのタイムアウト（秒）",
    )
    meilisearch_init_on_startup: bool = Field(
        default=True,
        description="サーバー起動時にインデックスの作成・設定を行うか",
    )

    # Search
    default_language: str = Field(
        default="fr",
        description="多言語フィールドのデフォルト言語",
    )

    # HTTP
    cors_origins: str = Field(
        default="*",
        description="CORS許可オリジン（カンマ区切り）",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="ログレベル (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    gcp_logging_enabled: bool = Field(
        default=False,
        description="Cloud Loggingを有効にするか",
    )

    # Cloud Run
    port: int = Field(
        default=8080,
        description="HTTPサーバーのポート番号",
    )

    def get_cors_origins(self) -> list[str]:
        """CORS許可オリジンのリストを取得"""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        """開発環境かどうか"""
        return self.environment.lower() == "development"
