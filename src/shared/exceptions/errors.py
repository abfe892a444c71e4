"""カスタム例外定義

「見つからない」は例外ではなく None / 空の結果で表現する。
"""


class DiscoveryError(Exception):
    """物件検索・ジオコーディングサービスの基底例外"""

    pass


class UpstreamUnavailableError(DiscoveryError):
    """外部サービス（検索インデックス、ジオコーディングプロバイダー、物件カタログ）の障害

    リトライ可能なエラーとして扱う
    """

    pass


class HTTPError(UpstreamUnavailableError):
    """HTTP関連のエラー"""

    pass


class GeocodingError(UpstreamUnavailableError):
    """ジオコーディングエラー"""

    pass


class SearchIndexError(UpstreamUnavailableError):
    """検索インデックス（Meilisearch）関連のエラー"""

    pass


class StorageError(UpstreamUnavailableError):
    """ストレージ関連のエラー"""

    pass


class ConfigurationError(DiscoveryError):
    """設定エラー（APIキー未設定・無効など）

    リトライではなく設定の修正が必要
    """

    pass


class ValidationError(DiscoveryError):
    """バリデーションエラー（外部呼び出し前に入力を拒否する）"""

    pass
