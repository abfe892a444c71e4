"""物件検索サービス（公開検索の入り口）"""
from dataclasses import replace
from typing import Any, Optional

from ..domain.language import resolve_language, resolve_localized
from ..domain.models import (
    INDEX_FIELDS,
    BoundingBox,
    ClusterPoint,
    Facets,
    PropertyDocument,
    SearchFilters,
    SearchOptions,
    SearchResult,
    Suggestion,
)
from ..index.filters import validate_search_filters
from ..index.meilisearch_index import MeilisearchIndex
from .clustering_service import (
    DEFAULT_INCLUDE_PROPERTIES_THRESHOLD,
    DEFAULT_MAX_CLUSTERS,
    ClusteringService,
)
from ....shared.exceptions.errors import ValidationError
from ....shared.logging.config import get_logger

logger = get_logger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 1000
# クラスタリング用に取得するヒットの上限
CLUSTER_SAMPLE_LIMIT = 1000

_MULTILINGUAL_FIELDS = ("title", "description")


def localize_document(document: dict[str, Any], language: str) -> dict[str, Any]:
    """多言語フィールド（title, description）を指定言語の文字列に置き換えたコピーを返す"""
    localized = dict(document)
    for field_name in _MULTILINGUAL_FIELDS:
        localized[field_name] = resolve_localized(document.get(field_name), language)
    return localized


class SearchService:
    """インデックス検索と言語解決を組み合わせる"""

    def __init__(
        self,
        index: MeilisearchIndex,
        clustering_service: Optional[ClusteringService] = None,
        default_language: str = "fr",
    ) -> None:
        """
        Args:
            index: 物件インデックス
            clustering_service: クラスタリングサービス
            default_language: 言語が決まらない場合のデフォルト
        """
        self.index = index
        self.clustering_service = clustering_service or ClusteringService()
        self.default_language = default_language

        logger.info(f"SearchService initialized: default_language={default_language}")

    def resolve_language(
        self, explicit: Optional[str] = None, accept_language: Optional[str] = None
    ) -> str:
        return resolve_language(explicit, accept_language, self.default_language)

    def search_properties(
        self,
        query: str = "",
        filters: Optional[SearchFilters] = None,
        options: Optional[SearchOptions] = None,
        accept_language: Optional[str] = None,
    ) -> SearchResult:
        """
        物件を検索

        Args:
            query: 検索文字列（空文字で全件）
            filters: 検索フィルタ
            options: ページング・並び順・言語
            accept_language: Accept-Languageヘッダー

        Returns:
            SearchResult: title / description を単一言語に解決した結果

        Raises:
            ValidationError: フィルタ・ページングが不正な場合
            SearchIndexError: 検索に失敗した場合
        """
        options = options or SearchOptions()
        validate_search_filters(filters)
        limit, offset = self._validate_paging(options.limit, options.offset)

        language = self.resolve_language(options.language, accept_language)

        result = self.index.search(
            query or "",
            filters,
            limit=limit,
            offset=offset,
            sort=options.sort,
            attributes_to_retrieve=INDEX_FIELDS,
        )

        properties = [localize_document(hit, language) for hit in result["hits"]]

        logger.debug(
            f"Search '{result['query']}' returned {len(properties)} of "
            f"{result['estimatedTotalHits']} (language={language})"
        )

        return SearchResult(
            properties=properties,
            total=result["estimatedTotalHits"],
            limit=result["limit"],
            offset=result["offset"],
            processing_time_ms=result["processingTimeMs"],
            query=result["query"],
        )

    def get_suggestions(
        self,
        query: str,
        limit: int = 5,
        language: Optional[str] = None,
        accept_language: Optional[str] = None,
    ) -> list[Suggestion]:
        """
        オートコンプリート候補

        Raises:
            ValidationError: 検索文字列が空の場合
            SearchIndexError: 検索に失敗した場合
        """
        if not query or not query.strip():
            raise ValidationError('Query parameter "q" is required')
        if limit < 1:
            raise ValidationError(f"limit must be positive: {limit}")

        resolved = self.resolve_language(language, accept_language)
        return self.index.get_suggestions(query, limit=limit, language=resolved)

    def get_facets(
        self, query: Optional[str] = None, filters: Optional[SearchFilters] = None
    ) -> Facets:
        """
        ファセットを取得

        Raises:
            ValidationError: フィルタが不正な場合
            SearchIndexError: 検索に失敗した場合
        """
        validate_search_filters(filters)
        return self.index.get_facets(query, filters)

    def get_clusters(
        self,
        query: str = "",
        filters: Optional[SearchFilters] = None,
        zoom: float = 10,
        bbox: Optional[BoundingBox] = None,
        max_clusters: int = DEFAULT_MAX_CLUSTERS,
        include_properties_threshold: int = DEFAULT_INCLUDE_PROPERTIES_THRESHOLD,
    ) -> list[ClusterPoint]:
        """
        検索結果を地図用のクラスタにまとめる

        先頭CLUSTER_SAMPLE_LIMIT件のヒットを対象とする。bbox指定時は範囲内の物件のみ。

        Raises:
            ValidationError: フィルタが不正な場合
            SearchIndexError: 検索に失敗した場合
        """
        filters = replace(filters) if filters else SearchFilters()
        if bbox is not None:
            filters.bbox = bbox
        validate_search_filters(filters)

        result = self.index.search(
            query or "",
            filters,
            limit=CLUSTER_SAMPLE_LIMIT,
            offset=0,
            attributes_to_retrieve=INDEX_FIELDS,
        )
        documents = [PropertyDocument.from_dict(hit) for hit in result["hits"] if hit.get("id")]

        if bbox is not None:
            return self.clustering_service.cluster_in_bbox(
                documents,
                bbox,
                zoom,
                max_clusters=max_clusters,
                include_properties_threshold=include_properties_threshold,
            )

        return self.clustering_service.cluster_properties(
            documents,
            zoom,
            max_clusters=max_clusters,
            include_properties_threshold=include_properties_threshold,
        )

    @staticmethod
    def _validate_paging(limit: Optional[int], offset: Optional[int]) -> tuple[int, int]:
        limit = DEFAULT_LIMIT if limit is None else limit
        offset = 0 if offset is None else offset
        if limit < 1 or limit > MAX_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_LIMIT}: {limit}")
        if offset < 0:
            raise ValidationError(f"offset must not be negative: {offset}")
        return limit, offset
