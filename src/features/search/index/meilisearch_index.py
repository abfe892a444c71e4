"""Meilisearchの物件インデックスアダプター"""
from collections import Counter
from typing import Any, Iterable, Optional

import meilisearch
from meilisearch.errors import MeilisearchApiError, MeilisearchError

from ..domain.language import resolve_localized
from ..domain.models import (
    FacetValue,
    Facets,
    PriceRange,
    PropertyDocument,
    PropertyStatus,
    SearchFilters,
    Suggestion,
)
from ....shared.exceptions.errors import SearchIndexError, ValidationError
from ....shared.logging.config import get_logger
from .filters import build_filter_expression

logger = get_logger(__name__)

PRIMARY_KEY = "id"
DEFAULT_SORT = ["price:asc"]

# ファセットは最大この件数のヒットからクライアント側で集計する（近似値）
FACET_SAMPLE_LIMIT = 1000
TOP_CITIES_LIMIT = 20

INDEX_SETTINGS: dict[str, Any] = {
    "searchableAttributes": [
        "title",
        "description",
        "city",
        "country",
        "region",
        "street",
        "postalCode",
    ],
    "filterableAttributes": [
        "status",
        "type",
        "country",
        "city",
        "region",
        "currency",
        "ownerId",
        "_geo",
    ],
    "sortableAttributes": ["price", "createdAt", "updatedAt", "publishedAt", "_geo"],
    "faceting": {"maxValuesPerFacet": 100},
    "rankingRules": ["words", "typo", "proximity", "attribute", "sort", "exactness"],
}


def _to_index_document(document: PropertyDocument | dict[str, Any]) -> dict[str, Any]:
    """PropertyDocumentまたは辞書をインデックス登録用の辞書に変換"""
    if isinstance(document, PropertyDocument):
        return document.to_index_document()

    if not document.get(PRIMARY_KEY):
        raise ValidationError("Property document id is required")
    return PropertyDocument.from_dict(document).to_index_document()


def _to_partial_document(document: PropertyDocument | dict[str, Any]) -> dict[str, Any]:
    """部分更新用。辞書は指定されたフィールドのみ、PropertyDocumentはNone以外のフィールドを送る"""
    if isinstance(document, PropertyDocument):
        return {key: value for key, value in document.to_index_document().items() if value is not None}

    if not document.get(PRIMARY_KEY):
        raise ValidationError("Property document id is required")

    payload = dict(document)
    if payload.get("latitude") is not None and payload.get("longitude") is not None:
        payload["_geo"] = {"lat": payload["latitude"], "lng": payload["longitude"]}
    return payload


def _count_facet(counter: Counter) -> list[FacetValue]:
    # most_commonは同数の場合、最初に出現した順を保つ
    return [FacetValue(value=value, count=count) for value, count in counter.most_common()]


class MeilisearchIndex:
    """
    物件インデックス（スキーマ管理・登録・検索・サジェスト・ファセット）

    Meilisearchのエラーは SearchIndexError に変換して送出する
    """

    def __init__(self, client: meilisearch.Client, index_name: str = "properties") -> None:
        """
        Args:
            client: Meilisearchクライアント
            index_name: インデックス名
        """
        self.client = client
        self.index_name = index_name
        self.index = client.index(index_name)

        logger.info(f"MeilisearchIndex initialized: index={index_name}")

    def initialize_index(self) -> None:
        """
        インデックスを作成し、設定を反映する（冪等）

        既に存在する場合は作り直さず、設定のみ再適用する

        Raises:
            SearchIndexError: Meilisearchの操作に失敗した場合
        """
        try:
            try:
                self.client.get_index(self.index_name)
                logger.info(f'Index "{self.index_name}" already exists')
            except MeilisearchApiError as e:
                if getattr(e, "code", None) != "index_not_found":
                    raise
                task = self.client.create_index(self.index_name, {"primaryKey": PRIMARY_KEY})
                self.client.wait_for_task(task.task_uid)
                logger.info(f'Created index "{self.index_name}"')

            self.index.update_settings(INDEX_SETTINGS)
            logger.info(f'Index "{self.index_name}" settings configured')
        except MeilisearchError as e:
            logger.error(f"Failed to initialize Meilisearch index: {e}")
            raise SearchIndexError(f"Failed to initialize index {self.index_name}: {e}") from e

    def index_property(self, document: PropertyDocument | dict[str, Any]) -> None:
        """
        物件を1件登録（同じidのドキュメントは置き換え）

        Raises:
            ValidationError: idが無い場合
            SearchIndexError: 登録に失敗した場合
        """
        payload = _to_index_document(document)
        try:
            self.index.add_documents([payload], primary_key=PRIMARY_KEY)
        except MeilisearchError as e:
            logger.error(f"Failed to index property {payload[PRIMARY_KEY]}: {e}")
            raise SearchIndexError(f"Failed to index property {payload[PRIMARY_KEY]}: {e}") from e
        logger.debug(f"Indexed property: {payload[PRIMARY_KEY]}")

    def index_properties(
        self, documents: Iterable[PropertyDocument | dict[str, Any]]
    ) -> int:
        """
        物件を一括登録

        Returns:
            int: 登録件数

        Raises:
            ValidationError: idが無いドキュメントが含まれる場合
            SearchIndexError: 登録に失敗した場合
        """
        payloads = [_to_index_document(document) for document in documents]
        if not payloads:
            return 0

        try:
            self.index.add_documents(payloads, primary_key=PRIMARY_KEY)
        except MeilisearchError as e:
            logger.error(f"Failed to index properties: {e}")
            raise SearchIndexError(f"Failed to index {len(payloads)} properties: {e}") from e

        logger.debug(f"Indexed {len(payloads)} properties")
        return len(payloads)

    def update_property(self, document: PropertyDocument | dict[str, Any]) -> None:
        """
        物件を部分更新（指定したフィールドのみ上書き）

        Raises:
            ValidationError: idが無い場合
            SearchIndexError: 更新に失敗した場合
        """
        payload = _to_partial_document(document)
        try:
            self.index.update_documents([payload], primary_key=PRIMARY_KEY)
        except MeilisearchError as e:
            logger.error(f"Failed to update property {payload[PRIMARY_KEY]}: {e}")
            raise SearchIndexError(f"Failed to update property {payload[PRIMARY_KEY]}: {e}") from e
        logger.debug(f"Updated property in index: {payload[PRIMARY_KEY]}")

    def delete_property(self, property_id: str) -> None:
        """
        物件をインデックスから削除（存在しないidでもエラーにならない）

        Raises:
            SearchIndexError: 削除に失敗した場合
        """
        try:
            self.index.delete_document(property_id)
        except MeilisearchError as e:
            logger.error(f"Failed to delete property {property_id}: {e}")
            raise SearchIndexError(f"Failed to delete property {property_id}: {e}") from e
        logger.debug(f"Deleted property from index: {property_id}")

    def search(
        self,
        query: str = "",
        filters: Optional[SearchFilters] = None,
        limit: int = 20,
        offset: int = 0,
        sort: Optional[list[str]] = None,
        attributes_to_retrieve: Optional[list[str]] = None,
    ) -> dict[str, Any]:
        """
        テキスト + フィルタ + ジオ条件で検索

        Returns:
            dict: hits, estimatedTotalHits, processingTimeMs, query, limit, offset

        Raises:
            SearchIndexError: 検索に失敗した場合
        """
        params: dict[str, Any] = {
            "limit": limit,
            "offset": offset,
            "sort": sort or DEFAULT_SORT,
        }
        filter_expression = build_filter_expression(filters)
        if filter_expression:
            params["filter"] = filter_expression
        if attributes_to_retrieve:
            params["attributesToRetrieve"] = attributes_to_retrieve

        response = self._search(query or "", params)

        return {
            "hits": response.get("hits", []),
            "estimatedTotalHits": response.get("estimatedTotalHits", 0),
            "processingTimeMs": response.get("processingTimeMs", 0),
            "query": query or "",
            "limit": limit,
            "offset": offset,
        }

    def get_suggestions(
        self, query: str, limit: int = 5, language: str = "fr"
    ) -> list[Suggestion]:
        """
        オートコンプリート候補（掲載中の物件のみ）

        Raises:
            SearchIndexError: 検索に失敗した場合
        """
        response = self._search(
            query,
            {
                "limit": limit,
                "attributesToRetrieve": ["id", "title", "city"],
                "filter": f'status = "{PropertyStatus.LISTED.value}"',
            },
        )

        return [
            Suggestion(
                id=str(hit.get("id")),
                title=resolve_localized(hit.get("title"), language),
                city=hit.get("city") or None,
            )
            for hit in response.get("hits", [])
        ]

    def get_facets(
        self, query: Optional[str] = None, filters: Optional[SearchFilters] = None
    ) -> Facets:
        """
        フィルタUI用のファセットを集計（掲載中の物件のみ）

        インデックス全体の正確な集計ではなく、一致した先頭FACET_SAMPLE_LIMIT件の
        ヒットからの集計。一致件数がそれを超えると件数は過小になる。

        Raises:
            SearchIndexError: 検索に失敗した場合
        """
        filter_expression = build_filter_expression(
            filters, force_status=PropertyStatus.LISTED.value
        )
        response = self._search(
            query or "",
            {
                "limit": FACET_SAMPLE_LIMIT,
                "filter": filter_expression,
                "attributesToRetrieve": ["type", "country", "city", "price"],
            },
        )

        types: Counter = Counter()
        countries: Counter = Counter()
        cities: Counter = Counter()
        prices: list[float] = []

        for hit in response.get("hits", []):
            if hit.get("type"):
                types[hit["type"]] += 1
            if hit.get("country"):
                countries[hit["country"]] += 1
            if hit.get("city"):
                cities[hit["city"]] += 1
            if hit.get("price") is not None:
                prices.append(hit["price"])

        return Facets(
            types=_count_facet(types),
            countries=_count_facet(countries),
            cities=_count_facet(cities)[:TOP_CITIES_LIMIT],
            price_range=PriceRange(min=min(prices), max=max(prices)) if prices else PriceRange(),
        )

    def health_check(self) -> dict[str, str]:
        """Meilisearchへの接続確認"""
        try:
            health = self.client.health()
        except MeilisearchError as e:
            logger.warning(f"Meilisearch health check failed: {e}")
            return {"status": "error", "meilisearch": "disconnected"}

        connected = health.get("status") == "available"
        return {
            "status": "ok" if connected else "error",
            "meilisearch": "connected" if connected else "disconnected",
        }

    def _search(self, query: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            return self.index.search(query, params)
        except MeilisearchError as e:
            logger.error(f"Search failed (query={query!r}, filter={params.get('filter')}): {e}")
            raise SearchIndexError(f"Search failed: {e}") from e
