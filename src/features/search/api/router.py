"""物件検索エンドポイント（/search）"""
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from ..domain.models import PropertyStatus, PropertyType, SearchFilters, SearchOptions
from ..index.meilisearch_index import MeilisearchIndex
from ..services.clustering_service import (
    DEFAULT_INCLUDE_PROPERTIES_THRESHOLD,
    DEFAULT_MAX_CLUSTERS,
)
from ..services.search_service import SearchService, localize_document
from ....infrastructure.dependencies import get_search_index, get_search_service
from ....shared.logging.config import get_logger
from .schemas import (
    ClusterResponse,
    FacetsResponse,
    IndexPropertyRequest,
    IndexPropertyResponse,
    SearchRequest,
    SearchResponse,
    SuggestionResponse,
    build_bounding_box,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/search", tags=["search"])

# 公開検索でステータス未指定の場合
DEFAULT_PUBLIC_STATUS = PropertyStatus.LISTED.value


def _split_sort(sort: Optional[list[str]]) -> Optional[list[str]]:
    """?sort=price:desc&sort=createdAt:asc と ?sort=price:desc,createdAt:asc の両方を受け付ける"""
    if not sort:
        return None
    rules = [rule.strip() for value in sort for rule in value.split(",") if rule.strip()]
    return rules or None


def search_filters_from_query(
    status: Optional[PropertyStatus] = Query(None),
    type: Optional[PropertyType] = Query(None),
    country: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    region: Optional[str] = Query(None),
    currency: Optional[str] = Query(None),
    owner_id: Optional[str] = Query(None, alias="ownerId"),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    latitude: Optional[float] = Query(None),
    longitude: Optional[float] = Query(None),
    radius_km: Optional[float] = Query(None, alias="radiusKm"),
    min_lat: Optional[float] = Query(None, alias="minLat"),
    min_lon: Optional[float] = Query(None, alias="minLon"),
    max_lat: Optional[float] = Query(None, alias="maxLat"),
    max_lon: Optional[float] = Query(None, alias="maxLon"),
) -> SearchFilters:
    """クエリパラメータから検索フィルタを生成（ステータス未指定は listed）"""
    return SearchFilters(
        status=status.value if status else DEFAULT_PUBLIC_STATUS,
        type=type.value if type else None,
        country=country,
        city=city,
        region=region,
        currency=currency,
        owner_id=owner_id,
        min_price=min_price,
        max_price=max_price,
        latitude=latitude,
        longitude=longitude,
        radius_km=radius_km,
        bbox=build_bounding_box(min_lat, min_lon, max_lat, max_lon),
    )


@router.get("/health")
def health(index: MeilisearchIndex = Depends(get_search_index)) -> dict[str, str]:
    """Meilisearchの接続状態"""
    return index.health_check()


@router.get("", response_model=SearchResponse)
def search(
    q: str = Query(""),
    limit: int = Query(20),
    offset: int = Query(0),
    sort: Optional[list[str]] = Query(None),
    language: Optional[str] = Query(None),
    filters: SearchFilters = Depends(search_filters_from_query),
    accept_language: Optional[str] = Header(None),
    service: SearchService = Depends(get_search_service),
) -> SearchResponse:
    """
    物件検索（クエリパラメータ版）

    例: GET /search?q=appartement&country=France&type=apartment&limit=20
    """
    options = SearchOptions(limit=limit, offset=offset, sort=_split_sort(sort), language=language)
    result = service.search_properties(q, filters, options, accept_language=accept_language)
    return SearchResponse.from_result(result)


@router.post("", response_model=SearchResponse)
def advanced_search(
    body: SearchRequest,
    accept_language: Optional[str] = Header(None),
    service: SearchService = Depends(get_search_service),
) -> SearchResponse:
    """
    物件検索（ボディ版）

    Body: {"q": "...", "filters": {...}, "options": {...}}
    """
    filters = body.filters.to_filters(default_status=DEFAULT_PUBLIC_STATUS)
    result = service.search_properties(
        body.q, filters, body.options.to_options(), accept_language=accept_language
    )
    return SearchResponse.from_result(result)


@router.post("/index", response_model=IndexPropertyResponse)
def index_property(
    body: IndexPropertyRequest,
    index: MeilisearchIndex = Depends(get_search_index),
) -> IndexPropertyResponse:
    """物件をインデックスに登録（カタログサービスから呼ばれる）"""
    document = body.document
    if not document or not document.get("id"):
        raise HTTPException(status_code=400, detail="Property document is required")

    index.index_property(document)
    logger.info(f"Indexed property via API: {document['id']}")
    return IndexPropertyResponse(success=True, property_id=str(document["id"]))


@router.delete("/index/{property_id}", response_model=IndexPropertyResponse)
def delete_property(
    property_id: str,
    index: MeilisearchIndex = Depends(get_search_index),
) -> IndexPropertyResponse:
    """物件をインデックスから削除"""
    index.delete_property(property_id)
    logger.info(f"Deleted property via API: {property_id}")
    return IndexPropertyResponse(success=True, property_id=property_id)


@router.get("/suggestions", response_model=list[SuggestionResponse])
def suggestions(
    q: Optional[str] = Query(None),
    limit: int = Query(5),
    language: Optional[str] = Query(None),
    accept_language: Optional[str] = Header(None),
    service: SearchService = Depends(get_search_service),
) -> list[SuggestionResponse]:
    """オートコンプリート候補（例: GET /search/suggestions?q=appart&limit=5）"""
    results = service.get_suggestions(
        q or "", limit=limit, language=language, accept_language=accept_language
    )
    return [SuggestionResponse.from_suggestion(suggestion) for suggestion in results]


@router.get("/facets", response_model=FacetsResponse)
def facets(
    q: Optional[str] = Query(None),
    country: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    service: SearchService = Depends(get_search_service),
) -> FacetsResponse:
    """フィルタUI用のファセット"""
    filters = SearchFilters(
        country=country, city=city, min_price=min_price, max_price=max_price
    )
    return FacetsResponse.from_facets(service.get_facets(q, filters))


@router.get("/clusters", response_model=list[ClusterResponse])
def clusters(
    q: str = Query(""),
    zoom: float = Query(10),
    max_clusters: int = Query(DEFAULT_MAX_CLUSTERS, alias="maxClusters"),
    include_properties_threshold: int = Query(
        DEFAULT_INCLUDE_PROPERTIES_THRESHOLD, alias="includePropertiesThreshold"
    ),
    language: Optional[str] = Query(None),
    filters: SearchFilters = Depends(search_filters_from_query),
    accept_language: Optional[str] = Header(None),
    service: SearchService = Depends(get_search_service),
) -> list[ClusterResponse]:
    """地図表示用のクラスタ（bbox指定時は範囲内のみ）"""
    resolved = service.resolve_language(language, accept_language)
    points = service.get_clusters(
        q,
        filters,
        zoom=zoom,
        bbox=filters.bbox,
        max_clusters=max_clusters,
        include_properties_threshold=include_properties_threshold,
    )

    response: list[ClusterResponse] = []
    for point in points:
        properties: Optional[list[dict[str, Any]]] = None
        if point.properties is not None:
            properties = [localize_document(doc.to_dict(), resolved) for doc in point.properties]
        response.append(
            ClusterResponse(lat=point.lat, lng=point.lng, count=point.count, properties=properties)
        )
    return response
