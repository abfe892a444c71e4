"""FastAPIの依存性（app.stateのServiceContainerからサービスを取り出す）"""
from fastapi import Request

from ..features.geocoding.services.geocoding_service import GeocodingService
from ..features.geocoding.services.nearby_search_service import NearbySearchService
from ..features.search.index.meilisearch_index import MeilisearchIndex
from ..features.search.services.search_service import SearchService
from .container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_geocoding_service(request: Request) -> GeocodingService:
    return get_container(request).geocoding_service


def get_nearby_search_service(request: Request) -> NearbySearchService:
    return get_container(request).nearby_search_service


def get_search_service(request: Request) -> SearchService:
    return get_container(request).search_service


def get_search_index(request: Request) -> MeilisearchIndex:
    return get_container(request).search_index
