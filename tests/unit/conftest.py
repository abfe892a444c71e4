"""テスト用のフェイクとフィクスチャ"""
import re
from types import SimpleNamespace
from typing import Any, Callable, Optional

import pytest
from meilisearch.errors import MeilisearchApiError, MeilisearchError

from src.features.catalog.clients.property_catalog_client import PropertyCatalogClient
from src.features.geocoding.cache.memory_cache import MemoryGeocodeCache
from src.features.geocoding.domain.models import GeocodeResult, ReverseGeocodeResult
from src.features.geocoding.providers.base import GeocodingProvider
from src.features.geocoding.services.geocoding_service import GeocodingService
from src.features.search.index.meilisearch_index import MeilisearchIndex
from src.features.search.services.search_service import SearchService
from src.infrastructure.config.settings import Settings
from src.infrastructure.container import ServiceContainer
from src.shared.exceptions.errors import HTTPError
from src.shared.utils.geo import haversine_distance


class FakeClock:
    """手動で進める時計"""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGeocodingProvider(GeocodingProvider):
    """呼び出し回数を記録するプロバイダー"""

    name = "fake"

    def __init__(
        self,
        results: Optional[dict[str, Optional[GeocodeResult]]] = None,
        errors: Optional[dict[str, Exception]] = None,
    ) -> None:
        self.results = results or {}
        self.errors = errors or {}
        self.geocode_calls: list[tuple[str, Optional[str]]] = []
        self.reverse_calls: list[tuple[float, float]] = []
        self.closed = False

    def geocode(
        self, address: str, country_hint: Optional[str] = None
    ) -> Optional[GeocodeResult]:
        self.geocode_calls.append((address, country_hint))
        if address in self.errors:
            raise self.errors[address]
        return self.results.get(address)

    def reverse_geocode(
        self, latitude: float, longitude: float
    ) -> Optional[ReverseGeocodeResult]:
        self.reverse_calls.append((latitude, longitude))
        return ReverseGeocodeResult(
            formatted_address=f"{latitude}, {longitude}",
            city="Paris",
            country="France",
            country_code="FR",
        )

    def close(self) -> None:
        self.closed = True


class FakeJSONClient:
    """HTTPClient.get_json の代わり（レスポンスまたは例外を返す）"""

    def __init__(
        self,
        responses: Optional[dict[str, Any]] = None,
        error: Optional[Exception] = None,
        base_url: str = "http://fake",
    ) -> None:
        self.responses = responses or {}
        self.error = error
        self.base_url = base_url
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.closed = False

    def get_json(
        self,
        path: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        self.calls.append((path, dict(params or {})))
        if self.error is not None:
            raise self.error
        return self.responses.get(path)

    def close(self) -> None:
        self.closed = True


class IndexNotFoundError(MeilisearchApiError):
    """get_index が返す index_not_found"""

    def __init__(self, index_name: str) -> None:
        MeilisearchError.__init__(self, f"Index `{index_name}` not found.")
        self.code = "index_not_found"
        self.status_code = 404
        self.link = ""
        self.type = "invalid_request"


_STRING_CLAUSE = re.compile(r'^(\w+) = "((?:[^"\\]|\\.)*)"$')
_NUMBER_CLAUSE = re.compile(r"^(\w+) (>=|<=) (-?[\d.]+)$")
_RADIUS_CLAUSE = re.compile(r"^_geoRadius\((-?[\d.]+), (-?[\d.]+), ([\d.]+)\)$")
_BBOX_CLAUSE = re.compile(
    r"^_geoBoundingBox\(\[(-?[\d.]+), (-?[\d.]+)\], \[(-?[\d.]+), (-?[\d.]+)\]\)$"
)


def _clause_predicate(clause: str) -> Callable[[dict[str, Any]], bool]:
    """このプロジェクトが生成するフィルタ句だけを解釈する"""
    match = _STRING_CLAUSE.match(clause)
    if match:
        field_name = match.group(1)
        expected = match.group(2).replace('\\"', '"').replace("\\\\", "\\")
        return lambda doc: doc.get(field_name) == expected

    match = _NUMBER_CLAUSE.match(clause)
    if match:
        field_name, operator, raw = match.groups()
        bound = float(raw)
        if operator == ">=":
            return lambda doc: doc.get(field_name) is not None and doc[field_name] >= bound
        return lambda doc: doc.get(field_name) is not None and doc[field_name] <= bound

    match = _RADIUS_CLAUSE.match(clause)
    if match:
        lat, lng, meters = (float(value) for value in match.groups())

        def in_radius(doc: dict[str, Any]) -> bool:
            geo = doc.get("_geo")
            if not geo:
                return False
            return haversine_distance(lat, lng, geo["lat"], geo["lng"]) * 1000 <= meters

        return in_radius

    match = _BBOX_CLAUSE.match(clause)
    if match:
        top, right, bottom, left = (float(value) for value in match.groups())

        def in_box(doc: dict[str, Any]) -> bool:
            geo = doc.get("_geo")
            if not geo:
                return False
            return bottom <= geo["lat"] <= top and left <= geo["lng"] <= right

        return in_box

    raise AssertionError(f"Unsupported filter clause: {clause}")


def _searchable_text(doc: dict[str, Any]) -> str:
    parts: list[str] = []
    for field_name in ("title", "description", "city", "country", "region", "street", "postalCode"):
        value = doc.get(field_name)
        if isinstance(value, dict):
            parts.extend(str(v) for v in value.values())
        elif value:
            parts.append(str(value))
    return " ".join(parts).lower()


class FakeMeilisearchIndex:
    """meilisearch.Index の最小限のフェイク（メモリ内で検索）"""

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}
        self.settings: Optional[dict[str, Any]] = None
        self.settings_updates = 0
        self.search_calls: list[tuple[str, dict[str, Any]]] = []
        self.error: Optional[Exception] = None

    def add_documents(self, documents: list[dict[str, Any]], primary_key: Optional[str] = None) -> SimpleNamespace:
        self._raise_if_failing()
        for document in documents:
            self.documents[str(document["id"])] = dict(document)
        return SimpleNamespace(task_uid=len(self.documents))

    def update_documents(self, documents: list[dict[str, Any]], primary_key: Optional[str] = None) -> SimpleNamespace:
        self._raise_if_failing()
        for document in documents:
            current = self.documents.setdefault(str(document["id"]), {})
            current.update(document)
        return SimpleNamespace(task_uid=len(self.documents))

    def delete_document(self, document_id: str) -> SimpleNamespace:
        self._raise_if_failing()
        self.documents.pop(str(document_id), None)
        return SimpleNamespace(task_uid=0)

    def update_settings(self, settings: dict[str, Any]) -> SimpleNamespace:
        self._raise_if_failing()
        self.settings = settings
        self.settings_updates += 1
        return SimpleNamespace(task_uid=0)

    def search(self, query: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        self._raise_if_failing()
        params = dict(params or {})
        self.search_calls.append((query, params))

        hits = list(self.documents.values())

        tokens = query.lower().split()
        if tokens:
            hits = [doc for doc in hits if all(token in _searchable_text(doc) for token in tokens)]

        if params.get("filter"):
            predicates = [_clause_predicate(clause) for clause in params["filter"].split(" AND ")]
            hits = [doc for doc in hits if all(predicate(doc) for predicate in predicates)]

        for rule in reversed(params.get("sort") or []):
            field_name, _, direction = rule.partition(":")
            present = [doc for doc in hits if doc.get(field_name) is not None]
            missing = [doc for doc in hits if doc.get(field_name) is None]
            present.sort(key=lambda doc: doc[field_name], reverse=direction == "desc")
            hits = present + missing

        total = len(hits)
        offset = params.get("offset", 0)
        limit = params.get("limit", 20)
        hits = hits[offset : offset + limit]

        attributes = params.get("attributesToRetrieve")
        if attributes:
            hits = [{key: doc[key] for key in attributes if key in doc} for doc in hits]

        return {
            "hits": hits,
            "estimatedTotalHits": total,
            "processingTimeMs": 1,
            "query": query,
        }

    def _raise_if_failing(self) -> None:
        if self.error is not None:
            raise self.error


class FakeMeilisearchClient:
    """meilisearch.Client の最小限のフェイク"""

    def __init__(self) -> None:
        self.indexes: dict[str, FakeMeilisearchIndex] = {}
        self.created: set[str] = set()
        self.create_calls = 0
        self.healthy = True

    def index(self, name: str) -> FakeMeilisearchIndex:
        return self.indexes.setdefault(name, FakeMeilisearchIndex())

    def get_index(self, name: str) -> FakeMeilisearchIndex:
        if name not in self.created:
            raise IndexNotFoundError(name)
        return self.index(name)

    def create_index(self, name: str, options: Optional[dict[str, Any]] = None) -> SimpleNamespace:
        self.create_calls += 1
        self.created.add(name)
        self.index(name)
        return SimpleNamespace(task_uid=self.create_calls)

    def wait_for_task(self, task_uid: int) -> SimpleNamespace:
        return SimpleNamespace(status="succeeded", task_uid=task_uid)

    def health(self) -> dict[str, str]:
        if not self.healthy:
            raise MeilisearchError("connection refused")
        return {"status": "available"}


def make_geocode_result(
    latitude: float = 48.8566, longitude: float = 2.3522, address: str = "Paris, France"
) -> GeocodeResult:
    return GeocodeResult(
        latitude=latitude,
        longitude=longitude,
        formatted_address=address,
        city="Paris",
        country="France",
        country_code="FR",
        confidence=0.9,
    )


def make_property(
    property_id: str,
    price: float = 100000,
    latitude: Optional[float] = 48.8566,
    longitude: Optional[float] = 2.3522,
    **overrides: Any,
) -> dict[str, Any]:
    """インデックスに登録する物件（camelCase）"""
    document: dict[str, Any] = {
        "id": property_id,
        "status": "listed",
        "type": "apartment",
        "price": price,
        "currency": "EUR",
        "latitude": latitude,
        "longitude": longitude,
        "city": "Paris",
        "country": "France",
        "title": {"fr": f"Appartement {property_id}", "en": f"Apartment {property_id}"},
        "description": {"fr": "Bel appartement", "en": "Nice apartment"},
    }
    document.update(overrides)
    return document


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_provider() -> FakeGeocodingProvider:
    return FakeGeocodingProvider(
        results={
            "Paris": make_geocode_result(),
            "London": make_geocode_result(51.5074, -0.1278, "London, UK"),
        }
    )


@pytest.fixture
def memory_cache(clock: FakeClock) -> MemoryGeocodeCache:
    return MemoryGeocodeCache(clock=clock)


@pytest.fixture
def geocoding_service(
    fake_provider: FakeGeocodingProvider, memory_cache: MemoryGeocodeCache
) -> GeocodingService:
    return GeocodingService(provider=fake_provider, cache=memory_cache, cache_ttl=60)


@pytest.fixture
def meili_client() -> FakeMeilisearchClient:
    return FakeMeilisearchClient()


@pytest.fixture
def search_index(meili_client: FakeMeilisearchClient) -> MeilisearchIndex:
    return MeilisearchIndex(meili_client, index_name="properties")  # type: ignore[arg-type]


@pytest.fixture
def search_service(search_index: MeilisearchIndex) -> SearchService:
    return SearchService(index=search_index, default_language="fr")


@pytest.fixture
def catalog_http() -> FakeJSONClient:
    return FakeJSONClient(
        responses={
            "/properties/search/nearby": {
                "properties": [
                    {"id": "far", "latitude": 48.90, "longitude": 2.35, "price": 300000},
                    {"id": "near", "latitude": 48.857, "longitude": 2.353, "price": 100000},
                    {"id": "no-coords", "latitude": None, "longitude": None},
                ],
                "total": 3,
            }
        }
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        geocoding_provider="stub",
        geocoding_cache_backend="memory",
        meilisearch_init_on_startup=False,
    )


@pytest.fixture
def container(
    settings: Settings,
    fake_provider: FakeGeocodingProvider,
    memory_cache: MemoryGeocodeCache,
    meili_client: FakeMeilisearchClient,
    catalog_http: FakeJSONClient,
) -> ServiceContainer:
    return ServiceContainer(
        settings,
        geocoding_provider=fake_provider,
        geocode_cache=memory_cache,
        meilisearch_client=meili_client,  # type: ignore[arg-type]
        catalog_client=PropertyCatalogClient(catalog_http),  # type: ignore[arg-type]
    )


def failing_catalog_http() -> FakeJSONClient:
    return FakeJSONClient(error=HTTPError("connection refused"))
