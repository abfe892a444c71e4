"""HTTP API（FastAPI）のテスト"""
import pytest
from fastapi.testclient import TestClient
from meilisearch.errors import MeilisearchError

from conftest import FakeGeocodingProvider, FakeMeilisearchClient, make_property
from src.infrastructure.container import ServiceContainer
from src.server import create_app
from src.shared.exceptions.errors import ConfigurationError, GeocodingError


@pytest.fixture
def client(container: ServiceContainer) -> TestClient:
    return TestClient(create_app(container=container))


@pytest.fixture
def indexed(client: TestClient) -> None:
    for document in [
        make_property("p100", price=100000),
        make_property("p200", price=200000),
        make_property("p300", price=300000),
        make_property("draft", price=50000, status="draft"),
    ]:
        response = client.post("/search/index", json={"property": document})
        assert response.status_code == 200


class TestService:
    def test_root(self, client: TestClient) -> None:
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, client: TestClient) -> None:
        assert client.get("/health").json() == {"status": "healthy"}


class TestGeolocationAPI:
    """/geolocation"""

    def test_health_reports_provider(self, client: TestClient) -> None:
        body = client.get("/geolocation/health").json()
        assert body == {"status": "ok", "service": "geolocation-service", "provider": "fake"}

    def test_geocode(self, client: TestClient, fake_provider: FakeGeocodingProvider) -> None:
        response = client.post("/geolocation/geocode", json={"address": "Paris", "country": "FR"})

        assert response.status_code == 200
        body = response.json()
        assert body["latitude"] == 48.8566
        assert body["formattedAddress"] == "Paris, France"
        assert body["countryCode"] == "FR"
        assert fake_provider.geocode_calls == [("Paris", "FR")]

    def test_geocode_not_found(self, client: TestClient) -> None:
        response = client.post("/geolocation/geocode", json={"address": "Atlantis"})
        assert response.status_code == 404

    def test_geocode_requires_address(self, client: TestClient) -> None:
        response = client.post("/geolocation/geocode", json={})
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_geocode_upstream_failure_is_retryable(
        self, client: TestClient, fake_provider: FakeGeocodingProvider
    ) -> None:
        fake_provider.errors["Paris"] = GeocodingError("provider timeout")

        response = client.post("/geolocation/geocode", json={"address": "Paris"})

        assert response.status_code == 503
        assert response.json()["retryable"] is True

    def test_geocode_misconfiguration(
        self, client: TestClient, fake_provider: FakeGeocodingProvider
    ) -> None:
        fake_provider.errors["Paris"] = ConfigurationError("Google Maps API key not configured")

        response = client.post("/geolocation/geocode", json={"address": "Paris"})

        assert response.status_code == 500
        assert response.json()["error"] == "misconfiguration"

    def test_reverse(self, client: TestClient) -> None:
        response = client.post("/geolocation/reverse", json={"latitude": 48.85, "longitude": 2.35})

        assert response.status_code == 200
        assert response.json()["countryCode"] == "FR"

    def test_reverse_out_of_range(self, client: TestClient) -> None:
        response = client.post("/geolocation/reverse", json={"latitude": 95, "longitude": 2.35})
        assert response.status_code == 400

    def test_distance(self, client: TestClient) -> None:
        response = client.get(
            "/geolocation/distance",
            params={"lat1": 48.8566, "lon1": 2.3522, "lat2": 51.5074, "lon2": -0.1278},
        )

        body = response.json()
        assert 343 <= body["distanceKm"] <= 345
        assert body["distanceKm"] == round(body["distanceKm"], 2)
        assert body["point1"] == {"latitude": 48.8566, "longitude": 2.3522}
        assert body["point2"] == {"latitude": 51.5074, "longitude": -0.1278}

    def test_batch(self, client: TestClient, fake_provider: FakeGeocodingProvider) -> None:
        fake_provider.errors["Broken"] = GeocodingError("upstream down")

        response = client.post(
            "/geolocation/batch",
            json={
                "addresses": [
                    {"id": "a", "address": "Paris"},
                    {"id": "b", "address": "Broken"},
                    {"id": "c", "address": "London", "country": "GB"},
                ]
            },
        )

        body = response.json()
        assert response.status_code == 200
        assert (body["total"], body["success"], body["failures"]) == (3, 2, 1)
        assert [item["id"] for item in body["results"]] == ["a", "b", "c"]
        assert body["results"][1] == {"id": "b", "result": None, "error": "upstream down"}

    def test_nearby(self, client: TestClient) -> None:
        response = client.post(
            "/geolocation/search/nearby",
            json={"latitude": 48.8566, "longitude": 2.3522, "radiusKm": 10},
        )

        body = response.json()
        assert response.status_code == 200
        assert body["center"] == {"latitude": 48.8566, "longitude": 2.3522}
        assert (body["radiusKm"], body["limit"], body["offset"], body["total"]) == (10, 20, 0, 3)
        assert [item["id"] for item in body["results"]] == ["near", "far"]
        assert body["results"][0]["distanceKm"] <= body["results"][1]["distanceKm"]

    def test_cache_stats(self, client: TestClient) -> None:
        client.post("/geolocation/geocode", json={"address": "Paris"})
        client.post("/geolocation/geocode", json={"address": "paris "})

        body = client.get("/geolocation/cache/stats").json()
        assert body == {"hitCount": 1, "missCount": 1, "totalRequests": 2, "hitRatePercent": 50.0}


class TestSearchAPI:
    """/search"""

    @pytest.mark.usefixtures("indexed")
    def test_get_search_defaults_to_listed(self, client: TestClient) -> None:
        body = client.get("/search", params={"city": "Paris"}).json()

        assert body["total"] == 3
        assert "draft" not in [p["id"] for p in body["properties"]]
        assert body["properties"][0]["title"] == "Appartement p100"

    @pytest.mark.usefixtures("indexed")
    def test_get_search_with_explicit_status_and_sort(self, client: TestClient) -> None:
        body = client.get("/search", params={"status": "draft"}).json()
        assert [p["id"] for p in body["properties"]] == ["draft"]

        body = client.get("/search", params={"sort": "price:desc"}).json()
        assert [p["price"] for p in body["properties"]] == [300000, 200000, 100000]

    @pytest.mark.usefixtures("indexed")
    def test_post_search_with_language(self, client: TestClient) -> None:
        response = client.post(
            "/search",
            json={
                "q": "",
                "filters": {"minPrice": 150000},
                "options": {"sort": ["price:desc"], "limit": 1},
            },
            headers={"Accept-Language": "en-GB,en;q=0.9"},
        )

        body = response.json()
        assert response.status_code == 200
        assert body["total"] == 2
        assert body["limit"] == 1
        assert body["properties"][0]["title"] == "Apartment p300"
        assert "processingTimeMs" in body

    def test_partial_geo_filter_is_rejected(self, client: TestClient) -> None:
        response = client.get("/search", params={"latitude": 48.85})
        assert response.status_code == 400

    def test_invalid_status_is_rejected(self, client: TestClient) -> None:
        response = client.get("/search", params={"status": "sold"})
        assert response.status_code == 400

    def test_partial_bbox_is_rejected(self, client: TestClient) -> None:
        response = client.get("/search", params={"minLat": 48, "maxLat": 49})
        assert response.status_code == 400

    def test_index_requires_property(self, client: TestClient) -> None:
        response = client.post("/search/index", json={})
        assert response.status_code == 400

    @pytest.mark.usefixtures("indexed")
    def test_delete_from_index(self, client: TestClient) -> None:
        response = client.delete("/search/index/p100")

        assert response.json() == {"success": True, "propertyId": "p100"}
        assert client.get("/search").json()["total"] == 2

    def test_suggestions_require_q(self, client: TestClient) -> None:
        response = client.get("/search/suggestions")
        assert response.status_code == 400

    @pytest.mark.usefixtures("indexed")
    def test_suggestions(self, client: TestClient) -> None:
        body = client.get("/search/suggestions", params={"q": "appartement", "language": "en"}).json()

        assert len(body) == 3
        assert body[0].keys() == {"id", "title", "city"}
        assert body[0]["title"].startswith("Apartment")

    @pytest.mark.usefixtures("indexed")
    def test_facets(self, client: TestClient) -> None:
        body = client.get("/search/facets", params={"minPrice": 150000}).json()

        assert body["countries"] == [{"value": "France", "count": 2}]
        assert body["priceRange"] == {"min": 200000, "max": 300000}

    @pytest.mark.usefixtures("indexed")
    def test_clusters(self, client: TestClient) -> None:
        body = client.get("/search/clusters", params={"zoom": 12}).json()

        assert len(body) == 1
        assert body[0]["count"] == 3
        assert {p["id"] for p in body[0]["properties"]} == {"p100", "p200", "p300"}
        assert body[0]["properties"][0]["title"].startswith("Appartement")

    def test_search_health(self, client: TestClient, meili_client: FakeMeilisearchClient) -> None:
        assert client.get("/search/health").json() == {"status": "ok", "meilisearch": "connected"}

    def test_index_failure_is_retryable(
        self, client: TestClient, meili_client: FakeMeilisearchClient
    ) -> None:
        meili_client.index("properties").error = MeilisearchError("connection refused")

        response = client.get("/search", params={"q": "paris"})

        assert response.status_code == 503
        assert response.json()["retryable"] is True
