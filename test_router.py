from geolocator.dependencies.geoip import get_location_service
from geolocator.exceptions.lookup import DatabaseUnavailableError, InvalidAddressError, LookupFailedError
from geolocator.models.location import Location, format_line
from main import app

from fastapi.testclient import TestClient
import pytest


class StubService:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.database_path = "GeoLite2-City.mmdb"
        self.loaded = error is None

    def lookup(self, ip_text: str) -> str:
        if self.error is not None:
            raise self.error
        if ip_text == "bogus":
            raise InvalidAddressError(ip_text)
        location = Location(city_names={"en": "London"}, country_iso="GB", subdivisions=["ENG"])
        return format_line(ip_text, location)


@pytest.fixture
def client_for():
    def make(service: StubService) -> TestClient:
        app.dependency_overrides[get_location_service] = lambda: service
        return TestClient(app)

    yield make
    app.dependency_overrides.clear()


def test_lookup_returns_plain_line(client_for):
    client = client_for(StubService())
    response = client.post("/lookup", json={"source-ip": "81.2.69.160"})
    assert response.status_code == 200
    assert response.text == "81.2.69.160,London,GB-ENG"
    assert response.headers["content-type"].startswith("text/plain")


def test_invalid_address_is_bad_request(client_for):
    client = client_for(StubService())
    response = client.post("/lookup", json={"source-ip": "bogus"})
    assert response.status_code == 400
    assert "bogus" in response.json()["error"]


def test_missing_source_ip_is_rejected(client_for):
    client = client_for(StubService())
    response = client.post("/lookup", json={"ip": "81.2.69.160"})
    assert response.status_code == 422


def test_unprovisioned_database_is_service_unavailable(client_for):
    client = client_for(StubService(DatabaseUnavailableError("GeoLite2-City.mmdb", "No such file")))
    response = client.post("/lookup", json={"source-ip": "81.2.69.160"})
    assert response.status_code == 503


def test_query_failure_is_internal_error(client_for):
    client = client_for(StubService(LookupFailedError("81.2.69.160", "corrupt")))
    response = client.post("/lookup", json={"source-ip": "81.2.69.160"})
    assert response.status_code == 500


def test_health_reports_database_state(client_for):
    client = client_for(StubService())
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database_path": "GeoLite2-City.mmdb", "database_loaded": True}
