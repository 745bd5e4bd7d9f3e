from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import COUPLE, NOW, FakeProvider, rate_payload
from staybridge.main import app
from staybridge.routers.availability import get_booking_service
from staybridge.services.booking_service import BookingService

URL = "/api/hotels/1-SEASIDE"


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider(
        rates={COUPLE: [rate_payload(11, net=100, payments=[("2026-06-21T00:00:00", 100)])]}
    )


@pytest.fixture
def client(provider):
    service = BookingService(provider=provider, tz_offset_hours=lambda _: 3, clock=lambda: NOW)
    app.dependency_overrides[get_booking_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _checkout_body(total: float, rate_id: str = "11-2") -> dict:
    return {
        "check_in": "2026-07-10",
        "check_out": "2026-07-12",
        "selected_rates": [{"rate_id": rate_id, "count": 1}],
        "total_price": total,
    }


def test_health(client) -> None:
    assert client.get("/api/health").json()["status"] == "ok"


def test_availability(client) -> None:
    resp = client.get(f"{URL}/availability", params={"checkin": "2026-07-10", "checkout": "2026-07-12", "adults": 2})
    assert resp.status_code == 200
    body = resp.json()
    assert body["rooms"][0]["rates"][0]["rate_id"] == "11-2"
    assert body["min_price"] == 104.0
    assert body["min_price_per_night"] == 52.0


@pytest.mark.parametrize(
    ("path", "params"),
    [
        ("/api/hotels/SEASIDE/availability", {"checkin": "2026-07-10", "checkout": "2026-07-12", "adults": 2}),
        (f"{URL}/availability", {"checkin": "2026-07-12", "checkout": "2026-07-10", "adults": 2}),
        (f"{URL}/availability", {"checkin": "2026-07-10", "checkout": "2026-07-12", "party": "[{]"}),
    ],
)
def test_availability_validation_errors(client, path, params) -> None:
    assert client.get(path, params=params).status_code == 400


def test_availability_provider_down(client, provider) -> None:
    provider.failing.add(COUPLE)
    resp = client.get(f"{URL}/availability", params={"checkin": "2026-07-10", "checkout": "2026-07-12", "adults": 2})
    assert resp.status_code == 502


def test_checkout_returns_payment_plan(client) -> None:
    resp = client.post(f"{URL}/checkout", json=_checkout_body(104))
    assert resp.status_code == 200
    body = resp.json()
    assert body["total_price"] == 104.0
    assert [i["amount"] for i in body["installments"]] == [31.0, 73.0]
    assert body["partial_payment"]["prepay_amount"] == 31.0


def test_checkout_price_changed(client) -> None:
    resp = client.post(f"{URL}/checkout", json=_checkout_body(99))
    assert resp.status_code == 409
    assert resp.json()["detail"]["reason"] == "price_changed"


def test_checkout_rate_gone(client) -> None:
    resp = client.post(f"{URL}/checkout", json=_checkout_body(104, rate_id="12-2"))
    assert resp.status_code == 409
    assert resp.json()["detail"]["reason"] == "rate_no_longer_available"


def test_checkout_malformed_rate_id(client) -> None:
    assert client.post(f"{URL}/checkout", json=_checkout_body(104, rate_id="11")).status_code == 400


def test_checkout_unreconcilable_schedule(client, provider) -> None:
    provider.rates[COUPLE] = [rate_payload(11, net=100)]
    assert client.post(f"{URL}/checkout", json=_checkout_body(104)).status_code == 500
