from datetime import date, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.storage import seed
from main import create_app

TOURIST = {"X-User-Id": seed.TOURIST_ID}
HOST = {"X-User-Id": seed.HOST_USER_ID}
ADMIN = {"X-User-Id": seed.ADMIN_ID}


@pytest.fixture
def client(settings, repository):
    return TestClient(create_app(settings=settings, repository=repository))


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["locations"] == 10
    assert body["services"] == 10


def test_location_tree(client):
    resp = client.get("/locations/", params={"type": "PORT"})
    assert {loc["id"] for loc in resp.json()} == {seed.SPLIT_PORT, seed.HVAR_PORT, seed.DUBROVNIK_PORT}

    children = client.get(f"/locations/{seed.HVAR}/children").json()
    assert [loc["id"] for loc in children] == [seed.HVAR_TOWN]
    assert client.get("/locations/loc-atlantis").status_code == 404


def test_service_search(client):
    resp = client.get("/services/", params={"type": "ACCOMMODATION", "sort_by": "price"})
    assert resp.status_code == 200
    assert [s["id"] for s in resp.json()["services"]] == [
        seed.HVAR_HOSTEL,
        seed.HVAR_APARTMENT,
        seed.HVAR_VILLA,
    ]
    assert client.get("/services/", params={"sort_by": "rating"}).status_code == 422


def test_crowd_refresh_and_heatmap(client):
    assert client.get("/crowd/heatmap").json()["points"] == []

    resp = client.post("/crowd/refresh")
    assert resp.json() == {"refreshed": 10}

    heatmap = client.get("/crowd/heatmap", params={"type": "BEACH"}).json()
    assert [p["location_id"] for p in heatmap["points"]] == [seed.ZLATNI_RAT]
    point = heatmap["points"][0]
    assert 0 <= point["crowd_index"] <= 100
    assert point["color"].startswith("#")


def test_plan_and_book_journey(client):
    start = date.today() + timedelta(days=30)
    resp = client.post(
        "/journeys/",
        json={
            "origin_location_id": seed.SPLIT_AIRPORT,
            "dest_location_id": seed.HVAR,
            "start_date": start.isoformat(),
            "end_date": (start + timedelta(days=3)).isoformat(),
            "travelers": 2,
            "auto_plan": True,
        },
        headers=TOURIST,
    )
    assert resp.status_code == 201
    journey = resp.json()
    assert journey["user_id"] == seed.TOURIST_ID
    assert journey["total_price"] == 155

    assert client.get(f"/journeys/{journey['id']}", headers=HOST).status_code == 403

    booked = client.post(f"/journeys/{journey['id']}/book", headers=TOURIST)
    assert booked.status_code == 200
    assert booked.json()["status"] == "CONFIRMED"

    supplier_view = client.get("/bookings/supplier", headers=HOST).json()
    assert supplier_view["total"] == 1
    inbox = client.get("/notifications/", params={"unread_only": True}, headers=HOST).json()
    assert inbox["unread_count"] == 1


def test_booking_payment_flow(client):
    resp = client.post(
        "/bookings/",
        json={
            "service_date": (datetime.now() + timedelta(days=10)).isoformat(),
            "items": [{"service_id": seed.HVAR_APARTMENT, "quantity": 1}],
        },
        headers=TOURIST,
    )
    assert resp.status_code == 201
    booking = resp.json()["bookings"][0]

    intent = client.post("/payments/intents", json={"booking_id": booking["id"]}, headers=TOURIST)
    assert intent.status_code == 201
    paid = client.post(f"/payments/{intent.json()['id']}/confirm", headers=TOURIST)
    assert paid.json()["status"] == "COMPLETED"
    assert client.get(f"/bookings/{booking['id']}", headers=HOST).json()["status"] == "CONFIRMED"


def test_default_user_and_preferences(client):
    prefs = client.get("/recommendations/preferences").json()
    assert prefs["home_location_id"] == seed.SPLIT

    recs = client.get("/recommendations/", params={"limit": 3}).json()
    assert len(recs) == 3
    assert recs[0]["score"] >= recs[-1]["score"]


def test_sensor_and_location_admin_routes(client):
    sensor = {"location_id": seed.ZLATNI_RAT, "sensor_type": "ble", "name": "Kiosk beacon"}
    location = {"name": "Vis", "type": "ISLAND", "latitude": 43.06, "longitude": 16.18}

    assert client.post("/crowd/sensors", json=sensor, headers=TOURIST).status_code == 403
    assert client.post("/crowd/sensors", json=sensor).status_code == 403
    assert client.patch(
        f"/crowd/sensors/{seed.BEACH_SENSOR}", json={"capacity": 1}, headers=HOST
    ).status_code == 403
    assert client.delete(f"/crowd/sensors/{seed.BEACH_SENSOR}", headers=TOURIST).status_code == 403
    assert client.post("/locations/", json=location, headers=TOURIST).status_code == 403

    created = client.post("/crowd/sensors", json=sensor, headers=ADMIN)
    assert created.status_code == 201
    assert client.delete(f"/crowd/sensors/{created.json()['id']}", headers=ADMIN).status_code == 204
    assert client.post("/locations/", json=location, headers=ADMIN).status_code == 201


def test_default_user_comes_from_app_settings(repository):
    settings = Settings(
        random_seed=7, seed_demo_data=False, scheduler_enabled=False, default_user_id=seed.HOST_USER_ID
    )
    client = TestClient(create_app(settings=settings, repository=repository))

    assert client.get("/bookings/supplier").status_code == 200
    assert client.get("/bookings/supplier", headers=TOURIST).status_code == 404
    assert client.get("/health").json()["app"] == settings.app_name


def test_price_alert_routes(client):
    created = client.post(
        "/advanced-booking/price-alerts",
        json={"service_id": seed.HVAR_VILLA, "target_price": 400},
        headers=TOURIST,
    )
    assert created.status_code == 201
    assert created.json()["current_price"] == 450

    listed = client.get("/advanced-booking/price-alerts", headers=TOURIST).json()
    assert [a["id"] for a in listed] == [created.json()["id"]]
    assert client.delete(
        f"/advanced-booking/price-alerts/{created.json()['id']}", headers=HOST
    ).status_code == 403

    start = date.today() + timedelta(days=40)
    search = client.post(
        "/advanced-booking/flexible-search",
        json={
            "service_id": seed.HVAR_VILLA,
            "start_date": start.isoformat(),
            "end_date": (start + timedelta(days=2)).isoformat(),
        },
    )
    assert search.status_code == 200
    assert len(search.json()["results"]) == 3


def test_review_tags(client):
    tags = client.get("/reviews/tags").json()
    assert "Respectful guest" in tags["guest_tags"]
    assert "SUPER_CLEAN" in tags["service_tags"]
    assert client.get(f"/reviews/guests/{seed.TOURIST_ID}/trust-score").status_code == 403
    assert client.get(f"/reviews/guests/{seed.TOURIST_ID}/trust-score", headers=HOST).json()[
        "total_reviews"
    ] == 0
