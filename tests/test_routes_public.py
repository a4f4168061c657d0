"""Tests for the public self-service booking link."""

from datetime import timedelta

import pytest

from studio_scheduler.services.slots.timeutil import get_zone, local_today

from conftest import upcoming


@pytest.fixture
def provider_id(client):
    resp = client.post("/providers/", json={"name": "Studio One", "timezone": "America/New_York"})
    return resp.json()["id"]


@pytest.fixture
def open_date(client, provider_id):
    """An upcoming Wednesday with working hours 09:00-12:00."""
    resp = client.post("/daily_templates/", json={
        "provider_id": provider_id,
        "day_of_week": 3,
        "start_time": "09:00",
        "end_time": "12:00",
    })
    assert resp.status_code == 201
    return upcoming(3)


def free_slots(client, target_date):
    resp = client.get("/public/studio-one/availability", params={"date": target_date.isoformat()})
    assert resp.status_code == 200
    return [s["start_time"] for s in resp.json()["slots"]]


class TestPublicAvailability:

    def test_lists_free_slots(self, client, open_date):
        assert free_slots(client, open_date) == ["09:00", "10:00", "11:00"]

    def test_occupied_slots_are_hidden(self, client, provider_id, open_date):
        client.post("/bookings/", json={
            "provider_id": provider_id,
            "title": "Walk-in",
            "start_at": f"{open_date.isoformat()}T10:00:00",
            "end_at": f"{open_date.isoformat()}T11:00:00",
        })
        assert free_slots(client, open_date) == ["09:00", "11:00"]

    def test_past_date_rejected(self, client, open_date):
        yesterday = local_today(get_zone("America/New_York")) - timedelta(days=1)
        resp = client.get("/public/studio-one/availability", params={"date": yesterday.isoformat()})
        assert resp.status_code == 400

    def test_beyond_horizon_rejected(self, client, open_date):
        far = local_today(get_zone("America/New_York")) + timedelta(days=91)
        resp = client.get("/public/studio-one/availability", params={"date": far.isoformat()})
        assert resp.status_code == 400

    def test_unknown_slug(self, client):
        resp = client.get("/public/nobody/availability", params={"date": "2026-10-19"})
        assert resp.status_code == 404

    def test_inactive_provider_hidden(self, client, provider_id, open_date):
        client.delete(f"/providers/{provider_id}")
        resp = client.get("/public/studio-one/availability", params={"date": open_date.isoformat()})
        assert resp.status_code == 404


class TestPublicBooking:

    def test_books_one_slot_as_pending(self, client, open_date):
        resp = client.post("/public/studio-one/bookings", json={
            "date": open_date.isoformat(),
            "start_time": "9:00",
            "client_name": "Ann",
            "client_email": "ann@example.com",
        })
        assert resp.status_code == 201
        data = resp.json()
        assert data["status"] == "PENDING"
        assert data["client_name"] == "Ann"
        assert free_slots(client, open_date) == ["10:00", "11:00"]

    def test_same_slot_twice_conflicts(self, client, open_date):
        payload = {"date": open_date.isoformat(), "start_time": "10:00", "client_name": "Ann"}
        assert client.post("/public/studio-one/bookings", json=payload).status_code == 201
        resp = client.post("/public/studio-one/bookings", json=payload)
        assert resp.status_code == 409

    def test_outside_working_hours(self, client, open_date):
        resp = client.post("/public/studio-one/bookings", json={
            "date": open_date.isoformat(), "start_time": "11:30", "client_name": "Ann",
        })
        assert resp.status_code == 422
        assert resp.json()["error"] == "OutsideWorkingHours"

    def test_closed_day(self, client, provider_id, open_date):
        client.post("/date_overrides/", json={"provider_id": provider_id, "date": open_date.isoformat()})
        resp = client.post("/public/studio-one/bookings", json={
            "date": open_date.isoformat(), "start_time": "09:00", "client_name": "Ann",
        })
        assert resp.status_code == 422
