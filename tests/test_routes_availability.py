"""Tests for configuration and availability API routes."""

from datetime import timedelta

import pytest

from studio_scheduler.services.slots import SlotsRedisStore

from conftest import MONDAY, TUESDAY, upcoming


@pytest.fixture
def provider_id(client):
    resp = client.post("/providers/", json={"name": "Dr. Smith", "timezone": "America/New_York"})
    assert resp.status_code == 201
    return resp.json()["id"]


@pytest.fixture
def template_id(client, provider_id):
    resp = client.post("/daily_templates/", json={
        "provider_id": provider_id,
        "day_of_week": 1,
        "start_time": "09:00",
        "end_time": "17:00",
        "breaks": [{"start_time": "12:00", "end_time": "13:00", "label": "Lunch"}],
    })
    assert resp.status_code == 201
    return resp.json()["id"]


def day_slots(client, provider_id, target_date):
    resp = client.get("/availability/day", params={"provider_id": provider_id, "date": target_date.isoformat()})
    assert resp.status_code == 200
    return resp.json()


class TestProviderRoutes:

    def test_create_generates_slug_and_defaults(self, client):
        resp = client.post("/providers/", json={"name": "Dr. Smith"})
        assert resp.status_code == 201
        data = resp.json()
        assert data["slug"] == "dr-smith"
        assert data["slot_duration_minutes"] == 60
        assert data["booking_horizon_days"] == 90
        assert data["is_active"] is True

    def test_duplicate_name_gets_unique_slug(self, client):
        client.post("/providers/", json={"name": "Dr. Smith"})
        resp = client.post("/providers/", json={"name": "Dr. Smith"})
        assert resp.json()["slug"] == "dr-smith-2"

    def test_unknown_timezone_rejected(self, client):
        resp = client.post("/providers/", json={"name": "X", "timezone": "Nowhere/City"})
        assert resp.status_code == 422

    def test_soft_delete(self, client, provider_id):
        assert client.delete(f"/providers/{provider_id}").status_code == 204
        assert client.get("/providers/").json() == []


class TestTemplateRoutes:

    def test_create_with_breaks(self, client, template_id):
        data = client.get(f"/daily_templates/{template_id}").json()
        assert data["start_time"] == "09:00"
        assert [b["label"] for b in data["breaks"]] == ["Lunch"]

    def test_clock_values_are_normalized(self, client, provider_id):
        resp = client.post("/daily_templates/", json={
            "provider_id": provider_id, "day_of_week": 2, "start_time": "9:00", "end_time": "12:00",
        })
        assert resp.json()["start_time"] == "09:00"

    def test_invalid_clock_value(self, client, provider_id):
        resp = client.post("/daily_templates/", json={
            "provider_id": provider_id, "day_of_week": 2, "start_time": "25:00", "end_time": "26:00",
        })
        assert resp.status_code == 422

    def test_inverted_window(self, client, provider_id):
        resp = client.post("/daily_templates/", json={
            "provider_id": provider_id, "day_of_week": 2, "start_time": "17:00", "end_time": "09:00",
        })
        assert resp.status_code == 422

    def test_second_enabled_template_conflicts(self, client, provider_id, template_id):
        resp = client.post("/daily_templates/", json={
            "provider_id": provider_id, "day_of_week": 1, "start_time": "18:00", "end_time": "20:00",
        })
        assert resp.status_code == 409
        assert resp.json()["error"] == "AmbiguousTemplate"

    def test_second_disabled_template_allowed(self, client, provider_id, template_id):
        resp = client.post("/daily_templates/", json={
            "provider_id": provider_id, "day_of_week": 1, "is_enabled": False,
            "start_time": "18:00", "end_time": "20:00",
        })
        assert resp.status_code == 201

    def test_add_break_via_subresource(self, client, provider_id, template_id):
        resp = client.post(
            f"/daily_templates/{template_id}/breaks/",
            json={"start_time": "15:00", "end_time": "16:00"},
        )
        assert resp.status_code == 201
        slots = day_slots(client, provider_id, MONDAY)["slots"]
        assert "15:00" not in [s["start_time"] for s in slots]

    def test_patch_clearing_one_bound_rejected(self, client, template_id):
        resp = client.patch(f"/daily_templates/{template_id}", json={"start_time": None})
        assert resp.status_code == 422
        assert resp.json()["error"] == "InvalidInterval"
        assert client.get(f"/daily_templates/{template_id}").json()["start_time"] == "09:00"

    def test_patch_clearing_both_bounds_closes_day(self, client, provider_id, template_id):
        resp = client.patch(f"/daily_templates/{template_id}", json={"start_time": None, "end_time": None})
        assert resp.status_code == 200
        data = day_slots(client, provider_id, MONDAY)
        assert data["closed_cause"] == "template_incomplete"
        assert data["slots"] == []

    def test_patch_break_to_null_rejected(self, client, template_id):
        break_id = client.get(f"/daily_templates/{template_id}").json()["breaks"][0]["id"]
        resp = client.patch(f"/daily_templates/{template_id}/breaks/{break_id}", json={"start_time": None})
        assert resp.status_code == 422

    def test_patch_break_one_bound(self, client, provider_id, template_id):
        break_id = client.get(f"/daily_templates/{template_id}").json()["breaks"][0]["id"]
        resp = client.patch(f"/daily_templates/{template_id}/breaks/{break_id}", json={"end_time": "14:00"})
        assert resp.status_code == 200
        assert resp.json()["start_time"] == "12:00"
        slots = day_slots(client, provider_id, MONDAY)["slots"]
        assert [s["start_time"] for s in slots] == ["09:00", "10:00", "11:00", "14:00", "15:00", "16:00"]

    def test_patch_break_inverted(self, client, template_id):
        break_id = client.get(f"/daily_templates/{template_id}").json()["breaks"][0]["id"]
        resp = client.patch(f"/daily_templates/{template_id}/breaks/{break_id}", json={"end_time": "11:00"})
        assert resp.status_code == 422
        assert resp.json()["error"] == "InvalidInterval"


class TestDayAvailability:

    def test_working_day(self, client, provider_id, template_id):
        data = day_slots(client, provider_id, MONDAY)
        assert data["is_closed"] is False
        assert [s["start_time"] for s in data["slots"]] == [
            "09:00", "10:00", "11:00", "13:00", "14:00", "15:00", "16:00",
        ]
        assert data["open_slots_count"] == 7
        assert data["slots"][0]["id"] == "slot-09:00-10:00"
        assert data["slots"][0]["description"] == "09:00 - 10:00"

    def test_day_without_template(self, client, provider_id, template_id):
        data = day_slots(client, provider_id, TUESDAY)
        assert data["is_closed"] is True
        assert data["closed_cause"] == "no_template"
        assert data["slots"] == []

    def test_closed_override(self, client, provider_id, template_id):
        resp = client.post("/date_overrides/", json={
            "provider_id": provider_id, "date": MONDAY.isoformat(), "reason": "Holiday",
        })
        assert resp.status_code == 201
        assert resp.json()["is_closed"] is True

        data = day_slots(client, provider_id, MONDAY)
        assert data["slots"] == []
        assert data["closed_cause"] == "override_closed"
        assert data["reason"] == "Holiday"

    def test_override_with_custom_hours(self, client, provider_id, template_id):
        client.post("/date_overrides/", json={
            "provider_id": provider_id, "date": MONDAY.isoformat(),
            "start_time": "10:00", "end_time": "13:00",
            "breaks": [{"start_time": "11:00", "end_time": "12:00"}],
            "reason": "Short day",
        })
        data = day_slots(client, provider_id, MONDAY)
        assert [s["start_time"] for s in data["slots"]] == ["10:00", "12:00"]
        assert data["slots"][0]["title"] == "Available (Short day)"

    def test_override_patch_clearing_one_bound_rejected(self, client, provider_id, template_id):
        override = client.post("/date_overrides/", json={
            "provider_id": provider_id, "date": MONDAY.isoformat(),
            "start_time": "10:00", "end_time": "13:00",
        }).json()
        resp = client.patch(f"/date_overrides/{override['id']}", json={"start_time": None})
        assert resp.status_code == 422
        assert resp.json()["error"] == "InvalidInterval"
        assert [s["start_time"] for s in day_slots(client, provider_id, MONDAY)["slots"]] == [
            "10:00", "11:00", "12:00",
        ]

    def test_duplicate_override_conflicts(self, client, provider_id):
        payload = {"provider_id": provider_id, "date": MONDAY.isoformat()}
        client.post("/date_overrides/", json=payload)
        assert client.post("/date_overrides/", json=payload).status_code == 409

    def test_booking_marks_slot_occupied(self, client, provider_id, template_id):
        resp = client.post("/bookings/", json={
            "provider_id": provider_id,
            "title": "Consultation",
            "start_at": "2026-10-19T10:00:00",
            "end_at": "2026-10-19T11:00:00",
            "status": "CONFIRMED",
        })
        assert resp.status_code == 201

        data = day_slots(client, provider_id, MONDAY)
        occupied = [s["start_time"] for s in data["slots"] if not s["is_available"]]
        assert occupied == ["10:00"]
        assert data["open_slots_count"] == 6

    def test_cancelled_booking_frees_slot(self, client, provider_id, template_id):
        booking = client.post("/bookings/", json={
            "provider_id": provider_id, "title": "Consultation",
            "start_at": "2026-10-19T10:00:00", "end_at": "2026-10-19T11:00:00",
        }).json()
        client.post(f"/bookings/{booking['id']}/cancel", json={"reason": "client cancelled"})

        assert day_slots(client, provider_id, MONDAY)["open_slots_count"] == 7

    def test_unknown_provider(self, client):
        resp = client.get("/availability/day", params={"provider_id": 999, "date": MONDAY.isoformat()})
        assert resp.status_code == 404
        assert resp.json()["error"] == "ProviderNotFound"


class TestWindowFree:

    def test_window_between_bookings(self, client, provider_id, template_id):
        client.post("/bookings/", json={
            "provider_id": provider_id, "title": "A",
            "start_at": "2026-10-19T10:00:00", "end_at": "2026-10-19T11:00:00",
        })
        resp = client.get("/availability/window-free", params={
            "provider_id": provider_id,
            "start": "2026-10-19T11:30:00",
            "end": "2026-10-19T12:15:00",
        })
        assert resp.status_code == 200
        assert resp.json()["is_free"] is True

    def test_overlapping_window(self, client, provider_id):
        client.post("/bookings/", json={
            "provider_id": provider_id, "title": "A",
            "start_at": "2026-10-19T10:00:00", "end_at": "2026-10-19T11:00:00",
        })
        resp = client.get("/availability/window-free", params={
            "provider_id": provider_id,
            "start": "2026-10-19T10:45:00",
            "end": "2026-10-19T11:15:00",
        })
        assert resp.json()["is_free"] is False

    def test_inverted_window(self, client, provider_id):
        resp = client.get("/availability/window-free", params={
            "provider_id": provider_id,
            "start": "2026-10-19T11:00:00",
            "end": "2026-10-19T10:00:00",
        })
        assert resp.status_code == 422
        assert resp.json()["error"] == "InvalidInterval"


class TestBookingRoutes:

    def test_overlapping_booking_conflicts(self, client, provider_id):
        payload = {
            "provider_id": provider_id, "title": "A",
            "start_at": "2026-10-19T10:00:00", "end_at": "2026-10-19T11:00:00",
        }
        assert client.post("/bookings/", json=payload).status_code == 201
        resp = client.post("/bookings/", json=payload)
        assert resp.status_code == 409
        assert resp.json()["error"] == "BookingConflict"

    def test_confirm_and_cancel(self, client, provider_id):
        booking = client.post("/bookings/", json={
            "provider_id": provider_id, "title": "A",
            "start_at": "2026-10-19T10:00:00", "end_at": "2026-10-19T11:00:00",
        }).json()
        assert booking["status"] == "PENDING"

        confirmed = client.post(f"/bookings/{booking['id']}/confirm")
        assert confirmed.json()["status"] == "CONFIRMED"

        cancelled = client.post(f"/bookings/{booking['id']}/cancel")
        assert cancelled.json()["status"] == "CANCELLED"

        again = client.post(f"/bookings/{booking['id']}/confirm")
        assert again.status_code == 409

    def test_patch_not_allowed(self, client, provider_id):
        assert client.patch("/bookings/1", json={}).status_code == 405

    def test_list_excludes_cancelled(self, client, provider_id):
        booking = client.post("/bookings/", json={
            "provider_id": provider_id, "title": "A",
            "start_at": "2026-10-19T10:00:00", "end_at": "2026-10-19T11:00:00",
        }).json()
        client.post(f"/bookings/{booking['id']}/cancel")
        resp = client.get("/bookings/", params={"provider_id": provider_id, "include_cancelled": False})
        assert resp.json() == []


class TestEffectiveConfigAndPreview:

    def test_effective_config(self, client, provider_id, template_id):
        resp = client.get("/availability/effective-config", params={
            "provider_id": provider_id, "date": MONDAY.isoformat(),
        })
        data = resp.json()
        assert data["source"] == "template"
        assert data["template_id"] == template_id
        assert data["breaks"] == [{"start_time": "12:00", "end_time": "13:00", "label": "Lunch"}]

    def test_preview_template_edit(self, client):
        resp = client.post("/availability/preview", json={
            "kind": "template",
            "date": MONDAY.isoformat(),
            "start_time": "09:00",
            "end_time": "12:00",
            "breaks": [{"start_time": "10:00", "end_time": "10:30"}],
            "slot_duration_minutes": 60,
        })
        assert resp.status_code == 200
        assert [s["start_time"] for s in resp.json()["slots"]] == ["09:00", "11:00"]

    def test_preview_closed_override(self, client):
        resp = client.post("/availability/preview", json={
            "kind": "override", "date": MONDAY.isoformat(), "reason": "Holiday",
        })
        data = resp.json()
        assert data["effective"]["is_closed"] is True
        assert data["effective"]["closed_cause"] == "override_closed"
        assert data["slots"] == []


class TestCacheInvalidation:

    def test_second_read_is_cached(self, client, provider_id, template_id):
        monday = upcoming(1)
        assert day_slots(client, provider_id, monday)["cached"] is False
        assert day_slots(client, provider_id, monday)["cached"] is True

    def test_dates_past_horizon_follow_template_edits(self, client, redis):
        provider_id = client.post("/providers/", json={
            "name": "Dr. Jones", "timezone": "America/New_York", "booking_horizon_days": 30,
        }).json()["id"]
        template_id = client.post("/daily_templates/", json={
            "provider_id": provider_id, "day_of_week": 1, "start_time": "09:00", "end_time": "17:00",
            "breaks": [{"start_time": "12:00", "end_time": "13:00"}],
        }).json()["id"]
        far_monday = upcoming(1) + timedelta(weeks=8)

        data = day_slots(client, provider_id, far_monday)
        assert len(data["slots"]) == 7
        assert data["cached"] is False
        assert not SlotsRedisStore(redis).is_cached(provider_id, far_monday)

        resp = client.patch(f"/daily_templates/{template_id}", json={"end_time": "11:00"})
        assert resp.status_code == 200

        data = day_slots(client, provider_id, far_monday)
        assert [s["start_time"] for s in data["slots"]] == ["09:00", "10:00"]
        assert data["cached"] is False

    def test_past_dates_are_not_cached(self, client, redis, provider_id, template_id):
        last_monday = upcoming(1) - timedelta(weeks=2)
        day_slots(client, provider_id, last_monday)
        assert day_slots(client, provider_id, last_monday)["cached"] is False
        assert not SlotsRedisStore(redis).is_cached(provider_id, last_monday)

    def test_horizon_change_invalidates(self, client, redis, provider_id, template_id):
        monday = upcoming(1)
        day_slots(client, provider_id, monday)
        assert SlotsRedisStore(redis).is_cached(provider_id, monday)

        resp = client.patch(f"/providers/{provider_id}", json={"booking_horizon_days": 120})
        assert resp.status_code == 200
        assert not SlotsRedisStore(redis).is_cached(provider_id, monday)

        # A date only reachable under the longer horizon is cached and
        # invalidated like any other
        far_monday = monday + timedelta(weeks=15)
        day_slots(client, provider_id, far_monday)
        assert SlotsRedisStore(redis).is_cached(provider_id, far_monday)
        client.patch(f"/daily_templates/{template_id}", json={"end_time": "11:00"})
        assert len(day_slots(client, provider_id, far_monday)["slots"]) == 2

    def test_template_edit_invalidates_upcoming_dates(self, client, redis, provider_id, template_id):
        monday = upcoming(1)
        assert len(day_slots(client, provider_id, monday)["slots"]) == 7
        assert SlotsRedisStore(redis).is_cached(provider_id, monday)

        resp = client.patch(f"/daily_templates/{template_id}", json={"end_time": "15:00"})
        assert resp.status_code == 200
        assert not SlotsRedisStore(redis).is_cached(provider_id, monday)

        data = day_slots(client, provider_id, monday)
        assert data["cached"] is False
        assert [s["start_time"] for s in data["slots"]][-1] == "14:00"

    def test_override_invalidates_its_date_only(self, client, redis, provider_id, template_id):
        monday = upcoming(1)
        next_monday = monday + timedelta(days=7)
        day_slots(client, provider_id, monday)
        day_slots(client, provider_id, next_monday)

        client.post("/date_overrides/", json={"provider_id": provider_id, "date": monday.isoformat()})

        store = SlotsRedisStore(redis)
        assert not store.is_cached(provider_id, monday)
        assert store.is_cached(provider_id, next_monday)
        assert day_slots(client, provider_id, monday)["slots"] == []

    def test_override_delete_restores_template(self, client, provider_id, template_id):
        override = client.post("/date_overrides/", json={
            "provider_id": provider_id, "date": MONDAY.isoformat(),
        }).json()
        assert day_slots(client, provider_id, MONDAY)["slots"] == []

        assert client.delete(f"/date_overrides/{override['id']}").status_code == 204
        assert len(day_slots(client, provider_id, MONDAY)["slots"]) == 7

    def test_slot_duration_change_invalidates(self, client, provider_id, template_id):
        day_slots(client, provider_id, MONDAY)
        client.patch(f"/providers/{provider_id}", json={"slot_duration_minutes": 120})
        data = day_slots(client, provider_id, MONDAY)
        assert data["slot_duration_minutes"] == 120
        assert [s["start_time"] for s in data["slots"]] == ["09:00", "13:00", "15:00"]


class TestAdminRoutes:

    def test_calendar_covers_horizon(self, client, provider_id, template_id):
        resp = client.get("/availability/calendar", params={"provider_id": provider_id})
        data = resp.json()
        assert len(data["days"]) == 91
        assert data["horizon_days"] == 90
        mondays = [d for d in data["days"] if d["has_slots"]]
        assert all(d["open_slots_count"] == 7 for d in mondays)

    def test_regenerate_template(self, client, provider_id, template_id):
        resp = client.post("/availability/regenerate", json={"template_id": template_id})
        data = resp.json()
        assert data["provider_id"] == provider_id
        assert data["total_slots"] == 7 * len(data["dates"])

    def test_regenerate_unknown_template(self, client):
        resp = client.post("/availability/regenerate", json={"template_id": 999})
        assert resp.status_code == 404

    def test_grid_and_invalidate(self, client, redis, provider_id, template_id):
        monday = upcoming(1)
        params = {"provider_id": provider_id, "date": monday.isoformat()}
        grid = client.get("/availability/grid", params=params)
        assert grid.json()["total_slots"] == 7
        assert grid.json()["cached"] is False
        assert client.get("/availability/grid", params=params).json()["cached"] is True

        resp = client.post("/availability/invalidate", json={"provider_id": provider_id})
        assert resp.json()["deleted_keys"] == 1
        assert not SlotsRedisStore(redis).is_cached(provider_id, monday)

    def test_grid_past_horizon_is_not_cached(self, client, redis, provider_id, template_id):
        far_monday = upcoming(1) + timedelta(weeks=14)
        params = {"provider_id": provider_id, "date": far_monday.isoformat()}
        for force_recalc in (False, True):
            grid = client.get("/availability/grid", params={**params, "force_recalc": force_recalc})
            assert grid.json()["total_slots"] == 7
            assert grid.json()["cached"] is False
        assert not SlotsRedisStore(redis).is_cached(provider_id, far_monday)

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}
