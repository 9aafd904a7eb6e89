"""Tests for the /api/wizard/sessions endpoints."""

from datetime import date, timedelta

from quickbook.dependencies import get_current_player
from quickbook.main import app
from tests.mocks.models import MOCK_PLAYER_2

SESSIONS = "/api/wizard/sessions"


def _future_date() -> str:
    return (date.today() + timedelta(days=7)).isoformat()


def _open(client, **body) -> dict:
    resp = client.post(SESSIONS, json=body or None)
    assert resp.status_code == 201
    return resp.json()


class TestOpenWizard:
    def test_open_without_preselection(self, client, wizard_registry):
        data = _open(client)

        assert data["current_step"] == "club_selection"
        assert [s["id"] for s in data["steps"]] == [
            "club_selection",
            "date_time",
            "court_selection",
            "pre_payment_confirmation",
            "payment",
            "final_confirmation",
        ]
        assert data["can_advance"] is False
        assert [c["id"] for c in data["draft"]["available_clubs"]] == ["padel-arena", "tennis-hub"]
        assert len(wizard_registry) == 1

    def test_open_with_club_and_date_skips_to_courts(self, client):
        data = _open(client, club_id="padel-arena", date_time={
            "date": _future_date(),
            "start_time": "10:00",
            "duration_minutes": 60,
        })

        assert data["current_step"] == "court_selection"
        assert data["draft"]["end_time"] == "11:00"
        assert [c["id"] for c in data["draft"]["available_courts"]] == ["court-1", "court-2"]

    def test_open_rejects_malformed_start_time(self, client):
        resp = client.post(SESSIONS, json={
            "club_id": "padel-arena",
            "date_time": {"date": _future_date(), "start_time": "10am", "duration_minutes": 60},
        })
        assert resp.status_code == 422
        assert resp.json()["error"] == "validation_error"


class TestWizardFlow:
    def test_books_through_every_step(self, client, wizard_registry):
        sid = _open(client)["session_id"]
        url = f"{SESSIONS}/{sid}"

        assert client.post(f"{url}/club", json={"club_id": "padel-arena"}).status_code == 200
        data = client.post(f"{url}/advance").json()
        assert data["current_step"] == "date_time"

        data = client.put(f"{url}/date-time", json={
            "date": _future_date(),
            "start_time": "18:00",
            "duration_minutes": 90,
        }).json()
        assert data["can_advance"] is True
        assert client.post(f"{url}/advance").json()["current_step"] == "court_selection"

        client.post(f"{url}/court", json={"court_id": "court-2"})
        assert client.post(f"{url}/advance").json()["current_step"] == "pre_payment_confirmation"
        data = client.post(f"{url}/advance").json()
        assert data["current_step"] == "payment"
        assert data["draft"]["reservation"]["state"] == "held"
        assert data["draft"]["total_price_cents"] == 5000

        client.post(f"{url}/payment-provider", json={"provider_id": "paysera"})
        data = client.post(f"{url}/submit").json()

        assert data["current_step"] == "final_confirmation"
        assert data["draft"]["booking_id"] == "booking-1"
        assert data["draft"]["reservation"]["state"] == "consumed"

        backend = wizard_registry.backends[0]
        assert backend.args("create_booking")[0][3:] == ("paysera", "res-1")

    def test_retreat_from_court_selection(self, client):
        sid = _open(client)["session_id"]
        url = f"{SESSIONS}/{sid}"
        client.post(f"{url}/club", json={"club_id": "padel-arena"})
        client.post(f"{url}/advance")

        data = client.post(f"{url}/retreat").json()
        assert data["current_step"] == "club_selection"
        assert data["draft"]["club_id"] == "padel-arena"

    def test_advance_without_selection_is_noop(self, client):
        sid = _open(client)["session_id"]

        resp = client.post(f"{SESSIONS}/{sid}/advance")
        assert resp.status_code == 200
        assert resp.json()["current_step"] == "club_selection"

    def test_past_date_rejected(self, client):
        sid = _open(client, club_id="padel-arena")["session_id"]

        resp = client.put(f"{SESSIONS}/{sid}/date-time", json={
            "date": (date.today() - timedelta(days=3)).isoformat(),
            "start_time": "10:00",
            "duration_minutes": 60,
        })
        assert resp.status_code == 422
        body = resp.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "date"

    def test_submit_before_payment_conflicts(self, client):
        sid = _open(client)["session_id"]

        resp = client.post(f"{SESSIONS}/{sid}/submit")
        assert resp.status_code == 409
        assert resp.json()["error"] == "invalid_state"

    def test_unknown_court_rejected(self, client):
        sid = _open(client, club_id="padel-arena", date_time={
            "date": _future_date(),
            "start_time": "10:00",
            "duration_minutes": 60,
        })["session_id"]

        resp = client.post(f"{SESSIONS}/{sid}/court", json={"court_id": "court-99"})
        assert resp.status_code == 422


class TestSessionAccess:
    def test_unknown_session(self, client):
        resp = client.get(f"{SESSIONS}/does-not-exist")
        assert resp.status_code == 404
        assert resp.json()["details"]["session_id"] == "does-not-exist"

    def test_other_players_session_forbidden(self, client):
        sid = _open(client)["session_id"]

        async def _other_player():
            return MOCK_PLAYER_2

        app.dependency_overrides[get_current_player] = _other_player

        resp = client.get(f"{SESSIONS}/{sid}")
        assert resp.status_code == 403
        assert resp.json()["error"] == "forbidden"

    def test_unauthenticated(self, unauthed_client):
        resp = unauthed_client.post(SESSIONS)
        assert resp.status_code == 401

    def test_close_discards_session(self, client, wizard_registry):
        sid = _open(client)["session_id"]

        resp = client.delete(f"{SESSIONS}/{sid}")
        assert resp.status_code == 200
        assert resp.json() == {"completion": None}
        assert len(wizard_registry) == 0
        assert wizard_registry.backends[0].closed
        assert client.get(f"{SESSIONS}/{sid}").status_code == 404

    def test_close_after_booking_returns_completion(self, client):
        day = _future_date()
        sid = _open(client, club_id="padel-arena", date_time={
            "date": day,
            "start_time": "10:00",
            "duration_minutes": 60,
        })["session_id"]
        url = f"{SESSIONS}/{sid}"
        client.post(f"{url}/court", json={"court_id": "court-1"})
        client.post(f"{url}/advance")
        client.post(f"{url}/advance")
        client.post(f"{url}/payment-provider", json={"provider_id": "card"})
        client.post(f"{url}/submit")

        resp = client.delete(url)
        assert resp.json()["completion"] == {
            "booking_id": "booking-1",
            "court_id": "court-1",
            "date": day,
            "start_time": "10:00",
            "end_time": "11:00",
        }
