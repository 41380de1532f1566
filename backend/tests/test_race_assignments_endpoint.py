"""Race assignment HTTP endpoints: status code mapping and response shape."""
from sqlmodel import create_engine

from flyball.main import app
from flyball.services.assignment_engine import AssignmentEngine, get_assignment_engine
from flyball.services.assignment_store import StorageUnavailable
from tests.conftest import RecordingNotifier, build_engine, seed_tournament


def _assign(client, race, ring, status, override=False, tournament_id="T1"):
    return client.post(
        f"/api/tournaments/{tournament_id}/race-assignments",
        json={
            "race_number": race,
            "ring_number": ring,
            "status": status,
            "allow_conflict_override": override,
        },
    )


def test_get_before_any_assignment(client, session):
    seed_tournament(session)
    resp = client.get("/api/tournaments/T1/race-assignments")
    assert resp.status_code == 404


def test_assign_and_read_back(client, session):
    seed_tournament(session)

    resp = _assign(client, 1, 1, "Current")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    ring1 = body["assignments"]["rings"][0]
    assert ring1["ring_number"] == 1
    assert ring1["color"] == "Red"
    assert ring1["current"] == {"race_number": 1, "ring_number": 1, "status": "Current"}
    assert ring1["on_deck"] is None

    resp = client.get("/api/tournaments/T1/race-assignments")
    assert resp.status_code == 200
    assert resp.json()["rings"][0]["current"]["race_number"] == 1


def test_conflict_returns_409_with_unchanged_assignments(client, session):
    seed_tournament(session)
    _assign(client, 1, 1, "Current")

    resp = _assign(client, 1, 2, "Current")

    assert resp.status_code == 409
    body = resp.json()
    assert body["success"] is False
    assert body["conflicts"] == ["Race 1 is already current in ring(s): 1"]
    rings = body["assignments"]["rings"]
    assert rings[0]["current"]["race_number"] == 1
    assert rings[1]["current"] is None


def test_override_succeeds(client, session):
    seed_tournament(session)
    _assign(client, 1, 1, "Current")

    resp = _assign(client, 1, 2, "Current", override=True)

    assert resp.status_code == 200
    rings = resp.json()["assignments"]["rings"]
    assert rings[0]["current"] is None
    assert rings[1]["current"]["race_number"] == 1


def test_not_found_family_maps_to_404(client, session):
    seed_tournament(session)
    assert _assign(client, 1, 1, "Current", tournament_id="nope").json()["detail"] == "Tournament not found"
    resp = _assign(client, 99, 1, "Current")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Race 99 not found in tournament"
    resp = _assign(client, 1, 9, "Current")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Ring 9 not configured for this tournament"


def test_invalid_status_rejected(client, session):
    seed_tournament(session)
    assert _assign(client, 1, 1, "Idle").status_code == 422


def test_clear_ring(client, session):
    seed_tournament(session)
    _assign(client, 1, 1, "Current")
    _assign(client, 2, 1, "OnDeck")
    _assign(client, 3, 2, "InTheHole")

    resp = client.post("/api/tournaments/T1/rings/1/clear")

    assert resp.status_code == 200
    rings = resp.json()["assignments"]["rings"]
    assert rings[0]["current"] is None and rings[0]["on_deck"] is None and rings[0]["in_the_hole"] is None
    assert rings[1]["in_the_hole"]["race_number"] == 3


def test_clear_ring_failures(client, session):
    seed_tournament(session)
    resp = client.post("/api/tournaments/T1/rings/1/clear")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "No assignments found for tournament"

    _assign(client, 1, 1, "Current")
    resp = client.post("/api/tournaments/T1/rings/7/clear")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Ring 7 not found"


class _UnavailableEngine(AssignmentEngine):
    def __init__(self):
        pass

    def get_assignments(self, tournament_id):
        raise StorageUnavailable("get", tournament_id, RuntimeError("db down"))

    def assign_race(self, tournament_id, *args, **kwargs):
        raise StorageUnavailable("get_or_create", tournament_id, RuntimeError("db down"))

    def clear_ring(self, tournament_id, ring_number):
        raise StorageUnavailable("save", tournament_id, RuntimeError("db down"))


def test_storage_unavailable_maps_to_503(client, session):
    app.dependency_overrides[get_assignment_engine] = lambda: _UnavailableEngine()

    assert client.get("/api/tournaments/T1/race-assignments").status_code == 503
    assert _assign(client, 1, 1, "Current").status_code == 503
    assert client.post("/api/tournaments/T1/rings/1/clear").status_code == 503


def test_unreachable_database_maps_to_503(client, session, tmp_path):
    broken = create_engine(f"sqlite:///{tmp_path / 'gone' / 'x.db'}")
    app.dependency_overrides[get_assignment_engine] = lambda: build_engine(broken, RecordingNotifier())

    assert client.get("/api/tournaments/T1/race-assignments").status_code == 503
    resp = _assign(client, 1, 1, "Current")
    assert resp.status_code == 503
    assert resp.json()["detail"] == "Assignment storage unavailable"
    assert client.post("/api/tournaments/T1/rings/1/clear").status_code == 503
