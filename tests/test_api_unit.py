import pytest
from fastapi.testclient import TestClient

from backend.app.main import app
from backend.app.sessions import SessionRegistry


@pytest.fixture
def client():
    app.state.sessions = SessionRegistry(max_sessions=3)
    yield TestClient(app)
    app.state.sessions.close_all()


def _open(client, equation_id="lin_005") -> dict:
    resp = client.post("/api/sessions", json={"equation_id": equation_id})
    assert resp.status_code == 200
    return resp.json()


# ── Catalog ─────────────────────────────────────────────────────────────

def test_list_equations(client) -> None:
    resp = client.get("/api/equations")
    assert resp.status_code == 200
    data = resp.json()
    assert len(data) == 14
    assert {"id", "name", "equation", "difficulty", "topic", "total_steps"} <= set(data[0])


def test_list_equations_filters(client) -> None:
    data = client.get("/api/equations", params={"difficulty": "advanced"}).json()
    assert data and all(eq["difficulty"] == "advanced" for eq in data)

    data = client.get("/api/equations", params={"topic": "systems_of_equations"}).json()
    assert [eq["id"] for eq in data] == ["sys_001"]

    resp = client.get("/api/equations", params={"difficulty": "expert"})
    assert resp.status_code == 400


def test_get_equation(client) -> None:
    data = client.get("/api/equations/lin_005").json()
    assert data["equation"] == "2x + 5 = 13"
    assert len(data["steps"]) == 5
    assert client.get("/api/equations/nope").status_code == 404


# ── Sessions ────────────────────────────────────────────────────────────

def test_session_walkthrough(client) -> None:
    data = _open(client)
    sid = data["session_id"]
    assert data["state"] == "in_progress"
    assert data["current_step"]["step"] == 1
    assert data["messages"][0]["level"] == "success"

    client.post(f"/api/sessions/{sid}/advance")
    client.post(f"/api/sessions/{sid}/advance")
    data = client.post(f"/api/sessions/{sid}/hint").json()
    assert data["hint"]["action_hint"] == "Try dividing both sides by 2."
    assert data["stats"]["hints_used"] == 1

    for _ in range(3):
        data = client.post(f"/api/sessions/{sid}/advance").json()
    assert data["state"] == "completed"
    assert data["current_step"] is None
    assert data["stats"]["progress"] == 1.0
    assert any("Congratulations" in m["message"] for m in data["messages"])


def test_tick_and_reset(client) -> None:
    sid = _open(client)["session_id"]
    data = client.post(f"/api/sessions/{sid}/tick", json={"elapsed_ms": 1500}).json()
    assert data["stats"]["time_spent_ms"] == 1500

    resp = client.post(f"/api/sessions/{sid}/tick", json={"elapsed_ms": -1})
    assert resp.status_code == 422

    data = client.post(f"/api/sessions/{sid}/reset").json()
    assert data["state"] == "idle"
    assert data["stats"] is None


def test_unknown_session_and_equation(client) -> None:
    assert client.get("/api/sessions/nope").status_code == 404
    assert client.post("/api/sessions/nope/advance").status_code == 404
    assert client.delete("/api/sessions/nope").status_code == 404
    resp = client.post("/api/sessions", json={"equation_id": "zzz"})
    assert resp.status_code == 404


def test_close_session(client) -> None:
    sid = _open(client)["session_id"]
    assert client.delete(f"/api/sessions/{sid}").json() == {"closed": sid}
    assert client.get(f"/api/sessions/{sid}").status_code == 404


def test_registry_evicts_oldest(client) -> None:
    ids = [_open(client)["session_id"] for _ in range(4)]
    assert len(app.state.sessions) == 3
    assert client.get(f"/api/sessions/{ids[0]}").status_code == 404
    assert client.get(f"/api/sessions/{ids[-1]}").status_code == 200


# ── Graph synthesis ─────────────────────────────────────────────────────

def _graph_payload() -> dict:
    return {
        "nodes": [
            {"id": "a", "type": "variable", "variable": "x"},
            {"id": "b", "type": "variable", "variable": "x"},
            {"id": "m", "type": "multiply"},
            {"id": "o", "type": "output"},
        ],
        "connections": [
            {"source": "a-out", "target": "m-in1"},
            {"source": "b-out", "target": "m-in2"},
            {"source": "m-out", "target": "o-in"},
        ],
    }


def test_synthesize_graph(client) -> None:
    data = client.post("/api/graph/synthesize", json=_graph_payload()).json()
    assert data == {
        "expression": "(x * x)",
        "complete": True,
        "degraded_nodes": [],
        "simplified": "x^2",
    }


def test_synthesize_incomplete_graph(client) -> None:
    payload = _graph_payload()
    payload["connections"] = payload["connections"][1:]
    data = client.post("/api/graph/synthesize", json=payload).json()
    assert data["expression"] == "×"
    assert data["complete"] is False
    assert data["degraded_nodes"] == ["m"]
    assert data["simplified"] is None


@pytest.mark.parametrize("payload", [
    {"nodes": [{"id": "a", "type": "sine"}]},
    {"nodes": [{"id": "a"}]},
    {"nodes": [{"id": "a", "type": "number"}, {"id": "o", "type": "output"}],
     "connections": [{"source": "o-in", "target": "a-out"}]},
])
def test_synthesize_rejects_bad_graphs(client, payload) -> None:
    resp = client.post("/api/graph/synthesize", json=payload)
    assert resp.status_code == 400


def test_synthesize_cycle_is_rejected(client) -> None:
    payload = {
        "nodes": [
            {"id": "p", "type": "add"}, {"id": "q", "type": "add"},
            {"id": "one", "type": "number", "value": 1},
            {"id": "o", "type": "output"},
        ],
        "connections": [
            {"source": "p-out", "target": "q-in1"},
            {"source": "q-out", "target": "p-in1"},
            {"source": "one-out", "target": "p-in2"},
            {"source": "one-out", "target": "q-in2"},
            {"source": "q-out", "target": "o-in"},
        ],
    }
    resp = client.post("/api/graph/synthesize", json=payload)
    assert resp.status_code == 400
    assert "cycle" in resp.json()["detail"]


def _tower_payload() -> dict:
    return {
        "nodes": [
            {"id": "a", "type": "number", "value": 10},
            {"id": "b", "type": "number", "value": 10},
            {"id": "c", "type": "number", "value": 10},
            {"id": "inner", "type": "power"},
            {"id": "outer", "type": "power"},
            {"id": "o", "type": "output"},
        ],
        "connections": [
            {"source": "b-out", "target": "inner-in1"},
            {"source": "c-out", "target": "inner-in2"},
            {"source": "a-out", "target": "outer-in1"},
            {"source": "inner-out", "target": "outer-in2"},
            {"source": "outer-out", "target": "o-in"},
        ],
    }


def test_synthesize_huge_power_skips_simplification(client) -> None:
    resp = client.post("/api/graph/synthesize", json=_tower_payload())
    assert resp.status_code == 200
    data = resp.json()
    assert data["expression"] == "(10 ^ (10 ^ 10))"
    assert data["complete"] is True
    assert data["simplified"] is None


def test_synthesize_rejects_conflicting_constraints(client) -> None:
    payload = _graph_payload()
    payload["constraints"] = [
        {"target": "a", "type": "sign", "sign": "positive"},
        {"target": "a", "type": "sign", "sign": "negative"},
    ]
    resp = client.post("/api/graph/synthesize", json=payload)
    assert resp.status_code == 400
    assert "opposite_signs" in resp.json()["detail"]
