"""Tests for the REST surface, wired against an in-memory backend."""

import pytest
from fastapi.testclient import TestClient

from player_pulse.config import Settings
from player_pulse.main import create_app
from player_pulse.store.kv import InMemoryKeyValueStore


@pytest.fixture
def client():
    app = create_app(Settings(), kv=InMemoryKeyValueStore())
    with TestClient(app) as c:
        yield c


# ── Health ───────────────────────────────────────────────────────────────────


class TestHealth:
    def test_health_reports_components(self, client: TestClient) -> None:
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["backend"] == "memory"
        assert body["components"]["intervention_engine"] == "operational"


# ── Telemetry ────────────────────────────────────────────────────────────────


class TestTelemetryEndpoints:
    def test_recorded_retries_show_in_indicators(self, client: TestClient) -> None:
        for _ in range(3):
            resp = client.post("/api/sessions/s1/actions", json={"type": "retry"})
            assert resp.status_code == 200
            assert resp.json() == {"recorded": True}
        body = client.get("/api/sessions/s1/indicators/frustration").json()
        assert body["rapid_retries"] == 3

    def test_death_streak_from_combat(self, client: TestClient) -> None:
        for _ in range(2):
            client.post("/api/sessions/s1/combat", json={"result": "death", "healthLost": 100})
        body = client.get("/api/sessions/s1/indicators/frustration").json()
        assert body["death_streak"] == 2

    def test_camel_case_input_accepted(self, client: TestClient) -> None:
        resp = client.post(
            "/api/sessions/s1/inputs",
            json={"type": "movement", "data": {"deltaX": 1, "deltaY": 2}},
        )
        assert resp.status_code == 200

    def test_invalid_combat_result_rejected(self, client: TestClient) -> None:
        resp = client.post("/api/sessions/s1/combat", json={"result": "stalemate"})
        assert resp.status_code == 422

    def test_boredom_indicators_for_empty_session(self, client: TestClient) -> None:
        body = client.get("/api/sessions/nobody/indicators/boredom").json()
        assert body["perfect_streak"] == 0
        assert body["completion_speed"] == 1.0


# ── Interventions ────────────────────────────────────────────────────────────


class TestInterventionEndpoints:
    def test_state_for_new_session(self, client: TestClient) -> None:
        body = client.get("/api/sessions/s1/state").json()
        assert body["frustration_score"] == 0.0
        assert body["interventions"] == {}

    def test_forced_critical_activation(self, client: TestClient) -> None:
        resp = client.post("/api/sessions/s1/interventions", json={"level": "critical"})
        body = resp.json()
        assert body["activated"] is True
        assert body["level"] == "critical"
        assert "hidden" not in body
        types = {i["type"] for i in body["interventions"]}
        assert "checkpoint_creation" in types
        assert "grace_period" not in types

    def test_hidden_effect_is_still_active(self, client: TestClient) -> None:
        client.post("/api/sessions/s1/interventions", json={"level": "critical"})
        body = client.get("/api/sessions/s1/interventions/grace_period").json()
        assert body == {"type": "grace_period", "active": True}

    def test_explicit_score_below_mild_activates_nothing(self, client: TestClient) -> None:
        body = client.post(
            "/api/sessions/s1/interventions", json={"frustration_level": 0.2}
        ).json()
        assert body["activated"] is True
        assert body["level"] == "none"
        assert body["interventions"] == []

    def test_score_out_of_range_rejected(self, client: TestClient) -> None:
        resp = client.post("/api/sessions/s1/interventions", json={"frustration_level": 1.5})
        assert resp.status_code == 422

    def test_unknown_intervention_type(self, client: TestClient) -> None:
        resp = client.get("/api/sessions/s1/interventions/teleport")
        assert resp.status_code == 422

    def test_status_lists_live_effects(self, client: TestClient) -> None:
        client.post("/api/sessions/s1/interventions", json={"frustration_level": 0.4})
        body = client.get("/api/sessions/s1/interventions").json()
        assert set(body) == {"hint_system"}
        assert body["hint_system"]["time_remaining"] is None

    def test_analytics_count_activations(self, client: TestClient) -> None:
        client.post("/api/sessions/s1/interventions", json={"frustration_level": 0.5})
        client.post("/api/sessions/s1/interventions", json={"frustration_level": 0.7})
        body = client.get("/api/sessions/s1/interventions/analytics").json()
        assert body["total_interventions"] == 2
        assert body["average_frustration_level"] == pytest.approx(0.6)
