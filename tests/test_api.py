"""Tests for the MentionWatch HTTP and WebSocket API."""

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.config import APIConfig
from src.notifications import Channel

PREFIX = "/api/v1"


@pytest.fixture
def client(engine):
    app = create_app(config=APIConfig(), engine=engine)
    with TestClient(app) as c:
        yield c


def _create(client, **overrides):
    body = {
        "type": "mention",
        "priority": "medium",
        "title": "Brand mentioned",
        "message": "Mentioned in a Perplexity answer",
        "channels": ["inapp", "email"],
    }
    body.update(overrides)
    response = client.post(f"{PREFIX}/notifications", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:
    """Health and middleware."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["components"]["notifications"] == 0

    def test_security_and_tracing_headers(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Request-ID"] == "req-42"


class TestNotificationRoutes:
    """Feed endpoints."""

    def test_create_and_list(self, client, adapters):
        created = _create(client)
        assert created["read"] is False
        assert created["channels"] == ["email", "inapp"]
        assert adapters[Channel.EMAIL].calls == 1

        data = client.get(f"{PREFIX}/notifications").json()
        assert data["total"] == 1
        assert data["unread"] == 1
        assert data["notifications"][0]["id"] == created["id"]

    def test_filter_by_type(self, client):
        _create(client)
        _create(client, type="report", title="Weekly report")
        data = client.get(f"{PREFIX}/notifications", params={"type": "report"}).json()
        assert [n["title"] for n in data["notifications"]] == ["Weekly report"]

    @pytest.mark.parametrize("since", ["2024-03-01T11:00:00", "2024-03-01T20:00:00+09:00"])
    def test_since_with_and_without_offset(self, client, since):
        _create(client)
        response = client.get(f"{PREFIX}/notifications", params={"since": since})
        assert response.status_code == 200
        assert response.json()["total"] == 1

    def test_until_before_feed_is_empty(self, client):
        _create(client)
        data = client.get(f"{PREFIX}/notifications", params={"until": "2024-03-01T11:00:00"}).json()
        assert data["notifications"] == []

    def test_total_counts_matches_beyond_limit(self, client):
        for i in range(3):
            _create(client, title=f"Mention {i}")
        data = client.get(f"{PREFIX}/notifications", params={"limit": 2}).json()
        assert len(data["notifications"]) == 2
        assert data["total"] == 3

    def test_blank_title_is_422(self, client):
        response = client.post(f"{PREFIX}/notifications", json={"title": "", "message": "x"})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "REQUEST_VALIDATION_ERROR"

    def test_whitespace_title_is_400(self, client):
        response = client.post(f"{PREFIX}/notifications", json={"title": "   ", "message": "x"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_unknown_id_is_404(self, client):
        response = client.get(f"{PREFIX}/notifications/missing")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOTIFICATION_NOT_FOUND"

    def test_mark_read(self, client):
        created = _create(client)
        first = client.post(f"{PREFIX}/notifications/{created['id']}/read").json()
        second = client.post(f"{PREFIX}/notifications/{created['id']}/read").json()
        assert (first["changed"], second["changed"]) == (True, False)
        assert client.get(f"{PREFIX}/notifications/{created['id']}").json()["read"] is True

    def test_bulk_read_and_delete(self, client):
        ids = [_create(client)["id"] for _ in range(3)]
        assert client.post(f"{PREFIX}/notifications/read", json={"ids": ids[:2]}).json() == {"count": 2}
        assert client.post(f"{PREFIX}/notifications/read-all").json() == {"count": 1}
        assert client.delete(f"{PREFIX}/notifications/{ids[0]}").json() == {"changed": True}
        assert client.delete(f"{PREFIX}/notifications/{ids[0]}").json() == {"changed": False}
        assert client.delete(f"{PREFIX}/notifications").json() == {"count": 2}

    def test_statistics(self, client):
        ids = [_create(client)["id"] for _ in range(3)]
        client.post(f"{PREFIX}/notifications/{ids[0]}/read")
        stats = client.get(f"{PREFIX}/notifications/statistics").json()
        assert (stats["total"], stats["unread"], stats["read"]) == (3, 2, 1)
        assert stats["by_type"]["mention"] == 3

    def test_timeline(self, client):
        _create(client, priority="high")
        data = client.get(f"{PREFIX}/notifications/statistics/timeline", params={"freq": "h"}).json()
        assert data["freq"] == "h"
        assert data["points"][0]["high"] == 1
        assert data["points"][0]["total"] == 1

    def test_timeline_rejects_unknown_freq(self, client):
        response = client.get(f"{PREFIX}/notifications/statistics/timeline", params={"freq": "Q"})
        assert response.status_code == 422


class TestPreferenceRoutes:
    """Preference endpoints."""

    def test_get_defaults(self, client):
        data = client.get(f"{PREFIX}/preferences").json()
        assert data["channels"] == {"inapp": True, "email": True, "push": False, "slack": False}
        assert data["frequency"] == "realtime"

    def test_patch_merges(self, client):
        data = client.patch(f"{PREFIX}/preferences", json={"channels": {"slack": True}}).json()
        assert data["channels"]["slack"] is True
        assert data["channels"]["email"] is True

    def test_invalid_patch_is_400_and_unchanged(self, client):
        response = client.patch(f"{PREFIX}/preferences", json={"quietHours": {"start": "25:00"}})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert client.get(f"{PREFIX}/preferences").json()["quiet_hours"]["start"] == "22:00"


class TestRuleRoutes:
    """Rule endpoints."""

    def test_create_rule(self, client):
        response = client.post(f"{PREFIX}/rules", json={
            "name": "Mention spike",
            "type": "mention_spike",
            "conditions": [{"type": "mention", "threshold": 3}],
            "channels": ["inapp", "email"],
        })
        assert response.status_code == 201
        rule = response.json()
        assert rule["active"] is True
        assert client.get(f"{PREFIX}/rules/{rule['id']}").json()["name"] == "Mention spike"

    def test_rule_without_conditions_is_400(self, client):
        response = client.post(f"{PREFIX}/rules", json={
            "name": "Empty", "type": "mention_spike", "conditions": [],
        })
        assert response.status_code == 400

    def test_templates(self, client):
        keys = [t["key"] for t in client.get(f"{PREFIX}/rules/templates").json()]
        assert "mention_spike" in keys

    def test_from_template_and_toggle(self, client):
        rule = client.post(f"{PREFIX}/rules/from-template", json={"template": "sentiment_drop"}).json()
        toggled = client.post(f"{PREFIX}/rules/{rule['id']}/toggle", json={}).json()
        assert toggled["active"] is False
        explicit = client.post(f"{PREFIX}/rules/{rule['id']}/toggle", json={"active": True}).json()
        assert explicit["active"] is True
        assert client.delete(f"{PREFIX}/rules/{rule['id']}").json() == {"changed": True}

    def test_unknown_template_is_404(self, client):
        response = client.post(f"{PREFIX}/rules/from-template", json={"template": "nope"})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "TEMPLATE_NOT_FOUND"

    def test_unknown_rule_is_404(self, client):
        assert client.get(f"{PREFIX}/rules/missing").status_code == 404


class TestIngestRoutes:
    """Sample ingestion and tick."""

    def test_ingest_fires_rule(self, client):
        rule = client.post(f"{PREFIX}/rules/from-template", json={"template": "mention_spike"}).json()
        samples = [{"platform": "chatgpt", "brand_mentioned": i < 4} for i in range(5)]
        data = client.post(f"{PREFIX}/samples", json={"samples": samples}).json()
        assert data["fired_rule_ids"] == [rule["id"]]
        assert data["notifications"][0]["type"] == "mention"
        assert data["notifications"][0]["priority"] == "high"

    def test_sentiment_labels_accepted(self, client):
        client.post(f"{PREFIX}/rules/from-template", json={"template": "sentiment_drop"})
        samples = [{"platform": "gemini", "sentiment": "negative"}]
        data = client.post(f"{PREFIX}/samples", json={"samples": samples}).json()
        assert len(data["notifications"]) == 1

    def test_unknown_sentiment_label_is_400(self, client):
        response = client.post(f"{PREFIX}/samples", json={"samples": [{"platform": "x", "sentiment": "angry"}]})
        assert response.status_code == 400

    def test_tick(self, client):
        data = client.post(f"{PREFIX}/tick", json={}).json()
        assert data == {"deliveries": [], "pending": 0}

    def test_tick_with_naive_time_releases_digest(self, client, adapters):
        client.patch(f"{PREFIX}/preferences", json={"frequency": "hourly"})
        _create(client)
        assert adapters[Channel.EMAIL].calls == 0

        response = client.post(f"{PREFIX}/tick", json={"now": "2024-03-01T13:00:00"})
        assert response.status_code == 200
        assert [d["channel"] for d in response.json()["deliveries"]] == ["email"]
        assert adapters[Channel.EMAIL].calls == 1

    @pytest.mark.parametrize("sentiment", [1.5, -2])
    def test_sentiment_out_of_range_is_422(self, client, sentiment):
        response = client.post(f"{PREFIX}/samples", json={"samples": [{"platform": "x", "sentiment": sentiment}]})
        assert response.status_code == 422


class TestFeedWebSocket:
    """Change signals over WebSocket."""

    def test_connected_then_changed(self, client):
        with client.websocket_connect("/ws/notifications") as ws:
            assert ws.receive_json() == {"event": "connected"}
            _create(client)
            assert ws.receive_json() == {"event": "changed"}

    def test_ping(self, client):
        with client.websocket_connect("/ws/notifications") as ws:
            ws.receive_json()
            ws.send_text("ping")
            assert ws.receive_json() == {"event": "pong"}
