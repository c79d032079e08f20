"""
Integration tests for the FastAPI application.
Uses httpx.AsyncClient with the ASGI transport (no running server needed).
Fixtures are provided by tests/conftest.py.
"""

from __future__ import annotations

import time

import pytest

BLOCK = "chrome-extension://tabsense/blocked.html"


def _snapshot():
    now = time.time()
    return {
        "current_window_id": 1,
        "tabs": [
            {"id": 1, "url": "https://a.com", "window_id": 1, "is_active": True, "last_active_at": now},
            {"id": 2, "url": "https://a.com", "window_id": 1, "last_active_at": now - 60},
            {"id": 3, "url": "https://youtube.com/watch?v=1", "window_id": 1,
             "last_active_at": now - 45 * 60},
            {"id": 4, "url": "https://docs.python.org/3/", "window_id": 1, "is_pinned": True},
        ],
    }


class TestHealth:
    async def test_health_ok(self, client):
        r = await client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestTabsFeed:
    async def test_snapshot_then_list(self, client):
        r = await client.post("/tabs/snapshot", json=_snapshot())
        assert r.status_code == 202
        assert r.json()["count"] == 4

        r = await client.get("/tabs")
        assert r.status_code == 200
        assert [t["id"] for t in r.json()] == [1, 2, 3, 4]

    async def test_created_and_removed_events(self, client):
        r = await client.post("/tabs/events", json={
            "kind": "created", "tab_id": 7, "tab": {"id": 7, "url": "https://x.com"},
        })
        assert r.status_code == 202
        assert [t["id"] for t in (await client.get("/tabs")).json()] == [7]

        await client.post("/tabs/events", json={"kind": "removed", "tab_id": 7})
        assert (await client.get("/tabs")).json() == []

    async def test_unknown_event_kind_returns_422(self, client):
        r = await client.post("/tabs/events", json={"kind": "exploded", "tab_id": 1})
        assert r.status_code == 422

    async def test_commands_are_drained(self, client):
        await client.post("/tabs/snapshot", json=_snapshot())
        await client.delete("/tabs/2")
        r = await client.get("/tabs/commands")
        assert r.json()["commands"] == [{"op": "close", "tab_id": 2}]
        assert (await client.get("/tabs/commands")).json()["commands"] == []


class TestClassification:
    async def test_classification_sets(self, client):
        await client.post("/tabs/snapshot", json=_snapshot())
        r = await client.get("/tabs/classification")
        assert r.status_code == 200
        body = r.json()
        assert [t["id"] for t in body["duplicate"]] == [1, 2]
        assert [t["id"] for t in body["inactive"]] == [3]
        assert [t["id"] for t in body["heavy"]] == [3]
        assert body["total"] == 4

    async def test_health_score(self, client):
        await client.post("/tabs/snapshot", json=_snapshot())
        r = await client.get("/tabs/health")
        assert r.status_code == 200
        assert r.json()["score"] == 90
        assert r.json()["rank"] == "Zen Master"


class TestTabOperations:
    async def test_close_unknown_tab_returns_404(self, client):
        r = await client.delete("/tabs/12345")
        assert r.status_code == 404

    async def test_close_many(self, client):
        await client.post("/tabs/snapshot", json=_snapshot())
        r = await client.post("/tabs/close", json={"tab_ids": [3, 99]})
        assert r.json() == {"closed": [3], "failed": [99]}

    async def test_close_duplicates(self, client):
        await client.post("/tabs/snapshot", json=_snapshot())
        r = await client.post("/tabs/close-duplicates")
        assert r.json() == {"closed": [2], "failed": []}

    async def test_group_by_domain(self, client):
        await client.post("/tabs/snapshot", json=_snapshot())
        r = await client.post("/tabs/group-by-domain")
        assert r.status_code == 200
        assert list(r.json()["groups"]) == ["a.com"]


class TestFocusEndpoints:
    async def test_start_and_stop(self, client):
        r = await client.post("/focus/start", json={"duration_minutes": 25, "allowlist": ["github.com"]})
        assert r.status_code == 200
        body = r.json()
        assert body["active"] is True
        assert body["allowlist"] == ["github.com"]
        assert 0 < body["remaining_seconds"] <= 25 * 60

        r = await client.get("/focus")
        assert r.json()["active"] is True

        r = await client.post("/focus/stop")
        assert r.status_code == 200
        assert r.json() == {"active": False, "end_at": None, "remaining_seconds": 0.0, "allowlist": []}

    async def test_zero_duration_returns_422(self, client):
        r = await client.post("/focus/start", json={"duration_minutes": 0, "allowlist": []})
        assert r.status_code == 422
        assert (await client.get("/focus")).json()["active"] is False

    @pytest.mark.parametrize("duration", ["Infinity", "NaN", "\"inf\""])
    async def test_non_finite_duration_returns_422(self, client, duration):
        r = await client.post(
            "/focus/start",
            content=f'{{"duration_minutes": {duration}, "allowlist": []}}',
            headers={"content-type": "application/json"},
        )
        assert r.status_code == 422
        assert (await client.get("/focus")).json()["active"] is False

    async def test_navigation_event_is_blocked(self, app, client):
        await client.post("/tabs/snapshot", json={"tabs": [{"id": 1, "url": "chrome://newtab"}]})
        await client.post("/focus/start", json={"duration_minutes": 25, "allowlist": ["github.com"]})

        await client.post("/tabs/events", json={
            "kind": "updated", "tab_id": 1,
            "changes": {"url": "https://sub.github.com", "status": "complete"},
        })
        await app.state.coordinator.wait_idle()
        await client.post("/tabs/events", json={
            "kind": "updated", "tab_id": 1,
            "changes": {"url": "https://evil.example.com", "status": "complete"},
        })
        await app.state.coordinator.wait_idle()

        commands = (await client.get("/tabs/commands")).json()["commands"]
        assert commands == [{"op": "navigate", "tab_id": 1, "url": BLOCK}]


class TestSettingsEndpoints:
    async def test_auto_clean_defaults_off(self, client):
        r = await client.get("/settings/auto-clean")
        assert r.status_code == 200
        assert r.json() == {"enabled": False, "interval_minutes": 5.0, "inactive_minutes": 20.0}

    async def test_auto_clean_toggle_is_persisted(self, app, client, cfg):
        r = await client.put("/settings/auto-clean", json={"enabled": True})
        assert r.json()["enabled"] is True
        assert (await client.get("/settings/auto-clean")).json()["enabled"] is True
        assert '"autoCleanEnabled": true' in cfg.state_path.read_text()
