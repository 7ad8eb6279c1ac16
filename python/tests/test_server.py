"""
FastAPI endpoint tests for the Matrixx Chat Engine Service.

Tests the API endpoints using httpx AsyncClient with proper
lifespan management via asgi-lifespan. Each test gets a fresh app
lifespan, so chat and practice state never leak between tests.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import AsyncIterator

import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from tests.mock_data import MB


TEST_PRODUCT_SPEC_PATH = (
    Path(__file__).resolve().parent.parent
    / "matrixx_platform"
    / "specs"
    / "matrixx.json"
)
os.environ.setdefault("PRODUCT_SPEC_PATH", str(TEST_PRODUCT_SPEC_PATH))


# =============================================================================
# Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def client() -> AsyncIterator[AsyncClient]:
    """
    Create async test client with proper lifespan management.

    Uses LifespanManager so the scheduler and controllers are created on
    the test's event loop.
    """
    from chat_server import app

    async with LifespanManager(app) as manager:
        transport = ASGITransport(app=manager.app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac


def _file(name: str, size_bytes: int, mime_type: str = "application/pdf") -> dict[str, object]:
    return {"name": name, "mime_type": mime_type, "size_bytes": size_bytes}


# =============================================================================
# Service Endpoint Tests
# =============================================================================


class TestServiceEndpoints:
    """Tests for health, spec and tool discovery."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["service"] == "Matrixx Chat Engine Service"
        assert data["product_id"] == "matrixx"
        assert data["chat_timers_pending"] is False
        assert data["practice_timers_pending"] is False

    @pytest.mark.asyncio
    async def test_product_spec(self, client: AsyncClient) -> None:
        resp = await client.get("/product/spec")

        assert resp.status_code == 200
        data = resp.json()
        assert data["platform"] == "Matrixx"
        assert data["default_tool"] == "general"
        assert data["question_count"] == 5
        assert [h["id"] for h in data["history"]] == ["1", "2", "3", "4"]

    @pytest.mark.asyncio
    async def test_tools(self, client: AsyncClient) -> None:
        resp = await client.get("/tools")

        assert resp.status_code == 200
        tools = {t["tool_id"]: t for t in resp.json()["tools"]}
        assert tools["interview"]["file_upload_enabled"] is False
        assert tools["resume"]["accepted_file_types"] == [".docx", ".pdf", ".txt"]
        assert tools["general"]["in_sidebar"] is False
        assert tools["portfolio"]["in_sidebar"] is True

    @pytest.mark.asyncio
    async def test_events_replay_with_limit(self, client: AsyncClient) -> None:
        await client.post("/chat/sidebar/toggle")

        resp = await client.get("/events", params={"limit": 1})

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")
        event_line, data_line = resp.text.strip().splitlines()
        assert event_line == "event: sidebar_changed"
        payload = json.loads(data_line.removeprefix("data: "))
        assert payload["payload"] == {"open": True}
        assert payload["source"] == "chat"


# =============================================================================
# Chat Endpoint Tests
# =============================================================================


class TestChatEndpoints:
    """Tests for the chat surface endpoints."""

    @pytest.mark.asyncio
    async def test_initial_state(self, client: AsyncClient) -> None:
        resp = await client.get("/chat/state")

        assert resp.status_code == 200
        data = resp.json()
        assert data["current_tool"] == "general"
        assert data["messages"] == []
        assert data["can_send"] is False

    @pytest.mark.asyncio
    async def test_select_tool_seeds_welcome(self, client: AsyncClient) -> None:
        resp = await client.post("/chat/tool", json={"tool_id": "resume"})

        assert resp.status_code == 200
        state = resp.json()["state"]
        assert state["current_tool"] == "resume"
        assert len(state["messages"]) == 1
        assert state["messages"][0]["revealing"] is True
        assert state["accepted_file_types"] == ".docx,.pdf,.txt"

    @pytest.mark.asyncio
    async def test_unknown_tool_returns_404(self, client: AsyncClient) -> None:
        resp = await client.post("/chat/tool", json={"tool_id": "astrology"})

        assert resp.status_code == 404
        data = resp.json()
        assert data["ok"] is False
        assert data["error_code"] == "UNKNOWN_TOOL"

    @pytest.mark.asyncio
    async def test_send_and_receive_reply(self, client: AsyncClient) -> None:
        resp = await client.post("/chat/send", json={"text": "  Hi  "})

        assert resp.status_code == 200
        data = resp.json()
        assert data["ok"] is True
        assert data["state"]["messages"][0]["content"] == "Hi"
        assert data["state"]["pending_replies"] == 1

        await asyncio.sleep(1.2)

        state = (await client.get("/chat/state")).json()
        assert [m["role"] for m in state["messages"]] == ["user", "system"]
        assert state["pending_replies"] == 0

    @pytest.mark.asyncio
    async def test_send_nothing(self, client: AsyncClient) -> None:
        resp = await client.post("/chat/send", json={"text": "   "})

        assert resp.status_code == 200
        data = resp.json()
        assert data["ok"] is False
        assert data["message"] == "Nothing to send"
        assert data["state"]["messages"] == []

    @pytest.mark.asyncio
    async def test_send_uses_input_draft(self, client: AsyncClient) -> None:
        await client.post("/chat/input", json={"text": "from the draft"})

        resp = await client.post("/chat/send", json={})

        state = resp.json()["state"]
        assert state["messages"][0]["content"] == "from the draft"
        assert state["input_text"] == ""

    @pytest.mark.asyncio
    async def test_upload_drops_oversized_files(self, client: AsyncClient) -> None:
        await client.post("/chat/tool", json={"tool_id": "resume"})

        resp = await client.post(
            "/chat/files",
            json={"files": [_file("cv.pdf", 5 * MB), _file("huge.pdf", 15 * MB)]},
        )

        assert resp.status_code == 200
        data = resp.json()
        assert [a["name"] for a in data["accepted"]] == ["cv.pdf"]
        assert len(data["state"]["pending_attachments"]) == 1
        assert data["message"] == "Accepted 1 of 2 files"

    @pytest.mark.asyncio
    async def test_remove_attachment(self, client: AsyncClient) -> None:
        await client.post("/chat/tool", json={"tool_id": "resume"})
        resp = await client.post("/chat/files", json={"files": [_file("cv.pdf", 1024)]})
        attachment_id = resp.json()["accepted"][0]["id"]

        resp = await client.delete(f"/chat/attachments/{attachment_id}")
        assert resp.status_code == 200
        assert resp.json()["state"]["pending_attachments"] == []

        resp = await client.delete(f"/chat/attachments/{attachment_id}")
        assert resp.status_code == 404
        assert resp.json()["error_code"] == "UNKNOWN_ATTACHMENT"

    @pytest.mark.asyncio
    async def test_drag_and_drop(self, client: AsyncClient) -> None:
        await client.post("/chat/tool", json={"tool_id": "portfolio"})

        resp = await client.post("/chat/drag", json={"action": "enter"})
        assert resp.json()["prevent_default"] is True
        assert resp.json()["state"]["is_drag_over"] is True

        resp = await client.post("/chat/drop", json={"files": [_file("shot.png", 2048, "image/png")]})
        data = resp.json()
        assert [a["name"] for a in data["accepted"]] == ["shot.png"]
        assert data["state"]["is_drag_over"] is False

    @pytest.mark.asyncio
    async def test_select_chat(self, client: AsyncClient) -> None:
        resp = await client.post("/chat/select", json={"chat_id": "1"})

        assert resp.status_code == 200
        state = resp.json()["state"]
        assert state["current_chat_id"] == "1"
        assert len(state["messages"]) == 2

    @pytest.mark.asyncio
    async def test_select_unknown_chat_returns_404(self, client: AsyncClient) -> None:
        resp = await client.post("/chat/select", json={"chat_id": "nope"})

        assert resp.status_code == 404
        assert resp.json()["error_code"] == "UNKNOWN_CHAT"

    @pytest.mark.asyncio
    async def test_new_chat_and_reset(self, client: AsyncClient) -> None:
        await client.post("/chat/tool", json={"tool_id": "resume"})

        resp = await client.post("/chat/new")
        assert resp.json()["state"]["current_tool"] == "general"
        assert resp.json()["state"]["messages"] == []

        await client.post("/chat/input", json={"text": "draft"})
        resp = await client.post("/chat/reset")
        assert resp.json()["state"]["input_text"] == ""

    @pytest.mark.asyncio
    async def test_navigate_cancels_reply(self, client: AsyncClient) -> None:
        await client.post("/chat/send", json={"text": "Hi"})

        resp = await client.post("/navigate", json={"target": "/practice"})

        assert resp.json() == {"ok": True, "message": None, "target": "/practice"}
        health = (await client.get("/health")).json()
        assert health["chat_timers_pending"] is False

    @pytest.mark.asyncio
    async def test_sidebar_and_profile_menu(self, client: AsyncClient) -> None:
        resp = await client.post("/chat/sidebar/toggle")
        assert resp.json()["state"]["sidebar_open"] is True

        resp = await client.post("/chat/profile-menu/toggle")
        assert resp.json()["state"]["profile_menu_open"] is True


# =============================================================================
# Practice Endpoint Tests
# =============================================================================


class TestPracticeEndpoints:
    """Tests for the practice interview endpoints."""

    @pytest.mark.asyncio
    async def test_start(self, client: AsyncClient) -> None:
        resp = await client.post("/practice/start")

        assert resp.status_code == 200
        state = resp.json()["state"]
        assert state["started"] is True
        assert state["question_number"] == 1
        assert state["question_count"] == 5
        assert state["time_display"] == "02:00"
        assert state["title"] == "Frontend Developer Interview - Round 1"

    @pytest.mark.asyncio
    async def test_question_navigation(self, client: AsyncClient) -> None:
        await client.post("/practice/start")

        resp = await client.post("/practice/question", json={"index": 4})
        assert resp.json()["ok"] is True
        assert resp.json()["state"]["submit_label"] == "Finish Interview"

        resp = await client.post("/practice/question", json={"index": 5})
        assert resp.json()["ok"] is False
        assert resp.json()["state"]["question_index"] == 4

        resp = await client.post("/practice/previous")
        assert resp.json()["state"]["question_index"] == 3

        resp = await client.post("/practice/next")
        assert resp.json()["state"]["question_index"] == 4

    @pytest.mark.asyncio
    async def test_submit_flow(self, client: AsyncClient) -> None:
        await client.post("/practice/start")

        resp = await client.post("/practice/submit")
        assert resp.json()["outcome"] == "rejected"
        assert resp.json()["ok"] is False

        for i in range(5):
            await client.post("/practice/answer", json={"text": f"answer {i}"})
            resp = await client.post("/practice/submit")

        data = resp.json()
        assert data["outcome"] == "completed"
        assert data["state"]["completed"] is True
        assert len(data["state"]["answers"]) == 5

    @pytest.mark.asyncio
    async def test_voice_and_recording(self, client: AsyncClient) -> None:
        resp = await client.post("/practice/recording/toggle")
        assert resp.json()["state"]["recording"] is False

        await client.post("/practice/voice/toggle")
        resp = await client.post("/practice/recording/toggle")
        assert resp.json()["state"]["recording"] is True

        resp = await client.post("/practice/voice/toggle")
        assert resp.json()["state"]["voice_mode"] is False
        assert resp.json()["state"]["recording"] is False

    @pytest.mark.asyncio
    async def test_end_interview(self, client: AsyncClient) -> None:
        await client.post("/practice/start")

        resp = await client.post("/practice/end")

        assert resp.json()["target"] == "/"
        state = (await client.get("/practice/state")).json()
        assert state["started"] is False
        health = (await client.get("/health")).json()
        assert health["practice_timers_pending"] is False

        resp = await client.post("/practice/question", json={"index": 2})
        assert resp.json()["ok"] is False
        health = (await client.get("/health")).json()
        assert health["practice_timers_pending"] is False

    @pytest.mark.asyncio
    async def test_navigate_stops_practice_timers(self, client: AsyncClient) -> None:
        await client.post("/practice/start")

        resp = await client.post("/navigate", json={"target": "/"})

        assert resp.json()["ok"] is True
        health = (await client.get("/health")).json()
        assert health["practice_timers_pending"] is False
        assert health["chat_timers_pending"] is False

        resp = await client.post("/practice/next")
        assert resp.json()["ok"] is False
