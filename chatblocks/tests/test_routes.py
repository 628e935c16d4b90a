"""HTTP-level tests for the chat API."""

import pytest
from fastapi.testclient import TestClient

from chatblocks.infrastructure.app_factory import app_factory
from chatblocks.infrastructure.events.data_stream_protocol import StreamPart, parse_part
from chatblocks.main import app
from chatblocks.modules.persistence import init_database
from chatblocks.tests.conftest import FakeModel, final

ALICE = {"X-User-Email": "alice@example.com"}
BOB = {"X-User-Email": "bob@example.com"}


@pytest.fixture
def client(db_url):
    init_database(db_url)
    app_factory.reset()
    return TestClient(app)


@pytest.fixture
def scripted_model(monkeypatch):
    """Every model resolved through the gateway is this scripted model."""
    model = FakeModel(steps=[["Hello", " there", final("Hello there")]], title="Greeting")
    monkeypatch.setattr(app_factory.model_gateway, "resolve", lambda model_id: model)
    return model


def _turn(chat_id="c1", content="Hi!", model_id="gpt-4o"):
    return {"id": chat_id, "modelId": model_id, "messages": [{"role": "user", "content": content}]}


def _lines(response):
    return [parse_part(line) for line in response.text.splitlines() if line]


class TestAuth:
    def test_missing_header_is_rejected(self, client):
        response = client.post("/api/chat", json=_turn())
        assert response.status_code == 401
        assert response.json() == {"detail": "Unauthorized"}

    def test_health_needs_no_user(self, client):
        assert client.get("/api/heartbeat").json() == {"status": "ok"}
        body = client.get("/api/health").json()
        assert body["status"] == "healthy"
        assert body["service"] == "chatblocks-backend"


class TestPostChat:
    def test_streams_a_turn(self, client, scripted_model):
        response = client.post("/api/chat", json=_turn(), headers=ALICE)

        assert response.status_code == 200
        assert response.headers["x-vercel-ai-data-stream"] == "v1"
        assert response.headers["content-type"].startswith("text/plain")

        lines = _lines(response)
        assert lines[0][1][0]["type"] == "user-message-id"
        assert "".join(v for p, v in lines if p is StreamPart.TEXT) == "Hello there"
        assert lines[-1][0] is StreamPart.FINISH_MESSAGE

        history = client.get("/api/history", headers=ALICE).json()
        assert [c["title"] for c in history] == ["Greeting"]

    def test_unknown_model(self, client, scripted_model):
        response = client.post("/api/chat", json=_turn(model_id="made-up"), headers=ALICE)
        assert response.status_code == 404
        assert response.json() == {"detail": "Model not found"}

    def test_no_user_message(self, client, scripted_model):
        body = {"id": "c1", "modelId": "gpt-4o", "messages": [{"role": "assistant", "content": "hi"}]}
        response = client.post("/api/chat", json=body, headers=ALICE)
        assert response.status_code == 400
        assert response.json() == {"detail": "No user message found"}

    @pytest.mark.parametrize(
        "assistant",
        [
            {"role": "assistant", "content": "", "toolInvocations": [{"toolName": "getWeather", "state": "result"}]},
            {"role": "assistant", "content": [{"type": "reasoning", "text": "hmm"}]},
        ],
    )
    def test_malformed_message_is_bad_request(self, client, scripted_model, assistant):
        body = {"id": "c1", "modelId": "gpt-4o", "messages": [assistant, {"role": "user", "content": "Hi!"}]}
        response = client.post("/api/chat", json=body, headers=ALICE)
        assert response.status_code == 400
        assert scripted_model.tool_step_messages == []

    def test_other_users_chat(self, client, scripted_model):
        app_factory.get_repository().save_chat("c1", "bob@example.com", "Bob's")
        response = client.post("/api/chat", json=_turn(), headers=ALICE)
        assert response.status_code == 401


class TestDeleteChat:
    def test_missing_id(self, client):
        assert client.delete("/api/chat", headers=ALICE).status_code == 404

    def test_missing_chat(self, client):
        assert client.delete("/api/chat", params={"id": "nope"}, headers=ALICE).status_code == 404

    def test_not_owner(self, client):
        app_factory.get_repository().save_chat("c1", "bob@example.com", "Bob's")
        response = client.delete("/api/chat", params={"id": "c1"}, headers=ALICE)
        assert response.status_code == 401
        assert response.json() == {"detail": "Unauthorized to delete this chat"}

    def test_owner(self, client):
        app_factory.get_repository().save_chat("c1", "alice@example.com", "Mine")
        response = client.delete("/api/chat", params={"id": "c1"}, headers=ALICE)
        assert response.status_code == 200
        assert app_factory.get_repository().get_chat_by_id("c1") is None


class TestReadChat:
    def test_private_chat_hidden_from_others(self, client, scripted_model):
        client.post("/api/chat", json=_turn(), headers=ALICE)

        mine = client.get("/api/chat/c1", headers=ALICE).json()
        assert [m["role"] for m in mine["messages"]] == ["user", "assistant"]
        assert mine["messages"][1]["content"] == "Hello there"
        assert client.get("/api/chat/c1", headers=BOB).status_code == 404

    def test_public_chat_is_readable(self, client):
        app_factory.get_repository().save_chat("c1", "alice@example.com", "Mine")
        assert client.patch("/api/chat/c1/visibility", json={"visibility": "public"}, headers=BOB).status_code == 401
        assert client.patch("/api/chat/c1/visibility", json={"visibility": "public"}, headers=ALICE).status_code == 200
        assert client.get("/api/chat/c1", headers=BOB).status_code == 200

    def test_delete_trailing_messages(self, client, scripted_model):
        client.post("/api/chat", json=_turn(), headers=ALICE)
        assistant_id = client.get("/api/chat/c1", headers=ALICE).json()["messages"][1]["id"]

        response = client.delete(f"/api/chat/messages/{assistant_id}/trailing", headers=ALICE)

        assert response.json() == {"deleted": 1}
        assert client.delete("/api/chat/messages/nope/trailing", headers=ALICE).status_code == 404


class TestVotes:
    def test_vote_and_list(self, client):
        app_factory.get_repository().save_chat("c1", "alice@example.com", "Mine")
        assert client.get("/api/vote", headers=ALICE).status_code == 400

        body = {"chatId": "c1", "messageId": "m1", "type": "up"}
        assert client.patch("/api/vote", json=body, headers=ALICE).json() == {"detail": "Message voted"}
        assert client.patch("/api/vote", json=body, headers=BOB).status_code == 401

        votes = client.get("/api/vote", params={"chatId": "c1"}, headers=ALICE).json()
        assert votes == [{"chat_id": "c1", "message_id": "m1", "is_upvoted": True}]


class TestDocuments:
    def test_revision_lifecycle(self, client):
        assert client.get("/api/document", headers=ALICE).status_code == 400
        assert client.get("/api/document", params={"id": "d1"}, headers=ALICE).status_code == 404

        for content in ("v1", "v2"):
            response = client.post(
                "/api/document", params={"id": "d1"},
                json={"title": "Notes", "kind": "text", "content": content}, headers=ALICE,
            )
            assert response.status_code == 200

        revisions = client.get("/api/document", params={"id": "d1"}, headers=ALICE).json()
        assert [r["content"] for r in revisions] == ["v1", "v2"]
        assert client.get("/api/document", params={"id": "d1"}, headers=BOB).status_code == 401

        response = client.patch(
            "/api/document", params={"id": "d1"}, json={"timestamp": revisions[0]["created_at"]}, headers=ALICE,
        )
        assert response.json() == {"deleted": 1}

    def test_suggestions_need_document_id(self, client):
        assert client.get("/api/suggestions", headers=ALICE).status_code == 400
        assert client.get("/api/suggestions", params={"documentId": "d1"}, headers=ALICE).json() == []


class TestModels:
    def test_catalogue_and_preference_cookie(self, client):
        body = client.get("/api/models", headers=ALICE).json()
        assert body["selected"] == body["default"]
        assert "gpt-4o" in [m["id"] for m in body["models"]]

        assert client.post("/api/models/preference", json={"modelId": "made-up"}, headers=ALICE).status_code == 404
        response = client.post("/api/models/preference", json={"modelId": "gpt-4o"}, headers=ALICE)
        assert response.json() == {"selected": "gpt-4o"}
        assert "model-id" in response.cookies

        assert client.get("/api/models", headers=ALICE).json()["selected"] == "gpt-4o"
