"""Tests for the HTTP API."""

import json

import pytest
from fastapi.testclient import TestClient

from conftest import FakeProvider

from projecthub_ai.container import ServiceContainer
from projecthub_ai.exceptions import ProviderError
from projecthub_ai.web import create_app

PRIMARY = "llama-3.3-70b-versatile"
FALLBACK = "llama-3.1-8b-instant"

USER = {"X-User-Id": "learner-1"}
PROJECT = {"projectName": "RecipeBox", "description": "Save and share recipes", "techStack": "MERN"}


@pytest.fixture
def provider():
    return FakeProvider(default="Here is how closures work.")


@pytest.fixture
def client(test_settings, provider):
    container = ServiceContainer(settings=test_settings, provider=provider)
    with TestClient(create_app(container)) as test_client:
        yield test_client


class TestAuth:
    @pytest.mark.parametrize("method,path", [
        ("post", "/api/chatbot/chat"),
        ("get", "/api/chatbot/credits"),
        ("get", "/api/chatbot/history"),
        ("post", "/api/projects/guide"),
    ])
    def test_missing_user_header(self, client, method, path):
        response = client.request(method.upper(), path, json={})
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Not authorized"}

    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestChatRoutes:
    def test_chat_answer(self, client):
        response = client.post(
            "/api/chatbot/chat",
            json={"message": "How do I write a closure in JavaScript?"},
            headers=USER
        )
        body = response.json()
        assert response.status_code == 200
        assert body["response"] == "Here is how closures work."
        assert body["credits"] == 49.5

    def test_body_cannot_override_user(self, client):
        client.post(
            "/api/chatbot/chat",
            json={"message": "How do I write a closure in JavaScript?", "userId": "someone-else"},
            headers=USER
        )
        history = client.get("/api/chatbot/history", headers=USER).json()
        assert len(history["messages"]) == 2

    def test_invalid_message(self, client):
        response = client.post("/api/chatbot/chat", json={"message": ""}, headers=USER)
        assert response.status_code == 400
        assert response.json()["message"] == "Message is required"

    def test_blocked_message(self, client):
        response = client.post("/api/chatbot/chat", json={"message": "你好"}, headers=USER)
        assert response.status_code == 400
        assert response.json()["blocked"] is True

    def test_credits_and_history(self, client):
        client.post("/api/chatbot/chat", json={"message": "hello"}, headers=USER)

        credits = client.get("/api/chatbot/credits", headers=USER).json()
        assert credits["credits"] == 50
        assert credits["isPremium"] is False

        history = client.get("/api/chatbot/credits/history", headers=USER).json()
        assert history == {"success": True, "history": []}

        cleared = client.delete("/api/chatbot/history", headers=USER).json()
        assert cleared["removed"] == 2

    def test_busy_service(self, test_settings):
        provider = FakeProvider(by_model={
            PRIMARY: [ProviderError("down", status_code=500)],
            FALLBACK: [ProviderError("down", status_code=500)],
        })
        with TestClient(create_app(ServiceContainer(settings=test_settings, provider=provider))) as client:
            response = client.post(
                "/api/chatbot/chat",
                json={"message": "How do I write a closure in JavaScript?"},
                headers=USER
            )
        assert response.status_code == 503
        assert response.json()["success"] is False


class TestProjectRoutes:
    def test_guide(self, client, provider):
        provider.script = [json.dumps({"readme": "# RecipeBox", "folderStructure": {"app.js": ""}})]

        response = client.post("/api/projects/guide", json=PROJECT, headers=USER)

        guide = response.json()["guide"]
        assert response.status_code == 200
        assert guide["readme"] == "# RecipeBox"
        assert [d["filePath"] for d in guide["fileDocumentation"]] == ["app.js"]

    def test_guide_requires_project_name(self, client):
        response = client.post("/api/projects/guide", json={"description": "x"}, headers=USER)
        assert response.status_code == 400

    def test_roadmap(self, client):
        response = client.post("/api/projects/roadmap", json=PROJECT, headers=USER)
        roadmap = response.json()["roadmap"]
        assert roadmap["milestones"][0]["tasks"][0]["status"] == "active"

    def test_task_help(self, client, provider):
        provider.script = [json.dumps({
            "commands": [{"description": "Install", "command": "npm install"}],
            "steps": [{"title": "Start", "description": "Run the dev server"}],
        })]

        response = client.post(
            "/api/projects/tasks/help",
            json={"project": PROJECT, "task": {"taskId": 1, "title": "Create GitHub Repository"}},
            headers=USER
        )

        assert response.status_code == 200
        assert response.json()["help"]["commands"][0]["command"] == "npm install"

    def test_task_help_requires_title(self, client):
        response = client.post(
            "/api/projects/tasks/help", json={"project": PROJECT, "task": {"taskId": 1}}, headers=USER
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Task title is required"

    @pytest.mark.parametrize("url,link_type,valid", [
        ("https://github.com/alice/recipe-box", "github-repo", True),
        ("https://gitlab.com/alice/recipe-box", "github-repo", False),
        ("https://recipes.example.com", None, True),
    ])
    def test_validate_link(self, client, url, link_type, valid):
        response = client.post(
            "/api/projects/tasks/validate-link", json={"url": url, "linkType": link_type}, headers=USER
        )
        assert response.json()["valid"] is valid


class TestStats:
    def test_stats(self, client):
        body = client.get("/api/ai/stats").json()
        assert body["success"] is True
        assert body["model"]["model"] == PRIMARY
        assert body["stats"]["provider"] == "fake"
        assert {"queue", "rate_window"} <= set(body["stats"])
