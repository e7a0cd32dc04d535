import json
import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from letterstudio import create_app
from letterstudio.config import TestConfig
from letterstudio.extensions import db
from letterstudio.services.errors import BackendServerError
from letterstudio.services.generation import GenerationBackend


class DummyBackend(GenerationBackend):
    name = "dummy"

    def __init__(self, *replies, error=None):
        self.replies = list(replies)
        self.error = error
        self.prompts = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if not self.replies:
            raise AssertionError("The backend should not have been called.")
        return self.replies.pop(0)


@pytest.fixture
def app_instance():
    app = create_app(TestConfig)
    ctx = app.app_context()
    ctx.push()
    db.create_all()
    yield app
    db.session.remove()
    db.drop_all()
    ctx.pop()


@pytest.fixture
def client(app_instance):
    return app_instance.test_client()


def _use_backend(monkeypatch, backend):
    requested = []

    def fake_get_generation_backend(name=None):
        requested.append(name)
        return backend

    monkeypatch.setattr("letterstudio.letters.routes.get_generation_backend", fake_get_generation_backend)
    return requested


def _set_letter(client, content):
    response = client.put("/api/letter/content", json={"content": content})
    assert response.status_code == 200
    return response.get_json()


def test_health_and_availability(client, app_instance):
    assert client.get("/api/health").get_json() == {"status": "ok"}

    app_instance.config["DEEPSEEK_API_KEY"] = "ds-key"
    payload = client.get("/api/check-availability").get_json()

    assert payload["default"] == "claude"
    assert payload["available"] is False
    assert payload["backends"]["deepseek"] is True


def test_csrf_token_endpoint(client):
    assert client.get("/api/csrf-token").get_json()["csrf_token"]


def test_empty_workspace_has_no_paragraphs(client):
    payload = client.get("/api/letter/").get_json()

    assert payload == {"success": True, "content": "", "paragraphs": []}


def test_content_update_and_paragraph_edit(client):
    payload = _set_letter(client, "Dear team,\n\nI would like to join.")
    assert [item["text"] for item in payload["paragraphs"]] == ["Dear team,", "I would like to join."]

    response = client.put("/api/letter/paragraphs/1", json={"text": "I am eager to join."})

    assert response.status_code == 200
    assert response.get_json()["paragraph"] == "I am eager to join."
    assert client.get("/api/letter/").get_json()["content"] == "Dear team,\n\nI am eager to join."


def test_edit_unknown_paragraph_is_not_found(client):
    _set_letter(client, "Only paragraph.")

    response = client.put("/api/letter/paragraphs/4", json={"text": "Text"})

    assert response.status_code == 404
    assert response.get_json()["kind"] == "index_out_of_range"


def test_edit_with_missing_text_is_rejected(client):
    _set_letter(client, "Only paragraph.")

    response = client.put("/api/letter/paragraphs/0", json={})

    assert response.status_code == 400
    assert response.get_json()["kind"] == "invalid_input"
    assert response.get_json()["failed"] is True


def test_rewrite_then_cycle_then_manual_edit(monkeypatch, client):
    _set_letter(client, "Dear team,\n\nI want the job.")
    backend = DummyBackend(json.dumps(["Formal one.", "Formal two.", "Formal three."]))
    requested = _use_backend(monkeypatch, backend)

    response = client.post("/api/letter/paragraphs/1/rewrite", json={"tone": "formal", "model": "deepseek"})
    payload = response.get_json()

    assert response.status_code == 200
    assert requested == ["deepseek"]
    assert payload["paragraph"] == "Formal one."
    assert payload["variation_count"] == 3

    previous = client.post("/api/letter/paragraphs/1/previous").get_json()
    assert previous["changed"] is True
    assert previous["paragraph"] == "Formal three."
    assert previous["current_variation"] == 2

    nxt = client.post("/api/letter/paragraphs/1/next").get_json()
    assert nxt["paragraph"] == "Formal one."

    client.put("/api/letter/paragraphs/1", json={"text": "Handwritten."})
    summary = client.get("/api/letter/").get_json()["paragraphs"][1]

    assert summary["has_variations"] is False
    assert summary["variation_count"] == 1
    assert client.post("/api/letter/paragraphs/1/next").get_json()["changed"] is False


def test_rewrite_without_configured_backend(client):
    _set_letter(client, "Dear team,\n\nI want the job.")

    response = client.post("/api/letter/paragraphs/1/rewrite", json={"tone": "formal"})
    payload = response.get_json()

    assert response.status_code == 400
    assert payload["success"] is False
    assert payload["kind"] == "backend_unavailable"
    assert "not available" in payload["error"]


def test_backend_failure_returns_bad_gateway_and_keeps_text(monkeypatch, client):
    _set_letter(client, "Dear team,\n\nI want the job.")
    _use_backend(monkeypatch, DummyBackend(error=BackendServerError("down", provider="dummy")))

    response = client.post("/api/letter/paragraphs/1/complete", json={})

    assert response.status_code == 502
    assert response.get_json()["kind"] == "generation_failed"
    assert client.get("/api/letter/").get_json()["paragraphs"][1]["text"] == "I want the job."


def test_shorten_keeps_placeholders(monkeypatch, client):
    _set_letter(client, "Dear team,\n\nI have long wanted to work on [project name] with you.")
    _use_backend(monkeypatch, DummyBackend("I want to work on [Project Name]."))

    response = client.post("/api/letter/paragraphs/1/shorten", json={"language": "en"})

    assert response.status_code == 200
    assert response.get_json()["paragraph"] == "I want to work on [project name]."


def test_generate_letter_records_history_and_reload(monkeypatch, client):
    letter = "Motivation Letter\n\nI am writing to apply to Example Corp for the analyst role.\n\nRegards,\nJohn Doe"
    backend = DummyBackend(letter)
    _use_backend(monkeypatch, backend)

    response = client.post(
        "/api/letter/generate",
        json={"destination": "Example Corp", "goal": "Analyst role", "language": "en"},
    )
    payload = response.get_json()

    assert response.status_code == 200
    assert payload["paragraphs"][-1]["text"] == "Regards,\n[your name]"
    assert payload["history_entry"]["title"] == "Motivation Letter"
    assert "Example Corp" in backend.prompts[0]

    _set_letter(client, "Another draft.")
    entries = client.get("/api/letter/history").get_json()["entries"]
    assert len(entries) == 1

    loaded = client.post(f"/api/letter/history/{entries[0]['id']}/load").get_json()
    assert loaded["paragraphs"][0]["text"] == "Motivation Letter"

    deleted = client.delete(f"/api/letter/history/{entries[0]['id']}").get_json()
    assert deleted["removed"] is True
    assert deleted["entries"] == []

    missing = client.post(f"/api/letter/history/{entries[0]['id']}/load")
    assert missing.status_code == 200
    assert missing.get_json()["loaded"] is False


def test_generate_requires_destination(client):
    response = client.post("/api/letter/generate", json={"goal": "Apply"})

    assert response.status_code == 400
    assert response.get_json()["kind"] == "invalid_input"


def test_autocomplete_uses_profile_without_backend(monkeypatch, client):
    _set_letter(client, "Contact me at [your email].")
    client.put("/api/profile", json={"email": "a@b.com"})
    backend = DummyBackend()
    _use_backend(monkeypatch, backend)

    response = client.post("/api/letter/paragraphs/0/autocomplete", json={"placeholder": "[your email]"})

    assert response.status_code == 200
    assert response.get_json()["paragraph"] == "Contact me at a@b.com."
    assert backend.prompts == []


def test_autocomplete_date_in_french(monkeypatch, client):
    _set_letter(client, "Paris, le [date]")
    _use_backend(monkeypatch, DummyBackend())

    response = client.post(
        "/api/letter/paragraphs/0/autocomplete",
        json={"placeholder": "[date]", "language": "fr"},
    )

    assert response.get_json()["completion"] == date.today().strftime("%d/%m/%Y")


def test_autocomplete_unknown_placeholder(monkeypatch, client):
    _set_letter(client, "No placeholders here.")
    _use_backend(monkeypatch, DummyBackend())

    response = client.post("/api/letter/paragraphs/0/autocomplete", json={"placeholder": "[project]"})

    assert response.status_code == 400
    assert response.get_json()["kind"] == "placeholder_not_found"


def test_manual_placeholder_fill(client):
    _set_letter(client, "I worked at [company] for [years] years.")

    response = client.post(
        "/api/letter/paragraphs/0/placeholder",
        json={"placeholder": "[company]", "value": "Acme"},
    )

    assert response.get_json()["paragraph"] == "I worked at Acme for [years] years."


def test_workspaces_are_isolated(app_instance, client):
    _set_letter(client, "First workspace letter.")
    other = app_instance.test_client()

    assert other.get("/api/letter/").get_json()["paragraphs"] == []


def test_loading_unknown_history_entry_keeps_letter(client):
    _set_letter(client, "Current.")

    response = client.post("/api/letter/history/12345/load")
    payload = response.get_json()

    assert response.status_code == 200
    assert payload["success"] is True
    assert payload["loaded"] is False
    assert payload["content"] == "Current."
    assert client.get("/api/letter/").get_json()["content"] == "Current."


def test_rewrite_of_signature_block_keeps_placeholder(monkeypatch, client):
    _set_letter(client, "Dear team,\n\nSincerely,\n[your name]")
    _use_backend(monkeypatch, DummyBackend("Kind regards,\n[your name]"))

    response = client.post("/api/letter/paragraphs/1/rewrite", json={"tone": "warm"})
    payload = response.get_json()

    assert response.status_code == 200
    assert payload["paragraph"] == "Kind regards,\n[your name]"
    assert payload["variation_count"] == 1
