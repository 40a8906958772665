"""Integration tests for workspace settings routes."""

import uuid
import pytest
from fastapi.testclient import TestClient

from app.models.workspace_settings import DEFAULT_ESCALATION_KEYWORDS


@pytest.mark.integration
def test_get_settings_defaults(client: TestClient, workspace):
    response = client.get(f"/api/workspace-settings/{workspace.id}")

    assert response.status_code == 200
    data = response.json()
    assert data["escalation_keywords"] == DEFAULT_ESCALATION_KEYWORDS
    assert data["auto_escalate"] is True
    assert data["is_default"] is True


@pytest.mark.integration
def test_get_settings_unknown_workspace(client: TestClient):
    response = client.get(f"/api/workspace-settings/{uuid.uuid4()}")

    assert response.status_code == 404


@pytest.mark.integration
def test_update_settings_creates_row(client: TestClient, workspace):
    response = client.put(
        f"/api/workspace-settings/{workspace.id}",
        json={"escalation_keywords": [" flood ", "Fire", "fire", ""], "auto_escalate": True},
    )

    assert response.status_code == 200
    assert response.json()["escalation_keywords"] == ["flood", "Fire"]

    stored = client.get(f"/api/workspace-settings/{workspace.id}").json()
    assert stored["escalation_keywords"] == ["flood", "Fire"]
    assert stored["is_default"] is False


@pytest.mark.integration
def test_update_settings_partial(client: TestClient, workspace):
    client.put(f"/api/workspace-settings/{workspace.id}", json={"escalation_keywords": ["flood"]})

    response = client.put(f"/api/workspace-settings/{workspace.id}", json={"auto_escalate": False})

    data = response.json()
    assert data["escalation_keywords"] == ["flood"]
    assert data["auto_escalate"] is False


@pytest.mark.integration
def test_update_settings_too_many_keywords(client: TestClient, workspace):
    keywords = [f"kw{i}" for i in range(101)]

    response = client.put(f"/api/workspace-settings/{workspace.id}", json={"escalation_keywords": keywords})

    assert response.status_code == 400
    assert "100" in response.json()["error"]


@pytest.mark.integration
def test_update_settings_keyword_too_long(client: TestClient, workspace):
    response = client.put(
        f"/api/workspace-settings/{workspace.id}",
        json={"escalation_keywords": ["x" * 201]},
    )

    assert response.status_code == 400


@pytest.mark.integration
def test_updated_keywords_drive_escalation(client: TestClient, workspace, make_thread):
    client.put(f"/api/workspace-settings/{workspace.id}", json={"escalation_keywords": ["flood"]})
    thread = make_thread(["The bathroom has a flood"])

    draft = client.post("/api/ai/generate-draft", json={"thread_id": str(thread.id)}).json()["draft"]

    assert draft["escalated"] is True
