"""
End-to-end tests through the FastAPI app with a scripted provider.
"""

import time

import pytest
from fastapi.testclient import TestClient

from byok.app.core.config import Settings
from byok.app.main import create_app
from byok.app.providers.base import AdapterRegistry, JobStatus
from byok.app.security.jwt import create_access_token
from tests.factories import FakeAdapter

API = "/api/v1"
ALL_PROVIDERS = ["google-veo", "meta-moviegen", "runway-gen3"]


def auth_headers(providers=None, sub="user-1"):
    token = create_access_token(
        {"sub": sub, "providers": ALL_PROVIDERS if providers is None else providers}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def adapter():
    return FakeAdapter(statuses=[JobStatus.running(), JobStatus.completed("gs://bucket/v.mp4")])


@pytest.fixture
def client(tmp_path, adapter):
    config = Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'api.db'}",
        POLL_INTERVAL_SECONDS=0.01,
        MAX_POLL_ATTEMPTS=500,
    )
    app = create_app(config, adapters=AdapterRegistry([adapter]))
    with TestClient(app) as test_client:
        yield test_client


def wait_for_terminal(client, job_id, headers, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        job = client.get(f"{API}/generations/{job_id}", headers=headers).json()
        if job["status"] in ("completed", "failed"):
            return job
        time.sleep(0.02)
    raise AssertionError(f"generation {job_id} never finished")


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"message": "healthy"}


def test_endpoints_require_token(client):
    assert client.get(f"{API}/credentials/").status_code == 401
    assert client.get(f"{API}/generations/").status_code == 401


def test_invalid_token_is_rejected(client):
    response = client.get(
        f"{API}/credentials/", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 403


def test_credential_lifecycle(client):
    headers = auth_headers()

    saved = client.put(
        f"{API}/credentials/google-veo",
        json={"api_key": "abc123", "display_name": "primary"},
        headers=headers,
    )
    assert saved.status_code == 200
    assert saved.json()["status"] == "valid"
    assert "abc123" not in saved.text
    assert "ciphertext" not in saved.text

    listing = client.get(f"{API}/credentials/", headers=headers).json()
    assert {item["provider_id"]: item["status"] for item in listing} == {
        "google-veo": "valid",
        "meta-moviegen": "unset",
        "runway-gen3": "unset",
    }

    secret = client.get(f"{API}/credentials/google-veo/secret", headers=headers)
    assert secret.json() == {"provider_id": "google-veo", "api_key": "abc123"}

    assert client.delete(f"{API}/credentials/google-veo", headers=headers).status_code == 204
    assert client.get(f"{API}/credentials/google-veo/secret", headers=headers).status_code == 404
    status = client.get(f"{API}/credentials/google-veo/status", headers=headers).json()
    assert status["status"] == "unset"


def test_empty_key_is_rejected(client):
    response = client.put(
        f"{API}/credentials/google-veo", json={"api_key": "   "}, headers=auth_headers()
    )

    assert response.status_code == 400


def test_providers_catalog_reports_permission_and_credential(client):
    headers = auth_headers(providers=["google-veo"])
    client.put(f"{API}/credentials/google-veo", json={"api_key": "abc123"}, headers=headers)

    providers = {item["id"]: item for item in client.get(f"{API}/providers/", headers=headers).json()}

    assert providers["google-veo"]["allowed"] is True
    assert providers["google-veo"]["credential_status"] == "valid"
    assert providers["google-veo"]["supported_durations"] == [4, 6, 8]
    assert providers["meta-moviegen"]["allowed"] is False
    assert providers["meta-moviegen"]["supported_aspect_ratios"] == ["16:9", "9:16"]


def test_generation_without_credential_is_conflict(client, adapter):
    response = client.post(
        f"{API}/generations/",
        json={
            "provider_id": "google-veo",
            "prompt": "a cat",
            "settings": {"duration": 4, "aspect_ratio": "16:9"},
        },
        headers=auth_headers(),
    )

    assert response.status_code == 409
    assert adapter.start_calls == []
    assert client.get(f"{API}/generations/", headers=auth_headers()).json() == []


def test_generation_rejects_bad_settings_and_denied_provider(client, adapter):
    headers = auth_headers()
    client.put(f"{API}/credentials/google-veo", json={"api_key": "abc123"}, headers=headers)

    bad_duration = client.post(
        f"{API}/generations/",
        json={
            "provider_id": "google-veo",
            "prompt": "a cat",
            "settings": {"duration": 10, "aspect_ratio": "16:9"},
        },
        headers=headers,
    )
    denied = client.post(
        f"{API}/generations/",
        json={
            "provider_id": "google-veo",
            "prompt": "a cat",
            "settings": {"duration": 4, "aspect_ratio": "16:9"},
        },
        headers=auth_headers(providers=["runway-gen3"]),
    )

    assert bad_duration.status_code == 400
    assert denied.status_code == 403
    assert adapter.start_calls == []


def test_generation_runs_to_completion_and_can_be_deleted(client, adapter):
    headers = auth_headers()
    client.put(f"{API}/credentials/google-veo", json={"api_key": "abc123"}, headers=headers)

    submitted = client.post(
        f"{API}/generations/",
        json={
            "provider_id": "google-veo",
            "prompt": "a cat surfing",
            "settings": {"duration": 8, "aspect_ratio": "1:1"},
        },
        headers=headers,
    )
    assert submitted.status_code == 202
    assert submitted.json()["status"] in ("processing", "completed")
    assert "provider_handle" not in submitted.json()

    job = wait_for_terminal(client, submitted.json()["id"], headers)
    assert job["status"] == "completed"
    assert job["result_reference"] == "gs://bucket/v.mp4"
    assert adapter.credentials_seen == ["abc123", "abc123"]

    history = client.get(f"{API}/generations/?provider=google-veo", headers=headers).json()
    assert [item["id"] for item in history] == [job["id"]]

    assert client.delete(f"{API}/generations/{job['id']}", headers=headers).status_code == 204
    assert client.get(f"{API}/generations/{job['id']}", headers=headers).status_code == 404
    assert client.delete(f"{API}/generations/{job['id']}", headers=headers).status_code == 404


def test_cancel_running_generation(client, adapter):
    adapter.statuses = []
    headers = auth_headers()
    client.put(f"{API}/credentials/google-veo", json={"api_key": "abc123"}, headers=headers)

    submitted = client.post(
        f"{API}/generations/",
        json={
            "provider_id": "google-veo",
            "prompt": "a cat",
            "settings": {"duration": 4, "aspect_ratio": "16:9"},
        },
        headers=headers,
    ).json()

    cancelled = client.post(f"{API}/generations/{submitted['id']}/cancel", headers=headers)

    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "failed"
    assert cancelled.json()["error_message"] == "Generation cancelled."


def test_reset_forgets_every_credential(client):
    headers = auth_headers()
    client.put(f"{API}/credentials/google-veo", json={"api_key": "abc123"}, headers=headers)
    client.put(f"{API}/credentials/runway-gen3", json={"api_key": "rw"}, headers=headers)

    assert client.delete(f"{API}/credentials/", headers=headers).status_code == 204

    listing = client.get(f"{API}/credentials/", headers=headers).json()
    assert {item["status"] for item in listing} == {"unset"}


def test_users_only_see_their_own_keys_and_generations(client, adapter):
    alice = auth_headers(sub="alice")
    bob = auth_headers(sub="bob")
    client.put(f"{API}/credentials/google-veo", json={"api_key": "alice-secret"}, headers=alice)
    job_id = client.post(
        f"{API}/generations/",
        json={
            "provider_id": "google-veo",
            "prompt": "a cat",
            "settings": {"duration": 4, "aspect_ratio": "16:9"},
        },
        headers=alice,
    ).json()["id"]

    assert client.get(f"{API}/credentials/google-veo/secret", headers=bob).status_code == 404
    assert client.get(f"{API}/credentials/google-veo/status", headers=bob).json()["status"] == "unset"
    assert client.get(f"{API}/generations/", headers=bob).json() == []
    assert client.get(f"{API}/generations/{job_id}", headers=bob).status_code == 404
    assert client.post(f"{API}/generations/{job_id}/cancel", headers=bob).status_code == 404
    assert client.delete(f"{API}/generations/{job_id}", headers=bob).status_code == 404

    # Bob cannot spend Alice's key either
    submitted = client.post(
        f"{API}/generations/",
        json={
            "provider_id": "google-veo",
            "prompt": "a dog",
            "settings": {"duration": 4, "aspect_ratio": "16:9"},
        },
        headers=bob,
    )
    assert submitted.status_code == 409
    assert len(adapter.start_calls) == 1

    # Bob resetting his vault leaves Alice's key usable
    assert client.delete(f"{API}/credentials/", headers=bob).status_code == 204
    secret = client.get(f"{API}/credentials/google-veo/secret", headers=alice)
    assert secret.json()["api_key"] == "alice-secret"
    assert [item["id"] for item in client.get(f"{API}/generations/", headers=alice).json()] == [
        job_id
    ]


@pytest.mark.parametrize("duration", [True, "4", 4.5])
def test_generation_rejects_non_integer_duration(client, adapter, duration):
    headers = auth_headers()
    client.put(f"{API}/credentials/meta-moviegen", json={"api_key": "meta-key"}, headers=headers)

    response = client.post(
        f"{API}/generations/",
        json={
            "provider_id": "meta-moviegen",
            "prompt": "a cat",
            "settings": {"duration": duration, "aspect_ratio": "16:9"},
        },
        headers=headers,
    )

    assert response.status_code == 422
    assert adapter.start_calls == []


def test_tokens_are_checked_with_the_app_secret_key(tmp_path):
    config = Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'custom.db'}",
        SECRET_KEY="custom-app-key",
    )
    app = create_app(config, adapters=AdapterRegistry([FakeAdapter()]))
    own_token = create_access_token({"sub": "user-1", "providers": ALL_PROVIDERS}, config=config)

    with TestClient(app) as custom_client:
        foreign = custom_client.get(f"{API}/credentials/", headers=auth_headers())
        own = custom_client.get(
            f"{API}/credentials/", headers={"Authorization": f"Bearer {own_token}"}
        )

    assert foreign.status_code == 403
    assert own.status_code == 200
