"""
Tests for the Google Veo adapter over a mocked Vertex AI transport.
"""

import json

import httpx
import pytest

from byok.app.core.config import Settings
from byok.app.core.errors import ProviderError
from byok.app.providers.base import JobHandle, JobState
from byok.app.providers.catalog import ProviderId
from byok.app.providers.google_veo import GoogleVeoAdapter, parse_prediction_result
from byok.app.schemas.generation import GenerationSettings

OPERATION = (
    "projects/demo-project/locations/us-central1/publishers/google/models/"
    "veo-3.1-fast-generate-001/operations/op-123"
)


def build_adapter(handler):
    config = Settings(GOOGLE_PROJECT_ID="demo-project", GOOGLE_LOCATION="us-central1")
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GoogleVeoAdapter(config, client=client)


def handle(value=OPERATION):
    return JobHandle(provider_id=ProviderId.GOOGLE_VEO, value=value)


@pytest.mark.asyncio
async def test_start_posts_prompt_and_returns_operation_name():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"name": OPERATION})

    adapter = build_adapter(handler)
    result = await adapter.start(
        "a cat surfing", GenerationSettings(duration=6, aspect_ratio="9:16"), "user-token"
    )

    assert result == handle()
    assert seen["url"] == (
        "https://us-central1-aiplatform.googleapis.com/v1/projects/demo-project/"
        "locations/us-central1/publishers/google/models/"
        "veo-3.1-fast-generate-001:predictLongRunning"
    )
    assert seen["auth"] == "Bearer user-token"
    assert seen["body"] == {
        "instances": [{"prompt": "a cat surfing"}],
        "parameters": {"aspectRatio": "9:16", "durationSeconds": 6},
    }
    await adapter.aclose()


@pytest.mark.asyncio
async def test_start_rejection_surfaces_vendor_message():
    def handler(request):
        return httpx.Response(403, json={"error": {"code": 403, "message": "Permission denied."}})

    adapter = build_adapter(handler)

    with pytest.raises(ProviderError) as exc_info:
        await adapter.start("a cat", GenerationSettings(duration=4, aspect_ratio="16:9"), "t")

    assert exc_info.value.message == "Permission denied."


@pytest.mark.asyncio
async def test_start_without_operation_name_fails():
    adapter = build_adapter(lambda request: httpx.Response(200, json={}))

    with pytest.raises(ProviderError) as exc_info:
        await adapter.start("a cat", GenerationSettings(duration=4, aspect_ratio="16:9"), "t")

    assert exc_info.value.message == "Failed to start video generation."


@pytest.mark.asyncio
async def test_transport_error_becomes_provider_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    adapter = build_adapter(handler)

    with pytest.raises(ProviderError) as exc_info:
        await adapter.check_status(handle(), "t")

    assert exc_info.value.message == "Could not reach the video generation provider."


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body, state, reference, reason",
    [
        ({"name": OPERATION}, JobState.RUNNING, None, None),
        ({"name": OPERATION, "done": False}, JobState.RUNNING, None, None),
        (
            {"done": True, "error": {"code": 3, "message": "Prompt was blocked."}},
            JobState.FAILED,
            None,
            "Prompt was blocked.",
        ),
        (
            {"done": True, "response": {"videos": []}},
            JobState.FAILED,
            None,
            "Video generation completed without output.",
        ),
        (
            {"done": True},
            JobState.FAILED,
            None,
            "Video generation completed without output.",
        ),
        (
            {"done": True, "response": {"predictions": [{"gcsUri": "gs://bucket/v.mp4"}]}},
            JobState.COMPLETED,
            "gs://bucket/v.mp4",
            None,
        ),
        (
            {
                "done": True,
                "response": {
                    "predictions": [{"bytesBase64Encoded": "AAAA", "mimeType": "video/webm"}]
                },
            },
            JobState.COMPLETED,
            "data:video/webm;base64,AAAA",
            None,
        ),
    ],
)
async def test_check_status_maps_operation(body, state, reference, reason):
    adapter = build_adapter(lambda request: httpx.Response(200, json=body))

    status = await adapter.check_status(handle(), "t")

    assert status.state is state
    assert status.result_reference == reference
    assert status.reason == reason


@pytest.mark.asyncio
async def test_check_status_http_error_raises():
    adapter = build_adapter(lambda request: httpx.Response(500, text="upstream exploded"))

    with pytest.raises(ProviderError) as exc_info:
        await adapter.check_status(handle(), "t")

    assert exc_info.value.message == "Failed to poll video generation."


@pytest.mark.asyncio
async def test_check_status_polls_operation_url():
    urls = []

    def handler(request):
        urls.append(str(request.url))
        return httpx.Response(200, json={"done": False})

    adapter = build_adapter(handler)
    await adapter.check_status(handle(), "t")
    await adapter.check_status(handle("op-456"), "t")

    assert urls == [
        f"https://us-central1-aiplatform.googleapis.com/v1/{OPERATION}",
        "https://us-central1-aiplatform.googleapis.com/v1/projects/demo-project/"
        "locations/us-central1/operations/op-456",
    ]


def test_parse_prediction_result_variants():
    assert parse_prediction_result({"videos": [{"gcsUri": "gs://b/v.mp4"}]}) is None
    assert parse_prediction_result({"outputs": [{"video": {"uri": "https://cdn/v.mp4"}}]}) == (
        "https://cdn/v.mp4"
    )
    assert parse_prediction_result({"predictions": [{"bytesBase64Encoded": "QUJD"}]}) == (
        "data:video/mp4;base64,QUJD"
    )
    assert parse_prediction_result({"predictions": ["not-a-dict"]}) is None
