# byok/app/providers/google_veo.py
"""
Google Veo adapter (Vertex AI long-running prediction).

- start: POST {model}:predictLongRunning → operation name
- check_status: GET the operation until `done`

The user's credential is sent as an OAuth bearer token, exactly as the user
pasted it into the vault.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from byok.app.core.config import Settings, settings as default_settings
from byok.app.core.errors import ProviderError
from byok.app.providers.base import JobHandle, JobStatus, ProviderAdapter
from byok.app.providers.catalog import ProviderId
from byok.app.schemas.generation import GenerationSettings

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "video/mp4"


def _error_message(payload: Any, fallback: str) -> str:
    """Pull a vendor message out of an error body, if it carries one."""
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str) and error:
            return error
        if isinstance(payload.get("message"), str):
            return payload["message"]
    return fallback


def parse_prediction_result(response_body: Dict[str, Any]) -> Optional[str]:
    """
    Turn a finished operation's `response` into a playable reference.

    Storage URIs are returned as-is; inline bytes become a data: URI.
    Returns None when the response carries no video.
    """
    candidates = response_body.get("predictions") or response_body.get("outputs") or []
    if not candidates:
        return None

    candidate = candidates[0]
    if not isinstance(candidate, dict):
        return None
    video = candidate.get("video") if isinstance(candidate.get("video"), dict) else candidate

    uri = video.get("gcsUri") or video.get("storageUri") or video.get("uri")
    if uri:
        return uri

    data = (
        video.get("bytesBase64Encoded")
        or video.get("bytesBase64")
        or video.get("videoBytesBase64")
    )
    if data:
        mime_type = video.get("mimeType") or DEFAULT_MIME_TYPE
        return f"data:{mime_type};base64,{data}"

    return None


class GoogleVeoAdapter(ProviderAdapter):
    provider_id = ProviderId.GOOGLE_VEO

    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        config = config or default_settings
        self._project_id = config.GOOGLE_PROJECT_ID
        self._location = config.GOOGLE_LOCATION
        self._host = f"https://{self._location}-aiplatform.googleapis.com/v1"
        self._model_url = (
            f"{self._host}/projects/{self._project_id}/locations/{self._location}"
            f"/publishers/google/models/{config.GOOGLE_VEO_MODEL_ID}"
        )
        self._client = client or httpx.AsyncClient(timeout=config.PROVIDER_HTTP_TIMEOUT_SECONDS)

    def operation_url(self, operation: str) -> str:
        if operation.startswith("projects/"):
            normalized = operation
        else:
            normalized = (
                f"projects/{self._project_id}/locations/{self._location}/operations/{operation}"
            )
        return f"{self._host}/{normalized}"

    async def _request(self, method: str, url: str, credential: str, **kwargs) -> httpx.Response:
        headers = {"Authorization": f"Bearer {credential}"}
        try:
            return await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning(f"Vertex AI request failed: {exc.__class__.__name__}")
            raise ProviderError("Could not reach the video generation provider.") from exc

    @staticmethod
    def _json(response: httpx.Response) -> Optional[Any]:
        try:
            return response.json()
        except ValueError:
            return None

    async def start(
        self,
        prompt: str,
        settings: GenerationSettings,
        credential: str,
    ) -> JobHandle:
        payload = {
            "instances": [{"prompt": prompt}],
            "parameters": {
                "aspectRatio": settings.aspect_ratio,
                "durationSeconds": settings.duration,
            },
        }
        response = await self._request(
            "POST", f"{self._model_url}:predictLongRunning", credential, json=payload
        )
        body = self._json(response)

        if response.is_error or not isinstance(body, dict) or not body.get("name"):
            raise ProviderError(_error_message(body, "Failed to start video generation."))

        logger.info(f"Started Veo operation {body['name']}")
        return JobHandle(provider_id=self.provider_id, value=body["name"])

    async def check_status(self, handle: JobHandle, credential: str) -> JobStatus:
        response = await self._request("GET", self.operation_url(handle.value), credential)
        body = self._json(response)

        if response.is_error or not isinstance(body, dict):
            raise ProviderError(_error_message(body, "Failed to poll video generation."))

        if body.get("error"):
            return JobStatus.failed(_error_message(body, "Video generation failed."))

        if not body.get("done"):
            return JobStatus.running()

        response_body = body.get("response")
        if not isinstance(response_body, dict):
            return JobStatus.failed("Video generation completed without output.")

        reference = parse_prediction_result(response_body)
        if not reference:
            return JobStatus.failed("Video generation completed without output.")
        return JobStatus.completed(reference)

    async def aclose(self) -> None:
        await self._client.aclose()
