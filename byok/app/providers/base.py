# byok/app/providers/base.py
"""
Uniform adapter contract between the orchestrator and a video vendor.

    start(prompt, settings, credential)   -> JobHandle   (or ProviderError)
    check_status(handle, credential)      -> JobStatus

Vendors with a long-running-operation API (Google Veo) return the operation
name as the handle; single-call vendors can return their job id. The
orchestrator treats both the same way.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from byok.app.providers.catalog import ProviderId
from byok.app.schemas.generation import GenerationSettings


@dataclass(frozen=True)
class JobHandle:
    provider_id: ProviderId
    value: str


class JobState(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class JobStatus:
    state: JobState
    result_reference: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def running(cls) -> "JobStatus":
        return cls(JobState.RUNNING)

    @classmethod
    def completed(cls, result_reference: str) -> "JobStatus":
        return cls(JobState.COMPLETED, result_reference=result_reference)

    @classmethod
    def failed(cls, reason: str) -> "JobStatus":
        return cls(JobState.FAILED, reason=reason)


class ProviderAdapter(ABC):
    provider_id: ProviderId

    @abstractmethod
    async def start(
        self,
        prompt: str,
        settings: GenerationSettings,
        credential: str,
    ) -> JobHandle:
        """Submit a generation job. Raises ProviderError on rejection."""

    @abstractmethod
    async def check_status(self, handle: JobHandle, credential: str) -> JobStatus:
        """Report whether the job is running, completed or failed."""

    async def aclose(self) -> None:
        """Release network resources held by the adapter."""


class AdapterRegistry:
    """Maps each provider to the adapter that talks to it."""

    def __init__(self, adapters=()):
        self._adapters: Dict[ProviderId, ProviderAdapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: ProviderAdapter) -> None:
        self._adapters[adapter.provider_id] = adapter

    def get(self, provider_id: ProviderId) -> Optional[ProviderAdapter]:
        return self._adapters.get(provider_id)

    def supports(self, provider_id: ProviderId) -> bool:
        return provider_id in self._adapters

    async def aclose(self) -> None:
        for adapter in self._adapters.values():
            await adapter.aclose()
