# byok/app/schemas/generation.py
"""
Generation job records and the request/response schemas built on them.

GenerationJob owns its state machine:

    pending ──start ok──▶ processing ──▶ completed | failed
    pending ──start failure──▶ failed

Terminal jobs reject every further transition, so a late poll result can
never overwrite the outcome.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr

from byok.app.core.errors import InvalidTransitionError
from byok.app.providers.catalog import ProviderId


class GenerationStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (GenerationStatus.COMPLETED, GenerationStatus.FAILED)


class GenerationSettings(BaseModel):
    # Strict: "4", 4.0 and True are rejected, never coerced to a duration
    duration: StrictInt
    aspect_ratio: StrictStr


class GenerationJob(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: Optional[str] = None
    provider_id: ProviderId
    prompt: str
    settings: GenerationSettings
    status: GenerationStatus = GenerationStatus.PENDING
    provider_handle: Optional[str] = None
    poll_attempts: int = 0
    result_reference: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def _require(self, *allowed: GenerationStatus) -> None:
        if self.status not in allowed:
            raise InvalidTransitionError(
                f"Generation {self.id} is {self.status.value}."
            )

    def mark_processing(self, handle: str) -> None:
        self._require(GenerationStatus.PENDING)
        self.status = GenerationStatus.PROCESSING
        self.provider_handle = handle

    def mark_completed(self, result_reference: str, at: datetime) -> None:
        self._require(GenerationStatus.PROCESSING)
        self.status = GenerationStatus.COMPLETED
        self.result_reference = result_reference
        self.completed_at = at

    def mark_failed(self, reason: str, at: datetime) -> None:
        self._require(GenerationStatus.PENDING, GenerationStatus.PROCESSING)
        self.status = GenerationStatus.FAILED
        # A failed job always carries a human-readable reason
        self.error_message = reason or "Generation failed. Please try again."
        self.completed_at = at


# Schema used when the UI submits a prompt
class GenerationCreate(BaseModel):
    provider_id: str
    prompt: str
    settings: GenerationSettings


# Schema returned to the UI (the provider handle stays internal)
class GenerationJobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    provider_id: ProviderId
    prompt: str
    settings: GenerationSettings
    status: GenerationStatus
    result_reference: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
