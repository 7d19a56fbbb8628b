# byok/app/services/orchestrator.py
"""
Generation orchestrator: drives each job from submission to a terminal state.

    submit ─▶ pending ─start()─▶ processing ─poll…poll─▶ completed | failed
                        └─ rejected ─▶ failed

- one asyncio.Task per processing job, kept in `_tasks` by job id
- polls are sequential within a job: the next sleep starts only after the
  previous check_status() resolved
- `_active` holds the ids this orchestrator is currently driving; every
  delayed result (start acknowledgement, poll response) is applied only if
  the id is still active AND the stored job is not terminal, so a cancelled
  or deleted job is never resurrected by a stale response
- no automatic retries anywhere: retrying is a new submission
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set, Tuple
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from byok.app.core.config import settings as default_settings
from byok.app.core.errors import (
    CredentialError,
    GenerationTimeoutError,
    NotFoundError,
    ProviderError,
    ProviderPermissionError,
    ValidationError,
)
from byok.app.providers.base import AdapterRegistry, JobHandle, JobState, JobStatus, ProviderAdapter
from byok.app.providers.catalog import (
    ProviderCapabilities,
    ProviderId,
    get_capabilities,
    parse_provider_id,
    validate_settings,
)
from byok.app.repositories.base import JobRepository
from byok.app.schemas.generation import GenerationJob, GenerationSettings, GenerationStatus
from byok.app.schemas.user import CurrentUser
from byok.app.services.authorization import ProviderAuthorizer
from byok.app.services.vault import CredentialVault

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Generation cancelled."
TIMEOUT_MESSAGE = GenerationTimeoutError.default_message
START_FAILED_MESSAGE = "Failed to start video generation."
POLL_FAILED_MESSAGE = "Failed to poll video generation."
NO_OUTPUT_MESSAGE = "Video generation completed without output."
INTERRUPTED_MESSAGE = "Generation was interrupted before the provider accepted it."
VENDOR_FAILED_MESSAGE = "Video generation failed."


class GenerationOrchestrator:
    """Service owning the lifecycle of every generation job."""

    def __init__(
        self,
        vault: CredentialVault,
        jobs: JobRepository,
        adapters: AdapterRegistry,
        authorizer: ProviderAuthorizer,
        capabilities: Callable[[ProviderId], ProviderCapabilities] = get_capabilities,
        poll_interval: Optional[float] = None,
        max_poll_attempts: Optional[int] = None,
        max_prompt_length: Optional[int] = None,
        sleep=asyncio.sleep,
    ):
        self._vault = vault
        self._jobs = jobs
        self._adapters = adapters
        self._authorizer = authorizer
        self._capabilities = capabilities
        self._poll_interval = (
            default_settings.POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        )
        self._max_poll_attempts = max_poll_attempts or default_settings.MAX_POLL_ATTEMPTS
        self._max_prompt_length = max_prompt_length or default_settings.MAX_PROMPT_LENGTH
        self._sleep = sleep

        self._tasks: Dict[str, asyncio.Task] = {}
        self._active: Set[str] = set()

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    # ─────────────────────────────────────────────────────────────
    # Public operations
    # ─────────────────────────────────────────────────────────────

    async def submit(
        self,
        provider_id,
        prompt: str,
        settings,
        *,
        user: Optional[CurrentUser] = None,
    ) -> str:
        """
        Validate a request, start it at the provider and begin polling.

        Checks run before anything is stored or sent, in this order:
        input validation, provider permission, credential usability.

        Returns:
            The job id. The terminal outcome arrives through the poll loop.

        Raises:
            ValidationError: unknown/unsupported provider, empty or too long
                prompt, settings outside the provider's capabilities
            ProviderPermissionError: the provider is not allowed for the user
            CredentialError: no stored key, or the stored key cannot be decrypted
        """
        provider = parse_provider_id(provider_id)
        prompt_text, job_settings = self._validate(provider, prompt, settings)
        adapter = self._adapters.get(provider)

        if not self._authorizer.is_provider_allowed(user, provider):
            raise ProviderPermissionError()

        owner = user.id if user else None
        credential = await self._vault.get_decrypted_credential(provider, user_id=owner)
        if credential is None:
            name = self._capabilities(provider).name
            if await self._vault.has_credential(provider, user_id=owner):
                raise CredentialError(
                    f"The stored API key for {name} can no longer be decrypted. Enter it again."
                )
            raise CredentialError(f"Add an API key for {name} first.")

        job = GenerationJob(
            id=uuid4().hex,
            user_id=owner,
            provider_id=provider,
            prompt=prompt_text,
            settings=job_settings,
            created_at=self._now(),
        )
        await self._jobs.add(job)
        self._active.add(job.id)
        logger.info(f"Submitted generation {job.id} to {provider.value}")

        try:
            handle = await adapter.start(prompt_text, job_settings, credential)
        except ProviderError as exc:
            logger.warning(f"Provider rejected generation {job.id}: {exc.message}")
            await self._fail(job.id, exc.message)
            self._active.discard(job.id)
            return job.id
        except Exception:
            logger.exception(f"Unexpected error starting generation {job.id}")
            await self._fail(job.id, START_FAILED_MESSAGE)
            self._active.discard(job.id)
            return job.id

        job_id = job.id
        job = await self._jobs.get(job_id)
        if job is None or job.is_terminal or job_id not in self._active:
            # Cancelled or deleted while start() was in flight
            logger.info(f"Generation {job_id} was stopped before the provider answered")
            self._active.discard(job_id)
            return job_id
        job.mark_processing(handle.value)
        if not await self._jobs.save(job):
            self._active.discard(job_id)
            return job_id

        self._spawn(job_id, adapter, handle, credential, attempts=0)
        return job_id

    async def cancel(self, job_id: str, *, user: Optional[CurrentUser] = None) -> GenerationJob:
        """
        Stop polling a job without contacting the provider.

        The provider-side job may keep running; its result is discarded.
        A job that is not finished yet becomes failed ("Generation cancelled.");
        a finished job is returned unchanged.
        """
        await self._load(job_id, user)

        self._active.discard(job_id)
        await self._stop_task(job_id)

        # Reload: the loop may have finished the job before it was stopped
        job = await self._load(job_id, user)
        if not job.is_terminal:
            job.mark_failed(CANCELLED_MESSAGE, self._now())
            await self._jobs.save(job)
            logger.info(f"Cancelled generation {job_id}")
        return job

    async def remove(self, job_id: str, *, user: Optional[CurrentUser] = None) -> None:
        """Stop any poll loop for the job, then delete its record."""
        await self._load(job_id, user)

        self._active.discard(job_id)
        await self._stop_task(job_id)
        if not await self._jobs.delete(job_id):
            raise NotFoundError(f"Generation {job_id} not found.")
        logger.info(f"Deleted generation {job_id}")

    async def get_job(self, job_id: str, *, user: Optional[CurrentUser] = None) -> GenerationJob:
        return await self._load(job_id, user)

    async def list_jobs(
        self, provider_id=None, *, user: Optional[CurrentUser] = None
    ) -> List[GenerationJob]:
        """Jobs newest first, optionally for a single provider; only the user's own when given."""
        provider = parse_provider_id(provider_id) if provider_id is not None else None
        return await self._jobs.list(provider, user.id if user else None)

    async def _load(self, job_id: str, user: Optional[CurrentUser]) -> GenerationJob:
        # Another user's job is reported exactly like a missing one
        job = await self._jobs.get(job_id)
        if job is None or (user is not None and job.user_id != user.id):
            raise NotFoundError(f"Generation {job_id} not found.")
        return job

    def is_polling(self, job_id: str) -> bool:
        task = self._tasks.get(job_id)
        return task is not None and not task.done()

    async def wait(self, job_id: str) -> Optional[GenerationJob]:
        """Wait for the job's poll loop (if any) to end and return the job."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.wait({task})
        return await self._jobs.get(job_id)

    async def resume(self) -> int:
        """
        Pick up jobs left unfinished by a previous run.

        Processing jobs resume polling with their persisted attempt count,
        so the attempt budget stays a hard ceiling across restarts. Jobs still
        pending never got a provider handle and cannot be recovered.

        Returns:
            Number of poll loops started
        """
        resumed = 0
        for job in await self._jobs.list_unfinished():
            if job.id in self._active:
                continue

            if job.status is GenerationStatus.PENDING or not job.provider_handle:
                await self._fail(job.id, INTERRUPTED_MESSAGE)
                continue

            adapter = self._adapters.get(job.provider_id)
            credential = await self._vault.get_decrypted_credential(
                job.provider_id, user_id=job.user_id
            )
            if adapter is None or credential is None:
                name = self._capabilities(job.provider_id).name
                await self._fail(job.id, f"Cannot resume generation: no usable API key for {name}.")
                continue

            self._active.add(job.id)
            handle = JobHandle(provider_id=job.provider_id, value=job.provider_handle)
            self._spawn(job.id, adapter, handle, credential, attempts=job.poll_attempts)
            resumed += 1

        if resumed:
            logger.info(f"Resumed polling for {resumed} generation(s)")
        return resumed

    async def shutdown(self) -> None:
        """Stop every poll loop, leaving jobs as they are for resume()."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        self._active.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)

    # ─────────────────────────────────────────────────────────────
    # Validation
    # ─────────────────────────────────────────────────────────────

    def _validate(self, provider: ProviderId, prompt, settings) -> Tuple[str, GenerationSettings]:
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValidationError("Prompt is required.")
        prompt_text = prompt.strip()
        if len(prompt_text) > self._max_prompt_length:
            raise ValidationError(
                f"Prompt must be at most {self._max_prompt_length} characters."
            )

        if not isinstance(settings, GenerationSettings):
            try:
                settings = GenerationSettings.model_validate(settings)
            except PydanticValidationError as exc:
                raise ValidationError("Invalid generation settings.") from exc

        capabilities = self._capabilities(provider)
        validate_settings(capabilities, settings.duration, settings.aspect_ratio)

        if not self._adapters.supports(provider):
            raise ValidationError(f"{capabilities.name} is not yet supported.")

        return prompt_text, settings

    # ─────────────────────────────────────────────────────────────
    # Poll loop
    # ─────────────────────────────────────────────────────────────

    def _spawn(
        self,
        job_id: str,
        adapter: ProviderAdapter,
        handle: JobHandle,
        credential: str,
        attempts: int,
    ) -> None:
        if self.is_polling(job_id):
            logger.debug(f"Generation {job_id} already has a poll loop")
            return

        task = asyncio.create_task(
            self._poll(job_id, adapter, handle, credential, attempts),
            name=f"poll-{job_id}",
        )
        self._tasks[job_id] = task
        task.add_done_callback(lambda done, job_id=job_id: self._on_poll_done(job_id, done))

    async def _stop_task(self, job_id: str) -> None:
        task = self._tasks.pop(job_id, None)
        if task is None or task.done():
            return
        task.cancel()
        # asyncio.wait never raises the task's CancelledError into the caller
        await asyncio.wait({task})

    def _on_poll_done(self, job_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(job_id) is task:
            del self._tasks[job_id]
            self._active.discard(job_id)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                f"Poll loop for generation {job_id} crashed",
                exc_info=task.exception(),
            )

    async def _poll(
        self,
        job_id: str,
        adapter: ProviderAdapter,
        handle: JobHandle,
        credential: str,
        attempts: int,
    ) -> None:
        while attempts < self._max_poll_attempts:
            await self._sleep(self._poll_interval)
            if job_id not in self._active:
                return

            try:
                status = await adapter.check_status(handle, credential)
            except ProviderError as exc:
                status = JobStatus.failed(exc.message)
            except Exception:
                logger.exception(f"Unexpected error polling generation {job_id}")
                status = JobStatus.failed(POLL_FAILED_MESSAGE)
            attempts += 1

            if job_id not in self._active:
                logger.debug(f"Discarding stale poll result for generation {job_id}")
                return

            if status.state is JobState.RUNNING:
                await self._record_attempts(job_id, attempts)
                continue

            if status.state is JobState.COMPLETED and status.result_reference:
                await self._complete(job_id, status.result_reference)
            elif status.state is JobState.COMPLETED:
                await self._fail(job_id, NO_OUTPUT_MESSAGE)
            else:
                await self._fail(job_id, status.reason or VENDOR_FAILED_MESSAGE)
            return

        logger.warning(f"Generation {job_id} timed out after {attempts} polls")
        await self._fail(job_id, TIMEOUT_MESSAGE)

    # ─────────────────────────────────────────────────────────────
    # State writes (all guarded against terminal / deleted jobs)
    # ─────────────────────────────────────────────────────────────

    async def _record_attempts(self, job_id: str, attempts: int) -> None:
        job = await self._jobs.get(job_id)
        if job is None or job.is_terminal:
            return
        job.poll_attempts = attempts
        await self._jobs.save(job)

    async def _complete(self, job_id: str, result_reference: str) -> None:
        job = await self._jobs.get(job_id)
        if job is None or job.is_terminal:
            return
        job.mark_completed(result_reference, self._now())
        await self._jobs.save(job)
        logger.info(f"Generation {job_id} completed")

    async def _fail(self, job_id: str, reason: str) -> None:
        job = await self._jobs.get(job_id)
        if job is None or job.is_terminal:
            return
        job.mark_failed(reason, self._now())
        await self._jobs.save(job)
        logger.info(f"Generation {job_id} failed: {job.error_message}")
