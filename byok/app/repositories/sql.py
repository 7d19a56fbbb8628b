# byok/app/repositories/sql.py
"""
SQLAlchemy async repositories.

Each call opens its own short-lived session from the factory, so a poll
loop and an API request never share a session or a transaction.
"""
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from byok.app.models.credential import StoredCredentialRow
from byok.app.models.encryption_key import EncryptionKeyRow
from byok.app.models.generation_job import GenerationJobRow
from byok.app.providers.catalog import ProviderId
from byok.app.repositories.base import CredentialRepository, JobRepository, KeyStore
from byok.app.schemas.credential import LOCAL_USER_ID, StoredCredential
from byok.app.schemas.generation import GenerationJob, GenerationStatus


class SqlKeyStore(KeyStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, name: str) -> Optional[str]:
        async with self._session_factory() as db:
            row = await db.get(EncryptionKeyRow, name)
            return row.value if row else None

    async def set_if_absent(self, name: str, value: str) -> str:
        while True:
            async with self._session_factory() as db:
                existing = await db.get(EncryptionKeyRow, name)
                if existing:
                    return existing.value

                db.add(EncryptionKeyRow(name=name, value=value))
                try:
                    await db.commit()
                    return value
                except IntegrityError:
                    # Another writer inserted first: re-read, or insert again
                    # if their row is already gone
                    await db.rollback()

    async def delete(self, name: str) -> None:
        async with self._session_factory() as db:
            await db.execute(delete(EncryptionKeyRow).where(EncryptionKeyRow.name == name))
            await db.commit()


class SqlCredentialRepository(CredentialRepository):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(
        self, provider_id: ProviderId, user_id: str = LOCAL_USER_ID
    ) -> Optional[StoredCredential]:
        async with self._session_factory() as db:
            row = await db.get(
                StoredCredentialRow,
                {"user_id": user_id, "provider_id": ProviderId(provider_id).value},
            )
            return StoredCredential.model_validate(row) if row else None

    async def put(self, credential: StoredCredential) -> None:
        async with self._session_factory() as db:
            await db.merge(
                StoredCredentialRow(
                    user_id=credential.user_id,
                    provider_id=credential.provider_id.value,
                    ciphertext=credential.ciphertext,
                    display_name=credential.display_name,
                    created_at=credential.created_at,
                )
            )
            await db.commit()

    async def delete(self, provider_id: ProviderId, user_id: str = LOCAL_USER_ID) -> bool:
        async with self._session_factory() as db:
            result = await db.execute(
                delete(StoredCredentialRow).where(
                    StoredCredentialRow.user_id == user_id,
                    StoredCredentialRow.provider_id == ProviderId(provider_id).value,
                )
            )
            await db.commit()
            return result.rowcount > 0

    async def list(self, user_id: Optional[str] = None) -> List[StoredCredential]:
        query = select(StoredCredentialRow)
        if user_id is not None:
            query = query.where(StoredCredentialRow.user_id == user_id)
        query = query.order_by(StoredCredentialRow.user_id, StoredCredentialRow.provider_id)

        async with self._session_factory() as db:
            result = await db.execute(query)
            return [StoredCredential.model_validate(row) for row in result.scalars().all()]

    async def clear(self, user_id: Optional[str] = None) -> None:
        query = delete(StoredCredentialRow)
        if user_id is not None:
            query = query.where(StoredCredentialRow.user_id == user_id)

        async with self._session_factory() as db:
            await db.execute(query)
            await db.commit()


def _apply(row: GenerationJobRow, job: GenerationJob) -> GenerationJobRow:
    row.user_id = job.user_id
    row.provider_id = job.provider_id.value
    row.prompt = job.prompt
    row.settings = job.settings.model_dump()
    row.status = job.status.value
    row.provider_handle = job.provider_handle
    row.poll_attempts = job.poll_attempts
    row.result_reference = job.result_reference
    row.error_message = job.error_message
    row.created_at = job.created_at
    row.completed_at = job.completed_at
    return row


class SqlJobRepository(JobRepository):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def add(self, job: GenerationJob) -> None:
        async with self._session_factory() as db:
            db.add(_apply(GenerationJobRow(id=job.id), job))
            await db.commit()

    async def get(self, job_id: str) -> Optional[GenerationJob]:
        async with self._session_factory() as db:
            row = await db.get(GenerationJobRow, job_id)
            return GenerationJob.model_validate(row) if row else None

    async def save(self, job: GenerationJob) -> bool:
        async with self._session_factory() as db:
            row = await db.get(GenerationJobRow, job.id)
            if not row:
                return False
            _apply(row, job)
            await db.commit()
            return True

    async def delete(self, job_id: str) -> bool:
        async with self._session_factory() as db:
            result = await db.execute(
                delete(GenerationJobRow).where(GenerationJobRow.id == job_id)
            )
            await db.commit()
            return result.rowcount > 0

    async def list(
        self,
        provider_id: Optional[ProviderId] = None,
        user_id: Optional[str] = None,
    ) -> List[GenerationJob]:
        query = select(GenerationJobRow)
        if provider_id is not None:
            query = query.where(GenerationJobRow.provider_id == ProviderId(provider_id).value)
        if user_id is not None:
            query = query.where(GenerationJobRow.user_id == user_id)
        query = query.order_by(GenerationJobRow.created_at.desc())

        async with self._session_factory() as db:
            result = await db.execute(query)
            return [GenerationJob.model_validate(row) for row in result.scalars().all()]

    async def list_unfinished(self) -> List[GenerationJob]:
        query = select(GenerationJobRow).where(
            GenerationJobRow.status.in_(
                [GenerationStatus.PENDING.value, GenerationStatus.PROCESSING.value]
            )
        ).order_by(GenerationJobRow.created_at)

        async with self._session_factory() as db:
            result = await db.execute(query)
            return [GenerationJob.model_validate(row) for row in result.scalars().all()]
