# byok/app/repositories/base.py
"""
Storage interfaces the vault and the orchestrator depend on.

Two implementations ship with the service:
- repositories.memory: process-local dicts (tests, ephemeral sessions)
- repositories.sql: SQLAlchemy async (SQLite file or PostgreSQL)

Repositories hand out copies: mutating a returned record never changes
stored state until it is saved back.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from byok.app.providers.catalog import ProviderId
from byok.app.schemas.credential import LOCAL_USER_ID, StoredCredential
from byok.app.schemas.generation import GenerationJob


class KeyStore(ABC):
    """Named opaque secrets (the vault's device key)."""

    @abstractmethod
    async def get(self, name: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set_if_absent(self, name: str, value: str) -> str:
        """Store value unless name already exists; return the stored value."""

    @abstractmethod
    async def delete(self, name: str) -> None:
        ...


class CredentialRepository(ABC):
    """Credentials keyed by (user_id, provider_id)."""

    @abstractmethod
    async def get(
        self, provider_id: ProviderId, user_id: str = LOCAL_USER_ID
    ) -> Optional[StoredCredential]:
        ...

    @abstractmethod
    async def put(self, credential: StoredCredential) -> None:
        """Insert or replace the credential for (user_id, provider_id)."""

    @abstractmethod
    async def delete(self, provider_id: ProviderId, user_id: str = LOCAL_USER_ID) -> bool:
        """Return True if a credential was removed."""

    @abstractmethod
    async def list(self, user_id: Optional[str] = None) -> List[StoredCredential]:
        """One user's credentials, or every stored credential when user_id is None."""

    @abstractmethod
    async def clear(self, user_id: Optional[str] = None) -> None:
        ...


class JobRepository(ABC):

    @abstractmethod
    async def add(self, job: GenerationJob) -> None:
        ...

    @abstractmethod
    async def get(self, job_id: str) -> Optional[GenerationJob]:
        ...

    @abstractmethod
    async def save(self, job: GenerationJob) -> bool:
        """Overwrite an existing job. Return False if it was deleted meanwhile."""

    @abstractmethod
    async def delete(self, job_id: str) -> bool:
        ...

    @abstractmethod
    async def list(
        self,
        provider_id: Optional[ProviderId] = None,
        user_id: Optional[str] = None,
    ) -> List[GenerationJob]:
        """Jobs newest first, optionally for one provider and/or one user."""

    @abstractmethod
    async def list_unfinished(self) -> List[GenerationJob]:
        """Jobs still pending or processing."""
