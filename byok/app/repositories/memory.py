# byok/app/repositories/memory.py
from typing import Dict, List, Optional, Tuple

from byok.app.providers.catalog import ProviderId
from byok.app.repositories.base import CredentialRepository, JobRepository, KeyStore
from byok.app.schemas.credential import LOCAL_USER_ID, StoredCredential
from byok.app.schemas.generation import GenerationJob


class InMemoryKeyStore(KeyStore):
    def __init__(self):
        self._values: Dict[str, str] = {}

    async def get(self, name: str) -> Optional[str]:
        return self._values.get(name)

    async def set_if_absent(self, name: str, value: str) -> str:
        return self._values.setdefault(name, value)

    async def delete(self, name: str) -> None:
        self._values.pop(name, None)


class InMemoryCredentialRepository(CredentialRepository):
    def __init__(self):
        self._credentials: Dict[Tuple[str, ProviderId], StoredCredential] = {}

    async def get(
        self, provider_id: ProviderId, user_id: str = LOCAL_USER_ID
    ) -> Optional[StoredCredential]:
        credential = self._credentials.get((user_id, provider_id))
        return credential.model_copy() if credential else None

    async def put(self, credential: StoredCredential) -> None:
        key = (credential.user_id, credential.provider_id)
        self._credentials[key] = credential.model_copy()

    async def delete(self, provider_id: ProviderId, user_id: str = LOCAL_USER_ID) -> bool:
        return self._credentials.pop((user_id, provider_id), None) is not None

    async def list(self, user_id: Optional[str] = None) -> List[StoredCredential]:
        return [
            credential.model_copy()
            for (owner, _), credential in sorted(self._credentials.items())
            if user_id is None or owner == user_id
        ]

    async def clear(self, user_id: Optional[str] = None) -> None:
        if user_id is None:
            self._credentials.clear()
            return
        for key in [key for key in self._credentials if key[0] == user_id]:
            del self._credentials[key]


class InMemoryJobRepository(JobRepository):
    def __init__(self):
        # Insertion order is submission order; listing reverses it
        self._jobs: Dict[str, GenerationJob] = {}

    async def add(self, job: GenerationJob) -> None:
        self._jobs[job.id] = job.model_copy(deep=True)

    async def get(self, job_id: str) -> Optional[GenerationJob]:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    async def save(self, job: GenerationJob) -> bool:
        if job.id not in self._jobs:
            return False
        self._jobs[job.id] = job.model_copy(deep=True)
        return True

    async def delete(self, job_id: str) -> bool:
        return self._jobs.pop(job_id, None) is not None

    async def list(
        self,
        provider_id: Optional[ProviderId] = None,
        user_id: Optional[str] = None,
    ) -> List[GenerationJob]:
        jobs = reversed(list(self._jobs.values()))
        return [
            job.model_copy(deep=True)
            for job in jobs
            if (provider_id is None or job.provider_id == provider_id)
            and (user_id is None or job.user_id == user_id)
        ]

    async def list_unfinished(self) -> List[GenerationJob]:
        return [job.model_copy(deep=True) for job in self._jobs.values() if not job.is_terminal]
