# byok/app/services/vault.py
"""
Credential vault: provider API keys encrypted at rest under one device key.

Contract:
- add/remove raise on misuse (ValidationError for an empty key)
- get_decrypted_credential NEVER raises for decryption problems; a key that
  cannot be decrypted (device key lost or regenerated, corrupted token) is
  reported as None / CredentialStatus.INVALID so the UI can ask for re-entry
- credentials belong to one user each (user_id, "local" when the caller has
  no identity); a user only ever sees and decrypts their own
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from byok.app.core.config import settings
from byok.app.core.errors import ValidationError
from byok.app.providers.catalog import PROVIDERS, parse_provider_id
from byok.app.repositories.base import CredentialRepository, KeyStore
from byok.app.schemas.credential import LOCAL_USER_ID, CredentialStatus, StoredCredential
from byok.app.security import cipher

logger = logging.getLogger(__name__)


def _owner(user_id: Optional[str]) -> str:
    return user_id or LOCAL_USER_ID


class CredentialVault:
    """Service for storing provider API keys."""

    def __init__(
        self,
        credentials: CredentialRepository,
        keys: KeyStore,
        key_name: Optional[str] = None,
    ):
        self._credentials = credentials
        self._keys = keys
        self._key_name = key_name or settings.ENCRYPTION_KEY_NAME
        self._key_lock = asyncio.Lock()

    async def ensure_encryption_key(self) -> str:
        """
        Return the device key, creating it on first use.

        Concurrent callers all observe the same key: creation is serialized
        by the lock, and set_if_absent keeps the first key written even if
        another process races us on the same database.
        """
        key = await self._keys.get(self._key_name)
        if key:
            return key

        async with self._key_lock:
            key = await self._keys.get(self._key_name)
            if key:
                return key
            key = await self._keys.set_if_absent(self._key_name, cipher.generate_encryption_key())
            logger.info("Generated new vault encryption key")
            return key

    async def add_credential(
        self,
        provider_id,
        raw_key: str,
        display_name: Optional[str] = None,
        *,
        user_id: Optional[str] = None,
    ) -> StoredCredential:
        """
        Encrypt and store a provider key, replacing any existing one.

        Args:
            provider_id: ProviderId or its string value
            raw_key: The plaintext API key (surrounding whitespace is dropped)
            display_name: Label for the UI; defaults to the provider name
            user_id: Owner of the key; defaults to the local device user

        Raises:
            ValidationError: unknown provider or empty key
        """
        provider = parse_provider_id(provider_id)
        if raw_key is None or not raw_key.strip():
            raise ValidationError("API key must not be empty.")

        key = await self.ensure_encryption_key()
        credential = StoredCredential(
            user_id=_owner(user_id),
            provider_id=provider,
            ciphertext=cipher.encrypt(raw_key.strip(), key),
            display_name=(display_name or "").strip() or PROVIDERS[provider].name,
            created_at=datetime.now(timezone.utc),
        )
        await self._credentials.put(credential)

        logger.info(f"Stored API key '{credential.display_name}' for {provider.value}")
        return credential

    async def remove_credential(self, provider_id, *, user_id: Optional[str] = None) -> None:
        provider = parse_provider_id(provider_id)
        if await self._credentials.delete(provider, _owner(user_id)):
            logger.info(f"Removed API key for {provider.value}")

    async def get_decrypted_credential(
        self, provider_id, *, user_id: Optional[str] = None
    ) -> Optional[str]:
        provider = parse_provider_id(provider_id)
        credential = await self._credentials.get(provider, _owner(user_id))
        if credential is None:
            return None

        # Read-only path: never create a key here, a missing key just means
        # the stored token can no longer be decrypted
        key = await self._keys.get(self._key_name)
        if not key:
            logger.warning(f"API key for {provider.value} is unreadable: no encryption key")
            return None

        plaintext = cipher.decrypt(credential.ciphertext, key)
        if not plaintext:
            logger.warning(f"API key for {provider.value} could not be decrypted")
            return None
        return plaintext

    async def has_credential(self, provider_id, *, user_id: Optional[str] = None) -> bool:
        credential = await self._credentials.get(parse_provider_id(provider_id), _owner(user_id))
        return credential is not None

    async def status(self, provider_id, *, user_id: Optional[str] = None) -> CredentialStatus:
        if not await self.has_credential(provider_id, user_id=user_id):
            return CredentialStatus.UNSET
        if await self.get_decrypted_credential(provider_id, user_id=user_id) is None:
            return CredentialStatus.INVALID
        return CredentialStatus.VALID

    async def list_credentials(self, *, user_id: Optional[str] = None) -> List[StoredCredential]:
        """Stored credential metadata; ciphertext stays in the records."""
        return await self._credentials.list(_owner(user_id))

    async def reset(self, *, user_id: Optional[str] = None) -> None:
        """
        Forget every credential of one user.

        The device key is shared by all users, so it is dropped only once no
        credential is left under it.
        """
        owner = _owner(user_id)
        async with self._key_lock:
            await self._credentials.clear(owner)
            logger.info(f"Vault reset: removed every API key of user {owner}")
            if not await self._credentials.list():
                await self._keys.delete(self._key_name)
                logger.info("Vault reset: no API keys left, encryption key removed")
