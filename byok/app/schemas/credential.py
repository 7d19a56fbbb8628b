# byok/app/schemas/credential.py
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from byok.app.providers.catalog import ProviderId


class CredentialStatus(str, Enum):
    UNSET = "unset"
    VALID = "valid"
    # Stored but undecryptable (key lost or regenerated): prompt re-entry
    INVALID = "invalid"


# Owner of credentials saved without a caller identity (in-process use)
LOCAL_USER_ID = "local"


class StoredCredential(BaseModel):
    """Vault record. Holds the Fernet token only, never the raw key."""
    model_config = ConfigDict(from_attributes=True)

    user_id: str = LOCAL_USER_ID
    provider_id: ProviderId
    ciphertext: str = Field(repr=False)
    display_name: str
    created_at: datetime


# Schema used when the UI saves a key
class CredentialSave(BaseModel):
    api_key: str
    display_name: Optional[str] = None


# Schema returned to the UI (NO ciphertext, NO plaintext)
class CredentialResponse(BaseModel):
    provider_id: ProviderId
    status: CredentialStatus
    display_name: Optional[str] = None
    created_at: Optional[datetime] = None


class CredentialSecretResponse(BaseModel):
    provider_id: ProviderId
    api_key: str
