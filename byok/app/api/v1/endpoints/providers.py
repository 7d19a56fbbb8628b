# byok/app/api/v1/endpoints/providers.py
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from byok.app.api import deps
from byok.app.providers.catalog import PROVIDERS, ProviderId
from byok.app.schemas.credential import CredentialStatus
from byok.app.schemas.user import CurrentUser
from byok.app.services.authorization import ProviderAuthorizer
from byok.app.services.vault import CredentialVault

router = APIRouter()


class ProviderResponse(BaseModel):
    id: ProviderId
    name: str
    description: str
    docs_url: str
    max_duration: int
    supported_durations: List[int]
    supported_aspect_ratios: List[str]
    credential_status: CredentialStatus
    # Allowed for this user AND switched on by the administrator
    allowed: bool


@router.get("/", response_model=List[ProviderResponse])
async def read_providers(
        vault: CredentialVault = Depends(deps.get_vault),
        authorizer: ProviderAuthorizer = Depends(deps.get_authorizer),
        current_user: CurrentUser = Depends(deps.get_current_user),
):
    return [
        ProviderResponse(
            id=provider_id,
            name=capabilities.name,
            description=capabilities.description,
            docs_url=capabilities.docs_url,
            max_duration=capabilities.max_duration,
            supported_durations=list(capabilities.duration_options),
            supported_aspect_ratios=list(capabilities.aspect_ratio_values),
            credential_status=await vault.status(provider_id, user_id=current_user.id),
            allowed=authorizer.is_provider_allowed(current_user, provider_id),
        )
        for provider_id, capabilities in PROVIDERS.items()
    ]
