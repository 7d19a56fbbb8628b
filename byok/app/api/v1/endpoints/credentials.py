# byok/app/api/v1/endpoints/credentials.py
"""
API key management for the current device.

Keys are encrypted before they are stored; responses never include the
ciphertext. The plaintext is only returned by the explicit /secret endpoint
(the UI's "show key" toggle). Every route works on the caller's own keys only.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from byok.app.api import deps
from byok.app.providers.catalog import PROVIDERS, ProviderId
from byok.app.schemas.credential import (
    CredentialResponse,
    CredentialSave,
    CredentialSecretResponse,
    CredentialStatus,
)
from byok.app.schemas.user import CurrentUser
from byok.app.services.vault import CredentialVault

router = APIRouter()


async def _describe(
    vault: CredentialVault, provider_id: ProviderId, user_id: str, stored=None
) -> CredentialResponse:
    if stored is None:
        stored = {
            c.provider_id: c for c in await vault.list_credentials(user_id=user_id)
        }.get(provider_id)
    return CredentialResponse(
        provider_id=provider_id,
        status=await vault.status(provider_id, user_id=user_id),
        display_name=stored.display_name if stored else None,
        created_at=stored.created_at if stored else None,
    )


# 1. STATUS OF EVERY PROVIDER
@router.get("/", response_model=List[CredentialResponse])
async def list_credentials(
        vault: CredentialVault = Depends(deps.get_vault),
        current_user: CurrentUser = Depends(deps.get_current_user),
):
    stored = {c.provider_id: c for c in await vault.list_credentials(user_id=current_user.id)}
    return [
        await _describe(vault, provider_id, current_user.id, stored.get(provider_id))
        for provider_id in PROVIDERS
    ]


# 2. SAVE / REPLACE A KEY (PUT)
@router.put("/{provider_id}", response_model=CredentialResponse)
async def save_credential(
        provider_id: ProviderId,
        item_in: CredentialSave,
        vault: CredentialVault = Depends(deps.get_vault),
        current_user: CurrentUser = Depends(deps.get_current_user),
):
    stored = await vault.add_credential(
        provider_id, item_in.api_key, item_in.display_name, user_id=current_user.id
    )
    return await _describe(vault, provider_id, current_user.id, stored)


# 3. STATUS OF ONE PROVIDER
@router.get("/{provider_id}/status", response_model=CredentialResponse)
async def read_credential_status(
        provider_id: ProviderId,
        vault: CredentialVault = Depends(deps.get_vault),
        current_user: CurrentUser = Depends(deps.get_current_user),
):
    return await _describe(vault, provider_id, current_user.id)


# 4. REVEAL THE DECRYPTED KEY (the caller's own only)
@router.get("/{provider_id}/secret", response_model=CredentialSecretResponse)
async def read_credential_secret(
        provider_id: ProviderId,
        vault: CredentialVault = Depends(deps.get_vault),
        current_user: CurrentUser = Depends(deps.get_current_user),
):
    api_key = await vault.get_decrypted_credential(provider_id, user_id=current_user.id)
    if api_key is None:
        if await vault.status(provider_id, user_id=current_user.id) is CredentialStatus.INVALID:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Stored API key can no longer be decrypted. Enter it again.",
            )
        raise HTTPException(status_code=404, detail="No API key stored for this provider")
    return CredentialSecretResponse(provider_id=provider_id, api_key=api_key)


# 5. REMOVE A KEY (DELETE)
@router.delete("/{provider_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_credential(
        provider_id: ProviderId,
        vault: CredentialVault = Depends(deps.get_vault),
        current_user: CurrentUser = Depends(deps.get_current_user),
):
    await vault.remove_credential(provider_id, user_id=current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# 6. FORGET ALL OF THE CALLER'S KEYS
@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
async def reset_vault(
        vault: CredentialVault = Depends(deps.get_vault),
        current_user: CurrentUser = Depends(deps.get_current_user),
):
    await vault.reset(user_id=current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
