# byok/app/api/deps.py
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from pydantic import ValidationError

from byok.app.core.config import Settings, settings
from byok.app.schemas.user import CurrentUser, TokenPayload
from byok.app.security import jwt
from byok.app.services.authorization import ProviderAuthorizer
from byok.app.services.orchestrator import GenerationOrchestrator
from byok.app.services.vault import CredentialVault

# Tokens are issued by the surrounding platform (profile service);
# tokenUrl only documents where they come from.
reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login"
)


def get_config(request: Request) -> Settings:
    return request.app.state.config


async def get_current_user(
        token: str = Depends(reusable_oauth2),
        config: Settings = Depends(get_config),
) -> CurrentUser:
    try:
        payload = jwt.decode_access_token(token, config)
        token_data = TokenPayload(**payload)
    except (JWTError, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Could not validate credentials",
        )

    if not token_data.sub:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Could not validate credentials",
        )

    return CurrentUser(id=token_data.sub, allowed_providers=token_data.providers)


def get_vault(request: Request) -> CredentialVault:
    return request.app.state.vault


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    return request.app.state.orchestrator


def get_authorizer(request: Request) -> ProviderAuthorizer:
    return request.app.state.authorizer
