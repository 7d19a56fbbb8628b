# byok/app/schemas/user.py
from typing import List, Optional

from pydantic import BaseModel


# Claims carried by the bearer token
class TokenPayload(BaseModel):
    sub: Optional[str] = None
    # Providers this user may generate with (profile allow-list)
    providers: List[str] = []


# The caller as seen by the services. Profiles live outside this service;
# the token is the only source of identity and allow-list.
class CurrentUser(BaseModel):
    id: str
    allowed_providers: List[str] = []
