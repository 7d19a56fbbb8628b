from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt

from byok.app.core.config import Settings, settings as default_settings


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
    config: Optional[Settings] = None,
) -> str:
    config = config or default_settings
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def decode_access_token(token: str, config: Optional[Settings] = None) -> dict:
    """Raises jose.JWTError on a bad signature or an expired token."""
    config = config or default_settings
    return jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
