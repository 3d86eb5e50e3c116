from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from ranchtrade.core.config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, JWT_SECRET
from ranchtrade.core.errors import AuthInvalid

# auto_error=False: a missing header is rejected by the trade engine as an
# invalid token (403) rather than by FastAPI (401).
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth", auto_error=False)


def create_access_token(subject: str, additional_claims: Optional[Dict[str, Any]] = None,
                        expires_minutes: Optional[int] = None) -> str:
    expire_delta = expires_minutes if expires_minutes is not None else ACCESS_TOKEN_EXPIRE_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=expire_delta)
    to_encode: Dict[str, Any] = {"sub": subject, "exp": expire, "jti": str(uuid.uuid4())}
    if additional_claims:
        to_encode.update(additional_claims)
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])


def _strip_scheme(token: str) -> str:
    # Badge clients send the raw token without the "Bearer " scheme
    scheme, _, rest = token.partition(" ")
    return rest.strip() if scheme.lower() == "bearer" and rest else token.strip()


def verify_token(token: Optional[str]) -> str:
    """Return the player key carried by `token` or raise AuthInvalid."""
    if not token:
        raise AuthInvalid()
    try:
        payload = decode_token(_strip_scheme(token))
    except JWTError:
        raise AuthInvalid()
    key = payload.get("sub")
    if not key:
        raise AuthInvalid()
    return str(key)


async def get_bearer_token(request: Request, token: Optional[str] = Depends(oauth2_scheme)) -> Optional[str]:
    """Bearer token if present, else the raw Authorization header value."""
    return token or request.headers.get("Authorization")


__all__ = [
    "oauth2_scheme",
    "create_access_token",
    "decode_token",
    "verify_token",
    "get_bearer_token",
]
