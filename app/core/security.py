"""
JWT handling for callers of the ledger.

Tokens are issued by the school's auth service; the ledger only needs to
verify them and read who the caller is, what role they act in, and which
tenant (school) they belong to.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.core.config import settings

_ALGORITHM = settings.ALGORITHM
_SECRET = settings.SECRET_KEY


@dataclass(frozen=True)
class Actor:
    """The authenticated caller performing an operation."""

    id: str
    role: str
    tenant_id: str
    name: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.id


def create_access_token(
    subject: str,
    *,
    role: str,
    tenant_id: str | None = None,
    name: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    claims = {
        "exp": expire,
        "sub": str(subject),
        "type": "access",
        "role": role,
        "tenant": tenant_id or settings.DEFAULT_TENANT_ID,
    }
    if name:
        claims["name"] = name
    return jwt.encode(claims, _SECRET, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Return payload dict if *access* token is valid, else ``None``."""
    try:
        payload = jwt.decode(token, _SECRET, algorithms=[_ALGORITHM])
        if payload.get("type") != "access":
            return None
        return payload
    except JWTError:
        return None


def actor_from_payload(payload: dict) -> Actor | None:
    subject = payload.get("sub")
    role = payload.get("role")
    if not subject or not role:
        return None
    return Actor(
        id=str(subject),
        role=str(role),
        tenant_id=str(payload.get("tenant") or settings.DEFAULT_TENANT_ID),
        name=payload.get("name"),
    )
