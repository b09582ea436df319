"""Actor resolution from identity-provider bearer tokens."""
from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from uuid import UUID

from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .config import settings
from .domain_errors import UnauthenticatedError

logger = logging.getLogger(__name__)

# Bearer token scheme; a missing header is reported as a domain error, not a bare 403.
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
    """Authenticated caller passed explicitly into every workflow operation."""

    user_id: UUID
    org_id: UUID


def require_actor(actor: Actor | None) -> Actor:
    if actor is None or actor.user_id is None or actor.org_id is None:
        raise UnauthenticatedError()
    return actor


def decode_token(token: str) -> dict:
    """Decode and time-check an access token."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError:
        raise UnauthenticatedError("Could not validate credentials")

    now = int(time.time())
    exp = payload.get("exp")
    if exp is None:
        raise UnauthenticatedError("Could not validate credentials")
    try:
        exp_int = int(exp)
    except (TypeError, ValueError):
        raise UnauthenticatedError("Could not validate credentials")
    if now > exp_int + int(settings.JWT_LEEWAY_SECONDS):
        raise UnauthenticatedError("Token expired")

    iat = payload.get("iat")
    if iat is not None:
        try:
            iat_int = int(iat)
        except (TypeError, ValueError):
            raise UnauthenticatedError("Could not validate credentials")
        # Reject tokens issued far in the future (clock skew / malicious tokens).
        if iat_int > now + int(settings.JWT_LEEWAY_SECONDS):
            raise UnauthenticatedError("Could not validate credentials")
    return payload


def _parse_uuid_claim(payload: dict, claim: str) -> UUID:
    value = payload.get(claim)
    if not value:
        raise UnauthenticatedError("Could not validate credentials")
    try:
        return UUID(str(value))
    except ValueError:
        raise UnauthenticatedError("Could not validate credentials")


def actor_from_token(token: str) -> Actor:
    payload = decode_token(token)
    return Actor(
        user_id=_parse_uuid_claim(payload, "sub"),
        org_id=_parse_uuid_claim(payload, "org"),
    )


def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Actor:
    """Build the Actor for this request from the identity provider's token."""
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError()
    return actor_from_token(credentials.credentials)
