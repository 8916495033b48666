from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from fastapi import status
from fastapi.responses import JSONResponse
from jose import JWTError, jwt

from src.secrets import AuthSettings, load_auth_settings

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "
IDENTITY_CLAIM = "email"


@dataclass(frozen=True)
class Principal:
    email: str


@dataclass(frozen=True)
class AdminPolicy:
    """Allow-list of identities permitted to write. Today it holds one address."""

    allowed: frozenset[str]

    def authorizes(self, principal: Principal) -> bool:
        return principal.email in self.allowed


def _extract_token(raw_header: Optional[str]) -> Optional[str]:
    if not raw_header or not raw_header.startswith(BEARER_PREFIX):
        return None
    token = raw_header[len(BEARER_PREFIX):]
    return token or None


def _decode_claims(token: str, *, secret: str, algorithm: str) -> Optional[Mapping[str, Any]]:
    if not secret:
        logger.error("SESSION_SECRET is not configured; rejecting bearer token.")
        return None
    try:
        return jwt.decode(token, secret, algorithms=[algorithm], options={"require_exp": True})
    except JWTError as exc:
        logger.debug("Bearer token rejected: %s", exc)
        return None


def _principal_from_claims(claims: Mapping[str, Any]) -> Optional[Principal]:
    identity = claims.get(IDENTITY_CLAIM)
    if not isinstance(identity, str) or not identity:
        return None
    return Principal(email=identity)


def verify(raw_header: Optional[str], settings: AuthSettings) -> Optional[Principal]:
    """
    Return the admin principal for a valid `Bearer <jwt>` header, else None.

    Signature, expiry, claim and policy failures all collapse to None so callers
    cannot tell why a credential was refused.
    """
    token = _extract_token(raw_header)
    if token is None:
        return None
    claims = _decode_claims(token, secret=settings.session_secret, algorithm=settings.algorithm)
    if claims is None:
        return None
    principal = _principal_from_claims(claims)
    if principal is None:
        return None
    if not AdminPolicy(allowed=settings.admin_emails).authorizes(principal):
        logger.warning("Bearer token identity is not an admin.")
        return None
    return principal


def unauthorized_response() -> JSONResponse:
    return JSONResponse({"error": "Unauthorized"}, status_code=status.HTTP_401_UNAUTHORIZED)


def authenticate_request(authorization: Optional[str]) -> Optional[Principal]:
    return verify(authorization, load_auth_settings())
