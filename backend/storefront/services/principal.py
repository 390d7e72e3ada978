"""Identity of the caller, resolved once per request.

A session token is verified; an owner id sent by the client is only asserted. The two are
kept apart in ``PrincipalTrust`` so a handler has to opt in to trusting the weaker one.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import StrEnum

from jose import JWTError
from jose import jwt as jose_jwt
from pydantic import BaseModel, ConfigDict

from store_common.core.config_service import AuthSection
from store_common.utils import get_logger
from storefront.errors import StoreErrors
from storefront.services.sanitizer import sanitize_owner_id

logger = get_logger()

SESSION_ALGORITHM = "HS256"
SESSION_TTL = timedelta(hours=2)


class PrincipalTrust(StrEnum):
    SESSION = "session"
    CLIENT_ASSERTED = "client_asserted"


class Principal(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner_id: str
    trust: PrincipalTrust

    @property
    def is_session(self) -> bool:
        return self.trust == PrincipalTrust.SESSION


class SessionTokens:
    """HS256 session tokens whose ``sub`` is the owner id."""

    def __init__(self, secret: str) -> None:
        self._secret = secret

    @property
    def enabled(self) -> bool:
        return bool(self._secret)

    def issue(self, owner_id: str, ttl: timedelta = SESSION_TTL) -> str:
        expires = datetime.now(UTC) + ttl
        return jose_jwt.encode({"sub": owner_id, "exp": int(expires.timestamp())}, self._secret, algorithm=SESSION_ALGORITHM)

    def verify(self, token: str) -> str:
        try:
            payload = jose_jwt.decode(token, self._secret, algorithms=[SESSION_ALGORITHM])
        except JWTError as e:
            logger.warning("Session token rejected", error=str(e))
            raise StoreErrors.Auth.INVALID_SESSION.create(cause=e) from e
        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise StoreErrors.Auth.INVALID_SESSION.create()
        return subject


class PrincipalResolver:
    def __init__(self, auth: AuthSection) -> None:
        self.allow_client_asserted = auth.allow_client_asserted
        self.tokens = SessionTokens(auth.session_secret)

    def resolve(self, *, bearer_token: str | None, asserted_id: str | None) -> Principal | None:
        """The caller's principal, or None when the request carries no identity at all."""
        if bearer_token and self.tokens.enabled:
            owner_id = sanitize_owner_id(self.tokens.verify(bearer_token))
            return Principal(owner_id=owner_id, trust=PrincipalTrust.SESSION)

        if asserted_id and self.allow_client_asserted:
            return Principal(owner_id=sanitize_owner_id(asserted_id), trust=PrincipalTrust.CLIENT_ASSERTED)

        return None
