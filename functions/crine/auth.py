"""
Bridge from Firebase ID tokens to session principals.

Token verification is delegated to firebase_admin; this module only turns the
verified claims into a Principal and pushes it into a SessionContext.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from firebase_admin import auth

from crine.errors import UnauthenticatedError
from crine.session import SessionContext
from shared.types import Principal

logger = logging.getLogger(__name__)


def bearer_token(header: Optional[str]) -> Optional[str]:
    """Extracts the token from an ``Authorization: Bearer <token>`` header."""
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthenticatedError("Missing or invalid Authorization header.")
    return token.strip()


class IdTokenAuthenticator:
    def __init__(
        self,
        verify: Callable[..., Dict[str, Any]] = auth.verify_id_token,
        check_revoked: bool = False,
    ):
        self._verify = verify
        self._check_revoked = check_revoked

    def principal_from_token(self, id_token: str) -> Principal:
        """
        Verifies a Firebase ID token and returns its principal.

        Raises:
            UnauthenticatedError: if the token is invalid, expired, revoked or
                belongs to a disabled user. Certificate fetch failures are
                backend errors and propagate as-is.
        """
        try:
            claims = self._verify(id_token, check_revoked=self._check_revoked)
        except (auth.InvalidIdTokenError, auth.UserDisabledError) as e:
            logger.warning(f"Rejected ID token: {e}")
            raise UnauthenticatedError("Invalid or expired ID token.") from e
        except ValueError as e:
            logger.warning(f"Malformed ID token: {e}")
            raise UnauthenticatedError("Invalid or expired ID token.") from e
        return Principal.from_claims(claims)

    def sign_in(self, session: SessionContext, id_token: str) -> Principal:
        principal = self.principal_from_token(id_token)
        session.set_principal(principal)
        return principal
