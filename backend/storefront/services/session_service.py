# Overview: Service-layer operations for the client session; owns the Identity lifecycle and the persisted credential.

"""
Session Store

Owns who is signed in on this client:
- Decodes the bearer credential (three-segment signed token) into an Identity
- Persists the credential under a fixed storage key across restarts
- Login / logout / register / sign-in / profile refresh

DECODE: All-or-nothing. A credential that is not exactly three segments,
whose middle segment is not base64url, whose payload is not JSON, or whose
JSON lacks a nested `data` object never yields a partial Identity. The
signature is not verified here; the remote API does that on every call.

LOADING: `loading` is True until bootstrap() has run and while a gateway
call is in flight. Guards must treat loading as "not yet known", never as
"unauthenticated".

ERRORS: Malformed credentials are handled here (persisted copy removed,
error message set) and never raised. Gateway errors set `error` and are
re-raised for the view layer; identity and credential keep their pre-call
values.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
import threading
from typing import Any, Callable

from ..schemas import Identity
from ..validation import ValidationError
from .gateway_service import GatewayError, MarketplaceGateway
from .storage_service import CredentialStorage

logger = logging.getLogger(__name__)


INVALID_TOKEN_MESSAGE = "Invalid or malformed credential."
UNDECODABLE_TOKEN_MESSAGE = "Credential could not be decoded after sign-in."
MISSING_TOKEN_MESSAGE = "No credential received from the API."
MISSING_USER_MESSAGE = "No user received from the API."
NOT_SIGNED_IN_MESSAGE = "Authentication credential missing. Please sign in."

_BASE64URL_SEGMENT = re.compile(r"^[A-Za-z0-9_-]+={0,2}$")


class AuthenticationRequiredError(Exception):
    """Raised when an operation needs a signed-in identity and there is none."""

    def __init__(self, message: str = NOT_SIGNED_IN_MESSAGE):
        super().__init__(message)
        self.message = message


class SessionNotReadyError(Exception):
    """Raised when an operation needs a settled session and bootstrap or a sign-in call is still running."""

    def __init__(self, message: str = "Session is loading"):
        super().__init__(message)
        self.message = message


def has_credential_shape(token: Any) -> bool:
    """True for a non-empty string with exactly two '.' separators."""
    return isinstance(token, str) and bool(token) and token.count(".") == 2


def _b64url_decode(segment: str) -> bytes:
    if not _BASE64URL_SEGMENT.match(segment):
        raise ValueError("segment is not base64url")
    padded = segment.rstrip("=") + "=" * (-len(segment.rstrip("=")) % 4)
    return base64.urlsafe_b64decode(padded)


def decode_credential(token: Any) -> Identity | None:
    """
    Decode a credential into an Identity, or return None.

    Never raises: every structural problem (shape, base64url, UTF-8, JSON,
    missing `data` object, unusable id/role_id) maps to None.
    """
    if not has_credential_shape(token):
        return None

    payload_segment = token.split(".")[1]
    try:
        raw = _b64url_decode(payload_segment)
        decoded = json.loads(raw.decode("utf-8"))
    except (ValueError, binascii.Error):
        # UnicodeDecodeError and JSONDecodeError are ValueErrors
        return None

    if not isinstance(decoded, dict) or not isinstance(decoded.get("data"), dict):
        return None

    try:
        return Identity.from_token_data(decoded["data"])
    except ValidationError:
        return None


class SessionView:
    """
    Read-only view of the session for guards, checkout and templates.

    Exposes state only; holds no mutating operations.
    """

    def __init__(self, store: "SessionStore"):
        self._store = store

    @property
    def identity(self) -> Identity | None:
        return self._store.identity

    @property
    def is_authenticated(self) -> bool:
        return self._store.is_authenticated

    @property
    def loading(self) -> bool:
        return self._store.loading

    @property
    def error(self) -> str | None:
        return self._store.error

    def to_dict(self) -> dict:
        return self._store.to_dict()


class SessionStore:
    """
    Process-wide session owned by the application root.

    Mutating operations are serialized with a re-entrant lock so that two
    concurrent logins cannot interleave their persist/decode steps.
    """

    def __init__(self, storage: CredentialStorage, gateway: MarketplaceGateway | None = None):
        self._storage = storage
        self._gateway = gateway
        self._lock = threading.RLock()
        self._identity: Identity | None = None
        self._authenticated = False
        self._loading = True
        self._error: str | None = None
        self._view = SessionView(self)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def token(self) -> str | None:
        """The persisted credential (needs an app context)."""
        return self._storage.get()

    def view(self) -> SessionView:
        return self._view

    def to_dict(self) -> dict:
        return {
            "loading": self._loading,
            "authenticated": self._authenticated,
            "user": self._identity.to_dict() if self._identity else None,
            "error": self._error,
        }

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def bootstrap(self) -> Identity | None:
        """
        One-shot startup: restore the session from the persisted credential.

        Always ends with loading cleared, whether or not a credential was found.
        """
        with self._lock:
            try:
                token = self._storage.get()
                if not token:
                    return None

                identity = decode_credential(token)
                if identity is None:
                    logger.warning("Persisted credential could not be decoded; removing it")
                    self._storage.remove()
                    return None

                self._identity = identity
                self._authenticated = True
                logger.info("Session restored for user %s", identity.id)
                return identity
            finally:
                self._loading = False

    def login(self, token: Any) -> Identity | None:
        """
        Adopt a credential as the current session.

        Returns the decoded Identity, or None after setting `error` when the
        credential is malformed. A rejected credential is never left persisted.
        """
        with self._lock:
            if not has_credential_shape(token):
                logger.warning("Rejected credential with invalid shape")
                self._clear_locked()
                self._error = INVALID_TOKEN_MESSAGE
                return None

            self._storage.set(token)
            identity = decode_credential(token)
            if identity is None:
                logger.warning("Rejected credential that could not be decoded")
                self._clear_locked()
                self._error = UNDECODABLE_TOKEN_MESSAGE
                return None

            self._identity = identity
            self._authenticated = True
            self._error = None
            logger.info("Signed in as user %s", identity.id)
            return identity

    def logout(self) -> None:
        """Clear the persisted credential and the identity. Idempotent."""
        with self._lock:
            was_signed_in = self._authenticated
            self._clear_locked()
            if was_signed_in:
                logger.info("Signed out")

    def _clear_locked(self) -> None:
        self._storage.remove()
        self._identity = None
        self._authenticated = False
        self._error = None

    # -------------------------------------------------------------------------
    # Gateway-backed operations
    # -------------------------------------------------------------------------

    def register_with_credentials(self, payload: dict) -> Identity:
        """
        Register a new account and sign in with the returned credential.

        Returns the `user` object from the API response. The session identity
        is the one decoded from the credential; the two may differ in fields.
        """
        return self._exchange(lambda: self._require_gateway().register(payload))

    def sign_in_with_credentials(self, email: str, password: str) -> Identity:
        """Sign in with email/password. Returns the API's `user` object."""
        return self._exchange(lambda: self._require_gateway().sign_in(email, password))

    def update_profile(self, user_id: int, fields: dict) -> Identity:
        """
        Update profile fields on the API and replace the identity wholesale
        with the user object the API returns.
        """
        with self._lock:
            self._begin_call()
            try:
                token = self._storage.get()
                if not token or not self._authenticated:
                    raise AuthenticationRequiredError()
                identity = self._require_gateway().update_profile(token, user_id, fields)
                self._identity = identity
                return identity
            except (GatewayError, AuthenticationRequiredError) as exc:
                self._error = exc.message
                raise
            finally:
                self._loading = False

    def _exchange(self, call: Callable[[], dict]) -> Identity:
        with self._lock:
            self._begin_call()
            try:
                body = call()
                token = body.get("token")
                if not token:
                    raise GatewayError(MISSING_TOKEN_MESSAGE)
                if not isinstance(body.get("user"), dict):
                    raise GatewayError(MISSING_USER_MESSAGE)
                try:
                    user = Identity.from_user(body["user"])
                except ValidationError as exc:
                    raise GatewayError(f"Malformed user in API response: {exc}") from exc

                if self.login(token) is None:
                    raise GatewayError(self._error or INVALID_TOKEN_MESSAGE)
                return user
            except GatewayError as exc:
                self._error = exc.message
                raise
            finally:
                self._loading = False

    def _begin_call(self) -> None:
        self._loading = True
        self._error = None

    def _require_gateway(self) -> MarketplaceGateway:
        if self._gateway is None:
            raise GatewayError("No marketplace API configured")
        return self._gateway
