"""Identity provider clients and the session holder."""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from feelgood.event_bus import EventBus
from feelgood.result import Result
from feelgood.storage import Identity
from feelgood.transport import Sender, TransportError, encode_json, post

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1/"

IdentityListener = Callable[[Identity | None], Awaitable[None] | None]

# Identity Toolkit error codes mapped to messages fit for display.
_FIREBASE_MESSAGES = {
    "EMAIL_EXISTS": "The email address is already in use by another account.",
    "EMAIL_NOT_FOUND": "There is no user record corresponding to this email.",
    "INVALID_PASSWORD": "The password is invalid.",
    "INVALID_LOGIN_CREDENTIALS": "The email or password is incorrect.",
    "INVALID_EMAIL": "The email address is badly formatted.",
    "USER_DISABLED": "The user account has been disabled.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Try again later.",
}


class IdentityError(RuntimeError):
    """Raised when the identity provider rejects a request."""


class IdentityProvider(ABC):
    """Authentication backend with an identity change notification."""

    def __init__(self) -> None:
        self._listeners: list[IdentityListener] = []
        self.current: Identity | None = None

    def add_listener(self, listener: IdentityListener) -> None:
        """Register ``listener`` for identity transitions."""
        self._listeners.append(listener)

    async def _set_current(self, identity: Identity | None) -> None:
        """Update the current identity, notifying listeners once per transition."""
        previous = self.current.uid if self.current else None
        self.current = identity
        if previous == (identity.uid if identity else None):
            return
        for listener in list(self._listeners):
            result = listener(identity)
            if inspect.isawaitable(result):
                await result

    async def restore(self, identity: Identity) -> None:
        """Re-establish a cached identity without contacting the backend."""
        await self._set_current(identity)

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Identity:
        """Authenticate with email and password."""

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> Identity:
        """Create an account and sign it in."""

    @abstractmethod
    async def sign_out(self) -> None:
        """Forget the current identity."""


class FirebaseIdentityProvider(IdentityProvider):
    """Firebase Authentication over the Identity Toolkit REST API."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = IDENTITY_TOOLKIT_URL,
        timeout: float = 10.0,
        sender: Sender = post,
    ) -> None:
        """Configure the Firebase client.

        Args:
            api_key: Web API key of the Firebase project.
            base_url: Identity Toolkit base URL.
            timeout: Request timeout in seconds.
            sender: Coroutine performing the HTTP POST.

        Raises:
            ValueError: If the API key is empty.

        """
        super().__init__()
        if not api_key:
            raise ValueError("Firebase API key must be provided")
        self.api_key = api_key
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout
        self._send = sender

    async def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}accounts:{method}?key={self.api_key}"
        data, headers = encode_json(payload)
        try:
            response = await self._send(url, data, headers, timeout=self.timeout)
        except TransportError as exc:
            raise IdentityError(str(exc)) from exc
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        if not response.ok:
            code = str(body.get("error", {}).get("message", response.status))
            # Codes may carry details after a colon, e.g. "WEAK_PASSWORD : ...".
            key = code.split(":", 1)[0].strip()
            raise IdentityError(_FIREBASE_MESSAGES.get(key, code))
        return body

    async def _authenticate(self, method: str, email: str, password: str) -> Identity:
        body = await self._call(
            method, {"email": email, "password": password, "returnSecureToken": True}
        )
        try:
            identity = Identity(
                uid=body["localId"],
                email=body.get("email", email),
                id_token=body.get("idToken"),
                refresh_token=body.get("refreshToken"),
            )
        except KeyError as exc:
            raise IdentityError("Malformed identity response") from exc
        await self._set_current(identity)
        return identity

    async def sign_in(self, email: str, password: str) -> Identity:
        return await self._authenticate("signInWithPassword", email, password)

    async def sign_up(self, email: str, password: str) -> Identity:
        return await self._authenticate("signUp", email, password)

    async def sign_out(self) -> None:
        await self._set_current(None)


@dataclass(slots=True)
class Session:
    """Observable authentication state fed by the provider's notifications.

    Every identity transition is published once as ``session.changed`` with
    the identity (or ``None``) in the payload.
    """

    bus: EventBus
    provider: IdentityProvider
    identity: Identity | None = field(init=False, default=None)
    is_authenticating: bool = field(init=False, default=False)
    error_message: str | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        """Listen for identity transitions."""
        self.provider.add_listener(self._on_identity_changed)

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    async def _on_identity_changed(self, identity: Identity | None) -> None:
        self.identity = identity
        logger.info("Identity changed: %s", identity.uid if identity else None)
        await self.bus.publish(
            "session.changed", {"identity": identity.to_dict() if identity else None}
        )

    async def sign_in(self, email: str, password: str) -> Result[Identity]:
        return await self._authenticate(self.provider.sign_in, email, password)

    async def sign_up(self, email: str, password: str) -> Result[Identity]:
        return await self._authenticate(self.provider.sign_up, email, password)

    async def _authenticate(
        self,
        action: Callable[[str, str], Awaitable[Identity]],
        email: str,
        password: str,
    ) -> Result[Identity]:
        email = email.strip()
        if not email or not password:
            return await self._fail("Please enter both email and password")
        self.is_authenticating = True
        self.error_message = None
        try:
            identity = await action(email, password)
        except IdentityError as exc:
            return await self._fail(str(exc))
        finally:
            self.is_authenticating = False
        return Result.success(identity)

    async def sign_out(self) -> Result[None]:
        try:
            await self.provider.sign_out()
        except IdentityError as exc:
            return await self._fail(str(exc))
        return Result.success()

    async def restore(self, identity: Identity) -> None:
        """Resume a cached identity from a previous launch."""
        await self.provider.restore(identity)

    async def _fail(self, message: str) -> Result:
        self.error_message = message
        logger.warning("Authentication error: %s", message)
        await self.bus.publish("session.error", {"message": message})
        return Result.failure(message)


__all__ = [
    "FirebaseIdentityProvider",
    "IdentityError",
    "IdentityProvider",
    "Session",
]
