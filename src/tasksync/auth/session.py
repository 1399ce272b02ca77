# src/tasksync/auth/session.py

from __future__ import annotations

"""
Auth session: observable sign-in state on top of an AuthProvider.

login()/signup() validate input synchronously and then run the provider call
as a background asyncio task; the outcome is reported only through `state`
(Authenticated / Error), never raised to the caller.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum

from ..core.errors import AuthError, BackendError, ValidationError
from ..core.observable import Observable
from ..core.ports import AuthProvider, AuthUser

logger = logging.getLogger(__name__)

EMPTY_CREDENTIALS_MESSAGE = "Email and password must not be empty"


def validate_credentials(email: str, password: str) -> str:
    """Return the trimmed e-mail, or raise ValidationError when either field is empty."""
    email = (email or "").strip()
    if not email or not password:
        raise ValidationError(EMPTY_CREDENTIALS_MESSAGE)
    return email


class AuthStatus(StrEnum):
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"
    LOADING = "loading"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class AuthState:
    status: AuthStatus
    message: str = ""

    @classmethod
    def authenticated(cls) -> AuthState:
        return cls(AuthStatus.AUTHENTICATED)

    @classmethod
    def unauthenticated(cls) -> AuthState:
        return cls(AuthStatus.UNAUTHENTICATED)

    @classmethod
    def loading(cls) -> AuthState:
        return cls(AuthStatus.LOADING)

    @classmethod
    def error(cls, message: str) -> AuthState:
        return cls(AuthStatus.ERROR, message)

    @property
    def is_authenticated(self) -> bool:
        return self.status is AuthStatus.AUTHENTICATED


class AuthIdentityGate:
    """IdentityGate backed by the provider's current user."""

    def __init__(self, provider: AuthProvider) -> None:
        self._provider = provider

    def current_user_id(self) -> str | None:
        user = self._provider.current_user()
        if user is None or not user.uid:
            return None
        return user.uid


class AuthSession:
    def __init__(self, provider: AuthProvider) -> None:
        self._provider = provider
        self.state: Observable[AuthState] = Observable(AuthState.unauthenticated())
        self.email: Observable[str] = Observable("")
        self._pending: set[asyncio.Task[AuthState]] = set()
        self.refresh_user()

    def refresh_user(self) -> None:
        """Re-read the provider's current user into `state` and `email`."""
        user = self._provider.current_user()
        if user is None:
            self.email.set("")
            self.state.set(AuthState.unauthenticated())
        else:
            self.email.set(user.email or "")
            self.state.set(AuthState.authenticated())

    def login(self, email: str, password: str) -> asyncio.Task[AuthState] | None:
        return self._start(
            email,
            password,
            call=self._provider.sign_in_with_password,
            what="login",
            fallback_message="Login failed",
        )

    def signup(self, email: str, password: str) -> asyncio.Task[AuthState] | None:
        return self._start(
            email,
            password,
            call=self._provider.create_user,
            what="signup",
            fallback_message="Sign-up failed",
        )

    def signout(self) -> None:
        self._provider.sign_out()
        self.email.set("")
        self.state.set(AuthState.unauthenticated())
        logger.info("Signed out")

    def _start(
        self,
        email: str,
        password: str,
        *,
        call: Callable[[str, str], Awaitable[AuthUser]],
        what: str,
        fallback_message: str,
    ) -> asyncio.Task[AuthState] | None:
        try:
            email = validate_credentials(email, password)
        except ValidationError as e:
            self.state.set(AuthState.error(str(e)))
            return None

        self.state.set(AuthState.loading())

        async def _run() -> AuthState:
            try:
                user = await call(email, password)
            except AuthError as e:
                logger.info("%s rejected email=%s code=%s", what, email, e.code)
                self.state.set(AuthState.error(str(e) or fallback_message))
            except BackendError as e:
                logger.warning("%s failed email=%s code=%s: %s", what, email, e.code, e)
                self.state.set(AuthState.error(str(e) or fallback_message))
            except Exception:
                logger.exception("%s crashed email=%s", what, email)
                self.state.set(AuthState.error(fallback_message))
            else:
                logger.info("%s ok uid=%s", what, user.uid)
                self.refresh_user()
            return self.state.value

        handle = asyncio.get_running_loop().create_task(_run(), name=f"auth-{what}")
        self._pending.add(handle)
        handle.add_done_callback(self._pending.discard)
        return handle
