# src/tasksync/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete SDK clients.
This keeps the backend (in-memory, Firebase) swappable and makes testing easier.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol


class _ServerTimestamp:
    """Sentinel: "replace me with the backend clock" inside write fields."""

    _instance: _ServerTimestamp | None = None

    def __new__(cls) -> _ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP: Any = _ServerTimestamp()

Fields = dict[str, Any]
# Document field map as stored by the backend.


@dataclass(slots=True, frozen=True)
class Document:
    """One item of a snapshot. `data` is None when the backend sent no fields."""

    id: str
    data: Fields | None


@dataclass(slots=True, frozen=True)
class AuthUser:
    uid: str
    email: str | None


SnapshotCallback = Callable[[list[Document]], None]
ErrorCallback = Callable[[Exception], None]


class ListenerRegistration(Protocol):
    def unsubscribe(self) -> None: ...


class DocumentStore(Protocol):
    """
    Hierarchical document database.

    Paths alternate collection/document segments:
    - "users/u1/tasks"       -> a collection
    - "users/u1/tasks/abc"   -> a document

    listen() callbacks may be invoked from any thread (SDK background threads).
    Writes raise BackendError on failure.
    """

    def listen(
            self,
            path: str,
            on_snapshot: SnapshotCallback,
            on_error: ErrorCallback,
    ) -> ListenerRegistration: ...

    async def add(self, path: str, fields: Fields) -> str: ...

    async def update(self, path: str, fields: Fields) -> None: ...

    async def delete(self, path: str) -> None: ...


class AuthProvider(Protocol):
    """E-mail/password identity provider. Failures raise AuthError."""

    def current_user(self) -> AuthUser | None: ...

    async def sign_in_with_password(self, email: str, password: str) -> AuthUser: ...

    async def create_user(self, email: str, password: str) -> AuthUser: ...

    def sign_out(self) -> None: ...


class IdentityGate(Protocol):
    """Resolves the signed-in user id, or None when nobody is signed in."""

    def current_user_id(self) -> str | None: ...
