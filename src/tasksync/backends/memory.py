# src/tasksync/backends/memory.py

from __future__ import annotations

import hashlib
import logging
import secrets
import string
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from ..core.errors import AuthError, BackendError
from ..core.ports import (
    SERVER_TIMESTAMP,
    AuthUser,
    Document,
    ErrorCallback,
    Fields,
    SnapshotCallback,
)

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_letters + string.digits
_ID_LENGTH = 20
MIN_PASSWORD_LENGTH = 6


def _new_document_id() -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


def _split(path: str) -> list[str]:
    parts = [p for p in (path or "").split("/") if p]
    if not parts:
        raise ValueError(f"empty path: {path!r}")
    return parts


def _collection_path(path: str) -> str:
    parts = _split(path)
    if len(parts) % 2 != 1:
        raise ValueError(f"not a collection path: {path!r}")
    return "/".join(parts)


def _document_path(path: str) -> tuple[str, str]:
    parts = _split(path)
    if len(parts) % 2 != 0:
        raise ValueError(f"not a document path: {path!r}")
    return "/".join(parts[:-1]), parts[-1]


@dataclass(slots=True)
class _Listener:
    path: str
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback
    active: bool = True


class _Registration:
    def __init__(self, unsubscribe: Callable[[], None]) -> None:
        self._unsubscribe = unsubscribe

    def unsubscribe(self) -> None:
        self._unsubscribe()


class InMemoryDocumentStore:
    """
    Process-local document store used for demos, local runs and tests.

    Behavior mirrors what the task store relies on from Firestore:
    - listen() pushes the current snapshot right away, then one snapshot per write
      to that collection
    - snapshots keep insertion order
    - update() on a missing document fails with NOT_FOUND; delete() is idempotent
    - SERVER_TIMESTAMP in write fields becomes time.time()
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._collections: dict[str, dict[str, Fields]] = {}
        self._listeners: list[_Listener] = []

    # ---- reads ----

    def snapshot(self, path: str) -> list[Document]:
        col = _collection_path(path)
        with self._lock:
            docs = self._collections.get(col, {})
            return [Document(id=doc_id, data=dict(fields)) for doc_id, fields in docs.items()]

    def listen(
        self,
        path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> _Registration:
        col = _collection_path(path)
        listener = _Listener(path=col, on_snapshot=on_snapshot, on_error=on_error)
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                listener.active = False
                if listener in self._listeners:
                    self._listeners.remove(listener)

        self._notify_one(listener)
        return _Registration(_unsubscribe)

    # ---- writes ----

    async def add(self, path: str, fields: Fields) -> str:
        col = _collection_path(path)
        with self._lock:
            docs = self._collections.setdefault(col, {})
            doc_id = _new_document_id()
            while doc_id in docs:
                doc_id = _new_document_id()
            docs[doc_id] = self._resolve(fields)
        self._notify(col)
        return doc_id

    async def update(self, path: str, fields: Fields) -> None:
        col, doc_id = _document_path(path)
        with self._lock:
            doc = self._collections.get(col, {}).get(doc_id)
            if doc is None:
                raise BackendError(f"No document to update: {path}", code="NOT_FOUND")
            doc.update(self._resolve(fields))
        self._notify(col)

    async def delete(self, path: str) -> None:
        col, doc_id = _document_path(path)
        with self._lock:
            removed = self._collections.get(col, {}).pop(doc_id, None)
        if removed is not None:
            self._notify(col)

    # ---- helpers ----

    @staticmethod
    def _resolve(fields: Fields) -> Fields:
        now = time.time()
        return {k: (now if v is SERVER_TIMESTAMP else v) for k, v in fields.items()}

    def _notify(self, col: str) -> None:
        with self._lock:
            listeners = [lst for lst in self._listeners if lst.path == col]
        for listener in listeners:
            self._notify_one(listener)

    def _notify_one(self, listener: _Listener) -> None:
        if not listener.active:
            return
        docs = self.snapshot(listener.path)
        try:
            listener.on_snapshot(docs)
        except Exception as e:
            logger.exception("Snapshot listener failed path=%s", listener.path)
            listener.on_error(e)


@dataclass(slots=True)
class _Account:
    uid: str
    email: str
    password_hash: str
    salt: str


class InMemoryAuthProvider:
    """
    E-mail/password accounts kept in process memory.

    Error codes follow Firebase Auth so the UI sees the same messages for both backends.
    create_user() signs the new user in.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._accounts: dict[str, _Account] = {}
        self._current: AuthUser | None = None

    @staticmethod
    def _hash(password: str, salt: str) -> str:
        return hashlib.sha256(f"{salt}:{password}".encode()).hexdigest()

    def current_user(self) -> AuthUser | None:
        with self._lock:
            return self._current

    async def sign_in_with_password(self, email: str, password: str) -> AuthUser:
        key = email.strip().lower()
        with self._lock:
            account = self._accounts.get(key)
            if account is None or self._hash(password, account.salt) != account.password_hash:
                raise AuthError("The email or password is incorrect.", code="INVALID_LOGIN_CREDENTIALS")
            self._current = AuthUser(uid=account.uid, email=account.email)
            return self._current

    async def create_user(self, email: str, password: str) -> AuthUser:
        key = email.strip().lower()
        if "@" not in key:
            raise AuthError("The email address is badly formatted.", code="INVALID_EMAIL")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthError(
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters.",
                code="WEAK_PASSWORD",
            )
        with self._lock:
            if key in self._accounts:
                raise AuthError(
                    "The email address is already in use by another account.", code="EMAIL_EXISTS"
                )
            salt = secrets.token_hex(8)
            account = _Account(
                uid=uuid.uuid4().hex[:28],
                email=email.strip(),
                password_hash=self._hash(password, salt),
                salt=salt,
            )
            self._accounts[key] = account
            self._current = AuthUser(uid=account.uid, email=account.email)
            logger.debug("Account created uid=%s", account.uid)
            return self._current

    def sign_out(self) -> None:
        with self._lock:
            self._current = None
