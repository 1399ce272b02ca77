# src/tasksync/backends/firebase.py

from __future__ import annotations

"""
Firebase backend.

- FirestoreDocumentStore: Cloud Firestore through google-cloud-firestore.
  on_snapshot() runs callbacks on the SDK's watch thread; writes are blocking
  SDK calls, so they are moved off the event loop with asyncio.to_thread().
- FirebaseAuthProvider: Firebase Authentication e-mail/password through the
  Identity Toolkit REST API (httpx).
"""

import asyncio
import logging
import threading
from pathlib import Path
from typing import Any

import httpx
from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.oauth2 import service_account

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

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

# How often a live listener is checked for having stopped on its own.
WATCH_POLL_SECONDS = 5.0

# Firebase Auth REST error codes -> user-facing text.
_AUTH_MESSAGES: dict[str, str] = {
    "EMAIL_EXISTS": "The email address is already in use by another account.",
    "EMAIL_NOT_FOUND": "The email or password is incorrect.",
    "INVALID_PASSWORD": "The email or password is incorrect.",
    "INVALID_LOGIN_CREDENTIALS": "The email or password is incorrect.",
    "INVALID_EMAIL": "The email address is badly formatted.",
    "USER_DISABLED": "This account has been disabled.",
    "WEAK_PASSWORD": "Password should be at least 6 characters.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Try again later.",
    "OPERATION_NOT_ALLOWED": "Password sign-in is disabled for this project.",
}


def _wrap_google_error(exc: Exception) -> BackendError:
    status = getattr(exc, "grpc_status_code", None)
    code = getattr(status, "name", None) or exc.__class__.__name__
    message = getattr(exc, "message", None) or str(exc) or code
    return BackendError(str(message), code=str(code))


class _WatchRegistration:
    """
    Unsubscribe handle for a Firestore watch.

    The SDK's on_snapshot() has no error callback: when the watch stream fails
    (permission denied, network) it only logs and closes. A monitor thread
    notices the watch going inactive and reports it through on_error.
    """

    def __init__(self, watch: Any, path: str, on_error: ErrorCallback, *, poll_seconds: float) -> None:
        self._watch = watch
        self._stopped = threading.Event()
        self._monitor = threading.Thread(
            target=self._monitor_loop,
            args=(path, on_error, poll_seconds),
            name=f"firestore-watch:{path}",
            daemon=True,
        )
        self._monitor.start()

    def _monitor_loop(self, path: str, on_error: ErrorCallback, poll_seconds: float) -> None:
        while not self._stopped.wait(poll_seconds):
            if getattr(self._watch, "is_active", True):
                continue
            if self._stopped.is_set():
                return
            logger.warning("Firestore listener stopped path=%s", path)
            on_error(BackendError(f"Listener for {path} stopped", code="UNAVAILABLE"))
            return

    def unsubscribe(self) -> None:
        self._stopped.set()
        self._watch.unsubscribe()


class FirestoreDocumentStore:
    def __init__(self, client: firestore.Client, *, watch_poll_seconds: float = WATCH_POLL_SECONDS) -> None:
        self._client = client
        self._watch_poll_seconds = watch_poll_seconds

    @classmethod
    def from_settings(cls, settings) -> FirestoreDocumentStore:
        """
        Build a client from settings:
        - firebase_credentials_path: service-account JSON (optional; else application default credentials)
        - firebase_project_id: project override (optional)
        """
        project = getattr(settings, "firebase_project_id", None) or None
        creds_path = getattr(settings, "firebase_credentials_path", None)

        credentials = None
        if creds_path:
            credentials = service_account.Credentials.from_service_account_file(str(Path(creds_path)))
            project = project or credentials.project_id

        client = firestore.Client(project=project, credentials=credentials)
        logger.info("Firestore client ready project=%s", client.project)
        return cls(client)

    def listen(
        self,
        path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> _WatchRegistration:
        collection = self._client.collection(path)

        def _callback(col_snapshot: list[Any], _changes: list[Any], _read_time: Any) -> None:
            try:
                docs = [Document(id=snap.id, data=snap.to_dict()) for snap in col_snapshot]
                on_snapshot(docs)
            except Exception as e:
                logger.exception("Firestore snapshot handling failed path=%s", path)
                on_error(e)

        try:
            watch = collection.on_snapshot(_callback)
        except google_exceptions.GoogleAPIError as e:
            raise _wrap_google_error(e) from e
        return _WatchRegistration(watch, path, on_error, poll_seconds=self._watch_poll_seconds)

    @staticmethod
    def _resolve(fields: Fields) -> Fields:
        return {k: (firestore.SERVER_TIMESTAMP if v is SERVER_TIMESTAMP else v) for k, v in fields.items()}

    async def add(self, path: str, fields: Fields) -> str:
        collection = self._client.collection(path)
        try:
            _update_time, ref = await asyncio.to_thread(collection.add, self._resolve(fields))
        except google_exceptions.GoogleAPIError as e:
            raise _wrap_google_error(e) from e
        return ref.id

    async def update(self, path: str, fields: Fields) -> None:
        ref = self._client.document(path)
        try:
            await asyncio.to_thread(ref.update, self._resolve(fields))
        except google_exceptions.GoogleAPIError as e:
            raise _wrap_google_error(e) from e

    async def delete(self, path: str) -> None:
        ref = self._client.document(path)
        try:
            await asyncio.to_thread(ref.delete)
        except google_exceptions.GoogleAPIError as e:
            raise _wrap_google_error(e) from e


class FirebaseAuthProvider:
    """
    Firebase Authentication over REST.

    The signed-in user (uid, email, ID token) lives in memory only;
    a restart means signing in again.
    """

    def __init__(
        self,
        api_key: str,
        *,
        timeout_seconds: float = 10.0,
        base_url: str = IDENTITY_TOOLKIT_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise RuntimeError("Firebase API key is not set. Set TASKSYNC_FIREBASE_API_KEY in your .env.")
        self._api_key = api_key.strip()
        self._timeout = float(timeout_seconds)
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        self._lock = threading.Lock()
        self._current: AuthUser | None = None
        self._id_token: str | None = None

    @property
    def id_token(self) -> str | None:
        with self._lock:
            return self._id_token

    def current_user(self) -> AuthUser | None:
        with self._lock:
            return self._current

    async def sign_in_with_password(self, email: str, password: str) -> AuthUser:
        return await self._password_call("signInWithPassword", email, password)

    async def create_user(self, email: str, password: str) -> AuthUser:
        return await self._password_call("signUp", email, password)

    def sign_out(self) -> None:
        with self._lock:
            self._current = None
            self._id_token = None

    async def _password_call(self, endpoint: str, email: str, password: str) -> AuthUser:
        url = f"{self._base_url}/accounts:{endpoint}"
        payload = {"email": email, "password": password, "returnSecureToken": True}

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.post(url, params={"key": self._api_key}, json=payload)
            except httpx.HTTPError as e:
                logger.warning("Firebase auth %s request failed: %r", endpoint, e)
                raise BackendError(f"Auth service unreachable: {e}", code="UNAVAILABLE") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.status_code != 200:
            raw = str((data.get("error") or {}).get("message") or f"HTTP_{response.status_code}")
            # Messages look like "WEAK_PASSWORD : Password should be at least 6 characters".
            code = raw.split(":", 1)[0].strip()
            logger.info("Firebase auth %s rejected: %s", endpoint, raw)
            raise AuthError(_AUTH_MESSAGES.get(code, raw), code=code)

        uid = data.get("localId")
        if not uid:
            raise BackendError(
                f"Auth response missing localId: {sorted(data.keys())}", code="INVALID_RESPONSE"
            )

        user = AuthUser(uid=str(uid), email=str(data.get("email") or email))
        with self._lock:
            self._current = user
            self._id_token = data.get("idToken")
        return user
