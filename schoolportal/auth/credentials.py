"""Email/password credential store with session-change notifications."""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

import jwt
from fastapi.concurrency import run_in_threadpool
from werkzeug.security import check_password_hash, generate_password_hash

from schoolportal.auth import jwt_handler
from schoolportal.core import config
from schoolportal.core.errors import (
    DuplicateAccount,
    EmailNotConfirmed,
    InvalidCredentials,
    PortalError,
    SessionInvalid,
)
from schoolportal.datastore import DataStore

logger = logging.getLogger(__name__)


class SessionEvent(str, enum.Enum):
    INITIAL_SESSION = 'INITIAL_SESSION'
    SIGNED_IN = 'SIGNED_IN'
    SIGNED_OUT = 'SIGNED_OUT'
    TOKEN_REFRESHED = 'TOKEN_REFRESHED'


@dataclass(frozen=True)
class Session:
    session_id: str
    user_id: str
    email: str
    access_token: str


SessionListener = Callable[[SessionEvent, 'Session | None'], None]


def normalize_email(email: str) -> str:
    return email.strip().lower()


def describe_auth_error(error: BaseException) -> str:
    if isinstance(error, PortalError):
        return error.message
    return 'An unexpected error occurred. Please try again.'


async def authenticate_token(store: DataStore, token: str) -> Session:
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise SessionInvalid() from exc

    user_id = payload.get('sub')
    session_id = payload.get('sid')
    if not user_id or not session_id:
        raise SessionInvalid('Invalid token subject.')

    auth_session = await store.select_one('auth_sessions', id=session_id, user_id=user_id)
    if auth_session is None or auth_session.revoked_at is not None:
        raise SessionInvalid()

    user = await store.select_one('users', id=user_id)
    if user is None:
        raise SessionInvalid('User not found.')

    return Session(session_id=session_id, user_id=user.id, email=user.email, access_token=token)


class CredentialStore:
    """One client's view of the credential provider.

    Holds the client's current session and notifies listeners on every
    change: the initial restore, sign-in, sign-out and token refresh.
    """

    def __init__(self, store: DataStore):
        self.store = store
        self._session: Session | None = None
        self._listeners: list[SessionListener] = []

    def on_session_change(self, callback: SessionListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def get_current_session(self) -> Session | None:
        return self._session

    async def create_credential(self, email: str, password: str):
        normalized = normalize_email(email)
        existing = await self.store.select_one('users', email=normalized)
        if existing is not None:
            raise DuplicateAccount()

        return await self.store.insert(
            'users',
            email=normalized,
            hashed_password=await run_in_threadpool(generate_password_hash, password),
            email_confirmed=not config.REQUIRE_EMAIL_CONFIRMATION,
        )

    async def verify_password(self, email: str, password: str):
        user = await self.store.select_one('users', email=normalize_email(email))
        if user is None:
            return None
        if not await run_in_threadpool(check_password_hash, user.hashed_password, password):
            return None
        return user

    async def sign_up(self, email: str, password: str) -> Session | None:
        """Create a credential; signs in straight away unless confirmation is required."""
        user = await self.create_credential(email, password)
        if not user.email_confirmed:
            return None
        return await self.open_session(user)

    async def sign_in(self, email: str, password: str) -> Session:
        user = await self.verify_password(email, password)
        if user is None:
            raise InvalidCredentials()
        if config.REQUIRE_EMAIL_CONFIRMATION and not user.email_confirmed:
            raise EmailNotConfirmed()
        return await self.open_session(user)

    async def open_session(self, user) -> Session:
        auth_session = await self.store.insert('auth_sessions', user_id=user.id)
        token = jwt_handler.create_access_token(subject=user.id, session_id=auth_session.id)
        session = Session(session_id=auth_session.id, user_id=user.id, email=user.email, access_token=token)
        self._set_session(SessionEvent.SIGNED_IN, session)
        return session

    async def sign_out(self) -> None:
        session = self._session
        try:
            if session is not None:
                await self.store.update(
                    'auth_sessions',
                    {'id': session.session_id},
                    {'revoked_at': datetime.now(timezone.utc)},
                )
        finally:
            # Local state is cleared even when the revoke could not be recorded
            self._set_session(SessionEvent.SIGNED_OUT, None)

    async def refresh_session(self) -> Session:
        current = self._session
        if current is None:
            raise SessionInvalid()
        await authenticate_token(self.store, current.access_token)

        token = jwt_handler.create_access_token(subject=current.user_id, session_id=current.session_id)
        session = Session(
            session_id=current.session_id,
            user_id=current.user_id,
            email=current.email,
            access_token=token,
        )
        self._set_session(SessionEvent.TOKEN_REFRESHED, session)
        return session

    async def restore_session(self, token: str | None) -> Session | None:
        session = None
        if token:
            try:
                session = await authenticate_token(self.store, token)
            except SessionInvalid:
                logger.info('Stored session token is no longer valid')
        self._set_session(SessionEvent.INITIAL_SESSION, session)
        return session

    def _set_session(self, event: SessionEvent, session: Session | None) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(event, session)
