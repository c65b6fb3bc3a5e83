"""Process-wide view of who is signed in and what they may do.

The context listens to a CredentialStore. Each session change updates the
user immediately and schedules a profile/roles fetch in the background.
Fetches are stamped with a generation number and a result is only applied
while its generation is still current, so a slow fetch for a user who has
since signed out never resurrects their state.

Consumers read immutable AuthSnapshot objects; only the context replaces
them.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from functools import partial
from typing import Awaitable, Callable, Iterable

from schoolportal.auth.credentials import CredentialStore, Session, SessionEvent, describe_auth_error
from schoolportal.core.choices import ApplicationStatus
from schoolportal.core.errors import PortalError
from schoolportal.datastore import DataStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleRecord:
    id: str
    role: str
    application_status: str
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row) -> 'RoleRecord':
        return cls(id=row.id, role=row.role, application_status=row.application_status, created_at=row.created_at)


@dataclass(frozen=True)
class ProfileRecord:
    id: str
    user_id: str
    first_name: str
    last_name: str
    email: str
    phone_number: str
    identity_number: str
    age: int
    physical_address: str
    next_of_kin_contact: str | None = None
    backup_email: str | None = None
    identity_document_url: str | None = None
    proof_of_address_url: str | None = None
    avatar_url: str | None = None

    @classmethod
    def from_row(cls, row) -> 'ProfileRecord':
        return cls(**{name: getattr(row, name) for name in cls.__dataclass_fields__})


@dataclass(frozen=True)
class UserRecords:
    profile: ProfileRecord | None
    roles: tuple[RoleRecord, ...]


def is_accepted(roles: Iterable[RoleRecord]) -> bool:
    return any(r.application_status == ApplicationStatus.ACCEPTED.value for r in roles)


def resolve_primary_role(roles: Iterable[RoleRecord]) -> str | None:
    """First accepted role, else the first role of any status, else None."""
    roles = tuple(roles)
    for record in roles:
        if record.application_status == ApplicationStatus.ACCEPTED.value:
            return record.role
    return roles[0].role if roles else None


async def fetch_user_records(store: DataStore, user_id: str) -> UserRecords:
    profile_row = await store.select_one('profiles', user_id=user_id)
    role_rows = await store.select('user_roles', user_id=user_id, order_by='created_at')
    return UserRecords(
        profile=ProfileRecord.from_row(profile_row) if profile_row is not None else None,
        roles=tuple(RoleRecord.from_row(row) for row in role_rows),
    )


@dataclass(frozen=True)
class AuthSnapshot:
    user_id: str | None = None
    email: str | None = None
    session: Session | None = None
    profile: ProfileRecord | None = None
    roles: tuple[RoleRecord, ...] = ()
    is_loading: bool = False

    @classmethod
    def for_session(cls, session: Session, records: UserRecords) -> 'AuthSnapshot':
        return cls(
            user_id=session.user_id,
            email=session.email,
            session=session,
            profile=records.profile,
            roles=records.roles,
        )

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_accepted(self) -> bool:
        return is_accepted(self.roles)

    @property
    def primary_role(self) -> str | None:
        return resolve_primary_role(self.roles)

    @property
    def application_status(self) -> str:
        # The status page reports the first assignment, as registered.
        if not self.roles:
            return ApplicationStatus.PENDING.value
        return self.roles[0].application_status


@dataclass(frozen=True)
class AuthOutcome:
    ok: bool
    error: str | None = None

    @classmethod
    def success(cls) -> 'AuthOutcome':
        return cls(ok=True)

    @classmethod
    def failure(cls, error: BaseException) -> 'AuthOutcome':
        return cls(ok=False, error=describe_auth_error(error))


Loader = Callable[[str], Awaitable[UserRecords]]
SnapshotListener = Callable[[AuthSnapshot], None]


def store_loader(store: DataStore) -> Loader:
    return partial(fetch_user_records, store)


class AuthorizationContext:
    def __init__(self, credentials: CredentialStore, loader: Loader | None = None):
        self.credentials = credentials
        self._loader = loader or store_loader(credentials.store)
        self._snapshot = AuthSnapshot(is_loading=True)
        self._generation = 0
        self._pending: set[asyncio.Task] = set()
        self._listeners: list[SnapshotListener] = []
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def snapshot(self) -> AuthSnapshot:
        return self._snapshot

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def start(self) -> None:
        """Attach to the credential store and apply its current session."""
        if self._unsubscribe is None:
            self._unsubscribe = self.credentials.on_session_change(self.handle_session_change)
        self.handle_session_change(SessionEvent.INITIAL_SESSION, self.credentials.get_current_session())

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for task in list(self._pending):
            task.cancel()

    async def settle(self) -> None:
        """Wait until every scheduled fetch has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def handle_session_change(self, event: SessionEvent, session: Session | None) -> None:
        self._generation += 1
        generation = self._generation

        if session is None:
            self._commit(AuthSnapshot())
            return

        if self._snapshot.user_id == session.user_id:
            base = self._snapshot
        else:
            base = AuthSnapshot()
        self._commit(replace(base, user_id=session.user_id, email=session.email, session=session, is_loading=True))

        logger.debug('Session %s for user %s, scheduling fetch %d', event.value, session.user_id, generation)
        task = asyncio.get_running_loop().create_task(self._load(session.user_id, generation))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _load(self, user_id: str, generation: int) -> None:
        try:
            records = await self._loader(user_id)
        except Exception:
            logger.exception('Could not load profile and roles for user %s', user_id)
            if generation == self._generation:
                self._commit(replace(self._snapshot, is_loading=False))
            return

        if not self._is_current(user_id, generation):
            logger.info('Discarding stale profile fetch for user %s', user_id)
            return

        self._commit(replace(self._snapshot, profile=records.profile, roles=records.roles, is_loading=False))

    def _is_current(self, user_id: str, generation: int) -> bool:
        return generation == self._generation and self._snapshot.user_id == user_id

    def _commit(self, snapshot: AuthSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)

    async def sign_up(self, email: str, password: str) -> AuthOutcome:
        try:
            await self.credentials.sign_up(email, password)
        except PortalError as exc:
            return AuthOutcome.failure(exc)
        return AuthOutcome.success()

    async def sign_in(self, email: str, password: str) -> AuthOutcome:
        try:
            await self.credentials.sign_in(email, password)
        except PortalError as exc:
            return AuthOutcome.failure(exc)
        return AuthOutcome.success()

    async def sign_out(self) -> AuthOutcome:
        try:
            await self.credentials.sign_out()
        except PortalError as exc:
            return AuthOutcome.failure(exc)
        return AuthOutcome.success()

    async def refresh_profile(self) -> AuthOutcome:
        """Re-fetch profile and roles without waiting for a session event."""
        user_id = self._snapshot.user_id
        if user_id is None:
            return AuthOutcome.success()

        generation = self._generation
        try:
            records = await self._loader(user_id)
        except PortalError as exc:
            return AuthOutcome.failure(exc)

        if self._is_current(user_id, generation):
            self._commit(replace(self._snapshot, profile=records.profile, roles=records.roles, is_loading=False))
        return AuthOutcome.success()
