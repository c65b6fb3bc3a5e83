import asyncio

import pytest

from schoolportal.auth.context import (
    AuthorizationContext,
    AuthSnapshot,
    ProfileRecord,
    RoleRecord,
    UserRecords,
    resolve_primary_role,
)
from schoolportal.auth.credentials import CredentialStore, Session, SessionEvent
from schoolportal.core.errors import DataStoreError
from schoolportal.datastore import DataStore


def _role(role: str, status: str, index: int = 0) -> RoleRecord:
    return RoleRecord(id=f'role-{index}', role=role, application_status=status)


def _session(user_id: str = 'user-1') -> Session:
    return Session(session_id=f'sid-{user_id}', user_id=user_id, email=f'{user_id}@gmail.com', access_token='token')


def test_primary_role_prefers_first_accepted_role() -> None:
    roles = (_role('teacher', 'pending', 0), _role('grade_head', 'accepted', 1), _role('admin', 'accepted', 2))

    assert resolve_primary_role(roles) == 'grade_head'


def test_primary_role_falls_back_to_first_role() -> None:
    roles = (_role('teacher', 'rejected', 0), _role('learner', 'pending', 1))

    assert resolve_primary_role(roles) == 'teacher'


def test_snapshot_without_roles() -> None:
    snapshot = AuthSnapshot(user_id='user-1')

    assert snapshot.is_authenticated is True
    assert snapshot.is_accepted is False
    assert snapshot.primary_role is None
    assert snapshot.application_status == 'pending'


def test_application_status_reports_first_assignment() -> None:
    snapshot = AuthSnapshot(user_id='user-1', roles=(_role('teacher', 'rejected', 0), _role('sgb', 'accepted', 1)))

    assert snapshot.application_status == 'rejected'
    assert snapshot.is_accepted is True
    assert snapshot.primary_role == 'sgb'


class _ControlledLoader:
    """Loader whose fetches finish only when released."""

    def __init__(self):
        self.gates: dict[str, asyncio.Event] = {}
        self.records: dict[str, UserRecords] = {}
        self.calls = 0

    async def __call__(self, user_id: str) -> UserRecords:
        self.calls += 1
        gate = self.gates.setdefault(user_id, asyncio.Event())
        await gate.wait()
        return self.records.get(user_id, UserRecords(profile=None, roles=()))

    def release(self, user_id: str) -> None:
        self.gates.setdefault(user_id, asyncio.Event()).set()


def test_session_change_marks_loading_until_fetch_completes(store: DataStore) -> None:
    async def scenario():
        loader = _ControlledLoader()
        loader.records['user-1'] = UserRecords(profile=None, roles=(_role('learner', 'accepted'),))
        context = AuthorizationContext(CredentialStore(store), loader=loader)

        context.handle_session_change(SessionEvent.SIGNED_IN, _session())
        loading = context.snapshot
        loader.release('user-1')
        await context.settle()
        return loading, context.snapshot

    loading, loaded = asyncio.run(scenario())

    assert loading.user_id == 'user-1'
    assert loading.is_loading is True
    assert loading.roles == ()
    assert loaded.is_loading is False
    assert loaded.primary_role == 'learner'


def test_stale_fetch_is_discarded_after_sign_out(store: DataStore) -> None:
    async def scenario():
        loader = _ControlledLoader()
        loader.records['user-1'] = UserRecords(profile=None, roles=(_role('admin', 'accepted'),))
        context = AuthorizationContext(CredentialStore(store), loader=loader)
        seen = []
        context.subscribe(seen.append)

        context.handle_session_change(SessionEvent.SIGNED_IN, _session())
        await asyncio.sleep(0)
        context.handle_session_change(SessionEvent.SIGNED_OUT, None)
        loader.release('user-1')
        await context.settle()
        return context.snapshot, seen

    final, seen = asyncio.run(scenario())

    assert final == AuthSnapshot()
    assert all(snapshot.roles == () for snapshot in seen)


def test_stale_fetch_for_previous_user_is_discarded(store: DataStore) -> None:
    async def scenario():
        loader = _ControlledLoader()
        loader.records['user-1'] = UserRecords(profile=None, roles=(_role('admin', 'accepted'),))
        loader.records['user-2'] = UserRecords(profile=None, roles=(_role('learner', 'pending'),))
        context = AuthorizationContext(CredentialStore(store), loader=loader)

        context.handle_session_change(SessionEvent.SIGNED_IN, _session('user-1'))
        await asyncio.sleep(0)
        context.handle_session_change(SessionEvent.SIGNED_IN, _session('user-2'))
        loader.release('user-2')
        await asyncio.sleep(0)
        loader.release('user-1')
        await context.settle()
        return context.snapshot

    final = asyncio.run(scenario())

    assert final.user_id == 'user-2'
    assert final.primary_role == 'learner'
    assert final.is_accepted is False


@pytest.mark.parametrize('error', [DataStoreError(), RuntimeError('connection reset')])
def test_failed_fetch_clears_loading(store: DataStore, error: Exception) -> None:
    async def failing_loader(user_id: str) -> UserRecords:
        raise error

    async def scenario():
        context = AuthorizationContext(CredentialStore(store), loader=failing_loader)
        context.handle_session_change(SessionEvent.SIGNED_IN, _session())
        await context.settle()
        return context.snapshot

    snapshot = asyncio.run(scenario())

    assert snapshot.user_id == 'user-1'
    assert snapshot.is_loading is False
    assert snapshot.roles == ()


def _seed_learner(store: DataStore, credentials: CredentialStore) -> Session:
    session = asyncio.run(credentials.sign_up('jane@gmail.com', 'password123'))
    asyncio.run(store.insert(
        'profiles',
        user_id=session.user_id,
        first_name='Jane',
        last_name='Doe',
        email='jane@gmail.com',
        phone_number='0821234567',
        identity_number='1901015800086',
        age=7,
        physical_address='12 Main Road, Durban',
    ))
    asyncio.run(store.insert('user_roles', user_id=session.user_id, role='learner', application_status='pending'))
    return session


def test_sign_in_through_context_loads_records(store: DataStore) -> None:
    credentials = CredentialStore(store)
    _seed_learner(store, credentials)
    asyncio.run(credentials.sign_out())

    async def scenario():
        context = AuthorizationContext(CredentialStore(store))
        await context.start()
        outcome = await context.sign_in('jane@gmail.com', 'password123')
        await context.settle()
        context.close()
        return outcome, context.snapshot

    outcome, snapshot = asyncio.run(scenario())

    assert outcome.ok is True
    assert isinstance(snapshot.profile, ProfileRecord)
    assert snapshot.profile.first_name == 'Jane'
    assert snapshot.application_status == 'pending'


def test_sign_in_failure_is_reported_as_outcome(store: DataStore) -> None:
    async def scenario():
        context = AuthorizationContext(CredentialStore(store))
        await context.start()
        return await context.sign_in('nobody@gmail.com', 'password123')

    outcome = asyncio.run(scenario())

    assert outcome.ok is False
    assert outcome.error == 'Invalid email or password. Please try again.'


def test_refresh_profile_observes_acceptance(store: DataStore) -> None:
    credentials = CredentialStore(store)
    session = _seed_learner(store, credentials)

    async def scenario():
        context = AuthorizationContext(credentials)
        await context.start()
        await context.settle()
        before = context.snapshot

        await store.update('user_roles', {'user_id': session.user_id}, {'application_status': 'accepted'})
        first = await context.refresh_profile()
        after_first = context.snapshot
        second = await context.refresh_profile()
        return before, first, after_first, second, context.snapshot

    before, first, after_first, second, after_second = asyncio.run(scenario())

    assert before.is_accepted is False
    assert first.ok is True
    assert after_first.is_accepted is True
    assert after_first.primary_role == 'learner'
    assert second.ok is True
    assert after_second == after_first


def test_refresh_profile_without_user_is_a_no_op(store: DataStore) -> None:
    context = AuthorizationContext(CredentialStore(store))

    outcome = asyncio.run(context.refresh_profile())

    assert outcome.ok is True


def test_sign_out_through_context_clears_snapshot(store: DataStore) -> None:
    credentials = CredentialStore(store)
    _seed_learner(store, credentials)

    async def scenario():
        context = AuthorizationContext(credentials)
        await context.start()
        await context.settle()
        outcome = await context.sign_out()
        await context.settle()
        return outcome, context.snapshot

    outcome, snapshot = asyncio.run(scenario())

    assert outcome.ok is True
    assert snapshot.is_authenticated is False


@pytest.mark.parametrize('event', [SessionEvent.SIGNED_IN, SessionEvent.TOKEN_REFRESHED])
def test_same_user_events_keep_loaded_records_while_refetching(store: DataStore, event: SessionEvent) -> None:
    async def scenario():
        loader = _ControlledLoader()
        loader.records['user-1'] = UserRecords(profile=None, roles=(_role('teacher', 'accepted'),))
        context = AuthorizationContext(CredentialStore(store), loader=loader)
        context.handle_session_change(SessionEvent.SIGNED_IN, _session())
        loader.release('user-1')
        await context.settle()

        context.handle_session_change(event, _session())
        during = context.snapshot
        await context.settle()
        return during, loader.calls

    during, calls = asyncio.run(scenario())

    assert during.primary_role == 'teacher'
    assert during.is_loading is True
    assert calls == 2
