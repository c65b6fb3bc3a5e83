import asyncio

import pytest
from pydantic import ValidationError

from schoolportal.auth.context import AuthSnapshot, RoleRecord
from schoolportal.core.errors import NotAllowed, ProfileNotFound
from schoolportal.datastore import DataStore
from schoolportal.services.profiles import ProfileUpdateRequest, can_edit_profile, update_profile


def _actor(user_id: str, role: str, status: str = 'accepted') -> AuthSnapshot:
    return AuthSnapshot(user_id=user_id, roles=(RoleRecord(id=f'{user_id}-role', role=role, application_status=status),))


def _profile_owner(store: DataStore) -> str:
    user = asyncio.run(store.insert('users', email='jane@gmail.com', hashed_password='x'))
    asyncio.run(store.insert(
        'profiles',
        user_id=user.id,
        first_name='Jane',
        last_name='Dlamini',
        email='jane@gmail.com',
        phone_number='0821234567',
        identity_number='1801015009087',
        age=7,
        physical_address='12 Main Road, Durban',
    ))
    return user.id


def test_can_edit_profile() -> None:
    assert can_edit_profile(_actor('u1', 'learner', status='pending'), 'u1')
    assert can_edit_profile(_actor('admin-1', 'admin'), 'u1')
    assert not can_edit_profile(_actor('admin-1', 'admin', status='pending'), 'u1')
    assert not can_edit_profile(_actor('t1', 'teacher'), 'u1')
    assert not can_edit_profile(AuthSnapshot(), 'u1')


def test_owner_updates_contact_details(store: DataStore) -> None:
    user_id = _profile_owner(store)
    request = ProfileUpdateRequest(phone_number='083 555 1234', backup_email=' Jane.B@Example.com ')

    updated = asyncio.run(update_profile(store, _actor(user_id, 'learner'), user_id, request.model_dump(exclude_unset=True)))

    assert updated.phone_number == '0835551234'
    assert updated.backup_email == 'jane.b@example.com'
    assert updated.first_name == 'Jane'
    assert updated.updated_at is not None


def test_admin_updates_another_profile(store: DataStore) -> None:
    user_id = _profile_owner(store)

    updated = asyncio.run(update_profile(store, _actor('admin-1', 'admin'), user_id, {'last_name': 'Nkosi'}))

    assert updated.last_name == 'Nkosi'


def test_other_user_cannot_edit_profile(store: DataStore) -> None:
    user_id = _profile_owner(store)

    with pytest.raises(NotAllowed):
        asyncio.run(update_profile(store, _actor('t1', 'teacher'), user_id, {'last_name': 'Nkosi'}))

    assert asyncio.run(store.select_one('profiles', user_id=user_id)).last_name == 'Dlamini'


def test_missing_profile(store: DataStore) -> None:
    with pytest.raises(ProfileNotFound):
        asyncio.run(update_profile(store, _actor('admin-1', 'admin'), 'nobody', {'last_name': 'Nkosi'}))


@pytest.mark.parametrize(
    'changes',
    [
        {'first_name': 'J'},
        {'first_name': None},
        {'phone_number': '12345'},
        {'physical_address': 'short'},
        {'backup_email': 'not-an-email'},
    ],
)
def test_invalid_profile_changes(changes: dict) -> None:
    with pytest.raises(ValidationError):
        ProfileUpdateRequest(**changes)
