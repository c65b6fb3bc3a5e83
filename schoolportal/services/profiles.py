"""Profile edits by the profile owner or an admin."""

import logging
from datetime import datetime, timezone

from pydantic import BaseModel, field_validator

from schoolportal.auth.context import AuthSnapshot
from schoolportal.core.choices import AppRole
from schoolportal.core.errors import NotAllowed, ProfileNotFound
from schoolportal.datastore import DataStore
from schoolportal.services.registration import (
    _blank_to_none,
    _check_address,
    _check_email,
    _check_name,
    _check_phone,
)

logger = logging.getLogger(__name__)


class ProfileUpdateRequest(BaseModel):
    """Editable profile fields. Identity number, age and login email are fixed at registration."""

    first_name: str | None = None
    last_name: str | None = None
    phone_number: str | None = None
    physical_address: str | None = None
    next_of_kin_contact: str | None = None
    backup_email: str | None = None
    avatar_url: str | None = None

    @field_validator('next_of_kin_contact', 'backup_email', 'avatar_url', mode='before')
    @classmethod
    def blank_optional_fields(cls, value):
        return _blank_to_none(value)

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            raise ValueError('Name is required')
        return _check_name(value)

    @field_validator('phone_number')
    @classmethod
    def validate_phone_number(cls, value: str | None) -> str | None:
        if value is None:
            raise ValueError('Phone number is required')
        return _check_phone(value)

    @field_validator('physical_address')
    @classmethod
    def validate_physical_address(cls, value: str | None) -> str | None:
        if value is None:
            raise ValueError('Please enter a complete address')
        return _check_address(value)

    @field_validator('next_of_kin_contact')
    @classmethod
    def validate_next_of_kin_contact(cls, value: str | None) -> str | None:
        return None if value is None else _check_phone(value)

    @field_validator('backup_email')
    @classmethod
    def validate_backup_email(cls, value: str | None) -> str | None:
        return None if value is None else _check_email(value)


def can_edit_profile(actor: AuthSnapshot, user_id: str) -> bool:
    if not actor.is_authenticated:
        return False
    if actor.user_id == user_id:
        return True
    return actor.is_accepted and actor.primary_role == AppRole.ADMIN.value


async def update_profile(store: DataStore, actor: AuthSnapshot, user_id: str, changes: dict):
    if not can_edit_profile(actor, user_id):
        raise NotAllowed('You can only edit your own profile.')
    profile = await store.select_one('profiles', user_id=user_id)
    if profile is None:
        raise ProfileNotFound()
    if not changes:
        return profile

    await store.update('profiles', {'user_id': user_id}, {**changes, 'updated_at': datetime.now(timezone.utc)})
    logger.info('User %s updated profile of %s: %s', actor.user_id, user_id, ', '.join(sorted(changes)))
    return await store.select_one('profiles', user_id=user_id)
