import asyncio

import pytest
from fastapi import HTTPException

from schoolportal.auth.context import AuthSnapshot, RoleRecord
from schoolportal.auth.dependencies import RoleGuard
from schoolportal.auth.guard import (
    NOT_ACCEPTED,
    NOT_AUTHENTICATED,
    WRONG_ROLE,
    evaluate_access,
    home_path_for,
    landing_path,
)
from schoolportal.core.choices import AppRole


def _snapshot(*roles: tuple[str, str]) -> AuthSnapshot:
    return AuthSnapshot(
        user_id='user-1',
        email='user@gmail.com',
        roles=tuple(
            RoleRecord(id=f'role-{index}', role=role, application_status=status)
            for index, (role, status) in enumerate(roles)
        ),
    )


def test_anonymous_user_is_sent_to_sign_in() -> None:
    decision = evaluate_access(AuthSnapshot(), [AppRole.ADMIN])

    assert decision.allowed is False
    assert decision.redirect_to == '/auth'
    assert decision.reason == NOT_AUTHENTICATED


def test_pending_user_is_sent_to_status_page() -> None:
    decision = evaluate_access(_snapshot(('learner', 'pending')), [AppRole.LEARNER])

    assert decision.allowed is False
    assert decision.redirect_to == '/pending'
    assert decision.reason == NOT_ACCEPTED


@pytest.mark.parametrize('status', ['pending', 'rejected'])
@pytest.mark.parametrize('required', [(), (AppRole.LEARNER,), (AppRole.ADMIN,), (AppRole.TEACHER, AppRole.FINANCE)])
def test_unaccepted_user_always_goes_to_status_page(status: str, required: tuple) -> None:
    decision = evaluate_access(_snapshot(('learner', status)), required)

    assert decision.allowed is False
    assert decision.redirect_to == '/pending'


def test_user_without_roles_is_not_accepted() -> None:
    decision = evaluate_access(_snapshot())

    assert decision.reason == NOT_ACCEPTED


def test_wrong_role_is_sent_to_own_home() -> None:
    decision = evaluate_access(_snapshot(('teacher', 'accepted')), [AppRole.ADMIN])

    assert decision.allowed is False
    assert decision.redirect_to == '/teacher'
    assert decision.reason == WRONG_ROLE
    assert decision.message == 'This page is not available for your role.'


def test_matching_role_is_allowed() -> None:
    decision = evaluate_access(_snapshot(('admin', 'accepted')), ['admin', 'principal'])

    assert decision.allowed is True
    assert decision.redirect_to is None


def test_empty_requirement_admits_any_accepted_user() -> None:
    assert evaluate_access(_snapshot(('sgb', 'accepted'))).allowed is True


@pytest.mark.parametrize(
    ('role', 'path'),
    [
        ('learner', '/student'),
        ('teacher', '/teacher'),
        ('grade_head', '/grade-head'),
        ('principal', '/principal'),
        ('admin', '/admin'),
        ('sgb', '/sgb'),
        ('finance', '/finance'),
        (None, '/pending'),
        ('janitor', '/pending'),
    ],
)
def test_home_path_for(role, path: str) -> None:
    assert home_path_for(role) == path


def test_landing_path_follows_state() -> None:
    assert landing_path(AuthSnapshot()) == '/auth'
    assert landing_path(_snapshot(('learner', 'rejected'))) == '/pending'
    assert landing_path(_snapshot(('learner', 'pending'), ('finance', 'accepted'))) == '/finance'


def test_role_guard_returns_snapshot_when_allowed() -> None:
    snapshot = _snapshot(('principal', 'accepted'))

    assert asyncio.run(RoleGuard(AppRole.ADMIN, AppRole.PRINCIPAL)(snapshot)) is snapshot


def test_role_guard_rejects_anonymous_with_401() -> None:
    with pytest.raises(HTTPException) as exception_info:
        asyncio.run(RoleGuard(AppRole.ADMIN)(AuthSnapshot()))

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail['redirect_to'] == '/auth'


def test_role_guard_rejects_wrong_role_with_403() -> None:
    with pytest.raises(HTTPException) as exception_info:
        asyncio.run(RoleGuard(AppRole.ADMIN)(_snapshot(('learner', 'accepted'))))

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail == {
        'message': 'This page is not available for your role.',
        'redirect_to': '/student',
        'reason': WRONG_ROLE,
    }
