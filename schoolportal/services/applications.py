"""Admin review of role applications."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable

from schoolportal.auth.context import AuthSnapshot
from schoolportal.core.choices import AppRole, ApplicationStatus
from schoolportal.core.errors import ApplicationAlreadyDecided, ApplicationNotFound, InvalidDecision, NotAllowed
from schoolportal.datastore import DataStore

logger = logging.getLogger(__name__)

DECISIONS = {ApplicationStatus.ACCEPTED.value, ApplicationStatus.REJECTED.value}
STAFF_ROLES = tuple(role.value for role in AppRole if role is not AppRole.LEARNER)

# Registration table -> (number column, prefix) for numbers issued on acceptance
MEMBER_NUMBERS = {
    'learner_registrations': ('student_number', 'STU'),
    'staff_registrations': ('staff_number', 'STF'),
}


@dataclass(frozen=True)
class ApplicationDetail:
    assignment: Any
    profile: Any = None
    learner_registration: Any = None
    staff_registration: Any = None


def reviewable_roles(actor: AuthSnapshot) -> tuple[str, ...]:
    """Roles whose applications ``actor`` may review; empty when none."""
    if not actor.is_accepted:
        return ()
    if actor.primary_role == AppRole.ADMIN.value:
        return tuple(role.value for role in AppRole)
    if actor.primary_role == AppRole.PRINCIPAL.value:
        return STAFF_ROLES
    return ()


async def _details_for(store: DataStore, assignments: Iterable) -> list[ApplicationDetail]:
    profiles = {row.user_id: row for row in await store.select('profiles')}
    learners = {row.user_id: row for row in await store.select('learner_registrations')}
    staff = {row.user_id: row for row in await store.select('staff_registrations')}
    return [
        ApplicationDetail(
            assignment=assignment,
            profile=profiles.get(assignment.user_id),
            learner_registration=learners.get(assignment.user_id),
            staff_registration=staff.get(assignment.user_id),
        )
        for assignment in assignments
    ]


async def list_applications(
    store: DataStore,
    status: str | None = None,
    roles: Iterable[str] | None = None,
) -> list[ApplicationDetail]:
    filters = {}
    if status and status != 'all':
        filters['application_status'] = status
    assignments = await store.select('user_roles', order_by='created_at', descending=True, **filters)
    if roles is not None:
        allowed = set(roles)
        assignments = [a for a in assignments if a.role in allowed]
    return await _details_for(store, assignments)


async def get_application(store: DataStore, assignment_id: str) -> ApplicationDetail:
    assignment = await store.select_one('user_roles', id=assignment_id)
    if assignment is None:
        raise ApplicationNotFound()
    return (await _details_for(store, [assignment]))[0]


async def count_by_status(store: DataStore) -> dict[str, int]:
    counts = {status.value: 0 for status in ApplicationStatus}
    for assignment in await store.select('user_roles'):
        counts[assignment.application_status] = counts.get(assignment.application_status, 0) + 1
    return counts


async def decide_application(store: DataStore, actor: AuthSnapshot, assignment_id: str, status: str):
    """Move a pending application to accepted or rejected.

    The pending check and the write are separate steps with no version
    guard: two reviewers deciding the same application concurrently both
    succeed and the later write is what remains stored.
    """
    if status not in DECISIONS:
        raise InvalidDecision()

    assignment = await store.select_one('user_roles', id=assignment_id)
    if assignment is None:
        raise ApplicationNotFound()

    if assignment.role not in reviewable_roles(actor):
        raise NotAllowed()

    if assignment.application_status != ApplicationStatus.PENDING.value:
        raise ApplicationAlreadyDecided()

    async with store.transaction():
        await store.update('user_roles', {'id': assignment_id}, {'application_status': status})
        if status == ApplicationStatus.ACCEPTED.value:
            await assign_member_number(store, assignment)
    logger.info('User %s marked application %s as %s', actor.user_id, assignment_id, status)
    return await store.select_one('user_roles', id=assignment_id)


def next_member_number(prefix: str, issued: Iterable[str], year: int) -> str:
    """``STU20260001`` style numbers, sequential per prefix and year."""
    stem = f'{prefix}{year}'
    sequences = [int(number[len(stem):]) for number in issued if number and number.startswith(stem)]
    return f'{stem}{max(sequences, default=0) + 1:04d}'


async def assign_member_number(store: DataStore, assignment, year: int | None = None) -> str | None:
    table = 'learner_registrations' if assignment.role == AppRole.LEARNER.value else 'staff_registrations'
    column, prefix = MEMBER_NUMBERS[table]

    registration = await store.select_one(table, user_id=assignment.user_id)
    if registration is None or getattr(registration, column):
        return None

    issued = [getattr(row, column) for row in await store.select(table)]
    number = next_member_number(prefix, issued, year or date.today().year)
    await store.update(table, {'id': registration.id}, {column: number})
    logger.info('Issued %s %s to user %s', column, number, assignment.user_id)
    return number
