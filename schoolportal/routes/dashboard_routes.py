from fastapi import APIRouter, Depends
from pydantic import BaseModel

from schoolportal.auth.context import AuthSnapshot
from schoolportal.auth.dependencies import RoleGuard, get_store
from schoolportal.core.choices import AppRole, ApplicationStatus
from schoolportal.core.errors import PortalError
from schoolportal.datastore import DataStore
from schoolportal.services.applications import STAFF_ROLES, count_by_status

router = APIRouter(tags=['dashboards'])


class DashboardResponse(BaseModel):
    role: str
    first_name: str | None = None
    last_name: str | None = None
    stats: dict[str, int] = {}
    details: dict[str, str | list[str] | None] = {}


def _dashboard(snapshot: AuthSnapshot, **kwargs) -> DashboardResponse:
    profile = snapshot.profile
    return DashboardResponse(
        role=snapshot.primary_role,
        first_name=profile.first_name if profile else None,
        last_name=profile.last_name if profile else None,
        **kwargs,
    )


async def _staff_dashboard(snapshot: AuthSnapshot, store: DataStore) -> DashboardResponse:
    try:
        registration = await store.select_one('staff_registrations', user_id=snapshot.user_id)
    except PortalError as exc:
        raise exc.to_http() from exc
    details = {
        'staff_number': registration.staff_number if registration else None,
        'grades_teaching': list(registration.grades_teaching or []) if registration else [],
        'subjects_teaching': list(registration.subjects_teaching or []) if registration else [],
    }
    return _dashboard(snapshot, details=details)


@router.get('/student', response_model=DashboardResponse)
async def student_dashboard(
    snapshot: AuthSnapshot = Depends(RoleGuard(AppRole.LEARNER)),
    store: DataStore = Depends(get_store),
):
    try:
        registration = await store.select_one('learner_registrations', user_id=snapshot.user_id)
    except PortalError as exc:
        raise exc.to_http() from exc
    details = {
        'grade': registration.applying_for_grade if registration else None,
        'student_number': registration.student_number if registration else None,
    }
    return _dashboard(snapshot, details=details)


@router.get('/teacher', response_model=DashboardResponse)
async def teacher_dashboard(
    snapshot: AuthSnapshot = Depends(RoleGuard(AppRole.TEACHER)),
    store: DataStore = Depends(get_store),
):
    return await _staff_dashboard(snapshot, store)


@router.get('/grade-head', response_model=DashboardResponse)
async def grade_head_dashboard(
    snapshot: AuthSnapshot = Depends(RoleGuard(AppRole.GRADE_HEAD)),
    store: DataStore = Depends(get_store),
):
    return await _staff_dashboard(snapshot, store)


@router.get('/principal', response_model=DashboardResponse)
async def principal_dashboard(
    snapshot: AuthSnapshot = Depends(RoleGuard(AppRole.PRINCIPAL)),
    store: DataStore = Depends(get_store),
):
    try:
        assignments = await store.select('user_roles')
        classes = await store.select('classes')
    except PortalError as exc:
        raise exc.to_http() from exc

    accepted = [a for a in assignments if a.application_status == ApplicationStatus.ACCEPTED.value]
    stats = {
        'total_staff': sum(1 for a in accepted if a.role in STAFF_ROLES),
        'total_learners': sum(1 for a in accepted if a.role == AppRole.LEARNER.value),
        'total_classes': len(classes),
        'pending_staff_applications': sum(
            1 for a in assignments
            if a.role in STAFF_ROLES and a.application_status == ApplicationStatus.PENDING.value
        ),
    }
    return _dashboard(snapshot, stats=stats)


@router.get('/admin', response_model=DashboardResponse)
async def admin_dashboard(
    snapshot: AuthSnapshot = Depends(RoleGuard(AppRole.ADMIN)),
    store: DataStore = Depends(get_store),
):
    try:
        counts = await count_by_status(store)
        users = await store.select('users')
        classes = await store.select('classes')
        learners = await store.select(
            'user_roles', role=AppRole.LEARNER.value, application_status=ApplicationStatus.ACCEPTED.value
        )
    except PortalError as exc:
        raise exc.to_http() from exc

    stats = {f'{status}_applications': count for status, count in counts.items()}
    stats.update(total_users=len(users), total_classes=len(classes), total_learners=len(learners))
    return _dashboard(snapshot, stats=stats)


@router.get('/sgb', response_model=DashboardResponse)
def sgb_dashboard(snapshot: AuthSnapshot = Depends(RoleGuard(AppRole.SGB))):
    return _dashboard(snapshot)


@router.get('/finance', response_model=DashboardResponse)
def finance_dashboard(snapshot: AuthSnapshot = Depends(RoleGuard(AppRole.FINANCE))):
    return _dashboard(snapshot)
