from fastapi import APIRouter, BackgroundTasks, Depends, status
from pydantic import BaseModel

from schoolportal.auth.context import AuthSnapshot
from schoolportal.auth.dependencies import get_current_snapshot, get_store
from schoolportal.auth.guard import STATUS_PATH, home_path_for, landing_path
from schoolportal.core.choices import AppRole, ApplicationStatus
from schoolportal.core.errors import PortalError
from schoolportal.datastore import DataStore
from schoolportal.services import notifications
from schoolportal.services.registration import (
    LearnerRegistrationRequest,
    RegistrationResult,
    StaffRegistrationRequest,
    grade_capacity,
    register_learner,
    register_staff,
)

router = APIRouter(tags=['registration'])


class RegistrationResponse(BaseModel):
    user_id: str
    role: str
    application_status: str
    access_token: str | None = None
    token_type: str = 'bearer'
    landing_path: str
    message: str


class GradeCapacityResponse(BaseModel):
    grade: str
    max_capacity: int
    current_count: int
    is_full: bool


class ApplicationStatusResponse(BaseModel):
    status: str
    role: str | None
    first_name: str | None
    landing_path: str


def _registration_response(result: RegistrationResult) -> RegistrationResponse:
    accepted = result.application_status == ApplicationStatus.ACCEPTED.value
    if accepted and result.role == AppRole.ADMIN.value:
        message = 'Your admin account is ready. Redirecting...'
    else:
        message = 'Your application has been submitted for review.'
    return RegistrationResponse(
        user_id=result.user_id,
        role=result.role,
        application_status=result.application_status,
        access_token=result.session.access_token if result.session else None,
        landing_path=home_path_for(result.role) if accepted else STATUS_PATH,
        message=message,
    )


def _queue_confirmation_email(background_tasks: BackgroundTasks, result: RegistrationResult) -> None:
    background_tasks.add_task(
        notifications.send_registration_email,
        result.email,
        result.first_name,
        result.last_name,
        result.role,
    )


@router.post('/learner', response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def submit_learner_registration(
    data: LearnerRegistrationRequest,
    background_tasks: BackgroundTasks,
    store: DataStore = Depends(get_store),
):
    try:
        result = await register_learner(store, data)
    except PortalError as exc:
        raise exc.to_http() from exc

    _queue_confirmation_email(background_tasks, result)
    return _registration_response(result)


@router.post('/staff', response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def submit_staff_registration(
    data: StaffRegistrationRequest,
    background_tasks: BackgroundTasks,
    store: DataStore = Depends(get_store),
):
    try:
        result = await register_staff(store, data)
    except PortalError as exc:
        raise exc.to_http() from exc

    _queue_confirmation_email(background_tasks, result)
    return _registration_response(result)


@router.get('/capacity', response_model=list[GradeCapacityResponse])
async def list_grade_capacity(store: DataStore = Depends(get_store)):
    try:
        capacities = await grade_capacity(store)
    except PortalError as exc:
        raise exc.to_http() from exc

    return [
        GradeCapacityResponse(
            grade=capacity.grade,
            max_capacity=capacity.max_capacity,
            current_count=capacity.current_count,
            is_full=capacity.is_full,
        )
        for capacity in capacities
    ]


@router.get('/status', response_model=ApplicationStatusResponse)
def application_status(snapshot: AuthSnapshot = Depends(get_current_snapshot)):
    first_role = snapshot.roles[0].role if snapshot.roles else None
    return ApplicationStatusResponse(
        status=snapshot.application_status,
        role=first_role,
        first_name=snapshot.profile.first_name if snapshot.profile else None,
        landing_path=landing_path(snapshot),
    )
