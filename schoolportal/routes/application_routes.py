from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator

from schoolportal.auth.context import AuthSnapshot
from schoolportal.auth.dependencies import RoleGuard, get_store
from schoolportal.core.choices import AppRole
from schoolportal.core.errors import NotAllowed, PortalError
from schoolportal.datastore import DataStore
from schoolportal.routes.schemas import ProfileResponse, RoleResponse
from schoolportal.services.applications import (
    ApplicationDetail,
    decide_application,
    get_application,
    list_applications,
    reviewable_roles,
)

router = APIRouter(tags=['applications'])

reviewer_guard = RoleGuard(AppRole.ADMIN, AppRole.PRINCIPAL)


class LearnerRegistrationResponse(BaseModel):
    applying_for_grade: str
    previous_grade: str | None = None
    parent_guardian_name: str
    parent_guardian_phone: str
    parent_guardian_email: str | None = None
    parent_guardian_id_url: str
    previous_report_url: str
    banking_details_url: str
    student_number: str | None = None

    class Config:
        from_attributes = True


class StaffRegistrationResponse(BaseModel):
    grades_teaching: list[str] | None = None
    subjects_teaching: list[str] | None = None
    qualification_document_url: str
    staff_number: str | None = None

    class Config:
        from_attributes = True


class ApplicationResponse(BaseModel):
    id: str
    user_id: str
    role: str
    application_status: str
    created_at: datetime | None = None
    profile: ProfileResponse | None = None
    learner_registration: LearnerRegistrationResponse | None = None
    staff_registration: StaffRegistrationResponse | None = None


class DecisionRequest(BaseModel):
    status: str

    @field_validator('status')
    @classmethod
    def normalize_status(cls, value: str) -> str:
        return value.strip().lower()


def _application_response(detail: ApplicationDetail) -> ApplicationResponse:
    assignment = detail.assignment
    return ApplicationResponse(
        id=assignment.id,
        user_id=assignment.user_id,
        role=assignment.role,
        application_status=assignment.application_status,
        created_at=assignment.created_at,
        profile=ProfileResponse.model_validate(detail.profile) if detail.profile else None,
        learner_registration=(
            LearnerRegistrationResponse.model_validate(detail.learner_registration)
            if detail.learner_registration else None
        ),
        staff_registration=(
            StaffRegistrationResponse.model_validate(detail.staff_registration)
            if detail.staff_registration else None
        ),
    )


@router.get('', response_model=list[ApplicationResponse])
async def list_role_applications(
    status: str = Query(default='pending'),
    actor: AuthSnapshot = Depends(reviewer_guard),
    store: DataStore = Depends(get_store),
):
    try:
        details = await list_applications(store, status=status.strip().lower(), roles=reviewable_roles(actor))
    except PortalError as exc:
        raise exc.to_http() from exc
    return [_application_response(detail) for detail in details]


@router.get('/{application_id}', response_model=ApplicationResponse)
async def application_detail(
    application_id: str,
    actor: AuthSnapshot = Depends(reviewer_guard),
    store: DataStore = Depends(get_store),
):
    try:
        detail = await get_application(store, application_id)
    except PortalError as exc:
        raise exc.to_http() from exc
    if detail.assignment.role not in reviewable_roles(actor):
        raise NotAllowed().to_http()
    return _application_response(detail)


@router.post('/{application_id}/decision', response_model=RoleResponse)
async def decide(
    application_id: str,
    data: DecisionRequest,
    actor: AuthSnapshot = Depends(reviewer_guard),
    store: DataStore = Depends(get_store),
):
    try:
        return await decide_application(store, actor, application_id, data.status)
    except PortalError as exc:
        raise exc.to_http() from exc
