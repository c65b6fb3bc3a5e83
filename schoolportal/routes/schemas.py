from datetime import datetime

from pydantic import BaseModel

from schoolportal.auth.context import AuthSnapshot
from schoolportal.auth.guard import landing_path


class ProfileResponse(BaseModel):
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

    class Config:
        from_attributes = True


class RoleResponse(BaseModel):
    id: str
    role: str
    application_status: str
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class MeResponse(BaseModel):
    user_id: str
    email: str | None
    profile: ProfileResponse | None
    roles: list[RoleResponse]
    is_accepted: bool
    primary_role: str | None
    application_status: str
    landing_path: str


def me_response(snapshot: AuthSnapshot) -> MeResponse:
    return MeResponse(
        user_id=snapshot.user_id,
        email=snapshot.email,
        profile=ProfileResponse.model_validate(snapshot.profile) if snapshot.profile else None,
        roles=[RoleResponse.model_validate(role) for role in snapshot.roles],
        is_accepted=snapshot.is_accepted,
        primary_role=snapshot.primary_role,
        application_status=snapshot.application_status,
        landing_path=landing_path(snapshot),
    )
