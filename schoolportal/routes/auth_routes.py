from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator

from schoolportal.auth.context import AuthSnapshot, fetch_user_records
from schoolportal.auth.credentials import CredentialStore, Session
from schoolportal.auth.dependencies import get_current_session, get_current_snapshot, get_optional_snapshot, get_store
from schoolportal.auth.guard import landing_path
from schoolportal.core.errors import PortalError
from schoolportal.datastore import DataStore
from schoolportal.routes.schemas import MeResponse, me_response
from schoolportal.services.registration import MIN_PASSWORD_LENGTH, _check_gmail

router = APIRouter(tags=['auth'])


class SignInRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if '@' not in normalized or normalized.startswith('@') or normalized.endswith('@'):
            raise ValueError('Please enter a valid email address')
        return normalized

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError('Password is required')
        return value


class SignUpRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _check_gmail(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
        return value


class SessionResponse(BaseModel):
    user_id: str | None = None
    email: str | None = None
    access_token: str | None = None
    token_type: str = 'bearer'
    landing_path: str | None = None
    message: str | None = None


class LandingResponse(BaseModel):
    path: str


async def _session_response(store: DataStore, session: Session) -> SessionResponse:
    records = await fetch_user_records(store, session.user_id)
    snapshot = AuthSnapshot.for_session(session, records)
    return SessionResponse(
        user_id=session.user_id,
        email=session.email,
        access_token=session.access_token,
        landing_path=landing_path(snapshot),
    )


@router.post('/signup', response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(data: SignUpRequest, store: DataStore = Depends(get_store)):
    credentials = CredentialStore(store)
    try:
        session = await credentials.sign_up(data.email, data.password)
        if session is None:
            return SessionResponse(email=data.email, message='Check your email to confirm your account.')
        return await _session_response(store, session)
    except PortalError as exc:
        raise exc.to_http() from exc


@router.post('/signin', response_model=SessionResponse)
async def sign_in(data: SignInRequest, store: DataStore = Depends(get_store)):
    credentials = CredentialStore(store)
    try:
        session = await credentials.sign_in(data.email, data.password)
        return await _session_response(store, session)
    except PortalError as exc:
        raise exc.to_http() from exc


@router.post('/signout', status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(
    session: Session = Depends(get_current_session),
    store: DataStore = Depends(get_store),
):
    credentials = CredentialStore(store)
    try:
        await credentials.restore_session(session.access_token)
        await credentials.sign_out()
    except PortalError as exc:
        raise exc.to_http() from exc


@router.post('/refresh', response_model=SessionResponse)
async def refresh(
    session: Session = Depends(get_current_session),
    store: DataStore = Depends(get_store),
):
    credentials = CredentialStore(store)
    try:
        await credentials.restore_session(session.access_token)
        refreshed = await credentials.refresh_session()
        return await _session_response(store, refreshed)
    except PortalError as exc:
        raise exc.to_http() from exc


@router.get('/session', response_model=SessionResponse)
def current_session(session: Session = Depends(get_current_session)):
    return SessionResponse(user_id=session.user_id, email=session.email, access_token=session.access_token)


@router.get('/me', response_model=MeResponse)
def me(snapshot: AuthSnapshot = Depends(get_current_snapshot)):
    return me_response(snapshot)


@router.get('/landing', response_model=LandingResponse)
def landing(snapshot: AuthSnapshot = Depends(get_optional_snapshot)):
    return LandingResponse(path=landing_path(snapshot))
