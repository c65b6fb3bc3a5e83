from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session as DbSession

from schoolportal.auth.context import AuthSnapshot, fetch_user_records
from schoolportal.auth.credentials import Session, authenticate_token
from schoolportal.auth.guard import SIGN_IN_PATH, evaluate_access, NOT_AUTHENTICATED
from schoolportal.core.errors import DataStoreError, SessionInvalid
from schoolportal.database import get_db
from schoolportal.datastore import DataStore

security = HTTPBearer(auto_error=False)


def get_store(db: DbSession = Depends(get_db)) -> DataStore:
    return DataStore(db)


async def get_current_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    store: DataStore = Depends(get_store),
) -> Session:
    if credentials is None:
        raise HTTPException(status_code=401, detail={"message": "Not authenticated", "redirect_to": SIGN_IN_PATH})
    try:
        return await authenticate_token(store, credentials.credentials)
    except SessionInvalid as exc:
        raise HTTPException(status_code=401, detail={"message": exc.message, "redirect_to": SIGN_IN_PATH}) from exc
    except DataStoreError as exc:
        raise exc.to_http() from exc


async def get_current_snapshot(
    session: Session = Depends(get_current_session),
    store: DataStore = Depends(get_store),
) -> AuthSnapshot:
    try:
        records = await fetch_user_records(store, session.user_id)
    except DataStoreError as exc:
        raise exc.to_http() from exc
    return AuthSnapshot.for_session(session, records)


async def get_optional_snapshot(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    store: DataStore = Depends(get_store),
) -> AuthSnapshot:
    if credentials is None:
        return AuthSnapshot()
    try:
        session = await authenticate_token(store, credentials.credentials)
        records = await fetch_user_records(store, session.user_id)
    except SessionInvalid:
        return AuthSnapshot()
    except DataStoreError as exc:
        raise exc.to_http() from exc
    return AuthSnapshot.for_session(session, records)


def access_denied(decision) -> HTTPException:
    return HTTPException(
        status_code=401 if decision.reason == NOT_AUTHENTICATED else 403,
        detail={"message": decision.message, "redirect_to": decision.redirect_to, "reason": decision.reason},
    )


class RoleGuard:
    """Dependency admitting accepted users whose primary role is one of ``roles``.

    Rejections carry the path the client should move to, so a single
    guard replaces per-page redirect logic.
    """

    def __init__(self, *roles):
        self.required_roles = tuple(getattr(role, "value", role) for role in roles)

    async def __call__(self, snapshot: AuthSnapshot = Depends(get_optional_snapshot)) -> AuthSnapshot:
        decision = evaluate_access(snapshot, self.required_roles)
        if not decision.allowed:
            raise access_denied(decision)
        return snapshot
