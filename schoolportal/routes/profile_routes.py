from fastapi import APIRouter, Depends

from schoolportal.auth.context import AuthSnapshot
from schoolportal.auth.dependencies import get_current_snapshot, get_store
from schoolportal.core.errors import PortalError
from schoolportal.datastore import DataStore
from schoolportal.routes.schemas import ProfileResponse
from schoolportal.services.profiles import ProfileUpdateRequest, update_profile

router = APIRouter(tags=['profiles'])


@router.patch('/{user_id}', response_model=ProfileResponse)
async def edit_profile(
    user_id: str,
    data: ProfileUpdateRequest,
    actor: AuthSnapshot = Depends(get_current_snapshot),
    store: DataStore = Depends(get_store),
):
    # Pending applicants may still correct their own details
    try:
        return await update_profile(store, actor, user_id, data.model_dump(exclude_unset=True))
    except PortalError as exc:
        raise exc.to_http() from exc
