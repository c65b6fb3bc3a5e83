from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import BaseModel

from schoolportal.auth.context import AuthSnapshot
from schoolportal.auth.dependencies import access_denied, get_optional_snapshot
from schoolportal.auth.guard import evaluate_access
from schoolportal.core.errors import PortalError
from schoolportal.services.storage import (
    BUCKET_UPLOAD_ROLES,
    PUBLIC_UPLOAD_BUCKETS,
    UPLOAD_CHUNK_SIZE,
    BlobStorage,
    build_object_path,
    check_bucket,
    check_extension,
    check_size,
)

router = APIRouter(tags=['storage'])


class UploadResponse(BaseModel):
    bucket: str
    path: str
    public_url: str


def get_blob_storage() -> BlobStorage:
    return BlobStorage()


def authorize_upload(snapshot: AuthSnapshot, bucket: str) -> None:
    if bucket in PUBLIC_UPLOAD_BUCKETS:
        return
    roles = BUCKET_UPLOAD_ROLES.get(bucket)
    if roles is None:
        # Signing in is enough, so pending applicants can still set an avatar
        if not snapshot.is_authenticated:
            raise access_denied(evaluate_access(snapshot))
        return
    decision = evaluate_access(snapshot, roles)
    if not decision.allowed:
        raise access_denied(decision)


async def read_upload(file: UploadFile) -> bytes:
    """Read ``file`` in chunks, stopping as soon as it passes the size limit."""
    chunks = []
    size = 0
    while True:
        chunk = await file.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        size += len(chunk)
        check_size(size)
        chunks.append(chunk)
    return b''.join(chunks)


@router.post('/{bucket}', response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    bucket: str,
    file: UploadFile = File(...),
    folder: str = Form(default=''),
    snapshot: AuthSnapshot = Depends(get_optional_snapshot),
):
    try:
        check_bucket(bucket)
    except PortalError as exc:
        raise exc.to_http() from exc
    authorize_upload(snapshot, bucket)

    storage = get_blob_storage()
    try:
        check_extension(file.filename or '')
        data = await read_upload(file)
        path = storage.upload(bucket, build_object_path(folder, file.filename or ''), data)
        public_url = storage.get_public_url(bucket, path)
    except PortalError as exc:
        raise exc.to_http() from exc
    return UploadResponse(bucket=bucket, path=path, public_url=public_url)
