"""Bucketed file storage on the local filesystem with public URLs."""

import logging
import secrets
import string
import time
from pathlib import Path, PurePosixPath

from schoolportal.core import config
from schoolportal.core.choices import AppRole
from schoolportal.core.errors import StorageError, UploadRejected

logger = logging.getLogger(__name__)

BUCKETS = ('registration-documents', 'avatars', 'timetables')
# Registration documents are uploaded before an account exists
PUBLIC_UPLOAD_BUCKETS = ('registration-documents',)
# Buckets limited to accepted holders of these roles; others need only a signed-in user
BUCKET_UPLOAD_ROLES = {
    'timetables': (AppRole.GRADE_HEAD.value, AppRole.PRINCIPAL.value, AppRole.ADMIN.value),
}
UPLOAD_CHUNK_SIZE = 64 * 1024
_NAME_ALPHABET = string.ascii_lowercase + string.digits


def build_object_path(folder: str, filename: str) -> str:
    """``folder/<epoch ms>-<random>.<ext>`` for an uploaded file name."""
    extension = PurePosixPath(filename).suffix.lower().lstrip('.')
    token = ''.join(secrets.choice(_NAME_ALPHABET) for _ in range(6))
    name = f'{int(time.time() * 1000)}-{token}'
    if extension:
        name = f'{name}.{extension}'
    folder = folder.strip('/')
    return f'{folder}/{name}' if folder else name


def check_bucket(bucket: str) -> None:
    if bucket not in BUCKETS:
        raise UploadRejected(f'Unknown bucket: {bucket}')


def check_extension(filename: str) -> None:
    extension = PurePosixPath(filename).suffix.lower()
    if extension not in config.ALLOWED_UPLOAD_EXTENSIONS:
        raise UploadRejected(f'Only {", ".join(config.ALLOWED_UPLOAD_EXTENSIONS)} files are accepted.')


def check_size(size: int) -> None:
    if size > config.MAX_UPLOAD_MB * 1024 * 1024:
        raise UploadRejected(f'Maximum file size is {config.MAX_UPLOAD_MB}MB')


class BlobStorage:
    def __init__(self, root: str | Path | None = None, public_base_url: str | None = None):
        self.root = Path(root or config.STORAGE_ROOT)
        self.public_base_url = (public_base_url or config.STORAGE_PUBLIC_BASE_URL).rstrip('/')

    def _resolve(self, bucket: str, path: str) -> Path:
        check_bucket(bucket)
        relative = PurePosixPath(path)
        if relative.is_absolute() or '..' in relative.parts:
            raise UploadRejected('Invalid file path.')
        return self.root / bucket / Path(*relative.parts)

    def upload(self, bucket: str, path: str, data: bytes) -> str:
        target = self._resolve(bucket, path)
        if target.exists():
            raise UploadRejected('A file already exists at this path.')
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            logger.exception('Could not write %s/%s', bucket, path)
            raise StorageError() from exc
        return path

    def get_public_url(self, bucket: str, path: str) -> str:
        self._resolve(bucket, path)
        return f'{self.public_base_url}/{bucket}/{path}'
