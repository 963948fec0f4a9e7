from __future__ import annotations

from functools import lru_cache

from .config import settings
from .errors import InvalidArgument
from .services.filesystem import S3FS
from .services.object_store import MemoryObjectStore, S3ObjectStore


@lru_cache(maxsize=1)
def get_filesystem() -> S3FS:
    if not settings.s3_bucket:
        raise InvalidArgument('new', '', 'S3_BUCKET is not configured')
    if settings.storage_backend == 'memory':
        store = MemoryObjectStore()
    else:
        store = S3ObjectStore.from_settings(settings)
    base = S3FS(store, settings.s3_bucket)
    if settings.s3_root in ('', '/'):
        return base
    return base.chroot(settings.s3_root)
