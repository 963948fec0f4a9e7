from __future__ import annotations

import enum
import logging
import os
from functools import partial

from ..errors import BucketFSError, InvalidArgument, NotFound, NotSupported
from .buffered_file import BufferedFile
from .listing import ListingTranslator
from .metadata import EntryDescriptor, describe, to_dir_descriptor
from .object_store import ObjectStore
from .paths import SEPARATOR, base_name, clean, has_trailing_separator, join, resolve, to_key

logger = logging.getLogger(__name__)

_ACCESS_FLAGS = os.O_RDONLY | os.O_WRONLY | os.O_RDWR
_SUPPORTED_FLAGS = _ACCESS_FLAGS | os.O_CREAT | os.O_TRUNC | os.O_APPEND


class Capability(enum.Flag):
    READ = enum.auto()
    WRITE = enum.auto()
    SEEK = enum.auto()
    TRUNCATE = enum.auto()
    LOCK = enum.auto()


class S3FS:
    def __init__(self, store: ObjectStore, bucket: str, root: str = SEPARATOR):
        if store is None:
            raise InvalidArgument('new', bucket, 'object store cannot be None')
        if not bucket:
            raise InvalidArgument('new', bucket, 'bucket name cannot be empty')
        self._store = store
        self._bucket = bucket
        self._root = clean(SEPARATOR + root) if root else SEPARATOR
        self._listing = ListingTranslator(store, bucket)

    def __repr__(self) -> str:
        return f'S3FS(bucket={self._bucket!r}, root={self._root!r})'

    @property
    def bucket(self) -> str:
        return self._bucket

    def root(self) -> str:
        return self._root

    @staticmethod
    def join(*elems: str) -> str:
        return join(*elems)

    def capabilities(self) -> Capability:
        return Capability.READ | Capability.WRITE | Capability.SEEK | Capability.TRUNCATE

    def _resolve(self, op: str, name: str) -> str:
        try:
            return resolve(self._root, name)
        except BucketFSError as exc:
            raise exc.annotate(op, name)

    def _put(self, op: str, name: str, key: str, body: bytes) -> None:
        try:
            self._store.put_object(self._bucket, key, body)
        except BucketFSError as exc:
            raise exc.annotate(op, name)

    def chroot(self, sub_path: str) -> S3FS:
        new_root = self._resolve('chroot', sub_path)
        logger.debug('chroot %r -> %r', self._root, new_root)
        return S3FS(self._store, self._bucket, new_root)

    def open(self, name: str) -> BufferedFile:
        return self.open_file(name, os.O_RDONLY)

    def create(self, name: str) -> BufferedFile:
        return self.open_file(name, os.O_RDWR | os.O_CREAT | os.O_TRUNC)

    def open_file(self, name: str, flag: int = os.O_RDONLY, perm: int = 0o666) -> BufferedFile:
        if flag & ~_SUPPORTED_FLAGS:
            raise NotSupported('open', name, f'unsupported open flag {flag:#o}')
        writable = bool(flag & (os.O_WRONLY | os.O_RDWR))
        if flag & os.O_TRUNC and not writable:
            raise InvalidArgument('open', name, 'O_TRUNC requires write access')

        key = to_key(self._resolve('open', name))
        if not key or has_trailing_separator(name):
            raise InvalidArgument('open', name, 'is a directory')

        if flag & os.O_TRUNC:
            content = b''
        else:
            try:
                content = self._store.get_object(self._bucket, key)
            except NotFound as exc:
                if not flag & os.O_CREAT:
                    raise exc.annotate('open', name)
                content = b''
            except BucketFSError as exc:
                raise exc.annotate('open', name)

        on_flush = None
        if writable:
            on_flush = partial(self._put, 'write', name, key)
        return BufferedFile(name, content, on_flush)

    def stat(self, name: str) -> EntryDescriptor:
        return self._stat('stat', name)

    def lstat(self, name: str) -> EntryDescriptor:
        return self._stat('lstat', name)

    def _stat(self, op: str, name: str) -> EntryDescriptor:
        key = to_key(self._resolve(op, name))
        if not key:
            return to_dir_descriptor(SEPARATOR)
        if has_trailing_separator(name):
            return self._stat_dir(op, name, key)
        try:
            return describe(name, self._store.head_object(self._bucket, key))
        except BucketFSError as exc:
            raise exc.annotate(op, name)

    def _stat_dir(self, op: str, name: str, key: str) -> EntryDescriptor:
        for candidate in (key, key + SEPARATOR):
            try:
                return describe(name, self._store.head_object(self._bucket, candidate))
            except NotFound:
                continue
            except BucketFSError as exc:
                raise exc.annotate(op, name)

        try:
            for page in self._store.list_objects_paged(self._bucket, key + SEPARATOR, SEPARATOR):
                if page.common_prefixes or page.objects:
                    return to_dir_descriptor(base_name(name))
                break
        except BucketFSError as exc:
            raise exc.annotate(op, name)
        raise NotFound(op, name)

    def read_dir(self, name: str) -> list[EntryDescriptor]:
        try:
            return self._listing.list(self._root, name)
        except BucketFSError as exc:
            raise exc.annotate('readdir', name)

    def mkdir_all(self, name: str, perm: int = 0o755) -> None:
        key = to_key(self._resolve('mkdir', name))
        if not key:
            return
        self._put('mkdir', name, key + SEPARATOR, b'')

    def remove(self, name: str) -> None:
        raise NotSupported('remove', name)

    def rename(self, old_path: str, new_path: str) -> None:
        raise NotSupported('rename', old_path)

    def symlink(self, target: str, link: str) -> None:
        raise NotSupported('symlink', link)

    def readlink(self, name: str) -> str:
        raise NotSupported('readlink', name)

    def temp_file(self, dir: str = '', prefix: str = '') -> BufferedFile:
        raise NotSupported('tempfile', dir or prefix)
