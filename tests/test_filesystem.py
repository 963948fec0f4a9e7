from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest

from bucketfs.errors import (
    BoundaryViolation,
    InvalidArgument,
    NotFound,
    NotSupported,
    StorageTimeout,
    UpstreamError,
)
from bucketfs.services.filesystem import Capability, S3FS
from bucketfs.services.object_store import MemoryObjectStore

_TS = datetime(2024, 3, 1, tzinfo=timezone.utc)


def _fs(**objects: bytes) -> tuple[S3FS, MemoryObjectStore]:
    store = MemoryObjectStore()
    for key, body in objects.items():
        store.add_object('bucket', key, body, last_modified=_TS)
    return S3FS(store, 'bucket'), store


def _seed(store: MemoryObjectStore, *keys: str) -> None:
    for key in keys:
        store.add_object('bucket', key, b'data', last_modified=_TS)


def test_constructor_validates_arguments():
    with pytest.raises(InvalidArgument):
        S3FS(None, 'bucket')
    with pytest.raises(InvalidArgument):
        S3FS(MemoryObjectStore(), '')
    assert S3FS(MemoryObjectStore(), 'bucket', root='').root() == '/'


@pytest.mark.parametrize(
    'root, expected',
    [('data/', '/data'), ('data', '/data'), ('/a/./b//', '/a/b'), ('.', '/')],
)
def test_constructor_normalizes_root(root, expected):
    fs = S3FS(MemoryObjectStore(), 'bucket', root=root)

    assert fs.root() == expected
    assert fs.chroot('').root() == fs.root()
    assert S3FS(MemoryObjectStore(), 'bucket').chroot(root).root() == fs.root()


def test_open_reads_whole_object():
    fs, store = _fs()
    _seed(store, 'docs/a.txt')

    with fs.open('docs/a.txt') as f:
        assert f.read() == b'data'
        assert f.name == 'docs/a.txt'

    assert store.calls == [{'op': 'get_object', 'bucket': 'bucket', 'key': 'docs/a.txt'}]


def test_open_missing_object_is_not_found_with_caller_path():
    fs, _ = _fs()
    child = fs.chroot('private/area')

    with pytest.raises(NotFound) as exc:
        child.open('missing.txt')

    assert exc.value.op == 'open'
    assert exc.value.path == 'missing.txt'
    assert 'private' not in str(exc.value)


def test_open_escape_performs_no_storage_call():
    fs, store = _fs()

    with pytest.raises(BoundaryViolation) as exc:
        fs.open('../outside.txt')

    assert exc.value.op == 'open'
    assert store.calls == []


def test_open_rejects_unknown_flags():
    fs, _ = _fs()

    with pytest.raises(NotSupported):
        fs.open_file('a.txt', os.O_RDONLY | os.O_EXCL)


def test_open_truncate_requires_write_access():
    fs, store = _fs(**{'a.txt': b'keep'})

    with pytest.raises(InvalidArgument):
        fs.open_file('a.txt', os.O_RDONLY | os.O_TRUNC)

    assert store.calls == []
    assert fs.open('a.txt').read() == b'keep'


def test_open_directory_is_invalid():
    fs, _ = _fs()

    with pytest.raises(InvalidArgument):
        fs.open('dir/')


def test_create_starts_empty_and_flush_persists():
    fs, store = _fs()
    _seed(store, 'notes.txt')

    f = fs.create('notes.txt')
    assert f.read() == b''
    f.write(b'hello')
    f.write(b'world')
    f.close()
    assert fs.open('notes.txt').read() == b'data'

    f = fs.create('notes.txt')
    f.write(b'helloworld')
    f.flush()
    assert fs.open('notes.txt').read() == b'helloworld'


def test_open_file_create_without_truncate_keeps_existing_content():
    fs, store = _fs()
    _seed(store, 'log.txt')

    with fs.open_file('log.txt', os.O_RDWR | os.O_CREAT) as f:
        f.write(b'+more')
        f.flush()

    with fs.open_file('new.txt', os.O_WRONLY | os.O_CREAT) as f:
        assert f.size == 0

    assert fs.open('log.txt').read() == b'data+more'


def test_read_only_handles_never_write_back():
    fs, store = _fs()
    _seed(store, 'a.txt')

    f = fs.open('a.txt')
    f.write(b'!')
    f.flush()

    assert not any(call['op'] == 'put_object' for call in store.calls)


def test_stat_file_and_lstat():
    fs, store = _fs()
    _seed(store, 'dir/a.txt')

    entry = fs.stat('dir/a.txt')
    assert entry.name == 'a.txt'
    assert entry.size == 4
    assert entry.mod_time == _TS
    assert not entry.is_dir
    assert fs.lstat('dir/a.txt') == entry


def test_stat_trailing_separator_forces_directory():
    fs, store = _fs()
    _seed(store, 'dir/a.txt', 'plain')

    assert fs.stat('dir/').is_dir
    assert fs.stat('dir/').name == 'dir'
    assert fs.stat('plain/').is_dir
    with pytest.raises(NotFound):
        fs.stat('nothing/')


def test_stat_root_is_directory():
    fs, store = _fs()

    assert fs.stat('').is_dir
    assert fs.stat('/').is_dir
    assert store.calls == []


@pytest.mark.parametrize('op', ['stat', 'lstat'])
def test_stat_symlink_marker_is_not_supported(op):
    fs, store = _fs()
    store.add_object('bucket', 'link', b'', metadata={'Symlink-Target': 'a.txt'})

    with pytest.raises(NotSupported) as exc:
        getattr(fs, op)('link')

    assert exc.value.op == op


def test_stat_missing_and_upstream_errors():
    fs, store = _fs()

    with pytest.raises(NotFound):
        fs.stat('missing')

    store.fail_next(StorageTimeout('head_object', 'x'))
    with pytest.raises(StorageTimeout) as exc:
        fs.stat('x')
    assert exc.value.retryable
    assert exc.value.op == 'stat'

    cause = RuntimeError('boom')
    err = UpstreamError('head_object', 'x')
    err.__cause__ = cause
    store.fail_next(err)
    with pytest.raises(UpstreamError) as exc:
        fs.stat('x')
    assert exc.value.__cause__ is cause


def test_read_dir():
    fs, store = _fs()
    _seed(store, 'dir/a.txt', 'dir/b.txt', 'dir/sub/c.txt')

    entries = fs.read_dir('dir')

    assert sorted((e.name, e.is_dir) for e in entries) == [('a.txt', False), ('b.txt', False), ('sub', True)]


def test_read_dir_escape_is_rejected():
    fs, store = _fs()

    with pytest.raises(BoundaryViolation) as exc:
        fs.chroot('base').read_dir('../other')

    assert exc.value.op == 'readdir'
    assert store.calls == []


def test_mkdir_all_writes_marker_and_is_idempotent():
    fs, store = _fs()

    fs.mkdir_all('a/b')
    fs.mkdir_all('a/b/')

    assert store.keys('bucket') == ['a/b/']
    assert fs.read_dir('a') == [fs.stat('a/b/')]
    assert fs.read_dir('a/b') == []


def test_mkdir_all_root_is_noop():
    fs, store = _fs()

    fs.mkdir_all('/')

    assert store.calls == []


def test_chroot_is_non_mutating():
    fs, store = _fs()
    _seed(store, 'sub/a.txt', 'top.txt')

    child = fs.chroot('sub')

    assert fs.root() == '/'
    assert child.root() == fs.join(fs.root(), 'sub')
    assert child.open('a.txt').read() == b'data'
    assert fs.open('top.txt').read() == b'data'
    assert [e.name for e in fs.read_dir('')] == ['sub', 'top.txt']
    assert child.chroot('inner').root() == '/sub/inner'
    assert child.root() == '/sub'


def test_chroot_escape_is_rejected():
    fs, _ = _fs()
    child = fs.chroot('sub')

    with pytest.raises(BoundaryViolation):
        child.chroot('../..')
    with pytest.raises(BoundaryViolation):
        child.open('../top.txt')


def test_join_never_uses_host_separators():
    fs, _ = _fs()

    assert fs.join('a', 'b', 'c.txt') == 'a/b/c.txt'
    assert fs.join('/a/', '../b') == '/b'


@pytest.mark.parametrize(
    'call',
    [
        lambda fs: fs.remove('a.txt'),
        lambda fs: fs.rename('a.txt', 'b.txt'),
        lambda fs: fs.symlink('a.txt', 'link'),
        lambda fs: fs.readlink('link'),
        lambda fs: fs.temp_file('', 'tmp'),
        lambda fs: fs.temp_file('dir', 'tmp'),
        lambda fs: fs.create('a.txt').lock(),
        lambda fs: fs.create('a.txt').unlock(),
    ],
)
def test_unsupported_operations(call):
    fs, store = _fs()

    with pytest.raises(NotSupported):
        call(fs)

    assert not any(c['op'] == 'put_object' for c in store.calls)


def test_capabilities_exclude_locking():
    fs, _ = _fs()

    caps = fs.capabilities()

    assert Capability.READ in caps
    assert Capability.WRITE in caps
    assert Capability.LOCK not in caps
