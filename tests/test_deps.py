from __future__ import annotations

import pytest

from bucketfs import deps
from bucketfs.errors import InvalidArgument
from bucketfs.services.object_store import MemoryObjectStore


@pytest.fixture(autouse=True)
def _clear_cache():
    deps.get_filesystem.cache_clear()
    yield
    deps.get_filesystem.cache_clear()


def test_get_filesystem_requires_bucket(monkeypatch):
    monkeypatch.setattr(deps.settings, 's3_bucket', '')

    with pytest.raises(InvalidArgument):
        deps.get_filesystem()


def test_get_filesystem_scopes_to_configured_root(monkeypatch):
    monkeypatch.setattr(deps.settings, 's3_bucket', 'media')
    monkeypatch.setattr(deps.settings, 'storage_backend', 'memory')
    monkeypatch.setattr(deps.settings, 's3_root', 'shared/team')

    fs = deps.get_filesystem()

    assert fs.bucket == 'media'
    assert fs.root() == '/shared/team'
    assert isinstance(fs._store, MemoryObjectStore)
    assert deps.get_filesystem() is fs
