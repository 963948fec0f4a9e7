from __future__ import annotations

import stat
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from ..errors import NotSupported
from .object_store import ObjectHead
from .paths import base_name, has_trailing_separator

SYMLINK_TARGET_KEY = 'Symlink-Target'
FILE_MODE = 0o644
DIR_MODE = stat.S_IFDIR | 0o755
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class EntryDescriptor:
    name: str
    size: int
    mod_time: datetime
    is_dir: bool
    mode: int

    def to_dict(self) -> dict:
        data = asdict(self)
        data['mod_time'] = self.mod_time.isoformat()
        data['mtime'] = 0 if self.is_dir else int(self.mod_time.timestamp())
        return data


def to_file_descriptor(name: str, size: int, mod_time: datetime) -> EntryDescriptor:
    return EntryDescriptor(name=name, size=size, mod_time=mod_time, is_dir=False, mode=FILE_MODE)


def to_dir_descriptor(name: str) -> EntryDescriptor:
    return EntryDescriptor(name=name, size=0, mod_time=ZERO_TIME, is_dir=True, mode=DIR_MODE)


def is_symlink(metadata: dict[str, str]) -> bool:
    # S3 lower-cases user metadata keys on the wire
    wanted = SYMLINK_TARGET_KEY.lower()
    return any(key.lower() == wanted for key in metadata)


def describe(name: str, head: ObjectHead) -> EntryDescriptor:
    if is_symlink(head.metadata):
        raise NotSupported('stat', name, 'symbolic links are not supported')
    if has_trailing_separator(name):
        return to_dir_descriptor(base_name(name))
    return to_file_descriptor(base_name(name), head.size, head.last_modified)
