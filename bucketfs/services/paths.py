from __future__ import annotations

import logging
import posixpath

from ..errors import BoundaryViolation

SEPARATOR = '/'

logger = logging.getLogger(__name__)


def clean(path: str) -> str:
    if not path:
        return '.'
    cleaned = posixpath.normpath(path)
    # normpath keeps a leading '//' as POSIX allows; object keys have no such distinction
    if cleaned.startswith('//'):
        cleaned = SEPARATOR + cleaned.lstrip(SEPARATOR)
    return cleaned


def join(*elems: str) -> str:
    parts = [e for e in elems if e]
    if not parts:
        return ''
    return clean(SEPARATOR.join(parts))


def crosses_boundary(path: str) -> bool:
    cleaned = clean(path)
    return cleaned == '..' or cleaned.startswith('../')


def resolve(root: str, user_path: str) -> str:
    if crosses_boundary(user_path):
        logger.debug('rejected %r: escapes root %r', user_path, root)
        raise BoundaryViolation('resolve', user_path)
    return join(root, clean(user_path))


def _segments(path: str) -> list[str]:
    cleaned = clean(path).lstrip(SEPARATOR)
    if cleaned in ('', '.'):
        return []
    return cleaned.split(SEPARATOR)


def is_sub_path(base: str, target: str) -> bool:
    base_parts = _segments(base)
    target_parts = _segments(target)
    if not base_parts:
        return '..' not in target_parts
    if '..' in target_parts:
        return False
    return target_parts[: len(base_parts)] == base_parts


def to_key(resolved: str) -> str:
    key = resolved.lstrip(SEPARATOR)
    return '' if key == '.' else key


def has_trailing_separator(name: str) -> bool:
    return name.endswith(SEPARATOR)


def base_name(name: str) -> str:
    cleaned = clean(name)
    if cleaned == SEPARATOR:
        return SEPARATOR
    return posixpath.basename(cleaned)
