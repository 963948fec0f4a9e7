from __future__ import annotations

import logging

from ..errors import BoundaryViolation
from .metadata import EntryDescriptor, to_dir_descriptor, to_file_descriptor
from .object_store import ListPage, ObjectStore
from .paths import SEPARATOR, clean, crosses_boundary, is_sub_path, join, to_key

logger = logging.getLogger(__name__)


def listing_prefix(root: str, name: str) -> str:
    prefix = to_key(join(root, clean(name)))
    if prefix and not prefix.endswith(SEPARATOR):
        prefix += SEPARATOR
    return prefix


def translate_page(prefix: str, page: ListPage) -> list[EntryDescriptor]:
    entries: list[EntryDescriptor] = []
    for common in page.common_prefixes:
        dir_name = common[len(prefix):] if common.startswith(prefix) else common
        dir_name = dir_name.removesuffix(SEPARATOR)
        if dir_name:
            entries.append(to_dir_descriptor(dir_name))
    for obj in page.objects:
        file_name = obj.key[len(prefix):] if obj.key.startswith(prefix) else obj.key
        if file_name and not file_name.endswith(SEPARATOR):
            entries.append(to_file_descriptor(file_name, obj.size, obj.last_modified))
    return entries


class ListingTranslator:
    def __init__(self, store: ObjectStore, bucket: str):
        self.store = store
        self.bucket = bucket

    def list(self, root: str, name: str) -> list[EntryDescriptor]:
        target = join(root, clean(name))
        if crosses_boundary(name) or not is_sub_path(root, target):
            logger.debug('rejected listing of %r: escapes root %r', name, root)
            raise BoundaryViolation('readdir', name)

        prefix = listing_prefix(root, name)
        results: list[EntryDescriptor] = []
        pages = 0
        for page in self.store.list_objects_paged(self.bucket, prefix, SEPARATOR):
            results.extend(translate_page(prefix, page))
            pages += 1
        logger.debug('listed prefix=%r pages=%d entries=%d', prefix, pages, len(results))
        return results
