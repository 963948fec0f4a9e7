from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator, Protocol

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError, ConnectTimeoutError, ReadTimeoutError

from ..config import Settings
from ..errors import BucketFSError, NotFound, StorageTimeout, UpstreamError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {'NoSuchKey', 'NotFound', '404'}


@dataclass(frozen=True)
class ObjectHead:
    size: int
    last_modified: datetime
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ObjectSummary:
    key: str
    size: int
    last_modified: datetime


@dataclass(frozen=True)
class ListPage:
    common_prefixes: list[str] = field(default_factory=list)
    objects: list[ObjectSummary] = field(default_factory=list)


class ObjectStore(Protocol):
    def get_object(self, bucket: str, key: str) -> bytes:
        ...

    def head_object(self, bucket: str, key: str) -> ObjectHead:
        ...

    def put_object(self, bucket: str, key: str, body: bytes) -> None:
        ...

    def list_objects_paged(self, bucket: str, prefix: str, delimiter: str) -> Iterator[ListPage]:
        ...


def build_s3_client(cfg: Settings):
    config = BotoConfig(
        connect_timeout=cfg.storage_timeout_sec,
        read_timeout=cfg.storage_timeout_sec,
        retries={'max_attempts': cfg.storage_max_attempts, 'mode': 'standard'},
        s3={'addressing_style': cfg.s3_addressing_style},
    )
    return boto3.client(
        's3',
        endpoint_url=cfg.s3_endpoint_url or None,
        region_name=cfg.s3_region or None,
        aws_access_key_id=cfg.s3_access_key or None,
        aws_secret_access_key=cfg.s3_secret_key or None,
        config=config,
    )


@contextmanager
def _translate_errors(op: str, key: str):
    try:
        yield
    except BucketFSError:
        raise
    except ClientError as exc:
        code = str(exc.response.get('Error', {}).get('Code', ''))
        if code in _NOT_FOUND_CODES:
            raise NotFound(op, key) from exc
        logger.warning('%s %s failed: %s', op, key, code or exc)
        raise UpstreamError(op, key, f'object storage request failed ({code})') from exc
    except (ReadTimeoutError, ConnectTimeoutError) as exc:
        logger.warning('%s %s timed out', op, key)
        raise StorageTimeout(op, key) from exc
    except BotoCoreError as exc:
        logger.warning('%s %s failed: %s', op, key, exc)
        raise UpstreamError(op, key) from exc


class S3ObjectStore:
    def __init__(self, client):
        self.client = client

    @classmethod
    def from_settings(cls, cfg: Settings) -> S3ObjectStore:
        return cls(build_s3_client(cfg))

    def get_object(self, bucket: str, key: str) -> bytes:
        logger.debug('get_object bucket=%s key=%s', bucket, key)
        with _translate_errors('get_object', key):
            resp = self.client.get_object(Bucket=bucket, Key=key)
            body = resp['Body']
            try:
                return body.read()
            finally:
                body.close()

    def head_object(self, bucket: str, key: str) -> ObjectHead:
        logger.debug('head_object bucket=%s key=%s', bucket, key)
        with _translate_errors('head_object', key):
            resp = self.client.head_object(Bucket=bucket, Key=key)
        return ObjectHead(
            size=int(resp.get('ContentLength', 0)),
            last_modified=resp['LastModified'],
            metadata=dict(resp.get('Metadata') or {}),
        )

    def put_object(self, bucket: str, key: str, body: bytes) -> None:
        logger.debug('put_object bucket=%s key=%s bytes=%d', bucket, key, len(body))
        with _translate_errors('put_object', key):
            self.client.put_object(Bucket=bucket, Key=key, Body=body)

    def list_objects_paged(self, bucket: str, prefix: str, delimiter: str) -> Iterator[ListPage]:
        logger.debug('list_objects bucket=%s prefix=%s', bucket, prefix)
        params = {'Bucket': bucket, 'Delimiter': delimiter}
        if prefix:
            params['Prefix'] = prefix
        with _translate_errors('list_objects', prefix):
            paginator = self.client.get_paginator('list_objects_v2')
            for raw in paginator.paginate(**params):
                yield ListPage(
                    common_prefixes=[p['Prefix'] for p in raw.get('CommonPrefixes') or []],
                    objects=[
                        ObjectSummary(key=o['Key'], size=int(o.get('Size', 0)), last_modified=o['LastModified'])
                        for o in raw.get('Contents') or []
                    ],
                )


@dataclass
class _StoredObject:
    body: bytes
    last_modified: datetime
    metadata: dict[str, str]


class MemoryObjectStore:
    def __init__(self, page_size: int = 1000):
        self.page_size = max(page_size, 1)
        self.calls: list[dict] = []
        self._buckets: dict[str, dict[str, _StoredObject]] = {}
        self._failures: list[Exception] = []

    def fail_next(self, exc: Exception) -> None:
        self._failures.append(exc)

    def add_object(
        self,
        bucket: str,
        key: str,
        body: bytes = b'',
        metadata: dict[str, str] | None = None,
        last_modified: datetime | None = None,
    ) -> None:
        self._buckets.setdefault(bucket, {})[key] = _StoredObject(
            body=bytes(body),
            last_modified=last_modified or datetime.now(timezone.utc),
            metadata=dict(metadata or {}),
        )

    def keys(self, bucket: str) -> list[str]:
        return sorted(self._buckets.get(bucket, {}))

    def _record(self, op: str, **kwargs) -> None:
        self.calls.append({'op': op, **kwargs})
        if self._failures:
            raise self._failures.pop(0)

    def _lookup(self, op: str, bucket: str, key: str) -> _StoredObject:
        obj = self._buckets.get(bucket, {}).get(key)
        if obj is None:
            raise NotFound(op, key)
        return obj

    def get_object(self, bucket: str, key: str) -> bytes:
        self._record('get_object', bucket=bucket, key=key)
        return self._lookup('get_object', bucket, key).body

    def head_object(self, bucket: str, key: str) -> ObjectHead:
        self._record('head_object', bucket=bucket, key=key)
        obj = self._lookup('head_object', bucket, key)
        return ObjectHead(size=len(obj.body), last_modified=obj.last_modified, metadata=dict(obj.metadata))

    def put_object(self, bucket: str, key: str, body: bytes) -> None:
        self._record('put_object', bucket=bucket, key=key)
        self.add_object(bucket, key, body)

    def list_objects_paged(self, bucket: str, prefix: str, delimiter: str) -> Iterator[ListPage]:
        self._record('list_objects', bucket=bucket, prefix=prefix, delimiter=delimiter)
        entries: list[str | ObjectSummary] = []
        seen_prefixes: set[str] = set()
        for key in self.keys(bucket):
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            idx = rest.find(delimiter) if delimiter else -1
            if idx >= 0:
                common = prefix + rest[: idx + len(delimiter)]
                if common not in seen_prefixes:
                    seen_prefixes.add(common)
                    entries.append(common)
                continue
            obj = self._buckets[bucket][key]
            entries.append(ObjectSummary(key=key, size=len(obj.body), last_modified=obj.last_modified))

        if not entries:
            yield ListPage()
            return
        for start in range(0, len(entries), self.page_size):
            chunk = entries[start:start + self.page_size]
            yield ListPage(
                common_prefixes=[e for e in chunk if isinstance(e, str)],
                objects=[e for e in chunk if isinstance(e, ObjectSummary)],
            )
