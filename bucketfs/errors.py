from __future__ import annotations

import errno


class BucketFSError(OSError):
    code = errno.EIO
    default_message = 'storage error'

    def __init__(self, op: str = '', path: str = '', message: str | None = None):
        self.op = op
        self.path = path
        self.message = message or self.default_message
        super().__init__(self.code, self.message, path or None)

    def __str__(self) -> str:
        if self.op and self.path:
            return f'{self.op} {self.path}: {self.message}'
        if self.op:
            return f'{self.op}: {self.message}'
        return self.message

    def annotate(self, op: str, path: str) -> BucketFSError:
        """Return a copy of this error re-labelled with the caller's operation and path."""
        err = type(self)(op, path, self.message)
        err.__cause__ = self.__cause__ or self
        return err


class BoundaryViolation(BucketFSError, PermissionError):
    code = errno.EPERM
    default_message = 'path escapes filesystem root'


class NotFound(BucketFSError, FileNotFoundError):
    code = errno.ENOENT
    default_message = 'no such file or directory'


class NotSupported(BucketFSError):
    code = errno.ENOTSUP
    default_message = 'operation not supported'


class InvalidArgument(BucketFSError, ValueError):
    code = errno.EINVAL
    default_message = 'invalid argument'


class UpstreamError(BucketFSError):
    code = errno.EIO
    default_message = 'object storage request failed'


class StorageTimeout(BucketFSError, TimeoutError):
    code = errno.ETIMEDOUT
    default_message = 'object storage request timed out'
    retryable = True
