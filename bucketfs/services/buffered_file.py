from __future__ import annotations

import io
from typing import Callable

from ..errors import InvalidArgument, NotSupported

FlushHook = Callable[[bytes], None]


class BufferedFile:
    """In-memory handle over an object body fetched once at open time.

    Writes always append. Nothing reaches storage unless ``flush`` is called on a
    handle opened for writing; ``close`` only discards the buffer.
    """

    def __init__(self, name: str, content: bytes = b'', on_flush: FlushHook | None = None):
        self.name = name
        self._content = bytearray(content)
        self._pos = 0
        self._on_flush = on_flush
        self.closed = False

    def __enter__(self) -> BufferedFile:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f'BufferedFile(name={self.name!r}, size={self.size}, pos={self._pos})'

    @property
    def size(self) -> int:
        return len(self._content)

    @property
    def writable(self) -> bool:
        return self._on_flush is not None

    def _check_open(self) -> None:
        if self.closed:
            raise ValueError('I/O operation on closed file')

    def read(self, size: int = -1) -> bytes:
        self._check_open()
        if self._pos >= len(self._content):
            return b''
        end = len(self._content) if size is None or size < 0 else min(self._pos + size, len(self._content))
        data = bytes(self._content[self._pos:end])
        self._pos = end
        return data

    def readinto(self, buf) -> int:
        data = self.read(len(buf))
        buf[: len(data)] = data
        return len(data)

    def read_at(self, size: int, offset: int) -> bytes:
        self._check_open()
        if offset < 0:
            raise InvalidArgument('read_at', self.name, 'negative offset')
        if size < 0:
            raise InvalidArgument('read_at', self.name, 'negative size')
        if offset >= len(self._content):
            return b''
        return bytes(self._content[offset:offset + size])

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        self._check_open()
        if whence == io.SEEK_SET:
            target = offset
        elif whence == io.SEEK_CUR:
            target = self._pos + offset
        elif whence == io.SEEK_END:
            target = len(self._content) + offset
        else:
            raise InvalidArgument('seek', self.name, f'invalid whence {whence}')
        if target < 0:
            raise InvalidArgument('seek', self.name, 'negative position')
        self._pos = target
        return target

    def tell(self) -> int:
        self._check_open()
        return self._pos

    def write(self, data: bytes) -> int:
        self._check_open()
        self._content.extend(data)
        return len(data)

    def truncate(self, size: int) -> int:
        self._check_open()
        if size < 0:
            raise InvalidArgument('truncate', self.name, 'file size cannot be negative')
        current = len(self._content)
        if size > current:
            self._content.extend(bytes(size - current))
        else:
            del self._content[size:]
        self._pos = min(self._pos, size)
        return size

    def getvalue(self) -> bytes:
        return bytes(self._content)

    def flush(self) -> None:
        self._check_open()
        if self._on_flush is not None:
            self._on_flush(bytes(self._content))

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._content = bytearray()
        self._pos = 0

    def lock(self) -> None:
        raise NotSupported('lock', self.name, 'locking is not supported')

    def unlock(self) -> None:
        raise NotSupported('unlock', self.name, 'locking is not supported')
