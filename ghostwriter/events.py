"""Linux input events and the character devices that carry them."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import BinaryIO, Iterable

# struct input_event: struct timeval, __u16 type, __u16 code, __s32 value
_EVENT = struct.Struct("@llHHi")
EVENT_SIZE = _EVENT.size
_READ_BATCH = 64


class EventType(IntEnum):
    SYNCHRONIZATION = 0
    KEY = 1
    RELATIVE = 2
    ABSOLUTE = 3


@dataclass(frozen=True)
class InputEvent:
    """A single input event; the time fields are left zero when writing."""

    type: int
    code: int
    value: int
    sec: int = 0
    usec: int = 0

    def pack(self) -> bytes:
        return _EVENT.pack(self.sec, self.usec, self.type, self.code, self.value)

    @classmethod
    def sync(cls) -> InputEvent:
        """A SYN_REPORT event."""
        return cls(EventType.SYNCHRONIZATION, 0, 0)


def unpack_events(data: bytes) -> list[InputEvent]:
    """Decode a buffer of whole input events."""
    if len(data) % EVENT_SIZE:
        raise ValueError(
            f"event data length {len(data)} is not a multiple of {EVENT_SIZE}"
        )
    return [
        InputEvent(type_, code, value, sec, usec)
        for sec, usec, type_, code, value in _EVENT.iter_unpack(data)
    ]


class EventDevice:
    """An input device node that events are written to and read from."""

    def __init__(self, stream: BinaryIO, path: str | None = None) -> None:
        self._stream = stream
        self.path = path
        self._pending = b""

    @classmethod
    def open(cls, path: str) -> EventDevice:
        return cls(open(path, "r+b", buffering=0), path)

    def send_events(self, events: Iterable[InputEvent]) -> None:
        view = memoryview(b"".join(event.pack() for event in events))
        while view:
            written = self._stream.write(view)
            if written is None:
                raise BlockingIOError(f"device {self.path or ''} is not ready for writing")
            view = view[written:]
        flush = getattr(self._stream, "flush", None)
        if flush is not None:
            flush()

    def fetch_events(self) -> list[InputEvent]:
        """Read the events available now; a partial trailing event is kept."""
        chunk = self._stream.read(EVENT_SIZE * _READ_BATCH)
        if chunk:
            self._pending += chunk
        whole = len(self._pending) - len(self._pending) % EVENT_SIZE
        data, self._pending = self._pending[:whole], self._pending[whole:]
        return unpack_events(data)

    def close(self) -> None:
        self._stream.close()

    def __enter__(self) -> EventDevice:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()