import io
import struct

import pytest

from ghostwriter.events import (
    EVENT_SIZE,
    EventDevice,
    EventType,
    InputEvent,
    unpack_events,
)


@pytest.mark.parametrize(
    ("event", "type_code"),
    [
        (InputEvent.sync(), 0),
        (InputEvent(EventType.KEY, 30, 1), 1),
        (InputEvent(EventType.ABSOLUTE, 0, 5), 3),
    ],
)
def test_event_type_codes(event, type_code):
    assert event.pack()[-8:] == struct.pack("=HHi", type_code, event.code, event.value)


def test_pack_layout():
    data = InputEvent(EventType.KEY, 330, 1).pack()
    assert len(data) == EVENT_SIZE == struct.calcsize("@llHHi")
    assert data[-8:] == struct.pack("=HHi", 1, 330, 1)


@pytest.mark.parametrize(
    "event",
    [
        InputEvent(EventType.ABSOLUTE, 57, -1),
        InputEvent(EventType.ABSOLUTE, 24, 2630),
        InputEvent.sync(),
        InputEvent(EventType.KEY, 42, 0, sec=5, usec=7),
    ],
)
def test_round_trip(event):
    assert unpack_events(event.pack()) == [event]


def test_unpack_rejects_partial():
    with pytest.raises(ValueError):
        unpack_events(InputEvent.sync().pack()[:-1])


def test_send_events_writes_packed_events():
    stream = io.BytesIO()
    device = EventDevice(stream)
    events = [InputEvent(EventType.ABSOLUTE, 0, 100), InputEvent.sync()]
    device.send_events(events)
    assert stream.getvalue() == b"".join(e.pack() for e in events)
    assert unpack_events(stream.getvalue()) == events


def test_fetch_events_reads_back():
    events = [InputEvent(EventType.ABSOLUTE, 53, 700), InputEvent(EventType.ABSOLUTE, 57, -1)]
    device = EventDevice(io.BytesIO(b"".join(e.pack() for e in events)))
    assert device.fetch_events() == events
    assert device.fetch_events() == []


def test_fetch_events_keeps_partial_event():
    first = InputEvent(EventType.ABSOLUTE, 53, 10)
    second = InputEvent(EventType.ABSOLUTE, 54, 20)
    raw = first.pack() + second.pack()
    half = EVENT_SIZE + EVENT_SIZE // 2

    class Chunked(io.RawIOBase):
        def __init__(self, parts):
            self.parts = list(parts)

        def read(self, size=-1):
            return self.parts.pop(0) if self.parts else b""

    device = EventDevice(Chunked([raw[:half], raw[half:]]))
    assert device.fetch_events() == [first]
    assert device.fetch_events() == [second]


def test_context_manager_closes_stream():
    stream = io.BytesIO()
    with EventDevice(stream) as device:
        device.send_events([InputEvent.sync()])
    assert stream.closed