import io
from unittest import mock

import pytest

from ghostwriter.device import DeviceModel
from ghostwriter.events import EventDevice, EventType, InputEvent, unpack_events
from ghostwriter.touch import Touch

SYN = (EventType.SYNCHRONIZATION, 0, 0)


def make_touch(model=DeviceModel.REMARKABLE2, data=b""):
    stream = io.BytesIO(data)
    touch = Touch(False, model, EventDevice(stream))
    return touch, stream


def written(stream):
    return [(e.type, e.code, e.value) for e in unpack_events(stream.getvalue())]


def abs_event(code, value):
    return InputEvent(EventType.ABSOLUTE, code, value)


@pytest.mark.parametrize(
    "model, size",
    [
        (DeviceModel.REMARKABLE2, (1404, 1872)),
        (DeviceModel.REMARKABLE_PAPER_PRO, (2065, 2833)),
        (DeviceModel.UNKNOWN, (1404, 1872)),
    ],
)
def test_screen_size(model, size):
    touch = Touch(True, model)
    assert (touch.screen_width(), touch.screen_height()) == size


def test_virtual_to_input_rm2_flips_y():
    touch = Touch(True, DeviceModel.REMARKABLE2)
    assert touch.virtual_to_input((0, 0)) == (0, 1872)
    assert touch.virtual_to_input((768, 1024)) == (1404, 0)


def test_virtual_to_input_paper_pro():
    touch = Touch(True, DeviceModel.REMARKABLE_PAPER_PRO)
    assert touch.virtual_to_input((0, 0)) == (0, 0)
    assert touch.virtual_to_input((768, 1024)) == (2065, 2833)


@pytest.mark.parametrize("model", [DeviceModel.REMARKABLE2, DeviceModel.REMARKABLE_PAPER_PRO])
def test_input_to_virtual_corners_round_trip(model):
    touch = Touch(True, model)
    for point in [(0, 0), (768, 1024), (0, 1024), (768, 0)]:
        assert touch.input_to_virtual(touch.virtual_to_input(point)) == point


def test_touch_start_events():
    touch, stream = make_touch()
    with mock.patch("time.sleep"):
        touch.touch_start((384, 512))
    x, y = touch.virtual_to_input((384, 512))
    assert written(stream) == [
        (EventType.ABSOLUTE, 47, 0),
        (EventType.ABSOLUTE, 57, 1),
        (EventType.ABSOLUTE, 53, x),
        (EventType.ABSOLUTE, 54, y),
        (EventType.ABSOLUTE, 58, 100),
        (EventType.ABSOLUTE, 48, 17),
        (EventType.ABSOLUTE, 49, 17),
        (EventType.ABSOLUTE, 52, 4),
        SYN,
    ]


def test_touch_stop_events():
    touch, stream = make_touch()
    with mock.patch("time.sleep"):
        touch.touch_stop()
    assert written(stream) == [
        (EventType.ABSOLUTE, 47, 0),
        (EventType.ABSOLUTE, 57, -1),
        SYN,
    ]


def test_goto_xy_events():
    touch, stream = make_touch(DeviceModel.REMARKABLE_PAPER_PRO)
    touch.goto_xy((768, 1024))
    assert written(stream) == [
        (EventType.ABSOLUTE, 47, 0),
        (EventType.ABSOLUTE, 57, 1),
        (EventType.ABSOLUTE, 53, 2065),
        (EventType.ABSOLUTE, 54, 2833),
        SYN,
    ]


@mock.patch("time.sleep")
def test_tap_middle_bottom_starts_and_stops(_sleep):
    touch, stream = make_touch()
    touch.tap_middle_bottom()
    events = written(stream)
    tracking = [value for _, code, value in events if code == 57]
    assert tracking == [1, -1]
    x, y = touch.virtual_to_input((384, 1023))
    assert (EventType.ABSOLUTE, 53, x) in events
    assert (EventType.ABSOLUTE, 54, y) in events


def test_no_touch_writes_nothing():
    stream = io.BytesIO()
    touch = Touch(True, DeviceModel.REMARKABLE2, EventDevice(stream))
    touch.goto_xy((1, 1))
    touch.touch_stop()
    assert stream.getvalue() == b""


def test_wait_for_trigger_ignores_release_outside_zone():
    events = [
        abs_event(53, 100),
        abs_event(54, 100),
        abs_event(57, -1),
        abs_event(53, 1400),
        abs_event(54, 1870),
        abs_event(57, -1),
    ]
    data = b"".join(e.pack() for e in events)
    touch, _ = make_touch(data=data)
    x, y = touch.wait_for_trigger()
    assert x > 700
    assert y < 50
    assert (x, y) == touch.input_to_virtual((1400, 1870))


def test_wait_for_trigger_without_device_raises():
    touch = Touch(True, DeviceModel.REMARKABLE2)
    with pytest.raises(RuntimeError):
        touch.wait_for_trigger()