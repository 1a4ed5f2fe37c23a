"""Touch-screen input: watching for the trigger gesture and simulating taps."""

from __future__ import annotations

import logging
import struct
import time

from ghostwriter.device import DeviceModel, detect_device_model
from ghostwriter.events import EventDevice, EventType, InputEvent

log = logging.getLogger(__name__)

VIRTUAL_WIDTH = 768
VIRTUAL_HEIGHT = 1024

ABS_MT_SLOT = 47
ABS_MT_TOUCH_MAJOR = 48
ABS_MT_TOUCH_MINOR = 49
ABS_MT_ORIENTATION = 52
ABS_MT_POSITION_X = 53
ABS_MT_POSITION_Y = 54
ABS_MT_TRACKING_ID = 57
ABS_MT_PRESSURE = 58

_TOUCH_DEVICES = {
    DeviceModel.REMARKABLE2: "/dev/input/event2",
    DeviceModel.REMARKABLE_PAPER_PRO: "/dev/input/event3",
    DeviceModel.UNKNOWN: "/dev/input/event2",
}

_SCREEN_SIZES = {
    DeviceModel.REMARKABLE2: (1404, 1872),
    DeviceModel.REMARKABLE_PAPER_PRO: (2065, 2833),
    DeviceModel.UNKNOWN: (1404, 1872),
}

Point = tuple[int, int]


def _f32(value: float) -> float:
    """Round a float to single precision."""
    return struct.unpack("f", struct.pack("f", value))[0]


class Touch:
    """The multi-touch screen; writes nothing when touch is off."""

    def __init__(
        self,
        no_touch: bool,
        device_model: DeviceModel | None = None,
        device: EventDevice | None = None,
    ) -> None:
        self.device_model = device_model if device_model is not None else detect_device_model()
        log.info("Touch using device model: %s", self.device_model)
        if no_touch:
            self.device = None
        else:
            self.device = (
                device if device is not None else EventDevice.open(_TOUCH_DEVICES[self.device_model])
            )

    def wait_for_trigger(self) -> Point:
        """Block until a touch is released in the upper-right corner.

        Returns the release position in virtual screen coordinates.
        """
        if self.device is None:
            raise RuntimeError("no touch device to wait for a trigger on")
        position_x = 0
        position_y = 0
        while True:
            for event in self.device.fetch_events():
                if event.code == ABS_MT_POSITION_X:
                    position_x = event.value
                if event.code == ABS_MT_POSITION_Y:
                    position_y = event.value
                if event.code == ABS_MT_TRACKING_ID and event.value == -1:
                    x, y = self.input_to_virtual((position_x, position_y))
                    log.debug(
                        "Touch release detected at (%d, %d) normalized (%d, %d)",
                        position_x, position_y, x, y,
                    )
                    if x > 700 and y < 50:
                        log.debug("Touch release in target zone!")
                        return x, y

    def touch_start(self, xy: Point) -> None:
        x, y = self.virtual_to_input(xy)
        if self.device is None:
            return
        log.debug("touch_start at (%d, %d)", x, y)
        self.device.send_events([
            InputEvent(EventType.ABSOLUTE, ABS_MT_SLOT, 0),
            InputEvent(EventType.ABSOLUTE, ABS_MT_TRACKING_ID, 1),
            InputEvent(EventType.ABSOLUTE, ABS_MT_POSITION_X, x),
            InputEvent(EventType.ABSOLUTE, ABS_MT_POSITION_Y, y),
            InputEvent(EventType.ABSOLUTE, ABS_MT_PRESSURE, 100),
            InputEvent(EventType.ABSOLUTE, ABS_MT_TOUCH_MAJOR, 17),
            InputEvent(EventType.ABSOLUTE, ABS_MT_TOUCH_MINOR, 17),
            InputEvent(EventType.ABSOLUTE, ABS_MT_ORIENTATION, 4),
            InputEvent.sync(),
        ])
        time.sleep(0.001)

    def touch_stop(self) -> None:
        if self.device is None:
            return
        log.debug("touch_stop")
        self.device.send_events([
            InputEvent(EventType.ABSOLUTE, ABS_MT_SLOT, 0),
            InputEvent(EventType.ABSOLUTE, ABS_MT_TRACKING_ID, -1),
            InputEvent.sync(),
        ])
        time.sleep(0.001)

    def goto_xy(self, xy: Point) -> None:
        x, y = self.virtual_to_input(xy)
        if self.device is None:
            return
        self.device.send_events([
            InputEvent(EventType.ABSOLUTE, ABS_MT_SLOT, 0),
            InputEvent(EventType.ABSOLUTE, ABS_MT_TRACKING_ID, 1),
            InputEvent(EventType.ABSOLUTE, ABS_MT_POSITION_X, x),
            InputEvent(EventType.ABSOLUTE, ABS_MT_POSITION_Y, y),
            InputEvent.sync(),
        ])

    def tap_middle_bottom(self) -> None:
        """Tap the middle of the bottom edge of the screen."""
        self.touch_start((384, 1023))
        time.sleep(0.1)
        self.touch_stop()

    def screen_width(self) -> int:
        return _SCREEN_SIZES[self.device_model][0]

    def screen_height(self) -> int:
        return _SCREEN_SIZES[self.device_model][1]

    def virtual_to_input(self, xy: Point) -> Point:
        """Map a virtual screen point to touch-screen coordinates."""
        x, y = xy
        x_norm = _f32(x / VIRTUAL_WIDTH)
        y_norm = _f32(y / VIRTUAL_HEIGHT)
        width = _f32(self.screen_width())
        height = _f32(self.screen_height())
        x_input = int(_f32(x_norm * width))
        if self.device_model is DeviceModel.REMARKABLE_PAPER_PRO:
            return x_input, int(_f32(y_norm * height))
        return x_input, int(_f32(_f32(1.0 - y_norm) * height))

    def input_to_virtual(self, xy: Point) -> Point:
        """Map a touch-screen point to virtual screen coordinates."""
        x, y = xy
        x_norm = _f32(x / self.screen_width())
        y_norm = _f32(y / self.screen_height())
        x_virtual = int(_f32(x_norm * VIRTUAL_WIDTH))
        if self.device_model is DeviceModel.REMARKABLE_PAPER_PRO:
            return x_virtual, int(_f32(y_norm * VIRTUAL_HEIGHT))
        return x_virtual, int(_f32(_f32(1.0 - y_norm) * VIRTUAL_HEIGHT))