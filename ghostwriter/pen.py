"""Drawing on the tablet by driving its pen digitizer."""

from __future__ import annotations

import logging
import math
import struct
import time
from collections.abc import Sequence

from ghostwriter.device import DeviceModel, detect_device_model
from ghostwriter.events import EventDevice, EventType, InputEvent

log = logging.getLogger(__name__)

VIRTUAL_WIDTH = 768
VIRTUAL_HEIGHT = 1024

BTN_TOOL_PEN = 320
BTN_TOUCH = 330
ABS_X = 0
ABS_Y = 1
ABS_PRESSURE = 24
ABS_DISTANCE = 25
MAX_PRESSURE = 2630

# Longest distance, in input units, between consecutive points of a line.
_MAX_STEP = 5.0

_PEN_DEVICES = {
    DeviceModel.REMARKABLE2: "/dev/input/event1",
    DeviceModel.REMARKABLE_PAPER_PRO: "/dev/input/event2",
    DeviceModel.UNKNOWN: "/dev/input/event1",
}

_MAX_VALUES = {
    DeviceModel.REMARKABLE2: (15725, 20966),
    DeviceModel.REMARKABLE_PAPER_PRO: (11180, 15340),
    DeviceModel.UNKNOWN: (15725, 20966),
}

Point = tuple[int, int]


def _f32(value: float) -> float:
    """Round a float to single precision."""
    return struct.unpack("f", struct.pack("f", value))[0]


def _div_trunc(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


class Pen:
    """Moves the pen over the screen; does nothing when drawing is off."""

    def __init__(
        self,
        no_draw: bool,
        device_model: DeviceModel | None = None,
        device: EventDevice | None = None,
    ) -> None:
        self.device_model = device_model if device_model is not None else detect_device_model()
        log.info("Pen using device model: %s", self.device_model)
        if no_draw:
            self.device = None
        else:
            self.device = (
                device if device is not None else EventDevice.open(_PEN_DEVICES[self.device_model])
            )

    def _send(self, events: list[InputEvent]) -> None:
        if self.device is not None:
            self.device.send_events(events)

    def draw_line_screen(self, p1: Point, p2: Point) -> None:
        """Draw a straight line between two points in virtual screen coordinates."""
        self.draw_line(self.virtual_to_input(p1), self.virtual_to_input(p2))

    def draw_line(self, p1: Point, p2: Point) -> None:
        """Draw a straight line between two points in input coordinates."""
        x1, y1 = p1
        x2, y2 = p2
        dxf = _f32(_f32(x2) - _f32(x1))
        dyf = _f32(_f32(y2) - _f32(y1))
        length = _f32(math.sqrt(_f32(_f32(dxf * dxf) + _f32(dyf * dyf))))
        steps = math.ceil(_f32(length / _MAX_STEP))
        if steps == 0:
            raise ValueError(f"cannot draw a zero-length line at ({x1}, {y1})")
        dx = _div_trunc(x2 - x1, steps)
        dy = _div_trunc(y2 - y1, steps)

        self.pen_up()
        self.goto_xy((x1, y1))
        self.pen_down()
        for i in range(steps):
            self.goto_xy((x1 + dx * i, y1 + dy * i))
        self.pen_up()

    def draw_bitmap(self, bitmap: Sequence[Sequence[bool]]) -> None:
        """Trace every set pixel, row by row, in virtual screen coordinates."""
        for y, row in enumerate(bitmap):
            is_pen_down = False
            for x, pixel in enumerate(row):
                if pixel:
                    if not is_pen_down:
                        self.goto_xy_virtual((x, y))
                        self.pen_down()
                        is_pen_down = True
                        time.sleep(0.001)
                    self.goto_xy_virtual((x, y))
                    self.goto_xy_virtual((x + 1, y))
                elif is_pen_down:
                    self.pen_up()
                    is_pen_down = False
                    time.sleep(0.001)
            self.pen_up()
            time.sleep(0.005)

    def pen_down(self) -> None:
        self._send([
            InputEvent(EventType.KEY, BTN_TOOL_PEN, 1),
            InputEvent(EventType.KEY, BTN_TOUCH, 1),
            InputEvent(EventType.ABSOLUTE, ABS_PRESSURE, MAX_PRESSURE),
            InputEvent(EventType.ABSOLUTE, ABS_DISTANCE, 0),
            InputEvent.sync(),
        ])

    def pen_up(self) -> None:
        self._send([
            InputEvent(EventType.ABSOLUTE, ABS_PRESSURE, 0),
            InputEvent(EventType.ABSOLUTE, ABS_DISTANCE, 100),
            InputEvent(EventType.KEY, BTN_TOUCH, 0),
            InputEvent(EventType.KEY, BTN_TOOL_PEN, 0),
            InputEvent.sync(),
        ])

    def goto_xy_virtual(self, point: Point) -> None:
        self.goto_xy(self.virtual_to_input(point))

    def goto_xy(self, point: Point) -> None:
        x, y = point
        self._send([
            InputEvent(EventType.ABSOLUTE, ABS_X, x),
            InputEvent(EventType.ABSOLUTE, ABS_Y, y),
            InputEvent.sync(),
        ])

    def max_x_value(self) -> int:
        return _MAX_VALUES[self.device_model][0]

    def max_y_value(self) -> int:
        return _MAX_VALUES[self.device_model][1]

    def virtual_to_input(self, point: Point) -> Point:
        """Map a virtual screen point to digitizer coordinates."""
        x, y = point
        x_norm = _f32(x / VIRTUAL_WIDTH)
        y_norm = _f32(y / VIRTUAL_HEIGHT)
        max_x = _f32(self.max_x_value())
        max_y = _f32(self.max_y_value())
        if self.device_model is DeviceModel.REMARKABLE_PAPER_PRO:
            return int(_f32(x_norm * max_x)), int(_f32(y_norm * max_y))
        return int(_f32(_f32(1.0 - y_norm) * max_y)), int(_f32(x_norm * max_x))