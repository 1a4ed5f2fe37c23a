"""A virtual keyboard that types text into the tablet's notebook."""

from __future__ import annotations

import logging
import os
import struct
import time
from enum import IntEnum

from ghostwriter.events import EventDevice, EventType, InputEvent

log = logging.getLogger(__name__)

UINPUT_PATH = "/dev/uinput"

_UI_DEV_CREATE = 0x5501
_UI_DEV_SETUP = 0x405C5503
_UI_SET_EVBIT = 0x40045564
_UI_SET_KEYBIT = 0x40045565
_BUS_VIRTUAL = 0x06
_UINPUT_SETUP = struct.Struct("HHHH80sI")


class Key(IntEnum):
    """Linux key codes used by the keyboard."""

    KEY_ESC = 1
    KEY_1 = 2
    KEY_2 = 3
    KEY_3 = 4
    KEY_4 = 5
    KEY_5 = 6
    KEY_6 = 7
    KEY_7 = 8
    KEY_8 = 9
    KEY_9 = 10
    KEY_0 = 11
    KEY_MINUS = 12
    KEY_EQUAL = 13
    KEY_BACKSPACE = 14
    KEY_TAB = 15
    KEY_Q = 16
    KEY_W = 17
    KEY_E = 18
    KEY_R = 19
    KEY_T = 20
    KEY_Y = 21
    KEY_U = 22
    KEY_I = 23
    KEY_O = 24
    KEY_P = 25
    KEY_LEFTBRACE = 26
    KEY_RIGHTBRACE = 27
    KEY_ENTER = 28
    KEY_LEFTCTRL = 29
    KEY_A = 30
    KEY_S = 31
    KEY_D = 32
    KEY_F = 33
    KEY_G = 34
    KEY_H = 35
    KEY_J = 36
    KEY_K = 37
    KEY_L = 38
    KEY_SEMICOLON = 39
    KEY_APOSTROPHE = 40
    KEY_GRAVE = 41
    KEY_LEFTSHIFT = 42
    KEY_BACKSLASH = 43
    KEY_Z = 44
    KEY_X = 45
    KEY_C = 46
    KEY_V = 47
    KEY_B = 48
    KEY_N = 49
    KEY_M = 50
    KEY_COMMA = 51
    KEY_DOT = 52
    KEY_SLASH = 53
    KEY_LEFTALT = 56
    KEY_SPACE = 57


_SHIFTED = {
    "!": Key.KEY_1, "@": Key.KEY_2, "#": Key.KEY_3, "$": Key.KEY_4,
    "%": Key.KEY_5, "^": Key.KEY_6, "&": Key.KEY_7, "*": Key.KEY_8,
    "(": Key.KEY_9, ")": Key.KEY_0, "_": Key.KEY_MINUS, "+": Key.KEY_EQUAL,
    "{": Key.KEY_LEFTBRACE, "}": Key.KEY_RIGHTBRACE, "|": Key.KEY_BACKSLASH,
    ":": Key.KEY_SEMICOLON, '"': Key.KEY_APOSTROPHE, "<": Key.KEY_COMMA,
    ">": Key.KEY_DOT, "?": Key.KEY_SLASH, "~": Key.KEY_GRAVE,
}

_PLAIN = {
    "-": Key.KEY_MINUS, "=": Key.KEY_EQUAL, "[": Key.KEY_LEFTBRACE,
    "]": Key.KEY_RIGHTBRACE, "\\": Key.KEY_BACKSLASH, ";": Key.KEY_SEMICOLON,
    "'": Key.KEY_APOSTROPHE, ",": Key.KEY_COMMA, ".": Key.KEY_DOT,
    "/": Key.KEY_SLASH, "`": Key.KEY_GRAVE,
    " ": Key.KEY_SPACE, "\t": Key.KEY_TAB, "\n": Key.KEY_ENTER,
    "\x08": Key.KEY_BACKSPACE, "\x1b": Key.KEY_ESC,
}


def _build_key_map() -> dict[str, tuple[Key, bool]]:
    key_map: dict[str, tuple[Key, bool]] = {}
    for letter in "abcdefghijklmnopqrstuvwxyz":
        key = Key[f"KEY_{letter.upper()}"]
        key_map[letter] = (key, False)
        key_map[letter.upper()] = (key, True)
    for digit in "0123456789":
        key_map[digit] = (Key[f"KEY_{digit}"], False)
    key_map.update((char, (key, True)) for char, key in _SHIFTED.items())
    key_map.update((char, (key, False)) for char, key in _PLAIN.items())
    return key_map


KEY_MAP: dict[str, tuple[Key, bool]] = _build_key_map()


def create_virtual_keyboard(name: str = "Virtual Keyboard") -> EventDevice:
    """Register a uinput keyboard that can emit every key in Key."""
    import fcntl

    log.debug("Creating virtual keyboard")
    fd = os.open(UINPUT_PATH, os.O_WRONLY | os.O_NONBLOCK)
    try:
        fcntl.ioctl(fd, _UI_SET_EVBIT, int(EventType.KEY))
        for key in Key:
            fcntl.ioctl(fd, _UI_SET_KEYBIT, int(key))
        setup = _UINPUT_SETUP.pack(_BUS_VIRTUAL, 0, 0, 0, name.encode()[:79], 0)
        fcntl.ioctl(fd, _UI_DEV_SETUP, setup)
        fcntl.ioctl(fd, _UI_DEV_CREATE)
    except OSError:
        os.close(fd)
        raise
    return EventDevice(os.fdopen(fd, "wb", buffering=0), UINPUT_PATH)


class Keyboard:
    """Types text and editor shortcuts; does nothing when drawing is off."""

    def __init__(
        self,
        no_draw: bool,
        no_draw_progress: bool = False,
        device: EventDevice | None = None,
    ) -> None:
        if no_draw:
            self.device = None
        else:
            self.device = device if device is not None else create_virtual_keyboard()
        self.no_draw_progress = no_draw_progress
        self.progress_count = 0

    def _emit(self, event: InputEvent) -> None:
        self.device.send_events([event])

    def _set_key(self, key: Key, value: int) -> None:
        if self.device is None:
            return
        self._emit(InputEvent(EventType.KEY, key, value))
        self._emit(InputEvent.sync())
        time.sleep(0.001)

    def key_down(self, key: Key) -> None:
        self._set_key(key, 1)

    def key_up(self, key: Key) -> None:
        self._set_key(key, 0)

    def string_to_keypresses(self, text: str) -> None:
        """Type text; characters without a key are skipped."""
        if self.device is None:
            return
        self._emit(InputEvent.sync())
        time.sleep(0.01)

        for char in text:
            mapping = KEY_MAP.get(char)
            if mapping is None:
                continue
            key, shift = mapping
            if shift:
                self._emit(InputEvent(EventType.KEY, Key.KEY_LEFTSHIFT, 1))
            self._emit(InputEvent(EventType.KEY, key, 1))
            self._emit(InputEvent(EventType.KEY, key, 0))
            if shift:
                self._emit(InputEvent(EventType.KEY, Key.KEY_LEFTSHIFT, 0))
            self._emit(InputEvent.sync())
            time.sleep(0.01)

    def _key_cmd(self, button: str, shift: bool = False) -> None:
        self.key_down(Key.KEY_LEFTCTRL)
        if shift:
            self.key_down(Key.KEY_LEFTSHIFT)
        self.string_to_keypresses(button)
        if shift:
            self.key_up(Key.KEY_LEFTSHIFT)
        self.key_up(Key.KEY_LEFTCTRL)

    def key_cmd_title(self) -> None:
        self._key_cmd("1")

    def key_cmd_subheading(self) -> None:
        self._key_cmd("2")

    def key_cmd_body(self) -> None:
        self._key_cmd("3")

    def key_cmd_bullet(self) -> None:
        self._key_cmd("4")

    def progress(self, note: str) -> None:
        """Type a temporary progress note, to be erased by progress_end."""
        if self.no_draw_progress:
            return
        self.string_to_keypresses(note)
        self.progress_count += len(note.encode("utf-8"))

    def progress_end(self) -> None:
        """Erase everything typed by progress."""
        if self.no_draw_progress:
            return
        for _ in range(self.progress_count):
            self.string_to_keypresses("\x08")
        self.progress_count = 0