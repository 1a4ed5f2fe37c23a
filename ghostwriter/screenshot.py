"""Capturing the tablet's screen from the notebook process's framebuffer."""

from __future__ import annotations

import base64 as _b64
import io
import logging
import struct
import subprocess
from pathlib import Path

from PIL import Image

from ghostwriter.device import DeviceModel, detect_device_model

log = logging.getLogger(__name__)

VIRTUAL_WIDTH = 768
VIRTUAL_HEIGHT = 1024

_SCREEN_GEOMETRY = {
    # width, height, bytes per pixel
    DeviceModel.REMARKABLE2: (1872, 1404, 2),
    DeviceModel.REMARKABLE_PAPER_PRO: (1624, 2154, 4),
    DeviceModel.UNKNOWN: (1872, 1404, 2),
}


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


_LOW = _f32(0.045)
_HIGH = _f32(0.06)


def find_xochitl_pid() -> str:
    """Return the process id of the notebook application."""
    output = subprocess.run(
        ["pidof", "xochitl"], capture_output=True, check=False
    ).stdout.decode("utf-8")
    pids = output.split()
    if not pids:
        raise RuntimeError("No xochitl process found")
    return pids[0]


def apply_curves(value: int) -> int:
    """Push a grey level to black or white, with a narrow ramp between."""
    normalized = _f32(value / 255.0)
    if normalized < _LOW:
        adjusted = 0.0
    elif normalized < _HIGH:
        adjusted = _f32(_f32(normalized - _LOW) / _f32(_HIGH - _LOW))
    else:
        adjusted = 1.0
    return int(_f32(adjusted * 255.0))


_CURVE = bytes(apply_curves(v) for v in range(256))


class Screenshot:
    """A screen capture, held as PNG data scaled to the virtual screen."""

    proc_root = "/proc"
    raw_capture_path = "./capture/rawcap.raw"

    def __init__(self, device_model: DeviceModel | None = None) -> None:
        self.device_model = device_model if device_model is not None else detect_device_model()
        log.info("Screen detected device: %s", self.device_model)
        self.data = b""

    def screen_width(self) -> int:
        return _SCREEN_GEOMETRY[self.device_model][0]

    def screen_height(self) -> int:
        return _SCREEN_GEOMETRY[self.device_model][1]

    def bytes_per_pixel(self) -> int:
        return _SCREEN_GEOMETRY[self.device_model][2]

    def _screen_bytes(self) -> int:
        return self.screen_width() * self.screen_height() * self.bytes_per_pixel()

    def _proc(self, pid: str, name: str) -> Path:
        return Path(self.proc_root) / str(pid) / name

    def save_raw_data(self, raw_data: bytes, filename: str) -> None:
        Path(filename).write_bytes(raw_data)
        log.debug("Raw framebuffer data saved to %s", filename)

    def take_screenshot(self) -> None:
        log.debug("screenshot: finding pid")
        pid = find_xochitl_pid()
        log.debug("screenshot: finding address")
        skip_bytes = self.find_framebuffer_address(pid)
        log.debug("screenshot: reading data")
        raw = self.read_framebuffer(pid, skip_bytes)
        self.save_raw_data(raw, self.raw_capture_path)
        log.debug("screenshot: processing image")
        self.data = self.process_image(raw)

    def find_framebuffer_address(self, pid: str) -> int:
        """Locate the framebuffer in the process's address space."""
        if self.device_model is DeviceModel.REMARKABLE_PAPER_PRO:
            end = self._get_memory_range(pid)
            return self._calculate_frame_pointer(pid, end)

        lines = self._proc(pid, "maps").read_text().splitlines()
        matches = [i for i, line in enumerate(lines) if "/dev/fb0" in line]
        if not matches:
            raise RuntimeError("No mapping found for /dev/fb0")
        # The mapping that follows the last /dev/fb0 line holds the pixels.
        line = lines[min(matches[-1] + 1, len(lines) - 1)]
        return int(line.split("-", 1)[0].strip(), 16) + 7

    def _get_memory_range(self, pid: str) -> int:
        maps_path = self._proc(pid, "maps")
        log.debug("screenshot: reading memory range from %s", maps_path)
        found = [line for line in maps_path.read_text().splitlines() if "/dev/dri/card0" in line]
        if not found:
            raise RuntimeError("No mapping found for /dev/dri/card0")
        start_end = found[-1].split()[0].split("-")
        if len(start_end) != 2:
            raise ValueError("Invalid memory range format")
        return int(start_end[1], 16)

    def _calculate_frame_pointer(self, pid: str, start_address: int) -> int:
        screen_size = self._screen_bytes()
        offset = 0
        length = 2
        with open(self._proc(pid, "mem"), "rb") as mem:
            while length < screen_size:
                offset += length - 2
                mem.seek(start_address + offset + 8)
                header = mem.read(8)
                if len(header) < 8:
                    raise EOFError("short read of framebuffer header")
                length = int.from_bytes(header[:4], "little")
                log.debug("  ... length: %d", length)
                if length < 2:
                    raise ValueError("Invalid header length")
        return start_address + offset

    def read_framebuffer(self, pid: str, skip_bytes: int) -> bytes:
        size = self._screen_bytes()
        with open(self._proc(pid, "mem"), "rb") as mem:
            mem.seek(skip_bytes)
            data = mem.read(size)
        if len(data) != size:
            raise EOFError(f"expected {size} framebuffer bytes, got {len(data)}")
        return data

    def process_image(self, data: bytes) -> bytes:
        """Turn raw framebuffer bytes into a PNG of the virtual screen size."""
        png = self.encode_png(data)
        with Image.open(io.BytesIO(png)) as img:
            resized = img.resize((VIRTUAL_WIDTH, VIRTUAL_HEIGHT), Image.Resampling.NEAREST)
        mode = "RGBA" if self.device_model is DeviceModel.REMARKABLE_PAPER_PRO else "L"
        return _to_png(resized.convert(mode))

    def encode_png(self, raw_data: bytes) -> bytes:
        width, height = self.screen_width(), self.screen_height()
        if self.device_model is DeviceModel.REMARKABLE_PAPER_PRO:
            log.debug("Encoding %dx%d image", width, height)
            return _to_png(Image.frombytes("RGBA", (width, height), bytes(raw_data)))
        grey = bytes(raw_data[1::2]).translate(_CURVE)
        img = Image.frombytes("L", (width, height), grey)
        img = img.transpose(Image.Transpose.ROTATE_90).transpose(Image.Transpose.FLIP_LEFT_RIGHT)
        return _to_png(img)

    def save_image(self, filename: str) -> None:
        Path(filename).write_bytes(self.data)
        log.debug("PNG image saved to %s", filename)

    def base64(self) -> str:
        return _b64.b64encode(self.data).decode("ascii")


def _to_png(img: Image.Image) -> bytes:
    out = io.BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()