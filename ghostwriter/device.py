"""Detection of the tablet model the program runs on."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

HWREVISION_PATH = "/etc/hwrevision"


class DeviceModel(Enum):
    """Tablet models with known input and screen geometry."""

    REMARKABLE2 = "Remarkable2"
    REMARKABLE_PAPER_PRO = "RemarkablePaperPro"
    UNKNOWN = "Unknown"

    def __str__(self) -> str:
        return self.value


def detect_device_model(hwrevision_path: str | Path = HWREVISION_PATH) -> DeviceModel:
    """Identify the device from its hardware revision file."""
    try:
        hwrev = Path(hwrevision_path).read_text()
    except (OSError, UnicodeDecodeError):
        return DeviceModel.UNKNOWN

    if "ferrari 1.0" in hwrev:
        return DeviceModel.REMARKABLE_PAPER_PRO
    if "reMarkable2 1.0" in hwrev:
        return DeviceModel.REMARKABLE2
    return DeviceModel.UNKNOWN