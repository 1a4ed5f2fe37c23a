"""Finding regions of interest in a screenshot by tracing contours."""

from __future__ import annotations

import logging
import math
import struct
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from PIL import Image

log = logging.getLogger(__name__)

Point = tuple[int, int]

# Neighbour offsets, clockwise on screen starting from the west.
_DIRECTIONS: tuple[Point, ...] = (
    (-1, 0), (-1, -1), (0, -1), (1, -1), (1, 0), (1, 1), (0, 1), (-1, 1),
)
_DIRECTION_INDEX = {d: i for i, d in enumerate(_DIRECTIONS)}
_EAST = _DIRECTION_INDEX[(1, 0)]

_DESCRIBE_MIN_AREA = 50.0
_DESCRIBE_MAX_REGIONS = 10


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


class BorderType(Enum):
    OUTER = "outer"
    HOLE = "hole"


@dataclass
class Contour:
    """A traced border, with the index of the contour that encloses it."""

    points: list[Point]
    border_type: BorderType
    parent: int | None = None


@dataclass
class Region:
    """A significant contour: its bounding box (x, y, width, height), area and points."""

    bounds: tuple[int, int, int, int]
    area: int
    contour_points: list[Point] = field(default_factory=list)


@dataclass
class SegmentationResult:
    regions: list[Region]
    image_size: tuple[int, int]


def find_contours(binary: Image.Image) -> list[Contour]:
    """Trace the borders of the non-zero areas of an image (Suzuki-Abe)."""
    width, height = binary.size
    values = [1 if v else 0 for v in binary.convert("L").tobytes()]

    def nonzero(x: int, y: int) -> bool:
        return 0 <= x < width and 0 <= y < height and values[x + width * y] != 0

    contours: list[Contour] = []
    border_num = 1

    for y in range(height):
        parent_num = 1
        for x in range(width):
            idx = x + width * y
            value = values[idx]
            if value == 0:
                continue

            adjacent: Point | None = None
            border_type = BorderType.OUTER
            if value == 1 and (x == 0 or values[idx - 1] == 0):
                adjacent = (x - 1, y)
            elif value > 0 and (x + 1 == width or values[idx + 1] == 0):
                if value > 1:
                    parent_num = value
                adjacent = (x + 1, y)
                border_type = BorderType.HOLE

            if adjacent is not None:
                border_num += 1
                parent = None
                if parent_num > 1:
                    parent_index = parent_num - 2
                    enclosing = contours[parent_index]
                    if (border_type is BorderType.OUTER) != (enclosing.border_type is BorderType.OUTER):
                        parent = parent_index
                    else:
                        parent = enclosing.parent

                start = (x, y)
                first_dir = _DIRECTION_INDEX[(adjacent[0] - x, adjacent[1] - y)]
                pos1: Point | None = None
                for k in range(8):
                    dx, dy = _DIRECTIONS[(first_dir + k) % 8]
                    if nonzero(x + dx, y + dy):
                        pos1 = (x + dx, y + dy)
                        break

                points: list[Point] = []
                if pos1 is None:
                    points.append(start)
                    values[idx] = -border_num
                else:
                    pos2, pos3 = pos1, start
                    while True:
                        points.append(pos3)
                        back = _DIRECTION_INDEX[(pos2[0] - pos3[0], pos2[1] - pos3[1])]
                        is_right_edge = False
                        pos4 = pos2
                        for k in range(1, 9):
                            direction = (back - k) % 8
                            dx, dy = _DIRECTIONS[direction]
                            if nonzero(pos3[0] + dx, pos3[1] + dy):
                                pos4 = (pos3[0] + dx, pos3[1] + dy)
                                break
                            if direction == _EAST:
                                is_right_edge = True

                        here = pos3[0] + width * pos3[1]
                        if pos3[0] + 1 == width or is_right_edge:
                            values[here] = -border_num
                        elif values[here] == 1:
                            values[here] = border_num

                        if pos4 == start and pos3 == pos1:
                            break
                        pos2, pos3 = pos3, pos4

                contours.append(Contour(points, border_type, parent))

            if values[idx] != 1:
                parent_num = abs(values[idx])

    return contours


def contour_area(points: list[Point]) -> float:
    """The area enclosed by a polygon, by the shoelace formula."""
    if not points:
        return 0.0
    twice = sum(
        x1 * y2 - x2 * y1
        for (x1, y1), (x2, y2) in zip(points, points[1:] + points[:1])
    )
    return abs(twice / 2.0)


def _cross(o: Point, a: Point, b: Point) -> int:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def _convex_hull(points: list[Point]) -> list[Point]:
    unique = sorted(set(points))
    if len(unique) < 3:
        return unique
    lower: list[Point] = []
    for p in unique:
        while len(lower) >= 2 and _cross(lower[-2], lower[-1], p) <= 0:
            lower.pop()
        lower.append(p)
    upper: list[Point] = []
    for p in reversed(unique):
        while len(upper) >= 2 and _cross(upper[-2], upper[-1], p) <= 0:
            upper.pop()
        upper.append(p)
    hull = lower[:-1] + upper[:-1]
    start = min(range(len(hull)), key=lambda i: (hull[i][1], hull[i][0]))
    return hull[start:] + hull[:start]


def _rotating_calipers(hull: list[Point]) -> list[Point]:
    angles: list[float] = []
    for (x1, y1), (x2, y2) in zip(hull, hull[1:]):
        angle = abs((math.atan2(y2 - y1, x2 - x1) + math.pi) % (math.pi / 2))
        if not angles or angles[-1] != angle:
            angles.append(angle)

    best_area = math.inf
    corners: list[tuple[float, float]] = [(0.0, 0.0)] * 4
    for angle in angles:
        sin, cos = math.sin(angle), math.cos(angle)
        rotated = [(x * cos - y * sin, x * sin + y * cos) for x, y in hull]
        min_x = min(p[0] for p in rotated)
        max_x = max(p[0] for p in rotated)
        min_y = min(p[1] for p in rotated)
        max_y = max(p[1] for p in rotated)
        area = (max_x - min_x) * (max_y - min_y)
        if area < best_area:
            best_area = area
            corners = [
                (x * cos + y * sin, -x * sin + y * cos)
                for x, y in ((max_x, min_y), (min_x, min_y), (min_x, max_y), (max_x, max_y))
            ]

    res = sorted(corners, key=lambda p: p[0])
    i1 = 0 if res[1][1] > res[0][1] else 1
    i2 = 2 if res[3][1] > res[2][1] else 3
    i3 = 3 if res[3][1] > res[2][1] else 2
    i4 = 1 if res[1][1] > res[0][1] else 0
    return [
        (math.floor(res[i1][0]), math.floor(res[i1][1])),
        (math.ceil(res[i2][0]), math.floor(res[i2][1])),
        (math.ceil(res[i3][0]), math.ceil(res[i3][1])),
        (math.floor(res[i4][0]), math.ceil(res[i4][1])),
    ]


def min_area_rect(points: list[Point]) -> list[Point]:
    """The four corners of the smallest rectangle holding all the points."""
    hull = _convex_hull(points)
    if not hull:
        raise ValueError("no points are defined")
    if len(hull) == 1:
        return [hull[0]] * 4
    if len(hull) == 2:
        return [hull[0], hull[1], hull[1], hull[0]]
    return _rotating_calipers(hull)


def _load_binary(image_path: str | Path) -> Image.Image:
    with Image.open(image_path) as img:
        rgb = img.convert("RGB")
    data = rgb.tobytes()
    binary = bytes(
        255 if (2126 * r + 7152 * g + 722 * b) // 10000 > 127 else 0
        for r, g, b in zip(data[0::3], data[1::3], data[2::3])
    )
    return Image.frombytes("L", rgb.size, binary)


def _segment(image_path: str | Path, min_area: float, max_regions: int) -> SegmentationResult:
    binary = _load_binary(image_path)
    contours = find_contours(binary)
    log.debug("Found %d contours", len(contours))

    min_area = _f32(min_area)
    regions: list[Region] = []
    for contour in contours:
        area = _f32(contour_area(contour.points))
        if area < min_area:
            continue
        corners = min_area_rect(contour.points)
        x_min = max(0, min(p[0] for p in corners))
        y_min = max(0, min(p[1] for p in corners))
        x_max = max(0, max(p[0] for p in corners))
        y_max = max(0, max(p[1] for p in corners))
        regions.append(Region(
            bounds=(x_min, y_min, x_max - x_min, y_max - y_min),
            area=int(area),
            contour_points=list(contour.points),
        ))

    regions.sort(key=lambda region: region.area, reverse=True)
    del regions[max_regions:]
    return SegmentationResult(regions, binary.size)


class ImageAnalyzer:
    """Segments an image into its largest bright regions."""

    def __init__(self, min_region_size: float, max_regions: int) -> None:
        self.min_region_size = min_region_size
        self.max_regions = max_regions

    def analyze_image(self, image_path: str | Path) -> SegmentationResult:
        with Image.open(image_path) as img:
            width, height = img.size
        min_area = _f32(width * height) * _f32(self.min_region_size)
        return _segment(image_path, min_area, self.max_regions)

    def generate_description(self, result: SegmentationResult) -> str:
        image_w, image_h = result.image_size
        parts = [f"Image size: {image_w}x{image_h}\nDetected {len(result.regions)} regions:\n\n"]
        for number, region in enumerate(result.regions, start=1):
            x, y, w, h = region.bounds
            rel_x = _f32(_f32(_f32(x) / _f32(image_w)) * 100.0)
            rel_y = _f32(_f32(_f32(y) / _f32(image_h)) * 100.0)
            parts.append(
                f"Region {number}:\n"
                f"- Position: ({x}, {y})\n"
                f"- Size: {w}x{h}\n"
                f"- Area: {region.area} pixels\n"
                f"- Relative position: {rel_x:.2f}%, {rel_y:.2f}%\n\n"
            )
        return "".join(parts)

    def visualize_regions(self, result: SegmentationResult) -> Image.Image:
        """Draw each region's contour in its own colour on a black image."""
        width, height = result.image_size
        output = Image.new("RGB", (width, height))
        pixels = output.load()
        for i, region in enumerate(result.regions):
            color = ((i * 90) % 255, (i * 140) % 255, (i * 200) % 255)
            for x, y in region.contour_points:
                if 0 <= x < width and 0 <= y < height:
                    pixels[x, y] = color
        return output


def analyze_image(image_path: str | Path) -> str:
    """Describe the bounding boxes of the largest regions in an image, one per line."""
    log.debug("Reading image from: %s", image_path)
    result = _segment(image_path, _DESCRIBE_MIN_AREA, _DESCRIBE_MAX_REGIONS)
    return "".join(
        f"Region: x={x}, y={y}, width={w}, height={h}\n"
        for x, y, w, h in (region.bounds for region in result.regions)
    )