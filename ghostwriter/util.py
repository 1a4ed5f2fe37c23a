"""SVG rasterising, bitmap output and option lookup helpers."""

from __future__ import annotations

import logging
import math
import os
import re
import xml.etree.ElementTree as ET
from collections import deque
from collections.abc import Mapping, Sequence

from PIL import Image, ImageDraw, ImageFont

log = logging.getLogger(__name__)

OptionMap = dict

Matrix = tuple[float, float, float, float, float, float]
_IDENTITY: Matrix = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)
_CURVE_SAMPLES = 16
_NUMBER = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_PATH_COMMANDS = r"[MmLlHhVvCcSsQqTtAaZz]"
_PATH_PIECE = re.compile(_PATH_COMMANDS + "|" + _NUMBER.pattern)
_TRANSFORM = re.compile(r"(\w+)\s*\(([^)]*)\)")
_NO_PAINT = {"none", "transparent"}


def _compose(m: Matrix, n: Matrix) -> Matrix:
    a, b, c, d, e, f = m
    a2, b2, c2, d2, e2, f2 = n
    return (
        a * a2 + c * b2, b * a2 + d * b2,
        a * c2 + c * d2, b * c2 + d * d2,
        a * e2 + c * f2 + e, b * e2 + d * f2 + f,
    )


def _apply(m: Matrix, x: float, y: float) -> tuple[float, float]:
    a, b, c, d, e, f = m
    return a * x + c * y + e, b * x + d * y + f


def _numbers(text: str) -> list[float]:
    return [float(n) for n in _NUMBER.findall(text)]


def _length(value: str | None, default: float = 0.0) -> float:
    if value is None:
        return default
    found = _NUMBER.match(value.strip())
    if found is None:
        raise ValueError(f"invalid length {value!r}")
    return float(found.group())


def _parse_transform(text: str | None) -> Matrix:
    matrix = _IDENTITY
    for name, args in _TRANSFORM.findall(text or ""):
        v = _numbers(args)
        if name == "matrix" and len(v) == 6:
            step = tuple(v)
        elif name == "translate" and v:
            step = (1, 0, 0, 1, v[0], v[1] if len(v) > 1 else 0)
        elif name == "scale" and v:
            step = (v[0], 0, 0, v[1] if len(v) > 1 else v[0], 0, 0)
        elif name == "rotate" and v:
            r = math.radians(v[0])
            step = (math.cos(r), math.sin(r), -math.sin(r), math.cos(r), 0, 0)
            if len(v) == 3:
                step = _compose(_compose((1, 0, 0, 1, v[1], v[2]), step), (1, 0, 0, 1, -v[1], -v[2]))
        elif name == "skewX" and v:
            step = (1, 0, math.tan(math.radians(v[0])), 1, 0, 0)
        elif name == "skewY" and v:
            step = (1, math.tan(math.radians(v[0])), 0, 1, 0, 0)
        else:
            raise ValueError(f"invalid transform {name}({args})")
        matrix = _compose(matrix, step)
    return matrix


def _bezier(points: Sequence[tuple[float, float]]) -> list[tuple[float, float]]:
    out = []
    for i in range(1, _CURVE_SAMPLES + 1):
        t = i / _CURVE_SAMPLES
        pts = list(points)
        while len(pts) > 1:
            pts = [(p[0] + (q[0] - p[0]) * t, p[1] + (q[1] - p[1]) * t) for p, q in zip(pts, pts[1:])]
        out.append(pts[0])
    return out


def _parse_path(d: str) -> list[tuple[list[tuple[float, float]], bool]]:
    pieces = deque(_PATH_PIECE.findall(d))
    subpaths: list[tuple[list[tuple[float, float]], bool]] = []
    current: list[tuple[float, float]] = []
    cx = cy = sx = sy = 0.0
    cmd: str | None = None
    prev: str | None = None
    ctrl: tuple[float, float] | None = None

    def num() -> float:
        if not pieces or pieces[0].isalpha():
            raise ValueError(f"path data ended early: {d!r}")
        return float(pieces.popleft())

    def finish(closed: bool) -> None:
        nonlocal current
        if current:
            subpaths.append((current, closed))
        current = []

    while pieces:
        if pieces[0].isalpha():
            cmd = pieces.popleft()
        elif cmd is None:
            raise ValueError(f"path data must start with a command: {d!r}")
        upper = cmd.upper()
        ox, oy = (cx, cy) if cmd.islower() else (0.0, 0.0)
        if upper == "Z":
            finish(True)
            cx, cy = sx, sy
            cmd = None
            prev = "Z"
            continue
        if upper == "M":
            finish(False)
            cx, cy = num() + ox, num() + oy
            sx, sy = cx, cy
            current = [(cx, cy)]
            cmd = "l" if cmd.islower() else "L"
            prev = "M"
            continue
        if not current:
            current = [(cx, cy)]
        if upper == "L":
            cx, cy = num() + ox, num() + oy
            current.append((cx, cy))
        elif upper == "H":
            cx = num() + ox
            current.append((cx, cy))
        elif upper == "V":
            cy = num() + oy
            current.append((cx, cy))
        elif upper in "CS":
            if upper == "C":
                c1 = (num() + ox, num() + oy)
            else:
                c1 = (2 * cx - ctrl[0], 2 * cy - ctrl[1]) if prev in ("C", "S") and ctrl else (cx, cy)
            c2 = (num() + ox, num() + oy)
            end = (num() + ox, num() + oy)
            current.extend(_bezier([(cx, cy), c1, c2, end]))
            ctrl = c2
            cx, cy = end
        elif upper in "QT":
            if upper == "Q":
                c1 = (num() + ox, num() + oy)
            else:
                c1 = (2 * cx - ctrl[0], 2 * cy - ctrl[1]) if prev in ("Q", "T") and ctrl else (cx, cy)
            end = (num() + ox, num() + oy)
            current.extend(_bezier([(cx, cy), c1, end]))
            ctrl = c1
            cx, cy = end
        elif upper == "A":
            for _ in range(5):
                num()
            # Arcs are reduced to a straight segment to their end point.
            cx, cy = num() + ox, num() + oy
            current.append((cx, cy))
        prev = upper
    finish(False)
    return subpaths


def _ellipse(cx: float, cy: float, rx: float, ry: float) -> list[tuple[float, float]]:
    steps = 64
    return [
        (cx + rx * math.cos(2 * math.pi * i / steps), cy + ry * math.sin(2 * math.pi * i / steps))
        for i in range(steps)
    ]


def _style(elem: ET.Element, inherited: dict[str, str]) -> dict[str, str]:
    style = dict(inherited)
    for key in ("fill", "stroke", "stroke-width", "font-size"):
        if key in elem.attrib:
            style[key] = elem.attrib[key].strip()
    for decl in elem.attrib.get("style", "").split(";"):
        if ":" in decl:
            key, value = decl.split(":", 1)
            style[key.strip()] = value.strip()
    return style


class _Renderer:
    def __init__(self, width: int, height: int) -> None:
        self.image = Image.new("L", (width, height), 0)
        self.draw = ImageDraw.Draw(self.image)

    def paint(self, subpaths, style: dict[str, str], matrix: Matrix) -> None:
        shapes = [([_apply(matrix, x, y) for x, y in pts], closed) for pts, closed in subpaths]
        if style.get("fill", "black").lower() not in _NO_PAINT:
            for pts, _ in shapes:
                if len(pts) >= 3:
                    self.draw.polygon(pts, fill=255)
        if style.get("stroke", "none").lower() not in _NO_PAINT:
            a, b, c, d, _, _ = matrix
            scale = math.sqrt(abs(a * d - b * c))
            width = max(1, round(_length(style.get("stroke-width"), 1.0) * scale))
            for pts, closed in shapes:
                line = pts + pts[:1] if closed else pts
                if len(line) >= 2:
                    self.draw.line(line, fill=255, width=width, joint="curve")
                elif line:
                    self.draw.point(line, fill=255)

    def text(self, elem: ET.Element, style: dict[str, str], matrix: Matrix) -> None:
        content = "".join(elem.itertext()).strip()
        if not content or style.get("fill", "black").lower() in _NO_PAINT:
            return
        a, b, c, d, _, _ = matrix
        size = max(1, round(_length(style.get("font-size"), 16.0) * math.sqrt(abs(a * d - b * c))))
        try:
            font = ImageFont.load_default(size=size)
        except TypeError:
            font = ImageFont.load_default()
        x, y = _apply(matrix, _length(elem.get("x")), _length(elem.get("y")))
        self.draw.text((x, y - size), content, fill=255, font=font)

    def walk(self, elem: ET.Element, style: dict[str, str], matrix: Matrix) -> None:
        for child in elem:
            tag = child.tag.rsplit("}", 1)[-1]
            if tag in ("defs", "title", "desc", "metadata", "style"):
                continue
            child_style = _style(child, style)
            child_matrix = _compose(matrix, _parse_transform(child.get("transform")))
            g = child.get
            if tag in ("g", "svg", "a"):
                self.walk(child, child_style, child_matrix)
            elif tag == "rect":
                x, y = _length(g("x")), _length(g("y"))
                w, h = _length(g("width")), _length(g("height"))
                if w > 0 and h > 0:
                    corners = [(x, y), (x + w, y), (x + w, y + h), (x, y + h)]
                    self.paint([(corners, True)], child_style, child_matrix)
            elif tag == "circle":
                r = _length(g("r"))
                if r > 0:
                    pts = _ellipse(_length(g("cx")), _length(g("cy")), r, r)
                    self.paint([(pts, True)], child_style, child_matrix)
            elif tag == "ellipse":
                rx, ry = _length(g("rx")), _length(g("ry"))
                if rx > 0 and ry > 0:
                    pts = _ellipse(_length(g("cx")), _length(g("cy")), rx, ry)
                    self.paint([(pts, True)], child_style, child_matrix)
            elif tag == "line":
                pts = [(_length(g("x1")), _length(g("y1"))), (_length(g("x2")), _length(g("y2")))]
                self.paint([(pts, False)], {**child_style, "fill": "none"}, child_matrix)
            elif tag in ("polyline", "polygon"):
                v = _numbers(g("points", ""))
                pts = list(zip(v[0::2], v[1::2]))
                self.paint([(pts, tag == "polygon")], child_style, child_matrix)
            elif tag == "path":
                self.paint(_parse_path(g("d", "")), child_style, child_matrix)
            elif tag == "text":
                self.text(child, child_style, child_matrix)


def _render_svg(svg_data: str, width: int, height: int) -> Image.Image:
    root = ET.fromstring(svg_data)
    if root.tag.rsplit("}", 1)[-1] != "svg":
        raise ValueError("root element is not <svg>")
    matrix = _IDENTITY
    view_box = _numbers(root.get("viewBox", ""))
    if len(view_box) == 4 and view_box[2] > 0 and view_box[3] > 0:
        min_x, min_y, vb_w, vb_h = view_box
        doc_w = _length(root.get("width"), vb_w)
        doc_h = _length(root.get("height"), vb_h)
        matrix = (doc_w / vb_w, 0.0, 0.0, doc_h / vb_h, -min_x * doc_w / vb_w, -min_y * doc_h / vb_h)
    renderer = _Renderer(width, height)
    renderer.walk(root, _style(root, {}), matrix)
    return renderer.image


def svg_to_bitmap(svg_data: str, width: int, height: int) -> list[list[bool]]:
    """Rasterise SVG into rows of booleans, True where the drawing covers."""
    try:
        mask = _render_svg(svg_data, width, height)
    except (ET.ParseError, ValueError) as exc:
        log.info("Error parsing SVG: %s. Using fallback SVG.", exc)
        fallback = (
            f"<svg width='{width}' height='{height}' xmlns='http://www.w3.org/2000/svg'>"
            "<text x='100' y='900' font-family='Noto Sans' font-size='24'>ERROR!</text></svg>"
        )
        mask = _render_svg(fallback, width, height)
    data = mask.tobytes()
    return [[value > 128 for value in data[start:start + width]] for start in range(0, len(data), width)]


def write_bitmap_to_file(bitmap: Sequence[Sequence[bool]], filename: str) -> None:
    """Save a bitmap as a greyscale image: set pixels black, others white."""
    if not bitmap or not bitmap[0]:
        raise ValueError("bitmap is empty")
    width, height = len(bitmap[0]), len(bitmap)
    img = Image.new("L", (width, height), 255)
    img.putdata([0 if pixel else 255 for row in bitmap for pixel in row])
    img.save(filename)
    log.info("Bitmap saved to %s", filename)


def option_or_env(options: Mapping[str, str], key: str, env_key: str) -> str:
    """Return the option, else the environment variable; KeyError if neither."""
    if key in options:
        return options[key]
    return os.environ[env_key]


def option_or_env_fallback(options: Mapping[str, str], key: str, env_key: str, fallback: str) -> str:
    """Return the option, else the environment variable, else the fallback."""
    if key in options:
        return options[key]
    return os.environ.get(env_key, fallback)