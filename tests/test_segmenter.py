import re

import pytest
from PIL import Image

from ghostwriter.segmenter import (
    BorderType,
    ImageAnalyzer,
    Region,
    SegmentationResult,
    analyze_image,
    contour_area,
    find_contours,
    min_area_rect,
)


def _image(size, boxes, background=0, color=255):
    img = Image.new("L", size, background)
    for x0, y0, x1, y1 in boxes:
        for y in range(y0, y1 + 1):
            for x in range(x0, x1 + 1):
                img.putpixel((x, y), color)
    return img


def _save(tmp_path, img, name="input.png"):
    path = tmp_path / name
    img.save(path)
    return str(path)


def test_contour_area_of_square():
    square = [(0, 0), (2, 0), (2, 2), (0, 2)]
    assert contour_area(square) == 4.0


def test_contour_area_independent_of_direction():
    poly = [(0, 0), (5, 1), (4, 6), (1, 4)]
    assert contour_area(poly) == contour_area(list(reversed(poly)))


def test_contour_area_of_empty_is_zero():
    assert contour_area([]) == 0.0


def test_min_area_rect_single_point():
    assert min_area_rect([(3, 4)]) == [(3, 4)] * 4


def test_min_area_rect_two_points():
    a, b = min_area_rect([(1, 1), (5, 1)])[:2]
    assert min_area_rect([(1, 1), (5, 1)]) == [a, b, b, a]
    assert {a, b} == {(1, 1), (5, 1)}


def test_min_area_rect_empty_raises():
    with pytest.raises(ValueError):
        min_area_rect([])


def test_min_area_rect_covers_points():
    points = [(2, 3), (9, 3), (9, 8), (2, 8), (5, 5)]
    corners = min_area_rect(points)
    assert len(corners) == 4
    xs = [p[0] for p in corners]
    ys = [p[1] for p in corners]
    assert min(xs) <= 2 and max(xs) >= 9
    assert min(ys) <= 3 and max(ys) >= 8


def test_find_contours_blank_image():
    assert find_contours(Image.new("L", (6, 6), 0)) == []


def test_find_contours_single_pixel():
    contours = find_contours(_image((5, 5), [(2, 2, 2, 2)]))
    assert len(contours) == 1
    assert contours[0].points == [(2, 2)]
    assert contours[0].border_type is BorderType.OUTER
    assert contours[0].parent is None


def test_find_contours_block_border():
    contours = find_contours(_image((5, 5), [(1, 1, 3, 3)]))
    assert len(contours) == 1
    border = {(x, y) for x in range(1, 4) for y in range(1, 4)} - {(2, 2)}
    assert set(contours[0].points) == border
    assert contours[0].points[0] == (1, 1)


def test_find_contours_ring_has_hole_child():
    img = _image((7, 7), [(1, 1, 5, 5)])
    img.putpixel((3, 3), 0)
    contours = find_contours(img)
    assert [c.border_type for c in contours] == [BorderType.OUTER, BorderType.HOLE]
    assert contours[1].parent == 0
    assert (3, 3) not in contours[1].points


def test_analyzer_finds_square(tmp_path):
    path = _save(tmp_path, _image((64, 64), [(10, 10, 29, 29)]))
    result = ImageAnalyzer(0.0, 10).analyze_image(path)
    assert result.image_size == (64, 64)
    assert len(result.regions) == 1
    region = result.regions[0]
    assert region.area == 361
    x, y, w, h = region.bounds
    assert abs(x - 10) <= 1 and abs(y - 10) <= 1
    assert abs((x + w) - 29) <= 1 and abs((y + h) - 29) <= 1


def test_analyzer_sorts_and_limits(tmp_path):
    boxes = [(2, 2, 6, 6), (10, 10, 30, 30), (40, 2, 50, 12)]
    path = _save(tmp_path, _image((64, 64), boxes))
    result = ImageAnalyzer(0.0, 2).analyze_image(path)
    assert len(result.regions) == 2
    assert result.regions[0].area >= result.regions[1].area
    all_regions = ImageAnalyzer(0.0, 10).analyze_image(path).regions
    assert [r.area for r in all_regions[:2]] == [r.area for r in result.regions]
    assert len(all_regions) == 3


def test_analyzer_min_region_size_filters(tmp_path):
    path = _save(tmp_path, _image((32, 32), [(4, 4, 10, 10)]))
    assert ImageAnalyzer(1.0, 10).analyze_image(path).regions == []


def test_generate_description():
    result = SegmentationResult([Region((10, 20, 30, 40), 500, [])], (100, 200))
    text = ImageAnalyzer(0.0, 10).generate_description(result)
    assert text == (
        "Image size: 100x200\nDetected 1 regions:\n\n"
        "Region 1:\n- Position: (10, 20)\n- Size: 30x40\n- Area: 500 pixels\n"
        "- Relative position: 10.00%, 10.00%\n\n"
    )


def test_visualize_regions_colours_and_bounds():
    result = SegmentationResult(
        [Region((0, 0, 1, 1), 10, [(1, 1)]), Region((0, 0, 1, 1), 5, [(2, 3), (50, 50)])],
        (10, 10),
    )
    img = ImageAnalyzer(0.0, 10).visualize_regions(result)
    assert img.size == (10, 10)
    assert img.getpixel((2, 3)) == (90, 140, 200)
    assert img.getpixel((1, 1)) == (0, 0, 0)


def test_analyze_image_lines(tmp_path):
    boxes = [(10, 10, 29, 29), (40, 40, 42, 42)]
    path = _save(tmp_path, _image((64, 64), boxes))
    lines = analyze_image(path).splitlines()
    assert len(lines) == 1
    match = re.fullmatch(r"Region: x=(\d+), y=(\d+), width=(\d+), height=(\d+)", lines[0])
    assert match is not None
    x, y, w, h = map(int, match.groups())
    assert abs(x - 10) <= 1 and abs(y - 10) <= 1
    assert abs((x + w) - 29) <= 1 and abs((y + h) - 29) <= 1


def test_analyze_image_uses_brightness(tmp_path):
    img = Image.new("RGB", (40, 40), (0, 0, 0))
    for yy in range(5, 25):
        for xx in range(5, 25):
            img.putpixel((xx, yy), (0, 0, 255))
    path = _save(tmp_path, img)
    assert analyze_image(path) == ""


def test_analyze_image_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        analyze_image(str(tmp_path / "missing.png"))