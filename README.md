# ghostwriter

Building blocks for a vision-LLM agent that lives on an e-paper tablet. The
agent looks at what is written on the page, hands a picture of it to a model,
and answers on the page itself, either by typing with a virtual keyboard or
by drawing with a virtual pen.

The package talks to the tablet through Linux input event devices
(`/dev/input/event*` and `/dev/uinput`) and reads the screen straight from the
notebook process's memory. `Keyboard`, `Pen` and `Touch` can each be built in
a "no draw" mode in which nothing is written to any device; pass a
`DeviceModel` explicitly and they need no device files at all.

## Modules

| Module | Contents |
| --- | --- |
| `ghostwriter.device` | `DeviceModel` (`REMARKABLE2`, `REMARKABLE_PAPER_PRO`, `UNKNOWN`) and `detect_device_model(hwrevision_path)`, which reads the hardware revision file (default `/etc/hwrevision`) and returns `UNKNOWN` if it is missing or unrecognised. |
| `ghostwriter.events` | `EventType`, the frozen `InputEvent` dataclass with `pack()` and `InputEvent.sync()`, `unpack_events(data)`, and `EventDevice`, which wraps a binary stream and offers `open(path)`, `send_events(events)`, `fetch_events()` (keeping a partial trailing event for the next call), `close()` and use as a context manager. |
| `ghostwriter.keyboard` | `Key` (Linux key codes), `KEY_MAP`, `create_virtual_keyboard(name)` and `Keyboard`: `key_down`, `key_up`, `string_to_keypresses` (characters with no key are skipped), the Ctrl+1…4 paragraph styles `key_cmd_title`, `key_cmd_subheading`, `key_cmd_body`, `key_cmd_bullet`, and `progress(note)` / `progress_end()`, which types a note and later erases it with one backspace per UTF-8 byte typed. |
| `ghostwriter.pen` | `Pen`: `pen_down`, `pen_up`, `goto_xy`, `goto_xy_virtual`, `draw_line`, `draw_line_screen`, `draw_bitmap`, `max_x_value`, `max_y_value` and `virtual_to_input`, mapping the 768×1024 virtual canvas onto the digitizer. `draw_line` raises `ValueError` for a zero-length line. |
| `ghostwriter.touch` | `Touch`: `touch_start`, `touch_stop`, `goto_xy`, `tap_middle_bottom`, `screen_width`, `screen_height`, `virtual_to_input`, `input_to_virtual`, and `wait_for_trigger()`, which blocks until a touch is released in the upper-right corner (virtual x > 700, y < 50) and returns that point. It raises `RuntimeError` when there is no touch device. |
| `ghostwriter.screenshot` | `find_xochitl_pid()`, `apply_curves(value)` and `Screenshot`: `take_screenshot()` finds the framebuffer of the `xochitl` process, reads it, saves the raw bytes to `./capture/rawcap.raw`, and keeps a PNG scaled to 768×1024 in `data`; also `save_image(filename)`, `base64()` and the lower-level steps (`find_framebuffer_address`, `read_framebuffer`, `encode_png`, `process_image`). |
| `ghostwriter.util` | `svg_to_bitmap(svg_data, width, height)`, `write_bitmap_to_file(bitmap, filename)`, `option_or_env(options, key, env_key)` and `option_or_env_fallback(options, key, env_key, fallback)`. |
| `ghostwriter.llm_engine` | `LLMEngine`, an abstract base that stores options, registered tools (`register_tool`) and prompt content (`add_text_content`, `add_image_content`, `clear_content`); subclasses implement `execute()`. |
| `ghostwriter.segmenter` | `find_contours`, `contour_area`, `min_area_rect`, `Region`, `SegmentationResult`, `ImageAnalyzer` (`analyze_image`, `generate_description`, `visualize_regions`) and `analyze_image(image_path)`. |

## Examples

Typing without touching any device:

```python
from ghostwriter.keyboard import Keyboard

keyboard = Keyboard(no_draw=True, no_draw_progress=False, device=None)
keyboard.progress("thinking...")
keyboard.progress_end()
keyboard.key_cmd_body()
keyboard.string_to_keypresses("Hello, page!")
```

Rendering an SVG answer and keeping a copy of the bitmap:

```python
from ghostwriter.util import svg_to_bitmap, write_bitmap_to_file

svg = (
    "<svg width='768' height='1024' xmlns='http://www.w3.org/2000/svg'>"
    "<rect x='100' y='100' width='200' height='50'/></svg>"
)
bitmap = svg_to_bitmap(svg, 768, 1024)
write_bitmap_to_file(bitmap, "answer.png")
```

SVG that cannot be parsed is replaced by a small "ERROR!" drawing rather than
raising.

Drawing that bitmap with the pen on a tablet:

```python
from ghostwriter.device import detect_device_model
from ghostwriter.pen import Pen

pen = Pen(no_draw=False, device_model=detect_device_model(), device=None)
pen.draw_bitmap(bitmap)
```

Describing the regions of a page image:

```python
from ghostwriter.segmenter import ImageAnalyzer, analyze_image

print(analyze_image("page.png"))

analyzer = ImageAnalyzer(min_region_size=0.001, max_regions=10)
result = analyzer.analyze_image("page.png")
print(analyzer.generate_description(result))
```

`analyze_image` keeps contours of area 50 or more, at most ten of them,
largest first.

## Options

Engine settings are a plain `dict` of strings. `option_or_env()` returns the
value from the mapping, else the environment variable, and raises `KeyError`
if neither is set; `option_or_env_fallback()` returns the given fallback
instead.

## What the package does not do

- It has no command-line program and no main loop; wiring the pieces
  together (wait for the trigger, capture, ask the model, draw the answer) is
  left to the caller.
- It has no model back ends. `LLMEngine` is only the interface; sending
  content to a model and calling the chosen tool is for a subclass's
  `execute()` to provide.
- It does not load the uinput kernel module; `create_virtual_keyboard()`
  needs `/dev/uinput` to be present and writable.
- The SVG renderer covers the common shapes, paths, transforms and plain
  text drawn with Pillow's default font. Arcs in paths are drawn as straight
  segments, and gradients, clipping and CSS stylesheets are ignored.

## Requirements

Python 3.10 or newer and Pillow. Talking to a tablet needs Linux, the input
devices present, permission to write to them, and for screen capture, read
access to the notebook process's `/proc` entries and the `pidof` command.