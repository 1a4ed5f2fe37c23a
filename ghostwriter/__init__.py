"""Input devices, screen capture, SVG rasterising and segmentation for a vision-LLM agent on e-paper tablets."""

__version__ = "0.3.0"

__all__ = [
    "device",
    "events",
    "keyboard",
    "llm_engine",
    "pen",
    "screenshot",
    "segmenter",
    "touch",
    "util",
]