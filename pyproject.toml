[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ghostwriter"
version = "0.3.0"
description = "Building blocks for a vision-LLM agent on e-paper tablets: virtual pen, touch and keyboard input, screen capture, SVG rasterising and image segmentation"
requires-python = ">=3.10"
dependencies = [
    "pillow",
]
keywords = [
    "e-paper",
    "tablet",
    "evdev",
    "uinput",
    "llm",
    "vision",
    "svg",
    "segmentation",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Human Machine Interfaces",
    "Topic :: Multimedia :: Graphics",
    "Topic :: Scientific/Engineering :: Image Processing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["ghostwriter"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
