"""The common interface of the language-model engines."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

ToolCallback = Callable[[Any], None]


@dataclass
class Tool:
    """A tool the model may call, with its JSON definition."""

    name: str
    definition: Any
    callback: ToolCallback


class LLMEngine(ABC):
    """Collects prompt content and tools, and runs a request against a model."""

    def __init__(self, options: Mapping[str, str]) -> None:
        self.options = dict(options)
        self.tools: dict[str, Tool] = {}
        self.content: list[dict[str, str]] = []

    def register_tool(self, name: str, definition: Any, callback: ToolCallback) -> None:
        self.tools[name] = Tool(name, definition, callback)

    def add_text_content(self, text: str) -> None:
        self.content.append({"type": "text", "text": text})

    def add_image_content(self, base64_image: str) -> None:
        self.content.append({"type": "image", "data": base64_image})

    def clear_content(self) -> None:
        self.content.clear()

    def _call_tool(self, name: str, arguments: Any) -> None:
        """Run a registered tool; KeyError if the model named an unknown one."""
        try:
            tool = self.tools[name]
        except KeyError:
            raise KeyError(f"model called unknown tool {name!r}") from None
        tool.callback(arguments)

    @abstractmethod
    def execute(self) -> None:
        """Send the content to the model and run the tool it chooses."""