import pytest

from ghostwriter.llm_engine import LLMEngine


class EchoEngine(LLMEngine):
    def execute(self):
        text = next(c["text"] for c in self.content if c["type"] == "text")
        self._call_tool(self.options["tool"], {"text": text})


def test_base_cannot_be_instantiated():
    with pytest.raises(TypeError):
        LLMEngine({})


def test_content_collection_and_clear():
    engine = EchoEngine({"model": "m"})
    LLMEngine.add_image_content(engine, "aGk=")
    LLMEngine.add_text_content(engine, "hello")
    assert engine.content == [
        {"type": "image", "data": "aGk="},
        {"type": "text", "text": "hello"},
    ]
    LLMEngine.clear_content(engine)
    assert engine.content == []


def test_execute_dispatches_registered_tool():
    received = []
    engine = EchoEngine({"tool": "draw_text"})
    LLMEngine.register_tool(engine, "draw_text", {"name": "draw_text"}, received.append)
    LLMEngine.add_text_content(engine, "hi")
    engine.execute()
    assert received == [{"text": "hi"}]
    assert engine.tools["draw_text"].definition == {"name": "draw_text"}


def test_unknown_tool_raises():
    engine = EchoEngine({"tool": "missing"})
    LLMEngine.add_text_content(engine, "hi")
    with pytest.raises(KeyError):
        LLMEngine._call_tool(engine, "missing", {"text": "hi"})


def test_options_are_copied():
    options = {"model": "a"}
    engine = EchoEngine({})
    LLMEngine.__init__(engine, options)
    options["model"] = "b"
    assert engine.options == {"model": "a"}