"""Tests for shared helpers: lazy cells, image payloads and the LiteLLM wrapper."""

import threading

import pytest

from gehon.common import ImageData, LazyCell, load_image_source, parse_data_url
from gehon.common import llm as llm_module


class TestLazyCell:
    def test_initialises_once(self):
        calls = []
        cell = LazyCell(lambda: calls.append(1) or "value")

        assert cell.get() == "value"
        assert cell.get() == "value"
        assert calls == [1]
        assert cell.initialized

    def test_failure_is_not_cached(self):
        attempts = []

        def factory():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("first call fails")
            return 42

        cell = LazyCell(factory)
        with pytest.raises(RuntimeError):
            cell.get()
        assert not cell.initialized
        assert cell.get() == 42

    def test_concurrent_first_use_runs_factory_once(self):
        calls = []
        gate = threading.Event()

        def factory():
            gate.wait(1)
            calls.append(1)
            return object()

        cell = LazyCell(factory)
        results = []
        threads = [threading.Thread(target=lambda: results.append(cell.get())) for _ in range(5)]
        for thread in threads:
            thread.start()
        gate.set()
        for thread in threads:
            thread.join()

        assert len(calls) == 1
        assert len({id(result) for result in results}) == 1

    def test_reset(self):
        cell = LazyCell(lambda: "x")
        cell.get()
        cell.reset()

        assert not cell.initialized


class TestImageData:
    def test_data_url_conversion(self):
        image = ImageData(b"abc", "image/jpeg")

        assert image.to_data_url() == "data:image/jpeg;base64,YWJj"
        assert ImageData.from_data_url(image.to_data_url()) == image

    def test_is_image(self):
        assert ImageData(b"abc", "image/png").is_image
        assert not ImageData(b"", "image/png").is_image
        assert not ImageData(b"abc", "text/plain").is_image

    def test_from_base64_tolerates_line_breaks(self):
        assert ImageData.from_base64("YW\nJj").data == b"abc"

    def test_invalid_base64_raises_value_error(self):
        with pytest.raises(ValueError):
            ImageData.from_base64("***")

    def test_parse_data_url(self):
        assert parse_data_url("data:image/png;base64,AAAA") == ("image/png", "AAAA")
        assert parse_data_url("https://example.com/a.png") is None
        assert parse_data_url(None) is None


class TestLoadImageSource:
    def test_reads_file(self, tmp_path):
        path = tmp_path / "hero.png"
        path.write_bytes(b"png")

        image = load_image_source(str(path))

        assert image == ImageData(b"png", "image/png")

    def test_accepts_data_url_and_blank(self):
        assert load_image_source("data:image/png;base64,YWJj").data == b"abc"
        assert load_image_source(None) is None
        assert load_image_source("  ") is None

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_image_source(tmp_path / "missing.png")


class TestCallChatCompletion:
    def test_builds_payload_and_joins_parts(self, monkeypatch):
        captured = {}

        def fake_completion(**kwargs):
            captured.update(kwargs)
            return {"choices": [{"message": {"content": [{"text": "hello"}, {"text": "  "}, {"text": "world"}]}}]}

        monkeypatch.setattr(llm_module, "completion", fake_completion)

        result = llm_module.call_chat_completion(
            model="gemini/gemini-2.5-flash",
            messages=[{"role": "user", "content": "hi"}],
            temperature=0.8,
            api_key="k",
            json_mode=True,
        )

        assert result.text == "hello\nworld"
        assert captured["response_format"] == {"type": "json_object"}
        assert captured["temperature"] == 0.8
        assert "max_tokens" not in captured

    def test_unexpected_shape_raises(self, monkeypatch):
        monkeypatch.setattr(llm_module, "completion", lambda **kwargs: {"choices": []})

        with pytest.raises(RuntimeError):
            llm_module.call_chat_completion(model="m", messages=[])
