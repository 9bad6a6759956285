# tests/test_llm.py
"""Tests for LLM client."""

import threading
import time
from unittest.mock import patch

import pytest

from tubebrief.llm import LLMClient, LLMError, parse_json_object


class TestDetectModel:
    def test_detect_model_anthropic(self):
        with patch.dict("os.environ", {"ANTHROPIC_API_KEY": "sk-ant-test"}, clear=True):
            client = LLMClient()
            assert "anthropic" in client.model or "claude" in client.model

    def test_detect_model_openai(self):
        with patch.dict("os.environ", {"OPENAI_API_KEY": "sk-test"}, clear=True):
            client = LLMClient()
            assert "gpt" in client.model

    def test_detect_model_google(self):
        with patch.dict("os.environ", {"GOOGLE_API_KEY": "goog-test"}, clear=True):
            client = LLMClient()
            assert "gemini" in client.model

    def test_vision_model_falls_back_to_text_model(self):
        with patch.dict("os.environ", {"ANTHROPIC_API_KEY": "sk-ant-test"}, clear=True):
            client = LLMClient()
            assert client.vision_model == client.model


class TestAvailable:
    def test_available_with_key(self):
        with patch.dict("os.environ", {"OPENAI_API_KEY": "sk-test"}, clear=True):
            assert LLMClient().available is True

    def test_available_without_key(self):
        with patch.dict("os.environ", {}, clear=True):
            assert LLMClient().available is False


class TestComplete:
    def test_complete_no_key(self):
        with patch.dict("os.environ", {}, clear=True):
            client = LLMClient()
            with pytest.raises(LLMError, match="No LLM API key"):
                client.complete([{"role": "user", "content": "hi"}])

    def test_complete_returns_text_and_usage(self, mock_llm):
        completion = mock_llm.complete([{"role": "user", "content": "hi"}])
        assert completion.text == "Slide showing a neural network diagram"
        assert completion.usage.total_tokens == 1500
        assert completion.usage.model == mock_llm.model
        assert completion.usage.total_cost == pytest.approx(0.003)
        assert completion.usage.prompt_cost + completion.usage.completion_cost == pytest.approx(0.003)

    def test_json_mode_sets_response_format(self, mock_llm):
        mock_llm.complete([{"role": "system", "content": "x"}], json_mode=True, temperature=0.1)
        kwargs = mock_llm._mock_completion.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["temperature"] == 0.1

    def test_missing_usage_is_tolerated(self, mock_llm, make_response):
        mock_llm._mock_completion.side_effect = None
        mock_llm._mock_completion.return_value = make_response("ok", usage={"prompt_tokens": 1})
        assert mock_llm.complete([{"role": "user", "content": "hi"}]).usage is None

    def test_empty_content_raises(self, mock_llm, make_response):
        mock_llm._mock_completion.side_effect = None
        mock_llm._mock_completion.return_value = make_response("   ")
        with pytest.raises(LLMError, match="Empty response"):
            mock_llm.complete([{"role": "user", "content": "hi"}])

    def test_provider_error_wrapped(self, mock_llm):
        mock_llm._mock_completion.side_effect = RuntimeError("rate limited")
        with pytest.raises(LLMError, match="rate limited"):
            mock_llm.complete([{"role": "user", "content": "hi"}])

    @pytest.mark.parametrize("choices", [[], None])
    def test_malformed_reply_wrapped(self, mock_llm, make_response, choices):
        reply = make_response("ok")
        reply.choices = choices
        mock_llm._mock_completion.side_effect = None
        mock_llm._mock_completion.return_value = reply
        with pytest.raises(LLMError, match="Malformed response"):
            mock_llm.complete([{"role": "user", "content": "hi"}])


class TestThrottle:
    def test_concurrent_calls_bounded(self, make_response):
        in_flight = 0
        peak = 0
        lock = threading.Lock()

        def slow_completion(**kwargs):
            nonlocal in_flight, peak
            with lock:
                in_flight += 1
                peak = max(peak, in_flight)
            time.sleep(0.05)
            with lock:
                in_flight -= 1
            return make_response("ok")

        with patch("tubebrief.llm.litellm.completion", side_effect=slow_completion), \
                patch("tubebrief.llm.litellm.completion_cost", return_value=0.0), \
                patch.dict("os.environ", {"OPENAI_API_KEY": "sk-test"}, clear=True):
            client = LLMClient(max_concurrent=2)
            threads = [
                threading.Thread(target=client.complete, args=([{"role": "user", "content": "x"}],))
                for _ in range(6)
            ]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert peak <= 2


class TestParseJsonObject:
    def test_plain(self):
        assert parse_json_object('{"a": 1}') == {"a": 1}

    def test_strips_markdown_fences(self):
        assert parse_json_object('```json\n{"terms": ["AI"]}\n```') == {"terms": ["AI"]}

    def test_invalid(self):
        with pytest.raises(LLMError, match="invalid JSON"):
            parse_json_object("not json at all")
