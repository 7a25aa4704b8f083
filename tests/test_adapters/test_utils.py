from unittest.mock import MagicMock, patch

import pytest

from srag.adapters.base import BaseLLM
from srag.adapters.utils import ENCODING_CACHE, call_with_backoff, count_tokens
from srag.errors import TransientGatewayError


class TestCallWithBackoff:
    def test_returns_first_success(self) -> None:
        fn = MagicMock(return_value="ok")
        sleep = MagicMock()

        assert call_with_backoff("test", fn, "a", key="b", sleep=sleep) == "ok"
        fn.assert_called_once_with("a", key="b")
        sleep.assert_not_called()

    def test_retries_with_exponential_delay(self) -> None:
        fn = MagicMock(side_effect=[RuntimeError("1"), RuntimeError("2"), "ok"])
        delays: list[float] = []

        result = call_with_backoff(
            "test", fn, max_retries=3, base_delay=0.5, sleep=delays.append
        )

        assert result == "ok"
        assert fn.call_count == 3
        assert delays == [1.0, 2.0]

    def test_raises_after_retries_exhausted(self) -> None:
        fn = MagicMock(side_effect=ConnectionError("down"))
        delays: list[float] = []

        with pytest.raises(TransientGatewayError) as exc_info:
            call_with_backoff("embedding", fn, max_retries=2, base_delay=1.0, sleep=delays.append)

        assert fn.call_count == 3
        assert delays == [2.0, 4.0]
        assert exc_info.value.gateway == "embedding"
        assert exc_info.value.attempts == 3
        assert "down" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_zero_retries_fails_immediately(self) -> None:
        fn = MagicMock(side_effect=ValueError("bad"))
        sleep = MagicMock()

        with pytest.raises(TransientGatewayError):
            call_with_backoff("generation", fn, max_retries=0, sleep=sleep)

        fn.assert_called_once()
        sleep.assert_not_called()


class _WordEncoder:
    def encode(self, text: str) -> list[str]:
        return text.split()


class TestTokenCounting:
    def test_count_tokens_uses_model_encoding(self) -> None:
        with patch.dict(ENCODING_CACHE, {"gpt-4": _WordEncoder()}):
            assert count_tokens("one two three", model="gpt-4") == 3

    def test_unknown_model_falls_back_to_cl100k(self) -> None:
        with patch.dict(ENCODING_CACHE, clear=True), patch(
            "srag.adapters.utils.tiktoken"
        ) as mock_tiktoken:
            mock_tiktoken.encoding_for_model.side_effect = KeyError("unknown")
            mock_tiktoken.get_encoding.return_value = _WordEncoder()

            assert count_tokens("a b", model="not-a-real-model") == 2
            mock_tiktoken.get_encoding.assert_called_once_with("cl100k_base")
            assert "not-a-real-model" in ENCODING_CACHE

    def test_default_complete_estimates_usage(self) -> None:
        class EchoLLM(BaseLLM):
            @property
            def supports_streaming(self) -> bool:
                return False

            def generate(self, prompt: str, **kwargs) -> str:
                return prompt

            def chat(self, messages: list[dict[str, str]], **kwargs) -> str:
                return messages[-1]["content"]

        with patch.dict(ENCODING_CACHE, {"echo": _WordEncoder()}):
            completion = EchoLLM("echo").complete("Be brief.", "Say hello")

        assert completion.text == "Say hello"
        # "Be brief.Say hello" -> 3 words, reply -> 2 words
        assert completion.usage.prompt_tokens == 3
        assert completion.usage.completion_tokens == 2
        assert completion.usage.total_tokens == 5
