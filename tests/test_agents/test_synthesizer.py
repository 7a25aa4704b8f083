from unittest.mock import MagicMock

from conftest import MockLLM, no_sleep
from srag.agents import FALLBACK_RESPONSE, SynthesizerAgent
from srag.agents.prompts import NO_CONTEXT_TEXT
from srag.models import Completion, Degraded, Ok


class TestSynthesizerAgent:
    def test_returns_completion(self) -> None:
        llm = MockLLM(["Chapter 2 covers speech acts."])
        synthesizer = SynthesizerAgent(llm)

        outcome = synthesizer.synthesize("What is in chapter 2?", "Chapter 2: speech acts")

        assert isinstance(outcome, Ok)
        assert outcome.value.text == "Chapter 2 covers speech acts."
        assert outcome.value.usage.total_tokens == 15
        system_prompt, user_message = llm.calls[0]
        assert "Chapter 2: speech acts" in system_prompt
        assert user_message == "What is in chapter 2?"

    def test_empty_context_placeholder(self) -> None:
        synthesizer = SynthesizerAgent(MockLLM())
        assert NO_CONTEXT_TEXT in synthesizer.build_prompt("")

    def test_custom_template(self) -> None:
        synthesizer = SynthesizerAgent(MockLLM(), prompt_template="Context >> {context}")
        assert synthesizer.build_prompt("abc") == "Context >> abc"

    def test_sampling_parameters_passed(self) -> None:
        llm = MagicMock()
        llm.complete.return_value = Completion(text="ok")
        synthesizer = SynthesizerAgent(llm, temperature=0.3, max_tokens=100)

        synthesizer.synthesize("question", "context")

        args, kwargs = llm.complete.call_args
        assert args[1] == "question"
        assert kwargs == {"temperature": 0.3, "max_tokens": 100}

    def test_retries_transient_failure(self) -> None:
        llm = MockLLM([ConnectionError("reset"), "Recovered answer"])
        delays: list[float] = []
        synthesizer = SynthesizerAgent(llm, base_delay=0.25, sleep=delays.append)

        outcome = synthesizer.synthesize("question", "context")

        assert outcome.value.text == "Recovered answer"
        assert delays == [0.5]

    def test_gateway_failure_degrades(self) -> None:
        llm = MockLLM([RuntimeError("quota exceeded")])
        synthesizer = SynthesizerAgent(llm, max_retries=2, sleep=no_sleep)

        outcome = synthesizer.synthesize("question", "context")

        assert isinstance(outcome, Degraded)
        assert outcome.value.text == FALLBACK_RESPONSE
        assert "quota exceeded" in outcome.reason
        assert len(llm.calls) == 3
