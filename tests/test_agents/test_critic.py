import json
from unittest.mock import MagicMock

import pytest

from conftest import MockLLM, no_sleep
from srag.agents import CriticAgent, generate_refined_query, parse_evaluation
from srag.agents.prompts import NOT_FOUND_INSTRUCTIONS, STRICT_INSTRUCTIONS
from srag.errors import ParseError
from srag.models import Completion, Degraded, Ok

QUERY = "What does chapter 2 discuss?"


def _verdict(score: float, approved: bool, refined: str = "None needed") -> str:
    return json.dumps(
        {"score": score, "approved": approved, "reasoning": "Checked.", "refinedQuery": refined}
    )


class TestParseEvaluation:
    def test_plain_json(self) -> None:
        evaluation = parse_evaluation(_verdict(0.9, True), QUERY)

        assert evaluation.score == 0.9
        assert evaluation.approved is True
        assert evaluation.reasoning == "Checked."
        assert evaluation.refined_query == QUERY

    def test_fenced_json_with_prose(self) -> None:
        text = f"Here is my verdict:\n```json\n{_verdict(0.4, False, 'chapter 2 speech acts')}\n```\nThanks."

        evaluation = parse_evaluation(text, QUERY)

        assert evaluation.score == 0.4
        assert evaluation.approved is False
        assert evaluation.refined_query == "chapter 2 speech acts"

    def test_bare_json_inside_text(self) -> None:
        text = 'Verdict follows {"score": "0.6", "approved": "true", "reasoning": "ok"} end'

        evaluation = parse_evaluation(text, QUERY)

        assert evaluation.score == 0.6
        assert evaluation.approved is True

    def test_labelled_text(self) -> None:
        text = (
            "**SCORE**: 0.7\n"
            "**APPROVED**: false\n"
            "**REASONING**: Misses the performatives section\n"
            "**REFINED QUERY**: performatives in chapter 2\n"
        )

        evaluation = parse_evaluation(text, QUERY)

        assert evaluation.score == 0.7
        assert evaluation.approved is False
        assert evaluation.reasoning == "Misses the performatives section"
        assert evaluation.refined_query == "performatives in chapter 2"

    def test_score_clamped(self) -> None:
        assert parse_evaluation(_verdict(1.7, True), QUERY).score == 1.0
        assert parse_evaluation(_verdict(-0.2, False), QUERY).score == 0.0

    def test_refined_query_list_takes_first_nonempty(self) -> None:
        text = json.dumps({"score": 0.3, "approved": False, "refinedQuery": ["", "speech acts"]})
        assert parse_evaluation(text, QUERY).refined_query == "speech acts"

    def test_missing_fields_defaulted(self) -> None:
        evaluation = parse_evaluation('{"score": 0.8}', QUERY)

        assert evaluation.approved is False
        assert evaluation.reasoning == "No reasoning provided."
        assert evaluation.refined_query == QUERY

    def test_unparseable_raises(self) -> None:
        with pytest.raises(ParseError):
            parse_evaluation("Looks fine to me, approved.", QUERY)


class TestGenerateRefinedQuery:
    def test_short_query(self) -> None:
        assert generate_refined_query("pragmatics", 0.8) == "Detailed information about pragmatics"

    def test_chapter_query(self) -> None:
        assert generate_refined_query(QUERY, 0.8) == (
            f"{QUERY} including key concepts, examples, and main points"
        )

    def test_definition_query(self) -> None:
        query = "What is conversational implicature in pragmatics"
        assert generate_refined_query(query, 0.7) == f"{query} - explain in detail with examples"

    def test_low_score_overrides(self) -> None:
        assert generate_refined_query(QUERY, 0.3).startswith(
            "Please provide comprehensive information about"
        )


class TestCriticAgent:
    def test_approves_good_answer(self) -> None:
        critic = CriticAgent(MockLLM([_verdict(0.92, True)]), sleep=no_sleep)

        outcome, usage = critic.evaluate_with_usage(QUERY, "A thorough answer.", "context")

        assert isinstance(outcome, Ok)
        assert outcome.value.approved is True
        assert usage.total_tokens == 15

    def test_strict_mode_rejects_below_threshold(self) -> None:
        critic = CriticAgent(MockLLM([_verdict(0.7, True)]), quality_threshold=0.85)

        evaluation = critic.evaluate(QUERY, "An answer.", "context").value

        assert evaluation.approved is False
        assert evaluation.reasoning.endswith("(Strict mode: Score 0.7 below threshold 0.85)")
        assert evaluation.refined_query != QUERY
        assert evaluation.refined_query == generate_refined_query(QUERY, 0.7)

    def test_strict_mode_keeps_model_refinement(self) -> None:
        critic = CriticAgent(MockLLM([_verdict(0.5, False, "speech act theory")]))

        evaluation = critic.evaluate(QUERY, "An answer.", "context").value

        assert evaluation.refined_query == "speech act theory"

    def test_lenient_mode_trusts_model(self) -> None:
        critic = CriticAgent(MockLLM([_verdict(0.7, True)]), strict_mode=False)

        evaluation = critic.evaluate(QUERY, "An answer.", "context").value

        assert evaluation.approved is True
        assert "Strict mode" not in evaluation.reasoning

    def test_gateway_failure_defaults_to_approval(self) -> None:
        llm = MockLLM([RuntimeError("service down")])
        critic = CriticAgent(llm, max_retries=1, sleep=no_sleep)

        outcome, usage = critic.evaluate_with_usage(QUERY, "An answer.", "context")

        assert isinstance(outcome, Degraded)
        assert outcome.value.approved is True
        assert outcome.value.score == 0.5
        assert outcome.value.reasoning.startswith("Evaluation error:")
        assert outcome.value.reasoning.endswith("Defaulting to approval.")
        assert usage.total_tokens == 0
        assert len(llm.calls) == 2

    def test_unparseable_output_not_approved(self) -> None:
        critic = CriticAgent(MockLLM(["I think it is great."]))

        outcome = critic.evaluate(QUERY, "An answer.", "context")

        assert isinstance(outcome, Ok)
        assert outcome.value.approved is False
        assert outcome.value.score == 0.5
        assert outcome.value.refined_query == QUERY

    def test_sampling_parameters_passed(self) -> None:
        llm = MagicMock()
        llm.complete.return_value = Completion(text=_verdict(0.9, True))
        critic = CriticAgent(llm, temperature=0.1, max_tokens=256)

        critic.evaluate(QUERY, "An answer.", "context")

        kwargs = llm.complete.call_args[1]
        assert kwargs == {"temperature": 0.1, "max_tokens": 256}


class TestCriticPrompt:
    def test_includes_query_context_and_response(self) -> None:
        prompt = CriticAgent(MockLLM()).build_prompt(QUERY, "The answer.", "Some context")

        assert QUERY in prompt
        assert "Some context" in prompt
        assert "The answer." in prompt
        assert STRICT_INSTRUCTIONS in prompt

    def test_not_found_claim_adds_instructions(self) -> None:
        critic = CriticAgent(MockLLM(), strict_mode=False)

        plain = critic.build_prompt(QUERY, "Chapter 2 covers speech acts.", "ctx")
        claim = critic.build_prompt(QUERY, "The context does not mention chapter 2.", "ctx")

        assert NOT_FOUND_INSTRUCTIONS not in plain
        assert NOT_FOUND_INSTRUCTIONS in claim
        assert STRICT_INSTRUCTIONS not in plain

    def test_empty_context_placeholder(self) -> None:
        prompt = CriticAgent(MockLLM()).build_prompt(QUERY, "answer", "")
        assert "No context was retrieved." in prompt
