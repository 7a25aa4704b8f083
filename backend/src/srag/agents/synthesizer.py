import logging
import time
from typing import Callable, Optional

from srag.adapters import BaseLLM
from srag.adapters.utils import call_with_backoff
from srag.errors import TransientGatewayError
from srag.models import Completion, Degraded, Ok, Outcome
from .prompts import NO_CONTEXT_TEXT, SYNTHESIS_PROMPT

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = (
    "I'm sorry, but I was unable to generate a response to your query due to "
    "a technical issue. Please try again later."
)


class SynthesizerAgent:
    """Turns retrieved context into an answer via the generation gateway."""

    def __init__(
        self,
        llm: BaseLLM,
        temperature: float = 0.7,
        max_tokens: Optional[int] = 1024,
        prompt_template: str = SYNTHESIS_PROMPT,
        max_retries: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.prompt_template = prompt_template
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.sleep = sleep

    def build_prompt(self, context: str) -> str:
        return self.prompt_template.format(context=context or NO_CONTEXT_TEXT)

    def synthesize(self, query: str, context: str) -> Outcome[Completion]:
        """Generate an answer for ``query`` from ``context``.

        Returns:
            Ok(Completion) on success, or Degraded with an apologetic
            placeholder when the gateway keeps failing.
        """
        logger.info(f"Synthesizing response ({len(context)} context chars)")
        try:
            completion = call_with_backoff(
                "generation",
                self.llm.complete,
                self.build_prompt(context),
                query,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                max_retries=self.max_retries,
                base_delay=self.base_delay,
                sleep=self.sleep,
            )
        except TransientGatewayError as e:
            logger.error(f"Synthesis failed: {e}")
            return Degraded(Completion(text=FALLBACK_RESPONSE), reason=str(e))

        logger.debug(f"Synthesized {len(completion.text)} chars")
        return Ok(completion)
