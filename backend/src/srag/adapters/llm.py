import os
from typing import Any, Optional

from openai import OpenAI

from srag.adapters.base import BaseLLM, _system_user_messages
from srag.adapters.utils import create_session_with_pooling
from srag.models.completion import Completion, Usage

DEFAULT_TEMPERATURE = 0.7
DEFAULT_TIMEOUT = 60.0
GROQ_BASE_URL = "https://api.groq.com/openai/v1"


class OpenAILLM(BaseLLM):
    """OpenAI LLM provider."""

    api_key_env = "OPENAI_API_KEY"
    default_base_url: Optional[str] = None

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: Optional[int] = None,
        timeout: float = DEFAULT_TIMEOUT,
        **kwargs: Any,
    ):
        super().__init__(model, **kwargs)
        api_key = kwargs.pop("api_key", None) or os.environ.get(self.api_key_env)
        base_url = kwargs.pop("base_url", None) or self.default_base_url

        self.client = OpenAI(
            api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0
        )
        self.temperature = temperature
        self.max_tokens = max_tokens

    @property
    def supports_streaming(self) -> bool:
        return True

    def _get_completion_params(
        self, messages: list[dict[str, str]], **kwargs: Any
    ) -> dict[str, Any]:
        """Build parameters for chat completion."""
        return {
            "model": self.model,
            "messages": messages,
            "temperature": kwargs.get("temperature", self.temperature),
            "max_tokens": kwargs.get("max_tokens", self.max_tokens),
        }

    def generate(self, prompt: str, **kwargs: Any) -> str:
        params = self._get_completion_params(
            [{"role": "user", "content": prompt}], **kwargs
        )
        response = self.client.chat.completions.create(**params)
        return response.choices[0].message.content or ""

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        params = self._get_completion_params(messages, **kwargs)
        response = self.client.chat.completions.create(**params)
        return response.choices[0].message.content or ""

    def complete(
        self, system_prompt: str, user_message: str, **kwargs: Any
    ) -> Completion:
        params = self._get_completion_params(
            _system_user_messages(system_prompt, user_message), **kwargs
        )
        response = self.client.chat.completions.create(**params)
        usage = response.usage
        return Completion(
            text=response.choices[0].message.content or "",
            usage=Usage(
                prompt_tokens=usage.prompt_tokens,
                completion_tokens=usage.completion_tokens,
                total_tokens=usage.total_tokens,
            )
            if usage
            else Usage(),
        )


class GroqLLM(OpenAILLM):
    """Groq-hosted models through Groq's OpenAI-compatible endpoint."""

    api_key_env = "GROQ_API_KEY"
    default_base_url = GROQ_BASE_URL

    def __init__(self, model: str = "llama3-8b-8192", **kwargs: Any):
        super().__init__(model, **kwargs)

    @property
    def supports_streaming(self) -> bool:
        return False


class OllamaLLM(BaseLLM):
    """Ollama local LLM provider with connection pooling."""

    def __init__(
        self,
        model: str = "llama3",
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: Optional[int] = None,
        base_url: str = "http://localhost:11434",
        timeout: float = DEFAULT_TIMEOUT * 2,
        **kwargs: Any,
    ):
        super().__init__(model, **kwargs)
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.session = create_session_with_pooling()

    @property
    def supports_streaming(self) -> bool:
        return False

    def _build_payload(self, **kwargs: Any) -> dict[str, Any]:
        """Build request payload for Ollama API."""
        payload = {
            "model": self.model,
            "temperature": kwargs.get("temperature", self.temperature),
            "stream": False,
        }
        max_tokens = kwargs.get("max_tokens", self.max_tokens)
        if max_tokens:
            payload["options"] = {"num_predict": max_tokens}
        return payload

    def _post_chat(self, messages: list[dict[str, str]], **kwargs: Any) -> dict[str, Any]:
        payload = self._build_payload(**kwargs)
        payload["messages"] = messages

        response = self.session.post(
            f"{self.base_url}/api/chat",
            json=payload,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def generate(self, prompt: str, **kwargs: Any) -> str:
        payload = self._build_payload(**kwargs)
        payload["prompt"] = prompt

        response = self.session.post(
            f"{self.base_url}/api/generate",
            json=payload,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()["response"]

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        return self._post_chat(messages, **kwargs)["message"]["content"]

    def complete(
        self, system_prompt: str, user_message: str, **kwargs: Any
    ) -> Completion:
        data = self._post_chat(
            _system_user_messages(system_prompt, user_message), **kwargs
        )
        prompt_tokens = data.get("prompt_eval_count", 0)
        completion_tokens = data.get("eval_count", 0)
        return Completion(
            text=data["message"]["content"],
            usage=Usage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )
