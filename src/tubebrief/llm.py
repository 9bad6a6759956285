"""LLM integration via LiteLLM."""

import json
import logging
import os
import threading
from dataclasses import dataclass

import litellm

from tubebrief.config import settings
from tubebrief.models import TokenUsage

logger = logging.getLogger(__name__)

# Suppress LiteLLM's verbose logging
litellm.suppress_debug_info = True


class LLMError(Exception):
    """Raised when an LLM operation fails."""


@dataclass
class Completion:
    """Text of one completion plus its token accounting, when reported."""

    text: str
    usage: TokenUsage | None = None


class LLMClient:
    """Thin wrapper over LiteLLM.

    Constructed once at startup and injected wherever a model is needed.
    A bounded semaphore caps the number of in-flight provider calls
    across all request threads.
    """

    _KEY_TO_MODEL = {
        "OPENAI_API_KEY": "gpt-4o",
        "ANTHROPIC_API_KEY": "anthropic/claude-sonnet-4-20250514",
        "GOOGLE_API_KEY": "gemini/gemini-2.0-flash",
    }

    def __init__(
        self,
        model: str | None = None,
        vision_model: str | None = None,
        max_concurrent: int | None = None,
    ) -> None:
        """Initialize LLM client.

        Args:
            model: LiteLLM model string. If None, auto-detects from
                   available API keys or falls back to settings.default_model.
            vision_model: Model used for image descriptions. Defaults to
                   settings.vision_model when an OpenAI key is present,
                   otherwise to the text model.
            max_concurrent: Upper bound on simultaneous provider calls.
        """
        self._model = model or self._detect_model()
        self._vision_model = vision_model or (
            settings.vision_model if os.environ.get("OPENAI_API_KEY") else self._model
        )
        self._slots = threading.BoundedSemaphore(max_concurrent or settings.max_concurrent_llm_calls)

    @property
    def model(self) -> str:
        return self._model

    @property
    def vision_model(self) -> str:
        return self._vision_model

    @property
    def available(self) -> bool:
        """Check if any LLM provider is configured."""
        return any(os.environ.get(key) for key in self._KEY_TO_MODEL)

    def complete(
        self,
        messages: list[dict],
        *,
        model: str | None = None,
        json_mode: bool = False,
        temperature: float = 0.2,
        max_tokens: int = 4096,
    ) -> Completion:
        """Send a chat completion request to the configured provider.

        Raises:
            LLMError: If no key is configured, the call fails, or the
                provider returns an empty or malformed message.
        """
        if not self.available:
            raise LLMError(
                "No LLM API key found. Set one of: "
                + ", ".join(self._KEY_TO_MODEL.keys())
            )
        model = model or self._model
        kwargs = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        with self._slots:
            try:
                response = litellm.completion(**kwargs)
            except Exception as e:
                raise LLMError(f"LLM request failed ({model}): {e}") from e

        try:
            content = response.choices[0].message.content
        except (IndexError, AttributeError, TypeError) as e:
            raise LLMError(f"Malformed response from {model}: {e}") from e
        if not isinstance(content, str) or not content.strip():
            raise LLMError(f"Empty response from {model}")
        return Completion(text=content.strip(), usage=self._usage(response, model))

    def _usage(self, response, model: str) -> TokenUsage | None:
        try:
            usage = TokenUsage.from_response_usage(getattr(response, "usage", None), model=model)
        except (ValueError, TypeError) as e:
            logger.debug("No usable token usage in response: %s", e)
            return None
        try:
            total = float(litellm.completion_cost(completion_response=response))
        except Exception as e:
            logger.debug("Cost lookup failed for %s: %s", model, e)
            return usage
        usage.total_cost = total
        if usage.total_tokens:
            # split proportionally when the provider only prices the whole call
            usage.prompt_cost = total * usage.prompt_tokens / usage.total_tokens
            usage.completion_cost = total - usage.prompt_cost
        return usage

    def _detect_model(self) -> str:
        """Auto-detect the best available model from environment keys."""
        for key, model in self._KEY_TO_MODEL.items():
            if os.environ.get(key):
                logger.info("Auto-detected LLM provider: %s → %s", key, model)
                return model
        return settings.default_model


def parse_json_object(text: str):
    """Parse a JSON document from a model response, tolerating markdown fences.

    Raises:
        LLMError: If the text is not valid JSON.
    """
    body = text.strip()
    if body.startswith("```"):
        body = body.split("\n", 1)[-1].rsplit("```", 1)[0].strip()
    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise LLMError(f"Model returned invalid JSON: {e}. Response: {text[:100]}") from e
