"""Hosted text-generation client for the Director and script generator.

OpenRouterClient speaks the OpenAI chat-completions API (OpenRouter is
compatible with the openai SDK). generate_with_fallback() walks a fixed
ladder of models, moving to the next model only when the current one is
rate-limited or unavailable; any other failure propagates.
"""

import json
import logging
import re

import openai
from openai import OpenAI

logger = logging.getLogger(__name__)


OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
RETRYABLE_STATUSES = {429, 503}


class ModelUnavailableError(Exception):
    """A model is rate-limited (429) or unavailable (503); try the next one."""

    def __init__(self, model: str, status: int | None = None):
        super().__init__(f"Model {model} unavailable (status {status})")
        self.model = model
        self.status = status


class OpenRouterClient:
    """Single-prompt text generation against an OpenAI-compatible endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str = OPENROUTER_BASE_URL,
        client: OpenAI | None = None,
        temperature: float = 0.4,
        max_tokens: int = 2000,
    ):
        self.client = client or OpenAI(base_url=base_url, api_key=api_key)
        self.temperature = temperature
        self.max_tokens = max_tokens

    def generate(self, model: str, prompt: str) -> str:
        """Completion text for prompt.

        Raises:
            ModelUnavailableError: Rate limit or service unavailable.
            openai.OpenAIError: Any other API failure.
        """
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.RateLimitError as e:
            raise ModelUnavailableError(model, 429) from e
        except openai.APIStatusError as e:
            if e.status_code in RETRYABLE_STATUSES:
                raise ModelUnavailableError(model, e.status_code) from e
            raise
        return response.choices[0].message.content or ""


def generate_with_fallback(llm, models: list[str], prompt: str) -> str:
    """Try each model in order; return the first successful completion.

    llm is anything with a generate(model, prompt) -> str method.

    Raises:
        ModelUnavailableError: Every model was rate-limited/unavailable.
        ValueError: models is empty.
    """
    if not models:
        raise ValueError("No models configured")
    last_error = None
    for model in models:
        logger.info("Trying model: %s", model)
        try:
            text = llm.generate(model, prompt)
        except ModelUnavailableError as e:
            logger.warning("Model %s failed with status %s", model, e.status)
            last_error = e
            continue
        logger.info("Success with model: %s", model)
        return text
    raise last_error


_FENCED_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_BRACES_RE = re.compile(r"\{[\s\S]*\}")


def _reject_constant(name: str):
    raise ValueError(f"Non-finite number {name} in JSON")


def extract_json(text: str) -> dict | None:
    """Pull a JSON object out of free-form model output.

    Tries a fenced code block first, then the widest {...} span.
    Returns None when neither parses to an object.
    """
    if not text:
        return None
    candidates = []
    fenced = _FENCED_RE.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    braces = _BRACES_RE.search(text)
    if braces:
        candidates.append(braces.group(0))

    for candidate in candidates:
        try:
            data = json.loads(candidate, parse_constant=_reject_constant)
        except ValueError:
            continue
        if isinstance(data, dict):
            return data
    return None
