"""LiteLLM client wrapper with retry, streaming and API key validation.

All embedding and completion calls in codebrain route through this module.
LiteLLM's built-in retry is used (num_retries=3, exponential backoff).
API key presence is validated at startup before any work begins.
"""

from __future__ import annotations

import os
from collections.abc import Iterator

import litellm

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "google": "GOOGLE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "together_ai": "TOGETHERAI_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    env_var = _PROVIDER_ENV.get(provider)

    if env_var is None:
        return  # No key required (e.g. ollama)

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


def complete(
    model: str,
    messages: list[dict],
    max_tokens: int = 2048,
    temperature: float = 0.0,
    num_retries: int = 3,
) -> str:
    """Call litellm.completion() with retry/backoff. Returns content string.

    Args:
        model: LiteLLM model string (provider/model format).
        messages: OpenAI-style message list.
        max_tokens: Maximum output tokens.
        temperature: Sampling temperature (0 = deterministic).
        num_retries: Number of retries on transient errors (exponential backoff).

    Returns:
        The text content of the first choice.

    Raises:
        litellm.exceptions.APIError: On persistent API failure after retries.
    """
    response = litellm.completion(
        model=model,
        messages=messages,
        max_tokens=max_tokens,
        temperature=temperature,
        num_retries=num_retries,
    )
    return response.choices[0].message.content or ""


def complete_stream(
    model: str,
    messages: list[dict],
    max_tokens: int = 2048,
    temperature: float = 0.2,
    num_retries: int = 3,
) -> Iterator[str]:
    """Stream a completion, yielding non-empty text deltas as they arrive."""
    response = litellm.completion(
        model=model,
        messages=messages,
        max_tokens=max_tokens,
        temperature=temperature,
        num_retries=num_retries,
        stream=True,
    )
    for chunk in response:
        if not chunk.choices:
            continue
        delta = chunk.choices[0].delta.content
        if delta:
            yield delta


def embed(model: str, text: str, num_retries: int = 3) -> list[float]:
    """Call litellm.embedding() with retry/backoff. Returns embedding vector.

    Newlines are flattened to spaces first; some providers embed them poorly.

    Args:
        model: LiteLLM embedding model string (provider/model format).
        text: Text to embed.
        num_retries: Number of retries on transient errors.

    Returns:
        Embedding as a list of floats.
    """
    response = litellm.embedding(
        model=model,
        input=[text.replace("\n", " ")],
        num_retries=num_retries,
    )
    return response.data[0]["embedding"]


class ModelGateway:
    """The embedding and completion models one codebrain process talks to.

    Every component takes a gateway instead of calling LiteLLM directly, so
    tests can hand in a fake with the same three methods.
    """

    def __init__(
        self,
        embedding_model: str,
        generation_model: str,
        summary_model: str | None = None,
        task_model: str | None = None,
        dimensions: int = 1536,
    ) -> None:
        self.embedding_model = embedding_model
        self.generation_model = generation_model
        self.summary_model = summary_model or generation_model
        self.task_model = task_model or generation_model
        self.dimensions = dimensions

    @classmethod
    def from_config(cls, cfg) -> ModelGateway:
        """Build a gateway from a loaded ``BrainConfig``."""
        return cls(
            embedding_model=cfg.embedding.model,
            generation_model=cfg.generation.model,
            summary_model=cfg.generation.summary_model,
            task_model=cfg.generation.task_model,
            dimensions=cfg.embedding.dimensions,
        )

    def embed(self, text: str) -> list[float]:
        vector = embed(self.embedding_model, text)
        if len(vector) != self.dimensions:
            raise ValueError(
                f"Embedding model '{self.embedding_model}' returned {len(vector)} "
                f"dimensions, expected {self.dimensions}"
            )
        return vector

    def complete(self, messages: list[dict], model: str | None = None, max_tokens: int = 2048) -> str:
        return complete(model or self.generation_model, messages, max_tokens=max_tokens)

    def complete_stream(self, messages: list[dict], model: str | None = None) -> Iterator[str]:
        return complete_stream(model or self.generation_model, messages)
