"""
LLM Service - Generation capability adapter.

The routing core treats generation as a black box:

    generate(messages) -> GenerationResult(text)

This module defines that boundary (GenerationCapability) and the concrete
Anthropic-backed implementation used by the domain agents.

DESIGN PRINCIPLES:
- Explicit model configuration (no SDK defaults)
- Single verbatim retry on API failure (no prompt mutation)
- Hard fail only on TECHNICAL errors (API error, timeout, empty response)
- Callers decide what a failure means (stage 2 absorbs it)
"""

import logging
from typing import Optional, Protocol, Sequence, runtime_checkable

import anthropic

from concierge.config import ANTHROPIC_API_KEY, MAX_TOKENS, MODEL_ID, TEMPERATURE, TIMEOUT_SECONDS
from concierge.models.recommendation import GenerationResult

logger = logging.getLogger(__name__)

Message = dict  # {"role": "user" | "assistant", "content": str}


# =============================================================================
# EXCEPTIONS (Technical errors only)
# =============================================================================

class GenerationError(Exception):
    """Base exception for technical generation failures."""
    pass


class LLMCallError(GenerationError):
    """LLM API call failed."""
    pass


class LLMTimeoutError(GenerationError):
    """LLM call timed out."""
    pass


class EmptyResponseError(GenerationError):
    """LLM returned empty response."""
    pass


# =============================================================================
# CAPABILITY BOUNDARY
# =============================================================================

@runtime_checkable
class GenerationCapability(Protocol):
    """Anything that can turn a message list into text."""

    name: str

    async def generate(self, messages: Sequence[Message]) -> GenerationResult:
        ...


def user_message(content: str) -> Message:
    return {"role": "user", "content": content}


# =============================================================================
# ANTHROPIC IMPLEMENTATION
# =============================================================================

class AnthropicCapability:
    """
    Domain agent backed by the Anthropic Messages API.

    Usage:
        agent = AnthropicCapability("vehicleAgent", instructions=load_prompt_template("vehicle_agent"))
        result = await agent.generate([user_message("Best SUV for a family of five?")])
        print(result.text)
    """

    def __init__(
        self,
        name: str,
        instructions: Optional[str] = None,
        client: Optional[anthropic.AsyncAnthropic] = None,
        model: str = MODEL_ID,
        temperature: float = TEMPERATURE,
        max_tokens: int = MAX_TOKENS,
        retry_once: bool = True,
    ):
        self.name = name
        self.instructions = instructions
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.retry_once = retry_once
        self._client = client

    def _get_client(self) -> anthropic.AsyncAnthropic:
        """Lazy client creation so registration never needs credentials."""
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(
                api_key=ANTHROPIC_API_KEY,
                timeout=TIMEOUT_SECONDS)
        return self._client

    async def generate(self, messages: Sequence[Message]) -> GenerationResult:
        """
        Call Claude with explicit configuration.

        Raises:
            LLMCallError: API call failed
            LLMTimeoutError: Request timed out
            EmptyResponseError: Empty response received
        """
        client = self._get_client()
        request = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": list(messages),
        }
        if self.instructions:
            request["system"] = self.instructions

        attempt = 0
        max_attempts = 2 if self.retry_once else 1
        last_error: GenerationError | None = None

        while attempt < max_attempts:
            attempt += 1
            try:
                response = await client.messages.create(**request)
            except anthropic.APITimeoutError as e:
                last_error = LLMTimeoutError(f"LLM call timed out after {TIMEOUT_SECONDS}s")
                last_error.__cause__ = e
                logger.warning(f"[{self.name}] LLM timeout on attempt {attempt}/{max_attempts}")
                continue
            except anthropic.APIError as e:
                last_error = LLMCallError(f"LLM API error: {e}")
                last_error.__cause__ = e
                logger.warning(f"[{self.name}] LLM API error on attempt {attempt}/{max_attempts}: {e}")
                continue

            text = "".join(
                block.text for block in (response.content or [])
                if getattr(block, "type", None) == "text" and block.text
            )
            if not text:
                raise EmptyResponseError(f"{self.name} returned empty text")
            return GenerationResult(text=text)

        # All retries exhausted
        raise last_error  # type: ignore[misc]
