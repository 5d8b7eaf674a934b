"""
Pipeline Stages

A stage is a named unit with declared input/output models:

    input_model -> run() -> output_model

Two kinds exist:
1. ExtractionStage: pure, synchronous work (never suspends). Turns
   PipelineInput into a domain ExtractedRequest.
2. GenerationStage: builds a prompt from the request, calls the generation
   capability ONCE, and folds the GenerationOutcome into a
   RecommendationResult. Generation failures, timeouts and cancellations
   become a degraded success; they never propagate.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Type

from pydantic import BaseModel

from concierge.config import GENERATION_TIMEOUT_SECONDS
from concierge.models.recommendation import (
    GenerationFailure,
    GenerationOutcome,
    GenerationResult,
    RecommendationResult,
)
from concierge.models.request import ExtractedRequest, PipelineInput
from concierge.services.llm_service import GenerationCapability, user_message

logger = logging.getLogger(__name__)

# Upper bound for an aborted generation call to acknowledge its cancellation
CANCEL_SETTLE_SECONDS = 1.0


@dataclass(frozen=True)
class StageContext:
    """Per-run context handed to every stage."""
    run_id: str
    cancel_event: Optional[asyncio.Event] = None


class Stage(ABC):
    """Base class for pipeline stages."""

    name: str = ""
    input_model: Type[BaseModel] = BaseModel
    output_model: Type[BaseModel] = BaseModel

    @abstractmethod
    async def run(self, data: BaseModel, context: StageContext) -> BaseModel:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}: {self.input_model.__name__} -> {self.output_model.__name__})"


# =============================================================================
# STAGE 1: EXTRACTION
# =============================================================================

class ExtractionStage(Stage):
    """Deterministic extraction: PipelineInput -> request_model."""

    input_model = PipelineInput

    def __init__(
        self,
        name: str,
        request_model: Type[ExtractedRequest],
        extractor: Callable[[str], ExtractedRequest],
    ):
        self.name = name
        self.output_model = request_model
        self._extractor = extractor

    async def run(self, data: PipelineInput, context: StageContext) -> ExtractedRequest:
        logger.info(f"[{context.run_id}] Stage {self.name} | Input: {data.query[:100]}")
        return self._extractor(data.query)


# =============================================================================
# STAGE 2: GENERATION
# =============================================================================

class GenerationStage(Stage):
    """
    request_model -> RecommendationResult via one generation call.

    Subclasses supply the domain-specific parts:
    - build_prompt(request): deterministic template interpolation
    - success_result(request, text): map generated text to a result
    - fallback_result(request, failure): degraded result for a failure
    """

    output_model = RecommendationResult

    def __init__(
        self,
        name: str,
        request_model: Type[ExtractedRequest],
        capability: GenerationCapability,
        timeout: Optional[float] = GENERATION_TIMEOUT_SECONDS,
    ):
        self.name = name
        self.input_model = request_model
        self.capability = capability
        self.timeout = timeout or None

    @abstractmethod
    def build_prompt(self, request: ExtractedRequest) -> str:
        ...

    @abstractmethod
    def success_result(self, request: ExtractedRequest, text: str) -> RecommendationResult:
        ...

    @abstractmethod
    def fallback_result(self, request: ExtractedRequest, failure: GenerationFailure) -> RecommendationResult:
        ...

    async def run(self, data: ExtractedRequest, context: StageContext) -> RecommendationResult:
        prompt = self.build_prompt(data)
        logger.info(f"[{context.run_id}] Stage {self.name} | Calling {self.capability.name}...")

        start_time = time.monotonic()
        outcome = await self.generate(prompt, context.cancel_event)
        duration_ms = int((time.monotonic() - start_time) * 1000)

        return self.fold(data, outcome, context, duration_ms)

    def fold(
        self,
        request: ExtractedRequest,
        outcome: GenerationOutcome,
        context: StageContext,
        duration_ms: int = 0,
    ) -> RecommendationResult:
        """Turn either arm of the outcome into a successful result."""
        if isinstance(outcome, GenerationResult):
            logger.info(f"[{context.run_id}] Stage {self.name} | AI response received in {duration_ms}ms")
            return self.success_result(request, outcome.text)

        logger.warning(
            f"[{context.run_id}] Stage {self.name} | Generation failed after {duration_ms}ms: "
            f"{outcome.error_type}: {outcome.message}"
        )
        return self.fallback_result(request, outcome)

    async def generate(self, prompt: str, cancel_event: Optional[asyncio.Event] = None) -> GenerationOutcome:
        """
        Invoke the capability once and return the outcome as a value.

        The call is aborted when cancel_event is set or the timeout expires.
        Cancellation of the caller's own task still propagates.
        """
        task = asyncio.ensure_future(self.capability.generate([user_message(prompt)]))
        waiters = {task}
        cancel_waiter = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(waiters, timeout=self.timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()
            if not task.done():
                task.cancel()

        if task not in done:
            # Let the aborted call settle before reporting
            await asyncio.wait({task}, timeout=CANCEL_SETTLE_SECONDS)
            if not task.done():
                logger.warning(f"{self.capability.name} did not stop within {CANCEL_SETTLE_SECONDS}s of being cancelled")
            if cancel_event is not None and cancel_event.is_set():
                return GenerationFailure(
                    error_type="GenerationCancelled",
                    message="The request was cancelled before a response was generated",
                    cancelled=True,
                )
            return GenerationFailure(
                error_type="LLMTimeoutError",
                message=f"No response from {self.capability.name} within {self.timeout}s",
            )

        if task.cancelled():
            return GenerationFailure(
                error_type="GenerationCancelled",
                message=f"{self.capability.name} call was cancelled",
                cancelled=True,
            )

        error = task.exception()
        if error is not None:
            return GenerationFailure(error_type=type(error).__name__, message=str(error) or type(error).__name__)

        result = task.result()
        if not isinstance(result, GenerationResult):
            result = GenerationResult(text=str(getattr(result, "text", result)))
        if not result.text or not result.text.strip():
            return GenerationFailure(
                error_type="EmptyResponseError",
                message=f"{self.capability.name} returned empty text",
            )
        return result
