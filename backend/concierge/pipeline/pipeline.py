"""
Pipeline - An immutable, ordered composition of exactly two stages.

    PipelineInput -> [stage 1: extract] -> ExtractedRequest -> [stage 2: generate] -> RecommendationResult

Contracts are checked when the pipeline is BUILT, before any run:
- exactly two stages
- stage 1 input model is PipelineInput
- stage 1 output model IS stage 2 input model

A built pipeline holds no per-run state and can be run concurrently.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from concierge.models.recommendation import RecommendationResult
from concierge.models.request import PipelineInput
from concierge.pipeline.execution_record import new_run_id
from concierge.pipeline.stages import Stage, StageContext
from concierge.services.errors import InvalidInputError, PipelineContractError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pipeline:
    name: str
    stages: Tuple[Stage, Stage]
    description: str = ""

    def __post_init__(self):
        stages = tuple(self.stages)
        if len(stages) != 2:
            raise PipelineContractError(self.name, f"expected exactly 2 stages, got {len(stages)}")

        first, second = stages
        if first.input_model is not PipelineInput:
            raise PipelineContractError(
                self.name,
                f"stage '{first.name}' must accept PipelineInput, declares {first.input_model.__name__}"
            )
        if first.output_model is not second.input_model:
            raise PipelineContractError(
                self.name,
                f"stage '{first.name}' outputs {first.output_model.__name__} "
                f"but stage '{second.name}' expects {second.input_model.__name__}"
            )
        if not issubclass(second.output_model, RecommendationResult):
            raise PipelineContractError(
                self.name,
                f"stage '{second.name}' must output RecommendationResult, declares {second.output_model.__name__}"
            )
        object.__setattr__(self, "stages", stages)

    @classmethod
    def build(cls, name: str, stages: Sequence[Stage], description: str = "") -> "Pipeline":
        return cls(name=name, stages=tuple(stages), description=description)

    async def run(
        self,
        payload: Union[PipelineInput, Mapping[str, Any]],
        cancel_event: Optional[asyncio.Event] = None,
        run_id: Optional[str] = None,
    ) -> RecommendationResult:
        """
        Run both stages in order. Stage 2 starts only after stage 1 returned.

        Raises:
            InvalidInputError: payload has no usable query
        """
        data = self._validate_input(payload)
        context = StageContext(run_id=run_id or new_run_id(), cancel_event=cancel_event)
        start_time = time.monotonic()

        logger.info(f"[{context.run_id}] Pipeline {self.name} started")
        for stage in self.stages:
            data = await stage.run(data, context)
            if not isinstance(data, stage.output_model):
                raise TypeError(
                    f"Stage '{stage.name}' returned {type(data).__name__}, "
                    f"declared {stage.output_model.__name__}"
                )

        duration_ms = int((time.monotonic() - start_time) * 1000)
        logger.info(f"[{context.run_id}] Pipeline {self.name} completed in {duration_ms}ms")
        return data

    @staticmethod
    def _validate_input(payload: Union[PipelineInput, Mapping[str, Any]]) -> PipelineInput:
        if isinstance(payload, PipelineInput):
            return payload
        try:
            return PipelineInput.model_validate(payload)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid pipeline input: {e.errors()[0]['msg']}") from e
