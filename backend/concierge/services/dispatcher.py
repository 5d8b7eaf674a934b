"""
Dispatcher & Router Tools

RESPONSIBILITIES:
1. Reject empty queries (before any lookup)
2. Resolve the target through the Capability Registry (stop if missing)
3. Open an ExecutionRecord with a fresh run id
4. Run the pipeline end-to-end, or call the domain agent directly
5. Finalize the ExecutionRecord exactly once (success | failed)

Two dispatch shapes:
- dispatch_pipeline(): full two-stage pipeline -> RecommendationResult
- call_agent(): one verbatim user message to the agent -> raw text

RouterTools exposes both as the four named tools an upstream
conversational router can invoke. It is the only place where a tool name
arrives as an arbitrary string.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ConfigDict, Field, ValidationError

from concierge.models.recommendation import RecommendationResult
from concierge.models.request import ConciergeModel
from concierge.pipeline.execution_record import ExecutionRecord, RunKind, RunStatus
from concierge.pipeline.execution_store import ExecutionStore, get_execution_store
from concierge.pipeline.registry import CapabilityRegistry, get_registry
from concierge.services.errors import DispatchError, InvalidInputError, TargetNotFoundError
from concierge.services.llm_service import user_message

logger = logging.getLogger(__name__)


# =============================================================================
# TARGET IDENTIFIERS
# =============================================================================

class PipelineTarget(str, Enum):
    VEHICLE_WORKFLOW = "vehicle-workflow"
    BOOKING_WORKFLOW = "booking-workflow"


class AgentTarget(str, Enum):
    VEHICLE_AGENT = "vehicleAgent"
    BOOKING_AGENT = "bookingAgent"


class ToolId(str, Enum):
    EXECUTE_VEHICLE_WORKFLOW = "execute-vehicle-workflow"
    EXECUTE_BOOKING_WORKFLOW = "execute-booking-workflow"
    CALL_VEHICLE_AGENT = "call-vehicle-agent"
    CALL_BOOKING_AGENT = "call-booking-agent"


def _target_name(target: Union[str, Enum]) -> str:
    return target.value if isinstance(target, Enum) else target


def _require_query(query: Optional[str]) -> str:
    if not isinstance(query, str) or not query.strip():
        raise InvalidInputError()
    return query


# =============================================================================
# DISPATCHER
# =============================================================================

@dataclass(frozen=True)
class DispatchResult:
    record: ExecutionRecord
    result: RecommendationResult


class Dispatcher:
    """
    Executes dispatches against a sealed registry.

    Holds no per-dispatch state, so any number of dispatches may be in
    flight on the same instance.
    """

    def __init__(self, registry: Optional[CapabilityRegistry] = None, store: Optional[ExecutionStore] = None):
        self.registry = registry or get_registry()
        self.store = store or get_execution_store()

    async def dispatch_pipeline(
        self,
        target: Union[PipelineTarget, str],
        query: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> DispatchResult:
        """
        Run the full pipeline registered under target.

        Raises:
            InvalidInputError: query empty or blank (nothing looked up)
            TargetNotFoundError: no pipeline registered under target
            DispatchError: the pipeline run itself failed
        """
        query = _require_query(query)
        name = _target_name(target)
        pipeline = self.registry.get_pipeline(name)

        record = ExecutionRecord.start(name, RunKind.PIPELINE)
        logger.info(f"[{record.run_id}] Starting workflow '{name}' | Query: {query[:100]}")

        try:
            await self.store.save(record)
            result = await pipeline.run({"query": query}, cancel_event=cancel_event, run_id=record.run_id)
        except asyncio.CancelledError:
            await self._finish(record, RunStatus.FAILED, "cancelled")
            raise
        except Exception as e:
            logger.error(f"[{record.run_id}] Workflow '{name}' failed: {e}")
            await self._finish(record, RunStatus.FAILED, f"{type(e).__name__}: {e}")
            raise DispatchError(name, e, run_id=record.run_id) from e

        await self._finish(record, RunStatus.SUCCESS)
        logger.info(
            f"[{record.run_id}] Workflow '{name}' completed in {record.duration_ms}ms "
            f"(degraded={result.degraded})"
        )
        return DispatchResult(record=record, result=result)

    async def call_agent(self, target: Union[AgentTarget, str], query: str) -> str:
        """
        Send the query verbatim as a single user message to an agent.

        Raises:
            InvalidInputError: query empty or blank (nothing looked up)
            TargetNotFoundError: no capability registered under target
            DispatchError: the agent call failed
        """
        query = _require_query(query)
        name = _target_name(target)
        agent = self.registry.get_capability(name)

        record = ExecutionRecord.start(name, RunKind.AGENT)
        logger.info(f"[{record.run_id}] Calling agent '{name}' | Query: {query[:100]}")

        try:
            await self.store.save(record)
            response = await agent.generate([user_message(query)])
        except asyncio.CancelledError:
            await self._finish(record, RunStatus.FAILED, "cancelled")
            raise
        except Exception as e:
            logger.error(f"[{record.run_id}] Agent '{name}' failed: {e}")
            await self._finish(record, RunStatus.FAILED, f"{type(e).__name__}: {e}")
            raise DispatchError(name, e, run_id=record.run_id) from e

        await self._finish(record, RunStatus.SUCCESS)
        return response.text

    async def _finish(self, record: ExecutionRecord, status: RunStatus, error: Optional[str] = None) -> None:
        record.finalize(status, error)
        await self.store.save(record)


# =============================================================================
# ROUTER TOOLS
# =============================================================================

class ToolInput(ConciergeModel):
    query: str = Field(..., description="The user's query, verbatim")

    model_config = ConfigDict(extra="ignore")


@dataclass(frozen=True)
class ToolSpec:
    tool_id: ToolId
    description: str
    target: Union[PipelineTarget, AgentTarget]

    @property
    def runs_pipeline(self) -> bool:
        return isinstance(self.target, PipelineTarget)


TOOL_SPECS: Dict[ToolId, ToolSpec] = {
    ToolId.EXECUTE_VEHICLE_WORKFLOW: ToolSpec(
        ToolId.EXECUTE_VEHICLE_WORKFLOW,
        "Executes the vehicle workflow for vehicle-related queries "
        "(recommendations, comparisons, vehicle selection, car prices).",
        PipelineTarget.VEHICLE_WORKFLOW,
    ),
    ToolId.EXECUTE_BOOKING_WORKFLOW: ToolSpec(
        ToolId.EXECUTE_BOOKING_WORKFLOW,
        "Executes the booking workflow for booking-related queries "
        "(hotels, restaurants, events, flights, reservations).",
        PipelineTarget.BOOKING_WORKFLOW,
    ),
    ToolId.CALL_VEHICLE_AGENT: ToolSpec(
        ToolId.CALL_VEHICLE_AGENT,
        "Calls the vehicle agent directly for quick queries.",
        AgentTarget.VEHICLE_AGENT,
    ),
    ToolId.CALL_BOOKING_AGENT: ToolSpec(
        ToolId.CALL_BOOKING_AGENT,
        "Calls the booking agent directly for quick queries.",
        AgentTarget.BOOKING_AGENT,
    ),
}


class RouterTools:
    """
    The four router tools over a Dispatcher.

    Usage:
        tools = RouterTools(dispatcher)
        output = await tools.invoke("execute-booking-workflow", {"query": "Book a hotel in Rome"})
        output["result"]["recommendation"]
    """

    def __init__(self, dispatcher: Dispatcher):
        self.dispatcher = dispatcher

    def definitions(self) -> List[Dict[str, Any]]:
        """Tool descriptors in the Anthropic tool-use format."""
        schema = ToolInput.model_json_schema(by_alias=True)
        return [
            {
                "name": spec.tool_id.value,
                "description": spec.description,
                "input_schema": {
                    "type": "object",
                    "properties": schema["properties"],
                    "required": schema.get("required", []),
                },
            }
            for spec in TOOL_SPECS.values()
        ]

    async def invoke(self, tool_id: str, arguments: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Run one tool.

        Returns:
            {"result": <payload>} for workflow tools
            {"response": <text>} for agent tools

        Raises:
            InvalidInputError: missing or blank query
            TargetNotFoundError: unknown tool id or unregistered target
            DispatchError: the workflow run failed
        """
        try:
            query = ToolInput.model_validate(arguments or {}).query
        except ValidationError as e:
            raise InvalidInputError(f"Invalid tool input: {e.errors()[0]['msg']}") from e
        query = _require_query(query)

        try:
            spec = TOOL_SPECS[ToolId(tool_id)]
        except ValueError:
            raise TargetNotFoundError(tool_id, kind="tool", available=[t.value for t in ToolId]) from None

        logger.info(f"[TOOL] {spec.tool_id.value} | Query: {query[:100]}")
        if spec.runs_pipeline:
            dispatched = await self.dispatcher.dispatch_pipeline(spec.target, query)
            return {"result": dispatched.result.to_payload()}

        response = await self.dispatcher.call_agent(spec.target, query)
        return {"response": response}
