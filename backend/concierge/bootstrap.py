"""
Process initialization.

Builds the two domain agents and the two domain pipelines, registers them
in the Capability Registry exactly once and seals it. Everything that
serves requests (Dispatcher, RouterTools, RouterAgent) is built on top of
the sealed registry.

Usage:
    registry = initialize()
    router = build_router_agent(build_dispatcher(registry))
    reply = await router.respond("Book a table for two in Lisbon tonight")
"""

import logging
from typing import Callable, Optional

import anthropic

from concierge.logging_config import setup_global_color_logging
from concierge.pipeline.execution_store import ExecutionStore
from concierge.pipeline.registry import CapabilityRegistry, get_registry
from concierge.pipeline.workflows import build_booking_pipeline, build_vehicle_pipeline
from concierge.services.dispatcher import AgentTarget, Dispatcher, PipelineTarget, RouterTools
from concierge.services.llm_service import AnthropicCapability, GenerationCapability
from concierge.services.prompt_loader import load_prompt_template
from concierge.services.router_agent import RouterAgent

logger = logging.getLogger(__name__)

CapabilityFactory = Callable[[AgentTarget, str], GenerationCapability]

AGENT_INSTRUCTIONS = {
    AgentTarget.VEHICLE_AGENT: "vehicle_agent",
    AgentTarget.BOOKING_AGENT: "booking_agent",
}


def anthropic_capability(target: AgentTarget, instructions: str) -> GenerationCapability:
    return AnthropicCapability(target.value, instructions=instructions)


def initialize(
    capability_factory: Optional[CapabilityFactory] = None,
    registry: Optional[CapabilityRegistry] = None,
    configure_logging: bool = True,
) -> CapabilityRegistry:
    """
    Populate and seal the registry.

    Raises:
        RegistryLockedError: the registry was already initialized or read
    """
    if configure_logging:
        setup_global_color_logging()

    registry = registry or get_registry()
    factory = capability_factory or anthropic_capability

    agents = {
        target: factory(target, load_prompt_template(template))
        for target, template in AGENT_INSTRUCTIONS.items()
    }
    for target, agent in agents.items():
        registry.register_capability(target.value, agent)

    registry.register_pipeline(
        PipelineTarget.VEHICLE_WORKFLOW.value,
        build_vehicle_pipeline(agents[AgentTarget.VEHICLE_AGENT]),
    )
    registry.register_pipeline(
        PipelineTarget.BOOKING_WORKFLOW.value,
        build_booking_pipeline(agents[AgentTarget.BOOKING_AGENT]),
    )

    registry.seal()
    logger.info("Concierge initialized")
    return registry


def build_dispatcher(
    registry: Optional[CapabilityRegistry] = None,
    store: Optional[ExecutionStore] = None,
) -> Dispatcher:
    return Dispatcher(registry=registry, store=store)


def build_router_agent(
    dispatcher: Optional[Dispatcher] = None,
    client: Optional[anthropic.AsyncAnthropic] = None,
) -> RouterAgent:
    return RouterAgent(RouterTools(dispatcher or build_dispatcher()), client=client)
