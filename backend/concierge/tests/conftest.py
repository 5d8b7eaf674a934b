import asyncio
import sys
from pathlib import Path

import pytest

# Add backend directory to sys.path to allow imports from concierge
backend_path = Path(__file__).parent.parent.parent.resolve()
sys.path.append(str(backend_path))

from concierge.bootstrap import initialize
from concierge.models.recommendation import GenerationResult
from concierge.pipeline.execution_store import ExecutionStore
from concierge.pipeline.registry import CapabilityRegistry
from concierge.services.dispatcher import Dispatcher


class FakeCapability:
    """
    Stand-in generation capability.

    Records every message list it receives. Behaviour:
    - text: returned as GenerationResult
    - error: raised instead
    - delay: seconds to sleep before answering
    - on_call: callback(messages) run before answering
    """

    def __init__(self, name="fakeAgent", text="Here are some great options.", error=None, delay=0.0, on_call=None):
        self.name = name
        self.text = text
        self.error = error
        self.delay = delay
        self.on_call = on_call
        self.calls = []

    async def generate(self, messages):
        self.calls.append(list(messages))
        if self.on_call is not None:
            self.on_call(messages)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return GenerationResult(text=self.text)


@pytest.fixture
def fake_capability():
    return FakeCapability()


@pytest.fixture
def store():
    return ExecutionStore(redis_url=None)


@pytest.fixture
def agents():
    """One fake per agent target, keyed by registry name."""
    return {}


@pytest.fixture
def registry(agents):
    def factory(target, instructions):
        agent = FakeCapability(name=target.value, text=f"{target.value} says hello")
        agent.instructions = instructions
        agents[target.value] = agent
        return agent

    return initialize(capability_factory=factory, registry=CapabilityRegistry(), configure_logging=False)


@pytest.fixture
def dispatcher(registry, store):
    return Dispatcher(registry=registry, store=store)
