"""
Capability Registry - process-wide lookup of pipelines and generation capabilities.

Two-phase lifecycle:
1. init:  register_pipeline() / register_capability(), single-threaded
2. serve: lookup() / get_pipeline() / get_capability(), concurrent reads

The registry is sealed by seal() or implicitly by the first lookup.
Registering after that raises RegistryLockedError, so reads never race
with writes and need no lock.
"""

import logging
from typing import Dict, List, Optional, Union

from concierge.pipeline.pipeline import Pipeline
from concierge.services.errors import RegistryLockedError, TargetNotFoundError
from concierge.services.llm_service import GenerationCapability

logger = logging.getLogger(__name__)

Handle = Union[Pipeline, GenerationCapability]


class CapabilityRegistry:

    def __init__(self):
        self._entries: Dict[str, Handle] = {}
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    # -------------------------------------------------------------------------
    # init phase
    # -------------------------------------------------------------------------

    def _register(self, name: str, handle: Handle) -> None:
        if self._sealed:
            raise RegistryLockedError(name, "registry is sealed")
        if not name:
            raise RegistryLockedError(name, "name must be non-empty")
        if name in self._entries:
            raise RegistryLockedError(name, "name already registered")
        self._entries[name] = handle

    def register_pipeline(self, name: str, pipeline: Pipeline) -> None:
        if not isinstance(pipeline, Pipeline):
            raise TypeError(f"Expected Pipeline for '{name}', got {type(pipeline).__name__}")
        self._register(name, pipeline)
        logger.info(f"Registered pipeline '{name}'")

    def register_capability(self, name: str, capability: GenerationCapability) -> None:
        if not isinstance(capability, GenerationCapability):
            raise TypeError(f"Expected GenerationCapability for '{name}', got {type(capability).__name__}")
        self._register(name, capability)
        logger.info(f"Registered capability '{name}'")

    def seal(self) -> None:
        if not self._sealed:
            self._sealed = True
            logger.info(f"Registry sealed with {len(self._entries)} entries: {sorted(self._entries)}")

    # -------------------------------------------------------------------------
    # serve phase
    # -------------------------------------------------------------------------

    def lookup(self, name: str) -> Optional[Handle]:
        """Return the handle registered under name, or None."""
        self.seal()
        return self._entries.get(name)

    def names(self) -> List[str]:
        return list(self._entries)

    def pipeline_names(self) -> List[str]:
        return [name for name, handle in self._entries.items() if isinstance(handle, Pipeline)]

    def capability_names(self) -> List[str]:
        return [name for name, handle in self._entries.items() if not isinstance(handle, Pipeline)]

    def get_pipeline(self, name: str) -> Pipeline:
        """Raises TargetNotFoundError unless name is a registered pipeline."""
        handle = self.lookup(name)
        if not isinstance(handle, Pipeline):
            raise TargetNotFoundError(name, kind="pipeline", available=self.pipeline_names())
        return handle

    def get_capability(self, name: str) -> GenerationCapability:
        """Raises TargetNotFoundError unless name is a registered capability."""
        handle = self.lookup(name)
        if handle is None or isinstance(handle, Pipeline):
            raise TargetNotFoundError(name, kind="agent", available=self.capability_names())
        return handle


# =============================================================================
# PROCESS-WIDE INSTANCE
# =============================================================================

_registry: Optional[CapabilityRegistry] = None


def get_registry() -> CapabilityRegistry:
    global _registry
    if _registry is None:
        _registry = CapabilityRegistry()
    return _registry


def reset_registry() -> None:
    """Drop the process-wide registry. Only for test isolation."""
    global _registry
    _registry = None
