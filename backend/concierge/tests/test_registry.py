import pytest

from concierge.pipeline.registry import CapabilityRegistry, get_registry, reset_registry
from concierge.pipeline.workflows import build_booking_pipeline, build_vehicle_pipeline
from concierge.services.errors import RegistryLockedError, TargetNotFoundError
from conftest import FakeCapability


@pytest.fixture
def fresh():
    return CapabilityRegistry()


def test_register_and_lookup(fresh, fake_capability):
    pipeline = build_vehicle_pipeline(fake_capability)
    fresh.register_pipeline("vehicle-workflow", pipeline)
    fresh.register_capability("vehicleAgent", fake_capability)

    assert fresh.lookup("vehicle-workflow") is pipeline
    assert fresh.lookup("vehicleAgent") is fake_capability
    assert fresh.get_pipeline("vehicle-workflow") is pipeline
    assert fresh.get_capability("vehicleAgent") is fake_capability


def test_lookup_missing_returns_none(fresh):
    assert fresh.lookup("travel-workflow") is None


def test_get_missing_raises_not_found(fresh, fake_capability):
    fresh.register_pipeline("booking-workflow", build_booking_pipeline(fake_capability))

    with pytest.raises(TargetNotFoundError) as exc_info:
        fresh.get_pipeline("travel-workflow")

    error = exc_info.value
    assert error.value == "travel-workflow"
    assert error.suggestions == ["booking-workflow"]
    assert error.metadata["kind"] == "pipeline"


def test_kinds_are_not_interchangeable(fresh, fake_capability):
    fresh.register_pipeline("vehicle-workflow", build_vehicle_pipeline(fake_capability))
    fresh.register_capability("vehicleAgent", fake_capability)

    with pytest.raises(TargetNotFoundError):
        fresh.get_capability("vehicle-workflow")
    with pytest.raises(TargetNotFoundError):
        fresh.get_pipeline("vehicleAgent")


def test_duplicate_name_rejected(fresh):
    fresh.register_capability("vehicleAgent", FakeCapability())
    with pytest.raises(RegistryLockedError):
        fresh.register_capability("vehicleAgent", FakeCapability())


def test_empty_name_rejected(fresh):
    with pytest.raises(RegistryLockedError):
        fresh.register_capability("", FakeCapability())


def test_register_after_seal_rejected(fresh):
    fresh.seal()
    with pytest.raises(RegistryLockedError):
        fresh.register_capability("late", FakeCapability())


def test_first_lookup_seals(fresh):
    assert not fresh.sealed
    fresh.lookup("anything")
    assert fresh.sealed
    with pytest.raises(RegistryLockedError):
        fresh.register_capability("late", FakeCapability())


def test_wrong_handle_types_rejected(fresh):
    with pytest.raises(TypeError):
        fresh.register_pipeline("vehicle-workflow", FakeCapability())
    with pytest.raises(TypeError):
        fresh.register_capability("vehicleAgent", object())


def test_name_listings(fresh, fake_capability):
    fresh.register_capability("vehicleAgent", fake_capability)
    fresh.register_pipeline("vehicle-workflow", build_vehicle_pipeline(fake_capability))

    assert fresh.names() == ["vehicleAgent", "vehicle-workflow"]
    assert fresh.pipeline_names() == ["vehicle-workflow"]
    assert fresh.capability_names() == ["vehicleAgent"]


def test_process_registry_is_shared_until_reset():
    reset_registry()
    try:
        assert get_registry() is get_registry()
        first = get_registry()
        reset_registry()
        assert get_registry() is not first
    finally:
        reset_registry()
