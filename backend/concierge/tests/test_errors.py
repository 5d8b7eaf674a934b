import pytest

from concierge.services.errors import (
    ConciergeErrorCode,
    DispatchError,
    InvalidInputError,
    TargetNotFoundError,
    format_error_response,
)
from concierge.services.prompt_loader import load_prompt_template, render_prompt


def test_invalid_input_defaults():
    error = InvalidInputError()
    assert error.message == "Query is required"
    assert error.to_dict()["error_code"] == ConciergeErrorCode.INVALID_INPUT.value
    assert error.to_dict()["field"] == "query"


def test_target_not_found_lists_registered_names():
    error = TargetNotFoundError("travel-workflow", kind="pipeline", available=["vehicle-workflow", "booking-workflow"])

    assert str(error) == "Pipeline 'travel-workflow' not found. Registered: vehicle-workflow, booking-workflow"
    assert error.suggestions == ["vehicle-workflow", "booking-workflow"]


def test_dispatch_error_keeps_cause():
    cause = KeyError("stage")
    error = DispatchError("vehicle-workflow", cause, run_id="run-1")

    assert error.cause is cause
    assert error.metadata["cause_type"] == "KeyError"
    assert error.metadata["run_id"] == "run-1"


def test_format_error_response():
    response = format_error_response(InvalidInputError())
    assert response["success"] is False
    assert response["error"]["error_type"] == "InvalidInputError"


def test_render_prompt_replaces_only_known_markers():
    rendered = render_prompt("Hi {name}, keep {this} and {{braces}}", {"name": "Ana"})
    assert rendered == "Hi Ana, keep {this} and {{braces}}"


def test_missing_prompt_template():
    with pytest.raises(FileNotFoundError):
        load_prompt_template("no_such_template")


@pytest.mark.parametrize("name", ["vehicle_recommendation", "booking_options", "vehicle_agent", "booking_agent", "router_agent"])
def test_bundled_templates_load(name):
    assert load_prompt_template(name).strip()


def test_render_prompt_does_not_rescan_substituted_values():
    rendered = render_prompt("A {x} B {y}", {"x": "{y}", "y": "Z"})
    assert rendered == "A {y} B Z"
