import asyncio

import pytest

from concierge.models.recommendation import GenerationResult, RecommendationResult
from concierge.models.request import BookingRequest, VehicleRequest
from concierge.pipeline.pipeline import Pipeline
from concierge.pipeline.stages import ExtractionStage
from concierge.pipeline.workflows import (
    BookingOptionsStage,
    VehicleRecommendationStage,
    build_booking_pipeline,
    build_vehicle_pipeline,
)
from concierge.services.errors import InvalidInputError, PipelineContractError
from concierge.services.slot_extractor import extract_booking_request, extract_vehicle_request
from conftest import FakeCapability


def _prompt(capability):
    """Text of the single user message the capability received."""
    assert len(capability.calls) == 1
    messages = capability.calls[0]
    assert len(messages) == 1 and messages[0]["role"] == "user"
    return messages[0]["content"]


# ------------------------------------------------------------------
# CONSTRUCTION CONTRACTS
# ------------------------------------------------------------------

def test_pipeline_requires_two_stages(fake_capability):
    with pytest.raises(PipelineContractError):
        Pipeline.build("short", [ExtractionStage("extract", VehicleRequest, extract_vehicle_request)])


def test_pipeline_rejects_mismatched_stage_models(fake_capability):
    with pytest.raises(PipelineContractError) as exc_info:
        Pipeline.build("mismatch", [
            ExtractionStage("extract", VehicleRequest, extract_vehicle_request),
            BookingOptionsStage(fake_capability),
        ])
    assert "VehicleRequest" in str(exc_info.value)
    assert "BookingRequest" in str(exc_info.value)


def test_pipeline_first_stage_must_accept_pipeline_input(fake_capability):
    with pytest.raises(PipelineContractError):
        Pipeline.build("backwards", [
            VehicleRecommendationStage(fake_capability),
            VehicleRecommendationStage(fake_capability),
        ])


def test_built_pipelines_have_expected_stages(fake_capability):
    vehicle = build_vehicle_pipeline(fake_capability)
    booking = build_booking_pipeline(fake_capability)

    assert vehicle.name == "vehicle-workflow"
    assert [s.name for s in vehicle.stages] == ["analyze-requirements", "generate-recommendations"]
    assert booking.name == "booking-workflow"
    assert [s.name for s in booking.stages] == ["parse-booking-request", "generate-booking-options"]


def test_pipeline_is_immutable(fake_capability):
    pipeline = build_vehicle_pipeline(fake_capability)
    with pytest.raises(Exception):
        pipeline.name = "other"


# ------------------------------------------------------------------
# SUCCESSFUL RUNS
# ------------------------------------------------------------------

def test_booking_pipeline_feeds_extracted_slots_into_prompt():
    capability = FakeCapability(text="1. Hotel Lutetia ...")
    pipeline = build_booking_pipeline(capability)

    result = asyncio.run(pipeline.run({"query": "Book a hotel in Paris for 3 people on 12/25/2025"}))

    prompt = _prompt(capability)
    assert "Type: Hotel" in prompt
    assert "Location: Paris" in prompt
    assert "Date: 12/25/2025" in prompt
    assert "Guests: 3" in prompt
    assert "star rating, amenities, room types" in prompt
    assert '"Book a hotel in Paris for 3 people on 12/25/2025"' in prompt

    assert isinstance(result, RecommendationResult)
    assert result.recommendation == "1. Hotel Lutetia ..."
    assert result.details == "Type: Hotel | Guests: 3 | Location: Paris | Date: 12/25/2025"
    assert result.degraded is False
    assert len(result.options) == 1
    assert result.options[0].location == "Paris"
    assert isinstance(result.parsed_request, BookingRequest)


def test_booking_prompt_renders_absent_slots():
    capability = FakeCapability()
    pipeline = build_booking_pipeline(capability)

    result = asyncio.run(pipeline.run({"query": "Find me something nice"}))

    prompt = _prompt(capability)
    assert "Type: General" in prompt
    assert "Location: Not specified" in prompt
    assert "Date: Flexible" in prompt
    assert "Guests: Not specified" in prompt
    assert result.details == "Type: General"


def test_vehicle_pipeline_end_to_end():
    capability = FakeCapability(text="Top pick: Toyota RAV4")
    pipeline = build_vehicle_pipeline(capability)

    result = asyncio.run(pipeline.run({"query": "Recommend a cheap SUV for my family"}))

    prompt = _prompt(capability)
    assert "**Preferred Vehicle Type:** SUV" in prompt
    assert "**Primary Use Case:** Family transportation" in prompt
    assert "**Budget:** Budget-friendly (Under $30,000)" in prompt

    assert result.recommendation == "Top pick: Toyota RAV4"
    assert result.details == "Type: SUV | Use case: Family transportation | Budget: Budget-friendly (Under $30,000)"
    assert result.options[0].pros == ["Based on your specific needs"]

    payload = result.to_payload()
    assert set(payload) == {"options", "recommendation", "details", "parsedRequest", "degraded"}
    assert payload["parsedRequest"]["vehicleType"] == "SUV"
    assert payload["parsedRequest"]["originalQuery"] == "Recommend a cheap SUV for my family"


def test_vehicle_prompt_without_budget_is_flexible():
    capability = FakeCapability()
    asyncio.run(build_vehicle_pipeline(capability).run({"query": "Recommend an SUV"}))
    assert "**Budget:** Flexible / Not specified" in _prompt(capability)


def test_stage_two_starts_after_stage_one():
    seen = []

    def extractor(query):
        seen.append("extract")
        return extract_booking_request(query)

    capability = FakeCapability(on_call=lambda messages: seen.append("generate"))
    pipeline = Pipeline.build("ordered", [
        ExtractionStage("extract", BookingRequest, extractor),
        BookingOptionsStage(capability),
    ])

    asyncio.run(pipeline.run({"query": "Table for two tonight"}))

    assert seen == ["extract", "generate"]


def test_pipeline_instance_is_reusable_concurrently():
    capability = FakeCapability(delay=0.01)
    pipeline = build_booking_pipeline(capability)

    async def run_both():
        return await asyncio.gather(
            pipeline.run({"query": "Book a hotel in Rome"}),
            pipeline.run({"query": "Book a flight to Tokyo"}),
        )

    rome, tokyo = asyncio.run(run_both())

    assert rome.parsed_request.location == "Rome"
    assert tokyo.parsed_request.location == "Tokyo"
    assert len(capability.calls) == 2


# ------------------------------------------------------------------
# GENERATION FAILURES BECOME DEGRADED RESULTS
# ------------------------------------------------------------------

def test_generation_error_yields_degraded_vehicle_result():
    capability = FakeCapability(error=RuntimeError("backend unavailable"))
    pipeline = build_vehicle_pipeline(capability)

    result = asyncio.run(pipeline.run({"query": "Recommend a cheap SUV for my family"}))

    assert result.options == []
    assert result.degraded is True
    assert "backend unavailable" in result.recommendation
    assert "try again" in result.recommendation
    assert result.parsed_request.vehicle_type.value == "SUV"


def test_generation_error_yields_degraded_booking_result():
    capability = FakeCapability(error=RuntimeError("backend unavailable"))
    pipeline = build_booking_pipeline(capability)

    result = asyncio.run(pipeline.run({"query": "Book a hotel in Paris"}))

    assert result.options == []
    assert result.details == "Error occurred"
    assert "backend unavailable" in result.recommendation
    assert "try again" in result.recommendation


def test_generation_timeout_yields_degraded_result():
    capability = FakeCapability(delay=5)
    pipeline = build_booking_pipeline(capability, timeout=0.05)

    result = asyncio.run(pipeline.run({"query": "Book a hotel in Paris"}))

    assert result.degraded is True
    assert "within 0.05s" in result.recommendation


def test_cancel_event_aborts_generation():
    capability = FakeCapability(delay=5)
    pipeline = build_vehicle_pipeline(capability)

    async def run_cancelled():
        cancel_event = asyncio.Event()
        task = asyncio.ensure_future(pipeline.run({"query": "Recommend an SUV"}, cancel_event=cancel_event))
        await asyncio.sleep(0.01)
        cancel_event.set()
        return await asyncio.wait_for(task, timeout=2)

    result = asyncio.run(run_cancelled())

    assert result.degraded is True
    assert "cancelled" in result.recommendation


def test_fold_success_and_failure(fake_capability):
    from concierge.models.recommendation import GenerationFailure, GenerationResult
    from concierge.pipeline.stages import StageContext

    stage = VehicleRecommendationStage(fake_capability)
    request = extract_vehicle_request("Recommend an SUV")
    context = StageContext(run_id="run-test")

    ok = stage.fold(request, GenerationResult(text="Try the CR-V"), context)
    failed = stage.fold(request, GenerationFailure(error_type="LLMCallError", message="boom"), context)

    assert ok.recommendation == "Try the CR-V" and not ok.degraded
    assert failed.options == [] and failed.degraded
    assert "**Error:** boom" in failed.recommendation


# ------------------------------------------------------------------
# INPUT VALIDATION
# ------------------------------------------------------------------

@pytest.mark.parametrize("payload", [{"query": ""}, {"query": "   "}, {}, {"query": "ok", "extra": 1}])
def test_invalid_pipeline_input(payload, fake_capability):
    pipeline = build_vehicle_pipeline(fake_capability)
    with pytest.raises(InvalidInputError):
        asyncio.run(pipeline.run(payload))
    assert fake_capability.calls == []


def test_stage_returning_wrong_model_is_rejected(fake_capability):
    pipeline = Pipeline.build("liar", [
        ExtractionStage("extract", VehicleRequest, extract_booking_request),
        VehicleRecommendationStage(fake_capability),
    ])
    with pytest.raises(TypeError):
        asyncio.run(pipeline.run({"query": "Recommend an SUV"}))
    assert fake_capability.calls == []


@pytest.mark.parametrize("text", ["", "   \n"])
def test_blank_generation_yields_degraded_result(text):
    capability = FakeCapability(text=text)
    pipeline = build_vehicle_pipeline(capability)

    result = asyncio.run(pipeline.run({"query": "Recommend an SUV"}))

    assert result.degraded is True
    assert result.options == []
    assert "returned empty text" in result.recommendation


def test_query_markers_are_not_rewritten():
    capability = FakeCapability()
    pipeline = build_booking_pipeline(capability)
    query = "Book a hotel, my note: {type_specific_info} and {location}"

    asyncio.run(pipeline.run({"query": query}))

    prompt = _prompt(capability)
    assert f'- Request: "{query}"' in prompt
    assert "Location: Not specified" in prompt


class StubbornCapability(FakeCapability):
    """Ignores the first cancellation it receives."""

    async def generate(self, messages):
        self.calls.append(list(messages))
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            await asyncio.sleep(5)
        return GenerationResult(text=self.text)


def test_timeout_does_not_wait_for_a_capability_ignoring_cancellation(mocker):
    mocker.patch("concierge.pipeline.stages.CANCEL_SETTLE_SECONDS", 0.05)
    pipeline = build_booking_pipeline(StubbornCapability(), timeout=0.05)

    async def run_bounded():
        return await asyncio.wait_for(pipeline.run({"query": "Book a hotel in Paris"}), timeout=2)

    result = asyncio.run(run_bounded())

    assert result.degraded is True
    assert "within 0.05s" in result.recommendation
