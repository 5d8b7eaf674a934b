"""
Domain workflows: vehicle advice and booking advice.

Each workflow is a two-stage Pipeline:

    vehicle-workflow:  analyze-requirements   -> generate-recommendations
    booking-workflow:  parse-booking-request  -> generate-booking-options
"""

from typing import Dict, Optional

from concierge.config import GENERATION_TIMEOUT_SECONDS
from concierge.models.recommendation import GenerationFailure, RecommendationOption, RecommendationResult
from concierge.models.request import BookingRequest, BookingType, VehicleRequest
from concierge.pipeline.pipeline import Pipeline
from concierge.pipeline.stages import ExtractionStage, GenerationStage
from concierge.services.llm_service import GenerationCapability
from concierge.services.prompt_loader import load_prompt_template, render_prompt
from concierge.services.slot_extractor import extract_booking_request, extract_vehicle_request

NOT_SPECIFIED = "Not specified"
FLEXIBLE = "Flexible"


# =============================================================================
# VEHICLE
# =============================================================================

class VehicleRecommendationStage(GenerationStage):

    def __init__(self, capability: GenerationCapability, timeout: Optional[float] = GENERATION_TIMEOUT_SECONDS):
        super().__init__("generate-recommendations", VehicleRequest, capability, timeout)
        self.template = load_prompt_template("vehicle_recommendation")

    def build_prompt(self, request: VehicleRequest) -> str:
        return render_prompt(self.template, {
            "vehicle_type": request.vehicle_type.value,
            "use_case": request.use_case or NOT_SPECIFIED,
            "budget": request.budget or f"{FLEXIBLE} / {NOT_SPECIFIED}",
            "original_query": request.original_query,
        })

    @staticmethod
    def details(request: VehicleRequest) -> str:
        parts = [
            f"Type: {request.vehicle_type.value}",
            f"Use case: {request.use_case}" if request.use_case else None,
            f"Budget: {request.budget}" if request.budget else None,
        ]
        return " | ".join(part for part in parts if part)

    def success_result(self, request: VehicleRequest, text: str) -> RecommendationResult:
        return RecommendationResult(
            options=[
                RecommendationOption(
                    name="See detailed recommendations below",
                    type=request.vehicle_type.value,
                    location="Various",
                    availability="Check with local dealers",
                    price=request.budget or "Varies by model",
                    features=["Tailored to your requirements"],
                    fuel_efficiency="See details in recommendation",
                    pros=["Based on your specific needs"],
                    cons=["Compare options carefully"],
                ),
            ],
            recommendation=text,
            details=self.details(request),
            parsed_request=request,
        )

    def fallback_result(self, request: VehicleRequest, failure: GenerationFailure) -> RecommendationResult:
        recommendation = (
            "I apologize, but I encountered an issue generating vehicle recommendations.\n\n"
            f"**Error:** {failure.message}\n\n"
            "**Suggestions:**\n"
            "- Please try again with a more specific query\n"
            "- Include details like budget, vehicle type, and intended use\n"
            '- Example: "Recommend an SUV for a family of 4, budget around $40,000"'
        )
        return RecommendationResult(
            options=[],
            recommendation=recommendation,
            details=self.details(request),
            parsed_request=request,
            degraded=True,
        )


def build_vehicle_pipeline(capability: GenerationCapability, timeout: Optional[float] = GENERATION_TIMEOUT_SECONDS) -> Pipeline:
    return Pipeline.build(
        "vehicle-workflow",
        [
            ExtractionStage("analyze-requirements", VehicleRequest, extract_vehicle_request),
            VehicleRecommendationStage(capability, timeout),
        ],
        description="Analyzes vehicle requirements and generates recommendations",
    )


# =============================================================================
# BOOKING
# =============================================================================

TYPE_SPECIFIC_INFO: Dict[BookingType, str] = {
    BookingType.HOTEL: "Include: star rating, amenities, room types",
    BookingType.RESTAURANT: "Include: cuisine type, price range, ambiance",
    BookingType.EVENT: "Include: venue details, seating, timing",
    BookingType.FLIGHT: "Include: airlines, times, layovers",
    BookingType.GENERAL: "Include all relevant details",
}


class BookingOptionsStage(GenerationStage):

    def __init__(self, capability: GenerationCapability, timeout: Optional[float] = GENERATION_TIMEOUT_SECONDS):
        super().__init__("generate-booking-options", BookingRequest, capability, timeout)
        self.template = load_prompt_template("booking_options")

    def build_prompt(self, request: BookingRequest) -> str:
        return render_prompt(self.template, {
            "booking_type": request.booking_type.value,
            "location": request.location or NOT_SPECIFIED,
            "date": request.date or FLEXIBLE,
            "guests": request.guests if request.guests is not None else NOT_SPECIFIED,
            "original_query": request.original_query,
            "type_specific_info": TYPE_SPECIFIC_INFO[request.booking_type],
        })

    @staticmethod
    def details(request: BookingRequest) -> str:
        parts = [
            f"Type: {request.booking_type.value}",
            f"Guests: {request.guests}" if request.guests else None,
            f"Location: {request.location}" if request.location else None,
            f"Date: {request.date}" if request.date else None,
        ]
        return " | ".join(part for part in parts if part)

    def success_result(self, request: BookingRequest, text: str) -> RecommendationResult:
        return RecommendationResult(
            options=[
                RecommendationOption(
                    name="See recommendations below",
                    type=request.booking_type.value,
                    location=request.location or "Various",
                    availability="Check details",
                    price="Varies",
                    rating="See below",
                    features=["Tailored to request"],
                ),
            ],
            recommendation=text,
            details=self.details(request),
            parsed_request=request,
        )

    def fallback_result(self, request: BookingRequest, failure: GenerationFailure) -> RecommendationResult:
        recommendation = (
            "I apologize, but I couldn't generate booking options right now.\n\n"
            f"**Error:** {failure.message}\n\n"
            "**Suggestions:**\n"
            "- Please try again in a moment\n"
            "- Rephrase the request and include the location, date and number of guests\n"
            '- Example: "Book a hotel in Paris for 2 people next friday"'
        )
        return RecommendationResult(
            options=[],
            recommendation=recommendation,
            details="Error occurred",
            parsed_request=request,
            degraded=True,
        )


def build_booking_pipeline(capability: GenerationCapability, timeout: Optional[float] = GENERATION_TIMEOUT_SECONDS) -> Pipeline:
    return Pipeline.build(
        "booking-workflow",
        [
            ExtractionStage("parse-booking-request", BookingRequest, extract_booking_request),
            BookingOptionsStage(capability, timeout),
        ],
        description="Parses booking details and generates booking options",
    )
