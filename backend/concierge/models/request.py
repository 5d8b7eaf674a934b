"""
Request Model - Typed requests extracted from free-text queries.

This module defines the structured representation of a user's query after
the deterministic extractor has run. It is the contract between stage 1
(extraction) and stage 2 (generation) of every domain pipeline.

Responsibilities:
- Define the closed category vocabularies (enums)
- Define the pipeline input and the extracted request records
- Enforce structural constraints via validation
- NO extraction logic
- NO LLM logic
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ConciergeModel(BaseModel):
    """Base for every public record: camelCase on the wire, snake_case in code."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        use_enum_values=False,
    )

    def to_payload(self) -> dict:
        """JSON-serializable dict using the public (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# CATEGORIES
# =============================================================================

class VehicleType(str, Enum):
    """Vehicle body/powertrain category. Default: SEDAN."""
    SUV = "SUV"
    HATCHBACK = "Hatchback"
    SEDAN = "Sedan"
    COUPE = "Coupe"
    TRUCK = "Truck"
    MINIVAN = "Minivan"
    ELECTRIC = "Electric"
    HYBRID = "Hybrid"
    LUXURY = "Luxury"


class BookingType(str, Enum):
    """Reservation category. Default: GENERAL."""
    HOTEL = "Hotel"
    RESTAURANT = "Restaurant"
    EVENT = "Event"
    FLIGHT = "Flight"
    GENERAL = "General"


class UseCase(str, Enum):
    """Primary use of a vehicle. Default: GENERAL_USE."""
    FAMILY = "Family transportation"
    COMMUTING = "Daily commuting"
    OFF_ROAD = "Off-road and adventure"
    LUXURY_COMFORT = "Luxury and comfort"
    FUEL_EFFICIENCY = "Fuel efficiency"
    PERFORMANCE = "Performance"
    TOWING = "Towing and hauling"
    GENERAL_USE = "General use"


# =============================================================================
# PIPELINE INPUT
# =============================================================================

class PipelineInput(ConciergeModel):
    """Input shared by every domain pipeline: {"query": str}."""

    query: str = Field(..., description="The user's free-text query")

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Query is required")
        return value

    model_config = ConfigDict(frozen=True)


# =============================================================================
# EXTRACTED REQUESTS
# =============================================================================

class ExtractedRequest(ConciergeModel):
    """
    Slots extracted from one query.

    Every slot is independently optional: absence is a valid terminal state
    (the prompt renders it as "Not specified" / "Flexible"), not an error.
    Built once per query and immutable afterwards.
    """
    location: Optional[str] = Field(default=None, description="Location for the request")
    date: Optional[str] = Field(default=None, description="Date as written by the user")
    guests: Optional[int] = Field(default=None, ge=0, description="Number of guests / party size")
    budget: Optional[str] = Field(default=None, description="Budget band or 'Around <price>'")
    use_case: Optional[str] = Field(default=None, description="Primary use case")
    preferences: Optional[str] = Field(default=None, description="Free-text preferences (echo of the query)")
    original_query: str = Field(..., min_length=1, description="Original user query for context")

    model_config = ConfigDict(frozen=True)


class VehicleRequest(ExtractedRequest):
    """
    Vehicle requirements.

    Example:
        "Recommend a cheap SUV for my family" ->
        VehicleRequest(
            vehicle_type=VehicleType.SUV,
            use_case="Family transportation",
            budget="Budget-friendly (Under $30,000)",
        )
    """
    vehicle_type: VehicleType = Field(default=VehicleType.SEDAN, description="Type of vehicle")


class BookingRequest(ExtractedRequest):
    """
    Booking details.

    Example:
        "Book a hotel in Paris for 3 people on 12/25/2025" ->
        BookingRequest(
            booking_type=BookingType.HOTEL,
            location="Paris",
            date="12/25/2025",
            guests=3,
        )
    """
    booking_type: BookingType = Field(default=BookingType.GENERAL, description="Type of booking")
