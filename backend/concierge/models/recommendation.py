"""
Recommendation Model - Stage 2 output contract and the generation boundary.

GenerationOutcome is the explicit result of one generation call: either a
GenerationResult or a GenerationFailure value. Stage 2 folds it into a
RecommendationResult, so a failed generation still yields a successful
(degraded) pipeline result.
"""

from dataclasses import dataclass
from typing import List, Optional, Union

from pydantic import Field

from concierge.models.request import BookingRequest, ConciergeModel, ExtractedRequest, VehicleRequest


# =============================================================================
# GENERATION BOUNDARY
# =============================================================================

@dataclass(frozen=True)
class GenerationResult:
    """Raw text returned by a generation capability."""
    text: str


@dataclass(frozen=True)
class GenerationFailure:
    """
    A generation call that did not produce text.

    Returned (never raised) by the generation stage. cancelled is True when
    the caller's cancellation signal aborted the call.
    """
    error_type: str
    message: str
    cancelled: bool = False


GenerationOutcome = Union[GenerationResult, GenerationFailure]


# =============================================================================
# STAGE 2 OUTPUT
# =============================================================================

class RecommendationOption(ConciergeModel):
    """One structured option in a recommendation."""
    name: str
    type: str
    location: str
    availability: str
    price: str
    rating: Optional[str] = None
    features: List[str] = Field(default_factory=list)

    # Vehicle-only details
    fuel_efficiency: Optional[str] = None
    pros: Optional[List[str]] = None
    cons: Optional[List[str]] = None


class RecommendationResult(ConciergeModel):
    """
    Final output of a domain pipeline.

    Both variants are successes:
    - normal: options describe the generated recommendation
    - degraded: options == [] and recommendation explains the failure
    """
    options: List[RecommendationOption] = Field(default_factory=list)
    recommendation: str = Field(..., min_length=1)
    details: str
    parsed_request: Optional[Union[VehicleRequest, BookingRequest, ExtractedRequest]] = None
    degraded: bool = False
