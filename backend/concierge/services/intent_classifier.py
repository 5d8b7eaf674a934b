"""
Intent Classifier - Deterministic keyword classification.

Maps free text to exactly one category of a closed vocabulary:
- Lower-case the text
- Walk the table in DECLARATION ORDER
- First category with any keyword contained in the text wins
- No match -> the table's default category

Two matching categories are never ambiguous: the earlier one wins.
No scoring, no stemming, no synonyms beyond the literal table. Keywords
are plain substrings ("ev" matches "every"); that is part of the contract.
"""

from dataclasses import dataclass
from typing import Generic, Tuple, TypeVar

from concierge.models.request import BookingType, UseCase, VehicleType

C = TypeVar("C")


@dataclass(frozen=True)
class KeywordTable(Generic[C]):
    """Ordered category -> keyword set table with a default category."""
    name: str
    entries: Tuple[Tuple[C, Tuple[str, ...]], ...]
    default: C

    def categories(self) -> list:
        return [category for category, _ in self.entries]


def classify(text: str, table: KeywordTable[C]) -> C:
    """
    Classify text against a keyword table.

    Total: always returns exactly one category of the table.
    """
    lowered = (text or "").lower()
    for category, keywords in table.entries:
        if any(keyword in lowered for keyword in keywords):
            return category
    return table.default


# =============================================================================
# DOMAIN TABLES (order is significant)
# =============================================================================

VEHICLE_TYPE_TABLE: KeywordTable[VehicleType] = KeywordTable(
    name="vehicle_type",
    entries=(
        (VehicleType.SUV, ("suv", "sport utility", "crossover", "compact suv")),
        (VehicleType.HATCHBACK, ("hatchback", "hatch", "hot hatch")),
        (VehicleType.SEDAN, ("sedan", "saloon", "compact car")),
        (VehicleType.COUPE, ("coupe", "sports car", "gt")),
        (VehicleType.TRUCK, ("truck", "pickup", "bakkie", "ute")),
        (VehicleType.MINIVAN, ("minivan", "mpv", "van", "people carrier")),
        (VehicleType.ELECTRIC, ("electric", "ev", "tesla", "battery")),
        (VehicleType.HYBRID, ("hybrid", "phev", "plug-in")),
        (VehicleType.LUXURY, ("luxury", "premium", "executive")),
    ),
    default=VehicleType.SEDAN,
)

BOOKING_TYPE_TABLE: KeywordTable[BookingType] = KeywordTable(
    name="booking_type",
    entries=(
        (BookingType.HOTEL, ("hotel", "accommodation", "stay", "room", "resort", "inn", "motel", "airbnb", "lodge")),
        (BookingType.RESTAURANT, ("restaurant", "dining", "dinner", "lunch", "breakfast", "cafe", "table", "eat", "food")),
        (BookingType.EVENT, ("event", "concert", "show", "theater", "theatre", "ticket", "match", "game", "movie", "cinema")),
        (BookingType.FLIGHT, ("flight", "airline", "plane", "air ticket", "fly", "airport")),
        (BookingType.GENERAL, ()),
    ),
    default=BookingType.GENERAL,
)

USE_CASE_TABLE: KeywordTable[UseCase] = KeywordTable(
    name="use_case",
    entries=(
        (UseCase.FAMILY, ("family", "kids", "children", "spacious", "room")),
        (UseCase.COMMUTING, ("commute", "work", "daily", "office", "city")),
        (UseCase.OFF_ROAD, ("off-road", "adventure", "outdoor", "4x4", "trail", "camping")),
        (UseCase.LUXURY_COMFORT, ("luxury", "premium", "comfort", "executive", "business")),
        (UseCase.FUEL_EFFICIENCY, ("fuel efficient", "economical", "mileage", "gas saver", "eco")),
        (UseCase.PERFORMANCE, ("fast", "speed", "performance", "sporty", "racing", "powerful")),
        (UseCase.TOWING, ("tow", "haul", "trailer", "cargo", "load")),
    ),
    default=UseCase.GENERAL_USE,
)


def classify_vehicle_type(text: str) -> VehicleType:
    return classify(text, VEHICLE_TYPE_TABLE)


def classify_booking_type(text: str) -> BookingType:
    return classify(text, BOOKING_TYPE_TABLE)


def classify_use_case(text: str) -> UseCase:
    return classify(text, USE_CASE_TABLE)
