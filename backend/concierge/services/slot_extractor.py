"""
Slot Extractor - Deterministic slot filling from free text.

Each slot (location, date, guests, budget) is resolved INDEPENDENTLY by an
ordered ladder of SlotRule entries:
- Rules are tried left to right
- The first rule whose pattern matches AND whose converter yields a value wins
- A match that converts to None is treated as no match (next rule is tried)
- Every rule failing leaves the slot absent

Extraction is total: it never raises. Absence is a valid terminal state.

The ladders are plain data so each rule can be unit tested on its own.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Sequence, TypeVar

from concierge.models.request import BookingRequest, VehicleRequest
from concierge.services.errors import InvalidInputError
from concierge.services.intent_classifier import (
    classify_booking_type,
    classify_use_case,
    classify_vehicle_type,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# RULE MACHINERY
# =============================================================================

@dataclass(frozen=True)
class SlotRule(Generic[T]):
    """
    One rung of a slot ladder.

    match_original: search the text as typed (case matters) instead of the
    lower-cased text.
    """
    name: str
    pattern: "re.Pattern[str]"
    convert: Callable[["re.Match[str]"], Optional[T]]
    match_original: bool = False

    def apply(self, text: str) -> Optional[T]:
        subject = text if self.match_original else text.lower()
        match = self.pattern.search(subject)
        if match is None:
            return None
        return self.convert(match)


def resolve(rules: Sequence[SlotRule[T]], text: str) -> Optional[T]:
    """Return the value of the first rule that produces one."""
    for rule in rules:
        value = rule.apply(text)
        if value is not None:
            return value
    return None


# =============================================================================
# LOCATION
# =============================================================================

# Compared case-insensitively against the whole matched phrase only
LOCATION_STOPLIST = frozenset({
    "the", "for", "with", "and", "best", "good", "nice", "great", "living", "staying",
})

_CAPITALIZED_PHRASE = r"([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)*)"


def _location(match: "re.Match[str]") -> Optional[str]:
    phrase = match.group(1).strip()
    if len(phrase) < 3 or phrase.lower() in LOCATION_STOPLIST:
        return None
    return phrase


LOCATION_RULES: Sequence[SlotRule[str]] = (
    SlotRule(
        name="preposition_phrase",
        pattern=re.compile(r"(?i:in|at|near|to|for)\s+" + _CAPITALIZED_PHRASE),
        convert=_location,
        match_original=True,
    ),
    SlotRule(
        name="phrase_domain_noun",
        pattern=re.compile(_CAPITALIZED_PHRASE + r"\s+(?i:hotel|restaurant|flight|airport)"),
        convert=_location,
        match_original=True,
    ),
)


# =============================================================================
# DATE
# =============================================================================

def _first_group(match: "re.Match[str]") -> Optional[str]:
    return match.group(1) or match.group(0)


DATE_RULES: Sequence[SlotRule[str]] = (
    SlotRule(
        name="numeric_date",
        pattern=re.compile(r"(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})"),
        convert=_first_group,
    ),
    SlotRule(
        name="relative_day",
        pattern=re.compile(r"(today|tomorrow|tonight)"),
        convert=_first_group,
    ),
    SlotRule(
        name="next_period",
        pattern=re.compile(
            r"(next\s+(?:week|month|monday|tuesday|wednesday|thursday|friday|saturday|sunday))"
        ),
        convert=_first_group,
    ),
)


# =============================================================================
# GUESTS
# =============================================================================

WORD_TO_NUMBER = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12,
}


def _guest_count(match: "re.Match[str]") -> Optional[int]:
    token = match.group(1).lower()
    if token in WORD_TO_NUMBER:
        return WORD_TO_NUMBER[token]
    try:
        return int(token)
    except ValueError:
        return None


GUEST_RULES: Sequence[SlotRule[int]] = (
    SlotRule(
        name="number_party_noun",
        pattern=re.compile(r"(\d+)\s*(?:people|guests|persons|pax|members|adults)"),
        convert=_guest_count,
    ),
    SlotRule(
        name="for_with_number",
        pattern=re.compile(r"(?:for|with)\s*(\d+)"),
        convert=_guest_count,
    ),
    SlotRule(
        name="number_word",
        pattern=re.compile(
            r"\b(" + "|".join(WORD_TO_NUMBER) + r")\b\s*(?:people|guests|persons|pax|members)?"
        ),
        convert=_guest_count,
    ),
)


# =============================================================================
# BUDGET
# =============================================================================

BUDGET_FRIENDLY = "Budget-friendly (Under $30,000)"
BUDGET_PREMIUM = "Premium ($50,000+)"
BUDGET_MID_RANGE = "Mid-range ($30,000 - $50,000)"


def _band(label: str) -> Callable[["re.Match[str]"], str]:
    return lambda _match: label


BUDGET_BAND_RULES: Sequence[SlotRule[str]] = (
    SlotRule(
        name="budget_friendly",
        pattern=re.compile(r"budget|cheap|affordable|under \d+|less than|inexpensive"),
        convert=_band(BUDGET_FRIENDLY),
    ),
    SlotRule(
        name="premium",
        pattern=re.compile(r"premium|luxury|expensive|high.?end|top.?of"),
        convert=_band(BUDGET_PREMIUM),
    ),
    SlotRule(
        name="mid_range",
        pattern=re.compile(r"mid.?range|moderate|average|reasonable"),
        convert=_band(BUDGET_MID_RANGE),
    ),
)

# A literal price always overrides the band
PRICE_RULES: Sequence[SlotRule[str]] = (
    SlotRule(
        name="price_token",
        pattern=re.compile(r"(\$?\d{1,3}[,\s]?\d{3}|\d+k)"),
        convert=lambda match: f"Around {match.group(0)}",
    ),
)


# =============================================================================
# PUBLIC INTERFACE
# =============================================================================

@dataclass(frozen=True)
class ExtractedSlots:
    location: Optional[str] = None
    date: Optional[str] = None
    guests: Optional[int] = None
    budget: Optional[str] = None


def extract_location(text: str) -> Optional[str]:
    return resolve(LOCATION_RULES, text)


def extract_date(text: str) -> Optional[str]:
    return resolve(DATE_RULES, text)


def extract_guests(text: str) -> Optional[int]:
    return resolve(GUEST_RULES, text)


def extract_budget(text: str) -> Optional[str]:
    band = resolve(BUDGET_BAND_RULES, text)
    price = resolve(PRICE_RULES, text)
    return price or band


def extract_slots(text: str) -> ExtractedSlots:
    """Fill every slot independently. Never raises."""
    text = text or ""
    return ExtractedSlots(
        location=extract_location(text),
        date=extract_date(text),
        guests=extract_guests(text),
        budget=extract_budget(text),
    )


def _require_query(query: Optional[str]) -> str:
    if query is None or not query.strip():
        raise InvalidInputError()
    return query


def extract_vehicle_request(query: str) -> VehicleRequest:
    """
    Build the vehicle requirements for a query.

    Raises:
        InvalidInputError: query missing or blank
    """
    query = _require_query(query)
    slots = extract_slots(query)
    request = VehicleRequest(
        vehicle_type=classify_vehicle_type(query),
        use_case=classify_use_case(query).value,
        budget=slots.budget,
        preferences=query,
        original_query=query,
    )
    logger.info(
        f"Vehicle requirements: type={request.vehicle_type.value}, "
        f"use_case={request.use_case}, budget={request.budget or 'N/A'}"
    )
    return request


def extract_booking_request(query: str) -> BookingRequest:
    """
    Build the booking details for a query.

    Raises:
        InvalidInputError: query missing or blank
    """
    query = _require_query(query)
    slots = extract_slots(query)
    request = BookingRequest(
        booking_type=classify_booking_type(query),
        location=slots.location,
        date=slots.date,
        guests=slots.guests,
        preferences=query,
        original_query=query,
    )
    logger.info(
        f"Booking request: type={request.booking_type.value}, location={request.location or 'N/A'}, "
        f"date={request.date or 'N/A'}, guests={request.guests or 'N/A'}"
    )
    return request
