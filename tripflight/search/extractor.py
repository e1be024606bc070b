"""Turn one raw flight-search response into FlightItinerary candidates.

The response is mapped onto the typed ``_Raw*`` dataclasses below with dacite; a missing field or
shape mismatch fails the whole response. Only the first journey and the first policy of every
itinerary entry are used.
"""
import logging
from dataclasses import dataclass, field
from typing import Any

import dacite

from ..errors import ExtractionError
from ..models import FlightItinerary, FlightLeg


def _to_camel_case(key: str) -> str:
    first, *rest = key.split('_')
    return first + ''.join(part.title() for part in rest)


_DACITE_CONFIG = dacite.Config(convert_key=_to_camel_case, cast=[int, float])


@dataclass(slots=True)
class _RawPoint:
    airport_code: str
    city_code: str


@dataclass(slots=True)
class _RawFlightInfo:
    airline_code: str
    flight_no: str


@dataclass(slots=True)
class _RawSection:
    depart_point: _RawPoint
    arrive_point: _RawPoint
    depart_date_time: str
    arrive_date_time: str
    flight_info: _RawFlightInfo
    duration: int


@dataclass(slots=True)
class _RawJourney:
    duration: int
    trans_section_list: list[_RawSection]


@dataclass(slots=True)
class _RawPrice:
    total_price: float


@dataclass(slots=True)
class _RawPolicy:
    policy_id: str
    price: _RawPrice


@dataclass(slots=True)
class _RawItinerary:
    journey_list: list[_RawJourney]
    policies: list[_RawPolicy]


@dataclass(slots=True)
class _RawBasicInfo:
    record_count: int
    product_id: str


@dataclass(slots=True)
class _RawSearchResponse:
    basic_info: _RawBasicInfo
    itinerary_list: list[_RawItinerary] = field(default_factory=list)


def _to_leg(section: _RawSection) -> FlightLeg:
    return FlightLeg(
        departure_city=section.depart_point.city_code,
        departure_airport=section.depart_point.airport_code,
        departure_time=section.depart_date_time,
        arrival_city=section.arrive_point.city_code,
        arrival_airport=section.arrive_point.airport_code,
        arrival_time=section.arrive_date_time,
        carrier=section.flight_info.airline_code,
        flight_number=section.flight_info.flight_no,
        duration_minutes=section.duration,
    )


def _to_itinerary(entry: _RawItinerary, product_id: str) -> FlightItinerary:
    if not entry.journey_list or not entry.policies:
        raise ExtractionError("itinerary entry without journeys or policies")
    journey = entry.journey_list[0]
    policy = entry.policies[0]
    if not journey.trans_section_list:
        raise ExtractionError("journey without flight sections")
    legs = tuple(_to_leg(section) for section in journey.trans_section_list)
    return FlightItinerary(
        legs=legs,
        total_price=policy.price.total_price,
        total_duration_minutes=journey.duration,
        leg_count=len(legs),
        origin=legs[0].departure_city,
        destination=legs[-1].arrival_city,
        product_id=product_id,
        policy_id=policy.policy_id,
    )


def parse_search_response(payload: dict[str, Any]) -> list[FlightItinerary]:
    """Strict variant of :func:`extract_itineraries`: raises ExtractionError on any shape problem."""
    if not isinstance(payload, dict):
        raise ExtractionError(f"expected a JSON object, got {type(payload).__name__}")
    try:
        response = dacite.from_dict(data_class=_RawSearchResponse, data=payload, config=_DACITE_CONFIG)
    except (dacite.DaciteError, TypeError, ValueError) as exc:
        raise ExtractionError(str(exc)) from exc

    record_count = response.basic_info.record_count
    if record_count <= 1:
        logging.warning("Search response holds only %s record(s)", record_count)

    return [_to_itinerary(entry, response.basic_info.product_id) for entry in response.itinerary_list]


def extract_itineraries(payload: dict[str, Any] | None) -> list[FlightItinerary] | None:
    """Return all candidates in site order, [] for an empty result page, or None when extraction failed."""
    if payload is None:
        return None
    try:
        return parse_search_response(payload)
    except ExtractionError:
        logging.exception("Failed to extract flight data")
        return None
