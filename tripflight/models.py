from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


class CabinClass(str, Enum):
    ECONOMY = "Economy"
    BUSINESS = "Business"
    FIRST = "First"

    @property
    def site_code(self) -> str:
        return {"Economy": "y", "Business": "c", "First": "f"}[self.value]


class RoutePattern(str, Enum):
    DIRECT = "DIRECT_ROUTE"
    ALTERNATIVE = "ALTERNATIVE_ROUTE"


@dataclass(frozen=True, slots=True)
class FlightLeg:
    """One physical flight segment as reported by the search response.

    *_city fields hold city codes (used to chain legs), *_airport fields airport codes.
    Times are kept as the ISO-8601 strings the site sends.
    """
    departure_city: str
    departure_airport: str
    departure_time: str
    arrival_city: str
    arrival_airport: str
    arrival_time: str
    carrier: str
    flight_number: str
    duration_minutes: int

    def to_record(self) -> dict[str, Any]:
        return {
            "departure_airport": self.departure_airport,
            "departure_time": self.departure_time,
            "arrival_airport": self.arrival_airport,
            "arrival_time": self.arrival_time,
            "carrier": self.carrier,
            "flight_number": self.flight_number,
            "duration_minutes": self.duration_minutes,
        }


@dataclass(frozen=True, slots=True)
class FlightItinerary:
    """Priced offer for one segment of travel: chronological legs plus the aggregates the site reports.

    product_id / policy_id are the opaque tokens the site needs to reference this offer in the
    next-journey query.
    """
    legs: tuple[FlightLeg, ...]
    total_price: float
    total_duration_minutes: int
    leg_count: int
    origin: str
    destination: str
    product_id: str
    policy_id: str

    def __post_init__(self) -> None:
        if self.leg_count != len(self.legs):
            raise ValueError(f"leg_count {self.leg_count} does not match {len(self.legs)} legs")

    @property
    def carriers(self) -> set[str]:
        return {leg.carrier for leg in self.legs}


@dataclass(frozen=True, slots=True, kw_only=True)
class SearchContext:
    """Per-search parameters shared by every stage of one top-level branch."""
    departure_city: str
    destination_city: str
    outbound_date: date
    inbound_date: date
    cabin_class: CabinClass = CabinClass.ECONOMY
    passengers: int = 1
    airlines: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class AlternativeSearchContext(SearchContext):
    intermediate_city: str


@dataclass(frozen=True, slots=True)
class RouteResult:
    pattern: RoutePattern
    itinerary: FlightItinerary
    departure_city: str
    intermediate_city: str | None
    destination_city: str
    outbound_date: date
    inbound_date: date

    @property
    def total_price(self) -> float:
        return self.itinerary.total_price

    @property
    def total_duration_minutes(self) -> int:
        return self.itinerary.total_duration_minutes

    def to_record(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern.value,
            "origin": self.departure_city,
            "destination": self.destination_city,
            "intermediate_city": self.intermediate_city,
            "outbound_date": self.outbound_date.isoformat(),
            "inbound_date": self.inbound_date.isoformat(),
            "total_price": self.total_price,
            "total_duration_minutes": self.total_duration_minutes,
            "product_id": self.itinerary.product_id,
            "policy_id": self.itinerary.policy_id,
            "legs": [leg.to_record() for leg in self.itinerary.legs],
        }


@dataclass(frozen=True, slots=True)
class TimePeriod:
    outbound_date: date
    inbound_date: date


@dataclass(slots=True)
class SearchInput:
    """Run configuration, loaded from the input JSON by the pipeline.

    Every time period produces one direct branch plus one alternative branch per intermediate city.
    """
    departure_city: str
    target_city: str
    time_periods: list[TimePeriod]
    intermediate_cities: list[str] = field(default_factory=list)
    cabin_class: CabinClass = CabinClass.ECONOMY
    passengers: int = 1
    airlines: list[str] = field(default_factory=list)
    top_k: int | None = None
    max_results: int | None = None
