"""Factories for raw search responses, domain objects and a scripted page fetcher."""

from datetime import date
from typing import Any, Callable

from tripflight.models import AlternativeSearchContext, FlightItinerary, FlightLeg, SearchContext
from tripflight.search.tasks import StageTask

OUTBOUND_DATE = date(2025, 3, 1)
INBOUND_DATE = date(2025, 3, 10)


# ============================================================================
# Raw response payloads (site format)
# ============================================================================


def make_section(dcity: str, acity: str, carrier: str = "BR", flight_no: str = "BR100",
                 duration: int = 120, depart: str = "2025-03-01 08:00:00",
                 arrive: str = "2025-03-01 10:00:00") -> dict[str, Any]:
    return {
        "departPoint": {"airportCode": f"{dcity}1", "cityCode": dcity},
        "arrivePoint": {"airportCode": f"{acity}1", "cityCode": acity},
        "departDateTime": depart,
        "arriveDateTime": arrive,
        "flightInfo": {"airlineCode": carrier, "flightNo": flight_no},
        "duration": duration,
    }


def make_entry(route: list[str], price: float, policy_id: str, carrier: str = "BR",
               duration: int | None = None) -> dict[str, Any]:
    sections = [
        make_section(dcity, acity, carrier=carrier, flight_no=f"{carrier}{100 + n}")
        for n, (dcity, acity) in enumerate(zip(route, route[1:]))
    ]
    return {
        "journeyList": [{
            "duration": duration if duration is not None else 120 * len(sections),
            "transSectionList": sections,
        }],
        "policies": [{"policyId": policy_id, "price": {"totalPrice": price}}],
    }


def make_payload(entries: list[dict[str, Any]], product_id: str = "PROD",
                 record_count: int | None = None) -> dict[str, Any]:
    return {
        "basicInfo": {
            "recordCount": len(entries) if record_count is None else record_count,
            "productId": product_id,
        },
        "itineraryList": entries,
    }


# ============================================================================
# Domain objects
# ============================================================================


def make_leg(dcity: str, acity: str, carrier: str = "BR", duration: int = 120) -> FlightLeg:
    return FlightLeg(
        departure_city=dcity,
        departure_airport=f"{dcity}1",
        departure_time="2025-03-01 08:00:00",
        arrival_city=acity,
        arrival_airport=f"{acity}1",
        arrival_time="2025-03-01 10:00:00",
        carrier=carrier,
        flight_number=f"{carrier}1",
        duration_minutes=duration,
    )


def make_itinerary(route: list[str], price: float = 100, duration: int | None = None,
                   product_id: str = "PROD", policy_id: str = "POL", carrier: str = "BR",
                   destination: str | None = None) -> FlightItinerary:
    legs = tuple(make_leg(d, a, carrier=carrier) for d, a in zip(route, route[1:]))
    return FlightItinerary(
        legs=legs,
        total_price=price,
        total_duration_minutes=duration if duration is not None else 120 * len(legs),
        leg_count=len(legs),
        origin=route[0],
        destination=destination or route[-1],
        product_id=product_id,
        policy_id=policy_id,
    )


def make_context(airlines: tuple[str, ...] = (), outbound_date: date = OUTBOUND_DATE) -> SearchContext:
    return SearchContext(
        departure_city="TPE",
        destination_city="NRT",
        outbound_date=outbound_date,
        inbound_date=INBOUND_DATE,
        airlines=airlines,
    )


def make_alt_context(intermediate: str = "HKG") -> AlternativeSearchContext:
    return AlternativeSearchContext(
        departure_city="TPE",
        destination_city="NRT",
        outbound_date=OUTBOUND_DATE,
        inbound_date=INBOUND_DATE,
        intermediate_city=intermediate,
    )


# ============================================================================
# Page fetcher double
# ============================================================================


class ScriptedFetcher:
    """PageFetcher that answers every task with ``responder(task)`` and records the calls.

    The responder may raise (e.g. FetchTimeoutError) to simulate a failed fetch.
    """

    def __init__(self, responder: Callable[[StageTask], dict[str, Any] | None]):
        self.responder = responder
        self.calls: list[StageTask] = []

    async def fetch(self, task: StageTask) -> dict[str, Any] | None:
        self.calls.append(task)
        return self.responder(task)

    def calls_for(self, stage_label: str) -> list[StageTask]:
        return [task for task in self.calls if task.stage.label == stage_label]


# ============================================================================
# Scripted site behaviour
# ============================================================================


def direct_responder(outbound_prices: list[float], inbound_prices: list[float]):
    """Outbound page TPE->NRT with ``outbound_prices``; every next-journey page NRT->TPE with ``inbound_prices``."""

    def respond(task: StageTask) -> dict[str, Any]:
        if task.priced_offer is None:
            entries = [make_entry(["TPE", "NRT"], price, f"OUT{n}") for n, price in enumerate(outbound_prices)]
            return make_payload(entries, product_id="P-OUT")
        offer = task.priced_offer.policy_id
        entries = [make_entry(["NRT", "TPE"], price, f"{offer}-IN{n}") for n, price in enumerate(inbound_prices)]
        return make_payload(entries, product_id=f"P-{offer}")

    return respond


def alternative_responder(leg1_outbound: list[float], leg1_inbound: list[float],
                          leg2_outbound: list[float], leg2_inbound: list[float], intermediate: str = "HKG"):
    """Round trips TPE<->intermediate (leg 1) and intermediate<->NRT (leg 2) with the given price lists."""
    pages = {
        "LEG1_OUTBOUND": (["TPE", intermediate], leg1_outbound),
        "LEG1_INBOUND": ([intermediate, "TPE"], leg1_inbound),
        "LEG2_OUTBOUND": ([intermediate, "NRT"], leg2_outbound),
        "LEG2_INBOUND": (["NRT", intermediate], leg2_inbound),
    }

    def respond(task: StageTask) -> dict[str, Any]:
        route, prices = pages[task.stage.label]
        prefix = task.priced_offer.policy_id if task.priced_offer is not None else task.stage.label
        entries = [make_entry(route, price, f"{prefix}-{n}") for n, price in enumerate(prices)]
        return make_payload(entries, product_id=f"P-{prefix}")

    return respond
