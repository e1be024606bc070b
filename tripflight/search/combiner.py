"""Stitch partial itineraries into composite ones.

The two merges price differently: the two-leg merge takes the inbound offer's price as is, the
alternative merge adds up both round trips.
TODO: confirm the return-page price always covers the whole round trip; if it does not, direct
routes are under-priced and combine() should add the outbound price.
"""
from ..errors import SpliceNotFoundError
from ..models import FlightItinerary

ID_SEPARATOR = "|"


def combine(outbound: FlightItinerary, inbound: FlightItinerary) -> FlightItinerary:
    """Merge an outbound offer with the inbound offer picked on its next-journey page.

    Price and offer ids come from ``inbound`` only.
    """
    return FlightItinerary(
        legs=outbound.legs + inbound.legs,
        total_price=inbound.total_price,
        total_duration_minutes=outbound.total_duration_minutes + inbound.total_duration_minutes,
        leg_count=outbound.leg_count + inbound.leg_count,
        origin=outbound.origin,
        destination=outbound.destination,
        product_id=inbound.product_id,
        policy_id=inbound.policy_id,
    )


def find_splice_index(leg1: FlightItinerary) -> int:
    for index, leg in enumerate(leg1.legs):
        if leg.arrival_city == leg1.destination:
            return index
    raise SpliceNotFoundError(
        f"no leg of {leg1.origin}->{leg1.destination} ({leg1.policy_id}) arrives at {leg1.destination}"
    )


def combine_alternative(leg1: FlightItinerary, leg2: FlightItinerary) -> FlightItinerary:
    """Insert the intermediate->target round trip into the departure->intermediate round trip.

    ``leg1`` is itself an outbound+inbound pair around the intermediate city, so ``leg2``'s legs go
    right after the first arrival at the intermediate city.
    """
    splice = find_splice_index(leg1) + 1
    return FlightItinerary(
        legs=leg1.legs[:splice] + leg2.legs + leg1.legs[splice:],
        total_price=leg1.total_price + leg2.total_price,
        total_duration_minutes=leg1.total_duration_minutes + leg2.total_duration_minutes,
        leg_count=leg1.leg_count + leg2.leg_count,
        origin=leg1.origin,
        destination=leg2.destination,
        product_id=f"{leg1.product_id}{ID_SEPARATOR}{leg2.product_id}",
        policy_id=f"{leg1.policy_id}{ID_SEPARATOR}{leg2.policy_id}",
    )
