"""Stage tasks: one variant per state of the search state machine.

Direct pattern:       OUTBOUND -> INBOUND
Alternative pattern:  LEG1_OUTBOUND -> LEG1_INBOUND -> LEG2_OUTBOUND -> LEG2_INBOUND

Each variant carries exactly the itinerary fragments its stage needs, so a task can never reach a
stage without the data collected by the previous ones.
"""
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, TypeAlias

from ..models import AlternativeSearchContext, FlightItinerary, SearchContext


class Stage(Enum):
    OUTBOUND = ("OUTBOUND", 0, False)
    INBOUND = ("INBOUND", 1, True)
    LEG1_OUTBOUND = ("LEG1_OUTBOUND", 0, False)
    LEG1_INBOUND = ("LEG1_INBOUND", 1, False)
    LEG2_OUTBOUND = ("LEG2_OUTBOUND", 2, False)
    LEG2_INBOUND = ("LEG2_INBOUND", 3, True)

    def __init__(self, label: str, depth: int, terminal: bool):
        self.label = label
        self.depth = depth
        self.terminal = terminal

    @property
    def is_root(self) -> bool:
        return self.depth == 0

    @property
    def is_inbound(self) -> bool:
        return self.label.endswith("INBOUND")


@dataclass(frozen=True, slots=True)
class OutboundTask:
    stage: ClassVar[Stage] = Stage.OUTBOUND
    context: SearchContext

    @property
    def search_pair(self) -> tuple[str, str]:
        return self.context.departure_city, self.context.destination_city

    @property
    def priced_offer(self) -> FlightItinerary | None:
        return None


@dataclass(frozen=True, slots=True)
class InboundTask:
    stage: ClassVar[Stage] = Stage.INBOUND
    context: SearchContext
    outbound: FlightItinerary

    @property
    def search_pair(self) -> tuple[str, str]:
        return self.context.departure_city, self.context.destination_city

    @property
    def priced_offer(self) -> FlightItinerary | None:
        return self.outbound


@dataclass(frozen=True, slots=True)
class Leg1OutboundTask:
    stage: ClassVar[Stage] = Stage.LEG1_OUTBOUND
    context: AlternativeSearchContext

    @property
    def search_pair(self) -> tuple[str, str]:
        return self.context.departure_city, self.context.intermediate_city

    @property
    def priced_offer(self) -> FlightItinerary | None:
        return None


@dataclass(frozen=True, slots=True)
class Leg1InboundTask:
    stage: ClassVar[Stage] = Stage.LEG1_INBOUND
    context: AlternativeSearchContext
    outbound: FlightItinerary

    @property
    def search_pair(self) -> tuple[str, str]:
        return self.context.departure_city, self.context.intermediate_city

    @property
    def priced_offer(self) -> FlightItinerary | None:
        return self.outbound


@dataclass(frozen=True, slots=True)
class Leg2OutboundTask:
    stage: ClassVar[Stage] = Stage.LEG2_OUTBOUND
    context: AlternativeSearchContext
    leg1: FlightItinerary

    @property
    def search_pair(self) -> tuple[str, str]:
        return self.context.intermediate_city, self.context.destination_city

    @property
    def priced_offer(self) -> FlightItinerary | None:
        return None


@dataclass(frozen=True, slots=True)
class Leg2InboundTask:
    stage: ClassVar[Stage] = Stage.LEG2_INBOUND
    context: AlternativeSearchContext
    leg1: FlightItinerary
    outbound: FlightItinerary

    @property
    def search_pair(self) -> tuple[str, str]:
        return self.context.intermediate_city, self.context.destination_city

    @property
    def priced_offer(self) -> FlightItinerary | None:
        return self.outbound


StageTask: TypeAlias = (
    OutboundTask | InboundTask | Leg1OutboundTask | Leg1InboundTask | Leg2OutboundTask | Leg2InboundTask
)


def describe_task(task: StageTask) -> str:
    """Short human-readable label used in logs and the progress bar."""
    dcity, acity = task.search_pair
    ctx = task.context
    text = f"{task.stage.label} {dcity}->{acity} {ctx.outbound_date:%Y-%m-%d}/{ctx.inbound_date:%Y-%m-%d}"
    if task.priced_offer is not None:
        text += f" via {task.priced_offer.policy_id}"
    return text
