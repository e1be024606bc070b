"""Stage state machine for the direct and alternative round-trip searches.

For every finished fetch the orchestrator extracts the candidates (in site order), keeps the top K
and either returns the follow-up tasks or, on a terminal stage, builds the route results and hands
them to the collector. It never runs follow-up tasks itself and never retries a failed stage.
"""
import logging
from typing import Any, Protocol

from ..errors import MissingDataError
from ..models import FlightItinerary, RoutePattern, RouteResult, SearchContext
from .collector import ResultsCollector
from .combiner import combine, combine_alternative
from .extractor import extract_itineraries
from .tasks import (
    InboundTask,
    Leg1InboundTask,
    Leg1OutboundTask,
    Leg2InboundTask,
    Leg2OutboundTask,
    OutboundTask,
    StageTask,
    describe_task,
)


class PageFetcher(Protocol):
    async def fetch(self, task: StageTask) -> dict[str, Any] | None:
        """Return the raw search response for ``task``; raise FetchTimeoutError past the deadline."""


def filter_by_airlines(candidates: list[FlightItinerary], airlines: tuple[str, ...]) -> list[FlightItinerary]:
    """Keep candidates whose every leg is flown by one of ``airlines`` (no filter when empty)."""
    if not airlines:
        return candidates
    allowed = {code.upper() for code in airlines}
    return [c for c in candidates if c.carriers <= allowed]


def _route_result(pattern: RoutePattern, itinerary: FlightItinerary, context: SearchContext,
                  intermediate_city: str | None = None) -> RouteResult:
    return RouteResult(
        pattern=pattern,
        itinerary=itinerary,
        departure_city=itinerary.origin,
        intermediate_city=intermediate_city,
        destination_city=itinerary.destination,
        outbound_date=context.outbound_date,
        inbound_date=context.inbound_date,
    )


class SearchOrchestrator:
    def __init__(self, fetcher: PageFetcher, collector: ResultsCollector, top_k: int = 10):
        if top_k < 1:
            raise ValueError(f"top_k must be positive, got {top_k}")
        self.fetcher = fetcher
        self.collector = collector
        self.top_k = top_k

    async def handle(self, task: StageTask) -> list[StageTask]:
        """Process one stage task and return its child tasks ([] on terminal stages)."""
        candidates = await self._candidates(task)
        match task:
            case OutboundTask():
                return self._expand_outbound(task, candidates)
            case InboundTask():
                await self._finish_direct(task, candidates)
                return []
            case Leg1OutboundTask():
                return self._expand_leg1_outbound(task, candidates)
            case Leg1InboundTask():
                return self._expand_leg1_inbound(task, candidates)
            case Leg2OutboundTask():
                return self._expand_leg2_outbound(task, candidates)
            case Leg2InboundTask():
                await self._finish_alternative(task, candidates)
                return []
        raise TypeError(f"Unknown stage task {task!r}")

    async def _candidates(self, task: StageTask) -> list[FlightItinerary]:
        payload = await self.fetcher.fetch(task)
        candidates = extract_itineraries(payload)
        if not candidates:
            raise MissingDataError(f"Missing itinerary data for {describe_task(task)}")
        filtered = filter_by_airlines(candidates, task.context.airlines)
        if not filtered:
            logging.warning(f"{describe_task(task)}: no candidate flown only by {', '.join(task.context.airlines)}")
            return []
        logging.info(f"{describe_task(task)}: {len(filtered)} candidate(s)")
        return filtered

    def _top(self, candidates: list[FlightItinerary]) -> list[FlightItinerary]:
        return candidates[:self.top_k]

    # ---------------- direct pattern -----------------
    def _expand_outbound(self, task: OutboundTask, candidates: list[FlightItinerary]) -> list[StageTask]:
        return [InboundTask(context=task.context, outbound=c) for c in self._top(candidates)]

    async def _finish_direct(self, task: InboundTask, candidates: list[FlightItinerary]) -> None:
        results = [
            _route_result(RoutePattern.DIRECT, combine(task.outbound, inbound), task.context)
            for inbound in self._top(candidates)
        ]
        await self.collector.append(results)

    # ---------------- alternative pattern -----------------
    def _expand_leg1_outbound(self, task: Leg1OutboundTask, candidates: list[FlightItinerary]) -> list[StageTask]:
        return [Leg1InboundTask(context=task.context, outbound=c) for c in self._top(candidates)]

    @staticmethod
    def _expand_leg1_inbound(task: Leg1InboundTask, candidates: list[FlightItinerary]) -> list[StageTask]:
        if not candidates:
            return []
        # exactly one return flight per leg 1 branch, never top K
        leg1 = combine(task.outbound, candidates[0])
        return [Leg2OutboundTask(context=task.context, leg1=leg1)]

    def _expand_leg2_outbound(self, task: Leg2OutboundTask, candidates: list[FlightItinerary]) -> list[StageTask]:
        return [Leg2InboundTask(context=task.context, leg1=task.leg1, outbound=c) for c in self._top(candidates)]

    async def _finish_alternative(self, task: Leg2InboundTask, candidates: list[FlightItinerary]) -> None:
        results = []
        for inbound in self._top(candidates):
            leg2 = combine(task.outbound, inbound)
            itinerary = combine_alternative(task.leg1, leg2)
            results.append(
                _route_result(RoutePattern.ALTERNATIVE, itinerary, task.context, task.context.intermediate_city)
            )
        await self.collector.append(results)
