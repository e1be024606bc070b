"""Exceptions raised by the search pipeline.

Everything below ``TripFlightError`` except ``ValidationError`` is scoped to a single stage task:
the worker pool logs it, decides about a retry and carries on with the sibling tasks.
"""


class TripFlightError(Exception):
    """Base error for the search pipeline."""


class ValidationError(TripFlightError):
    """Raised when the search input is invalid or incomplete."""


class MissingDataError(TripFlightError):
    """Raised when a stage has no itinerary data to work with."""


class FetchTimeoutError(MissingDataError):
    """Raised by a page fetcher when no search response arrived before its deadline."""


class ExtractionError(TripFlightError):
    """Raised when a search response does not have the expected shape."""


class SpliceNotFoundError(TripFlightError):
    """Raised when a leg 1 itinerary never arrives at its intermediate city."""
