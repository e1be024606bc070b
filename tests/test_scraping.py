"""Tests for the fetch side: SSE bodies, search URLs and the page fetcher."""

import asyncio
import json
from urllib.parse import parse_qs, urlparse

import pytest
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from tripflight.errors import FetchTimeoutError, MissingDataError
from tripflight.models import CabinClass, SearchContext
from tripflight.scraping.sse import parse_sse_payload
from tripflight.scraping.trip_fetcher import TripPageFetcher
from tripflight.scraping.urls import build_task_url
from tripflight.search.tasks import InboundTask, Leg1OutboundTask, Leg2InboundTask, Leg2OutboundTask, OutboundTask

from helpers import make_alt_context, make_context, make_itinerary


def _query(url: str) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(urlparse(url).query).items()}


class TestParseSsePayload:

    def test_last_data_line_wins(self):
        body = "\n".join([
            "event: message",
            'data: {"basicInfo": {"recordCount": 1}}',
            "",
            'data: {"basicInfo": {"recordCount": 7}}',
        ])
        assert parse_sse_payload(body) == {"basicInfo": {"recordCount": 7}}

    def test_unparsable_lines_are_skipped(self):
        body = 'data: {"ok": 1}\ndata: {broken\ndata:\n'
        assert parse_sse_payload(body) == {"ok": 1}

    def test_no_parsable_data_line(self):
        assert parse_sse_payload("data: nope\n") is None

    def test_plain_json_body(self):
        assert parse_sse_payload(json.dumps({"itineraryList": []})) == {"itineraryList": []}

    def test_garbage_body(self):
        assert parse_sse_payload("<html>blocked</html>") is None


class TestBuildTaskUrl:

    def test_outbound_stage_opens_first_results_page(self):
        url = build_task_url(OutboundTask(context=make_context()), "tw.trip.com")
        parsed = urlparse(url)
        query = _query(url)
        assert parsed.netloc == "tw.trip.com"
        assert parsed.path == "/flights/showfarefirst"
        assert query["dcity"] == "tpe"
        assert query["acity"] == "nrt"
        assert query["ddate"] == "2025-03-01"
        assert query["rdate"] == "2025-03-10"
        assert query["triptype"] == "rt"
        assert query["class"] == "y"
        assert query["quantity"] == "1"
        assert query["sort"] == "price"

    def test_inbound_stage_references_outbound_offer(self):
        outbound = make_itinerary(["TPE", "NRT"], product_id="TOKEN", policy_id="SHOP")
        url = build_task_url(InboundTask(context=make_context(), outbound=outbound), "tw.trip.com",
                             locale="en-US", currency="USD")
        query = _query(url)
        assert urlparse(url).path == "/flights/ShowFareNext"
        assert query["criteriaToken"] == "TOKEN"
        assert query["shoppingid"] == "SHOP"
        assert query["groupKey"] == "SHOP"
        assert query["class"] == "Y"
        assert query["triptype"] == "RT"
        assert query["locale"] == "en-US"
        assert query["curr"] == "USD"

    def test_alternative_legs_search_their_own_city_pairs(self):
        ctx = make_alt_context("HKG")
        leg1_query = _query(build_task_url(Leg1OutboundTask(context=ctx), "tw.trip.com"))
        assert (leg1_query["dcity"], leg1_query["acity"]) == ("tpe", "hkg")

        leg1 = make_itinerary(["TPE", "HKG", "TPE"], destination="HKG")
        leg2_query = _query(build_task_url(Leg2OutboundTask(context=ctx, leg1=leg1), "tw.trip.com"))
        assert (leg2_query["dcity"], leg2_query["acity"]) == ("hkg", "nrt")

        outbound = make_itinerary(["HKG", "NRT"], policy_id="L2O")
        leg2_in = _query(build_task_url(Leg2InboundTask(context=ctx, leg1=leg1, outbound=outbound), "tw.trip.com"))
        assert leg2_in["shoppingid"] == "L2O"

    def test_cabin_and_passengers(self):
        ctx = make_context()
        business = SearchContext(
            departure_city="TPE", destination_city="NRT", outbound_date=ctx.outbound_date,
            inbound_date=ctx.inbound_date, cabin_class=CabinClass.BUSINESS, passengers=3,
        )
        query = _query(build_task_url(OutboundTask(context=business), "tw.trip.com"))
        assert query["class"] == "c"
        assert query["quantity"] == "3"


# ============================================================================
# Page fetcher (browser replaced by fakes)
# ============================================================================


class _FakeResponse:
    def __init__(self, body: str):
        self.body = body

    async def text(self) -> str:
        return self.body


class _FakeResponseInfo:
    def __init__(self, response: _FakeResponse):
        self._response = response

    @property
    def value(self):
        async def resolve():
            return self._response
        return resolve()


class _FakeExpectResponse:
    def __init__(self, page):
        self.page = page

    async def __aenter__(self):
        if self.page.expect_error is not None:
            raise self.page.expect_error
        return _FakeResponseInfo(_FakeResponse(self.page.body))

    async def __aexit__(self, *exc_info):
        return False


class _FakePage:
    def __init__(self, body: str = "", expect_error: Exception | None = None,
                 goto_error: Exception | None = None):
        self.body = body
        self.expect_error = expect_error
        self.goto_error = goto_error
        self.visited: list[str] = []
        self.timeouts: list[int] = []

    def expect_response(self, predicate, timeout: int):
        self.timeouts.append(timeout)
        return _FakeExpectResponse(self)

    async def goto(self, url: str, wait_until: str, timeout: int):
        self.visited.append(url)
        if self.goto_error is not None:
            raise self.goto_error

    async def content(self) -> str:
        return "<html><body>blocked</body></html>"


class _FakeContext:
    def __init__(self):
        self.closed = False

    async def close(self):
        self.closed = True


def _make_fetcher(page: _FakePage, **kwargs):
    fetcher = TripPageFetcher(host="tw.trip.com", fetch_timeout_secs=5, **kwargs)
    context = _FakeContext()

    async def new_page():
        return context, page

    fetcher.new_page = new_page
    return fetcher, context


class TestTripPageFetcher:

    def test_captured_response_parsed_and_context_closed(self):
        page = _FakePage(body='data: {"basicInfo": {"recordCount": 0, "productId": "P"}}\n')
        fetcher, context = _make_fetcher(page)
        payload = asyncio.run(fetcher.fetch(OutboundTask(context=make_context())))
        assert payload == {"basicInfo": {"recordCount": 0, "productId": "P"}}
        assert context.closed is True
        assert page.timeouts == [5000]
        assert urlparse(page.visited[0]).path == "/flights/showfarefirst"

    def test_deadline_raises_fetch_timeout_and_closes_context(self):
        page = _FakePage(expect_error=PlaywrightTimeoutError("Timeout 5000ms exceeded"))
        fetcher, context = _make_fetcher(page)
        with pytest.raises(FetchTimeoutError):
            asyncio.run(fetcher.fetch(OutboundTask(context=make_context())))
        assert context.closed is True

    def test_deadline_dumps_page_when_dump_dir_set(self, tmp_path):
        page = _FakePage(expect_error=PlaywrightTimeoutError("Timeout 5000ms exceeded"))
        fetcher, _ = _make_fetcher(page, debug_dump_dir=tmp_path)
        with pytest.raises(FetchTimeoutError):
            asyncio.run(fetcher.fetch(OutboundTask(context=make_context())))
        (dump,) = tmp_path.glob("outbound-*.html")
        assert "blocked" in dump.read_text(encoding="utf-8")

    def test_navigation_error_is_missing_data_not_timeout(self):
        page = _FakePage(goto_error=PlaywrightError("net::ERR_CONNECTION_RESET"))
        fetcher, context = _make_fetcher(page)
        with pytest.raises(MissingDataError) as excinfo:
            asyncio.run(fetcher.fetch(OutboundTask(context=make_context())))
        assert not isinstance(excinfo.value, FetchTimeoutError)
        assert context.closed is True

    def test_body_without_data_returns_none(self):
        page = _FakePage(body="<html>blocked</html>")
        fetcher, context = _make_fetcher(page)
        assert asyncio.run(fetcher.fetch(OutboundTask(context=make_context()))) is None
        assert context.closed is True
