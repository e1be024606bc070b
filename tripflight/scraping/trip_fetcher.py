"""Playwright page fetcher for the trip.com round-trip search flow.

For every stage task a fresh page is opened, a single response future for the flight list
endpoint is registered before navigation, and the fetch resolves as soon as that response arrives
or fails once the deadline expires.
"""
import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from playwright.async_api import Error as PlaywrightError, Page, Response, TimeoutError as PlaywrightTimeoutError

from ..errors import FetchTimeoutError, MissingDataError
from ..search.tasks import StageTask, describe_task
from .base_driver import BasePlaywrightDriver, pretty_format_html
from .sse import parse_sse_payload
from .urls import build_task_url

FLIGHT_LIST_ENDPOINT = 'FlightListSearch'


def _is_flight_list_response(response: Response) -> bool:
    return FLIGHT_LIST_ENDPOINT in response.url and response.status == 200


class TripPageFetcher(BasePlaywrightDriver):
    def __init__(
            self,
            host: str = 'tw.trip.com',
            fetch_timeout_secs: float = 60,
            headless: bool = True,
            proxy_server: str | None = None,
            locale: str = 'zh-TW',
            currency: str = 'TWD',
            debug_dump_dir: Path | None = None,
    ):
        super().__init__(headless=headless, proxy_server=proxy_server)
        self.host = host
        self.fetch_timeout_ms = int(fetch_timeout_secs * 1000)
        self.locale = locale
        self.currency = currency
        self.debug_dump_dir = debug_dump_dir

    async def fetch(self, task: StageTask) -> dict[str, Any] | None:
        url = build_task_url(task, self.host, locale=self.locale, currency=self.currency)
        label = describe_task(task)
        context, page = await self.new_page()
        try:
            try:
                async with page.expect_response(_is_flight_list_response,
                                                timeout=self.fetch_timeout_ms) as response_info:
                    await page.goto(url, wait_until='commit', timeout=self.fetch_timeout_ms)
                response = await response_info.value
                body = await response.text()
            except PlaywrightTimeoutError as exc:
                await self._dump_page(page, task)
                raise FetchTimeoutError(f"No flight list response for {label} within "
                                        f"{self.fetch_timeout_ms / 1000:.0f}s") from exc
            except PlaywrightError as exc:
                raise MissingDataError(f"Navigation failed for {label}: {exc}") from exc
        finally:
            await context.close()

        logging.info(f"Captured flight list response for {label} ({len(body)} chars)")
        payload = parse_sse_payload(body)
        if payload is None:
            logging.warning(f"No flight data in response for {label}")
        return payload

    async def _dump_page(self, page: Page, task: StageTask) -> None:
        if self.debug_dump_dir is None:
            return
        try:
            html = await page.content()
        except PlaywrightError:
            logging.debug("Page content unavailable for dump")
            return
        stamp = datetime.now().strftime('%Y%m%d-%H%M%S-%f')
        path = self.debug_dump_dir / f"{task.stage.label.lower()}-{stamp}.html"
        await asyncio.to_thread(self._write_dump, path, pretty_format_html(html))
        logging.info(f"Page dumped to {path}")

    @staticmethod
    def _write_dump(path: Path, html: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(html, encoding='utf-8')
