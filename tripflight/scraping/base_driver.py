import logging

from bs4 import BeautifulSoup
from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright_stealth import Stealth


def pretty_format_html(html: str) -> str:
    """Return a pretty-formatted HTML string using BeautifulSoup with the 'lxml' parser."""
    if not html:
        return html
    soup = BeautifulSoup(html, "lxml")
    return soup.prettify()


class BasePlaywrightDriver:
    """Async headless Chromium driver with anti-bot stealth applied.

    One browser is shared for the driver's lifetime. Every page gets its own context, so cookies
    and session state are never shared between concurrent workers.
    """

    timeout: int = 30 * 1000
    locale: str = "zh-TW"
    timezone_id: str = "Asia/Taipei"

    def __init__(self, headless: bool = True, proxy_server: str | None = None):
        self.headless = headless
        self.proxy_server = proxy_server
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    def _get_browser_args(self) -> list[str]:
        return [
            "--disable-blink-features=AutomationControlled",
            "--no-sandbox",
            "--disable-infobars",
            "--disable-dev-shm-usage",
            "--disable-accelerated-2d-canvas",
            "--disable-gpu",
        ]

    async def start(self) -> None:
        self._playwright = await async_playwright().start()
        launch_kwargs = {"headless": self.headless, "args": self._get_browser_args()}
        if self.proxy_server:
            launch_kwargs["proxy"] = {"server": self.proxy_server}
        self._browser = await self._playwright.chromium.launch(**launch_kwargs)
        logging.debug("Chromium launched (headless=%s, proxy=%s)", self.headless, bool(self.proxy_server))

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def new_page(self) -> tuple[BrowserContext, Page]:
        """Create an isolated (context, page) pair with stealth applied."""
        if self._browser is None:
            raise RuntimeError("Driver not started; use 'async with' or call start() first")
        context = await self._browser.new_context(
            user_agent=(
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
                "AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/131.0.0.0 Safari/537.36"
            ),
            locale=self.locale,
            timezone_id=self.timezone_id,
            viewport={"width": 1280, "height": 900},
            color_scheme="light",
            java_script_enabled=True,
            extra_http_headers={
                "Accept-Language": f"{self.locale},en-US;q=0.8,en;q=0.7",
                "sec-ch-ua": '"Google Chrome";v="131", "Chromium";v="131", "Not_A Brand";v="24"',
                "sec-ch-ua-mobile": "?0",
                "sec-ch-ua-platform": '"Windows"',
            },
        )

        # Skip loading images to speed up scraping
        await context.route(
            "**/*.{png,jpg,jpeg,webp,svg,gif}",
            lambda route: route.abort(),
        )

        page = await context.new_page()
        await Stealth().apply_stealth_async(page)
        page.set_default_timeout(self.timeout)
        return context, page
