"""
Headless Chromium fetch of the claude.ai usage endpoint.

claude.ai sits behind bot detection, so the API is read through a real
browser: a warmed context (reused storage state, or a visit to the home
page) plus the sessionKey / lastActiveOrg cookies captured during setup.
"""

import json
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from claude_usage.browser.session_state import Freshness, SessionState
from claude_usage.config import Settings
from claude_usage.errors import BrowserError, FetchTimeoutError, HttpError, JsonParseError, NoResponseError
from claude_usage.models import UsageSnapshot
from claude_usage.observability.logger import get_logger

log = get_logger("browser.fetcher")

LAUNCH_ARGS = ["--no-sandbox", "--disable-blink-features=AutomationControlled"]

MASK_WEBDRIVER_SCRIPT = "Object.defineProperty(navigator, 'webdriver', { get: () => undefined });"

# JSON responses render inside a <pre> in Chromium
BODY_TEXT_SCRIPT = "() => document.querySelector('pre')?.textContent ?? document.body.innerText"


class UsageFetcher:
    def __init__(self, settings: Settings, session_state: SessionState, playwright_factory=None):
        self.settings = settings
        self.session_state = session_state
        self._playwright_factory = playwright_factory or async_playwright
        self._playwright = self._browser = self._context = self._page = None

    async def fetch(self, org_id: str, session_key: str) -> UsageSnapshot:
        log.info("usage_fetch_start", org_id=org_id)
        try:
            freshness = await self._launch()
            if freshness is Freshness.STALE:
                await self._warm_up()
            else:
                log.info("warmup_skipped", state_path=self.session_state.path)

            await self._context.add_cookies(self._auth_cookies(org_id, session_key))

            response = await self._goto(self.settings.usage_url(org_id), wait_until="networkidle")
            if response is None:
                raise NoResponseError()

            status = response.status
            body = await self._body_text()
            if status != 200:
                log.warning("usage_fetch_http_error", status=status)
                raise HttpError.from_response(status, body)

            snapshot = self._parse(body)

            self.session_state.save(await self._context.storage_state())
            log.info("usage_fetched", buckets=sorted(k for k, v in snapshot.raw.items() if v))
            return snapshot
        finally:
            await self._cleanup()

    async def _launch(self) -> Freshness:
        self._playwright = await self._playwright_factory().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.settings.browser_headless, args=LAUNCH_ARGS
        )

        freshness = self.session_state.freshness()
        storage_state = None
        if freshness is Freshness.FRESH:
            storage_state = self.session_state.load()
            if storage_state is None:
                freshness = Freshness.STALE

        kw = {"user_agent": self.settings.browser_user_agent}
        if storage_state is not None:
            kw["storage_state"] = storage_state
        self._context = await self._browser.new_context(**kw)
        await self._context.add_init_script(MASK_WEBDRIVER_SCRIPT)
        self._page = await self._context.new_page()
        log.info("browser_launched", headless=self.settings.browser_headless, session_state=freshness.value)
        return freshness

    async def _warm_up(self):
        log.info("warmup_start", url=self.settings.base_url)
        await self._goto(self.settings.base_url, wait_until="domcontentloaded")

    async def _goto(self, url: str, wait_until: str):
        try:
            return await self._page.goto(url, wait_until=wait_until, timeout=self.settings.navigation_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise FetchTimeoutError(f"Timed out after {self.settings.navigation_timeout_ms}ms loading {url}") from e
        except PlaywrightError as e:
            raise BrowserError(f"Navigation to {url} failed: {e}") from e

    async def _body_text(self) -> Optional[str]:
        try:
            return await self._page.evaluate(BODY_TEXT_SCRIPT)
        except PlaywrightError as e:
            raise BrowserError(f"Could not read usage API body: {e}") from e

    def _auth_cookies(self, org_id: str, session_key: str) -> list[dict]:
        domain = self.settings.cookie_domain
        return [
            {
                "name": "sessionKey",
                "value": session_key,
                "domain": domain,
                "path": "/",
                "secure": True,
                "httpOnly": True,
                "sameSite": "Lax",
            },
            {
                "name": "lastActiveOrg",
                "value": org_id,
                "domain": domain,
                "path": "/",
                "secure": True,
                "sameSite": "Lax",
            },
        ]

    @staticmethod
    def _parse(body: Optional[str]) -> UsageSnapshot:
        try:
            data = json.loads(body or "{}")
        except json.JSONDecodeError as e:
            raise JsonParseError(f"Usage API returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise JsonParseError(f"Usage API returned {type(data).__name__}, expected an object")
        return UsageSnapshot(raw=data)

    async def _cleanup(self):
        try:
            if self._browser:
                await self._browser.close()
        except Exception as e:
            log.warning("browser_close_err", error=str(e))
        finally:
            if self._playwright:
                try:
                    await self._playwright.stop()
                except Exception as e:
                    log.warning("playwright_stop_err", error=str(e))
        self._browser = self._context = self._page = self._playwright = None
