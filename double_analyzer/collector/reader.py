"""Headless-browser reader for the game page.

One SourceReader owns one Chromium session (Playwright sync API) for its
whole life. Playwright's sync objects are bound to the thread that created
them, so open/peek/read/close must all be called from the same thread; the
supervisor runs them on its single collector worker.

Two reads are offered:

* ``has_new_round`` - cheap: fingerprint of the always-visible recent-results
  strip, compared against the last fingerprint seen.
* ``read_recent`` - expensive: open the history panel, read up to
  ``read_limit`` rows with their timestamps, close the panel.
"""
from __future__ import annotations

import logging

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from double_analyzer.collector.parsing import RawRound, parse_history
from double_analyzer.config import settings
from double_analyzer.errors import (
    InteractionTimeout,
    SelectorNotFound,
    SessionLost,
    TransientReadError,
)

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox", "--window-size=1920,1080"]

# number of strip tiles in the change fingerprint
BAR_DEPTH = 10

_BAR_JS = """
([sel, depth]) => {
    const first = document.querySelector(sel);
    if (!first || !first.parentElement) return null;
    const tiles = Array.from(first.parentElement.children).slice(0, depth);
    return tiles.map(t => {
        const n = t.querySelector('.number');
        return n ? n.textContent.trim() : (t.textContent.trim() || 'w');
    }).join(',');
}
"""

_PANEL_JS = """
([numSel, dateSel, limit]) => {
    const nums = document.querySelectorAll(numSel);
    const dates = document.querySelectorAll(dateSel);
    const n = Math.min(nums.length, dates.length, limit);
    const out = [];
    for (let i = 0; i < n; i++) {
        const ps = dates[i].querySelectorAll('p');
        out.push({
            number: (nums[i].textContent || '').trim(),
            date: ps[0] ? ps[0].textContent.trim() : null,
            time: ps[1] ? ps[1].textContent.trim() : null,
        });
    }
    return out;
}
"""

_CLOSED_MARKERS = ("has been closed", "Target closed", "Browser closed", "Connection closed", "crashed")


def is_session_fatal(exc: Exception) -> bool:
    """True when a Playwright error means the page/browser is gone."""
    msg = str(exc)
    return any(marker in msg for marker in _CLOSED_MARKERS)


class SourceReader:
    def __init__(
        self,
        url: str | None = None,
        headless: bool | None = None,
        nav_timeout_ms: int | None = None,
        action_timeout_ms: int | None = None,
        read_limit: int | None = None,
        tz_name: str | None = None,
        max_consecutive_failures: int | None = None,
    ):
        self.url = url or settings.source_url
        self.headless = settings.headless if headless is None else headless
        self.nav_timeout_ms = nav_timeout_ms or settings.nav_timeout_ms
        self.action_timeout_ms = action_timeout_ms or settings.action_timeout_ms
        self.read_limit = read_limit or settings.read_limit
        self.tz_name = tz_name or settings.source_timezone
        self.max_consecutive_failures = max_consecutive_failures or settings.max_consecutive_failures

        self.bar_selector = settings.bar_selector
        self.button_selector = settings.history_button_selector
        self.number_selector = settings.history_number_selector
        self.date_selector = settings.history_date_selector
        self.close_selector = settings.history_close_selector

        self._playwright = None
        self._browser = None
        self._page = None
        self._fingerprint: str | None = None
        self._unread: str | None = None
        self._strip_failures = 0
        self._panel_failures = 0

    @property
    def is_open(self) -> bool:
        return self._page is not None and not self._page.is_closed()

    # ---------------- lifecycle ----------------
    def open(self) -> None:
        """Launch the browser and load the page. Raises SessionLost on failure."""
        logger.info("Opening browser session (headless=%s)", self.headless)
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(headless=self.headless, args=LAUNCH_ARGS)
            context = self._browser.new_context(
                user_agent=USER_AGENT,
                locale="pt-BR",
                viewport={"width": 1920, "height": 1080},
                extra_http_headers={"Accept-Language": "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7"},
            )
            self._page = context.new_page()
            self._page.set_default_timeout(self.action_timeout_ms)
            self._page.set_default_navigation_timeout(self.nav_timeout_ms)
            self._page.goto(self.url, wait_until="networkidle")
        except PlaywrightError as e:
            self.close()
            raise SessionLost(f"could not open {self.url}: {e}") from e

        try:
            self._page.wait_for_selector(self.bar_selector, timeout=self.nav_timeout_ms)
        except PlaywrightTimeoutError:
            logger.warning("Results strip slow to render; continuing")
        self._fingerprint = None
        self._unread = None
        self._strip_failures = self._panel_failures = 0
        logger.info("Browser session ready at %s", self.url)

    def close(self) -> None:
        """Release the browser; safe to call repeatedly."""
        browser, pw = self._browser, self._playwright
        self._page = self._browser = self._playwright = None
        if browser is not None:
            try:
                browser.close()
            except PlaywrightError as e:
                logger.debug("Browser close failed: %s", e)
        if pw is not None:
            try:
                pw.stop()
            except PlaywrightError as e:
                logger.debug("Playwright stop failed: %s", e)

    # ---------------- reads ----------------
    def peek_latest(self) -> str:
        """Fingerprint of the newest strip tiles, without touching any state."""
        if self._page is None:
            raise SessionLost("reader is not open")
        fingerprint = self._call("bar read", self._page.evaluate, _BAR_JS, [self.bar_selector, BAR_DEPTH])
        if not fingerprint:
            raise SelectorNotFound(f"results strip {self.bar_selector!r} not found")
        return fingerprint

    def has_new_round(self) -> bool:
        """Passive check of the results strip.

        The first successful look only records a baseline and reports no
        change. A change stays pending until ``read_recent`` succeeds.
        """
        try:
            fingerprint = self.peek_latest()
        except TransientReadError as e:
            logger.debug("Passive read failed: %s", e)
            self._record_failure("strip", e)
            return False

        self._strip_failures = 0
        previous, self._fingerprint = self._fingerprint, fingerprint
        if previous is None or previous == fingerprint:
            return False
        logger.debug("Strip changed: %s -> %s", previous, fingerprint)
        if self._unread is None:
            self._unread = previous
        return True

    def read_recent(self) -> list[RawRound]:
        """Newest-first rounds from the history panel; [] on a recoverable failure."""
        if self._page is None:
            raise SessionLost("reader is not open")
        try:
            self._open_panel()
            entries = self._call("panel read", self._page.evaluate, _PANEL_JS,
                                 [self.number_selector, self.date_selector, self.read_limit])
        except TransientReadError as e:
            logger.warning("History panel read failed: %s", e)
            if self._unread is not None:
                # report the change again on the next passive check
                self._fingerprint = self._unread
            self._record_failure("panel", e)
            self._recover()
            return []
        finally:
            if self._page is not None:
                self._close_panel()

        self._panel_failures = 0
        self._unread = None
        rounds = parse_history(entries or [], self.tz_name, self.read_limit)
        logger.info("Extracted %d rounds (%d rows on page)", len(rounds), len(entries or []))
        return rounds

    # ---------------- helpers ----------------
    def _call(self, what: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except PlaywrightTimeoutError as e:
            raise InteractionTimeout(f"{what} timed out") from e
        except PlaywrightError as e:
            if is_session_fatal(e):
                raise SessionLost(f"{what}: {e}") from e
            raise TransientReadError(f"{what}: {e}") from e

    def _open_panel(self) -> None:
        if self._call("panel check", self._page.query_selector, self.number_selector) is not None:
            return
        try:
            self._call("history button", self._page.wait_for_selector, self.button_selector,
                       timeout=self.action_timeout_ms)
        except InteractionTimeout as e:
            raise SelectorNotFound(f"history button {self.button_selector!r} not found") from e
        self._call("history click", self._page.click, self.button_selector, timeout=self.action_timeout_ms)
        self._call("panel wait", self._page.wait_for_selector, self.number_selector, timeout=self.action_timeout_ms)

    def _close_panel(self) -> None:
        try:
            button = self._call("close check", self._page.query_selector, self.close_selector)
            if button is not None:
                self._call("close click", button.click, timeout=self.action_timeout_ms)
        except TransientReadError as e:
            # a panel left open is picked up by the next _open_panel check
            logger.debug("Closing history panel failed: %s", e)

    def _recover(self) -> None:
        """Reload the page so the next cycle starts from a clean DOM."""
        try:
            self._call("reload", self._page.reload, wait_until="networkidle")
        except TransientReadError as e:
            logger.warning("Reload after failed read did not complete: %s", e)

    def _record_failure(self, kind: str, exc: Exception) -> None:
        """Count a failed strip or panel read; each kind escalates on its own."""
        attr = f"_{kind}_failures"
        n = getattr(self, attr) + 1
        setattr(self, attr, n)
        if n >= self.max_consecutive_failures:
            setattr(self, attr, 0)
            raise SessionLost(f"{n} consecutive {kind} read failures, last: {exc}") from exc
