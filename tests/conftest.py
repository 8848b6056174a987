"""
Shared fixtures: a canned product page, an in-memory stand-in for the
Playwright session, and a sleep recorder so retry / pacing delays cost
nothing.
"""

from __future__ import annotations

import pytest

from parts_scraper.config import Settings
from parts_scraper.errors import ContentNotFound, NavigationTimeout

PRODUCT_HTML = """
<html><body>
<h1 class="ProductMeta__Title">  Brake   Caliper  </h1>
<span class="ProductMeta__SkuNumber">UM-123</span>
<div class="Product__Slideshow">
  <img data-original-src="//cdn.shop.com/files/a.jpg?v=1">
  <img data-original-src="//cdn.shop.com/files/a.jpg?v=2">
  <img data-original-src="//cdn.shop.com/files/a_{width}x.jpg">
  <img data-original-src="https://cdn.shop.com/files/b.jpg">
</div>
<div class="ProductGallery__Carousel"><img src="//cdn.shop.com/files/gallery.jpg"></div>
<img data-src="//cdn.shop.com/files/c.jpg?width=300">
<img data-src="//cdn.shop.com/files/b.jpg">
<div class="ProductMeta__Description">
  <div class="TableWrapper"><table>
    <tr><td><p><strong>OEM Part Number Cross References:</strong></p></td></tr>
    <tr><td>ABC-100</td><td>XYZ-9</td></tr>
  </table></div>
  <div class="TableWrapper"><table>
    <tr><td><p><strong>Compatibility</strong></p></td></tr>
    <tr><td>Make Model</td><td>Ford F-150</td></tr>
    <tr><td>Year</td><td>2010</td></tr>
    <tr><td>Year</td><td>2011</td></tr>
    <tr><td>only one cell</td></tr>
  </table></div>
  <div class="TableWrapper"><table>
    <tr><td><p><strong>Technical Specifications</strong></p></td></tr>
    <tr><td>Category</td><td> Brakes </td></tr>
  </table></div>
  <div class="TableWrapper"><table>
    <tr><td><p><strong>Shipping Notes</strong></p></td></tr>
    <tr><td>Weight</td><td>2 kg</td></tr>
  </table></div>
  <div class="TableWrapper"><table>
    <tr><td>No heading</td><td>here</td></tr>
    <tr><td>Color</td><td>Red</td></tr>
  </table></div>
</div>
</body></html>
"""

BARE_HTML = """
<html><body>
<h1 class="ProductMeta__Title">Mystery Part</h1>
<div class="ProductMeta__Description"><p>Nothing to see.</p></div>
</body></html>
"""


class FakeBrowser:
    """
    Canned behaviour per url. A value is either an HTML string, one of the
    markers "nav_timeout" / "no_content", an exception instance raised on
    navigate, or a list of those consumed one per attempt (last one sticks).
    """

    def __init__(self, pages=None, default=PRODUCT_HTML):
        self.pages = dict(pages or {})
        self.default = default
        self.sessions: list[FakeSession] = []
        self.visits: list[tuple[int, str]] = []
        self._cursor: dict[str, int] = {}

    def factory(self) -> "FakeSession":
        session = FakeSession(self, len(self.sessions))
        self.sessions.append(session)
        return session

    def next_step(self, url: str):
        step = self.pages.get(url, self.default)
        if isinstance(step, list):
            n = self._cursor.get(url, 0)
            self._cursor[url] = n + 1
            step = step[min(n, len(step) - 1)]
        return step


class FakeSession:
    def __init__(self, browser: FakeBrowser, index: int):
        self.browser = browser
        self.index = index
        self.opened = False
        self.closed = False
        self._current = None

    async def open(self):
        self.opened = True
        return self

    async def close(self):
        self.closed = True

    async def navigate(self, url, timeout_ms):
        self.browser.visits.append((self.index, url))
        step = self.browser.next_step(url)
        self._current = step
        if isinstance(step, Exception):
            raise step
        if step == "nav_timeout":
            raise NavigationTimeout(url, f"navigation exceeded {timeout_ms} ms")

    async def wait_for(self, url, selector, timeout_ms):
        if self._current == "no_content":
            raise ContentNotFound(url, f"'{selector}' did not appear within {timeout_ms} ms")

    async def content(self, url):
        return self._current


class SleepRecorder:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture()
def product_html() -> str:
    return PRODUCT_HTML


@pytest.fixture()
def bare_html() -> str:
    return BARE_HTML


@pytest.fixture()
def make_browser():
    return FakeBrowser


@pytest.fixture()
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        targets_path=tmp_path / "product_data.json",
        results_dir=tmp_path / "results",
        failed_dir=tmp_path / "failed",
        logs_dir=tmp_path / "logs",
    )
