from contextlib import contextmanager

import pytest

from gmaps_scraper.browser import pick_listing_element
from gmaps_scraper.config import SEARCH_BOX_SELECTOR, no_delay_config
from gmaps_scraper.snapshot import PageSnapshot

SEARCH_URL = "https://www.google.com/maps/search/coffee+shops+in+Seattle"


def place_url(name):
    return f"https://www.google.com/maps/place/{name.replace(' ', '+')}/data=!4m7!3m6"


def feed_html(names):
    """Results feed in the current layout: one a.hfpxzc anchor per card"""
    cards = "".join(
        f'<div class="Nv2PK"><a class="hfpxzc" aria-label="{name}" href="{place_url(name)}"></a>'
        f'<div class="qBF1Pd">{name}</div><span class="MW4etd">4.5</span></div>'
        for name in names
    )
    return f'<html><body><div role="feed">{cards}</div></body></html>'


def detail_html(name, rating="4.5"):
    return f"""
    <html><body><div role="main">
      <h1 class="DUwDvf">{name}</h1>
      <div class="F7nice"><span aria-hidden="true">{rating}</span><span aria-label="1,234 reviews">(1,234)</span></div>
      <button class="DkEaL">Coffee shop</button>
      <button data-item-id="address" aria-label="Address: 123 Pike St"><div class="Io6YTe">123 Pike St, Seattle, WA 98101</div></button>
      <a data-item-id="authority" href="https://example-coffee.com/"><div class="Io6YTe">example-coffee.com</div></a>
      <button data-item-id="phone:tel:+12065550100" aria-label="Phone: (206) 555-0100"><div class="Io6YTe">(206) 555-0100</div></button>
      <table class="eK4R0e">
        <tr><td class="ylH6lf">Monday</td><td class="mxowUb">7 AM-6 PM</td></tr>
        <tr><td class="ylH6lf">Tuesday</td><td class="mxowUb">7 AM-6 PM</td></tr>
      </table>
      <span class="mgr77e">$$ Reported by 120 people</span>
      <div class="RcCsl"><div class="AeaXub"><div class="Io6YTe"><span>Dine-in</span></div></div></div>
      <div class="RcCsl"><div class="AeaXub"><div class="Io6YTe"><span>Takeout</span></div></div></div>
      <p>Questions? hello@example-coffee.com</p>
      <script>var tracking = "ignore@tracker.example";</script>
    </div></body></html>
    """


class FakeFeedPage:
    """Search tab: shows the next feed frame after every scroll"""

    def __init__(self, frames, url=SEARCH_URL, search_box=True):
        self.frames = frames
        self.url = url
        self.search_box = search_box
        self.position = 0
        self.scroll_calls = 0
        self.visited = []
        self.typed = []
        self.entered = False
        self.events = []
        self.snapshot_error = None

    @property
    def current_url(self):
        return self.url

    def goto(self, url):
        self.visited.append(url)

    def handle_consent(self):
        return False

    def wait_for(self, selectors, timeout):
        if selectors == SEARCH_BOX_SELECTOR:
            return self.search_box
        return True

    def type_into(self, selector, text):
        self.typed.append(text)
        self.events.append(("type", text))

    def press_enter(self, selector):
        self.entered = True
        self.events.append(("enter",))

    def snapshot(self):
        if self.snapshot_error is not None:
            raise self.snapshot_error
        if callable(self.frames):
            html = self.frames(self.position)
        else:
            html = self.frames[min(self.position, len(self.frames) - 1)]
        return PageSnapshot(html, url=self.url)

    def scroll_results(self, fraction=0.7, steps=15, step_ms=100):
        self.scroll_calls += 1
        self.position += 1


class FakeDetailPage:
    """Listing tab: serves place pages by URL, or from a clicked feed entry

    `feed` lists the (name, url) entries a re-run search renders, in order.
    """

    def __init__(self, pages, failing=(), feed=()):
        self.pages = pages
        self.failing = failing
        self.feed = list(feed)
        self.url = None
        self.clicks = []

    @property
    def current_url(self):
        return self.url

    def goto(self, url):
        if url in self.failing:
            raise RuntimeError(f"net::ERR_CONNECTION_RESET at {url}")
        self.url = url

    def handle_consent(self):
        return False

    def wait_for(self, selectors, timeout):
        return self.url in self.pages

    def scroll_results(self, fraction=0.7, steps=15, step_ms=100):
        pass

    def click_listing(self, name, index):
        self.clicks.append((name, index))
        named = [url for entry_name, url in self.feed if entry_name == name]
        url = pick_listing_element(named, [url for _, url in self.feed], index)
        if url is None:
            return False
        self.url = url
        return True

    def snapshot(self):
        return PageSnapshot(self.pages[self.url], url=self.url)


class FakeSession:
    def __init__(self, search_page, pages=None, failing=(), feed=()):
        self.search_page = search_page
        self.pages = pages or {}
        self.failing = failing
        self.feed = feed
        self.detail_pages = []
        self.opened_tabs = 0
        self.closed_tabs = 0
        self.closed = False

    def open_page(self):
        return self.search_page

    @contextmanager
    def listing_page(self):
        self.opened_tabs += 1
        page = FakeDetailPage(self.pages, self.failing, self.feed)
        self.detail_pages.append(page)
        try:
            yield page
        finally:
            self.closed_tabs += 1

    def close(self):
        self.closed = True


@pytest.fixture
def config():
    return no_delay_config()


@pytest.fixture
def detail_snapshot():
    return PageSnapshot(detail_html("Blue Bottle Coffee"), url=place_url("Blue Bottle Coffee"))
