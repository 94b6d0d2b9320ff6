import pytest

from gmaps_scraper.config import MAPS_HOME_URL, SENTINEL, no_delay_config
from gmaps_scraper.exceptions import BrowserLaunchError, InvalidRequestError, SearchUnavailableError
from gmaps_scraper.models import ScrapeRequest
from gmaps_scraper.pacing import Pacer
from gmaps_scraper.scraper import GoogleMapsScraper, ScrapeStage

from conftest import FakeFeedPage, FakeSession, detail_html, feed_html, place_url

NAMES = ["Cafe One", "Cafe Two", "Cafe Three", "Cafe Four", "Cafe Five"]


def make_session(names=NAMES, pages=None, **kwargs):
    if pages is None:
        pages = {place_url(name): detail_html(name) for name in names}
    return FakeSession(FakeFeedPage([feed_html(names)]), pages, **kwargs)


def test_end_to_end_returns_limit_records_in_discovery_order(config):
    session = make_session()
    scraper = GoogleMapsScraper(config, session_factory=lambda config: session)

    records = scraper.run(ScrapeRequest("coffee shops", "Seattle", 3))

    assert [record.name for record in records] == NAMES[:3]
    assert all(record.name != SENTINEL for record in records)
    assert scraper.stage is ScrapeStage.DONE
    assert scraper.stats["listings_found"] == 3
    assert scraper.stats["listings_scraped"] == 3
    assert session.search_page.visited == [MAPS_HOME_URL]
    assert session.search_page.typed == ["coffee shops in Seattle"]
    assert session.search_page.entered
    assert session.opened_tabs == session.closed_tabs == 3
    assert session.closed


def test_listing_failure_is_skipped(config):
    session = make_session(failing={place_url("Cafe Two")})
    scraper = GoogleMapsScraper(config, session_factory=lambda config: session)

    records = scraper.run(ScrapeRequest("coffee shops", "Seattle", 3))

    assert [record.name for record in records] == ["Cafe One", "Cafe Three"]
    assert scraper.stats["listing_errors"] == 1
    assert session.opened_tabs == session.closed_tabs == 3
    assert scraper.stage is ScrapeStage.DONE


def test_detail_page_that_never_loads_is_skipped(config):
    pages = {place_url(name): detail_html(name) for name in NAMES[:2]}
    session = make_session(pages=pages)
    scraper = GoogleMapsScraper(config, session_factory=lambda config: session)

    records = scraper.run(ScrapeRequest("coffee shops", "Seattle", 3))

    assert [record.name for record in records] == ["Cafe One", "Cafe Two"]
    assert scraper.stats["listing_errors"] == 1


def test_listing_name_used_when_page_has_none(config):
    pages = {place_url("Cafe One"): '<html><body><div class="F7nice"><span aria-hidden="true">3.9</span></div></body></html>'}
    session = make_session(names=["Cafe One"], pages=pages)
    scraper = GoogleMapsScraper(config, session_factory=lambda config: session)

    [record] = scraper.run(ScrapeRequest("coffee shops", "Seattle", 1))

    assert record.name == "Cafe One"
    assert record.rating == "3.9"


def test_positional_listing_is_opened_by_clicking(config):
    feed = '<html><body><div role="feed"><div class="Nv2PK" aria-label="Hidden Gem"></div></div></body></html>'
    url = "https://www.google.com/maps/place/Hidden+Gem"
    session = FakeSession(FakeFeedPage([feed]), {url: detail_html("Hidden Gem")}, feed=[("Hidden Gem", url)])
    scraper = GoogleMapsScraper(config, session_factory=lambda config: session)

    [record] = scraper.run(ScrapeRequest("bakery", "Portland", 1))

    assert record.name == "Hidden Gem"


def test_positional_listings_sharing_a_name_open_different_branches(config):
    feed = ('<html><body><div role="feed">'
            '<div class="Nv2PK" aria-label="Starbucks"></div><div class="Nv2PK" aria-label="Starbucks"></div>'
            '</div></body></html>')
    pike, union = place_url("Starbucks Pike"), place_url("Starbucks Union")
    pages = {pike: detail_html("Starbucks", rating="4.1"), union: detail_html("Starbucks", rating="4.7")}
    session = FakeSession(FakeFeedPage([feed]), pages, feed=[("Starbucks", pike), ("Starbucks", union)])
    scraper = GoogleMapsScraper(config, session_factory=lambda config: session)

    records = scraper.run(ScrapeRequest("coffee", "Seattle", 2))

    assert [record.rating for record in records] == ["4.1", "4.7"]
    assert [page.clicks for page in session.detail_pages] == [[("Starbucks", 0)], [("Starbucks", 1)]]


def test_positional_listing_that_cannot_be_clicked_is_skipped(config):
    feed = '<html><body><div role="feed"><div class="Nv2PK" aria-label="Ghost"></div></div></body></html>'
    session = FakeSession(FakeFeedPage([feed]), {})
    scraper = GoogleMapsScraper(config, session_factory=lambda config: session)

    assert scraper.run(ScrapeRequest("bakery", "Portland", 1)) == []
    assert scraper.stats["listing_errors"] == 1


def test_missing_search_box_fails_session_and_releases_browser(config):
    session = FakeSession(FakeFeedPage([feed_html(NAMES)], search_box=False))
    scraper = GoogleMapsScraper(config, session_factory=lambda config: session)

    with pytest.raises(SearchUnavailableError):
        scraper.run(ScrapeRequest("coffee shops", "Seattle", 3))

    assert scraper.stage is ScrapeStage.FAILED
    assert session.closed
    assert session.opened_tabs == 0


def test_browser_launch_failure_propagates(config):
    def factory(config):
        raise BrowserLaunchError("chrome not found")

    scraper = GoogleMapsScraper(config, session_factory=factory)

    with pytest.raises(BrowserLaunchError):
        scraper.run(ScrapeRequest("coffee shops", "Seattle", 3))
    assert scraper.stage is ScrapeStage.FAILED


def test_limit_above_maximum_is_rejected_before_launching(config):
    launched = []
    scraper = GoogleMapsScraper(config, session_factory=lambda config: launched.append(config))

    with pytest.raises(InvalidRequestError):
        scraper.run(ScrapeRequest("coffee shops", "Seattle", config["max_limit"] + 1))
    assert launched == []
    assert scraper.stage is ScrapeStage.IDLE


def test_typing_delay_precedes_enter_and_listing_delay_only_between_listings():
    config = no_delay_config(randomize_delays=True, typing_delay_bounds=(0.25, 0.75), listing_delay_bounds=(2, 3))
    session = make_session()
    events = session.search_page.events
    pacer = Pacer(config, sleep=lambda seconds: events.append(("sleep", seconds)))
    scraper = GoogleMapsScraper(config, session_factory=lambda config: session, pacer=pacer)

    scraper.run(ScrapeRequest("coffee shops", "Seattle", 3))

    typed, typing_pause, entered = events[:3]
    assert typed == ("type", "coffee shops in Seattle")
    assert typing_pause[0] == "sleep" and 0.25 <= typing_pause[1] <= 0.75
    assert entered == ("enter",)
    listing_pauses = events[3:]
    assert len(listing_pauses) == 2
    assert all(kind == "sleep" and 2 <= seconds <= 3 for kind, seconds in listing_pauses)
