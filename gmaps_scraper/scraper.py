"""
Scrape orchestration: search, discover listings, then visit and extract each one.

Failures are handled at three levels. A field that cannot be resolved becomes
the sentinel, a listing that cannot be opened is logged and skipped, and only
faults that make the whole browser session unusable (launch failure, missing
search box) abort the run.
"""

import dataclasses
import json
import logging
import time
from collections import defaultdict
from enum import Enum
from urllib.parse import quote

from tqdm import tqdm

from .browser import BrowserSession
from .config import (BUSINESS_LOGGER_NAME, DETAIL_READY_SELECTORS, LOGGER_NAME, MAPS_HOME_URL, MAPS_SEARCH_URL,
                     RESULTS_FEED_SELECTORS, SEARCH_BOX_SELECTOR, SENTINEL, build_config)
from .discovery import ListingDiscoveryEngine
from .exceptions import InvalidRequestError, ListingNavigationError, SearchUnavailableError
from .extractor import DetailExtractor
from .pacing import Pacer

# The feed shows roughly three cards per scroll step
LISTINGS_PER_SCROLL = 3


class ScrapeStage(Enum):
    IDLE = "idle"
    NAVIGATING_SEARCH = "navigating_search"
    DISCOVERING = "discovering"
    NAVIGATING_DETAIL = "navigating_detail"
    EXTRACTING = "extracting"
    RECORDING = "recording"
    DONE = "done"
    FAILED = "failed"


class GoogleMapsScraper:
    """Runs one scrape request end to end on its own browser session"""

    def __init__(self, config=None, session_factory=None, pacer=None, extractor=None, discovery=None):
        self.config = config if config is not None else build_config()
        self.pacer = pacer or Pacer(self.config)
        self.session_factory = session_factory or (lambda config: BrowserSession(config, self.pacer))
        self.extractor = extractor or DetailExtractor()
        self.discovery = discovery or ListingDiscoveryEngine(self.config, self.pacer)

        self.logger = logging.getLogger(LOGGER_NAME)
        self.business_logger = logging.getLogger(BUSINESS_LOGGER_NAME)

        self.stage = ScrapeStage.IDLE
        self.stats = defaultdict(int)

    def _set_stage(self, stage):
        self.logger.debug(f"Stage: {self.stage.name} -> {stage.name}")
        self.stage = stage

    def run(self, request):
        """Returns the extracted records in discovery order, at most `request.limit` of them"""
        if request.limit > self.config["max_limit"]:
            raise InvalidRequestError(f"Limit must be at most {self.config['max_limit']}, got {request.limit}")

        self.stats = defaultdict(int)
        self.stats["start_time"] = time.time()
        self.logger.info(f"🚀 Starting scrape: '{request.search_query}' (limit {request.limit})")

        session = None
        try:
            session = self.session_factory(self.config)
            page = session.open_page()

            self._search(page, request)

            self._set_stage(ScrapeStage.DISCOVERING)
            listings = self.discovery.discover(page, request.limit)
            self.stats["listings_found"] = len(listings)
            self.logger.info(f"Collected {len(listings)} business listings")

            records = self._scrape_listings(session, request, listings)

            self._set_stage(ScrapeStage.DONE)
            duration = time.time() - self.stats["start_time"]
            self.logger.info(f"✅ Scraped {len(records)}/{len(listings)} businesses in {duration:.1f}s "
                             f"({self.stats['listing_errors']} listing errors)")
            return records

        except Exception as e:
            self._set_stage(ScrapeStage.FAILED)
            self.logger.error(f"❌ Scrape failed: {e}")
            raise
        finally:
            if session is not None:
                session.close()

    def _search(self, page, request):
        self._set_stage(ScrapeStage.NAVIGATING_SEARCH)
        try:
            page.goto(MAPS_HOME_URL)
        except Exception as e:
            raise SearchUnavailableError(f"Could not open Google Maps: {e}") from e

        if self.config["handle_consent"] and page.handle_consent():
            self.stats["consent_pages_handled"] += 1

        if not page.wait_for(SEARCH_BOX_SELECTOR, self.config["search_box_timeout"]):
            raise SearchUnavailableError(f"Search box did not appear within {self.config['search_box_timeout']}s")

        self.logger.info(f"Searching for: {request.search_query}")
        page.type_into(SEARCH_BOX_SELECTOR, request.search_query)
        self.pacer.typing_delay()
        page.press_enter(SEARCH_BOX_SELECTOR)

        if not page.wait_for(RESULTS_FEED_SELECTORS, self.config["results_timeout"]):
            self.logger.warning("Results feed did not appear; continuing with whatever is rendered")
        self.pacer.pause(self.config["results_load_wait"])

    def _scrape_listings(self, session, request, listings):
        records = []
        with tqdm(total=len(listings), desc="Scraping listings", unit="listing",
                  disable=not self.config["show_progress"]) as progress_bar:
            for position, listing in enumerate(listings, start=1):
                self.logger.info(f"Processing business {position}/{len(listings)}: {listing.name}")
                try:
                    record = self._scrape_listing(session, request, listing)
                except Exception as e:
                    self.stats["listing_errors"] += 1
                    self.logger.warning(f"Error processing business {position} ({listing.name}): {e}")
                else:
                    records.append(record)
                    self.stats["listings_scraped"] += 1
                    self.business_logger.info(json.dumps(record.to_dict(), ensure_ascii=False))
                finally:
                    progress_bar.update(1)

                if position < len(listings):
                    self.pacer.listing_delay()
        return records

    def _scrape_listing(self, session, request, listing):
        with session.listing_page() as page:
            self._set_stage(ScrapeStage.NAVIGATING_DETAIL)
            self._open_listing(page, request, listing)

            if not page.wait_for(DETAIL_READY_SELECTORS, self.config["detail_timeout"]):
                raise ListingNavigationError(f"Details panel did not load for '{listing.name}'", listing)
            if self.config["handle_consent"] and page.handle_consent():
                self.stats["consent_pages_handled"] += 1
            self.pacer.pause(self.config["detail_load_wait"])

            self._set_stage(ScrapeStage.EXTRACTING)
            record = self.extractor.extract(page.snapshot())

        self._set_stage(ScrapeStage.RECORDING)
        if record.name == SENTINEL:
            record = dataclasses.replace(record, name=listing.name)
        return record

    def _open_listing(self, page, request, listing):
        """Deep link when the listing has a URL, else re-run the search and click it"""
        try:
            if listing.url:
                page.goto(listing.url)
                return

            page.goto(MAPS_SEARCH_URL.format(query=quote(request.search_query)))
            page.wait_for(RESULTS_FEED_SELECTORS, self.config["results_timeout"])
            self.pacer.pause(self.config["results_load_wait"])
            for _ in range(listing.index // LISTINGS_PER_SCROLL):
                page.scroll_results(
                    fraction=self.config["scroll_fraction"],
                    steps=self.config["scroll_steps"],
                    step_ms=self.config["scroll_step_ms"],
                )
                self.pacer.pause(self.config["scroll_settle_time"])
            clicked = page.click_listing(listing.name, listing.index)
        except Exception as e:
            raise ListingNavigationError(f"Could not open '{listing.name}': {e}", listing) from e

        if not clicked:
            raise ListingNavigationError(f"Could not click listing #{listing.index} '{listing.name}'", listing)
