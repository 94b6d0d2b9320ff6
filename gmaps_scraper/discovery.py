import logging
from urllib.parse import urljoin

from .config import (LISTING_CARD_SELECTORS, LISTING_HEADING_SELECTOR, LISTING_LINK_SELECTORS,
                     LOGGER_NAME, MAPS_HOME_URL)
from .models import ListingReference
from .pacing import Pacer
from .snapshot import element_attr, element_lines, element_text


def listing_name(element):
    """Business name for a feed entry: aria-label, then nearby heading, then first line of text"""
    name = element_attr(element, "aria-label")
    if name:
        return name
    # A card is its own container; links use the card around them
    container = element if element.name == "div" else (element.find_parent("div") or element)
    heading = container.select_one(LISTING_HEADING_SELECTOR)
    if heading is not None and element_text(heading):
        return element_text(heading)
    lines = element_lines(element) or element_lines(container)
    return lines[0] if lines else ""


def _first_non_empty(snapshot, selectors):
    for selector in selectors:
        elements = snapshot.select(selector)
        if elements:
            return selector, elements
    return None, []


def harvest_listings(snapshot):
    """Listing references currently rendered in the results feed

    Uses the first selector that matches anything; selectors are never merged.
    Cards without a place link fall back to their position in the feed.
    """
    _, anchors = _first_non_empty(snapshot, LISTING_LINK_SELECTORS)
    base_url = snapshot.url or MAPS_HOME_URL
    listings = []
    if anchors:
        for index, anchor in enumerate(anchors):
            href = element_attr(anchor, "href")
            url = urljoin(base_url, href) if href else ""
            name = listing_name(anchor)
            if url and name and "/maps/place/" in url:
                listings.append(ListingReference(name=name, url=url, index=index))
        return listings

    _, cards = _first_non_empty(snapshot, LISTING_CARD_SELECTORS)
    for index, card in enumerate(cards):
        name = listing_name(card)
        if name:
            listings.append(ListingReference(name=name, url=None, index=index))
    return listings


class ListingDiscoveryEngine:
    """Scrolls the results feed and collects unique listing references

    Stops when `limit` references are collected, after `max_scroll_attempts`
    scrolls, or after `max_consecutive_no_new` harvests that add nothing.
    """

    def __init__(self, config, pacer=None):
        self.config = config
        self.pacer = pacer or Pacer(config)
        self.logger = logging.getLogger(LOGGER_NAME)

    def discover(self, page, limit):
        max_scroll_attempts = self.config["max_scroll_attempts"]
        max_no_new = self.config["max_consecutive_no_new"]

        collected = []
        seen_locators = set()
        scroll_attempts = 0
        consecutive_no_new = 0

        while (len(collected) < limit and scroll_attempts < max_scroll_attempts
               and consecutive_no_new < max_no_new):
            # Let the feed settle before reading it
            self.pacer.pause(self.config["scroll_settle_time"])

            try:
                candidates = harvest_listings(page.snapshot())
            except Exception as e:
                self.logger.warning(f"Error harvesting listings after scroll #{scroll_attempts}: {e}")
                candidates = []

            added = 0
            for listing in candidates:
                if listing.locator in seen_locators:
                    continue
                seen_locators.add(listing.locator)
                collected.append(listing)
                added += 1
                if len(collected) >= limit:
                    break

            self.logger.info(f"Found {len(collected)}/{limit} listings after scroll #{scroll_attempts + 1}")

            if added:
                consecutive_no_new = 0
            else:
                consecutive_no_new += 1
                self.logger.debug(f"No new listings for {consecutive_no_new} consecutive scrolls")

            if len(collected) < limit:
                try:
                    page.scroll_results(
                        fraction=self.config["scroll_fraction"],
                        steps=self.config["scroll_steps"],
                        step_ms=self.config["scroll_step_ms"],
                    )
                except Exception as e:
                    self.logger.warning(f"Error scrolling results feed: {e}")
                scroll_attempts += 1
                self.pacer.scroll_backoff(scroll_attempts)

        if len(collected) < limit:
            reason = "stagnation" if consecutive_no_new >= max_no_new else "scroll limit"
            self.logger.info(f"Discovery stopped by {reason} with {len(collected)}/{limit} listings")
        return collected[:limit]
