"""Exception types raised by the scraper."""


class ScraperError(Exception):
    """Base class for all scraper errors"""


class InvalidRequestError(ScraperError, ValueError):
    """The scrape request is missing parameters or has an invalid limit"""


class SessionError(ScraperError):
    """A fault that ends the whole scrape session"""


class BrowserLaunchError(SessionError):
    """Chrome could not be started"""


class SearchUnavailableError(SessionError):
    """The Maps search box never became interactive"""


class ListingNavigationError(ScraperError):
    """A single listing could not be opened; the batch continues without it"""

    def __init__(self, message, listing=None):
        super().__init__(message)
        self.listing = listing


class UnsupportedFormatError(ScraperError, ValueError):
    """Export was requested in a format we do not encode"""

    def __init__(self, fmt):
        super().__init__(f"Unsupported export format: {fmt!r}")
        self.format = fmt
