"""Google Maps business listing scraper."""

from .config import VERSION, build_config, no_delay_config
from .exceptions import (BrowserLaunchError, InvalidRequestError, ListingNavigationError, ScraperError,
                         SearchUnavailableError, SessionError, UnsupportedFormatError)
from .export import export_records, save_results
from .models import BusinessDetailRecord, ListingReference, ScrapeRequest
from .scraper import GoogleMapsScraper, ScrapeStage

__version__ = VERSION
