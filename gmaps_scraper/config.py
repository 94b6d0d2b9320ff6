"""Default scraper configuration, Google Maps URLs and selector tables."""

# --- Global Constants ---
VERSION = "1.0.0"
LOGGER_NAME = "GoogleMapsScraper"
BUSINESS_LOGGER_NAME = "BusinessData"

SENTINEL = "N/A"

MAPS_HOME_URL = "https://www.google.com/maps"
MAPS_SEARCH_URL = "https://www.google.com/maps/search/{query}"

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36 Edg/124.0.0.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
]

# Search surface
SEARCH_BOX_SELECTOR = "#searchboxinput"
RESULTS_FEED_SELECTORS = [
    "div[role='feed']",
    "div[role='main'] div.m6QErb",
    "div.m6QErb[role='region']",
    "div.ecceSd",
    "div.section-result-content",
]

# Listing anchors in the results feed, most specific first. Only the first
# selector that matches anything is used per harvest.
LISTING_LINK_SELECTORS = [
    "a.hfpxzc",
    ".Nv2PK a[href*='/maps/place/']",
    "div[role='article'] a[data-value]",
    "a[jsaction*='mouseup']",
    "a[aria-label][href*='/maps/place/']",
]
# Result cards without a usable link; identified by position in the feed
LISTING_CARD_SELECTORS = [
    "div.Nv2PK",
    "div.V0h1Ob-haAclf",
    "div[role='article']",
]
LISTING_HEADING_SELECTOR = "div[role='heading'], h3, h2, h1"

# Scrollable results container candidates (checked in-page, in order)
SCROLL_CONTAINER_SELECTORS = [
    "div[role='feed']",
    "div.m6QErb[role='region']",
    "div.m6QErb",
    "div.section-scrollbox",
    "div.ecceSd",
    ".m6QErb-tempH0gTDc",
    ".DxyBCb",
    ".kA9KIf",
    "[aria-label='Results for']",
    "div[jsaction*='scroll']",
]

# A place page counts as loaded once any of these is present
DETAIL_READY_SELECTORS = [
    "h1",
    "h1.DUwDvf",
    "div[role='main'] div[role='heading']",
    "button[data-item-id='address']",
    "div.rogA2c",
    "div.LBgpqf",
]

# Default configuration, overridden per scrape
DEFAULT_CONFIG = {
    # Browser
    "headless": True,
    "driver_path": None,
    "chrome_binary": None,
    "user_data_dir": None,
    "proxy": None,
    "page_load_timeout": 60,
    "script_timeout": 60,
    "block_heavy_resources": True, # Skip images and fonts
    # Human-like pacing
    "randomize_delays": True,
    "typing_delay_bounds": (0.8, 2.0),
    "listing_delay_bounds": (2.0, 5.0),
    # Search page
    "search_box_timeout": 15,
    "results_timeout": 15,
    "results_load_wait": 3.0,
    "handle_consent": True,
    # Detail page
    "detail_timeout": 20,
    "detail_load_wait": 2.0,
    # Discovery
    "max_scroll_attempts": 30,
    "max_consecutive_no_new": 5,
    "scroll_settle_time": 2.0,
    "scroll_base_delay": 3.0,
    "scroll_delay_increment": 0.5,
    "scroll_fraction": 0.7, # Share of the viewport scrolled per attempt
    "scroll_steps": 15,
    "scroll_step_ms": 100,
    # Requests
    "default_limit": 20,
    "max_limit": 120,
    # Output
    "show_progress": False,
}


def build_config(overrides=None, **kwargs):
    """Return a copy of DEFAULT_CONFIG with the given overrides applied."""
    config = dict(DEFAULT_CONFIG)
    updates = dict(overrides or {})
    updates.update(kwargs)
    unknown = sorted(set(updates) - set(DEFAULT_CONFIG))
    if unknown:
        raise ValueError(f"Unknown configuration option(s): {', '.join(unknown)}")
    config.update(updates)

    for key in ("typing_delay_bounds", "listing_delay_bounds"):
        low, high = config[key]
        if low < 0 or high < low:
            raise ValueError(f"Invalid delay bounds for {key}: {config[key]!r}")
        config[key] = (float(low), float(high))
    if not 0 < config["scroll_fraction"] <= 1:
        raise ValueError("scroll_fraction must be in (0, 1]")
    if config["max_scroll_attempts"] < 1 or config["max_consecutive_no_new"] < 1:
        raise ValueError("Scroll attempt limits must be positive")
    return config


def no_delay_config(**overrides):
    """Configuration with every pacing delay set to zero (tests, dry runs)."""
    zero = {
        "randomize_delays": False,
        "typing_delay_bounds": (0, 0),
        "listing_delay_bounds": (0, 0),
        "results_load_wait": 0,
        "detail_load_wait": 0,
        "scroll_settle_time": 0,
        "scroll_base_delay": 0,
        "scroll_delay_increment": 0,
        "scroll_step_ms": 0,
    }
    zero.update(overrides)
    return build_config(zero)
