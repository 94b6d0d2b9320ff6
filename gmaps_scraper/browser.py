"""
Chrome session management and the page facade used by the scraper.

BrowserSession owns a single Chrome process. MapsPage wraps the Selenium
driver with the handful of primitives the discovery and extraction code
needs, so those layers never touch Selenium directly.
"""

import logging
import random
from contextlib import contextmanager

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.support.ui import WebDriverWait

from .config import LISTING_CARD_SELECTORS, LISTING_LINK_SELECTORS, LOGGER_NAME, SCROLL_CONTAINER_SELECTORS, USER_AGENTS
from .consent import ConsentHandler, click_element
from .exceptions import BrowserLaunchError
from .pacing import Pacer
from .snapshot import PageSnapshot

# JS Injection scripts to bypass detection
STEALTH_JS = """
// Override the webdriver property
Object.defineProperty(navigator, 'webdriver', {
  get: () => false,
});

// Override the permissions property
if (navigator.permissions) {
  const originalQuery = navigator.permissions.query;
  navigator.permissions.query = (parameters) => (
    parameters.name === 'notifications' ?
      Promise.resolve({ state: Notification.permission }) :
      originalQuery(parameters)
  );
}

Object.defineProperty(navigator, 'languages', {
  get: () => ['en-US', 'en'],
});

// Add Chrome-specific functions to simulate Chrome
window.chrome = {
  runtime: {},
  loadTimes: function() {},
  csi: function() {},
  app: {}
};
"""

# Resource types the scrape never needs
BLOCKED_URL_PATTERNS = ["*.png", "*.jpg", "*.jpeg", "*.gif", "*.webp", "*.svg", "*.woff", "*.woff2", "*.ttf", "*.mp4"]

# Async script: arguments are (container selectors, fraction, steps, step ms, callback)
SCROLL_RESULTS_JS = """
    const done = arguments[arguments.length - 1];
    const [selectors, fraction, steps, stepMs] = arguments;

    let container = null;
    for (const selector of selectors) {
        const element = document.querySelector(selector);
        if (element && element.scrollHeight > element.clientHeight) {
            container = element;
            break;
        }
    }
    if (!container) {
        container = document.scrollingElement || document.documentElement;
    }

    const viewport = window.innerHeight || container.clientHeight;
    const startY = container.scrollTop;
    const endY = Math.min(startY + viewport * fraction, container.scrollHeight - container.clientHeight);
    const stepSize = (endY - startY) / steps;

    let i = 0;
    function step() {
        i += 1;
        container.scrollTop = startY + stepSize * i;
        if (i >= steps) {
            done(container.scrollTop);
        } else {
            setTimeout(step, stepMs);
        }
    }
    if (steps > 0 && endY > startY) {
        step();
    } else {
        done(container.scrollTop);
    }
"""


def css_string(value):
    """Quote a value for use inside a CSS attribute selector"""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def pick_listing_element(named, positional, index):
    """Element to click for the feed entry at `index`

    A unique name match wins. Several businesses can share a name (chain
    branches), so duplicates are told apart by feed position.
    """
    if len(named) == 1:
        return named[0]
    if len(positional) > index:
        return positional[index]
    return None


class MapsPage:
    """One browser tab, as seen by the scraper"""

    def __init__(self, driver, consent_handler=None):
        self.driver = driver
        self.consent_handler = consent_handler
        self.logger = logging.getLogger(LOGGER_NAME)

    @property
    def current_url(self):
        return self.driver.current_url

    def goto(self, url):
        self.logger.debug(f"Navigating to {url}")
        self.driver.get(url)

    def handle_consent(self):
        if self.consent_handler is None:
            return False
        return self.consent_handler.handle_consent(self.driver)

    def wait_for(self, selectors, timeout):
        """True once any of the CSS selectors matches, False after `timeout` seconds"""
        if isinstance(selectors, str):
            selectors = [selectors]

        def any_present(driver):
            for selector in selectors:
                if driver.find_elements(By.CSS_SELECTOR, selector):
                    return selector
            return False

        try:
            matched = WebDriverWait(self.driver, timeout).until(any_present)
            self.logger.debug(f"Found element with selector: {matched}")
            return True
        except TimeoutException:
            return False

    def type_into(self, selector, text):
        element = self.driver.find_element(By.CSS_SELECTOR, selector)
        element.clear()
        element.send_keys(text)

    def press_enter(self, selector):
        self.driver.find_element(By.CSS_SELECTOR, selector).send_keys(Keys.ENTER)

    def evaluate(self, script, *args):
        return self.driver.execute_script(script, *args)

    def snapshot(self):
        return PageSnapshot.capture(self.driver)

    def scroll_results(self, fraction=0.7, steps=15, step_ms=100):
        """Smoothly scroll the results container; returns the new scroll offset"""
        return self.driver.execute_async_script(
            SCROLL_RESULTS_JS, SCROLL_CONTAINER_SELECTORS, fraction, steps, step_ms
        )

    def _first_matching(self, selectors, minimum=1):
        for selector in selectors:
            elements = self.driver.find_elements(By.CSS_SELECTOR, selector)
            if len(elements) >= minimum:
                return selector, elements
        return None, []

    def click_listing(self, name, index):
        """Open a feed entry by its aria-label name, or by position when the name is ambiguous"""
        named = []
        if name:
            quoted = css_string(name)
            _, named = self._first_matching([f"a.hfpxzc[aria-label={quoted}]", f"a[aria-label={quoted}]",
                                             f"div.Nv2PK[aria-label={quoted}]", f"div[aria-label={quoted}]"])
        selector, positional = self._first_matching(LISTING_LINK_SELECTORS[:1] + LISTING_CARD_SELECTORS,
                                                    minimum=index + 1)

        element = pick_listing_element(named, positional, index)
        if element is None:
            self.logger.debug(f"No element found for listing #{index} '{name}'")
            return False
        if not click_element(self.driver, element):
            return False
        self.logger.debug(f"Clicked listing #{index} '{name}' ({len(named)} name matches, cards: {selector})")
        return True


class BrowserSession:
    """A single Chrome process with anti-detection settings"""

    def __init__(self, config, pacer=None):
        self.config = config
        self.pacer = pacer or Pacer(config)
        self.logger = logging.getLogger(LOGGER_NAME)
        self.consent_handler = ConsentHandler(self.pacer) if config.get("handle_consent", True) else None
        self.driver = self._create_browser()
        self._main_handle = self.driver.current_window_handle

    def _create_browser(self):
        """Create a new browser instance with anti-detection measures"""
        options = Options()

        if self.config["headless"]:
            options.add_argument("--headless=new")
        options.add_argument("--window-size=1920,1080")

        # Security and performance settings
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-dev-shm-usage")

        # Anti-detection settings
        options.add_argument("--disable-blink-features=AutomationControlled")
        options.add_experimental_option("excludeSwitches", ["enable-automation"])
        options.add_experimental_option('useAutomationExtension', False)
        options.add_argument("--lang=en-US")
        options.add_argument("--disable-extensions")
        options.add_argument("--disable-infobars")
        options.add_argument("--disable-notifications")

        user_agent = random.choice(USER_AGENTS)
        options.add_argument(f"user-agent={user_agent}")

        prefs = {
            "credentials_enable_service": False,
            "profile.password_manager_enabled": False,
            "intl.accept_languages": "en-US,en",
        }
        if self.config["block_heavy_resources"]:
            prefs["profile.managed_default_content_settings.images"] = 2
        options.add_experimental_option("prefs", prefs)

        if self.config["user_data_dir"]:
            options.add_argument(f"--user-data-dir={self.config['user_data_dir']}")
        if self.config["proxy"]:
            options.add_argument(f"--proxy-server={self.config['proxy']}")
            self.logger.debug(f"Using proxy: {self.config['proxy']}")
        if self.config["chrome_binary"]:
            options.binary_location = self.config["chrome_binary"]

        service = Service(executable_path=self.config["driver_path"]) if self.config["driver_path"] else None

        try:
            if service:
                browser = webdriver.Chrome(service=service, options=options)
            else:
                browser = webdriver.Chrome(options=options)
        except WebDriverException as e:
            self.logger.error(f"WebDriverException during browser creation: {e}")
            if "unable to connect to renderer" in str(e).lower():
                self.logger.error("Browser renderer connection issue. Try updating Chrome/ChromeDriver or disabling headless.")
            raise BrowserLaunchError(f"Could not start Chrome: {e.msg or e}") from e

        try:
            browser.set_page_load_timeout(self.config["page_load_timeout"])
            browser.set_script_timeout(self.config["script_timeout"])
            browser.execute_cdp_cmd("Page.addScriptToEvaluateOnNewDocument", {"source": STEALTH_JS})
            if self.config["block_heavy_resources"]:
                browser.execute_cdp_cmd("Network.enable", {})
                browser.execute_cdp_cmd("Network.setBlockedURLs", {"urls": BLOCKED_URL_PATTERNS})
        except WebDriverException as e:
            browser.quit()
            raise BrowserLaunchError(f"Could not configure Chrome: {e.msg or e}") from e

        self.logger.debug(f"Browser instance created (headless={self.config['headless']}, UA={user_agent[:40]}...)")
        return browser

    def open_page(self):
        """The session's main tab"""
        return MapsPage(self.driver, self.consent_handler)

    @contextmanager
    def listing_page(self):
        """A fresh tab for one listing; closed again however the block exits"""
        self.driver.switch_to.new_window("tab")
        try:
            yield MapsPage(self.driver, self.consent_handler)
        finally:
            try:
                if self.driver.current_window_handle != self._main_handle:
                    self.driver.close()
            except WebDriverException as e:
                self.logger.warning(f"Error closing listing tab: {e}")
            self.driver.switch_to.window(self._main_handle)

    def close(self):
        if self.driver is None:
            return
        try:
            self.driver.quit()
            self.logger.debug("Browser closed")
        except Exception as e:
            self.logger.warning(f"Error closing browser: {e}")
        finally:
            self.driver = None
