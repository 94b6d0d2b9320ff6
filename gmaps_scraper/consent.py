import logging

from selenium.common.exceptions import StaleElementReferenceException, TimeoutException
from selenium.webdriver.common.action_chains import ActionChains
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from .config import LOGGER_NAME

CONSENT_URL_PATTERNS = [
    {"url_pattern": "consent.google.com", "severity": "high"},
    {"url_pattern": "/maps/preview/consent", "severity": "medium"},
    {"url_pattern": "_/consentview", "severity": "medium"},
    {"url_pattern": "consent_flow", "severity": "medium"},
]

ACCEPT_SELECTORS = [
    "button[aria-label='Accept all']",
    "button#L2AGLb",
    "button[jsname='j6LnEc']",
    "button[jsname='higCR']",
    "//button[.//span[contains(text(), 'Accept all')]]",
    "//button[.//span[contains(text(), 'Tout accepter')]]",
    "//button[.//span[contains(text(), 'Alle akzeptieren')]]",
    "//button[.//span[contains(text(), 'Aceptar todo')]]",
    "//button[.//span[contains(text(), 'Accetta tutto')]]",
    "//button[.//span[contains(text(), 'I agree')]]",
    "//button[normalize-space()='Accept all']",
    "//button[normalize-space()='I agree']",
    "//div[@role='dialog']//button[contains(., 'Accept')]",
]

COOKIE_BANNER_SELECTORS = [
    "#onetrust-accept-btn-handler",
    "#CybotCookiebotDialogBodyButtonAccept",
    "button[data-cookiebanner='accept_all']",
    "div[aria-label*='cookie'] button[aria-label*='Accept']",
    "form[action*='consent'] button",
]

# Last resort: set the consent cookie and click anything that looks like "accept"
CONSENT_BYPASS_JS = """
    document.cookie = "CONSENT=YES+; expires=Thu, 01 Jan 2030 00:00:00 UTC; path=/;";
    var buttons = document.querySelectorAll('button, input[type="button"]');
    for (var i = 0; i < buttons.length; i++) {
        var text = (buttons[i].textContent || '').toLowerCase();
        if (text.includes('accept') || text.includes('agree')) {
            buttons[i].click();
            return true;
        }
    }
    return false;
"""


class ConsentHandler:
    """Clicks through Google consent pages and cookie banners"""

    def __init__(self, pacer, find_timeout=2):
        self.pacer = pacer
        self.find_timeout = find_timeout
        self.logger = logging.getLogger(LOGGER_NAME)

    def is_consent_page(self, url, title=""):
        title = (title or "").lower()
        return any(p["url_pattern"] in (url or "") for p in CONSENT_URL_PATTERNS) or "consent" in title

    def handle_consent(self, driver):
        """Returns True if a consent page or banner was dismissed"""
        try:
            current_url = driver.current_url
            if self.is_consent_page(current_url, driver.title):
                severity = next((p["severity"] for p in CONSENT_URL_PATTERNS if p["url_pattern"] in current_url), "low")
                self.logger.info(f"⚠️ Detected consent page ({severity}): {current_url}")

                if self._try_click_elements(driver, ACCEPT_SELECTORS, "consent accept button"):
                    self.pacer.human_delay((1.5, 2.5))
                    return True

                if driver.execute_script(CONSENT_BYPASS_JS):
                    self.logger.info("Consent accepted through JavaScript fallback")
                    self.pacer.pause(1.5)
                    return True
                self.logger.warning("Could not dismiss consent page")
                return False

            if self._try_click_elements(driver, COOKIE_BANNER_SELECTORS, "cookie banner button"):
                self.pacer.human_delay((0.5, 1.0))
                return True
            return False

        except Exception as e:
            # Consent problems surface later as a missing search box or detail panel
            self.logger.warning(f"Error in consent handling: {e}")
            return False

    def _try_click_elements(self, driver, selectors, description):
        """Try clicking elements matching a list of selectors (XPath or CSS)"""
        for selector in selectors:
            find_method = By.XPATH if selector.startswith("/") or selector.startswith("(") else By.CSS_SELECTOR
            try:
                elements = WebDriverWait(driver, self.find_timeout).until(
                    EC.presence_of_all_elements_located((find_method, selector))
                )
            except TimeoutException:
                continue
            except Exception as find_err:
                self.logger.debug(f"Error finding {description} with selector {selector}: {find_err}")
                continue

            for element in elements:
                try:
                    if not (element.is_displayed() and element.is_enabled()):
                        continue
                except StaleElementReferenceException:
                    break
                if click_element(driver, element):
                    self.logger.info(f"Clicked {description}: {selector}")
                    return True
        return False


def click_element(driver, element):
    """Click with ActionChains, then a plain click, then a JS click"""
    logger = logging.getLogger(LOGGER_NAME)
    try:
        driver.execute_script("arguments[0].scrollIntoView({block: 'center'});", element)
        ActionChains(driver).move_to_element(element).click().perform()
        return True
    except StaleElementReferenceException:
        return False
    except Exception as click_err:
        logger.debug(f"ActionChains click failed: {click_err}. Trying regular click.")
    try:
        element.click()
        return True
    except Exception as regular_click_err:
        logger.debug(f"Regular click failed: {regular_click_err}. Trying JS click.")
    try:
        driver.execute_script("arguments[0].click();", element)
        return True
    except Exception as js_click_err:
        logger.debug(f"JS click also failed: {js_click_err}")
        return False
