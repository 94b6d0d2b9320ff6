"""
Field resolution for Google Maps place pages.

Every output field owns an ExtractionRule: an ordered list of independent
strategies, each a function ``(snapshot, resolved) -> str | None``. The
resolver walks the list in priority order and keeps the first non-blank value
that passes the rule's validator. ``resolved`` is a read-only view of the
fields already resolved for the same page (used to keep them out of the
category and attributes values).

Selectors target the 2024/2025 Maps layout and drift often; adding a new
layout is a matter of inserting a strategy in the table below.
"""

import logging
import re
from types import MappingProxyType

from .config import LOGGER_NAME, SENTINEL
from .snapshot import element_attr, element_lines, element_text

RATING_PATTERN = re.compile(r"^\d(\.\d)?$")
REVIEW_COUNT_PATTERN = re.compile(r"^(\d{1,3}(,\d{3})*|\d+)$")
REVIEWS_AFTER_NUMBER = re.compile(r"(?<![\d,])(\d{1,3}(?:,\d{3})+|\d+)\s*reviews?", re.IGNORECASE)
REVIEWS_BEFORE_NUMBER = re.compile(r"reviews?[^0-9]*(\d{1,3}(?:,\d{3})+|\d+)(?!\d)", re.IGNORECASE)
EMAIL_PATTERN = re.compile(r"[\w.-]+@[\w.-]+\.\w+")
ASSET_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg")
HOURS_STATUS_PATTERN = re.compile(
    r"\b(Open 24 hours|(?:Open|Closed|Closes soon|Opens soon)\s*[⋅·]\s*(?:Closes|Opens)\s+[^\n]+)"
)
CATEGORY_PREFIX_PATTERNS = [
    re.compile(r"Category:\s*([^.,;\n]+)", re.IGNORECASE),
    re.compile(r"Type:\s*([^.,;\n]+)", re.IGNORECASE),
]
# Icon fonts render as private-use code points inside button text
PRIVATE_USE = re.compile(r"[\ue000-\uf8ff]")

MAX_CATEGORY_LENGTH = 30
MAX_ATTRIBUTE_LENGTH = 50


def clean_text(value):
    """Trim, drop icon glyphs and collapse whitespace"""
    if value is None:
        return ""
    return " ".join(PRIVATE_USE.sub(" ", str(value)).split())


def strip_label(value, *prefixes):
    """Remove a leading 'Address:'-style label"""
    value = clean_text(value)
    for prefix in prefixes:
        if value.lower().startswith(prefix.lower()):
            return value[len(prefix):].strip()
    return value


class ExtractionRule:
    """Ordered strategies for one field, plus an optional validator"""

    def __init__(self, field, strategies, validator=None):
        self.field = field
        self.strategies = list(strategies)
        self.validator = validator

    def accepts(self, value):
        return self.validator is None or bool(self.validator(value))

    def __repr__(self):
        return f"ExtractionRule({self.field!r}, {len(self.strategies)} strategies)"


# --- Strategy factories ---

def _named(strategy, name):
    strategy.__name__ = name
    return strategy


def located(selector, read=element_text):
    """First element matching `selector`, read with `read`"""
    def strategy(snapshot, resolved):
        element = snapshot.select_one(selector)
        if element is None:
            return None
        return read(element)
    return _named(strategy, f"located({selector})")


def panel_value(*label_prefixes, prefer_href=None):
    """Reader for the info-panel buttons (address, phone, website)

    Google renders the value in an inner .Io6YTe div; older layouts only expose
    the element text or an 'Address: ...' aria-label.
    """
    def read(element):
        inner = element.select_one(".Io6YTe")
        if inner is not None and element_text(inner):
            return element_text(inner)
        if prefer_href:
            href = element_attr(element, "href")
            value = prefer_href(href)
            if value:
                return value
        text = strip_label(element_text(element), *label_prefixes)
        if text:
            return text
        return strip_label(element_attr(element, "aria-label"), *label_prefixes)
    return read


def _tel_href(href):
    if href.startswith("tel:"):
        return href[len("tel:"):]
    return None


def _external_href(href):
    if href and "google.com" not in href:
        return href
    return None


def first_line(selector):
    def strategy(snapshot, resolved):
        lines = element_lines(snapshot.select_one(selector))
        return lines[0] if lines else None
    return _named(strategy, f"first_line({selector})")


def pattern_in_elements(selector, pattern):
    """First regex group found in the text of any element matching `selector`"""
    def strategy(snapshot, resolved):
        for element in snapshot.select(selector):
            match = pattern.search(element_text(element))
            if match:
                return match.group(1)
        return None
    return _named(strategy, f"pattern_in_elements({selector})")


def pattern_in_attribute(selector, attribute, pattern):
    def strategy(snapshot, resolved):
        for element in snapshot.select(selector):
            match = pattern.search(element_attr(element, attribute))
            if match:
                return match.group(1)
        return None
    return _named(strategy, f"pattern_in_attribute({selector}@{attribute})")


def pattern_in_page_text(pattern, group=1):
    """Scan the whole visible text; weakest strategy, kept last"""
    def strategy(snapshot, resolved):
        match = pattern.search(snapshot.text)
        return match.group(group) if match else None
    return _named(strategy, f"pattern_in_page_text({pattern.pattern[:30]})")


# --- Field specific strategies ---

def short_rating_span(snapshot, resolved):
    """Any short span that reads like a 0-5 rating"""
    for span in snapshot.select("span"):
        text = element_text(span)
        if len(text) <= 3 and RATING_PATTERN.match(text) and float(text) <= 5:
            return text
    return None


def hours_table(selector):
    def strategy(snapshot, resolved):
        table = snapshot.select_one(selector)
        if table is None:
            return None
        rows = []
        for row in table.select("tr"):
            day = row.select_one(".ylH6lf, .x4hIce")
            hours = row.select_one(".mxowUb, .G8aQO")
            if day is None or hours is None:
                cells = row.select("td")
                if len(cells) < 2:
                    continue
                day, hours = cells[0], cells[1]
            day_text, hours_text = element_text(day), element_text(hours)
            if day_text and hours_text:
                rows.append(f"{day_text}: {hours_text}")
        return "; ".join(rows) or None
    return _named(strategy, f"hours_table({selector})")


def text_or_label(element):
    return element_text(element) or element_attr(element, "aria-label")


def page_email(snapshot, resolved):
    for match in EMAIL_PATTERN.finditer(snapshot.text):
        candidate = match.group(0).rstrip(".")
        if not candidate.lower().endswith(ASSET_SUFFIXES):
            return candidate
    return None


def category_elements(selector):
    """Last element under `selector` whose text looks like a category label"""
    def strategy(snapshot, resolved):
        website = resolved.get("website")
        category = None
        for element in snapshot.select(selector):
            text = element_text(element)
            if (text and len(text) < MAX_CATEGORY_LENGTH and "http" not in text and "@" not in text
                    and not text[0].isdigit() and text != "Menu" and text != website
                    and "Phone:" not in text):
                category = text
        return category
    return _named(strategy, f"category_elements({selector})")


def price_text(element):
    text = element_text(element).split("Reported by")[0].strip()
    return text or strip_label(element_attr(element, "aria-label"), "Price:")


ATTRIBUTE_SELECTORS = [
    ".RcCsl .AeaXub .Io6YTe span",
    ".ggc0ld .Io6YTe",
    ".q5X0Ue",
    "div.PODJx",
]
ATTRIBUTE_EXCLUDED_FIELDS = ("name", "address", "phone", "website", "category")


def attribute_texts(snapshot, resolved):
    """Service options and badges, minus anything already reported in another field"""
    excluded = {resolved.get(field) for field in ATTRIBUTE_EXCLUDED_FIELDS}
    attributes = []
    for selector in ATTRIBUTE_SELECTORS:
        for element in snapshot.select(selector):
            text = clean_text(element_text(element))
            if text and text not in excluded and len(text) < MAX_ATTRIBUTE_LENGTH and text not in attributes:
                attributes.append(text)
    return ", ".join(attributes) or None


# --- Validators ---

def valid_rating(value):
    return bool(RATING_PATTERN.match(value)) and float(value) <= 5


def valid_review_count(value):
    return bool(REVIEW_COUNT_PATTERN.match(value))


def build_default_rules():
    """The strategy table, one rule per output field, in resolution order"""
    address_value = panel_value("Address:")
    phone_value = panel_value("Phone:", prefer_href=_tel_href)
    website_value = panel_value("Website:", prefer_href=_external_href)

    return [
        ExtractionRule("name", [
            located("h1.fontHeadlineLarge"),
            located("div[role='main'] div[role='heading']"),
            located("h1.DUwDvf"),
            located("h1.x3AX1-LfntMc-header-title-title"),
            located("div.x3AX1-LfntMc-header-title-title"),
            located("div.qBF1Pd-haAclf"),
            first_line("h1"),
        ]),
        ExtractionRule("address", [
            located("button[data-item-id='address']", address_value),
            located("button[jsaction*='address']", address_value),
            located("button[aria-label*='Address']", address_value),
            located("button.CsEnBe[aria-label]", address_value),
            located("div[role='button'][aria-label*='Address']", address_value),
        ]),
        ExtractionRule("phone", [
            located("button[data-item-id^='phone:tel:']", phone_value),
            located("button[aria-label*='Phone']", phone_value),
            located("div[role='button'][aria-label*='Phone']", phone_value),
            located("a[data-item-id^='phone']", phone_value),
            located("a[href^='tel:']", phone_value),
        ]),
        ExtractionRule("website", [
            located("a[data-item-id='authority']", website_value),
            located("a[aria-label*='website']", website_value),
            located("a[aria-label*='Website']", website_value),
            located("a[href^='https://'][data-item-id]", website_value),
            located("div[role='button'][aria-label*='website']", website_value),
        ]),
        ExtractionRule("rating", [
            located("span.ceJTW"),
            located("span.ODSEW-ShBeI-H1e3jb"),
            located("span[aria-hidden='true'][role='img']"),
            located("div.F7nice span[aria-hidden='true']"),
            located("div.F7nice"),
            short_rating_span,
        ], validator=valid_rating),
        ExtractionRule("reviews", [
            pattern_in_elements("span.F7nice, div.F7nice, div.review-score", REVIEWS_AFTER_NUMBER),
            pattern_in_attribute("[aria-label*='review']", "aria-label", REVIEWS_AFTER_NUMBER),
            pattern_in_page_text(REVIEWS_AFTER_NUMBER),
            pattern_in_page_text(REVIEWS_BEFORE_NUMBER),
        ], validator=valid_review_count),
        ExtractionRule("hours", [
            hours_table("table.eK4R0e"),
            hours_table("table.WgFkxc"),
            hours_table("div[role='region'][aria-label*='hour']"),
            located(".OMl5r", text_or_label),
            located(".VaxuYe", text_or_label),
            located(".G8aQO", text_or_label),
            located("[aria-label*='hour']", text_or_label),
            pattern_in_page_text(HOURS_STATUS_PATTERN),
        ]),
        ExtractionRule("email", [
            page_email,
        ]),
        ExtractionRule("category", [
            category_elements("a.CsEnBe"),
            category_elements("button[jsaction*='pane.rating.category']"),
            category_elements("button.DkEaL"),
            category_elements("span[jsaction*='category']"),
            category_elements("button[aria-label*='categor']"),
        ] + [pattern_in_page_text(pattern) for pattern in CATEGORY_PREFIX_PATTERNS]),
        ExtractionRule("price_range", [
            located(".MNVeJb", price_text),
            located("span.mgr77e", price_text),
            located("span[aria-label*='Price']", price_text),
        ]),
        ExtractionRule("attributes", [
            attribute_texts,
        ]),
    ]


class FieldResolver:
    """Resolves one field at a time against a page snapshot. Never raises."""

    def __init__(self, rules=None):
        self.logger = logging.getLogger(LOGGER_NAME)
        self.rules = {}
        for rule in (rules if rules is not None else build_default_rules()):
            self.rules[rule.field] = rule

    @property
    def fields(self):
        return list(self.rules)

    def resolve(self, field, snapshot, resolved=None):
        """Return the first accepted value for `field`, or the sentinel"""
        rule = self.rules.get(field)
        if rule is None:
            self.logger.debug(f"No extraction rule for field '{field}'")
            return SENTINEL
        context = MappingProxyType(dict(resolved or {}))

        for priority, strategy in enumerate(rule.strategies):
            name = getattr(strategy, "__name__", repr(strategy))
            try:
                value = clean_text(strategy(snapshot, context))
            except Exception as e:
                self.logger.debug(f"Strategy {name} for '{field}' failed: {e}")
                continue
            if not value:
                continue
            if not rule.accepts(value):
                self.logger.debug(f"Rejected '{value}' for '{field}' from {name}")
                continue
            self.logger.debug(f"Resolved '{field}' via strategy #{priority} {name}")
            return value
        return SENTINEL
