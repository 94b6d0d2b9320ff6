import pytest

from gmaps_scraper.config import SENTINEL
from gmaps_scraper.fields import ExtractionRule, FieldResolver, clean_text, strip_label, valid_rating
from gmaps_scraper.snapshot import PageSnapshot


def make_snapshot(body):
    return PageSnapshot(f"<html><body>{body}</body></html>")


def test_first_strategy_wins_and_later_strategies_are_not_called():
    calls = []

    def first(snapshot, resolved):
        calls.append("first")
        return "Cafe One"

    def second(snapshot, resolved):
        calls.append("second")
        return "Other"

    resolver = FieldResolver([ExtractionRule("name", [first, second])])

    assert resolver.resolve("name", make_snapshot("")) == "Cafe One"
    assert calls == ["first"]


def test_rejected_value_continues_the_cascade():
    rule = ExtractionRule("rating", [lambda s, r: "4.5 stars", lambda s, r: "9.1", lambda s, r: "4.7"],
                          validator=valid_rating)
    resolver = FieldResolver([rule])

    assert resolver.resolve("rating", make_snapshot("")) == "4.7"


def test_blank_and_raising_strategies_count_as_absent():
    def broken(snapshot, resolved):
        raise AttributeError("layout changed")

    rule = ExtractionRule("phone", [broken, lambda s, r: "   ", lambda s, r: None, lambda s, r: " (206)  555-0100 "])
    resolver = FieldResolver([rule])

    assert resolver.resolve("phone", make_snapshot("")) == "(206) 555-0100"


def test_nothing_found_returns_sentinel():
    resolver = FieldResolver()
    snapshot = make_snapshot("<div>nothing to see</div>")

    for field in resolver.fields:
        assert resolver.resolve(field, snapshot) == SENTINEL
    assert resolver.resolve("unknown", snapshot) == SENTINEL


def test_resolved_context_is_read_only():
    seen = {}

    def peek(snapshot, resolved):
        seen["website"] = resolved["website"]
        resolved["website"] = "overwritten"

    resolver = FieldResolver([ExtractionRule("category", [peek])])
    context = {"website": "example.com"}

    assert resolver.resolve("category", make_snapshot(""), context) == SENTINEL
    assert seen == {"website": "example.com"}
    assert context == {"website": "example.com"}


def test_default_rules_on_full_place_page(detail_snapshot):
    resolver = FieldResolver()

    assert resolver.resolve("name", detail_snapshot) == "Blue Bottle Coffee"
    assert resolver.resolve("address", detail_snapshot) == "123 Pike St, Seattle, WA 98101"
    assert resolver.resolve("phone", detail_snapshot) == "(206) 555-0100"
    assert resolver.resolve("website", detail_snapshot) == "example-coffee.com"
    assert resolver.resolve("rating", detail_snapshot) == "4.5"
    assert resolver.resolve("reviews", detail_snapshot) == "1,234"
    assert resolver.resolve("hours", detail_snapshot) == "Monday: 7 AM-6 PM; Tuesday: 7 AM-6 PM"
    assert resolver.resolve("email", detail_snapshot) == "hello@example-coffee.com"
    assert resolver.resolve("category", detail_snapshot) == "Coffee shop"
    assert resolver.resolve("price_range", detail_snapshot) == "$$"


def test_address_falls_back_to_aria_label_without_prefix():
    snapshot = make_snapshot('<button data-item-id="address" aria-label="Address: 1 Main St, Springfield"></button>')

    assert FieldResolver().resolve("address", snapshot) == "1 Main St, Springfield"


def test_phone_from_tel_link():
    snapshot = make_snapshot('<a href="tel:+1-555-0100"></a>')

    assert FieldResolver().resolve("phone", snapshot) == "+1-555-0100"


def test_website_skips_google_links_and_uses_href():
    snapshot = make_snapshot('<a data-item-id="authority" href="https://tartine.com/"></a>')

    assert FieldResolver().resolve("website", snapshot) == "https://tartine.com/"


def test_rating_out_of_range_is_rejected():
    snapshot = make_snapshot('<span class="ceJTW">7.5</span><div class="F7nice"><span aria-hidden="true">4.1</span></div>')

    assert FieldResolver().resolve("rating", snapshot) == "4.1"


def test_reviews_from_page_text_when_number_follows_label():
    snapshot = make_snapshot("<div>Reviews 87</div>")

    assert FieldResolver().resolve("reviews", snapshot) == "87"


@pytest.mark.parametrize("text, expected", [
    ("<div>12345 reviews</div>", "12345"),
    ("<div>Rated by 1,234 reviews</div>", "1,234"),
    ("<div>Reviews 12345</div>", "12345"),
])
def test_review_counts_are_read_whole(text, expected):
    assert FieldResolver().resolve("reviews", make_snapshot(text)) == expected


def test_email_skips_image_names():
    snapshot = make_snapshot("<div>logo@2x.png</div><div>Write to info@bakery.co.uk.</div>")

    assert FieldResolver().resolve("email", snapshot) == "info@bakery.co.uk"


def test_category_keeps_last_acceptable_element_and_skips_menu():
    snapshot = make_snapshot(
        '<a class="CsEnBe">Bakery</a><a class="CsEnBe">Cafe</a><a class="CsEnBe">Menu</a>'
        '<a class="CsEnBe">https://bakery.example</a>'
    )

    assert FieldResolver().resolve("category", snapshot) == "Cafe"


def test_category_from_labelled_page_text():
    snapshot = make_snapshot("<div>Type: Italian restaurant</div>")

    assert FieldResolver().resolve("category", snapshot) == "Italian restaurant"


def test_attributes_exclude_values_of_other_fields():
    snapshot = make_snapshot(
        '<div class="q5X0Ue">Wheelchair accessible</div>'
        '<div class="q5X0Ue">Cafe</div>'
        '<div class="q5X0Ue">Wheelchair accessible</div>'
        '<div class="q5X0Ue">Outdoor seating</div>'
    )
    resolved = {"name": "Cafe Uno", "category": "Cafe"}

    assert FieldResolver().resolve("attributes", snapshot, resolved) == "Wheelchair accessible, Outdoor seating"


def test_text_helpers():
    assert clean_text("  Open   now ") == "Open now"
    assert clean_text(None) == ""
    assert strip_label("Phone: 555-0100", "Phone:") == "555-0100"
    assert strip_label("555-0100", "Phone:") == "555-0100"
