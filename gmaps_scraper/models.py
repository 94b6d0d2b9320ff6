"""Data types passed between discovery, extraction and export."""

from dataclasses import dataclass, fields
from typing import Optional

from .config import DEFAULT_CONFIG, SENTINEL
from .exceptions import InvalidRequestError

# Attribute name -> serialised key, in export column order
RECORD_FIELDS = [
    ("name", "name"),
    ("address", "address"),
    ("phone", "phone"),
    ("website", "website"),
    ("email", "email"),
    ("rating", "rating"),
    ("reviews", "reviews"),
    ("hours", "hours"),
    ("category", "category"),
    ("price_range", "priceRange"),
    ("attributes", "attributes"),
]
EXPORT_FIELDS = [key for _, key in RECORD_FIELDS]


@dataclass(frozen=True)
class ScrapeRequest:
    """What to search for and how many listings to return"""
    subject: str
    location: str
    limit: int = DEFAULT_CONFIG["default_limit"]

    def __post_init__(self):
        subject = (self.subject or "").strip() if isinstance(self.subject, str) else ""
        location = (self.location or "").strip() if isinstance(self.location, str) else ""
        if not subject or not location:
            raise InvalidRequestError("Query and location are required")
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 1:
            raise InvalidRequestError(f"Limit must be a positive integer, got {self.limit!r}")
        object.__setattr__(self, "subject", subject)
        object.__setattr__(self, "location", location)

    @property
    def search_query(self):
        return f"{self.subject} in {self.location}"


@dataclass(frozen=True)
class ListingReference:
    """A business found in the results feed, before its page is visited"""
    name: str
    url: Optional[str] = None
    index: int = 0 # Position in the loaded feed

    @property
    def locator(self):
        return self.url if self.url else f"#{self.index}"


@dataclass
class BusinessDetailRecord:
    """One row of output. Unresolved fields hold the sentinel, never None."""
    name: str = SENTINEL
    address: str = SENTINEL
    phone: str = SENTINEL
    website: str = SENTINEL
    email: str = SENTINEL
    rating: str = SENTINEL
    reviews: str = SENTINEL
    hours: str = SENTINEL
    category: str = SENTINEL
    price_range: str = SENTINEL
    attributes: str = SENTINEL

    def __post_init__(self):
        for f in fields(self):
            setattr(self, f.name, _clean_value(getattr(self, f.name)))

    def populated_fields(self):
        """Names of the fields that hold a real value"""
        return [f.name for f in fields(self) if getattr(self, f.name) != SENTINEL]

    def to_dict(self):
        return {key: getattr(self, attr) for attr, key in RECORD_FIELDS}

    @classmethod
    def from_dict(cls, data):
        """Build a record from serialised keys (or attribute names), filling gaps with the sentinel"""
        values = {}
        for attr, key in RECORD_FIELDS:
            value = data.get(key, data.get(attr))
            values[attr] = SENTINEL if value is None else value
        return cls(**values)


def _clean_value(value):
    if value is None:
        return SENTINEL
    text = " ".join(str(value).split())
    return text or SENTINEL

