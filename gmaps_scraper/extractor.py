import logging

from .config import LOGGER_NAME, SENTINEL
from .fields import FieldResolver
from .models import BusinessDetailRecord

# Resolution order; attributes go last because they exclude earlier values
FIELD_ORDER = [
    "name",
    "address",
    "phone",
    "website",
    "rating",
    "reviews",
    "hours",
    "email",
    "category",
    "price_range",
    "attributes",
]


class DetailExtractor:
    """Builds one BusinessDetailRecord from a single place-page snapshot"""

    def __init__(self, resolver=None):
        self.resolver = resolver or FieldResolver()
        self.logger = logging.getLogger(LOGGER_NAME)

    def extract(self, snapshot):
        """Resolve every field against the same snapshot. Unresolvable fields become the sentinel."""
        resolved = {}
        for field in FIELD_ORDER:
            try:
                resolved[field] = self.resolver.resolve(field, snapshot, resolved)
            except Exception as e:
                self.logger.warning(f"Error resolving '{field}' on {snapshot.url or 'page'}: {e}")
                resolved[field] = SENTINEL

        record = BusinessDetailRecord(**resolved)
        found = record.populated_fields()
        self.logger.debug(f"Extracted {len(found)}/{len(FIELD_ORDER)} fields: {', '.join(found) or 'none'}")
        return record
