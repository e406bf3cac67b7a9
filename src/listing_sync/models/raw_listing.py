"""
Raw Listing Wrapper

Read-only view over one untyped feed record. Field names and presence vary by
feed version, so every access may come back empty.
"""
from typing import Any, Iterator, Mapping, Optional


def listing_key(value: Any) -> Optional[str]:
    """
    Clean a ListingKey value into the external listing id.

    Strings and integers are stringified and stripped; anything else (and a
    blank result) is None.
    """
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return None
    text = str(value).strip()
    return text or None


class RawListing(Mapping):
    """
    Capability-checked view of a feed listing.

    Any payload that is not a mapping behaves like an empty listing.
    Lookups of absent fields return None instead of raising.
    """

    KEY_FIELD = "ListingKey"

    def __init__(self, payload: Any):
        self._payload = payload if isinstance(payload, Mapping) else {}

    def __getitem__(self, field: str) -> Any:
        return self._payload[field]

    def __iter__(self) -> Iterator[str]:
        return iter(self._payload)

    def __len__(self) -> int:
        return len(self._payload)

    def has(self, field: str) -> bool:
        """True if the field is present with a non-null value."""
        return self._payload.get(field) is not None

    def first(self, *fields: str) -> Any:
        """Value of the first field that is present and not null."""
        for field in fields:
            value = self._payload.get(field)
            if value is not None:
                return value
        return None

    @property
    def key(self) -> Optional[str]:
        """External listing id, or None when the feed omitted it."""
        return listing_key(self._payload.get(self.KEY_FIELD))

    def __repr__(self) -> str:
        return f"<RawListing(key={self.key}, fields={len(self._payload)})>"
