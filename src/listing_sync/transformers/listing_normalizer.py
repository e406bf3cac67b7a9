"""
Listing Normalizer

Maps one raw feed listing plus its media assets onto the flat record
written to the ``properties`` table.
"""
from typing import Any, Dict, Iterable, List, Optional, Sequence

from src.listing_sync.models.raw_listing import RawListing
from src.listing_sync.transformers.field_rules import FIELD_RULES

NormalizedRecord = Dict[str, Any]


def image_urls_from(media_assets: Optional[Iterable[Any]]) -> List[str]:
    """Collect the MediaURL of every media asset, skipping malformed ones."""
    if not isinstance(media_assets, (list, tuple)):
        return []
    return [
        asset["MediaURL"]
        for asset in media_assets
        if isinstance(asset, dict) and isinstance(asset.get("MediaURL"), str)
    ]


class ListingNormalizer:
    """
    Applies the declarative field rules to raw listings.

    Pure: no I/O, no logging, never raises on bad input.
    """

    def __init__(self, rules: Sequence[Any] = FIELD_RULES):
        self.rules = tuple(rules)

    @property
    def columns(self) -> List[str]:
        """Target columns produced by ``normalize``, in rule order."""
        return [r.target for r in self.rules] + ["image_urls"]

    def normalize(self, raw_listing: Any, media_assets: Optional[Iterable[Any]] = None) -> NormalizedRecord:
        """
        Normalize one listing.

        Args:
            raw_listing: Feed record (dict or RawListing)
            media_assets: Media records associated with the listing

        Returns:
            Column name -> value
        """
        listing = raw_listing if isinstance(raw_listing, RawListing) else RawListing(raw_listing)

        record: NormalizedRecord = {r.target: r.apply(listing) for r in self.rules}
        record["image_urls"] = image_urls_from(media_assets)
        return record


_default_normalizer = ListingNormalizer()


def normalize(raw_listing: Any, media_assets: Optional[Iterable[Any]] = None) -> NormalizedRecord:
    """Normalize a listing with the standard rule table."""
    return _default_normalizer.normalize(raw_listing, media_assets)
