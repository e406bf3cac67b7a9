"""
Listing Field Rules

Declarative mapping from raw feed fields to ``properties`` table columns.
Each rule names its target column, the source field(s) it reads, the
transform applied to the value and, optionally, a gate on another field.
All transforms are total: bad or missing input yields None or [].
"""
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from src.listing_sync.models.raw_listing import RawListing, listing_key
from src.listing_sync.utils.timestamps import parse_date, parse_timestamp

Transform = Callable[[Any], Any]

_WHITESPACE_RE = re.compile(r"\s+")


# ---------- transforms ----------

def title_case(value: Any) -> Optional[str]:
    """
    Lower-case a string, then upper-case the first letter of each word.

    Example: "toronto, ON" -> "Toronto, On". Non-strings return None.
    """
    if not isinstance(value, str):
        return None
    words = _WHITESPACE_RE.split(value.lower())
    return " ".join(word[:1].upper() + word[1:] for word in words)


def build_array(value: Any) -> List[str]:
    """
    Normalize a multi-value field to a list of title-cased tokens.

    Accepts a list or a comma-separated string; empty tokens are dropped.
    Anything else yields [].
    """
    if isinstance(value, (list, tuple)):
        tokens = [title_case(item) for item in value if item]
    elif isinstance(value, str):
        tokens = [title_case(part.strip()) for part in value.split(",")]
    else:
        return []
    return [token for token in tokens if token]


def passthrough(value: Any) -> Any:
    return value


def as_text(value: Any) -> Optional[str]:
    """Keep strings; stringify numbers; join lists of scalars with ', '."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        parts = [str(item) for item in value if isinstance(item, (str, int, float)) and not isinstance(item, bool)]
        parts = [part for part in parts if part]
        return ", ".join(parts) if parts else None
    return None


def as_number(value: Any) -> Optional[float]:
    """Keep finite numbers; parse numeric strings ("1,200.50"); else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.replace(",", "").strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def as_integer(value: Any) -> Optional[int]:
    """Like as_number, truncated to int."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    number = as_number(value)
    return int(number) if number is not None else None


def flag(sentinel: str = "Y") -> Transform:
    """Boolean transform: exact match against an enumerated code."""
    def is_set(value: Any) -> bool:
        return value == sentinel
    return is_set


# ---------- rules ----------

@dataclass(frozen=True)
class FieldRule:
    """
    One column of a normalized record.

    Attributes:
        target: Column name
        sources: Raw fields, tried in order; the first non-null one wins
        transform: Applied to the chosen raw value
        gate: (field, value) pair; when set, the column is None unless the
            raw field equals the value
    """
    target: str
    sources: Tuple[str, ...]
    transform: Transform = passthrough
    gate: Optional[Tuple[str, Any]] = None

    def apply(self, listing: RawListing) -> Any:
        if self.gate is not None:
            gate_field, gate_value = self.gate
            if listing.get(gate_field) != gate_value:
                return None
        return self.transform(listing.first(*self.sources))


@dataclass(frozen=True)
class ConditionalToken:
    """
    A single token added to a feature list when a raw field allows it.

    With ``sentinel`` set, ``token`` is added when the field equals the
    sentinel. Without it, the title-cased field value is added when present.
    """
    field: str
    prepend: bool = False
    token: Optional[str] = None
    sentinel: Optional[str] = None

    def resolve(self, listing: RawListing) -> Optional[str]:
        value = listing.get(self.field)
        if self.sentinel is not None:
            return self.token if value == self.sentinel else None
        if not value:
            return None
        return title_case(value) or None


@dataclass(frozen=True)
class FeatureListRule:
    """A multi-value column extended by conditional tokens, applied in order."""
    target: str
    base_field: str
    extras: Tuple[ConditionalToken, ...] = ()

    def apply(self, listing: RawListing) -> List[str]:
        features = build_array(listing.get(self.base_field))
        for extra in self.extras:
            token = extra.resolve(listing)
            if token is None:
                continue
            if extra.prepend:
                features.insert(0, token)
            else:
                features.append(token)
        return features


def rule(target: str, *sources: str, transform: Transform = passthrough,
         gate: Optional[Tuple[str, Any]] = None) -> FieldRule:
    return FieldRule(target=target, sources=sources, transform=transform, gate=gate)


FIELD_RULES: Tuple[Any, ...] = (
    # identity and status
    rule("mls_id", "ListingKey", transform=listing_key),
    rule("mls_status", "MlsStatus", transform=as_text),
    rule("property_class", "PropertyType", transform=title_case),
    rule("transaction_type", "TransactionType", transform=title_case),
    rule("standard_status", "StandardStatus", transform=title_case),
    rule("contract_status", "ContractStatus", transform=as_text),

    # building
    rule("air_conditioner", "Cooling", transform=as_text),
    rule("acres", "LotSizeRangeAcres", transform=as_text),
    rule("age", "ApproximateAge", transform=as_text),
    rule("basement_kitchen", "KitchensBelowGrade", transform=as_integer),
    rule("basement_status", "Basement", transform=as_text),
    rule("bedrooms", "BedroomsAboveGrade", transform=as_integer),
    rule("bedrooms_basement", "BedroomsBelowGrade", transform=as_integer),
    rule("heat_source", "HeatSource", transform=as_text),
    rule("heat_type", "HeatType", transform=as_text),
    rule("kitchen", "KitchensAboveGrade", transform=as_integer),
    rule("sewer", "Sewer", transform=as_text),
    rule("square_footage", "LivingAreaRange", transform=as_text),
    rule("total_bathrooms", "BathroomsTotalInteger", transform=as_integer),
    rule("water_source", "WaterSource", transform=as_text),
    rule("property_sub_type", "PropertySubType", "ArchitecturalStyle", transform=title_case),
    rule("room_type", "RoomType", transform=title_case),

    # parking
    rule("drive_parking", "ParkingSpaces", transform=as_number),
    rule("garage_parking_spaces", "GarageParkingSpaces", transform=as_number),
    rule("total_parking", "ParkingTotal", transform=as_number),

    # location
    rule("city", "City", transform=title_case),
    rule("community", "CityRegion", transform=title_case),
    rule("postal_code", "PostalCode", transform=as_text),
    rule("province", "StateOrProvince", transform=title_case),
    rule("region", "CountyOrParish", transform=title_case),
    rule("street_name", "StreetName", transform=title_case),
    rule("street_number", "StreetNumber", transform=as_text),
    rule("street_suffix", "StreetSuffix", transform=title_case),
    rule("unparsed_address", "UnparsedAddress", transform=title_case),

    # lot
    rule("lot_depth", "LotDepth", transform=as_number),
    rule("lot_frontage", "LotWidth", transform=as_number),
    rule("lot_size_units", "LotSizeUnits", transform=as_text),
    rule("potl", "ParcelOfTiedLand", transform=as_text),

    # money and dates
    rule("list_price", "ListPrice", transform=as_number),
    rule("listing_end_date", "ExpirationDate", transform=parse_date),
    rule("property_tax", "TaxAnnualAmount", transform=as_number),
    rule("tax_year", "TaxYear", transform=as_integer),
    rule("additional_monthly_fee", "AdditionalMonthlyFee", transform=as_number),
    rule("possession", "PossessionDetails", "PossessionType", transform=title_case),

    # change tracking
    rule("media_change_timestamp", "MediaChangeTimestamp", transform=parse_timestamp),
    rule("photos_change_timestamp", "PhotosChangeTimestamp", transform=parse_timestamp),
    rule("modification_timestamp", "ModificationTimestamp", transform=parse_timestamp),
    rule("system_modification_timestamp", "SystemModificationTimestamp", transform=parse_timestamp),

    # remarks and media links
    rule("description", "PublicRemarks", transform=title_case),
    rule("virtual_tour_branded", "VirtualTourURLBranded", transform=as_text),
    rule("virtual_tour_unbranded", "VirtualTourURLUnbranded", transform=as_text),

    # features
    FeatureListRule(
        target="property_features",
        base_field="PropertyFeatures",
        extras=(
            ConditionalToken(field="InteriorFeatures", prepend=True),
            ConditionalToken(field="FireplaceYN", token="Fireplace", sentinel="Y"),
            ConditionalToken(field="PoolFeatures"),
        ),
    ),
    rule("waterfront_features", "WaterfrontFeatures", transform=build_array),
    rule("extras", "PublicRemarksExtras", transform=build_array),
    rule("exterior_features", "ExteriorFeatures", transform=build_array),

    # yes/no codes
    rule("waterfront_yn", "WaterfrontYN", transform=flag("Y")),
    rule("pets_allowed_yn", "PetsAllowed", transform=flag("Y")),
    rule("room_height_yn", "RoomHeight", transform=flag("Y")),
    rule("den_family_room_yn", "DenFamilyroomYN", transform=flag("Y")),

    # condo
    rule("locker", "Locker", transform=title_case),
    rule("condo_amenities", "AssociationAmenities", transform=build_array),
    rule("condo_balcony", "BalconyType", transform=title_case),
    rule("condo_fee_inclusions", "AssociationFeeIncludes", transform=build_array),
    rule("condo_garage_type", "GarageType", transform=title_case),
    rule("condo_laundry", "LaundryFeatures", transform=title_case),
    rule("condo_locker", "Locker", transform=title_case),
    rule("condo_maintenance_fee", "AssociationFee", transform=as_number),
    rule("apartment_number", "ApartmentNumber", transform=as_text,
         gate=("PropertyType", "Residential Condo")),

    # lease
    rule("lease_includes", "RentIncludes", transform=title_case),
    rule("lease_furnished", "Furnished", transform=as_text),
    rule("portion_for_lease", "UnitNumber", transform=as_text,
         gate=("ContractStatus", "Lease")),
)
