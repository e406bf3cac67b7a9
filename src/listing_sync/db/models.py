"""
SQLAlchemy ORM Models

The ``properties`` table holds one row per feed listing, keyed by the
feed's ListingKey (mls_id). Column names match the keys produced by the
listing normalizer.
"""
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import Boolean, Date, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.listing_sync.db.base import Base, StringArray, TimestampMixin


class Listing(Base, TimestampMixin):
    """
    Synced IDX listing.

    Rows are only written through upserts on mls_id; the newest
    modification_timestamp doubles as the incremental sync watermark.
    """
    __tablename__ = "properties"

    # Primary key
    mls_id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Feed ListingKey"
    )

    # Identity and status
    mls_status: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    property_class: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    transaction_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    standard_status: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    contract_status: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Building
    air_conditioner: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    acres: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    age: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    basement_kitchen: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    basement_status: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bedrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bedrooms_basement: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    heat_source: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    heat_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    kitchen: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sewer: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    square_footage: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    total_bathrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    water_source: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    property_sub_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    room_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Parking
    drive_parking: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    garage_parking_spaces: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    total_parking: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Location
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    community: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    province: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    region: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    street_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    street_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    street_suffix: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    unparsed_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Lot
    lot_depth: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    lot_frontage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    lot_size_units: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    potl: Mapped[Optional[str]] = mapped_column(
        String(32),
        nullable=True,
        comment="Parcel of tied land"
    )

    # Money and dates
    list_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    listing_end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    property_tax: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    tax_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    additional_monthly_fee: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    possession: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Change tracking
    media_change_timestamp: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    photos_change_timestamp: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    modification_timestamp: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Feed ModificationTimestamp; its maximum is the sync watermark"
    )
    system_modification_timestamp: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Remarks and media
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    virtual_tour_branded: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    virtual_tour_unbranded: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_urls: Mapped[List[str]] = mapped_column(StringArray, nullable=True)

    # Features
    property_features: Mapped[List[str]] = mapped_column(StringArray, nullable=True)
    waterfront_features: Mapped[List[str]] = mapped_column(StringArray, nullable=True)
    extras: Mapped[List[str]] = mapped_column(StringArray, nullable=True)
    exterior_features: Mapped[List[str]] = mapped_column(StringArray, nullable=True)

    # Yes/no flags
    waterfront_yn: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    pets_allowed_yn: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    room_height_yn: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    den_family_room_yn: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    # Condo
    locker: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    condo_amenities: Mapped[List[str]] = mapped_column(StringArray, nullable=True)
    condo_balcony: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    condo_fee_inclusions: Mapped[List[str]] = mapped_column(StringArray, nullable=True)
    condo_garage_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    condo_laundry: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    condo_locker: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    condo_maintenance_fee: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    apartment_number: Mapped[Optional[str]] = mapped_column(
        String(32),
        nullable=True,
        comment="Only set for Residential Condo listings"
    )

    # Lease
    lease_includes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    lease_furnished: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    portion_for_lease: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="Only set when contract_status is Lease"
    )

    __table_args__ = (
        Index("idx_properties_modification_timestamp", "modification_timestamp"),
        Index("idx_properties_city", "city"),
    )

    def __repr__(self) -> str:
        return f"<Listing(mls_id={self.mls_id}, status={self.standard_status}, city={self.city})>"
