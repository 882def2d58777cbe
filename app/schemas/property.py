"""
Pydantic schemas for property listings, their photos and history records.
Handles display coercion of API values and the listing form payloads.
"""

from enum import Enum
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

from app.schemas.common import APIModel, coerce_int, coerce_list, coerce_number


class ListingType(str, Enum):
    SALE = "sale"
    RENT = "rent"


class PropertyStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PENDING = "pending"
    SOLD = "sold"
    RENTED = "rented"
    INACTIVE = "inactive"


PROPERTY_TYPES = [
    "house",
    "apartment",
    "condo",
    "townhouse",
    "land",
    "commercial",
    "multi_family",
]

AMENITIES = [
    "parking",
    "pool",
    "gym",
    "garden",
    "balcony",
    "air_conditioning",
    "laundry",
    "fireplace",
    "elevator",
    "security",
]

FEATURE_LIST_FIELDS = (
    "interior_features",
    "exterior_features",
    "appliances_included",
    "utilities_systems",
    "security_features",
    "community_amenities",
    "amenities",
    "additional_features",
    "highlights",
)


class Property(APIModel):
    """Listing as returned by `/api/properties` and `/api/properties/{id}`."""

    property_id: str
    agent_id: Optional[str] = None
    title: str = ""
    description: Optional[str] = None
    listing_type: ListingType = ListingType.SALE
    property_type: Optional[str] = None
    status: PropertyStatus = PropertyStatus.ACTIVE
    price: float = 0
    currency: str = "USD"
    price_per_sqft: Optional[float] = None
    rent_frequency: Optional[str] = None

    address_street: Optional[str] = None
    address_unit: Optional[str] = None
    address_city: Optional[str] = None
    address_state: Optional[str] = None
    address_zip: Optional[str] = None
    address_country: Optional[str] = None
    neighborhood: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    bedrooms: float = 0
    bathrooms: float = 0
    square_footage: float = 0
    lot_size: Optional[float] = None
    lot_size_unit: Optional[str] = None
    year_built: Optional[int] = None
    parking_spaces: Optional[int] = None
    hoa_fee: Optional[float] = None
    property_tax: Optional[float] = None

    interior_features: List[str] = Field(default_factory=list)
    exterior_features: List[str] = Field(default_factory=list)
    appliances_included: List[str] = Field(default_factory=list)
    utilities_systems: List[str] = Field(default_factory=list)
    security_features: List[str] = Field(default_factory=list)
    community_amenities: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    additional_features: List[str] = Field(default_factory=list)
    highlights: List[str] = Field(default_factory=list)

    furnished: bool = False
    pet_friendly: bool = False
    new_construction: bool = False
    recently_renovated: bool = False
    virtual_tour_available: bool = False
    price_reduced: bool = False
    youtube_video_url: Optional[str] = None
    virtual_tour_url: Optional[str] = None

    view_count: int = 0
    inquiry_count: int = 0
    favorite_count: int = 0
    is_featured: bool = False
    featured_order: Optional[int] = None
    days_on_market: int = 0

    thumbnail_url: Optional[str] = None
    agent_name: Optional[str] = None
    agency_name: Optional[str] = None
    agent_phone: Optional[str] = None
    agent_email: Optional[str] = None

    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    published_at: Optional[str] = None

    @field_validator("price", "bedrooms", "bathrooms", "square_footage", mode="before")
    @classmethod
    def validate_numbers(cls, v):
        """Render null or string numerics as numbers."""
        return coerce_number(v)

    @field_validator(
        "price_per_sqft", "lot_size", "hoa_fee", "property_tax", "latitude", "longitude",
        mode="before"
    )
    @classmethod
    def validate_optional_numbers(cls, v):
        if v is None or v == "":
            return None
        return coerce_number(v)

    @field_validator("view_count", "inquiry_count", "favorite_count", "days_on_market", mode="before")
    @classmethod
    def validate_counters(cls, v):
        return coerce_int(v)

    @field_validator(*FEATURE_LIST_FIELDS, mode="before")
    @classmethod
    def validate_feature_lists(cls, v):
        return coerce_list(v)

    @property
    def address(self) -> str:
        """Single line address."""
        street = " ".join(p for p in (self.address_street, self.address_unit) if p)
        region = " ".join(p for p in (self.address_state, self.address_zip) if p)
        return ", ".join(p for p in (street, self.address_city, region) if p)

    @property
    def is_rental(self) -> bool:
        return self.listing_type == ListingType.RENT


class PropertyPhoto(APIModel):
    """Photo attached to a listing."""

    photo_id: Optional[str] = None
    property_id: Optional[str] = None
    image_url: str
    thumbnail_url: Optional[str] = None
    display_order: int = 0
    is_primary: bool = False
    caption: Optional[str] = None

    @field_validator("display_order", mode="before")
    @classmethod
    def validate_display_order(cls, v):
        return coerce_int(v)


class PriceHistoryEntry(APIModel):
    """Price change of a listing."""

    old_price: Optional[float] = None
    new_price: float = 0
    changed_at: Optional[str] = None

    @field_validator("old_price", "new_price", mode="before")
    @classmethod
    def validate_prices(cls, v):
        if v is None:
            return None
        return coerce_number(v)


class StatusHistoryEntry(APIModel):
    """Status change of a listing."""

    old_status: Optional[str] = None
    new_status: str
    notes: Optional[str] = None
    changed_at: Optional[str] = None


class PropertyForm(BaseModel):
    """
    Listing payload sent by the create and edit forms.

    Field constraints mirror what the API enforces; publish rules are checked
    separately because drafts may be saved incomplete.
    """

    title: str = ""
    description: str = ""
    listing_type: ListingType = ListingType.SALE
    property_type: str = "house"
    status: PropertyStatus = PropertyStatus.DRAFT
    price: Optional[float] = Field(None, ge=0)
    currency: str = "USD"
    rent_frequency: Optional[str] = None

    address_street: Optional[str] = None
    address_unit: Optional[str] = None
    address_city: Optional[str] = None
    address_state: Optional[str] = None
    address_zip: Optional[str] = None
    address_country: str = "US"
    neighborhood: Optional[str] = None

    bedrooms: Optional[int] = Field(None, ge=0, le=50)
    bathrooms: Optional[float] = Field(None, ge=0, le=50)
    square_footage: Optional[int] = Field(None, gt=0)
    lot_size: Optional[float] = None
    year_built: Optional[int] = Field(None, ge=1700, le=2100)
    parking_spaces: Optional[int] = Field(None, ge=0)

    amenities: List[str] = Field(default_factory=list)
    interior_features: List[str] = Field(default_factory=list)
    exterior_features: List[str] = Field(default_factory=list)
    highlights: List[str] = Field(default_factory=list)

    furnished: bool = False
    pet_friendly: bool = False
    new_construction: bool = False
    recently_renovated: bool = False
    virtual_tour_available: bool = False
    virtual_tour_url: Optional[str] = None

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v):
        return (v or "").strip()

    @property
    def price_per_sqft(self) -> Optional[int]:
        """Rounded price per square foot, when both figures are known."""
        if self.price and self.square_footage and self.square_footage > 0:
            return round(self.price / self.square_footage)
        return None

    def to_payload(self) -> dict:
        """JSON body for `POST /api/properties` and `PUT /api/properties/{id}`."""
        return self.model_dump(mode="json", exclude_none=True)
