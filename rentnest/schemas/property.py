from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from rentnest.models.property import PropertyType, RentPeriod, FurnishedStatus
from rentnest.models.user import AccountType


def _required_text(v: str) -> str:
    if v is None or not str(v).strip():
        raise ValueError("must not be empty")
    return str(v).strip()


# ─── Value structs ────────────────────────────────────────────────────────────
# Each structured sub-object validates itself, independent of how it arrived
# (JSON body, JSON-encoded multipart field, or a database row).

class Location(BaseModel):
    division: str
    district: str
    area: str
    address: Optional[str] = None

    @field_validator("division", "district", "area")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _required_text(v)


class Rent(BaseModel):
    amount: float = Field(..., ge=0)
    currency: str = "BDT"
    period: RentPeriod = RentPeriod.MONTH
    negotiable: bool = False

    @field_validator("currency")
    @classmethod
    def currency_code(cls, v: str) -> str:
        v = (v or "").strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("currency must be a 3-letter code")
        return v


class Features(BaseModel):
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    furnished: Optional[FurnishedStatus] = None
    size_sqft: Optional[float] = Field(None, gt=0)
    floor: Optional[int] = None
    balcony: bool = False
    parking: bool = False


class Contact(BaseModel):
    name: str
    phone: str
    email: Optional[EmailStr] = None

    @field_validator("name", "phone")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _required_text(v)


class Terms(BaseModel):
    advance_months: Optional[int] = Field(None, ge=0)
    security_deposit: Optional[float] = Field(None, ge=0)
    minimum_stay_months: Optional[int] = Field(None, ge=1)
    available_from: Optional[date] = None
    pets_allowed: bool = False
    smoking_allowed: bool = False
    notes: Optional[str] = None


class Photo(BaseModel):
    url: str
    caption: Optional[str] = None

    model_config = {"from_attributes": True}


# ─── Property record ──────────────────────────────────────────────────────────

class PropertyFields(BaseModel):
    """Shape rules shared by create and by re-validation after an update."""

    title: str = Field(..., max_length=200)
    description: str
    property_type: PropertyType
    location: Location
    rent: Rent
    features: Features = Features()
    amenities: List[str] = []
    photos: List[Photo] = []
    contact: Contact
    terms: Optional[Terms] = None
    is_available: bool = True

    # owner / id / timestamps are never taken from client input
    model_config = {"extra": "ignore"}

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _required_text(v)

    @field_validator("amenities")
    @classmethod
    def unique_amenities(cls, v: List[str]) -> List[str]:
        seen = []
        for item in v:
            item = item.strip()
            if item and item not in seen:
                seen.append(item)
        return seen


class PropertyUpdate(BaseModel):
    """Partial replacement; only fields present in the body are applied."""

    title: Optional[str] = None
    description: Optional[str] = None
    property_type: Optional[PropertyType] = None
    location: Optional[Location] = None
    rent: Optional[Rent] = None
    features: Optional[Features] = None
    amenities: Optional[List[str]] = None
    photos: Optional[List[Photo]] = None
    contact: Optional[Contact] = None
    terms: Optional[Terms] = None
    is_available: Optional[bool] = None

    model_config = {"extra": "ignore"}


# ─── Filters ──────────────────────────────────────────────────────────────────

class PropertyFilters(BaseModel):
    property_type: Optional[PropertyType] = None
    division: Optional[str] = None
    district: Optional[str] = None
    area: Optional[str] = None
    min_rent: Optional[float] = Field(None, ge=0)
    max_rent: Optional[float] = Field(None, ge=0)
    bedrooms: Optional[int] = Field(None, ge=0)
    furnished: Optional[FurnishedStatus] = None
    search: Optional[str] = None

    @field_validator("division", "district", "area", "search")
    @classmethod
    def blank_is_unset(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


# ─── Responses ────────────────────────────────────────────────────────────────

class OwnerSummary(BaseModel):
    """Public contact card of a listing's owner."""
    id: UUID
    full_name: str
    email: Optional[str] = None
    mobile: Optional[str] = None
    account_type: AccountType

    model_config = {"from_attributes": True}


class PropertyResponse(BaseModel):
    id: UUID
    owner_id: UUID
    owner: Optional[OwnerSummary] = None
    title: str
    description: str
    property_type: PropertyType
    location: Location
    rent: Rent
    features: Features
    amenities: List[str] = []
    photos: List[Photo] = []
    contact: Contact
    terms: Optional[Terms] = None
    is_available: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("amenities", mode="before")
    @classmethod
    def null_amenities(cls, v):
        return v or []


class PropertyListResponse(BaseModel):
    properties: List[PropertyResponse]
    count: int
    total: int
    total_pages: int
    current_page: int
