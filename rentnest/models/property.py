from sqlalchemy import Column, String, Integer, Float, Boolean, Text, Enum, ForeignKey, JSON, Uuid
from sqlalchemy.orm import relationship
from rentnest.models.base import BaseModel
import enum


class PropertyType(str, enum.Enum):
    APARTMENT = "apartment"
    HOUSE = "house"
    ROOM = "room"
    STUDIO = "studio"
    SUBLET = "sublet"
    OFFICE = "office"
    SHOP = "shop"


class RentPeriod(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class FurnishedStatus(str, enum.Enum):
    FURNISHED = "furnished"
    SEMI_FURNISHED = "semi_furnished"
    UNFURNISHED = "unfurnished"


class Property(BaseModel):
    __tablename__ = "properties"

    # Basic Info
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    property_type = Column(Enum(PropertyType), nullable=False, index=True)
    is_available = Column(Boolean, default=True, nullable=False, index=True)

    # Location
    division = Column(String(100), nullable=False)
    district = Column(String(100), nullable=False)
    area = Column(String(100), nullable=False)
    address = Column(String(255), nullable=True)

    # Rent
    rent_amount = Column(Float, nullable=False, index=True)
    rent_currency = Column(String(3), nullable=False, default="BDT")
    rent_period = Column(Enum(RentPeriod), nullable=False, default=RentPeriod.MONTH)
    rent_negotiable = Column(Boolean, nullable=False, default=False)

    # Features
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Integer, nullable=True)
    furnished = Column(Enum(FurnishedStatus), nullable=True)
    size_sqft = Column(Float, nullable=True)
    floor = Column(Integer, nullable=True)
    balcony = Column(Boolean, nullable=False, default=False)
    parking = Column(Boolean, nullable=False, default=False)

    amenities = Column(JSON, default=list)

    # Contact
    contact_name = Column(String(100), nullable=False)
    contact_phone = Column(String(20), nullable=False)
    contact_email = Column(String(100), nullable=True)

    terms = Column(JSON, nullable=True)

    # Relationships
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    owner = relationship("User", back_populates="properties", foreign_keys=[owner_id])
    photos = relationship(
        "PropertyImage",
        back_populates="property",
        cascade="all, delete-orphan",
        order_by="PropertyImage.display_order",
    )

    @property
    def location(self) -> dict:
        return {
            "division": self.division,
            "district": self.district,
            "area": self.area,
            "address": self.address,
        }

    @property
    def rent(self) -> dict:
        return {
            "amount": self.rent_amount,
            "currency": self.rent_currency,
            "period": self.rent_period,
            "negotiable": self.rent_negotiable,
        }

    @property
    def features(self) -> dict:
        return {
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "furnished": self.furnished,
            "size_sqft": self.size_sqft,
            "floor": self.floor,
            "balcony": self.balcony,
            "parking": self.parking,
        }

    @property
    def contact(self) -> dict:
        return {
            "name": self.contact_name,
            "phone": self.contact_phone,
            "email": self.contact_email,
        }


class PropertyImage(BaseModel):
    __tablename__ = "property_images"

    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    url = Column(String(500), nullable=False)
    caption = Column(String(200), nullable=True)
    display_order = Column(Integer, default=0, nullable=False)

    property = relationship("Property", back_populates="photos")
