from sqlalchemy import Column, String, Boolean, Enum, DateTime
from sqlalchemy.orm import relationship
from rentnest.models.base import BaseModel
import enum


class AccountType(str, enum.Enum):
    TENANT = "tenant"
    OWNER = "owner"


class SubscriptionPlan(str, enum.Enum):
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"


class User(BaseModel):
    __tablename__ = "users"

    full_name = Column(String(100), nullable=False)
    # Either may be null, but at least one is set (enforced at register)
    email = Column(String(100), unique=True, index=True, nullable=True)
    mobile = Column(String(20), unique=True, index=True, nullable=True)
    password_hash = Column(String(255), nullable=False)

    account_type = Column(Enum(AccountType), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    subscription_plan = Column(Enum(SubscriptionPlan), default=SubscriptionPlan.FREE, nullable=False)
    subscription_expires_at = Column(DateTime, nullable=True)

    from rentnest.models.property import Property
    properties = relationship(
        "Property",
        back_populates="owner",
        foreign_keys="Property.owner_id",
        passive_deletes=True,
    )

    @property
    def is_owner(self) -> bool:
        return self.account_type == AccountType.OWNER

    @property
    def subscription(self) -> dict:
        return {
            "plan": self.subscription_plan.value if self.subscription_plan else SubscriptionPlan.FREE.value,
            "expires_at": self.subscription_expires_at,
        }
