from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from uuid import UUID
from datetime import datetime
from rentnest.models.user import AccountType, SubscriptionPlan
import re


def normalize_mobile(mobile: str) -> str:
    mobile = re.sub(r'[\s\-()]', '', mobile)

    if not re.match(r'^\+?\d{7,15}$', mobile):
        raise ValueError('Invalid mobile number')

    return mobile


class UserCreate(BaseModel):
    # Presence rules (name, password, account type, email-or-mobile) are
    # checked by the identity service so they surface as ValidationError
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    mobile: Optional[str] = None
    password: Optional[str] = None
    account_type: Optional[AccountType] = None

    @field_validator('email', 'mobile', 'full_name', 'password', 'account_type', mode='before')
    @classmethod
    def empty_string_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('mobile')
    @classmethod
    def validate_mobile(cls, v):
        return normalize_mobile(v) if v is not None else v


class UserLogin(BaseModel):
    email_or_mobile: str
    password: str


class SubscriptionInfo(BaseModel):
    plan: SubscriptionPlan = SubscriptionPlan.FREE
    expires_at: Optional[datetime] = None


class UserResponse(BaseModel):
    id: UUID
    full_name: str
    email: Optional[str] = None
    mobile: Optional[str] = None
    account_type: AccountType
    is_active: bool
    subscription: SubscriptionInfo = Field(default_factory=SubscriptionInfo)
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
