from typing import Optional, Union
from uuid import UUID

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rentnest.core.exceptions import (
    AccountDisabled, DuplicateIdentity, InvalidCredentials, NotFound, ValidationError,
)
from rentnest.models.user import AccountType, User
from rentnest.schemas.user import normalize_mobile
from rentnest.services.base import commit, parse_id
from rentnest.utils.auth import get_password_hash, verify_password

MIN_PASSWORD_LENGTH = 6


class IdentityStore:
    """User accounts: signup, credential checks and lookups."""

    def __init__(self, db: Session):
        self.db = db

    def register(
        self,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
        mobile: Optional[str] = None,
        password: Optional[str] = None,
        account_type: Optional[Union[str, AccountType]] = None,
    ) -> User:
        full_name = (full_name or "").strip()
        if not full_name or not password or not account_type:
            raise ValidationError("Please provide full name, password, and account type")

        email = (email or "").strip().lower() or None
        mobile = (mobile or "").strip() or None
        if not email and not mobile:
            raise ValidationError("Please provide either email or mobile number")

        if mobile:
            try:
                mobile = normalize_mobile(mobile)
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc

        try:
            account_type = AccountType(account_type)
        except ValueError:
            raise ValidationError("Account type must be 'tenant' or 'owner'")

        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        if email and self.db.query(User).filter(User.email == email).first():
            raise DuplicateIdentity("User with this email already exists")
        if mobile and self.db.query(User).filter(User.mobile == mobile).first():
            raise DuplicateIdentity("User with this mobile number already exists")

        user = User(
            full_name=full_name,
            email=email,
            mobile=mobile,
            password_hash=get_password_hash(password),
            account_type=account_type,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as exc:
            # Lost a race against a concurrent signup with the same identifier
            self.db.rollback()
            raise DuplicateIdentity("User with this email or mobile number already exists") from exc
        self.db.refresh(user)

        logger.info(f"Registered {user.account_type.value} account {user.id}")
        return user

    def authenticate(self, email_or_mobile: str, password: str) -> User:
        identifier = (email_or_mobile or "").strip()
        if not identifier or not password:
            raise ValidationError("Please provide email/mobile and password")

        user = self._find_by_identifier(identifier)

        if not user or not verify_password(password, user.password_hash):
            logger.warning("Rejected login attempt: invalid credentials")
            raise InvalidCredentials()

        if not user.is_active:
            logger.warning(f"Rejected login for deactivated account {user.id}")
            raise AccountDisabled()

        logger.info(f"User {user.id} logged in")
        return user

    def get_by_id(self, user_id: Union[str, UUID]) -> User:
        user = self.db.get(User, parse_id(user_id, "User not found"))
        if not user:
            raise NotFound("User not found")
        return user

    def set_active(self, user_id: Union[str, UUID], active: bool) -> User:
        user = self.get_by_id(user_id)
        user.is_active = active
        commit(self.db)
        self.db.refresh(user)
        return user

    def _find_by_identifier(self, identifier: str) -> Optional[User]:
        # '@' means email, anything else is a mobile number; no fallback
        if "@" in identifier:
            return self.db.query(User).filter(User.email == identifier.lower()).first()
        try:
            mobile = normalize_mobile(identifier)
        except ValueError:
            return None
        return self.db.query(User).filter(User.mobile == mobile).first()
