from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from rentnest.core.database import get_db
from rentnest.core.exceptions import AccountDisabled, Forbidden, NotFound, Unauthenticated
from rentnest.models.user import User
from rentnest.services.identity import IdentityStore
from rentnest.services.listings import ListingStore
from rentnest.utils.auth import decode_token
from rentnest.utils.file_storage import get_blob_store
from typing import Optional

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_identity_store(db: Session = Depends(get_db)) -> IdentityStore:
    return IdentityStore(db)


def get_listing_store(db: Session = Depends(get_db), blob_store=Depends(get_blob_store)) -> ListingStore:
    return ListingStore(db, blob_store)


async def get_current_user(
    identity: IdentityStore = Depends(get_identity_store),
    token: Optional[str] = Depends(oauth2_scheme)
) -> User:
    if not token:
        raise Unauthenticated()

    payload = decode_token(token)
    if not payload or not payload.get("sub"):
        raise Unauthenticated("Invalid or expired token")

    try:
        return identity.get_by_id(payload["sub"])
    except NotFound:
        raise Unauthenticated("User no longer exists")


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    if not current_user.is_active:
        raise AccountDisabled()
    return current_user


async def require_owner(
    current_user: User = Depends(get_current_active_user)
) -> User:
    if not current_user.is_owner:
        raise Forbidden("Only owner accounts can manage property listings")
    return current_user
