from fastapi import APIRouter, Depends, status
from rentnest.models.user import User
from rentnest.schemas.user import UserCreate, UserLogin, TokenResponse, UserResponse
from rentnest.services.identity import IdentityStore
from rentnest.utils.auth import create_access_token
from rentnest.api.deps import get_current_active_user, get_identity_store

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_response(user: User) -> TokenResponse:
    access_token = create_access_token(
        data={
            "sub": str(user.id),
            "account_type": user.account_type.value,
        }
    )
    return TokenResponse(
        access_token=access_token,
        user=UserResponse.model_validate(user)
    )


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(user_data: UserCreate, identity: IdentityStore = Depends(get_identity_store)):
    user = identity.register(**user_data.model_dump())
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(credentials: UserLogin, identity: IdentityStore = Depends(get_identity_store)):
    user = identity.authenticate(credentials.email_or_mobile, credentials.password)
    return _token_response(user)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_active_user)
):
    return current_user
