"""
Authentication endpoints for API v1.

Registration and login return a bearer token together with a short
user summary.  The token subject is the user's ID.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from park_and_ride_api.app.core.security import create_access_token, get_current_user
from park_and_ride_api.app.schemas.user import ProfileRead, TokenResponse, UserCreate, UserLogin, UserSummary
from park_and_ride_api.app.services.user_service import UserService


router = APIRouter()


def _token_response(user: UserSummary) -> TokenResponse:
    token = create_access_token({"sub": str(user.id), "role": user.role})
    return TokenResponse(access_token=token, user=user)


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(data: UserCreate) -> TokenResponse:
    """Register a new account and log it in."""
    try:
        user = await UserService.create_user(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(data: UserLogin) -> TokenResponse:
    user = await UserService.authenticate(data.email, data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _token_response(user)


@router.get("/profile", response_model=ProfileRead)
async def profile(current_user: dict = Depends(get_current_user)) -> ProfileRead:
    """Return the full profile of the authenticated user."""
    try:
        return await UserService.get_profile(current_user["user_id"])
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
