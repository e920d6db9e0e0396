"""
API v1 account routes.
"""

from fastapi import APIRouter, Depends

from src.api.dependencies import get_auth_service, get_current_identity
from src.api.models import ErrorResponse, UpdateAccountRequest, UserResponse
from src.domain.auth import AuthService
from src.domain.models import Identity

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse, summary="Current account")
def get_me(identity: Identity = Depends(get_current_identity)) -> UserResponse:
    return UserResponse.from_identity(identity)


@router.patch(
    "/me",
    response_model=UserResponse,
    responses={409: {"model": ErrorResponse, "description": "Email or mobile already in use"}},
    summary="Update the current account",
)
def update_me(
    request_data: UpdateAccountRequest,
    identity: Identity = Depends(get_current_identity),
    service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Changing the email or mobile number marks the account unverified."""
    updated = service.update_account(
        identity.id,
        name=request_data.name,
        email=request_data.email,
        mobile=request_data.mobile,
    )
    return UserResponse.from_identity(updated)
