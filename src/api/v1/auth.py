"""
API v1 authentication routes.

Routes are plain ``def`` handlers: the domain and its adapters are
synchronous (psycopg pool, bcrypt, smtplib), so FastAPI runs each
request in its worker threadpool.
"""

from fastapi import APIRouter, Depends, status

from src.api.dependencies import get_auth_service, get_session_token
from src.api.models import (
    EmailLoginRequest,
    EmailRequest,
    ErrorResponse,
    LinkTokenRequest,
    MessageResponse,
    OtpLoginRequest,
    PasswordResetConfirmRequest,
    RegisterEmailRequest,
    RegisterMobileRequest,
    RegisterResponse,
    SessionResponse,
    UserResponse,
    VerifyOtpRequest,
)
from src.domain.auth import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])

# Same body whether or not the account exists
OTP_REQUESTED = "If the account exists, a verification code has been sent"
VERIFICATION_RESENT = "If the account exists and is unverified, a verification email has been sent"
RESET_REQUESTED = "If the account exists, a password reset email has been sent"


@router.post(
    "/register/mobile",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        502: {"model": ErrorResponse, "description": "SMS could not be delivered"},
        503: {"model": ErrorResponse, "description": "SMS provider not configured"},
    },
    summary="Register or sign in with a mobile number",
)
def register_mobile(
    request_data: RegisterMobileRequest,
    service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    """
    Find or create the account for a mobile number and text it a one-time code.

    Complete sign-in with **POST /auth/verify**.
    """
    identity = service.register_mobile(request_data.mobile, request_data.name)
    return RegisterResponse(message="Verification code sent", user=UserResponse.from_identity(identity))


@router.post(
    "/register/email",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"},
        502: {"model": ErrorResponse, "description": "Email could not be delivered"},
    },
    summary="Register with email and password",
)
def register_email(
    request_data: RegisterEmailRequest,
    service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    """
    Create an email + password account and email a verification link.

    - **email**: Valid email address to register
    - **password**: Password (minimum 8 characters)
    """
    identity = service.register_email(request_data.email, request_data.password, request_data.name)
    return RegisterResponse(
        message="Registration successful. Please check your email to verify your account.",
        user=UserResponse.from_identity(identity),
    )


@router.post("/login/otp", response_model=MessageResponse, summary="Request a login code")
def request_login_otp(
    request_data: OtpLoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Send a one-time code to an existing mobile number or email address."""
    service.request_login_otp(request_data.contact)
    return MessageResponse(message=OTP_REQUESTED)


@router.post(
    "/login/email",
    response_model=SessionResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials or unverified email"}},
    summary="Log in with email and password",
)
def login_with_email(
    request_data: EmailLoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> SessionResponse:
    identity, session = service.login_with_password(request_data.email, request_data.password)
    return SessionResponse(
        token=session.token, expires_at=session.expires_at, user=UserResponse.from_identity(identity)
    )


@router.post(
    "/verify",
    response_model=SessionResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid or expired code"}},
    summary="Verify a one-time code",
)
def verify_otp(
    request_data: VerifyOtpRequest,
    service: AuthService = Depends(get_auth_service),
) -> SessionResponse:
    """
    Redeem a one-time code sent by SMS or email and open a session.

    Wrong, expired and already used codes all get the same 400 response.
    """
    identity, session = service.verify_otp(request_data.contact, request_data.code)
    return SessionResponse(
        token=session.token, expires_at=session.expires_at, user=UserResponse.from_identity(identity)
    )


@router.post(
    "/verify-email",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid or expired link"}},
    summary="Verify an email address",
)
def verify_email(
    request_data: LinkTokenRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    service.verify_email(request_data.token)
    return MessageResponse(message="Email verified successfully")


@router.post("/resend-verification", response_model=MessageResponse, summary="Resend the verification email")
def resend_verification(
    request_data: EmailRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    service.resend_verification(request_data.email)
    return MessageResponse(message=VERIFICATION_RESENT)


@router.post("/password-reset/request", response_model=MessageResponse, summary="Request a password reset")
def request_password_reset(
    request_data: EmailRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    service.request_password_reset(request_data.email)
    return MessageResponse(message=RESET_REQUESTED)


@router.post(
    "/password-reset/confirm",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid or expired link"}},
    summary="Set a new password",
)
def confirm_password_reset(
    request_data: PasswordResetConfirmRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Consume a reset link, set the new password and sign out every session."""
    service.reset_password(request_data.token, request_data.password)
    return MessageResponse(message="Password has been reset successfully")


@router.post("/logout", response_model=MessageResponse, summary="Log out")
def logout(
    token: str = Depends(get_session_token),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    service.logout(token)
    return MessageResponse(message="Logged out")
