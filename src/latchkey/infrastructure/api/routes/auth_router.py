"""Authentication API routes.

Provides endpoints for registration, login, password reset and whoami.
Failures raise domain errors, which the application's exception handlers
turn into ``{"error": ...}`` responses.
"""

from fastapi import APIRouter, status

from latchkey.domain.entities.user import User
from latchkey.infrastructure.api.dependencies import AuthServiceDep, CurrentUser
from latchkey.infrastructure.api.schemas import (
    ErrorResponse,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    UserResponse,
    WhoamiResponse,
)

router = APIRouter()


def _user_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, email=user.email, created_at=user.created_at)


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
    },
)
async def register(request: RegisterRequest, auth_service: AuthServiceDep) -> RegisterResponse:
    """Register a new user."""
    user = await auth_service.register(request.email, request.password)
    return RegisterResponse(message="User registered successfully", user=_user_response(user))


@router.post(
    "/login",
    status_code=status.HTTP_200_OK,
    response_model=LoginResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
)
async def login(request: LoginRequest, auth_service: AuthServiceDep) -> LoginResponse:
    """Authenticate a user and return a bearer token.

    Unknown emails and wrong passwords get the same 401 response.
    """
    result = await auth_service.login(request.email, request.password)
    return LoginResponse(
        message="Login successful",
        token=result.token,
        user=_user_response(result.user),
    )


@router.post(
    "/forgot-password",
    status_code=status.HTTP_200_OK,
    response_model=ForgotPasswordResponse,
    response_model_exclude_none=True,
)
async def forgot_password(
    request: ForgotPasswordRequest, auth_service: AuthServiceDep
) -> ForgotPasswordResponse:
    """Start a password reset.

    Always responds 200 with the same message so the response cannot be
    used to discover registered emails.
    """
    result = await auth_service.forgot_password(request.email)
    return ForgotPasswordResponse(message=result.message, reset_token=result.reset_token)


@router.post(
    "/reset-password",
    status_code=status.HTTP_200_OK,
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid, expired or used token"}},
)
async def reset_password(
    request: ResetPasswordRequest, auth_service: AuthServiceDep
) -> MessageResponse:
    """Complete a password reset with a single-use token."""
    await auth_service.reset_password(request.token, request.new_password)
    return MessageResponse(message="Password reset successfully")


@router.get(
    "/me",
    status_code=status.HTTP_200_OK,
    response_model=WhoamiResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
        404: {"model": ErrorResponse, "description": "User no longer exists"},
    },
)
async def whoami(current_user: CurrentUser, auth_service: AuthServiceDep) -> WhoamiResponse:
    """Return the user identified by the bearer token."""
    user = await auth_service.whoami(current_user.user_id)
    return WhoamiResponse(user=_user_response(user))
