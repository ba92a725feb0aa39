"""Authentication endpoints."""

from fastapi import APIRouter, status

from echannel.dependencies import CurrentUser, DatabaseSession
from echannel.schemas.auth import (
    AgentRegister,
    AgentResponse,
    LoginRequest,
    LoginResponse,
    Token,
    TokenRefresh,
)
from echannel.services.auth_service import AuthService

router = APIRouter()


@router.post(
    "/register",
    response_model=AgentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Authentication"],
    summary="Register a booking agent",
)
async def register(request: AgentRegister, db: DatabaseSession) -> AgentResponse:
    """
    Create a booking agent account.

    Args:
        request: Email, password and profile
        db: Database session

    Returns:
        Created agent

    Raises:
        ConflictException: If the email is already registered
    """
    auth_service = AuthService(db)
    user = await auth_service.register(request)
    return AgentResponse.model_validate(user)


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Login with email and password",
)
async def login(request: LoginRequest, db: DatabaseSession) -> LoginResponse:
    """
    Authenticate an agent and return JWT tokens.

    Args:
        request: Email and password
        db: Database session

    Returns:
        Access token, refresh token, and agent information
    """
    auth_service = AuthService(db)
    return await auth_service.login(request.email, request.password)


@router.post(
    "/refresh",
    response_model=Token,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Refresh access token",
)
async def refresh_token(request: TokenRefresh, db: DatabaseSession) -> Token:
    """
    Refresh access token using refresh token.

    Args:
        request: Refresh token
        db: Database session

    Returns:
        New access token and refresh token
    """
    auth_service = AuthService(db)
    return await auth_service.refresh_access_token(request.refresh_token)


@router.get(
    "/me",
    response_model=AgentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Current agent",
)
async def me(current_user: CurrentUser) -> AgentResponse:
    """Return the authenticated agent's profile."""
    return AgentResponse.model_validate(current_user)
