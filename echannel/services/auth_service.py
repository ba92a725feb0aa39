"""Authentication service for agent credentials and JWT."""

from datetime import timedelta
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from echannel.config import settings
from echannel.core.exceptions import ConflictException, UnauthorizedException
from echannel.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    verify_password,
)
from echannel.schemas.auth import AgentRegister, AgentResponse, LoginResponse, Token
from echannel.services.user_service import UserService

logger = structlog.get_logger(__name__)


class AuthService:
    """Authentication service for handling agent login and JWT operations."""

    def __init__(self, db: AsyncSession):
        """Initialize auth service with database session."""
        self.db = db

    async def register(self, agent_data: AgentRegister) -> dict:
        """
        Register a new booking agent.

        Raises:
            ConflictException: If the email is already registered
        """
        if await UserService.get_user_by_email(self.db, agent_data.email):
            raise ConflictException("An account with this email already exists")

        try:
            user = await UserService.create_agent(self.db, agent_data)
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictException("An account with this email already exists") from e

        logger.info("agent_registered", user_id=str(user["id"]))
        return user

    async def login(self, email: str, password: str) -> LoginResponse:
        """
        Authenticate an agent and issue a token pair.

        Raises:
            UnauthorizedException: Unknown email, wrong password or inactive account
        """
        user = await UserService.get_user_by_email(self.db, email)

        if not user or not verify_password(password, user["password_hash"]):
            logger.info("login_failed", email=email)
            raise UnauthorizedException("Invalid email or password")

        if not user["is_active"]:
            raise UnauthorizedException("Account is deactivated")

        user = await UserService.update_last_login(self.db, user["id"]) or user
        tokens = self.create_tokens(str(user["id"]))

        logger.info("agent_logged_in", user_id=str(user["id"]))
        return LoginResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type,
            user=AgentResponse.model_validate(user),
        )

    def create_tokens(self, user_id: str) -> Token:
        """
        Create access and refresh tokens for a user.

        Args:
            user_id: User identifier (internal UUID)

        Returns:
            Token pair (access and refresh)
        """
        access_token = create_access_token(
            data={"sub": user_id},
            expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
        )

        refresh_token = create_refresh_token(
            data={"sub": user_id},
            expires_delta=timedelta(days=settings.refresh_token_expire_days),
        )

        return Token(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
        )

    async def refresh_access_token(self, refresh_token: str) -> Token:
        """
        Create new token pair from a refresh token.

        Raises:
            UnauthorizedException: If the token is invalid or the agent is gone
        """
        payload = decode_refresh_token(refresh_token)

        if payload is None:
            raise UnauthorizedException("Invalid refresh token")

        user_id = payload.get("sub")
        if user_id is None:
            raise UnauthorizedException("Invalid refresh token")

        try:
            user = await UserService.get_user_by_id(self.db, UUID(user_id))
        except ValueError:
            raise UnauthorizedException("Invalid refresh token") from None

        if not user or not user["is_active"]:
            raise UnauthorizedException("Invalid refresh token")

        return self.create_tokens(user_id)
