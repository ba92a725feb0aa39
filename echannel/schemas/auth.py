"""Authentication schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class Token(BaseModel):
    """JWT token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefresh(BaseModel):
    """Token refresh request schema."""

    refresh_token: str


class AgentRegister(BaseModel):
    """Booking agent self-registration."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    company_name: str | None = Field(None, max_length=255)
    contact_number: str | None = Field(None, max_length=20)


class LoginRequest(BaseModel):
    """Email and password login."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class AgentResponse(BaseModel):
    """Agent response schema."""

    id: UUID
    email: str
    name: str
    role: str
    company_name: str | None = None
    contact_number: str | None = None
    is_active: bool = True
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    """Login response with tokens and agent info."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: AgentResponse
