"""User service for booking agent accounts."""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from echannel.core.security import get_password_hash
from echannel.models.users import users
from echannel.schemas.auth import AgentRegister


class UserService:
    """Service for agent account operations."""

    @staticmethod
    async def create_agent(db: AsyncSession, agent_data: AgentRegister) -> dict:
        """Create a new agent with a hashed password."""
        query = (
            users.insert()
            .values(
                email=agent_data.email.lower(),
                password_hash=get_password_hash(agent_data.password),
                name=agent_data.name,
                role="agent",
                company_name=agent_data.company_name,
                contact_number=agent_data.contact_number,
            )
            .returning(users)
        )

        result = await db.execute(query)
        await db.commit()
        user = result.mappings().first()

        if not user:
            raise ValueError("Failed to create agent")

        return dict(user)

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: UUID) -> dict | None:
        """Get user by internal ID."""
        result = await db.execute(select(users).where(users.c.id == user_id))
        user = result.mappings().first()

        return dict(user) if user else None

    @staticmethod
    async def get_user_by_email(db: AsyncSession, email: str) -> dict | None:
        """Get user by email, case-insensitively."""
        result = await db.execute(select(users).where(func.lower(users.c.email) == email.lower()))
        user = result.mappings().first()

        return dict(user) if user else None

    @staticmethod
    async def update_last_login(db: AsyncSession, user_id: UUID) -> dict | None:
        """Stamp the user's last login time."""
        query = (
            update(users)
            .where(users.c.id == user_id)
            .values(last_login_at=datetime.now(UTC))
            .returning(users)
        )

        result = await db.execute(query)
        await db.commit()
        user = result.mappings().first()

        return dict(user) if user else None
