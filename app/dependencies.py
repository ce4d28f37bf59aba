"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.payment_gateway import PaymentGateway, get_payment_gateway
from app.core.redis_client import CacheManager, get_redis_client
from app.core.security import decode_access_token
from app.database import get_db
from app.models.doctors import doctors
from app.models.users import users
from app.schemas.auth import Actor, UserRole
from app.services.schedule_service import ScheduleCatalog

# Security
security = HTTPBearer()


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> UUID:
    """
    Extract and validate user ID from JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        User ID from token

    Raises:
        HTTPException: If token is invalid or expired
    """
    token = credentials.credentials
    payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id_str = payload.get("sub")
    if user_id_str is None or not isinstance(user_id_str, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return UUID(user_id_str)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID format",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_actor(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Actor:
    """
    Resolve the caller's role and doctor profile.

    Args:
        user_id: User ID from JWT token
        db: Database session

    Returns:
        Authenticated actor

    Raises:
        HTTPException: If user not found or inactive
    """
    result = await db.execute(select(users).where(users.c.id == user_id))
    user = result.mappings().first()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user["is_active"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    doctor_id = None
    if user["role"] == UserRole.DOCTOR.value:
        result = await db.execute(
            select(doctors.c.id).where(
                doctors.c.user_id == user_id,
                doctors.c.is_active.is_(True),
            )
        )
        doctor_id = result.scalar()

    return Actor(user_id=user["id"], role=user["role"], doctor_id=doctor_id)


async def require_patient(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """Reject callers that are not patients."""
    if not actor.is_patient:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Patient access required",
        )
    return actor


async def require_doctor(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """Reject callers without an active doctor profile."""
    if not actor.is_doctor:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Doctor access required",
        )
    return actor


def get_cache_manager() -> CacheManager:
    """Cache manager over the shared Redis client."""
    return CacheManager(get_redis_client())


def get_schedule_catalog(
    cache_manager: Annotated[CacheManager | None, Depends(get_cache_manager)],
) -> ScheduleCatalog:
    """Schedule catalog backed by the schedule cache."""
    return ScheduleCatalog(cache_manager)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
CurrentPatient = Annotated[Actor, Depends(require_patient)]
CurrentDoctor = Annotated[Actor, Depends(require_doctor)]
Schedules = Annotated[ScheduleCatalog, Depends(get_schedule_catalog)]
Gateway = Annotated[PaymentGateway, Depends(get_payment_gateway)]
