"""Authentication schemas."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class UserRole(str, Enum):
    """Role carried by an authenticated user."""

    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


class Actor(BaseModel):
    """Authenticated caller resolved from the bearer token."""

    user_id: UUID
    role: UserRole
    # Set when the caller owns a doctor profile
    doctor_id: UUID | None = None

    @property
    def is_patient(self) -> bool:
        """Check if the caller acts as a patient."""
        return self.role == UserRole.PATIENT

    @property
    def is_doctor(self) -> bool:
        """Check if the caller acts as a doctor."""
        return self.role == UserRole.DOCTOR and self.doctor_id is not None
