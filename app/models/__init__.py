"""Database models."""

from app.models.appointments import appointments
from app.models.base import metadata
from app.models.doctors import doctors
from app.models.practice_locations import practice_locations
from app.models.queue_counters import queue_counters
from app.models.users import users

__all__ = [
    "appointments",
    "doctors",
    "metadata",
    "practice_locations",
    "queue_counters",
    "users",
]
