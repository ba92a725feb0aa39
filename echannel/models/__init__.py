"""Database models."""

from echannel.models.appointments import appointments
from echannel.models.doctors import doctors
from echannel.models.hospitals import hospitals
from echannel.models.metadata import metadata
from echannel.models.time_slots import time_slots
from echannel.models.users import users

__all__ = [
    "appointments",
    "doctors",
    "hospitals",
    "metadata",
    "time_slots",
    "users",
]
