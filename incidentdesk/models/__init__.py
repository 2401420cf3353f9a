"""SQLAlchemy models package."""

from .base import Base
from .account import Account
from .incident import Incident
from .incident_update import IncidentUpdate

__all__ = [
    "Base",
    "Account",
    "Incident",
    "IncidentUpdate",
]
