# Shared module for common configuration, models, errors and persistence
from .config import Settings, get_settings
from .database import InMemoryRepository, MongoRepository, Repository, get_database
from .errors import (
    ConflictError,
    ErrorReason,
    NotFoundError,
    PermissionDenied,
    TeamFormationError,
    UpstreamError,
    ValidationError,
)
from .models import (
    Caller,
    InvitationStatus,
    Membership,
    Position,
    Profile,
    Role,
    Slot,
    SlotRequirement,
    SlotState,
    Suggestion,
    Team,
)

__all__ = [
    "Settings",
    "get_settings",
    "Repository",
    "MongoRepository",
    "InMemoryRepository",
    "get_database",
    "TeamFormationError",
    "ValidationError",
    "PermissionDenied",
    "ConflictError",
    "NotFoundError",
    "UpstreamError",
    "ErrorReason",
    "Caller",
    "InvitationStatus",
    "Membership",
    "Position",
    "Profile",
    "Role",
    "Slot",
    "SlotRequirement",
    "SlotState",
    "Suggestion",
    "Team",
]
