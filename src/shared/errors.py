"""
Error taxonomy shared by the matcher and the roster services.

Every rejection carries a stable ``ErrorReason`` so callers can tell the
violated invariant apart without parsing messages.
"""

from enum import Enum
from typing import Any, Optional


class ErrorReason(str, Enum):
    """Stable, categorized rejection reasons."""

    # Validation
    MISSING_FIELD = "missing_field"
    INVALID_POSITION = "invalid_position"
    EMPTY_SKILLS = "empty_skills"
    INELIGIBLE_ROLE = "ineligible_role"

    # Permission
    NOT_OWNER = "not_owner"

    # Conflict
    ALREADY_MEMBER = "already_member"
    SLOT_TAKEN = "slot_taken"
    NOT_INVITEE = "not_invitee"
    INVALID_TRANSITION = "invalid_transition"
    SLOT_LOCKED = "slot_locked"
    TEAM_EXISTS = "team_exists"
    PROFILE_EXISTS = "profile_exists"

    # Not found
    TEAM_NOT_FOUND = "team_not_found"
    SLOT_NOT_FOUND = "slot_not_found"
    CANDIDATE_NOT_FOUND = "candidate_not_found"

    # Upstream
    UPSTREAM_FAILURE = "upstream_failure"


class TeamFormationError(Exception):
    """Base class for all rejections raised by the core."""

    kind = "error"

    def __init__(
        self,
        message: str,
        reason: ErrorReason,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses and logs."""
        return {
            "kind": self.kind,
            "reason": self.reason.value,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(reason={self.reason.value!r}, message={self.message!r})"


class ValidationError(TeamFormationError):
    """Malformed input, rejected before any state is touched."""

    kind = "validation"


class PermissionDenied(TeamFormationError):
    """Caller is not allowed to act on the referenced team."""

    kind = "permission"


class ConflictError(TeamFormationError):
    """Guard violation against existing state; state is left unchanged."""

    kind = "conflict"


class NotFoundError(TeamFormationError):
    """Referenced team, slot or candidate does not exist."""

    kind = "not_found"


class UpstreamError(TeamFormationError):
    """External scoring service failure. Never leaves the matcher."""

    kind = "upstream"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, ErrorReason.UPSTREAM_FAILURE, details)
