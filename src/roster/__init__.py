"""
Roster Service - teams, slots and the invitation lifecycle.
"""

from .lifecycle import SlotLifecycleManager
from .service import TeamService, clean_skills, parse_position

__all__ = ["SlotLifecycleManager", "TeamService", "clean_skills", "parse_position"]
