"""
Persistence for profiles, teams and the membership index.

``Repository`` is the contract the roster services compose their guards on.
Every mutation that a lifecycle transition depends on is a single atomic
primitive: a compare-and-set on one slot, or a claim on the unique
membership key of one candidate.

Two implementations ship: ``MongoRepository`` (Motor, async driver) and
``InMemoryRepository`` for tests and local runs.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional

from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument, IndexModel
from pymongo.errors import DuplicateKeyError

from .config import Settings, get_settings
from .models import (
    InvitationStatus,
    Membership,
    Position,
    Profile,
    Role,
    Slot,
    Team,
)


def _status_value(status: Optional[InvitationStatus]) -> Optional[str]:
    return status.value if status is not None else None


class Repository(ABC):
    """Get/list/update operations over profiles, teams and memberships."""

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    @abstractmethod
    async def insert_profile(self, profile: Profile) -> bool:
        """Insert a profile. Returns False if the id or email is taken."""

    @abstractmethod
    async def get_profile(self, profile_id: str) -> Optional[Profile]:
        ...

    @abstractmethod
    async def list_profiles(
        self, role: Optional[Role] = None, position: Optional[Position] = None
    ) -> list[Profile]:
        ...

    @abstractmethod
    async def update_profile(
        self, profile_id: str, fields: dict[str, Any]
    ) -> Optional[Profile]:
        """Apply field updates, returns the updated profile."""

    # -------------------------------------------------------------------------
    # Teams and slots
    # -------------------------------------------------------------------------

    @abstractmethod
    async def insert_team(self, team: Team) -> bool:
        """Insert a team. Returns False if the leader already owns one."""

    @abstractmethod
    async def get_team(self, team_id: str) -> Optional[Team]:
        ...

    @abstractmethod
    async def get_team_by_leader(self, leader_id: str) -> Optional[Team]:
        ...

    @abstractmethod
    async def list_teams(self) -> list[Team]:
        ...

    @abstractmethod
    async def list_teams_with_candidate(self, candidate_id: str) -> list[Team]:
        """Teams holding at least one slot assigned to the candidate."""

    @abstractmethod
    async def push_slot(self, team_id: str, slot: Slot) -> Optional[Team]:
        """Append a slot, returns the updated team."""

    @abstractmethod
    async def remove_slot(self, team_id: str, slot_id: str) -> Optional[Slot]:
        """Remove a slot atomically, returns the slot as it was removed."""

    @abstractmethod
    async def clear_slot(self, team_id: str, slot_id: str) -> Optional[Slot]:
        """Reset a slot to unassigned, returns the slot as it was before."""

    @abstractmethod
    async def update_slot_requirement(
        self, team_id: str, slot_id: str, position: Position, skills: list[str]
    ) -> bool:
        """Change position/skills unless the slot is accepted."""

    @abstractmethod
    async def compare_and_set_slot(
        self,
        team_id: str,
        slot_id: str,
        expected_candidate: Optional[str],
        expected_status: Optional[InvitationStatus],
        new_candidate: Optional[str],
        new_status: Optional[InvitationStatus],
        new_claim_id: Optional[str] = None,
    ) -> bool:
        """
        Set the slot's assignment only if it still holds the expected one.

        The slot's membership claim is replaced by new_claim_id.
        """

    # -------------------------------------------------------------------------
    # Membership index
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_membership(self, candidate_id: str) -> Optional[Membership]:
        ...

    @abstractmethod
    async def claim_membership(self, membership: Membership) -> Membership:
        """
        Insert the membership unless the candidate already holds one.

        Returns the record that holds the candidate's key afterwards: the
        given one on success, the existing one otherwise.
        """

    @abstractmethod
    async def release_membership(self, candidate_id: str, claim_id: str) -> bool:
        """Delete the candidate's membership only if it is this exact claim."""


class MongoRepository(Repository):
    """Async MongoDB repository."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._client: Optional[AsyncIOMotorClient] = None
        self._db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> None:
        """Establish database connection."""
        if self._client is not None:
            return

        logger.info(f"Connecting to MongoDB: {self.settings.mongodb_database}")
        self._client = AsyncIOMotorClient(self.settings.mongodb_uri)
        self._db = self._client[self.settings.mongodb_database]

        # Verify connection
        await self._client.admin.command("ping")
        logger.info("MongoDB connection established")

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._db = None
            logger.info("MongoDB connection closed")

    @property
    def db(self) -> AsyncIOMotorDatabase:
        """Get database instance."""
        if self._db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._db

    @staticmethod
    def _to_doc(model) -> dict[str, Any]:
        return model.model_dump(mode="json")

    @staticmethod
    def _strip(doc: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
        if doc is None:
            return None
        doc.pop("_id", None)
        return doc

    # -------------------------------------------------------------------------
    # Profiles Collection
    # -------------------------------------------------------------------------

    async def insert_profile(self, profile: Profile) -> bool:
        try:
            await self.db.profiles.insert_one(self._to_doc(profile))
        except DuplicateKeyError:
            return False
        return True

    async def get_profile(self, profile_id: str) -> Optional[Profile]:
        doc = self._strip(await self.db.profiles.find_one({"id": profile_id}))
        return Profile.model_validate(doc) if doc else None

    async def list_profiles(
        self, role: Optional[Role] = None, position: Optional[Position] = None
    ) -> list[Profile]:
        query: dict[str, Any] = {}
        if role is not None:
            query["role"] = role.value
        if position is not None:
            query["position"] = position.value

        cursor = self.db.profiles.find(query).sort("created_at", ASCENDING)
        return [Profile.model_validate(self._strip(doc)) async for doc in cursor]

    async def update_profile(
        self, profile_id: str, fields: dict[str, Any]
    ) -> Optional[Profile]:
        doc = await self.db.profiles.find_one_and_update(
            {"id": profile_id},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
        doc = self._strip(doc)
        return Profile.model_validate(doc) if doc else None

    # -------------------------------------------------------------------------
    # Teams Collection
    # -------------------------------------------------------------------------

    async def insert_team(self, team: Team) -> bool:
        try:
            await self.db.teams.insert_one(self._to_doc(team))
        except DuplicateKeyError:
            return False
        return True

    async def get_team(self, team_id: str) -> Optional[Team]:
        doc = self._strip(await self.db.teams.find_one({"id": team_id}))
        return Team.model_validate(doc) if doc else None

    async def get_team_by_leader(self, leader_id: str) -> Optional[Team]:
        doc = self._strip(await self.db.teams.find_one({"leader_id": leader_id}))
        return Team.model_validate(doc) if doc else None

    async def list_teams(self) -> list[Team]:
        cursor = self.db.teams.find({}).sort("created_at", ASCENDING)
        return [Team.model_validate(self._strip(doc)) async for doc in cursor]

    async def list_teams_with_candidate(self, candidate_id: str) -> list[Team]:
        cursor = self.db.teams.find({"slots.candidate_id": candidate_id})
        return [Team.model_validate(self._strip(doc)) async for doc in cursor]

    async def push_slot(self, team_id: str, slot: Slot) -> Optional[Team]:
        doc = await self.db.teams.find_one_and_update(
            {"id": team_id},
            {"$push": {"slots": self._to_doc(slot)}},
            return_document=ReturnDocument.AFTER,
        )
        doc = self._strip(doc)
        return Team.model_validate(doc) if doc else None

    async def remove_slot(self, team_id: str, slot_id: str) -> Optional[Slot]:
        before = await self.db.teams.find_one_and_update(
            {"id": team_id, "slots.id": slot_id},
            {"$pull": {"slots": {"id": slot_id}}},
            return_document=ReturnDocument.BEFORE,
        )
        if before is None:
            return None
        return Team.model_validate(self._strip(before)).get_slot(slot_id)

    async def clear_slot(self, team_id: str, slot_id: str) -> Optional[Slot]:
        before = await self.db.teams.find_one_and_update(
            {"id": team_id, "slots.id": slot_id},
            {
                "$set": {
                    "slots.$.candidate_id": None,
                    "slots.$.status": None,
                    "slots.$.claim_id": None,
                }
            },
            return_document=ReturnDocument.BEFORE,
        )
        if before is None:
            return None
        return Team.model_validate(self._strip(before)).get_slot(slot_id)

    async def update_slot_requirement(
        self, team_id: str, slot_id: str, position: Position, skills: list[str]
    ) -> bool:
        result = await self.db.teams.update_one(
            {
                "id": team_id,
                "slots": {
                    "$elemMatch": {
                        "id": slot_id,
                        "status": {"$ne": InvitationStatus.ACCEPTED.value},
                    }
                },
            },
            {"$set": {"slots.$.position": position.value, "slots.$.skills": skills}},
        )
        return result.matched_count > 0

    async def compare_and_set_slot(
        self,
        team_id: str,
        slot_id: str,
        expected_candidate: Optional[str],
        expected_status: Optional[InvitationStatus],
        new_candidate: Optional[str],
        new_status: Optional[InvitationStatus],
        new_claim_id: Optional[str] = None,
    ) -> bool:
        # None in the filter also matches a missing field
        result = await self.db.teams.update_one(
            {
                "id": team_id,
                "slots": {
                    "$elemMatch": {
                        "id": slot_id,
                        "candidate_id": expected_candidate,
                        "status": _status_value(expected_status),
                    }
                },
            },
            {
                "$set": {
                    "slots.$.candidate_id": new_candidate,
                    "slots.$.status": _status_value(new_status),
                    "slots.$.claim_id": new_claim_id,
                }
            },
        )
        return result.matched_count > 0

    # -------------------------------------------------------------------------
    # Memberships Collection
    # -------------------------------------------------------------------------

    async def get_membership(self, candidate_id: str) -> Optional[Membership]:
        doc = self._strip(
            await self.db.memberships.find_one({"candidate_id": candidate_id})
        )
        return Membership.model_validate(doc) if doc else None

    async def claim_membership(self, membership: Membership) -> Membership:
        try:
            await self.db.memberships.insert_one(self._to_doc(membership))
            return membership
        except DuplicateKeyError:
            existing = await self.get_membership(membership.candidate_id)
            if existing is None:
                # Released between the failed insert and the read; retry once
                return await self.claim_membership(membership)
            return existing

    async def release_membership(self, candidate_id: str, claim_id: str) -> bool:
        result = await self.db.memberships.delete_one(
            {"candidate_id": candidate_id, "claim_id": claim_id}
        )
        return result.deleted_count > 0

    # -------------------------------------------------------------------------
    # Index Setup
    # -------------------------------------------------------------------------

    async def ensure_indexes(self) -> None:
        """Create database indexes."""
        profile_indexes = [
            IndexModel([("id", ASCENDING)], unique=True),
            IndexModel([("email", ASCENDING)], unique=True, sparse=True),
            IndexModel([("role", ASCENDING)]),
            IndexModel([("position", ASCENDING)]),
        ]
        await self.db.profiles.create_indexes(profile_indexes)

        team_indexes = [
            IndexModel([("id", ASCENDING)], unique=True),
            IndexModel([("leader_id", ASCENDING)], unique=True),
            IndexModel([("slots.candidate_id", ASCENDING)]),
        ]
        await self.db.teams.create_indexes(team_indexes)

        # At most one accepted membership per candidate
        membership_indexes = [
            IndexModel([("candidate_id", ASCENDING)], unique=True),
            IndexModel([("team_id", ASCENDING)]),
        ]
        await self.db.memberships.create_indexes(membership_indexes)

        logger.info("Database indexes created")


class InMemoryRepository(Repository):
    """
    Process-local repository.

    A single asyncio lock serializes every mutation, which gives the same
    per-slot compare-and-set and per-candidate claim semantics as the
    MongoDB implementation within one event loop.
    """

    def __init__(self) -> None:
        self._profiles: dict[str, Profile] = {}
        self._teams: dict[str, Team] = {}
        self._memberships: dict[str, Membership] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _copy(model):
        return model.model_copy(deep=True) if model is not None else None

    def _find_slot(self, team_id: str, slot_id: str) -> Optional[Slot]:
        team = self._teams.get(team_id)
        return team.get_slot(slot_id) if team else None

    # Profiles

    async def insert_profile(self, profile: Profile) -> bool:
        async with self._lock:
            if profile.id in self._profiles:
                return False
            if profile.email and any(
                p.email == profile.email for p in self._profiles.values()
            ):
                return False
            self._profiles[profile.id] = self._copy(profile)
            return True

    async def get_profile(self, profile_id: str) -> Optional[Profile]:
        return self._copy(self._profiles.get(profile_id))

    async def list_profiles(
        self, role: Optional[Role] = None, position: Optional[Position] = None
    ) -> list[Profile]:
        return [
            self._copy(p)
            for p in self._profiles.values()
            if (role is None or p.role == role)
            and (position is None or p.position == position)
        ]

    async def update_profile(
        self, profile_id: str, fields: dict[str, Any]
    ) -> Optional[Profile]:
        async with self._lock:
            profile = self._profiles.get(profile_id)
            if profile is None:
                return None
            updated = Profile.model_validate({**profile.model_dump(), **fields})
            self._profiles[profile_id] = updated
            return self._copy(updated)

    # Teams

    async def insert_team(self, team: Team) -> bool:
        async with self._lock:
            if team.id in self._teams or any(
                t.leader_id == team.leader_id for t in self._teams.values()
            ):
                return False
            self._teams[team.id] = self._copy(team)
            return True

    async def get_team(self, team_id: str) -> Optional[Team]:
        return self._copy(self._teams.get(team_id))

    async def get_team_by_leader(self, leader_id: str) -> Optional[Team]:
        for team in self._teams.values():
            if team.leader_id == leader_id:
                return self._copy(team)
        return None

    async def list_teams(self) -> list[Team]:
        return [self._copy(t) for t in self._teams.values()]

    async def list_teams_with_candidate(self, candidate_id: str) -> list[Team]:
        return [
            self._copy(t)
            for t in self._teams.values()
            if any(s.candidate_id == candidate_id for s in t.slots)
        ]

    async def push_slot(self, team_id: str, slot: Slot) -> Optional[Team]:
        async with self._lock:
            team = self._teams.get(team_id)
            if team is None:
                return None
            team.slots.append(self._copy(slot))
            return self._copy(team)

    async def remove_slot(self, team_id: str, slot_id: str) -> Optional[Slot]:
        async with self._lock:
            team = self._teams.get(team_id)
            slot = team.get_slot(slot_id) if team else None
            if slot is None:
                return None
            team.slots = [s for s in team.slots if s.id != slot_id]
            return slot

    async def clear_slot(self, team_id: str, slot_id: str) -> Optional[Slot]:
        async with self._lock:
            slot = self._find_slot(team_id, slot_id)
            if slot is None:
                return None
            before = self._copy(slot)
            slot.candidate_id = None
            slot.status = None
            slot.claim_id = None
            return before

    async def update_slot_requirement(
        self, team_id: str, slot_id: str, position: Position, skills: list[str]
    ) -> bool:
        async with self._lock:
            slot = self._find_slot(team_id, slot_id)
            if slot is None or slot.status is InvitationStatus.ACCEPTED:
                return False
            slot.position = position
            slot.skills = list(skills)
            return True

    async def compare_and_set_slot(
        self,
        team_id: str,
        slot_id: str,
        expected_candidate: Optional[str],
        expected_status: Optional[InvitationStatus],
        new_candidate: Optional[str],
        new_status: Optional[InvitationStatus],
        new_claim_id: Optional[str] = None,
    ) -> bool:
        async with self._lock:
            slot = self._find_slot(team_id, slot_id)
            if slot is None:
                return False
            if slot.candidate_id != expected_candidate or slot.status != expected_status:
                return False
            slot.candidate_id = new_candidate
            slot.status = new_status
            slot.claim_id = new_claim_id
            return True

    # Memberships

    async def get_membership(self, candidate_id: str) -> Optional[Membership]:
        return self._copy(self._memberships.get(candidate_id))

    async def claim_membership(self, membership: Membership) -> Membership:
        async with self._lock:
            existing = self._memberships.get(membership.candidate_id)
            if existing is not None:
                return self._copy(existing)
            self._memberships[membership.candidate_id] = self._copy(membership)
            return membership

    async def release_membership(self, candidate_id: str, claim_id: str) -> bool:
        async with self._lock:
            existing = self._memberships.get(candidate_id)
            if existing is None or existing.claim_id != claim_id:
                return False
            del self._memberships[candidate_id]
            return True


# Global database instance
_database: Optional[MongoRepository] = None


async def get_database() -> MongoRepository:
    """Get or create database instance."""
    global _database
    if _database is None:
        _database = MongoRepository()
        await _database.connect()
    return _database
