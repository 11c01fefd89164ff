"""
Challenge Repository

Read access to challenges, their roster users and their weight logs. Rows
are parsed into the domain models here so the ranking pipeline never sees
raw database payloads.
"""

from typing import Any, Dict, List, Optional, Sequence

from app.core.config import settings
from app.core.database import get_supabase_client
from app.models.challenge import Challenge, RosterUser, WeightLog
from app.services.logger import logger


def placeholder_user(user_id: str) -> RosterUser:
    """Stand-in for a roster id whose user row no longer exists."""
    return RosterUser(id=user_id, email="Unknown User", name=None)


def _parse_user(row: Dict[str, Any]) -> RosterUser:
    return RosterUser(
        id=row["id"],
        email=row.get("email") or "Unknown User",
        name=row.get("name") or None,
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class ChallengeRepository:
    """Storage collaborator for the ranking pipeline."""

    def __init__(self, supabase=None, batch_size: Optional[int] = None):
        self._supabase = supabase
        self.batch_size = batch_size or settings.ROSTER_FETCH_BATCH_SIZE

    @property
    def supabase(self):
        if self._supabase is not None:
            return self._supabase
        return get_supabase_client()

    def fetch_challenge(self, challenge_id: str) -> Optional[Challenge]:
        result = (
            self.supabase.table("challenges")
            .select("*")
            .eq("id", challenge_id)
            .maybe_single()
            .execute()
        )

        if not result or not result.data:
            return None

        return Challenge.model_validate(result.data)

    def fetch_roster_users(self, user_ids: Sequence[str]) -> List[RosterUser]:
        """
        Load user rows for a roster.

        Queries run in batches of batch_size ids. The result follows roster
        order and has one entry per id, using a placeholder for ids without
        a user row.
        """
        if not user_ids:
            return []

        unique_ids = list(dict.fromkeys(user_ids))
        rows_by_id: Dict[str, Dict[str, Any]] = {}

        for offset in range(0, len(unique_ids), self.batch_size):
            batch = unique_ids[offset : offset + self.batch_size]
            result = (
                self.supabase.table("users")
                .select("id, email, name, created_at, updated_at")
                .in_("id", batch)
                .execute()
            )
            for row in result.data or []:
                rows_by_id[row["id"]] = row

        users = []
        for user_id in user_ids:
            row = rows_by_id.get(user_id)
            if row is None:
                logger.warning(
                    f"Roster user {user_id} has no user record",
                    {"user_id": user_id},
                )
                users.append(placeholder_user(user_id))
            else:
                users.append(_parse_user(row))

        return users

    def fetch_challenge_weight_logs(self, challenge_id: str) -> List[WeightLog]:
        """All logs attached to a challenge, in no particular order."""
        result = (
            self.supabase.table("weight_logs")
            .select("*")
            .eq("challenge_id", challenge_id)
            .execute()
        )

        return [WeightLog.model_validate(row) for row in result.data or []]

    def fetch_user_challenges(self, user_id: str) -> List[Challenge]:
        """Challenges whose roster contains the user."""
        result = (
            self.supabase.table("challenges")
            .select("*")
            .contains("participants", [user_id])
            .execute()
        )

        return [Challenge.model_validate(row) for row in result.data or []]
