"""
Challenge Service

Business logic for weight-loss challenges:
- Creating, joining, updating, archiving and deleting challenges
- Listing a user's challenges with search/filter/sort
- Ranked participants, dashboards and cached leaderboards

Every ranked view goes through rank_participants/rollup_statistics so the
participants list, dashboard, leaderboard cache and watchers always agree.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.core.cache import get_redis_client, leaderboard_cache_key
from app.core.config import settings
from app.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from app.models.challenge import Challenge, ChallengeDashboard
from app.services.challenge_filters import ChallengeFilters, filter_and_sort_challenges
from app.services.challenge_repository import ChallengeRepository
from app.services.challenge_timeline import as_utc, compute_progress, resolve_status
from app.services.logger import logger
from app.services.ranking import (
    has_meaningful_leader,
    rank_participants,
    rollup_statistics,
)
from app.services.tasks.leaderboard_tasks import schedule_leaderboard_refresh
from app.services.validation import (
    sanitize_string,
    validate_create_challenge,
    validate_update_challenge,
)

ROSTER_WRITE_ATTEMPTS = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _business_rule(field: str, message: str, code: str) -> ValidationFailedError:
    return ValidationFailedError([{"field": field, "message": message, "code": code}])


class ChallengeService:
    """Service for managing challenges and their ranked views"""

    def __init__(self, repository: Optional[ChallengeRepository] = None):
        self.repository = repository or ChallengeRepository()

    def get_challenge_or_404(self, challenge_id: str) -> Challenge:
        challenge = self.repository.fetch_challenge(challenge_id)
        if challenge is None:
            raise NotFoundError("Challenge not found")
        return challenge

    @staticmethod
    def is_member(challenge: Challenge, user_id: str) -> bool:
        return user_id in challenge.participants or challenge.creator_id == user_id

    def _require_member(self, challenge: Challenge, user_id: str) -> None:
        if not self.is_member(challenge, user_id):
            raise PermissionDeniedError("You are not a participant in this challenge")

    @staticmethod
    def _require_creator(challenge: Challenge, user_id: str, action: str) -> None:
        if challenge.creator_id != user_id:
            raise PermissionDeniedError(
                f"Only the challenge creator can {action} this challenge"
            )

    def _update_row(self, challenge_id: str, updates: Dict[str, Any]) -> Challenge:
        updates["updated_at"] = _utcnow().isoformat()
        result = (
            self.repository.supabase.table("challenges")
            .update(updates)
            .eq("id", challenge_id)
            .execute()
        )
        if not result.data:
            raise Exception("Failed to update challenge")
        return Challenge.model_validate(result.data[0])

    async def create_challenge(
        self,
        user_id: str,
        name: str,
        description: str,
        end_date: datetime,
        join_by_date: datetime,
        start_date: Optional[datetime] = None,
        participant_limit: Optional[int] = None,
    ) -> Challenge:
        """
        Create a challenge with the creator as its first participant.

        Raises:
            ValidationFailedError: if any field is invalid
        """
        validate_create_challenge(
            name=name,
            description=description,
            end_date=end_date,
            join_by_date=join_by_date,
            start_date=start_date,
            participant_limit=participant_limit,
        )

        now = _utcnow().isoformat()
        row = {
            "name": sanitize_string(name),
            "description": sanitize_string(description),
            "creator_id": user_id,
            "start_date": as_utc(start_date).isoformat() if start_date else None,
            "end_date": as_utc(end_date).isoformat(),
            "join_by_date": as_utc(join_by_date).isoformat(),
            "participants": [user_id],
            "participant_limit": participant_limit or settings.DEFAULT_PARTICIPANT_LIMIT,
            "is_active": True,
            "is_archived": False,
            "created_at": now,
            "updated_at": now,
        }

        try:
            result = self.repository.supabase.table("challenges").insert(row).execute()
            if not result.data:
                raise Exception("Failed to create challenge")

            challenge = Challenge.model_validate(result.data[0])
            logger.info(
                f"Created challenge '{challenge.name}' by user {user_id}",
                {"challenge_id": challenge.id, "user_id": user_id},
            )
            return challenge

        except Exception as e:
            logger.error(
                f"Failed to create challenge for user {user_id}",
                {"error": str(e), "user_id": user_id, "name": name},
            )
            raise

    def _check_joinable(self, challenge: Challenge, user_id: str, now: datetime) -> None:
        if challenge.is_archived:
            raise _business_rule(
                "challenge", "This challenge has been archived.", "CHALLENGE_ARCHIVED"
            )
        if not challenge.is_active:
            raise _business_rule(
                "challenge", "This challenge is not currently active.", "CHALLENGE_INACTIVE"
            )
        if now > as_utc(challenge.join_by_date):
            raise _business_rule(
                "challenge",
                "This challenge is no longer accepting new participants. "
                "The join deadline has passed.",
                "JOIN_DEADLINE_PASSED",
            )
        if now > as_utc(challenge.end_date):
            raise _business_rule(
                "challenge", "This challenge has already ended.", "CHALLENGE_ENDED"
            )
        if user_id in challenge.participants:
            raise ConflictError("You are already a participant in this challenge.")
        if len(challenge.participants) >= challenge.participant_limit:
            raise _business_rule(
                "challenge",
                "This challenge has reached its participant limit.",
                "PARTICIPANT_LIMIT_REACHED",
            )

    def _swap_roster(
        self, challenge: Challenge, participants: List[str]
    ) -> Optional[Challenge]:
        """Write a roster only if the row is unchanged since it was read."""
        query = (
            self.repository.supabase.table("challenges")
            .update({"participants": participants, "updated_at": _utcnow().isoformat()})
            .eq("id", challenge.id)
        )
        if challenge.updated_at is not None:
            query = query.eq("updated_at", challenge.updated_at.isoformat())

        result = query.execute()
        if not result.data:
            return None
        return Challenge.model_validate(result.data[0])

    async def join_challenge(
        self, challenge_id: str, user_id: str, now: Optional[datetime] = None
    ) -> Challenge:
        """
        Add a user to a challenge roster.

        The roster is re-read and every rule re-checked when another write
        lands between the read and the update.

        Raises:
            NotFoundError: unknown challenge
            ConflictError: user already on the roster, or the roster kept changing
            ValidationFailedError: archived, inactive, past deadline, ended or full
        """
        now = as_utc(now or _utcnow())

        for _ in range(ROSTER_WRITE_ATTEMPTS):
            challenge = self.get_challenge_or_404(challenge_id)
            self._check_joinable(challenge, user_id, now)

            updated = self._swap_roster(challenge, challenge.participants + [user_id])
            if updated is not None:
                logger.info(
                    f"User {user_id} joined challenge {challenge_id}",
                    {"challenge_id": challenge_id, "participants": len(updated.participants)},
                )
                schedule_leaderboard_refresh(challenge_id)
                return updated

            logger.warning(
                f"Roster of challenge {challenge_id} changed during join, retrying",
                {"challenge_id": challenge_id, "user_id": user_id},
            )

        raise ConflictError("The challenge roster is changing, please try again.")

    async def update_challenge(
        self,
        challenge_id: str,
        user_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        participant_limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Challenge:
        """
        Edit challenge metadata. After the join deadline only the
        description can change.
        """
        now = as_utc(now or _utcnow())
        challenge = self.get_challenge_or_404(challenge_id)
        self._require_creator(challenge, user_id, "update")

        validate_update_challenge(
            name=name,
            description=description,
            participant_limit=participant_limit,
            current_participants=len(challenge.participants),
        )

        if now > as_utc(challenge.join_by_date):
            restricted = [
                field
                for field, value in (("name", name), ("participant_limit", participant_limit))
                if value is not None
            ]
            if restricted:
                raise _business_rule(
                    "update",
                    f"Cannot update {', '.join(restricted)} after challenge has started. "
                    "Only description can be updated.",
                    "CHALLENGE_STARTED",
                )

        updates: Dict[str, Any] = {}
        if name is not None:
            updates["name"] = sanitize_string(name)
        if description is not None:
            updates["description"] = sanitize_string(description)
        if participant_limit is not None:
            updates["participant_limit"] = participant_limit

        if not updates:
            return challenge

        updated = self._update_row(challenge_id, updates)
        schedule_leaderboard_refresh(challenge_id)
        return updated

    async def set_archived(
        self, challenge_id: str, user_id: str, archived: bool
    ) -> Challenge:
        challenge = self.get_challenge_or_404(challenge_id)
        self._require_creator(challenge, user_id, "archive" if archived else "unarchive")

        if challenge.is_archived == archived:
            return challenge

        updated = self._update_row(challenge_id, {"is_archived": archived})
        logger.info(
            f"Challenge {challenge_id} {'archived' if archived else 'unarchived'}",
            {"challenge_id": challenge_id, "user_id": user_id},
        )
        schedule_leaderboard_refresh(challenge_id)
        return updated

    async def delete_challenge(
        self, challenge_id: str, user_id: str, now: Optional[datetime] = None
    ) -> None:
        """
        Delete a challenge nobody else has joined, before its join deadline.
        """
        now = as_utc(now or _utcnow())
        challenge = self.get_challenge_or_404(challenge_id)
        self._require_creator(challenge, user_id, "delete")

        if now > as_utc(challenge.join_by_date):
            raise _business_rule(
                "delete",
                "Cannot delete challenge after it has started",
                "CHALLENGE_STARTED",
            )

        others = [p for p in challenge.participants if p != challenge.creator_id]
        if others:
            raise _business_rule(
                "delete",
                "Cannot delete challenge with participants. "
                "Please remove all participants first.",
                "HAS_PARTICIPANTS",
            )

        try:
            self.repository.supabase.table("challenges").delete().eq(
                "id", challenge_id
            ).execute()
            redis_client = get_redis_client()
            if redis_client:
                redis_client.delete(leaderboard_cache_key(challenge_id))
        except Exception as e:
            logger.error(
                f"Failed to delete challenge {challenge_id}",
                {"error": str(e), "challenge_id": challenge_id, "user_id": user_id},
            )
            raise

        logger.info(
            f"Deleted challenge {challenge_id}",
            {"challenge_id": challenge_id, "user_id": user_id},
        )

    async def get_challenge(
        self, challenge_id: str, user_id: str, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Challenge row plus its status and progress evaluated at now."""
        now = as_utc(now or _utcnow())
        challenge = self.get_challenge_or_404(challenge_id)
        self._require_member(challenge, user_id)

        return {
            **challenge.model_dump(mode="json"),
            "status": resolve_status(challenge.start_date, challenge.end_date, now).value,
            "progress": compute_progress(
                challenge.start_date, challenge.end_date, now
            ).model_dump(),
        }

    async def list_user_challenges(
        self,
        user_id: str,
        filters: Optional[ChallengeFilters] = None,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        now = as_utc(now or _utcnow())
        challenges = self.repository.fetch_user_challenges(user_id)
        selected = filter_and_sort_challenges(
            challenges, filters or ChallengeFilters(), now
        )

        return [
            {
                **c.model_dump(mode="json"),
                "status": resolve_status(c.start_date, c.end_date, now).value,
            }
            for c in selected
        ]

    async def get_participants(
        self, challenge_id: str, user_id: str
    ) -> Dict[str, Any]:
        challenge = self.get_challenge_or_404(challenge_id)
        self._require_member(challenge, user_id)

        roster = self.repository.fetch_roster_users(challenge.participants)
        logs = self.repository.fetch_challenge_weight_logs(challenge_id)
        ranked = rank_participants(roster, logs)

        return {
            "participants": [r.model_dump(mode="json") for r in ranked],
            "count": len(ranked),
        }

    def build_dashboard(
        self, challenge: Challenge, now: Optional[datetime] = None
    ) -> ChallengeDashboard:
        """Run the full ranking pipeline for one challenge."""
        now = as_utc(now or _utcnow())

        roster = self.repository.fetch_roster_users(challenge.participants)
        logs = self.repository.fetch_challenge_weight_logs(challenge.id)
        ranked = rank_participants(roster, logs)
        stats = rollup_statistics(ranked, len(challenge.participants))

        return ChallengeDashboard(
            challenge=challenge,
            status=resolve_status(challenge.start_date, challenge.end_date, now),
            progress=compute_progress(challenge.start_date, challenge.end_date, now),
            participants=ranked,
            stats=stats,
            has_leader=has_meaningful_leader(stats),
            generated_at=now,
        )

    async def get_dashboard(
        self, challenge_id: str, user_id: str, now: Optional[datetime] = None
    ) -> ChallengeDashboard:
        challenge = self.get_challenge_or_404(challenge_id)
        self._require_member(challenge, user_id)
        return self.build_dashboard(challenge, now)

    def build_leaderboard_snapshot(
        self, challenge: Challenge, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        dashboard = self.build_dashboard(challenge, now)
        return {
            "challenge_id": challenge.id,
            "status": dashboard.status.value,
            "participants": [
                r.model_dump(mode="json", exclude={"weight_logs"})
                for r in dashboard.participants
            ],
            "stats": dashboard.stats.model_dump(
                mode="json", exclude={"top_performer": {"weight_logs": True}}
            ),
            "has_leader": dashboard.has_leader,
            "generated_at": dashboard.generated_at.isoformat(),
        }

    def refresh_leaderboard_cache(self, challenge_id: str) -> Optional[Dict[str, Any]]:
        """Recompute and store a leaderboard; None when the challenge is gone."""
        challenge = self.repository.fetch_challenge(challenge_id)
        redis_client = get_redis_client()

        if challenge is None:
            if redis_client:
                redis_client.delete(leaderboard_cache_key(challenge_id))
            return None

        snapshot = self.build_leaderboard_snapshot(challenge)

        if redis_client:
            try:
                redis_client.setex(
                    leaderboard_cache_key(challenge_id),
                    settings.LEADERBOARD_CACHE_TTL_SECONDS,
                    json.dumps(snapshot),
                )
            except Exception as e:
                logger.warning(
                    f"Failed to cache leaderboard for challenge {challenge_id}",
                    {"error": str(e), "challenge_id": challenge_id},
                )

        return snapshot

    async def get_leaderboard(self, challenge_id: str, user_id: str) -> Dict[str, Any]:
        """Read-through: serve the cached snapshot, rebuilding it on a miss."""
        challenge = self.get_challenge_or_404(challenge_id)
        self._require_member(challenge, user_id)

        redis_client = get_redis_client()
        if redis_client:
            try:
                cached = redis_client.get(leaderboard_cache_key(challenge_id))
                if cached:
                    return {**json.loads(cached), "cached": True}
            except Exception as e:
                logger.warning(
                    f"Failed to read cached leaderboard for challenge {challenge_id}",
                    {"error": str(e), "challenge_id": challenge_id},
                )

        snapshot = self.refresh_leaderboard_cache(challenge_id) or {}
        return {**snapshot, "cached": False}


challenge_service = ChallengeService()
