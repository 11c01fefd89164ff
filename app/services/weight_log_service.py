"""
Weight Log Service

Creates, edits and lists weight measurements. Weights are validated in the
unit the user entered and stored in kilograms. Any write that touches a
challenge queues a leaderboard refresh for it.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.core.database import get_supabase_client
from app.core.exceptions import NotFoundError, PermissionDeniedError
from app.models.challenge import WeightLog
from app.services.challenge_service import ChallengeService, challenge_service
from app.services.challenge_timeline import as_utc
from app.services.logger import logger
from app.services.progress_stats import (
    GoalProgress,
    ProgressStats,
    calculate_goal_progress,
    calculate_progress_stats,
)
from app.services.tasks.leaderboard_tasks import schedule_leaderboard_refresh
from app.services.units import (
    convert_weight,
    format_weight,
    format_weight_loss,
    to_canonical,
)
from app.services.validation import validate_weight_log


class WeightLogService:
    """Service for a user's weight logs"""

    def __init__(self, challenges: Optional[ChallengeService] = None):
        self.challenges = challenges or challenge_service

    def _get_owned_log(self, supabase, log_id: str, user_id: str) -> WeightLog:
        result = (
            supabase.table("weight_logs")
            .select("*")
            .eq("id", log_id)
            .maybe_single()
            .execute()
        )

        if not result or not result.data:
            raise NotFoundError("Weight log not found")

        log = WeightLog.model_validate(result.data)
        if log.user_id != user_id:
            raise PermissionDeniedError("You can only modify your own weight logs")

        return log

    async def create_weight_log(
        self,
        user_id: str,
        weight: float,
        logged_at: datetime,
        unit: str = "kg",
        challenge_id: Optional[str] = None,
    ) -> WeightLog:
        """
        Record a measurement.

        Raises:
            ValidationFailedError: weight, unit or date invalid
            NotFoundError: challenge_id does not exist
            PermissionDeniedError: user is not on the challenge roster
        """
        validate_weight_log(weight, unit, logged_at)

        if challenge_id:
            challenge = self.challenges.get_challenge_or_404(challenge_id)
            if user_id not in challenge.participants:
                raise PermissionDeniedError("You are not a participant in this challenge")

        supabase = get_supabase_client()
        now = datetime.now(timezone.utc).isoformat()
        row = {
            "user_id": user_id,
            "challenge_id": challenge_id,
            "weight": to_canonical(weight, unit),
            "logged_at": as_utc(logged_at).isoformat(),
            "created_at": now,
            "updated_at": now,
        }

        try:
            result = supabase.table("weight_logs").insert(row).execute()
            if not result.data:
                raise Exception("Failed to create weight log")
        except Exception as e:
            logger.error(
                f"Failed to create weight log for user {user_id}",
                {"error": str(e), "user_id": user_id, "challenge_id": challenge_id},
            )
            raise

        log = WeightLog.model_validate(result.data[0])
        schedule_leaderboard_refresh(log.challenge_id)
        return log

    async def update_weight_log(
        self,
        log_id: str,
        user_id: str,
        weight: Optional[float] = None,
        unit: str = "kg",
        logged_at: Optional[datetime] = None,
    ) -> WeightLog:
        supabase = get_supabase_client()
        existing = self._get_owned_log(supabase, log_id, user_id)

        # Unchanged fields are re-checked in their stored form
        validate_weight_log(
            weight if weight is not None else existing.weight,
            unit if weight is not None else "kg",
            logged_at if logged_at is not None else existing.logged_at,
        )

        updates: Dict[str, Any] = {"updated_at": datetime.now(timezone.utc).isoformat()}
        if weight is not None:
            updates["weight"] = to_canonical(weight, unit)
        if logged_at is not None:
            updates["logged_at"] = as_utc(logged_at).isoformat()

        result = supabase.table("weight_logs").update(updates).eq("id", log_id).execute()
        if not result.data:
            raise Exception("Failed to update weight log")

        log = WeightLog.model_validate(result.data[0])
        schedule_leaderboard_refresh(log.challenge_id)
        return log

    async def delete_weight_log(self, log_id: str, user_id: str) -> None:
        supabase = get_supabase_client()
        existing = self._get_owned_log(supabase, log_id, user_id)

        supabase.table("weight_logs").delete().eq("id", log_id).execute()

        logger.info(
            f"Deleted weight log {log_id}",
            {"user_id": user_id, "challenge_id": existing.challenge_id},
        )
        schedule_leaderboard_refresh(existing.challenge_id)

    async def list_user_logs(
        self, user_id: str, limit: int = 50, challenge_id: Optional[str] = None
    ) -> List[WeightLog]:
        """Newest first."""
        supabase = get_supabase_client()
        query = supabase.table("weight_logs").select("*").eq("user_id", user_id)
        if challenge_id:
            query = query.eq("challenge_id", challenge_id)

        result = query.order("logged_at", desc=True).limit(limit).execute()
        return [WeightLog.model_validate(row) for row in result.data or []]

    async def list_challenge_logs(self, challenge_id: str, user_id: str) -> List[WeightLog]:
        challenge = self.challenges.get_challenge_or_404(challenge_id)
        if not self.challenges.is_member(challenge, user_id):
            raise PermissionDeniedError(
                "Access denied - you must be a participant in this challenge"
            )

        logs = self.challenges.repository.fetch_challenge_weight_logs(challenge_id)
        return sorted(logs, key=lambda log: as_utc(log.logged_at), reverse=True)

    @staticmethod
    def personal_stats(
        logs: List[WeightLog], start_weight: Optional[float] = None
    ) -> ProgressStats:
        return calculate_progress_stats(logs, start_weight)

    @staticmethod
    def goal_progress(
        stats: ProgressStats, goal_weight: float, unit: str = "kg"
    ) -> Optional[GoalProgress]:
        """Progress toward a goal entered in unit; None until something is logged."""
        if stats.initial_weight is None:
            return None

        goal = calculate_goal_progress(
            current_weight=stats.current_weight,
            start_weight=stats.initial_weight,
            goal_weight=convert_weight(goal_weight, unit, "kg"),
        )
        goal.remaining_weight = convert_weight(goal.remaining_weight, "kg", unit)
        return goal

    @staticmethod
    def display_stats(stats: ProgressStats, unit: str = "kg") -> Dict[str, str]:
        """Stored kilograms rendered in the user's preferred unit."""
        if stats.total_logs == 0:
            return {"current_weight": "--", "total_weight_loss": "--"}

        return {
            "current_weight": format_weight(
                convert_weight(stats.current_weight, "kg", unit), unit
            ),
            "total_weight_loss": format_weight_loss(
                convert_weight(stats.total_weight_loss, "kg", unit), unit
            ),
        }


weight_log_service = WeightLogService()
