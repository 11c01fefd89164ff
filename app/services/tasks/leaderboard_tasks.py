"""
Leaderboard Tasks

Recompute a challenge's ranked leaderboard after a weight log changes and
store the snapshot in Redis for the leaderboard endpoint.
"""

from typing import Any, Dict

from app.services.tasks.base import celery_app, logger


@celery_app.task(
    name="refresh_challenge_leaderboard",
    bind=True,
    max_retries=2,
    default_retry_delay=10,
    autoretry_for=(Exception,),
    retry_backoff=True,
)
def refresh_challenge_leaderboard(self, challenge_id: str) -> Dict[str, Any]:
    """
    Rebuild and cache the leaderboard for one challenge.

    Args:
        challenge_id: Challenge whose leaderboard changed

    Returns:
        Dict with success flag and participant count
    """
    from app.services.challenge_service import challenge_service

    try:
        snapshot = challenge_service.refresh_leaderboard_cache(challenge_id)
        if snapshot is None:
            return {"success": False, "challenge_id": challenge_id, "error": "not_found"}

        return {
            "success": True,
            "challenge_id": challenge_id,
            "participants": len(snapshot["participants"]),
        }

    except Exception as e:
        logger.error(
            f"Failed to refresh leaderboard for challenge {challenge_id}",
            {
                "error": str(e),
                "challenge_id": challenge_id,
                "retry_count": self.request.retries,
            },
        )
        raise


def schedule_leaderboard_refresh(challenge_id: str) -> None:
    """Queue a refresh; a missing broker only costs freshness."""
    if not challenge_id:
        return

    try:
        refresh_challenge_leaderboard.delay(challenge_id)
    except Exception as e:
        logger.warning(
            f"Could not queue leaderboard refresh for challenge {challenge_id}",
            {"error": str(e), "challenge_id": challenge_id},
        )
