"""
Celery Tasks Package

Re-exports all tasks for Celery autodiscovery.

- leaderboard_tasks: Recomputing and caching challenge leaderboards
"""

from app.services.tasks.leaderboard_tasks import (
    refresh_challenge_leaderboard,
    schedule_leaderboard_refresh,
)

__all__ = [
    "refresh_challenge_leaderboard",
    "schedule_leaderboard_refresh",
]
