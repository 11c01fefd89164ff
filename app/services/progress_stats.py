"""
Personal progress figures for a single user's weight history.
"""

import math
from datetime import datetime
from typing import Optional, Sequence

from pydantic import BaseModel

from app.models.challenge import WeightLog
from app.services.challenge_timeline import as_utc


class ProgressStats(BaseModel):
    total_weight_loss: float = 0.0
    current_weight: float = 0.0
    days_active: int = 0
    average_weight_loss: float = 0.0
    progress_percentage: float = 0.0
    last_logged_date: Optional[datetime] = None
    total_logs: int = 0
    initial_weight: Optional[float] = None


class GoalProgress(BaseModel):
    progress_percentage: float = 0.0
    remaining_weight: float = 0.0
    is_goal_reached: bool = False


def calculate_progress_stats(
    logs: Sequence[WeightLog], start_weight: Optional[float] = None
) -> ProgressStats:
    """
    Summarize a user's logs.

    start_weight overrides the oldest logged weight as the baseline. The
    per-day average is taken over the span between first and last log,
    rounded up and never less than one day.
    """
    if not logs:
        return ProgressStats(current_weight=start_weight or 0.0)

    newest_first = sorted(logs, key=lambda log: as_utc(log.logged_at), reverse=True)
    newest = newest_first[0]
    oldest = newest_first[-1]

    current_weight = newest.weight
    initial_weight = start_weight or oldest.weight
    total_weight_loss = initial_weight - current_weight

    days_active = len({as_utc(log.logged_at).date() for log in logs})

    span_seconds = (as_utc(newest.logged_at) - as_utc(oldest.logged_at)).total_seconds()
    days_since_start = max(1, math.ceil(span_seconds / 86400))

    return ProgressStats(
        total_weight_loss=total_weight_loss,
        current_weight=current_weight,
        days_active=days_active,
        average_weight_loss=total_weight_loss / days_since_start,
        progress_percentage=(
            total_weight_loss / initial_weight * 100 if initial_weight > 0 else 0.0
        ),
        last_logged_date=newest.logged_at,
        total_logs=len(logs),
        initial_weight=initial_weight,
    )


def calculate_goal_progress(
    current_weight: float, start_weight: float, goal_weight: float
) -> GoalProgress:
    # Only loss goals are tracked; a goal at or above the start is never reached
    if start_weight <= goal_weight:
        return GoalProgress()

    total_to_lose = start_weight - goal_weight
    lost_so_far = start_weight - current_weight

    return GoalProgress(
        progress_percentage=min(100.0, max(0.0, lost_so_far / total_to_lose * 100)),
        remaining_weight=max(0.0, current_weight - goal_weight),
        is_goal_reached=current_weight <= goal_weight,
    )
