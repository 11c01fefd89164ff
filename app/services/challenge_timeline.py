"""
Challenge Timeline

Status and progress of a challenge as a pure function of its date boundaries
and the current time. Nothing here is persisted; callers evaluate it fresh on
every read.
"""

from datetime import datetime, timezone
from typing import Optional

from app.models.challenge import ChallengeProgress, ChallengeStatus

SECONDS_PER_DAY = 24 * 60 * 60


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are treated as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_between(start: datetime, end: datetime) -> int:
    """Whole days from start to end, truncated toward zero."""
    delta = as_utc(end) - as_utc(start)
    return int(delta.total_seconds() / SECONDS_PER_DAY)


def resolve_status(
    start_date: Optional[datetime], end_date: datetime, now: datetime
) -> ChallengeStatus:
    """
    upcoming before start_date, completed after end_date, active otherwise.

    A challenge without a start date is already running. The instant equal to
    start_date is active; the instant equal to end_date is still active and
    anything after it is completed.
    """
    now = as_utc(now)
    end_date = as_utc(end_date)

    if start_date is None:
        return ChallengeStatus.COMPLETED if now > end_date else ChallengeStatus.ACTIVE

    if now < as_utc(start_date):
        return ChallengeStatus.UPCOMING
    if now > end_date:
        return ChallengeStatus.COMPLETED
    return ChallengeStatus.ACTIVE


def compute_progress(
    start_date: Optional[datetime], end_date: datetime, now: datetime
) -> ChallengeProgress:
    """
    Elapsed/remaining whole days and a 0-100 completion percentage.

    Without a start date "now" is used as the start, so the first read shows
    zero elapsed days. Degenerate ranges yield zeros rather than errors.
    """
    effective_start = start_date if start_date is not None else now

    total_days = days_between(effective_start, end_date)
    days_elapsed = max(0, days_between(effective_start, now))
    days_remaining = max(0, days_between(now, end_date))

    if total_days > 0:
        progress_percentage = min(100.0, days_elapsed / total_days * 100)
    else:
        progress_percentage = 0.0

    return ChallengeProgress(
        total_days=total_days,
        days_elapsed=days_elapsed,
        days_remaining=days_remaining,
        progress_percentage=progress_percentage,
    )
