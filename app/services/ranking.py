"""
Participant Ranking

The single ranking/rollup pipeline shared by the participants endpoint, the
dashboard, the leaderboard cache task and challenge watchers.

All functions are total: empty rosters, users without logs and logs from
users outside the roster never raise.
"""

from typing import Dict, List, Sequence

from app.models.challenge import (
    AggregateStats,
    LogSummary,
    ParticipantRecord,
    RosterUser,
    WeightLog,
)
from app.services.challenge_timeline import as_utc


def reduce_logs(logs: Sequence[WeightLog]) -> LogSummary:
    """Collapse one user's logs into start/latest/loss. The input is not mutated."""
    ordered = sorted(logs, key=lambda log: as_utc(log.logged_at))

    if not ordered:
        return LogSummary()

    start_weight = ordered[0].weight
    latest_weight = ordered[-1].weight

    weight_loss = None
    if start_weight is not None and latest_weight is not None:
        weight_loss = start_weight - latest_weight

    return LogSummary(
        start_weight=start_weight,
        latest_weight=latest_weight,
        weight_loss=weight_loss,
        last_logged_at=ordered[-1].logged_at,
        weight_logs=ordered,
    )


def _ranking_key(record: ParticipantRecord):
    # None sorts after every measured value; sorted() keeps roster order on ties
    if record.weight_loss is None:
        return (1, 0.0)
    return (0, -record.weight_loss)


def rank_participants(
    roster: Sequence[RosterUser], logs: Sequence[WeightLog]
) -> List[ParticipantRecord]:
    """
    Build one ranked record per roster user.

    Logs are grouped by user_id; logs from users not on the roster are
    dropped. Records are ordered by weight loss descending with users who
    have no measurable change last, and rank is the 1-based position.
    """
    logs_by_user: Dict[str, List[WeightLog]] = {user.id: [] for user in roster}
    for log in logs:
        group = logs_by_user.get(log.user_id)
        if group is not None:
            group.append(log)

    records = []
    for user in roster:
        summary = reduce_logs(logs_by_user[user.id])
        records.append(
            ParticipantRecord(
                user=user,
                start_weight=summary.start_weight,
                latest_weight=summary.latest_weight,
                weight_loss=summary.weight_loss,
                last_logged_at=summary.last_logged_at,
                weight_logs=summary.weight_logs,
            )
        )

    ranked = sorted(records, key=_ranking_key)
    for index, record in enumerate(ranked):
        record.rank = index + 1

    return ranked


def rollup_statistics(
    ranked: Sequence[ParticipantRecord], roster_size: int
) -> AggregateStats:
    """
    Challenge-wide totals over an already ranked list.

    Averages and participation are taken over the whole roster, so members
    who never logged pull the average down.
    """
    active_participants = sum(1 for r in ranked if r.latest_weight is not None)
    total_weight_loss = sum(r.weight_loss for r in ranked if r.weight_loss is not None)

    if roster_size > 0:
        average_weight_loss = total_weight_loss / roster_size
        participation_rate = active_participants / roster_size * 100
    else:
        average_weight_loss = 0.0
        participation_rate = 0.0

    return AggregateStats(
        active_participants=active_participants,
        total_weight_loss=float(total_weight_loss),
        average_weight_loss=average_weight_loss,
        participation_rate=participation_rate,
        top_performer=ranked[0] if ranked else None,
    )


def has_meaningful_leader(stats: AggregateStats) -> bool:
    """A top performer only counts when someone has a measurable change."""
    top = stats.top_performer
    return top is not None and top.weight_loss is not None
