"""
Search, filter and sort for a user's challenge list.
"""

from datetime import datetime, timezone
from typing import List, Literal, Sequence

from pydantic import BaseModel

from app.models.challenge import Challenge
from app.services.challenge_timeline import as_utc, resolve_status

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

StatusFilter = Literal["all", "active", "upcoming", "completed"]
ArchivedFilter = Literal["all", "active", "archived"]
SortBy = Literal["name", "created_at", "start_date", "end_date", "participants"]
SortOrder = Literal["asc", "desc"]


class ChallengeFilters(BaseModel):
    search_term: str = ""
    status: StatusFilter = "all"
    archived: ArchivedFilter = "active"
    sort_by: SortBy = "created_at"
    sort_order: SortOrder = "desc"


def _sort_key(sort_by: str):
    if sort_by == "name":
        return lambda c: c.name.casefold()
    if sort_by == "start_date":
        return lambda c: as_utc(c.start_date) if c.start_date else EPOCH
    if sort_by == "end_date":
        return lambda c: as_utc(c.end_date)
    if sort_by == "participants":
        return lambda c: len(c.participants)
    return lambda c: as_utc(c.created_at) if c.created_at else EPOCH


def filter_and_sort_challenges(
    challenges: Sequence[Challenge], filters: ChallengeFilters, now: datetime
) -> List[Challenge]:
    result = list(challenges)

    search_term = filters.search_term.strip().lower()
    if search_term:
        result = [
            c
            for c in result
            if search_term in c.name.lower()
            or (c.description and search_term in c.description.lower())
        ]

    if filters.archived == "archived":
        result = [c for c in result if c.is_archived]
    elif filters.archived == "active":
        result = [c for c in result if not c.is_archived]

    if filters.status != "all":
        result = [
            c
            for c in result
            if resolve_status(c.start_date, c.end_date, now).value == filters.status
        ]

    return sorted(
        result,
        key=_sort_key(filters.sort_by),
        reverse=filters.sort_order == "desc",
    )
