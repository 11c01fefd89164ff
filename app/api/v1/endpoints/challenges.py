"""
Challenges API endpoints
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from app.core.auth import get_current_user
from app.core.exceptions import to_http_exception
from app.models.challenge import Challenge, ChallengeDashboard
from app.services.challenge_filters import (
    ArchivedFilter,
    ChallengeFilters,
    SortBy,
    SortOrder,
    StatusFilter,
)
from app.services.challenge_service import challenge_service
from app.services.logger import logger

router = APIRouter(redirect_slashes=False)


class ChallengeCreate(BaseModel):
    """
    Request body for creating a challenge.

    Field rules (lengths, future dates, limits) are checked by the service so
    every problem is reported together.
    """

    name: str
    description: str
    end_date: datetime
    join_by_date: datetime
    start_date: Optional[datetime] = None  # None = starts immediately
    participant_limit: Optional[int] = None


class ChallengeUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    participant_limit: Optional[int] = None


@router.post("/", response_model=Challenge, status_code=status.HTTP_201_CREATED)
async def create_challenge(
    challenge_data: ChallengeCreate,
    current_user: dict = Depends(get_current_user),
):
    """Create a new challenge"""
    user_id = current_user["id"]

    try:
        return await challenge_service.create_challenge(
            user_id=user_id,
            name=challenge_data.name,
            description=challenge_data.description,
            end_date=challenge_data.end_date,
            join_by_date=challenge_data.join_by_date,
            start_date=challenge_data.start_date,
            participant_limit=challenge_data.participant_limit,
        )

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(
            f"Failed to create challenge for user {user_id}",
            {"error": str(e), "user_id": user_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create challenge",
        )


@router.get("/")
async def get_my_challenges(
    current_user: dict = Depends(get_current_user),
    search: str = Query(""),
    status_filter: StatusFilter = Query("all", alias="status"),
    archived: ArchivedFilter = Query("active"),
    sort_by: SortBy = Query("created_at"),
    sort_order: SortOrder = Query("desc"),
) -> List[Dict[str, Any]]:
    """Get the current user's challenges"""
    user_id = current_user["id"]
    filters = ChallengeFilters(
        search_term=search,
        status=status_filter,
        archived=archived,
        sort_by=sort_by,
        sort_order=sort_order,
    )

    try:
        return await challenge_service.list_user_challenges(user_id, filters)

    except Exception as e:
        logger.error(
            "Failed to get challenges",
            {"error": str(e), "user_id": user_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve challenges",
        )


@router.get("/{challenge_id}")
async def get_challenge(
    challenge_id: str,
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """Get a challenge with its current status and progress"""
    try:
        return await challenge_service.get_challenge(challenge_id, current_user["id"])

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(
            f"Failed to get challenge {challenge_id}",
            {"error": str(e), "challenge_id": challenge_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch challenge",
        )


@router.put("/{challenge_id}", response_model=Challenge)
async def update_challenge(
    challenge_id: str,
    update_data: ChallengeUpdate,
    current_user: dict = Depends(get_current_user),
):
    """Update challenge details (creator only)"""
    try:
        return await challenge_service.update_challenge(
            challenge_id=challenge_id,
            user_id=current_user["id"],
            name=update_data.name,
            description=update_data.description,
            participant_limit=update_data.participant_limit,
        )

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(
            f"Failed to update challenge {challenge_id}",
            {"error": str(e), "challenge_id": challenge_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update challenge",
        )


@router.delete("/{challenge_id}")
async def delete_challenge(
    challenge_id: str,
    current_user: dict = Depends(get_current_user),
):
    """Delete a challenge nobody else has joined yet (creator only)"""
    try:
        await challenge_service.delete_challenge(challenge_id, current_user["id"])
        return {"message": "Challenge deleted successfully", "challenge_id": challenge_id}

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(
            f"Failed to delete challenge {challenge_id}",
            {"error": str(e), "challenge_id": challenge_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete challenge",
        )


@router.post("/{challenge_id}/join", response_model=Challenge)
async def join_challenge(
    challenge_id: str,
    current_user: dict = Depends(get_current_user),
):
    """Join a challenge"""
    user_id = current_user["id"]

    try:
        return await challenge_service.join_challenge(challenge_id, user_id)

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(
            f"Failed to join challenge {challenge_id} for user {user_id}",
            {"error": str(e), "challenge_id": challenge_id, "user_id": user_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to join challenge",
        )


async def _set_archived(challenge_id: str, user_id: str, archived: bool) -> Challenge:
    try:
        return await challenge_service.set_archived(challenge_id, user_id, archived)

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(
            f"Failed to {'archive' if archived else 'unarchive'} challenge {challenge_id}",
            {"error": str(e), "challenge_id": challenge_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to archive/unarchive challenge",
        )


@router.post("/{challenge_id}/archive", response_model=Challenge)
async def archive_challenge(
    challenge_id: str,
    current_user: dict = Depends(get_current_user),
):
    """Archive a challenge (creator only)"""
    return await _set_archived(challenge_id, current_user["id"], True)


@router.post("/{challenge_id}/unarchive", response_model=Challenge)
async def unarchive_challenge(
    challenge_id: str,
    current_user: dict = Depends(get_current_user),
):
    """Unarchive a challenge (creator only)"""
    return await _set_archived(challenge_id, current_user["id"], False)


@router.get("/{challenge_id}/participants")
async def get_challenge_participants(
    challenge_id: str,
    current_user: dict = Depends(get_current_user),
):
    """Ranked participants with their weight history"""
    try:
        return await challenge_service.get_participants(challenge_id, current_user["id"])

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(
            f"Failed to get participants for challenge {challenge_id}",
            {"error": str(e), "challenge_id": challenge_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch challenge participants",
        )


@router.get("/{challenge_id}/dashboard", response_model=ChallengeDashboard)
async def get_challenge_dashboard(
    challenge_id: str,
    current_user: dict = Depends(get_current_user),
):
    """Status, progress, ranked participants and aggregate stats"""
    try:
        return await challenge_service.get_dashboard(challenge_id, current_user["id"])

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(
            f"Failed to build dashboard for challenge {challenge_id}",
            {"error": str(e), "challenge_id": challenge_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build challenge dashboard",
        )


@router.get("/{challenge_id}/leaderboard")
async def get_challenge_leaderboard(
    challenge_id: str,
    current_user: dict = Depends(get_current_user),
):
    """Get challenge leaderboard"""
    try:
        return await challenge_service.get_leaderboard(challenge_id, current_user["id"])

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(
            f"Failed to get leaderboard for challenge {challenge_id}",
            {"error": str(e), "challenge_id": challenge_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve leaderboard",
        )
