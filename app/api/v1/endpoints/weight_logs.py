"""
Weight log API endpoints
"""

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from app.core.auth import get_current_user
from app.core.exceptions import to_http_exception
from app.models.challenge import WeightLog
from app.services.logger import logger
from app.services.weight_log_service import weight_log_service

router = APIRouter(redirect_slashes=False)


class WeightLogCreate(BaseModel):
    weight: float
    unit: str = "kg"
    logged_at: datetime
    challenge_id: Optional[str] = None


class WeightLogUpdate(BaseModel):
    weight: Optional[float] = None
    unit: str = "kg"
    logged_at: Optional[datetime] = None


@router.post("/", response_model=WeightLog, status_code=status.HTTP_201_CREATED)
async def create_weight_log(
    log_data: WeightLogCreate,
    current_user: dict = Depends(get_current_user),
):
    """Log a weight measurement"""
    user_id = current_user["id"]

    try:
        return await weight_log_service.create_weight_log(
            user_id=user_id,
            weight=log_data.weight,
            logged_at=log_data.logged_at,
            unit=log_data.unit,
            challenge_id=log_data.challenge_id,
        )

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(
            f"Failed to create weight log for user {user_id}",
            {"error": str(e), "user_id": user_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create weight log",
        )


@router.get("/")
async def get_my_weight_logs(
    current_user: dict = Depends(get_current_user),
    limit: int = Query(50, ge=1, le=100),
    challenge_id: Optional[str] = Query(None),
    unit: Literal["kg", "lbs"] = Query("kg"),
    goal_weight: Optional[float] = Query(None, gt=0),
):
    """
    Get the current user's weight logs (newest first) with progress stats.

    unit picks the display unit for formatted figures and for goal_weight.
    """
    user_id = current_user["id"]

    try:
        logs = await weight_log_service.list_user_logs(
            user_id, limit=limit, challenge_id=challenge_id
        )
        stats = weight_log_service.personal_stats(logs)

        response = {
            "weight_logs": [log.model_dump(mode="json") for log in logs],
            "count": len(logs),
            "stats": stats.model_dump(mode="json"),
            "display": weight_log_service.display_stats(stats, unit),
        }
        if goal_weight is not None:
            goal = weight_log_service.goal_progress(stats, goal_weight, unit)
            response["goal"] = goal.model_dump() if goal else None

        return response

    except Exception as e:
        logger.error(
            f"Failed to get weight logs for user {user_id}",
            {"error": str(e), "user_id": user_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch weight logs",
        )


@router.get("/challenge/{challenge_id}")
async def get_challenge_weight_logs(
    challenge_id: str,
    current_user: dict = Depends(get_current_user),
):
    """All weight logs of a challenge (participants only)"""
    try:
        logs = await weight_log_service.list_challenge_logs(
            challenge_id, current_user["id"]
        )
        return {
            "weight_logs": [log.model_dump(mode="json") for log in logs],
            "count": len(logs),
            "challenge_id": challenge_id,
        }

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(
            f"Failed to get weight logs for challenge {challenge_id}",
            {"error": str(e), "challenge_id": challenge_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch challenge weight logs",
        )


@router.put("/{log_id}", response_model=WeightLog)
async def update_weight_log(
    log_id: str,
    update_data: WeightLogUpdate,
    current_user: dict = Depends(get_current_user),
):
    """Edit one of your own weight logs"""
    try:
        return await weight_log_service.update_weight_log(
            log_id=log_id,
            user_id=current_user["id"],
            weight=update_data.weight,
            unit=update_data.unit,
            logged_at=update_data.logged_at,
        )

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(
            f"Failed to update weight log {log_id}",
            {"error": str(e), "log_id": log_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update weight log",
        )


@router.delete("/{log_id}")
async def delete_weight_log(
    log_id: str,
    current_user: dict = Depends(get_current_user),
):
    """Delete one of your own weight logs"""
    try:
        await weight_log_service.delete_weight_log(log_id, current_user["id"])
        return {"message": "Weight log deleted successfully", "log_id": log_id}

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(
            f"Failed to delete weight log {log_id}",
            {"error": str(e), "log_id": log_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete weight log",
        )
