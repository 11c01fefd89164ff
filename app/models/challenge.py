from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


WeightUnit = Literal["kg", "lbs"]


class ChallengeStatus(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"


class Challenge(BaseModel):
    id: str
    name: str = ""
    description: Optional[str] = None
    creator_id: Optional[str] = None
    start_date: Optional[datetime] = Field(
        None, description="Missing start date means the challenge is already running"
    )
    end_date: datetime
    join_by_date: datetime
    participants: List[str] = Field(default_factory=list)
    participant_limit: int = Field(10, gt=0)
    is_active: bool = True
    is_archived: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RosterUser(BaseModel):
    id: str
    email: str = "Unknown User"
    name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WeightLog(BaseModel):
    id: str
    user_id: str
    challenge_id: Optional[str] = None
    weight: float = Field(..., description="Weight in kilograms")
    logged_at: datetime
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LogSummary(BaseModel):
    start_weight: Optional[float] = None
    latest_weight: Optional[float] = None
    weight_loss: Optional[float] = Field(
        None, description="start - latest; positive is a loss, negative a gain"
    )
    last_logged_at: Optional[datetime] = None
    weight_logs: List[WeightLog] = Field(default_factory=list)


class ParticipantRecord(BaseModel):
    user: RosterUser
    rank: int = 0
    start_weight: Optional[float] = None
    latest_weight: Optional[float] = None
    weight_loss: Optional[float] = None
    last_logged_at: Optional[datetime] = None
    weight_logs: List[WeightLog] = Field(default_factory=list)


class AggregateStats(BaseModel):
    active_participants: int = 0
    total_weight_loss: float = 0.0
    average_weight_loss: float = 0.0
    participation_rate: float = 0.0
    top_performer: Optional[ParticipantRecord] = None


class ChallengeProgress(BaseModel):
    total_days: int
    days_elapsed: int
    days_remaining: int
    progress_percentage: float


class ChallengeDashboard(BaseModel):
    challenge: Challenge
    status: ChallengeStatus
    progress: ChallengeProgress
    participants: List[ParticipantRecord]
    stats: AggregateStats
    has_leader: bool = Field(
        False, description="False when nobody has a measurable weight change yet"
    )
    generated_at: datetime
