"""
Input validation for weight logs and challenges.

Validators collect every problem instead of stopping at the first one, and
raise a single ValidationFailedError listing them all. Each error is a dict
with field, message and code.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.core.exceptions import ValidationFailedError
from app.services.challenge_timeline import as_utc
from app.services.units import SUPPORTED_UNITS

CHALLENGE_NAME_MIN_LENGTH = 3
CHALLENGE_NAME_MAX_LENGTH = 100
CHALLENGE_DESCRIPTION_MIN_LENGTH = 10
CHALLENGE_DESCRIPTION_MAX_LENGTH = 500


def _error(field: str, message: str, code: str) -> Dict[str, str]:
    return {"field": field, "message": message, "code": code}


def _raise_if_errors(errors: List[Dict[str, str]]) -> None:
    if errors:
        raise ValidationFailedError(errors)


def is_valid_weight(weight: Any) -> bool:
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        return False
    if not math.isfinite(weight):
        return False
    return settings.MIN_WEIGHT <= weight <= settings.MAX_WEIGHT


def is_valid_string(value: Any, max_length: int = 255, min_length: int = 1) -> bool:
    return (
        isinstance(value, str)
        and len(value.strip()) >= min_length
        and len(value) <= max_length
    )


def is_valid_participant_limit(limit: Any) -> bool:
    if isinstance(limit, bool) or not isinstance(limit, int):
        return False
    return 0 < limit <= settings.MAX_PARTICIPANT_LIMIT


def _name_error() -> Dict[str, str]:
    return _error(
        "name",
        f"Challenge name must be between {CHALLENGE_NAME_MIN_LENGTH} and "
        f"{CHALLENGE_NAME_MAX_LENGTH} characters",
        "INVALID_NAME_LENGTH",
    )


def _description_error() -> Dict[str, str]:
    return _error(
        "description",
        f"Challenge description must be between {CHALLENGE_DESCRIPTION_MIN_LENGTH} and "
        f"{CHALLENGE_DESCRIPTION_MAX_LENGTH} characters",
        "INVALID_DESCRIPTION_LENGTH",
    )


def _participant_limit_error() -> Dict[str, str]:
    return _error(
        "participant_limit",
        "Participant limit must be a positive integer not exceeding "
        f"{settings.MAX_PARTICIPANT_LIMIT}",
        "INVALID_PARTICIPANT_LIMIT",
    )


def validate_weight_log(
    weight: Any,
    unit: Optional[str],
    logged_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> None:
    """
    Validate a weight entry in the unit the user typed it in.

    The range check applies to the raw number before conversion, so 150 lbs
    and 150 kg are both accepted.
    """
    now = as_utc(now or datetime.now(timezone.utc))
    errors: List[Dict[str, str]] = []

    if not is_valid_weight(weight):
        errors.append(
            _error(
                "weight",
                f"Weight must be between {settings.MIN_WEIGHT:g} and "
                f"{settings.MAX_WEIGHT:g}",
                "INVALID_WEIGHT",
            )
        )

    if unit is not None and unit not in SUPPORTED_UNITS:
        errors.append(
            _error("unit", 'Unit must be either "kg" or "lbs"', "INVALID_UNIT")
        )

    if logged_at is None:
        errors.append(
            _error("logged_at", "Logged date must be a valid date", "INVALID_LOGGED_DATE")
        )
    elif as_utc(logged_at) > now + timedelta(days=settings.MAX_FUTURE_LOG_DAYS):
        errors.append(
            _error(
                "logged_at",
                f"Logged date cannot be more than {settings.MAX_FUTURE_LOG_DAYS} "
                "day in the future",
                "FUTURE_DATE_TOO_FAR",
            )
        )

    _raise_if_errors(errors)


def validate_create_challenge(
    name: Any,
    description: Any,
    end_date: Optional[datetime],
    join_by_date: Optional[datetime],
    start_date: Optional[datetime] = None,
    participant_limit: Any = None,
    now: Optional[datetime] = None,
) -> None:
    now = as_utc(now or datetime.now(timezone.utc))
    errors: List[Dict[str, str]] = []

    if not is_valid_string(name, CHALLENGE_NAME_MAX_LENGTH, CHALLENGE_NAME_MIN_LENGTH):
        errors.append(_name_error())

    if not is_valid_string(
        description, CHALLENGE_DESCRIPTION_MAX_LENGTH, CHALLENGE_DESCRIPTION_MIN_LENGTH
    ):
        errors.append(_description_error())

    end_ok = end_date is not None and as_utc(end_date) > now
    join_ok = join_by_date is not None and as_utc(join_by_date) > now

    if not end_ok:
        errors.append(
            _error("end_date", "End date must be a valid future date", "INVALID_END_DATE")
        )
    if not join_ok:
        errors.append(
            _error(
                "join_by_date",
                "Join by date must be a valid future date",
                "INVALID_JOIN_BY_DATE",
            )
        )
    if end_ok and join_ok and not as_utc(end_date) > as_utc(join_by_date):
        errors.append(
            _error(
                "end_date",
                "End date must be after join by date",
                "END_DATE_BEFORE_JOIN_DATE",
            )
        )

    if start_date is not None and end_date is not None:
        if as_utc(start_date) > as_utc(end_date):
            errors.append(
                _error(
                    "start_date",
                    "Start date must not be after end date",
                    "START_DATE_AFTER_END_DATE",
                )
            )

    if participant_limit is not None and not is_valid_participant_limit(participant_limit):
        errors.append(_participant_limit_error())

    _raise_if_errors(errors)


def validate_update_challenge(
    name: Any = None,
    description: Any = None,
    participant_limit: Any = None,
    current_participants: int = 0,
) -> None:
    """Only the fields that are provided are checked."""
    errors: List[Dict[str, str]] = []

    if name is not None and not is_valid_string(
        name, CHALLENGE_NAME_MAX_LENGTH, CHALLENGE_NAME_MIN_LENGTH
    ):
        errors.append(_name_error())

    if description is not None and not is_valid_string(
        description, CHALLENGE_DESCRIPTION_MAX_LENGTH, CHALLENGE_DESCRIPTION_MIN_LENGTH
    ):
        errors.append(_description_error())

    if participant_limit is not None:
        if not is_valid_participant_limit(participant_limit):
            errors.append(_participant_limit_error())
        elif participant_limit < current_participants:
            errors.append(
                _error(
                    "participant_limit",
                    f"Participant limit cannot be lower than the current number of "
                    f"participants ({current_participants})",
                    "PARTICIPANT_LIMIT_BELOW_ROSTER",
                )
            )

    _raise_if_errors(errors)


def sanitize_string(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""
