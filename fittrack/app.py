"""
FastAPI web application for fit-daily.

Provides REST API endpoints for check-ins, activity logs and achievements.
"""

import logging
from datetime import datetime

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from fittrack.config import configure_logging
from fittrack.achievement_engine import AchievementEngine
from fittrack.achievements import (
    achievement_to_dict,
    get_all_achievements_status,
    get_categories,
    summarize_achievements,
)
from fittrack.checkins import CHECKIN_TYPES, CheckInService
from fittrack.exceptions import (
    ConflictError,
    FitTrackError,
    NotFoundError,
    StorageError,
    UserNotFoundError,
    ValidationError,
)
from fittrack.storage import FitnessStorage

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="fit-daily",
    description="A gamified fitness habit tracker",
    version="0.1.0",
)

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class UserCreate(BaseModel):
    """Request model for creating a user."""

    username: str = Field(..., min_length=1, max_length=100, description="Unique username")
    nickname: str | None = Field(None, max_length=100, description="Display name")


class CheckInCreate(BaseModel):
    """Request model for checking in."""

    type: str = Field(..., description="Check-in type, e.g. 'exercise'")
    notes: str | None = Field(None, max_length=1000, description="Optional note")
    date: str | None = Field(None, pattern=DATE_PATTERN, description="YYYY-MM-DD, defaults to today")


class CheckInCancel(BaseModel):
    """Request model for cancelling a check-in."""

    type: str = Field(..., description="Check-in type to cancel")
    date: str | None = Field(None, pattern=DATE_PATTERN, description="YYYY-MM-DD, defaults to today")


class TrainingLogCreate(BaseModel):
    """Request model for logging a training session."""

    date: str | None = Field(None, pattern=DATE_PATTERN, description="YYYY-MM-DD, defaults to today")
    duration: int | None = Field(None, ge=0, description="Duration in minutes")
    notes: str | None = Field(None, max_length=2000)


class HealthRecordCreate(BaseModel):
    """Request model for recording health data."""

    date: str | None = Field(None, pattern=DATE_PATTERN, description="YYYY-MM-DD, defaults to today")
    weight: float | None = Field(None, gt=0)
    systolic: int | None = Field(None, gt=0)
    diastolic: int | None = Field(None, gt=0)
    steps: int | None = Field(None, ge=0)


class HealthThresholdUpdate(BaseModel):
    """Request model for updating health thresholds."""

    weight_min: float | None = Field(None, gt=0)
    weight_max: float | None = Field(None, gt=0)
    systolic_min: int | None = None
    systolic_max: int | None = None
    diastolic_min: int | None = None
    diastolic_max: int | None = None
    steps_goal: int | None = Field(None, ge=0)

    @field_validator("steps_goal")
    @classmethod
    def validate_steps_goal(cls, v):
        if v is None:
            raise ValueError("steps_goal cannot be null; omit it to keep the current goal")
        return v


def _error_status(error: FitTrackError) -> int:
    """Map a fit-daily error onto an HTTP status code."""
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ConflictError):
        return 409
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, StorageError):
        return 503
    return 500


@app.exception_handler(FitTrackError)
async def fittrack_error_handler(request: Request, exc: FitTrackError) -> JSONResponse:
    """Turn any fit-daily error raised by a route into a JSON error response."""
    status_code = _error_status(exc)
    if isinstance(exc, StorageError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code, content={"detail": "Storage unavailable, please retry"}
        )
    if status_code == 500:
        logger.error("Unexpected error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def _require_user(storage: FitnessStorage, user_id: int) -> dict:
    user = storage.get_user(user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def _today() -> str:
    return datetime.now().date().isoformat()


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


# User endpoints
@app.post("/api/users", status_code=201)
def create_user(user: UserCreate):
    """Create a user."""
    storage = FitnessStorage()
    return {"user": storage.create_user(user.username, user.nickname)}


@app.get("/api/users/{user_id}")
def get_user(user_id: int):
    """Get a user with level and experience."""
    storage = FitnessStorage()
    return {"user": _require_user(storage, user_id)}


# Check-in endpoints
@app.get("/api/checkin/types")
def get_checkin_types():
    """Get the available check-in types."""
    return {"types": CHECKIN_TYPES}


@app.get("/api/users/{user_id}/checkins")
def get_checkins(
    user_id: int,
    start_date: str | None = Query(None, alias="startDate", pattern=DATE_PATTERN),
    end_date: str | None = Query(None, alias="endDate", pattern=DATE_PATTERN),
    check_type: str | None = Query(None, alias="type"),
):
    """
    Get check-in records, newest first.

    Returns:
        JSON with records list
    """
    storage = FitnessStorage()
    _require_user(storage, user_id)
    records = storage.get_checkins(
        user_id, start_date=start_date, end_date=end_date, check_type=check_type
    )
    return {"records": records}


@app.get("/api/users/{user_id}/checkins/today")
def get_today(user_id: int):
    """Get today's status for every check-in type."""
    storage = FitnessStorage()
    _require_user(storage, user_id)
    return CheckInService(storage).get_today_status(user_id)


@app.get("/api/users/{user_id}/checkins/stats")
def get_checkin_stats(user_id: int):
    """
    Get check-in totals and streaks.

    Returns:
        JSON with total, current/longest streak, week/month days and per-type counts
    """
    storage = FitnessStorage()
    _require_user(storage, user_id)
    return CheckInService(storage).get_stats(user_id)


@app.get("/api/users/{user_id}/checkins/calendar")
def get_calendar(
    user_id: int,
    year: int | None = Query(None, ge=1970, le=9999),
    month: int | None = Query(None, ge=1, le=12),
):
    """Get the check-in types done on each day of a month (defaults to this month)."""
    storage = FitnessStorage()
    _require_user(storage, user_id)
    now = datetime.now()
    return CheckInService(storage).get_calendar(user_id, year or now.year, month or now.month)


@app.post("/api/users/{user_id}/checkins", status_code=201)
def check_in(user_id: int, checkin: CheckInCreate):
    """
    Check in for today (or the given date).

    Returns:
        JSON with the record, experience reward and level-up info
    """
    storage = FitnessStorage()
    return CheckInService(storage).check_in(
        user_id, checkin.type, notes=checkin.notes, check_date=checkin.date
    )


@app.delete("/api/users/{user_id}/checkins")
def cancel_check_in(user_id: int, cancel: CheckInCancel):
    """Cancel a check-in and refund its experience."""
    storage = FitnessStorage()
    _require_user(storage, user_id)
    result = CheckInService(storage).cancel(user_id, cancel.type, check_date=cancel.date)
    return {"message": "Check-in cancelled", **result}


# Training log endpoints
@app.get("/api/users/{user_id}/training-logs")
def get_training_logs(user_id: int, limit: int | None = Query(None, ge=1, le=500)):
    """Get training logs, newest first."""
    storage = FitnessStorage()
    _require_user(storage, user_id)
    return {"logs": storage.get_training_logs(user_id, limit=limit)}


@app.post("/api/users/{user_id}/training-logs", status_code=201)
def create_training_log(user_id: int, log: TrainingLogCreate):
    """Log a training session."""
    storage = FitnessStorage()
    created = storage.create_training_log(
        user_id, log.date or _today(), duration=log.duration, notes=log.notes
    )
    return {"log": created}


# Health endpoints
@app.get("/api/users/{user_id}/health-records")
def get_health_records(
    user_id: int,
    start_date: str | None = Query(None, alias="startDate", pattern=DATE_PATTERN),
    end_date: str | None = Query(None, alias="endDate", pattern=DATE_PATTERN),
):
    """Get health records, newest first."""
    storage = FitnessStorage()
    _require_user(storage, user_id)
    return {"records": storage.get_health_records(user_id, start_date, end_date)}


@app.post("/api/users/{user_id}/health-records", status_code=201)
def create_health_record(user_id: int, record: HealthRecordCreate):
    """Record health measurements."""
    storage = FitnessStorage()
    created = storage.create_health_record(
        user_id,
        record.date or _today(),
        weight=record.weight,
        systolic=record.systolic,
        diastolic=record.diastolic,
        steps=record.steps,
    )
    return {"record": created}


@app.get("/api/users/{user_id}/health-thresholds")
def get_health_threshold(user_id: int):
    """Get health thresholds (defaults if never set)."""
    storage = FitnessStorage()
    _require_user(storage, user_id)
    return {"threshold": storage.get_health_threshold(user_id)}


@app.put("/api/users/{user_id}/health-thresholds")
def set_health_threshold(user_id: int, update: HealthThresholdUpdate):
    """Update health thresholds; omitted fields keep their value."""
    storage = FitnessStorage()
    threshold = storage.set_health_threshold(user_id, **update.model_dump(exclude_unset=True))
    return {"threshold": threshold}


# Achievement endpoints
@app.get("/api/achievements/categories")
def get_achievement_categories():
    """Get the achievement categories."""
    return {"categories": get_categories()}


@app.get("/api/users/{user_id}/achievements")
def get_achievements(user_id: int):
    """
    Get all achievements with unlock status.

    Returns:
        JSON with achievements list
    """
    storage = FitnessStorage()
    _require_user(storage, user_id)
    unlocked = storage.get_unlocked_achievements(user_id)
    return {"achievements": get_all_achievements_status(unlocked)}


@app.get("/api/users/{user_id}/achievements/stats")
def get_achievement_stats(user_id: int):
    """Get unlock totals, experience earned and per-category progress."""
    storage = FitnessStorage()
    _require_user(storage, user_id)
    return summarize_achievements(storage.get_unlocked_achievements(user_id))


@app.post("/api/users/{user_id}/achievements/check")
def check_achievements(user_id: int):
    """
    Unlock any achievements the user newly qualifies for.

    Safe to call repeatedly: achievements already unlocked are skipped.

    Returns:
        JSON with the newly unlocked achievements and their count
    """
    storage = FitnessStorage()
    unlocked = AchievementEngine(storage).check_and_unlock(user_id)
    return {
        "unlocked": [achievement_to_dict(a) for a in unlocked],
        "count": len(unlocked),
    }
