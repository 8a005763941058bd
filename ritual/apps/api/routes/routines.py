from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from ritual.apps.api.services.routine import AmbiguousMatchError, RoutineError, RoutineService
from ritual.libs.schemas.routine import (
    Activity,
    ActivityChanges,
    BulkCompletionResult,
    CompletionResult,
    DailyCompletionRecord,
    MatchResult,
    RoutineDefinition,
    StreakResult,
    UpdateResult,
)

router = APIRouter(prefix="/morning_routine", tags=["routine"])
logger = logging.getLogger(__name__)


def get_routine_service(request: Request) -> RoutineService:
    service = getattr(request.app.state, "routine_service", None)
    if service is None:
        service = RoutineService()
        request.app.state.routine_service = service
    return service


def _http_error(exc: RoutineError) -> HTTPException:
    detail: Dict[str, Any] = {"error": type(exc).__name__, "message": exc.message}
    if isinstance(exc, AmbiguousMatchError):
        detail["candidates"] = [
            {"id": c.activity.id, "name": c.activity.name, "score": c.score} for c in exc.candidates
        ]
    return HTTPException(status_code=exc.status_code, detail=detail)


class ResolveIn(BaseModel):
    user_id: str = Field(min_length=1)
    query: str


class CompleteIn(BaseModel):
    user_id: str = Field(min_length=1)
    activity_identifier: str = Field(min_length=1)


class CompleteAllIn(BaseModel):
    user_id: str = Field(min_length=1)


class UpdateIn(ActivityChanges):
    user_id: str = Field(min_length=1)
    activity_identifier: str = Field(min_length=1)


class AddIn(BaseModel):
    user_id: str = Field(min_length=1)
    activity: Activity


class ActivitiesOut(BaseModel):
    activities: list[Activity]
    total_duration: int
    routine_name: Optional[str] = None
    wake_time: Optional[str] = None


@router.post("/activity/resolve", response_model=MatchResult)
async def resolve(body: ResolveIn, service: RoutineService = Depends(get_routine_service)) -> MatchResult:
    try:
        return await service.resolve_activity(body.user_id, body.query)
    except RoutineError as exc:
        raise _http_error(exc) from exc


@router.post("/activity/complete", response_model=CompletionResult)
async def complete_activity(
    body: CompleteIn, service: RoutineService = Depends(get_routine_service)
) -> CompletionResult:
    try:
        return await service.complete_activity(body.user_id, body.activity_identifier)
    except RoutineError as exc:
        logger.info("Completion rejected for %s: %s", body.user_id, exc.message)
        raise _http_error(exc) from exc


@router.post("/complete_all", response_model=BulkCompletionResult)
async def complete_all(
    body: CompleteAllIn, service: RoutineService = Depends(get_routine_service)
) -> BulkCompletionResult:
    try:
        return await service.complete_all_activities(body.user_id)
    except RoutineError as exc:
        raise _http_error(exc) from exc


@router.patch("/activity/update", response_model=UpdateResult)
async def update_activity(body: UpdateIn, service: RoutineService = Depends(get_routine_service)) -> UpdateResult:
    changes = ActivityChanges(new_name=body.new_name, new_duration=body.new_duration, new_icon=body.new_icon)
    try:
        return await service.update_activity(body.user_id, body.activity_identifier, changes)
    except RoutineError as exc:
        raise _http_error(exc) from exc


@router.post("/activity/add", response_model=RoutineDefinition)
async def add_activity(body: AddIn, service: RoutineService = Depends(get_routine_service)) -> RoutineDefinition:
    try:
        return await service.add_activity(body.user_id, body.activity)
    except RoutineError as exc:
        raise _http_error(exc) from exc


@router.get("/activities/{user_id}", response_model=ActivitiesOut)
async def list_activities(user_id: str, service: RoutineService = Depends(get_routine_service)) -> ActivitiesOut:
    activities, total, routine = await service.list_activities(user_id)
    return ActivitiesOut(
        activities=activities,
        total_duration=total,
        routine_name=routine.routine_name if routine else None,
        wake_time=routine.wake_time if routine else None,
    )


@router.get("/today/{user_id}")
async def today_completion(user_id: str, service: RoutineService = Depends(get_routine_service)) -> Dict[str, Any]:
    record = await service.today_completion(user_id)
    return {"completion": record.model_dump(mode="json") if record else None}


class HistoryOut(BaseModel):
    completions: list[DailyCompletionRecord]


@router.get("/history/{user_id}", response_model=HistoryOut)
async def completion_history(
    user_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = Query(default=30, ge=1, le=366),
    service: RoutineService = Depends(get_routine_service),
) -> HistoryOut:
    try:
        records = await service.completion_history(user_id, start_date, end_date, limit)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail={"error": "InvalidRange", "message": str(exc)}) from exc
    return HistoryOut(completions=records)


@router.get("/stats/{user_id}", response_model=StreakResult)
async def routine_stats(
    user_id: str,
    days: int = Query(default=30, ge=1, le=366),
    service: RoutineService = Depends(get_routine_service),
) -> StreakResult:
    return await service.compute_streak(user_id, days)


__all__ = ["get_routine_service", "router"]
