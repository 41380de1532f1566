"""
Race assignment endpoints: which race is Current / On Deck / In The Hole per ring.

Thin layer over AssignmentEngine. Engine results map to status codes:
success 200, not-found family 404, conflict 409 (with the conflict list and
the unchanged assignments so the caller can retry with an override),
storage outage 503.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from flyball.services.assignment_engine import AssignmentEngine, get_assignment_engine
from flyball.services.assignment_store import StorageUnavailable
from flyball.services.assignment_types import (
    AssignmentError,
    NOT_FOUND_ERRORS,
    RingStatus,
    TournamentAssignments,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class AssignRaceRequest(BaseModel):
    race_number: int = Field(gt=0)
    ring_number: int = Field(gt=0)
    status: RingStatus
    allow_conflict_override: bool = False


class RaceAssignmentResponse(BaseModel):
    race_number: int
    ring_number: int
    status: RingStatus


class RingSlotResponse(BaseModel):
    ring_number: int
    color: str
    current: Optional[RaceAssignmentResponse] = None
    on_deck: Optional[RaceAssignmentResponse] = None
    in_the_hole: Optional[RaceAssignmentResponse] = None


class TournamentAssignmentsResponse(BaseModel):
    tournament_id: str
    rings: List[RingSlotResponse]
    last_updated: datetime


class AssignRaceResponse(BaseModel):
    success: bool
    message: str
    conflicts: List[str] = []
    assignments: Optional[TournamentAssignmentsResponse] = None


class ClearRingResponse(BaseModel):
    success: bool
    message: str
    assignments: Optional[TournamentAssignmentsResponse] = None


def _assignments_to_response(assignments: Optional[TournamentAssignments]) -> Optional[TournamentAssignmentsResponse]:
    if assignments is None:
        return None
    return TournamentAssignmentsResponse.model_validate(assignments.to_dict())


def _storage_unavailable(e: StorageUnavailable) -> HTTPException:
    logger.error(f"Storage unavailable: {e}")
    return HTTPException(status_code=503, detail="Assignment storage unavailable")


@router.get(
    "/tournaments/{tournament_id}/race-assignments",
    response_model=TournamentAssignmentsResponse,
)
def get_race_assignments(tournament_id: str, engine: AssignmentEngine = Depends(get_assignment_engine)):
    """Current ring slot state for a tournament"""
    try:
        assignments = engine.get_assignments(tournament_id)
    except StorageUnavailable as e:
        raise _storage_unavailable(e)
    if assignments is None:
        raise HTTPException(status_code=404, detail="No assignments found for tournament")
    return _assignments_to_response(assignments)


@router.post(
    "/tournaments/{tournament_id}/race-assignments",
    response_model=AssignRaceResponse,
    responses={409: {"model": AssignRaceResponse}},
)
def assign_race(
    tournament_id: str,
    payload: AssignRaceRequest,
    engine: AssignmentEngine = Depends(get_assignment_engine),
):
    """Put a race into a ring's Current / OnDeck / InTheHole slot"""
    try:
        result = engine.assign_race(
            tournament_id,
            payload.race_number,
            payload.ring_number,
            payload.status,
            allow_override=payload.allow_conflict_override,
        )
    except StorageUnavailable as e:
        raise _storage_unavailable(e)

    if result.error in NOT_FOUND_ERRORS:
        raise HTTPException(status_code=404, detail=result.message)

    body = AssignRaceResponse(
        success=result.success,
        message=result.message,
        conflicts=result.conflicts,
        assignments=_assignments_to_response(result.assignments),
    )
    if result.error == AssignmentError.CONFLICT_DETECTED:
        return JSONResponse(status_code=409, content=body.model_dump(mode="json"))
    return body


@router.post(
    "/tournaments/{tournament_id}/rings/{ring_number}/clear",
    response_model=ClearRingResponse,
)
def clear_ring(
    tournament_id: str,
    ring_number: int,
    engine: AssignmentEngine = Depends(get_assignment_engine),
):
    """Empty all three slots of one ring"""
    try:
        result = engine.clear_ring(tournament_id, ring_number)
    except StorageUnavailable as e:
        raise _storage_unavailable(e)

    if not result.success:
        raise HTTPException(status_code=404, detail=result.message)

    return ClearRingResponse(
        success=True,
        message=result.message,
        assignments=_assignments_to_response(result.assignments),
    )
