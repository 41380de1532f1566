from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlmodel import Session, select

from flyball.database import get_session
from flyball.models.ring_configuration import RingConfiguration
from flyball.models.tournament import Race, Tournament
from flyball.services.assignment_types import utcnow
from flyball.utils.rings import normalize_color, validate_ring_configuration

router = APIRouter()


class RaceIn(BaseModel):
    race_number: int = Field(gt=0)
    left_team: str
    right_team: str
    division: str


class TournamentUpsert(BaseModel):
    id: str
    name: str
    races: List[RaceIn] = []

    @field_validator("id", "name")
    @classmethod
    def validate_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("races")
    @classmethod
    def validate_unique_race_numbers(cls, v):
        numbers = [r.race_number for r in v]
        if len(numbers) != len(set(numbers)):
            raise ValueError("race numbers must be unique")
        return v


class RaceResponse(BaseModel):
    race_number: int
    left_team: str
    right_team: str
    division: str

    class Config:
        from_attributes = True


class TournamentResponse(BaseModel):
    id: str
    name: str
    races: List[RaceResponse]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RingIn(BaseModel):
    ring_number: int
    color: str


class RingConfigurationRequest(BaseModel):
    rings: List[RingIn]


class RingResponse(BaseModel):
    ring_number: int
    color: str

    class Config:
        from_attributes = True


class RingConfigurationResponse(BaseModel):
    tournament_id: str
    rings: List[RingResponse]


def _get_tournament_or_404(session: Session, tournament_id: str) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


@router.post("/tournaments", response_model=TournamentResponse)
def upsert_tournament(payload: TournamentUpsert, session: Session = Depends(get_session)):
    """Create a tournament or replace an existing one's name and race list"""
    tournament = session.get(Tournament, payload.id)
    if tournament is None:
        tournament = Tournament(id=payload.id, name=payload.name)
        session.add(tournament)
    else:
        tournament.name = payload.name
        tournament.updated_at = utcnow()
        for race in session.exec(select(Race).where(Race.tournament_id == payload.id)).all():
            session.delete(race)
    session.flush()

    for race in payload.races:
        session.add(Race(tournament_id=payload.id, **race.model_dump()))
    session.commit()
    session.refresh(tournament)
    return tournament


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    """All tournaments with their races, ordered by id"""
    return session.exec(select(Tournament).order_by(Tournament.id)).all()


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: str, session: Session = Depends(get_session)):
    """Get a tournament with its races"""
    return _get_tournament_or_404(session, tournament_id)


@router.get("/tournaments/{tournament_id}/exists")
def tournament_exists(tournament_id: str, session: Session = Depends(get_session)):
    return {"exists": session.get(Tournament, tournament_id) is not None}


@router.post("/tournaments/{tournament_id}/rings", response_model=RingConfigurationResponse)
def save_ring_configuration(
    tournament_id: str,
    payload: RingConfigurationRequest,
    session: Session = Depends(get_session),
):
    """Replace the tournament's ring configuration (1-10 rings, unique numbers and colors)"""
    _get_tournament_or_404(session, tournament_id)

    error = validate_ring_configuration((r.ring_number, r.color) for r in payload.rings)
    if error:
        raise HTTPException(status_code=400, detail=error)

    existing = session.exec(select(RingConfiguration).where(RingConfiguration.tournament_id == tournament_id)).all()
    for ring in existing:
        session.delete(ring)
    session.flush()
    for ring in payload.rings:
        session.add(
            RingConfiguration(
                tournament_id=tournament_id,
                ring_number=ring.ring_number,
                color=normalize_color(ring.color),
            )
        )
    session.commit()
    return _ring_configuration_response(session, tournament_id)


@router.get("/tournaments/{tournament_id}/rings", response_model=RingConfigurationResponse)
def get_ring_configuration(tournament_id: str, session: Session = Depends(get_session)):
    response = _ring_configuration_response(session, tournament_id)
    if not response.rings:
        raise HTTPException(status_code=404, detail="Ring configuration not found")
    return response


def _ring_configuration_response(session: Session, tournament_id: str) -> RingConfigurationResponse:
    rings = session.exec(
        select(RingConfiguration)
        .where(RingConfiguration.tournament_id == tournament_id)
        .order_by(RingConfiguration.ring_number)
    ).all()
    return RingConfigurationResponse(
        tournament_id=tournament_id,
        rings=[RingResponse.model_validate(r) for r in rings],
    )
