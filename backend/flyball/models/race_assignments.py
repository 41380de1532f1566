from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel

from flyball.services.assignment_types import utcnow


class TournamentRaceAssignments(SQLModel, table=True):
    """One row per tournament; the whole ring/slot snapshot lives in ``rings``
    so a save replaces it in a single UPDATE."""

    __tablename__ = "tournamentraceassignments"

    tournament_id: str = Field(primary_key=True)
    rings: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    last_updated: datetime = Field(default_factory=utcnow)
