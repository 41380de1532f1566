from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from flyball.services.assignment_types import utcnow

if TYPE_CHECKING:
    from flyball.models.ring_configuration import RingConfiguration


class Tournament(SQLModel, table=True):
    id: str = Field(primary_key=True)
    name: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})

    # Relationships
    races: List["Race"] = Relationship(
        back_populates="tournament",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "Race.race_number"},
    )
    rings: List["RingConfiguration"] = Relationship(
        back_populates="tournament",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "RingConfiguration.ring_number"},
    )


class Race(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "race_number", name="uq_race_tournament_number"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: str = Field(foreign_key="tournament.id", index=True)
    race_number: int
    left_team: str
    right_team: str
    division: str

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="races")
