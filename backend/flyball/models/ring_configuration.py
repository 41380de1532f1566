from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from flyball.models.tournament import Tournament


class RingConfiguration(SQLModel, table=True):
    __tablename__ = "ringconfiguration"
    __table_args__ = (
        SAUniqueConstraint("tournament_id", "ring_number", name="uq_ringconfig_tournament_ring"),
        SAUniqueConstraint("tournament_id", "color", name="uq_ringconfig_tournament_color"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: str = Field(foreign_key="tournament.id", index=True)
    ring_number: int
    color: str

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="rings")
