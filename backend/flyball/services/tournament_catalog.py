"""
SQLModel-backed lookups the assignment engine validates against.

Read-only: tournaments, races and ring configuration are written by the
tournament routes, never by the engine. These share the store's database, so
an unreachable database surfaces here first and is raised as
StorageUnavailable just like a store failure.
"""
from typing import List, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlmodel import Session, select

from flyball.models.ring_configuration import RingConfiguration
from flyball.models.tournament import Race, Tournament
from flyball.services.assignment_store import StorageUnavailable
from flyball.services.assignment_types import RingConfigurationEntry


class SqlTournamentCatalog:
    def __init__(self, engine: Engine):
        self.engine = engine

    def tournament_exists(self, tournament_id: str) -> bool:
        try:
            with Session(self.engine) as session:
                return session.get(Tournament, tournament_id) is not None
        except DBAPIError as e:
            raise StorageUnavailable("tournament_exists", tournament_id, e) from e

    def race_exists(self, tournament_id: str, race_number: int) -> bool:
        try:
            with Session(self.engine) as session:
                race = session.exec(
                    select(Race).where(Race.tournament_id == tournament_id, Race.race_number == race_number)
                ).first()
                return race is not None
        except DBAPIError as e:
            raise StorageUnavailable("race_exists", tournament_id, e) from e


class SqlRingConfigurationProvider:
    def __init__(self, engine: Engine):
        self.engine = engine

    def get_ring_configuration(self, tournament_id: str) -> Optional[List[RingConfigurationEntry]]:
        """Configured rings ordered by ring number, or None if the tournament has none."""
        try:
            with Session(self.engine) as session:
                rows = session.exec(
                    select(RingConfiguration)
                    .where(RingConfiguration.tournament_id == tournament_id)
                    .order_by(RingConfiguration.ring_number)
                ).all()
        except DBAPIError as e:
            raise StorageUnavailable("get_ring_configuration", tournament_id, e) from e
        if not rows:
            return None
        return [RingConfigurationEntry(ring_number=r.ring_number, color=r.color) for r in rows]
