"""
Durable storage for tournament race assignments.

One TournamentRaceAssignments row per tournament holds the full ring/slot
snapshot as JSON, so every save is a single-row replace and every read
returns a whole snapshot. The store does not serialize writers; the engine
does (see flyball.utils.locks).
"""
import logging
from datetime import timezone
from typing import Optional, Sequence

from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlmodel import Session

from flyball.models.race_assignments import TournamentRaceAssignments
from flyball.services.assignment_types import (
    RingConfigurationEntry,
    RingSlotState,
    TournamentAssignments,
)
from flyball.utils.locks import KeyedLockRegistry

logger = logging.getLogger(__name__)


class StorageUnavailable(Exception):
    """Underlying persistence could not be reached"""

    def __init__(self, operation: str, tournament_id: str, cause: Exception):
        self.operation = operation
        self.tournament_id = tournament_id
        self.cause = cause
        super().__init__(f"Assignment storage unavailable during {operation} for tournament {tournament_id}: {cause}")


def _to_snapshot(row: TournamentRaceAssignments) -> TournamentAssignments:
    last_updated = row.last_updated
    # SQLite drops tzinfo; everything written here is UTC
    if last_updated.tzinfo is None:
        last_updated = last_updated.replace(tzinfo=timezone.utc)
    return TournamentAssignments(
        tournament_id=row.tournament_id,
        rings=tuple(RingSlotState.from_dict(r) for r in row.rings),
        last_updated=last_updated,
    )


def _rings_json(assignments: TournamentAssignments) -> list:
    return [r.to_dict() for r in assignments.rings]


class AssignmentStore:
    def __init__(self, engine: Engine):
        self.engine = engine
        self._create_locks = KeyedLockRegistry()

    def get(self, tournament_id: str) -> Optional[TournamentAssignments]:
        """Current snapshot for the tournament, or None if none was ever created."""
        try:
            with Session(self.engine) as session:
                row = session.get(TournamentRaceAssignments, tournament_id)
                return _to_snapshot(row) if row else None
        except DBAPIError as e:
            raise StorageUnavailable("get", tournament_id, e) from e

    def get_or_create(
        self, tournament_id: str, ring_configuration: Sequence[RingConfigurationEntry]
    ) -> TournamentAssignments:
        """
        Return the stored snapshot, creating an empty one from ``ring_configuration``
        if the tournament has none yet.

        At most one create wins: in-process callers coalesce on the tournament's
        creation lock, and a concurrent insert from another process loses on
        the primary key and re-reads the winner's row. Creating one
        tournament's record never waits on another's.
        """
        existing = self.get(tournament_id)
        if existing is not None:
            return existing

        with self._create_locks.hold(tournament_id):
            existing = self.get(tournament_id)
            if existing is not None:
                return existing

            seeded = TournamentAssignments.seeded(tournament_id, ring_configuration)
            try:
                with Session(self.engine) as session:
                    session.add(
                        TournamentRaceAssignments(
                            tournament_id=tournament_id,
                            rings=_rings_json(seeded),
                            last_updated=seeded.last_updated,
                        )
                    )
                    session.commit()
            except IntegrityError:
                logger.info(f"Assignments for tournament {tournament_id} created concurrently; using stored record")
                winner = self.get(tournament_id)
                if winner is None:
                    raise
                return winner
            except DBAPIError as e:
                raise StorageUnavailable("get_or_create", tournament_id, e) from e

            logger.info(f"Created race assignments for tournament {tournament_id} with {len(seeded.rings)} rings")
            return seeded

    def save(self, assignments: TournamentAssignments) -> None:
        """Replace the stored snapshot for ``assignments.tournament_id`` (last writer wins)."""
        tournament_id = assignments.tournament_id
        try:
            with Session(self.engine) as session:
                row = session.get(TournamentRaceAssignments, tournament_id)
                if row is None:
                    row = TournamentRaceAssignments(tournament_id=tournament_id)
                row.rings = _rings_json(assignments)
                row.last_updated = assignments.last_updated
                session.add(row)
                session.commit()
        except DBAPIError as e:
            raise StorageUnavailable("save", tournament_id, e) from e
