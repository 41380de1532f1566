"""
Race Assignment Engine: placement rules for ring slots

Tracks which race is Current / On Deck / In The Hole in each ring of a
tournament and enforces:

1. **Single current race**: a race is Current in at most one ring at a time
2. **Slot exclusivity**: each ring slot holds at most one race
3. **One slot per race**: after any assignment a race occupies exactly one
   slot tournament-wide (assigning vacates its previous slot)

Conflicts with (1) and (2) are reported instead of resolved unless the caller
passes allow_override, in which case the new assignment displaces whatever was
there. Only Current is checked across rings; a race showing On Deck in two
rings is not a conflict.

Every mutation of a tournament runs under that tournament's lock, from the
first validation lookup to the notification hand-off. Expected failures
(not found, conflict) come back as results; StorageUnavailable propagates.
"""
import logging
import threading
import time
from typing import List, Optional, Protocol

from flyball.services.assignment_store import AssignmentStore
from flyball.services.assignment_types import (
    AssignmentError,
    AssignResult,
    ClearResult,
    RaceAssignment,
    RingConfigurationEntry,
    RingStatus,
    TournamentAssignments,
)
from flyball.utils.locks import KeyedLockRegistry

logger = logging.getLogger(__name__)


class TournamentCatalog(Protocol):
    def tournament_exists(self, tournament_id: str) -> bool: ...

    def race_exists(self, tournament_id: str, race_number: int) -> bool: ...


class RingConfigurationProvider(Protocol):
    def get_ring_configuration(self, tournament_id: str) -> Optional[List[RingConfigurationEntry]]: ...


class NotificationSink(Protocol):
    def notify_assignment_updated(self, tournament_id: str, assignments: TournamentAssignments) -> None: ...

    def notify_ring_cleared(self, tournament_id: str, ring_number: int, assignments: TournamentAssignments) -> None: ...


def detect_conflicts(
    assignments: TournamentAssignments,
    race_number: int,
    ring_number: int,
    status: RingStatus,
) -> List[str]:
    """
    Conflicts that placing ``race_number`` into ring ``ring_number``'s ``status``
    slot would cause. Pure; does not look at allow_override.

    Returns:
        Human-readable conflict descriptions, empty if the placement is clean
    """
    conflicts = []

    if status == RingStatus.CURRENT:
        other_rings = assignments.current_rings_for(race_number, exclude_ring=ring_number)
        if other_rings:
            ring_list = ", ".join(str(n) for n in other_rings)
            conflicts.append(f"Race {race_number} is already current in ring(s): {ring_list}")

    target_ring = assignments.ring(ring_number)
    existing = target_ring.slot(status) if target_ring else None
    # Re-assigning a race to the slot it already holds still counts
    if existing is not None:
        conflicts.append(
            f"Ring {ring_number} {status.value} slot is already occupied by race {existing.race_number}"
        )

    return conflicts


def place_race(
    assignments: TournamentAssignments,
    race_number: int,
    ring_number: int,
    status: RingStatus,
) -> TournamentAssignments:
    """Vacate every slot holding ``race_number`` then put it in the target slot."""
    vacated = assignments.without_race(race_number)
    target_ring = vacated.ring(ring_number)
    if target_ring is None:
        raise KeyError(ring_number)
    placed = target_ring.with_slot(status, RaceAssignment(race_number, ring_number, status))
    return vacated.replace_ring(placed)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class AssignmentEngine:
    def __init__(
        self,
        store: AssignmentStore,
        catalog: TournamentCatalog,
        ring_provider: RingConfigurationProvider,
        notifier: NotificationSink,
        locks: Optional[KeyedLockRegistry] = None,
    ):
        self.store = store
        self.catalog = catalog
        self.ring_provider = ring_provider
        self.notifier = notifier
        self.locks = locks or KeyedLockRegistry()

    def get_assignments(self, tournament_id: str) -> Optional[TournamentAssignments]:
        """Read-through to the store. Takes no lock; snapshots are whole."""
        return self.store.get(tournament_id)

    def assign_race(
        self,
        tournament_id: str,
        race_number: int,
        ring_number: int,
        status: RingStatus,
        allow_override: bool = False,
    ) -> AssignResult:
        """
        Put a race into a ring slot.

        Preconditions are checked in order (tournament, race, ring) and the
        first failure is returned without touching stored state. Conflicts
        are returned with the unmodified snapshot unless allow_override.

        Raises:
            StorageUnavailable if the assignment store cannot be reached
        """
        status = RingStatus(status)
        started = time.perf_counter()

        with self.locks.hold(tournament_id):
            if not self.catalog.tournament_exists(tournament_id):
                return AssignResult(False, "Tournament not found", error=AssignmentError.TOURNAMENT_NOT_FOUND)

            if not self.catalog.race_exists(tournament_id, race_number):
                return AssignResult(
                    False, f"Race {race_number} not found in tournament", error=AssignmentError.RACE_NOT_FOUND
                )

            ring_config = self.ring_provider.get_ring_configuration(tournament_id)
            if not ring_config or not any(r.ring_number == ring_number for r in ring_config):
                return AssignResult(
                    False,
                    f"Ring {ring_number} not configured for this tournament",
                    error=AssignmentError.RING_NOT_CONFIGURED,
                )

            assignments = self.store.get_or_create(tournament_id, ring_config)

            # Ring added to the configuration after assignments were seeded
            if assignments.ring(ring_number) is None:
                return AssignResult(
                    False,
                    f"Ring {ring_number} not found",
                    error=AssignmentError.RING_NOT_FOUND,
                    assignments=assignments,
                )

            conflicts = detect_conflicts(assignments, race_number, ring_number, status)
            if conflicts and not allow_override:
                logger.info(
                    f"Race {race_number} -> ring {ring_number} {status.value} rejected for tournament "
                    f"{tournament_id}: {'; '.join(conflicts)}"
                )
                return AssignResult(
                    False,
                    "Race assignment conflicts detected",
                    error=AssignmentError.CONFLICT_DETECTED,
                    conflicts=conflicts,
                    assignments=assignments,
                )
            if conflicts:
                logger.info(f"Override applied for tournament {tournament_id}: {'; '.join(conflicts)}")

            updated = place_race(assignments, race_number, ring_number, status).touched()
            self.store.save(updated)
            self._notify_assignment_updated(tournament_id, updated)

        logger.info(f"Race assignment completed in {_elapsed_ms(started)}ms for tournament {tournament_id}")
        return AssignResult(True, "Race assigned successfully", conflicts=conflicts, assignments=updated)

    def clear_ring(self, tournament_id: str, ring_number: int) -> ClearResult:
        """
        Empty all three slots of a ring. Clearing an already-empty ring succeeds.

        Raises:
            StorageUnavailable if the assignment store cannot be reached
        """
        started = time.perf_counter()

        with self.locks.hold(tournament_id):
            if not self.catalog.tournament_exists(tournament_id):
                return ClearResult(False, "Tournament not found", error=AssignmentError.TOURNAMENT_NOT_FOUND)

            assignments = self.store.get(tournament_id)
            if assignments is None:
                return ClearResult(
                    False, "No assignments found for tournament", error=AssignmentError.NO_ASSIGNMENTS_FOUND
                )

            ring = assignments.ring(ring_number)
            if ring is None:
                return ClearResult(False, f"Ring {ring_number} not found", error=AssignmentError.RING_NOT_FOUND)

            updated = assignments.replace_ring(ring.cleared()).touched()
            self.store.save(updated)
            self._notify_ring_cleared(tournament_id, ring_number, updated)

        logger.info(
            f"Ring clear completed in {_elapsed_ms(started)}ms for ring {ring_number} in tournament {tournament_id}"
        )
        return ClearResult(True, "Ring cleared successfully", assignments=updated)

    # The mutation is already saved when these run; a failed broadcast must not undo it.

    def _notify_assignment_updated(self, tournament_id: str, assignments: TournamentAssignments) -> None:
        try:
            self.notifier.notify_assignment_updated(tournament_id, assignments)
        except Exception:
            logger.exception(f"Failed to send race assignment notification for tournament {tournament_id}")

    def _notify_ring_cleared(self, tournament_id: str, ring_number: int, assignments: TournamentAssignments) -> None:
        try:
            self.notifier.notify_ring_cleared(tournament_id, ring_number, assignments)
        except Exception:
            logger.exception(
                f"Failed to send ring cleared notification for ring {ring_number} in tournament {tournament_id}"
            )


# Singleton instance
_assignment_engine: Optional[AssignmentEngine] = None
_assignment_engine_lock = threading.Lock()


def get_assignment_engine() -> AssignmentEngine:
    """Get or create the singleton AssignmentEngine bound to the app database."""
    global _assignment_engine
    with _assignment_engine_lock:
        if _assignment_engine is None:
            _assignment_engine = _build_default_engine()
    return _assignment_engine


def _build_default_engine() -> AssignmentEngine:
    from flyball.database import engine
    from flyball.services.connection_manager import get_connection_manager
    from flyball.services.notification_service import RealTimeNotificationService
    from flyball.services.tournament_catalog import SqlRingConfigurationProvider, SqlTournamentCatalog

    return AssignmentEngine(
        store=AssignmentStore(engine),
        catalog=SqlTournamentCatalog(engine),
        ring_provider=SqlRingConfigurationProvider(engine),
        notifier=RealTimeNotificationService(get_connection_manager()),
    )
