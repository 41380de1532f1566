"""
Race assignment value types.

Everything here is immutable: a mutation builds a new TournamentAssignments
and the store swaps it in whole. Ring slots are addressed by RingStatus so
the engine never needs a per-status switch.

Invariants held by construction:
- a filled slot carries its ring's number and the slot's own status
- ring numbers are unique within a TournamentAssignments
"""
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple


class RingStatus(str, Enum):
    CURRENT = "Current"
    ON_DECK = "OnDeck"
    IN_THE_HOLE = "InTheHole"


# RingStatus -> RingSlotState attribute
SLOT_FIELDS = {
    RingStatus.CURRENT: "current",
    RingStatus.ON_DECK: "on_deck",
    RingStatus.IN_THE_HOLE: "in_the_hole",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RingConfigurationEntry:
    ring_number: int
    color: str


@dataclass(frozen=True)
class RaceAssignment:
    race_number: int
    ring_number: int
    status: RingStatus

    def __post_init__(self):
        if self.race_number < 1:
            raise ValueError(f"race_number must be positive, got {self.race_number}")
        if self.ring_number < 1:
            raise ValueError(f"ring_number must be positive, got {self.ring_number}")
        # Accept the wire form ("OnDeck") as well as the enum member
        object.__setattr__(self, "status", RingStatus(self.status))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "race_number": self.race_number,
            "ring_number": self.ring_number,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["RaceAssignment"]:
        if not data:
            return None
        return cls(
            race_number=int(data["race_number"]),
            ring_number=int(data["ring_number"]),
            status=RingStatus(data["status"]),
        )


@dataclass(frozen=True)
class RingSlotState:
    ring_number: int
    color: str
    current: Optional[RaceAssignment] = None
    on_deck: Optional[RaceAssignment] = None
    in_the_hole: Optional[RaceAssignment] = None

    def __post_init__(self):
        for status, attr in SLOT_FIELDS.items():
            assignment = getattr(self, attr)
            if assignment is None:
                continue
            if assignment.ring_number != self.ring_number or assignment.status != status:
                raise ValueError(
                    f"Ring {self.ring_number} {status.value} slot cannot hold "
                    f"{assignment.status.value} assignment for ring {assignment.ring_number}"
                )

    def slot(self, status: RingStatus) -> Optional[RaceAssignment]:
        return getattr(self, SLOT_FIELDS[RingStatus(status)])

    def with_slot(self, status: RingStatus, assignment: Optional[RaceAssignment]) -> "RingSlotState":
        return replace(self, **{SLOT_FIELDS[RingStatus(status)]: assignment})

    def without_race(self, race_number: int) -> "RingSlotState":
        """Copy of this ring with ``race_number`` removed from every slot."""
        vacated = {
            attr: None
            for attr in SLOT_FIELDS.values()
            if getattr(self, attr) is not None and getattr(self, attr).race_number == race_number
        }
        return replace(self, **vacated) if vacated else self

    def cleared(self) -> "RingSlotState":
        return replace(self, current=None, on_deck=None, in_the_hole=None)

    def occupied(self) -> List[RaceAssignment]:
        return [a for a in (self.current, self.on_deck, self.in_the_hole) if a is not None]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ring_number": self.ring_number,
            "color": self.color,
            "current": self.current.to_dict() if self.current else None,
            "on_deck": self.on_deck.to_dict() if self.on_deck else None,
            "in_the_hole": self.in_the_hole.to_dict() if self.in_the_hole else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RingSlotState":
        return cls(
            ring_number=int(data["ring_number"]),
            color=data["color"],
            current=RaceAssignment.from_dict(data.get("current")),
            on_deck=RaceAssignment.from_dict(data.get("on_deck")),
            in_the_hole=RaceAssignment.from_dict(data.get("in_the_hole")),
        )


@dataclass(frozen=True)
class TournamentAssignments:
    tournament_id: str
    rings: Tuple[RingSlotState, ...]
    last_updated: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        rings = tuple(self.rings)
        numbers = [r.ring_number for r in rings]
        if len(numbers) != len(set(numbers)):
            raise ValueError(f"Duplicate ring numbers in assignments for tournament {self.tournament_id}")
        object.__setattr__(self, "rings", rings)

    @classmethod
    def seeded(
        cls, tournament_id: str, ring_configuration: Sequence[RingConfigurationEntry]
    ) -> "TournamentAssignments":
        """Fresh aggregate with one empty ring per configured ring."""
        return cls(
            tournament_id=tournament_id,
            rings=tuple(RingSlotState(ring_number=r.ring_number, color=r.color) for r in ring_configuration),
        )

    def ring(self, ring_number: int) -> Optional[RingSlotState]:
        for r in self.rings:
            if r.ring_number == ring_number:
                return r
        return None

    def replace_ring(self, ring: RingSlotState) -> "TournamentAssignments":
        if self.ring(ring.ring_number) is None:
            raise KeyError(ring.ring_number)
        rings = tuple(ring if r.ring_number == ring.ring_number else r for r in self.rings)
        return replace(self, rings=rings)

    def without_race(self, race_number: int) -> "TournamentAssignments":
        return replace(self, rings=tuple(r.without_race(race_number) for r in self.rings))

    def current_rings_for(self, race_number: int, exclude_ring: Optional[int] = None) -> List[int]:
        """Ring numbers (other than ``exclude_ring``) where the race is Current."""
        return [
            r.ring_number
            for r in self.rings
            if r.ring_number != exclude_ring and r.current is not None and r.current.race_number == race_number
        ]

    def touched(self, when: Optional[datetime] = None) -> "TournamentAssignments":
        return replace(self, last_updated=when or utcnow())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tournament_id": self.tournament_id,
            "rings": [r.to_dict() for r in self.rings],
            "last_updated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TournamentAssignments":
        last_updated = data["last_updated"]
        if isinstance(last_updated, str):
            last_updated = datetime.fromisoformat(last_updated)
        return cls(
            tournament_id=data["tournament_id"],
            rings=tuple(RingSlotState.from_dict(r) for r in data["rings"]),
            last_updated=last_updated,
        )


class AssignmentError(str, Enum):
    TOURNAMENT_NOT_FOUND = "TOURNAMENT_NOT_FOUND"
    RACE_NOT_FOUND = "RACE_NOT_FOUND"
    RING_NOT_CONFIGURED = "RING_NOT_CONFIGURED"
    RING_NOT_FOUND = "RING_NOT_FOUND"
    NO_ASSIGNMENTS_FOUND = "NO_ASSIGNMENTS_FOUND"
    CONFLICT_DETECTED = "CONFLICT_DETECTED"


NOT_FOUND_ERRORS = frozenset(
    {
        AssignmentError.TOURNAMENT_NOT_FOUND,
        AssignmentError.RACE_NOT_FOUND,
        AssignmentError.RING_NOT_CONFIGURED,
        AssignmentError.RING_NOT_FOUND,
        AssignmentError.NO_ASSIGNMENTS_FOUND,
    }
)


@dataclass
class AssignResult:
    success: bool
    message: str
    error: Optional[AssignmentError] = None
    conflicts: List[str] = field(default_factory=list)
    assignments: Optional[TournamentAssignments] = None


@dataclass
class ClearResult:
    success: bool
    message: str
    error: Optional[AssignmentError] = None
    assignments: Optional[TournamentAssignments] = None
