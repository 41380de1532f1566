from flyball.models.race_assignments import TournamentRaceAssignments
from flyball.models.ring_configuration import RingConfiguration
from flyball.models.tournament import Race, Tournament

__all__ = [
    "Tournament",
    "Race",
    "RingConfiguration",
    "TournamentRaceAssignments",
]
