"""
Domain value types for the evaluation pipeline.

All types are frozen dataclasses. Stage outputs are distinct types so each
stage only accepts what the previous stage produced:
SimulationState -> ValidatedState -> Trajectory -> Metrics -> SimulationResult.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# ============================================================================
# Enumerations
# ============================================================================

class SpeciesType(str, Enum):
    """Trophic role of a species"""
    PRODUCER = 'PRODUCER'
    CONSUMER = 'CONSUMER'
    DECOMPOSER = 'DECOMPOSER'


class InteractionType(str, Enum):
    """Kind of directed edge between two species"""
    PREDATION = 'PREDATION'      # source preys on target
    COMPETITION = 'COMPETITION'
    SYMBIOSIS = 'SYMBIOSIS'


class SimulationStatus(str, Enum):
    SETUP = 'SETUP'
    RUNNING = 'RUNNING'
    COMPLETED = 'COMPLETED'
    FAILED = 'FAILED'


class TrendDirection(str, Enum):
    GROWING = 'GROWING'
    STABLE = 'STABLE'
    DECLINING = 'DECLINING'
    EXTINCT = 'EXTINCT'


# ============================================================================
# Input Definitions
# ============================================================================

@dataclass(frozen=True)
class Species:
    """Species selected by the player"""
    id: str
    name: str
    type: SpeciesType
    energy_requirement: float  # 0-100
    reproduction_rate: float  # 0.1-5.0
    population_size: float  # 1-1000, initial population
    prey_species: Tuple[str, ...] = ()  # Species ids this species feeds on

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type.value,
            'energy_requirement': float(self.energy_requirement),
            'reproduction_rate': float(self.reproduction_rate),
            'population_size': float(self.population_size),
            'prey_species': list(self.prey_species),
        }


@dataclass(frozen=True)
class EnvironmentParameters:
    """Physical conditions of the scenario"""
    temperature: float  # Celsius
    depth: float  # meters
    salinity: float
    light_level: float  # 0-100

    def to_dict(self) -> Dict[str, Any]:
        return {
            'temperature': float(self.temperature),
            'depth': float(self.depth),
            'salinity': float(self.salinity),
            'light_level': float(self.light_level),
        }


@dataclass(frozen=True)
class SpeciesInteraction:
    """Directed interaction edge. For PREDATION, source is the predator."""
    source_species: str
    target_species: str
    interaction_type: InteractionType
    strength: float  # -1.0 to 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source_species': self.source_species,
            'target_species': self.target_species,
            'interaction_type': self.interaction_type.value,
            'strength': float(self.strength),
        }


@dataclass(frozen=True)
class SimulationState:
    """Candidate configuration submitted for evaluation"""
    id: str
    user_id: str
    species: Tuple[Species, ...]
    environment: EnvironmentParameters
    interactions: Tuple[SpeciesInteraction, ...] = ()
    time_remaining: float = 0.0
    status: SimulationStatus = SimulationStatus.SETUP

    def species_by_id(self) -> Dict[str, Species]:
        return {s.id: s for s in self.species}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'species': [s.to_dict() for s in self.species],
            'environment': self.environment.to_dict(),
            'interactions': [i.to_dict() for i in self.interactions],
            'time_remaining': float(self.time_remaining),
            'status': self.status.value,
        }


# ============================================================================
# Stage Outputs
# ============================================================================

@dataclass(frozen=True)
class ValidatedState:
    """
    State that passed every validation rule.

    Only validator.validate() constructs this. `interactions` is the resolved
    graph: declared edges plus edges inferred from prey lists and roles.
    """
    state: SimulationState
    interactions: Tuple[SpeciesInteraction, ...]

    @property
    def species(self) -> Tuple[Species, ...]:
        return self.state.species

    @property
    def environment(self) -> EnvironmentParameters:
        return self.state.environment


@dataclass(frozen=True)
class TickSnapshot:
    """Per-species values at the end of one tick (tick 0 = initial state)"""
    tick: int
    populations: Dict[str, float]
    energy_balances: Dict[str, float]  # Net energy (gain - maintenance) this tick
    energy_intake: Dict[str, float]  # Gross energy assimilated this tick

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tick': self.tick,
            'populations': {k: float(v) for k, v in self.populations.items()},
            'energy_balances': {k: float(v) for k, v in self.energy_balances.items()},
            'energy_intake': {k: float(v) for k, v in self.energy_intake.items()},
        }


@dataclass(frozen=True)
class Trajectory:
    """Ordered simulation output. Carries species roles so metrics need nothing else."""
    snapshots: Tuple[TickSnapshot, ...]
    species_types: Dict[str, SpeciesType]
    initial_populations: Dict[str, float]
    dt: float
    suitability: Dict[str, float] = field(default_factory=dict)  # Environmental suitability per species, 0-1

    @property
    def species_ids(self) -> List[str]:
        return list(self.species_types.keys())

    @property
    def final(self) -> TickSnapshot:
        return self.snapshots[-1]

    @property
    def ticks(self) -> int:
        return len(self.snapshots) - 1

    def population_series(self, species_id: str) -> List[float]:
        return [snap.populations[species_id] for snap in self.snapshots]


@dataclass(frozen=True)
class PopulationTrend:
    """First-to-last population movement for one species"""
    species_id: str
    initial: float
    final: float
    change: float  # Relative change (final - initial) / initial
    direction: TrendDirection

    def to_dict(self) -> Dict[str, Any]:
        return {
            'species_id': self.species_id,
            'initial': float(self.initial),
            'final': float(self.final),
            'change': float(self.change),
            'direction': self.direction.value,
        }


@dataclass(frozen=True)
class Metrics:
    """Ecosystem quality measures, each normalized to [0, 1]"""
    biodiversity_index: float
    stability_score: float
    sustainability_rating: float
    trophic_efficiency: float
    population_trends: Tuple[PopulationTrend, ...] = ()
    environment_score: float = 1.0  # Mean environmental suitability across species

    def values(self) -> Dict[str, float]:
        """Scalar metrics keyed by area name"""
        return {
            'biodiversity_index': self.biodiversity_index,
            'stability_score': self.stability_score,
            'sustainability_rating': self.sustainability_rating,
            'trophic_efficiency': self.trophic_efficiency,
            'environment_score': self.environment_score,
        }

    def to_dict(self) -> Dict[str, Any]:
        result = {k: float(v) for k, v in self.values().items()}
        result['population_trends'] = [t.to_dict() for t in self.population_trends]
        return result


@dataclass(frozen=True)
class ScoreBreakdown:
    """Weighted contribution of each score component (sums to the score)"""
    balance: float
    survival: float
    stability: float

    def to_dict(self) -> Dict[str, float]:
        return {
            'balance': float(self.balance),
            'survival': float(self.survival),
            'stability': float(self.stability),
        }


@dataclass(frozen=True)
class FeedbackEntry:
    """Guidance for one weak area"""
    area: str
    message: str
    target_value: float
    current_value: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'area': self.area,
            'message': self.message,
            'target_value': float(self.target_value),
        }
        if self.current_value is not None:
            result['current_value'] = float(self.current_value)
        return result


@dataclass(frozen=True)
class SimulationResult:
    """Complete outcome of one evaluation. Immutable once produced."""
    state: SimulationState
    metrics: Metrics
    score: float  # 0-100
    breakdown: ScoreBreakdown
    feedback: Tuple[FeedbackEntry, ...]
    summary: str
    timestamp: str  # UTC ISO-8601
    ticks: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'state': self.state.to_dict(),
            'metrics': self.metrics.to_dict(),
            'score': float(self.score),
            'breakdown': self.breakdown.to_dict(),
            'feedback': [f.to_dict() for f in self.feedback],
            'summary': self.summary,
            'timestamp': self.timestamp,
            'ticks': self.ticks,
        }
