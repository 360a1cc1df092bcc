"""
Ecosystem simulation kernel.

Advances per-species populations and energy balances over discrete ticks.
State is held as struct-of-arrays (one numpy row per species, in the order
the species were submitted); interactions are folded into dense matrices
once at construction so each tick is a handful of vector operations.

The kernel is deterministic (no random sampling) and never mutates the
ValidatedState it was built from. Cancellation is cooperative: the cancel
event and deadline are checked before every tick.
"""

import threading
import time
from typing import Dict, List, Optional

import numpy as np

from .config import EngineConfig
from .constants import (
    TOLERANCE_PROFILES,
    REQUIREMENT_TOLERANCE_SHRINK,
    PRODUCER_YIELD,
    PRIMARY_CAPACITY,
    MAINTENANCE_COST,
    ATTACK_RATE,
    HALF_SATURATION,
    CONVERSION_EFFICIENCY,
    DECOMPOSER_YIELD,
    MORTALITY_RATE,
    DETRITUS_DECAY,
    COMPETITION_RATE,
    SYMBIOSIS_RATE,
    INTERACTION_SCALE,
)
from .data_types import (
    ValidatedState, EnvironmentParameters, Species, SpeciesType,
    InteractionType, TickSnapshot, Trajectory
)
from .errors import InternalError, SimulationCancelled


def environmental_stress(species: Species, environment: EnvironmentParameters) -> Dict[str, float]:
    """
    Per-factor stress of a species in an environment.

    Each factor contributes weight * z^2, where z is the distance between the
    actual value and the optimum of the species' trophic role in units of
    tolerance width. Tolerance widths narrow as energy_requirement rises.

    Returns:
        {factor: stress}, 0 at the optimum
    """
    profile = TOLERANCE_PROFILES[species.type.value]
    shrink = 1.0 - REQUIREMENT_TOLERANCE_SHRINK * (species.energy_requirement / 100.0)

    stress = {}
    for factor, (optimum, width, weight) in profile.items():
        z = (getattr(environment, factor) - optimum) / (width * shrink)
        stress[factor] = weight * z * z
    return stress


def environmental_suitability(species: Species, environment: EnvironmentParameters) -> float:
    """
    Suitability of the environment for a species, in (0, 1].

    Gaussian falloff of the summed factor stress (see environmental_stress).

    Args:
        species: Species definition
        environment: Scenario conditions

    Returns:
        1.0 at the role optimum, approaching 0 far from it
    """
    distance_sq = sum(environmental_stress(species, environment).values())
    return float(np.exp(-0.5 * distance_sq))


class EcosystemSimulator:
    """
    Population/energy kernel for one validated ecosystem.

    Per tick (step dt), for each species i with population P_i:
        gain_i     = producer light yield + assimilated prey + detritus (decomposers)
        balance_i  = gain_i - maintenance_i
        growth_i   = r_i * balance_i - mortality - competition_i + symbiosis_i
        P_i       += (growth_i * P_i - eaten_i) * dt,   floored at 0
    """

    def __init__(self, validated: ValidatedState, config: Optional[EngineConfig] = None):
        """
        Args:
            validated: Output of validator.validate()
            config: Engine config (defaults used if None)
        """
        if not isinstance(validated, ValidatedState):
            raise TypeError(f"simulator requires a ValidatedState, got {type(validated).__name__}")

        self.config = config if config is not None else EngineConfig()
        self.dt: float = self.config.tick_dt

        species = list(validated.species)
        self.species_ids: List[str] = [s.id for s in species]
        self.species_types: Dict[str, SpeciesType] = {s.id: s.type for s in species}
        row_of_id = {species_id: row for row, species_id in enumerate(self.species_ids)}
        N = len(species)

        # Per-species parameter arrays
        self._reproduction_rate = np.array([s.reproduction_rate for s in species], dtype=np.float64)
        self._maintenance = np.array(
            [MAINTENANCE_COST * s.energy_requirement / 100.0 for s in species], dtype=np.float64)
        self._suitability = np.array(
            [environmental_suitability(s, validated.environment) for s in species], dtype=np.float64)
        self._is_producer = np.array([s.type == SpeciesType.PRODUCER for s in species], dtype=bool)
        self._is_decomposer = np.array([s.type == SpeciesType.DECOMPOSER for s in species], dtype=bool)

        # Interaction matrices: predation[i, j] = strength of i preying on j,
        # competition/symbiosis are symmetric (each edge acts on both parties)
        self._predation = np.zeros((N, N), dtype=np.float64)
        self._competition = np.zeros((N, N), dtype=np.float64)
        self._symbiosis = np.zeros((N, N), dtype=np.float64)

        for interaction in validated.interactions:
            src = row_of_id[interaction.source_species]
            dst = row_of_id[interaction.target_species]
            if interaction.interaction_type == InteractionType.PREDATION:
                self._predation[src, dst] += interaction.strength
            elif interaction.interaction_type == InteractionType.COMPETITION:
                self._competition[src, dst] += abs(interaction.strength)
                self._competition[dst, src] += abs(interaction.strength)
            elif interaction.interaction_type == InteractionType.SYMBIOSIS:
                self._symbiosis[src, dst] += interaction.strength
                self._symbiosis[dst, src] += interaction.strength

        # Dynamic state
        self._populations = np.array([s.population_size for s in species], dtype=np.float64)
        self._detritus: float = 0.0
        self.tick_count: int = 0

        self.initial_populations: Dict[str, float] = {
            species_id: float(p) for species_id, p in zip(self.species_ids, self._populations)
        }

        # Telemetry
        self._tick_times: List[float] = []

    def _snapshot(self, balances: np.ndarray, intake: np.ndarray) -> TickSnapshot:
        return TickSnapshot(
            tick=self.tick_count,
            populations={sid: float(v) for sid, v in zip(self.species_ids, self._populations)},
            energy_balances={sid: float(v) for sid, v in zip(self.species_ids, balances)},
            energy_intake={sid: float(v) for sid, v in zip(self.species_ids, intake)},
        )

    def initial_snapshot(self) -> TickSnapshot:
        zeros = np.zeros(len(self.species_ids), dtype=np.float64)
        return self._snapshot(zeros, zeros)

    def step(self) -> TickSnapshot:
        """
        Advance one tick and return the resulting snapshot.

        Returns:
            TickSnapshot for the new tick

        Raises:
            InternalError: if any population becomes non-finite
        """
        start_time = time.perf_counter()

        dt = self.dt
        P = self._populations
        suit = self._suitability

        # Prey availability (Holling type II saturation)
        prey_saturation = P / (P + HALF_SATURATION)

        # capture_rate[i, j]: prey j individuals taken by predator i per time unit
        per_predator = self._predation * ATTACK_RATE * prey_saturation[np.newaxis, :]
        capture_rate = per_predator * P[:, np.newaxis]
        eaten = capture_rate.sum(axis=0)

        # Energy gain per capita
        producer_total = float(P[self._is_producer].sum())
        light_share = max(0.0, 1.0 - producer_total / PRIMARY_CAPACITY)
        gain = np.where(self._is_producer, PRODUCER_YIELD * suit * light_share, 0.0)
        gain = gain + CONVERSION_EFFICIENCY * suit * per_predator.sum(axis=1)

        detritus_saturation = self._detritus / (self._detritus + HALF_SATURATION)
        detritus_gain = np.where(self._is_decomposer, DECOMPOSER_YIELD * suit * detritus_saturation, 0.0)
        gain = gain + detritus_gain

        balance = gain - self._maintenance

        # Interaction pressure on growth
        competition = COMPETITION_RATE * (self._competition @ P) / INTERACTION_SCALE
        symbiosis = SYMBIOSIS_RATE * (self._symbiosis @ (P / (P + INTERACTION_SCALE)))

        growth = self._reproduction_rate * balance - MORTALITY_RATE - competition + symbiosis

        new_P = P + (growth * P - eaten) * dt
        new_P = np.maximum(new_P, 0.0)
        new_P[new_P < self.config.extinction_threshold] = 0.0

        if not np.all(np.isfinite(new_P)):
            raise InternalError(f"Non-finite population at tick {self.tick_count + 1}", phase="SIMULATING")

        # Detritus: natural mortality in, decomposition and decay out
        inflow = float((MORTALITY_RATE * P).sum()) * dt
        consumed = float((detritus_gain * P).sum()) * dt
        self._detritus = max(0.0, self._detritus * (1.0 - DETRITUS_DECAY * dt) + inflow - consumed)

        energy_balances = balance * P * dt
        energy_intake = gain * P * dt

        self._populations = new_P
        self.tick_count += 1

        self._tick_times.append(time.perf_counter() - start_time)

        return self._snapshot(energy_balances, energy_intake)

    def run(
        self,
        ticks: int,
        cancel_event: Optional[threading.Event] = None,
        deadline: Optional[float] = None
    ) -> Trajectory:
        """
        Run `ticks` ticks and return the full trajectory.

        Args:
            ticks: Number of ticks to simulate
            cancel_event: Set by another thread to stop the run
            deadline: time.monotonic() value after which the run stops

        Returns:
            Trajectory with ticks + 1 snapshots (tick 0 is the initial state)

        Raises:
            SimulationCancelled: cancel_event set or deadline passed before a tick
        """
        snapshots = [self.initial_snapshot()]
        log_interval = self.config.log_interval if self.config.verbose else 0

        for _ in range(ticks):
            if cancel_event is not None and cancel_event.is_set():
                raise SimulationCancelled(self.tick_count + 1)
            if deadline is not None and time.monotonic() >= deadline:
                raise SimulationCancelled(self.tick_count + 1)

            snapshots.append(self.step())

            if log_interval and self.tick_count % log_interval == 0:
                self.print_tick_summary()

        return Trajectory(
            snapshots=tuple(snapshots),
            species_types=dict(self.species_types),
            initial_populations=dict(self.initial_populations),
            dt=self.dt,
            suitability={sid: float(v) for sid, v in zip(self.species_ids, self._suitability)},
        )

    def get_stats(self) -> dict:
        alive = int((self._populations > 0).sum())
        mean_tick_ms = (sum(self._tick_times) / len(self._tick_times) * 1000.0) if self._tick_times else 0.0
        return {
            'tick_count': self.tick_count,
            'alive_species': alive,
            'total_species': len(self.species_ids),
            'total_population': float(self._populations.sum()),
            'detritus': self._detritus,
            'avg_tick_ms': mean_tick_ms,
        }

    def print_tick_summary(self):
        stats = self.get_stats()
        populations = ", ".join(
            f"{sid}={p:.1f}" for sid, p in zip(self.species_ids, self._populations)
        )
        print(f"  [Ecosystem] tick={stats['tick_count']} alive={stats['alive_species']}/"
              f"{stats['total_species']} detritus={stats['detritus']:.1f} "
              f"avg_tick={stats['avg_tick_ms']:.3f}ms | {populations}")


def simulate(
    validated: ValidatedState,
    ticks: Optional[int] = None,
    config: Optional[EngineConfig] = None,
    cancel_event: Optional[threading.Event] = None,
    deadline: Optional[float] = None
) -> Trajectory:
    """
    Simulate a validated ecosystem.

    Args:
        validated: Output of validator.validate()
        ticks: Tick count (defaults to config.ticks)
        config: Engine config (defaults used if None)
        cancel_event: Cooperative cancel signal
        deadline: time.monotonic() cutoff

    Returns:
        New Trajectory; the input is not modified
    """
    simulator = EcosystemSimulator(validated, config)
    if ticks is None:
        ticks = simulator.config.ticks
    return simulator.run(ticks, cancel_event=cancel_event, deadline=deadline)
