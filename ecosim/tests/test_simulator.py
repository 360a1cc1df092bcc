"""
Test the population/energy kernel.

Verifies:
- Tick count and trajectory shape
- Determinism (same input, same trajectory)
- Populations stay finite and non-negative
- Cooperative cancellation via event and deadline
- Environmental suitability responds to conditions
- Competition, symbiosis, predation and detritus move populations
"""

import sys
import threading
import time
from pathlib import Path

import numpy as np
import pytest

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from ecosim.config import EngineConfig
from ecosim.data_types import (
    Species, EnvironmentParameters, SpeciesInteraction, SimulationState,
    SpeciesType, InteractionType
)
from ecosim.errors import SimulationCancelled
from ecosim.simulator import EcosystemSimulator, simulate, environmental_suitability
from ecosim.validator import validate


SHALLOW = EnvironmentParameters(temperature=18.0, depth=12.0, salinity=32.0, light_level=75.0)


def kelp_forest(extra_species=(), interactions=(), environment=SHALLOW):
    species = (
        Species("kelp", "Giant Kelp", SpeciesType.PRODUCER, 20.0, 1.0, 300.0),
        Species("fish", "Kelp Bass", SpeciesType.CONSUMER, 40.0, 0.5, 50.0, ("kelp",)),
    ) + tuple(extra_species)
    state = SimulationState(
        id="sim-kernel",
        user_id="user-test",
        species=species,
        environment=environment,
        interactions=tuple(interactions),
    )
    return validate(state)


def test_tick_count_and_shape():
    """Default config runs 200 ticks plus the initial snapshot"""
    validated = kelp_forest()
    trajectory = simulate(validated)

    print(f"[OK] Simulated {trajectory.ticks} ticks")
    print(f"  Final: {trajectory.final.populations}")

    assert trajectory.ticks == 200
    assert len(trajectory.snapshots) == 201
    assert trajectory.snapshots[0].tick == 0
    assert trajectory.final.tick == 200
    assert trajectory.species_ids == ["kelp", "fish"]
    assert trajectory.initial_populations == {"kelp": 300.0, "fish": 50.0}
    assert trajectory.snapshots[0].populations == {"kelp": 300.0, "fish": 50.0}

    short = simulate(validated, ticks=10)
    assert short.ticks == 10


def test_kelp_forest_survives():
    trajectory = simulate(kelp_forest())
    final = trajectory.final.populations

    assert final["kelp"] > 0, "Producer should persist"
    assert final["fish"] > 0, "Consumer with abundant prey should persist"


def test_deterministic():
    """Two runs on the same input produce identical trajectories"""
    validated = kelp_forest()
    first = simulate(validated)
    second = simulate(validated)

    for a, b in zip(first.snapshots, second.snapshots):
        assert a.populations == b.populations
        assert a.energy_balances == b.energy_balances
        assert a.energy_intake == b.energy_intake

    print("[OK] Trajectories identical across runs")


def test_populations_non_negative_and_finite():
    starving = Species("urchin", "Starving Urchin", SpeciesType.CONSUMER, 100.0, 5.0, 100.0, ("kelp",))
    validated = kelp_forest(
        extra_species=[starving],
        interactions=[SpeciesInteraction("urchin", "kelp", InteractionType.PREDATION, 0.01)],
    )
    trajectory = simulate(validated)

    for snap in trajectory.snapshots:
        values = np.array(list(snap.populations.values()))
        assert np.all(np.isfinite(values))
        assert np.all(values >= 0.0)

    series = trajectory.population_series("urchin")
    assert series[-1] == 0.0, f"Urchin should starve, final={series[-1]}"

    # Once extinct, stays extinct
    first_zero = series.index(0.0)
    assert all(p == 0.0 for p in series[first_zero:])
    print(f"[OK] Urchin extinct at tick {first_zero}")


def test_input_not_mutated():
    validated = kelp_forest()
    before = validated.state.to_dict()
    interactions = validated.interactions

    simulate(validated)

    assert validated.state.to_dict() == before
    assert validated.interactions == interactions


def test_requires_validated_state():
    with pytest.raises(TypeError):
        EcosystemSimulator(kelp_forest().state)


def test_cancel_event_stops_run():
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(SimulationCancelled) as info:
        simulate(kelp_forest(), cancel_event=cancel)
    assert info.value.tick == 1


def test_deadline_stops_run():
    config = EngineConfig(duration=1000.0)
    with pytest.raises(SimulationCancelled):
        simulate(kelp_forest(), config=config, deadline=time.monotonic() + 0.001)


def test_step_by_step_matches_run():
    validated = kelp_forest()
    sim = EcosystemSimulator(validated)
    for _ in range(5):
        snap = sim.step()

    trajectory = simulate(validated, ticks=5)
    assert snap.tick == 5
    assert snap.populations == trajectory.final.populations

    stats = sim.get_stats()
    assert stats['tick_count'] == 5
    assert stats['alive_species'] == 2
    assert stats['total_species'] == 2


def test_producer_energy_flows_to_consumers():
    trajectory = simulate(kelp_forest(), ticks=20)
    snap = trajectory.snapshots[1]

    assert snap.energy_intake["kelp"] > 0
    assert snap.energy_intake["fish"] > 0
    assert trajectory.snapshots[0].energy_intake == {"kelp": 0.0, "fish": 0.0}


def test_environmental_suitability():
    kelp = Species("kelp", "Giant Kelp", SpeciesType.PRODUCER, 20.0, 1.0, 300.0)
    dark = EnvironmentParameters(temperature=18.0, depth=150.0, salinity=32.0, light_level=5.0)

    shallow_suit = environmental_suitability(kelp, SHALLOW)
    dark_suit = environmental_suitability(kelp, dark)

    print(f"[OK] Kelp suitability: shallow={shallow_suit:.3f}, dark={dark_suit:.3f}")

    assert 0.0 < dark_suit < shallow_suit <= 1.0

    # Higher energy requirement narrows tolerance
    demanding = Species("kelp2", "Demanding Kelp", SpeciesType.PRODUCER, 50.0, 1.0, 300.0)
    assert environmental_suitability(demanding, SHALLOW) < shallow_suit


# ============================================================================
# Interaction Effects
# ============================================================================

NO_INFERRED_COMPETITION = EngineConfig(infer_competition=False)


def producer_pair(interactions=(), predation_strength=0.5, extra_species=()):
    """
    Producers a and b, plus a grazer living on a separate producer c.

    The grazer never touches a or b, so their populations move only through
    interactions declared between them (and the shared light budget).
    """
    species = (
        Species("a", "Alga A", SpeciesType.PRODUCER, 20.0, 1.0, 100.0),
        Species("b", "Alga B", SpeciesType.PRODUCER, 20.0, 1.0, 100.0),
        Species("c", "Alga C", SpeciesType.PRODUCER, 20.0, 1.0, 100.0),
        Species("grazer", "Grazer", SpeciesType.CONSUMER, 40.0, 0.5, 50.0, ("c",)),
    ) + tuple(extra_species)
    declared = (SpeciesInteraction("grazer", "c", InteractionType.PREDATION, predation_strength),)
    state = SimulationState(
        id="sim-interactions",
        user_id="user-test",
        species=species,
        environment=SHALLOW,
        interactions=declared + tuple(interactions),
    )
    return validate(state, NO_INFERRED_COMPETITION)


def test_competition_lowers_both_parties():
    baseline = simulate(producer_pair(), ticks=20).final.populations
    competing = simulate(producer_pair([
        SpeciesInteraction("a", "b", InteractionType.COMPETITION, 1.0),
    ]), ticks=20).final.populations

    print(f"[OK] Competition: a {baseline['a']:.1f} -> {competing['a']:.1f}, "
          f"b {baseline['b']:.1f} -> {competing['b']:.1f}")

    assert competing['a'] < baseline['a']
    assert competing['b'] < baseline['b']


def test_competition_sign_is_ignored():
    """Negative competition strength is still competition"""
    positive = simulate(producer_pair([
        SpeciesInteraction("a", "b", InteractionType.COMPETITION, 0.6),
    ]), ticks=20).final.populations
    negative = simulate(producer_pair([
        SpeciesInteraction("a", "b", InteractionType.COMPETITION, -0.6),
    ]), ticks=20).final.populations

    assert positive == negative


def test_symbiosis_raises_both_parties():
    baseline = simulate(producer_pair(), ticks=20).final.populations
    partnered = simulate(producer_pair([
        SpeciesInteraction("a", "b", InteractionType.SYMBIOSIS, 1.0),
    ]), ticks=20).final.populations

    print(f"[OK] Symbiosis: a {baseline['a']:.1f} -> {partnered['a']:.1f}, "
          f"b {baseline['b']:.1f} -> {partnered['b']:.1f}")

    assert partnered['a'] > baseline['a']
    assert partnered['b'] > baseline['b']


def test_predation_moves_pressure_from_prey_to_predator():
    light = simulate(producer_pair(predation_strength=0.2), ticks=20).final.populations
    heavy = simulate(producer_pair(predation_strength=0.9), ticks=20).final.populations

    print(f"[OK] Predation: prey {light['c']:.1f} -> {heavy['c']:.1f}, "
          f"predator {light['grazer']:.1f} -> {heavy['grazer']:.1f}")

    assert heavy['c'] < light['c'], "Stronger predation should leave less prey"
    assert heavy['grazer'] > light['grazer'], "Stronger predation should feed the predator more"


def test_decomposer_feeds_on_detritus():
    crab = Species("crab", "Decorator Crab", SpeciesType.DECOMPOSER, 20.0, 0.5, 40.0)
    validated = producer_pair(extra_species=[crab])
    sim = EcosystemSimulator(validated, NO_INFERRED_COMPETITION)

    # Detritus starts empty, so the first tick gives the decomposer nothing
    first = sim.step()
    assert first.energy_intake["crab"] == 0.0
    assert sim.get_stats()['detritus'] > 0.0

    later = sim.step()
    assert later.energy_intake["crab"] > 0.0

    trajectory = simulate(validated, ticks=20, config=NO_INFERRED_COMPETITION)
    assert trajectory.final.energy_intake["crab"] > 0.0
