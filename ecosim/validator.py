"""
State validation: the single gate before any simulation work.

Rules run in a fixed order and the first violation is raised, so the same
malformed input always produces the same ValidationError:

    structural   state_field, species_field, environment_field,
                 interaction_field, duplicate_species_id
    ecological   min_species, max_species, producer_required,
                 consumer_required, producer_energy, missing_prey,
                 unresolved_prey, self_prey, unresolved_interaction,
                 self_interaction, predation_strength, playable_depth,
                 light_depth_coupling, time_remaining

On success the interaction graph is resolved (declared edges plus edges
implied by prey lists and producer competition) and wrapped in a
ValidatedState. Validation never mutates its input.
"""

import math
from typing import List, Optional

from .config import EngineConfig
from .constants import (
    SPECIES_RANGES,
    ENVIRONMENT_RANGES,
    INTERACTION_STRENGTH_RANGE,
    PRODUCER_MAX_ENERGY_REQUIREMENT,
    LIGHT_DEPTH_THRESHOLD,
    LIGHT_LEVEL_AT_DEPTH_MAX,
    DEFAULT_PREDATION_STRENGTH,
    DEFAULT_COMPETITION_STRENGTH,
)
from .data_types import (
    SimulationState, ValidatedState, Species, EnvironmentParameters, SpeciesInteraction,
    SpeciesType, InteractionType, SimulationStatus
)
from .errors import ValidationError


# ============================================================================
# Structural Checks
# ============================================================================

def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _is_text(value) -> bool:
    return isinstance(value, str) and len(value.strip()) > 0


def _check_range(rule: str, path: str, value, bounds):
    if not _is_number(value):
        raise ValidationError(rule, path, f"expected a finite number, got {value!r}")
    low, high = bounds
    if not (low <= value <= high):
        raise ValidationError(rule, path, f"{value} outside [{low:g}, {high:g}]")


def _check_state_fields(state: SimulationState):
    if not isinstance(state.species, (tuple, list)):
        raise ValidationError("state_field", "species",
                              f"expected a list of species, got {type(state.species).__name__}")
    if not isinstance(state.interactions, (tuple, list)):
        raise ValidationError("state_field", "interactions",
                              f"expected a list of interactions, got {type(state.interactions).__name__}")
    if not _is_text(state.id):
        raise ValidationError("state_field", "id", "must be a non-empty string")
    if not _is_text(state.user_id):
        raise ValidationError("state_field", "user_id", "must be a non-empty string")
    if not isinstance(state.status, SimulationStatus):
        raise ValidationError("state_field", "status", f"unknown status {state.status!r}")
    if not _is_number(state.time_remaining):
        raise ValidationError("state_field", "time_remaining",
                              f"expected a finite number, got {state.time_remaining!r}")


def _check_species_fields(state: SimulationState):
    for index, species in enumerate(state.species):
        prefix = f"species[{index}]"
        if not isinstance(species, Species):
            raise ValidationError("species_field", prefix, f"expected Species, got {type(species).__name__}")
        if not _is_text(species.id):
            raise ValidationError("species_field", f"{prefix}.id", "must be a non-empty string")
        if not _is_text(species.name):
            raise ValidationError("species_field", f"{prefix}.name", "must be a non-empty string")
        if not isinstance(species.type, SpeciesType):
            raise ValidationError("species_field", f"{prefix}.type", f"unknown species type {species.type!r}")
        for name, bounds in SPECIES_RANGES.items():
            _check_range("species_field", f"{prefix}.{name}", getattr(species, name), bounds)
        if not isinstance(species.prey_species, (tuple, list)):
            raise ValidationError("species_field", f"{prefix}.prey_species",
                                  f"expected a list of species ids, got {type(species.prey_species).__name__}")
        for prey_index, prey_id in enumerate(species.prey_species):
            if not _is_text(prey_id):
                raise ValidationError("species_field", f"{prefix}.prey_species[{prey_index}]",
                                      "must be a non-empty string")


def _check_environment_fields(state: SimulationState):
    if not isinstance(state.environment, EnvironmentParameters):
        raise ValidationError("environment_field", "environment",
                              f"expected EnvironmentParameters, got {type(state.environment).__name__}")
    for name, bounds in ENVIRONMENT_RANGES.items():
        _check_range("environment_field", f"environment.{name}", getattr(state.environment, name), bounds)


def _check_interaction_fields(state: SimulationState):
    for index, interaction in enumerate(state.interactions):
        prefix = f"interactions[{index}]"
        if not isinstance(interaction, SpeciesInteraction):
            raise ValidationError("interaction_field", prefix,
                                  f"expected SpeciesInteraction, got {type(interaction).__name__}")
        if not _is_text(interaction.source_species):
            raise ValidationError("interaction_field", f"{prefix}.source_species", "must be a non-empty string")
        if not _is_text(interaction.target_species):
            raise ValidationError("interaction_field", f"{prefix}.target_species", "must be a non-empty string")
        if not isinstance(interaction.interaction_type, InteractionType):
            raise ValidationError("interaction_field", f"{prefix}.interaction_type",
                                  f"unknown interaction type {interaction.interaction_type!r}")
        _check_range("interaction_field", f"{prefix}.strength", interaction.strength, INTERACTION_STRENGTH_RANGE)


def _check_unique_ids(state: SimulationState):
    seen = set()
    for index, species in enumerate(state.species):
        if species.id in seen:
            raise ValidationError("duplicate_species_id", f"species[{index}].id",
                                  f"species id '{species.id}' appears more than once")
        seen.add(species.id)


# ============================================================================
# Ecological Rules
# ============================================================================

def _check_species_count(state: SimulationState, config: EngineConfig):
    count = len(state.species)
    if count < config.min_species:
        raise ValidationError("min_species", "species",
                              f"at least {config.min_species} species required, got {count}")
    if count > config.max_species:
        raise ValidationError("max_species", "species",
                              f"at most {config.max_species} species allowed, got {count}")


def _check_trophic_roles(state: SimulationState):
    types = [s.type for s in state.species]
    if SpeciesType.PRODUCER not in types:
        raise ValidationError("producer_required", "species", "at least one PRODUCER is required")
    if SpeciesType.CONSUMER not in types:
        raise ValidationError("consumer_required", "species", "at least one CONSUMER is required")

    for index, species in enumerate(state.species):
        if species.type == SpeciesType.PRODUCER and species.energy_requirement > PRODUCER_MAX_ENERGY_REQUIREMENT:
            raise ValidationError("producer_energy", f"species[{index}].energy_requirement",
                                  f"producer '{species.id}' requires {species.energy_requirement:g} "
                                  f"(max {PRODUCER_MAX_ENERGY_REQUIREMENT:g})")


def _check_food_web(state: SimulationState):
    ids = {s.id for s in state.species}

    for index, species in enumerate(state.species):
        if species.type == SpeciesType.CONSUMER and not species.prey_species:
            raise ValidationError("missing_prey", f"species[{index}].prey_species",
                                  f"consumer '{species.id}' has no prey")

    for index, species in enumerate(state.species):
        for prey_index, prey_id in enumerate(species.prey_species):
            if prey_id not in ids:
                raise ValidationError("unresolved_prey", f"species[{index}].prey_species[{prey_index}]",
                                      f"prey '{prey_id}' of '{species.id}' is not in this ecosystem")

    for index, species in enumerate(state.species):
        if species.id in species.prey_species:
            raise ValidationError("self_prey", f"species[{index}].prey_species",
                                  f"'{species.id}' cannot prey on itself")


def _check_interactions(state: SimulationState):
    ids = {s.id for s in state.species}

    for index, interaction in enumerate(state.interactions):
        for end in ('source_species', 'target_species'):
            species_id = getattr(interaction, end)
            if species_id not in ids:
                raise ValidationError("unresolved_interaction", f"interactions[{index}].{end}",
                                      f"'{species_id}' is not in this ecosystem")

    for index, interaction in enumerate(state.interactions):
        if interaction.source_species == interaction.target_species:
            raise ValidationError("self_interaction", f"interactions[{index}]",
                                  f"'{interaction.source_species}' cannot interact with itself")

    for index, interaction in enumerate(state.interactions):
        if interaction.interaction_type == InteractionType.PREDATION and interaction.strength <= 0:
            raise ValidationError("predation_strength", f"interactions[{index}].strength",
                                  f"predation strength must be positive, got {interaction.strength:g}")


def _check_environment_rules(state: SimulationState, config: EngineConfig):
    env = state.environment
    if env.depth > config.max_playable_depth:
        raise ValidationError("playable_depth", "environment.depth",
                              f"depth {env.depth:g} m exceeds playable limit {config.max_playable_depth:g} m")
    if env.depth > LIGHT_DEPTH_THRESHOLD and env.light_level > LIGHT_LEVEL_AT_DEPTH_MAX:
        raise ValidationError("light_depth_coupling", "environment.light_level",
                              f"light level cannot exceed {LIGHT_LEVEL_AT_DEPTH_MAX:g} "
                              f"at depths greater than {LIGHT_DEPTH_THRESHOLD:g} m")


def _check_status(state: SimulationState):
    if state.status == SimulationStatus.RUNNING and state.time_remaining <= 0:
        raise ValidationError("time_remaining", "time_remaining",
                              "running simulation must have positive time remaining")


# ============================================================================
# Interaction Resolution
# ============================================================================

def resolve_interactions(state: SimulationState, infer_competition: bool = True) -> List[SpeciesInteraction]:
    """
    Build the full interaction graph for a state that passed validation.

    Declared edges are kept. Each prey reference without a declared edge on
    the same (predator, prey) pair adds a PREDATION edge. When
    infer_competition is set, each producer pair with no declared edge in
    either direction gets one COMPETITION edge (competition acts on both
    parties, so one edge per pair).
    """
    resolved = list(state.interactions)
    declared_pairs = {(i.source_species, i.target_species) for i in state.interactions}

    for species in state.species:
        for prey_id in species.prey_species:
            if (species.id, prey_id) not in declared_pairs:
                resolved.append(SpeciesInteraction(
                    source_species=species.id,
                    target_species=prey_id,
                    interaction_type=InteractionType.PREDATION,
                    strength=DEFAULT_PREDATION_STRENGTH,
                ))

    if infer_competition:
        producers = [s.id for s in state.species if s.type == SpeciesType.PRODUCER]
        for a_index, a in enumerate(producers):
            for b in producers[a_index + 1:]:
                if (a, b) in declared_pairs or (b, a) in declared_pairs:
                    continue
                resolved.append(SpeciesInteraction(
                    source_species=a,
                    target_species=b,
                    interaction_type=InteractionType.COMPETITION,
                    strength=DEFAULT_COMPETITION_STRENGTH,
                ))

    resolved.sort(key=lambda i: (i.source_species, i.target_species, i.interaction_type.value))
    return resolved


# ============================================================================
# Entry Point
# ============================================================================

def validate(state: SimulationState, config: Optional[EngineConfig] = None) -> ValidatedState:
    """
    Check every structural and ecological rule in fixed order.

    Args:
        state: Candidate configuration
        config: Engine limits (defaults used if None)

    Returns:
        ValidatedState with the resolved interaction graph

    Raises:
        ValidationError: First violated rule
    """
    if config is None:
        config = EngineConfig()

    if not isinstance(state, SimulationState):
        raise ValidationError("schema", "<root>", f"expected SimulationState, got {type(state).__name__}")

    _check_state_fields(state)
    _check_species_fields(state)
    _check_environment_fields(state)
    _check_interaction_fields(state)
    _check_unique_ids(state)

    _check_species_count(state, config)
    _check_trophic_roles(state)
    _check_food_web(state)
    _check_interactions(state)
    _check_environment_rules(state, config)
    _check_status(state)

    interactions = resolve_interactions(state, infer_competition=config.infer_competition)
    return ValidatedState(state=state, interactions=tuple(interactions))
