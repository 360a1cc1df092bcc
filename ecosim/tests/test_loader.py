"""
Test scenario and config loading.

Verifies raw payload / YAML -> SimulationState conversion, schema error
reporting, and engine config overrides.
"""

import sys
from pathlib import Path

import pytest

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from ecosim.config import EngineConfig, load_config, config_from_dict, ticks_for_duration
from ecosim.data_types import SpeciesType, InteractionType, SimulationStatus
from ecosim.errors import DataLoadError, ValidationError
from ecosim.loader import (
    parse_state, load_scenario, load_scenario_registry, normalize_keys, format_path
)
from ecosim.validator import validate


DATA_ROOT = Path(__file__).parent.parent.parent / "data"


def camel_payload():
    """Request body as sent by the web client"""
    return {
        'id': 'sim-001',
        'userId': 'user-42',
        'status': 'RUNNING',
        'timeRemaining': 900,
        'environment': {'temperature': 18, 'depth': 12, 'salinity': 32, 'lightLevel': 75},
        'species': [
            {'id': 'kelp', 'name': 'Giant Kelp', 'type': 'PRODUCER',
             'energyRequirement': 20, 'reproductionRate': 1.0, 'populationSize': 300},
            {'id': 'fish', 'name': 'Kelp Bass', 'type': 'CONSUMER',
             'energyRequirement': 40, 'reproductionRate': 0.5, 'populationSize': 50,
             'preySpecies': ['kelp']},
        ],
        'interactions': [
            {'sourceSpecies': 'fish', 'targetSpecies': 'kelp',
             'interactionType': 'PREDATION', 'strength': 0.4},
        ],
    }


# ============================================================================
# Payload Parsing
# ============================================================================

def test_normalize_keys():
    data = {'userId': 'u', 'species': [{'preySpecies': ['lightLevel']}], 'light_level': 1}
    assert normalize_keys(data) == {
        'user_id': 'u',
        'species': [{'prey_species': ['lightLevel']}],
        'light_level': 1,
    }


def test_parse_camel_case_payload():
    state = parse_state(camel_payload())

    print(f"[OK] Parsed state {state.id}: {len(state.species)} species, {len(state.interactions)} interactions")

    assert state.user_id == 'user-42'
    assert state.status == SimulationStatus.RUNNING
    assert state.time_remaining == 900
    assert state.environment.light_level == 75
    assert state.species[0].type == SpeciesType.PRODUCER
    assert state.species[1].prey_species == ('kelp',)
    assert state.interactions[0].interaction_type == InteractionType.PREDATION
    assert state.interactions[0].strength == 0.4


def test_parse_defaults():
    payload = camel_payload()
    del payload['interactions']
    del payload['status']
    del payload['timeRemaining']
    del payload['species'][1]['preySpecies']

    state = parse_state(payload)
    assert state.interactions == ()
    assert state.status == SimulationStatus.SETUP
    assert state.time_remaining == 0.0
    assert state.species[1].prey_species == ()


def test_schema_errors():
    """Shape errors surface as rule 'schema' with the offending path"""
    payload = camel_payload()
    del payload['environment']
    with pytest.raises(ValidationError) as info:
        parse_state(payload)
    assert info.value.rule == "schema"
    assert info.value.field == "<root>"
    assert "environment" in info.value.detail

    payload = camel_payload()
    payload['species'][1]['type'] = 'HERBIVORE'
    with pytest.raises(ValidationError) as info:
        parse_state(payload)
    assert info.value.field == "species[1].type"

    payload = camel_payload()
    payload['species'][0]['populationSize'] = "many"
    with pytest.raises(ValidationError) as info:
        parse_state(payload)
    assert info.value.field == "species[0].population_size"

    with pytest.raises(ValidationError) as info:
        parse_state(["not", "a", "mapping"])
    assert info.value.rule == "schema"

    print("[OK] Schema errors reported with field paths")


def test_schema_error_chosen_by_path():
    """With several shape errors the one with the smallest path is reported"""
    payload = camel_payload()
    payload['species'][0]['type'] = 'HERBIVORE'
    payload['environment']['depth'] = "deep"

    for _ in range(3):
        with pytest.raises(ValidationError) as info:
            parse_state(payload)
        assert info.value.field == "environment.depth"


def test_format_path():
    assert format_path([]) == "<root>"
    assert format_path(['environment', 'depth']) == "environment.depth"
    assert format_path(['species', 2, 'prey_species', 0]) == "species[2].prey_species[0]"


# ============================================================================
# Scenario Files
# ============================================================================

def test_load_scenario():
    state = load_scenario(DATA_ROOT / "scenarios" / "kelp_forest.yaml")

    print(f"[OK] Loaded scenario: {state.id} ({len(state.species)} species)")

    assert state.id == "scenario-kelp-forest"
    assert [s.id for s in state.species] == ["kelp", "fish"]
    assert state.species[1].prey_species == ("kelp",)
    assert state.environment.light_level == 75

    validated = validate(state)
    assert len(validated.interactions) == 1


def test_scenario_registry():
    registry = load_scenario_registry(DATA_ROOT / "scenarios")

    print(f"[OK] Loaded {len(registry)} scenarios: {', '.join(registry)}")

    assert list(registry) == ["coral_reef", "kelp_forest", "twilight_zone"]

    validate(registry["coral_reef"])

    # Shape is fine, ecology is not
    with pytest.raises(ValidationError) as info:
        validate(registry["twilight_zone"])
    assert info.value.rule == "light_depth_coupling"


def test_missing_files():
    with pytest.raises(DataLoadError):
        load_scenario(DATA_ROOT / "scenarios" / "does_not_exist.yaml")
    with pytest.raises(DataLoadError):
        load_scenario_registry(DATA_ROOT / "no_such_dir")


def test_malformed_scenario(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("id: broken\nuser_id: someone\nspecies: []\n")
    with pytest.raises(DataLoadError) as info:
        load_scenario(bad)
    assert "environment" in str(info.value)


# ============================================================================
# Engine Config
# ============================================================================

def test_default_config():
    config = EngineConfig()
    assert config.min_species == 2
    assert config.max_species == 8
    assert config.attempt_timeout_ms == 1_800_000
    assert config.ticks == 200
    assert sum(config.score_weights.values()) == pytest.approx(1.0)


def test_ticks_for_duration():
    assert ticks_for_duration(20.0, 0.1) == 200
    assert ticks_for_duration(1.0, 0.3) == 4
    assert ticks_for_duration(0.0, 0.1) == 1
    with pytest.raises(ValueError):
        ticks_for_duration(10.0, 0.0)


def test_load_config_file():
    config = load_config(DATA_ROOT / "config" / "engine.yaml")

    print(f"[OK] Loaded engine config: timeout={config.attempt_timeout_ms} ms, ticks={config.ticks}")

    assert config.attempt_timeout_ms == 1_800_000
    assert config.ticks == 200
    assert config.verbose is False
    # Partial threshold map keeps the other defaults
    assert set(config.feedback_thresholds) == {
        'biodiversity_index', 'stability_score', 'sustainability_rating', 'trophic_efficiency',
        'environment_score',
    }
    assert config.feedback_thresholds['stability_score'] == 0.6


def test_config_overrides():
    config = config_from_dict({'max_species': 5, 'score_weights': {'survival': 0.6}})
    assert config.max_species == 5
    assert config.score_weights == {'balance': 0.3, 'survival': 0.6, 'stability': 0.3}

    with pytest.raises(DataLoadError):
        config_from_dict({'max_specie': 5})

    quick = EngineConfig().with_overrides(duration=2.0)
    assert quick.ticks == 20
    assert EngineConfig().ticks == 200


def test_config_schema_rejects_unknown_keys(tmp_path):
    bad = tmp_path / "engine.yaml"
    bad.write_text("engine:\n  max_specie: 5\n")
    with pytest.raises(DataLoadError):
        load_config(bad)
