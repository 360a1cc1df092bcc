"""
Scenario loader with schema validation.

Converts raw request payloads (camelCase or snake_case mappings) and YAML
scenario files into SimulationState values, checking their shape against
JSON schemas first. Ranges and ecological rules are left to validator.py.
"""

import json
import re
from pathlib import Path
from typing import Dict, Optional

import jsonschema
import yaml

from .data_types import (
    Species, EnvironmentParameters, SpeciesInteraction, SimulationState,
    SpeciesType, InteractionType, SimulationStatus
)
from .errors import DataLoadError, ValidationError


DEFAULT_SCHEMA_DIR = Path(__file__).parent / "schemas"

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')


def load_yaml(file_path: Path) -> dict:
    """Load YAML file and return parsed dict"""
    if not file_path.exists():
        raise DataLoadError(f"File not found: {file_path}")

    try:
        with open(file_path, 'r') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise DataLoadError(f"YAML parse error in {file_path}: {e}")


def load_schema(schema_path: Path) -> Optional[dict]:
    """Load JSON schema, or None if the file does not exist"""
    if not schema_path.exists():
        return None

    try:
        with open(schema_path, 'r') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Invalid JSON schema {schema_path}: {e}")


def validate_against_schema(data: dict, schema_path: Path, data_path: Path):
    """Validate data dict against JSON schema"""
    schema = load_schema(schema_path)
    if schema is None:
        return

    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        raise DataLoadError(f"Validation error in {data_path}: {e.message}")


def format_path(path) -> str:
    """Render a jsonschema error path as species[1].energy_requirement"""
    out = ""
    for part in path:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out or "<root>"


def normalize_keys(value):
    """Recursively convert camelCase mapping keys to snake_case"""
    if isinstance(value, dict):
        return {
            _CAMEL_BOUNDARY.sub(r'_\1', key).lower() if isinstance(key, str) else key: normalize_keys(v)
            for key, v in value.items()
        }
    if isinstance(value, list):
        return [normalize_keys(v) for v in value]
    return value


def parse_state(data: dict, schema_dir: Optional[Path] = DEFAULT_SCHEMA_DIR) -> SimulationState:
    """
    Build a SimulationState from a raw mapping.

    Args:
        data: Payload as supplied by the request layer
        schema_dir: Directory holding simulation_state.schema.json (None skips the check)

    Returns:
        SimulationState (not yet validated against ecological rules)

    Raises:
        ValidationError: rule "schema" when the payload has the wrong shape
    """
    if not isinstance(data, dict):
        raise ValidationError("schema", "<root>", f"expected a mapping, got {type(data).__name__}")

    data = normalize_keys(data)

    if schema_dir:
        schema = load_schema(Path(schema_dir) / "simulation_state.schema.json")
        if schema is not None:
            # Report the first error by path so messages are reproducible
            validator = jsonschema.Draft7Validator(schema)
            errors = sorted(validator.iter_errors(data), key=lambda e: (list(e.absolute_path), e.message))
            if errors:
                first = errors[0]
                raise ValidationError("schema", format_path(first.absolute_path), first.message)

    species = tuple(
        Species(
            id=s['id'],
            name=s['name'],
            type=SpeciesType(s['type']),
            energy_requirement=s['energy_requirement'],
            reproduction_rate=s['reproduction_rate'],
            population_size=s['population_size'],
            prey_species=tuple(s.get('prey_species', [])),
        )
        for s in data['species']
    )

    environment = EnvironmentParameters(**data['environment'])

    interactions = tuple(
        SpeciesInteraction(
            source_species=i['source_species'],
            target_species=i['target_species'],
            interaction_type=InteractionType(i['interaction_type']),
            strength=i['strength'],
        )
        for i in data.get('interactions', [])
    )

    return SimulationState(
        id=data['id'],
        user_id=data['user_id'],
        species=species,
        environment=environment,
        interactions=interactions,
        time_remaining=data.get('time_remaining', 0.0),
        status=SimulationStatus(data.get('status', SimulationStatus.SETUP.value)),
    )


def load_scenario(file_path: Path, schema_dir: Optional[Path] = DEFAULT_SCHEMA_DIR) -> SimulationState:
    """Load a scenario (one SimulationState) from YAML"""
    file_path = Path(file_path)
    data = load_yaml(file_path)

    try:
        return parse_state(data, schema_dir)
    except ValidationError as e:
        raise DataLoadError(f"Validation error in {file_path}: {e}")


def load_scenario_registry(scenario_dir: Path, schema_dir: Optional[Path] = DEFAULT_SCHEMA_DIR) -> Dict[str, SimulationState]:
    """Load all scenarios from directory, keyed by file stem"""
    scenario_dir = Path(scenario_dir)
    if not scenario_dir.exists():
        raise DataLoadError(f"Scenario directory not found: {scenario_dir}")

    registry = {}
    for yaml_file in sorted(scenario_dir.glob("*.yaml")):
        registry[yaml_file.stem] = load_scenario(yaml_file, schema_dir)

    if not registry:
        raise DataLoadError(f"No scenario files found in {scenario_dir}")

    return registry
