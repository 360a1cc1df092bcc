"""
Central configuration constants for the ecosystem evaluation engine.

Defines default values, thresholds, and model coefficients used across
multiple modules. EngineConfig (config.py) copies these as its defaults so
individual evaluations can override them.
"""

# ============================================================================
# Structural Limits
# ============================================================================

MIN_SPECIES_COUNT = 2
MAX_SPECIES_COUNT = 8

# Accepted ranges for numeric fields: field -> (min, max), inclusive
SPECIES_RANGES = {
    'energy_requirement': (0.0, 100.0),
    'reproduction_rate': (0.1, 5.0),
    'population_size': (1.0, 1000.0),
}

ENVIRONMENT_RANGES = {
    'temperature': (0.0, 50.0),     # Celsius
    'depth': (0.0, 1000.0),         # meters
    'salinity': (0.0, 50.0),
    'light_level': (0.0, 100.0),
}

INTERACTION_STRENGTH_RANGE = (-1.0, 1.0)


# ============================================================================
# Ecological Rules
# ============================================================================

PRODUCER_MAX_ENERGY_REQUIREMENT = 50.0

# Playable scenarios are restricted to shallower water than the raw range
MAX_PLAYABLE_DEPTH = 200.0

# Below this depth the light level is capped
LIGHT_DEPTH_THRESHOLD = 100.0   # meters
LIGHT_LEVEL_AT_DEPTH_MAX = 50.0


# ============================================================================
# Interaction Inference
# ============================================================================

# Strength of PREDATION edges implied by a prey reference
DEFAULT_PREDATION_STRENGTH = 0.7

# Strength of COMPETITION edges implied between producers
DEFAULT_COMPETITION_STRENGTH = 0.3

# Infer producer-producer competition when no edge is declared
INFER_COMPETITION = True


# ============================================================================
# Simulation Timing
# ============================================================================

TICK_DT = 0.1                    # Simulated time units per tick
SIMULATION_DURATION = 20.0       # Simulated time units per evaluation (200 ticks)

# Wall-clock budget for one evaluation, in milliseconds (30 minutes)
ATTEMPT_TIMEOUT_MS = 1_800_000

# Print a population summary every N ticks when verbose
SIMULATION_LOG_INTERVAL = 50


# ============================================================================
# Population Dynamics Coefficients
# ============================================================================

PRODUCER_YIELD = 1.0             # Energy per capita per time unit at full suitability
PRIMARY_CAPACITY = 2000.0        # Producer population the light budget supports
MAINTENANCE_COST = 0.5           # Energy drain per capita at energy_requirement=100
ATTACK_RATE = 1.0                # Prey captured per predator per time unit at strength=1
HALF_SATURATION = 200.0          # Prey (or detritus) density giving half-max intake
CONVERSION_EFFICIENCY = 0.5      # Energy assimilated per prey captured
DECOMPOSER_YIELD = 0.6           # Energy per capita from detritus at full suitability
MORTALITY_RATE = 0.02            # Natural deaths per capita per time unit (feeds detritus)
DETRITUS_DECAY = 0.05            # Fraction of detritus lost per time unit
COMPETITION_RATE = 0.5           # Growth loss per unit competitor density at strength=1
SYMBIOSIS_RATE = 0.2             # Max growth gain from a partner at strength=1
INTERACTION_SCALE = 1000.0       # Population scale for competition/symbiosis density

# Populations below this are treated as extinct (floored to 0)
EXTINCTION_THRESHOLD = 0.5


# ============================================================================
# Environmental Tolerance Profiles
# ============================================================================

# Implicit tolerance per trophic role: factor -> (optimum, width, weight)
# Suitability = exp(-0.5 * sum(weight * ((value - optimum) / width)^2))
TOLERANCE_PROFILES = {
    'PRODUCER': {
        'temperature': (20.0, 15.0, 1.0),
        'salinity': (30.0, 25.0, 0.5),
        'light_level': (80.0, 40.0, 1.0),
        'depth': (10.0, 80.0, 0.5),
    },
    'CONSUMER': {
        'temperature': (18.0, 15.0, 1.0),
        'salinity': (30.0, 25.0, 0.5),
        'light_level': (50.0, 100.0, 0.2),
        'depth': (50.0, 150.0, 0.3),
    },
    'DECOMPOSER': {
        'temperature': (15.0, 20.0, 1.0),
        'salinity': (30.0, 30.0, 0.3),
        'light_level': (20.0, 100.0, 0.1),
        'depth': (100.0, 150.0, 0.5),
    },
}

# Tolerance widths shrink by this fraction at energy_requirement=100
REQUIREMENT_TOLERANCE_SHRINK = 0.3


# ============================================================================
# Metrics
# ============================================================================

STABILITY_WINDOW = 50            # Trailing ticks used for stability
STABILITY_CV_SCALE = 10.0        # Stability = 1 / (1 + scale * cv)

RUNAWAY_MULTIPLIER = 10.0        # Final > multiplier * initial counts as runaway growth

# Reference energy transfer between trophic levels (Lindeman's ten percent)
TROPHIC_REFERENCE_RATIO = 0.1

# Relative change under which a population trend counts as stable
TREND_TOLERANCE = 0.05


# ============================================================================
# Scoring and Feedback
# ============================================================================

# Score components: balance = mean(biodiversity, trophic efficiency),
# survival = sustainability, stability = stability score
SCORE_WEIGHTS = {
    'balance': 0.3,
    'survival': 0.4,
    'stability': 0.3,
}

# Feedback is generated for metrics strictly below these values
FEEDBACK_THRESHOLDS = {
    'biodiversity_index': 0.5,
    'stability_score': 0.6,
    'sustainability_rating': 1.0,
    'trophic_efficiency': 0.5,
    'environment_score': 0.3,        # Mean suitability; below this, stress exceeds 70%
}

# Tie-break order when two metrics have equal values
FEEDBACK_AREA_ORDER = [
    'sustainability_rating',
    'stability_score',
    'biodiversity_index',
    'trophic_efficiency',
    'environment_score',
]
