# utils.py
"""
Helpers shared by the entry point and the tests: logging setup, loading the
JSON configuration and turning its scenario section into a Simulator.
"""
import logging
import logging.handlers
import json
import os
from typing import Dict, Any, List

from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError

from constants import (
    DEFAULT_LOG_BACKUPS, DEFAULT_LOG_FILE, DEFAULT_LOG_FORMAT, DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_MAX_BYTES, QUIET_LOGGERS
)
from errors import ConfigurationError
from simulation import Simulator

# --- Data Contracts ---
#
# setup_logging(config: Dict[str, Any]) -> None:
#   - Inputs: the full configuration; only its "logging" section is read
#     ("level", "format", "log_file", "max_bytes", "backup_count").
#   - Side Effects: replaces the root logger's handlers with one console
#     handler and one rotating file handler; creates the log directory.
#     Third-party loggers listed in QUIET_LOGGERS are held at WARNING so a
#     DEBUG run is not flooded by the JIT compiler.
#
# load_config(path: str) -> Dict[str, Any]:
#   - Errors: FileNotFoundError / json.JSONDecodeError are logged and
#     re-raised; ConfigurationError if the document is not an object.
#
# validate_scenario(scenario: Dict[str, Any]) -> None:
#   - Inputs: a scenario document
#     {"deltaTime", "timeRange": {"from", "to"}, "fields": [...], "particles": [...]}
#   - Errors: ConfigurationError listing every SCENARIO_SCHEMA violation,
#     each prefixed with its location (e.g. "scenario.fields[0].E.x").
#
# build_simulator(scenario: Dict[str, Any]) -> Simulator:
#   - Outputs: a Simulator configured with the scenario's time settings,
#     field areas and particles, ready for start_simulate().

def setup_logging(config: Dict[str, Any]) -> None:
    """
    Routes all simulator logging to the console and a rotating log file.
    """
    section = config.get('logging', {})
    level = str(section.get('level', DEFAULT_LOG_LEVEL)).upper()
    log_file = section.get('log_file', DEFAULT_LOG_FILE)

    directory = os.path.dirname(log_file)
    if directory:
        os.makedirs(directory, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level)
    # A second call (tests, repeated runs) must not duplicate output.
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    formatter = logging.Formatter(section.get('format', DEFAULT_LOG_FORMAT))
    handlers = [
        logging.StreamHandler(),
        logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=section.get('max_bytes', DEFAULT_LOG_MAX_BYTES),
            backupCount=section.get('backup_count', DEFAULT_LOG_BACKUPS),
        ),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info(f"Logging to console and {log_file} at level {level}.")

def load_config(path: str) -> Dict[str, Any]:
    """Reads the JSON run configuration."""
    logging.info(f"Reading configuration {path}...")
    try:
        with open(path, 'r') as f:
            config = json.load(f)
    except FileNotFoundError:
        logging.error(f"No configuration file at {path}.")
        raise
    except json.JSONDecodeError as e:
        logging.error(f"{path} is not valid JSON: {e}")
        raise
    if not isinstance(config, dict):
        msg = f"{path} should hold a JSON object, but holds {type(config).__name__}"
        logging.error(msg)
        raise ConfigurationError(msg)
    logging.info(f"Configuration sections: {', '.join(sorted(config))}.")
    return config

def _vector_schema(*axes: str) -> Dict[str, Any]:
    return {
        'type': 'object',
        'properties': {axis: {'type': 'number'} for axis in axes},
        'required': list(axes),
    }

# JSON Schema of a scenario document. `border: false` (an area covering the
# whole plane) is accepted alongside string expressions.
SCENARIO_SCHEMA: Dict[str, Any] = {
    'type': 'object',
    'properties': {
        'deltaTime': {'type': 'number'},
        'timeRange': _vector_schema('from', 'to'),
        'fields': {
            'type': 'array',
            'uniqueItems': True,
            'items': {
                'type': 'object',
                'properties': {
                    'border': {'anyOf': [{'type': 'string'}, {'type': 'boolean', 'const': False}]},
                    'E': _vector_schema('x', 'y'),
                    'B': _vector_schema('z'),
                },
                'required': ['B', 'E', 'border'],
            },
        },
        'particles': {
            'type': 'array',
            'uniqueItems': True,
            'items': {
                'type': 'object',
                'properties': {
                    'charge': {'type': 'number'},
                    'mass': {'type': 'number'},
                    'position': _vector_schema('x', 'y'),
                    'v': _vector_schema('x', 'y'),
                },
                'required': ['charge', 'mass', 'position', 'v'],
            },
        },
    },
    'required': ['deltaTime', 'fields', 'particles', 'timeRange'],
}

_SCENARIO_VALIDATOR = Draft7Validator(SCENARIO_SCHEMA)

def _location(error: ValidationError) -> str:
    """Renders an error path as e.g. ``scenario.fields[0].E.x``."""
    location = 'scenario'
    for part in error.absolute_path:
        location += f"[{part}]" if isinstance(part, int) else f".{part}"
    return location

def validate_scenario(scenario: Dict[str, Any]) -> None:
    """
    Checks the shape of a scenario document against SCENARIO_SCHEMA before
    any of it is applied.

    Value constraints (positive delta time, ordered time range, positive
    mass) are left to the Simulator, which rejects them with the same error
    type.
    """
    problems: List[str] = sorted(
        f"{_location(error)}: {error.message}" for error in _SCENARIO_VALIDATOR.iter_errors(scenario)
    )
    if problems:
        msg = "Scenario validation failed: " + "; ".join(problems)
        logging.critical(msg)
        raise ConfigurationError(msg)
    logging.info(
        f"Scenario validated: {len(scenario['fields'])} field areas, "
        f"{len(scenario['particles'])} particles."
    )

def build_simulator(scenario: Dict[str, Any]) -> Simulator:
    """
    Validates a scenario document and turns it into a configured Simulator.
    """
    validate_scenario(scenario)
    simulator = Simulator({
        'deltaTime': scenario['deltaTime'],
        'simulationTimeRange': dict(scenario['timeRange']),
    })
    for area in scenario['fields']:
        simulator.create_field_area({'border': area['border'], 'E': area['E'], 'B': area['B']})
    for particle in scenario['particles']:
        simulator.create_particle(particle)
    return simulator
