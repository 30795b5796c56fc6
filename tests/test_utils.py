"""
tests/test_utils.py

Tests configuration loading, logging setup and scenario handling in utils.py.
"""

import copy
import json
import logging
import logging.handlers
from pathlib import Path

import pytest

from errors import ConfigurationError
from utils import build_simulator, load_config, setup_logging, validate_scenario


CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

SCENARIO = {
    "deltaTime": 0.5,
    "timeRange": {"from": 0, "to": 2},
    "fields": [
        {"border": "x > 0", "E": {"x": 0, "y": 0}, "B": {"z": -1}},
        {"border": False, "E": {"x": 1, "y": 0}, "B": {"z": 0}},
    ],
    "particles": [
        {"charge": -1, "mass": 10, "position": {"x": -1, "y": 0}, "v": {"x": 1, "y": 0}},
    ],
}


def test_shipped_config_is_valid():
    config = load_config(str(CONFIG_PATH))

    assert {"logging", "scenario", "run_control", "visualization"} <= set(config)
    validate_scenario(config["scenario"])


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.json"))


def test_load_config_bad_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{ not json")
    with pytest.raises(json.JSONDecodeError):
        load_config(str(path))


def test_setup_logging_adds_console_and_file_handlers(tmp_path, restore_root_logger):
    log_file = tmp_path / "logs" / "simulation.log"
    setup_logging({"logging": {"level": "debug", "log_file": str(log_file)}})

    root = restore_root_logger
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 2
    assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)

    logging.info("hello from the test")
    for handler in root.handlers:
        handler.flush()
    assert "hello from the test" in log_file.read_text()


def test_build_simulator():
    simulator = build_simulator(SCENARIO)

    assert simulator.get_delta_time() == 0.5
    assert simulator.get_simulation_time_range() == {"from": 0.0, "to": 2.0}
    assert len(simulator.get_field_area()) == 2
    assert len(simulator.get_particles()) == 1

    sample = simulator.field_at(1, 0, 0)
    assert (sample.ex, sample.ey, sample.bz) == (1, 0, -1)

    simulator.start_simulate(accurate=True)
    assert len(simulator.get_particles()[0].trajectory) == 4


def test_build_simulator_from_shipped_scenario():
    config = load_config(str(CONFIG_PATH))
    simulator = build_simulator(config["scenario"])

    assert len(simulator.get_field_area()) == len(config["scenario"]["fields"])
    assert len(simulator.get_particles()) == len(config["scenario"]["particles"])


def _broken(path, value):
    scenario = copy.deepcopy(SCENARIO)
    target = scenario
    for key in path[:-1]:
        target = target[key]
    if value is KeyError:
        del target[path[-1]]
    else:
        target[path[-1]] = value
    return scenario


@pytest.mark.parametrize(
    "scenario, location, problem",
    [
        (_broken(["fields"], KeyError), "scenario", "'fields' is a required property"),
        (_broken(["deltaTime"], "fast"), "scenario.deltaTime", "'fast' is not of type 'number'"),
        (_broken(["deltaTime"], True), "scenario.deltaTime", "True is not of type 'number'"),
        (_broken(["timeRange", "to"], KeyError), "scenario.timeRange", "'to' is a required property"),
        (_broken(["fields", 0, "border"], 3), "scenario.fields[0].border", "is not valid under any of the given schemas"),
        (_broken(["fields", 0, "border"], True), "scenario.fields[0].border", "is not valid under any of the given schemas"),
        (_broken(["fields", 1, "E", "y"], None), "scenario.fields[1].E.y", "None is not of type 'number'"),
        (_broken(["fields", 0, "B"], -1), "scenario.fields[0].B", "-1 is not of type 'object'"),
        (_broken(["particles", 0, "mass"], KeyError), "scenario.particles[0]", "'mass' is a required property"),
        (_broken(["particles", 0, "v"], [1, 0]), "scenario.particles[0].v", "[1, 0] is not of type 'object'"),
        (_broken(["particles"], {}), "scenario.particles", "{} is not of type 'array'"),
    ],
)
def test_validate_scenario_reports_problem(scenario, location, problem):
    with pytest.raises(ConfigurationError) as excinfo:
        validate_scenario(scenario)
    assert f"{location}: " in str(excinfo.value)
    assert problem in str(excinfo.value)


@pytest.mark.parametrize("section", ["particles", "fields"])
def test_validate_scenario_rejects_duplicate_entries(section):
    scenario = copy.deepcopy(SCENARIO)
    scenario[section].append(dict(scenario[section][0]))

    with pytest.raises(ConfigurationError) as excinfo:
        validate_scenario(scenario)
    message = str(excinfo.value)
    assert f"scenario.{section}: " in message
    assert "non-unique elements" in message


def test_validate_scenario_accepts_distinct_entries():
    scenario = copy.deepcopy(SCENARIO)
    twin = copy.deepcopy(scenario["particles"][0])
    twin["charge"] = 1
    scenario["particles"].append(twin)

    validate_scenario(scenario)


def test_validate_scenario_collects_every_problem():
    scenario = _broken(["deltaTime"], "fast")
    scenario["particles"][0]["charge"] = "q"

    with pytest.raises(ConfigurationError) as excinfo:
        validate_scenario(scenario)
    message = str(excinfo.value)
    assert "deltaTime" in message
    assert "particles[0].charge" in message


def test_validate_scenario_rejects_non_object():
    with pytest.raises(ConfigurationError):
        validate_scenario([SCENARIO])


def test_value_constraints_are_left_to_simulator():
    scenario = _broken(["deltaTime"], 0)
    validate_scenario(scenario)
    with pytest.raises(ConfigurationError):
        build_simulator(scenario)


def test_load_config_requires_object(tmp_path):
    path = tmp_path / "list.json"
    path.write_text("[1, 2]")
    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_setup_logging_quiets_jit_compiler(tmp_path, restore_root_logger):
    setup_logging({"logging": {"level": "DEBUG", "log_file": str(tmp_path / "run.log")}})
    assert logging.getLogger("numba").level == logging.WARNING
