import json
import logging

import pytest

from spaceflight.core.config import PropagatorParameters, SimulationConfig
from spaceflight.core.errors import (
    CatalogError,
    CommandError,
    ConfigurationError,
    CycleDetectedError,
    ErrorSeverity,
    GraphError,
    NoStagesRemainError,
    NumericalInstabilityError,
    SpaceflightError,
    UnsafeWarpContextError,
)
from spaceflight.core.logging import StructuredFormatter, configure_logging, get_logger


def test_error_hierarchy_and_codes():
    err = CycleDetectedError('tank', 'engine')
    assert isinstance(err, GraphError)
    assert isinstance(err, SpaceflightError)
    assert err.error_code == 'CycleDetected'
    assert err.context == {'part_id': 'tank', 'parent_id': 'engine'}

    assert NoStagesRemainError(2).severity is ErrorSeverity.LOW
    assert NumericalInstabilityError("boom").severity is ErrorSeverity.HIGH
    assert CommandError("bad", vehicle_id='v').context == {'vehicle_id': 'v'}


def test_error_to_dict_and_str():
    cause = ValueError("inner")
    err = CatalogError("Unknown body", body_id='pluto', cause=cause)
    data = err.to_dict()
    assert data['error_type'] == 'CatalogError'
    assert data['context'] == {'body_id': 'pluto'}
    assert data['cause'] == 'inner'
    assert 'body_id=pluto' in str(err)
    assert 'Caused by: inner' in str(err)


def test_unsafe_warp_error_lists_reasons():
    err = UnsafeWarpContextError(100.0, ["vehicle is thrusting"])
    assert err.reasons == ["vehicle is thrusting"]
    assert "100x" in err.message


def test_configuration_validation():
    with pytest.raises(ConfigurationError):
        SimulationConfig(time_step_seconds=0.0)
    with pytest.raises(ConfigurationError):
        SimulationConfig(max_workers=0)
    with pytest.raises(ConfigurationError) as info:
        PropagatorParameters(integrator='euler')
    assert info.value.context['config_key'] == 'integrator'


def test_soi_margin_uses_larger_of_absolute_and_fraction():
    params = PropagatorParameters(soi_hysteresis_m=1000.0, soi_hysteresis_fraction=1e-4)
    assert params.soi_margin(1e6) == 1000.0
    assert params.soi_margin(1e9) == 1e5


def test_loggers_live_under_package_namespace():
    assert get_logger("dynamics.propagator").name == "spaceflight.dynamics.propagator"
    assert get_logger("spaceflight.core").name == "spaceflight.core"


def test_json_formatter_includes_extra():
    record = logging.LogRecord("spaceflight.test", logging.INFO, __file__, 1,
                               "Stage %d fired", (1,), None)
    record.vehicle_id = "hopper"
    data = json.loads(StructuredFormatter("json").format(record))
    assert data["message"] == "Stage 1 fired"
    assert data["extra"]["vehicle_id"] == "hopper"


def test_configure_logging_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "sim.log"
    logger = configure_logging("DEBUG", json_format=True, log_file=log_file)
    try:
        get_logger("test").info("hello", extra={"step": 3})
        for handler in logger.handlers:
            handler.flush()
        lines = log_file.read_text().strip().splitlines()
        assert json.loads(lines[-1])["extra"]["step"] == 3
    finally:
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()
