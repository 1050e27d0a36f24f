"""
tpsim: record, redact and replay HTTP API fixtures.

Capture live traffic with RecordingAdapter, scrub it with Redactor, save it
with save_simulation and serve it back to the client under test with
SimulationServer.
"""

from .common import (
    CaptureConfig,
    ConfigError,
    FixtureError,
    JsonBody,
    OpaqueBody,
    Pair,
    Request,
    Response,
    ServerConfig,
    Simulation,
    SimulationLoader,
    TpsimError,
    load_simulation,
    load_simulations_from_dir,
    save_simulation,
)
from .capture import RecordingAdapter, ScenarioRunner, load_scenarios
from .redact import RedactOptions, Redactor, default_redact_options, redact_simulation
from .mock import SimulationServer, SimulationMatcher, create_simulation_server

__all__ = [
    'CaptureConfig',
    'ConfigError',
    'FixtureError',
    'JsonBody',
    'OpaqueBody',
    'Pair',
    'Request',
    'Response',
    'ServerConfig',
    'Simulation',
    'SimulationLoader',
    'TpsimError',
    'load_simulation',
    'load_simulations_from_dir',
    'save_simulation',
    'RecordingAdapter',
    'ScenarioRunner',
    'load_scenarios',
    'RedactOptions',
    'Redactor',
    'default_redact_options',
    'redact_simulation',
    'SimulationServer',
    'SimulationMatcher',
    'create_simulation_server',
]

__version__ = '1.0.0'
