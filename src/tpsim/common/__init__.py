"""
tpsim Common

Fixture model, fixture loading and configuration shared by all tpsim modules.
"""

from .errors import TpsimError, FixtureError, ConfigError
from .models import (
    Body,
    JsonBody,
    OpaqueBody,
    Pair,
    Request,
    Response,
    Simulation,
    body_from_json,
    find_header,
)
from .loader import (
    SimulationLoader,
    load_simulation,
    load_simulations_from_dir,
    save_simulation,
)
from .config import CaptureConfig, ServerConfig, get_token_from_env

__all__ = [
    'TpsimError',
    'FixtureError',
    'ConfigError',
    'Body',
    'JsonBody',
    'OpaqueBody',
    'Pair',
    'Request',
    'Response',
    'Simulation',
    'body_from_json',
    'find_header',
    'SimulationLoader',
    'load_simulation',
    'load_simulations_from_dir',
    'save_simulation',
    'CaptureConfig',
    'ServerConfig',
    'get_token_from_env',
]
