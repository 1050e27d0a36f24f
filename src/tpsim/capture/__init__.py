"""
tpsim Capture Module

Records live API traffic as fixture simulations.

This module provides:
- RecordingAdapter, a passthrough requests transport adapter
- YAML capture scenarios and a runner that records, redacts and saves them
"""

from .transport import RecordingAdapter
from .scenarios import (
    CaptureScenario,
    ScenarioOutcome,
    ScenarioRequest,
    ScenarioRunner,
    load_scenarios,
)

__all__ = [
    'RecordingAdapter',
    'CaptureScenario',
    'ScenarioOutcome',
    'ScenarioRequest',
    'ScenarioRunner',
    'load_scenarios',
]
