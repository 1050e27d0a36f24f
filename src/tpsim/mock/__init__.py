"""
tpsim Mock Server Module

HTTP double that replays recorded fixtures.

This module provides:
- FastAPI-based simulation server
- First-match-wins request matcher
"""

from .server import SimulationServer, RecordedRequest, create_simulation_server
from .matcher import SimulationMatcher, MatchResult, request_matches

__all__ = [
    # Server
    'SimulationServer',
    'RecordedRequest',
    'create_simulation_server',

    # Matcher
    'SimulationMatcher',
    'MatchResult',
    'request_matches',
]
