"""
tpsim error types.
"""

from pathlib import Path
from typing import Optional, Union


class TpsimError(Exception):
    """Base class for tpsim errors."""


class FixtureError(TpsimError):
    """A fixture file could not be read, parsed or written."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class ConfigError(TpsimError):
    """Required configuration is missing or invalid."""
