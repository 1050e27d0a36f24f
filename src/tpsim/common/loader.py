"""
tpsim Fixture Loader

Reads and writes fixture files:

    {
      "pairs": [
        {
          "description": "optional string",
          "request":  {"method": "GET", "path": "/api/v2/UserStory", "query": {"take": "3"}},
          "response": {"status": 200, "headers": {"Content-Type": "application/json"}, "body": ...}
        }
      ]
    }

A directory of fixture files loads as one Simulation, pairs concatenated in
filename order.
"""

import json
import logging
from pathlib import Path
from typing import List, Union

from .errors import FixtureError
from .models import Simulation

logger = logging.getLogger("tpsim.loader")

PathLike = Union[str, Path]


def load_simulation(path: PathLike) -> Simulation:
    """
    Load one fixture file.

    Args:
        path: Path to a fixture JSON file

    Returns:
        The Simulation stored in the file

    Raises:
        FixtureError: If the file cannot be read or is not a valid fixture
    """
    path = Path(path)
    try:
        text = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise FixtureError(f"reading simulation {path}: {e}", path) from e

    try:
        data = json.loads(text)
        simulation = Simulation.from_dict(data)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise FixtureError(f"parsing simulation {path}: {e}", path) from e

    logger.debug(f"Loaded {len(simulation)} pairs from {path}")
    return simulation


def fixture_files(directory: PathLike) -> List[Path]:
    """JSON fixture files directly inside a directory, in filename order."""
    directory = Path(directory)
    try:
        entries = list(directory.iterdir())
    except OSError as e:
        raise FixtureError(f"reading simulation directory {directory}: {e}", directory) from e

    return sorted(
        (p for p in entries if p.is_file() and p.suffix == '.json'),
        key=lambda p: p.name
    )


def load_simulations_from_dir(directory: PathLike) -> Simulation:
    """
    Load every *.json file in a directory as one combined Simulation.

    Subdirectories and other files are skipped. The first bad file aborts
    the whole load.
    """
    files = fixture_files(directory)
    combined = Simulation.combine(load_simulation(p) for p in files)
    logger.info(f"Loaded {len(combined)} pairs from {len(files)} files in {directory}")
    return combined


def save_simulation(path: PathLike, simulation: Simulation) -> None:
    """
    Write a Simulation as a UTF-8 fixture file with 2-space indentation.

    Parent directories are created as needed.

    Raises:
        FixtureError: If the file cannot be written
    """
    path = Path(path)
    data = json.dumps(simulation.to_dict(), indent=2, ensure_ascii=False)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(data + '\n', encoding='utf-8')
    except OSError as e:
        raise FixtureError(f"writing simulation {path}: {e}", path) from e

    logger.info(f"Saved {len(simulation)} pairs to {path}")


class SimulationLoader:
    """
    Loader for fixture files and fixture directories.

    Example:
        simulation = SimulationLoader("testdata/simulations").load()

        for pair in simulation:
            print(pair.request.method, pair.request.path)
    """

    def __init__(self, path: PathLike):
        """
        Initialize simulation loader.

        Args:
            path: Fixture file or directory of fixture files
        """
        self.path = Path(path)

    def load(self) -> Simulation:
        """
        Load the fixture(s).

        Raises:
            FixtureError: If the path does not exist or a file is invalid
        """
        if self.path.is_dir():
            return load_simulations_from_dir(self.path)
        return load_simulation(self.path)

    @staticmethod
    def load_from_path(path: PathLike) -> Simulation:
        """Convenience method to load fixtures in one call."""
        return SimulationLoader(path).load()
