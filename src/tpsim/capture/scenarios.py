"""
tpsim Capture Scenarios

YAML-described capture runs against a live service. Each scenario is
recorded through its own RecordingAdapter, redacted with a fresh Redactor
and saved as <output_dir>/<name>.json.

Example scenario file:

    scenarios:
      - name: query_collection
        requests:
          - method: GET
            path: /api/v2/UserStory
            params:
              select: "id,name,entityState.name as state"
              where: "entityState.isFinal!=true"
              take: 3

      - name: inspect_types
        description: metadata index
        requests:
          - path: /api/v1/Index/meta
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import requests
import yaml
from requests.adapters import BaseAdapter

from ..common.config import CaptureConfig
from ..common.errors import ConfigError
from ..common.loader import save_simulation
from ..common.models import Simulation
from ..redact import Redactor, RedactOptions
from .transport import RecordingAdapter

logger = logging.getLogger("tpsim.capture")

V1_PREFIX = "/api/v1/"


@dataclass
class ScenarioRequest:
    """One API call made while capturing a scenario."""

    path: str
    method: str = "GET"
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScenarioRequest':
        if 'path' not in data:
            raise ConfigError(f"scenario request without a path: {data}")
        return cls(
            path=str(data['path']),
            method=str(data.get('method', 'GET')).upper(),
            params=dict(data.get('params') or {})
        )


@dataclass
class CaptureScenario:
    """A named group of API calls recorded into one fixture file."""

    name: str
    description: str = ""
    requests: List[ScenarioRequest] = field(default_factory=list)

    @property
    def label(self) -> str:
        """Description stamped on every recorded pair."""
        return self.description or self.name

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CaptureScenario':
        if not data.get('name'):
            raise ConfigError(f"scenario without a name: {data}")
        return cls(
            name=str(data['name']),
            description=str(data.get('description') or ''),
            requests=[ScenarioRequest.from_dict(r) for r in data.get('requests') or []]
        )


def load_scenarios(path: str) -> List[CaptureScenario]:
    """
    Load capture scenarios from a YAML file.

    The file holds either a list of scenarios or a mapping with a
    'scenarios' key.

    Raises:
        ConfigError: If the file has an unexpected shape
    """
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    if isinstance(data, dict):
        data = data.get('scenarios')
    if not isinstance(data, list):
        raise ConfigError(f"Unexpected scenario format in {path}: expected a list of scenarios")

    return [CaptureScenario.from_dict(item) for item in data]


@dataclass
class ScenarioOutcome:
    """Result of capturing one scenario."""

    name: str
    pairs: int = 0
    path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ScenarioRunner:
    """
    Records, redacts and saves capture scenarios.

    Example:
        runner = ScenarioRunner(CaptureConfig.from_env())
        for outcome in runner.run_all(load_scenarios("scenarios.yaml")):
            print(outcome.name, "OK" if outcome.ok else outcome.error)
    """

    def __init__(
        self,
        config: CaptureConfig,
        adapter_factory: Optional[Callable[[], BaseAdapter]] = None
    ):
        """
        Initialize scenario runner.

        Args:
            config: Live domain, token and output settings
            adapter_factory: Builds the adapter that performs real requests
                (a plain HTTPAdapter if None)
        """
        self.config = config
        self.adapter_factory = adapter_factory

    def redact_options(self) -> RedactOptions:
        return RedactOptions(
            real_domain=self.config.domain,
            replacement_domain=self.config.replacement_domain,
            token=self.config.token
        )

    def capture(self, scenario: CaptureScenario) -> Simulation:
        """
        Record a scenario's requests against the live service.

        Raises:
            requests.RequestException: On transport errors or non-2xx responses
        """
        base = self.adapter_factory() if self.adapter_factory else None
        recorder = RecordingAdapter(base)

        session = requests.Session()
        session.mount("https://", recorder)
        session.mount("http://", recorder)
        try:
            for scenario_request in scenario.requests:
                params = dict(scenario_request.params)
                params['access_token'] = self.config.token
                # v1 endpoints default to XML
                if scenario_request.path.startswith(V1_PREFIX):
                    params.setdefault('format', 'json')
                response = session.request(
                    scenario_request.method,
                    self.config.base_url + scenario_request.path,
                    params=params,
                    timeout=self.config.timeout
                )
                response.raise_for_status()
        finally:
            session.close()

        simulation = recorder.build_simulation()
        simulation.describe(scenario.label)
        return simulation

    def run(self, scenario: CaptureScenario) -> ScenarioOutcome:
        """
        Capture, redact and save one scenario.

        A failed capture is reported in the outcome; a failed save raises.
        """
        try:
            simulation = self.capture(scenario)
        except requests.RequestException as e:
            error = self._redacted_error(e)
            logger.warning(f"Capture of {scenario.name} failed: {error}")
            return ScenarioOutcome(name=scenario.name, error=error)

        # Each scenario is an independent session; naming restarts at 1
        clean = Redactor(self.redact_options()).redact_simulation(simulation)

        path = Path(self.config.output_dir) / f"{scenario.name}.json"
        save_simulation(path, clean)
        return ScenarioOutcome(name=scenario.name, pairs=len(clean), path=path)

    def run_all(self, scenarios: List[CaptureScenario]) -> List[ScenarioOutcome]:
        return [self.run(scenario) for scenario in scenarios]

    def _redacted_error(self, error: Exception) -> str:
        """Error text with the live token removed (request URLs carry it)."""
        if not self.config.token:
            return str(error)
        return str(error).replace(self.config.token, "[REDACTED]")
