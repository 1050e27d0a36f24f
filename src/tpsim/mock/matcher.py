"""
tpsim Request Matcher

Finds the fixture pair that answers an incoming request.

Matching rules:
- method: exact
- path: exact, no trailing-slash normalization
- query: every parameter the fixture pins must be present in the request
  with exactly the same (first) value; request parameters the fixture does
  not mention are ignored

Pairs are scanned linearly in fixture order and the first match wins. Several
pairs may match the same request; list specific pairs before general ones.
"""

from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

from ..common.models import Pair, Request, Simulation


def request_matches(
    expected: Request,
    method: str,
    path: str,
    query: Mapping[str, Sequence[str]]
) -> bool:
    """
    Check an incoming request against a fixture request.

    Args:
        expected: Fixture request (the match key)
        method: Incoming HTTP method
        path: Incoming decoded path
        query: Incoming parsed query (name -> values)

    Returns:
        True if the fixture request matches
    """
    if method != expected.method:
        return False
    if path != expected.path:
        return False

    for key, wanted in expected.query.items():
        values = query.get(key)
        if not values or values[0] != wanted:
            return False

    return True


@dataclass
class MatchResult:
    """Result of matching a request."""

    matched: bool
    pair: Optional[Pair] = None
    index: int = -1


class SimulationMatcher:
    """
    First-match-wins matcher over a simulation's pairs.

    Example:
        matcher = SimulationMatcher(simulation)
        result = matcher.find_match('GET', '/api/v2/UserStory', {'take': ['3']})

        if result.matched:
            body = result.pair.response.body_bytes()
    """

    def __init__(self, simulation: Simulation):
        self.simulation = simulation

    def find_match(
        self,
        method: str,
        path: str,
        query: Mapping[str, Sequence[str]]
    ) -> MatchResult:
        for index, pair in enumerate(self.simulation.pairs):
            if request_matches(pair.request, method, path, query):
                return MatchResult(matched=True, pair=pair, index=index)
        return MatchResult(matched=False)

    def shadowed_pairs(self) -> List[Tuple[int, int]]:
        """
        Pairs that can never be served because an earlier pair always wins.

        Pair j is shadowed by an earlier pair i when both pin the same method
        and path and everything i pins, j pins with the same value.

        Returns:
            List of (shadowed index, winning index)
        """
        shadowed = []
        pairs = self.simulation.pairs
        for j, later in enumerate(pairs):
            for i in range(j):
                earlier = pairs[i].request
                if (earlier.method == later.request.method
                        and earlier.path == later.request.path
                        and all(later.request.query.get(k) == v for k, v in earlier.query.items())):
                    shadowed.append((j, i))
                    break
        return shadowed
