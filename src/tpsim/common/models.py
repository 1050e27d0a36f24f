"""
tpsim Fixture Model

Data types shared by capture, redaction and replay:

- Simulation: ordered list of recorded exchanges (first match wins on replay)
- Pair: one request/response exchange with an optional scenario label
- Request: match key (method, path, constrained query parameters)
- Response: canned status, sparse headers and body

Response bodies are a tagged union. JsonBody holds a parsed JSON value and is
written to the fixture as-is; OpaqueBody holds a non-JSON payload (XML, plain
text) and is written as a JSON string literal, so a fixture file is always
valid JSON whatever the payload looks like.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union


@dataclass
class JsonBody:
    """Response payload that is a JSON document."""

    value: Any = None

    def to_bytes(self) -> bytes:
        """Bytes written to the client on replay."""
        return json.dumps(self.value, ensure_ascii=False, separators=(',', ':')).encode('utf-8')

    def to_json(self) -> Any:
        return self.value


@dataclass
class OpaqueBody:
    """Response payload that is not JSON (stored as a JSON string in fixtures)."""

    text: str = ""

    def to_bytes(self) -> bytes:
        return self.text.encode('utf-8')

    def to_json(self) -> Any:
        return self.text


Body = Union[JsonBody, OpaqueBody]


def body_from_json(value: Any) -> Body:
    """
    Rebuild a Body from its fixture representation.

    A JSON string is the wrapped form of a non-JSON payload and is unwrapped
    into an OpaqueBody. Every other JSON value is a JsonBody.

    A null or missing body is an empty payload.

    Note: a genuine JSON response whose whole document is a bare string is
    indistinguishable from a wrapped payload and comes back as an OpaqueBody.
    """
    if value is None:
        return OpaqueBody("")
    if isinstance(value, str):
        return OpaqueBody(value)
    return JsonBody(value)


@dataclass
class Request:
    """Request description used as the match key during replay."""

    method: str
    path: str
    query: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'method': self.method, 'path': self.path}
        if self.query:
            data['query'] = dict(self.query)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Request':
        query = data.get('query') or {}
        if not isinstance(query, dict):
            raise ValueError(f"request query must be an object, got {type(query).__name__}")
        return cls(
            method=str(data['method']),
            path=str(data['path']),
            query={str(k): str(v) for k, v in query.items()}
        )


@dataclass
class Response:
    """Canned response replayed for a matching request."""

    status: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    body: Body = field(default_factory=OpaqueBody)

    @property
    def effective_status(self) -> int:
        """Status code to send; zero or missing means 200."""
        return self.status or 200

    def body_bytes(self) -> bytes:
        return self.body.to_bytes()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'status': self.status}
        if self.headers:
            data['headers'] = dict(self.headers)
        data['body'] = self.body.to_json()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Response':
        headers = data.get('headers') or {}
        if not isinstance(headers, dict):
            raise ValueError(f"response headers must be an object, got {type(headers).__name__}")
        return cls(
            status=int(data.get('status') or 0),
            headers={str(k): str(v) for k, v in headers.items()},
            body=body_from_json(data.get('body'))
        )


@dataclass
class Pair:
    """One recorded request/response exchange."""

    request: Request
    response: Response
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.description:
            data['description'] = self.description
        data['request'] = self.request.to_dict()
        data['response'] = self.response.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Pair':
        return cls(
            request=Request.from_dict(data['request']),
            response=Response.from_dict(data['response']),
            description=str(data.get('description') or '')
        )


@dataclass
class Simulation:
    """Ordered set of pairs; order decides which pair wins on replay."""

    pairs: List[Pair] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.pairs)

    def __iter__(self):
        return iter(self.pairs)

    def extend(self, pairs: Iterable[Pair]) -> None:
        self.pairs.extend(pairs)

    def describe(self, description: str) -> None:
        """Label every pair with a scenario description."""
        for pair in self.pairs:
            pair.description = description

    def to_dict(self) -> Dict[str, Any]:
        return {'pairs': [pair.to_dict() for pair in self.pairs]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Simulation':
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        pairs = data.get('pairs') or []
        if not isinstance(pairs, list):
            raise ValueError(f"'pairs' must be a list, got {type(pairs).__name__}")
        return cls(pairs=[Pair.from_dict(p) for p in pairs])

    @classmethod
    def combine(cls, simulations: Iterable['Simulation']) -> 'Simulation':
        combined = cls()
        for simulation in simulations:
            combined.extend(simulation.pairs)
        return combined


def find_header(headers: Dict[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup."""
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None
