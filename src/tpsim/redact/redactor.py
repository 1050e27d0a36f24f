"""
tpsim Redactor

Removes secrets and personal data from a captured Simulation while keeping
everything a test might assert on: status codes, field names, type and state
names.

What gets rewritten:
- the access token query parameter, and the token value wherever it is echoed
- the real service domain, everywhere (plain substring replacement)
- contact and free-text fields, by field name (see rules.SENSITIVE_FIELDS)
- entity names, replaced by "Test <ResourceType> <N>"
- custom field values
- email addresses embedded in any other string
- Description="..." attributes in XML payloads

Entity names are numbered per resource type for the lifetime of one
Redactor. Every occurrence gets a fresh number, so the same entity seen twice
ends up with two different placeholder names; fixtures must not rely on names
being consistent across pairs.

Domain replacement is a plain substring replace: a coincidental occurrence of
the domain inside an unrelated value is rewritten too.
"""

import json
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from ..common.config import DEFAULT_REPLACEMENT_DOMAIN
from ..common.models import Body, JsonBody, OpaqueBody, Pair, Request, Response, Simulation
from . import rules

logger = logging.getLogger("tpsim.redact")


@dataclass
class RedactOptions:
    """Controls what gets replaced during redaction."""

    real_domain: str = ""
    replacement_domain: str = DEFAULT_REPLACEMENT_DOMAIN
    token_placeholder: str = "REDACTED"

    # Live token value; scrubbed wherever the service echoed it back
    token: str = ""


def default_redact_options(real_domain: str, token: str = "") -> RedactOptions:
    """Standard redaction settings for a live domain."""
    return RedactOptions(real_domain=real_domain, token=token)


class NameCounters:
    """Per-resource-type counters for generated entity names."""

    def __init__(self):
        self._counters: Dict[str, int] = defaultdict(int)

    def next_name(self, resource_type: str) -> str:
        resource_type = resource_type or rules.DEFAULT_RESOURCE_TYPE
        self._counters[resource_type] += 1
        return f"Test {resource_type} {self._counters[resource_type]}"

    def reset(self) -> None:
        self._counters.clear()

    def snapshot(self) -> Dict[str, int]:
        return dict(self._counters)


class Redactor:
    """
    Redacts simulations. Holds the naming state of one redaction run.

    Use a new Redactor (or call reset()) for each independent capture
    session so numbering starts again at 1.

    Example:
        redactor = Redactor(default_redact_options("acme.tpondemand.com"))
        clean = redactor.redact_simulation(raw)
    """

    def __init__(self, options: RedactOptions):
        self.options = options
        self.counters = NameCounters()

    def reset(self) -> None:
        """Restart entity name numbering."""
        self.counters.reset()

    def redact_simulation(self, simulation: Simulation) -> Simulation:
        """Return a redacted copy of the simulation; the input is not modified."""
        return Simulation(pairs=[self.redact_pair(pair) for pair in simulation.pairs])

    def redact_pair(self, pair: Pair) -> Pair:
        return Pair(
            request=Request(
                method=pair.request.method,
                path=pair.request.path,
                query=self.redact_query(pair.request.query)
            ),
            response=Response(
                status=pair.response.status,
                headers={k: self.replace_literals(v) for k, v in pair.response.headers.items()},
                body=self.redact_body(pair.response.body)
            ),
            description=pair.description
        )

    def redact_query(self, query: Dict[str, str]) -> Dict[str, str]:
        redacted = {}
        for key, value in query.items():
            if key == rules.TOKEN_PARAM:
                redacted[key] = self.options.token_placeholder
            else:
                redacted[key] = self.replace_literals(value)
        return redacted

    def replace_literals(self, text: str) -> str:
        """Replace the real domain, and the live token if known, in a string."""
        if self.options.real_domain:
            text = text.replace(self.options.real_domain, self.options.replacement_domain)
        if self.options.token:
            text = text.replace(self.options.token, self.options.token_placeholder)
        return text

    # Bodies

    def redact_body(self, body: Body) -> Body:
        """
        Redact a response body.

        Best effort: a body that cannot be walked is returned unchanged.
        """
        try:
            if isinstance(body, OpaqueBody):
                return OpaqueBody(self.redact_markup(body.text))
            if isinstance(body, JsonBody):
                return JsonBody(self.redact_value(body.value))
        except (RecursionError, TypeError, ValueError) as e:
            logger.debug(f"Leaving body unredacted: {e}")
            return body

        logger.debug(f"Leaving body of unknown type {type(body).__name__} unredacted")
        return body

    def redact_markup(self, text: str) -> str:
        """Redact a non-JSON payload; element and attribute names are kept."""
        text = self.replace_literals(text)
        return rules.DESCRIPTION_ATTR_PATTERN.sub(rules.REDACTED_DESCRIPTION_ATTR, text)

    def redact_value(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self.redact_object(value)
        if isinstance(value, list):
            return [self.redact_value(item) for item in value]
        if isinstance(value, str):
            return self.redact_string(value)
        return value

    def redact_object(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        resource_type = resource_type_of(obj)
        return {
            key: self.redact_field(key, value, resource_type)
            for key, value in obj.items()
        }

    def redact_field(self, field_name: str, value: Any, resource_type: str) -> Any:
        """Redact one object field, given the enclosing object's resource type."""
        is_text = isinstance(value, str) and value != ""

        strategy = rules.SENSITIVE_FIELDS.get(field_name)
        if strategy and is_text:
            return self.apply_strategy(strategy, value)

        if field_name in rules.NAME_FIELDS and is_text and not rules.keeps_name(resource_type):
            return self.counters.next_name(resource_type)

        # Custom field entries are untyped {"Name": ..., "Value": ...} objects
        if field_name == rules.CUSTOM_FIELD_VALUE and is_text and not resource_type:
            return rules.REDACTED_VALUE

        return self.redact_value(value)

    def apply_strategy(self, strategy: str, value: str) -> str:
        if strategy == rules.URL:
            return self.replace_literals(value)
        return rules.FIXED_REPLACEMENTS.get(strategy, value)

    def redact_string(self, text: str) -> str:
        text = self.replace_literals(text)
        return rules.EMAIL_PATTERN.sub(rules.TEST_EMAIL, text)


def resource_type_of(obj: Dict[str, Any]) -> str:
    """Resource type tag of a JSON object, or "" if it has none."""
    for key in rules.RESOURCE_TYPE_FIELDS:
        value = obj.get(key)
        if isinstance(value, str):
            return value
    return ""


def find_leaks(simulation: Simulation, secrets: Iterable[str]) -> List[str]:
    """
    Secrets that still appear anywhere in the serialized simulation.

    Args:
        simulation: Simulation to check (normally after redaction)
        secrets: Literal values that must not appear (token, real domain)

    Returns:
        The secrets found, in the order given
    """
    serialized = json.dumps(simulation.to_dict(), ensure_ascii=False)
    return [s for s in secrets if s and s in serialized]


def redact_simulation(
    simulation: Simulation,
    options: RedactOptions,
    redactor: Optional[Redactor] = None
) -> Simulation:
    """
    Redact a simulation.

    Args:
        simulation: Captured simulation
        options: Domains and placeholders to use
        redactor: Redactor to reuse (keeps its name numbering); a fresh one if None

    Returns:
        Redacted copy of the simulation
    """
    redactor = redactor or Redactor(options)
    return redactor.redact_simulation(simulation)
