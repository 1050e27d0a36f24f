"""
tpsim Redaction

Scrubs captured simulations of tokens, real domains and personal data.
"""

from .redactor import (
    NameCounters,
    RedactOptions,
    Redactor,
    default_redact_options,
    find_leaks,
    redact_simulation,
    resource_type_of,
)

__all__ = [
    'NameCounters',
    'RedactOptions',
    'Redactor',
    'default_redact_options',
    'find_leaks',
    'redact_simulation',
    'resource_type_of',
]
