"""
SQL text helpers: identifier quoting, identifier case policy and literals.
"""
import datetime
import decimal
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

_CASE_METHODS: dict[str | None, Callable[[str], str] | None] = {
    None: None,
    'upper': str.upper,
    'lower': str.lower,
}


def quote_identifier(identifier: str) -> str:
    """Safely quote database identifiers.

    >>> quote_identifier('items')
    '"items"'
    >>> quote_identifier('we"ird')
    '"we""ird"'
    """
    return '"' + identifier.replace('"', '""') + '"'


@dataclass(frozen=True)
class IdentifierPolicy:
    """Whether table/column names are case-normalized crossing the adapter.

    `input` applies to names sent to the database, `output` to names read
    back. None means the name passes through unchanged.
    """
    input: str | None = None
    output: str | None = None

    @classmethod
    def from_options(cls, options: Any, strategy: Any) -> 'IdentifierPolicy':
        return cls(
            input=options.identifier_input or strategy.identifier_input_default,
            output=options.identifier_output or strategy.identifier_output_default,
        )

    @property
    def maps_output(self) -> bool:
        return self.output is not None

    def input_identifier(self, name: str) -> str:
        method = _CASE_METHODS[self.input]
        return method(name) if method else name

    def output_identifier(self, name: str) -> str:
        method = _CASE_METHODS[self.output]
        return method(name) if method else name


def _escape_string_literal(s: str) -> str:
    return s.replace("'", "''")


def literal_blob(value: bytes) -> str:
    """Render binary data as a hex string passed through HEX_TO_BINARY.

    >>> literal_blob(b'\\x01\\xff')
    "HEX_TO_BINARY('0x01ff')"
    """
    return f"HEX_TO_BINARY('0x{bytes(value).hex()}')"


def literal(value: Any) -> str:
    """Render a Python value as a Vertica SQL literal.

    >>> literal("O'Brien")
    "'O''Brien'"
    >>> literal(None)
    'NULL'
    >>> literal(True)
    'TRUE'
    """
    if value is None:
        return 'NULL'
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    if isinstance(value, (bytes, bytearray, memoryview)):
        return literal_blob(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return f"'{value!r}'::float"
        return repr(value)
    if isinstance(value, (int, decimal.Decimal)):
        return str(value)
    if isinstance(value, datetime.datetime):
        return f"'{value.isoformat(sep=' ')}'"
    if isinstance(value, (datetime.date, datetime.time)):
        return f"'{value.isoformat()}'"
    if isinstance(value, str):
        return f"'{_escape_string_literal(value)}'"
    raise TypeError(f'Cannot render literal for {type(value).__name__}')


def make_placeholders(size: int) -> str:
    """Positional placeholders in the driver's format style.

    >>> make_placeholders(3)
    '%s, %s, %s'
    """
    return ', '.join(['%s'] * size)
