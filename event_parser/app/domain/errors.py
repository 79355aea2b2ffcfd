from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    SCHEMA = "schema"
    SELECTION = "selection"
    QUERY = "query"


class EventParserError(Exception):
    """
    Tagged error raised by the event query engine.

    Carries a `kind` and a human-readable `detail`; text rendering for users
    happens at the presentation boundary.
    """

    kind: ErrorKind = ErrorKind.QUERY

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, detail={self.detail!r})"


class SchemaError(EventParserError):
    """Malformed schema text, or a schema without any event entries."""

    kind = ErrorKind.SCHEMA


class SelectionError(EventParserError):
    """No event with the requested name in the catalog."""

    kind = ErrorKind.SELECTION


class QueryError(EventParserError):
    """Malformed address, transport failure or RPC rejection."""

    kind = ErrorKind.QUERY
