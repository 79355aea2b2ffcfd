from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Mapping, Sequence

from eth_utils import keccak

from event_parser.app.domain.errors import ErrorKind, EventParserError, SelectionError


BlockRangeEndpoint = int | str
IndexedFilter = dict[str, list[str]]


@dataclass(frozen=True)
class EventParameter:
    """
    One declared input of an event.

    `type` is the type as written in the schema (e.g. "tuple[]"), `abi_type`
    is its canonical form with tuple components collapsed, which is what the
    ABI codec and the event signature need.
    """

    name: str
    type: str
    indexed: bool = False
    position: int = 0
    abi_type: str = ""

    def __post_init__(self) -> None:
        if not self.abi_type:
            object.__setattr__(self, "abi_type", self.type)

    @property
    def is_dynamic(self) -> bool:
        # Indexed dynamic values are stored as keccak hashes in topics.
        t = self.abi_type
        return t in ("string", "bytes") or t.endswith("]") or t.startswith("(")


@dataclass(frozen=True)
class EventDefinition:
    name: str
    parameters: tuple[EventParameter, ...] = ()
    anonymous: bool = False
    abi: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(p.abi_type for p in self.parameters)})"

    @property
    def topic0(self) -> bytes:
        return keccak(text=self.signature)

    @property
    def indexed_parameters(self) -> tuple[EventParameter, ...]:
        return tuple(p for p in self.parameters if p.indexed)

    @property
    def non_indexed_parameters(self) -> tuple[EventParameter, ...]:
        return tuple(p for p in self.parameters if not p.indexed)


@dataclass(frozen=True)
class SchemaCatalog:
    """Ordered, non-empty collection of event definitions parsed from a schema."""

    events: tuple[EventDefinition, ...]

    def __post_init__(self) -> None:
        if not self.events:
            raise ValueError("SchemaCatalog requires at least one event")

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[EventDefinition]:
        return iter(self.events)

    def names(self) -> list[str]:
        return [e.name for e in self.events]

    @property
    def default_event(self) -> EventDefinition:
        return self.events[0]

    def find(self, name: str) -> EventDefinition:
        # Overloaded names resolve to the first declaration.
        for event in self.events:
            if event.name == name:
                return event
        raise SelectionError(f"Event {name!r} not found. Available events: {self.names()}")


@dataclass(frozen=True)
class RawLog:
    """
    Log record as returned by a chain client.

    `args` is set when the client already decoded the payload (either a
    name -> value mapping or a positional sequence); otherwise `topics` and
    `data` carry the undecoded payload.
    """

    block_number: int | None = None
    transaction_hash: str | None = None
    log_index: int | None = None
    topics: tuple[bytes, ...] = ()
    data: bytes = b""
    args: Mapping[str, Any] | Sequence[Any] | None = None


@dataclass(frozen=True)
class DecodedEvent:
    block_number: int | None
    transaction_hash: str | None
    arguments: Mapping[str, Any]
    log_index: int | None = None


@dataclass(frozen=True)
class PageView:
    items: tuple[DecodedEvent, ...]
    page_number: int
    page_size: int
    total_items: int
    total_pages: int

    @property
    def has_previous(self) -> bool:
        return self.page_number > 1

    @property
    def has_next(self) -> bool:
        return self.page_number < self.total_pages


class QueryState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class QueryStatus:
    """Idle | Loading | Success | Failed(kind, detail)."""

    state: QueryState = QueryState.IDLE
    error_kind: ErrorKind | None = None
    detail: str = ""

    @classmethod
    def idle(cls) -> QueryStatus:
        return cls(QueryState.IDLE)

    @classmethod
    def loading(cls) -> QueryStatus:
        return cls(QueryState.LOADING)

    @classmethod
    def success(cls) -> QueryStatus:
        return cls(QueryState.SUCCESS)

    @classmethod
    def failed(cls, error: EventParserError) -> QueryStatus:
        return cls(QueryState.FAILED, error.kind, error.detail)
