from __future__ import annotations

import re
from typing import Any, Mapping, Sequence

from eth_abi import encode as abi_encode
from eth_utils import is_address, keccak, to_bytes, to_checksum_address

from event_parser.app.domain.errors import QueryError
from event_parser.app.domain.models import EventDefinition, EventParameter


_INT_RE = re.compile(r"^u?int\d*$")
_FIXED_BYTES_RE = re.compile(r"^bytes(\d+)$")
_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}


def coerce_filter_value(param: EventParameter, text: str) -> Any:
    """
    Convert a literal filter string into the Python value web3/eth_abi expect
    for `param.abi_type`. Raises QueryError on malformed input.
    """
    typ = param.abi_type
    value = text.strip()
    try:
        if typ == "address":
            if not is_address(value):
                raise ValueError("not an address")
            return to_checksum_address(value)

        if _INT_RE.match(typ):
            return int(value, 0)

        if typ == "bool":
            lowered = value.lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
            raise ValueError("not a boolean")

        m = _FIXED_BYTES_RE.match(typ)
        if m:
            raw = to_bytes(hexstr=value)
            size = int(m.group(1))
            if len(raw) > size:
                raise ValueError(f"longer than {size} bytes")
            return raw

        if typ == "bytes":
            return to_bytes(hexstr=value)

        if typ == "string":
            return value
    except ValueError as e:
        raise QueryError(f"Invalid filter value {text!r} for {param.name} ({param.type}): {e}") from e

    raise QueryError(f"Filtering on {param.name} ({param.type}) is not supported")


def coerce_argument_filters(
    event: EventDefinition,
    arg_filters: Mapping[str, Sequence[str]],
) -> dict[str, Any]:
    """Coerce an IndexedFilter into web3 `argument_filters`."""
    by_name = {p.name: p for p in event.indexed_parameters}
    out: dict[str, Any] = {}
    for name, values in arg_filters.items():
        param = by_name.get(name)
        if param is None:
            raise QueryError(f"{name!r} is not an indexed parameter of {event.name}")
        coerced = [coerce_filter_value(param, v) for v in values]
        out[name] = coerced[0] if len(coerced) == 1 else coerced
    return out


def encode_topic(param: EventParameter, value: Any) -> bytes:
    """Encode one coerced value the way it appears in a log topic."""
    if param.abi_type == "string":
        return keccak(text=value)
    if param.abi_type == "bytes":
        return keccak(value)
    if param.is_dynamic:
        raise QueryError(f"Filtering on {param.name} ({param.type}) is not supported")
    return abi_encode([param.abi_type], [value])


def build_topics(
    event: EventDefinition,
    arg_filters: Mapping[str, Sequence[str]],
) -> list[list[str] | str | None]:
    """
    Build an eth_getLogs `topics` list: topic0 (unless anonymous) followed by
    one OR-set per indexed parameter, `None` meaning wildcard. Trailing
    wildcards are dropped.
    """
    topics: list[list[str] | str | None] = []
    if not event.anonymous:
        topics.append("0x" + event.topic0.hex())

    for param in event.indexed_parameters:
        values = arg_filters.get(param.name)
        if not values:
            topics.append(None)
            continue
        topics.append(["0x" + encode_topic(param, coerce_filter_value(param, v)).hex() for v in values])

    while topics and topics[-1] is None:
        topics.pop()
    return topics
