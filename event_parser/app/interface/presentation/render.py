from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any

from event_parser.app.domain.errors import ErrorKind
from event_parser.app.domain.models import DecodedEvent, PageView, QueryState, QueryStatus, SchemaCatalog


_KIND_LABELS: dict[ErrorKind, str] = {
    ErrorKind.SCHEMA: "Schema",
    ErrorKind.SELECTION: "Selection",
    ErrorKind.QUERY: "Query",
}


def to_jsonable(value: Any) -> Any:
    """Make decoded values JSON friendly: bytes -> 0x hex, tuples -> lists."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "0x" + bytes(value).hex()
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def event_to_dict(event: DecodedEvent) -> dict[str, Any]:
    return {
        "blockNumber": event.block_number,
        "transactionHash": event.transaction_hash,
        "logIndex": event.log_index,
        "args": to_jsonable(event.arguments),
    }


def events_to_json(events: Iterable[DecodedEvent]) -> str:
    return json.dumps([event_to_dict(e) for e in events], indent=2)


def render_error(kind: ErrorKind | None, detail: str) -> str:
    label = _KIND_LABELS.get(kind) if kind is not None else None
    return f"Error: {label} error: {detail}" if label else f"Error: {detail}"


def render_status(status: QueryStatus) -> str:
    if status.state is QueryState.FAILED:
        return render_error(status.error_kind, status.detail)
    if status.state is QueryState.LOADING:
        return "Loading..."
    return ""


def render_page(view: PageView, event_name: str | None) -> str:
    lines = [f"Parsed Events : {event_name or '-'} (total:{view.total_items})", ""]
    for event in view.items:
        lines.append(f"Block {event.block_number} | Tx {event.transaction_hash}")
        args = json.dumps(to_jsonable(event.arguments), indent=2)
        lines.extend("  " + line for line in args.splitlines())
        lines.append("")
    lines.append(f"Page {view.page_number} of {view.total_pages}")
    return "\n".join(lines)


def render_catalog(catalog: SchemaCatalog) -> str:
    lines: list[str] = []
    for event in catalog:
        lines.append(event.signature)
        for param in event.parameters:
            flag = " indexed" if param.indexed else ""
            lines.append(f"  {param.name} ({param.type}{flag})")
    return "\n".join(lines)
