"""
Schema catalog: turns an interface description into queryable event definitions.

Two input dialects are understood:

- JSON ABI, either a bare list of entries or a compiler artifact carrying an
  ``abi`` list;
- human-readable Solidity declarations such as
  ``event Transfer(address indexed from, address indexed to, uint256 value)``.

Only event entries are kept. A schema without events is rejected.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping

from eth_utils import collapse_if_tuple

from event_parser.app.domain.errors import SchemaError
from event_parser.app.domain.models import EventDefinition, EventParameter, SchemaCatalog


logger = logging.getLogger(__name__)

_SIGNATURE_RE = re.compile(
    r"^\s*(?:event\s+)?(?P<name>[A-Za-z_$][A-Za-z0-9_$]*)\s*\((?P<params>.*)\)\s*(?P<anonymous>anonymous)?\s*;?\s*$",
    re.DOTALL,
)
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def parse_schema(raw: str) -> SchemaCatalog:
    """
    Parse a JSON ABI into a SchemaCatalog.

    Raises SchemaError if the text is not a JSON ABI or declares no events.
    """
    if not raw or not raw.strip():
        raise SchemaError("Schema is empty")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise SchemaError(f"Schema is not valid JSON: {e.msg} (line {e.lineno}, column {e.colno})") from e
    except RecursionError as e:
        raise SchemaError("Schema is nested too deeply") from e

    # Common formats:
    # - [ ... ] (ABI list)
    # - { "abi": [ ... ] } (artifact)
    if isinstance(data, list):
        abi = data
    elif isinstance(data, dict) and isinstance(data.get("abi"), list):
        abi = data["abi"]
    else:
        raise SchemaError("Unsupported schema format. Expected a list or an object with an 'abi' list.")

    entries = [x for x in abi if isinstance(x, dict) and x.get("type") == "event"]
    if not entries:
        raise SchemaError("No events found in the ABI definition")

    events = tuple(_event_from_abi(entry) for entry in entries)
    logger.debug("Parsed ABI schema: events=%s", [e.name for e in events])
    return SchemaCatalog(events=events)


def parse_event_signatures(text: str) -> SchemaCatalog:
    """Parse newline or semicolon separated Solidity event declarations."""
    if not text or not text.strip():
        raise SchemaError("Schema is empty")

    declarations = [d.strip() for d in re.split(r"[;\n]", text) if d.strip()]
    events = tuple(_event_from_signature(d) for d in declarations)
    if not events:
        raise SchemaError("No events found in the event declarations")
    logger.debug("Parsed event declarations: events=%s", [e.name for e in events])
    return SchemaCatalog(events=events)


def load_schema(text: str) -> SchemaCatalog:
    """Parse either dialect, picking JSON when the text looks like JSON."""
    stripped = (text or "").lstrip()
    if stripped.startswith(("[", "{")) or not stripped:
        return parse_schema(text)
    return parse_event_signatures(text)


# ---------------------------------------------------------------------
# JSON ABI
# ---------------------------------------------------------------------

def _event_from_abi(entry: Mapping[str, Any]) -> EventDefinition:
    name = entry.get("name")
    if not isinstance(name, str) or not name:
        raise SchemaError("Invalid event ABI: missing name")

    inputs = entry.get("inputs", [])
    if inputs is None:
        inputs = []
    if not isinstance(inputs, list):
        raise SchemaError(f"Invalid event ABI {name!r}: inputs must be a list")

    parameters: list[EventParameter] = []
    for position, inp in enumerate(inputs):
        if not isinstance(inp, dict) or not isinstance(inp.get("type"), str):
            raise SchemaError(f"Invalid event ABI {name!r}: input #{position} has no type")
        try:
            abi_type = collapse_if_tuple(inp)
        except (KeyError, TypeError, ValueError) as e:
            raise SchemaError(f"Invalid event ABI {name!r}: malformed tuple input #{position}") from e
        parameters.append(
            EventParameter(
                name=inp.get("name") or f"arg{position}",
                type=inp["type"],
                indexed=inp.get("indexed") is True,
                position=position,
                abi_type=abi_type,
            )
        )

    return EventDefinition(
        name=name,
        parameters=tuple(parameters),
        anonymous=entry.get("anonymous") is True,
        abi=dict(entry),
    )


# ---------------------------------------------------------------------
# Human-readable declarations
# ---------------------------------------------------------------------

def _event_from_signature(declaration: str) -> EventDefinition:
    match = _SIGNATURE_RE.match(declaration)
    if match is None:
        raise SchemaError(f"Invalid event declaration: {declaration!r}")

    name = match.group("name")
    params_text = match.group("params").strip()
    parts = [p.strip() for p in _split_params(params_text)] if params_text else []

    parameters: list[EventParameter] = []
    abi_inputs: list[dict[str, Any]] = []
    for position, part in enumerate(parts):
        tokens = part.split()
        if not tokens:
            raise SchemaError(f"Invalid event declaration {name!r}: empty parameter #{position}")
        typ = _canonical_type(tokens[0])
        indexed = False
        param_name = ""
        for token in tokens[1:]:
            if token == "indexed":
                indexed = True
            elif _IDENTIFIER_RE.match(token) and not param_name:
                param_name = token
            else:
                raise SchemaError(f"Invalid event declaration {name!r}: unexpected {token!r}")
        if "(" in typ:
            raise SchemaError(f"Invalid event declaration {name!r}: tuple parameters need a JSON ABI")
        param_name = param_name or f"arg{position}"
        parameters.append(
            EventParameter(name=param_name, type=typ, indexed=indexed, position=position)
        )
        abi_inputs.append({"name": param_name, "type": typ, "indexed": indexed})

    anonymous = match.group("anonymous") is not None
    abi = {"type": "event", "name": name, "anonymous": anonymous, "inputs": abi_inputs}
    return EventDefinition(name=name, parameters=tuple(parameters), anonymous=anonymous, abi=abi)


def _split_params(text: str) -> list[str]:
    # Split on top-level commas only.
    out: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            out.append("".join(current))
            current = []
        else:
            current.append(ch)
    out.append("".join(current))
    return out


def _canonical_type(typ: str) -> str:
    # Solidity aliases: uint -> uint256, int -> int256
    m = re.match(r"^(u?int)(\[.*)?$", typ)
    if m:
        return f"{m.group(1)}256{m.group(2) or ''}"
    return typ
