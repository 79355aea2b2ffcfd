from __future__ import annotations

from typing import Mapping

from event_parser.app.domain.models import EventDefinition, IndexedFilter


def build_filters(
    selected_event: EventDefinition,
    raw_values: Mapping[str, str | None],
) -> IndexedFilter:
    """
    Build argument filters for the indexed parameters of `selected_event`.

    Each raw value is a comma separated list of literals; pieces are trimmed
    and kept in input order. Blank input and non-indexed parameters produce
    no entry. Values are not validated against the parameter type here.
    """
    filters: IndexedFilter = {}
    for param in selected_event.indexed_parameters:
        raw = raw_values.get(param.name)
        if raw is None or not raw.strip():
            continue
        values = [piece.strip() for piece in raw.split(",")]
        values = [v for v in values if v]
        if values:
            filters[param.name] = values
    return filters
