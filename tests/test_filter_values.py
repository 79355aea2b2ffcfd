import pytest
from eth_abi import encode as abi_encode
from eth_utils import keccak

from event_parser.app.application.services.schema_catalog import parse_event_signatures
from event_parser.app.domain.errors import QueryError
from event_parser.app.domain.models import EventParameter, SchemaCatalog
from event_parser.app.infrastructure.clients.filter_values import (
    build_topics,
    coerce_argument_filters,
    coerce_filter_value,
)

from _helpers import HOLDER_A, HOLDER_B


@pytest.mark.parametrize(
    "typ, text, expected",
    [
        ("address", HOLDER_A, HOLDER_A),
        ("uint256", "100", 100),
        ("uint256", "0x10", 16),
        ("int24", "-5", -5),
        ("bool", "true", True),
        ("bool", "0", False),
        ("bytes32", "0x01", b"\x01"),
        ("bytes", "0xdead", b"\xde\xad"),
        ("string", " hello ", "hello"),
    ],
)
def test_coerce_filter_value(typ: str, text: str, expected: object) -> None:
    param = EventParameter(name="p", type=typ, indexed=True)

    assert coerce_filter_value(param, text) == expected


@pytest.mark.parametrize(
    "typ, text",
    [
        ("address", "0x123"),
        ("uint256", "ten"),
        ("bool", "maybe"),
        ("bytes1", "0xdead"),
        ("uint256[]", "1"),
    ],
)
def test_coerce_filter_value_rejects(typ: str, text: str) -> None:
    param = EventParameter(name="p", type=typ, indexed=True)

    with pytest.raises(QueryError):
        coerce_filter_value(param, text)


def test_coerce_argument_filters(catalog: SchemaCatalog) -> None:
    event = catalog.find("Transfer")

    out = coerce_argument_filters(event, {"from": [HOLDER_A], "to": [HOLDER_A, HOLDER_B]})

    assert out == {"from": HOLDER_A, "to": [HOLDER_A, HOLDER_B]}


def test_coerce_argument_filters_rejects_non_indexed(catalog: SchemaCatalog) -> None:
    with pytest.raises(QueryError):
        coerce_argument_filters(catalog.find("Transfer"), {"value": ["1"]})


def test_build_topics(catalog: SchemaCatalog) -> None:
    event = catalog.find("Transfer")

    topics = build_topics(event, {"to": [HOLDER_A, HOLDER_B]})

    assert topics == [
        "0x" + event.topic0.hex(),
        None,
        ["0x" + abi_encode(["address"], [HOLDER_A]).hex(), "0x" + abi_encode(["address"], [HOLDER_B]).hex()],
    ]


def test_build_topics_drops_trailing_wildcards(catalog: SchemaCatalog) -> None:
    event = catalog.find("Transfer")

    assert build_topics(event, {}) == ["0x" + event.topic0.hex()]


def test_build_topics_hashes_strings() -> None:
    event = parse_event_signatures("event Named(string indexed label) anonymous").default_event

    assert build_topics(event, {"label": ["vitalik"]}) == [["0x" + keccak(text="vitalik").hex()]]
