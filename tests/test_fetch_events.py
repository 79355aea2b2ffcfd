import json
from typing import Any

import pytest
from eth_abi import encode as abi_encode
from web3.datastructures import AttributeDict

from event_parser.app.application.services.fetch_events import decode_log, fetch_events, normalize_value
from event_parser.app.application.services.schema_catalog import parse_schema
from event_parser.app.domain.errors import QueryError, SelectionError
from event_parser.app.domain.models import RawLog, SchemaCatalog

from _helpers import CONTRACT, HOLDER_A, HOLDER_B


def _transfer_log(block: int, value: int, log_index: int = 0) -> RawLog:
    return RawLog(
        block_number=block,
        transaction_hash=f"0x{block:064x}",
        log_index=log_index,
        args={"value": value, "to": HOLDER_B, "from": HOLDER_A},
    )


@pytest.mark.asyncio
async def test_fetch_events_decodes_in_declared_order(catalog: SchemaCatalog, mock_client: Any) -> None:
    mock_client.get_logs.return_value = [_transfer_log(10, 10**30)]

    events = await fetch_events(
        catalog=catalog,
        event_name="Transfer",
        from_block="latest-50",
        to_block="",
        raw_filters={},
        address=CONTRACT,
        client=mock_client,
    )

    assert len(events) == 1
    event = events[0]
    assert event.block_number == 10
    assert event.transaction_hash == f"0x{10:064x}"
    assert event.arguments == {"from": HOLDER_A, "to": HOLDER_B, "value": "1000000000000000000000000000000"}
    assert list(event.arguments) == ["from", "to", "value"]


@pytest.mark.asyncio
async def test_fetch_events_resolves_range_with_single_head(catalog: SchemaCatalog, mock_client: Any) -> None:
    await fetch_events(
        catalog=catalog,
        event_name="CooldownStarted",
        from_block="-100",
        to_block="latest",
        raw_filters={"holder": f"{HOLDER_A}, {HOLDER_B}", "assets": "5"},
        address=CONTRACT.lower(),
        client=mock_client,
    )

    mock_client.get_chain_head.assert_awaited_once()
    mock_client.get_logs.assert_awaited_once()
    kwargs = mock_client.get_logs.call_args.kwargs
    assert kwargs["from_block"] == 900
    assert kwargs["to_block"] == 1000
    assert kwargs["arg_filters"] == {"holder": [HOLDER_A, HOLDER_B]}
    assert kwargs["event"] is catalog.find("CooldownStarted")
    assert kwargs["address"] == CONTRACT


@pytest.mark.asyncio
async def test_fetch_events_passes_tags_through(catalog: SchemaCatalog, mock_client: Any) -> None:
    await fetch_events(
        catalog=catalog,
        event_name="Transfer",
        from_block="earliest",
        to_block="12345",
        raw_filters={},
        address=CONTRACT,
        client=mock_client,
    )

    kwargs = mock_client.get_logs.call_args.kwargs
    assert (kwargs["from_block"], kwargs["to_block"]) == ("earliest", 12345)


@pytest.mark.asyncio
async def test_fetch_events_keeps_client_order_and_duplicates(catalog: SchemaCatalog, mock_client: Any) -> None:
    logs = [_transfer_log(30, 1), _transfer_log(10, 2), _transfer_log(10, 2)]
    mock_client.get_logs.return_value = logs

    events = await fetch_events(
        catalog=catalog,
        event_name="Transfer",
        from_block="",
        to_block="",
        raw_filters={},
        address=CONTRACT,
        client=mock_client,
    )

    assert [e.block_number for e in events] == [30, 10, 10]


@pytest.mark.asyncio
async def test_fetch_events_unknown_event(catalog: SchemaCatalog, mock_client: Any) -> None:
    with pytest.raises(SelectionError):
        await fetch_events(
            catalog=catalog,
            event_name="Approval",
            from_block="",
            to_block="",
            raw_filters={},
            address=CONTRACT,
            client=mock_client,
        )
    mock_client.get_chain_head.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("address", ["", "0x123", "not-an-address"])
async def test_fetch_events_rejects_malformed_address(catalog: SchemaCatalog, mock_client: Any, address: str) -> None:
    with pytest.raises(QueryError):
        await fetch_events(
            catalog=catalog,
            event_name="Transfer",
            from_block="",
            to_block="",
            raw_filters={},
            address=address,
            client=mock_client,
        )
    mock_client.get_logs.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_events_wraps_transport_failures(catalog: SchemaCatalog, mock_client: Any) -> None:
    mock_client.get_logs.side_effect = ConnectionError("connection refused")

    with pytest.raises(QueryError) as exc_info:
        await fetch_events(
            catalog=catalog,
            event_name="Transfer",
            from_block="",
            to_block="",
            raw_filters={},
            address=CONTRACT,
            client=mock_client,
        )
    assert "connection refused" in exc_info.value.detail


@pytest.mark.asyncio
async def test_fetch_events_decodes_raw_logs(catalog: SchemaCatalog, mock_client: Any) -> None:
    event = catalog.find("CooldownStarted")
    raw = RawLog(
        block_number=77,
        transaction_hash="0xfeed",
        log_index=3,
        topics=(event.topic0, abi_encode(["address"], [HOLDER_A])),
        data=abi_encode(["uint256", "uint256"], [10**30, 7]),
    )
    mock_client.get_logs.return_value = [raw]

    events = await fetch_events(
        catalog=catalog,
        event_name="CooldownStarted",
        from_block="",
        to_block="",
        raw_filters={},
        address=CONTRACT,
        client=mock_client,
    )

    assert events[0].arguments == {"holder": HOLDER_A, "assets": str(10**30), "shares": "7"}
    assert events[0].log_index == 3


def test_decode_log_positional_args(catalog: SchemaCatalog) -> None:
    event = catalog.find("Transfer")

    decoded = decode_log(event, RawLog(args=(HOLDER_A, HOLDER_B, 5)))

    assert decoded.arguments == {"from": HOLDER_A, "to": HOLDER_B, "value": "5"}
    assert decoded.block_number is None


def test_decode_log_rejects_mismatched_args(catalog: SchemaCatalog) -> None:
    event = catalog.find("Transfer")

    with pytest.raises(QueryError):
        decode_log(event, RawLog(args={"from": HOLDER_A}))
    with pytest.raises(QueryError):
        decode_log(event, RawLog(args=(HOLDER_A,)))


def test_decode_log_rejects_foreign_topic0(catalog: SchemaCatalog) -> None:
    event = catalog.find("CooldownStarted")
    raw = RawLog(topics=(b"\x00" * 32, b"\x00" * 32), data=abi_encode(["uint256", "uint256"], [1, 2]))

    with pytest.raises(QueryError):
        decode_log(event, raw)


def test_normalize_value() -> None:
    assert normalize_value(10**30) == "1000000000000000000000000000000"
    assert normalize_value(-5) == "-5"
    assert normalize_value(True) is True
    assert normalize_value(b"\x01") == b"\x01"
    assert normalize_value(HOLDER_A) == HOLDER_A
    assert normalize_value((1, [2, False], "x")) == ("1", ["2", False], "x")
    assert normalize_value({"a": (1, {"b": 2})}) == {"a": ("1", {"b": "2"})}


def test_decode_log_stringifies_struct_members() -> None:
    event = parse_schema(
        json.dumps(
            [
                {
                    "type": "event",
                    "name": "OrderFilled",
                    "inputs": [
                        {
                            "name": "order",
                            "type": "tuple",
                            "components": [
                                {"name": "id", "type": "uint256"},
                                {"name": "maker", "type": "address"},
                            ],
                        },
                        {"name": "fills", "type": "uint64[]"},
                    ],
                }
            ]
        )
    ).default_event
    # web3 hands tuple arguments back as AttributeDict
    args = AttributeDict({"order": AttributeDict({"id": 10**30, "maker": HOLDER_A}), "fills": [1, 2]})

    decoded = decode_log(event, RawLog(block_number=1, transaction_hash="0x01", log_index=0, args=args))

    assert decoded.arguments == {
        "order": {"id": "1000000000000000000000000000000", "maker": HOLDER_A},
        "fills": ["1", "2"],
    }
