from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from eth_utils import is_address, to_checksum_address

from event_parser.app.application.services.block_tags import resolve_block_range
from event_parser.app.application.services.filters import build_filters
from event_parser.app.domain.errors import EventParserError, QueryError
from event_parser.app.domain.models import DecodedEvent, EventDefinition, RawLog, SchemaCatalog
from event_parser.app.domain.ports.out import ChainClient, EvmEventDecoder
from event_parser.app.infrastructure.decoders.abi_log_decoder import AbiLogDecoder


logger = logging.getLogger(__name__)

DecoderFactory = Callable[[EventDefinition], EvmEventDecoder]


def _default_decoder_factory(event: EventDefinition) -> EvmEventDecoder:
    return AbiLogDecoder(event=event)


async def fetch_events(
    *,
    catalog: SchemaCatalog,
    event_name: str,
    from_block: str | None,
    to_block: str | None,
    raw_filters: Mapping[str, str | None],
    address: str,
    client: ChainClient,
    decoder_factory: DecoderFactory = _default_decoder_factory,
) -> list[DecodedEvent]:
    """
    Application-level use case: query and decode the logs of one event.

    Steps:
      1. select the event definition by name,
      2. read the chain head once,
      3. resolve both block endpoints against that head,
      4. build indexed argument filters,
      5. fetch logs in a single range query,
      6. decode every log in declared parameter order.

    Either the full ordered result is returned or an EventParserError is
    raised; nothing is retried.
    """
    event = catalog.find(event_name)
    checksum_address = _checksum_address(address)

    chain_head = await _call_client("eth_blockNumber", client.get_chain_head())
    resolved_from, resolved_to = resolve_block_range(from_block, to_block, chain_head)
    filters = build_filters(event, raw_filters)

    logger.info(
        "Fetching events: event=%s, address=%s, blocks=[%s, %s], head=%s, filters=%s",
        event.signature,
        checksum_address,
        resolved_from,
        resolved_to,
        chain_head,
        filters,
    )

    raw_logs = await _call_client(
        "eth_getLogs",
        client.get_logs(
            address=checksum_address,
            event=event,
            from_block=resolved_from,
            to_block=resolved_to,
            arg_filters=filters,
        ),
    )

    decoder: EvmEventDecoder | None = None
    decoded: list[DecodedEvent] = []
    for raw in raw_logs:
        if raw.args is None and decoder is None:
            decoder = decoder_factory(event)
        decoded.append(decode_log(event, raw, decoder))

    logger.info("Fetched events: event=%s, count=%s", event.name, len(decoded))
    return decoded


def decode_log(
    event: EventDefinition,
    raw: RawLog,
    decoder: EvmEventDecoder | None = None,
) -> DecodedEvent:
    """
    Build a DecodedEvent from a raw log.

    Pre-decoded args (mapping or positional sequence) are used as given;
    otherwise the payload is decoded from topics/data with `decoder`.
    """
    if raw.args is not None:
        values = _values_from_args(event, raw.args)
    else:
        if decoder is None:
            decoder = AbiLogDecoder(event=event)
        try:
            by_name = decoder.decode(topics=raw.topics, data=raw.data)
        except ValueError as e:
            raise QueryError(f"Cannot decode log {raw.transaction_hash}#{raw.log_index}: {e}") from e
        if by_name is None:
            raise QueryError(
                f"Log {raw.transaction_hash}#{raw.log_index} does not match event {event.signature}"
            )
        values = [by_name[p.name] for p in event.parameters]

    arguments = {p.name: normalize_value(v) for p, v in zip(event.parameters, values)}
    return DecodedEvent(
        block_number=raw.block_number,
        transaction_hash=raw.transaction_hash,
        arguments=arguments,
        log_index=raw.log_index,
    )


def normalize_value(value: Any) -> Any:
    """Render integers as decimal strings so no precision is lost downstream, including inside structs."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Mapping):
        return {k: normalize_value(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return tuple(normalize_value(v) for v in value)
    if isinstance(value, list):
        return [normalize_value(v) for v in value]
    return value


def _values_from_args(event: EventDefinition, args: Mapping[str, Any] | Sequence[Any]) -> list[Any]:
    if isinstance(args, Mapping):
        missing = [p.name for p in event.parameters if p.name not in args]
        if missing:
            raise QueryError(f"Log of {event.name} is missing arguments: {missing}")
        return [args[p.name] for p in event.parameters]

    if len(args) != len(event.parameters):
        raise QueryError(
            f"Log of {event.name} has {len(args)} arguments, expected {len(event.parameters)}"
        )
    return list(args)


def _checksum_address(address: str) -> str:
    candidate = (address or "").strip()
    if not is_address(candidate):
        raise QueryError(f"Invalid contract address: {address!r}")
    return to_checksum_address(candidate)


async def _call_client(method: str, awaitable: Any) -> Any:
    try:
        return await awaitable
    except EventParserError:
        raise
    except Exception as e:
        raise QueryError(f"{method} failed: {e}") from e
