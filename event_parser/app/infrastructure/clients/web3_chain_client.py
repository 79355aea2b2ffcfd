from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from web3 import AsyncWeb3, Web3
from web3.exceptions import Web3Exception

from event_parser.app.domain.errors import QueryError
from event_parser.app.domain.models import BlockRangeEndpoint, EventDefinition, RawLog
from event_parser.app.domain.ports.out import ChainClient
from event_parser.app.infrastructure.clients.filter_values import build_topics, coerce_argument_filters


logger = logging.getLogger(__name__)


class Web3ChainClient(ChainClient):
    """
    Chain client using AsyncWeb3 contract events.

    web3 builds the topic filter from `argument_filters` and decodes every log
    against the event ABI, so the returned RawLog objects carry `args`.
    """

    def __init__(self, *, w3: AsyncWeb3) -> None:
        self._w3 = w3

    async def get_chain_head(self) -> int:
        try:
            return int(await self._w3.eth.block_number)
        except Web3Exception as e:
            raise QueryError(f"eth_blockNumber RPC error: {e}") from e

    async def get_logs(
        self,
        *,
        address: str,
        event: EventDefinition,
        from_block: BlockRangeEndpoint,
        to_block: BlockRangeEndpoint,
        arg_filters: Mapping[str, Sequence[str]],
    ) -> list[RawLog]:
        argument_filters = coerce_argument_filters(event, arg_filters)
        contract = self._w3.eth.contract(address=address, abi=[web3_event_abi(event)])
        contract_event = getattr(contract.events, event.name)

        try:
            logs = await contract_event.get_logs(
                argument_filters=argument_filters or None,
                from_block=from_block,
                to_block=to_block,
            )
        except Web3Exception as e:
            raise QueryError(f"eth_getLogs RPC error: {e}") from e

        logger.debug("eth_getLogs returned %s logs for %s", len(logs), event.name)
        return [
            RawLog(
                block_number=log.get("blockNumber"),
                transaction_hash=_hex_or_none(log.get("transactionHash")),
                log_index=log.get("logIndex"),
                args=dict(log["args"]),
            )
            for log in logs
        ]

    async def aclose(self) -> None:
        await _disconnect(self._w3)


class Web3RawChainClient(ChainClient):
    """
    Chain client issuing plain eth_getLogs calls.

    The topic filter is encoded locally and logs are returned undecoded; the
    query pipeline decodes them with the ABI decoder.
    """

    def __init__(self, *, w3: AsyncWeb3) -> None:
        self._w3 = w3

    async def get_chain_head(self) -> int:
        try:
            return int(await self._w3.eth.block_number)
        except Web3Exception as e:
            raise QueryError(f"eth_blockNumber RPC error: {e}") from e

    async def get_logs(
        self,
        *,
        address: str,
        event: EventDefinition,
        from_block: BlockRangeEndpoint,
        to_block: BlockRangeEndpoint,
        arg_filters: Mapping[str, Sequence[str]],
    ) -> list[RawLog]:
        filter_params: dict[str, Any] = {
            "address": address,
            "fromBlock": from_block,
            "toBlock": to_block,
            "topics": build_topics(event, arg_filters),
        }

        try:
            logs = await self._w3.eth.get_logs(filter_params)
        except Web3Exception as e:
            raise QueryError(f"eth_getLogs RPC error: {e}") from e

        logger.debug("eth_getLogs returned %s raw logs for %s", len(logs), event.name)
        return [
            RawLog(
                block_number=log.get("blockNumber"),
                transaction_hash=_hex_or_none(log.get("transactionHash")),
                log_index=log.get("logIndex"),
                topics=tuple(bytes(t) for t in log.get("topics", [])),
                data=bytes(log.get("data", b"")),
            )
            for log in logs
        ]

    async def aclose(self) -> None:
        await _disconnect(self._w3)


def web3_event_abi(event: EventDefinition) -> dict[str, Any]:
    """Event ABI entry with defaulted parameter names, as web3 expects it."""
    inputs = list(event.abi.get("inputs") or [])
    named_inputs = []
    for param in event.parameters:
        entry = dict(inputs[param.position]) if param.position < len(inputs) else {}
        entry.update({"name": param.name, "type": param.type, "indexed": param.indexed})
        named_inputs.append(entry)
    return {
        "type": "event",
        "name": event.name,
        "anonymous": event.anonymous,
        "inputs": named_inputs,
    }


def _hex_or_none(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return Web3.to_hex(value)


async def _disconnect(w3: AsyncWeb3) -> None:
    disconnect = getattr(w3.provider, "disconnect", None)
    if disconnect is not None:
        await disconnect()
