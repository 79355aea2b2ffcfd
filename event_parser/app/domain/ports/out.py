from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

from event_parser.app.domain.models import BlockRangeEndpoint, EventDefinition, RawLog


class ChainClient(Protocol):
    """
    Port for reading historical logs from a chain node.

    Implementations own the transport (HTTP JSON-RPC, websocket, archive...)
    and are responsible for coercing literal filter values into the types
    declared by the event. Any failure should surface as QueryError.
    """

    async def get_chain_head(self) -> int:
        """Return the current block height (one round trip)."""
        ...

    async def get_logs(
        self,
        *,
        address: str,
        event: EventDefinition,
        from_block: BlockRangeEndpoint,
        to_block: BlockRangeEndpoint,
        arg_filters: Mapping[str, Sequence[str]],
    ) -> list[RawLog]:
        """
        Return logs of `event` emitted by `address` in the inclusive range.

        Order must match chain order (block number, then log index).
        """
        ...

    async def aclose(self) -> None:
        ...


class EvmEventDecoder(Protocol):
    def decode(
        self,
        *,
        topics: Sequence[bytes],
        data: bytes,
    ) -> dict[str, Any] | None:
        """
        Decode an EVM log (topics + data) into a dict of typed fields.

        Return:
          - dict[str, Any] keyed by parameter name, in declared order
          - None if the log is not the expected event
        """
        ...
