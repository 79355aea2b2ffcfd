from __future__ import annotations

from typing import Any, Sequence

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError

from event_parser.app.domain.models import EventDefinition
from event_parser.app.domain.ports.out import EvmEventDecoder


class AbiLogDecoder(EvmEventDecoder):
    """
    ABI-based decoder for a single event definition.

    It:
    - computes topic0 = keccak("EventName(type1,type2,...)"),
    - decodes indexed args from topics (static types only, dynamic ones are hashes),
    - decodes non-indexed args from `data` with eth_abi,
    - returns values keyed by parameter name in declared order.
    """

    def __init__(self, *, event: EventDefinition) -> None:
        self._event = event
        self._topic0 = None if event.anonymous else event.topic0

        self._indexed = list(event.indexed_parameters)
        self._non_indexed = list(event.non_indexed_parameters)
        self._non_indexed_types = [p.abi_type for p in self._non_indexed]

    @property
    def topic0(self) -> bytes | None:
        return self._topic0

    @property
    def event_signature(self) -> str:
        return self._event.signature

    def decode(
        self,
        *,
        topics: Sequence[bytes],
        data: bytes,
    ) -> dict[str, Any] | None:
        topics = [bytes(t) for t in topics]

        # 1) must match expected event
        if self._topic0 is not None:
            if not topics or topics[0] != self._topic0:
                return None
            indexed_topics = topics[1:]
        else:
            indexed_topics = topics

        if len(indexed_topics) < len(self._indexed):
            return None

        # 2) indexed args from topics
        decoded: dict[str, Any] = {}
        for param, topic in zip(self._indexed, indexed_topics):
            decoded[param.name] = self._decode_topic(param.abi_type, param.is_dynamic, topic)

        # 3) non-indexed from data
        decoded.update(self._decode_non_indexed_data(data))

        # 4) declared order
        return {p.name: decoded[p.name] for p in self._event.parameters}

    # ---------------------------------------------------------------------
    # ABI helpers
    # ---------------------------------------------------------------------

    def _decode_topic(self, abi_type: str, is_dynamic: bool, topic: bytes) -> Any:
        if len(topic) != 32:
            raise ValueError(f"Expected 32 bytes topic, got len={len(topic)}")
        if is_dynamic:
            # Only the keccak hash of the value is stored on chain.
            return topic
        try:
            return abi_decode([abi_type], topic)[0]
        except DecodingError as e:
            raise ValueError(f"Cannot decode {abi_type} topic: {e}") from e

    def _decode_non_indexed_data(self, data: bytes) -> dict[str, Any]:
        if not self._non_indexed:
            return {}

        try:
            values = abi_decode(self._non_indexed_types, bytes(data))
        except DecodingError as e:
            raise ValueError(f"Cannot decode {self._event.signature} data: {e}") from e

        return {p.name: v for p, v in zip(self._non_indexed, values, strict=True)}
