from __future__ import annotations

from typing import Callable, Dict

from web3 import AsyncWeb3

from event_parser.app.config import settings
from event_parser.app.domain.errors import QueryError
from event_parser.app.domain.ports.out import ChainClient
from event_parser.app.infrastructure.clients.web3_chain_client import (
    Web3ChainClient,
    Web3RawChainClient,
)


ChainClientFactory = Callable[[str], ChainClient]


def _make_async_web3(rpc_endpoint: str) -> AsyncWeb3:
    return AsyncWeb3(
        AsyncWeb3.AsyncHTTPProvider(
            rpc_endpoint,
            request_kwargs={"timeout": settings.request_timeout},
        )
    )


_CHAIN_CLIENT_REGISTRY: Dict[str, ChainClientFactory] = {
    "web3": lambda rpc_endpoint: Web3ChainClient(w3=_make_async_web3(rpc_endpoint)),
    "raw": lambda rpc_endpoint: Web3RawChainClient(w3=_make_async_web3(rpc_endpoint)),
}


def chain_client_factory(
    rpc_endpoint: str | None,
    *,
    backend: str | None = None,
) -> ChainClient:
    """
    Create a chain client for the given endpoint and backend.

    Backends:
    - "web3": contract event queries, logs decoded by web3,
    - "raw":  plain eth_getLogs, logs decoded by the ABI decoder.
    """
    endpoint = (rpc_endpoint or "").strip()
    if not endpoint:
        raise QueryError("RPC endpoint is required")
    if not endpoint.startswith(("http://", "https://")):
        raise QueryError(f"Unsupported RPC endpoint {endpoint!r}: expected an http(s) URL")

    name = backend or settings.chain_client_backend
    try:
        factory = _CHAIN_CLIENT_REGISTRY[name]
    except KeyError:
        raise QueryError(
            f"Unsupported chain client backend: {name!r}. Available backends: {list(_CHAIN_CLIENT_REGISTRY)}"
        )
    return factory(endpoint)
