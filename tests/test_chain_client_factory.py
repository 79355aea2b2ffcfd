import pytest

from event_parser.app.domain.errors import QueryError
from event_parser.app.infrastructure.clients.web3_chain_client import Web3ChainClient, Web3RawChainClient
from event_parser.app.infrastructure.factories.chain_client_factory import chain_client_factory


def test_factory_backends() -> None:
    assert isinstance(chain_client_factory("http://localhost:8545", backend="web3"), Web3ChainClient)
    assert isinstance(chain_client_factory("https://rpc.example.org", backend="raw"), Web3RawChainClient)


@pytest.mark.parametrize("endpoint", [None, "", "   ", "ws://localhost:8546"])
def test_factory_rejects_endpoint(endpoint) -> None:
    with pytest.raises(QueryError):
        chain_client_factory(endpoint)


def test_factory_rejects_unknown_backend() -> None:
    with pytest.raises(QueryError, match="ipc"):
        chain_client_factory("http://localhost:8545", backend="ipc")
