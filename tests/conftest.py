import json
from unittest.mock import AsyncMock

import pytest

from event_parser.app.application.services.schema_catalog import parse_schema
from event_parser.app.domain.models import SchemaCatalog

from _helpers import TOKEN_ABI


@pytest.fixture
def token_abi_text() -> str:
    return json.dumps(TOKEN_ABI)


@pytest.fixture
def catalog(token_abi_text: str) -> SchemaCatalog:
    return parse_schema(token_abi_text)


@pytest.fixture
def mock_client():
    client = AsyncMock()
    client.get_chain_head = AsyncMock(return_value=1000)
    client.get_logs = AsyncMock(return_value=[])
    client.aclose = AsyncMock()
    return client
