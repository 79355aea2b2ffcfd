import pytest

from event_parser.app.application.services.schema_catalog import parse_schema
from event_parser.app.domain.errors import SchemaError
from event_parser.app.infrastructure.presets import load_preset_text, preset_names


def test_presets() -> None:
    assert preset_names() == ["ERC20", "ERC721"]
    assert parse_schema(load_preset_text("ERC20")).names() == ["Transfer", "Approval"]

    erc721 = parse_schema(load_preset_text("erc721"))
    assert erc721.names() == ["Transfer", "Approval", "ApprovalForAll"]
    assert all(p.indexed for p in erc721.find("Transfer").parameters)


def test_unknown_preset() -> None:
    with pytest.raises(SchemaError):
        load_preset_text("ERC1155")
