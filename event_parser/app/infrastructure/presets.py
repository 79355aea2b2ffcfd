from __future__ import annotations

from pathlib import Path

from event_parser.app.domain.errors import SchemaError


# Resolve ABI path relative to the package, not the current working dir
_ABI_DIR = Path(__file__).resolve().parents[1] / "registry" / "abi"

PRESETS: dict[str, str] = {
    "ERC20": "ERC20.json",
    "ERC721": "ERC721.json",
}


def preset_names() -> list[str]:
    return list(PRESETS)


def load_preset_text(name: str) -> str:
    try:
        filename = PRESETS[name.upper()]
    except KeyError:
        raise SchemaError(f"Unknown interface preset {name!r}. Available presets: {preset_names()}")
    return (_ABI_DIR / filename).read_text(encoding="utf-8")