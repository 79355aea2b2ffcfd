from __future__ import annotations

import re
from typing import Final

from event_parser.app.domain.models import BlockRangeEndpoint


_LATEST: Final[str] = "latest"
_LATEST_OFFSET_RE = re.compile(r"^latest\s*([+-]\d+)$", re.IGNORECASE)
_SIGNED_INT_RE = re.compile(r"^([+-]?)(\d+)$")
_HEX_QUANTITY_RE = re.compile(r"^0x[0-9a-fA-F]+$")


def resolve_block_tag(text: str | None, chain_head: int) -> BlockRangeEndpoint:
    """
    Resolve a block range endpoint expression against the chain head.

    Grammar, first match wins:
      - ""                 -> chain_head
      - "latest"           -> chain_head (case-insensitive)
      - "latest-50"        -> chain_head - 50 (whitespace before the sign allowed)
      - "+N" / "-N"        -> chain_head +/- N
      - "N" or "0x.."      -> absolute height N
      - anything else      -> returned unchanged, e.g. "earliest", "pending"

    Negative results are not clamped; the chain client rejects them.
    """
    raw = (text or "").strip()
    if not raw:
        return chain_head

    if raw.lower() == _LATEST:
        return chain_head

    m = _LATEST_OFFSET_RE.match(raw)
    if m:
        return chain_head + int(m.group(1))

    m = _SIGNED_INT_RE.match(raw)
    if m:
        sign, digits = m.groups()
        n = int(digits, 10)
        if sign == "+":
            return chain_head + n
        if sign == "-":
            return chain_head - n
        return n

    if _HEX_QUANTITY_RE.match(raw):
        return int(raw, 16)

    # Unrecognized text is left for the chain client to interpret.
    return text or raw


def resolve_block_range(
    from_text: str | None,
    to_text: str | None,
    chain_head: int,
) -> tuple[BlockRangeEndpoint, BlockRangeEndpoint]:
    """Resolve both endpoints against the same head so the range stays consistent."""
    return resolve_block_tag(from_text, chain_head), resolve_block_tag(to_text, chain_head)
