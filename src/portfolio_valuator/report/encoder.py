"""JSON encoder for portfolio snapshots."""

from __future__ import annotations

import json

from ..processors import PortfolioSnapshot


def encode_snapshot(snapshot: PortfolioSnapshot, indent: int | None = 2) -> str:
    """Encode a snapshot as JSON.

    Balances are emitted as decimal strings so no precision is lost; USD
    figures stay numbers. Chains are sorted and the timestamp is ISO-8601.
    """
    return json.dumps(snapshot.to_dict(), indent=indent)
