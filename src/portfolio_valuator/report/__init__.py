from __future__ import annotations

from .encoder import encode_snapshot
from .formatter import format_snapshot_table

__all__ = [
    "encode_snapshot",
    "format_snapshot_table",
]
