"""Ticker symbol helpers."""

from __future__ import annotations

import re

# 1-5 letters, optionally a share class suffix (BRK.B)
SYMBOL_PATTERN = re.compile(r"^[A-Z]{1,5}(\.[A-Z]{1,3})?$")


def normalize_symbol(symbol: str) -> str:
    """Trim and uppercase a symbol."""
    return symbol.strip().upper()


def is_valid_symbol(symbol: str) -> bool:
    """Check whether a symbol looks like a listed ticker.

    >>> is_valid_symbol("brk.b")
    True
    >>> is_valid_symbol("toolongsym")
    False
    """
    return bool(SYMBOL_PATTERN.match(symbol.upper()))


def parse_symbol_list(raw: str) -> list[str]:
    """Split a comma/semicolon/space separated list, dropping duplicates."""
    parts = [normalize_symbol(part) for part in re.split(r"[,;\s]+", raw)]
    return list(dict.fromkeys(part for part in parts if part))
