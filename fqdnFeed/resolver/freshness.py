"""Span-window freshness policy over an address ledger.

Two decisions are made per address:

* ``is_update_worthy`` - should this observation be written back? True for an
  address never seen before, or one whose stored valid-until has fallen out of
  the trailing ``span`` window. Only then is the ledger entry overwritten.
* ``select_valid`` - is the address reportable? True while its stored
  valid-until is still inside ``(now - span, ...)``, even when its DNS TTL has
  long expired.
"""
from __future__ import annotations

import math
from typing import Any, List, MutableMapping, Optional

DEFAULT_SPAN = 86400
DEFAULT_TTL = 60


def is_update_worthy(
    address: str,
    observed_valid_until: int,
    ledger: MutableMapping[str, int],
    span: int,
    now: int,
) -> bool:
    """Record ``observed_valid_until`` when the address is new or out of window."""
    stored = ledger.get(address)
    if stored is None or stored < now - span:
        ledger[address] = observed_valid_until
        return True
    return False


def select_valid(ledger: MutableMapping[str, int], span: int, now: int) -> List[str]:
    """Addresses with ``valid_until > now - span``, in ledger order."""
    horizon = now - span
    return [address for address, valid_until in ledger.items() if valid_until > horizon]


def _as_int(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return int(value)


def normalize_ttl(raw: Any, default: int = DEFAULT_TTL) -> int:
    """TTL in seconds; missing, non-numeric or zero values become ``default``.

    Fractional values are truncated before the zero check, so ``0.5`` also
    becomes ``default``.
    """
    ttl = _as_int(raw)
    if not ttl:
        return default
    return ttl


def parse_span(raw: Any, default: int = DEFAULT_SPAN) -> int:
    """Span query value in seconds; absent, non-numeric or zero gives ``default``.

    Like ``normalize_ttl``, fractions are truncated before the zero check.
    """
    if raw is None:
        return default
    span = _as_int(raw.strip() if isinstance(raw, str) else raw)
    if not span:
        return default
    return span
