"""Per-FQDN address ledgers and the process-wide ledger cache."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional

from fqdnFeed.resolver.freshness import is_update_worthy, select_valid
from fqdnFeed.resolver.models import AddressFamily


class AddressLedger:
    """Map of address -> valid-until epoch second for one address family.

    Entries are only ever added or overwritten, never removed.
    """

    def __init__(self, entries: Optional[Mapping[str, int]] = None):
        self.entries: Dict[str, int] = dict(entries or {})

    @classmethod
    def from_mapping(cls, raw: Any) -> "AddressLedger":
        """Build a ledger from stored data, skipping values that are not numbers."""
        ledger = cls()
        if not isinstance(raw, Mapping):
            return ledger
        for address, valid_until in raw.items():
            if isinstance(valid_until, bool):
                continue
            try:
                ledger.entries[str(address)] = int(valid_until)
            except (TypeError, ValueError):
                continue
        return ledger

    def observe(self, address: str, observed_valid_until: int, span: int, now: int) -> bool:
        return is_update_worthy(address, observed_valid_until, self.entries, span, now)

    def valid(self, span: int, now: int) -> List[str]:
        return select_valid(self.entries, span, now)

    def copy(self) -> "AddressLedger":
        return AddressLedger(self.entries)

    def to_document(self) -> Dict[str, int]:
        return dict(self.entries)

    def __contains__(self, address: object) -> bool:
        return address in self.entries

    def __getitem__(self, address: str) -> int:
        return self.entries[address]

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AddressLedger):
            return NotImplemented
        return self.entries == other.entries

    def __repr__(self) -> str:
        return f"AddressLedger({self.entries!r})"


@dataclass
class FqdnEntry:
    """IPv4 and IPv6 ledgers of one FQDN."""
    fqdn: str
    ipv4: AddressLedger = field(default_factory=AddressLedger)
    ipv6: AddressLedger = field(default_factory=AddressLedger)

    @classmethod
    def from_document(cls, fqdn: str, document: Any) -> "FqdnEntry":
        if not isinstance(document, Mapping):
            return cls(fqdn)
        return cls(
            fqdn,
            ipv4=AddressLedger.from_mapping(document.get("ipv4")),
            ipv6=AddressLedger.from_mapping(document.get("ipv6")),
        )

    def ledger(self, family: AddressFamily) -> AddressLedger:
        return self.ipv4 if family is AddressFamily.IPV4 else self.ipv6

    def copy(self) -> "FqdnEntry":
        return FqdnEntry(self.fqdn, ipv4=self.ipv4.copy(), ipv6=self.ipv6.copy())

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.fqdn,
            "ipv4": self.ipv4.to_document(),
            "ipv6": self.ipv6.to_document(),
        }


class LedgerCache:
    """Process-wide FQDN -> FqdnEntry cache.

    Construct one at process start and hand it to every service; entries live
    as long as the cache does. Each FQDN gets its own asyncio lock so that the
    first-use store fetch happens exactly once.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, FqdnEntry] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock_for(self, fqdn: str) -> asyncio.Lock:
        lock = self._locks.get(fqdn)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[fqdn] = lock
        return lock

    def get(self, fqdn: str) -> Optional[FqdnEntry]:
        return self._entries.get(fqdn)

    def set(self, entry: FqdnEntry) -> None:
        self._entries[entry.fqdn] = entry

    def __contains__(self, fqdn: object) -> bool:
        return fqdn in self._entries

    def __len__(self) -> int:
        return len(self._entries)
