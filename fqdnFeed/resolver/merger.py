"""Merge fresh DNS answers for one FQDN into the ledger cache."""
from __future__ import annotations

import asyncio
from typing import List

from fqdnFeed.logging_config import get_logger
from fqdnFeed.resolver.dns_lookup import FamilyResolver
from fqdnFeed.resolver.freshness import DEFAULT_TTL, normalize_ttl
from fqdnFeed.resolver.ledger import FqdnEntry, LedgerCache
from fqdnFeed.resolver.models import AddressFamily, ResolvedAddresses, ResolvedRecord
from fqdnFeed.store.base import BackingStore

logger = get_logger("resolver")


class ResolutionMerger:
    """Resolve a FQDN, fold the answers into its ledgers and persist when needed.

    The work for one FQDN runs under that FQDN's cache lock:

    1. load the entry from the store the first time the FQDN is seen by this
       process (an unreadable entry starts empty);
    2. look up A and AAAA concurrently, a failed family counting as no records;
    3. apply the update-worthy rule to a staged copy of the entry;
    4. if anything was update-worthy, write the whole staged entry, then commit
       it to the cache. A failed write raises and leaves the cache untouched;
    5. report the addresses still inside the span window.
    """

    def __init__(
        self,
        cache: LedgerCache,
        store: BackingStore,
        resolver: FamilyResolver,
        *,
        default_ttl: int = DEFAULT_TTL,
    ):
        self.cache = cache
        self.store = store
        self.resolver = resolver
        self.default_ttl = default_ttl

    async def _load_entry(self, fqdn: str) -> FqdnEntry:
        entry = self.cache.get(fqdn)
        if entry is None:
            document = await self.store.get_entry(fqdn)
            entry = FqdnEntry.from_document(fqdn, document)
            self.cache.set(entry)
            logger.debug(
                f"Loaded ledger for {fqdn} from store",
                extra={
                    "fqdn": fqdn,
                    "ipv4_count": len(entry.ipv4),
                    "ipv6_count": len(entry.ipv6),
                    "action": "ledger_load",
                },
            )
        return entry

    async def _lookup(self, fqdn: str, family: AddressFamily) -> List[ResolvedRecord]:
        try:
            return await self.resolver.resolve_family(fqdn, family)
        except Exception as exc:
            logger.debug(
                f"{family.rdtype} lookup for {fqdn} failed: {exc}",
                extra={"fqdn": fqdn, "family": family.value, "error_type": type(exc).__name__},
            )
            return []

    def _fold(
        self,
        staged: FqdnEntry,
        family: AddressFamily,
        records: List[ResolvedRecord],
        span: int,
        now: int,
    ) -> int:
        ledger = staged.ledger(family)
        observed = {}
        for record in records:
            observed[record.address] = now + normalize_ttl(record.ttl, self.default_ttl)
        return sum(
            1 for address, valid_until in observed.items()
            if ledger.observe(address, valid_until, span, now)
        )

    async def resolve(self, fqdn: str, span: int, now: int) -> ResolvedAddresses:
        async with self.cache.lock_for(fqdn):
            entry = await self._load_entry(fqdn)

            records4, records6 = await asyncio.gather(
                self._lookup(fqdn, AddressFamily.IPV4),
                self._lookup(fqdn, AddressFamily.IPV6),
            )

            staged = entry.copy()
            updated4 = self._fold(staged, AddressFamily.IPV4, records4, span, now)
            updated6 = self._fold(staged, AddressFamily.IPV6, records6, span, now)

            if updated4 + updated6 > 0:
                await self.store.put_entry(fqdn, staged.to_document())
                self.cache.set(staged)
                entry = staged

            logger.debug(
                f"Resolved {fqdn}",
                extra={
                    "fqdn": fqdn,
                    "ipv4_updated": updated4,
                    "ipv6_updated": updated6,
                    "span": span,
                },
            )
            return self.valid_addresses(entry, span, now)

    @staticmethod
    def valid_addresses(entry: FqdnEntry, span: int, now: int) -> ResolvedAddresses:
        ipv4 = entry.ipv4.valid(span, now)
        ipv6 = entry.ipv6.valid(span, now)
        return ResolvedAddresses(ipv4=ipv4 or None, ipv6=ipv6 or None)
