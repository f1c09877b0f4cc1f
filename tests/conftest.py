"""
Shared fixtures: a scripted DNS resolver, a counting store and a fixed clock.
"""
import asyncio
import os

# Keep test runs from writing logs/fqdnfeed.jsonl
os.environ.setdefault("FQDNFEED_LOG_FILE", "")
os.environ.setdefault("FQDNFEED_LOG_LEVEL", "WARNING")

from typing import Dict, List, Tuple

import pytest

from fqdnFeed.errors import LookupFailedError, StoreWriteError
from fqdnFeed.resolver.ledger import LedgerCache
from fqdnFeed.resolver.merger import ResolutionMerger
from fqdnFeed.resolver.models import AddressFamily, ResolvedRecord
from fqdnFeed.store.memory import MemoryStore

NOW = 1_700_000_000


class FakeResolver:
    """Returns scripted answers per (fqdn, family); a family can fail, a fqdn can lag."""

    def __init__(self):
        self.answers: Dict[Tuple[str, AddressFamily], List[ResolvedRecord]] = {}
        self.failing: set = set()
        self.calls: List[Tuple[str, AddressFamily]] = []
        self.delays: Dict[str, float] = {}

    def set(self, fqdn: str, family: AddressFamily, records) -> None:
        self.answers[(fqdn, family)] = [ResolvedRecord(address=a, ttl=t) for a, t in records]

    def fail(self, fqdn: str, family: AddressFamily) -> None:
        self.failing.add((fqdn, family))

    async def resolve_family(self, fqdn: str, family: AddressFamily) -> List[ResolvedRecord]:
        self.calls.append((fqdn, family))
        if fqdn in self.delays:
            await asyncio.sleep(self.delays[fqdn])
        if (fqdn, family) in self.failing:
            raise LookupFailedError(fqdn, family.value, "SERVFAIL")
        return list(self.answers.get((fqdn, family), []))


class CountingStore(MemoryStore):
    """MemoryStore that counts entry reads/writes and can refuse or delay them."""

    def __init__(self):
        super().__init__()
        self.entry_reads: Dict[str, int] = {}
        self.entry_writes: List[Tuple[str, dict]] = []
        self.fail_writes = False
        self.write_delay = 0.0
        self.config_delay = 0.0

    async def get_entry(self, fqdn):
        self.entry_reads[fqdn] = self.entry_reads.get(fqdn, 0) + 1
        return await super().get_entry(fqdn)

    async def put_entry(self, fqdn, document):
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        if self.fail_writes:
            raise StoreWriteError(fqdn, "table unavailable")
        self.entry_writes.append((fqdn, document))
        await super().put_entry(fqdn, document)

    async def get_config(self, config_key):
        if self.config_delay:
            await asyncio.sleep(self.config_delay)
        return await super().get_config(config_key)


class FixedClock:
    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def store():
    return CountingStore()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def cache():
    return LedgerCache()


@pytest.fixture
def merger(cache, store, resolver):
    return ResolutionMerger(cache, store, resolver)
