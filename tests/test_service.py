import asyncio
import copy

import pytest

from fqdnFeed.errors import ConfigNotFoundError, InvalidConfigError, StoreWriteError
from fqdnFeed.resolver.ledger import FqdnEntry, LedgerCache
from fqdnFeed.resolver.merger import ResolutionMerger
from fqdnFeed.resolver.models import AddressFamily
from fqdnFeed.resolver.service import ResolutionService, ServiceRegistry
from fqdnFeed.store.base import config_id

from conftest import NOW, CountingStore

V4 = AddressFamily.IPV4
V6 = AddressFamily.IPV6


class RefusingStore(CountingStore):
    def __init__(self, refused):
        super().__init__()
        self.refused = refused

    async def put_entry(self, fqdn, document):
        if fqdn == self.refused:
            raise StoreWriteError(fqdn, "table unavailable")
        await super().put_entry(fqdn, document)


@pytest.fixture
def registry(store, resolver, clock):
    return ServiceRegistry(store, resolver, clock=clock)


def test_single_request_leaf(merger, resolver, clock):
    resolver.set("example.com", V4, [("93.184.216.34", 300)])
    service = ResolutionService("cfg:t", {"A": {"fqdn": "example.com"}}, merger, clock=clock)

    document = asyncio.run(service.process(86400))

    assert document == {"A": {"ipv4": ["93.184.216.34"]}}
    assert service.response_buffer.ipv4 == ["93.184.216.34"]
    assert service.response_buffer.ipv6 == []


def test_second_pass_ten_seconds_later_is_identical_without_write(merger, store, resolver, clock):
    resolver.set("example.com", V4, [("93.184.216.34", 300)])
    service = ResolutionService("cfg:t", {"A": {"fqdn": "example.com"}}, merger, clock=clock)

    async def scenario():
        first = await service.process(86400)
        clock.advance(10)
        second = await service.process(86400)
        return first, second

    first, second = asyncio.run(scenario())

    assert first == second
    assert len(store.entry_writes) == 1
    assert service.response_buffer.ipv4 == ["93.184.216.34"]


def test_stale_address_excluded_with_one_second_span(cache, store, resolver, clock):
    cache.set(FqdnEntry.from_document("example.com", {"ipv4": {}, "ipv6": {"2001:db8::9": NOW - 10}}))
    service = ResolutionService(
        "cfg:t", {"A": {"fqdn": "example.com"}}, ResolutionMerger(cache, store, resolver), clock=clock
    )

    document = asyncio.run(service.process(1))

    assert document == {"A": {}}
    assert service.response_buffer.ipv6 == []


def test_static_note_passes_through(merger, resolver, clock):
    resolver.set("example.com", V4, [("93.184.216.34", 300)])
    template = {"A": {"fqdn": "example.com"}, "note": "static", "B": {"note": "static"}}
    service = ResolutionService("cfg:t", template, merger, clock=clock)

    document = asyncio.run(service.process(86400))

    assert document == {"A": {"ipv4": ["93.184.216.34"]}, "note": "static", "B": {"note": "static"}}


def test_buffer_reset_between_passes(merger, resolver, clock):
    resolver.set("example.com", V4, [("10.0.0.1", 300)])
    service = ResolutionService("cfg:t", [{"fqdn": "example.com"}], merger, clock=clock)

    async def scenario():
        await service.process(86400)
        await service.process(86400)

    asyncio.run(scenario())

    assert service.response_buffer.ipv4 == ["10.0.0.1"]


def test_process_never_mutates_template(merger, resolver, clock):
    resolver.set("example.com", V4, [("10.0.0.1", 300)])
    template = {"A": {"fqdn": "example.com"}, "list": [{"fqdn": "example.com"}]}
    pristine = copy.deepcopy(template)
    service = ResolutionService("cfg:t", template, merger, clock=clock)

    async def scenario():
        for _ in range(3):
            await service.process(86400)

    asyncio.run(scenario())

    assert service.service_config == pristine


def test_clock_read_once_per_pass(merger, resolver):
    reads = []

    def clock():
        reads.append(1)
        return NOW + len(reads) * 1000

    resolver.set("a.example", V4, [("10.0.0.1", 300)])
    resolver.set("b.example", V4, [("10.0.0.2", 300)])
    service = ResolutionService("cfg:t", {"a": {"fqdn": "a.example"}, "b": {"fqdn": "b.example"}}, merger, clock=clock)

    asyncio.run(service.process(86400))

    assert len(reads) == 1
    assert merger.cache.get("a.example").ipv4["10.0.0.1"] == merger.cache.get("b.example").ipv4["10.0.0.2"]


def test_write_failure_fails_the_pass(merger, store, resolver, clock):
    resolver.set("example.com", V4, [("10.0.0.1", 300)])
    store.fail_writes = True
    service = ResolutionService("cfg:t", {"A": {"fqdn": "example.com"}}, merger, clock=clock)

    with pytest.raises(StoreWriteError):
        asyncio.run(service.process(86400))


def test_write_failure_cancels_sibling_resolutions(cache, resolver, clock):
    store = RefusingStore("bad.example.com")
    resolver.set("bad.example.com", V4, [("10.0.0.1", 300)])
    resolver.set("slow.example.com", V4, [("10.0.0.2", 300)])
    resolver.delays["slow.example.com"] = 0.05
    template = {"a": {"fqdn": "bad.example.com"}, "b": {"fqdn": "slow.example.com"}}
    service = ResolutionService("cfg:t", template, ResolutionMerger(cache, store, resolver), clock=clock)

    async def scenario():
        with pytest.raises(StoreWriteError):
            await service.run(86400)
        await asyncio.sleep(0.2)

    asyncio.run(scenario())

    assert store.entry_writes == []
    assert len(cache.get("bad.example.com").ipv4) == 0
    slow = cache.get("slow.example.com")
    assert slow is None or len(slow.ipv4) == 0
    assert service.response_buffer.ipv4 == []


def test_replace_config_keeps_ledger(merger, resolver, clock):
    resolver.set("example.com", V4, [("10.0.0.1", 300)])
    service = ResolutionService("cfg:t", {"A": {"fqdn": "example.com"}}, merger, clock=clock)

    asyncio.run(service.process(86400))
    service.replace_config({"B": {"fqdn": "example.com"}})

    assert "example.com" in merger.cache
    assert asyncio.run(service.process(86400)) == {"B": {"ipv4": ["10.0.0.1"]}}


def test_registry_missing_config(registry):
    with pytest.raises(ConfigNotFoundError):
        asyncio.run(registry.get_service(config_id("missing")))


def test_registry_rejects_non_object_before_store_write(registry, store):
    with pytest.raises(InvalidConfigError):
        asyncio.run(registry.replace_config_document(config_id("feed"), ["not", "an", "object"]))
    with pytest.raises(ConfigNotFoundError):
        asyncio.run(store.get_config(config_id("feed")))


def test_registry_replace_then_process(registry, resolver):
    resolver.set("example.com", V4, [("10.0.0.1", 300)])

    async def scenario():
        echoed = await registry.replace_config_document(config_id("feed"), {"A": {"fqdn": "example.com"}})
        service = await registry.get_service(config_id("feed"))
        first = await service.process(86400)
        await registry.replace_config_document(config_id("feed"), {"Z": {"fqdn": "example.com"}})
        again = await registry.get_service(config_id("feed"))
        second = await again.process(86400)
        return echoed, service, again, first, second

    echoed, service, again, first, second = asyncio.run(scenario())

    assert echoed == {"A": {"fqdn": "example.com"}}
    assert service is again
    assert first == {"A": {"ipv4": ["10.0.0.1"]}}
    assert second == {"Z": {"ipv4": ["10.0.0.1"]}}


def test_registry_loads_stored_config_once(registry, store):
    asyncio.run(store.put_config(config_id("feed"), {"k": "v"}))

    async def scenario():
        first = await registry.get_service(config_id("feed"))
        await store.put_config(config_id("feed"), {"k": "changed"})
        second = await registry.get_service(config_id("feed"))
        return first, second

    first, second = asyncio.run(scenario())

    assert first is second
    assert second.service_config == {"k": "v"}
    assert asyncio.run(registry.get_config_document(config_id("feed"))) == {"k": "changed"}


def test_registries_share_nothing_unless_given_a_cache(store, resolver):
    shared = LedgerCache()
    one = ServiceRegistry(store, resolver, cache=shared)
    two = ServiceRegistry(store, resolver, cache=shared)
    three = ServiceRegistry(store, resolver)
    assert one.cache is two.cache
    assert three.cache is not shared
