"""Async A/AAAA lookups backed by dnspython."""
from __future__ import annotations

import asyncio
from typing import List, Optional, Protocol, Sequence

import dns.asyncresolver
import dns.exception

from fqdnFeed.errors import LookupFailedError
from fqdnFeed.logging_config import get_logger
from fqdnFeed.resolver.models import AddressFamily, ResolvedRecord

logger = get_logger("resolver")


class FamilyResolver(Protocol):
    """DNS primitive consumed by the merger: FQDN + family -> records."""

    async def resolve_family(self, fqdn: str, family: AddressFamily) -> List[ResolvedRecord]:
        ...


class DNSResolver:
    """Resolve one address family of a FQDN, reporting the answer TTL."""

    def __init__(
        self,
        *,
        timeout: float = 2.0,
        nameservers: Optional[Sequence[str]] = None,
        resolver: Optional[dns.asyncresolver.Resolver] = None,
    ):
        self.timeout = timeout
        self._resolver = resolver or dns.asyncresolver.Resolver()
        self._resolver.lifetime = timeout
        if nameservers:
            self._resolver.nameservers = list(nameservers)

    async def resolve_family(self, fqdn: str, family: AddressFamily) -> List[ResolvedRecord]:
        try:
            answer = await asyncio.wait_for(
                self._resolver.resolve(fqdn, family.rdtype),
                timeout=self.timeout,
            )
        except (dns.exception.DNSException, asyncio.TimeoutError, OSError) as exc:
            raise LookupFailedError(fqdn, family.value, f"{type(exc).__name__}: {exc}") from exc

        ttl = answer.rrset.ttl if answer.rrset is not None else None
        records = [ResolvedRecord(address=rdata.to_text(), ttl=ttl) for rdata in answer]
        logger.debug(
            f"Resolved {len(records)} {family.rdtype} records for {fqdn}",
            extra={"fqdn": fqdn, "family": family.value, "count": len(records)},
        )
        return records
