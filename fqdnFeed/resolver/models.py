"""Data shapes shared by the resolver components."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class AddressFamily(str, Enum):
    """Address family of a ledger, named as it appears in documents."""
    IPV4 = "ipv4"
    IPV6 = "ipv6"

    @property
    def rdtype(self) -> str:
        return "A" if self is AddressFamily.IPV4 else "AAAA"


class ResolvedRecord(BaseModel):
    """One (address, ttl) pair returned by the DNS primitive.

    ``ttl`` is kept raw; it may be missing or unparseable and is normalized
    by the freshness policy.
    """
    address: str
    ttl: Optional[Any] = None

    model_config = ConfigDict(extra="ignore")


class ResolvedAddresses(BaseModel):
    """Per-FQDN replacement for a request leaf.

    A family key is only present when at least one address qualifies.
    """
    ipv4: Optional[List[str]] = None
    ipv6: Optional[List[str]] = None

    def to_document(self) -> Dict[str, List[str]]:
        return self.model_dump(exclude_none=True)


@dataclass
class ResponseBuffer:
    """Flat ipv4/ipv6 accumulator for one resolution pass."""
    ipv4: List[str] = field(default_factory=list)
    ipv6: List[str] = field(default_factory=list)

    def append(self, resolved: ResolvedAddresses) -> None:
        # Both families of one FQDN go in together, with no await in between
        if resolved.ipv4:
            self.ipv4.extend(resolved.ipv4)
        if resolved.ipv6:
            self.ipv6.extend(resolved.ipv6)

    def plain(self, family: AddressFamily) -> str:
        addresses = self.ipv4 if family is AddressFamily.IPV4 else self.ipv6
        return "\n".join(addresses)


@dataclass
class FeedResult:
    """Both views of one pass: the rewritten tree and its flattened buffer."""
    document: Any
    buffer: ResponseBuffer
