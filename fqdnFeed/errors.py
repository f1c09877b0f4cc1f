"""Exception types raised by the fqdnFeed core and its store backends."""
from __future__ import annotations


class FqdnFeedError(Exception):
    """Base class for every error the feed service surfaces to its caller."""


class StoreError(FqdnFeedError):
    """The backing key-value store failed."""


class StoreWriteError(StoreError):
    """A put to the backing store did not succeed."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Failed to store {key!r}: {reason}")
        self.key = key
        self.reason = reason


class ConfigNotFoundError(StoreError):
    """No configuration document exists for the requested id."""

    def __init__(self, config_id: str):
        super().__init__(f"Configuration {config_id!r} not found")
        self.config_id = config_id


class InvalidConfigError(FqdnFeedError):
    """A stored or submitted configuration document has the wrong shape."""


class LookupFailedError(FqdnFeedError):
    """A DNS lookup for one address family failed."""

    def __init__(self, fqdn: str, family: str, reason: str):
        super().__init__(f"{family} lookup for {fqdn} failed: {reason}")
        self.fqdn = fqdn
        self.family = family
