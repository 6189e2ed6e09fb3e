from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from siterouter.multitenancy.host_normalization import (
    host_variants,
    is_development_host,
    is_valid_host,
    normalize_host,
    www_variants,
)
from siterouter.multitenancy.mapping_store import MappingStore, TenantRef
from siterouter.multitenancy.resolution_cache import NOT_FOUND, ResolutionCache


logger = logging.getLogger(__name__)

DEFAULT_DEV_HOSTS = frozenset({'localhost', '127.0.0.1', '0.0.0.0', '::1'})
DEFAULT_INTERNAL_SUFFIXES = ('.localhost', '.local', '.internal')


@dataclass(frozen=True)
class ResolutionResult:
    kind: str  # tenant | unmapped
    host: str
    subdomain: str | None = None
    site_id: UUID | None = None
    source: str | None = None
    reason: str | None = None
    cached: bool = False

    @property
    def is_tenant(self) -> bool:
        return self.kind == 'tenant'

    @classmethod
    def tenant(cls, host: str, ref: TenantRef, *, cached: bool) -> 'ResolutionResult':
        return cls(
            kind='tenant',
            host=host,
            subdomain=ref.subdomain,
            site_id=ref.site_id,
            source=ref.source,
            cached=cached,
        )

    @classmethod
    def unmapped(cls, host: str, reason: str, *, cached: bool = False) -> 'ResolutionResult':
        return cls(kind='unmapped', host=host, reason=reason, cached=cached)


class TenantResolver:
    """
    Resolves a raw Host header to the site that claims it.

    Store failures are raised as StoreUnavailable and never cached, so callers
    can fail open instead of treating a live domain as unmapped.
    """

    def __init__(
        self,
        store: MappingStore,
        cache: ResolutionCache,
        *,
        dev_hosts: Iterable[str] = DEFAULT_DEV_HOSTS,
        internal_suffixes: Iterable[str] = DEFAULT_INTERNAL_SUFFIXES,
    ) -> None:
        self.store = store
        self.cache = cache
        self.dev_hosts = frozenset(dev_hosts)
        self.internal_suffixes = tuple(internal_suffixes)

    def resolve(self, raw_host: str | None) -> ResolutionResult:
        host = normalize_host(raw_host)
        if not is_valid_host(host):
            logger.debug('Ignoring invalid host %r', raw_host)
            return ResolutionResult.unmapped(host, 'invalid_host')
        if is_development_host(host, dev_hosts=self.dev_hosts, internal_suffixes=self.internal_suffixes):
            return ResolutionResult.unmapped(host, 'development_host')

        entry = self.cache.get(host)
        if entry is not None:
            if entry.value is NOT_FOUND:
                return ResolutionResult.unmapped(host, 'not_found', cached=True)
            return ResolutionResult.tenant(host, entry.value, cached=True)

        generation = self.cache.generation
        ref = self.store.find_tenant_by_host(host_variants(host))
        if ref is None:
            self.cache.put(host, NOT_FOUND, generation=generation)
            logger.info('No site claims host %s', host)
            return ResolutionResult.unmapped(host, 'not_found')

        self.cache.put(host, ref, generation=generation)
        logger.debug('Resolved %s -> %s via %s (%s)', host, ref.subdomain, ref.source, ref.matched_host)
        return ResolutionResult.tenant(host, ref, cached=False)

    def invalidate(self, raw_host: str | None) -> int:
        host = normalize_host(raw_host)
        if not host:
            return 0
        return self.cache.invalidate_hosts(www_variants(host))

    def invalidate_all(self) -> int:
        removed = self.cache.invalidate_all()
        logger.info('Domain resolution cache cleared (%d entries)', removed)
        return removed
