import threading
import uuid
from collections.abc import Sequence

import pytest

from siterouter.multitenancy.errors import StoreUnavailable
from siterouter.multitenancy.mapping_store import SOURCE_CUSTOM_DOMAIN, SOURCE_DOMAIN_MAPPING, TenantRef
from siterouter.multitenancy.resolution_cache import ResolutionCache
from siterouter.multitenancy.resolver import TenantResolver


class FakeStore:
    def __init__(self, mappings: dict[str, TenantRef] | None = None) -> None:
        self.mappings = dict(mappings or {})
        self.calls: list[list[str]] = []
        self.fail = False
        self._lock = threading.Lock()

    def find_tenant_by_host(self, variants: Sequence[str]) -> TenantRef | None:
        with self._lock:
            self.calls.append(list(variants))
        if self.fail:
            raise StoreUnavailable(variants[0])
        for variant in variants:
            if variant in self.mappings:
                return self.mappings[variant]
        return None


def _ref(subdomain: str, host: str, source: str = SOURCE_DOMAIN_MAPPING) -> TenantRef:
    return TenantRef(site_id=uuid.uuid4(), subdomain=subdomain, matched_host=host, source=source)


@pytest.fixture()
def store() -> FakeStore:
    return FakeStore({'acme.com': _ref('acme', 'acme.com')})


@pytest.fixture()
def tenant_resolver(store: FakeStore) -> TenantResolver:
    return TenantResolver(store, ResolutionCache())


def test_equivalent_host_forms_resolve_to_same_site(tenant_resolver: TenantResolver) -> None:
    results = [
        tenant_resolver.resolve(raw)
        for raw in ('acme.com', 'ACME.com', 'acme.com:8443', 'https://acme.com/', 'acme.com.')
    ]
    assert {result.subdomain for result in results} == {'acme'}
    assert all(result.is_tenant for result in results)
    assert all(result.host == 'acme.com' for result in results)


def test_second_lookup_is_served_from_cache(tenant_resolver: TenantResolver, store: FakeStore) -> None:
    first = tenant_resolver.resolve('acme.com')
    second = tenant_resolver.resolve('Acme.com:80')

    assert first.cached is False
    assert second.cached is True
    assert second.site_id == first.site_id
    assert len(store.calls) == 1


def test_store_receives_www_and_scheme_variants(tenant_resolver: TenantResolver, store: FakeStore) -> None:
    tenant_resolver.resolve('www.shop.com')
    variants = store.calls[0]
    assert variants[0] == 'www.shop.com'
    assert 'shop.com' in variants
    assert 'https://shop.com' in variants


def test_www_companion_resolves_to_same_site(tenant_resolver: TenantResolver) -> None:
    assert tenant_resolver.resolve('www.acme.com').subdomain == 'acme'


def test_unmapped_host_is_negatively_cached(tenant_resolver: TenantResolver, store: FakeStore) -> None:
    first = tenant_resolver.resolve('nobody.com')
    second = tenant_resolver.resolve('nobody.com')

    assert first.kind == 'unmapped'
    assert first.reason == 'not_found'
    assert second.reason == 'not_found'
    assert second.cached is True
    assert len(store.calls) == 1


@pytest.mark.parametrize('raw', ['localhost', '127.0.0.1:8000', 'preview.localhost', 'svc.internal'])
def test_development_hosts_never_reach_store(tenant_resolver: TenantResolver, store: FakeStore, raw: str) -> None:
    result = tenant_resolver.resolve(raw)
    assert result.kind == 'unmapped'
    assert result.reason == 'development_host'
    assert store.calls == []


@pytest.mark.parametrize('raw', [None, '', 'bad host.com', 'exa!mple.com'])
def test_invalid_hosts_never_reach_store(tenant_resolver: TenantResolver, store: FakeStore, raw) -> None:
    result = tenant_resolver.resolve(raw)
    assert result.reason == 'invalid_host'
    assert store.calls == []


def test_store_failure_is_raised_and_not_cached(tenant_resolver: TenantResolver, store: FakeStore) -> None:
    store.fail = True
    with pytest.raises(StoreUnavailable):
        tenant_resolver.resolve('acme.com')
    assert len(tenant_resolver.cache) == 0

    store.fail = False
    result = tenant_resolver.resolve('acme.com')
    assert result.is_tenant
    assert result.cached is False


def test_invalidate_drops_www_companion(tenant_resolver: TenantResolver, store: FakeStore) -> None:
    tenant_resolver.resolve('acme.com')
    tenant_resolver.resolve('www.acme.com')
    assert len(tenant_resolver.cache) == 2

    store.mappings = {'acme.com': _ref('acme-new', 'acme.com')}
    assert tenant_resolver.invalidate('https://WWW.acme.com') == 2

    assert tenant_resolver.resolve('acme.com').subdomain == 'acme-new'
    assert tenant_resolver.resolve('www.acme.com').subdomain == 'acme-new'


def test_invalidate_all_clears_positive_and_negative_entries(tenant_resolver: TenantResolver) -> None:
    tenant_resolver.resolve('acme.com')
    tenant_resolver.resolve('nobody.com')
    assert tenant_resolver.invalidate_all() == 2
    assert tenant_resolver.invalidate('') == 0


def test_result_carries_source(store: FakeStore) -> None:
    store.mappings['legacy.com'] = _ref('legacy', 'legacy.com', SOURCE_CUSTOM_DOMAIN)
    result = TenantResolver(store, ResolutionCache()).resolve('legacy.com')
    assert result.source == SOURCE_CUSTOM_DOMAIN
    assert result.subdomain == 'legacy'


def test_lookup_racing_an_invalidation_does_not_repopulate_cache(store: FakeStore) -> None:
    cache = ResolutionCache()
    tenant_resolver = TenantResolver(store, cache)

    class InvalidatingStore(FakeStore):
        def find_tenant_by_host(self, variants: Sequence[str]) -> TenantRef | None:
            match = store.find_tenant_by_host(variants)
            # The mapping changes while this lookup is in flight.
            tenant_resolver.invalidate('acme.com')
            return match

    tenant_resolver.store = InvalidatingStore()
    result = tenant_resolver.resolve('acme.com')

    assert result.subdomain == 'acme'
    assert cache.get('acme.com') is None


def test_concurrent_resolution_is_consistent(tenant_resolver: TenantResolver) -> None:
    seen: list[str | None] = []
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(50):
            result = tenant_resolver.resolve('acme.com')
            with lock:
                seen.append(result.subdomain)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert set(seen) == {'acme'}
    assert len(seen) == 400
