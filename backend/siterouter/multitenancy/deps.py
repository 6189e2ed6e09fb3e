from __future__ import annotations

from fastapi import Request

from siterouter.core.config import Settings
from siterouter.multitenancy.mapping_store import MappingStore, default_strategies
from siterouter.multitenancy.resolution_cache import ResolutionCache
from siterouter.multitenancy.resolver import TenantResolver


def build_tenant_resolver(app_settings: Settings, session_factory) -> TenantResolver:
    cache = ResolutionCache(
        positive_ttl=app_settings.DOMAIN_CACHE_TTL_SECONDS,
        negative_ttl=app_settings.DOMAIN_CACHE_NEGATIVE_TTL_SECONDS,
        max_entries=app_settings.DOMAIN_CACHE_MAX_ENTRIES,
    )
    store = MappingStore(
        session_factory,
        strategies=default_strategies(match_www_variants=app_settings.DOMAIN_MAPPING_MATCH_WWW),
        timeout_ms=app_settings.DOMAIN_STORE_TIMEOUT_MS,
    )
    return TenantResolver(
        store,
        cache,
        dev_hosts=app_settings.dev_hosts,
        internal_suffixes=app_settings.internal_host_suffixes,
    )


def get_tenant_resolver(request: Request) -> TenantResolver:
    return request.app.state.tenant_resolver
