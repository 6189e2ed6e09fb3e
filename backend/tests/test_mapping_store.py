import logging
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from siterouter.models.site import Domain, Site
from siterouter.multitenancy.errors import StoreUnavailable
from siterouter.multitenancy.host_normalization import host_variants
from siterouter.multitenancy.mapping_store import (
    SOURCE_CUSTOM_DOMAIN,
    SOURCE_DOMAIN_MAPPING,
    MappingStore,
    default_strategies,
)


def test_domain_mapping_wins_over_legacy_custom_domain(make_site, session_factory: sessionmaker) -> None:
    mapped = make_site('mapped', domains=('shop.com',))
    make_site('legacy', custom_domain='shop.com')

    ref = MappingStore(session_factory).find_tenant_by_host(host_variants('shop.com'))

    assert ref.site_id == mapped.id
    assert ref.subdomain == 'mapped'
    assert ref.source == SOURCE_DOMAIN_MAPPING
    assert ref.matched_host == 'shop.com'


def test_legacy_custom_domain_matches_www_companion(make_site, session_factory: sessionmaker) -> None:
    site = make_site('bakery', custom_domain='bakery.com')

    ref = MappingStore(session_factory).find_tenant_by_host(host_variants('www.bakery.com'))

    assert ref.site_id == site.id
    assert ref.source == SOURCE_CUSTOM_DOMAIN
    assert ref.matched_host == 'bakery.com'


def test_legacy_custom_domain_stored_with_scheme_still_matches(make_site, session_factory: sessionmaker) -> None:
    make_site('old', custom_domain='https://Old-Site.com')

    ref = MappingStore(session_factory).find_tenant_by_host(host_variants('old-site.com'))

    assert ref.subdomain == 'old'
    assert ref.matched_host == 'https://old-site.com'


def test_legacy_ties_go_to_oldest_site(db_session: Session, session_factory: sessionmaker) -> None:
    now = datetime.now(UTC)
    db_session.add_all(
        [
            Site(name='Newer', subdomain='newer', custom_domain='tie.com', created_at=now),
            Site(name='Older', subdomain='older', custom_domain='tie.com', created_at=now - timedelta(days=30)),
        ]
    )
    db_session.commit()

    ref = MappingStore(session_factory).find_tenant_by_host(host_variants('tie.com'))

    assert ref.subdomain == 'older'


def test_exact_host_beats_www_companion_and_logs_ambiguity(
    make_site, session_factory: sessionmaker, caplog: pytest.LogCaptureFixture
) -> None:
    make_site('www-owner', domains=('www.split.com',))
    bare_owner = make_site('bare-owner', domains=('split.com',))

    with caplog.at_level(logging.WARNING, logger='siterouter.multitenancy.mapping_store'):
        ref = MappingStore(session_factory).find_tenant_by_host(host_variants('split.com'))

    assert ref.site_id == bare_owner.id
    assert 'Ambiguous domain mapping for split.com' in caplog.text


def test_exact_strategies_skip_www_companion(make_site, session_factory: sessionmaker) -> None:
    make_site('only-www', domains=('www.exact.com',))

    loose = MappingStore(session_factory, strategies=default_strategies(match_www_variants=True))
    strict = MappingStore(session_factory, strategies=default_strategies(match_www_variants=False))

    assert loose.find_tenant_by_host(host_variants('exact.com')).subdomain == 'only-www'
    assert strict.find_tenant_by_host(host_variants('exact.com')) is None
    assert strict.find_tenant_by_host(host_variants('www.exact.com')).subdomain == 'only-www'


def test_unknown_host_returns_none(make_site, session_factory: sessionmaker) -> None:
    make_site('acme', domains=('acme.com',))
    store = MappingStore(session_factory)
    assert store.find_tenant_by_host(host_variants('nobody.com')) is None
    assert store.find_tenant_by_host([]) is None


def test_deleting_site_removes_its_domains(db_session: Session, make_site, session_factory: sessionmaker) -> None:
    site = make_site('gone', domains=('gone.com',))
    db_session.delete(site)
    db_session.commit()

    assert db_session.query(Domain).count() == 0
    assert MappingStore(session_factory).find_tenant_by_host(host_variants('gone.com')) is None


def test_database_errors_surface_as_store_unavailable(session_factory: sessionmaker) -> None:
    def broken_strategy(db, variants):
        raise OperationalError('select 1', {}, Exception('connection refused'))

    store = MappingStore(session_factory, strategies=(broken_strategy,))

    with pytest.raises(StoreUnavailable) as exc_info:
        store.find_tenant_by_host(host_variants('acme.com'))
    assert exc_info.value.host == 'acme.com'
