from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from siterouter.db.session import set_statement_timeout
from siterouter.models.site import Domain, Site
from siterouter.multitenancy.errors import StoreUnavailable


logger = logging.getLogger(__name__)

SOURCE_DOMAIN_MAPPING = 'domain_mapping'
SOURCE_CUSTOM_DOMAIN = 'custom_domain'


@dataclass(frozen=True)
class TenantRef:
    site_id: UUID
    subdomain: str
    matched_host: str
    source: str


LookupStrategy = Callable[[Session, Sequence[str]], TenantRef | None]


def _rank(value: str, variants: Sequence[str]) -> int:
    try:
        return variants.index(value.lower())
    except ValueError:
        return len(variants)


def lookup_domain_mapping(db: Session, variants: Sequence[str]) -> TenantRef | None:
    if not variants:
        return None
    rows = db.execute(
        select(Domain.host, Domain.site_id, Site.subdomain)
        .join(Site, Site.id == Domain.site_id)
        .where(func.lower(Domain.host).in_(list(variants)))
    ).all()
    if not rows:
        return None

    ordered = sorted(rows, key=lambda row: _rank(row.host, variants))
    first = ordered[0]
    if len({row.site_id for row in ordered}) > 1:
        logger.warning(
            'Ambiguous domain mapping for %s: %s',
            variants[0],
            ', '.join(f'{row.host} -> {row.subdomain}' for row in ordered),
        )
    return TenantRef(
        site_id=first.site_id,
        subdomain=first.subdomain,
        matched_host=first.host.lower(),
        source=SOURCE_DOMAIN_MAPPING,
    )


def exact_domain_mapping(db: Session, variants: Sequence[str]) -> TenantRef | None:
    """Domain Mapping lookup without the companion ``www`` variant."""
    if not variants:
        return None
    primary = variants[0]
    exact = [item for item in variants if item.split('://', 1)[-1] == primary]
    return lookup_domain_mapping(db, exact)


def lookup_legacy_custom_domain(db: Session, variants: Sequence[str]) -> TenantRef | None:
    if not variants:
        return None
    rows = db.execute(
        select(Site.id, Site.subdomain, Site.custom_domain, Site.created_at).where(
            func.lower(Site.custom_domain).in_(list(variants))
        )
    ).all()
    if not rows:
        return None

    ordered = sorted(rows, key=lambda row: (_rank(row.custom_domain, variants), row.created_at))
    first = ordered[0]
    if len({row.id for row in ordered}) > 1:
        logger.warning(
            'Several sites claim custom domain %s: %s',
            variants[0],
            ', '.join(row.subdomain for row in ordered),
        )
    return TenantRef(
        site_id=first.id,
        subdomain=first.subdomain,
        matched_host=first.custom_domain.lower(),
        source=SOURCE_CUSTOM_DOMAIN,
    )


DEFAULT_STRATEGIES: tuple[LookupStrategy, ...] = (lookup_domain_mapping, lookup_legacy_custom_domain)


def default_strategies(*, match_www_variants: bool = True) -> tuple[LookupStrategy, ...]:
    if match_www_variants:
        return DEFAULT_STRATEGIES
    return (exact_domain_mapping, lookup_legacy_custom_domain)


class MappingStore:
    """
    Read-only lookup over Domain rows and the legacy Site.custom_domain field.

    Strategies run in order and the first match wins, so an explicit Domain row
    always beats a site's custom_domain. Holds no mutable state; each lookup
    uses its own short-lived session.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        strategies: Sequence[LookupStrategy] = DEFAULT_STRATEGIES,
        timeout_ms: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.strategies = tuple(strategies)
        self.timeout_ms = timeout_ms

    def find_tenant_by_host(self, variants: Sequence[str]) -> TenantRef | None:
        variants = [item.lower() for item in variants]
        if not variants:
            return None
        try:
            with self._session_factory() as db:
                set_statement_timeout(db, self.timeout_ms)
                for strategy in self.strategies:
                    match = strategy(db, variants)
                    if match:
                        return match
                return None
        except SQLAlchemyError as exc:
            logger.error('Mapping store lookup failed for %s: %s', variants[0], exc)
            raise StoreUnavailable(variants[0]) from exc
