from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import UTC, datetime
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from siterouter.core.config import settings
from siterouter.models.site import Domain, Site
from siterouter.multitenancy.errors import AmbiguousMapping, InvalidHost
from siterouter.multitenancy.host_normalization import is_valid_host, normalize_host, strip_www, www_variants
from siterouter.multitenancy.resolver import TenantResolver
from siterouter.schemas.domain import DomainCreate, DomainUpdate
from siterouter.services import audit_service


logger = logging.getLogger(__name__)


def tenant_path(subdomain: str) -> str:
    return f'{settings.TENANT_PATH_PREFIX.rstrip("/")}/{subdomain}'


def clean_host(raw: str | None) -> str:
    host = normalize_host(raw)
    if not is_valid_host(host):
        raise InvalidHost(raw)
    return host


def _clean_host_or_400(raw: str | None) -> str:
    try:
        return clean_host(raw)
    except InvalidHost as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid host') from exc


def _get_site(db: Session, site_id: UUID) -> Site:
    site = db.scalar(select(Site).where(Site.id == site_id))
    if not site:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Site not found')
    return site


def _ensure_host_available(db: Session, host: str, *, exclude_id: UUID | None = None) -> None:
    query = select(Domain.id).where(func.lower(Domain.host) == host)
    if exclude_id:
        query = query.where(Domain.id != exclude_id)
    if db.scalar(query):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f'Domain {host} is already mapped')


def _affected_hosts(*hosts: str | None) -> list[str]:
    affected: list[str] = []
    for host in hosts:
        if host:
            affected.extend(www_variants(normalize_host(host)))
    return list(dict.fromkeys(affected))


def _commit_and_invalidate(db: Session, resolver: TenantResolver, hosts: Iterable[str]) -> None:
    # Invalidate only after commit so a concurrent miss cannot re-cache the old row.
    db.commit()
    hosts = list(hosts)
    for host in hosts:
        resolver.invalidate(host)
    logger.info('Invalidated domain cache for %s', ', '.join(hosts) or '-')


def get_domain(db: Session, domain_id: UUID) -> Domain:
    domain = db.scalar(select(Domain).where(Domain.id == domain_id).options(joinedload(Domain.site)))
    if not domain:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Domain mapping not found')
    return domain


def list_domains(db: Session, *, page: int, page_size: int) -> tuple[list[Domain], int]:
    total = db.scalar(select(func.count()).select_from(Domain))
    rows = db.scalars(
        select(Domain)
        .options(joinedload(Domain.site))
        .order_by(Domain.created_at.desc(), Domain.host.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    ).all()
    return list(rows), int(total or 0)


def create_domain(
    db: Session,
    *,
    resolver: TenantResolver,
    payload: DomainCreate,
    actor: str | None,
    ip_address: str | None = None,
) -> list[Domain]:
    site = _get_site(db, payload.site_id)
    host = _clean_host_or_400(payload.host)

    hosts = [host]
    if payload.include_www:
        for item in www_variants(host)[1:]:
            # A companion that already points at this site is left alone.
            if not db.scalar(select(Domain.id).where(func.lower(Domain.host) == item, Domain.site_id == site.id)):
                hosts.append(item)
    for item in hosts:
        _ensure_host_available(db, item)

    previous_custom_domain = site.custom_domain
    created = [Domain(site_id=site.id, host=item) for item in hosts]
    db.add_all(created)
    # Keep the legacy field pointing at the last written domain.
    site.custom_domain = host
    db.flush()

    for row in created:
        audit_service.record_change(
            db,
            actor=actor,
            action='domain.create',
            entity=row,
            ip_address=ip_address,
            details={'host': row.host, 'site_id': site.id, 'subdomain': site.subdomain},
        )
    _commit_and_invalidate(db, resolver, _affected_hosts(*hosts, previous_custom_domain))
    return [get_domain(db, row.id) for row in created]


def update_domain(
    db: Session,
    *,
    resolver: TenantResolver,
    domain_id: UUID,
    payload: DomainUpdate,
    actor: str | None,
    ip_address: str | None = None,
) -> Domain:
    domain = get_domain(db, domain_id)
    previous_host = domain.host
    previous_site = domain.site
    previous_custom_domain = previous_site.custom_domain

    changes = payload.model_dump(exclude_unset=True)
    if changes.get('host') is not None:
        host = _clean_host_or_400(changes['host'])
        _ensure_host_available(db, host, exclude_id=domain.id)
        domain.host = host
    target_site = previous_site
    if changes.get('site_id') is not None:
        target_site = _get_site(db, changes['site_id'])
        domain.site = target_site

    target_custom_domain = target_site.custom_domain
    if domain.host != previous_host or target_site.id != previous_site.id:
        target_site.custom_domain = domain.host
        if target_site.id != previous_site.id and previous_site.custom_domain == previous_host:
            previous_site.custom_domain = None
    db.flush()

    audit_service.record_change(
        db,
        actor=actor,
        action='domain.update',
        entity=domain,
        ip_address=ip_address,
        details={
            'from': {'host': previous_host, 'site_id': previous_site.id},
            'to': {'host': domain.host, 'site_id': target_site.id},
        },
    )
    _commit_and_invalidate(
        db,
        resolver,
        _affected_hosts(previous_host, domain.host, previous_custom_domain, target_custom_domain),
    )
    return get_domain(db, domain.id)


def delete_domain(
    db: Session,
    *,
    resolver: TenantResolver,
    domain_id: UUID,
    actor: str | None,
    ip_address: str | None = None,
) -> Domain:
    domain = get_domain(db, domain_id)
    site = domain.site
    host = domain.host
    # Detaching the domain must also stop the legacy field from routing it.
    if site.custom_domain and normalize_host(site.custom_domain) == host:
        site.custom_domain = None

    db.delete(domain)
    audit_service.record_change(
        db,
        actor=actor,
        action='domain.delete',
        entity=domain,
        ip_address=ip_address,
        details={'host': host, 'site_id': site.id, 'subdomain': site.subdomain},
    )
    _commit_and_invalidate(db, resolver, _affected_hosts(host))
    return domain


def update_site_custom_domain(
    db: Session,
    *,
    resolver: TenantResolver,
    site_id: UUID,
    custom_domain: str | None,
    actor: str | None,
    ip_address: str | None = None,
) -> Site:
    site = _get_site(db, site_id)
    previous = site.custom_domain
    site.custom_domain = _clean_host_or_400(custom_domain) if custom_domain else None
    db.flush()

    audit_service.record_change(
        db,
        actor=actor,
        action='site.custom_domain.update',
        entity=site,
        ip_address=ip_address,
        details={'from': previous, 'to': site.custom_domain},
    )
    _commit_and_invalidate(db, resolver, _affected_hosts(previous, site.custom_domain))
    return site


def find_collisions(db: Session) -> list[AmbiguousMapping]:
    """
    Group mappings by bare host and report groups that point at more than one site.

    Covers both Domain rows and the legacy custom_domain field.
    """
    collisions: list[AmbiguousMapping] = []

    domain_groups: dict[str, list[tuple[str, UUID, str]]] = defaultdict(list)
    for host, site_id, subdomain in db.execute(
        select(Domain.host, Domain.site_id, Site.subdomain).join(Site, Site.id == Domain.site_id)
    ).all():
        normalized = normalize_host(host)
        domain_groups[strip_www(normalized)].append((normalized, site_id, subdomain))

    legacy_groups: dict[str, list[tuple[str, UUID, str]]] = defaultdict(list)
    for site_id, subdomain, custom_domain in db.execute(
        select(Site.id, Site.subdomain, Site.custom_domain).where(Site.custom_domain.is_not(None))
    ).all():
        normalized = normalize_host(custom_domain)
        if normalized:
            legacy_groups[strip_www(normalized)].append((normalized, site_id, subdomain))

    for source, groups in (('domain_mapping', domain_groups), ('custom_domain', legacy_groups)):
        for bare in sorted(groups):
            members = sorted(groups[bare])
            if len({site_id for _, site_id, _ in members}) < 2:
                continue
            collision = AmbiguousMapping(
                hosts=tuple(host for host, _, _ in members),
                site_ids=tuple(site_id for _, site_id, _ in members),
                subdomains=tuple(subdomain for _, _, subdomain in members),
                source=source,
            )
            logger.warning('Domain collision (%s): %s', source, ', '.join(collision.hosts))
            collisions.append(collision)
    return collisions


def domain_status(db: Session, *, resolver: TenantResolver) -> dict:
    sites = db.scalars(select(Site).order_by(Site.subdomain.asc())).all()
    domains = db.scalars(
        select(Domain).options(joinedload(Domain.site)).order_by(Domain.host.asc())
    ).all()

    mapped_hosts: set[str] = set()
    mappings: list[dict] = []
    for domain in domains:
        mapped_hosts.add(domain.host)
        mappings.append({'host': domain.host, 'destination': tenant_path(domain.site.subdomain), 'source': 'domain_mapping'})
    for site in sites:
        if not site.custom_domain:
            continue
        for host in www_variants(normalize_host(site.custom_domain)):
            if host in mapped_hosts:
                continue
            mappings.append({'host': host, 'destination': tenant_path(site.subdomain), 'source': 'custom_domain'})

    collisions = find_collisions(db)
    return {
        'success': True,
        'timestamp': datetime.now(UTC),
        'summary': {
            'total_sites': len(sites),
            'total_domains': len(domains),
            'total_mappings': len(mappings),
            'total_collisions': len(collisions),
        },
        'sites': [
            {
                'id': site.id,
                'name': site.name,
                'subdomain': site.subdomain,
                'custom_domain': site.custom_domain,
                'url': tenant_path(site.subdomain),
            }
            for site in sites
        ],
        'domains': [
            {
                'id': domain.id,
                'host': domain.host,
                'site_id': domain.site_id,
                'site_name': domain.site.name,
                'site_subdomain': domain.site.subdomain,
                'redirect_url': tenant_path(domain.site.subdomain),
            }
            for domain in domains
        ],
        'mappings': mappings,
        'collisions': [
            {
                'hosts': list(item.hosts),
                'site_ids': list(item.site_ids),
                'subdomains': list(item.subdomains),
                'source': item.source,
            }
            for item in collisions
        ],
        'cache': resolver.cache.stats(),
    }
