from datetime import UTC, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from siterouter.api.deps import Principal, get_client_ip, require_roles
from siterouter.db.session import get_db
from siterouter.multitenancy.deps import get_tenant_resolver
from siterouter.multitenancy.resolver import TenantResolver
from siterouter.schemas.common import PaginationMeta
from siterouter.schemas.domain import (
    CacheClearResponse,
    CustomDomainUpdate,
    DomainCreate,
    DomainListResponse,
    DomainOut,
    DomainStatusResponse,
    DomainUpdate,
    SiteCustomDomainOut,
)
from siterouter.services import domain_service


router = APIRouter(prefix='/admin', tags=['admin'])


@router.get('/domains', response_model=DomainListResponse)
def list_domains(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles('super_admin')),
) -> DomainListResponse:
    rows, total = domain_service.list_domains(db, page=page, page_size=page_size)
    return DomainListResponse(
        items=[DomainOut.model_validate(row) for row in rows],
        meta=PaginationMeta(page=page, page_size=page_size, total=total),
    )


@router.post('/domains', response_model=list[DomainOut], status_code=status.HTTP_201_CREATED)
def create_domain(
    payload: DomainCreate,
    db: Session = Depends(get_db),
    resolver: TenantResolver = Depends(get_tenant_resolver),
    principal: Principal = Depends(require_roles('super_admin')),
    ip_address: str | None = Depends(get_client_ip),
) -> list[DomainOut]:
    rows = domain_service.create_domain(
        db, resolver=resolver, payload=payload, actor=principal.subject, ip_address=ip_address
    )
    return [DomainOut.model_validate(row) for row in rows]


@router.patch('/domains/{domain_id}', response_model=DomainOut)
def update_domain(
    domain_id: UUID,
    payload: DomainUpdate,
    db: Session = Depends(get_db),
    resolver: TenantResolver = Depends(get_tenant_resolver),
    principal: Principal = Depends(require_roles('super_admin')),
    ip_address: str | None = Depends(get_client_ip),
) -> DomainOut:
    row = domain_service.update_domain(
        db,
        resolver=resolver,
        domain_id=domain_id,
        payload=payload,
        actor=principal.subject,
        ip_address=ip_address,
    )
    return DomainOut.model_validate(row)


@router.delete('/domains/{domain_id}', response_model=DomainOut)
def delete_domain(
    domain_id: UUID,
    db: Session = Depends(get_db),
    resolver: TenantResolver = Depends(get_tenant_resolver),
    principal: Principal = Depends(require_roles('super_admin')),
    ip_address: str | None = Depends(get_client_ip),
) -> DomainOut:
    row = domain_service.delete_domain(
        db, resolver=resolver, domain_id=domain_id, actor=principal.subject, ip_address=ip_address
    )
    return DomainOut.model_validate(row)


@router.put('/sites/{site_id}/custom-domain', response_model=SiteCustomDomainOut)
def update_site_custom_domain(
    site_id: UUID,
    payload: CustomDomainUpdate,
    db: Session = Depends(get_db),
    resolver: TenantResolver = Depends(get_tenant_resolver),
    principal: Principal = Depends(require_roles('super_admin')),
    ip_address: str | None = Depends(get_client_ip),
) -> SiteCustomDomainOut:
    site = domain_service.update_site_custom_domain(
        db,
        resolver=resolver,
        site_id=site_id,
        custom_domain=payload.custom_domain,
        actor=principal.subject,
        ip_address=ip_address,
    )
    return SiteCustomDomainOut(
        id=site.id,
        name=site.name,
        subdomain=site.subdomain,
        custom_domain=site.custom_domain,
        url=domain_service.tenant_path(site.subdomain),
    )


def _clear_cache(resolver: TenantResolver) -> CacheClearResponse:
    cleared = resolver.invalidate_all()
    return CacheClearResponse(
        success=True,
        message='Domain cache cleared successfully',
        cleared=cleared,
        timestamp=datetime.now(UTC),
    )


@router.post('/domain-cache/clear', response_model=CacheClearResponse)
def clear_domain_cache(
    resolver: TenantResolver = Depends(get_tenant_resolver),
    _: Principal = Depends(require_roles('super_admin')),
) -> CacheClearResponse:
    return _clear_cache(resolver)


@router.get('/domain-cache/clear', response_model=CacheClearResponse)
def clear_domain_cache_get(
    resolver: TenantResolver = Depends(get_tenant_resolver),
    _: Principal = Depends(require_roles('super_admin')),
) -> CacheClearResponse:
    return _clear_cache(resolver)


@router.get('/domain-status', response_model=DomainStatusResponse)
def domain_status(
    db: Session = Depends(get_db),
    resolver: TenantResolver = Depends(get_tenant_resolver),
    _: Principal = Depends(require_roles('super_admin')),
) -> DomainStatusResponse:
    return DomainStatusResponse.model_validate(domain_service.domain_status(db, resolver=resolver))
