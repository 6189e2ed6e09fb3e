import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from siterouter.multitenancy.deps import get_tenant_resolver
from siterouter.multitenancy.errors import StoreUnavailable
from siterouter.multitenancy.resolver import TenantResolver
from siterouter.schemas.domain import ResolveDomainResponse


logger = logging.getLogger(__name__)

router = APIRouter(tags=['resolve'])


@router.get(
    '/resolve-domain',
    response_model=ResolveDomainResponse,
    responses={404: {'model': ResolveDomainResponse}},
)
async def resolve_domain(
    host: str = Query(default=''),
    resolver: TenantResolver = Depends(get_tenant_resolver),
):
    if not host.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Missing host')

    try:
        result = await run_in_threadpool(resolver.resolve, host)
    except StoreUnavailable as exc:
        logger.error('resolve-domain failed for %s: %s', host, exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail='Mapping store unavailable') from exc

    if not result.is_tenant:
        payload = ResolveDomainResponse(ok=False, host=result.host, cached=result.cached)
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=payload.model_dump(mode='json'))

    return ResolveDomainResponse(
        ok=True,
        host=result.host,
        subdomain=result.subdomain,
        site_id=result.site_id,
        source=result.source,
        cached=result.cached,
    )
