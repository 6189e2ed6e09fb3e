from fastapi import APIRouter, Depends

from siterouter.core.config import settings
from siterouter.multitenancy.deps import get_tenant_resolver
from siterouter.multitenancy.resolver import TenantResolver


router = APIRouter(tags=['health'])


@router.get('/health')
def health(resolver: TenantResolver = Depends(get_tenant_resolver)) -> dict[str, str | int]:
    return {'status': 'ok', 'environment': settings.APP_ENV, 'domain_cache_size': len(resolver.cache)}
