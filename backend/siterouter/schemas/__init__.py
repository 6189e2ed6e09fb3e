from siterouter.schemas.common import PaginationMeta
from siterouter.schemas.domain import (
    CacheClearResponse,
    CustomDomainUpdate,
    DomainCreate,
    DomainListResponse,
    DomainOut,
    DomainStatusResponse,
    DomainUpdate,
    ResolveDomainResponse,
    SiteCustomDomainOut,
)

__all__ = [
    'CacheClearResponse',
    'CustomDomainUpdate',
    'DomainCreate',
    'DomainListResponse',
    'DomainOut',
    'DomainStatusResponse',
    'DomainUpdate',
    'PaginationMeta',
    'ResolveDomainResponse',
    'SiteCustomDomainOut',
]
