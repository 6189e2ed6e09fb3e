from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from siterouter.schemas.common import BaseSchema, PaginationMeta


class SiteRef(BaseSchema):
    id: UUID
    name: str
    subdomain: str


class DomainOut(BaseSchema):
    id: UUID
    host: str
    site_id: UUID
    site: SiteRef
    created_at: datetime
    updated_at: datetime


class DomainListResponse(BaseModel):
    items: list[DomainOut]
    meta: PaginationMeta


class DomainCreate(BaseModel):
    site_id: UUID
    host: str = Field(min_length=1, max_length=255)
    include_www: bool = False


class DomainUpdate(BaseModel):
    host: str | None = Field(default=None, min_length=1, max_length=255)
    site_id: UUID | None = None


class CustomDomainUpdate(BaseModel):
    custom_domain: str | None = Field(default=None, max_length=255)


class SiteCustomDomainOut(BaseSchema):
    id: UUID
    name: str
    subdomain: str
    custom_domain: str | None = None
    url: str


class DomainStatusRow(BaseModel):
    id: UUID
    host: str
    site_id: UUID
    site_name: str
    site_subdomain: str
    redirect_url: str


class RedirectRule(BaseModel):
    host: str
    destination: str
    source: str


class CollisionOut(BaseModel):
    hosts: list[str]
    site_ids: list[UUID]
    subdomains: list[str]
    source: str


class DomainStatusSummary(BaseModel):
    total_sites: int
    total_domains: int
    total_mappings: int
    total_collisions: int


class CacheStats(BaseModel):
    size: int
    hits: int
    misses: int
    generation: int


class DomainStatusResponse(BaseModel):
    success: bool = True
    timestamp: datetime
    summary: DomainStatusSummary
    sites: list[SiteCustomDomainOut] = Field(default_factory=list)
    domains: list[DomainStatusRow] = Field(default_factory=list)
    mappings: list[RedirectRule] = Field(default_factory=list)
    collisions: list[CollisionOut] = Field(default_factory=list)
    cache: CacheStats


class CacheClearResponse(BaseModel):
    success: bool
    message: str
    cleared: int
    timestamp: datetime


class ResolveDomainResponse(BaseModel):
    ok: bool
    host: str
    subdomain: str | None = None
    site_id: UUID | None = None
    source: str | None = None
    cached: bool = False
