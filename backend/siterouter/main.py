import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from siterouter.api.v1.router import api_router
from siterouter.core.config import Settings, settings
from siterouter.db.session import SessionLocal
from siterouter.multitenancy.deps import build_tenant_resolver
from siterouter.multitenancy.resolver import TenantResolver
from siterouter.multitenancy.router import DomainRoutingMiddleware


logger = logging.getLogger(__name__)


def create_app(app_settings: Settings = settings, resolver: TenantResolver | None = None) -> FastAPI:
    application = FastAPI(
        title='Site Domain Router API',
        version='0.1.0',
        openapi_url='/api/v1/openapi.json',
        docs_url='/api/v1/docs',
        redoc_url='/api/v1/redoc',
    )

    # One resolver (and one cache) per application; admin endpoints and the
    # routing middleware share it through app.state.
    application.state.tenant_resolver = resolver or build_tenant_resolver(app_settings, SessionLocal)

    application.add_middleware(
        DomainRoutingMiddleware,
        base_domains=app_settings.base_domains,
        dev_hosts=app_settings.dev_hosts,
        internal_suffixes=app_settings.internal_host_suffixes,
        skip_prefixes=app_settings.router_skip_prefixes,
        tenant_prefix=app_settings.TENANT_PATH_PREFIX,
        page_param=app_settings.TENANT_PAGE_PARAM,
        landing_url=app_settings.PLATFORM_LANDING_URL,
        trust_proxy_headers=app_settings.TRUST_PROXY_HEADERS,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    application.include_router(api_router, prefix='/api/v1')

    @application.get('/')
    def root() -> dict[str, str]:
        return {'service': 'site-domain-router', 'status': 'running'}

    logger.info('Domain routing enabled for base domains: %s', ', '.join(app_settings.base_domains) or '-')
    return application


app = create_app()
