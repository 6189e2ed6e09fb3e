from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from urllib.parse import parse_qsl, urlencode

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.types import ASGIApp

from siterouter.multitenancy.errors import StoreUnavailable
from siterouter.multitenancy.host_normalization import classify_host
from siterouter.multitenancy.resolver import TenantResolver


logger = logging.getLogger(__name__)

_FILE_EXTENSION_RE = re.compile(r'\.[a-zA-Z0-9]+$')

RESOLUTION_ERROR_HEADER = 'x-domain-resolution-error'


def path_has_prefix(path: str, prefixes: Iterable[str]) -> bool:
    for prefix in prefixes:
        prefix = prefix.rstrip('/') or '/'
        if path == prefix or path.startswith(f'{prefix}/'):
            return True
    return False


def build_tenant_redirect(
    subdomain: str,
    path: str,
    query_string: str,
    *,
    prefix: str = '/s',
    page_param: str = 'page',
) -> str:
    """
    ``/about?x=1`` on a custom domain becomes ``/s/<subdomain>?page=about&x=1``.

    The original query string is appended byte for byte; when the request
    already has a ``page`` parameter it wins over the rewritten path.
    """
    parts: list[str] = []
    existing_keys = {key for key, _ in parse_qsl(query_string, keep_blank_values=True)}
    if path not in ('', '/') and page_param not in existing_keys:
        parts.append(urlencode({page_param: path.lstrip('/')}))
    if query_string:
        parts.append(query_string)

    target = f'{prefix.rstrip("/")}/{subdomain}'
    if parts:
        target = f'{target}?{"&".join(parts)}'
    return target


class DomainRoutingMiddleware(BaseHTTPMiddleware):
    """
    Redirects custom-domain traffic into the owning site's namespace.

    Platform and development hosts pass through untouched. Store outages fail
    open: the request continues and the response is tagged with
    ``X-Domain-Resolution-Error``.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        base_domains: Iterable[str],
        dev_hosts: Iterable[str],
        internal_suffixes: Iterable[str],
        skip_prefixes: Iterable[str] = ('/api', '/static', '/_next', '/favicon.ico'),
        tenant_prefix: str = '/s',
        page_param: str = 'page',
        landing_url: str = '/',
        trust_proxy_headers: bool = False,
        resolver: TenantResolver | None = None,
    ) -> None:
        super().__init__(app)
        self.base_domains = [item.lower() for item in base_domains]
        self.dev_hosts = frozenset(dev_hosts)
        self.internal_suffixes = tuple(internal_suffixes)
        self.skip_prefixes = tuple(skip_prefixes) + (tenant_prefix,)
        self.tenant_prefix = tenant_prefix
        self.page_param = page_param
        self.landing_url = landing_url
        self.trust_proxy_headers = trust_proxy_headers
        self._resolver = resolver

    def _get_resolver(self, request: Request) -> TenantResolver:
        return self._resolver or request.app.state.tenant_resolver

    def _get_host(self, request: Request) -> str | None:
        host = request.headers.get('x-forwarded-host') if self.trust_proxy_headers else None
        if host:
            return host.split(',')[0].strip()
        return request.headers.get('host')

    def _should_skip(self, path: str) -> bool:
        return path_has_prefix(path, self.skip_prefixes) or bool(_FILE_EXTENSION_RE.search(path))

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if self._should_skip(path):
            return await call_next(request)

        raw_host = self._get_host(request)
        if not raw_host:
            return await call_next(request)

        classification = classify_host(
            raw_host,
            base_domains=self.base_domains,
            dev_hosts=self.dev_hosts,
            internal_suffixes=self.internal_suffixes,
        )
        if classification.kind != 'custom':
            return await call_next(request)

        resolver = self._get_resolver(request)
        try:
            result = await run_in_threadpool(resolver.resolve, raw_host)
        except StoreUnavailable as exc:
            logger.error('Domain resolution failed for %s, passing request through: %s', classification.host, exc)
            response = await call_next(request)
            response.headers[RESOLUTION_ERROR_HEADER] = 'store_unavailable'
            return response

        if result.is_tenant:
            target = build_tenant_redirect(
                result.subdomain,
                path,
                request.url.query,
                prefix=self.tenant_prefix,
                page_param=self.page_param,
            )
            logger.info('Redirecting %s%s -> %s', classification.host, path, target)
            return RedirectResponse(target, status_code=307)

        if path == self.landing_url:
            return await call_next(request)
        return RedirectResponse(self.landing_url, status_code=307)
