from __future__ import annotations

import ipaddress
import re
from collections.abc import Iterable
from dataclasses import dataclass


_SCHEME_RE = re.compile(r'^https?://', re.IGNORECASE)
_PORT_RE = re.compile(r':\d*$')
_LABEL_RE = re.compile(r'^[a-z0-9_](?:[a-z0-9_-]{0,61}[a-z0-9_])?$')

_EDGE_CHARS = ' \t\r\n.'

WWW_PREFIX = 'www.'
SCHEMES = ('http://', 'https://')


@dataclass(frozen=True)
class HostClassification:
    kind: str  # development | platform | custom
    host: str
    base_domain: str | None = None


def normalize_host(raw: str | None) -> str:
    """
    Canonical lookup key for a host header value.

    Drops scheme, path/query/fragment, port, a trailing root dot and casing.
    Never raises; anything unusable comes back as an empty string.
    """
    if not raw:
        return ''
    host = _normalize_once(str(raw))
    # Each pass only removes characters, so this settles after a few rounds.
    while True:
        again = _normalize_once(host)
        if again == host:
            return host
        host = again


def _normalize_once(value: str) -> str:
    host = _SCHEME_RE.sub('', value.strip()).lower()
    for sep in ('/', '?', '#'):
        host = host.split(sep, 1)[0]
    host = host.strip(_EDGE_CHARS)

    if host.startswith('['):
        # Bracketed IPv6 literal, optionally followed by a port.
        closing = host.find(']')
        host = host[1:closing] if closing != -1 else host[1:]
    elif host.count(':') == 1:
        host = _PORT_RE.sub('', host)

    return host.strip(_EDGE_CHARS)


def strip_www(host: str) -> str:
    if host.startswith(WWW_PREFIX):
        return host[len(WWW_PREFIX):]
    return host


def www_variants(host: str) -> list[str]:
    """Return ``[host, companion]`` where the companion toggles the ``www.`` prefix."""
    if not host:
        return []
    bare = strip_www(host)
    companion = bare if host != bare else f'{WWW_PREFIX}{bare}'
    if not companion or companion == host:
        return [host]
    return [host, companion]


def host_variants(host: str, *, include_schemes: bool = True) -> list[str]:
    variants = www_variants(host)
    if include_schemes:
        variants = variants + [f'{scheme}{variant}' for variant in variants for scheme in SCHEMES]
    return list(dict.fromkeys(variants))


def _is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def is_valid_host(host: str) -> bool:
    if not host or len(host) > 253:
        return False
    if _is_ip_literal(host):
        return True
    return all(_LABEL_RE.match(label) for label in host.split('.'))


def is_development_host(host: str, *, dev_hosts: Iterable[str], internal_suffixes: Iterable[str]) -> bool:
    if host in set(dev_hosts):
        return True
    for suffix in internal_suffixes:
        suffix = suffix if suffix.startswith('.') else f'.{suffix}'
        if host.endswith(suffix):
            return True
    return False


def _match_base_domain(host: str, base_domains: Iterable[str]) -> str | None:
    for base in base_domains:
        base = base.lower()
        if host == base:
            return base
        if host.endswith(f'.{base}'):
            return base
    return None


def classify_host(
    raw_host: str,
    *,
    base_domains: Iterable[str],
    dev_hosts: Iterable[str],
    internal_suffixes: Iterable[str],
) -> HostClassification:
    host = normalize_host(raw_host)
    if is_development_host(host, dev_hosts=dev_hosts, internal_suffixes=internal_suffixes):
        return HostClassification(kind='development', host=host)

    base_domain = _match_base_domain(host, base_domains)
    if base_domain:
        return HostClassification(kind='platform', host=host, base_domain=base_domain)

    return HostClassification(kind='custom', host=host)
