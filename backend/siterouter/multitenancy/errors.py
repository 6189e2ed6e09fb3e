from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


class StoreUnavailable(Exception):
    """The mapping store could not be queried (driver error, outage or statement timeout)."""

    def __init__(self, host: str, message: str = 'Mapping store unavailable') -> None:
        super().__init__(f'{message}: {host}')
        self.host = host


class InvalidHost(ValueError):
    def __init__(self, raw_host: str | None) -> None:
        super().__init__(f'Invalid host: {raw_host!r}')
        self.raw_host = raw_host


@dataclass(frozen=True)
class AmbiguousMapping:
    """Two mapping rows for www-variants of one host that point at different sites."""

    hosts: tuple[str, ...]
    site_ids: tuple[UUID, ...]
    subdomains: tuple[str, ...]
    source: str = 'domain_mapping'
