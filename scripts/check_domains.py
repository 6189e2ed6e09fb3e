#!/usr/bin/env python3
"""
Audit custom-domain routing straight from the database.

Lists every Domain row and every site with a legacy custom_domain, reports
hosts whose www-variants point at different sites, and optionally shows how
specific hosts would resolve. Read-only.

Usage:
  DATABASE_URL=postgresql://... python scripts/check_domains.py --host acme.com --host www.acme.com
"""

from __future__ import annotations

import argparse
import os
from collections import defaultdict
from dataclasses import dataclass

import psycopg


@dataclass(frozen=True)
class MappingRow:
    host: str
    subdomain: str
    name: str
    source: str


def _bare_host(value: str) -> str:
    host = value.strip().lower()
    for scheme in ('https://', 'http://'):
        if host.startswith(scheme):
            host = host[len(scheme):]
    host = host.split('/', 1)[0].rstrip('.')
    return host[4:] if host.startswith('www.') else host


def _dsn(database_url: str) -> str:
    # SQLAlchemy URLs carry the driver name; libpq does not understand it.
    return database_url.replace('postgresql+psycopg://', 'postgresql://', 1)


def _load_rows(conn: psycopg.Connection) -> list[MappingRow]:
    with conn.cursor() as cur:
        cur.execute(
            """
            SELECT lower(d.host), s.subdomain, s.name
            FROM domains d
            JOIN sites s ON s.id = d.site_id
            ORDER BY lower(d.host)
            """
        )
        rows = [MappingRow(host=row[0], subdomain=row[1], name=row[2], source='domain_mapping') for row in cur.fetchall()]

        cur.execute(
            """
            SELECT lower(custom_domain), subdomain, name
            FROM sites
            WHERE custom_domain IS NOT NULL AND custom_domain <> ''
            ORDER BY created_at
            """
        )
        rows.extend(
            MappingRow(host=row[0], subdomain=row[1], name=row[2], source='custom_domain') for row in cur.fetchall()
        )
    return rows


def _collisions(rows: list[MappingRow]) -> dict[tuple[str, str], list[MappingRow]]:
    groups: dict[tuple[str, str], list[MappingRow]] = defaultdict(list)
    for row in rows:
        groups[(row.source, _bare_host(row.host))].append(row)
    return {key: members for key, members in groups.items() if len({member.subdomain for member in members}) > 1}


def _resolve(rows: list[MappingRow], host: str) -> MappingRow | None:
    target = host.strip().lower()
    bare = _bare_host(target)
    for source in ('domain_mapping', 'custom_domain'):
        candidates = [row for row in rows if row.source == source and _bare_host(row.host) == bare]
        exact = [row for row in candidates if row.host.split('://', 1)[-1] == target]
        if exact:
            return exact[0]
        if candidates:
            return candidates[0]
    return None


def main() -> int:
    parser = argparse.ArgumentParser(description='Audit custom-domain mappings and report collisions.')
    parser.add_argument('--host', action='append', default=[], help='Host to test resolution for (repeatable).')
    parser.add_argument('--strict', action='store_true', help='Exit with status 1 when collisions are found.')
    args = parser.parse_args()

    database_url = os.environ.get('DATABASE_URL')
    if not database_url:
        raise SystemExit('DATABASE_URL is required')

    with psycopg.connect(_dsn(database_url)) as conn:
        rows = _load_rows(conn)

    print('Domain mappings:')
    mapped = [row for row in rows if row.source == 'domain_mapping']
    if not mapped:
        print('  (none)')
    for row in mapped:
        print(f'  {row.host} -> {row.subdomain} ({row.name})')

    print('\nLegacy custom domains:')
    legacy = [row for row in rows if row.source == 'custom_domain']
    if not legacy:
        print('  (none)')
    for row in legacy:
        print(f'  {row.host} -> {row.subdomain} ({row.name})')

    collisions = _collisions(rows)
    print('\nCollisions:')
    if not collisions:
        print('  (none)')
    for (source, bare), members in sorted(collisions.items()):
        targets = ', '.join(f'{member.host} -> {member.subdomain}' for member in members)
        print(f'  [{source}] {bare}: {targets}')

    if args.host:
        print('\nResolution:')
        for host in args.host:
            match = _resolve(rows, host)
            if match:
                print(f'  {host} -> {match.subdomain} via {match.source} ({match.host})')
            else:
                print(f'  {host} -> not mapped')

    if collisions and args.strict:
        return 1
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
