import os
from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

TEST_DATABASE_URL = os.getenv('TEST_DATABASE_URL', 'sqlite+pysqlite://')

os.environ.setdefault('DATABASE_URL', TEST_DATABASE_URL)
os.environ.setdefault('JWT_SECRET_KEY', 'test-access-secret-32-chars-min-0001')
os.environ.setdefault('APP_ENV', 'test')
os.environ.setdefault('CORS_ORIGINS', 'http://localhost:3001')
os.environ.setdefault('BASE_DOMAINS', 'platform.test')

from siterouter.core.config import settings
from siterouter.core.security import create_access_token
from siterouter.db.base import Base
from siterouter.db.session import get_db
from siterouter.main import create_app
from siterouter.models.site import Domain, Site
from siterouter.multitenancy.deps import build_tenant_resolver
from siterouter.multitenancy.resolver import TenantResolver


if TEST_DATABASE_URL.startswith('sqlite'):
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(TEST_DATABASE_URL, pool_pre_ping=True)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture(autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def session_factory() -> sessionmaker:
    return TestingSessionLocal


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def resolver() -> TenantResolver:
    return build_tenant_resolver(settings, TestingSessionLocal)


@pytest.fixture()
def client(resolver: TenantResolver) -> Generator[TestClient, None, None]:
    app = create_app(resolver=resolver)

    def _override_db() -> Generator[Session, None, None]:
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_db

    with TestClient(app) as api_client:
        yield api_client

    app.dependency_overrides.clear()


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return auth_header(create_access_token('ops@platform.test', ['super_admin']))


@pytest.fixture()
def make_site(db_session: Session) -> Callable[..., Site]:
    def _make_site(subdomain: str, *, custom_domain: str | None = None, domains: tuple[str, ...] = ()) -> Site:
        site = Site(name=subdomain.title(), subdomain=subdomain, custom_domain=custom_domain)
        db_session.add(site)
        db_session.flush()
        for host in domains:
            db_session.add(Domain(site_id=site.id, host=host))
        db_session.commit()
        return site

    return _make_site


def auth_header(access_token: str) -> dict[str, str]:
    return {'Authorization': f'Bearer {access_token}'}
