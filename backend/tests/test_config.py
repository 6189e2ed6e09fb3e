import pytest
from pydantic import ValidationError

from siterouter.core.config import Settings


def test_list_settings_are_split_and_lowercased() -> None:
    config = Settings(
        BASE_DOMAINS='Platform.test, sites.example ,',
        DEV_HOSTS='localhost,Dev.Box',
        ROUTER_SKIP_PREFIXES='/api, /assets',
    )
    assert config.base_domains == ['platform.test', 'sites.example']
    assert config.dev_hosts == {'localhost', 'dev.box'}
    assert config.router_skip_prefixes == ('/api', '/assets')


def test_paths_are_normalized() -> None:
    config = Settings(TENANT_PATH_PREFIX='/sites/', PLATFORM_LANDING_URL='/')
    assert config.TENANT_PATH_PREFIX == '/sites'
    assert config.PLATFORM_LANDING_URL == '/'


@pytest.mark.parametrize(
    'overrides',
    [
        {'TENANT_PATH_PREFIX': 's'},
        {'DOMAIN_CACHE_TTL_SECONDS': 0},
        {'JWT_SECRET_KEY': 'short'},
        {'DATABASE_URL': 'mysql://db/app'},
    ],
)
def test_invalid_settings_are_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        Settings(**overrides)
