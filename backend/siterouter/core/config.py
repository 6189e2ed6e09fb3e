from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_lower(value: str) -> list[str]:
    return [item.strip().lower() for item in value.split(',') if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='forbid',
    )

    DATABASE_URL: str
    JWT_SECRET_KEY: str
    APP_ENV: str = 'development'
    CORS_ORIGINS: str = 'http://localhost:3000'
    JWT_ALGORITHM: str = 'HS256'

    # Hosts served by the platform itself; custom-domain resolution never runs for these.
    BASE_DOMAINS: str = 'localhost'
    DEV_HOSTS: str = 'localhost,127.0.0.1,0.0.0.0,::1'
    INTERNAL_HOST_SUFFIXES: str = '.localhost,.local,.internal'
    TRUST_PROXY_HEADERS: bool = False

    TENANT_PATH_PREFIX: str = '/s'
    TENANT_PAGE_PARAM: str = 'page'
    PLATFORM_LANDING_URL: str = '/'
    ROUTER_SKIP_PREFIXES: str = '/api,/static,/_next,/favicon.ico,/domain-viewer'

    DOMAIN_CACHE_TTL_SECONDS: float = 300.0
    DOMAIN_CACHE_NEGATIVE_TTL_SECONDS: float = 30.0
    DOMAIN_CACHE_MAX_ENTRIES: int | None = None
    DOMAIN_STORE_TIMEOUT_MS: int = 2_000
    DOMAIN_MAPPING_MATCH_WWW: bool = True

    @field_validator('DATABASE_URL')
    @classmethod
    def validate_database_url(cls, value: str) -> str:
        if not value.startswith(('postgresql', 'sqlite')):
            raise ValueError('DATABASE_URL must point to PostgreSQL (or SQLite for local tests)')
        # Plain postgresql:// would select psycopg2; the project ships psycopg 3.
        if value.startswith('postgresql://'):
            value = value.replace('postgresql://', 'postgresql+psycopg://', 1)
        return value

    @field_validator('JWT_SECRET_KEY')
    @classmethod
    def validate_jwt_secret_strength(cls, value: str) -> str:
        if len(value) < 32:
            raise ValueError('JWT secrets must be at least 32 characters')
        return value

    @field_validator('TENANT_PATH_PREFIX', 'PLATFORM_LANDING_URL')
    @classmethod
    def validate_path(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith('/'):
            raise ValueError('Paths must start with "/"')
        if len(value) > 1:
            value = value.rstrip('/')
        return value

    @field_validator('DOMAIN_CACHE_TTL_SECONDS', 'DOMAIN_CACHE_NEGATIVE_TTL_SECONDS')
    @classmethod
    def validate_ttl(cls, value: float) -> float:
        if value <= 0:
            raise ValueError('Cache TTLs must be positive')
        return value

    @property
    def cors_origins(self) -> list[str]:
        return [item.strip() for item in self.CORS_ORIGINS.split(',') if item.strip()]

    @property
    def base_domains(self) -> list[str]:
        return _split_lower(self.BASE_DOMAINS)

    @property
    def dev_hosts(self) -> set[str]:
        return set(_split_lower(self.DEV_HOSTS))

    @property
    def internal_host_suffixes(self) -> tuple[str, ...]:
        return tuple(_split_lower(self.INTERNAL_HOST_SUFFIXES))

    @property
    def router_skip_prefixes(self) -> tuple[str, ...]:
        return tuple(item.strip() for item in self.ROUTER_SKIP_PREFIXES.split(',') if item.strip())


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
