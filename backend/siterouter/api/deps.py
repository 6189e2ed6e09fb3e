from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from siterouter.core.config import settings
from siterouter.core.security import TokenDecodeError, decode_access_token


# Tokens are issued by the platform's auth service; this API only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl='/api/v1/auth/login')


@dataclass(frozen=True)
class Principal:
    subject: str
    roles: frozenset[str]


def get_current_principal(token: str = Depends(oauth2_scheme)) -> Principal:
    try:
        payload = decode_access_token(token)
    except TokenDecodeError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid access token') from exc

    subject = payload.get('sub')
    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid access token subject')
    roles = payload.get('roles') or []
    if not isinstance(roles, list):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid access token roles')
    return Principal(subject=str(subject), roles=frozenset(str(role) for role in roles))


def require_roles(*required_roles: str) -> Callable:
    required_set = set(required_roles)

    def role_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if 'super_admin' in principal.roles:
            return principal

        if not required_set.intersection(principal.roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Insufficient role permissions',
            )
        return principal

    return role_checker


def get_client_ip(request: Request) -> str | None:
    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get('x-forwarded-for')
        if forwarded:
            return forwarded.split(',')[0].strip() or None
    return request.client.host if request.client else None
