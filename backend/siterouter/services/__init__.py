from siterouter.services import (
    audit_service,
    domain_service,
)

__all__ = [
    'audit_service',
    'domain_service',
]
