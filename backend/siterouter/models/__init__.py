from siterouter.models.audit import AuditLog
from siterouter.models.site import Domain, Site

__all__ = [
    'AuditLog',
    'Domain',
    'Site',
]
