from siterouter.db.base_class import Base
from siterouter.models.audit import AuditLog
from siterouter.models.site import Domain, Site


__all__ = [
    'AuditLog',
    'Base',
    'Domain',
    'Site',
]
