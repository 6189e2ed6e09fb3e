from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from siterouter.models.audit import AuditLog


def record_change(
    db: Session,
    *,
    actor: str | None,
    action: str,
    entity: Any,
    details: dict[str, Any] | None = None,
    ip_address: str | None = None,
) -> AuditLog:
    """Add an audit row for a change to a routing record (Site or Domain) in the current transaction."""
    audit = AuditLog(
        actor=actor,
        action=action,
        entity_type=type(entity).__name__.lower(),
        entity_id=entity.id,
        details_json=_jsonable(details or {}),
        ip_address=ip_address,
    )
    db.add(audit)
    db.flush()
    return audit


def _jsonable(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(item) for item in value]
    return value
